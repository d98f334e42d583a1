"""COD approvals, online payments and admin deletion."""

import pytest
from protean import current_domain
from protean.exceptions import ValidationError

from marketplace.errors import OrderNotFound, Unauthorized, VendorApprovalRequired
from marketplace.identity import Caller, Role
from marketplace.notification.port import NotificationType
from marketplace.order.order import Order
from marketplace.stock.stock import ProductStock


def _stock(product_id):
    return current_domain.repository_for(ProductStock).get(product_id)


def _deliver(app, admin, order_number):
    for status in ["preparing", "packed", "out_for_delivery", "delivered"]:
        app.lifecycle.transition(admin, order_number, status)


@pytest.fixture()
def cod_order(app, buyer, register_product, delivery_address):
    register_product(product_id="prod-milk", name="Fresh Milk", quantity=20, seller_id="vendor-001", seller_type="vendor")
    outcome = app.orders.create_order(
        buyer, [{"product_id": "prod-milk", "quantity": 2}], delivery_address, "cash_on_delivery"
    )
    return outcome.order


@pytest.fixture()
def card_order(app, buyer, register_product, delivery_address):
    register_product(product_id="prod-honey", name="Raw Honey", quantity=3)
    outcome = app.orders.create_order(buyer, [{"product_id": "prod-honey", "quantity": 3}], delivery_address, "card")
    return outcome.order


class TestCodApproval:
    def test_vendor_then_admin(self, app, admin, vendor, notifier, cod_order):
        _deliver(app, admin, cod_order.order_number)

        first = app.lifecycle.approve_cod(vendor, cod_order.order_number)
        assert first.stage == "vendor"
        assert not first.payment_completed
        assert notifier.of_type(NotificationType.PAYMENT_RECEIVED) == []

        second = app.lifecycle.approve_cod(admin, cod_order.order_number)
        assert second.stage == "admin"
        assert second.payment_completed
        assert second.order.payment_status == "completed"

        received = notifier.of_type(NotificationType.PAYMENT_RECEIVED)
        assert [event.recipient_id for event in received] == ["vendor-001"]

    def test_admin_before_vendor(self, app, admin, cod_order):
        _deliver(app, admin, cod_order.order_number)
        with pytest.raises(VendorApprovalRequired):
            app.lifecycle.approve_cod(admin, cod_order.order_number)

    def test_seller_of_other_goods_cannot_approve(self, app, admin, cod_order):
        _deliver(app, admin, cod_order.order_number)
        stranger = Caller(id="vendor-999", role=Role.VENDOR)
        with pytest.raises(Unauthorized):
            app.lifecycle.approve_cod(stranger, cod_order.order_number)

    def test_buyer_cannot_approve(self, app, admin, buyer, cod_order):
        _deliver(app, admin, cod_order.order_number)
        with pytest.raises(Unauthorized):
            app.lifecycle.approve_cod(buyer, cod_order.order_number)

    def test_not_before_delivery(self, app, vendor, cod_order):
        with pytest.raises(ValidationError):
            app.lifecycle.approve_cod(vendor, cod_order.order_number)

    def test_pending_approval_queues(self, app, admin, vendor, farmer, cod_order):
        _deliver(app, admin, cod_order.order_number)

        assert [view["order_number"] for view in app.orders.cod_pending_approval(vendor)] == [cod_order.order_number]
        assert app.orders.cod_pending_approval(farmer) == []
        assert app.orders.cod_pending_approval(admin) == []

        app.lifecycle.approve_cod(vendor, cod_order.order_number)

        assert app.orders.cod_pending_approval(vendor) == []
        assert [view["order_number"] for view in app.orders.cod_pending_approval(admin)] == [cod_order.order_number]

    def test_buyers_have_no_approval_queue(self, app, buyer):
        with pytest.raises(Unauthorized):
            app.orders.cod_pending_approval(buyer)


class TestOnlinePayment:
    def test_record_payment_notifies_sellers(self, app, notifier, card_order):
        order = app.lifecycle.record_payment(card_order.order_number, transaction_id="TXN-9")

        assert order.payment_status == "completed"
        assert order.payment_details.transaction_id == "TXN-9"
        assert [event.recipient_id for event in notifier.of_type(NotificationType.PAYMENT_RECEIVED)] == ["farmer-001"]

    def test_cod_orders_cannot_record_online_payment(self, app, cod_order):
        with pytest.raises(ValidationError):
            app.lifecycle.record_payment(cod_order.order_number)


class TestDeleteOrder:
    def test_deleting_pending_order_restores_stock(self, app, admin, notifier, card_order):
        assert _stock("prod-honey").total_quantity == 0

        outcome = app.lifecycle.delete(admin, card_order.order_number)

        assert outcome.restored == {"prod-honey": 3}
        assert _stock("prod-honey").total_quantity == 3
        assert [event.product_id for event in notifier.of_type(NotificationType.PRODUCT_BACK_IN_STOCK)] == [
            "prod-honey"
        ]
        with pytest.raises(OrderNotFound):
            app.orders.find_order(admin, card_order.order_number)

    def test_deleting_cancelled_order_does_not_restore_twice(self, app, admin, buyer, card_order):
        app.lifecycle.cancel(buyer, card_order.order_number)
        assert _stock("prod-honey").total_quantity == 3

        outcome = app.lifecycle.delete(admin, card_order.order_number)

        assert outcome.restored == {}
        assert _stock("prod-honey").total_quantity == 3
        assert current_domain.repository_for(Order)._dao.query.all().items == []

    def test_confirmed_order_cannot_be_deleted(self, app, admin, cod_order):
        with pytest.raises(ValidationError):
            app.lifecycle.delete(admin, cod_order.order_number)

    def test_only_admins_delete(self, app, buyer, card_order):
        with pytest.raises(Unauthorized):
            app.lifecycle.delete(buyer, card_order.order_number)
