"""Tests for ReservationManager — retries, errors and stock notifications."""

from datetime import UTC, datetime, timedelta

import pytest

from marketplace.errors import ProductNotFound, ReservationExpired, ReservationNotFound
from marketplace.notification.port import NotificationType

NOW = datetime(2026, 3, 1, 9, 0, tzinfo=UTC)


class TestReserveAndConfirm:
    def test_reserve_then_confirm(self, app, register_product):
        register_product(product_id="prod-a", quantity=10)

        reservation = app.reservations.reserve("buyer-001", [{"product_id": "prod-a", "quantity": 2}], as_of=NOW)
        outcome = app.reservations.confirm(reservation.reservation_id, as_of=NOW + timedelta(minutes=1))

        assert outcome.confirmed == {"prod-a": 2}

    def test_confirm_lapsed_reservation_raises_expired(self, app, register_product):
        register_product(product_id="prod-a", quantity=10)
        reservation = app.reservations.reserve(
            "buyer-001", [{"product_id": "prod-a", "quantity": 2}], reservation_id="res-1", as_of=NOW
        )

        with pytest.raises(ReservationExpired):
            app.reservations.confirm(reservation.reservation_id, as_of=NOW + timedelta(hours=1))

        # The lapsed entry was cleaned up, so a retry no longer finds it
        with pytest.raises(ReservationNotFound):
            app.reservations.confirm("res-1", as_of=NOW + timedelta(hours=1))

    def test_confirm_unknown_reservation(self, app):
        with pytest.raises(ReservationNotFound):
            app.reservations.confirm("res-missing")


class TestRelease:
    def test_release_notifies_consumers_when_back_in_stock(self, app, notifier, register_product):
        register_product(product_id="prod-a", name="Mangoes", quantity=3)
        app.reservations.reserve(
            "buyer-001", [{"product_id": "prod-a", "quantity": 3}], reservation_id="res-1", as_of=NOW
        )

        app.reservations.release("res-1", as_of=NOW + timedelta(minutes=1))

        events = notifier.of_type(NotificationType.PRODUCT_BACK_IN_STOCK)
        assert len(events) == 1
        assert events[0].recipient_id == "role:consumer"
        assert events[0].product_id == "prod-a"
        assert events[0].metadata["product_name"] == "Mangoes"

    def test_release_with_stock_left_sends_nothing(self, app, notifier, register_product):
        register_product(product_id="prod-a", quantity=10)
        app.reservations.reserve(
            "buyer-001", [{"product_id": "prod-a", "quantity": 3}], reservation_id="res-1", as_of=NOW
        )

        app.reservations.release("res-1", as_of=NOW)

        assert notifier.published == []

    def test_notifier_failure_does_not_undo_release(self, app, notifier, register_product):
        register_product(product_id="prod-a", quantity=3)
        app.reservations.reserve(
            "buyer-001", [{"product_id": "prod-a", "quantity": 3}], reservation_id="res-1", as_of=NOW
        )
        notifier.configure(should_succeed=False)

        outcome = app.reservations.release("res-1", as_of=NOW)

        assert outcome.released == {"prod-a": 3}
        assert app.reservations.stock_level("prod-a")["reserved_quantity"] == 0


class TestRestock:
    def test_restock_from_zero_notifies(self, app, notifier, register_product):
        register_product(product_id="prod-a", quantity=0)

        outcome = app.reservations.restock("prod-a", 8)

        assert outcome.total_quantity == 8
        assert outcome.back_in_stock.available_quantity == 8
        assert len(notifier.of_type(NotificationType.PRODUCT_BACK_IN_STOCK)) == 1

    def test_restock_with_stock_on_hand_is_silent(self, app, notifier, register_product):
        register_product(product_id="prod-a", quantity=5)

        outcome = app.reservations.restock("prod-a", 8)

        assert outcome.back_in_stock is None
        assert notifier.published == []

    def test_restock_unknown_product(self, app):
        with pytest.raises(ProductNotFound):
            app.reservations.restock("prod-ghost", 1)


class TestSweep:
    def test_sweep_expired(self, app, register_product):
        register_product(product_id="prod-a", quantity=5)
        app.reservations.reserve("buyer-001", [{"product_id": "prod-a", "quantity": 5}], as_of=NOW)

        assert app.reservations.sweep_expired(as_of=NOW + timedelta(minutes=30)) == 1
        assert app.reservations.sweep_expired(as_of=NOW + timedelta(minutes=30)) == 0


class TestCheckAvailability:
    def test_reports_each_line(self, app, register_product):
        register_product(product_id="prod-a", quantity=5)

        report = app.reservations.check_availability(
            [{"product_id": "prod-a", "quantity": 6}, {"product_id": "prod-ghost", "quantity": 1}]
        )

        assert not report.all_available
        assert [item.as_dict()["reason"] for item in report.items] == ["insufficient_stock", "not_found"]
        assert report.items[0].as_dict()["available_quantity"] == 5
