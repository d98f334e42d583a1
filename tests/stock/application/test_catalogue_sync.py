"""Catalogue sync and read-side stock reports."""

import pytest
from protean import current_domain
from protean.exceptions import ValidationError

from marketplace.errors import ProductNotFound
from marketplace.stock.catalogue import RegisterProductStock
from marketplace.stock.reports import low_stock_report, stock_level
from marketplace.stock.stock import ProductStock


class TestRegisterProductStock:
    def test_register_returns_product_id(self, register_product):
        assert register_product(product_id="prod-a") == "prod-a"
        stock = current_domain.repository_for(ProductStock).get("prod-a")
        assert stock.name == "Organic Tomatoes"
        assert stock.total_quantity == 50

    def test_register_again_refreshes_snapshot(self, register_product):
        register_product(product_id="prod-a", price=120.0, quantity=50)
        register_product(product_id="prod-a", price=99.5, quantity=4, name="Cherry Tomatoes")

        stock = current_domain.repository_for(ProductStock).get("prod-a")
        assert stock.price == 99.5
        assert stock.name == "Cherry Tomatoes"
        assert stock.total_quantity == 4
        assert stock.stock_status == "low_stock"

    def test_negative_quantity_is_rejected(self):
        with pytest.raises(ValidationError):
            current_domain.process(
                RegisterProductStock(
                    product_id="prod-a",
                    name="Eggs",
                    price=12.0,
                    quantity=-1,
                    seller_id="vendor-001",
                ),
                asynchronous=False,
            )


class TestStockLevel:
    def test_stock_level_view(self, register_product):
        register_product(product_id="prod-a", quantity=7)

        view = stock_level("prod-a")

        assert view["total_quantity"] == 7
        assert view["available_quantity"] == 7
        assert view["reserved_quantity"] == 0
        assert view["stock_status"] == "low_stock"

    def test_unknown_product(self):
        with pytest.raises(ProductNotFound):
            stock_level("prod-ghost")


class TestLowStockReport:
    def test_lists_products_at_or_below_threshold_fewest_first(self, register_product):
        register_product(product_id="prod-a", quantity=10)
        register_product(product_id="prod-b", quantity=0)
        register_product(product_id="prod-c", quantity=11)
        register_product(product_id="prod-d", quantity=20, low_stock_threshold=25)

        report = low_stock_report()

        assert [item["product_id"] for item in report["items"]] == ["prod-b", "prod-a", "prod-d"]
        assert report["total"] == 3

    def test_filters_by_seller(self, register_product):
        register_product(product_id="prod-a", quantity=1, seller_id="farmer-001")
        register_product(product_id="prod-b", quantity=1, seller_id="vendor-001", seller_type="vendor")

        report = low_stock_report(seller_id="vendor-001")

        assert [item["product_id"] for item in report["items"]] == ["prod-b"]

    def test_paginates(self, register_product):
        for index, quantity in enumerate([3, 1, 2]):
            register_product(product_id=f"prod-{index}", quantity=quantity)

        report = low_stock_report(page=2, limit=2)

        assert [item["total_quantity"] for item in report["items"]] == [3]
        assert report["pages"] == 2
