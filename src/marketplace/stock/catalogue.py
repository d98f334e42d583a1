"""Catalogue sync — commands and handler.

The catalogue owns product listings; the stock ledger keeps the snapshot it
needs (name, price, unit, seller) to price and validate orders without
calling back into the catalogue.
"""

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Float, Identifier, Integer, String
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.errors import ProductNotFound
from marketplace.stock.outcomes import RestockOutcome, recovery
from marketplace.stock.stock import ProductStock, SellerType, Unit
from marketplace.utils.clock import utcnow

logger = structlog.get_logger(__name__)


@marketplace.command(part_of="ProductStock")
class RegisterProductStock:
    """Create or refresh the stock record for a catalogue product."""

    product_id = Identifier(required=True)
    name = String(required=True, max_length=200)
    price = Float(required=True, min_value=0.0)
    unit = String(choices=Unit, default=Unit.KG.value)
    quantity = Integer(required=True, min_value=0)
    seller_id = Identifier(required=True)
    seller_type = String(choices=SellerType, default=SellerType.FARMER.value)
    category = String(max_length=100)
    low_stock_threshold = Integer(min_value=0)


@marketplace.command(part_of="ProductStock")
class RestockProduct:
    """Add units a seller has delivered."""

    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)


@marketplace.command_handler(part_of=ProductStock)
class ProductStockCatalogueHandler:
    @handle(RegisterProductStock)
    def register_product_stock(self, command):
        repo = current_domain.repository_for(ProductStock)
        try:
            stock = repo.get(command.product_id)
        except ObjectNotFoundError:
            stock = ProductStock.register(
                product_id=command.product_id,
                name=command.name,
                price=command.price,
                seller_id=command.seller_id,
                quantity=command.quantity,
                unit=command.unit,
                seller_type=command.seller_type,
                category=command.category,
                low_stock_threshold=command.low_stock_threshold,
            )
            logger.info(
                "Product stock registered",
                product_id=str(command.product_id),
                quantity=command.quantity,
            )
        else:
            stock.update_catalogue(
                name=command.name,
                price=command.price,
                quantity=command.quantity,
                unit=command.unit,
                category=command.category,
                low_stock_threshold=command.low_stock_threshold,
            )
            logger.info(
                "Product stock refreshed",
                product_id=str(command.product_id),
                quantity=command.quantity,
                stock_status=stock.stock_status,
            )
        repo.add(stock)
        return str(stock.product_id)

    @handle(RestockProduct)
    def restock_product(self, command):
        repo = current_domain.repository_for(ProductStock)
        try:
            stock = repo.get(command.product_id)
        except ObjectNotFoundError:
            raise ProductNotFound(str(command.product_id)) from None
        now = utcnow()
        before = stock.available_stock(now)
        stock.restock(command.quantity)
        repo.add(stock)
        return RestockOutcome(
            product_id=str(stock.product_id),
            total_quantity=stock.total_quantity,
            back_in_stock=recovery(stock, before, now),
        )
