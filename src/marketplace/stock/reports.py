"""Read-only stock views for sellers and admins."""

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from marketplace.errors import ProductNotFound
from marketplace.stock.stock import ProductStock
from marketplace.utils.clock import utcnow
from marketplace.utils.query import fetch_all


def _stock_view(product: ProductStock, as_of) -> dict:
    return {
        "product_id": str(product.product_id),
        "name": product.name,
        "seller_id": str(product.seller_id),
        "unit": product.unit,
        "total_quantity": product.total_quantity,
        "reserved_quantity": product.reserved_quantity(as_of),
        "available_quantity": product.available_stock(as_of),
        "low_stock_threshold": product.low_stock_threshold,
        "stock_status": product.stock_status,
    }


def stock_level(product_id: str, as_of=None) -> dict:
    try:
        product = current_domain.repository_for(ProductStock).get(product_id)
    except ObjectNotFoundError:
        raise ProductNotFound(product_id) from None
    return _stock_view(product, as_of or utcnow())


def low_stock_report(seller_id: str | None = None, page: int = 1, limit: int = 20) -> dict:
    """Products at or below their own threshold, fewest units first.

    When ``seller_id`` is given only that seller's products are included.
    """
    page = max(1, page)
    limit = max(1, limit)
    as_of = utcnow()

    repo = current_domain.repository_for(ProductStock)
    query = repo._dao.query
    if seller_id:
        query = query.filter(seller_id=seller_id)

    low = sorted(
        (
            product
            for product in fetch_all(query, "product_id")
            if product.total_quantity <= product.low_stock_threshold
        ),
        key=lambda product: product.total_quantity,
    )
    start = (page - 1) * limit
    return {
        "items": [_stock_view(product, as_of) for product in low[start : start + limit]],
        "total": len(low),
        "page": page,
        "pages": (len(low) + limit - 1) // limit,
    }
