def fetch_all(query, order_by: str = "id", batch_size: int = 100):
    """Iterate every record matched by a repository query, page by page.

    Pages are taken over a stable ``order_by`` key so no record is skipped or
    repeated between them.
    """
    query = query.order_by(order_by)
    offset = 0
    while True:
        page = query.offset(offset).limit(batch_size).all()
        yield from page.items
        if not page.has_next:
            return
        offset += batch_size
