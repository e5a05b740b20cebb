def paginate(query, page, per_page, serialize=None):
    """Page ``query`` into the list envelope the admin UI expects."""
    page = max(page or 1, 1)
    pagination = query.paginate(page=page, per_page=per_page, error_out=False)
    serialize = serialize or (lambda obj: obj.to_dict())
    data = [serialize(item) for item in pagination.items]

    first = (page - 1) * per_page + 1 if data else None
    return {
        "data": data,
        "current_page": page,
        "last_page": max(pagination.pages, 1),
        "per_page": per_page,
        "total": pagination.total,
        "from": first,
        "to": first + len(data) - 1 if data else None,
    }
