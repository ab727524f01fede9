"""Page metadata shared by paginated endpoints."""

import math


def page_offset(page: int, limit: int) -> int:
    return max(page - 1, 0) * limit


def build_pagination(page: int, limit: int, total: int) -> dict[str, object]:
    skip = page_offset(page, limit)
    pages = math.ceil(total / limit) if limit > 0 else 0

    return {
        "current": page,
        "pages": pages,
        "total": total,
        "hasNext": limit > 0 and skip + limit < total,
        "hasPrev": page > 1,
    }
