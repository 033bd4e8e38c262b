"""
Shared response helpers for the routers.
"""

import math


def paginated(items: list, total: int, page: int, limit: int) -> dict:
    """List envelope with pagination keys."""
    return {
        "success": True,
        "data": items,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": math.ceil(total / limit) if limit else 0,
        },
    }
