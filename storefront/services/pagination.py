"""Pagination helpers shared by list endpoints."""

from typing import Dict


def paginate(total: int, page: int, limit: int) -> Dict[str, int]:
    """Pagination block returned alongside list results."""
    return {
        "total": total,
        "page": page,
        "limit": limit,
        "totalPages": (total + limit - 1) // limit if limit else 0,
    }


def offset_for(page: int, limit: int) -> int:
    return max(0, (page - 1) * limit)
