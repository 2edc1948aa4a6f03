from typing import Any, Dict, List, Mapping

from fastapi import HTTPException, Query

from database import serialize
from filters import SortOrder, echo_filters


class PageParams:
    def __init__(
        self,
        page: int = Query(1, ge=1),
        limit: int = Query(10, ge=1, le=100),
        sort_order: SortOrder = Query("desc", alias="sortOrder"),
    ):
        self.page = page
        self.limit = limit
        self.sort_order = sort_order


def listing(
    docs: List[dict],
    pagination: Dict[str, Any],
    filters: Mapping[str, Any],
    noun: str,
    **extra: Any,
) -> Dict[str, Any]:
    return {
        "success": True,
        "data": serialize(docs),
        "pagination": pagination,
        "filters": serialize(echo_filters(filters)),
        "message": f"Retrieved {len(docs)} {noun} successfully",
        **extra,
    }


def not_found(what: str) -> HTTPException:
    return HTTPException(status_code=404, detail=f"{what} not found")


def duplicate(what: str) -> HTTPException:
    return HTTPException(status_code=409, detail=f"{what} with this email or username already exists")
