"""Build MongoDB filter documents from flat query-parameter mappings.

Everything here is pure: it takes the request's query parameters (camelCase
keys, either typed values or raw strings) and returns a filter dict. Keys that
are missing, None or empty add nothing; unknown keys are ignored.
"""
import re
from typing import Any, Callable, Dict, Iterable, List, Literal, Mapping, Optional, Sequence, Tuple

from database import as_naive_utc

RangeSpec = Tuple[Optional[str], Optional[str], str, Callable[[Any], Any]]
DateSpec = Tuple[str, str, str]

ClientSortKey = Literal["createdAt", "username", "email", "lastLogin"]
PartnerSortKey = Literal["createdAt", "username", "companyName", "ratings.average", "pricePerDay"]
OrderSortKey = Literal["createdAt", "eventDateTime", "bookingDateTime", "pricing.totalAmount", "progress.percentage"]
BookSortKey = Literal["createdAt", "title", "author", "publishedYear"]
SortOrder = Literal["asc", "desc"]

CLIENT_SORT_FIELDS = {
    "createdAt": "created_at",
    "username": "username",
    "email": "email",
    "lastLogin": "last_login",
}
PARTNER_SORT_FIELDS = {
    "createdAt": "created_at",
    "username": "username",
    "companyName": "company_name",
    "ratings.average": "ratings.average",
    "pricePerDay": "price_per_day",
}
ORDER_SORT_FIELDS = {
    "createdAt": "created_at",
    "eventDateTime": "event_date_time",
    "bookingDateTime": "booking_date_time",
    "pricing.totalAmount": "pricing.total_amount",
    "progress.percentage": "progress.percentage",
}
BOOK_SORT_FIELDS = {
    "createdAt": "created_at",
    "title": "title",
    "author": "author",
    "publishedYear": "published_year",
}

CLIENT_SEARCH_FIELDS = ("username", "email", "address.city")
PARTNER_SEARCH_FIELDS = ("username", "company_name", "email", "locations.city", "shoot_type", "specialization")
ORDER_SEARCH_FIELDS = ("order_name", "order_id", "event_details.event_name", "location.venue", "location.address.city")
BOOK_SEARCH_FIELDS = ("title", "author", "genre")


def _present(params: Mapping[str, Any], key: Optional[str]) -> bool:
    if key is None:
        return False
    value = params.get(key)
    return value is not None and value != "" and value != []


def contains(value: Any) -> Dict[str, str]:
    """Case-insensitive substring match on the literal text of ``value``."""
    return {"$regex": re.escape(str(value)), "$options": "i"}


def as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("true", "1", "yes")


def as_list(value: Any) -> List[Any]:
    if isinstance(value, (list, tuple, set)):
        return list(value)
    return [value]


def merge_range(query: Dict[str, Any], path: str, gte: Any = None, lte: Any = None) -> None:
    clause = dict(query.get(path) or {})
    if gte is not None:
        clause["$gte"] = gte
    if lte is not None:
        clause["$lte"] = lte
    if clause:
        query[path] = clause


def _build(
    params: Mapping[str, Any],
    text: Optional[Mapping[str, str]] = None,
    exact: Optional[Mapping[str, str]] = None,
    any_of: Optional[Mapping[str, str]] = None,
    flags: Optional[Mapping[str, str]] = None,
    ranges: Sequence[RangeSpec] = (),
    dates: Sequence[DateSpec] = (),
) -> Dict[str, Any]:
    query: Dict[str, Any] = {}

    for key, path in (text or {}).items():
        if _present(params, key):
            query[path] = contains(params[key])

    for key, path in (exact or {}).items():
        if _present(params, key):
            query[path] = params[key]

    for key, path in (any_of or {}).items():
        if _present(params, key):
            query[path] = {"$in": as_list(params[key])}

    for key, path in (flags or {}).items():
        if _present(params, key):
            query[path] = as_bool(params[key])

    for min_key, max_key, path, cast in ranges:
        lower = cast(params[min_key]) if _present(params, min_key) else None
        upper = cast(params[max_key]) if _present(params, max_key) else None
        merge_range(query, path, lower, upper)

    for from_key, to_key, path in dates:
        lower = as_naive_utc(params[from_key]) if _present(params, from_key) else None
        upper = as_naive_utc(params[to_key]) if _present(params, to_key) else None
        merge_range(query, path, lower, upper)

    return query


def build_client_filter(params: Mapping[str, Any]) -> Dict[str, Any]:
    return _build(
        params,
        text={"username": "username", "email": "email", "city": "address.city", "state": "address.state"},
        exact={"planType": "current_plan.plan_type"},
        flags={"isActive": "is_active", "isVerified": "is_verified"},
        dates=[("dateFrom", "dateTo", "created_at")],
    )


def build_partner_filter(params: Mapping[str, Any]) -> Dict[str, Any]:
    return _build(
        params,
        text={"username": "username", "companyName": "company_name", "email": "email", "city": "locations.city"},
        exact={"planType": "current_plan.plan_type", "partnerType": "partner_type"},
        any_of={"shootType": "shoot_type"},
        flags={"verified": "verified", "isActive": "is_active"},
        ranges=[
            ("minRating", None, "ratings.average", float),
            ("minPrice", "maxPrice", "price_per_day", float),
            ("yearsOfExperience", None, "years_of_experience", int),
        ],
        dates=[("dateFrom", "dateTo", "created_at")],
    )


def build_order_filter(params: Mapping[str, Any]) -> Dict[str, Any]:
    return _build(
        params,
        text={
            "orderName": "order_name",
            "location": "location.address.city",
            "eventType": "event_details.event_type",
        },
        exact={
            "clientId": "client_id",
            "partnerId": "partner_id",
            "paymentStatus": "payment.status",
            "currentStage": "progress.current_stage",
        },
        any_of={"status": "status"},
        ranges=[
            ("minAmount", "maxAmount", "pricing.total_amount", float),
            ("progressMin", "progressMax", "progress.percentage", int),
        ],
        dates=[
            ("eventDateFrom", "eventDateTo", "event_date_time"),
            ("bookingDateFrom", "bookingDateTo", "booking_date_time"),
        ],
    )


def build_book_filter(params: Mapping[str, Any]) -> Dict[str, Any]:
    query = _build(params, text={"title": "title", "author": "author", "genre": "genre"})
    if _present(params, "available"):
        query["available_copies"] = {"$gt": 0} if as_bool(params["available"]) else {"$lte": 0}
    return query


def apply_search(query: Dict[str, Any], term: Optional[str], fields: Iterable[str]) -> Dict[str, Any]:
    if term:
        query["$or"] = [{path: contains(term)} for path in fields]
    return query


def date_window(date_from: Any = None, date_to: Any = None, path: str = "created_at") -> Dict[str, Any]:
    return _build({"from": date_from, "to": date_to}, dates=[("from", "to", path)])


def echo_filters(params: Mapping[str, Any]) -> Dict[str, Any]:
    """The filters that were actually applied, for the response body."""
    return {k: v for k, v in params.items() if _present(params, k)}
