import logging
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from pymongo.database import Database

import analytics
from booking import TransitionError, activity_entry, apply_transition, compute_pricing
from database import as_naive_utc, create_document, find_by_id, get_db, paginate, populate, serialize, to_obj_id, utcnow
from filters import ORDER_SEARCH_FIELDS, ORDER_SORT_FIELDS, OrderSortKey, apply_search, build_order_filter, date_window
from responses import ok
from routers.common import PageParams, listing, not_found
from schemas import (
    Charge,
    Contact,
    Discount,
    EventDetails,
    Order,
    OrderLocation,
    OrderStage,
    OrderStatus,
    PaymentStatus,
    Taxes,
)
from security import ADMIN_ROLES, authenticate, authorize, is_admin, require_owner_or_admin

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/orders", tags=["orders"])

CLIENT_SUMMARY = ["username", "email", "phone_no", "profile_pic"]
PARTNER_SUMMARY = ["username", "company_name", "email", "phone_no", "profile_pic", "ratings"]

REPRICEABLE_STATUSES = ("pending", "confirmed")

DataProvidingMethod = Literal["cloud_storage", "physical_media", "email", "ftp", "direct_download"]


class PricingIn(BaseModel):
    base_price: float = Field(..., ge=0)
    additional_charges: List[Charge] = []
    discount: Discount = Field(default_factory=Discount)
    taxes: Taxes = Field(default_factory=Taxes)


class OrderIn(BaseModel):
    order_name: str = Field(..., min_length=3, max_length=100)
    client_id: str
    partner_id: str
    event_details: EventDetails = Field(default_factory=EventDetails)
    event_date_time: datetime
    location: OrderLocation = Field(default_factory=OrderLocation)
    pricing: PricingIn
    price_per_day: Optional[float] = Field(None, ge=0)
    package_selected: Optional[Dict[str, Any]] = None
    special_instructions: Optional[str] = Field(None, max_length=1000)
    data_providing_method: DataProvidingMethod = "cloud_storage"
    offerings: List[Dict[str, Any]] = []
    duration: Dict[str, Any] = {}


class OrderUpdate(BaseModel):
    order_name: Optional[str] = Field(None, min_length=3, max_length=100)
    event_details: Optional[EventDetails] = None
    event_date_time: Optional[datetime] = None
    location: Optional[OrderLocation] = None
    pricing: Optional[PricingIn] = None
    package_selected: Optional[Dict[str, Any]] = None
    special_instructions: Optional[str] = Field(None, max_length=1000)
    data_providing_method: Optional[DataProvidingMethod] = None
    offerings: Optional[List[Dict[str, Any]]] = None
    duration: Optional[Dict[str, Any]] = None
    deliverables: Optional[List[Dict[str, Any]]] = None


class StatusChange(BaseModel):
    status: OrderStatus
    stage: Optional[Literal["preparation", "shoot_day", "post_processing", "delivery"]] = None
    reason: Optional[str] = Field(None, max_length=500)


def with_age(order: dict) -> dict:
    booked = order.get("booking_date_time")
    if booked is not None:
        order["order_age"] = (utcnow() - as_naive_utc(booked)).days
    return order


def require_party(user: dict, order: dict) -> None:
    if is_admin(user):
        return
    if str(user["_id"]) not in (order.get("client_id"), order.get("partner_id")):
        raise HTTPException(status_code=403, detail="Access denied. Insufficient permissions.")


@router.get("")
def list_orders(
    paging: PageParams = Depends(),
    sort_by: OrderSortKey = Query("createdAt", alias="sortBy"),
    search: Optional[str] = None,
    client_id: Optional[str] = Query(None, alias="clientId"),
    partner_id: Optional[str] = Query(None, alias="partnerId"),
    status: Optional[List[OrderStatus]] = Query(None),
    order_name: Optional[str] = Query(None, alias="orderName"),
    location: Optional[str] = None,
    event_type: Optional[str] = Query(None, alias="eventType"),
    min_amount: Optional[float] = Query(None, alias="minAmount", ge=0),
    max_amount: Optional[float] = Query(None, alias="maxAmount", ge=0),
    payment_status: Optional[PaymentStatus] = Query(None, alias="paymentStatus"),
    event_date_from: Optional[datetime] = Query(None, alias="eventDateFrom"),
    event_date_to: Optional[datetime] = Query(None, alias="eventDateTo"),
    booking_date_from: Optional[datetime] = Query(None, alias="bookingDateFrom"),
    booking_date_to: Optional[datetime] = Query(None, alias="bookingDateTo"),
    progress_min: Optional[int] = Query(None, alias="progressMin", ge=0, le=100),
    progress_max: Optional[int] = Query(None, alias="progressMax", ge=0, le=100),
    current_stage: Optional[OrderStage] = Query(None, alias="currentStage"),
    db: Database = Depends(get_db),
):
    filters = {
        "clientId": client_id,
        "partnerId": partner_id,
        "status": status,
        "orderName": order_name,
        "location": location,
        "eventType": event_type,
        "minAmount": min_amount,
        "maxAmount": max_amount,
        "paymentStatus": payment_status,
        "eventDateFrom": event_date_from,
        "eventDateTo": event_date_to,
        "bookingDateFrom": booking_date_from,
        "bookingDateTo": booking_date_to,
        "progressMin": progress_min,
        "progressMax": progress_max,
        "currentStage": current_stage,
    }
    query = apply_search(build_order_filter(filters), search, ORDER_SEARCH_FIELDS)
    orders, pagination = paginate(
        db["order"], query, paging.page, paging.limit, ORDER_SORT_FIELDS[sort_by], paging.sort_order
    )
    populate(db, orders, "client_id", "client", CLIENT_SUMMARY)
    populate(db, orders, "partner_id", "partner", PARTNER_SUMMARY)
    return listing(orders, pagination, filters, "orders", summary=analytics.order_summary(db, query))


@router.get("/analytics/dashboard")
def order_analytics(
    date_from: Optional[datetime] = Query(None, alias="dateFrom"),
    date_to: Optional[datetime] = Query(None, alias="dateTo"),
    group_by: Literal["day", "week", "month", "year"] = Query("month", alias="groupBy"),
    db: Database = Depends(get_db),
    _: dict = Depends(authorize(*ADMIN_ROLES)),
):
    timeline = analytics.order_timeline(db, date_window(date_from, date_to), group_by)
    return ok(serialize(timeline), "Order analytics retrieved successfully")


@router.get("/{order_id}")
def get_order(order_id: str, db: Database = Depends(get_db)):
    order = find_by_id(db, "order", order_id)
    if order is None:
        raise not_found("Order")
    populate(db, [order], "client_id", "client", CLIENT_SUMMARY)
    populate(db, [order], "partner_id", "partner", PARTNER_SUMMARY)
    return ok(serialize(with_age(order)), "Order retrieved successfully")


@router.post("", status_code=201)
def create_order(
    payload: OrderIn,
    db: Database = Depends(get_db),
    current_user: dict = Depends(authenticate),
):
    require_owner_or_admin(current_user, payload.client_id)
    client = find_by_id(db, "client", payload.client_id)
    if client is None:
        raise not_found("Client")
    partner = find_by_id(db, "partner", payload.partner_id)
    if partner is None:
        raise not_found("Partner")

    fields = payload.model_dump(exclude_none=True)
    fields["pricing"] = compute_pricing(fields["pricing"])
    fields["event_date_time"] = as_naive_utc(payload.event_date_time)
    fields["booking_date_time"] = utcnow()
    fields["client_contact"] = Contact(email=client.get("email"), phone=client.get("phone_no"), name=client.get("username"))
    fields["partner_contact"] = Contact(
        email=partner.get("email"),
        phone=partner.get("phone_no"),
        name=partner.get("username"),
        company_name=partner.get("company_name"),
    )
    order = Order(**fields)
    inserted_id = create_document(db, "order", order)

    db["client"].update_one(
        {"_id": client["_id"]},
        {"$push": {
            "orders": inserted_id,
            "activities": activity_entry("order_placed", f"Booked {partner.get('company_name')} for {order.order_name}", inserted_id),
        }},
    )
    db["partner"].update_one(
        {"_id": partner["_id"]},
        {
            "$addToSet": {"projects.all": inserted_id, "projects.pending": inserted_id, "clients": payload.client_id},
            "$push": {"activities": activity_entry("order_received", f"New booking: {order.order_name}", inserted_id)},
        },
    )
    logger.info("Order %s placed by %s with %s", order.order_id, client.get("username"), partner.get("username"))
    return ok(serialize(with_age(find_by_id(db, "order", inserted_id))), "Order created successfully")


@router.put("/{order_id}")
def update_order(
    order_id: str,
    payload: OrderUpdate,
    db: Database = Depends(get_db),
    current_user: dict = Depends(authenticate),
):
    order = find_by_id(db, "order", order_id)
    if order is None:
        raise not_found("Order")
    require_party(current_user, order)

    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    if "pricing" in changes:
        if order.get("status") not in REPRICEABLE_STATUSES:
            raise HTTPException(status_code=409, detail=f"Pricing cannot change once an order is {order.get('status')}")
        changes["pricing"] = compute_pricing(changes["pricing"])
    if "event_date_time" in changes:
        changes["event_date_time"] = as_naive_utc(changes["event_date_time"])
    changes["updated_at"] = utcnow()
    db["order"].update_one({"_id": to_obj_id(order_id)}, {"$set": changes})
    logger.info("Updated order %s", order.get("order_id"))
    return ok(serialize(with_age(find_by_id(db, "order", order_id))), "Order updated successfully")


@router.patch("/{order_id}/status")
def change_status(
    order_id: str,
    payload: StatusChange,
    db: Database = Depends(get_db),
    current_user: dict = Depends(authenticate),
):
    order = find_by_id(db, "order", order_id)
    if order is None:
        raise not_found("Order")
    require_party(current_user, order)

    actor = "Admin" if is_admin(current_user) else current_user["user_type"]
    try:
        updated = apply_transition(db, order, payload.status, payload.stage, actor=actor, reason=payload.reason)
    except TransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return ok(serialize(with_age(updated)), f"Order status updated to {payload.status}")
