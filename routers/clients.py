import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from pymongo.database import Database

from booking import activity_entry
from database import create_document, find_by_id, get_db, paginate, populate, serialize, to_obj_id, utcnow
from filters import (
    CLIENT_SEARCH_FIELDS,
    CLIENT_SORT_FIELDS,
    ClientSortKey,
    apply_search,
    build_client_filter,
    build_order_filter,
    date_window,
)
from responses import ok
from routers.common import PageParams, duplicate, listing, not_found
from schemas import PHONE_PATTERN, Address, Client, FavouritePartner, Image, LowerEmail, OrderStatus, Plan, PlanType
from security import ADMIN_ROLES, authenticate, authorize, get_password_hash, require_owner_or_admin

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/clients", tags=["clients"])

PARTNER_SUMMARY = ["username", "company_name", "profile_pic", "ratings", "price_per_day"]


class ClientIn(BaseModel):
    username: str = Field(..., min_length=3, max_length=30)
    email: LowerEmail
    password: str = Field(..., min_length=6)
    phone_no: str = Field(..., pattern=PHONE_PATTERN)
    address: Optional[Address] = None
    profile_pic: Optional[Image] = None
    current_plan: Optional[Plan] = None


class ClientUpdate(BaseModel):
    username: Optional[str] = Field(None, min_length=3, max_length=30)
    email: Optional[LowerEmail] = None
    phone_no: Optional[str] = Field(None, pattern=PHONE_PATTERN)
    address: Optional[Address] = None
    profile_pic: Optional[Image] = None
    current_plan: Optional[Plan] = None


class FavouriteIn(BaseModel):
    partner_id: str


@router.get("")
def list_clients(
    paging: PageParams = Depends(),
    sort_by: ClientSortKey = Query("createdAt", alias="sortBy"),
    search: Optional[str] = None,
    username: Optional[str] = None,
    email: Optional[str] = None,
    city: Optional[str] = None,
    state: Optional[str] = None,
    plan_type: Optional[PlanType] = Query(None, alias="planType"),
    is_active: Optional[bool] = Query(None, alias="isActive"),
    is_verified: Optional[bool] = Query(None, alias="isVerified"),
    date_from: Optional[datetime] = Query(None, alias="dateFrom"),
    date_to: Optional[datetime] = Query(None, alias="dateTo"),
    db: Database = Depends(get_db),
):
    filters = {
        "username": username,
        "email": email,
        "city": city,
        "state": state,
        "planType": plan_type,
        "isActive": is_active,
        "isVerified": is_verified,
        "dateFrom": date_from,
        "dateTo": date_to,
    }
    query = apply_search(build_client_filter(filters), search, CLIENT_SEARCH_FIELDS)
    clients, pagination = paginate(
        db["client"], query, paging.page, paging.limit, CLIENT_SORT_FIELDS[sort_by], paging.sort_order, {"password": 0}
    )
    populate(db, clients, "favourite_partners.partner_id", "partner", PARTNER_SUMMARY)
    return listing(clients, pagination, filters, "clients")


@router.get("/{client_id}")
def get_client(client_id: str, db: Database = Depends(get_db)):
    client = find_by_id(db, "client", client_id, {"password": 0})
    if client is None:
        raise not_found("Client")
    populate(db, [client], "orders", "order", ["order_id", "order_name", "status", "event_date_time", "pricing"])
    populate(db, [client], "favourite_partners.partner_id", "partner", PARTNER_SUMMARY)
    return ok(serialize(client), "Client retrieved successfully")


@router.post("", status_code=201)
def create_client(payload: ClientIn, db: Database = Depends(get_db)):
    if db["client"].find_one({"$or": [{"email": payload.email}, {"username": payload.username}]}):
        raise duplicate("Client")

    fields = payload.model_dump(exclude_none=True)
    fields["password"] = get_password_hash(payload.password)
    inserted_id = create_document(db, "client", Client(**fields))
    logger.info("Created client %s", payload.username)
    return ok(serialize(find_by_id(db, "client", inserted_id)), "Client created successfully")


@router.put("/{client_id}")
def update_client(
    client_id: str,
    payload: ClientUpdate,
    db: Database = Depends(get_db),
    current_user: dict = Depends(authenticate),
):
    require_owner_or_admin(current_user, client_id)
    oid = to_obj_id(client_id)
    if db["client"].find_one({"_id": oid}, {"_id": 1}) is None:
        raise not_found("Client")

    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    unique = [{k: changes[k]} for k in ("email", "username") if k in changes]
    if unique and db["client"].find_one({"_id": {"$ne": oid}, "$or": unique}):
        raise duplicate("Client")

    changes["updated_at"] = utcnow()
    db["client"].update_one(
        {"_id": oid},
        {"$set": changes, "$push": {"activities": activity_entry("profile_updated", "Profile updated", client_id)}},
    )
    logger.info("Updated client %s", client_id)
    return ok(serialize(find_by_id(db, "client", client_id)), "Client updated successfully")


@router.delete("/{client_id}")
def delete_client(
    client_id: str,
    db: Database = Depends(get_db),
    _: dict = Depends(authorize(*ADMIN_ROLES)),
):
    result = db["client"].delete_one({"_id": to_obj_id(client_id)})
    if result.deleted_count == 0:
        raise not_found("Client")
    logger.info("Deleted client %s", client_id)
    return ok(None, "Client deleted successfully")


@router.get("/{client_id}/orders")
def list_client_orders(
    client_id: str,
    paging: PageParams = Depends(),
    status: Optional[List[OrderStatus]] = Query(None),
    date_from: Optional[datetime] = Query(None, alias="dateFrom"),
    date_to: Optional[datetime] = Query(None, alias="dateTo"),
    db: Database = Depends(get_db),
):
    if find_by_id(db, "client", client_id, {"_id": 1}) is None:
        raise not_found("Client")

    query = build_order_filter({"clientId": client_id, "status": status})
    query.update(date_window(date_from, date_to, "event_date_time"))
    orders, pagination = paginate(db["order"], query, paging.page, paging.limit, "created_at", paging.sort_order)
    populate(db, orders, "partner_id", "partner", ["username", "company_name", "profile_pic", "ratings"])
    filters = {"status": status, "dateFrom": date_from, "dateTo": date_to}
    return listing(orders, pagination, filters, "orders")


@router.post("/{client_id}/favourites", status_code=201)
def add_favourite(
    client_id: str,
    payload: FavouriteIn,
    db: Database = Depends(get_db),
    current_user: dict = Depends(authenticate),
):
    require_owner_or_admin(current_user, client_id)
    oid = to_obj_id(client_id)
    if db["client"].find_one({"_id": oid}, {"_id": 1}) is None:
        raise not_found("Client")
    partner = find_by_id(db, "partner", payload.partner_id, {"username": 1, "company_name": 1})
    if partner is None:
        raise not_found("Partner")

    favourite = FavouritePartner(partner_id=payload.partner_id, added_at=utcnow()).model_dump()
    activity = activity_entry("partner_favorited", f"Added {partner.get('company_name')} to favourites", payload.partner_id)
    db["client"].update_one(
        {"_id": oid, "favourite_partners.partner_id": {"$ne": payload.partner_id}},
        {"$push": {"favourite_partners": favourite, "activities": activity}},
    )
    client = db["client"].find_one({"_id": oid}, {"favourite_partners": 1})
    return ok(serialize(client["favourite_partners"]), "Partner added to favourites")


@router.delete("/{client_id}/favourites/{partner_id}")
def remove_favourite(
    client_id: str,
    partner_id: str,
    db: Database = Depends(get_db),
    current_user: dict = Depends(authenticate),
):
    require_owner_or_admin(current_user, client_id)
    oid = to_obj_id(client_id)
    result = db["client"].update_one({"_id": oid}, {"$pull": {"favourite_partners": {"partner_id": partner_id}}})
    if result.matched_count == 0:
        raise not_found("Client")
    client = db["client"].find_one({"_id": oid}, {"favourite_partners": 1})
    return ok(serialize(client.get("favourite_partners", [])), "Partner removed from favourites")
