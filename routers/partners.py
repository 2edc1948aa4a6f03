import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from pymongo import DESCENDING
from pymongo.database import Database

from booking import activity_entry, ratings_from_reviews
from database import as_naive_utc, create_document, find_by_id, get_db, paginate, populate, serialize, to_obj_id, utcnow
from filters import (
    PARTNER_SEARCH_FIELDS,
    PARTNER_SORT_FIELDS,
    PartnerSortKey,
    apply_search,
    build_partner_filter,
    contains,
)
from responses import ok
from routers.common import PageParams, duplicate, listing, not_found
from schemas import (
    PHONE_PATTERN,
    Address,
    Availability,
    Image,
    LowerEmail,
    Package,
    Partner,
    PartnerType,
    Plan,
    PlanType,
    Review,
    ServiceLocation,
    ShootType,
)
from security import authenticate, get_password_hash, is_admin, require_owner_or_admin

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/partners", tags=["partners"])

PUBLIC_FIELDS = [
    "username", "company_name", "profile_pic", "banner", "shoot_type", "locations",
    "price_per_day", "packages", "ratings", "verified", "years_of_experience",
]


class PartnerIn(BaseModel):
    username: str = Field(..., min_length=3, max_length=30)
    email: LowerEmail
    password: str = Field(..., min_length=6)
    company_name: str = Field(..., min_length=2, max_length=100)
    phone_no: str = Field(..., pattern=PHONE_PATTERN)
    shoot_type: List[ShootType] = Field(..., min_length=1)
    partner_type: PartnerType = "individual"
    address: Optional[Address] = None
    years_of_experience: Optional[int] = Field(None, ge=0, le=50)
    price_per_day: Optional[float] = Field(None, ge=0)
    locations: List[ServiceLocation] = []
    packages: List[Package] = []
    specialization: List[str] = []
    social_media: Dict[str, str] = {}


class PartnerUpdate(BaseModel):
    username: Optional[str] = Field(None, min_length=3, max_length=30)
    email: Optional[LowerEmail] = None
    company_name: Optional[str] = Field(None, min_length=2, max_length=100)
    phone_no: Optional[str] = Field(None, pattern=PHONE_PATTERN)
    shoot_type: Optional[List[ShootType]] = Field(None, min_length=1)
    partner_type: Optional[PartnerType] = None
    address: Optional[Address] = None
    profile_pic: Optional[Image] = None
    banner: Optional[Image] = None
    portfolio: Optional[List[Dict[str, Any]]] = None
    years_of_experience: Optional[int] = Field(None, ge=0, le=50)
    current_plan: Optional[Plan] = None
    availability: Optional[Availability] = None
    packages: Optional[List[Package]] = None
    price_per_day: Optional[float] = Field(None, ge=0)
    payment_methods: Optional[List[Dict[str, Any]]] = None
    locations: Optional[List[ServiceLocation]] = None
    specialization: Optional[List[str]] = None
    social_media: Optional[Dict[str, str]] = None


class ReviewIn(BaseModel):
    client_id: str
    order_id: Optional[str] = None
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=1000)


def same_day(value: datetime, day: datetime) -> bool:
    return as_naive_utc(value).date() == day.date()


@router.get("")
def list_partners(
    paging: PageParams = Depends(),
    sort_by: PartnerSortKey = Query("createdAt", alias="sortBy"),
    search: Optional[str] = None,
    username: Optional[str] = None,
    company_name: Optional[str] = Query(None, alias="companyName"),
    email: Optional[str] = None,
    city: Optional[str] = None,
    shoot_type: Optional[List[ShootType]] = Query(None, alias="shootType"),
    plan_type: Optional[PlanType] = Query(None, alias="planType"),
    partner_type: Optional[PartnerType] = Query(None, alias="partnerType"),
    verified: Optional[bool] = None,
    is_active: Optional[bool] = Query(None, alias="isActive"),
    min_rating: Optional[float] = Query(None, alias="minRating", ge=0, le=5),
    min_price: Optional[float] = Query(None, alias="minPrice", ge=0),
    max_price: Optional[float] = Query(None, alias="maxPrice", ge=0),
    years_of_experience: Optional[int] = Query(None, alias="yearsOfExperience", ge=0),
    date_from: Optional[datetime] = Query(None, alias="dateFrom"),
    date_to: Optional[datetime] = Query(None, alias="dateTo"),
    db: Database = Depends(get_db),
):
    filters = {
        "username": username,
        "companyName": company_name,
        "email": email,
        "city": city,
        "shootType": shoot_type,
        "planType": plan_type,
        "partnerType": partner_type,
        "verified": verified,
        "isActive": is_active,
        "minRating": min_rating,
        "minPrice": min_price,
        "maxPrice": max_price,
        "yearsOfExperience": years_of_experience,
        "dateFrom": date_from,
        "dateTo": date_to,
    }
    query = apply_search(build_partner_filter(filters), search, PARTNER_SEARCH_FIELDS)
    partners, pagination = paginate(
        db["partner"], query, paging.page, paging.limit, PARTNER_SORT_FIELDS[sort_by], paging.sort_order, {"password": 0}
    )
    populate(db, partners, "reviews.client_id", "client", ["username", "profile_pic"])
    return listing(partners, pagination, filters, "partners")


@router.get("/search")
def search_partners(
    location: Optional[str] = None,
    date: Optional[datetime] = None,
    shoot_type: Optional[List[ShootType]] = Query(None, alias="shootType"),
    budget: Optional[float] = Query(None, ge=0),
    radius: int = Query(50, ge=1, le=100),
    db: Database = Depends(get_db),
):
    query: Dict[str, Any] = {"is_active": True, "verified": True}
    if shoot_type:
        query["shoot_type"] = {"$in": shoot_type}
    if budget is not None:
        query["$or"] = [{"price_per_day": {"$lte": budget}}, {"packages.price": {"$lte": budget}}]
    if location:
        query["locations.city"] = contains(location)
    if date is not None:
        day = as_naive_utc(date).replace(hour=0, minute=0, second=0, microsecond=0)
        window = {"$gte": day, "$lt": day + timedelta(days=1)}
        query["$nor"] = [{"availability.blackout_dates": {"$elemMatch": {"date": window}}}]

    projection = dict.fromkeys(PUBLIC_FIELDS, 1)
    partners = list(
        db["partner"].find(query, projection).sort([("ratings.average", DESCENDING), ("verified", DESCENDING)]).limit(20)
    )
    criteria = {"location": location, "date": date, "shootType": shoot_type, "budget": budget, "radius": radius}
    return ok(
        serialize(partners),
        "Search completed successfully",
        count=len(partners),
        searchCriteria=serialize(criteria),
    )


@router.get("/{partner_id}")
def get_partner(partner_id: str, db: Database = Depends(get_db)):
    partner = find_by_id(db, "partner", partner_id, {"password": 0})
    if partner is None:
        raise not_found("Partner")
    populate(db, [partner], "reviews.client_id", "client", ["username", "profile_pic"])
    populate(db, [partner], "clients", "client", ["username", "email", "profile_pic"])
    return ok(serialize(partner), "Partner retrieved successfully")


@router.post("", status_code=201)
def create_partner(payload: PartnerIn, db: Database = Depends(get_db)):
    if db["partner"].find_one({"$or": [{"email": payload.email}, {"username": payload.username}]}):
        raise duplicate("Partner")

    fields = payload.model_dump(exclude_none=True)
    fields["password"] = get_password_hash(payload.password)
    inserted_id = create_document(db, "partner", Partner(**fields))
    logger.info("Created partner %s", payload.username)
    return ok(serialize(find_by_id(db, "partner", inserted_id)), "Partner created successfully")


@router.put("/{partner_id}")
def update_partner(
    partner_id: str,
    payload: PartnerUpdate,
    db: Database = Depends(get_db),
    current_user: dict = Depends(authenticate),
):
    require_owner_or_admin(current_user, partner_id)
    oid = to_obj_id(partner_id)
    if db["partner"].find_one({"_id": oid}, {"_id": 1}) is None:
        raise not_found("Partner")

    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    unique = [{k: changes[k]} for k in ("email", "username") if k in changes]
    if unique and db["partner"].find_one({"_id": {"$ne": oid}, "$or": unique}):
        raise duplicate("Partner")

    changes["updated_at"] = utcnow()
    db["partner"].update_one({"_id": oid}, {"$set": changes})
    logger.info("Updated partner %s", partner_id)
    return ok(serialize(find_by_id(db, "partner", partner_id)), "Partner updated successfully")


@router.get("/{partner_id}/availability")
def get_availability(
    partner_id: str,
    date: Optional[datetime] = None,
    month: Optional[str] = Query(None, pattern=r"^\d{4}-(0[1-9]|1[0-2])$"),
    db: Database = Depends(get_db),
):
    partner = find_by_id(db, "partner", partner_id, {"availability": 1, "partner_id": 1, "username": 1})
    if partner is None:
        raise not_found("Partner")

    availability = partner.get("availability") or {}
    blackouts = availability.get("blackout_dates") or []
    schedule = availability.get("schedule") or []

    if date is not None:
        day = as_naive_utc(date)
        data: Dict[str, Any] = {
            "date": day,
            "available": not any(same_day(b["date"], day) for b in blackouts),
            "schedule": schedule,
        }
    elif month is not None:
        data = {
            "month": month,
            "blackoutDates": [b for b in blackouts if as_naive_utc(b["date"]).strftime("%Y-%m") == month],
            "schedule": schedule,
        }
    else:
        data = availability
    return ok(serialize(data), "Availability retrieved successfully")


@router.post("/{partner_id}/reviews", status_code=201)
def add_review(
    partner_id: str,
    payload: ReviewIn,
    db: Database = Depends(get_db),
    current_user: dict = Depends(authenticate),
):
    require_owner_or_admin(current_user, payload.client_id)
    oid = to_obj_id(partner_id)
    if db["partner"].find_one({"_id": oid}, {"_id": 1}) is None:
        raise not_found("Partner")
    client = find_by_id(db, "client", payload.client_id, {"_id": 1})
    if client is None:
        raise not_found("Client")

    order = None
    if payload.order_id:
        order = find_by_id(db, "order", payload.order_id)
        if (
            order is None
            or order.get("partner_id") != partner_id
            or order.get("status") != "completed"
            or (order.get("client_id") != payload.client_id and not is_admin(current_user))
        ):
            raise HTTPException(status_code=400, detail="Only completed orders with this partner can be reviewed")
        if (order.get("review") or {}).get("client_review") or db["partner"].find_one(
            {"_id": oid, "reviews.order_id": payload.order_id}, {"_id": 1}
        ):
            raise HTTPException(status_code=409, detail="This order has already been reviewed")

    review = Review(**payload.model_dump(), created_at=utcnow()).model_dump()
    db["partner"].update_one({"_id": oid}, {"$push": {"reviews": review}})
    reviews = db["partner"].find_one({"_id": oid}, {"reviews": 1}).get("reviews", [])
    ratings = ratings_from_reviews(reviews)
    db["partner"].update_one({"_id": oid}, {"$set": {"ratings": ratings, "updated_at": utcnow()}})

    if order is not None:
        db["order"].update_one(
            {"_id": order["_id"]},
            {"$set": {"review.client_review": {"rating": payload.rating, "comment": payload.comment, "created_at": review["created_at"]}}},
        )
    db["client"].update_one(
        {"_id": client["_id"]},
        {"$push": {"activities": activity_entry("review_given", f"Rated {payload.rating}/5", partner_id)}},
    )
    logger.info("Review %s/5 added to partner %s", payload.rating, partner_id)
    return ok({"review": serialize(review), "ratings": ratings}, "Review added successfully")
