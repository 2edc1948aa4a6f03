import logging
from datetime import datetime
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from pymongo.database import Database

import analytics
from database import create_document, find_by_id, get_db, paginate, serialize
from filters import date_window
from responses import ok
from routers.common import PageParams, duplicate, listing, not_found
from schemas import PHONE_PATTERN, Admin, AdminType, LowerEmail, Permission
from security import ADMIN_ROLES, authorize, get_password_hash

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admins", tags=["admins"], dependencies=[Depends(authorize(*ADMIN_ROLES))])


class AdminIn(BaseModel):
    username: str = Field(..., min_length=3, max_length=30)
    email: LowerEmail
    password: str = Field(..., min_length=6)
    phone_no: str = Field(..., pattern=PHONE_PATTERN)
    user_type: AdminType = "Admin"
    permissions: List[Permission] = []


@router.get("/dashboard")
def dashboard(
    date_from: Optional[datetime] = Query(None, alias="dateFrom"),
    date_to: Optional[datetime] = Query(None, alias="dateTo"),
    db: Database = Depends(get_db),
):
    data = analytics.dashboard(db, date_window(date_from, date_to))
    return ok(serialize(data), "Dashboard data retrieved successfully")


@router.get("/analytics")
def platform_analytics(
    period: Literal["7d", "30d", "90d", "1y"] = "30d",
    metric: Literal["revenue", "orders", "users", "engagement"] = "revenue",
    db: Database = Depends(get_db),
):
    data = analytics.platform_analytics(db, period, metric)
    return ok(serialize({"period": period, "metric": metric, "data": data}), "Analytics retrieved successfully")


@router.get("/system-health")
def system_health(db: Database = Depends(get_db)):
    return ok(serialize(analytics.system_health(db)), "System health retrieved successfully")


@router.get("")
def list_admins(paging: PageParams = Depends(), db: Database = Depends(get_db)):
    admins, pagination = paginate(
        db["admin"], {}, paging.page, paging.limit, "created_at", paging.sort_order, {"password": 0}
    )
    return listing(admins, pagination, {}, "admins")


@router.post("", status_code=201)
def create_admin(
    payload: AdminIn,
    db: Database = Depends(get_db),
    current_user: dict = Depends(authorize("SuperAdmin")),
):
    if db["admin"].find_one({"$or": [{"email": payload.email}, {"username": payload.username}]}):
        raise duplicate("Admin")

    fields = payload.model_dump()
    fields["password"] = get_password_hash(payload.password)
    inserted_id = create_document(db, "admin", Admin(**fields))
    logger.info("%s created %s %s", current_user.get("username"), payload.user_type, payload.username)
    return ok(serialize(find_by_id(db, "admin", inserted_id)), "Admin created successfully")


@router.get("/{admin_id}")
def get_admin(admin_id: str, db: Database = Depends(get_db)):
    admin = find_by_id(db, "admin", admin_id, {"password": 0})
    if admin is None:
        raise not_found("Admin")
    return ok(serialize(admin), "Admin retrieved successfully")
