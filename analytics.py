"""Aggregation pipelines behind the dashboard and analytics endpoints.

Every call recomputes from the collections; nothing is cached.
"""
import time
from datetime import timedelta
from typing import Any, Dict, List, Optional

from pymongo import DESCENDING
from pymongo.database import Database

from database import database_status, populate, utcnow

PERIOD_DAYS = {"7d": 7, "30d": 30, "90d": 90, "1y": 365}
GROUP_FORMATS = {"day": "%Y-%m-%d", "week": "%Y-%U", "month": "%Y-%m", "year": "%Y"}
PREMIUM_PLANS = ["premium", "enterprise"]
ACTIVE_ORDER_STATUSES = ["confirmed", "in_progress"]

_started = time.monotonic()


def revenue_pipeline(match: Dict[str, Any]) -> List[Dict[str, Any]]:
    return [
        {"$match": match},
        {
            "$group": {
                "_id": None,
                "totalRevenue": {"$sum": "$pricing.total_amount"},
                "averageOrderValue": {"$avg": "$pricing.total_amount"},
                "totalOrders": {"$sum": 1},
            }
        },
    ]


def timeline_pipeline(match: Dict[str, Any], group_by: str = "month") -> List[Dict[str, Any]]:
    period = {"$dateToString": {"format": GROUP_FORMATS[group_by], "date": "$created_at"}}
    return [
        {"$match": match},
        {
            "$group": {
                "_id": {"status": "$status", "period": period},
                "count": {"$sum": 1},
                "totalRevenue": {"$sum": "$pricing.total_amount"},
                "averageOrderValue": {"$avg": "$pricing.total_amount"},
            }
        },
        {
            "$group": {
                "_id": "$_id.period",
                "orders": {
                    "$push": {
                        "status": "$_id.status",
                        "count": "$count",
                        "revenue": "$totalRevenue",
                        "avgValue": "$averageOrderValue",
                    }
                },
                "totalOrders": {"$sum": "$count"},
                "totalRevenue": {"$sum": "$totalRevenue"},
            }
        },
        {"$sort": {"_id": 1}},
    ]


def daily_pipeline(since, accumulators: Dict[str, Any]) -> List[Dict[str, Any]]:
    return [
        {"$match": {"created_at": {"$gte": since}}},
        {"$group": {"_id": {"$dateToString": {"format": "%Y-%m-%d", "date": "$created_at"}}, **accumulators}},
        {"$sort": {"_id": 1}},
    ]


def order_summary(db: Database, query: Dict[str, Any]) -> Dict[str, Any]:
    pipeline = [
        {"$match": query},
        {
            "$group": {
                "_id": None,
                "totalRevenue": {"$sum": "$pricing.total_amount"},
                "averageOrderValue": {"$avg": "$pricing.total_amount"},
                "statuses": {"$push": "$status"},
            }
        },
    ]
    rows = list(db["order"].aggregate(pipeline))
    if not rows:
        return {}
    breakdown: Dict[str, int] = {}
    for status in rows[0]["statuses"]:
        breakdown[status] = breakdown.get(status, 0) + 1
    return {
        "totalRevenue": rows[0]["totalRevenue"],
        "averageOrderValue": rows[0]["averageOrderValue"],
        "statusBreakdown": breakdown,
    }


def revenue_totals(db: Database, match: Dict[str, Any]) -> Dict[str, Any]:
    rows = list(db["order"].aggregate(revenue_pipeline(match)))
    if not rows:
        return {"totalRevenue": 0, "averageOrderValue": 0, "totalOrders": 0}
    row = rows[0]
    row.pop("_id", None)
    return row


def dashboard(db: Database, date_filter: Dict[str, Any]) -> Dict[str, Any]:
    clients, partners, orders = db["client"], db["partner"], db["order"]

    overview = {
        "totalClients": clients.count_documents({"is_active": True, **date_filter}),
        "totalPartners": partners.count_documents({"is_active": True, **date_filter}),
        "totalOrders": orders.count_documents(date_filter),
        "activeOrders": orders.count_documents({"status": {"$in": ACTIVE_ORDER_STATUSES}, **date_filter}),
        "completedOrders": orders.count_documents({"status": "completed", **date_filter}),
        "premiumClients": clients.count_documents({"current_plan.plan_type": {"$in": PREMIUM_PLANS}, **date_filter}),
        "premiumPartners": partners.count_documents({"current_plan.plan_type": {"$in": PREMIUM_PLANS}, **date_filter}),
        "verifiedPartners": partners.count_documents({"verified": True, **date_filter}),
    }

    recent_orders = list(orders.find(date_filter).sort("created_at", DESCENDING).limit(10))
    populate(db, recent_orders, "client_id", "client", ["username", "profile_pic"])
    populate(db, recent_orders, "partner_id", "partner", ["username", "company_name", "profile_pic"])

    top_partners = list(
        partners.find(
            {"verified": True, "is_active": True},
            {"username": 1, "company_name": 1, "profile_pic": 1, "ratings": 1, "total_revenue": 1},
        )
        .sort([("ratings.average", DESCENDING), ("ratings.total_reviews", DESCENDING)])
        .limit(5)
    )

    return {
        "overview": overview,
        "revenue": revenue_totals(db, date_filter),
        "recentOrders": recent_orders,
        "topPartners": top_partners,
        "lastUpdated": utcnow(),
    }


def order_timeline(db: Database, match: Dict[str, Any], group_by: str = "month") -> List[Dict[str, Any]]:
    return list(db["order"].aggregate(timeline_pipeline(match, group_by)))


def platform_analytics(db: Database, period: str = "30d", metric: str = "revenue") -> Any:
    since = utcnow() - timedelta(days=PERIOD_DAYS[period])

    if metric == "revenue":
        return list(db["order"].aggregate(daily_pipeline(since, {"revenue": {"$sum": "$pricing.total_amount"}, "orders": {"$sum": 1}})))
    if metric == "users":
        return {
            "clientSignups": list(db["client"].aggregate(daily_pipeline(since, {"clients": {"$sum": 1}}))),
            "partnerSignups": list(db["partner"].aggregate(daily_pipeline(since, {"partners": {"$sum": 1}}))),
        }
    return list(db["order"].aggregate(daily_pipeline(since, {"count": {"$sum": 1}})))


def system_health(db: Database, window: Optional[timedelta] = None) -> Dict[str, Any]:
    since = utcnow() - (window or timedelta(hours=24))
    active_clients = db["client"].count_documents({"last_login": {"$gte": since}})
    active_partners = db["partner"].count_documents({"last_login": {"$gte": since}})
    database = database_status(db)
    return {
        "status": "healthy" if database["status"] == "connected" else "degraded",
        "database": database,
        "uptimeSeconds": round(time.monotonic() - _started, 1),
        "activeUsers": {
            "clients": active_clients,
            "partners": active_partners,
            "total": active_clients + active_partners,
        },
        "lastChecked": utcnow(),
    }
