"""Order pricing and the order lifecycle.

``status`` is the only state an order carries. The delivery stage and the
progress percentage are derived from it: a stage exists only while the order
is ``in_progress`` and it only ever moves forward.
"""
import logging
from typing import Any, Dict, Optional

from pymongo.database import Database

from database import find_by_id, utcnow
from schemas import Activity, Transaction

logger = logging.getLogger(__name__)

STAGE_SEQUENCE = ("preparation", "shoot_day", "post_processing", "delivery")

STAGE_PERCENT = {
    "booking_confirmed": 10,
    "preparation": 25,
    "shoot_day": 50,
    "post_processing": 75,
    "delivery": 90,
    "completed": 100,
}

TRANSITIONS = {
    "pending": {"confirmed", "cancelled"},
    "confirmed": {"in_progress", "cancelled"},
    # in_progress -> in_progress advances the stage
    "in_progress": {"in_progress", "completed", "cancelled"},
    "completed": {"refunded"},
    "cancelled": {"refunded"},
    "refunded": set(),
}

PROJECT_BUCKETS = ("pending", "active", "completed")
BUCKET_FOR_STATUS = {
    "pending": "pending",
    "confirmed": "active",
    "in_progress": "active",
    "completed": "completed",
}


class TransitionError(Exception):
    pass


def compute_pricing(pricing: Dict[str, Any]) -> Dict[str, Any]:
    """Fill in tax amount and total from the base price, extras and discount.

    Tax is ``percentage`` of the discounted subtotal unless an explicit
    amount is given.
    """
    base = float(pricing.get("base_price") or 0)
    charges = pricing.get("additional_charges") or []
    discount = dict(pricing.get("discount") or {})
    taxes = dict(pricing.get("taxes") or {})

    extras = sum(float(c.get("amount") or 0) for c in charges)
    discount_amount = float(discount.get("amount") or 0)
    subtotal = max(base + extras - discount_amount, 0.0)

    if taxes.get("amount") is not None:
        tax_amount = float(taxes["amount"])
    else:
        tax_amount = round(subtotal * float(taxes.get("percentage") or 0) / 100, 2)

    discount["amount"] = discount_amount
    taxes["amount"] = tax_amount
    taxes.setdefault("percentage", 0)
    return {
        "base_price": base,
        "additional_charges": charges,
        "discount": discount,
        "taxes": taxes,
        "total_amount": round(subtotal + tax_amount, 2),
    }


def derived_progress(status: str, stage: Optional[str] = None) -> Optional[Dict[str, Any]]:
    if status == "pending":
        return {"current_stage": None, "percentage": 0}
    if status == "confirmed":
        return {"current_stage": "booking_confirmed", "percentage": STAGE_PERCENT["booking_confirmed"]}
    if status == "in_progress":
        stage = stage or STAGE_SEQUENCE[0]
        return {"current_stage": stage, "percentage": STAGE_PERCENT[stage]}
    if status == "completed":
        return {"current_stage": "completed", "percentage": 100}
    # cancelled/refunded freeze whatever progress was reached
    return None


def plan_transition(order: Dict[str, Any], new_status: str, stage: Optional[str] = None) -> Dict[str, Any]:
    """Validate a move and return the ``$set`` changes for the order document."""
    current = order.get("status", "pending")
    current_stage = (order.get("progress") or {}).get("current_stage")

    if new_status not in TRANSITIONS.get(current, set()):
        raise TransitionError(f"Cannot move order from {current} to {new_status}")

    if new_status == "in_progress":
        if stage is not None and stage not in STAGE_SEQUENCE:
            raise TransitionError(f"Unknown stage {stage}")
        if current == "in_progress":
            if stage is None:
                raise TransitionError("Order is already in progress; give the next stage")
            if current_stage in STAGE_SEQUENCE and STAGE_SEQUENCE.index(stage) <= STAGE_SEQUENCE.index(current_stage):
                raise TransitionError(f"Stage cannot move back from {current_stage} to {stage}")
    elif stage is not None:
        raise TransitionError("A stage can only be set while the order is in progress")

    changes: Dict[str, Any] = {"status": new_status}
    progress = derived_progress(new_status, stage)
    if progress is not None:
        changes["progress.current_stage"] = progress["current_stage"]
        changes["progress.percentage"] = progress["percentage"]
    return changes


def _move_project(db: Database, partner_id: str, order_id: str, status: str) -> None:
    partner = find_by_id(db, "partner", partner_id, {"_id": 1})
    if partner is None:
        return
    db["partner"].update_one(
        {"_id": partner["_id"]},
        {"$pull": {f"projects.{bucket}": order_id for bucket in PROJECT_BUCKETS}},
    )
    bucket = BUCKET_FOR_STATUS.get(status)
    if bucket:
        db["partner"].update_one({"_id": partner["_id"]}, {"$addToSet": {f"projects.{bucket}": order_id}})


def activity_entry(kind: str, description: str, related_id: str) -> Dict[str, Any]:
    return Activity(type=kind, description=description, timestamp=utcnow(), related_id=related_id).model_dump()


def apply_transition(
    db: Database,
    order: Dict[str, Any],
    new_status: str,
    stage: Optional[str] = None,
    actor: Optional[str] = None,
    reason: Optional[str] = None,
) -> Dict[str, Any]:
    """Move ``order`` to ``new_status`` and update the partner and client to match.

    The writes are independent; a failure part way leaves earlier writes in place.
    """
    previous = order.get("status", "pending")
    changes = plan_transition(order, new_status, stage)
    order_id = str(order["_id"])
    amount = float((order.get("pricing") or {}).get("total_amount") or 0)
    now = utcnow()

    if new_status == "cancelled":
        changes["cancellation.cancelled_by"] = actor
        changes["cancellation.reason"] = reason
        changes["cancellation.cancelled_at"] = now
    if new_status == "refunded":
        changes["payment.status"] = "refunded"
        changes["cancellation.refund_amount"] = amount if previous == "completed" else 0
        changes["cancellation.refund_status"] = "processed"

    changes["updated_at"] = now
    db["order"].update_one({"_id": order["_id"]}, {"$set": changes})
    _move_project(db, order["partner_id"], order_id, new_status)

    partner_update: Dict[str, Any] = {}
    if new_status == "completed":
        transaction = Transaction(order_id=order_id, amount=amount, type="payment_received", status="completed", date=now)
        partner_update = {
            "$inc": {"total_revenue": amount},
            "$push": {
                "transactions": transaction.model_dump(),
                "activities": activity_entry("order_completed", f"Completed {order.get('order_name')}", order_id),
            },
        }
        client = find_by_id(db, "client", order["client_id"], {"_id": 1})
        if client is not None:
            db["client"].update_one(
                {"_id": client["_id"]},
                {"$push": {"activities": activity_entry("order_completed", f"{order.get('order_name')} delivered", order_id)}},
            )
    elif new_status == "refunded" and previous == "completed":
        transaction = Transaction(order_id=order_id, amount=amount, type="refund", status="completed", date=now)
        partner_update = {"$inc": {"total_revenue": -amount}, "$push": {"transactions": transaction.model_dump()}}

    if partner_update:
        partner = find_by_id(db, "partner", order["partner_id"], {"_id": 1})
        if partner is not None:
            db["partner"].update_one({"_id": partner["_id"]}, partner_update)

    logger.info("Order %s moved %s -> %s", order.get("order_id"), previous, new_status)
    return db["order"].find_one({"_id": order["_id"]})


RATING_KEYS = {5: "five", 4: "four", 3: "three", 2: "two", 1: "one"}


def ratings_from_reviews(reviews) -> Dict[str, Any]:
    """Recompute a partner's rating aggregate from its review list."""
    breakdown = dict.fromkeys(RATING_KEYS.values(), 0)
    total = 0
    for review in reviews:
        rating = int(review["rating"])
        breakdown[RATING_KEYS[rating]] += 1
        total += rating
    count = sum(breakdown.values())
    average = round(total / count, 1) if count else 0
    return {"average": average, "total_reviews": count, "breakdown": breakdown}
