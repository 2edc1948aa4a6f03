import pytest

from booking import (
    TransitionError,
    compute_pricing,
    derived_progress,
    plan_transition,
    ratings_from_reviews,
)
from database import pagination_info, utcnow
from schemas import Review


def test_pricing_applies_discount_before_tax():
    pricing = compute_pricing(
        {
            "base_price": 10000,
            "additional_charges": [{"description": "drone", "amount": 2000}],
            "discount": {"amount": 1000, "code": "SPRING"},
            "taxes": {"percentage": 18},
        }
    )
    assert pricing["taxes"]["amount"] == 1980
    assert pricing["total_amount"] == 12980
    assert pricing["discount"]["code"] == "SPRING"


def test_pricing_explicit_tax_amount_wins():
    pricing = compute_pricing({"base_price": 500, "taxes": {"amount": 50, "percentage": 18}})
    assert pricing["total_amount"] == 550


def test_pricing_never_goes_negative():
    assert compute_pricing({"base_price": 100, "discount": {"amount": 500}})["total_amount"] == 0


def test_progress_is_derived_from_status():
    assert derived_progress("pending") == {"current_stage": None, "percentage": 0}
    assert derived_progress("confirmed")["percentage"] == 10
    assert derived_progress("in_progress") == {"current_stage": "preparation", "percentage": 25}
    assert derived_progress("in_progress", "post_processing")["percentage"] == 75
    assert derived_progress("completed")["percentage"] == 100
    assert derived_progress("cancelled") is None


@pytest.mark.parametrize(
    "current,new",
    [("pending", "completed"), ("pending", "in_progress"), ("completed", "pending"), ("refunded", "cancelled")],
)
def test_illegal_transitions(current, new):
    with pytest.raises(TransitionError):
        plan_transition({"status": current}, new)


def test_stage_only_moves_forward():
    order = {"status": "in_progress", "progress": {"current_stage": "shoot_day"}}
    assert plan_transition(order, "in_progress", "delivery")["progress.percentage"] == 90
    with pytest.raises(TransitionError):
        plan_transition(order, "in_progress", "preparation")
    with pytest.raises(TransitionError):
        plan_transition(order, "in_progress")


def test_stage_rejected_outside_in_progress():
    with pytest.raises(TransitionError):
        plan_transition({"status": "pending"}, "confirmed", "shoot_day")


def test_cancel_keeps_progress():
    changes = plan_transition({"status": "in_progress"}, "cancelled")
    assert changes == {"status": "cancelled"}


def test_ratings_recomputed_from_reviews():
    ratings = ratings_from_reviews([{"rating": 5}, {"rating": 4}, {"rating": 4}])
    assert ratings["average"] == 4.3
    assert ratings["total_reviews"] == 3
    assert ratings["breakdown"] == {"five": 1, "four": 2, "three": 0, "two": 0, "one": 0}
    assert ratings_from_reviews([])["average"] == 0


def test_pagination_info():
    info = pagination_info(2, 10, 25)
    assert info == {
        "currentPage": 2,
        "totalPages": 3,
        "totalCount": 25,
        "hasNextPage": True,
        "hasPrevPage": True,
        "limit": 10,
    }
    assert pagination_info(1, 10, 0)["hasNextPage"] is False


def test_schema_timestamps_are_naive_utc():
    review = Review(client_id="c1", rating=5)
    assert review.created_at.tzinfo is None
    assert abs((utcnow() - review.created_at).total_seconds()) < 5
