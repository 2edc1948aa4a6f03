"""
Database schemas for Pixisphere.

Each top-level model is one MongoDB collection, named after the lowercased
class name (Client -> "client"). Embedded models are stored inline.
"""
import random
import string
import time
from datetime import datetime
from typing import Annotated, Any, Dict, List, Literal, Optional

from pydantic import AfterValidator, BaseModel, EmailStr, Field

from database import utcnow

PHONE_PATTERN = r"^\+?[\d\s\-()]+$"

PlanType = Literal["free", "basic", "premium", "enterprise"]
PartnerType = Literal["individual", "company", "agency"]
ShootType = Literal[
    "wedding", "portrait", "event", "commercial", "fashion", "product", "real_estate", "food",
    "travel", "sports", "maternity", "newborn", "family", "corporate", "architecture",
]
OrderStatus = Literal["pending", "confirmed", "in_progress", "completed", "cancelled", "refunded"]
OrderStage = Literal["booking_confirmed", "preparation", "shoot_day", "post_processing", "delivery", "completed"]
PaymentStatus = Literal["pending", "partial", "completed", "refunded"]
AdminType = Literal["Admin", "SuperAdmin"]
Weekday = Literal["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]

LowerEmail = Annotated[EmailStr, AfterValidator(str.lower)]


def public_id(prefix: str) -> str:
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"{prefix}_{int(time.time() * 1000)}_{suffix}"


# Shared ----------------------------------------------------------------------

class Coordinates(BaseModel):
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class Address(BaseModel):
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    zip_code: Optional[str] = None
    coordinates: Optional[Coordinates] = None


class Image(BaseModel):
    url: Optional[str] = None
    public_id: Optional[str] = None
    optimized: Optional[bool] = None


class Plan(BaseModel):
    plan_type: PlanType = "free"
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    features: List[str] = []
    is_active: bool = True


class Activity(BaseModel):
    type: str
    description: Optional[str] = None
    timestamp: datetime = Field(default_factory=utcnow)
    related_id: Optional[str] = None


class Inquiry(BaseModel):
    subject: Optional[str] = None
    message: Optional[str] = None
    status: str = "open"
    created_at: datetime = Field(default_factory=utcnow)
    response: Optional[str] = None


# Client ----------------------------------------------------------------------

class FavouritePartner(BaseModel):
    partner_id: str
    added_at: datetime = Field(default_factory=utcnow)


class Client(BaseModel):
    firebase_uid: Optional[str] = None
    username: str = Field(..., min_length=3, max_length=30)
    email: LowerEmail
    password: Optional[str] = None
    phone_no: str = Field(..., pattern=PHONE_PATTERN)
    profile_pic: Optional[Image] = None
    address: Address = Field(default_factory=Address)
    client_id: str = Field(default_factory=lambda: public_id("CLI"))
    user_type: Literal["Client"] = "Client"
    favourite_partners: List[FavouritePartner] = []
    orders: List[str] = []
    activities: List[Activity] = []
    current_plan: Plan = Field(default_factory=Plan)
    inquiries: List[Inquiry] = []
    is_active: bool = True
    is_verified: bool = False
    last_login: Optional[datetime] = None


# Partner ---------------------------------------------------------------------

class TimeSlot(BaseModel):
    start_time: str
    end_time: str
    booked: bool = False


class DaySchedule(BaseModel):
    day: Weekday
    available: bool = True
    time_slots: List[TimeSlot] = []


class BlackoutDate(BaseModel):
    date: datetime
    reason: Optional[str] = None


class Availability(BaseModel):
    schedule: List[DaySchedule] = []
    blackout_dates: List[BlackoutDate] = []
    timezone: Optional[str] = None


class Package(BaseModel):
    name: str
    description: Optional[str] = None
    price: float = Field(..., ge=0)
    duration: Optional[str] = None
    inclusions: List[str] = []
    shoot_types: List[str] = []
    is_active: bool = True


class ServiceLocation(BaseModel):
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    service_radius: Optional[float] = None
    travel_charges: Optional[float] = None


class RatingBreakdown(BaseModel):
    five: int = 0
    four: int = 0
    three: int = 0
    two: int = 0
    one: int = 0


class Ratings(BaseModel):
    average: float = Field(0, ge=0, le=5)
    total_reviews: int = 0
    breakdown: RatingBreakdown = Field(default_factory=RatingBreakdown)


class Review(BaseModel):
    client_id: str
    order_id: Optional[str] = None
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    response: Optional[str] = None
    helpful: int = 0


class Projects(BaseModel):
    all: List[str] = []
    active: List[str] = []
    completed: List[str] = []
    pending: List[str] = []


class Transaction(BaseModel):
    order_id: Optional[str] = None
    amount: float
    type: Literal["payment_received", "refund", "commission_deducted"]
    status: Literal["pending", "completed", "failed"] = "pending"
    date: datetime = Field(default_factory=utcnow)
    payment_method: Optional[str] = None


class Partner(BaseModel):
    firebase_uid: Optional[str] = None
    username: str = Field(..., min_length=3, max_length=30)
    company_name: str = Field(..., min_length=2, max_length=100)
    shoot_type: List[ShootType] = []
    email: LowerEmail
    password: Optional[str] = None
    phone_no: str = Field(..., pattern=PHONE_PATTERN)
    address: Address = Field(default_factory=Address)
    documents: List[Dict[str, Any]] = []
    profile_pic: Optional[Image] = None
    banner: Optional[Image] = None
    portfolio: List[Dict[str, Any]] = []
    years_of_experience: Optional[int] = Field(None, ge=0, le=50)
    user_type: Literal["Partner"] = "Partner"
    partner_id: str = Field(default_factory=lambda: public_id("PAR"))
    current_plan: Plan = Field(default_factory=Plan)
    availability: Availability = Field(default_factory=Availability)
    packages: List[Package] = []
    price_per_day: Optional[float] = Field(None, ge=0)
    payment_methods: List[Dict[str, Any]] = []
    locations: List[ServiceLocation] = []
    partner_type: PartnerType = "individual"
    specialization: List[str] = []
    ratings: Ratings = Field(default_factory=Ratings)
    verified: bool = False
    social_media: Dict[str, str] = {}
    reviews: List[Review] = []
    activities: List[Activity] = []
    projects: Projects = Field(default_factory=Projects)
    clients: List[str] = []
    transactions: List[Transaction] = []
    total_revenue: float = 0
    inquiries: List[Inquiry] = []
    is_active: bool = True
    last_login: Optional[datetime] = None


# Order -----------------------------------------------------------------------

class Contact(BaseModel):
    email: Optional[str] = None
    phone: Optional[str] = None
    name: Optional[str] = None
    company_name: Optional[str] = None


class EventDetails(BaseModel):
    event_type: Optional[str] = None
    event_name: Optional[str] = None
    description: Optional[str] = None
    guest_count: Optional[int] = Field(None, ge=0)
    special_requirements: List[str] = []


class OrderLocation(BaseModel):
    venue: Optional[str] = None
    address: Address = Field(default_factory=Address)
    coordinates: Optional[Coordinates] = None
    access_instructions: Optional[str] = None


class Charge(BaseModel):
    description: Optional[str] = None
    amount: float = Field(..., ge=0)


class Discount(BaseModel):
    amount: float = Field(0, ge=0)
    reason: Optional[str] = None
    code: Optional[str] = None


class Taxes(BaseModel):
    amount: Optional[float] = Field(None, ge=0)
    percentage: float = Field(0, ge=0, le=100)


class Pricing(BaseModel):
    base_price: float = Field(..., ge=0)
    additional_charges: List[Charge] = []
    discount: Discount = Field(default_factory=Discount)
    taxes: Taxes = Field(default_factory=Taxes)
    total_amount: float = Field(..., ge=0)


class Milestone(BaseModel):
    name: str
    description: Optional[str] = None
    completed: bool = False
    completed_at: Optional[datetime] = None
    due_date: Optional[datetime] = None


class Progress(BaseModel):
    percentage: int = Field(0, ge=0, le=100)
    milestones: List[Milestone] = []
    current_stage: Optional[OrderStage] = None


class Payment(BaseModel):
    method: Optional[str] = None
    status: PaymentStatus = "pending"
    transactions: List[Dict[str, Any]] = []
    advance_amount: Optional[float] = None
    remaining_amount: Optional[float] = None
    due_date: Optional[datetime] = None


class Cancellation(BaseModel):
    cancelled_by: Optional[Literal["Client", "Partner", "Admin"]] = None
    reason: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    refund_amount: Optional[float] = None
    refund_status: Optional[str] = None


class Order(BaseModel):
    order_name: str = Field(..., min_length=3, max_length=100)
    order_id: str = Field(default_factory=lambda: public_id("ORD"))
    client_id: str
    client_contact: Contact = Field(default_factory=Contact)
    partner_id: str
    partner_contact: Contact = Field(default_factory=Contact)
    event_details: EventDetails = Field(default_factory=EventDetails)
    event_date_time: datetime
    booking_date_time: datetime = Field(default_factory=utcnow)
    location: OrderLocation = Field(default_factory=OrderLocation)
    pricing: Pricing
    price_per_day: Optional[float] = None
    package_selected: Optional[Dict[str, Any]] = None
    progress: Progress = Field(default_factory=Progress)
    special_instructions: Optional[str] = Field(None, max_length=1000)
    data_providing_method: Literal["cloud_storage", "physical_media", "email", "ftp", "direct_download"] = "cloud_storage"
    status: OrderStatus = "pending"
    offerings: List[Dict[str, Any]] = []
    duration: Dict[str, Any] = {}
    payment: Payment = Field(default_factory=Payment)
    messages: List[Dict[str, Any]] = []
    deliverables: List[Dict[str, Any]] = []
    review: Dict[str, Any] = {}
    cancellation: Cancellation = Field(default_factory=Cancellation)


# Admin -----------------------------------------------------------------------

class Permission(BaseModel):
    module: Literal["users", "partners", "orders", "reviews", "content", "system", "analytics"]
    actions: List[Literal["create", "read", "update", "delete", "approve", "reject"]] = []


class Faq(BaseModel):
    question: str
    answer: str
    category: Optional[str] = None
    is_active: bool = True
    order: Optional[int] = None
    created_at: datetime = Field(default_factory=utcnow)


class Admin(BaseModel):
    firebase_uid: Optional[str] = None
    username: str = Field(..., min_length=3, max_length=30)
    password: str
    email: LowerEmail
    phone_no: str = Field(..., pattern=PHONE_PATTERN)
    user_type: AdminType = "Admin"
    admin_id: str = Field(default_factory=lambda: public_id("ADM"))
    permissions: List[Permission] = []
    reviews: List[Dict[str, Any]] = []
    faqs: List[Faq] = []
    feedbacks: List[Dict[str, Any]] = []
    requests: List[Dict[str, Any]] = []
    blogs: List[Dict[str, Any]] = []
    is_active: bool = True
    last_login: Optional[datetime] = None
    login_history: List[Dict[str, Any]] = []


# Catalogue -------------------------------------------------------------------

class Book(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    author: str
    isbn: Optional[str] = None
    published_year: Optional[int] = None
    genre: Optional[str] = None
    available_copies: int = Field(0, ge=0)
    total_copies: int = Field(0, ge=0)
    description: Optional[str] = None
