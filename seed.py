"""Reset the database to a small demo data set.

    python seed.py
"""
import logging
from datetime import datetime
from typing import Dict

from pymongo.database import Database

from booking import BUCKET_FOR_STATUS, compute_pricing, derived_progress
from database import close_client, create_document, get_db, to_obj_id
from schemas import Admin, Book, Client, Contact, Order, Partner, Permission
from security import get_password_hash

logger = logging.getLogger(__name__)

COLLECTIONS = ("client", "partner", "admin", "order", "book")

BOOKS = [
    {
        "title": "The Great Gatsby",
        "author": "F. Scott Fitzgerald",
        "isbn": "978-0-7432-7356-5",
        "published_year": 1925,
        "genre": "Fiction",
        "available_copies": 3,
        "total_copies": 5,
        "description": "A classic American novel set in the Jazz Age",
    },
    {
        "title": "To Kill a Mockingbird",
        "author": "Harper Lee",
        "isbn": "978-0-06-112008-4",
        "published_year": 1960,
        "genre": "Fiction",
        "available_copies": 2,
        "total_copies": 4,
        "description": "A gripping tale of racial injustice and childhood innocence",
    },
    {
        "title": "1984",
        "author": "George Orwell",
        "isbn": "978-0-452-28423-4",
        "published_year": 1949,
        "genre": "Dystopian Fiction",
        "available_copies": 1,
        "total_copies": 3,
        "description": "A dystopian social science fiction novel",
    },
    {
        "title": "Pride and Prejudice",
        "author": "Jane Austen",
        "isbn": "978-0-14-143951-8",
        "published_year": 1813,
        "genre": "Romance",
        "available_copies": 4,
        "total_copies": 6,
        "description": "A romantic novel of manners",
    },
    {
        "title": "The Catcher in the Rye",
        "author": "J.D. Salinger",
        "isbn": "978-0-316-76948-0",
        "published_year": 1951,
        "genre": "Fiction",
        "available_copies": 0,
        "total_copies": 2,
        "description": "A controversial novel about teenage rebellion",
    },
]

CREDENTIALS = [
    ("Client", "john@example.com", "password123"),
    ("Partner", "photographer@example.com", "password123"),
    ("Admin", "admin@pixisphere.com", "admin123"),
]


def seed_database(db: Database) -> Dict[str, int]:
    for name in COLLECTIONS:
        db[name].delete_many({})
    logger.info("Cleared %s", ", ".join(COLLECTIONS))

    user_password = get_password_hash("password123")
    admin_password = get_password_hash("admin123")

    clients = [
        Client(
            username="john_doe",
            email="john@example.com",
            password=user_password,
            phone_no="+1234567890",
            address={"city": "New York", "state": "NY", "country": "USA"},
            current_plan={"plan_type": "premium"},
        ),
        Client(
            username="jane_smith",
            email="jane@example.com",
            password=user_password,
            phone_no="+1234567891",
            address={"city": "Los Angeles", "state": "CA", "country": "USA"},
        ),
    ]
    client_ids = [create_document(db, "client", c) for c in clients]

    partners = [
        Partner(
            username="photo_pro",
            email="photographer@example.com",
            password=user_password,
            company_name="Pro Photography Studio",
            phone_no="+1234567892",
            shoot_type=["wedding", "portrait", "event"],
            partner_type="company",
            price_per_day=15000,
            years_of_experience=5,
            verified=True,
            locations=[{"city": "Mumbai", "state": "Maharashtra", "country": "India"}],
            ratings={"average": 4.5, "total_reviews": 25},
        ),
        Partner(
            username="creative_lens",
            email="creative@example.com",
            password=user_password,
            company_name="Creative Lens Photography",
            phone_no="+1234567893",
            shoot_type=["fashion", "commercial", "product"],
            partner_type="individual",
            price_per_day=20000,
            years_of_experience=8,
            verified=True,
            locations=[{"city": "Delhi", "state": "Delhi", "country": "India"}],
            ratings={"average": 4.8, "total_reviews": 42},
        ),
    ]
    partner_ids = [create_document(db, "partner", p) for p in partners]

    create_document(
        db,
        "admin",
        Admin(
            username="admin",
            email="admin@pixisphere.com",
            password=admin_password,
            phone_no="+1234567894",
            user_type="SuperAdmin",
            permissions=[
                Permission(module="users", actions=["create", "read", "update", "delete"]),
                Permission(module="partners", actions=["create", "read", "update", "delete", "approve"]),
                Permission(module="orders", actions=["create", "read", "update", "delete"]),
            ],
        ),
    )

    bookings = [
        (0, 0, "Wedding Photography Package", "confirmed", 25000, datetime(2024, 6, 15, 10),
         {"event_type": "wedding", "event_name": "John & Sarah's Wedding"},
         {"venue": "Grand Ballroom", "address": {"city": "Mumbai", "state": "Maharashtra", "country": "India"}}),
        (1, 1, "Corporate Event Photography", "completed", 15000, datetime(2024, 7, 20, 14),
         {"event_type": "corporate", "event_name": "Annual Company Meeting"},
         {"venue": "Business Center", "address": {"city": "Delhi", "state": "Delhi", "country": "India"}}),
    ]
    order_count = 0
    for c, p, name, status, price, when, event, location in bookings:
        client, partner = clients[c], partners[p]
        order = Order(
            order_name=name,
            client_id=client_ids[c],
            client_contact=Contact(email=client.email, phone=client.phone_no, name=client.username),
            partner_id=partner_ids[p],
            partner_contact=Contact(
                email=partner.email, phone=partner.phone_no, name=partner.username, company_name=partner.company_name
            ),
            event_date_time=when,
            pricing=compute_pricing({"base_price": price}),
            status=status,
            progress=derived_progress(status),
            event_details=event,
            location=location,
            payment={"status": "completed" if status == "completed" else "pending"},
        )
        order_id = create_document(db, "order", order)
        order_count += 1

        db["client"].update_one({"_id": to_obj_id(client_ids[c])}, {"$push": {"orders": order_id}})
        partner_update = {
            "$addToSet": {
                "projects.all": order_id,
                f"projects.{BUCKET_FOR_STATUS[status]}": order_id,
                "clients": client_ids[c],
            }
        }
        if status == "completed":
            partner_update["$inc"] = {"total_revenue": order.pricing.total_amount}
        db["partner"].update_one({"_id": to_obj_id(partner_ids[p])}, partner_update)

    for book in BOOKS:
        create_document(db, "book", Book(**book))

    summary = {
        "clients": len(client_ids),
        "partners": len(partner_ids),
        "admins": 1,
        "orders": order_count,
        "books": len(BOOKS),
    }
    logger.info("Seeded %s", summary)
    return summary


def main():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    try:
        summary = seed_database(get_db())
    finally:
        close_client()

    print("Database seeding completed")
    for name, count in summary.items():
        print(f"- {name.capitalize()}: {count}")
    print("\nLogin credentials:")
    for role, email, password in CREDENTIALS:
        print(f"{role}: {email} / {password}")


if __name__ == "__main__":
    main()
