import logging
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field, model_validator
from pymongo.database import Database

from database import create_document, find_by_id, get_db, serialize, utcnow
from responses import ok
from schemas import PHONE_PATTERN, Address, Client, LowerEmail, Partner, PartnerType, ShootType
from security import (
    USER_COLLECTIONS,
    FirebaseIdentityProvider,
    authenticate_firebase,
    collection_for,
    create_access_token,
    credentials_error,
    find_by_email,
    find_by_firebase_uid,
    get_identity_provider,
    verify_password,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


class RegisterPayload(BaseModel):
    user_type: Literal["Client", "Partner"]
    username: str = Field(..., min_length=3, max_length=30)
    email: LowerEmail
    firebase_uid: str = Field(..., min_length=1)
    phone_no: str = Field(..., pattern=PHONE_PATTERN)
    address: Optional[Address] = None
    company_name: Optional[str] = Field(None, min_length=2, max_length=100)
    shoot_type: List[ShootType] = []
    partner_type: PartnerType = "individual"

    @model_validator(mode="after")
    def partner_fields(self):
        if self.user_type == "Partner":
            if not self.company_name:
                raise ValueError("company_name is required for partners")
            if not self.shoot_type:
                raise ValueError("shoot_type needs at least one value for partners")
        return self


class LoginPayload(BaseModel):
    email: LowerEmail
    password: str = Field(..., min_length=1)


class LinkAccountPayload(BaseModel):
    email: LowerEmail
    firebase_uid: str = Field(..., min_length=1)
    user_type: Optional[Literal["Client", "Partner", "Admin", "SuperAdmin"]] = None


@router.post("/register", status_code=201)
def register(
    payload: RegisterPayload,
    db: Database = Depends(get_db),
    identity: FirebaseIdentityProvider = Depends(get_identity_provider),
):
    if not identity.user_exists(payload.firebase_uid):
        raise HTTPException(status_code=400, detail="Invalid Firebase user")

    collection = USER_COLLECTIONS[payload.user_type]
    clash = db[collection].find_one(
        {"$or": [{"email": payload.email}, {"username": payload.username}, {"firebase_uid": payload.firebase_uid}]}
    )
    if clash or find_by_firebase_uid(db, payload.firebase_uid):
        raise HTTPException(status_code=409, detail="User already exists")

    fields = payload.model_dump(exclude_none=True, exclude={"user_type"})
    if payload.user_type == "Client":
        for key in ("company_name", "shoot_type", "partner_type"):
            fields.pop(key, None)
        doc = Client(**fields)
    else:
        doc = Partner(**fields)

    inserted_id = create_document(db, collection, doc)
    user = find_by_id(db, collection, inserted_id)
    logger.info("Registered %s %s", payload.user_type, payload.username)
    return ok({"user": serialize(user)}, "User registered successfully")


@router.post("/login")
def login(payload: LoginPayload, db: Database = Depends(get_db)):
    user = find_by_email(db, payload.email, active_only=True)
    if not user or not verify_password(payload.password, user.get("password")):
        raise credentials_error("Invalid credentials")

    now = utcnow()
    update = {"$set": {"last_login": now}}
    if user["user_type"] in ("Admin", "SuperAdmin"):
        update["$push"] = {"login_history": {"timestamp": now}}
    db[collection_for(user)].update_one({"_id": user["_id"]}, update)
    user["last_login"] = now

    token = create_access_token(str(user["_id"]), user["user_type"])
    logger.info("%s %s logged in", user["user_type"], user.get("username"))
    return ok(
        {"access_token": token, "token_type": "bearer", "user": serialize(user)},
        "Login successful",
    )


@router.get("/me")
def me(current_user: dict = Depends(authenticate_firebase)):
    return ok({"user": serialize(current_user)}, "User retrieved successfully")


@router.post("/link-account")
def link_account(
    payload: LinkAccountPayload,
    db: Database = Depends(get_db),
    identity: FirebaseIdentityProvider = Depends(get_identity_provider),
):
    if not identity.user_exists(payload.firebase_uid):
        raise HTTPException(status_code=400, detail="Invalid Firebase user")

    if payload.user_type:
        user = db[USER_COLLECTIONS[payload.user_type]].find_one({"email": payload.email, "is_active": True})
    else:
        user = find_by_email(db, payload.email, active_only=True)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")

    now = utcnow()
    db[collection_for(user)].update_one(
        {"_id": user["_id"]},
        {"$set": {"firebase_uid": payload.firebase_uid, "last_login": now, "updated_at": now}},
    )
    user.update(firebase_uid=payload.firebase_uid, last_login=now)
    logger.info("Linked external identity to %s %s", user["user_type"], user.get("username"))
    return ok({"user": serialize(user)}, "Account linked successfully")
