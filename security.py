import logging
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any, Callable, Dict, Optional

import firebase_admin
from bson import ObjectId
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from firebase_admin import auth as firebase_auth
from firebase_admin import credentials
from firebase_admin.exceptions import FirebaseError
from jose import JWTError, jwt
from passlib.context import CryptContext
from pymongo.database import Database

import config
from database import get_db

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
bearer_scheme = HTTPBearer(auto_error=False)

USER_COLLECTIONS = {"Client": "client", "Partner": "partner", "Admin": "admin", "SuperAdmin": "admin"}
PROBE_ORDER = ("client", "partner", "admin")
ADMIN_ROLES = ("Admin", "SuperAdmin")


def verify_password(plain_password, hashed_password):
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password):
    return pwd_context.hash(password)


def create_access_token(user_id: str, user_type: str, expires_delta: Optional[timedelta] = None) -> str:
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode = {"sub": user_id, "userType": user_type, "exp": expire}
    return jwt.encode(to_encode, config.SECRET_KEY, algorithm=config.ALGORITHM)


def credentials_error(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


# External identity (Firebase) -------------------------------------------------

class IdentityError(Exception):
    """The identity provider rejected a token or could not be reached."""


class FirebaseIdentityProvider:
    def __init__(self, app: Optional[firebase_admin.App] = None):
        self._app = app

    @property
    def app(self) -> firebase_admin.App:
        if self._app is None:
            try:
                self._app = firebase_admin.get_app()
            except ValueError:
                cert = credentials.Certificate(config.firebase_service_account())
                self._app = firebase_admin.initialize_app(cert)
        return self._app

    def verify_token(self, token: str) -> Dict[str, Any]:
        try:
            return firebase_auth.verify_id_token(token, app=self.app)
        except (ValueError, FirebaseError) as e:
            raise IdentityError(str(e)) from e

    def user_exists(self, uid: str) -> bool:
        try:
            firebase_auth.get_user(uid, app=self.app)
        except (ValueError, FirebaseError) as e:
            logger.warning("Firebase user lookup failed for %s: %s", uid, e)
            return False
        return True


@lru_cache(maxsize=1)
def get_identity_provider() -> FirebaseIdentityProvider:
    return FirebaseIdentityProvider()


# User lookup -----------------------------------------------------------------

def find_by_firebase_uid(db: Database, uid: str) -> Optional[dict]:
    for name in PROBE_ORDER:
        user = db[name].find_one({"firebase_uid": uid})
        if user:
            return user
    return None


def find_by_email(db: Database, email: str, active_only: bool = False) -> Optional[dict]:
    query: Dict[str, Any] = {"email": email.lower()}
    if active_only:
        query["is_active"] = True
    for name in PROBE_ORDER:
        user = db[name].find_one(query)
        if user:
            return user
    return None


def collection_for(user: dict) -> str:
    return USER_COLLECTIONS[user["user_type"]]


# Dependencies ----------------------------------------------------------------

def authenticate(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Database = Depends(get_db),
) -> dict:
    """Resolve a self-issued JWT to the user it names."""
    if creds is None:
        raise credentials_error("Access denied. No token provided.")
    try:
        payload = jwt.decode(creds.credentials, config.SECRET_KEY, algorithms=[config.ALGORITHM])
    except JWTError:
        raise credentials_error("Invalid token")

    collection = USER_COLLECTIONS.get(payload.get("userType"))
    if collection is None:
        raise credentials_error("Invalid user type")
    user_id = payload.get("sub")
    if not user_id or not ObjectId.is_valid(user_id):
        raise credentials_error("Invalid token")

    user = db[collection].find_one({"_id": ObjectId(user_id)})
    if not user or not user.get("is_active", True):
        raise credentials_error("User not found or inactive")
    return user


def authenticate_firebase(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Database = Depends(get_db),
    identity: FirebaseIdentityProvider = Depends(get_identity_provider),
) -> dict:
    """Resolve an externally issued ID token to the linked local user."""
    if creds is None:
        raise credentials_error("Access denied. No token provided.")
    try:
        decoded = identity.verify_token(creds.credentials)
    except IdentityError as e:
        logger.warning("Rejected identity token: %s", e)
        raise credentials_error("Invalid token")

    user = find_by_firebase_uid(db, decoded["uid"])
    if user is None:
        raise credentials_error("User not found in database")
    if not user.get("is_active", True):
        raise credentials_error("User account is inactive")
    return user


def authorize(*roles: str, via: Callable[..., dict] = authenticate) -> Callable[..., dict]:
    def dependency(user: dict = Depends(via)) -> dict:
        if user.get("user_type") not in roles:
            raise HTTPException(status_code=403, detail="Access denied. Insufficient permissions.")
        return user

    return dependency


def is_admin(user: dict) -> bool:
    return user.get("user_type") in ADMIN_ROLES


def require_owner_or_admin(user: dict, owner_id: str) -> None:
    if not is_admin(user) and str(user["_id"]) != owner_id:
        raise HTTPException(status_code=403, detail="Access denied. Insufficient permissions.")
