import logging
import random
import re
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.constants import ACTIVITY_STORE, USER_ROLES
from app.core.exceptions import AuthenticationError, ConflictError, NotFoundError, ValidationError
from app.core.security import hash_password, verify_password
from app.database.session import unit_of_work
from app.models.stores import Store, User
from app.services.activity_service import log_activity

logger = logging.getLogger(__name__)


def generate_store_code(store_name: str, suffix: Optional[int] = None) -> str:
    base_code = re.sub(r"\s+", "", store_name.lower())
    base_code = re.sub(r"[^\w]", "", base_code)
    if suffix is None:
        suffix = random.randint(1000, 9999)
    return f"{base_code}-{suffix}"


def store_exists(db: Session, store_id: int) -> bool:
    return db.get(Store, store_id) is not None


def user_exists(db: Session, user_id: int, store_id: Optional[int] = None) -> bool:
    user = db.get(User, user_id)
    if user is None:
        return False
    return store_id is None or user.store_id == store_id


def get_store(db: Session, store_id: int) -> Store:
    store = db.get(Store, store_id)
    if store is None:
        raise NotFoundError("Store", store_id)
    return store


def require_user(db: Session, user_id: int, store_id: int) -> User:
    user = db.get(User, user_id)
    if user is None or user.store_id != store_id:
        raise NotFoundError("User", user_id)
    return user


def _email_taken(db: Session, email: str) -> bool:
    return db.execute(select(User.id).where(User.email == email)).first() is not None


def register_store(
    db: Session,
    *,
    name: str,
    owner_email: str,
    owner_name: str,
    password: str,
    address: Optional[str] = None,
    phone: Optional[str] = None,
    code: Optional[str] = None,
) -> tuple[Store, User]:
    """Create a store together with its OWNER account."""
    if _email_taken(db, owner_email):
        raise ConflictError(f"Email {owner_email} is already registered")

    store_code = code or generate_store_code(name)
    existing = db.execute(select(Store.id).where(Store.code == store_code)).first()
    if existing:
        raise ConflictError(f"Store code {store_code} already exists")

    try:
        with unit_of_work(db):
            store = Store(
                name=name,
                code=store_code,
                address=address,
                phone=phone,
                admin_email=owner_email,
            )
            db.add(store)
            db.flush()

            owner = User(
                store_id=store.id,
                email=owner_email,
                name=owner_name,
                password_hash=hash_password(password),
                role="OWNER",
            )
            db.add(owner)
            db.flush()

            log_activity(
                db,
                store_id=store.id,
                user_id=owner.id,
                category=ACTIVITY_STORE,
                action="REGISTER",
                metadata={"code": store_code},
            )
    except IntegrityError as exc:
        raise ConflictError(
            f"Email {owner_email} or store code {store_code} is already registered"
        ) from exc

    logger.info("Registered store %s (%s).", store.id, store_code)
    return store, owner


def add_staff_member(
    db: Session,
    *,
    store_id: int,
    email: str,
    name: str,
    password: str,
    role: str = "NAIL_TECHNICIAN",
    created_by: Optional[int] = None,
) -> User:
    if role not in USER_ROLES:
        raise ValidationError(f"Unknown role {role}")
    get_store(db, store_id)
    if _email_taken(db, email):
        raise ConflictError(f"Email {email} is already registered")

    try:
        with unit_of_work(db):
            user = User(
                store_id=store_id,
                email=email,
                name=name,
                password_hash=hash_password(password),
                role=role,
            )
            db.add(user)
            db.flush()
            log_activity(
                db,
                store_id=store_id,
                user_id=created_by,
                category=ACTIVITY_STORE,
                action="ADD_STAFF",
                metadata={"staff_id": user.id, "role": role},
            )
    except IntegrityError as exc:
        raise ConflictError(f"Email {email} is already registered") from exc

    logger.info("Added %s %s to store %s.", role, user.id, store_id)
    return user


def authenticate_user(db: Session, email: str, password: str) -> User:
    user = db.execute(select(User).where(User.email == email)).scalars().first()
    if user is None or not verify_password(password, user.password_hash):
        logger.warning("Rejected sign-in for %s.", email)
        raise AuthenticationError("Email or password is incorrect")
    return user
