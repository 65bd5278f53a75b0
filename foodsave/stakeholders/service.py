"""Stakeholder service: registration, password checks and identity resolution."""

import logging

import bcrypt
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..config import settings
from ..errors import ValidationError, storage_guard
from ..integrations.cache import CacheService
from .models import NO_CAPACITY, Stakeholder, StakeholderRole
from .schemas import StakeholderIdentity

logger = logging.getLogger(__name__)


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()


def verify_password(plain: str, hashed: str) -> bool:
    return bcrypt.checkpw(plain.encode(), hashed.encode())


def role_for_account_type(account_type: str) -> StakeholderRole:
    """Map a free-text account type ("Household", "Food business", ...) to a role."""
    lowered = account_type.lower()
    if "household" in lowered:
        return StakeholderRole.HOUSEHOLD
    if "business" in lowered:
        return StakeholderRole.BUSINESS
    if "charity" in lowered:
        return StakeholderRole.CHARITY
    raise ValidationError("Invalid account type")


def next_stakeholder_id(db: Session, role: StakeholderRole) -> str:
    """Return the next free id for a role: ``h0``, ``h1``, ... per prefix."""
    ids = db.scalars(select(Stakeholder.id).where(Stakeholder.id.like(f"{role.value}%"))).all()
    numbers = [int(sid[1:]) for sid in ids if sid[1:].isdigit()]
    return f"{role.value}{max(numbers) + 1 if numbers else 0}"


def normalize_email(email: str) -> str:
    return email.strip().lower()


def get_stakeholder_by_email(db: Session, email: str) -> Stakeholder | None:
    """Case-insensitive lookup; rows written before emails were normalised still match."""
    return db.query(Stakeholder).filter(func.lower(Stakeholder.email) == normalize_email(email)).first()


def get_stakeholder(db: Session, stakeholder_id: str) -> Stakeholder | None:
    return db.get(Stakeholder, stakeholder_id)


def register_stakeholder(
    db: Session,
    *,
    account_type: str,
    name: str,
    email: str,
    password: str,
    region: str = "",
    capacity: int | None = None,
) -> Stakeholder:
    role = role_for_account_type(account_type)
    email = normalize_email(email)
    if role is StakeholderRole.CHARITY:
        if capacity is None:
            raise ValidationError("Capacity required for charity users")
    else:
        capacity = NO_CAPACITY

    with storage_guard("registering stakeholder", db):
        if get_stakeholder_by_email(db, email):
            raise ValidationError("Email already registered")

        stakeholder = Stakeholder(
            id=next_stakeholder_id(db, role),
            name=name,
            email=email,
            password_hash=hash_password(password),
            region=region,
            capacity=capacity,
        )
        db.add(stakeholder)
        try:
            db.commit()
        except IntegrityError:
            # Lost a race on the email or the generated id
            db.rollback()
            raise ValidationError("Email already registered") from None

    logger.info("Registered stakeholder %s (%s)", stakeholder.id, role.name.lower())
    return stakeholder


def authenticate(db: Session, email: str, password: str) -> Stakeholder | None:
    """Verify credentials and return the stakeholder, or None if invalid."""
    with storage_guard("authenticating stakeholder"):
        stakeholder = get_stakeholder_by_email(db, email)
    if not stakeholder or not verify_password(password, stakeholder.password_hash):
        return None
    return stakeholder


def _identity_key(email: str) -> str:
    return f"identity:{normalize_email(email)}"


def resolve_identity(db: Session, email: str, cache: CacheService | None = None) -> StakeholderIdentity | None:
    """Resolve an email to the stakeholder it belongs to, or None."""
    if not email:
        return None
    if cache is not None:
        cached = cache.get_json(_identity_key(email))
        if cached:
            return StakeholderIdentity.model_validate(cached)

    with storage_guard("resolving identity"):
        stakeholder = get_stakeholder_by_email(db, email)
    if stakeholder is None:
        return None

    identity = StakeholderIdentity.model_validate(stakeholder)
    if cache is not None:
        cache.set_json(_identity_key(email), identity.model_dump(), settings.identity_cache_ttl)
    return identity


def name_map(db: Session, stakeholder_ids: set[str]) -> dict[str, str]:
    if not stakeholder_ids:
        return {}
    rows = db.execute(select(Stakeholder.id, Stakeholder.name).where(Stakeholder.id.in_(stakeholder_ids)))
    return {sid: name for sid, name in rows}
