"""Signup, login, company membership and root company administration."""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from clockistry.core.authorization import Action, Principal, Resource, ResourceKind, Role, authorize
from clockistry.core.errors import Conflict, Forbidden, Invalid, NotFound, Unauthenticated
from clockistry.core.scope import scope_for
from clockistry.core.timeutil import utcnow
from clockistry.models.company import Company, PricingLevel
from clockistry.models.user import User
from clockistry.schemas.account import CompanyCreate, CompanyUpdate, SignupRequest, UserCreate, UserUpdate
from clockistry.services.auth_service import check_password, hash_password
from clockistry.services.entry_repository import count_members, get_user

logger = logging.getLogger(__name__)

DUPLICATE_EMAIL_MESSAGE = "An account with this email already exists"
BAD_CREDENTIALS_MESSAGE = "Invalid email or password"


def _email_taken(db: Session, email: str) -> bool:
    return db.query(User.id).filter(User.email == email).first() is not None


def _flush_new_user(db: Session, user: User) -> None:
    db.add(user)
    try:
        db.flush()
    except IntegrityError as exc:
        db.rollback()
        if _email_taken(db, user.email):
            raise Conflict(DUPLICATE_EMAIL_MESSAGE, Conflict.DUPLICATE) from exc
        raise


def signup(db: Session, payload: SignupRequest) -> Tuple[User, Optional[Company]]:
    if payload.password != payload.confirm_password:
        raise Invalid("Passwords do not match")
    if _email_taken(db, payload.email):
        raise Conflict(DUPLICATE_EMAIL_MESSAGE, Conflict.DUPLICATE)

    now = utcnow()
    company = None
    company_name = (payload.company_name or "").strip()
    if payload.role == Role.SUPER_ADMIN.value:
        if not company_name:
            raise Invalid("companyName is required for super_admin signup")
        company = Company(
            name=company_name,
            is_active=True,
            pricing_level=PricingLevel.SOLO.value,
            max_members=1,
            created_at=now,
            updated_at=now,
        )
        db.add(company)
        db.flush()

    # Employees without a company are orphaned until an admin adds them.
    user = User(
        company_id=company.id if company is not None else None,
        name=payload.name.strip(),
        email=payload.email,
        password_hash=hash_password(payload.password),
        role=payload.role,
        is_active=True,
        created_at=now,
        updated_at=now,
    )
    _flush_new_user(db, user)

    logger.info(
        "Account created",
        extra={
            "user_id": user.id,
            "company_id": user.company_id,
            "role": user.role,
        },
    )
    return user, company


def login(db: Session, email: str, password: str) -> User:
    user = db.query(User).filter(User.email == email).first()
    # Same answer for unknown email, inactive account, inactive company and wrong password.
    if (
        user is None
        or not user.is_active
        or not check_password(password, user.password_hash)
        or not _company_active(db, user.company_id)
    ):
        logger.warning("Login rejected", extra={"email": email})
        raise Unauthenticated(BAD_CREDENTIALS_MESSAGE)
    return user


def _company_active(db: Session, company_id: Optional[int]) -> bool:
    if company_id is None:
        return True
    company = db.get(Company, int(company_id))
    return company is not None and bool(company.is_active)


def company_of(db: Session, user: User) -> Optional[Company]:
    if user.company_id is None:
        return None
    return db.get(Company, int(user.company_id))


def _check_seat(db: Session, company: Company) -> None:
    if count_members(db, company.id) >= int(company.max_members):
        raise Conflict(
            f"Company has reached its member limit ({company.max_members})",
            Conflict.PLAN_LIMIT,
        )


def create_user(db: Session, principal: Principal, payload: UserCreate) -> User:
    if principal.is_root:
        if payload.company_id is None:
            raise Invalid("companyId is required when creating users as root")
        company_id = int(payload.company_id)
    else:
        if payload.company_id is not None and payload.company_id != principal.company_id:
            raise Invalid("companyId cannot target another company")
        company_id = principal.company_id

    authorize(principal, Action.CREATE, Resource(kind=ResourceKind.USER, company_id=company_id))

    if company_id is None:
        raise Invalid("Users can only be added to a company")
    company = db.get(Company, company_id)
    if company is None:
        raise NotFound("Company not found")
    if not company.is_active:
        raise Invalid("Company is deactivated")

    _check_seat(db, company)
    if _email_taken(db, payload.email):
        raise Conflict(DUPLICATE_EMAIL_MESSAGE, Conflict.DUPLICATE)

    now = utcnow()
    user = User(
        company_id=company_id,
        name=payload.name.strip(),
        email=payload.email,
        password_hash=hash_password(payload.password),
        role=payload.role,
        is_active=True,
        created_at=now,
        updated_at=now,
    )
    _flush_new_user(db, user)

    logger.info(
        "User added to company",
        extra={"user_id": user.id, "company_id": company_id, "actor_id": principal.id},
    )
    return user


PROFILE_FIELDS = frozenset({"name", "timezone"})
NON_NULL_USER_FIELDS = ("name", "role", "is_active")


def update_user(db: Session, principal: Principal, user_id: int, payload: UserUpdate) -> User:
    """
    Profile fields (name, timezone) are editable by the user themselves.
    Role and active flag need a manager of the same company; moving a user
    to another company is root-only. Entries already logged keep the
    company they were created under.
    """
    user = get_user(db, scope_for(principal), user_id)
    if user is None:
        raise NotFound("User not found")

    changes = payload.changes()
    if not changes:
        return user
    for field in NON_NULL_USER_FIELDS:
        if field in changes and changes[field] is None:
            raise Invalid(f"{field} cannot be null")

    is_self = int(user.id) == principal.id
    if not (is_self and set(changes) <= PROFILE_FIELDS):
        authorize(principal, Action.UPDATE, Resource.user(user))

    if "company_id" in changes and not principal.is_root:
        raise Forbidden("Only root may move users between companies")
    if is_self and (changes.get("is_active") is False or changes.get("role", user.role) != user.role):
        raise Invalid("You cannot change your own role or deactivate yourself")
    if changes.get("role") == Role.SUPER_ADMIN.value and principal.role not in (Role.SUPER_ADMIN, Role.ROOT):
        raise Forbidden("Only a super admin may grant super_admin")

    target_company_id = changes.get("company_id", user.company_id)
    moving = target_company_id != user.company_id
    will_be_active = changes.get("is_active", user.is_active)
    if target_company_id is not None and will_be_active and (moving or not user.is_active):
        company = db.get(Company, int(target_company_id))
        if company is None:
            raise NotFound("Company not found")
        if not company.is_active:
            raise Invalid("Company is deactivated")
        _check_seat(db, company)

    previous_company_id = user.company_id
    if "name" in changes:
        user.name = changes["name"].strip()
    for field in ("timezone", "role", "is_active", "company_id"):
        if field in changes:
            setattr(user, field, changes[field])

    user.updated_at = utcnow()
    db.flush()

    logger.info(
        "User updated",
        extra={
            "user_id": user.id,
            "fields": sorted(changes),
            "company_id": user.company_id,
            "previous_company_id": previous_company_id,
            "actor_id": principal.id,
        },
    )
    return user


# ---------- companies ----------


def load_company(db: Session, principal: Principal, company_id: int) -> Company:
    # Another tenant's company is reported like a missing one.
    if not principal.is_root and principal.company_id != int(company_id):
        raise NotFound("Company not found")
    company = db.get(Company, int(company_id))
    if company is None:
        raise NotFound("Company not found")
    return company


def list_companies(db: Session, principal: Principal) -> List[Company]:
    q = db.query(Company)
    if not principal.is_root:
        if principal.company_id is None:
            return []
        q = q.filter(Company.id == int(principal.company_id))
    return q.order_by(Company.id.asc()).all()


def create_company(db: Session, principal: Principal, payload: CompanyCreate) -> Company:
    authorize(principal, Action.CREATE, Resource.company(principal.company_id))

    now = utcnow()
    company = Company(
        name=payload.name.strip(),
        is_active=True,
        pricing_level=payload.pricing_level.value,
        max_members=payload.max_members,
        created_at=now,
        updated_at=now,
    )
    db.add(company)
    db.flush()

    logger.info(
        "Company created",
        extra={"company_id": company.id, "pricing_level": company.pricing_level, "actor_id": principal.id},
    )
    return company


def update_company(db: Session, principal: Principal, company_id: int, payload: CompanyUpdate) -> Company:
    company = load_company(db, principal, company_id)
    authorize(principal, Action.UPDATE, Resource.company(company.id))

    changes = payload.model_dump(exclude_unset=True)
    for field, value in changes.items():
        if value is None:
            raise Invalid(f"{field} cannot be null")

    if "name" in changes:
        company.name = changes["name"].strip()
    if "pricing_level" in changes:
        company.pricing_level = changes["pricing_level"].value
    for field in ("max_members", "is_active"):
        if field in changes:
            setattr(company, field, changes[field])

    company.updated_at = utcnow()
    db.flush()

    logger.info(
        "Company updated",
        extra={"company_id": company.id, "fields": sorted(changes), "actor_id": principal.id},
    )
    return company
