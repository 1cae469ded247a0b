"""Authentication of bearer credentials and per-resource authorization.

``authenticate`` turns a token into a :class:`Principal` loaded from the
user row. ``authorize`` decides whether that principal may perform an
action on a resource, applying these rules in order:

1. ``root`` may do anything.
2. Company-scoped resources require the principal's company to equal the
   resource's company. Admin authority never crosses tenants.
3. Mutating a time entry (update, stop, delete) requires owning it or an
   elevated role (``admin``, ``super_admin``, ``hr``) in the same company.
4. Deleting someone else's entry additionally requires having created it or
   holding ``admin``/``super_admin``. ``hr`` may look but not delete.

Companies are created and changed by ``root`` only. Tasks are open to every
member of their company, but only the creator or a manager deletes one.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from sqlalchemy.orm import Session

from clockistry.core.errors import Forbidden, Unauthenticated
from clockistry.models.company import Company
from clockistry.models.user import User
from clockistry.services.auth_service import verify_token


class Role(str, Enum):
    ROOT = "root"
    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    HR = "hr"
    EMPLOYEE = "employee"


ROLE_RANK = {
    Role.EMPLOYEE: 1,
    Role.HR: 2,
    Role.ADMIN: 3,
    Role.SUPER_ADMIN: 3,
    Role.ROOT: 4,
}

ENTRY_MUTATOR_ROLES = frozenset({Role.ADMIN, Role.SUPER_ADMIN, Role.HR})
ENTRY_DELETER_ROLES = frozenset({Role.ADMIN, Role.SUPER_ADMIN, Role.ROOT})
MANAGER_ROLES = frozenset({Role.ADMIN, Role.SUPER_ADMIN})


class Action(str, Enum):
    READ = "read"
    CREATE = "create"
    UPDATE = "update"
    STOP = "stop"
    DELETE = "delete"


class ResourceKind(str, Enum):
    TIME_ENTRY = "time_entry"
    PROJECT = "project"
    CLIENT = "client"
    USER = "user"
    COMPANY = "company"
    TEAM = "team"
    TASK = "task"


@dataclass(frozen=True)
class Principal:
    id: int
    role: Role
    company_id: Optional[int]

    @property
    def is_root(self) -> bool:
        return self.role is Role.ROOT

    def outranks_or_equals(self, role: Role) -> bool:
        return ROLE_RANK[self.role] >= ROLE_RANK[role]


@dataclass(frozen=True)
class Resource:
    kind: ResourceKind
    company_id: Optional[int]
    user_id: Optional[int] = None
    created_by: Optional[int] = None

    @classmethod
    def time_entry(cls, entry) -> "Resource":
        return cls(
            kind=ResourceKind.TIME_ENTRY,
            company_id=entry.company_id,
            user_id=entry.user_id,
            created_by=entry.created_by,
        )

    @classmethod
    def owned_by(cls, user: User) -> "Resource":
        """A not-yet-created time entry that would belong to ``user``."""
        return cls(kind=ResourceKind.TIME_ENTRY, company_id=user.company_id, user_id=user.id)

    @classmethod
    def user(cls, user: User) -> "Resource":
        return cls(kind=ResourceKind.USER, company_id=user.company_id, user_id=user.id)

    @classmethod
    def project(cls, company_id: Optional[int]) -> "Resource":
        return cls(kind=ResourceKind.PROJECT, company_id=company_id)

    @classmethod
    def client(cls, company_id: Optional[int]) -> "Resource":
        return cls(kind=ResourceKind.CLIENT, company_id=company_id)

    @classmethod
    def team(cls, company_id: Optional[int]) -> "Resource":
        return cls(kind=ResourceKind.TEAM, company_id=company_id)

    @classmethod
    def company(cls, company_id: Optional[int]) -> "Resource":
        return cls(kind=ResourceKind.COMPANY, company_id=company_id)

    @classmethod
    def task(cls, task) -> "Resource":
        return cls(kind=ResourceKind.TASK, company_id=task.company_id, created_by=task.created_by)


def authenticate(token: str, db: Session) -> Principal:
    try:
        claims = verify_token(token)
    except ValueError as exc:
        raise Unauthenticated(str(exc)) from exc

    user = db.get(User, int(claims["sub"]))
    if user is None or not user.is_active:
        raise Unauthenticated("Invalid or expired token")
    if user.company_id is not None:
        company = db.get(Company, int(user.company_id))
        if company is not None and not company.is_active:
            raise Unauthenticated("Company is deactivated")

    try:
        role = Role(user.role)
    except ValueError as exc:
        raise Unauthenticated("Invalid role on account") from exc

    return Principal(id=int(user.id), role=role, company_id=user.company_id)


def authorize(principal: Principal, action: Action, resource: Resource) -> None:
    if principal.is_root:
        return

    if resource.company_id != principal.company_id:
        raise Forbidden("Resource belongs to another company")

    if resource.kind is ResourceKind.TIME_ENTRY:
        _authorize_time_entry(principal, action, resource)
    elif resource.kind is ResourceKind.COMPANY:
        if action is not Action.READ:
            raise Forbidden(f"Only root may {action.value} companies")
    elif resource.kind is ResourceKind.TASK:
        if action is Action.DELETE and resource.created_by != principal.id and principal.role not in MANAGER_ROLES:
            raise Forbidden("Not allowed to delete this task")
    elif resource.kind in (ResourceKind.PROJECT, ResourceKind.CLIENT, ResourceKind.TEAM):
        if action is not Action.READ and principal.role not in MANAGER_ROLES:
            raise Forbidden(f"Insufficient role to {action.value} {resource.kind.value}")
    elif resource.kind is ResourceKind.USER:
        if action is Action.READ:
            if resource.user_id != principal.id and not principal.outranks_or_equals(Role.HR):
                raise Forbidden("Insufficient role to view other users")
        elif principal.role not in MANAGER_ROLES:
            raise Forbidden(f"Insufficient role to {action.value} user")


def _authorize_time_entry(principal: Principal, action: Action, resource: Resource) -> None:
    owns = resource.user_id == principal.id

    if action is Action.READ:
        if owns or principal.outranks_or_equals(Role.HR):
            return
        raise Forbidden("Not allowed to view this time entry")

    if not owns and principal.role not in ENTRY_MUTATOR_ROLES:
        raise Forbidden(f"Not allowed to {action.value} this time entry")

    if action is Action.DELETE and not owns:
        if resource.created_by != principal.id and principal.role not in ENTRY_DELETER_ROLES:
            raise Forbidden("Not allowed to delete another user's time entry")


def is_allowed(principal: Principal, action: Action, resource: Resource) -> bool:
    try:
        authorize(principal, action, resource)
    except Forbidden:
        return False
    return True

