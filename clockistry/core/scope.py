"""Visibility scope derived from a principal.

``root`` sees every company. Everyone else sees exactly one company, and an
account without a company (created before tenants existed) sees only rows
whose ``company_id`` is null. That last case is never widened to "all".
"""

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Query

from clockistry.core.authorization import Principal, Role


@dataclass(frozen=True)
class Scope:
    all_companies: bool
    company_id: Optional[int] = None

    @classmethod
    def all(cls) -> "Scope":
        return cls(all_companies=True)

    @classmethod
    def company(cls, company_id: Optional[int]) -> "Scope":
        return cls(all_companies=False, company_id=company_id)


def scope_for(principal: Principal) -> Scope:
    if principal.role is Role.ROOT:
        return Scope.all()
    return Scope.company(principal.company_id)


def apply_scope(q: Query, company_column, scope: Scope) -> Query:
    """Add the mandatory tenant predicate. Call before any user filter or pagination."""
    if scope.all_companies:
        return q
    if scope.company_id is None:
        return q.filter(company_column.is_(None))
    return q.filter(company_column == int(scope.company_id))
