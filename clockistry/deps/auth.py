from datetime import datetime
from typing import Callable

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from clockistry.core.authorization import Principal, Role, authenticate
from clockistry.core.errors import Forbidden, Unauthenticated
from clockistry.core.timeutil import utcnow
from clockistry.database import get_db


def _parse_bearer_token(request: Request) -> str:
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        raise Unauthenticated("Missing Authorization header")

    parts = auth_header.split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1].strip():
        raise Unauthenticated("Invalid Authorization header")

    return parts[1].strip()


def get_principal(request: Request, db: Session = Depends(get_db)) -> Principal:
    token = _parse_bearer_token(request)
    principal = authenticate(token, db)

    request.state.user_id = principal.id
    request.state.company_id = principal.company_id
    request.state.role = principal.role.value

    return principal


def get_clock() -> Callable[[], datetime]:
    return utcnow


def require_role(role: Role):
    def dependency(principal: Principal = Depends(get_principal)) -> Principal:
        if not principal.outranks_or_equals(role):
            raise Forbidden("Insufficient role")
        return principal

    return dependency
