from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from clockistry.core.authorization import Action, Principal, Resource, Role, authorize
from clockistry.core.errors import NotFound
from clockistry.core.scope import scope_for
from clockistry.database import get_db
from clockistry.deps.auth import get_principal, require_role
from clockistry.schemas.account import UserCreate, UserResponse, UserUpdate, user_response
from clockistry.schemas.common import Envelope, ok
from clockistry.services import account_service
from clockistry.services.entry_repository import get_user, list_users

router = APIRouter(prefix="/users", tags=["Users"])


@router.post("", response_model=Envelope[UserResponse], status_code=201)
def create_user(
    payload: UserCreate,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    user = account_service.create_user(db, principal, payload)
    db.commit()
    return ok(user_response(user), "User created")


@router.get("", response_model=Envelope[List[UserResponse]])
def list_company_users(
    principal: Principal = Depends(require_role(Role.HR)),
    db: Session = Depends(get_db),
):
    rows = list_users(db, scope_for(principal))
    return ok([user_response(r) for r in rows])


@router.get("/{user_id}", response_model=Envelope[UserResponse])
def get_company_user(
    user_id: int,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    user = get_user(db, scope_for(principal), user_id)
    if user is None:
        raise NotFound("User not found")
    authorize(principal, Action.READ, Resource.user(user))
    return ok(user_response(user))


@router.put("/{user_id}", response_model=Envelope[UserResponse])
def update_company_user(
    user_id: int,
    payload: UserUpdate,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    user = account_service.update_user(db, principal, user_id, payload)
    db.commit()
    return ok(user_response(user), "User updated")
