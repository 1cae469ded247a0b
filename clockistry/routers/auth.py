from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from clockistry.core.authorization import Principal
from clockistry.core.config import Settings, get_settings
from clockistry.core.errors import NotFound
from clockistry.database import get_db
from clockistry.deps.auth import get_principal
from clockistry.models.user import User
from clockistry.schemas.account import (
    AccountResponse,
    AuthResponse,
    LoginRequest,
    SignupRequest,
    TokenRequest,
    company_response,
    user_response,
)
from clockistry.schemas.common import Envelope, ok
from clockistry.services import account_service
from clockistry.services.auth_service import create_access_token

router = APIRouter(prefix="/auth", tags=["auth"])


def _auth_response(db: Session, user: User) -> AuthResponse:
    return AuthResponse(
        access_token=create_access_token(user_id=int(user.id)),
        token_type="bearer",
        user=user_response(user),
        company=company_response(account_service.company_of(db, user)),
    )


@router.post("/signup", response_model=Envelope[AccountResponse], status_code=201)
def signup(payload: SignupRequest, db: Session = Depends(get_db)):
    user, company = account_service.signup(db, payload)
    db.commit()
    return ok(
        AccountResponse(user=user_response(user), company=company_response(company)),
        "Account created",
    )


@router.post("/login", response_model=Envelope[AuthResponse])
def login(payload: LoginRequest, db: Session = Depends(get_db)):
    user = account_service.login(db, payload.email, payload.password)
    return ok(_auth_response(db, user))


@router.post("/token", response_model=Envelope[AuthResponse])
def issue_token(
    payload: TokenRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    # Development shortcut; invisible outside dev/local/test.
    if not settings.is_dev:
        raise NotFound("Not Found")

    user = db.get(User, int(payload.user_id))
    if user is None or not user.is_active:
        raise NotFound("User not found")
    return ok(_auth_response(db, user))


@router.get("/me", response_model=Envelope[AccountResponse])
def me(principal: Principal = Depends(get_principal), db: Session = Depends(get_db)):
    user = db.get(User, principal.id)
    return ok(
        AccountResponse(
            user=user_response(user),
            company=company_response(account_service.company_of(db, user)),
        )
    )
