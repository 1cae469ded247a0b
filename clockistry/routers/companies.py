from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from clockistry.core.authorization import Principal
from clockistry.database import get_db
from clockistry.deps.auth import get_principal
from clockistry.schemas.account import CompanyCreate, CompanyResponse, CompanyUpdate, company_response
from clockistry.schemas.common import Envelope, ok
from clockistry.services import account_service

router = APIRouter(prefix="/companies", tags=["Companies"])


@router.post("", response_model=Envelope[CompanyResponse], status_code=201)
def create_company(
    payload: CompanyCreate,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    company = account_service.create_company(db, principal, payload)
    db.commit()
    return ok(company_response(company), "Company created")


@router.get("", response_model=Envelope[List[CompanyResponse]])
def list_companies(
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    rows = account_service.list_companies(db, principal)
    return ok([company_response(r) for r in rows])


@router.get("/{company_id}", response_model=Envelope[CompanyResponse])
def get_company(
    company_id: int,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    company = account_service.load_company(db, principal, company_id)
    return ok(company_response(company))


@router.put("/{company_id}", response_model=Envelope[CompanyResponse])
def update_company(
    company_id: int,
    payload: CompanyUpdate,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    company = account_service.update_company(db, principal, company_id, payload)
    db.commit()
    return ok(company_response(company), "Company updated")
