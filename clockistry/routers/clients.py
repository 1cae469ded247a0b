from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from clockistry.core.authorization import Principal
from clockistry.core.scope import scope_for
from clockistry.database import get_db
from clockistry.deps.auth import get_principal
from clockistry.schemas.catalog import ClientCreate, ClientResponse, ClientUpdate, client_response
from clockistry.schemas.common import Envelope, ok
from clockistry.services import catalog_service
from clockistry.services.entry_repository import list_clients

router = APIRouter(prefix="/clients", tags=["Clients"])


@router.post("", response_model=Envelope[ClientResponse], status_code=201)
def create_client(
    payload: ClientCreate,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    row = catalog_service.create_client(db, principal, payload)
    db.commit()
    return ok(client_response(row), "Client created")


@router.get("", response_model=Envelope[List[ClientResponse]])
def list_company_clients(
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
    include_archived: bool = Query(default=False, alias="includeArchived"),
):
    rows = list_clients(db, scope_for(principal), include_archived=include_archived)
    return ok([client_response(r) for r in rows])


@router.get("/{client_id}", response_model=Envelope[ClientResponse])
def get_client(
    client_id: int,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    row = catalog_service.load_client(db, principal, client_id)
    return ok(client_response(row))


@router.put("/{client_id}", response_model=Envelope[ClientResponse])
def update_client(
    client_id: int,
    payload: ClientUpdate,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    row = catalog_service.update_client(db, principal, client_id, payload)
    db.commit()
    return ok(client_response(row), "Client updated")
