from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from clockistry.core.authorization import Principal
from clockistry.core.scope import scope_for
from clockistry.database import get_db
from clockistry.deps.auth import get_principal
from clockistry.schemas.catalog import ProjectCreate, ProjectResponse, ProjectUpdate, project_response
from clockistry.schemas.common import Envelope, ok
from clockistry.services import catalog_service
from clockistry.services.entry_repository import list_projects

router = APIRouter(prefix="/projects", tags=["Projects"])


@router.post("", response_model=Envelope[ProjectResponse], status_code=201)
def create_project(
    payload: ProjectCreate,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    row = catalog_service.create_project(db, principal, payload)
    db.commit()
    return ok(project_response(row), "Project created")


@router.get("", response_model=Envelope[List[ProjectResponse]])
def list_company_projects(
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
    include_archived: bool = Query(default=False, alias="includeArchived"),
):
    rows = list_projects(db, scope_for(principal), include_archived=include_archived)
    return ok([project_response(r) for r in rows])


@router.get("/{project_id}", response_model=Envelope[ProjectResponse])
def get_project(
    project_id: int,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    row = catalog_service.load_project(db, principal, project_id)
    return ok(project_response(row))


@router.put("/{project_id}", response_model=Envelope[ProjectResponse])
def update_project(
    project_id: int,
    payload: ProjectUpdate,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    row = catalog_service.update_project(db, principal, project_id, payload)
    db.commit()
    return ok(project_response(row), "Project updated")


@router.put("/{project_id}/archive", response_model=Envelope[ProjectResponse])
def archive_project(
    project_id: int,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    row = catalog_service.set_project_archived(db, principal, project_id, True)
    db.commit()
    return ok(project_response(row), "Project archived")


@router.put("/{project_id}/unarchive", response_model=Envelope[ProjectResponse])
def unarchive_project(
    project_id: int,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    row = catalog_service.set_project_archived(db, principal, project_id, False)
    db.commit()
    return ok(project_response(row), "Project unarchived")


@router.delete("/{project_id}")
def delete_project(
    project_id: int,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    catalog_service.delete_project(db, principal, project_id)
    db.commit()
    return ok(None, "Project deleted")
