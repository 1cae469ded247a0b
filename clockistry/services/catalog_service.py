from __future__ import annotations

import logging
from typing import Callable, Optional

from sqlalchemy.orm import Session

from clockistry.core.authorization import Action, Principal, Resource, authorize
from clockistry.core.errors import Conflict, Invalid, NotFound
from clockistry.core.scope import Scope, scope_for
from clockistry.core.timeutil import utcnow
from clockistry.models.client import Client
from clockistry.models.company import Company
from clockistry.models.project import Project
from clockistry.schemas.catalog import ClientCreate, ClientUpdate, ProjectCreate, ProjectUpdate
from clockistry.services.entry_repository import count_clients, count_projects, get_client, get_project

logger = logging.getLogger(__name__)

NON_NULL_PROJECT_FIELDS = ("name", "color", "status", "priority", "is_archived")
NON_NULL_CLIENT_FIELDS = ("name", "is_archived")


def target_company(principal: Principal, requested: Optional[int]) -> Optional[int]:
    if principal.is_root:
        if requested is None:
            raise Invalid("companyId is required when creating as root")
        return int(requested)
    if requested is not None and requested != principal.company_id:
        raise Invalid("companyId cannot target another company")
    return principal.company_id


def _check_plan_cap(
    db: Session,
    company_id: Optional[int],
    what: str,
    cap_of: Callable,
    count: Callable[[Session, Optional[int]], int],
) -> None:
    if company_id is None:
        return
    company = db.get(Company, int(company_id))
    if company is None:
        raise NotFound("Company not found")
    cap = cap_of(company.limits)
    if cap is not None and count(db, company_id) >= cap:
        raise Conflict(
            f"The {company.pricing_level} plan allows at most {cap} {what}",
            Conflict.PLAN_LIMIT,
        )


# ---------- projects ----------


def load_project(db: Session, principal: Principal, project_id: int) -> Project:
    project = get_project(db, scope_for(principal), project_id)
    if project is None:
        raise NotFound("Project not found")
    return project


def create_project(db: Session, principal: Principal, payload: ProjectCreate) -> Project:
    company_id = target_company(principal, payload.company_id)
    authorize(principal, Action.CREATE, Resource.project(company_id))
    _check_plan_cap(db, company_id, "project(s)", lambda limits: limits.max_projects, count_projects)

    client = None
    if payload.client_id is not None:
        client = get_client(db, Scope.company(company_id), payload.client_id)
        if client is None:
            raise NotFound("Client not found")

    now = utcnow()
    project = Project(
        company_id=company_id,
        name=payload.name.strip(),
        description=payload.description,
        color=payload.color,
        status=payload.status.value,
        priority=payload.priority.value,
        client_id=client.id if client is not None else None,
        client_name=client.name if client is not None else None,
        is_archived=False,
        created_by=principal.id,
        created_at=now,
        updated_at=now,
    )
    db.add(project)
    db.flush()

    logger.info(
        "Project created",
        extra={"project_id": project.id, "company_id": company_id, "actor_id": principal.id},
    )
    return project


def update_project(db: Session, principal: Principal, project_id: int, payload: ProjectUpdate) -> Project:
    project = load_project(db, principal, project_id)
    authorize(principal, Action.UPDATE, Resource.project(project.company_id))

    changes = payload.model_dump(exclude_unset=True)
    for field in NON_NULL_PROJECT_FIELDS:
        if field in changes and changes[field] is None:
            raise Invalid(f"{field} cannot be null")

    client = None
    if changes.get("client_id") is not None:
        client = get_client(db, Scope.company(project.company_id), changes["client_id"])
        if client is None:
            raise NotFound("Client not found")

    if "client_id" in changes:
        project.client_id = client.id if client is not None else None
        project.client_name = client.name if client is not None else None
    if "name" in changes:
        project.name = changes["name"].strip()
    for field in ("description", "color", "is_archived"):
        if field in changes:
            setattr(project, field, changes[field])
    for field in ("status", "priority"):
        if field in changes:
            setattr(project, field, changes[field].value)

    # Entries keep the project_name they were logged with.
    project.updated_at = utcnow()
    db.flush()

    logger.info(
        "Project updated",
        extra={"project_id": project.id, "fields": sorted(changes), "actor_id": principal.id},
    )
    return project


def set_project_archived(db: Session, principal: Principal, project_id: int, archived: bool) -> Project:
    project = load_project(db, principal, project_id)
    authorize(principal, Action.UPDATE, Resource.project(project.company_id))

    project.is_archived = archived
    project.updated_at = utcnow()
    db.flush()

    logger.info(
        "Project archived" if archived else "Project unarchived",
        extra={"project_id": project.id, "actor_id": principal.id},
    )
    return project


def delete_project(db: Session, principal: Principal, project_id: int) -> None:
    """Hard delete. Entries and tasks lose the reference but keep the cached project name."""
    project = load_project(db, principal, project_id)
    authorize(principal, Action.DELETE, Resource.project(project.company_id))

    project_id = project.id
    db.delete(project)
    db.flush()

    logger.info("Project deleted", extra={"project_id": project_id, "actor_id": principal.id})


# ---------- clients ----------


def load_client(db: Session, principal: Principal, client_id: int) -> Client:
    client = get_client(db, scope_for(principal), client_id)
    if client is None:
        raise NotFound("Client not found")
    return client


def create_client(db: Session, principal: Principal, payload: ClientCreate) -> Client:
    company_id = target_company(principal, payload.company_id)
    authorize(principal, Action.CREATE, Resource.client(company_id))
    _check_plan_cap(db, company_id, "client(s)", lambda limits: limits.max_clients, count_clients)

    now = utcnow()
    client = Client(
        company_id=company_id,
        name=payload.name.strip(),
        email=payload.email,
        hourly_rate=payload.hourly_rate,
        currency=payload.currency,
        is_archived=False,
        created_by=principal.id,
        created_at=now,
        updated_at=now,
    )
    db.add(client)
    db.flush()

    logger.info(
        "Client created",
        extra={"client_id": client.id, "company_id": company_id, "actor_id": principal.id},
    )
    return client


def update_client(db: Session, principal: Principal, client_id: int, payload: ClientUpdate) -> Client:
    client = load_client(db, principal, client_id)
    authorize(principal, Action.UPDATE, Resource.client(client.company_id))

    changes = payload.model_dump(exclude_unset=True)
    for field in NON_NULL_CLIENT_FIELDS:
        if field in changes and changes[field] is None:
            raise Invalid(f"{field} cannot be null")

    for field, value in changes.items():
        setattr(client, field, value.strip() if field == "name" else value)

    client.updated_at = utcnow()
    db.flush()

    logger.info(
        "Client updated",
        extra={"client_id": client.id, "fields": sorted(changes), "actor_id": principal.id},
    )
    return client
