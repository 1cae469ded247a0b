from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Tuple
from zoneinfo import ZoneInfo

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Query, Session

from clockistry.core.authorization import Action, Principal, Resource, authorize
from clockistry.core.duration import summarize
from clockistry.core.errors import Conflict, Invalid, NotFound
from clockistry.core.scope import Scope, apply_scope, scope_for
from clockistry.models.task import Task
from clockistry.models.team import Team, TeamMember, TeamRole
from clockistry.models.time_entry import TimeEntry
from clockistry.models.user import User
from clockistry.schemas.team import TeamCreate, TeamMemberAdd, TeamUpdate
from clockistry.services.catalog_service import target_company
from clockistry.services.entry_repository import entries_query, get_user

logger = logging.getLogger(__name__)

NON_NULL_TEAM_FIELDS = ("name", "color", "is_active")


def teams_query(db: Session, scope: Scope) -> Query:
    return apply_scope(db.query(Team), Team.company_id, scope)


def member_counts(db: Session, team_ids: Iterable[int]) -> Dict[int, int]:
    ids = [int(t) for t in team_ids]
    if not ids:
        return {}
    rows = (
        db.query(TeamMember.team_id, func.count(TeamMember.id))
        .filter(TeamMember.team_id.in_(ids), TeamMember.is_active.is_(True))
        .group_by(TeamMember.team_id)
        .all()
    )
    return {int(team_id): int(n) for team_id, n in rows}


def list_teams(db: Session, principal: Principal, *, include_inactive: bool = False) -> List[Team]:
    q = teams_query(db, scope_for(principal))
    if not include_inactive:
        q = q.filter(Team.is_active.is_(True))
    return q.order_by(Team.created_at.desc(), Team.id.desc()).all()


def load_team(db: Session, principal: Principal, team_id: int) -> Team:
    team = teams_query(db, scope_for(principal)).filter(Team.id == int(team_id)).first()
    if team is None:
        raise NotFound("Team not found")
    return team


def _company_member(db: Session, company_id: Optional[int], user_id: int) -> User:
    user = get_user(db, Scope.company(company_id), user_id)
    if user is None or not user.is_active:
        raise NotFound("User not found")
    return user


def _membership(db: Session, team_id: int, user_id: int) -> Optional[TeamMember]:
    return (
        db.query(TeamMember)
        .filter(TeamMember.team_id == int(team_id), TeamMember.user_id == int(user_id))
        .first()
    )


def _enroll(db: Session, team: Team, user: User, role: TeamRole, now: datetime) -> TeamMember:
    membership = _membership(db, team.id, user.id)
    if membership is not None:
        membership.is_active = True
        membership.team_role = role.value
        return membership

    membership = TeamMember(
        team_id=team.id,
        user_id=user.id,
        team_role=role.value,
        is_active=True,
        joined_at=now,
    )
    db.add(membership)
    return membership


def create_team(db: Session, principal: Principal, payload: TeamCreate, *, now: datetime) -> Team:
    company_id = target_company(principal, payload.company_id)
    authorize(principal, Action.CREATE, Resource.team(company_id))

    leader = None
    if payload.leader_id is not None:
        leader = _company_member(db, company_id, payload.leader_id)

    team = Team(
        company_id=company_id,
        name=payload.name.strip(),
        description=payload.description,
        color=payload.color,
        leader_id=leader.id if leader is not None else None,
        is_active=True,
        created_by=principal.id,
        created_at=now,
        updated_at=now,
    )
    db.add(team)
    db.flush()

    if leader is not None:
        _enroll(db, team, leader, TeamRole.LEADER, now)
        db.flush()

    logger.info(
        "Team created",
        extra={"team_id": team.id, "company_id": company_id, "actor_id": principal.id},
    )
    return team


def update_team(db: Session, principal: Principal, team_id: int, payload: TeamUpdate, *, now: datetime) -> Team:
    team = load_team(db, principal, team_id)
    authorize(principal, Action.UPDATE, Resource.team(team.company_id))

    changes = payload.model_dump(exclude_unset=True)
    for field in NON_NULL_TEAM_FIELDS:
        if field in changes and changes[field] is None:
            raise Invalid(f"{field} cannot be null")

    leader = None
    if changes.get("leader_id") is not None:
        leader = _company_member(db, team.company_id, changes["leader_id"])

    if "leader_id" in changes:
        team.leader_id = leader.id if leader is not None else None
        if leader is not None:
            _enroll(db, team, leader, TeamRole.LEADER, now)
    if "name" in changes:
        team.name = changes["name"].strip()
    for field in ("description", "color", "is_active"):
        if field in changes:
            setattr(team, field, changes[field])

    team.updated_at = now
    db.flush()

    logger.info(
        "Team updated",
        extra={"team_id": team.id, "fields": sorted(changes), "actor_id": principal.id},
    )
    return team


def delete_team(db: Session, principal: Principal, team_id: int) -> None:
    """Hard delete. Memberships go with the team; tasks lose the team reference."""
    team = load_team(db, principal, team_id)
    authorize(principal, Action.DELETE, Resource.team(team.company_id))

    team_id = team.id
    db.query(TeamMember).filter(TeamMember.team_id == team_id).delete(synchronize_session=False)
    db.delete(team)
    db.flush()

    logger.info("Team deleted", extra={"team_id": team_id, "actor_id": principal.id})


def list_members(db: Session, principal: Principal, team_id: int) -> List[Tuple[TeamMember, User]]:
    team = load_team(db, principal, team_id)
    return (
        db.query(TeamMember, User)
        .join(User, User.id == TeamMember.user_id)
        .filter(TeamMember.team_id == team.id, TeamMember.is_active.is_(True))
        .order_by(TeamMember.joined_at.asc(), TeamMember.id.asc())
        .all()
    )


def add_member(
    db: Session,
    principal: Principal,
    team_id: int,
    payload: TeamMemberAdd,
    *,
    now: datetime,
) -> Tuple[TeamMember, User]:
    team = load_team(db, principal, team_id)
    authorize(principal, Action.UPDATE, Resource.team(team.company_id))

    user = _company_member(db, team.company_id, payload.user_id)
    existing = _membership(db, team.id, user.id)
    if existing is not None and existing.is_active:
        raise Conflict("User is already a member of this team", Conflict.DUPLICATE)

    membership = _enroll(db, team, user, TeamRole(payload.team_role), now)
    if payload.team_role == TeamRole.LEADER.value:
        team.leader_id = user.id
    try:
        db.flush()
    except IntegrityError as exc:
        db.rollback()
        raise Conflict("User is already a member of this team", Conflict.DUPLICATE) from exc

    logger.info(
        "Team member added",
        extra={"team_id": team.id, "user_id": user.id, "team_role": payload.team_role, "actor_id": principal.id},
    )
    return membership, user


def remove_member(db: Session, principal: Principal, team_id: int, user_id: int) -> None:
    team = load_team(db, principal, team_id)
    authorize(principal, Action.UPDATE, Resource.team(team.company_id))

    membership = _membership(db, team.id, user_id)
    if membership is None or not membership.is_active:
        raise NotFound("Team member not found")

    db.delete(membership)
    if team.leader_id == int(user_id):
        team.leader_id = None
    db.flush()

    logger.info(
        "Team member removed",
        extra={"team_id": team.id, "user_id": int(user_id), "actor_id": principal.id},
    )


def team_stats(db: Session, principal: Principal, team_id: int, *, now: datetime, tz: ZoneInfo) -> dict:
    """
    Membership, task and time totals for one team.

    Time covers every entry of the currently active members, inside the
    team's company, with running entries counted at their live elapsed time.
    Overdue means a due date before today in the server calendar on a task
    that is not completed.
    """
    team = load_team(db, principal, team_id)

    memberships = db.query(TeamMember).filter(TeamMember.team_id == team.id).all()
    active_ids = [int(m.user_id) for m in memberships if m.is_active]

    tasks = db.query(Task).filter(Task.team_id == team.id).all()
    today = now.replace(tzinfo=timezone.utc).astimezone(tz).date()
    completed = sum(1 for t in tasks if t.is_completed)
    overdue = sum(1 for t in tasks if not t.is_completed and t.due_date is not None and t.due_date < today)

    entries = []
    if active_ids:
        entries = (
            entries_query(db, Scope.company(team.company_id))
            .filter(TimeEntry.user_id.in_(active_ids))
            .all()
        )
    totals = summarize(entries, now)

    return {
        "total_members": len(memberships),
        "active_members": len(active_ids),
        "total_tasks": len(tasks),
        "completed_tasks": completed,
        "in_progress_tasks": len(tasks) - completed,
        "overdue_tasks": overdue,
        "total_time_logged": totals.total,
        "billable_time_logged": totals.billable,
        "non_billable_time_logged": totals.non_billable,
        "total_time_entries": totals.entries,
        "total_formatted": totals.total_formatted,
        "average_seconds_per_member": totals.total // len(active_ids) if active_ids else 0,
    }
