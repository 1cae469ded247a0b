from datetime import datetime
from typing import Callable, List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from clockistry.core.authorization import Principal
from clockistry.core.config import Settings, get_settings
from clockistry.core.timeutil import to_naive_utc
from clockistry.database import get_db
from clockistry.deps.auth import get_clock, get_principal
from clockistry.schemas.common import Envelope, ok
from clockistry.schemas.team import (
    TeamCreate,
    TeamMemberAdd,
    TeamMemberResponse,
    TeamResponse,
    TeamStatsResponse,
    TeamUpdate,
    member_response,
    team_response,
)
from clockistry.services import team_service

router = APIRouter(prefix="/teams", tags=["Teams"])


def _with_count(db: Session, team) -> TeamResponse:
    counts = team_service.member_counts(db, [team.id])
    return team_response(team, counts.get(team.id, 0))


@router.post("", response_model=Envelope[TeamResponse], status_code=201)
def create_team(
    payload: TeamCreate,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    team = team_service.create_team(db, principal, payload, now=to_naive_utc(clock()))
    db.commit()
    return ok(_with_count(db, team), "Team created")


@router.get("", response_model=Envelope[List[TeamResponse]])
def list_teams(
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
    include_inactive: bool = Query(default=False, alias="includeInactive"),
):
    teams = team_service.list_teams(db, principal, include_inactive=include_inactive)
    counts = team_service.member_counts(db, [t.id for t in teams])
    return ok([team_response(t, counts.get(t.id, 0)) for t in teams])


@router.get("/{team_id}", response_model=Envelope[TeamResponse])
def get_team(
    team_id: int,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    return ok(_with_count(db, team_service.load_team(db, principal, team_id)))


@router.put("/{team_id}", response_model=Envelope[TeamResponse])
def update_team(
    team_id: int,
    payload: TeamUpdate,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    team = team_service.update_team(db, principal, team_id, payload, now=to_naive_utc(clock()))
    db.commit()
    return ok(_with_count(db, team), "Team updated")


@router.delete("/{team_id}")
def delete_team(
    team_id: int,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    team_service.delete_team(db, principal, team_id)
    db.commit()
    return ok(None, "Team deleted")


@router.get("/{team_id}/members", response_model=Envelope[List[TeamMemberResponse]])
def list_team_members(
    team_id: int,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    rows = team_service.list_members(db, principal, team_id)
    return ok([member_response(m, u) for m, u in rows])


@router.post("/{team_id}/members", response_model=Envelope[TeamMemberResponse], status_code=201)
def add_team_member(
    team_id: int,
    payload: TeamMemberAdd,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    membership, user = team_service.add_member(db, principal, team_id, payload, now=to_naive_utc(clock()))
    db.commit()
    return ok(member_response(membership, user), "Team member added")


@router.delete("/{team_id}/members/{user_id}")
def remove_team_member(
    team_id: int,
    user_id: int,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    team_service.remove_member(db, principal, team_id, user_id)
    db.commit()
    return ok(None, "Team member removed")


@router.get("/{team_id}/stats", response_model=Envelope[TeamStatsResponse])
def get_team_stats(
    team_id: int,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
    clock: Callable[[], datetime] = Depends(get_clock),
    settings: Settings = Depends(get_settings),
):
    stats = team_service.team_stats(db, principal, team_id, now=to_naive_utc(clock()), tz=settings.tz)
    return ok(stats)
