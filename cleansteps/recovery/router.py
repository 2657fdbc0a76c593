"""Recovery HTTP router: addictions, savings, milestones, goals."""

from __future__ import annotations

import logging
import uuid
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cleansteps.auth import verify_api_key
from cleansteps.db import get_session
from cleansteps.recovery.errors import ConstraintViolation, GoalDecodeError
from cleansteps.recovery.goals import AnyGoal, CleanTimeGoal, MeetingsGoal
from cleansteps.recovery.milestone_presets import list_milestone_presets
from cleansteps.recovery.records import Addiction, Milestone, Savings
from cleansteps.recovery.schemas import (
    AddictionCreate,
    AddictionOut,
    CleanTimeCheck,
    MeetingsUpdate,
    MilestoneCreate,
    MilestoneOut,
    MilestonePresetOut,
    SavingsCreate,
    SavingsOut,
    SobrietyReset,
    SubstanceOut,
)
from cleansteps.recovery.substances import list_substances

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/recovery", tags=["recovery"])


async def _get_addiction(session: AsyncSession, addiction_id: int) -> Addiction:
    addiction = await session.get(Addiction, addiction_id)
    if addiction is None:
        raise HTTPException(status_code=404, detail=f"Unknown addiction: {addiction_id}")
    return addiction


async def _get_milestone(session: AsyncSession, milestone_id: int) -> Milestone:
    milestone = await session.get(Milestone, milestone_id)
    if milestone is None:
        raise HTTPException(status_code=404, detail=f"Unknown milestone: {milestone_id}")
    return milestone


def _get_goal(milestone: Milestone, goal_id: uuid.UUID) -> AnyGoal:
    slot = milestone.find_goal(goal_id)
    if slot is None:
        raise HTTPException(status_code=404, detail=f"Unknown goal: {goal_id}")
    return slot


def _decode_new_goal(record: Any) -> AnyGoal:
    try:
        return AnyGoal.from_record(record, stored=False)
    except GoalDecodeError as exc:
        raise HTTPException(status_code=422, detail=f"Invalid goal record: {exc}")


# ---------------------------------------------------------------------------
# Static catalogs
# ---------------------------------------------------------------------------


@router.get("/substances", response_model=list[SubstanceOut])
async def substances_list(_: str = Depends(verify_api_key)) -> list[SubstanceOut]:
    return [SubstanceOut.from_substance(s) for s in list_substances()]


@router.get("/milestones/presets", response_model=list[MilestonePresetOut])
async def milestone_presets(_: str = Depends(verify_api_key)) -> list[MilestonePresetOut]:
    return [MilestonePresetOut.from_preset(p) for p in list_milestone_presets()]


# ---------------------------------------------------------------------------
# /recovery/addictions
# ---------------------------------------------------------------------------


@router.post("/addictions", response_model=AddictionOut, status_code=201)
async def create_addiction(
    payload: AddictionCreate,
    session: AsyncSession = Depends(get_session),
    _: str = Depends(verify_api_key),
) -> AddictionOut:
    addiction = Addiction(
        substance=payload.substance,
        reason=payload.reason,
        is_enabled=payload.is_enabled,
        sobriety_date=payload.sobriety_date,
        fellow_users_count=payload.fellow_users_count,
    )
    addiction.refresh_milestones()
    session.add(addiction)
    await session.commit()
    logger.info("Tracking %s as addiction %s", addiction.substance.value, addiction.id)
    return AddictionOut.from_record(addiction)


@router.get("/addictions", response_model=list[AddictionOut])
async def list_addictions(
    session: AsyncSession = Depends(get_session),
    _: str = Depends(verify_api_key),
) -> list[AddictionOut]:
    result = await session.execute(select(Addiction).order_by(Addiction.id))
    return [AddictionOut.from_record(a) for a in result.scalars().all()]


@router.get("/addictions/{addiction_id}", response_model=AddictionOut)
async def get_addiction(
    addiction_id: int,
    session: AsyncSession = Depends(get_session),
    _: str = Depends(verify_api_key),
) -> AddictionOut:
    return AddictionOut.from_record(await _get_addiction(session, addiction_id))


@router.delete("/addictions/{addiction_id}")
async def delete_addiction(
    addiction_id: int,
    session: AsyncSession = Depends(get_session),
    _: str = Depends(verify_api_key),
) -> dict:
    addiction = await _get_addiction(session, addiction_id)
    savings_deleted = len(addiction.savings)
    milestones_detached = len(addiction.milestones)
    await session.delete(addiction)
    await session.commit()
    logger.info(
        "Deleted addiction %s (%d savings deleted, %d milestones detached)",
        addiction_id,
        savings_deleted,
        milestones_detached,
    )
    return {
        "deleted": addiction_id,
        "savings_deleted": savings_deleted,
        "milestones_detached": milestones_detached,
    }


@router.post("/addictions/{addiction_id}/reset", response_model=AddictionOut)
async def reset_sobriety(
    addiction_id: int,
    payload: SobrietyReset,
    session: AsyncSession = Depends(get_session),
    _: str = Depends(verify_api_key),
) -> AddictionOut:
    addiction = await _get_addiction(session, addiction_id)
    addiction.reset_sobriety(payload.sobriety_date)
    await session.commit()
    return AddictionOut.from_record(addiction)


@router.post("/addictions/{addiction_id}/savings", response_model=SavingsOut, status_code=201)
async def add_savings(
    addiction_id: int,
    payload: SavingsCreate,
    session: AsyncSession = Depends(get_session),
    _: str = Depends(verify_api_key),
) -> SavingsOut:
    addiction = await _get_addiction(session, addiction_id)
    savings = Savings(
        amount_saved=payload.amount_saved,
        savings_type=payload.savings_type,
        periodicity=payload.periodicity,
        addiction=addiction,
        unit=payload.unit,
    )
    session.add(savings)
    await session.commit()
    return SavingsOut.from_record(savings)


@router.post("/addictions/{addiction_id}/milestones", response_model=MilestoneOut, status_code=201)
async def add_milestone(
    addiction_id: int,
    payload: MilestoneCreate,
    session: AsyncSession = Depends(get_session),
    _: str = Depends(verify_api_key),
) -> MilestoneOut:
    addiction = await _get_addiction(session, addiction_id)
    goals = [_decode_new_goal(record) for record in payload.goals]
    try:
        milestone = Milestone(addiction=addiction, goals=goals, date=payload.date)
    except ConstraintViolation as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    session.add(milestone)
    await session.commit()
    return MilestoneOut.from_record(milestone)


# ---------------------------------------------------------------------------
# /recovery/milestones
# ---------------------------------------------------------------------------


@router.get("/milestones/{milestone_id}", response_model=MilestoneOut)
async def get_milestone(
    milestone_id: int,
    session: AsyncSession = Depends(get_session),
    _: str = Depends(verify_api_key),
) -> MilestoneOut:
    return MilestoneOut.from_record(await _get_milestone(session, milestone_id))


@router.post("/milestones/{milestone_id}/achieve", response_model=MilestoneOut)
async def achieve_milestone(
    milestone_id: int,
    session: AsyncSession = Depends(get_session),
    _: str = Depends(verify_api_key),
) -> MilestoneOut:
    milestone = await _get_milestone(session, milestone_id)
    milestone.mark_achieved()
    await session.commit()
    return MilestoneOut.from_record(milestone)


@router.post("/milestones/{milestone_id}/goals", status_code=201)
async def add_goal(
    milestone_id: int,
    record: dict[str, Any] = Body(...),
    session: AsyncSession = Depends(get_session),
    _: str = Depends(verify_api_key),
) -> dict[str, Any]:
    milestone = await _get_milestone(session, milestone_id)
    slot = _decode_new_goal(record)
    try:
        milestone.add_goal(slot)
    except ConstraintViolation as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    await session.commit()
    return slot.to_record()


@router.post("/milestones/{milestone_id}/goals/{goal_id}/complete")
async def complete_goal(
    milestone_id: int,
    goal_id: uuid.UUID,
    session: AsyncSession = Depends(get_session),
    _: str = Depends(verify_api_key),
) -> dict[str, Any]:
    milestone = await _get_milestone(session, milestone_id)
    slot = _get_goal(milestone, goal_id)
    slot.complete()
    await session.commit()
    return slot.to_record()


@router.post("/milestones/{milestone_id}/goals/{goal_id}/clean-time")
async def check_clean_time_goal(
    milestone_id: int,
    goal_id: uuid.UUID,
    payload: CleanTimeCheck,
    session: AsyncSession = Depends(get_session),
    _: str = Depends(verify_api_key),
) -> dict[str, Any]:
    milestone = await _get_milestone(session, milestone_id)
    slot = _get_goal(milestone, goal_id)
    if not isinstance(slot.goal, CleanTimeGoal):
        raise HTTPException(status_code=409, detail=f"Goal {goal_id} is a {slot.goal_type.value}")

    current = payload.current_clean_time
    if current is None:
        if milestone.addiction is None:
            raise HTTPException(status_code=409, detail="Milestone has no addiction to read clean time from")
        current = milestone.addiction.clean_time
    slot.goal.check_if_goal_reached(current)
    await session.commit()
    return slot.to_record()


@router.post("/milestones/{milestone_id}/goals/{goal_id}/meetings")
async def update_meetings_goal(
    milestone_id: int,
    goal_id: uuid.UUID,
    payload: MeetingsUpdate,
    session: AsyncSession = Depends(get_session),
    _: str = Depends(verify_api_key),
) -> dict[str, Any]:
    milestone = await _get_milestone(session, milestone_id)
    slot = _get_goal(milestone, goal_id)
    if not isinstance(slot.goal, MeetingsGoal):
        raise HTTPException(status_code=409, detail=f"Goal {goal_id} is a {slot.goal_type.value}")
    slot.goal.update_meetings_count(payload.count)
    await session.commit()
    return slot.to_record()
