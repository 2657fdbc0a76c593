"""Request/response contracts for the recovery API (Pydantic v2 models)."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator

from cleansteps.recovery import calculations
from cleansteps.recovery.calculations import Periodicity
from cleansteps.recovery.milestone_presets import MilestonePreset
from cleansteps.recovery.records import Addiction, Milestone, Savings, SavingsType
from cleansteps.recovery.substances import Substance, get_substance


class SubstanceOut(BaseModel):
    name: str
    label: str
    description: str

    @classmethod
    def from_substance(cls, substance: Substance) -> SubstanceOut:
        return cls(name=substance.name, label=substance.value, description=substance.description)


class MilestonePresetOut(BaseModel):
    label: str
    seconds: float

    @classmethod
    def from_preset(cls, preset: MilestonePreset) -> MilestonePresetOut:
        return cls(label=preset.label, seconds=preset.seconds)


# ---------------------------------------------------------------------------
# Addictions & savings
# ---------------------------------------------------------------------------


class AddictionCreate(BaseModel):
    substance: Substance
    reason: str = ""
    is_enabled: bool = True
    sobriety_date: datetime | None = None
    fellow_users_count: int = Field(default=0, ge=0)

    @field_validator("substance", mode="before")
    @classmethod
    def _lookup_substance(cls, value: Any) -> Any:
        # Accept the member name ("prescription_stimulants") as well as the label
        if isinstance(value, str):
            substance = get_substance(value)
            if substance is None:
                raise ValueError(f"Unknown substance: {value}")
            return substance
        return value


class SobrietyReset(BaseModel):
    sobriety_date: datetime | None = None  # defaults to now


class SavingsCreate(BaseModel):
    amount_saved: float = Field(ge=0)
    savings_type: SavingsType
    periodicity: Periodicity
    unit: str | None = None  # defaults to the savings type's unit


class SavingsOut(BaseModel):
    id: int
    amount_saved: float
    unit: str
    savings_type: SavingsType
    periodicity: Periodicity
    total_accrued: float

    @classmethod
    def from_record(cls, savings: Savings) -> SavingsOut:
        return cls(
            id=savings.id,
            amount_saved=savings.amount_saved,
            unit=savings.unit,
            savings_type=savings.savings_type,
            periodicity=savings.periodicity,
            total_accrued=savings.total_accrued,
        )


class AddictionOut(BaseModel):
    id: int
    substance: Substance
    substance_info: str
    reason: str
    is_enabled: bool
    sobriety_date: datetime | None = None
    last_milestone: datetime | None = None
    next_milestone: datetime | None = None
    fellow_users_count: int = 0
    clean_time: float = 0.0  # seconds
    milestone_progress_pct: float | None = None
    savings: list[SavingsOut] = Field(default_factory=list)
    milestone_ids: list[int] = Field(default_factory=list)

    @classmethod
    def from_record(cls, addiction: Addiction) -> AddictionOut:
        clean_time = addiction.clean_time
        return cls(
            id=addiction.id,
            substance=addiction.substance,
            substance_info=addiction.substance_info,
            reason=addiction.reason,
            is_enabled=addiction.is_enabled,
            sobriety_date=addiction.sobriety_date,
            last_milestone=addiction.last_milestone,
            next_milestone=addiction.next_milestone,
            fellow_users_count=addiction.fellow_users_count,
            clean_time=clean_time,
            milestone_progress_pct=(
                calculations.milestone_progress_pct(clean_time) if addiction.sobriety_date is not None else None
            ),
            savings=[SavingsOut.from_record(s) for s in addiction.savings],
            milestone_ids=[m.id for m in addiction.milestones],
        )


# ---------------------------------------------------------------------------
# Milestones & goals
# ---------------------------------------------------------------------------


class MilestoneCreate(BaseModel):
    date: datetime | None = None
    goals: list[dict[str, Any]] = Field(default_factory=list)  # {goalType, goal} records


class UnreadableGoal(BaseModel):
    position: int
    error: str


class MilestoneOut(BaseModel):
    id: int
    date: datetime | None = None
    addiction_id: int | None = None
    goals: list[dict[str, Any]] = Field(default_factory=list)
    unreadable_goals: list[UnreadableGoal] = Field(default_factory=list)

    @classmethod
    def from_record(cls, milestone: Milestone) -> MilestoneOut:
        return cls(
            id=milestone.id,
            date=milestone.date,
            addiction_id=milestone.addiction_id,
            goals=[slot.to_record() for slot in milestone.goals],
            unreadable_goals=[
                UnreadableGoal(position=f.position, error=f.error) for f in milestone.unreadable_goals
            ],
        )


class CleanTimeCheck(BaseModel):
    current_clean_time: float | None = None  # seconds; defaults to the addiction's clean time


class MeetingsUpdate(BaseModel):
    count: int = Field(ge=0)
