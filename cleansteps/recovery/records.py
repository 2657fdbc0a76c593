"""Addiction, Milestone and Savings records: SQLAlchemy ORM.

An Addiction owns its Savings (deleted with it). Milestones only point at
their Addiction; deleting the addiction leaves them with a null reference.
Milestone goals live in a JSON column as a list of ``{goalType, goal}``
records and are decoded into AnyGoal slots on load.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterable

from sqlalchemy import JSON, Boolean, DateTime, Float, ForeignKey, Integer, String, Text, TypeDecorator, event
from sqlalchemy import Enum as SAEnum
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, Session, mapped_column, reconstructor, relationship, validates

from cleansteps.db import Base
from cleansteps.recovery.calculations import (
    Periodicity,
    accrued_savings,
    as_utc,
    clean_time_seconds,
    milestone_dates,
)
from cleansteps.recovery.errors import ConstraintViolation
from cleansteps.recovery.goals import (
    AnyGoal,
    Goal,
    GoalLoadFailure,
    decode_goal_records,
    merge_goal_records,
)
from cleansteps.recovery.substances import Substance

logger = logging.getLogger(__name__)

GoalRecordsType = JSON().with_variant(JSONB(), "postgresql")


class SavingsType(str, Enum):
    money = "Money"
    time = "Time"
    calories = "Calories"
    custom = "Custom"

    @property
    def default_unit(self) -> str:
        return _DEFAULT_UNITS[self]


_DEFAULT_UNITS: dict[SavingsType, str] = {
    SavingsType.money: "USD",
    SavingsType.time: "hours",
    SavingsType.calories: "kcal",
    SavingsType.custom: "",
}


def _utc_or_none(value: datetime | None) -> datetime | None:
    return as_utc(value) if value is not None else None


class UTCDateTime(TypeDecorator):
    """Aware UTC datetimes, also on backends that drop the offset (SQLite)."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Any) -> datetime | None:
        return _utc_or_none(value)

    def process_result_value(self, value: datetime | None, dialect: Any) -> datetime | None:
        return _utc_or_none(value)


class Addiction(Base):
    __tablename__ = "addictions"

    id: Mapped[int] = mapped_column(primary_key=True)
    substance: Mapped[Substance] = mapped_column(SAEnum(Substance, native_enum=False))
    reason: Mapped[str] = mapped_column(Text, default="")
    is_enabled: Mapped[bool] = mapped_column(Boolean, default=True)
    sobriety_date: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    last_milestone: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    next_milestone: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    # Users sharing the same next milestone for this substance
    fellow_users_count: Mapped[int] = mapped_column(Integer, default=0)

    savings: Mapped[list[Savings]] = relationship(
        back_populates="addiction",
        cascade="all, delete-orphan",
        order_by="Savings.id",
        lazy="selectin",
    )
    milestones: Mapped[list[Milestone]] = relationship(
        back_populates="addiction",
        order_by="Milestone.id",
        lazy="selectin",
    )

    def __init__(
        self,
        substance: Substance,
        reason: str = "",
        is_enabled: bool = True,
        sobriety_date: datetime | None = None,
        last_milestone: datetime | None = None,
        next_milestone: datetime | None = None,
        fellow_users_count: int = 0,
    ) -> None:
        super().__init__(
            substance=substance,
            reason=reason,
            is_enabled=is_enabled,
            sobriety_date=sobriety_date,
            last_milestone=last_milestone,
            next_milestone=next_milestone,
            fellow_users_count=fellow_users_count,
            # Start loaded: an async session cannot lazy-load them after commit
            savings=[],
            milestones=[],
        )

    @validates("sobriety_date", "last_milestone", "next_milestone")
    def _store_utc(self, key: str, value: datetime | None) -> datetime | None:
        return _utc_or_none(value)

    @validates("fellow_users_count")
    def _check_fellow_users(self, key: str, value: int) -> int:
        if value < 0:
            raise ConstraintViolation(f"fellow_users_count cannot be negative: {value}")
        return value

    @property
    def clean_time(self) -> float:
        """Seconds since the sobriety date, 0 when it is unset."""
        return clean_time_seconds(self.sobriety_date)

    @property
    def substance_info(self) -> str:
        return self.substance.description

    def refresh_milestones(self, now: datetime | None = None) -> None:
        """Recompute last/next milestone dates from the predefined thresholds."""
        self.last_milestone, self.next_milestone = milestone_dates(self.sobriety_date, now)

    def reset_sobriety(self, sobriety_date: datetime | None = None, now: datetime | None = None) -> None:
        """Start clean time over (relapse or corrected start date)."""
        current = _utc_or_none(now) or datetime.now(timezone.utc)
        self.sobriety_date = sobriety_date if sobriety_date is not None else current
        self.refresh_milestones(current)
        logger.info("Sobriety date for addiction %s reset to %s", self.id, self.sobriety_date)

    def __repr__(self) -> str:
        return f"<Addiction {self.id} {self.substance.value}>"


class Savings(Base):
    __tablename__ = "savings"

    id: Mapped[int] = mapped_column(primary_key=True)
    amount_saved: Mapped[float] = mapped_column(Float)
    unit: Mapped[str] = mapped_column(String(32), default="")
    savings_type: Mapped[SavingsType] = mapped_column(SAEnum(SavingsType, native_enum=False))
    periodicity: Mapped[Periodicity] = mapped_column(SAEnum(Periodicity, native_enum=False))
    addiction_id: Mapped[int] = mapped_column(ForeignKey("addictions.id", ondelete="CASCADE"))

    addiction: Mapped[Addiction] = relationship(back_populates="savings", lazy="selectin")

    def __init__(
        self,
        amount_saved: float,
        savings_type: SavingsType,
        periodicity: Periodicity,
        addiction: Addiction,
        unit: str | None = None,
    ) -> None:
        if addiction is None:
            raise ConstraintViolation("savings must belong to an addiction")
        super().__init__(
            amount_saved=amount_saved,
            unit=unit if unit is not None else savings_type.default_unit,
            savings_type=savings_type,
            periodicity=periodicity,
            addiction=addiction,
        )

    @validates("amount_saved")
    def _check_amount(self, key: str, value: float) -> float:
        if value < 0:
            raise ConstraintViolation(f"amount_saved cannot be negative: {value}")
        return value

    def accrued(self, clean_time: float) -> float:
        return accrued_savings(self.amount_saved, self.periodicity, clean_time)

    @property
    def total_accrued(self) -> float:
        """Savings so far, based on the owning addiction's clean time."""
        if self.addiction is None:
            return 0.0
        return self.accrued(self.addiction.clean_time)

    def __repr__(self) -> str:
        return f"<Savings {self.id} {self.amount_saved} {self.unit} {self.periodicity.value}>"


class Milestone(Base):
    __tablename__ = "milestones"

    id: Mapped[int] = mapped_column(primary_key=True)
    # Null until the milestone is achieved
    date: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    addiction_id: Mapped[int | None] = mapped_column(
        ForeignKey("addictions.id", ondelete="SET NULL"), nullable=True
    )
    goal_records: Mapped[list[Any]] = mapped_column("goals", GoalRecordsType, default=list)

    addiction: Mapped[Addiction | None] = relationship(back_populates="milestones", lazy="selectin")

    def __init__(
        self,
        addiction: Addiction,
        goals: Iterable[Goal | AnyGoal] = (),
        date: datetime | None = None,
    ) -> None:
        if addiction is None:
            raise ConstraintViolation("a milestone must reference an addiction")
        super().__init__(addiction=addiction, date=date, goal_records=[])
        self.goals: list[AnyGoal] = []
        self.unreadable_goals: list[GoalLoadFailure] = []
        for goal in goals:
            self.add_goal(goal)

    @reconstructor
    def _load_goals(self) -> None:
        self.goals, self.unreadable_goals = decode_goal_records(self.goal_records or [])

    @validates("date")
    def _store_utc(self, key: str, value: datetime | None) -> datetime | None:
        return _utc_or_none(value)

    def add_goal(self, goal: Goal | AnyGoal) -> AnyGoal:
        slot = goal if isinstance(goal, AnyGoal) else AnyGoal(goal)
        if self.find_goal(slot.id) is not None:
            raise ConstraintViolation(f"goal {slot.id} is already part of this milestone")
        self.goals.append(slot)
        return slot

    def find_goal(self, goal_id: uuid.UUID) -> AnyGoal | None:
        for slot in self.goals:
            if slot.id == goal_id:
                return slot
        return None

    def mark_achieved(self, date: datetime | None = None) -> None:
        self.date = date if date is not None else datetime.now(timezone.utc)

    def store_goals(self) -> bool:
        """Write the goal slots back into ``goal_records``; True when something changed."""
        # Read first: an expired value reloads and resets the slots (see _reload_goals)
        current = self.goal_records
        records = merge_goal_records(self.goals, self.unreadable_goals)
        if records == current:
            return False
        self.goal_records = records
        return True

    def __repr__(self) -> str:
        return f"<Milestone {self.id} addiction={self.addiction_id} goals={len(self.goals)}>"


def store_session_goals(session: Session) -> int:
    """Re-encode the goal slots of every milestone in the session; returns how many changed."""
    changed = 0
    with session.no_autoflush:
        for obj in list(session.identity_map.values()) + list(session.new):
            if isinstance(obj, Milestone) and obj not in session.deleted and obj.store_goals():
                changed += 1
    return changed


# Goal slots are edited in place, which the ORM cannot see. A session with only
# slot edits looks clean and skips before_flush, so commits are hooked as well.
@event.listens_for(Session, "before_commit")
def _store_goals_before_commit(session: Session) -> None:
    store_session_goals(session)


@event.listens_for(Session, "before_flush")
def _store_goals_before_flush(session: Session, flush_context: Any, instances: Any) -> None:
    store_session_goals(session)


# A rollback expires goal_records but not the slots decoded from it. When the
# column is reloaded, rebuild the slots so discarded edits are not written back.
@event.listens_for(Milestone, "refresh")
def _reload_goals(milestone: Milestone, context: Any, attrs: Any) -> None:
    if attrs is None or "goal_records" in attrs:
        milestone._load_goals()
