"""Goal variants and their type-tagged wire records.

Every goal is serialized as a two-field JSON object::

    {"goalType": "cleanTimeGoal", "goal": {"id": "...", "title": "...", ...}}

Decoding is two-pass: the ``goalType`` tag is read and checked on its own,
then the nested ``goal`` object is validated against the variant the tag
names. Anything unreadable raises GoalDecodeError and nothing partial is
returned.
"""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar, Iterable

from pydantic import BaseModel, ConfigDict, Field, ValidationError, ValidationInfo, model_validator
from pydantic.alias_generators import to_camel

from cleansteps.recovery.errors import ConstraintViolation, GoalDecodeError

logger = logging.getLogger(__name__)

GOAL_TYPE_FIELD = "goalType"
GOAL_FIELD = "goal"


class GoalType(str, Enum):
    clean_time_goal = "cleanTimeGoal"
    meetings_goal = "meetingsGoal"
    task_goal = "taskGoal"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _RecordModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_assignment=True,
    )

    @model_validator(mode="before")
    @classmethod
    def _require_all_fields_when_stored(cls, data: Any, info: ValidationInfo) -> Any:
        # Stored records always carry every field; defaults only apply to new goals.
        if not (info.context and info.context.get("stored")) or not isinstance(data, dict):
            return data
        missing = [
            field.alias or name
            for name, field in cls.model_fields.items()
            if (field.alias or name) not in data and name not in data
        ]
        if missing:
            raise ValueError(f"missing field(s): {', '.join(missing)}")
        return data


class TaskStep(_RecordModel):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, frozen=True)
    title: str = Field(strict=True)
    description: str = Field(default="", strict=True)
    is_completed: bool = Field(default=False, strict=True)


class Goal(_RecordModel):
    """Common goal contract: identity, title, completion flag, creation time."""

    goal_type: ClassVar[GoalType]

    id: uuid.UUID = Field(default_factory=uuid.uuid4, frozen=True)
    title: str = Field(strict=True)
    is_completed: bool = Field(default=False, strict=True)
    creation_date: datetime = Field(default_factory=_utcnow, frozen=True)

    def complete(self) -> None:
        """Mark the goal completed. Calling it again changes nothing."""
        self.is_completed = True


class CleanTimeGoal(Goal):
    goal_type: ClassVar[GoalType] = GoalType.clean_time_goal

    target_clean_time: float = Field(ge=0, strict=True)  # seconds

    def check_if_goal_reached(self, current_clean_time: float) -> bool:
        """Complete the goal once ``current_clean_time`` (seconds) reaches the target."""
        if current_clean_time >= self.target_clean_time:
            self.complete()
        return self.is_completed


class MeetingsGoal(Goal):
    goal_type: ClassVar[GoalType] = GoalType.meetings_goal

    target_meetings_count: int = Field(ge=0, strict=True)
    current_meetings_count: int = Field(default=0, ge=0, strict=True)

    def update_meetings_count(self, new_count: int) -> bool:
        """Store ``new_count`` as-is, then complete the goal if it meets the target.

        A lower count than the stored one is accepted (corrections are allowed);
        it never un-completes the goal.
        """
        if new_count < 0:
            raise ConstraintViolation(f"meetings count cannot be negative: {new_count}")
        self.current_meetings_count = new_count
        if self.current_meetings_count >= self.target_meetings_count:
            self.complete()
        return self.is_completed


class TaskGoal(Goal):
    """Checklist goal. Completion is manual; steps are informational."""

    goal_type: ClassVar[GoalType] = GoalType.task_goal

    description: str = Field(default="", strict=True)
    steps: list[TaskStep] = Field(default_factory=list)


GOAL_MODELS: dict[GoalType, type[Goal]] = {
    GoalType.clean_time_goal: CleanTimeGoal,
    GoalType.meetings_goal: MeetingsGoal,
    GoalType.task_goal: TaskGoal,
}


# ---------------------------------------------------------------------------
# Encoding / decoding
# ---------------------------------------------------------------------------


def read_goal_type(record: Any) -> GoalType:
    """First pass: read the discriminator without looking at the payload."""
    if not isinstance(record, dict):
        raise GoalDecodeError("goal record must be a JSON object")
    tag = record.get(GOAL_TYPE_FIELD)
    if tag is None:
        raise GoalDecodeError(f"goal record has no '{GOAL_TYPE_FIELD}'")
    if not isinstance(tag, str):
        raise GoalDecodeError(f"'{GOAL_TYPE_FIELD}' must be a string, got {type(tag).__name__}")
    try:
        return GoalType(tag)
    except ValueError:
        raise GoalDecodeError(f"unknown {GOAL_TYPE_FIELD}: {tag!r}") from None


def goal_from_record(record: Any, *, stored: bool = True) -> Goal:
    """Decode one parsed record into its concrete goal.

    With ``stored=False`` the payload may omit fields that have defaults
    (id, creationDate, isCompleted, ...), which is how new goals arrive.
    """
    goal_type = read_goal_type(record)
    payload = record.get(GOAL_FIELD)
    if not isinstance(payload, dict):
        raise GoalDecodeError(f"{goal_type.value} record has no '{GOAL_FIELD}' object")
    try:
        return GOAL_MODELS[goal_type].model_validate(payload, context={"stored": stored})
    except ValidationError as exc:
        raise GoalDecodeError(f"invalid {goal_type.value} payload: {exc}") from exc


def goal_to_record(goal: Goal) -> dict[str, Any]:
    return {
        GOAL_TYPE_FIELD: goal.goal_type.value,
        GOAL_FIELD: goal.model_dump(mode="json", by_alias=True),
    }


def decode_goal(data: bytes | str) -> Goal:
    try:
        record = json.loads(data)
    except (TypeError, ValueError, RecursionError) as exc:
        raise GoalDecodeError(f"goal record is not valid JSON: {exc}") from exc
    return goal_from_record(record)


def encode_goal(goal: Goal) -> bytes:
    return json.dumps(goal_to_record(goal)).encode("utf-8")


# ---------------------------------------------------------------------------
# Type-erased slot
# ---------------------------------------------------------------------------


class AnyGoal:
    """Owned, mutable slot holding exactly one concrete goal.

    Collections hold slots, not goals. Every edit made through a slot
    (``complete()``, ``title``, ``is_completed``, ``replace()``) is what later
    reads of that slot return, whichever variant it holds.
    """

    __slots__ = ("_goal",)

    def __init__(self, goal: Goal) -> None:
        if not isinstance(goal, Goal):
            raise TypeError(f"expected a Goal, got {type(goal).__name__}")
        self._goal = goal

    @property
    def goal(self) -> Goal:
        return self._goal

    @property
    def goal_type(self) -> GoalType:
        return self._goal.goal_type

    @property
    def id(self) -> uuid.UUID:
        return self._goal.id

    @property
    def title(self) -> str:
        return self._goal.title

    @title.setter
    def title(self, value: str) -> None:
        self._goal.title = value

    @property
    def is_completed(self) -> bool:
        return self._goal.is_completed

    @is_completed.setter
    def is_completed(self, value: bool) -> None:
        if self._goal.is_completed and not value:
            raise ConstraintViolation(f"goal {self.id} is already completed")
        self._goal.is_completed = value

    @property
    def creation_date(self) -> datetime:
        return self._goal.creation_date

    def complete(self) -> None:
        self._goal.complete()

    def replace(self, goal: Goal) -> None:
        """Swap in an updated value of the same goal (same id, same variant)."""
        if goal.id != self.id or goal.goal_type != self.goal_type:
            raise ConstraintViolation(
                f"slot holds {self.goal_type.value} {self.id}, "
                f"cannot replace with {goal.goal_type.value} {goal.id}"
            )
        if self.is_completed and not goal.is_completed:
            raise ConstraintViolation(f"goal {self.id} is already completed")
        self._goal = goal

    def to_record(self) -> dict[str, Any]:
        return goal_to_record(self._goal)

    def encode(self) -> bytes:
        return encode_goal(self._goal)

    @classmethod
    def from_record(cls, record: Any, *, stored: bool = True) -> AnyGoal:
        return cls(goal_from_record(record, stored=stored))

    @classmethod
    def decode(cls, data: bytes | str) -> AnyGoal:
        return cls(decode_goal(data))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AnyGoal):
            return NotImplemented
        return self._goal == other._goal

    def __repr__(self) -> str:
        return f"AnyGoal({self._goal!r})"


@dataclass(frozen=True, slots=True)
class GoalLoadFailure:
    """A stored record that could not be decoded, kept verbatim."""

    position: int
    record: Any
    error: str


def decode_goal_records(
    records: Iterable[Any],
) -> tuple[list[AnyGoal], list[GoalLoadFailure]]:
    """Decode each record independently; one bad record never hides its siblings."""
    goals: list[AnyGoal] = []
    failures: list[GoalLoadFailure] = []
    for position, record in enumerate(records):
        try:
            goals.append(AnyGoal.from_record(record))
        except GoalDecodeError as exc:
            logger.warning("Could not load goal record at position %d: %s", position, exc)
            failures.append(GoalLoadFailure(position=position, record=record, error=str(exc)))
    return goals, failures


def merge_goal_records(
    goals: Iterable[AnyGoal],
    failures: Iterable[GoalLoadFailure],
) -> list[Any]:
    """Inverse of decode_goal_records: unreadable records go back where they were."""
    records: list[Any] = [g.to_record() for g in goals]
    for failure in sorted(failures, key=lambda f: f.position):
        records.insert(min(failure.position, len(records)), failure.record)
    return records
