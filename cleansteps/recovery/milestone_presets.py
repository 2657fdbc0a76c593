"""Predefined clean-time milestones: seed data only.

Users can (and are encouraged to) add their own milestones; these thresholds
are just the starting set offered for every addiction.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class MilestonePreset:
    label: str
    seconds: float


PREDEFINED_MILESTONES: tuple[MilestonePreset, ...] = (
    MilestonePreset(label="1 day", seconds=86_400),
    MilestonePreset(label="3 days", seconds=259_200),
    MilestonePreset(label="1 week", seconds=604_800),
    MilestonePreset(label="1 month", seconds=2_592_000),
    MilestonePreset(label="2 months", seconds=5_184_000),
    MilestonePreset(label="3 months", seconds=7_776_000),
    MilestonePreset(label="6 months", seconds=15_552_000),
    MilestonePreset(label="9 months", seconds=23_328_000),
    MilestonePreset(label="1 year", seconds=31_536_000),
    MilestonePreset(label="18 months", seconds=47_304_000),
    MilestonePreset(label="2 years", seconds=63_072_000),
    MilestonePreset(label="5 years", seconds=157_680_000),
    MilestonePreset(label="10 years", seconds=315_360_000),
    MilestonePreset(label="20 years", seconds=630_720_000),
    MilestonePreset(label="25 years", seconds=788_400_000),
)


def list_milestone_presets() -> list[MilestonePreset]:
    return list(PREDEFINED_MILESTONES)


def milestone_thresholds() -> list[float]:
    return [p.seconds for p in PREDEFINED_MILESTONES]
