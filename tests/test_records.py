"""Tests for the Addiction / Milestone / Savings records and their persistence."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select, update

from cleansteps.recovery.calculations import Periodicity
from cleansteps.recovery.errors import ConstraintViolation
from cleansteps.recovery.goals import AnyGoal, CleanTimeGoal, MeetingsGoal, TaskGoal, TaskStep
from cleansteps.recovery.records import Addiction, Milestone, Savings, SavingsType
from cleansteps.recovery.substances import Substance
from tests.conftest import NOW, clean_time_record, days_ago


def _addiction(**overrides) -> Addiction:
    defaults = dict(substance=Substance.alcohol, reason="For my family")
    defaults.update(overrides)
    return Addiction(**defaults)


# ---------------------------------------------------------------------------
# In-memory behavior
# ---------------------------------------------------------------------------

class TestAddiction:
    def test_defaults(self):
        a = _addiction()
        assert a.is_enabled is True
        assert a.fellow_users_count == 0
        assert a.sobriety_date is None
        assert a.savings == []
        assert a.milestones == []

    def test_clean_time_unset(self):
        assert _addiction().clean_time == 0

    def test_clean_time_one_hour(self):
        a = _addiction(sobriety_date=datetime.now(timezone.utc) - timedelta(seconds=3600))
        assert a.clean_time == pytest.approx(3600, abs=5)

    def test_sobriety_date_stored_as_utc(self):
        local = datetime(2026, 10, 1, 8, 0, tzinfo=timezone(timedelta(hours=-4)))
        a = _addiction(sobriety_date=local)
        assert a.sobriety_date == local
        assert a.sobriety_date.utcoffset() == timedelta(0)

    def test_substance_info(self):
        a = _addiction(substance=Substance.cannabis)
        assert a.substance_info == Substance.cannabis.description

    def test_negative_fellow_users_rejected(self):
        with pytest.raises(ConstraintViolation):
            _addiction(fellow_users_count=-1)

    def test_reset_sobriety(self):
        a = _addiction(sobriety_date=NOW - timedelta(days=400))
        relapse = NOW - timedelta(days=10)
        a.reset_sobriety(relapse, now=NOW)
        assert a.sobriety_date == relapse
        assert a.last_milestone == relapse + timedelta(weeks=1)
        assert a.next_milestone == relapse + timedelta(days=30)

    def test_reset_defaults_to_now(self):
        a = _addiction(sobriety_date=NOW - timedelta(days=400))
        a.reset_sobriety(now=NOW)
        assert a.sobriety_date == NOW
        assert a.last_milestone is None
        assert a.next_milestone == NOW + timedelta(days=1)

    def test_refresh_without_sobriety_date(self):
        a = _addiction(last_milestone=NOW, next_milestone=NOW)
        a.refresh_milestones(NOW)
        assert a.last_milestone is None
        assert a.next_milestone is None


class TestSavings:
    def test_default_units(self):
        a = _addiction()
        money = Savings(amount_saved=12.5, savings_type=SavingsType.money, periodicity=Periodicity.per_day, addiction=a)
        cals = Savings(amount_saved=800, savings_type=SavingsType.calories, periodicity=Periodicity.per_day, addiction=a)
        assert money.unit == "USD"
        assert cals.unit == "kcal"

    def test_custom_unit(self):
        s = Savings(
            amount_saved=3,
            savings_type=SavingsType.custom,
            periodicity=Periodicity.per_week,
            addiction=_addiction(),
            unit="packs",
        )
        assert s.unit == "packs"

    def test_attached_to_addiction(self):
        a = _addiction()
        s = Savings(amount_saved=5, savings_type=SavingsType.time, periodicity=Periodicity.per_day, addiction=a)
        assert a.savings == [s]

    def test_negative_amount_rejected(self):
        with pytest.raises(ConstraintViolation):
            Savings(amount_saved=-1, savings_type=SavingsType.money, periodicity=Periodicity.per_day, addiction=_addiction())

    def test_requires_addiction(self):
        with pytest.raises(ConstraintViolation):
            Savings(amount_saved=1, savings_type=SavingsType.money, periodicity=Periodicity.per_day, addiction=None)

    def test_total_accrued(self):
        a = _addiction(sobriety_date=days_ago(3))
        s = Savings(amount_saved=10, savings_type=SavingsType.money, periodicity=Periodicity.per_day, addiction=a)
        assert s.total_accrued == pytest.approx(30.0, abs=0.01)

    def test_accrued_weekly(self):
        s = Savings(amount_saved=70, savings_type=SavingsType.money, periodicity=Periodicity.per_week, addiction=_addiction())
        assert s.accrued(86_400) == pytest.approx(10.0)


class TestMilestone:
    def test_requires_addiction(self):
        with pytest.raises(ConstraintViolation):
            Milestone(addiction=None)  # type: ignore[arg-type]

    def test_goals_wrapped_in_slots(self):
        goal = CleanTimeGoal(title="1 week", target_clean_time=604_800)
        m = Milestone(addiction=_addiction(), goals=[goal])
        assert m.goals == [AnyGoal(goal)]
        assert m.date is None

    def test_duplicate_goal_rejected(self):
        goal = MeetingsGoal(title="m", target_meetings_count=3)
        m = Milestone(addiction=_addiction(), goals=[goal])
        with pytest.raises(ConstraintViolation):
            m.add_goal(goal)

    def test_find_goal(self):
        goal = MeetingsGoal(title="m", target_meetings_count=3)
        m = Milestone(addiction=_addiction(), goals=[goal])
        assert m.find_goal(goal.id).goal is goal

    def test_mark_achieved(self):
        m = Milestone(addiction=_addiction())
        m.mark_achieved(NOW)
        assert m.date == NOW

    def test_store_goals(self):
        m = Milestone(addiction=_addiction(), goals=[CleanTimeGoal(title="1 day", target_clean_time=86_400)])
        assert m.store_goals() is True
        assert m.goal_records[0]["goalType"] == "cleanTimeGoal"
        assert m.store_goals() is False


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------

class TestPersistence:
    @pytest.mark.asyncio
    async def test_roundtrip(self, session):
        a = _addiction(sobriety_date=NOW - timedelta(days=10), fellow_users_count=4)
        a.refresh_milestones(NOW)
        Savings(amount_saved=10, savings_type=SavingsType.money, periodicity=Periodicity.per_day, addiction=a)
        session.add(a)
        await session.commit()
        addiction_id = a.id

        session.expunge_all()
        loaded = await session.get(Addiction, addiction_id)
        assert loaded.substance is Substance.alcohol
        assert loaded.sobriety_date == NOW - timedelta(days=10)
        assert loaded.sobriety_date.tzinfo is not None
        assert loaded.next_milestone == NOW + timedelta(days=20)
        assert loaded.fellow_users_count == 4
        assert [s.unit for s in loaded.savings] == ["USD"]

    @pytest.mark.asyncio
    async def test_delete_cascades_savings_and_detaches_milestones(self, session):
        a = _addiction()
        Savings(amount_saved=12.5, savings_type=SavingsType.money, periodicity=Periodicity.per_day, addiction=a)
        Savings(amount_saved=2, savings_type=SavingsType.time, periodicity=Periodicity.per_day, addiction=a)
        milestone = Milestone(addiction=a)
        session.add(a)
        await session.commit()
        milestone_id = milestone.id
        assert await session.scalar(select(func.count()).select_from(Savings)) == 2

        await session.delete(a)
        await session.commit()

        assert await session.scalar(select(func.count()).select_from(Savings)) == 0
        session.expunge_all()
        reloaded = await session.get(Milestone, milestone_id)
        assert reloaded is not None
        assert reloaded.addiction_id is None
        assert reloaded.addiction is None

    @pytest.mark.asyncio
    async def test_goals_persist_in_order(self, session):
        goals = [
            CleanTimeGoal(title="30 days", target_clean_time=2_592_000),
            MeetingsGoal(title="90 in 90", target_meetings_count=90),
            TaskGoal(title="Step work", steps=[TaskStep(title="Step 1")]),
        ]
        m = Milestone(addiction=_addiction(), goals=goals)
        session.add(m)
        await session.commit()

        session.expunge_all()
        loaded = await session.get(Milestone, m.id)
        assert [slot.goal for slot in loaded.goals] == goals
        assert loaded.unreadable_goals == []

    @pytest.mark.asyncio
    async def test_slot_mutation_is_persisted(self, session):
        m = Milestone(
            addiction=_addiction(),
            goals=[MeetingsGoal(title="10 meetings", target_meetings_count=10)],
        )
        session.add(m)
        await session.commit()

        m.goals[0].goal.update_meetings_count(10)
        await session.commit()

        session.expunge_all()
        loaded = await session.get(Milestone, m.id)
        assert loaded.goals[0].is_completed is True
        assert loaded.goals[0].goal.current_meetings_count == 10

    @pytest.mark.asyncio
    async def test_rolled_back_slot_edit_is_discarded(self, session):
        m = Milestone(
            addiction=_addiction(),
            goals=[MeetingsGoal(title="10 meetings", target_meetings_count=10)],
        )
        session.add(m)
        await session.commit()

        m.goals[0].goal.update_meetings_count(10)
        await session.rollback()
        await session.commit()

        assert m.goals[0].is_completed is False
        session.expunge_all()
        loaded = await session.get(Milestone, m.id)
        assert loaded.goals[0].is_completed is False
        assert loaded.goals[0].goal.current_meetings_count == 0

    @pytest.mark.asyncio
    async def test_new_addiction_collections_readable_after_commit(self, session):
        a = _addiction()
        session.add(a)
        await session.commit()
        assert a.savings == []
        assert a.milestones == []

    @pytest.mark.asyncio
    async def test_unreadable_goal_is_isolated_and_kept(self, session):
        m = Milestone(addiction=_addiction())
        session.add(m)
        await session.commit()
        # Drop the in-memory slots so the raw write below is what gets loaded.
        session.expunge_all()

        good = clean_time_record("1 day", 86_400)
        bad = {"goalType": "unknownType", "goal": {}}
        await session.execute(update(Milestone).where(Milestone.id == m.id).values(goal_records=[bad, good]))
        await session.commit()

        session.expunge_all()
        loaded = await session.get(Milestone, m.id)
        assert [slot.title for slot in loaded.goals] == ["1 day"]
        assert len(loaded.unreadable_goals) == 1
        assert loaded.unreadable_goals[0].position == 0

        loaded.goals[0].complete()
        await session.commit()

        stored = await session.scalar(select(Milestone.goal_records).where(Milestone.id == m.id))
        assert stored[0] == bad
        assert stored[1]["goal"]["isCompleted"] is True
