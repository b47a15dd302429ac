"""
Unit Tests for StepChain Schedulers

Tests for:
- InlineScheduler: trampolining without nested invocations
- QueueScheduler: manual, deterministic draining
- AsyncioScheduler: event-loop scheduling
- create_scheduler factory
"""

import asyncio

import pytest

from stepchain import (
    AsyncioScheduler,
    Chain,
    InlineScheduler,
    QueueScheduler,
    ResolverMisuseError,
    StepScheduler,
    awaiting,
    create_scheduler,
    returning,
)
from stepchain.testing import DeferredStep, RecordingStep, assert_fulfilled, assert_rejected


class TrackingUnit:
    """Scheduled unit that records depth to detect nested invocations."""

    def __init__(self, name: str, scheduler: StepScheduler, reschedule: int = 0):
        self.name = name
        self.scheduler = scheduler
        self.reschedule = reschedule
        self.run_ids: list[str | None] = []
        self.depth = 0
        self.max_depth = 0

    def run_scheduled_unit(self, run_id=None):
        self.depth += 1
        self.max_depth = max(self.max_depth, self.depth)
        self.run_ids.append(run_id)
        if self.reschedule > 0:
            self.reschedule -= 1
            self.scheduler.schedule_next(self)
        self.depth -= 1


# ══════════════════════════════════════════════════════════════════════════════
#                           InlineScheduler Tests
# ══════════════════════════════════════════════════════════════════════════════


class TestInlineScheduler:
    def test_runs_immediately(self):
        scheduler = InlineScheduler()
        unit = TrackingUnit("u", scheduler)

        scheduler.schedule_next(unit)

        assert len(unit.run_ids) == 1
        assert scheduler.pending == 0
        assert scheduler.units_run == 1

    def test_never_nests(self):
        scheduler = InlineScheduler()
        unit = TrackingUnit("u", scheduler, reschedule=50)

        scheduler.schedule_next(unit)

        assert len(unit.run_ids) == 51
        assert unit.max_depth == 1

    def test_run_ids_are_unique(self):
        scheduler = InlineScheduler()
        unit = TrackingUnit("u", scheduler, reschedule=2)

        scheduler.schedule_next(unit)

        assert len(set(unit.run_ids)) == 3

    def test_recovers_after_unit_raises(self):
        scheduler = InlineScheduler()

        class Exploding:
            name = "boom"

            def run_scheduled_unit(self, run_id=None):
                raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            scheduler.schedule_next(Exploding())

        unit = TrackingUnit("after", scheduler)
        scheduler.schedule_next(unit)
        assert len(unit.run_ids) == 1

    def test_drains_units_queued_behind_one_that_raises(self):
        scheduler = InlineScheduler()
        after = TrackingUnit("after", scheduler)

        class Exploding:
            name = "boom"

            def run_scheduled_unit(self, run_id=None):
                scheduler.schedule_next(after)
                raise RuntimeError("boom")

        with pytest.raises(RuntimeError, match="boom"):
            scheduler.schedule_next(Exploding())

        assert len(after.run_ids) == 1
        assert scheduler.pending == 0

    def test_chain_completes_when_step_raises_after_settling(self):
        scheduler = InlineScheduler()
        second = RecordingStep(name="second")

        def double(value, resolver):
            resolver.resolve("a")
            resolver.resolve("again")

        chain = Chain.create(0, scheduler=scheduler).then(double).then(second)

        with pytest.raises(ResolverMisuseError):
            chain.execute()

        assert second.calls == ["a"]
        assert scheduler.pending == 0
        assert_fulfilled(chain, "a")


# ══════════════════════════════════════════════════════════════════════════════
#                           QueueScheduler Tests
# ══════════════════════════════════════════════════════════════════════════════


class TestQueueScheduler:
    def test_nothing_runs_until_asked(self):
        scheduler = QueueScheduler()
        unit = TrackingUnit("u", scheduler)

        scheduler.schedule_next(unit)

        assert unit.run_ids == []
        assert scheduler.pending == 1

    def test_run_next_fifo_with_sequential_ids(self):
        scheduler = QueueScheduler(run_id_prefix="job")
        first, second = TrackingUnit("a", scheduler), TrackingUnit("b", scheduler)
        scheduler.schedule_next(first)
        scheduler.schedule_next(second)

        assert scheduler.run_next() is True
        assert first.run_ids == ["job-1"]
        assert second.run_ids == []

        assert scheduler.run_next() is True
        assert second.run_ids == ["job-2"]
        assert scheduler.run_next() is False
        assert scheduler.history == ["job-1", "job-2"]

    def test_run_all_includes_units_scheduled_meanwhile(self):
        scheduler = QueueScheduler()
        unit = TrackingUnit("u", scheduler, reschedule=3)
        scheduler.schedule_next(unit)

        assert scheduler.run_all() == 4
        assert scheduler.pending == 0

    def test_run_all_guards_against_endless_rescheduling(self):
        scheduler = QueueScheduler()
        unit = TrackingUnit("u", scheduler, reschedule=100)
        scheduler.schedule_next(unit)

        with pytest.raises(RuntimeError, match="without draining"):
            scheduler.run_all(max_units=10)

    def test_clear(self):
        scheduler = QueueScheduler()
        scheduler.schedule_next(TrackingUnit("u", scheduler))

        scheduler.clear()

        assert scheduler.pending == 0


# ══════════════════════════════════════════════════════════════════════════════
#                           AsyncioScheduler Tests
# ══════════════════════════════════════════════════════════════════════════════


class TestAsyncioScheduler:
    @pytest.mark.asyncio
    async def test_units_run_as_loop_callbacks(self):
        scheduler = AsyncioScheduler()
        unit = TrackingUnit("u", scheduler)

        scheduler.schedule_next(unit)
        assert unit.run_ids == []

        await asyncio.sleep(0)
        assert len(unit.run_ids) == 1

    @pytest.mark.asyncio
    async def test_run_waits_for_terminal_state(self):
        scheduler = AsyncioScheduler()

        async def double(value):
            await asyncio.sleep(0.01)
            return value * 2

        chain = (
            Chain.create(5, scheduler=scheduler)
            .then(awaiting(double))
            .then(returning(lambda v: v + 1))
        )

        result = await scheduler.run(chain, timeout=2)

        assert result is chain
        assert_fulfilled(chain, 11)

    @pytest.mark.asyncio
    async def test_run_times_out_on_stalled_chain(self):
        scheduler = AsyncioScheduler()
        chain = Chain.create(scheduler=scheduler).then(DeferredStep())

        with pytest.raises(asyncio.TimeoutError):
            await scheduler.run(chain, timeout=0.05)

        assert chain.is_pending()

    @pytest.mark.asyncio
    async def test_rejection_from_awaited_step(self):
        scheduler = AsyncioScheduler()
        error = ConnectionError("upstream down")

        async def fetch(value):
            raise error

        chain = Chain.create(scheduler=scheduler).then(awaiting(fetch))

        await scheduler.run(chain, timeout=2)

        assert_rejected(chain, error)

    @pytest.mark.asyncio
    async def test_run_reraises_fault_after_chain_settles(self):
        scheduler = AsyncioScheduler()
        second = RecordingStep(name="second")

        def double(value, resolver):
            resolver.resolve("a")
            resolver.resolve("again")

        chain = Chain.create(0, scheduler=scheduler).then(double).then(second)

        with pytest.raises(ResolverMisuseError):
            await scheduler.run(chain, timeout=2)

        assert second.calls == ["a"]
        assert_fulfilled(chain, "a")

    def test_schedule_without_loop_raises(self):
        scheduler = AsyncioScheduler()

        with pytest.raises(RuntimeError):
            scheduler.schedule_next(TrackingUnit("u", scheduler))

    def test_reusable_across_event_loops(self):
        scheduler = AsyncioScheduler()
        first = Chain.create(1, scheduler=scheduler).then(returning(lambda v: v + 1))
        second = Chain.create(10, scheduler=scheduler).then(returning(lambda v: v + 1))

        asyncio.run(scheduler.run(first, timeout=2))
        asyncio.run(scheduler.run(second, timeout=2))

        assert_fulfilled(first, 2)
        assert_fulfilled(second, 11)


# ══════════════════════════════════════════════════════════════════════════════
#                           Factory Tests
# ══════════════════════════════════════════════════════════════════════════════


class TestCreateScheduler:
    @pytest.mark.parametrize(
        "kind,expected",
        [
            ("inline", InlineScheduler),
            ("queue", QueueScheduler),
            ("asyncio", AsyncioScheduler),
            (" Queue ", QueueScheduler),
        ],
    )
    def test_known_kinds(self, kind, expected):
        assert isinstance(create_scheduler(kind), expected)

    def test_unknown_kind_raises(self):
        with pytest.raises(ValueError, match="Unknown scheduler"):
            create_scheduler("celery")
