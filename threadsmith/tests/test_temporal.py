"""Tests for time expressions, staleness and recurring topics."""


class TestExtractTimeContext:
    def test_yesterday(self):
        from threadsmith.context.temporal import extract_time_context
        ctx = extract_time_context("yesterday we started this")

        assert ctx.relative.model_dump() == {"value": 1, "unit": "days", "raw": "yesterday"}
        assert ctx.deadline is None
        assert ctx.duration is None

    def test_relative_amounts(self):
        from threadsmith.context.temporal import extract_time_context
        hours = extract_time_context("deployed 3 hours ago").relative
        assert (hours.value, hours.unit, hours.raw) == (3, "hours", "3 hours ago")

        days = extract_time_context("it broke 2 days ago").relative
        assert (days.value, days.unit) == (2, "days")

        weeks = extract_time_context("since 1 week ago").relative
        assert (weeks.value, weeks.unit) == (1, "weeks")

    def test_relative_fixed_values(self):
        from threadsmith.context.temporal import extract_time_context
        morning = extract_time_context("saw it this morning").relative
        assert (morning.value, morning.unit) == (12, "hours")

        now = extract_time_context("it is failing right now").relative
        assert (now.value, now.unit) == (0, "minutes")

    def test_deadlines(self):
        from threadsmith.context.temporal import extract_time_context
        weekday = extract_time_context("need this by Friday").deadline
        assert (weekday.target, weekday.type) == ("Friday", "weekday")

        period = extract_time_context("ship it by end of sprint").deadline
        assert (period.target, period.type) == ("sprint", "period")

        due = extract_time_context("this is due before the release").deadline
        assert (due.target, due.type) == ("the release", "deadline")

        left = extract_time_context("we have 3 days left").deadline
        assert (left.target, left.type) == ("3", "duration")

    def test_durations(self):
        from threadsmith.context.temporal import extract_time_context
        ongoing = extract_time_context("running for 3 hours").duration
        assert (ongoing.value, ongoing.type) == (3, "ongoing")

        elapsed = extract_time_context("been broken for the past 2 days").duration
        assert (elapsed.value, elapsed.type) == (2, "elapsed")

    def test_word_boundaries(self):
        from threadsmith.context.temporal import extract_time_context
        assert extract_time_context("nearby stores").deadline is None

    def test_empty(self):
        from threadsmith.context.temporal import extract_time_context
        assert extract_time_context("").is_empty
        assert extract_time_context(None).is_empty
        assert extract_time_context("nothing temporal here").is_empty


class TestStaleness:
    def _linked_task(self, engine):
        engine.process_message("C1", "the login bug is back", "alice")
        engine.link_task_to_origin("42", "C1", title="Fix login bug")

    def test_stale_task_is_reported(self, engine, clock):
        from threadsmith.context.temporal import StalenessAlert
        self._linked_task(engine)
        clock.advance(hours=25)

        alerts = engine.analyze_temporal_patterns("C1").staleness_alerts

        assert alerts == [StalenessAlert(task="fix login bug", hours_since_activity=25, last_mentioned_by="alice")]

    def test_not_stale_within_limit(self, engine, clock):
        self._linked_task(engine)
        clock.advance(hours=24)
        assert engine.analyze_temporal_patterns("C1").staleness_alerts == []

    def test_hours_round_half_up(self, engine, clock):
        self._linked_task(engine)
        clock.advance(hours=25.5)
        alert = engine.analyze_temporal_patterns("C1").staleness_alerts[0]
        assert alert.hours_since_activity == 26

    def test_done_tasks_are_not_stale(self, engine, clock):
        self._linked_task(engine)
        engine.update_task_status("C1", "42", "done")
        clock.advance(hours=30)
        assert engine.analyze_temporal_patterns("C1").staleness_alerts == []

    def test_tasks_without_id_are_ignored(self, engine, clock):
        engine.process_message("C1", "we need to fix the search page", "alice")
        clock.advance(hours=30)
        assert engine.analyze_temporal_patterns("C1").staleness_alerts == []

    def test_scan_closes_idle_threads(self, engine, clock):
        self._linked_task(engine)
        clock.advance(hours=1)
        engine.analyze_temporal_patterns("C1")
        assert engine.get_active_thread("C1") is None

    def test_unknown_channel(self, engine):
        patterns = engine.analyze_temporal_patterns("nope")
        assert patterns.staleness_alerts == []
        assert patterns.recurring_topics == []
        assert patterns.urgency_trends == []
        assert patterns.deadline_warnings == []


class TestRecurringTopics:
    def test_topics_seen_twice(self, engine, clock):
        from threadsmith.context.temporal import RecurringTopic
        engine.process_message("C1", "the login bug is back", "alice")
        clock.advance(minutes=1)
        engine.process_message("C1", "anyway, the billing issue", "bob")
        clock.advance(minutes=1)
        engine.process_message("C1", "anyway, the login bug again", "carol")

        topics = engine.analyze_temporal_patterns("C1").recurring_topics
        assert topics == [RecurringTopic(topic="login", count=2)]
