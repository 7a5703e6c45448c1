"""Tests for linking tickets to their originating conversation."""


class TestLinkTaskToOrigin:
    def test_link_creates_origin(self, engine, clock):
        engine.process_message("C1", "@alice can you fix the login page", "bob")
        thread = engine.get_active_thread("C1")

        origin = engine.link_task_to_origin(
            "42", "C1",
            messages=[{"content": "login page is broken", "username": "bob"}],
        )

        assert origin.task_id == "42"
        assert origin.thread_id == thread.id
        assert [(m.username, m.content, m.timestamp) for m in origin.messages] == [
            ("bob", "login page is broken", clock()),
        ]
        assert "login page" in origin.entities
        assert thread.task_created is True
        assert thread.task_id == "42"

    def test_link_without_thread(self, engine):
        origin = engine.link_task_to_origin("7", "C9")
        assert origin.thread_id is None
        assert origin.messages == []
        assert engine.get_task_origin("7") is origin

    def test_last_write_wins(self, engine):
        engine.process_message("C1", "the login bug is back", "alice")
        engine.link_task_to_origin("42", "C1", messages=[{"content": "first", "username": "a"}])
        engine.link_task_to_origin("42", "C1", messages=[{"content": "second", "username": "b"}])

        origin = engine.get_task_origin("42")
        assert [m.content for m in origin.messages] == ["second"]
        assert len(engine.store.task_origins) == 1

    def test_relink_moves_thread_binding(self, engine, clock):
        engine.process_message("C1", "the login bug is back", "alice")
        first = engine.get_active_thread("C1")
        engine.link_task_to_origin("42", "C1")

        clock.advance(minutes=1)
        engine.process_message("C1", "anyway, the billing issue", "bob")
        second = engine.get_active_thread("C1")
        engine.link_task_to_origin("42", "C1")

        assert first.task_id is None
        assert first.task_created is False
        assert second.task_id == "42"
        assert engine.threads.get_thread_by_task_id("42") is second

    def test_explicit_thread_id(self, engine, clock):
        engine.process_message("C1", "the login bug is back", "alice")
        first = engine.get_active_thread("C1")
        clock.advance(minutes=1)
        engine.process_message("C1", "anyway, the billing issue", "bob")

        origin = engine.link_task_to_origin("42", "C1", thread_id=first.id)

        assert origin.thread_id == first.id
        assert first.task_id == "42"

    def test_defaults_to_latest_thread_decision(self, engine):
        engine.process_message("C1", "let's use redis for caching", "alice")

        origin = engine.link_task_to_origin("9", "C1")

        assert origin.decision.what == "use redis for caching"
        assert origin.decision.related_task_id == "9"
        assert engine.get_recent_decisions("C1")[0].related_task_id == "9"

    def test_explicit_decision(self, engine):
        enriched = engine.process_message("C1", "let's use redis for caching", "alice")
        engine.process_message("C1", "let's also add metrics", "bob")

        origin = engine.link_task_to_origin("9", "C1", decision=enriched.decision)

        assert origin.decision.what == "use redis for caching"

    def test_title_registers_task_entity(self, engine):
        from threadsmith.common.schemas import TaskStatus
        engine.process_message("C1", "the login bug is back", "alice")
        engine.link_task_to_origin("42", "C1", title="Fix login bug")

        record = engine.get_entity_map("C1").find_task_by_id("42")
        assert record.title == "Fix login bug"
        assert record.status == TaskStatus.MENTIONED


class TestOriginLookup:
    def test_add_message(self, engine, clock):
        engine.link_task_to_origin("42", "C1")
        clock.advance(minutes=5)

        assert engine.add_message_to_task_origin("42", "any update?", "carol") is True
        assert engine.add_message_to_task_origin("43", "any update?", "carol") is False

        origin = engine.get_task_origin("42")
        assert origin.messages[-1].render() == "carol: any update?"
        assert origin.updated_at == clock()

    def test_find_by_keyword(self, engine):
        engine.link_task_to_origin("1", "C1", messages=[{"content": "Search is slow", "username": "a"}])
        engine.link_task_to_origin("2", "C2", messages=[{"content": "search crashes", "username": "b"}])

        assert engine.find_task_origin_by_keyword("SEARCH").task_id == "1"
        assert engine.find_task_origin_by_keyword("search", channel_id="C2").task_id == "2"
        assert engine.find_task_origin_by_keyword("billing") is None
        assert engine.find_task_origin_by_keyword("") is None

    def test_summary_and_full_context(self, engine, clock):
        from threadsmith.common.timefmt import to_iso
        engine.process_message("C1", "let's use redis for caching because it is fast", "alice")
        created = clock()
        engine.link_task_to_origin("9", "C1", messages=[
            {"content": "m1", "username": "a"},
            {"content": "m2", "username": "b"},
            {"content": "m3", "username": "c"},
            {"content": "m4", "username": "d"},
        ])
        clock.advance(hours=2)

        summary = engine.linker.get_task_origin_summary("9")
        assert summary["message_count"] == 4
        assert summary["recent_messages"] == ["b: m2", "c: m3", "d: m4"]
        assert summary["decision"] == {"what": "use redis for caching", "why": "it is fast", "who": "alice"}
        assert summary["age"] == "2 hours ago"

        full = engine.linker.get_full_context("9")
        assert len(full["full_conversation"]) == 4
        assert full["full_conversation"][0]["time"] == "2 hours ago"
        assert full["created_at"] == to_iso(created)
        assert full["decision"]["related_task_id"] == "9"

        assert engine.linker.get_task_origin_summary("nope") is None
        assert engine.linker.get_full_context("nope") is None

    def test_task_context_for_ai(self, engine):
        engine.process_message("C1", "let's use redis for caching because it is fast", "alice")
        engine.link_task_to_origin("9", "C1", messages=[{"content": "cache misses everywhere", "username": "bob"}])

        text = engine.get_task_context_for_ai("9")

        assert text.startswith("**Task #9 Origin:**")
        assert "Created just now" in text
        assert "**Decision:** use redis for caching" in text
        assert "**Reason:** it is fast" in text
        assert "**Decided by:** alice" in text
        assert "  bob: cache misses everywhere" in text
        assert engine.get_task_context_for_ai("404") is None
