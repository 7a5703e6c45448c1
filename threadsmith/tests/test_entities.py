"""Tests for entity extraction, registry and reference resolution."""


class TestExtractEntities:
    def test_people_skip_short_words_stopwords_and_digits(self):
        from threadsmith.context.entities import extract_entities
        entities = extract_entities("@bob and the 123 team")
        assert entities.people == ["bob", "team"]

    def test_task_phrases(self):
        from threadsmith.context.entities import extract_entities
        entities = extract_entities("we are fixing the auth flow and need to implement dark mode")
        assert entities.tasks == ["auth flow", "dark mode"]

    def test_bug_in_phrases(self):
        from threadsmith.context.entities import extract_entities
        assert extract_entities("there is a bug in the parser").tasks == ["parser"]
        assert extract_entities("an issue with login flow").tasks == ["login flow"]

    def test_features_are_capitalized_runs(self):
        from threadsmith.context.entities import extract_entities
        entities = extract_entities("we shipped Payment Gateway and Dark Mode today")
        assert entities.features == ["Payment Gateway", "Dark Mode"]

    def test_single_capitalized_word_is_not_a_feature(self):
        from threadsmith.context.entities import extract_entities
        assert extract_entities("Deploy went fine").features == []

    def test_empty_content(self):
        from threadsmith.context.entities import extract_entities
        assert extract_entities("").is_empty()
        assert extract_entities("   ").is_empty()

    def test_concepts_reserved(self):
        from threadsmith.context.entities import extract_entities
        assert extract_entities("Payment Gateway keeps failing").concepts == []


class TestEntityMap:
    def test_add_person_normalizes(self):
        from threadsmith.context.entities import EntityMap
        entity_map = EntityMap("C1")
        entity_map.add_person("@Alice", github="alice-gh")
        entity_map.add_person("alice")

        assert list(entity_map.people) == ["alice"]
        assert entity_map.people["alice"].mentions == 2
        assert entity_map.people["alice"].github == "alice-gh"

    def test_add_task_key_is_truncated(self):
        from threadsmith.context.entities import EntityMap
        entity_map = EntityMap("C1")
        title = "Refactor " + "x" * 60
        record = entity_map.add_task(title)

        key = next(iter(entity_map.tasks))
        assert len(key) == 50
        assert key == title.lower()[:50]
        assert record.title == title

    def test_add_task_status(self):
        from threadsmith.common.schemas import TaskStatus
        from threadsmith.context.entities import EntityMap
        entity_map = EntityMap("C1")

        record = entity_map.add_task("login bug", task_id="42")
        assert record.status == TaskStatus.MENTIONED

        entity_map.update_task_status("42", TaskStatus.IN_PROGRESS)
        entity_map.add_task("login bug")
        assert record.status == TaskStatus.IN_PROGRESS
        assert record.task_id == "42"
        assert record.mentions == 2

    def test_update_task_status_unknown_id(self):
        from threadsmith.common.schemas import TaskStatus
        from threadsmith.context.entities import EntityMap
        entity_map = EntityMap("C1")
        entity_map.add_task("login bug")
        assert entity_map.update_task_status("99", TaskStatus.DONE) is False

    def test_tracker_statuses_are_kept_verbatim(self):
        from threadsmith.common.schemas import TaskStatus
        from threadsmith.context.entities import EntityMap
        entity_map = EntityMap("C1")

        record = entity_map.add_task("search page", status="open")
        assert record.status == "open"

        entity_map.add_task("login bug", task_id="42", status=" In_Progress ")
        assert entity_map.find_task_by_id("42").status is TaskStatus.IN_PROGRESS

        assert entity_map.update_task_status("42", "blocked") is True
        assert entity_map.find_task_by_id("42").status == "blocked"

    def test_blank_status_changes_nothing(self):
        from threadsmith.common.schemas import TaskStatus
        from threadsmith.context.entities import EntityMap
        entity_map = EntityMap("C1")
        record = entity_map.add_task("login bug", task_id="42", status=["done"])

        assert record.status == TaskStatus.MENTIONED
        assert entity_map.update_task_status("42", "  ") is False
        assert entity_map.update_task_status("42", None) is False
        assert record.status == TaskStatus.MENTIONED

    def test_last_mention_uses_clock(self, clock):
        from threadsmith.context.entities import EntityMap
        entity_map = EntityMap("C1", clock=clock)
        clock.advance(minutes=3)
        record = entity_map.add_feature("Dark Mode")
        assert record.last_mention == clock()
        assert entity_map.last_updated == clock()

    def test_register_order(self):
        from threadsmith.common.schemas import EntityType
        from threadsmith.context.entities import EntityMap, ExtractedEntities
        entity_map = EntityMap("C1")
        entity_map.register(ExtractedEntities(people=["bob"], tasks=["login"], features=["Dark Mode"]))

        assert [e.type for e in entity_map.focus_stack] == [
            EntityType.FEATURE, EntityType.TASK, EntityType.PERSON,
        ]
        assert entity_map.counts() == {"people": 1, "tasks": 1, "features": 1, "focus_stack_size": 3}


class TestFocusStack:
    def test_focus_stack_is_capped(self):
        from threadsmith.context.entities import EntityMap
        entity_map = EntityMap("C1")
        for i in range(12):
            entity_map.add_feature(f"Feature {i}")

        assert len(entity_map.focus_stack) == 10
        assert entity_map.focus_stack[0].name == "Feature 11"
        assert entity_map.focus_stack[-1].name == "Feature 2"

    def test_remention_moves_to_front_without_duplicate(self):
        from threadsmith.context.entities import EntityMap
        entity_map = EntityMap("C1")
        entity_map.add_feature("Dark Mode")
        entity_map.add_person("bob")
        entity_map.add_feature("Dark Mode")

        names = [e.name for e in entity_map.focus_stack]
        assert names == ["Dark Mode", "bob"]

    def test_same_name_different_type_are_separate(self):
        from threadsmith.context.entities import EntityMap
        entity_map = EntityMap("C1")
        entity_map.add_person("login")
        entity_map.add_task("login")
        assert len(entity_map.focus_stack) == 2

    def test_custom_size(self):
        from threadsmith.context.entities import EntityMap
        entity_map = EntityMap("C1", focus_stack_size=2)
        for name in ["a1", "b1", "c1"]:
            entity_map.add_person(name)
        assert [e.name for e in entity_map.focus_stack] == ["c1", "b1"]

    def test_current_focus(self):
        from threadsmith.context.entities import EntityMap
        entity_map = EntityMap("C1")
        for name in ["ann", "ben", "cat", "dan"]:
            entity_map.add_person(name)
        assert [e.name for e in entity_map.get_current_focus()] == ["dan", "cat", "ben"]
        assert [e.name for e in entity_map.get_current_focus(1)] == ["dan"]


class TestReferenceResolution:
    def test_it_resolves_to_latest_task_or_feature(self):
        from threadsmith.common.schemas import EntityType
        from threadsmith.context.entities import EntityMap
        entity_map = EntityMap("C1")
        entity_map.add_task("login bug")
        entity_map.add_feature("Dark Mode")
        entity_map.add_person("bob")

        entry = entity_map.resolve_reference("it")
        assert entry.type == EntityType.FEATURE
        assert entry.name == "Dark Mode"

    def test_it_without_candidates_is_none(self):
        from threadsmith.context.entities import EntityMap
        entity_map = EntityMap("C1")
        assert entity_map.resolve_reference("it") is None
        entity_map.add_person("bob")
        assert entity_map.resolve_reference("it") is None

    def test_vague_references(self):
        from threadsmith.context.entities import EntityMap
        entity_map = EntityMap("C1")
        entity_map.add_task("login bug")
        entity_map.add_feature("Dark Mode")
        entity_map.add_person("bob")

        assert entity_map.resolve_reference("the bug").name == "login bug"
        assert entity_map.resolve_reference("The Feature").name == "Dark Mode"
        assert entity_map.resolve_reference("she").name == "bob"
        assert entity_map.resolve_reference("whatever") is None

    def test_resolve_pronouns(self):
        from threadsmith.context.entities import EntityMap, resolve_pronouns
        entity_map = EntityMap("C1")
        entity_map.add_task("login bug")
        entity_map.add_person("bob")

        resolved = resolve_pronouns("can he fix it today?", entity_map)

        assert set(resolved) == {"he", "it"}
        assert resolved["he"].name == "bob"
        assert resolved["it"].name == "login bug"

    def test_resolve_pronouns_whole_words_only(self):
        from threadsmith.context.entities import EntityMap, resolve_pronouns
        entity_map = EntityMap("C1")
        entity_map.add_task("login bug")
        entity_map.add_person("bob")

        assert resolve_pronouns("the theme is item based", entity_map) == {}
