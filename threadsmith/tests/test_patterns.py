"""Tests for ordered pattern rules."""

import re


class TestPatternRule:
    def test_default_handler_returns_first_group(self):
        from threadsmith.common.patterns import PatternRule
        rule = PatternRule.compile("fix", r"fix\s+(\w+)")
        assert rule.apply("please FIX login") == "login"

    def test_default_handler_without_groups_returns_match(self):
        from threadsmith.common.patterns import PatternRule
        rule = PatternRule.compile("urgent", r"urgent|asap")
        assert rule.apply("need it ASAP") == "ASAP"

    def test_no_match_returns_none(self):
        from threadsmith.common.patterns import PatternRule
        rule = PatternRule.compile("urgent", r"urgent")
        assert rule.apply("whenever") is None

    def test_case_sensitive_flags(self):
        from threadsmith.common.patterns import PatternRule
        rule = PatternRule.compile("caps", r"[A-Z]\w+", flags=0)
        assert rule.apply("lower Upper") == "Upper"

    def test_custom_handler(self):
        from threadsmith.common.patterns import PatternRule
        rule = PatternRule.compile("num", r"(\d+)", handler=lambda m: int(m.group(1)) * 2)
        assert rule.apply("issue 21") == 42


class TestPatternMatcher:
    def _matcher(self):
        from threadsmith.common.patterns import PatternMatcher, PatternRule
        return PatternMatcher([
            PatternRule.compile("first", r"alpha", handler=lambda m: "first"),
            PatternRule.compile("second", r"alpha|beta", handler=lambda m: "second"),
            PatternRule.compile("third", r"gamma", handler=lambda m: "third"),
        ])

    def test_first_respects_priority(self):
        matcher = self._matcher()
        assert matcher.first("beta alpha") == "first"
        assert matcher.first("beta") == "second"
        assert matcher.first("delta") is None

    def test_every_returns_each_matching_rule_once(self):
        matcher = self._matcher()
        assert matcher.every("alpha alpha gamma") == ["first", "second", "third"]

    def test_find_all_returns_every_occurrence_rule_by_rule(self):
        from threadsmith.common.patterns import PatternMatcher, PatternRule
        matcher = PatternMatcher([
            PatternRule.compile("fix", r"fix\s+(\w+)"),
            PatternRule.compile("bug", r"bug\s+in\s+(\w+)"),
        ])
        text = "bug in parser, fix login and fix search"
        assert matcher.find_all(text) == ["login", "search", "parser"]

    def test_matches_any_and_len(self):
        matcher = self._matcher()
        assert len(matcher) == 3
        assert matcher.matches_any("GAMMA")
        assert not matcher.matches_any("delta")

    def test_rules_is_a_copy(self):
        matcher = self._matcher()
        matcher.rules.clear()
        assert len(matcher) == 3
        assert isinstance(matcher.rules[0].pattern, re.Pattern)
