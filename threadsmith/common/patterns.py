"""
Pattern Rules

Ordered (matcher, handler) pairs used by every regex heuristic in the
context engine: topic changes, entity extraction, decision phrases, time
expressions, attention scoring and query routing.

A rule set can be asked for the first hit (priority order), every rule that
hits (additive scoring), or every occurrence of every rule (extraction).
"""

import re
from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Optional


Handler = Callable[[re.Match], Any]


def _group_or_text(match: re.Match) -> str:
    """Default handler: first capture group, or the whole match"""
    if match.re.groups:
        return match.group(1)
    return match.group(0)


@dataclass(frozen=True)
class PatternRule:
    """A named regex paired with the handler that turns a match into a value"""
    name: str
    pattern: re.Pattern
    handler: Handler = _group_or_text

    @classmethod
    def compile(
        cls,
        name: str,
        pattern: str,
        handler: Optional[Handler] = None,
        flags: int = re.IGNORECASE,
    ) -> "PatternRule":
        return cls(name=name, pattern=re.compile(pattern, flags), handler=handler or _group_or_text)

    def search(self, text: str) -> Optional[re.Match]:
        return self.pattern.search(text)

    def apply(self, text: str) -> Any:
        """Run the handler on the first match; None when the rule does not match"""
        match = self.pattern.search(text)
        if match is None:
            return None
        return self.handler(match)


class PatternMatcher:
    """
    An ordered collection of PatternRules.

    Rules can be swapped or reordered without touching the component that
    owns them; the matcher only knows how to walk them.
    """

    def __init__(self, rules: Iterable[PatternRule]):
        self._rules: List[PatternRule] = list(rules)

    @property
    def rules(self) -> List[PatternRule]:
        return list(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def matches_any(self, text: str) -> bool:
        return any(rule.search(text) for rule in self._rules)

    def first(self, text: str) -> Optional[Any]:
        """Handler result of the first rule (in priority order) that matches"""
        for rule in self._rules:
            match = rule.search(text)
            if match is not None:
                return rule.handler(match)
        return None

    def every(self, text: str) -> List[Any]:
        """Handler results of every rule that matches at least once"""
        results = []
        for rule in self._rules:
            match = rule.search(text)
            if match is not None:
                results.append(rule.handler(match))
        return results

    def find_all(self, text: str) -> List[Any]:
        """Handler results for every occurrence of every rule, rule by rule"""
        results = []
        for rule in self._rules:
            for match in rule.pattern.finditer(text):
                results.append(rule.handler(match))
        return results
