"""
Content classification by fixed phrase patterns.

Each :class:`PatternRule` is a named, independently testable predicate tagged
with the :class:`~suppressor.datatypes.moderation_datatypes.Intent` it
recognizes. Outage-report rules only match direct "is it down" questions and
pasted error codes.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, List, Optional, Sequence

from suppressor.datatypes.moderation_datatypes import Intent
from suppressor.util.logger import get_logger

logger = get_logger("pattern_matcher")


class PatternCompileError(Exception):
    """Raised when a built-in or configured pattern is not a valid regex."""


@dataclass(frozen=True)
class PatternDefinition:
    """Uncompiled rule source.

    Attributes:
        name: Identifier used in logs and tests.
        intent: What a match means.
        pattern: Regular expression searched anywhere in the body.
        case_sensitive: Whether letter case must match.
        excluded_prefix: Regex that must not end right before a match. It stands
            in for a variable-width negative look-behind, which ``re`` lacks.
    """

    name: str
    intent: Intent
    pattern: str
    case_sensitive: bool = False
    excluded_prefix: Optional[str] = None


@dataclass(frozen=True)
class PatternRule:
    """A compiled :class:`PatternDefinition`."""

    name: str
    intent: Intent
    regex: re.Pattern
    excluded_prefix: Optional[re.Pattern] = field(default=None)

    @classmethod
    def compile(cls, definition: PatternDefinition) -> "PatternRule":
        flags = 0 if definition.case_sensitive else re.IGNORECASE
        try:
            regex = re.compile(definition.pattern, flags)
            excluded = None
            if definition.excluded_prefix:
                # Anchored at the end of the text preceding a candidate match
                excluded = re.compile(f"(?:{definition.excluded_prefix})$", flags)
        except re.error as exc:
            raise PatternCompileError(f"Pattern '{definition.name}' is malformed: {exc}") from exc
        return cls(name=definition.name, intent=definition.intent, regex=regex, excluded_prefix=excluded)

    def matches(self, text: str) -> bool:
        for match in self.regex.finditer(text):
            if self.excluded_prefix is None or not self.excluded_prefix.search(text, 0, match.start()):
                return True
        return False


# Status codes users paste when the API fails: 50x, 52x, 404 or a literal "undefined"
_ERROR_CODE = r"(?:\b5[02]\d\b|\b404\b|\bundefined\b)"

INCIDENT_REPORT_PATTERNS: Sequence[PatternDefinition] = (
    PatternDefinition(
        name="is_service_down",
        intent=Intent.REPORTS_INCIDENT,
        pattern=r"\bis\s+(?:sb|sponsorblock|(?:the\s+)?server)\s+(?:\w+\s+)?(?:down|dead|working)\b(?:\s*\?)?",
        excluded_prefix=r"(?:why|how)\s+",
    ),
    PatternDefinition(
        name="error_code",
        intent=Intent.REPORTS_INCIDENT,
        pattern=rf"\bcode:?\s+{_ERROR_CODE}",
    ),
    PatternDefinition(
        name="got_error",
        intent=Intent.REPORTS_INCIDENT,
        pattern=rf"\b(?:got|get(?:ting)?|is)(?:\s+a)?\s+{_ERROR_CODE}\s+(?:error|exception|code)\b",
    ),
)

PRIVATE_IDENTIFIER_PATTERNS: Sequence[PatternDefinition] = (
    PatternDefinition(
        name="private_user_id",
        intent=Intent.LEAKS_PRIVATE_IDENTIFIER,
        # 36 alphanumerics with at least one letter and one digit; longer hex
        # public ids and plain words are rejected by the word boundaries
        pattern=r"(?<![A-Za-z0-9])(?=[A-Za-z0-9]{0,35}[0-9])(?=[A-Za-z0-9]{0,35}[A-Za-z])[A-Za-z0-9]{36}(?![A-Za-z0-9])",
        case_sensitive=True,
    ),
    PatternDefinition(
        name="legacy_uuid_user_id",
        intent=Intent.LEAKS_PRIVATE_IDENTIFIER,
        pattern=r"(?<![0-9a-f-])[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}(?![0-9a-f-])",
        case_sensitive=True,
    ),
)

DEFAULT_PATTERNS: Sequence[PatternDefinition] = (*PRIVATE_IDENTIFIER_PATTERNS, *INCIDENT_REPORT_PATTERNS)


class PatternMatcher:
    """Ordered, read-only set of compiled rules.

    Compilation happens once in the constructor; a malformed definition raises
    :class:`PatternCompileError`, which startup treats as fatal.
    """

    def __init__(self, definitions: Iterable[PatternDefinition] = DEFAULT_PATTERNS) -> None:
        self._rules: List[PatternRule] = [PatternRule.compile(definition) for definition in definitions]
        logger.debug("[PATTERN MATCHER] Compiled %d rules: %s", len(self._rules), ", ".join(r.name for r in self._rules))

    @property
    def rules(self) -> Sequence[PatternRule]:
        return tuple(self._rules)

    def rule(self, name: str) -> PatternRule:
        for rule in self._rules:
            if rule.name == name:
                return rule
        raise KeyError(name)

    def classify(self, text: str) -> FrozenSet[Intent]:
        """Return every intent with at least one matching rule."""
        if not text:
            return frozenset()
        found = set()
        for rule in self._rules:
            if rule.intent not in found and rule.matches(text):
                found.add(rule.intent)
        return frozenset(found)

    def matches(self, text: str, intent: Intent) -> bool:
        """Return True if any rule for ``intent`` matches, stopping at the first hit."""
        if not text:
            return False
        return any(rule.matches(text) for rule in self._rules if rule.intent is intent)
