"""Ordered regex rules with first-match-wins evaluation.

A rule pairs a compiled pattern with a normalizer that turns the match
into a value and a validator that can reject it. Rule lists are plain data
so new receipt formats are added by appending a rule.
"""

import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


def _accept(value: object) -> bool:
    return True


@dataclass(frozen=True)
class PatternRule(Generic[T]):
    """A single extraction rule.

    Attributes:
        name: Identifier used in debug logs.
        pattern: Compiled regex searched against the whole text.
        normalize: Converts the match into a value, or ``None`` when the
            match cannot be interpreted.
        validate: Returns ``False`` to reject a normalized value.
    """

    name: str
    pattern: re.Pattern[str]
    normalize: Callable[[re.Match[str]], T | None]
    validate: Callable[[T], bool] = _accept

    def apply(self, text: str) -> T | None:
        """Evaluate the rule against the first occurrence of its pattern."""
        match = self.pattern.search(text)
        if match is None:
            return None
        value = self.normalize(match)
        if value is None or not self.validate(value):
            return None
        return value


def first_match(
    rules: Sequence[PatternRule[T]], text: str
) -> tuple[PatternRule[T], T] | None:
    """Return the first rule yielding a valid value, with that value.

    Later rules are not evaluated once one succeeds.
    """
    for rule in rules:
        value = rule.apply(text)
        if value is not None:
            return rule, value
    return None
