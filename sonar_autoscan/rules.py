"""Rule keys and their ordering.

Usage:
    key = strip_repository("java:S1028")        # -> "S1028"
    sort_rule_keys(["S1028", "S128", "S2"])     # -> ["S2", "S128", "S1028"]
    compare_rule_keys("S128", "S1028")          # -> -1

Rule keys are one letter followed by digits. They are ordered by letter,
then by the numeric value of the digits, so "S128" comes before "S1028".
"""

import functools
import re
from typing import Iterable

_RULE_KEY_RE = re.compile(r"([A-Za-z])([0-9]+)")


class MalformedRuleKey(ValueError):
    """Raised when a rule identifier does not have the ``<letter><digits>`` shape."""


def strip_repository(rule: str) -> str:
    """Return the rule key of a namespaced rule id (``"java:S100"`` -> ``"S100"``).

    Raises:
        MalformedRuleKey: if *rule* has no repository prefix or the remaining
                          key is not a valid rule key.
    """
    repository, sep, key = rule.partition(":")
    if not sep or not repository:
        raise MalformedRuleKey(f"Rule '{rule}' has no repository prefix")
    parse_rule_key(key)
    return key


def parse_rule_key(key: str) -> tuple[str, int]:
    """Split a rule key into its letter and its number."""
    match = _RULE_KEY_RE.fullmatch(key)
    if match is None:
        raise MalformedRuleKey(
            f"Invalid rule key '{key}': expected one letter followed by digits"
        )
    return match.group(1), int(match.group(2))


def rule_key_sort_key(key: str) -> tuple[str, int, str]:
    # the raw key breaks ties between "S0128" and "S128"
    letter, number = parse_rule_key(key)
    return letter, number, key


def compare_rule_keys(left: str, right: str) -> int:
    """Three-way comparison of two rule keys: -1, 0 or 1."""
    a = rule_key_sort_key(left)
    b = rule_key_sort_key(right)
    return (a > b) - (a < b)


def sort_rule_keys(keys: Iterable[str]) -> list[str]:
    return sorted(keys, key=functools.cmp_to_key(compare_rule_keys))
