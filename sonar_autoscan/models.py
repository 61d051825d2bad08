"""Data models for the auto-scan difference report.

Contains:
    - Issue             one difference pushed to SonarQube by the differ
    - RuleDifferences   final missing / new counts of a single rule
    - IssueDiff         running missing / new counters used while aggregating
    - DifferenceReport  every RuleDifferences, ordered by rule key, with totals
"""

from dataclasses import dataclass, field
from typing import Any

SEVERITIES = ("BLOCKER", "CRITICAL", "MAJOR", "MINOR", "INFO")


@dataclass(frozen=True)
class Issue:
    rule: str
    severity: str
    status: str = "OPEN"
    key: str | None = None
    component: str | None = None
    line: int | None = None
    message: str | None = None

    @classmethod
    def from_json(cls, raw: dict[str, Any]) -> "Issue":
        """Build an Issue from an ``/api/issues/search`` result entry."""
        return cls(
            rule=raw["rule"],
            severity=raw["severity"],
            status=raw.get("status", "OPEN"),
            key=raw.get("key"),
            component=raw.get("component"),
            line=raw.get("line"),
            message=raw.get("message"),
        )


@dataclass(frozen=True)
class RuleDifferences:
    """Final missing / new counts of one rule, as stored in a report."""

    rule_key: str
    missing: int = 0
    new: int = 0

    @property
    def total(self) -> int:
        return self.missing + self.new

    def to_dict(self) -> dict:
        return {"rule": self.rule_key, "missing": self.missing, "new": self.new}


@dataclass
class IssueDiff:
    """Running counters for one rule while issues are being aggregated."""

    rule_key: str
    missing: int = 0
    new: int = 0

    def update(self, kind: str) -> None:
        """Count one difference of *kind* (``"missing"`` or ``"new"``)."""
        if kind == "missing":
            self.missing += 1
        elif kind == "new":
            self.new += 1
        else:
            raise ValueError(f"Unknown difference kind: {kind!r}")

    @property
    def total(self) -> int:
        return self.missing + self.new

    def freeze(self) -> RuleDifferences:
        return RuleDifferences(self.rule_key, self.missing, self.new)


@dataclass(frozen=True)
class DifferenceReport:
    """Per-rule differences, in rule key order.

    Built once by ``calculate_differences``. Rows are ``RuleDifferences``,
    so neither the report nor its rows can be modified afterwards.
    """

    diffs: tuple[RuleDifferences, ...] = field(default_factory=tuple)

    @property
    def rule_count(self) -> int:
        return len(self.diffs)

    @property
    def total_missing(self) -> int:
        return sum(d.missing for d in self.diffs)

    @property
    def total_new(self) -> int:
        return sum(d.new for d in self.diffs)

    @property
    def rule_keys(self) -> list[str]:
        return [d.rule_key for d in self.diffs]

    def get(self, rule_key: str) -> RuleDifferences | None:
        for diff in self.diffs:
            if diff.rule_key == rule_key:
                return diff
        return None

    def to_dict(self) -> dict:
        return {
            "summary": {
                "rules": self.rule_count,
                "missing": self.total_missing,
                "new": self.total_new,
            },
            "rules": [d.to_dict() for d in self.diffs],
        }
