"""Per-rule difference report.

Functions:
    classify(severity)               -> "missing" | "new"
    calculate_differences(issues)    -> DifferenceReport
    render_report(report)            -> str
    report_to_json(report, ...)      -> dict

The differ plugin pushes every difference between the two analyses as an
issue and encodes its kind in the severity: BLOCKER for an issue the full
analysis found and the auto-scan analysis did not (missing), anything else
for an issue only the auto-scan analysis raised (new).
"""

from typing import Iterable

from sonar_autoscan.models import SEVERITIES, DifferenceReport, Issue, IssueDiff
from sonar_autoscan.rules import rule_key_sort_key, strip_repository

MISSING = "missing"
NEW = "new"

_MISSING_SEVERITY = SEVERITIES[0]

_SEPARATOR = "-----;-----;-----"
_HEADER = "Rule;Missing;New"


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------

def classify(severity: str) -> str:
    """Return the kind of difference encoded by *severity*."""
    return MISSING if severity == _MISSING_SEVERITY else NEW


def calculate_differences(issues: Iterable[Issue]) -> DifferenceReport:
    """Count missing and new issues per rule key.

    Raises:
        MalformedRuleKey: if an issue's rule is not ``<repo>:<letter><digits>``.
    """
    by_rule: dict[str, IssueDiff] = {}
    for issue in issues:
        rule_key = strip_repository(issue.rule)
        diff = by_rule.get(rule_key)
        if diff is None:
            diff = by_rule[rule_key] = IssueDiff(rule_key)
        diff.update(classify(issue.severity))

    ordered = sorted(by_rule.values(), key=lambda d: rule_key_sort_key(d.rule_key))
    return DifferenceReport(diffs=tuple(d.freeze() for d in ordered))


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------

def render_report(report: DifferenceReport) -> str:
    lines = [_HEADER, _SEPARATOR]
    lines.extend(f"{d.rule_key};{d.missing};{d.new}" for d in report.diffs)
    lines.append(_SEPARATOR)
    lines.append(_HEADER)
    lines.append(f"{report.rule_count};{report.total_missing};{report.total_new}")
    return "\n".join(lines) + "\n"


def report_to_json(report: DifferenceReport, project_key: str) -> dict:
    """Same data as ``render_report``, structured for JSON output."""
    return {
        "report_type": "autoscan_differences",
        "project_key": project_key,
        **report.to_dict(),
    }
