"""End-to-end auto-scan check.

Usage:
    with SonarClient(config.url, config.token) as client:
        result = AutoScanScenario(config, client).run()   # raises AssertionMismatch

Steps:
    1. Maven analysis (reference), then scanner analysis in batch mode
    2. number of differences reported by the differ == baseline.differences
    3. collect every OPEN issue of the project
    4. count missing / new issues per rule
    5. render the per-rule report
    6. rendered report == baseline.report, byte for byte
"""

import difflib
import logging
import tempfile
from dataclasses import dataclass
from pathlib import Path

from sonar_autoscan.analysis import AnalysisBuilds, BuildRunner, read_differences_count
from sonar_autoscan.client import SonarClient
from sonar_autoscan.config import Config, ConfigError
from sonar_autoscan.models import DifferenceReport
from sonar_autoscan.reports.differences import calculate_differences, render_report
from sonar_autoscan.reports.issues import get_open_issues

logger = logging.getLogger(__name__)


class AssertionMismatch(AssertionError):
    """Raised when an actual result differs from its baseline."""

    def __init__(self, label: str, expected: str, actual: str) -> None:
        self.label = label
        self.expected = expected
        self.actual = actual
        super().__init__(f"{label} does not match the baseline:\n{unified_diff(expected, actual)}")


def unified_diff(expected: str, actual: str) -> str:
    lines = difflib.unified_diff(
        expected.splitlines(keepends=True),
        actual.splitlines(keepends=True),
        fromfile="expected",
        tofile="actual",
    )
    return "".join(line if line.endswith("\n") else line + "\n" for line in lines)


def assert_matches(label: str, expected: str, actual: str) -> None:
    if expected != actual:
        raise AssertionMismatch(label, expected, actual)


@dataclass
class ScenarioResult:
    differences: int
    report: DifferenceReport
    rendered: str


class AutoScanScenario:
    """Runs both analyses and checks their differences against the baselines."""

    def __init__(
        self,
        config: Config,
        client: SonarClient,
        runner: BuildRunner | None = None,
    ) -> None:
        config.require_baseline()
        self.config = config
        self.client = client
        self.runner = runner or BuildRunner()

    def run(self) -> ScenarioResult:
        with tempfile.TemporaryDirectory(prefix="autoscan-") as work_dir:
            builds = AnalysisBuilds.create(self.config, Path(work_dir))
            # the scanner run compares against the dump of the maven run
            self.runner.execute(builds.maven)
            self.runner.execute(builds.scanner)

            differences = read_differences_count(builds.scanner_differences)
            logger.info("Issues differences: %d", differences)
            assert_matches(
                "Issues differences",
                f"Issues differences: {self.config.expected_differences}\n",
                f"Issues differences: {differences}\n",
            )

            return self.check_report(differences)

    def check_report(self, differences: int) -> ScenarioResult:
        """Steps 3 to 6: collect, aggregate, render and compare the report."""
        issues = get_open_issues(self.client, self.config.project_key, self.config.page_size)
        report = calculate_differences(issues)
        rendered = render_report(report)
        logger.info(
            "%d rules with differences: %d missing, %d new",
            report.rule_count, report.total_missing, report.total_new,
        )

        try:
            expected = Path(self.config.baseline_report).read_bytes().decode("utf-8")
        except OSError as exc:
            raise ConfigError(
                f"Cannot read baseline report '{self.config.baseline_report}': {exc}"
            ) from exc
        assert_matches("Differences by rule", expected, rendered)
        return ScenarioResult(differences=differences, report=report, rendered=rendered)
