"""Analysis builds: the Maven reference run and the auto-scan run.

Usage:
    builds  = AnalysisBuilds.create(config, work_dir)
    runner  = BuildRunner()
    runner.execute(builds.maven)
    runner.execute(builds.scanner)
    count   = read_differences_count(builds.scanner_differences)

Both builds carry the differ plugin properties (``sonar.lits.*``). The Maven
run dumps the issues found with bytecode and dependencies; the scanner run
uses that dump as its reference and writes the number of differences.
"""

import logging
import re
import subprocess
from dataclasses import dataclass, field
from pathlib import Path

from sonar_autoscan.config import Config

logger = logging.getLogger(__name__)

_DIFFERENCES_RE = re.compile(r"^Issues differences: (\d+)\s*$")
_SECRET_PROPERTIES = ("sonar.token", "sonar.login")


class AnalysisError(Exception):
    """Raised when a build fails or its output cannot be read."""


# ---------------------------------------------------------------------------
# Build descriptions
# ---------------------------------------------------------------------------

@dataclass
class Build:
    name: str
    command: list[str]
    cwd: Path
    properties: dict[str, str] = field(default_factory=dict)

    def args(self) -> list[str]:
        return [*self.command, *(f"-D{k}={v}" for k, v in self.properties.items())]

    def describe(self) -> str:
        """Command line with credentials masked, for logging."""
        shown = [
            f"-D{k}=******" if k in _SECRET_PROPERTIES else f"-D{k}={v}"
            for k, v in self.properties.items()
        ]
        return " ".join([*self.command, *shown])


def _common_properties(config: Config) -> dict[str, str]:
    return {
        "sonar.host.url": config.url,
        "sonar.token": config.token,
        "sonar.projectKey": config.project_key,
        "sonar.projectName": config.project_name,
        "sonar.cpd.exclusions": "**/*",
        "sonar.skipPackageDesign": "true",
        "sonar.internal.analysis.failFast": "true",
    }


def maven_build(
    config: Config, dump_old: Path, dump_new: Path, differences: Path
) -> Build:
    """Full analysis: compiled project, bytecode and libraries available."""
    properties = {
        **_common_properties(config),
        "sonar.lits.dump.old": str(dump_old),
        "sonar.lits.dump.new": str(dump_new),
        "sonar.lits.differences": str(differences),
    }
    command = [
        config.maven_command,
        "-f", str(config.project_location / "pom.xml"),
        "clean", "package", "sonar:sonar",
        "-DskipTests",
        "-Panalyze-tests",
    ]
    return Build("maven", command, config.project_location, properties)


def scanner_build(
    config: Config,
    binaries: Path,
    dump_old: Path,
    dump_new: Path,
    differences: Path,
) -> Build:
    """Auto-scan analysis: sources only, no bytecode nor dependencies.

    *binaries* is an empty directory; ``sonar.java.binaries`` must be set
    for the scanner to accept the project.
    """
    properties = {
        **_common_properties(config),
        "sonar.projectVersion": config.project_version,
        "sonar.projectBaseDir": str(config.project_location),
        "sonar.sourceEncoding": "UTF-8",
        "sonar.sources": config.source_dirs,
        "sonar.tests": config.test_dirs,
        "sonar.java.source": config.java_source,
        "sonar.java.internal.batchMode": "true",
        "sonar.java.binaries": str(binaries),
        "sonar.lits.dump.old": str(dump_old),
        "sonar.lits.dump.new": str(dump_new),
        "sonar.lits.differences": str(differences),
    }
    return Build("scanner", [config.scanner_command], config.project_location, properties)


@dataclass
class AnalysisBuilds:
    maven: Build
    scanner: Build
    maven_differences: Path
    scanner_differences: Path

    @classmethod
    def create(cls, config: Config, work_dir: Path) -> "AnalysisBuilds":
        """Describe both builds; scratch directories are created in *work_dir*."""
        key = config.project_key
        empty_dump = work_dir / "dump-old"
        binaries = work_dir / "binaries"
        empty_dump.mkdir(parents=True, exist_ok=True)
        binaries.mkdir(parents=True, exist_ok=True)
        (config.output_dir / "actual").mkdir(parents=True, exist_ok=True)

        maven_dump = config.output_dir / "actual" / f"{key}-mvn"
        scanner_dump = config.output_dir / "actual" / f"{key}-no-binaries"
        maven_differences = config.output_dir / f"{key}-mvn_differences"
        scanner_differences = config.output_dir / f"{key}-no-binaries_differences"

        return cls(
            maven=maven_build(config, empty_dump, maven_dump, maven_differences),
            scanner=scanner_build(
                config, binaries, maven_dump, scanner_dump, scanner_differences
            ),
            maven_differences=maven_differences,
            scanner_differences=scanner_differences,
        )


# ---------------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------------

class BuildRunner:
    """Runs a build to completion in a subprocess."""

    def __init__(self, timeout: float | None = None) -> None:
        self._timeout = timeout

    def execute(self, build: Build) -> None:
        """Run *build* and wait for it.

        Raises:
            AnalysisError: the command cannot be started, times out, or
                           exits with a non-zero status.
        """
        logger.info("Running %s build: %s", build.name, build.describe())
        try:
            completed = subprocess.run(
                build.args(), cwd=build.cwd, timeout=self._timeout, check=False
            )
        except FileNotFoundError as exc:
            raise AnalysisError(
                f"Cannot start {build.name} build: '{build.command[0]}' not found"
            ) from exc
        except subprocess.TimeoutExpired as exc:
            raise AnalysisError(
                f"{build.name} build timed out after {self._timeout}s"
            ) from exc

        if completed.returncode != 0:
            raise AnalysisError(
                f"{build.name} build failed with exit code {completed.returncode}"
            )
        logger.info("%s build finished", build.name)


def read_differences_count(path: Path) -> int:
    """Parse the ``Issues differences: <n>`` file written by the differ.

    Trailing whitespace after the number, a final newline included, is
    accepted, which is looser than an exact comparison with the line. The
    differ may write the line with or without a newline.
    """
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise AnalysisError(f"Cannot read differences file '{path}': {exc}") from exc

    match = _DIFFERENCES_RE.match(text)
    if match is None:
        raise AnalysisError(
            f"Unexpected content in '{path}': {text[:80]!r}"
        )
    return int(match.group(1))
