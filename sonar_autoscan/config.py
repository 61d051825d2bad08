"""Configuration loading and validation.

Usage:
    config = load("autoscan-config.yaml")       # raises ConfigError on bad config
    config.require_baseline()                   # raises ConfigError if no baseline
    generate_template("autoscan-config.yaml")   # writes example file to disk
"""

import os
from dataclasses import dataclass
from pathlib import Path

import yaml

from sonar_autoscan.client import PAGE_SIZE

DEFAULT_CONFIG_PATH = "autoscan-config.yaml"


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class ConfigError(Exception):
    """Raised when the configuration is missing or invalid."""


# ---------------------------------------------------------------------------
# Config dataclass
# ---------------------------------------------------------------------------

@dataclass
class Config:
    url: str
    token: str
    project_key: str
    project_name: str = ""
    project_location: Path = Path(".")
    project_version: str = "0.1.0-SNAPSHOT"
    source_dirs: str = "src/main/java/"
    test_dirs: str = "src/test/java/"
    java_source: str = "17"
    maven_command: str = "mvn"
    scanner_command: str = "sonar-scanner"
    output_dir: Path = Path("target")
    page_size: int = PAGE_SIZE
    expected_differences: int | None = None
    baseline_report: Path | None = None

    def require_baseline(self) -> None:
        """Raise ConfigError unless both baseline values are configured."""
        errors: list[str] = []
        if self.expected_differences is None:
            errors.append("  - 'baseline.differences' is missing")
        if self.baseline_report is None:
            errors.append("  - 'baseline.report' is missing")
        if errors:
            raise ConfigError("Missing baseline configuration:\n" + "\n".join(errors))


# ---------------------------------------------------------------------------
# Loader
# ---------------------------------------------------------------------------

def load(config_path: str = DEFAULT_CONFIG_PATH) -> Config:
    """Load and validate configuration from a YAML file.

    Environment variables SONAR_URL and SONAR_TOKEN override file values.
    Relative paths are resolved against the directory holding the file.

    Raises:
        ConfigError: if the file is missing, malformed, or required fields
                     are absent.
    """
    path = Path(config_path)

    if not path.exists():
        raise ConfigError(
            f"Config file not found: '{config_path}'\n"
            "Run `python -m sonar_autoscan init` to generate a template."
        )

    try:
        with path.open(encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse '{config_path}': {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigError(f"'{config_path}' must be a YAML mapping at the top level.")

    base = path.resolve().parent
    server   = raw.get("server") or {}
    project  = raw.get("project") or {}
    analysis = raw.get("analysis") or {}
    baseline = raw.get("baseline") or {}

    url   = os.environ.get("SONAR_URL")   or server.get("url",   "")
    token = os.environ.get("SONAR_TOKEN") or server.get("token", "")
    key   = str(project.get("key") or "").strip()

    config = Config(
        url=str(url).strip(),
        token=str(token).strip(),
        project_key=key,
        project_name=str(project.get("name") or key),
        project_location=base / project.get("location", "."),
        project_version=str(project.get("version", "0.1.0-SNAPSHOT")),
        source_dirs=str(project.get("sources", "src/main/java/")),
        test_dirs=str(project.get("tests", "src/test/java/")),
        java_source=str(project.get("java_source", "17")),
        maven_command=str(analysis.get("maven", "mvn")),
        scanner_command=str(analysis.get("scanner", "sonar-scanner")),
        output_dir=base / analysis.get("output_dir", "target"),
        page_size=_as_int(analysis.get("page_size", PAGE_SIZE), "analysis.page_size"),
        expected_differences=_optional_int(baseline.get("differences"), "baseline.differences"),
        baseline_report=base / baseline["report"] if baseline.get("report") else None,
    )
    _validate(config)
    return config


def _as_int(value, name: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"'{name}' must be an integer, got {value!r}") from exc


def _optional_int(value, name: str) -> int | None:
    return None if value is None else _as_int(value, name)


def _validate(config: Config) -> None:
    """Raise ConfigError if required fields are missing."""
    errors: list[str] = []

    if not config.url:
        errors.append(
            "  - 'server.url' is missing (or set the SONAR_URL environment variable)"
        )
    if not config.token:
        errors.append(
            "  - 'server.token' is missing (or set the SONAR_TOKEN environment variable)"
        )
    if not config.project_key:
        errors.append("  - 'project.key' is missing")
    if not 0 < config.page_size <= 500:
        errors.append("  - 'analysis.page_size' must be between 1 and 500")

    if errors:
        raise ConfigError("Invalid configuration:\n" + "\n".join(errors))


# ---------------------------------------------------------------------------
# Template generator (used by `init` command)
# ---------------------------------------------------------------------------

TEMPLATE = """\
server:
  url: "http://localhost:9000"
  token: "squ_xxxxxxxxxxxx"       # Generate at: <your-sonar-url>/account/security

project:
  key: "java-checks-test-sources"
  name: "Java Checks Test Sources"
  location: "../../java-checks-test-sources/"
  sources: "src/main/java/"
  tests: "src/test/java/"
  java_source: "17"

analysis:
  maven: "mvn"
  scanner: "sonar-scanner"
  output_dir: "target"
  page_size: 500

baseline:
  # Expected content of the differ's output: "Issues differences: <n>"
  differences: 0
  report: "src/test/resources/autoscan/diff-by-rules.txt"
"""


def generate_template(output_path: str = DEFAULT_CONFIG_PATH) -> None:
    """Write a template autoscan-config.yaml to *output_path*.

    Raises:
        ConfigError: if the file already exists (to avoid overwriting secrets).
    """
    path = Path(output_path)
    if path.exists():
        raise ConfigError(
            f"'{output_path}' already exists. Remove it first or choose a different path."
        )
    path.write_text(TEMPLATE, encoding="utf-8")
