"""Tests for sonar_autoscan/analysis.py"""

import subprocess
from pathlib import Path

import pytest

from sonar_autoscan.analysis import (
    AnalysisBuilds,
    AnalysisError,
    Build,
    BuildRunner,
    maven_build,
    read_differences_count,
    scanner_build,
)
from sonar_autoscan.config import Config

KEY = "java-checks-test-sources"


@pytest.fixture
def config(tmp_path) -> Config:
    return Config(
        url="http://localhost:9000",
        token="squ_secret",
        project_key=KEY,
        project_name="Java Checks Test Sources",
        project_location=tmp_path / "project",
        output_dir=tmp_path / "target",
    )


# ---------------------------------------------------------------------------
# Build descriptions
# ---------------------------------------------------------------------------

def test_build_args_appends_properties():
    build = Build("x", ["tool", "goal"], Path("."), {"a.b": "1", "c": "two"})
    assert build.args() == ["tool", "goal", "-Da.b=1", "-Dc=two"]


def test_build_describe_masks_token():
    build = Build("x", ["tool"], Path("."), {"sonar.token": "squ_secret", "a": "1"})
    assert "squ_secret" not in build.describe()
    assert "-Da=1" in build.describe()


def test_maven_build(config, tmp_path):
    build = maven_build(config, tmp_path / "old", tmp_path / "new", tmp_path / "diff")
    args = build.args()

    assert args[0] == "mvn"
    assert ["clean", "package", "sonar:sonar"] == args[3:6]
    assert "-DskipTests" in args
    assert "-Panalyze-tests" in args
    assert build.cwd == config.project_location
    assert build.properties["sonar.projectKey"] == KEY
    assert build.properties["sonar.lits.dump.old"] == str(tmp_path / "old")
    assert build.properties["sonar.lits.dump.new"] == str(tmp_path / "new")
    assert build.properties["sonar.lits.differences"] == str(tmp_path / "diff")
    assert build.properties["sonar.cpd.exclusions"] == "**/*"
    assert "sonar.java.internal.batchMode" not in build.properties


def test_scanner_build_forces_batch_mode(config, tmp_path):
    build = scanner_build(
        config, tmp_path / "bin", tmp_path / "old", tmp_path / "new", tmp_path / "diff"
    )
    props = build.properties

    assert build.command == ["sonar-scanner"]
    assert props["sonar.java.internal.batchMode"] == "true"
    assert props["sonar.java.binaries"] == str(tmp_path / "bin")
    assert props["sonar.java.source"] == "17"
    assert props["sonar.sources"] == "src/main/java/"
    assert props["sonar.tests"] == "src/test/java/"
    assert props["sonar.sourceEncoding"] == "UTF-8"
    assert props["sonar.projectVersion"] == "0.1.0-SNAPSHOT"
    assert props["sonar.host.url"] == "http://localhost:9000"


def test_analysis_builds_chain_dumps(config, tmp_path):
    builds = AnalysisBuilds.create(config, tmp_path / "work")

    maven_new = builds.maven.properties["sonar.lits.dump.new"]
    assert builds.scanner.properties["sonar.lits.dump.old"] == maven_new
    assert maven_new == str(config.output_dir / "actual" / f"{KEY}-mvn")
    assert builds.scanner_differences == config.output_dir / f"{KEY}-no-binaries_differences"
    assert builds.maven_differences == config.output_dir / f"{KEY}-mvn_differences"


def test_analysis_builds_create_scratch_directories(config, tmp_path):
    builds = AnalysisBuilds.create(config, tmp_path / "work")
    assert Path(builds.maven.properties["sonar.lits.dump.old"]).is_dir()
    assert Path(builds.scanner.properties["sonar.java.binaries"]).is_dir()
    assert (config.output_dir / "actual").is_dir()


# ---------------------------------------------------------------------------
# BuildRunner
# ---------------------------------------------------------------------------

def test_runner_executes_build(monkeypatch, tmp_path):
    calls = []

    def fake_run(args, cwd, timeout, check):
        calls.append((args, cwd))
        return subprocess.CompletedProcess(args, 0)

    monkeypatch.setattr(subprocess, "run", fake_run)
    BuildRunner().execute(Build("maven", ["mvn"], tmp_path, {"a": "1"}))
    assert calls == [(["mvn", "-Da=1"], tmp_path)]


def test_runner_raises_on_failure(monkeypatch, tmp_path):
    monkeypatch.setattr(
        subprocess, "run", lambda args, **kw: subprocess.CompletedProcess(args, 2)
    )
    with pytest.raises(AnalysisError, match="exit code 2"):
        BuildRunner().execute(Build("maven", ["mvn"], tmp_path))


def test_runner_raises_when_command_missing(monkeypatch, tmp_path):
    def fake_run(args, **kwargs):
        raise FileNotFoundError(args[0])

    monkeypatch.setattr(subprocess, "run", fake_run)
    with pytest.raises(AnalysisError, match="not found"):
        BuildRunner().execute(Build("scanner", ["sonar-scanner"], tmp_path))


def test_runner_raises_on_timeout(monkeypatch, tmp_path):
    def fake_run(args, **kwargs):
        raise subprocess.TimeoutExpired(args, kwargs["timeout"])

    monkeypatch.setattr(subprocess, "run", fake_run)
    with pytest.raises(AnalysisError, match="timed out"):
        BuildRunner(timeout=5).execute(Build("scanner", ["sonar-scanner"], tmp_path))


# ---------------------------------------------------------------------------
# read_differences_count()
# ---------------------------------------------------------------------------

def test_read_differences_count(tmp_path):
    p = tmp_path / "differences"
    p.write_text("Issues differences: 2929", encoding="utf-8")
    assert read_differences_count(p) == 2929


def test_read_differences_count_with_trailing_newline(tmp_path):
    p = tmp_path / "differences"
    p.write_text("Issues differences: 0\n", encoding="utf-8")
    assert read_differences_count(p) == 0


def test_read_differences_count_bad_content(tmp_path):
    p = tmp_path / "differences"
    p.write_text("no differences here", encoding="utf-8")
    with pytest.raises(AnalysisError, match="Unexpected content"):
        read_differences_count(p)


def test_read_differences_count_missing_file(tmp_path):
    with pytest.raises(AnalysisError, match="Cannot read"):
        read_differences_count(tmp_path / "missing")
