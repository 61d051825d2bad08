"""CLI entry point — command definitions using Click.

Commands:
    init          Generate a template config file
    verify        Run both analyses and compare the differences to the baselines
    report        Render the per-rule differences of an already analysed project
    differences   Print the number of differences from a differ output file
"""

import json
import logging
import sys

import click

from sonar_autoscan import __version__
from sonar_autoscan.config import DEFAULT_CONFIG_PATH


# ---------------------------------------------------------------------------
# Helpers shared by all data commands
# ---------------------------------------------------------------------------

def _load_config(ctx: click.Context):
    """Load config or exit with an error message."""
    from sonar_autoscan.config import ConfigError, load

    try:
        return load(ctx.obj["config_path"])
    except ConfigError as exc:
        click.echo(f"Configuration error: {exc}", err=True)
        sys.exit(1)


def _make_client(config, ctx: click.Context):
    """Return a ready SonarClient for *config*."""
    from sonar_autoscan.client import SonarClient

    if ctx.obj["verbose"]:
        click.echo(f"[verbose] Connecting to {config.url}", err=True)

    return SonarClient(url=config.url, token=config.token)


def _write(text: str, output_path: str | None) -> None:
    """Write *text* to stdout or to *output_path*."""
    if output_path:
        with open(output_path, "w", encoding="utf-8", newline="\n") as f:
            f.write(text)
        click.echo(f"Report written to '{output_path}'", err=True)
    else:
        click.echo(text, nl=False)


def _handle_errors(func):
    """Decorator that turns known failures into a message and exit status 1."""
    import functools

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        from sonar_autoscan.analysis import AnalysisError
        from sonar_autoscan.client import (
            AuthenticationError,
            NetworkError,
            NotFoundError,
            RetrievalDivergence,
            SonarClientError,
        )
        from sonar_autoscan.config import ConfigError
        from sonar_autoscan.rules import MalformedRuleKey
        from sonar_autoscan.scenario import AssertionMismatch

        try:
            return func(*args, **kwargs)
        except AssertionMismatch as exc:
            click.echo(f"FAILED: {exc}", err=True)
            sys.exit(1)
        except ConfigError as exc:
            click.echo(f"Configuration error: {exc}", err=True)
            sys.exit(1)
        except AnalysisError as exc:
            click.echo(f"Analysis error: {exc}", err=True)
            sys.exit(1)
        except MalformedRuleKey as exc:
            click.echo(f"Rule key error: {exc}", err=True)
            sys.exit(1)
        except AuthenticationError as exc:
            click.echo(f"Authentication error: {exc}", err=True)
            sys.exit(1)
        except NotFoundError as exc:
            click.echo(f"Not found: {exc}", err=True)
            sys.exit(1)
        except NetworkError as exc:
            click.echo(f"Network error: {exc}", err=True)
            sys.exit(1)
        except RetrievalDivergence as exc:
            click.echo(f"Retrieval error: {exc}", err=True)
            sys.exit(1)
        except SonarClientError as exc:
            click.echo(f"SonarQube error: {exc}", err=True)
            sys.exit(1)

    return wrapper


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------

@click.group()
@click.option("--config", "config_path", default=DEFAULT_CONFIG_PATH, show_default=True,
              help="Path to the configuration file.")
@click.option("--verbose", is_flag=True, default=False,
              help="Enable verbose logging.")
@click.version_option(__version__, prog_name="sonar-autoscan")
@click.pass_context
def cli(ctx: click.Context, config_path: str, verbose: bool) -> None:
    """Check that SonarQube Java auto-scan does not drift from a full analysis."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose


# ---------------------------------------------------------------------------
# init
# ---------------------------------------------------------------------------

@cli.command("init")
@click.option("--output", "output_path", default=DEFAULT_CONFIG_PATH, show_default=True,
              help="Path where the template config file will be written.")
def init_command(output_path: str) -> None:
    """Generate a template autoscan-config.yaml file."""
    from sonar_autoscan.config import ConfigError, generate_template
    try:
        generate_template(output_path)
        click.echo(f"Template written to '{output_path}'.")
        click.echo("Edit it with your server URL, token, project and baselines.")
    except ConfigError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)


# ---------------------------------------------------------------------------
# verify
# ---------------------------------------------------------------------------

@cli.command("verify")
@click.pass_context
@_handle_errors
def verify_command(ctx: click.Context) -> None:
    """Run the Maven and auto-scan analyses and check both baselines."""
    from sonar_autoscan.scenario import AutoScanScenario

    config = _load_config(ctx)
    with _make_client(config, ctx) as client:
        result = AutoScanScenario(config, client).run()

    if ctx.obj["verbose"]:
        click.echo(
            f"[verbose] {result.differences} differences over "
            f"{result.report.rule_count} rules match the baselines",
            err=True,
        )


# ---------------------------------------------------------------------------
# report
# ---------------------------------------------------------------------------

@cli.command("report")
@click.option("--format", "fmt", type=click.Choice(["text", "json"]), default="text",
              show_default=True, help="Output format.")
@click.option("--output", "output_path", default=None,
              help="Write the report to a file instead of stdout.")
@click.option("--pretty", is_flag=True, default=False,
              help="Pretty-print the JSON output.")
@click.pass_context
@_handle_errors
def report_command(ctx: click.Context, fmt: str, output_path: str | None, pretty: bool) -> None:
    """Render the differences by rule of the configured project.

    With --output pointing at the baseline file, this regenerates it.
    """
    from sonar_autoscan.reports.differences import (
        calculate_differences,
        render_report,
        report_to_json,
    )
    from sonar_autoscan.reports.issues import get_open_issues

    config = _load_config(ctx)
    if ctx.obj["verbose"]:
        click.echo(f"[verbose] Fetching open issues for {config.project_key}", err=True)

    with _make_client(config, ctx) as client:
        issues = get_open_issues(client, config.project_key, config.page_size)

    report = calculate_differences(issues)
    if fmt == "json":
        data = report_to_json(report, config.project_key)
        text = json.dumps(data, indent=2 if pretty else None, ensure_ascii=False) + "\n"
    else:
        text = render_report(report)
    _write(text, output_path)


# ---------------------------------------------------------------------------
# differences
# ---------------------------------------------------------------------------

@cli.command("differences")
@click.argument("path", type=click.Path(dir_okay=False))
@_handle_errors
def differences_command(path: str) -> None:
    """Print the number of differences found in the differ output file PATH."""
    from sonar_autoscan.analysis import read_differences_count

    click.echo(read_differences_count(path))
