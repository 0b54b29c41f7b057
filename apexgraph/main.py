"""
apexgraph — CLI entrypoint.

Usage:
    python -m apexgraph.main --help
    python -m apexgraph.main run
    python -m apexgraph.main config check
    python -m apexgraph.main query libfoo
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from apexgraph import __version__
from apexgraph.core.observability.logging_config import setup_logging


@click.group()
@click.version_option(version=__version__, prog_name="apexgraph")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to graph.yml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """apexgraph — per-APEX build variants for a module graph."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    if debug:
        level = "DEBUG"
    elif verbose:
        level = "INFO"
    elif quiet:
        level = "ERROR"
    else:
        level = os.environ.get("APEXGRAPH_LOG_LEVEL", "WARNING")

    setup_logging(
        level=level,
        log_file=os.environ.get("APEXGRAPH_LOG_FILE"),
        log_file_level=os.environ.get("APEXGRAPH_LOG_FILE_LEVEL"),
        quiet_third_party=not debug,
    )


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.option("--workers", "-j", type=int, default=None, help="Worker pool size.")
@click.pass_context
def run(ctx: click.Context, as_json: bool, workers: int | None) -> None:
    """Collect requirements, create variants, and check min_sdk_version."""
    from apexgraph.core.use_cases.run import run_pass

    result = run_pass(config_path=ctx.obj.get("config_path"), workers=workers)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.ok else 1)

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    report = result.report
    assert report is not None and result.graph is not None

    if not ctx.obj.get("quiet"):
        title = result.graph.name or str(result.config_path)
        click.secho(f"\n🧬 {title}", fg="cyan", bold=True)
        click.echo(f"   Phases: {', '.join(report.phases_run) or 'none'}")
        click.echo()

        for module, labels in report.variants.items():
            shown = ", ".join(label or "platform" for label in labels)
            marker = " (platform uninstallable)" if module in report.uninstallable else ""
            click.echo(f"   • {module}: {shown}{marker}")
            if ctx.obj.get("verbose"):
                for alias, target in report.aliases.get(module, {}).items():
                    click.echo(f"     │ {alias} → {target}")

    if report.errors:
        click.echo()
        click.secho(f"❌ {len(report.errors)} error(s):", fg="red", bold=True)
        for err in report.errors:
            click.echo(f"   • {err}")
        click.echo()
        sys.exit(1)

    click.echo()
    click.secho(f"   ✅ {report.variant_count} variant(s) created", fg="green", bold=True)
    click.echo()


@cli.group()
def config() -> None:
    """Graph configuration commands."""


@config.command("check")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def config_check(ctx: click.Context, as_json: bool) -> None:
    """Validate graph.yml configuration."""
    from apexgraph.core.use_cases.config_check import check_config

    result = check_config(config_path=ctx.obj.get("config_path"))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.valid else 1)

    if result.valid:
        assert result.graph is not None  # guaranteed when valid
        click.secho("✅ Configuration is valid", fg="green", bold=True)
        click.echo(f"   Modules: {len(result.graph.modules)}")
        click.echo(f"   Apexes: {len(result.graph.apexes)}")
    else:
        click.secho("❌ Configuration errors:", fg="red", bold=True)
        for err in result.errors:
            click.echo(f"   • {err}")

    if result.warnings:
        click.echo()
        click.secho("⚠️  Warnings:", fg="yellow")
        for warn in result.warnings:
            click.echo(f"   • {warn}")

    if not result.valid:
        click.echo()
        sys.exit(1)

    click.echo()


@cli.command()
@click.argument("module")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def query(ctx: click.Context, module: str, as_json: bool) -> None:
    """Show which apexes reach MODULE, directly or transitively."""
    from apexgraph.core.use_cases.query import query_module

    result = query_module(module, config_path=ctx.obj.get("config_path"))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.error is None else 1)

    if result.error:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    click.secho(f"\n📦 {module}", fg="cyan", bold=True)
    if not result.apexes:
        click.echo("   Not in any apex.")
    for name, direct in result.apexes.items():
        click.echo(f"   • {name} ({'direct' if direct else 'indirect'})")
    if result.variants:
        click.echo(f"   Variants: {', '.join(v or 'platform' for v in result.variants)}")
    if result.pass_errors:
        click.secho(f"   ⚠️  Build pass reported {result.pass_errors} error(s)", fg="yellow")
    click.echo()


@cli.command("choose-sdk")
@click.argument("versions", nargs=-1, required=True)
@click.option("--max", "max_sdk", required=True, help="Highest acceptable API level.")
@click.option("--codename", "codenames", multiple=True, help="Active (unfinalized) codename.")
def choose_sdk(versions: tuple[str, ...], max_sdk: str, codenames: tuple[str, ...]) -> None:
    """Pick the highest of VERSIONS (ascending) not above --max."""
    from apexgraph.core.engine.sdk import SdkVersionError, choose_sdk_version
    from apexgraph.core.models.api_level import ApiLevelError, api_level_from_user

    try:
        ceiling = api_level_from_user(max_sdk, codenames)
        click.echo(choose_sdk_version(list(versions), ceiling, codenames))
    except (ApiLevelError, SdkVersionError) as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)


@cli.command()
@click.argument("target")
@click.option("--apex-available", "-a", "apex_available", multiple=True, help="apex_available entry.")
def available(target: str, apex_available: tuple[str, ...]) -> None:
    """Check whether TARGET is allowed by an apex_available list."""
    from apexgraph.core.engine.availability import check_available_for_apex

    if check_available_for_apex(target, list(apex_available)):
        click.secho(f"✅ {target} is available", fg="green")
    else:
        click.secho(f"❌ {target} is not available", fg="red")
        sys.exit(1)


if __name__ == "__main__":
    cli()
