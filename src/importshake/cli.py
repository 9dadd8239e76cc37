"""Click CLI: report, fix or record unused imports."""
from __future__ import annotations

import logging
import sys
from pathlib import Path

import click

from importshake import __version__
from importshake.core.shake import Shake
from importshake.exceptions import LoadError


@click.command()
@click.version_option(version=__version__)
@click.argument("modules", nargs=-1)
@click.option(
    "--root",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=".",
    show_default=True,
    help="Project root that module names are resolved against",
)
@click.option("--config", "config_path", type=click.Path(dir_okay=False, path_type=Path), help="Override configuration file")
@click.option("--fix", is_flag=True, help="Apply the suggested edits to the source files")
@click.option("--update", is_flag=True, help="Record every finding as a legitimate use in the configuration")
@click.option("--global", "global_", is_flag=True, help="With --update, record findings in ignoreImport")
@click.option("--package-only", is_flag=True, help="Only analyze and edit modules of the primary package")
@click.option("--no-downstream", is_flag=True, help="Do not repair modules broken by removals elsewhere")
@click.option("--diff", "show_diff", is_flag=True, help="Print a unified diff of the edits")
@click.option("--jobs", "-j", type=click.IntRange(min=1), help="Worker threads")
@click.option("--verbose", "-v", count=True, help="Log progress (-vv for debug output)")
def main(
    modules: tuple[str, ...],
    root: Path,
    config_path: Path | None,
    fix: bool,
    update: bool,
    global_: bool,
    package_only: bool,
    no_downstream: bool,
    show_diff: bool,
    jobs: int | None,
    verbose: int,
):
    """Find unused and missing imports in MODULES (default: the project package)."""
    level = logging.DEBUG if verbose > 1 else logging.INFO if verbose else logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s", stream=sys.stderr)

    if global_ and not update:
        raise click.UsageError("--global only makes sense with --update")

    shake = Shake(
        root,
        config_path=config_path,
        downstream=not no_downstream,
        jobs=jobs,
        dry_run=not (fix or update),
    )
    try:
        report = shake.analyze(list(modules) or None, package_only=package_only)
    except LoadError as e:
        raise click.ClickException(str(e)) from e
    except ValueError as e:
        raise click.UsageError(str(e)) from e

    if report.is_clean:
        click.echo("No unused imports found.")
        return

    for line in report.format().splitlines():
        if line.startswith("fix "):
            click.echo(click.style(line, fg="yellow"))
        elif not line.startswith(" "):
            click.echo(click.style(line, fg="cyan"))
        else:
            click.echo(line)

    if update:
        result = shake.update_config(report, global_=global_)
        click.echo(result.message, err=not result.success)
        if not result.success:
            sys.exit(1)
        return

    if fix or show_diff:
        batch = shake.apply(report)
        for failed in batch.failed:
            click.echo(click.style(failed.message, fg="red"), err=True)
        if show_diff and batch.diff:
            click.echo(batch.diff)
        if fix:
            click.echo(f"Updated {len(batch.files_changed)} file(s).")
            return

    sys.exit(1)
