"""
geco/cli/app.py - Main CLI entry point

Click-based command group.

Commands:
    geco --version          show version
    geco [-v] cache         refresh the inventory from the APIs and save it
    geco status [--json]    show what is in the local cache

Exit status is 1 when the refresh cannot run (no credentials, project
listing failed) or the cache cannot be written/read. Per-project failures
are only logged.

Usage:
    $ geco cache
    $ geco cache --max-parallel 5 --no-progress
    $ geco status --json
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

import click
from google.auth.exceptions import DefaultCredentialsError

from geco.config import LogConfig, get_max_parallel, get_max_workers, get_retry_count, get_version
from geco.data.inventory import InventoryCache, InventoryCollector
from geco.exceptions import CacheCorruptionError, CacheWriteError, ConfigError, FatalRefreshError, format_error_for_user
from geco.gcp import ResourceClient
from geco.parallel import ParallelConfig, RetryConfig

from .ui.console import print_error, print_info, print_success, print_table, print_warning, setup_logging
from .ui.progress import parallel_progress

logger = logging.getLogger(__name__)

VERSION = get_version()

CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}

cache_dir_option = click.option(
    "--cache-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Cache directory (default: $GECO_CACHE_DIR or ~/.cache/geco)",
)


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(VERSION, prog_name="geco")
@click.option("-v", "--verbose", is_flag=True, help="Debug logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """geco - Google Cloud inventory cache"""
    setup_logging(LogConfig.from_env(), verbose=verbose)
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose


@cli.command("cache")
@cache_dir_option
@click.option("--max-parallel", type=int, default=None, help="Concurrent API calls (default: 10)")
@click.option("--max-workers", type=int, default=None, help="Worker threads (default: 20)")
@click.option("--no-progress", is_flag=True, help="Do not draw progress bars")
def cache_command(
    cache_dir: Path | None,
    max_parallel: int | None,
    max_workers: int | None,
    no_progress: bool,
) -> None:
    """Refresh the inventory and save it to the local cache

    \b
    Examples:
        geco cache
        geco cache --max-parallel 5
    """
    try:
        config = ParallelConfig(
            max_in_flight=max_parallel if max_parallel is not None else get_max_parallel(),
            max_workers=max_workers if max_workers is not None else get_max_workers(),
        )
    except ConfigError as e:
        print_error(str(e))
        raise SystemExit(1) from e

    try:
        client = ResourceClient.from_default_credentials()
    except DefaultCredentialsError as e:
        print_error(f"no Google Cloud credentials found: {e}")
        print_info("run `gcloud auth application-default login` and try again")
        raise SystemExit(1) from e

    cache = InventoryCache(cache_dir)
    collector = InventoryCollector(
        client,
        cache,
        config=config,
        retry_config=RetryConfig(max_retries=max(0, get_retry_count())),
    )

    try:
        inventory = collector.refresh(progress=None if no_progress else parallel_progress)
    except (FatalRefreshError, CacheWriteError) as e:
        logger.debug("refresh failed: %s", e.to_dict(), exc_info=True)
        print_error(format_error_for_user(e))
        raise SystemExit(1) from e

    counts = inventory.counts
    print_success(
        f"cached {counts['projects']} projects, {counts['instances']} instances, "
        f"{counts['instance_groups']} instance groups in {cache.cache_dir}"
    )
    if collector.errors.has_errors:
        print_warning(f"partial results: {collector.errors.get_summary()}")
        for project_id, errors in collector.errors.get_by_project().items():
            print_info(f"{project_id}: {', '.join(sorted({e.resource for e in errors}))}")


@cli.command("status")
@cache_dir_option
@click.option("--json", "as_json", is_flag=True, help="JSON output")
def status_command(cache_dir: Path | None, as_json: bool) -> None:
    """Show what the local cache holds

    \b
    Examples:
        geco status
        geco status --json
    """
    cache = InventoryCache(cache_dir)
    try:
        inventory = cache.load()
    except CacheCorruptionError as e:
        print_error(format_error_for_user(e))
        print_info("run `geco cache` to rebuild it")
        raise SystemExit(1) from e

    info = cache.get_info()
    info["counts"] = inventory.counts

    if as_json:
        click.echo(json.dumps(info, indent=2))
        return

    rows = [[name, str(count)] for name, count in info["counts"].items()]
    print_table(f"cache: {info['cache_dir']}", ["Documents", "Entries"], rows)

    age = info["age_seconds"]
    if age is None:
        print_warning("no inventory cached yet; run `geco cache`")
    elif info["stale"]:
        print_warning(f"cache is {_format_age(age)} old; run `geco cache` to refresh it")
    else:
        print_info(f"cache is {_format_age(age)} old")


def _format_age(seconds: int) -> str:
    if seconds < 60:
        return f"{seconds}s"
    if seconds < 3600:
        return f"{seconds // 60}m"
    if seconds < 86400:
        return f"{seconds // 3600}h {seconds % 3600 // 60}m"
    return f"{seconds // 86400}d {seconds % 86400 // 3600}h"


def main() -> None:
    """Console script entry point"""
    cli()


if __name__ == "__main__":
    main()
