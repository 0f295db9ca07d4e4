"""Main CLI command: expand TODOs in staged files or given paths."""

from pathlib import Path
from typing import Optional

import typer

from todoexpand import __version__
from todoexpand.cache import CacheStore
from todoexpand.config import API_KEY_ENV_VAR, get_api_key, load_config, render_config
from todoexpand.git import GitError
from todoexpand.process import run_files
from todoexpand.targets import discover_targets
from todoexpand.cli.utils import (
    gray,
    is_dry_run,
    parse_list_option,
    parse_style,
    setup_logging,
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"todo-expand {__version__}")
        raise typer.Exit()


def main_command(
    paths: Optional[list[str]] = typer.Argument(
        None,
        help="Files or directories to process",
    ),
    staged: bool = typer.Option(False, "--staged", help="Operate on git-staged files"),
    dry_run: bool = typer.Option(False, "--dry-run", "-n", help="Preview changes without writing"),
    include: Optional[str] = typer.Option(
        None, "--include", help="Comma-separated extensions to include (default: ts,tsx,js,jsx)"
    ),
    exclude: Optional[str] = typer.Option(
        None, "--exclude", help="Comma-separated path segments to exclude (default: node_modules,build,dist,.git)"
    ),
    style: Optional[str] = typer.Option(None, "--style", help="Brief style: succinct | verbose"),
    sections: Optional[str] = typer.Option(
        None, "--sections", help="Comma-separated section names (default: Context,Goal,Steps,Constraints,Acceptance)"
    ),
    context_lines: Optional[int] = typer.Option(
        None, "--context-lines", min=0, help="Lines of surrounding code to include (default: 12)"
    ),
    no_cache: bool = typer.Option(False, "--no-cache", help="Disable response caching"),
    no_format: bool = typer.Option(False, "--no-format", help="Skip formatting after rewrite"),
    strict: bool = typer.Option(False, "--strict", help="Exit non-zero on errors"),
    print_rewrites: bool = typer.Option(False, "--print", help="Print rewritten comments"),
    model: Optional[str] = typer.Option(None, "--model", help="Model (default: OPENAI_MODEL or gpt-4o-mini)"),
    endpoint: Optional[str] = typer.Option(None, "--endpoint", help="Completion endpoint URL"),
    timeout: Optional[int] = typer.Option(None, "--timeout", min=0, help="Per-request timeout in ms (default: 45000)"),
    retries: Optional[int] = typer.Option(
        None, "--retries", min=0, help="Retry attempts on timeout/408/429/5xx (default: 2)"
    ),
    retry_backoff_ms: Optional[int] = typer.Option(
        None, "--retry-backoff-ms", min=0, help="Base backoff in ms for retries (default: 500)"
    ),
    file_timeout: Optional[int] = typer.Option(
        None, "--file-timeout", min=0, help="Stop expanding a file's TODOs after this many ms (default: 120000)"
    ),
    concurrency: Optional[int] = typer.Option(
        None, "--concurrency", min=1, help="Files processed in parallel (default: 1)"
    ),
    max_file_kb: Optional[int] = typer.Option(
        None, "--max-file-kb", min=0, help="Skip files larger than this (default: 512)"
    ),
    verbose_logs: bool = typer.Option(
        False, "--verbose-logs", help="Log per-file and per-TODO progress"
    ),
    config_path: Optional[Path] = typer.Option(
        None, "--config", help="Use this config file instead of the global and project ones"
    ),
    print_config: bool = typer.Option(False, "--print-config", help="Show the resolved configuration and exit"),
    version: bool = typer.Option(
        False, "--version", "-V", callback=_version_callback, is_eager=True, help="Show version and exit"
    ),
) -> None:
    """Rewrite TODO comments into structured task briefs."""
    dry_run = is_dry_run(dry_run)
    cwd = Path.cwd()

    cli_values = {
        "include": parse_list_option(include),
        "exclude": parse_list_option(exclude),
        "style": parse_style(style),
        "sections": parse_list_option(sections),
        "context_lines": context_lines,
        "cache": False if no_cache else None,
        "format": False if no_format else None,
        "strict": True if strict else None,
        "print": True if print_rewrites else None,
        "model": model,
        "endpoint": endpoint,
        "timeout": timeout,
        "retries": retries,
        "retry_backoff_ms": retry_backoff_ms,
        "per_file_timeout_ms": file_timeout,
        "concurrency": concurrency,
        "max_file_kb": max_file_kb,
        "verbose_logs": True if verbose_logs else None,
    }

    result = load_config(cwd, cli_values, config_path)
    cfg = result.config
    setup_logging(cfg.verbose_logs)

    for warning in result.warnings:
        typer.secho(f"Warning: {warning}", fg=typer.colors.YELLOW, err=True)
    for error in result.errors:
        typer.secho(f"Config error: {error}", fg=typer.colors.RED, err=True)
    if result.errors and cfg.strict:
        raise typer.Exit(1)

    if print_config:
        typer.echo(render_config(cfg, result.sources))
        raise typer.Exit(0)

    api_key = get_api_key()
    if not api_key:
        typer.secho(
            f"{API_KEY_ENV_VAR} is not set. Export it or add it to a .env file before running.",
            fg=typer.colors.YELLOW,
            err=True,
        )
        raise typer.Exit(2)

    try:
        targets = discover_targets(
            cwd=cwd,
            staged=staged,
            paths=paths or [],
            include=cfg.include,
            exclude=cfg.exclude,
            max_file_kb=cfg.max_file_kb,
        )
    except GitError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    if not targets:
        typer.echo(gray("No matching target files."))
        return

    typer.secho(f"todo-expand: processing {len(targets)} file(s)", bold=True)

    cache = CacheStore(cfg.cache_path, enabled=cfg.cache)
    changed_count = 0
    todo_count = 0
    error_count = 0
    processed = 0

    for rel_path, outcome in run_files(targets, cwd, cfg, api_key, dry_run, cache=cache):
        processed += 1

        if isinstance(outcome, Exception):
            error_count += 1
            typer.secho(f"[error] {rel_path}: {outcome}", fg=typer.colors.YELLOW, err=True)
            continue

        changed_count += outcome.changed
        todo_count += outcome.todos_found

        if outcome.changed and outcome.dry_run:
            typer.echo(gray(f"--- {rel_path} (dry-run)"))
        if cfg.print:
            for comment in outcome.rewrites:
                typer.echo(comment)

        if cfg.verbose_logs:
            typer.echo(gray(f"[done]  {rel_path}  (todos: {outcome.todos_found}, changed: {outcome.changed})"))
        elif processed % 5 == 0 or processed == len(targets):
            typer.echo(gray(f"progress: {processed}/{len(targets)} files..."))

    typer.secho(
        f"Done. TODOs found: {todo_count}, files changed: {changed_count}",
        fg=typer.colors.GREEN,
    )
    if cfg.verbose_logs and cache.enabled:
        typer.echo(gray(f"cache: {len(cache.snapshot())} entries in {cache.path}"))

    if error_count and cfg.strict:
        raise typer.Exit(1)
