"""Processing pipeline for per-file TODO expansion and rewrite.

Contains:
- FileResult: Outcome of processing one file
- process_file: Detect, expand and rewrite the TODOs of one file
- run_files: Process many files, sequentially or on a bounded thread pool
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from functools import partial
from pathlib import Path
from typing import Callable, Iterator, Optional, Sequence, Union

from todoexpand.cache import CacheStore, file_cache_key, todo_cache_key
from todoexpand.config import ResolvedConfig
from todoexpand.formatters import format_files
from todoexpand.llm import LLMError, split_batch
from todoexpand.llm.client import complete
from todoexpand.llm.prompts import PromptTodo, build_batch_prompt, language_from_path, load_template
from todoexpand.rewrite import apply_rewrite
from todoexpand.todos import TodoMatch, detect_todos, extract_context

logger = logging.getLogger(__name__)

Completer = Callable[[str], Optional[str]]


@dataclass
class FileResult:
    """Outcome of processing one file.

    Attributes:
        changed: 1 if the rewritten content differs from the original, else 0.
        todos_found: Number of unstructured TODOs detected.
        rewrites: The rewritten comments applied, bottom of the file first.
        dry_run: True when the file was left untouched on disk on purpose.
    """

    changed: int = 0
    todos_found: int = 0
    rewrites: list[str] = field(default_factory=list)
    dry_run: bool = False


@dataclass(frozen=True)
class PendingTodo:
    """A TODO without a cache hit, waiting for the batched completion."""

    todo: TodoMatch
    context: str
    file_key: str
    text_key: str


def _read_text(path: Path) -> str:
    # newline="" keeps \r\n untouched
    with open(path, "r", encoding="utf-8", newline="") as f:
        return f.read()


def _write_text(path: Path, text: str) -> None:
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(text)


def _complete_batch(
    pending: list[PendingTodo],
    rel_path: str,
    config: ResolvedConfig,
    completer: Completer,
    template: Optional[str],
) -> Optional[list[str]]:
    """Ask for all pending rewrites at once.

    Returns:
        One comment per pending TODO, or None if the call failed or the
        response did not split into exactly one part per TODO.
    """
    prompt = build_batch_prompt(
        file_path=rel_path,
        language=language_from_path(rel_path),
        todos=[PromptTodo(p.todo.raw_text, p.context) for p in pending],
        style=config.style,
        sections=config.sections,
        template=template,
    )

    try:
        output = completer(prompt)
    except LLMError as e:
        logger.error("[error] %s: %s", rel_path, e)
        return None

    if not output:
        return None

    parts = split_batch(output)
    if len(parts) != len(pending):
        logger.warning(
            "[skip] %s: expected %d rewritten comment(s), got %d; leaving TODOs unchanged",
            rel_path,
            len(pending),
            len(parts),
        )
        return None
    return parts


def rewrite_todos(
    content: str,
    todos: Sequence[TodoMatch],
    rel_path: str,
    config: ResolvedConfig,
    cache: CacheStore,
    completer: Completer,
    template: Optional[str] = None,
    clock: Callable[[], float] = time.monotonic,
) -> tuple[str, list[str]]:
    """Expand the TODOs of one file and rewrite them.

    TODOs are visited from the bottom of the file up. Cached rewrites are
    taken as they are found; the rest go out in one batched completion.
    Visiting stops once the per-file timeout has elapsed. All replacements
    are then applied bottom-up so line indices stay valid.

    Args:
        content: Original file content.
        todos: Detected TODOs.
        rel_path: Path relative to the project root, used for keys and prompts.
        config: Resolved configuration.
        cache: Run-scoped cache store.
        completer: Function sending a prompt to the completion service.
        template: Optional project prompt template.
        clock: Monotonic clock in seconds.

    Returns:
        The rewritten content and the comments applied, bottom of the file
        first.
    """
    start = clock()
    replacements: list[tuple[TodoMatch, str]] = []
    pending: list[PendingTodo] = []

    for todo in sorted(todos, key=lambda t: t.start_line, reverse=True):
        elapsed_ms = (clock() - start) * 1000
        if elapsed_ms > config.per_file_timeout_ms:
            logger.warning(
                "[timeout] %s exceeded %dms, skipping remaining TODOs",
                rel_path,
                config.per_file_timeout_ms,
            )
            break

        file_key = file_cache_key(rel_path, todo.raw_text)
        text_key = todo_cache_key(todo.raw_text)
        cached = cache.lookup(file_key, text_key)
        if cached:
            logger.debug("[cache] %s:%d", rel_path, todo.start_line + 1)
            replacements.append((todo, cached))
            continue

        context = extract_context(content, todo, config.context_lines)
        pending.append(PendingTodo(todo, context, file_key, text_key))

    if pending:
        parts = _complete_batch(pending, rel_path, config, completer, template)
        if parts is not None:
            for item, part in zip(pending, parts):
                cache.store(item.file_key, item.text_key, part)
                replacements.append((item.todo, part))

    ordered = sorted(replacements, key=lambda r: r[0].start_line, reverse=True)
    text = content
    for todo, comment in ordered:
        text = apply_rewrite(text, todo, comment)

    return text, [comment for _, comment in ordered]


def process_file(
    abs_path: Path,
    rel_path: str,
    config: ResolvedConfig,
    api_key: str,
    dry_run: bool = False,
    cache: Optional[CacheStore] = None,
    completer: Optional[Completer] = None,
    template: Optional[str] = None,
) -> FileResult:
    """Process a single file: detect TODOs, expand them, rewrite in place.

    Completion failures leave the affected TODOs untouched. Errors reading
    or writing the source file propagate.

    Args:
        abs_path: Absolute path to the file on disk.
        rel_path: Path relative to the project root (for prompts and keys).
        config: Resolved configuration.
        api_key: Completion service credential.
        dry_run: When True, do not write changes.
        cache: Run-scoped cache store. Built from `config` when omitted.
        completer: Prompt -> text function. Defaults to a CompletionClient.
        template: Optional project prompt template.

    Returns:
        Whether the file changed and how many TODOs were found.
    """
    content = _read_text(abs_path)
    todos = detect_todos(content)
    if not todos:
        return FileResult()

    if cache is None:
        cache = CacheStore(config.cache_path, enabled=config.cache)
    if completer is None:
        completer = partial(complete, api_key=api_key, config=config)

    try:
        updated, rewrites = rewrite_todos(content, todos, rel_path, config, cache, completer, template)
        changed = updated != content

        if changed and not dry_run:
            _write_text(abs_path, updated)
            if config.format:
                format_files([abs_path])
    finally:
        try:
            cache.flush()
        except OSError as e:
            logger.warning("[cache] could not write %s: %s", cache.path, e)

    return FileResult(
        changed=1 if changed else 0,
        todos_found=len(todos),
        rewrites=rewrites if changed else [],
        dry_run=dry_run,
    )


def run_files(
    targets: Sequence[Path],
    cwd: Path,
    config: ResolvedConfig,
    api_key: str,
    dry_run: bool = False,
    cache: Optional[CacheStore] = None,
    completer: Optional[Completer] = None,
) -> Iterator[tuple[str, Union[FileResult, Exception]]]:
    """Process files and yield each outcome in target order.

    With `config.concurrency` above 1, files are spread over a thread pool of
    that size. Each file is only ever handled by one worker; the cache store
    is shared and locked.

    Args:
        targets: Absolute paths of the files to process.
        cwd: Project root; relative paths and the prompt template come from it.
        config: Resolved configuration.
        api_key: Completion service credential.
        dry_run: When True, do not write changes.
        cache: Shared cache store. Built from `config` when omitted.
        completer: Prompt -> text function. Defaults to a CompletionClient.

    Yields:
        (relative path, FileResult) or (relative path, the I/O error raised).
    """
    if cache is None:
        cache = CacheStore(config.cache_path, enabled=config.cache)
    if completer is None:
        completer = partial(complete, api_key=api_key, config=config)
    template = load_template(cwd)

    def _relative(path: Path) -> str:
        try:
            return path.relative_to(cwd).as_posix()
        except ValueError:
            return path.as_posix()

    def _process(path: Path) -> tuple[str, Union[FileResult, Exception]]:
        rel_path = _relative(path)
        logger.debug("[start] %s", rel_path)
        try:
            result = process_file(path, rel_path, config, api_key, dry_run, cache, completer, template)
        except (OSError, ValueError) as e:
            return rel_path, e
        return rel_path, result

    if config.concurrency <= 1 or len(targets) <= 1:
        for path in targets:
            yield _process(path)
        return

    with ThreadPoolExecutor(max_workers=config.concurrency) as pool:
        yield from pool.map(_process, targets)
