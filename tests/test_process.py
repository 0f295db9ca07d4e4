"""Tests for todoexpand.process module."""

import json

from todoexpand.cache import CacheStore, file_cache_key, todo_cache_key
from todoexpand.config import ResolvedConfig
from todoexpand.llm import MissingAPIKeyError
from todoexpand.process import FileResult, process_file, rewrite_todos, run_files
from todoexpand.todos import detect_todos


def _write(path, text):
    path.write_text(text, encoding="utf-8")
    return path


class TestProcessFile:
    """Tests for process_file function."""

    def test_rewrites_both_comment_styles(
        self, temp_dir, config, sample_source, sample_batch_response, mocker
    ):
        """Test a two-TODO file is rewritten from one batched completion."""
        path = _write(temp_dir / "a.ts", sample_source)
        completer = mocker.Mock(return_value=sample_batch_response)

        result = process_file(path, "a.ts", config, "sk", completer=completer)

        # Batch order is bottom-up: the `#` TODO on line 1 comes first
        assert path.read_text(encoding="utf-8") == (
            "// Context: z\n// Goal: w\n# Context: x\n# Goal: y\nno todo here\n"
        )
        assert result == FileResult(
            changed=1,
            todos_found=2,
            rewrites=["Context: x\nGoal: y", "Context: z\nGoal: w"],
        )
        completer.assert_called_once()
        prompt = completer.call_args[0][0]
        assert prompt.index("Original TODO:\n# TODO add logging") < prompt.index(
            "Original TODO:\nconst a = 1 // TODO: tighten types"
        )

    def test_second_pass_is_noop(self, temp_dir, config, sample_source, sample_batch_response, mocker):
        """Test rewritten files have no TODOs left to expand."""
        path = _write(temp_dir / "a.ts", sample_source)
        process_file(path, "a.ts", config, "sk", completer=mocker.Mock(return_value=sample_batch_response))
        rewritten = path.read_text(encoding="utf-8")
        completer = mocker.Mock()

        result = process_file(path, "a.ts", config, "sk", completer=completer)

        assert result.changed == 0
        assert result.todos_found == 0
        completer.assert_not_called()
        assert path.read_text(encoding="utf-8") == rewritten

    def test_part_count_mismatch_leaves_file_untouched(self, temp_dir, config, mocker):
        """Test a response with the wrong number of parts changes nothing."""
        content = "// TODO: one\n// TODO: two\n// TODO: three\n"
        path = _write(temp_dir / "a.ts", content)
        completer = mocker.Mock(return_value="Goal: a\n---\nGoal: b")

        result = process_file(path, "a.ts", config, "sk", completer=completer)

        assert result.changed == 0
        assert result.todos_found == 3
        assert path.read_text(encoding="utf-8") == content

    def test_mismatch_not_cached(self, temp_dir, config, mocker):
        """Test misaligned parts are never stored."""
        path = _write(temp_dir / "a.ts", "// TODO: one\n// TODO: two\n")
        cache = CacheStore(temp_dir / "cache.json")

        process_file(path, "a.ts", config, "sk", cache=cache, completer=mocker.Mock(return_value="only one"))

        assert cache.snapshot() == {}

    def test_no_todos(self, temp_dir, config, mocker):
        """Test files without TODOs make no calls and write no cache."""
        path = _write(temp_dir / "a.ts", "const a = 1;\n")
        completer = mocker.Mock()
        cache_path = temp_dir / "cache.json"

        result = process_file(path, "a.ts", config, "sk", cache=CacheStore(cache_path), completer=completer)

        assert result == FileResult()
        completer.assert_not_called()
        assert not cache_path.exists()

    def test_dry_run_does_not_write(self, temp_dir, config, sample_source, sample_batch_response, mocker):
        """Test dry runs report the change without touching the file."""
        path = _write(temp_dir / "a.ts", sample_source)

        result = process_file(
            path, "a.ts", config, "sk", dry_run=True,
            completer=mocker.Mock(return_value=sample_batch_response),
        )

        assert result.changed == 1
        assert result.dry_run is True
        assert path.read_text(encoding="utf-8") == sample_source

    def test_completion_failure_leaves_file_untouched(self, temp_dir, config, sample_source, mocker):
        """Test a None completion changes nothing."""
        path = _write(temp_dir / "a.ts", sample_source)

        result = process_file(path, "a.ts", config, "sk", completer=mocker.Mock(return_value=None))

        assert result.changed == 0
        assert result.rewrites == []
        assert path.read_text(encoding="utf-8") == sample_source

    def test_llm_error_is_contained(self, temp_dir, config, sample_source, mocker):
        """Test completion errors do not escape process_file."""
        path = _write(temp_dir / "a.ts", sample_source)
        completer = mocker.Mock(side_effect=MissingAPIKeyError("no key"))

        result = process_file(path, "a.ts", config, "sk", completer=completer)

        assert result.changed == 0
        assert result.todos_found == 2

    def test_default_completer_uses_config(self, temp_dir, config, mocker):
        """Test the default completer passes the key and config through."""
        path = _write(temp_dir / "a.ts", "// TODO: x\n")
        mock_complete = mocker.patch("todoexpand.process.complete", return_value="Goal: x")

        process_file(path, "a.ts", config, "sk-123")

        assert mock_complete.call_args.kwargs == {"api_key": "sk-123", "config": config}
        assert path.read_text(encoding="utf-8") == "// Goal: x\n"

    def test_missing_api_key_leaves_file_untouched(self, temp_dir, config):
        """Test an empty key fails the completion, not the file."""
        path = _write(temp_dir / "a.ts", "// TODO: x\n")

        result = process_file(path, "a.ts", config, "")

        assert result.changed == 0
        assert path.read_text(encoding="utf-8") == "// TODO: x\n"

    def test_malformed_endpoint_leaves_file_untouched(self, temp_dir):
        """Test an unparseable endpoint fails the completion, not the file."""
        config = ResolvedConfig(cache=False, format=False, endpoint="http://[::1/")
        path = _write(temp_dir / "a.ts", "// TODO: x\n")

        result = process_file(path, "a.ts", config, "sk")

        assert result.changed == 0
        assert result.todos_found == 1
        assert path.read_text(encoding="utf-8") == "// TODO: x\n"

    def test_block_todo_rewritten(self, temp_dir, config, mocker):
        """Test block TODOs are replaced with a block comment."""
        path = _write(temp_dir / "a.ts", "a();\n/* TODO: fix\n   soon\n*/\nb();\n")

        process_file(path, "a.ts", config, "sk", completer=mocker.Mock(return_value="Goal: fixed"))

        assert path.read_text(encoding="utf-8") == "a();\n/*\nGoal: fixed\n*/\nb();\n"

    def test_formats_changed_files(self, temp_dir, sample_source, sample_batch_response, mocker):
        """Test the formatter runs on written files when enabled."""
        mock_format = mocker.patch("todoexpand.process.format_files")
        config = ResolvedConfig(cache=False, format=True)
        path = _write(temp_dir / "a.ts", sample_source)

        process_file(path, "a.ts", config, "sk", completer=mocker.Mock(return_value=sample_batch_response))

        mock_format.assert_called_once_with([path])

    def test_no_format_on_dry_run(self, temp_dir, sample_source, sample_batch_response, mocker):
        """Test dry runs never format."""
        mock_format = mocker.patch("todoexpand.process.format_files")
        config = ResolvedConfig(cache=False, format=True)
        path = _write(temp_dir / "a.ts", sample_source)

        process_file(
            path, "a.ts", config, "sk", dry_run=True,
            completer=mocker.Mock(return_value=sample_batch_response),
        )

        mock_format.assert_not_called()

    def test_crlf_line_endings_kept_on_other_lines(self, temp_dir, config, mocker):
        """Test untouched lines keep their carriage returns."""
        path = temp_dir / "a.ts"
        path.write_bytes(b"a();\r\n// TODO: x\nb();\r\n")

        process_file(path, "a.ts", config, "sk", completer=mocker.Mock(return_value="Goal: x"))

        assert path.read_bytes() == b"a();\r\n// Goal: x\nb();\r\n"


class TestCaching:
    """Tests for cache use during processing."""

    def test_results_are_cached(self, temp_dir, config, mocker):
        """Test rewrites are stored under the file and text keys."""
        path = _write(temp_dir / "a.ts", "// TODO: x\n")
        cache_path = temp_dir / ".git" / "cache.json"

        process_file(
            path, "a.ts", config, "sk",
            cache=CacheStore(cache_path),
            completer=mocker.Mock(return_value="Goal: x"),
        )

        data = json.loads(cache_path.read_text(encoding="utf-8"))
        assert data == {
            file_cache_key("a.ts", "// TODO: x"): "Goal: x",
            todo_cache_key("// TODO: x"): "Goal: x",
        }

    def test_cache_hit_skips_completion(self, temp_dir, config, mocker):
        """Test a second run over the original content uses the cache."""
        cache_path = temp_dir / "cache.json"
        path = _write(temp_dir / "a.ts", "// TODO: x\n")
        process_file(path, "a.ts", config, "sk", cache=CacheStore(cache_path),
                     completer=mocker.Mock(return_value="Goal: x"))

        _write(path, "// TODO: x\n")
        completer = mocker.Mock()
        result = process_file(path, "a.ts", config, "sk", cache=CacheStore(cache_path), completer=completer)

        completer.assert_not_called()
        assert result.changed == 1
        assert path.read_text(encoding="utf-8") == "// Goal: x\n"

    def test_same_text_in_another_file_reuses_rewrite(self, temp_dir, config, mocker):
        """Test the global key serves identical TODOs in other files."""
        cache = CacheStore(temp_dir / "cache.json")
        first = _write(temp_dir / "a.ts", "// TODO: shared\n")
        second = _write(temp_dir / "b.ts", "// TODO: shared\n")
        process_file(first, "a.ts", config, "sk", cache=cache, completer=mocker.Mock(return_value="Goal: s"))
        completer = mocker.Mock()

        process_file(second, "b.ts", config, "sk", cache=cache, completer=completer)

        completer.assert_not_called()
        assert second.read_text(encoding="utf-8") == "// Goal: s\n"
        assert cache.snapshot()[file_cache_key("b.ts", "// TODO: shared")] == "Goal: s"

    def test_cached_and_pending_mix(self, temp_dir, config, mocker):
        """Test cached rewrites and batch results land on the right lines."""
        cache = CacheStore(temp_dir / "cache.json")
        cache.store(file_cache_key("a.ts", "// TODO: b"), todo_cache_key("// TODO: b"), "Goal: B1\nGoal: B2")
        path = _write(temp_dir / "a.ts", "// TODO: a\nx\n// TODO: b\ny\n// TODO: c\n")
        completer = mocker.Mock(return_value="Goal: C\n---\nGoal: A")

        result = process_file(path, "a.ts", config, "sk", cache=cache, completer=completer)

        assert path.read_text(encoding="utf-8") == (
            "// Goal: A\nx\n// Goal: B1\n// Goal: B2\ny\n// Goal: C\n"
        )
        assert result.rewrites == ["Goal: C", "Goal: B1\nGoal: B2", "Goal: A"]

    def test_cache_write_failure_is_logged(self, temp_dir, config, mocker):
        """Test an unwritable cache does not fail the file."""
        blocker = _write(temp_dir / "blocker", "")
        cache = CacheStore(blocker / "cache.json")
        path = _write(temp_dir / "a.ts", "// TODO: x\n")
        mock_logger = mocker.patch("todoexpand.process.logger")

        result = process_file(path, "a.ts", config, "sk", cache=cache, completer=mocker.Mock(return_value="Goal: x"))

        assert result.changed == 1
        mock_logger.warning.assert_called_once()


class TestRewriteTodos:
    """Tests for rewrite_todos function."""

    def test_per_file_timeout_stops_remaining_todos(self, mocker):
        """Test TODOs left when the file budget runs out stay unchanged."""
        content = "// TODO: a\nx\n// TODO: b\n"
        config = ResolvedConfig(cache=False, format=False, per_file_timeout_ms=100)
        ticks = iter([0.0, 0.0, 1.0])
        completer = mocker.Mock(return_value="Goal: b")

        text, rewrites = rewrite_todos(
            content, detect_todos(content), "a.ts", config,
            CacheStore(None), completer, clock=lambda: next(ticks),
        )

        assert text == "// TODO: a\nx\n// Goal: b\n"
        assert rewrites == ["Goal: b"]
        assert "[TODO 1 of 1]" in completer.call_args[0][0]

    def test_context_radius_from_config(self, mocker):
        """Test the prompt context honours context_lines."""
        content = "l0\nl1\nl2\n// TODO: mid\nl4\nl5\nl6\n"
        config = ResolvedConfig(cache=False, format=False, context_lines=1)
        completer = mocker.Mock(return_value=None)

        rewrite_todos(content, detect_todos(content), "a.ts", config, CacheStore(None), completer)

        prompt = completer.call_args[0][0]
        assert "l2\n// TODO: mid\nl4" in prompt
        assert "l1" not in prompt
        assert "l5" not in prompt


class TestRunFiles:
    """Tests for run_files function."""

    def test_yields_results_and_errors(self, temp_dir, config, mocker):
        """Test per-file errors are yielded and processing continues."""
        good = _write(temp_dir / "good.ts", "// TODO: x\n")
        missing = temp_dir / "missing.ts"

        results = dict(run_files(
            [missing, good], temp_dir, config, "sk",
            completer=mocker.Mock(return_value="Goal: x"),
        ))

        assert isinstance(results["missing.ts"], OSError)
        assert results["good.ts"].changed == 1

    def test_relative_paths_in_keys(self, temp_dir, mocker):
        """Test cache keys use paths relative to the project root."""
        src = temp_dir / "src"
        src.mkdir()
        path = _write(src / "a.ts", "// TODO: x\n")
        cache = CacheStore(temp_dir / "cache.json")
        config = ResolvedConfig(format=False)

        list(run_files([path], temp_dir, config, "sk", cache=cache, completer=mocker.Mock(return_value="Goal")))

        assert file_cache_key("src/a.ts", "// TODO: x") in cache.snapshot()

    def test_concurrent_processing(self, temp_dir, mocker):
        """Test a thread pool processes every file."""
        config = ResolvedConfig(cache=False, format=False, concurrency=3)
        paths = [_write(temp_dir / f"f{i}.ts", f"// TODO: item {i}\n") for i in range(6)]

        results = dict(run_files(paths, temp_dir, config, "sk", completer=mocker.Mock(return_value="Goal: done")))

        assert sorted(results) == [f"f{i}.ts" for i in range(6)]
        assert all(r.changed == 1 for r in results.values())
        assert all(p.read_text(encoding="utf-8") == "// Goal: done\n" for p in paths)

    def test_project_template_used(self, temp_dir, config, mocker):
        """Test the project prompt template is loaded once and applied."""
        template = temp_dir / "prompts" / "todo_expander.prompt.md"
        template.parent.mkdir()
        template.write_text("CUSTOM {{count}}\n{{todos}}", encoding="utf-8")
        path = _write(temp_dir / "a.ts", "// TODO: x\n")
        completer = mocker.Mock(return_value="Goal: x")

        list(run_files([path], temp_dir, config, "sk", completer=completer))

        assert completer.call_args[0][0].startswith("CUSTOM 1\n")

    def test_malformed_endpoint_does_not_stop_run(self, temp_dir):
        """Test every file is still processed when the endpoint is invalid."""
        config = ResolvedConfig(cache=False, format=False, endpoint="http://a\x00b/")
        paths = [_write(temp_dir / f"f{i}.ts", "// TODO: x\n") for i in range(2)]

        results = dict(run_files(paths, temp_dir, config, "sk"))

        assert sorted(results) == ["f0.ts", "f1.ts"]
        assert all(isinstance(r, FileResult) and r.changed == 0 for r in results.values())

    def test_concurrent_files_share_cache(self, temp_dir, mocker):
        """Test parallel workers sharing one cache store keep every entry."""
        config = ResolvedConfig(format=False, concurrency=4)
        cache_path = temp_dir / ".git" / "cache.json"
        cache = CacheStore(cache_path)
        paths = [_write(temp_dir / f"f{i}.ts", "// TODO: shared\n") for i in range(8)]

        results = dict(run_files(
            paths, temp_dir, config, "sk",
            cache=cache, completer=mocker.Mock(return_value="Goal: shared"),
        ))

        assert all(r.changed == 1 for r in results.values())
        assert all(p.read_text(encoding="utf-8") == "// Goal: shared\n" for p in paths)
        data = json.loads(cache_path.read_text(encoding="utf-8"))
        for i in range(8):
            assert data[file_cache_key(f"f{i}.ts", "// TODO: shared")] == "Goal: shared"
        assert data[todo_cache_key("// TODO: shared")] == "Goal: shared"
