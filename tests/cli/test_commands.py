"""Tests for the spl command group.

Covers:
- generate / chat / models / pull against a scripted server
- scaffold with --yes, --dry-run, and failures
- Interactive review prompts
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner

from scaffoldplane.cli.main import cli
from scaffoldplane.cli.scaffold import PromptDecider
from scaffoldplane.scaffold.review import build_review
from scaffoldplane.scaffold.validation import SanitizedFile


@pytest.fixture(autouse=True)
def _isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        "scaffoldplane.config.loader.GLOBAL_CONFIG_PATH", tmp_path / "no-global.yaml"
    )


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    root = tmp_path / "ws"
    root.mkdir()
    return root


def _invoke(server, workspace: Path, *args: str):
    runner = CliRunner()
    return runner.invoke(
        cli,
        ["--workspace", str(workspace), *args],
        obj={"transport": server.transport},
    )


class TestGenerateCommand:
    """Tests for spl generate."""

    def test_streams_tokens(self, server, workspace: Path) -> None:
        """Tokens are printed as they arrive."""
        server.respond("POST", "/api/generate", content=server.generate_stream("Hello", " there"))

        result = _invoke(server, workspace, "generate", "hi", "--model", "m")

        assert result.exit_code == 0, result.output
        assert "Hello there" in result.output
        assert server.payload("/api/generate")["model"] == "m"

    def test_configured_options_sent(self, server, workspace: Path) -> None:
        """Sampling options from the workspace config reach /api/generate."""
        config_dir = workspace / ".scaffoldplane"
        config_dir.mkdir()
        (config_dir / "config.yaml").write_text(
            "generation:\n  temperature: 0.2\n  num_predict: 128\n"
        )
        server.respond("POST", "/api/generate", content=server.generate_stream("ok"))

        result = _invoke(server, workspace, "generate", "hi")

        assert result.exit_code == 0, result.output
        assert server.payload("/api/generate")["options"] == {
            "temperature": 0.2,
            "num_predict": 128,
        }

    def test_server_error_is_reported(self, server, workspace: Path) -> None:
        """Transport failures exit non-zero with a message."""
        server.respond("POST", "/api/generate", status=500, content=b"boom")

        result = _invoke(server, workspace, "generate", "hi")

        assert result.exit_code == 1
        assert "status 500" in result.output


class TestChatCommand:
    """Tests for spl chat."""

    def test_sends_system_and_user(self, server, workspace: Path) -> None:
        """--system adds a system message before the user message."""
        server.respond("POST", "/api/chat", content=server.ndjson({"message": {"content": "pong"}}))

        result = _invoke(server, workspace, "chat", "ping", "--system", "be terse")

        assert result.exit_code == 0, result.output
        assert "pong" in result.output
        assert [m["role"] for m in server.payload("/api/chat")["messages"]] == ["system", "user"]


class TestModelsCommand:
    """Tests for spl models."""

    def test_json_output(self, server, workspace: Path) -> None:
        """--json prints the model list as JSON."""
        body = {"models": [{"name": "a:7b", "size": 2048, "modified_at": "2024-05-01"}]}
        server.respond("GET", "/api/tags", content=json.dumps(body).encode())

        result = _invoke(server, workspace, "models", "--json")

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout.strip().splitlines()[-1])
        assert data == [{"name": "a:7b", "size": 2048, "modified_at": "2024-05-01"}]

    def test_empty(self, server, workspace: Path) -> None:
        """No models prints a hint."""
        server.respond("GET", "/api/tags", content=b'{"models": []}')

        result = _invoke(server, workspace, "models")

        assert result.exit_code == 0
        assert "No models installed" in result.output


class TestPullCommand:
    """Tests for spl pull."""

    def test_success(self, server, workspace: Path) -> None:
        """A completed pull exits 0."""
        body = server.ndjson({"status": "pulling manifest"}, {"status": "success"})
        server.respond("POST", "/api/pull", content=body)

        result = _invoke(server, workspace, "pull", "m:7b")

        assert result.exit_code == 0, result.output
        assert "Pulled m:7b" in result.output

    def test_incomplete(self, server, workspace: Path) -> None:
        """A pull that never reports success exits non-zero."""
        server.respond("POST", "/api/pull", content=server.ndjson({"status": "pulling manifest"}))

        result = _invoke(server, workspace, "pull", "m:7b")

        assert result.exit_code == 1


class TestScaffoldCommand:
    """Tests for spl scaffold."""

    def _serve(self, server, plan: dict[str, Any]) -> None:
        server.respond("POST", "/api/generate", content=server.generate_stream(json.dumps(plan)))

    def test_yes_applies(self, server, workspace: Path) -> None:
        """--yes writes the plan without prompting."""
        self._serve(
            server,
            {"files": [{"path": "README.md", "content": "# Demo"}], "instructions": "Read it."},
        )

        result = _invoke(server, workspace, "scaffold", "Add a README", "--yes")

        assert result.exit_code == 0, result.output
        assert (workspace / "README.md").read_text() == "# Demo"
        assert "Scaffold applied." in result.output
        assert "Read it." in result.output

    def test_rejected_paths_listed(self, server, workspace: Path) -> None:
        """Unsafe paths are reported and not written."""
        self._serve(server, {"files": [{"path": "../evil.sh", "content": "x"}]})

        result = _invoke(server, workspace, "scaffold", "x", "--yes")

        assert result.exit_code == 0, result.output
        assert "../evil.sh" in result.output
        assert "No files to create." in result.output
        assert not (workspace.parent / "evil.sh").exists()

    def test_dry_run(self, server, workspace: Path) -> None:
        """--dry-run writes nothing."""
        self._serve(server, {"files": [{"path": "a.txt", "content": "A"}]})

        result = _invoke(server, workspace, "scaffold", "x", "--yes", "--dry-run")

        assert result.exit_code == 0, result.output
        assert not (workspace / "a.txt").exists()

    def test_existing_file_kept_without_allow_overwrite(self, server, workspace: Path) -> None:
        """--yes alone does not overwrite existing files."""
        (workspace / "a.txt").write_text("mine")
        self._serve(server, {"files": [{"path": "a.txt", "content": "theirs"}]})

        result = _invoke(server, workspace, "scaffold", "x", "--yes")

        assert result.exit_code == 0, result.output
        assert (workspace / "a.txt").read_text() == "mine"

    def test_allow_overwrite(self, server, workspace: Path) -> None:
        """--allow-overwrite replaces existing files."""
        (workspace / "a.txt").write_text("mine")
        self._serve(server, {"files": [{"path": "a.txt", "content": "theirs"}]})

        result = _invoke(server, workspace, "scaffold", "x", "--yes", "--allow-overwrite")

        assert result.exit_code == 0, result.output
        assert (workspace / "a.txt").read_text() == "theirs"

    def test_quota_exceeded(self, server, workspace: Path) -> None:
        """Oversized plans exit non-zero with the quota message."""
        config_dir = workspace / ".scaffoldplane"
        config_dir.mkdir()
        (config_dir / "config.yaml").write_text("scaffold:\n  max_files: 1\n")
        self._serve(
            server,
            {"files": [{"path": "a", "content": ""}, {"path": "b", "content": ""}]},
        )

        result = _invoke(server, workspace, "scaffold", "x", "--yes")

        assert result.exit_code == 1
        assert "exceeding limit 1" in result.output
        assert list(workspace.iterdir()) == [config_dir]

    def test_context_file_sent(self, server, workspace: Path) -> None:
        """--context includes workspace files in the prompt."""
        (workspace / "main.py").write_text("print('hi')\n")
        self._serve(server, {"files": []})

        result = _invoke(server, workspace, "scaffold", "x", "--yes", "-c", "main.py")

        assert result.exit_code == 0, result.output
        assert "File main.py:" in server.payload("/api/generate")["prompt"]


class _Answer:
    def __init__(self, value: Any) -> None:
        self._value = value

    async def ask_async(self) -> Any:
        return self._value


class TestPromptDecider:
    """Tests for the interactive decider."""

    @pytest.mark.asyncio
    async def test_confirm_yes(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Choosing yes confirms."""
        monkeypatch.setattr("questionary.select", lambda *a, **k: _Answer(True))
        assert await PromptDecider().confirm(_proposal_stub()) is True

    @pytest.mark.asyncio
    async def test_confirm_cancelled(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Ctrl-C at the prompt (None) declines."""
        monkeypatch.setattr("questionary.select", lambda *a, **k: _Answer(None))
        assert await PromptDecider().confirm(_proposal_stub()) is False

    @pytest.mark.asyncio
    async def test_overwrite_asks(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Changed conflicts are asked about."""
        (tmp_path / "a.txt").write_text("old")
        [item] = build_review(
            [SanitizedFile(path="a.txt", content="new", destination=tmp_path / "a.txt")]
        )
        monkeypatch.setattr("questionary.confirm", lambda *a, **k: _Answer(True))

        assert await PromptDecider().overwrite(item) is True

    @pytest.mark.asyncio
    async def test_unchanged_conflict_skipped(self, tmp_path: Path) -> None:
        """Identical content is skipped without asking."""
        (tmp_path / "a.txt").write_text("same")
        [item] = build_review(
            [SanitizedFile(path="a.txt", content="same", destination=tmp_path / "a.txt")]
        )

        assert await PromptDecider().overwrite(item) is False


def _proposal_stub() -> Any:
    class _Stub:
        items: list = []

    return _Stub()
