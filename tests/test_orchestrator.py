from __future__ import annotations

import logging
import os
import subprocess
import sys
from pathlib import Path

import pytest

from goformatter.editor.buffer import DocumentBuffer
from goformatter.editor.patcher import BufferPatcher, PatchError
from goformatter.formatter.orchestrator import FormatOrchestrator, FormatOutcome
from goformatter.formatter.process_runner import ExecutionResult
from goformatter.formatter.registry import ToolDescriptor
from goformatter.lang.diagnostics import DiagnosticsModel
from goformatter.workspace.workspace_manager import WorkspaceManager

GOFMT = ToolDescriptor(name="gofmt", command="gofmt", args=("-s",), run_on_save=True)
SOURCE = "package main\nfunc main(){}\n"
FORMATTED = "package main\n\nfunc main() {}\n"


class FakeRunner:
    def __init__(self, result: ExecutionResult) -> None:
        self.result = result
        self.calls: list[dict] = []

    def run(self, command, args=(), *, input_text="", env=None, cwd=None, timeout=None):  # noqa: ANN001
        self.calls.append({"command": command, "args": list(args), "input_text": input_text, "env": env, "cwd": cwd, "timeout": timeout})
        return self.result


@pytest.fixture
def buffer(qt_app) -> DocumentBuffer:
    return DocumentBuffer("/work/proj/main.go", SOURCE)


def test_success_patches_buffer(buffer: DocumentBuffer) -> None:
    runner = FakeRunner(ExecutionResult(exit_code=0, stdout=FORMATTED))
    sink = DiagnosticsModel()
    orchestrator = FormatOrchestrator(runner=runner, diagnostics_sink=sink)

    outcome = orchestrator.format(buffer, GOFMT)

    assert outcome is FormatOutcome.APPLIED
    assert buffer.text() == FORMATTED
    assert runner.calls[0]["command"] == "gofmt"
    assert runner.calls[0]["args"] == ["-s"]
    assert runner.calls[0]["input_text"] == SOURCE
    assert sink.diagnostics() == []


def test_already_formatted_is_unchanged(qt_app) -> None:
    buffer = DocumentBuffer("main.go", FORMATTED)
    orchestrator = FormatOrchestrator(runner=FakeRunner(ExecutionResult(exit_code=0, stdout=FORMATTED)))

    assert orchestrator.format(buffer, GOFMT) is FormatOutcome.UNCHANGED
    assert not buffer.is_modified()


def test_stderr_wins_over_stdout(buffer: DocumentBuffer) -> None:
    runner = FakeRunner(
        ExecutionResult(exit_code=0, stdout=FORMATTED, stderr="<standard input>:2:13: expected '}', found 'EOF'\n")
    )
    sink = DiagnosticsModel()

    outcome = FormatOrchestrator(runner=runner, diagnostics_sink=sink).format(buffer, GOFMT)

    assert outcome is FormatOutcome.TOOL_ERROR
    assert buffer.text() == SOURCE
    assert not buffer.is_modified()
    [diag] = sink.diagnostics()
    assert (diag.file, diag.line, diag.col, diag.end_col) == ("/work/proj/main.go", 1, 12, 13)


def test_diagnostics_anchor_to_save_path(buffer: DocumentBuffer) -> None:
    runner = FakeRunner(ExecutionResult(exit_code=2, stderr="<standard input>:1:1: bad\n"))
    sink = DiagnosticsModel()

    FormatOrchestrator(runner=runner, diagnostics_sink=sink).format(buffer, GOFMT, "/elsewhere/renamed.go")

    assert [d.file for d in sink.diagnostics()] == ["/elsewhere/renamed.go"]


def test_new_run_replaces_previous_diagnostics(buffer: DocumentBuffer) -> None:
    sink = DiagnosticsModel()
    failing = FormatOrchestrator(
        runner=FakeRunner(ExecutionResult(exit_code=2, stderr="<standard input>:1:1: bad\n")),
        diagnostics_sink=sink,
    )
    failing.format(buffer, GOFMT)
    assert len(sink.diagnostics()) == 1

    failing.runner = FakeRunner(ExecutionResult(exit_code=0, stdout=FORMATTED))
    failing.format(buffer, GOFMT)

    assert sink.diagnostics() == []


def test_failure_without_sink_is_logged(buffer: DocumentBuffer, caplog) -> None:
    caplog.set_level(logging.DEBUG, logger="goformatter")
    runner = FakeRunner(ExecutionResult(exit_code=2, stderr="<standard input>:1:1: bad\n"))

    outcome = FormatOrchestrator(runner=runner).format(buffer, GOFMT)

    assert outcome is FormatOutcome.TOOL_ERROR
    assert any(r.levelname == "WARNING" and "(stderr)" in r.getMessage() for r in caplog.records)
    assert buffer.text() == SOURCE


@pytest.mark.parametrize(
    "result",
    [
        ExecutionResult(exit_code=1, stdout="", stderr=""),
        ExecutionResult(exit_code=0, stdout="", stderr=""),
        ExecutionResult(exit_code=1, stdout=FORMATTED, stderr=""),
    ],
)
def test_skip_conditions(buffer: DocumentBuffer, result: ExecutionResult) -> None:
    sink = DiagnosticsModel()

    outcome = FormatOrchestrator(runner=FakeRunner(result), diagnostics_sink=sink).format(buffer, GOFMT)

    assert outcome is FormatOutcome.SKIPPED
    assert buffer.text() == SOURCE
    assert sink.diagnostics() == []


def test_spawn_failure_leaves_buffer(buffer: DocumentBuffer, caplog) -> None:
    runner = FakeRunner(ExecutionResult(exit_code=None, spawn_error=FileNotFoundError("gofmt")))

    outcome = FormatOrchestrator(runner=runner).format(buffer, GOFMT)

    assert outcome is FormatOutcome.SPAWN_FAILED
    assert buffer.text() == SOURCE
    assert any(r.levelname == "ERROR" for r in caplog.records)


def test_timeout_is_reported_as_spawn_failure(buffer: DocumentBuffer) -> None:
    runner = FakeRunner(ExecutionResult(exit_code=None, spawn_error=subprocess.TimeoutExpired("gofmt", 1)))

    assert FormatOrchestrator(runner=runner).format(buffer, GOFMT) is FormatOutcome.SPAWN_FAILED


@pytest.mark.parametrize("path, scope", [("main.py", None), ("README.md", None), ("main.go", "source.python")])
def test_ineligible_buffers_never_run(qt_app, path: str, scope: str | None) -> None:
    runner = FakeRunner(ExecutionResult(exit_code=0, stdout=FORMATTED))
    buffer = DocumentBuffer(path, SOURCE, grammar_scope=scope)
    tools = [GOFMT, ToolDescriptor("goimports", "goimports"), ToolDescriptor("custom", "x", ("-w",), True)]

    outcomes = [FormatOrchestrator(runner=runner).format(buffer, tool) for tool in tools]

    assert outcomes == [FormatOutcome.INELIGIBLE] * 3
    assert runner.calls == []


def test_missing_or_destroyed_buffer_is_ineligible(buffer: DocumentBuffer) -> None:
    runner = FakeRunner(ExecutionResult(exit_code=0, stdout=FORMATTED))
    orchestrator = FormatOrchestrator(runner=runner)

    assert orchestrator.format(None, GOFMT) is FormatOutcome.INELIGIBLE
    buffer.destroy()
    assert orchestrator.format(buffer, GOFMT) is FormatOutcome.INELIGIBLE
    assert runner.calls == []


def test_patch_failure_is_contained(buffer: DocumentBuffer) -> None:
    class BrokenPatcher(BufferPatcher):
        def apply(self, buffer, new_text):  # noqa: ANN001
            raise PatchError("mismatch")

    orchestrator = FormatOrchestrator(
        runner=FakeRunner(ExecutionResult(exit_code=0, stdout=FORMATTED)),
        patcher=BrokenPatcher(),
    )

    assert orchestrator.format(buffer, GOFMT) is FormatOutcome.PATCH_FAILED


def test_runs_in_project_root_with_configured_env(buffer: DocumentBuffer, tmp_path: Path) -> None:
    runner = FakeRunner(ExecutionResult(exit_code=0, stdout=FORMATTED))
    workspace = WorkspaceManager(project_paths=["/work", "/work/proj", "/other"])
    orchestrator = FormatOrchestrator(runner=runner, workspace=workspace)
    orchestrator.configure({"scope": "source.go", "timeout": 3, "env": {"GOFLAGS": "-mod=vendor"}})

    orchestrator.format(buffer, GOFMT)

    call = runner.calls[0]
    assert call["cwd"] == os.path.abspath("/work/proj")
    assert call["timeout"] == 3.0
    assert call["env"]["GOFLAGS"] == "-mod=vendor"
    assert "PATH" in call["env"]


def test_configure_tolerates_bad_values() -> None:
    orchestrator = FormatOrchestrator()

    orchestrator.configure({"scope": "", "timeout": "soon", "env": ["not", "a", "mapping"]})

    assert orchestrator.target_scope == "source.go"
    assert orchestrator.timeout is None
    assert orchestrator.env == {}

    orchestrator.configure({"timeout": 0})
    assert orchestrator.timeout is None


def test_unparsed_stderr_is_logged_even_with_sink(buffer: DocumentBuffer, caplog) -> None:
    runner = FakeRunner(ExecutionResult(exit_code=1, stderr="goimports: could not import fmt\n"))
    sink = DiagnosticsModel()

    outcome = FormatOrchestrator(runner=runner, diagnostics_sink=sink).format(buffer, GOFMT)

    assert outcome is FormatOutcome.TOOL_ERROR
    assert sink.diagnostics() == []
    assert any(
        r.levelname == "WARNING" and "could not import fmt" in r.getMessage() for r in caplog.records
    )


def test_unrunnable_environment_is_a_spawn_failure(buffer: DocumentBuffer) -> None:
    tool = ToolDescriptor(name="fmt", command=sys.executable, args=("-c", "pass"))
    orchestrator = FormatOrchestrator()
    orchestrator.configure({"env": {"GOFLAGS": "a\x00b"}})

    assert orchestrator.format(buffer, tool) is FormatOutcome.SPAWN_FAILED
    assert buffer.text() == SOURCE


def test_special_whitespace_survives_format_and_save(qt_app, tmp_path: Path) -> None:
    source = 'package main\nvar s = "a\u00a0b"\nvar l = "c\u2028d"\n'
    formatted = 'package main\n\nvar s = "a\u00a0b"\nvar l = "c\u2028d"\n'
    target = tmp_path / "main.go"
    buffer = DocumentBuffer(target, source)
    runner = FakeRunner(ExecutionResult(exit_code=0, stdout=formatted))

    outcome = FormatOrchestrator(runner=runner).format(buffer, GOFMT)
    buffer.save()

    assert runner.calls[0]["input_text"] == source
    assert outcome is FormatOutcome.APPLIED
    assert buffer.text() == formatted
    assert target.read_text(encoding="utf-8") == formatted
