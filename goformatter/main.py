"""
Command line entry point: format Go files with the configured tools.
"""
from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Sequence

from PySide6.QtGui import QGuiApplication

from goformatter.core.config import ConfigManager
from goformatter.core.logging import configure_logging
from goformatter.formatter.orchestrator import FormatOrchestrator, FormatOutcome
from goformatter.formatter.registry import ToolDescriptor, parse_tools
from goformatter.lang.diagnostics import DiagnosticsModel
from goformatter.workspace.workspace_manager import WorkspaceManager

logger = logging.getLogger(__name__)

FAILURES = {FormatOutcome.TOOL_ERROR, FormatOutcome.SPAWN_FAILED, FormatOutcome.PATCH_FAILED}


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="goformatter", description="Run Go formatting tools over files")
    parser.add_argument("files", nargs="+", help="Files to format")
    parser.add_argument("--tool", help="Run only this configured tool (default: every on-save tool)")
    parser.add_argument("--check", action="store_true", help="Report files that would change without writing them")
    parser.add_argument("--config", type=Path, help="Settings file to use instead of the user settings")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log each tool run")
    return parser.parse_args(argv)


def _ensure_gui_app() -> QGuiApplication:
    os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
    return QGuiApplication.instance() or QGuiApplication([])


def _select_tools(tools: list[ToolDescriptor], name: str | None) -> list[ToolDescriptor] | None:
    if name:
        chosen = [tool for tool in tools if tool.name == name]
        return chosen or None
    return [tool for tool in tools if tool.run_on_save]


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    configure_logging(logging.DEBUG if args.verbose else logging.WARNING)
    _qt_app = _ensure_gui_app()

    config = ConfigManager(user_settings_path=args.config) if args.config else ConfigManager()
    section = config.section("formatter")
    tools = _select_tools(parse_tools(section.get("format_tools")), args.tool)
    if tools is None:
        print(f"goformatter: no tool named {args.tool!r} is configured", file=sys.stderr)
        return 2

    workspace = WorkspaceManager(project_paths=[Path.cwd()], extension_map=config.section("languages").get("extension_map"))
    sink = DiagnosticsModel()
    orchestrator = FormatOrchestrator(diagnostics_sink=sink, workspace=workspace)
    orchestrator.configure(section)

    status = 0
    for name in args.files:
        if not Path(name).is_file():
            print(f"{name}: no such file", file=sys.stderr)
            status = 1
            continue
        buffer = workspace.open_buffer(name)
        for tool in tools:
            outcome = orchestrator.format(buffer, tool)
            logger.debug("%s on %s: %s", tool.name, name, outcome.value)
            if outcome is FormatOutcome.INELIGIBLE:
                print(f"{name}: skipped, not a {orchestrator.target_scope} file", file=sys.stderr)
                break
            if outcome in FAILURES:
                for diag in sink.diagnostics():
                    print(f"{diag.file}:{diag.line + 1}:{diag.col + 1}: {diag.message}")
                if outcome is not FormatOutcome.TOOL_ERROR or not sink.diagnostics():
                    print(f"{name}: {tool.name} failed ({outcome.value})", file=sys.stderr)
                status = 1
                break

        if buffer.is_modified():
            if args.check:
                print(f"{name}: would reformat")
                status = 1
            else:
                buffer.save()
        workspace.close_buffer(buffer)
    return status


if __name__ == "__main__":
    raise SystemExit(main())
