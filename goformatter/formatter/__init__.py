"""Formatter tools: process execution, orchestration and registration."""

from goformatter.formatter.orchestrator import FormatOrchestrator, FormatOutcome
from goformatter.formatter.process_runner import ExecutionResult, ProcessRunner
from goformatter.formatter.registry import ToolDescriptor, ToolRegistry

__all__ = [
    "ExecutionResult",
    "FormatOrchestrator",
    "FormatOutcome",
    "ProcessRunner",
    "ToolDescriptor",
    "ToolRegistry",
]
