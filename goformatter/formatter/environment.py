"""Process environment for formatter tools."""
from __future__ import annotations

import logging
import os
import string
from typing import Mapping

logger = logging.getLogger(__name__)


def _expand(value: str, env: Mapping[str, str]) -> str:
    try:
        value = string.Template(value).safe_substitute(env)
    except ValueError as exc:
        logger.warning("Cannot expand environment value %r: %s", value, exc)
    return os.path.expanduser(value)


def _tool_bin_dirs(env: Mapping[str, str]) -> list[str]:
    """Directories where ``go install`` places binaries for this environment."""

    roots = [env.get("GOROOT", "")]
    roots.extend(env.get("GOPATH", "").split(os.pathsep))
    dirs = [os.path.join(root, "bin") for root in roots if root]
    gobin = env.get("GOBIN", "")
    if gobin:
        dirs.append(gobin)
    return dirs


def build_environment(
    overrides: Mapping[str, object] | None = None,
    base: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Merge ``overrides`` into the host environment and extend ``PATH``.

    Override values may reference other variables (``$HOME/go``) and ``~``.
    The ``bin`` directories of ``GOROOT``, every ``GOPATH`` entry and
    ``GOBIN`` are appended to ``PATH`` when missing.
    """

    env = dict(os.environ if base is None else base)
    for key, value in (overrides or {}).items():
        if value is None:
            env.pop(key, None)
            continue
        env[str(key)] = _expand(str(value), env)

    path_entries = [p for p in env.get("PATH", "").split(os.pathsep) if p]
    for directory in _tool_bin_dirs(env):
        if directory not in path_entries:
            path_entries.append(directory)
    env["PATH"] = os.pathsep.join(path_entries)
    return env
