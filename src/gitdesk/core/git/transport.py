"""
Runner for network git commands.

Clone, push, pull and fetch block on the network, so they run as a child
``git`` process that the caller can cancel (via a ``threading.Event``) or
bound with a timeout. Output is drained on reader threads; stderr lines are
optionally handed to a callback, which is how clone progress is streamed.

Failures are classified into the error taxonomy: refused credentials become
``InvalidCredentialsError``, rejected or non-fast-forward updates become
``NonFastForwardError``, and everything else is a ``TransportError`` that
keeps git's own message.
"""

from __future__ import annotations

import logging
import re
import subprocess
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import IO

from git import Git

from gitdesk.core.git.errors import (
    GitDeskError,
    InvalidCredentialsError,
    NonFastForwardError,
    OperationCancelledError,
    TransportError,
)
from gitdesk.core.git.models import CloneProgress, CloneStage

logger = logging.getLogger(__name__)

# How often the waiting thread checks for cancellation and deadlines
POLL_INTERVAL = 0.1

_PROGRESS_RE = re.compile(
    r"(?P<stage>Counting objects|Compressing objects|Receiving objects|Resolving deltas):"
    r"\s+\d+%\s+\((?P<current>\d+)/(?P<total>\d+)\)"
)

_STAGES = {
    "Counting objects": CloneStage.COUNTING,
    "Compressing objects": CloneStage.COMPRESSING,
    "Receiving objects": CloneStage.RECEIVING,
    "Resolving deltas": CloneStage.RESOLVING,
}

_AUTH_FAILURE_MARKERS = (
    "authentication failed",
    "could not read username",
    "could not read password",
    "invalid username or password",
    "http basic: access denied",
    "permission denied (publickey",
    "the requested url returned error: 401",
    "the requested url returned error: 403",
)

_NON_FAST_FORWARD_MARKERS = (
    "[rejected]",
    "non-fast-forward",
    "fetch first",
    "not possible to fast-forward",
    "diverging branches",
)


def parse_progress_line(line: str) -> CloneProgress | None:
    """
    Parse a git progress line such as ``Receiving objects:  45% (9/20)``.

    Returns:
        CloneProgress, or None if the line is not a progress report
    """
    match = _PROGRESS_RE.search(line)
    if match is None:
        return None
    return CloneProgress(
        stage=_STAGES[match.group("stage")],
        current=int(match.group("current")),
        total=int(match.group("total")),
    )


@dataclass
class GitProcessResult:
    """Captured output of a finished git process."""

    stdout: str
    stderr: str


def _drain(stream: IO[bytes], sink: list[str], on_line: Callable[[str], None] | None) -> None:
    """Read a stream to EOF, splitting on both CR and LF so progress updates arrive live."""
    pending = b""
    while True:
        chunk = stream.read1(4096) if hasattr(stream, "read1") else stream.read(4096)
        if not chunk:
            break
        pending += chunk
        parts = re.split(rb"[\r\n]", pending)
        pending = parts.pop()
        for raw in parts:
            line = raw.decode("utf-8", errors="replace")
            if not line:
                continue
            sink.append(line)
            if on_line is not None:
                on_line(line)
    if pending:
        line = pending.decode("utf-8", errors="replace")
        sink.append(line)
        if on_line is not None:
            on_line(line)


def classify_failure(operation: str, stderr: str) -> GitDeskError:
    """Map a failed network command's stderr onto the error taxonomy."""
    lowered = stderr.lower()
    detail = stderr.strip() or f"git {operation} exited with an error"

    if any(marker in lowered for marker in _AUTH_FAILURE_MARKERS):
        return InvalidCredentialsError(f"{operation} failed: {detail}")

    if any(marker in lowered for marker in _NON_FAST_FORWARD_MARKERS):
        return NonFastForwardError(f"{operation} failed: {detail}", stderr=stderr)

    return TransportError(f"{operation} failed: {detail}", stderr=stderr)


def run_network_command(
    git: Git,
    args: list[str],
    *,
    env: dict[str, str] | None = None,
    cancel: threading.Event | None = None,
    timeout: float | None = None,
    on_line: Callable[[str], None] | None = None,
) -> GitProcessResult:
    """
    Run a git command that talks to a remote.

    Args:
        git: GitPython command wrapper (its working dir is the process cwd)
        args: Git arguments without the leading "git"
        env: Extra environment, usually from a ``Credential``
        cancel: Event that aborts the command when set
        timeout: Seconds before the command is killed
        on_line: Called with each stderr line as it arrives

    Returns:
        Captured stdout and stderr

    Raises:
        OperationCancelledError: If ``cancel`` was set
        InvalidCredentialsError: If the remote refused the credentials
        NonFastForwardError: If the update was rejected as non-fast-forward
        TransportError: On timeout or any other failure
    """
    operation = args[0] if args else "git"
    logger.debug("Running network git command: git %s", " ".join(args))

    handle = git.execute(["git", *args], as_process=True, env=env or {})
    proc: subprocess.Popen = handle.proc

    stdout_lines: list[str] = []
    stderr_lines: list[str] = []
    readers = [
        threading.Thread(target=_drain, args=(proc.stdout, stdout_lines, None), daemon=True),
        threading.Thread(target=_drain, args=(proc.stderr, stderr_lines, on_line), daemon=True),
    ]
    for reader in readers:
        reader.start()

    deadline = time.monotonic() + timeout if timeout else None
    try:
        while True:
            try:
                proc.wait(timeout=POLL_INTERVAL)
                break
            except subprocess.TimeoutExpired:
                if cancel is not None and cancel.is_set():
                    _kill(proc)
                    raise OperationCancelledError(f"{operation} cancelled")
                if deadline is not None and time.monotonic() > deadline:
                    _kill(proc)
                    raise TransportError(f"{operation} timed out after {timeout:g}s")
    finally:
        for reader in readers:
            reader.join(timeout=5)

    result = GitProcessResult(
        stdout="\n".join(stdout_lines),
        stderr="\n".join(stderr_lines),
    )

    if proc.returncode != 0:
        raise classify_failure(operation, result.stderr)

    return result


def _kill(proc: subprocess.Popen) -> None:
    proc.kill()
    try:
        proc.wait(timeout=5)
    except subprocess.TimeoutExpired:
        logger.warning("git process %s did not exit after kill", proc.pid)
