"""Subprocess supervision for shell commands.

Lifecycle of one run_command call:

    spawn -> running -> (terminating) -> settled

Two independent triggers move a running process into terminating: the timeout
timer and the external abort signal. Either may fire first, both may fire.
Every trigger sends SIGTERM to the process group; only the first one arms the
SIGKILL escalation timer. The call settles once the shell has exited and both
pipes have been drained, at which point all timers and listeners are released.

Not a security boundary: the child runs with the caller's privileges. It only
bounds time, memory for captured output, and stray descendants.
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
import time
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

# Memory-protection cap on captured stdout+stderr, independent of the display
# caps in truncation.py.
MAX_BUFFER_BYTES = 10 * 1024 * 1024
KILL_GRACE_MS = 150
FALLBACK_PATH = "/usr/local/sbin:/usr/local/bin:/usr/sbin:/usr/bin:/sbin:/bin"
SHELL = "/bin/sh"

_READ_CHUNK = 64 * 1024


@dataclass(frozen=True)
class ExecutionOutcome:
    """What happened to one command. Never persisted."""

    exit_code: int | None
    signal: str | None
    stdout: str
    stderr: str
    aborted: bool
    timed_out: bool
    dropped_bytes: int = 0
    duration_seconds: float = 0.0

    @property
    def combined_output(self) -> str:
        return self.stdout + self.stderr

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0 and self.signal is None


def _non_blank(value: str | None) -> bool:
    return value is not None and value.strip() != ""


def _prepend_path_entry(path_value: str, entry: str) -> str:
    if not entry:
        return path_value
    segments = [segment for segment in path_value.split(os.pathsep) if segment]
    if entry in segments:
        return path_value
    return os.pathsep.join([entry, *segments])


def build_execution_env(base_env: Mapping[str, str] | None = None) -> dict[str, str]:
    """Environment for spawned commands.

    Guarantees HOME (and USERPROFILE) plus the XDG base directories are set,
    and that ``~/.local/bin`` is on PATH exactly once.
    """
    env = dict(os.environ if base_env is None else base_env)

    if _non_blank(env.get("HOME")):
        home = env["HOME"]
    elif _non_blank(env.get("USERPROFILE")):
        home = env["USERPROFILE"]
    else:
        home = str(Path.home())

    env["HOME"] = home
    if not _non_blank(env.get("USERPROFILE")):
        env["USERPROFILE"] = home
    if not _non_blank(env.get("XDG_CONFIG_HOME")):
        env["XDG_CONFIG_HOME"] = os.path.join(home, ".config")
    if not _non_blank(env.get("XDG_CACHE_HOME")):
        env["XDG_CACHE_HOME"] = os.path.join(home, ".cache")
    if not _non_blank(env.get("XDG_DATA_HOME")):
        env["XDG_DATA_HOME"] = os.path.join(home, ".local", "share")

    base_path = env["PATH"] if _non_blank(env.get("PATH")) else FALLBACK_PATH
    env["PATH"] = _prepend_path_entry(base_path, os.path.join(home, ".local", "bin"))
    return env


class OutputBuffer:
    """Captured stdout/stderr sharing one combined byte budget.

    Bytes past the budget are dropped and counted, never raised.
    """

    def __init__(self, max_bytes: int = MAX_BUFFER_BYTES) -> None:
        self.max_bytes = max_bytes
        self.dropped_bytes = 0
        self._size = 0
        self._chunks: dict[str, list[bytes]] = {"stdout": [], "stderr": []}

    def append(self, stream: str, chunk: bytes) -> None:
        remaining = self.max_bytes - self._size
        if remaining <= 0:
            self.dropped_bytes += len(chunk)
            return
        if len(chunk) > remaining:
            self.dropped_bytes += len(chunk) - remaining
            chunk = chunk[:remaining]
        self._chunks[stream].append(chunk)
        self._size += len(chunk)

    def text(self, stream: str) -> str:
        return b"".join(self._chunks[stream]).decode("utf-8", errors="replace")

    @property
    def overflowed(self) -> bool:
        return self.dropped_bytes > 0


class ProcessTerminator:
    """Escalating, idempotent termination of one process group.

    ``trigger`` may be called any number of times from either the timeout timer
    or the abort listener. The first call records the cause and is the only one
    allowed to arm the SIGKILL timer.
    """

    def __init__(self, process: asyncio.subprocess.Process, grace_seconds: float) -> None:
        self.process = process
        self.grace_seconds = grace_seconds
        self.cause: str | None = None
        self._kill_timer: asyncio.TimerHandle | None = None
        self._settled = False

    @property
    def timed_out(self) -> bool:
        return self.cause == "timeout"

    @property
    def aborted(self) -> bool:
        return self.cause == "abort"

    def trigger(self, cause: str) -> None:
        if self._settled:
            return
        if self.cause is None:
            self.cause = cause
            logger.debug("Terminating pid %s (%s)", self.process.pid, cause)

        self._signal_group(signal.SIGTERM)

        if self._kill_timer is None:
            loop = asyncio.get_running_loop()
            self._kill_timer = loop.call_later(self.grace_seconds, self._force_kill)

    def force_kill(self) -> None:
        """Immediate SIGKILL, used when the awaiting task is cancelled."""
        self._signal_group(signal.SIGKILL)

    def settle(self) -> None:
        self._settled = True
        if self._kill_timer is not None:
            self._kill_timer.cancel()

    def _force_kill(self) -> None:
        if not self._settled:
            logger.debug("Grace period expired, killing pid %s", self.process.pid)
            self._signal_group(signal.SIGKILL)

    def _signal_group(self, sig: signal.Signals) -> None:
        # The shell leads its own session, so signalling the group also reaches
        # background children that would otherwise keep the pipes open.
        if hasattr(os, "killpg"):
            try:
                os.killpg(self.process.pid, sig)
                return
            except (ProcessLookupError, PermissionError) as e:
                logger.debug("Process group kill failed for pid %s: %s", self.process.pid, e)
        if self.process.returncode is not None:
            return
        try:
            self.process.send_signal(sig)
        except ProcessLookupError:
            pass


async def _drain(stream: asyncio.StreamReader | None, name: str, buffer: OutputBuffer) -> None:
    if stream is None:
        return
    while True:
        chunk = await stream.read(_READ_CHUNK)
        if not chunk:
            return
        buffer.append(name, chunk)


def _signal_name(returncode: int | None) -> str | None:
    if returncode is None or returncode >= 0:
        return None
    try:
        return signal.Signals(-returncode).name
    except ValueError:
        return f"SIG{-returncode}"


async def run_command(
    command: str,
    cwd: str,
    timeout_ms: int,
    abort_signal: asyncio.Event | None = None,
    *,
    max_buffer_bytes: int = MAX_BUFFER_BYTES,
    kill_grace_ms: int = KILL_GRACE_MS,
    env: Mapping[str, str] | None = None,
) -> ExecutionOutcome:
    """Run ``command`` through the shell in ``cwd`` and supervise it.

    Args:
        command: Shell command line, passed to ``/bin/sh -c``.
        cwd: Working directory (already validated against the sandbox).
        timeout_ms: Wall-clock limit; ``<= 0`` disables the timer.
        abort_signal: External cancellation; setting it terminates the run.
        max_buffer_bytes: Combined cap on captured stdout+stderr.
        kill_grace_ms: Delay between SIGTERM and SIGKILL.
        env: Base environment; defaults to the current process environment.

    Returns:
        ExecutionOutcome describing exit status, captured output and the
        termination cause, if any.

    Raises:
        OSError: If the shell cannot be spawned (e.g. missing cwd).
    """
    started = time.monotonic()
    process = await asyncio.create_subprocess_exec(
        SHELL,
        "-c",
        command,
        cwd=cwd,
        env=build_execution_env(env),
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
        start_new_session=True,
    )
    logger.debug("Spawned pid %s: %s", process.pid, command)

    buffer = OutputBuffer(max_buffer_bytes)
    terminator = ProcessTerminator(process, kill_grace_ms / 1000)
    loop = asyncio.get_running_loop()

    timeout_timer: asyncio.TimerHandle | None = None
    if timeout_ms > 0:
        timeout_timer = loop.call_later(timeout_ms / 1000, terminator.trigger, "timeout")

    abort_listener: asyncio.Task[None] | None = None
    if abort_signal is not None:

        async def _on_abort() -> None:
            await abort_signal.wait()
            terminator.trigger("abort")

        abort_listener = asyncio.create_task(_on_abort())

    settled = False
    try:
        await asyncio.gather(
            process.wait(),
            _drain(process.stdout, "stdout", buffer),
            _drain(process.stderr, "stderr", buffer),
        )
        settled = True
    finally:
        if not settled:
            # Cancelled from outside (e.g. an enclosing timeout): do not leave
            # the process group running behind us.
            terminator.force_kill()
        terminator.settle()
        if timeout_timer is not None:
            timeout_timer.cancel()
        if abort_listener is not None:
            abort_listener.cancel()

    timed_out = terminator.timed_out
    aborted = terminator.aborted or (
        abort_signal is not None and abort_signal.is_set() and not timed_out
    )
    duration = time.monotonic() - started

    if buffer.overflowed:
        logger.warning(
            "Output of pid %s exceeded %d bytes; dropped %d bytes",
            process.pid,
            max_buffer_bytes,
            buffer.dropped_bytes,
        )
    logger.info(
        "Command settled pid=%s returncode=%s timed_out=%s aborted=%s in %.2fs",
        process.pid,
        process.returncode,
        timed_out,
        aborted,
        duration,
    )

    returncode = process.returncode
    return ExecutionOutcome(
        exit_code=returncode if returncode is not None and returncode >= 0 else None,
        signal=_signal_name(returncode),
        stdout=buffer.text("stdout"),
        stderr=buffer.text("stderr"),
        aborted=aborted,
        timed_out=timed_out,
        dropped_bytes=buffer.dropped_bytes,
        duration_seconds=duration,
    )
