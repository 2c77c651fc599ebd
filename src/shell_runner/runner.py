"""Drive an interactive shell process for integration tests.

shell-runner v0.1.0

This module provides:
- Launching the shell with its session arguments (env, commands, disabled, contexts)
- Sending one line at a time and awaiting the next prompt
- Relaying stdout/stderr/close to listeners
- Reliable termination (SIGTERM -> timeout -> SIGKILL on the process group)

Key design points:
- Every wait for a prompt is bounded by a timeout and by a buffer limit
- A shell that exits mid-wait raises ProcessClosedError instead of hanging
- POSIX: start_new_session=True so termination reaches the whole group
"""

from __future__ import annotations

import asyncio
import codecs
import json
import logging
import os
import signal
import subprocess
import sys
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import anyio

from .config import get_config
from .errors import (
    BufferOverflowError,
    ProcessClosedError,
    PromptTimeoutError,
    RunnerStateError,
)
from .options import RunnerOptions, build_argv
from .prompt import PromptBuffer

__all__ = [
    "ShellRunner",
    "ExecResult",
    "CloseEvent",
    "EVENTS",
]

logger = logging.getLogger(__name__)

# Platform detection
IS_WINDOWS = sys.platform == "win32"

DEFAULT_KILL_TIMEOUT = 1.0  # seconds to wait after SIGKILL
READ_CHUNK_SIZE = 4096

EVENTS = ("stdout", "stderr", "close")


@dataclass(frozen=True)
class CloseEvent:
    """How the shell process ended.

    Exactly one of code / signal is set once the process has exited.

    Attributes:
        code: Exit code, or None when killed by a signal
        signal: Signal name (e.g. "SIGTERM"), or None on a normal exit
    """

    code: int | None
    signal: str | None

    @classmethod
    def from_returncode(cls, returncode: int) -> "CloseEvent":
        if returncode < 0:
            try:
                name = signal.Signals(-returncode).name
            except ValueError:
                name = f"SIG{-returncode}"
            return cls(code=None, signal=name)
        return cls(code=returncode, signal=None)


@dataclass(frozen=True)
class ExecResult:
    """Output printed between a command and the next prompt.

    Attributes:
        stdout: Stdout text, prompt marker excluded
        stderr: Stderr text received during the wait
    """

    stdout: str
    stderr: str


class ShellRunner:
    """Run an interactive shell and talk to it one line at a time.

    Example:
        options = RunnerOptions(
            program=[sys.executable, "shell.py"],
            disabled=["exit"],
            contexts={"admin": ["reboot"]},
        )

        async with ShellRunner(options) as runner:
            result = await runner.exec("echo hello")
            assert result.stdout == "hello\\n"

    Listeners can follow the raw streams:
        runner.on("stdout", lambda text: ...)
        runner.on("close", lambda event: ...)
    """

    def __init__(
        self,
        options: RunnerOptions | None = None,
        *,
        term_timeout: float | None = None,
        kill_timeout: float = DEFAULT_KILL_TIMEOUT,
    ) -> None:
        """Create a runner; no process is started until start().

        Args:
            options: Session options (default: RunnerOptions())
            term_timeout: Seconds between SIGTERM and SIGKILL (default: config)
            kill_timeout: Seconds to wait after SIGKILL
        """
        config = get_config()
        self.options = options or RunnerOptions()
        if self.options.prompt_timeout is None:
            self.prompt_timeout = config.prompt_timeout
        else:
            # 0 waits forever, the same as SHELL_RUNNER_PROMPT_TIMEOUT=0
            self.prompt_timeout = self.options.prompt_timeout or None
        self.term_timeout = term_timeout if term_timeout is not None else config.term_timeout
        self.kill_timeout = kill_timeout
        self.encoding = config.encoding

        self._process: asyncio.subprocess.Process | None = None
        self._listeners: dict[str, list[Callable[[Any], None]]] = {
            name: [] for name in EVENTS
        }
        self._stdout = PromptBuffer(self.options.prompt, self.options.max_buffer_size)
        self._stderr: list[str] = []
        self._close_event: CloseEvent | None = None
        self._closing = False
        # Why replies can no longer be matched to commands, once they cannot
        self._desync_reason: str | None = None

        # Created in start() so they bind to the running loop
        self._condition: asyncio.Condition | None = None
        self._exec_lock: asyncio.Lock | None = None
        self._closed: asyncio.Event | None = None
        self._tasks: list[asyncio.Task[None]] = []

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def pid(self) -> int | None:
        return self._process.pid if self._process else None

    @property
    def is_running(self) -> bool:
        """Started and not yet exited."""
        return self._process is not None and self._close_event is None

    @property
    def close_event(self) -> CloseEvent | None:
        return self._close_event

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def on(self, event: str, callback: Callable[[Any], None]) -> None:
        """Subscribe to "stdout" / "stderr" (text chunks) or "close" (CloseEvent)."""
        if event not in self._listeners:
            raise ValueError(f"Unknown event {event!r}, expected one of {EVENTS}")
        self._listeners[event].append(callback)

    def off(self, event: str, callback: Callable[[Any], None]) -> None:
        """Remove a listener added with on()."""
        if event not in self._listeners:
            raise ValueError(f"Unknown event {event!r}, expected one of {EVENTS}")
        if callback in self._listeners[event]:
            self._listeners[event].remove(callback)

    def _emit(self, event: str, payload: Any) -> None:
        for callback in list(self._listeners[event]):
            try:
                callback(payload)
            except Exception as e:
                logger.warning(f"{event} listener {callback!r} failed: {e}")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Launch the shell and return once its first prompt is printed.

        Raises:
            RunnerStateError: If the runner was already started
            RunnerConfigError: If no shell program is configured
            PromptTimeoutError / ProcessClosedError: If no prompt appears;
                the process is closed before the error propagates
        """
        if self._process is not None:
            raise RunnerStateError("Runner already started")

        argv = build_argv(self.options)
        logger.debug(f"spawn: {json.dumps(argv, indent=2)}")

        self._condition = asyncio.Condition()
        self._exec_lock = asyncio.Lock()
        self._closed = asyncio.Event()

        self._process = await asyncio.create_subprocess_exec(
            *argv,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=self.options.cwd,
            **self._build_subprocess_kwargs(),
        )
        logger.debug(f"Started shell pid={self._process.pid} argv={argv[0]}")

        stdout_task = asyncio.create_task(self._pump(self._process.stdout, "stdout"))
        stderr_task = asyncio.create_task(self._pump(self._process.stderr, "stderr"))
        watch_task = asyncio.create_task(self._watch_exit(stdout_task, stderr_task))
        self._tasks = [stdout_task, stderr_task, watch_task]

        try:
            await self._wait_for_prompt()
        except BaseException:
            await self.close()
            raise

    async def exec(self, command: str) -> ExecResult:
        """Send one line to the shell and wait for the next prompt.

        Calls are serialized: concurrent callers are answered in the order
        they acquired the runner.

        Args:
            command: Line to send (a newline is appended)

        Returns:
            ExecResult with stdout/stderr printed before the next prompt

        Raises:
            RunnerStateError: If the runner is not started, was closed, or an
                earlier wait timed out or overflowed
            ProcessClosedError: If the shell exits before the next prompt
            PromptTimeoutError: If the prompt does not appear in time
            BufferOverflowError: If stdout grows past the buffer limit
        """
        self._check_usable()
        assert self._exec_lock is not None

        async with self._exec_lock:
            self._check_usable()
            process = self._process
            assert process is not None and process.stdin is not None

            logger.debug(f"runner stdin: {command}")
            async with self._condition:
                stale = self._stdout.drain()
                if stale:
                    logger.debug(f"Discarding stdout received between prompts: {stale!r}")
                self._stderr.clear()

            try:
                process.stdin.write((command + "\n").encode(self.encoding))
                await process.stdin.drain()
            except (BrokenPipeError, ConnectionResetError) as e:
                logger.debug(f"Write to shell stdin failed pid={process.pid}: {e}")
                try:
                    with anyio.fail_after(self.prompt_timeout):
                        event = await self.wait_closed()
                except TimeoutError:
                    self._desync_reason = "shell stopped reading stdin but did not exit"
                    raise PromptTimeoutError(self.prompt_timeout or 0.0) from e
                raise ProcessClosedError(event, self._stdout.drain(), self._drain_stderr()) from e

            return await self._wait_for_prompt()

    async def close(self) -> CloseEvent | None:
        """Terminate the shell and wait for its close event.

        Safe to call more than once, and before start() (no-op).

        Returns:
            The close event, or None if the runner was never started
        """
        self._closing = True
        process = self._process
        if process is None:
            return None

        if process.returncode is None:
            await asyncio.shield(self._terminate_process(process))

        if process.stdin is not None and not process.stdin.is_closing():
            process.stdin.close()

        return await self.wait_closed()

    async def wait_closed(self) -> CloseEvent:
        """Wait until the shell has exited and its streams are drained."""
        if self._closed is None:
            raise RunnerStateError("Runner not started")
        await self._closed.wait()
        assert self._close_event is not None
        return self._close_event

    async def __aenter__(self) -> "ShellRunner":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _check_usable(self) -> None:
        if self._process is None:
            raise RunnerStateError("Runner not started")
        if self._closing:
            raise RunnerStateError("Runner is closed")
        if self._desync_reason is not None:
            raise RunnerStateError(f"Runner out of sync with the shell: {self._desync_reason}")
        if self._close_event is not None:
            raise ProcessClosedError(self._close_event, self._stdout.drain(), self._drain_stderr())

    def _drain_stderr(self) -> str:
        text = "".join(self._stderr)
        self._stderr.clear()
        return text

    def _build_subprocess_kwargs(self) -> dict[str, Any]:
        """Build platform-specific subprocess kwargs."""
        kwargs: dict[str, Any] = {}
        if IS_WINDOWS:
            kwargs["creationflags"] = subprocess.CREATE_NEW_PROCESS_GROUP
        else:
            kwargs["start_new_session"] = True
        return kwargs

    async def _pump(self, stream: asyncio.StreamReader | None, name: str) -> None:
        """Read one of the shell's output streams until EOF.

        Chunks are decoded incrementally so a multi-byte character split
        across reads is not mangled.
        """
        if stream is None:
            return
        assert self._condition is not None

        decoder = codecs.getincrementaldecoder(self.encoding)(errors="replace")
        while True:
            chunk = await stream.read(READ_CHUNK_SIZE)
            text = decoder.decode(chunk, final=not chunk)
            if text:
                logger.debug(f"runner {name}: {text!r}")
                async with self._condition:
                    if name == "stdout":
                        self._stdout.feed(text)
                    else:
                        self._stderr.append(text)
                    self._condition.notify_all()
                self._emit(name, text)
            if not chunk:
                break

    async def _watch_exit(
        self,
        stdout_task: asyncio.Task[None],
        stderr_task: asyncio.Task[None],
    ) -> None:
        """Publish the close event once the process exited and both streams hit EOF."""
        assert self._process is not None and self._condition is not None
        assert self._closed is not None

        results = await asyncio.gather(stdout_task, stderr_task, return_exceptions=True)
        for name, result in zip(("stdout", "stderr"), results):
            if isinstance(result, BaseException):
                logger.warning(f"Reading shell {name} failed pid={self._process.pid}: {result!r}")

        returncode = await self._process.wait()
        event = CloseEvent.from_returncode(returncode)
        logger.debug(
            f"Shell closed pid={self._process.pid} "
            f"code={event.code} signal={event.signal}"
        )

        async with self._condition:
            self._close_event = event
            self._condition.notify_all()
        self._closed.set()
        self._emit("close", event)

    async def _wait_for_prompt(self) -> ExecResult:
        """Wait until the prompt shows up in stdout.

        Returns:
            Stdout before the prompt and stderr collected during the wait
        """
        assert self._condition is not None
        timeout = self.prompt_timeout

        try:
            with anyio.fail_after(timeout):
                async with self._condition:
                    while True:
                        stdout = self._stdout.pop_until_prompt()
                        if stdout is not None:
                            return ExecResult(stdout=stdout, stderr=self._drain_stderr())

                        if self._stdout.overflowed():
                            self._desync_reason = "stdout overflowed without a prompt"
                            raise BufferOverflowError(self.options.max_buffer_size)

                        if self._close_event is not None:
                            raise ProcessClosedError(
                                self._close_event,
                                self._stdout.drain(),
                                self._drain_stderr(),
                            )

                        await self._condition.wait()
        except TimeoutError:
            # A late prompt would otherwise be taken as the next reply
            self._desync_reason = f"no prompt within {timeout:g}s"
            raise PromptTimeoutError(
                timeout or 0.0,
                self._stdout.text,
                "".join(self._stderr),
            ) from None

    async def _terminate_process(self, process: asyncio.subprocess.Process) -> None:
        """Terminate the shell gracefully, then forcefully if needed.

        Termination strategy:
        1. Send SIGTERM to the process group (terminate() on Windows)
        2. Wait up to term_timeout for the exit
        3. If still running, send SIGKILL (kill() on Windows)
        4. Wait up to kill_timeout
        """
        pid = process.pid
        logger.debug(f"Terminating shell pid={pid}")

        try:
            if IS_WINDOWS:
                process.terminate()
            else:
                self._posix_signal(process, signal.SIGTERM)

            try:
                await asyncio.wait_for(process.wait(), timeout=self.term_timeout)
                logger.debug(f"Shell terminated pid={pid} returncode={process.returncode}")
                return
            except asyncio.TimeoutError:
                pass

            logger.debug(f"Force killing shell pid={pid}")
            if IS_WINDOWS:
                process.kill()
            else:
                self._posix_signal(process, signal.SIGKILL)

            try:
                await asyncio.wait_for(process.wait(), timeout=self.kill_timeout)
                logger.debug(f"Shell killed pid={pid} returncode={process.returncode}")
            except asyncio.TimeoutError:
                logger.warning(f"Shell did not exit after kill pid={pid}")

        except ProcessLookupError:
            logger.debug(f"Shell already exited pid={pid}")
        except Exception as e:
            logger.warning(f"Error terminating shell pid={pid}: {e}")

    def _posix_signal(self, process: asyncio.subprocess.Process, sig: signal.Signals) -> None:
        """Signal the shell's process group, falling back to the process alone."""
        try:
            pgid = os.getpgid(process.pid)
            os.killpg(pgid, sig)
            logger.debug(f"Sent {sig.name} to process group pgid={pgid}")
        except ProcessLookupError:
            pass
        except OSError as e:
            logger.debug(f"killpg failed, falling back to send_signal: {e}")
            process.send_signal(sig)
