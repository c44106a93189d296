"""
Process execution for the jj command line tool.

This module provides the ProcessRunner class that spawns the external
binary, enforces a wall-clock timeout and turns every failure mode into an
ExecutionError carrying the full invocation context.
"""

import asyncio
import os
from pathlib import Path
from typing import Optional, Sequence, Tuple, Union

import psutil

from ..errors import ExecutionError, FailureKind
from ..models.execution import ProcessResult
from ..utils.error_handling import describe_failure
from ..utils.logging import get_logger

DEFAULT_TIMEOUT_MS = 30000

logger = get_logger("process.runner")


class ProcessRunner:
    """
    Runs the external version-control binary.

    The runner holds no per-repository state; the working directory is
    passed on every call.
    """

    def __init__(self, binary: str = "jj", timeout_ms: int = DEFAULT_TIMEOUT_MS):
        """
        Initialize ProcessRunner.

        Args:
            binary: Executable name or path of the external tool
            timeout_ms: Default wall-clock limit per invocation
        """
        self.binary = binary
        self.timeout_ms = timeout_ms

    @property
    def tool_name(self) -> str:
        """Bare executable name, as it appears in echoed invocations."""
        name = os.path.basename(self.binary)
        root, ext = os.path.splitext(name)
        return root if ext.lower() == ".exe" else name

    async def execute(
        self,
        args: Sequence[str],
        cwd: Union[str, Path],
        timeout_ms: Optional[int] = None,
    ) -> str:
        """
        Run the binary and return its stdout.

        Args:
            args: Arguments passed after the binary name
            cwd: Working directory for the process
            timeout_ms: Override of the default timeout

        Returns:
            Decoded stdout text

        Raises:
            ExecutionError: On missing binary, timeout, non-zero exit or any
                other failure while running the process.
        """
        result = await self.run(args, cwd, timeout_ms)
        return result.stdout

    async def run(
        self,
        args: Sequence[str],
        cwd: Union[str, Path],
        timeout_ms: Optional[int] = None,
    ) -> ProcessResult:
        """Like execute(), but also returns stderr warnings of a zero exit."""
        args = list(args)
        timeout_ms = self.timeout_ms if timeout_ms is None else timeout_ms
        command_line = " ".join([self.binary, *args])
        logger.debug(
            f"Running command: {command_line}",
            extra={"cwd": str(cwd), "timeout_ms": timeout_ms},
        )

        try:
            stdout, stderr, returncode = await self._spawn(args, cwd, timeout_ms)
        except ExecutionError:
            raise
        except FileNotFoundError as e:
            # A missing cwd also surfaces as FileNotFoundError; only blame the
            # binary when the directory exists.
            if not os.path.isdir(cwd):
                raise self._error(
                    f"Working directory does not exist: {cwd}",
                    args,
                    FailureKind.UNKNOWN,
                    cause=e,
                )
            raise self._error(
                f"{self.tool_name} is not installed or not found in PATH",
                args,
                FailureKind.NOT_FOUND,
                cause=e,
            )
        except Exception as e:
            logger.error(
                f"Unexpected error running {command_line}",
                extra={"error": str(e)},
                exc_info=True,
            )
            raise self._error(
                f"Failed to execute {self.tool_name}: {e}",
                args,
                FailureKind.UNKNOWN,
                cause=e,
            )

        if returncode != 0:
            message = describe_failure(stderr, returncode, self.tool_name)
            logger.error(
                f"Command failed: {command_line}",
                extra={"exit_code": returncode, "stderr": stderr.strip()},
            )
            raise self._error(
                message,
                args,
                FailureKind.NON_ZERO_EXIT,
                stderr=stderr,
                exit_code=returncode,
            )

        result = ProcessResult(
            command=self.binary,
            args=tuple(args),
            stdout=stdout,
            stderr=stderr,
            exit_code=returncode,
        )
        if result.has_warnings:
            logger.warning(
                f"Command wrote to stderr: {command_line}",
                extra={"stderr": stderr.strip()},
            )

        return result

    async def _spawn(
        self, args: Sequence[str], cwd: Union[str, Path], timeout_ms: int
    ) -> Tuple[str, str, int]:
        process = await asyncio.create_subprocess_exec(
            self.binary,
            *args,
            cwd=str(cwd),
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )

        try:
            stdout_bytes, stderr_bytes = await asyncio.wait_for(
                process.communicate(), timeout=timeout_ms / 1000
            )
        except asyncio.TimeoutError as e:
            await self._terminate(process)
            logger.error(
                f"Command timed out after {timeout_ms} ms",
                extra={"command": " ".join([self.binary, *args])},
            )
            raise self._error(
                f"Command timed out after {timeout_ms} ms",
                args,
                FailureKind.TIMEOUT,
                cause=e,
            )

        return (
            stdout_bytes.decode("utf-8", errors="replace"),
            stderr_bytes.decode("utf-8", errors="replace"),
            process.returncode,
        )

    async def _terminate(self, process) -> None:
        """Best-effort kill of the process and anything it spawned."""
        try:
            children = psutil.Process(process.pid).children(recursive=True)
        except psutil.Error:
            children = []

        for child in children:
            try:
                child.kill()
            except psutil.Error:
                continue

        try:
            process.kill()
        except ProcessLookupError:
            return

        try:
            await asyncio.wait_for(process.wait(), timeout=1.0)
        except asyncio.TimeoutError:
            logger.warning(
                "Process did not exit after kill", extra={"pid": process.pid}
            )

    def _error(
        self,
        message: str,
        args: Sequence[str],
        kind: FailureKind,
        stderr: Optional[str] = None,
        exit_code: Optional[int] = None,
        cause: Optional[BaseException] = None,
    ) -> ExecutionError:
        return ExecutionError(
            message,
            command=self.binary,
            args=args,
            kind=kind,
            stderr=stderr,
            exit_code=exit_code,
            cause=cause,
        )
