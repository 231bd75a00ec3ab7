"""
Shell command runner built on asyncio subprocesses.

Commands are tokenized with ``shlex`` and executed without a shell. A
timeout kills the process and is reported as ``timed_out=True`` with exit
code 124.
"""

import asyncio
import logging
import shlex
import time

from featureforge.domain.exceptions import ExternalServiceError
from featureforge.domain.interfaces import CommandRunnerInterface
from featureforge.domain.models import TIMEOUT_EXIT_CODE, CommandResult

logger = logging.getLogger(__name__)


class SubprocessCommandRunner(CommandRunnerInterface):
    """Runs commands with ``asyncio.create_subprocess_exec``."""

    def __init__(self, default_cwd: str | None = None, default_timeout: float = 60.0):
        """
        Args:
            default_cwd: Working directory used when ``run`` gets none
            default_timeout: Seconds allowed when ``run`` gets no timeout
        """
        self._default_cwd = default_cwd
        self._default_timeout = default_timeout

    async def run(
        self,
        command: str,
        cwd: str | None = None,
        timeout: float | None = None,
    ) -> CommandResult:
        argv = shlex.split(command)
        if not argv:
            raise ExternalServiceError("Cannot run an empty command")

        workdir = cwd or self._default_cwd
        limit = timeout if timeout is not None else self._default_timeout
        started = time.monotonic()

        logger.debug("Running command: %s (cwd=%s, timeout=%ss)", command, workdir, limit)

        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                cwd=workdir,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise ExternalServiceError(f"Failed to start '{command}': {e}") from e

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=limit)
        except asyncio.TimeoutError:
            process.kill()
            stdout, stderr = await process.communicate()
            duration_ms = int((time.monotonic() - started) * 1000)
            logger.warning("Command timed out after %ss: %s", limit, command)
            return CommandResult(
                stdout=stdout.decode(errors="replace"),
                stderr=stderr.decode(errors="replace"),
                exit_code=TIMEOUT_EXIT_CODE,
                timed_out=True,
                duration_ms=duration_ms,
            )
        except asyncio.CancelledError:
            process.kill()
            await process.wait()
            raise

        duration_ms = int((time.monotonic() - started) * 1000)
        exit_code = process.returncode if process.returncode is not None else -1
        if exit_code != 0:
            logger.debug("Command exited with %d: %s", exit_code, command)

        return CommandResult(
            stdout=stdout.decode(errors="replace"),
            stderr=stderr.decode(errors="replace"),
            exit_code=exit_code,
            duration_ms=duration_ms,
        )
