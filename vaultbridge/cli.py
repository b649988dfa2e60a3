# SPDX-License-Identifier: MIT
# Copyright (c) 2025 vaultbridge contributors

"""Helpers for backends that drive a command-line tool (bw, pass, ...).

Commands are always spawned without a shell. Arguments are passed as a
list, so names that made it through validation are never reinterpreted.
"""

import asyncio
import os
import shutil
from collections.abc import Mapping, Sequence

from vaultbridge_logging import get_logger

from .exceptions import BackendUnavailableError, CommandFailedError, TransportError

logger = get_logger(__name__)

DEFAULT_TIMEOUT = 60.0


def check_command_exists(program: str) -> bool:
    """Return True if ``program`` is found on PATH."""
    return shutil.which(program) is not None


def _build_env(env: Mapping[str, str] | None) -> dict[str, str] | None:
    if not env:
        return None
    merged = dict(os.environ)
    merged.update(env)
    return merged


async def _run(
    program: str,
    args: Sequence[str],
    stdin_data: str | None,
    env: Mapping[str, str] | None,
    timeout: float | None,
) -> str:
    try:
        process = await asyncio.create_subprocess_exec(
            program,
            *args,
            stdin=asyncio.subprocess.PIPE if stdin_data is not None else asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=_build_env(env),
        )
    except FileNotFoundError as e:
        raise BackendUnavailableError(f"{program} command not found") from e
    except OSError as e:
        raise TransportError(f"failed to start {program}: {e}") from e

    payload = stdin_data.encode("utf-8") if stdin_data is not None else None
    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(payload), timeout=timeout)
    except asyncio.TimeoutError as e:
        process.kill()
        await process.wait()
        logger.warning("Command timed out", program=program, timeout=timeout)
        raise TransportError(f"{program} timed out after {timeout} seconds") from e
    except asyncio.CancelledError:
        if process.returncode is None:
            process.kill()
            await process.wait()
        raise

    if process.returncode != 0:
        # Arguments may contain item names but never secret values; only the program is logged
        logger.debug("Command failed", program=program, returncode=process.returncode)
        raise CommandFailedError(program, process.returncode, stderr.decode("utf-8", errors="replace"))

    try:
        return stdout.decode("utf-8")
    except UnicodeDecodeError as e:
        raise TransportError(f"invalid UTF-8 in {program} output: {e}") from e


async def run_command(
    program: str,
    args: Sequence[str],
    env: Mapping[str, str] | None = None,
    timeout: float | None = DEFAULT_TIMEOUT,
) -> str:
    """Run a command and return its stdout.

    Args:
        program: Executable to run, looked up on PATH
        args: Command arguments
        env: Extra environment variables layered over the current environment
        timeout: Seconds to wait before the child is killed; None waits forever

    Returns:
        Decoded stdout

    Raises:
        BackendUnavailableError: If the program is not installed
        CommandFailedError: If the program exits with a non-zero status
        TransportError: On timeout, spawn failure or undecodable output
    """
    return await _run(program, args, None, env, timeout)


async def run_command_with_stdin(
    program: str,
    args: Sequence[str],
    stdin_data: str,
    env: Mapping[str, str] | None = None,
    timeout: float | None = DEFAULT_TIMEOUT,
) -> str:
    """Run a command, feed ``stdin_data`` to it and return its stdout.

    Secret payloads go through stdin so they never appear in the process
    table. Errors are the same as for :func:`run_command`.
    """
    return await _run(program, args, stdin_data, env, timeout)
