# crafters_toolbox/utils/process_utils.py
"""Subprocess execution utilities"""

import asyncio
import logging
import os
from collections import deque
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence

from ..constants import BUILD_LOG_TAIL_LINES

logger = logging.getLogger(__name__)

LineCallback = Callable[[str, str], None]


@dataclass
class ProcessResult:
    """Finished process"""
    args: List[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def success(self) -> bool:
        return self.returncode == 0

    def diagnostics(self, lines: int = BUILD_LOG_TAIL_LINES) -> str:
        """Last lines of stderr, falling back to stdout"""
        text = self.stderr.strip() or self.stdout.strip()
        return "\n".join(text.splitlines()[-lines:])


async def run_process(args: Sequence[str],
                      cwd: Optional[Path] = None,
                      env: Optional[Dict[str, str]] = None,
                      on_line: Optional[LineCallback] = None) -> ProcessResult:
    """
    Run a process to completion

    Args:
        args: Program and arguments
        cwd: Working directory
        env: Extra environment variables merged over the current environment
        on_line: When given, called with (stream, line) for every output line
            as it arrives; only the tail of the output is kept in the result

    Returns:
        ProcessResult with captured output

    Raises:
        FileNotFoundError: If the program does not exist
    """
    args = [str(a) for a in args]
    full_env = None
    if env:
        full_env = dict(os.environ)
        full_env.update(env)

    logger.debug("Running %s (cwd=%s)", " ".join(args), cwd)

    process = await asyncio.create_subprocess_exec(
        *args,
        cwd=str(cwd) if cwd else None,
        env=full_env,
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )

    if on_line is None:
        stdout, stderr = await process.communicate()
        return ProcessResult(
            args=args,
            returncode=process.returncode,
            stdout=stdout.decode(errors="replace"),
            stderr=stderr.decode(errors="replace"),
        )

    tails = {
        "stdout": deque(maxlen=BUILD_LOG_TAIL_LINES),
        "stderr": deque(maxlen=BUILD_LOG_TAIL_LINES),
    }

    async def pump(stream: asyncio.StreamReader, name: str) -> None:
        while True:
            raw = await stream.readline()
            if not raw:
                break
            line = raw.decode(errors="replace").rstrip("\r\n")
            tails[name].append(line)
            on_line(name, line)

    await asyncio.gather(
        pump(process.stdout, "stdout"),
        pump(process.stderr, "stderr"),
    )
    returncode = await process.wait()

    return ProcessResult(
        args=args,
        returncode=returncode,
        stdout="\n".join(tails["stdout"]),
        stderr="\n".join(tails["stderr"]),
    )
