"""
Running external tools (ffmpeg, ffprobe).
- Argument lists only; the shell is never involved
- Non-zero exit becomes a JobError carrying the command line and stderr
- Precondition checks for tools on PATH
"""

import logging
import shutil
import subprocess

from creeperkeeper.core.constants import ErrorCode, STDERR_TAIL_CHARS, FFMPEG_TIMEOUT_SEC
from creeperkeeper.core.error_codes import JobError

logger = logging.getLogger(__name__)


def run_tool(args: list[str], code: str = ErrorCode.FFMPEG_FAILED,
             timeout: int = FFMPEG_TIMEOUT_SEC, **kwargs) -> str:
    """
    Run an external tool to completion and return its stdout.
    Raises JobError(code) with the command line and the tail of stderr.
    """
    if not isinstance(args, (list, tuple)):
        raise TypeError(f"tool command must be an argument list, got {type(args).__name__}")
    kwargs.pop('shell', None)

    cmd_line = ' '.join(str(a) for a in args)
    logger.debug("run: %s", cmd_line)
    try:
        result = subprocess.run(list(args), shell=False, capture_output=True, text=True,
                                timeout=timeout, **kwargs)
    except FileNotFoundError:
        raise JobError(ErrorCode.TOOL_MISSING, f"{args[0]} not found in PATH")
    except subprocess.TimeoutExpired:
        raise JobError(code, f"timed out after {timeout}s: {cmd_line}")

    stderr = (result.stderr or "").strip()
    if result.returncode != 0:
        raise JobError(code, f"exit status {result.returncode}: {cmd_line}\n"
                             f"stderr:\n{stderr[-STDERR_TAIL_CHARS:]}")
    if stderr:
        logger.warning("exit status 0: %s\nstderr:\n%s", cmd_line, stderr)
    return result.stdout or ""


def require_tool(name: str) -> str:
    """Return the path of `name`, or fail before any job is scheduled."""
    path = shutil.which(name)
    if not path:
        raise JobError(ErrorCode.TOOL_MISSING, f"{name} not found in PATH")
    return path
