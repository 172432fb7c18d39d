"""
Video operations using ffmpeg / ffprobe.
Probing (duration, dimensions), scaling, subtitle burn-in, and the two halves
of lossless concatenation (remux to MPEG-TS, concat of the streams).
"""

import logging
import os
import re
import shutil
import sys
import tempfile
from datetime import timedelta
from pathlib import Path

from creeperkeeper.core.commands import run_tool
from creeperkeeper.core.error_codes import JobError
from creeperkeeper.core.models import hardsub_filename, subtitles_for_video
from creeperkeeper.core.constants import (
    ErrorCode, PROBE_TIMEOUT_SEC, CANONICAL_WIDTH, CANONICAL_HEIGHT,
    WINDOWS_FONTCONFIG,
)

logger = logging.getLogger(__name__)

_WIDTH_RE = re.compile(r'streams\.stream\.\d+\.width=(\d+)')
_HEIGHT_RE = re.compile(r'streams\.stream\.\d+\.height=(\d+)')


# ── Probes ────────────────────────────────────────────────────────────

def video_duration(path: str) -> timedelta:
    """Get container duration using ffprobe."""
    args = [
        "ffprobe",
        "-v", "error",
        "-show_entries", "format=duration",
        "-of", "default=noprint_wrappers=1:nokey=1",
        str(path),
    ]
    out = run_tool(args, code=ErrorCode.PROBE_FAILED, timeout=PROBE_TIMEOUT_SEC)
    try:
        seconds = float(out.strip())
    except ValueError:
        raise JobError(ErrorCode.PROBE_FAILED, f"no duration in ffprobe output for {path}: {out!r}")
    return timedelta(seconds=seconds)


def video_dimensions(path: str) -> tuple[int, int]:
    """Return (width, height) of the first video stream."""
    args = [
        "ffprobe",
        "-v", "warning",
        "-show_streams",
        "-of", "flat",
        str(path),
    ]
    out = run_tool(args, code=ErrorCode.PROBE_FAILED, timeout=PROBE_TIMEOUT_SEC)
    width = _WIDTH_RE.search(out)
    if not width:
        raise JobError(ErrorCode.PROBE_FAILED, f"no width in ffprobe output: {out[:200]!r}")
    height = _HEIGHT_RE.search(out)
    if not height:
        raise JobError(ErrorCode.PROBE_FAILED, f"no height in ffprobe output: {out[:200]!r}")
    return int(width.group(1)), int(height.group(1))


# ── Scaling ───────────────────────────────────────────────────────────

def scale_video(path: str, width: int = CANONICAL_WIDTH, height: int = CANONICAL_HEIGHT):
    """
    Scale a video in place to width x height.
    Some posts are only available at 480x480.
    """
    with tempfile.TemporaryDirectory(prefix="crkr_scale") as tmpdir:
        scaled = os.path.join(tmpdir, "scaled.mp4")
        run_tool([
            "ffmpeg",
            "-v", "warning",
            "-i", str(path),
            "-vf", f"scale={width}:{height}",
            scaled,
        ])
        shutil.move(scaled, path)
    logger.info("Scaled %s to %dx%d", path, width, height)


# ── Subtitle burn-in ──────────────────────────────────────────────────

def burn_subtitles(video_path: str, font_name: str, font_size: int) -> str:
    """
    Overlay <base>.srt onto <base>.mp4, producing <base>.sub.mp4.
    Returns the hardsub path.
    """
    video = _filter_path(video_path)
    subtitles = subtitles_for_video(video)
    hardsub = hardsub_filename(video)
    style = (f"subtitles=f={subtitles}:"
             f"force_style='FontName={font_name},Fontsize={font_size}'")
    run_tool([
        "ffmpeg",
        "-y",
        "-v", "warning",
        "-i", video,
        "-vf", style,
        hardsub,
    ], env=fontconfig_env())
    logger.info("Rendered subtitles: %s", hardsub)
    return hardsub


def _filter_path(path: str) -> str:
    # The subtitles filter can't cope with drive letters, so on Windows hand
    # it a forward-slashed path relative to the working directory.
    if sys.platform != "win32":
        return str(path)
    return os.path.relpath(os.path.abspath(path)).replace(os.sep, "/")


def fontconfig_env() -> dict | None:
    """
    On Windows fontconfig usually comes with ffmpeg, unconfigured. Write a
    basic config to the home directory and point FONTCONFIG_FILE at it.
    Returns None (inherit the environment) everywhere else.
    """
    if sys.platform != "win32" or os.environ.get("FONTCONFIG_FILE"):
        return None
    config_file = Path.home() / ".fonts.conf"
    if not config_file.exists():
        config_file.write_text(WINDOWS_FONTCONFIG, encoding='utf-8')
    env = dict(os.environ)
    env["FONTCONFIG_FILE"] = str(config_file)
    return env


# ── Concatenation steps ───────────────────────────────────────────────

def remux_to_transport_stream(src: str, dst: str):
    """mp4 -> MPEG-TS without re-encoding."""
    run_tool([
        "ffmpeg",
        "-y",  # the same video may appear more than once in a playlist
        "-v", "warning",
        "-i", str(src),
        "-c", "copy",
        "-bsf:v", "h264_mp4toannexb",
        "-shortest",
        "-f", "mpegts",
        str(dst),
    ])


def concat_transport_streams(list_file: str, out_file: str):
    """Join the streams named in an ffmpeg concat list into one mp4."""
    run_tool([
        "ffmpeg",
        "-y",
        "-v", "warning",
        "-f", "concat",
        # "safe" filenames are relative and limited to [a-zA-Z0-9_.-]
        "-safe", "0",
        "-i", str(list_file),
        "-c", "copy",
        # ADTS headers from the MPEG-TS remux aren't valid inside mp4
        "-bsf:a", "aac_adtstoasc",
        str(out_file),
    ])
