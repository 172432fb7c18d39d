"""
Bulk operations over many posts or videos.

Each one builds a job list, runs it through the worker pool with a limit
suited to the work (network vs. local CPU), and raises
BatchError("<op>: <k> / <n> failed") when anything failed.
"""

import logging
import os
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Optional

from creeperkeeper.core.commands import require_tool
from creeperkeeper.core.download import download_post, describe_post
from creeperkeeper.core.metadata import read_post_metadata
from creeperkeeper.core.models import (
    Post, PlaylistEntry, hardsub_filename, metadata_for_video, subtitles_for_video,
)
from creeperkeeper.core.pool import parallel, run_batch
from creeperkeeper.core.subtitles import write_subtitles
from creeperkeeper.core.video import burn_subtitles, scale_video, video_dimensions
from creeperkeeper.core.error_codes import check_batch
from creeperkeeper.core.constants import (
    DOWNLOAD_WORKERS, RENDER_WORKERS, CANONICAL_WIDTH, CANONICAL_HEIGHT,
    DEFAULT_FONT_NAME, DEFAULT_FONT_SIZE,
)

logger = logging.getLogger(__name__)


# ── Downloads ─────────────────────────────────────────────────────────

def download_posts(posts: list[Post], directory: str | Path = ".",
                   force: bool = False, limit: int = DOWNLOAD_WORKERS):
    """Download every post's video; existing files are kept unless forced."""
    if not force:
        posts = [p for p in posts if not (Path(directory) / p.video_filename).exists()]
    run_batch(
        "download",
        posts,
        lambda post: download_post(post, directory),
        limit,
        describe=describe_post,
    )


# ── Subtitle files ────────────────────────────────────────────────────

def write_all_subtitles(entries: list[PlaylistEntry], duration: timedelta,
                        template: str, plain_emoji: bool = False,
                        limit: int = RENDER_WORKERS):
    """
    Write <base>.srt beside every playlist entry, rendered from the entry's
    <base>.json sidecar.
    """
    def write(entry: PlaylistEntry):
        post = read_post_metadata(metadata_for_video(entry.filename))
        write_subtitles(subtitles_for_video(entry.filename), post, duration,
                        template, plain_emoji)

    run_batch("write subtitles", entries, write, limit,
              describe=lambda entry: entry.filename)


# ── Hardsubs ──────────────────────────────────────────────────────────

def needs_hardsub(videos: list[str], force: bool = False) -> list[str]:
    """Videos whose <base>.sub.mp4 doesn't exist yet (all of them if forced)."""
    if force:
        return list(videos)
    return [v for v in videos if not os.path.exists(hardsub_filename(v))]


def render_all_subtitles(videos: list[str], font_name: str = DEFAULT_FONT_NAME,
                         font_size: int = DEFAULT_FONT_SIZE, force: bool = False,
                         limit: int = RENDER_WORKERS):
    """Burn each video's .srt into a <base>.sub.mp4."""
    # Check up front rather than failing once per video.
    require_tool("ffmpeg")
    jobs = needs_hardsub(videos, force)
    logger.info("Rendering subtitles into %d of %d videos", len(jobs), len(videos))
    run_batch(
        "render subtitles",
        jobs,
        lambda video: burn_subtitles(video, font_name, font_size),
        limit,
        describe=str,
    )


# ── Dimension normalization ───────────────────────────────────────────

@dataclass
class _Probe:
    video: str
    size: Optional[tuple[int, int]] = None


def needs_scaling(videos: list[str], width: int = CANONICAL_WIDTH,
                  height: int = CANONICAL_HEIGHT,
                  limit: int = RENDER_WORKERS) -> list[str]:
    """
    Probe every video's dimensions and return those that differ from
    width x height, in input order. Raises BatchError if any probe failed.
    """
    # One slot per job; each worker writes only its own.
    slots = [_Probe(video) for video in videos]

    def probe(slot: _Probe):
        slot.size = video_dimensions(slot.video)

    nerr = parallel(slots, probe, limit, describe=lambda s: s.video, name="get dimensions")
    check_batch("get dimensions", nerr, len(videos))
    return [s.video for s in slots if s.size != (width, height)]


def scale_all(videos: list[str], width: int = CANONICAL_WIDTH,
              height: int = CANONICAL_HEIGHT, limit: int = RENDER_WORKERS):
    """Normalize every video to width x height, skipping those already there."""
    require_tool("ffprobe")
    require_tool("ffmpeg")
    # A video listed twice must only be scaled once.
    unique = list(dict.fromkeys(videos))
    jobs = needs_scaling(unique, width, height, limit)
    run_batch(
        "scale",
        jobs,
        lambda video: scale_video(video, width, height),
        limit,
        describe=str,
    )
