"""
Data models (plain dataclasses) for CreeperKeeper, and the naming rules that
tie a post to its files on disk.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from creeperkeeper.core.constants import (
    VIDEO_EXT, SUBTITLES_EXT, METADATA_EXT, HARDSUB_EXT,
)


# ── Artifact naming ───────────────────────────────────────────────────

def strip_video_ext(path: str) -> str:
    """Drop a trailing .mp4; a path without one is already its own base."""
    if path.endswith(VIDEO_EXT):
        return path[:-len(VIDEO_EXT)]
    return path


def video_filename(short_id: str) -> str:
    return short_id + VIDEO_EXT


def subtitles_filename(short_id: str) -> str:
    return short_id + SUBTITLES_EXT


def metadata_filename(short_id: str) -> str:
    return short_id + METADATA_EXT


def hardsub_filename(video_path: str) -> str:
    """a/b.mp4 -> a/b.sub.mp4"""
    return strip_video_ext(video_path) + HARDSUB_EXT


def subtitles_for_video(video_path: str) -> str:
    """Subtitle file living beside a video: a/b.mp4 -> a/b.srt"""
    return strip_video_ext(video_path) + SUBTITLES_EXT


def metadata_for_video(video_path: str) -> str:
    return strip_video_ext(video_path) + METADATA_EXT


# ── Records ───────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Post:
    title: str
    uploader: str                    # display name
    uploader_id: str
    url: str                         # remote location of the raw video
    short_id: str                    # filesystem key for every artifact
    created: Optional[datetime] = None

    @property
    def video_filename(self) -> str:
        return video_filename(self.short_id)

    @property
    def subtitles_filename(self) -> str:
        return subtitles_filename(self.short_id)

    @property
    def metadata_filename(self) -> str:
        return metadata_filename(self.short_id)

    def template_fields(self) -> dict:
        """Fields a subtitle template may reference."""
        return {
            'title': self.title,
            'uploader': self.uploader,
            'uploader_id': self.uploader_id,
            'url': self.url,
            'short_id': self.short_id,
            'created': self.created,
        }


@dataclass(frozen=True)
class PlaylistEntry:
    filename: str
    skip_subtitles: bool = False


@dataclass
class SubtitleBlock:
    index: int
    start: timedelta
    stop: timedelta
    text: str                        # lines joined with "\n", no trailing newline

    def shifted(self, offset: timedelta, index: int) -> "SubtitleBlock":
        return SubtitleBlock(index, self.start + offset, self.stop + offset, self.text)
