"""
Extended M3U playlists.

    #EXTM3U
    #EXTINF:-1,<uploader>: <title>
    <shortID>.mp4

A directive line matching `#nosubtitles` (optionally `# nosubtitles`) marks
the next entry as one that should not get subtitles.
"""

import enum
import logging
import os
import re
from typing import Callable, Iterable, Iterator, Optional, TextIO

from creeperkeeper.core.models import Post, PlaylistEntry, hardsub_filename
from creeperkeeper.core.constants import (
    M3U_HEADER, M3U_DIRECTIVE_PREFIX, NO_SUBTITLES_PATTERN,
)

logger = logging.getLogger(__name__)

_NO_SUBTITLES_RE = re.compile(NO_SUBTITLES_PATTERN)


class ScanState(enum.Enum):
    NORMAL = "normal"
    PENDING_NO_SUBTITLES = "pending_no_subtitles"


def is_directive(line: str) -> bool:
    return line.startswith(M3U_DIRECTIVE_PREFIX)


def is_no_subtitles(line: str) -> bool:
    return bool(_NO_SUBTITLES_RE.match(line))


class EntryScanner:
    """
    Two-state machine over playlist lines.

    NORMAL --nosubtitles--> PENDING_NO_SUBTITLES
    any state --filename--> NORMAL (the entry takes the flag with it)
    Other directives and blank lines leave the state alone.
    """

    def __init__(self):
        self.state = ScanState.NORMAL

    def feed(self, line: str) -> Optional[PlaylistEntry]:
        """Consume one line; return the entry it names, if any."""
        line = line.rstrip('\r\n')
        if is_directive(line):
            if is_no_subtitles(line):
                self.state = ScanState.PENDING_NO_SUBTITLES
            return None
        if not line.strip():
            return None
        entry = PlaylistEntry(line, self.state is ScanState.PENDING_NO_SUBTITLES)
        self.state = ScanState.NORMAL
        return entry


def iter_m3u(lines: Iterable[str]) -> Iterator[PlaylistEntry]:
    scanner = EntryScanner()
    for line in lines:
        entry = scanner.feed(line)
        if entry is not None:
            yield entry


def read_m3u(stream: TextIO) -> list[PlaylistEntry]:
    return list(iter_m3u(stream))


def read_m3u_file(path: str) -> list[PlaylistEntry]:
    with open(path, 'r', encoding='utf-8') as f:
        return read_m3u(f)


def m3u_entry(post: Post) -> str:
    """Two-line extended entry; the title is crammed onto one line."""
    title = post.title.replace('\r', '').replace('\n', ' ')
    return f"#EXTINF:-1,{post.uploader}: {title}\n{post.video_filename}"


def write_m3u(stream: TextIO, posts: Iterable[Post]):
    stream.write(M3U_HEADER + "\n")
    for post in posts:
        stream.write(m3u_entry(post) + "\n")


def write_m3u_file(path: str, posts: Iterable[Post]):
    with open(path, 'w', encoding='utf-8') as f:
        write_m3u(f, posts)
    logger.info("Wrote playlist: %s", path)


def hardsub_m3u(out: TextIO, src: TextIO,
                exists: Callable[[str], bool] = os.path.exists):
    """
    Copy a playlist line for line, swapping each entry for its hardsub video
    when that file exists and the entry isn't marked nosubtitles.
    """
    scanner = EntryScanner()
    for raw in src:
        line = raw.rstrip('\r\n')
        entry = scanner.feed(line)
        if entry is not None and not entry.skip_subtitles:
            subbed = hardsub_filename(entry.filename)
            if exists(subbed):
                line = subbed
        out.write(line + "\n")
