"""
SubRip (.srt) subtitles: rendering a post's caption, parsing existing files,
and HH:MM:SS,mmm timing arithmetic.

    1
    00:00:00,000 --> 00:00:02,500
    [uploader] title
"""

import logging
import re
from datetime import timedelta
from pathlib import Path
from typing import Iterable, TextIO

from creeperkeeper.core.error_codes import JobError
from creeperkeeper.core.models import Post, SubtitleBlock, subtitles_for_video
from creeperkeeper.core.constants import ErrorCode, VARIATION_SELECTORS_RE

logger = logging.getLogger(__name__)

_INDEX_RE = re.compile(r'^(\d+)$')
_INTERVAL_RE = re.compile(
    r'^(\d\d):(\d\d):(\d\d),(\d\d\d) --> (\d\d):(\d\d):(\d\d),(\d\d\d)$'
)
_BLANK_LINES_RE = re.compile(r'\n[ \t]*(?=\n)')
_VARIATION_SELECTORS_RE = re.compile(VARIATION_SELECTORS_RE)

_MS = timedelta(milliseconds=1)


# ── Timing ────────────────────────────────────────────────────────────

def format_timestamp(d: timedelta) -> str:
    """timedelta -> HH:MM:SS,mmm (truncated to whole milliseconds)"""
    total_ms = max(d // _MS, 0)
    hours, rem = divmod(total_ms, 3_600_000)
    minutes, rem = divmod(rem, 60_000)
    secs, millis = divmod(rem, 1000)
    return f"{hours:02d}:{minutes:02d}:{secs:02d},{millis:03d}"


def _timestamp(h: str, m: str, s: str, ms: str) -> timedelta:
    return timedelta(hours=int(h), minutes=int(m), seconds=int(s), milliseconds=int(ms))


def format_block(block: SubtitleBlock) -> str:
    return (f"{block.index}\n"
            f"{format_timestamp(block.start)} --> {format_timestamp(block.stop)}\n"
            f"{block.text}\n")


# ── Rendering ─────────────────────────────────────────────────────────

def clean_text(text: str) -> str:
    """
    Strip carriage returns and blank lines (a blank line ends an SRT entry
    early), then trim the whole thing.
    """
    text = text.replace('\r', '')
    text = _BLANK_LINES_RE.sub('', text)
    return text.strip()


def remove_variation_selectors(text: str) -> str:
    """Drop the code points that force emoji vs. text presentation."""
    return _VARIATION_SELECTORS_RE.sub('', text)


def render_template(post: Post, template: str) -> str:
    try:
        return template.format_map(post.template_fields())
    except (KeyError, IndexError, ValueError, AttributeError, TypeError) as e:
        raise JobError(ErrorCode.TEMPLATE, f"bad subtitle template {template!r}: {e!r}")


def render_subtitles(post: Post, duration: timedelta, template: str,
                     plain_emoji: bool = False) -> str:
    """A single SubRip block showing the rendered template for `duration`."""
    text = clean_text(render_template(post, template))
    block = SubtitleBlock(1, timedelta(0), duration, text)
    rendered = format_block(block)
    if plain_emoji:
        rendered = remove_variation_selectors(rendered)
    return rendered


def write_subtitles(path: str | Path, post: Post, duration: timedelta, template: str,
                    plain_emoji: bool = False) -> Path:
    path = Path(path)
    path.write_text(render_subtitles(post, duration, template, plain_emoji), encoding='utf-8')
    logger.debug("Wrote subtitles: %s", path)
    return path


# ── Parsing ───────────────────────────────────────────────────────────

def parse_subrip(lines: Iterable[str]) -> list[SubtitleBlock]:
    """
    Parse SubRip text into blocks. Raises JobError(SUBRIP_PARSE) on the first
    malformed block.
    """
    blocks = []
    it = (line.rstrip('\r\n') for line in lines)
    for line in it:
        if line.strip() == "":
            continue

        # index
        m = _INDEX_RE.match(line)
        if not m:
            raise JobError(ErrorCode.SUBRIP_PARSE, f"expected index, got {line!r}")
        index = int(m.group(1))

        # interval
        interval = next(it, None)
        if interval is None:
            raise JobError(ErrorCode.SUBRIP_PARSE, "expected interval, got eof")
        m = _INTERVAL_RE.match(interval)
        if not m:
            raise JobError(ErrorCode.SUBRIP_PARSE, f"expected interval, got {interval!r}")
        start = _timestamp(*m.group(1, 2, 3, 4))
        stop = _timestamp(*m.group(5, 6, 7, 8))
        if stop < start:
            raise JobError(ErrorCode.SUBRIP_PARSE, f"subtitle {index} ends before it starts")

        # text, up to a blank line or eof
        text = []
        for line in it:
            if line.strip() == "":
                break
            text.append(line)
        if not text:
            raise JobError(ErrorCode.SUBRIP_PARSE, f"subtitle {index} has no text")

        blocks.append(SubtitleBlock(index, start, stop, '\n'.join(text)))
    return blocks


def read_subrip(stream: TextIO) -> list[SubtitleBlock]:
    return parse_subrip(stream)


def read_subtitles_for_video(video_path: str) -> list[SubtitleBlock]:
    """
    Parse the .srt beside a video. A post without subtitles is normal, so a
    missing file gives an empty list.
    """
    path = subtitles_for_video(video_path)
    try:
        with open(path, 'r', encoding='utf-8-sig') as f:
            return read_subrip(f)
    except FileNotFoundError:
        return []
