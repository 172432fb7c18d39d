"""
Lossless concatenation of a playlist's videos, and of their subtitles.

Videos are joined the way ffmpeg recommends for h264 mp4s:

    ffmpeg -i input1.mp4 -c copy -bsf:v h264_mp4toannexb -f mpegts 1.ts
    ffmpeg -i input2.mp4 -c copy -bsf:v h264_mp4toannexb -f mpegts 2.ts
    ffmpeg -f concat -i files -c copy -bsf:a aac_adtstoasc output.mp4

Subtitles are shifted by the running total of the preceding videos'
durations so they line up with the joined video.
"""

import logging
import os
import tempfile
from datetime import timedelta
from pathlib import Path
from typing import Callable, Iterable, TextIO

from creeperkeeper.core.models import PlaylistEntry, strip_video_ext
from creeperkeeper.core.subtitles import format_block, read_subtitles_for_video
from creeperkeeper.core.video import (
    concat_transport_streams, remux_to_transport_stream, video_duration,
)
from creeperkeeper.core.constants import TRANSPORT_STREAM_EXT

logger = logging.getLogger(__name__)


def concat_videos(videos: list[str], out_file: str):
    """
    Join mp4 videos without re-encoding. Any failed remux fails the whole
    concatenation; the scratch directory is removed either way.
    """
    with tempfile.TemporaryDirectory(prefix="crkr_concat") as tmpdir:
        streams = []
        for i, video in enumerate(videos):
            # Numbered so the same video can appear twice.
            base = strip_video_ext(os.path.basename(video))
            ts_file = os.path.join(tmpdir, f"{i:05d}_{base}{TRANSPORT_STREAM_EXT}")
            remux_to_transport_stream(video, ts_file)
            streams.append(ts_file)

        list_file = os.path.join(tmpdir, "files.txt")
        with open(list_file, 'w', encoding='utf-8') as f:
            for ts_file in streams:
                f.write("file '%s'\n" % ts_file.replace("'", "'\\''"))

        concat_transport_streams(list_file, out_file)
    logger.info("Concatenated %d videos: %s", len(videos), out_file)


def concat_subtitles(out: TextIO, entries: Iterable[PlaylistEntry],
                     duration: Callable[[str], timedelta] = video_duration) -> int:
    """
    Write one SubRip stream covering every entry in order, renumbered from 1.
    Entries marked nosubtitles contribute time but no subtitles.
    Returns the number of blocks written.
    """
    offset = timedelta(0)
    index = 0
    for entry in entries:
        length = duration(entry.filename)
        if not entry.skip_subtitles:
            for block in read_subtitles_for_video(entry.filename):
                index += 1
                out.write(format_block(block.shifted(offset, index)) + "\n")
        offset += length
    return index


def concat_subtitles_file(path: str | Path, entries: list[PlaylistEntry],
                          duration: Callable[[str], timedelta] = video_duration) -> int:
    with open(path, 'w', encoding='utf-8') as f:
        n = concat_subtitles(f, entries, duration)
    logger.info("Wrote %d subtitles: %s", n, path)
    return n
