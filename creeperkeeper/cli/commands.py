"""
crkr subcommands: get, subtitles, hardsub, concat.
"""

import argparse
import logging
from pathlib import Path

from creeperkeeper.core.bulk import (
    download_posts, write_all_subtitles, render_all_subtitles, scale_all,
)
from creeperkeeper.core.concat import concat_videos, concat_subtitles_file
from creeperkeeper.core.config import AppConfig
from creeperkeeper.core.constants import APP_VERSION
from creeperkeeper.core.error_codes import JobError, check_batch
from creeperkeeper.core.extract import (
    ExtractionContext, extract_posts, filter_out_reposts, is_likes_url,
)
from creeperkeeper.core.metadata import write_all_metadata
from creeperkeeper.core.models import subtitles_for_video
from creeperkeeper.core.playlist import hardsub_m3u, read_m3u_file, write_m3u_file

logger = logging.getLogger(__name__)

# External tools each command needs on PATH
REQUIRED_TOOLS = {
    'get': [],
    'subtitles': [],
    'hardsub': ['ffmpeg', 'ffprobe'],
    'concat': ['ffmpeg', 'ffprobe'],
}


def cmd_get(args, config: AppConfig) -> int:
    context = ExtractionContext()
    posts = extract_posts(args.url, context)
    # Likes are other people's posts; a single post has no user to filter by.
    if not args.reposts and context.user_id and not is_likes_url(args.url):
        posts = filter_out_reposts(posts, context.user_id)

    posts.sort(key=lambda p: (p.created is None, p.created), reverse=not args.noreverse)

    nerrors = 0
    try:
        check_batch("write metadata", write_all_metadata(posts, limit=config.render_workers), len(posts))
    except JobError as e:
        nerrors += 1
        logger.error("%s", e.message)

    try:
        download_posts(posts, force=args.force, limit=config.download_workers)
    except JobError as e:
        nerrors += 1
        logger.error("%s", e.message)

    try:
        write_m3u_file(args.playlist, posts)
    except OSError as e:
        nerrors += 1
        logger.error("write playlist: %s", e)

    return 1 if nerrors else 0


def cmd_subtitles(args, config: AppConfig) -> int:
    config.override(subtitle_template=args.format, subtitle_duration=args.duration,
                    plain_emoji=args.plainemoji or None)
    entries = read_m3u_file(args.playlist)
    write_all_subtitles(entries, config.subtitle_duration, config.subtitle_template,
                        config.plain_emoji, limit=config.render_workers)
    return 0


def cmd_hardsub(args, config: AppConfig) -> int:
    config.override(font_name=args.font, font_size=args.fontsize)
    entries = read_m3u_file(args.m3u_in)
    videos = [e.filename for e in entries]
    width, height = config.video_size
    scale_all(videos, width, height, limit=config.render_workers)

    status = 0
    render = [e.filename for e in entries if not e.skip_subtitles]
    try:
        render_all_subtitles(render, config.font_name, config.font_size,
                             force=args.force, limit=config.render_workers)
    except JobError as e:
        # Whatever did render still goes into the playlist.
        logger.error("%s", e.message)
        status = 1

    with open(args.m3u_in, 'r', encoding='utf-8') as src, \
            open(args.m3u_out, 'w', encoding='utf-8') as out:
        hardsub_m3u(out, src)
    logger.info("Wrote playlist: %s", args.m3u_out)
    return status


def cmd_concat(args, config: AppConfig) -> int:
    entries = read_m3u_file(args.playlist)
    videos = [e.filename for e in entries]
    width, height = config.video_size
    scale_all(videos, width, height, limit=config.render_workers)
    concat_videos(videos, args.video)
    if not args.nosubtitles:
        concat_subtitles_file(subtitles_for_video(args.video), entries)
    return 0


COMMANDS = {
    'get': cmd_get,
    'subtitles': cmd_subtitles,
    'hardsub': cmd_hardsub,
    'concat': cmd_concat,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="crkr",
        description="Archive vines: download, subtitle, hardsub and concatenate.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="increase log verbosity")
    parser.add_argument("--log-file", type=Path, default=None, help="also log to this file")
    parser.add_argument("--config", type=Path, default=None, help="config file (JSON)")
    parser.add_argument("--version", action="version", version=f"%(prog)s {APP_VERSION}")
    sub = parser.add_subparsers(dest="command", required=True, metavar="<command>")

    p = sub.add_parser("get", help="download vines and metadata")
    p.add_argument("url")
    p.add_argument("playlist", metavar="m3u_out")
    p.add_argument("--force", action="store_true", help="overwrite video files")
    p.add_argument("--noreverse", action="store_true",
                   help="write playlist in chronological order")
    p.add_argument("--reposts", action="store_true",
                   help="keep reposts when archiving a user's posts")

    p = sub.add_parser("subtitles", help="generate SubRip subtitles")
    p.add_argument("playlist", metavar="m3u")
    p.add_argument("--format", default=None,
                   help="subtitle template, e.g. '[{uploader}] {title}'")
    p.add_argument("-t", dest="duration", type=float, default=None,
                   help="subtitle duration in seconds")
    p.add_argument("--plainemoji", action="store_true",
                   help="remove emoji variation selectors")

    p = sub.add_parser("hardsub",
                       help="render subtitles and write a playlist of subtitled videos")
    p.add_argument("m3u_in")
    p.add_argument("m3u_out")
    p.add_argument("--font", default=None, help="font name")
    p.add_argument("--fontsize", type=int, default=None, help="font size")
    p.add_argument("--force", action="store_true", help="overwrite subtitled videos")

    p = sub.add_parser("concat",
                       help="losslessly concatenate a playlist of mp4 videos")
    p.add_argument("playlist", metavar="m3u")
    p.add_argument("video", metavar="video_out")
    p.add_argument("--nosubtitles", action="store_true",
                   help="don't write combined subtitles beside the output")

    return parser


def run(args) -> int:
    config = AppConfig(args.config) if args.config else AppConfig()
    return COMMANDS[args.command](args, config)
