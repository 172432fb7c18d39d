"""
Metadata sidecars: one JSON file per post, named <shortID>.json.
"""

import json
import logging
import re
from datetime import datetime
from pathlib import Path

from creeperkeeper.core.error_codes import JobError
from creeperkeeper.core.models import Post
from creeperkeeper.core.pool import parallel
from creeperkeeper.core.constants import ErrorCode, RENDER_WORKERS

logger = logging.getLogger(__name__)

# Sidecar key -> Post attribute
_FIELDS = {
    'title': 'title',
    'uploaderName': 'uploader',
    'uploaderID': 'uploader_id',
    'sourceURL': 'url',
    'shortID': 'short_id',
}

# Key layout of sidecars written by crkr 0.3 and earlier
_LEGACY_FIELDS = {
    'Title': 'title',
    'Uploader': 'uploader',
    'UploaderID': 'uploader_id',
    'URL': 'url',
    'UUID': 'short_id',
}

_FRACTION_RE = re.compile(r'\.(\d+)')


def format_created(created: datetime | None) -> str | None:
    if created is None:
        return None
    return created.isoformat(timespec='microseconds')


def parse_created(value: str | None) -> datetime | None:
    """
    ISO-8601 with fractional seconds. Also accepts a trailing Z and
    nanosecond fractions, as older sidecars have.
    """
    if not value:
        return None
    if not isinstance(value, str):
        raise JobError(ErrorCode.METADATA_PARSE, f"bad timestamp {value!r}: expected a string")
    value = value.strip()
    if value.endswith('Z'):
        value = value[:-1] + '+00:00'
    value = _FRACTION_RE.sub(lambda m: '.' + m.group(1)[:6].ljust(6, '0'), value, count=1)
    try:
        return datetime.fromisoformat(value)
    except ValueError as e:
        raise JobError(ErrorCode.METADATA_PARSE, f"bad timestamp {value!r}: {e}")


def post_to_dict(post: Post) -> dict:
    data = {key: getattr(post, attr) for key, attr in _FIELDS.items()}
    data['createdAt'] = format_created(post.created)
    return data


def post_from_dict(data: dict) -> Post:
    if not isinstance(data, dict):
        raise JobError(ErrorCode.METADATA_PARSE, f"expected an object, got {type(data).__name__}")
    fields = _FIELDS if 'shortID' in data else _LEGACY_FIELDS
    created_key = 'createdAt' if fields is _FIELDS else 'Created'
    kwargs = {}
    for key, attr in fields.items():
        value = data.get(key)
        if attr == 'short_id' and not value:
            raise JobError(ErrorCode.METADATA_PARSE, "missing shortID")
        kwargs[attr] = "" if value is None else str(value)
    kwargs['created'] = parse_created(data.get(created_key))
    return Post(**kwargs)


# ── Single file ───────────────────────────────────────────────────────

def write_post_metadata(post: Post, directory: str | Path = ".") -> Path:
    path = Path(directory) / post.metadata_filename
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(post_to_dict(post), f, indent=2, ensure_ascii=False)
        f.write('\n')
    return path


def read_post_metadata(path: str | Path) -> Post:
    with open(path, 'r', encoding='utf-8') as f:
        try:
            data = json.load(f)
        except ValueError as e:
            # bad JSON or bytes that aren't UTF-8
            raise JobError(ErrorCode.METADATA_PARSE, f"{path}: {e}")
    return post_from_dict(data)


# ── Bulk ──────────────────────────────────────────────────────────────

def write_all_metadata(posts: list[Post], directory: str | Path = ".",
                       limit: int = RENDER_WORKERS) -> int:
    """Write every sidecar; returns the number that failed."""
    return parallel(
        posts,
        lambda post: write_post_metadata(post, directory),
        limit,
        describe=lambda post: post.short_id,
        name="write metadata",
    )


def read_all_metadata(paths: list[str]) -> tuple[list[Post], int]:
    """
    Read every sidecar in order, skipping the unreadable ones.
    Returns (posts, number of failures).
    """
    posts = []
    nerr = 0
    for path in paths:
        try:
            posts.append(read_post_metadata(path))
        except (OSError, JobError) as e:
            nerr += 1
            logger.error("read metadata from %s: %s", path, e)
    return posts, nerr
