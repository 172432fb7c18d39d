"""
Video download via requests.
"""

import logging
from pathlib import Path

import requests

from creeperkeeper.core.error_codes import JobError
from creeperkeeper.core.models import Post
from creeperkeeper.core.constants import (
    ErrorCode, HTTP_TIMEOUT_SEC, DOWNLOAD_CHUNK_BYTES, LOG_TITLE_CHARS,
)

logger = logging.getLogger(__name__)


def describe_post(post: Post) -> str:
    """Identifying context for log lines: [uploader] "first bit of title"."""
    return f'[{post.uploader}] "{post.title[:LOG_TITLE_CHARS]}"'


def download_post(post: Post, directory: str | Path = ".",
                  session: requests.Session | None = None) -> Path:
    """
    Stream a post's video to <directory>/<shortID>.mp4.
    A partial file is removed if the transfer fails.
    """
    output_path = Path(directory) / post.video_filename
    http = session or requests

    try:
        with http.get(post.url, stream=True, timeout=HTTP_TIMEOUT_SEC) as resp:
            resp.raise_for_status()
            with open(output_path, 'wb') as f:
                for chunk in resp.iter_content(chunk_size=DOWNLOAD_CHUNK_BYTES):
                    f.write(chunk)
    except requests.exceptions.RequestException as e:
        output_path.unlink(missing_ok=True)
        raise JobError(ErrorCode.DOWNLOAD_FAILED, f"download {post.url}: {e}")
    except OSError as e:
        output_path.unlink(missing_ok=True)
        raise JobError(ErrorCode.IO_FAILED, f"write {output_path}: {e}")

    logger.debug("got %s", describe_post(post))
    return output_path
