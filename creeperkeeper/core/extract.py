"""
Post discovery from vine.co.

Given a URL for a single post, a user profile, or a user's likes, produce the
list of Post records it refers to. User timelines are paginated through the
JSON API; single posts are read from the JSON embedded in their HTML page.
"""

import json
import logging
import re
import threading
from datetime import datetime

import requests

from creeperkeeper.core.error_codes import JobError
from creeperkeeper.core.models import Post
from creeperkeeper.core.constants import (
    ErrorCode, VINE_BASE_URL, VINE_DATE_FORMAT, VINE_PAGE_SIZE,
    VINE_POST_URL_RE, VINE_PERMALINK_RE, VINE_USER_URL_RE, VINE_POST_DATA_RE,
    HTTP_TIMEOUT_SEC,
)

logger = logging.getLogger(__name__)

_POST_URL_RE = re.compile(VINE_POST_URL_RE)
_PERMALINK_RE = re.compile(VINE_PERMALINK_RE)
_USER_URL_RE = re.compile(VINE_USER_URL_RE)
_POST_DATA_RE = re.compile(VINE_POST_DATA_RE, re.DOTALL)


class ExtractionContext:
    """
    Per-run state for discovery: the HTTP session and the counter used to
    name posts whose permalink doesn't yield a short ID.
    """

    def __init__(self, session: requests.Session | None = None, fallback_start: int = 0):
        self.session = session or requests.Session()
        # set once a user URL has been resolved
        self.user_id: str | None = None
        self._next_fallback = fallback_start
        self._lock = threading.Lock()

    def fallback_id(self) -> str:
        with self._lock:
            short_id = f"fallbackID{self._next_fallback}"
            self._next_fallback += 1
        return short_id

    def get(self, url: str) -> requests.Response:
        try:
            return self.session.get(url, timeout=HTTP_TIMEOUT_SEC)
        except requests.exceptions.RequestException as e:
            raise JobError(ErrorCode.NETWORK_TRANSIENT, f"GET {url}: {e}")


# ── URL helpers ───────────────────────────────────────────────────────

def parse_created(value: str) -> datetime:
    try:
        return datetime.strptime(value, VINE_DATE_FORMAT)
    except (TypeError, ValueError):
        raise JobError(ErrorCode.API_ERROR, f"unrecognized timestamp: {value!r}")


def permalink_to_short_id(permalink: str, context: ExtractionContext) -> str:
    m = _PERMALINK_RE.search(permalink or "")
    if not m:
        return context.fallback_id()
    return m.group(1)


def user_url_to_user_id(url: str, context: ExtractionContext) -> str:
    """Resolve vine.co/u/<id> directly, or look up vine.co/<vanity>."""
    m = _USER_URL_RE.search(url)
    if not m:
        raise JobError(ErrorCode.INVALID_URL, f"unrecognized vine user url: {url!r}")
    if m.group(1):
        return m.group(2)
    data = api_get(f"{VINE_BASE_URL}/api/users/profiles/vanity/{m.group(2)}", context)
    try:
        return str(data['userId'])
    except (KeyError, TypeError):
        raise JobError(ErrorCode.API_ERROR, f"no userId for vanity url {url!r}")


def is_likes_url(url: str) -> bool:
    m = _USER_URL_RE.search(url)
    return bool(m and m.group(3))


# ── API ───────────────────────────────────────────────────────────────

def api_get(url: str, context: ExtractionContext):
    """GET a JSON endpoint, unwrap the {success, error, data} envelope."""
    resp = context.get(url)
    try:
        envelope = resp.json()
    except ValueError:
        raise JobError(ErrorCode.API_ERROR, f"unrecognized json from {url}: {resp.text[:200]}")
    if not isinstance(envelope, dict) or not envelope.get('success'):
        error = envelope.get('error', '') if isinstance(envelope, dict) else ''
        raise JobError(ErrorCode.API_ERROR, f"GET {url!r}: status {resp.status_code}: {error}")
    return envelope.get('data')


def timeline_posts(url: str, context: ExtractionContext) -> list[Post]:
    """Every record of a timeline, following nextPage until it runs out."""
    posts = []
    page = 1
    while True:
        data = api_get(f"{url}?page={page}&size={VINE_PAGE_SIZE}", context) or {}
        for record in data.get('records') or []:
            posts.append(Post(
                title=record.get('description') or "",
                uploader=record.get('username') or "",
                uploader_id=str(record.get('userId', "")),
                url=record.get('videoUrl') or "",
                short_id=permalink_to_short_id(record.get('permalinkUrl'), context),
                created=parse_created(record.get('created')),
            ))
        if not data.get('nextPage'):
            break
        page += 1
    logger.info("Timeline %s: %d posts", url, len(posts))
    return posts


def user_url_to_posts(url: str, context: ExtractionContext) -> list[Post]:
    user_id = user_url_to_user_id(url, context)
    context.user_id = user_id
    kind = "likes" if is_likes_url(url) else None
    timeline = f"{VINE_BASE_URL}/api/timelines/users/{user_id}"
    if kind:
        timeline += f"/{kind}"
    return timeline_posts(timeline, context)


def post_url_to_posts(url: str, context: ExtractionContext) -> list[Post]:
    """There's no API endpoint for single posts, so read the page's JSON."""
    if not _POST_URL_RE.match(url):
        raise JobError(ErrorCode.INVALID_URL, f"url must be for an individual vine: {url}")
    resp = context.get(url)
    return post_html_to_posts(resp.text)


def post_html_to_posts(html: str) -> list[Post]:
    m = _POST_DATA_RE.search(html)
    if not m:
        raise JobError(ErrorCode.API_ERROR, "no vine metadata found in html")
    try:
        post_data = json.loads(m.group(1))
    except json.JSONDecodeError as e:
        raise JobError(ErrorCode.API_ERROR, f"bad POST_DATA json: {e}")

    for record in post_data.values():
        for video in record.get('videoUrls') or []:
            if video.get('id') == 'original':
                return [Post(
                    title=record.get('description') or "",
                    uploader=record.get('username') or "",
                    uploader_id=str(record.get('userId', "")),
                    url=video.get('videoUrl') or "",
                    short_id=record.get('shortId') or "",
                    created=parse_created(record.get('created')),
                )]
        break  # only the first record describes the page's post
    return []


_EXTRACTORS = (post_url_to_posts, user_url_to_posts)


def extract_posts(url: str, context: ExtractionContext | None = None) -> list[Post]:
    """
    Posts for a single vine, a user's posts, or a user's likes. Each
    extractor is tried in turn; the error names every one that failed.
    """
    context = context or ExtractionContext()
    errors = []
    for extractor in _EXTRACTORS:
        try:
            return extractor(url, context)
        except JobError as e:
            errors.append(e.message)
    raise JobError(ErrorCode.API_ERROR, "vine extraction: " + ", ".join(errors))


def filter_out_reposts(posts: list[Post], user_id: str) -> list[Post]:
    """Keep only what the user uploaded themselves."""
    return [p for p in posts if p.uploader_id == user_id]
