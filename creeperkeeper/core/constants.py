"""
Shared constants for CreeperKeeper.
Imported by every other module.
"""

import os
import pathlib
import sys

# ── Application identity ──────────────────────────────────────────────
APP_NAME = "creeperkeeper"
APP_VERSION = "0.4.0"

# ── Filesystem paths ─────────────────────────────────────────────────
HOME = pathlib.Path.home()

CONFIG_DIR = pathlib.Path(
    os.environ.get("XDG_CONFIG_HOME", str(HOME / ".config"))
) / APP_NAME
CONFIG_PATH = CONFIG_DIR / "config.json"

# ── Artifact naming ───────────────────────────────────────────────────
VIDEO_EXT = ".mp4"
SUBTITLES_EXT = ".srt"
METADATA_EXT = ".json"
HARDSUB_EXT = ".sub.mp4"
TRANSPORT_STREAM_EXT = ".ts"

# ── Playlist format ───────────────────────────────────────────────────
M3U_HEADER = "#EXTM3U"
M3U_DIRECTIVE_PREFIX = "#"
NO_SUBTITLES_PATTERN = r'^#\s*nosubtitles'

# ── Error codes ───────────────────────────────────────────────────────
class ErrorCode:
    # Non-retryable
    INVALID_URL = "ERR_INVALID_URL"
    API_ERROR = "ERR_API"
    TEMPLATE = "ERR_TEMPLATE"
    SUBRIP_PARSE = "ERR_SUBRIP_PARSE"
    METADATA_PARSE = "ERR_METADATA_PARSE"
    PROBE_FAILED = "ERR_PROBE_FAILED"
    FFMPEG_FAILED = "ERR_FFMPEG_FAILED"
    TOOL_MISSING = "ERR_TOOL_MISSING"
    IO_FAILED = "ERR_IO_FAILED"
    BATCH_FAILED = "ERR_BATCH_FAILED"

    # Retryable
    DOWNLOAD_FAILED = "ERR_DOWNLOAD_FAILED"
    NETWORK_TRANSIENT = "ERR_NETWORK_TRANSIENT"


RETRYABLE_ERRORS = {
    ErrorCode.DOWNLOAD_FAILED,
    ErrorCode.NETWORK_TRANSIENT,
}

# ── Vine API ──────────────────────────────────────────────────────────
VINE_BASE_URL = "https://vine.co"
VINE_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S.%f"
VINE_PAGE_SIZE = 100
VINE_POST_URL_RE = r'https?://(?:www\.)?vine\.co/(?:v|oembed)/(?P<id>\w+)'
VINE_PERMALINK_RE = r'https://vine\.co/v/([a-zA-Z0-9]+)$'
VINE_USER_URL_RE = r'(?:https?://)?vine\.co/(u/)?([^/]+)(/likes)?/?(\?.*)?$'
VINE_POST_DATA_RE = r'window\.POST_DATA\s*=\s*(\{.+?\});\s*</script>'
HTTP_TIMEOUT_SEC = 30
DOWNLOAD_CHUNK_BYTES = 64 * 1024

# ── Subtitle defaults ─────────────────────────────────────────────────
DEFAULT_SUBTITLE_DURATION_SEC = 2.5
DEFAULT_SUBTITLE_TEMPLATE = "[{uploader}] {title}"

# fontconfig has trouble resolving generic names like "sans" on Windows, and
# Arial ships with every Windows since 98.
DEFAULT_FONT_NAME = "Arial" if sys.platform == "win32" else "sans"
DEFAULT_FONT_SIZE = 12

# ── Video normalization ───────────────────────────────────────────────
CANONICAL_WIDTH = 720
CANONICAL_HEIGHT = 720

# ── Worker pool limits ────────────────────────────────────────────────
DOWNLOAD_WORKERS = 4
RENDER_WORKERS = os.cpu_count() or 1

# Subprocess timeouts (seconds)
PROBE_TIMEOUT_SEC = 60
FFMPEG_TIMEOUT_SEC = 1800

# How much of stderr ends up in an error message
STDERR_TAIL_CHARS = 600

# Truncation for per-item log context
LOG_TITLE_CHARS = 20

# Unicode Variation_Selector code points (emoji/text presentation selectors)
VARIATION_SELECTORS_RE = (
    '[\u180b-\u180d\u180f\ufe00-\ufe0f\U000e0100-\U000e01ef]'
)

WINDOWS_FONTCONFIG = """<?xml version="1.0"?>
<!DOCTYPE fontconfig SYSTEM "fonts.dtd">
<fontconfig>
    <dir>C:\\Windows\\Fonts</dir>
    <dir>C:\\WINNT\\Fonts</dir>
    <cachedir>~/.fontconfig</cachedir>
</fontconfig>
"""
