#!/usr/bin/env python3
"""
Tests for the parts of CreeperKeeper that talk to the outside world:
vine.co discovery, downloads, ffmpeg/ffprobe wrappers, bulk operations,
concatenation and the crkr subcommands.
Network and subprocess calls are replaced with mocks.
"""

import io
import json
import os
import subprocess
import sys
import tempfile
import threading
import unittest
from datetime import datetime, timedelta
from pathlib import Path
from unittest.mock import MagicMock, patch

import requests

# Add project root to path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

import main
from creeperkeeper.cli.commands import build_parser, run
from creeperkeeper.core.bulk import (
    download_posts, write_all_subtitles, render_all_subtitles, scale_all,
)
from creeperkeeper.core.commands import run_tool, require_tool
from creeperkeeper.core.concat import concat_videos, concat_subtitles, concat_subtitles_file
from creeperkeeper.core.constants import ErrorCode
from creeperkeeper.core.download import download_post, describe_post
from creeperkeeper.core.error_codes import JobError, BatchError
from creeperkeeper.core.extract import (
    ExtractionContext, extract_posts, filter_out_reposts, post_html_to_posts,
    user_url_to_user_id, is_likes_url,
)
from creeperkeeper.core.metadata import write_post_metadata, read_post_metadata
from creeperkeeper.core.models import Post, PlaylistEntry
from creeperkeeper.core.video import (
    video_dimensions, video_duration, burn_subtitles,
)


def make_post(short_id, title="title", uploader="Kid", uploader_id="1", created=None):
    return Post(
        title=title,
        uploader=uploader,
        uploader_id=uploader_id,
        url=f"https://v.cdn.vine.co/r/videos/{short_id}.mp4",
        short_id=short_id,
        created=created,
    )


def six_seconds(_path):
    return timedelta(seconds=6)


# ── Fakes for vine.co ─────────────────────────────────────────────────

class FakeResponse:
    def __init__(self, payload=None, text="", status_code=200):
        self.payload = payload
        self.text = text if payload is None else json.dumps(payload)
        self.status_code = status_code

    def json(self):
        if self.payload is None:
            raise ValueError("No JSON object could be decoded")
        return self.payload


class FakeSession:
    """Serves canned responses by URL and records what was requested."""

    def __init__(self, responses):
        self.responses = responses
        self.requested = []
        self._lock = threading.Lock()

    def get(self, url, timeout=None):
        with self._lock:
            self.requested.append(url)
        return self.responses.get(
            url, FakeResponse({'success': False, 'error': 'not found'}, status_code=404))


def record(permalink, description="a vine", user_id=123, created="2014-01-02T03:04:05.000000"):
    return {
        'description': description,
        'username': "Kid",
        'userId': user_id,
        'videoUrl': "https://v.cdn.vine.co/r/videos/x.mp4",
        'permalinkUrl': permalink,
        'created': created,
    }


def ok(data):
    return FakeResponse({'success': True, 'error': '', 'data': data})


TIMELINE = "https://vine.co/api/timelines/users/123"


class TestExtract(unittest.TestCase):
    """Test post discovery from vine.co URLs."""

    def test_user_timeline_follows_pages(self):
        session = FakeSession({
            f"{TIMELINE}?page=1&size=100": ok({
                'records': [record("https://vine.co/v/bnmHnwVILKD"), record("https://vine.co/")],
                'nextPage': 2,
            }),
            f"{TIMELINE}?page=2&size=100": ok({
                'records': [record("")],
                'nextPage': None,
            }),
        })
        context = ExtractionContext(session)
        posts = extract_posts("https://vine.co/u/123", context)
        self.assertEqual([p.short_id for p in posts],
                         ["bnmHnwVILKD", "fallbackID0", "fallbackID1"])
        self.assertEqual(context.user_id, "123")
        self.assertEqual(posts[0].uploader_id, "123")
        self.assertEqual(posts[0].created, datetime(2014, 1, 2, 3, 4, 5))
        self.assertEqual(len(session.requested), 2)

    def test_fallback_ids_are_per_context(self):
        first = ExtractionContext(FakeSession({}))
        second = ExtractionContext(FakeSession({}), fallback_start=5)
        self.assertEqual(first.fallback_id(), "fallbackID0")
        self.assertEqual(first.fallback_id(), "fallbackID1")
        self.assertEqual(second.fallback_id(), "fallbackID5")
        self.assertEqual(first.fallback_id(), "fallbackID2")

    def test_likes_timeline(self):
        self.assertTrue(is_likes_url("https://vine.co/u/123/likes"))
        self.assertFalse(is_likes_url("https://vine.co/u/123"))
        session = FakeSession({
            f"{TIMELINE}/likes?page=1&size=100": ok({'records': [], 'nextPage': 0}),
        })
        self.assertEqual(extract_posts("https://vine.co/u/123/likes", ExtractionContext(session)), [])
        self.assertIn(f"{TIMELINE}/likes?page=1&size=100", session.requested)

    def test_vanity_url(self):
        session = FakeSession({
            "https://vine.co/api/users/profiles/vanity/somebody": ok({'userId': 987}),
        })
        self.assertEqual(user_url_to_user_id("https://vine.co/somebody", ExtractionContext(session)), "987")

    def test_user_id_url(self):
        session = FakeSession({})
        self.assertEqual(user_url_to_user_id("vine.co/u/42/", ExtractionContext(session)), "42")
        self.assertEqual(session.requested, [])

    def test_api_error_names_every_extractor(self):
        session = FakeSession({
            f"{TIMELINE}?page=1&size=100": FakeResponse(
                {'success': False, 'error': 'That record does not exist.'}, status_code=404),
        })
        with self.assertRaises(JobError) as ctx:
            extract_posts("https://vine.co/u/123", ExtractionContext(session))
        self.assertEqual(ctx.exception.code, ErrorCode.API_ERROR)
        self.assertIn("individual vine", ctx.exception.message)
        self.assertIn("That record does not exist.", ctx.exception.message)

    def test_non_json_response(self):
        session = FakeSession({f"{TIMELINE}?page=1&size=100": FakeResponse(text="<html>")})
        with self.assertRaises(JobError):
            extract_posts("https://vine.co/u/123", ExtractionContext(session))

    def test_single_post_page(self):
        post_data = {
            "bnmHnwVILKD": {
                "username": "Kid",
                "userId": 1,
                "description": "Idiots Assemble!",
                "shortId": "bnmHnwVILKD",
                "created": "2013-06-01T12:00:00.000000",
                "videoUrls": [
                    {"id": "low", "videoUrl": "https://v.cdn.vine.co/low.mp4"},
                    {"id": "original", "videoUrl": "https://v.cdn.vine.co/orig.mp4"},
                ],
            }
        }
        html = f"<script>window.POST_DATA = {json.dumps(post_data)};</script>"
        session = FakeSession({"https://vine.co/v/bnmHnwVILKD": FakeResponse(text=html)})
        posts = extract_posts("https://vine.co/v/bnmHnwVILKD", ExtractionContext(session))
        self.assertEqual(posts, [Post(
            title="Idiots Assemble!",
            uploader="Kid",
            uploader_id="1",
            url="https://v.cdn.vine.co/orig.mp4",
            short_id="bnmHnwVILKD",
            created=datetime(2013, 6, 1, 12, 0, 0),
        )])

    def test_page_without_post_data(self):
        with self.assertRaises(JobError):
            post_html_to_posts("<html><body>gone</body></html>")

    def test_filter_out_reposts(self):
        posts = [make_post("a", uploader_id="1"), make_post("b", uploader_id="2")]
        self.assertEqual([p.short_id for p in filter_out_reposts(posts, "1")], ["a"])


class TestDownload(unittest.TestCase):
    """Test streaming a video to disk."""

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.post = make_post("abc", title="a very long title that gets cut short")

    def tearDown(self):
        self.tmpdir.cleanup()

    def _session(self, resp):
        session = MagicMock()
        session.get.return_value.__enter__.return_value = resp
        return session

    def test_writes_chunks(self):
        resp = MagicMock()
        resp.iter_content.return_value = [b"abc", b"def"]
        session = self._session(resp)
        path = download_post(self.post, self.tmpdir.name, session=session)
        self.assertEqual(path, Path(self.tmpdir.name) / "abc.mp4")
        self.assertEqual(path.read_bytes(), b"abcdef")
        session.get.assert_called_once_with(self.post.url, stream=True, timeout=30)

    def test_http_error(self):
        resp = MagicMock()
        resp.raise_for_status.side_effect = requests.exceptions.HTTPError("404 Client Error")
        with self.assertRaises(JobError) as ctx:
            download_post(self.post, self.tmpdir.name, session=self._session(resp))
        self.assertEqual(ctx.exception.code, ErrorCode.DOWNLOAD_FAILED)
        self.assertTrue(ctx.exception.retryable)
        self.assertFalse((Path(self.tmpdir.name) / "abc.mp4").exists())

    def test_partial_file_removed(self):
        def chunks(chunk_size=None):
            yield b"abc"
            raise requests.exceptions.ConnectionError("connection reset")

        resp = MagicMock()
        resp.iter_content.side_effect = chunks
        with self.assertRaises(JobError):
            download_post(self.post, self.tmpdir.name, session=self._session(resp))
        self.assertFalse((Path(self.tmpdir.name) / "abc.mp4").exists())

    def test_describe_post(self):
        self.assertEqual(describe_post(self.post), '[Kid] "a very long title th"')


class TestCommands(unittest.TestCase):
    """Test the external tool runner."""

    def test_rejects_string_args(self):
        with self.assertRaises(TypeError):
            run_tool("ffmpeg -version")

    @patch('creeperkeeper.core.commands.subprocess.run')
    def test_never_uses_shell(self, mock_run):
        mock_run.return_value = subprocess.CompletedProcess(["ffmpeg"], 0, stdout="ok", stderr="")
        self.assertEqual(run_tool(["ffmpeg", "-version"], shell=True), "ok")
        self.assertFalse(mock_run.call_args.kwargs['shell'])
        self.assertEqual(mock_run.call_args.args[0], ["ffmpeg", "-version"])

    @patch('creeperkeeper.core.commands.subprocess.run')
    def test_failure_carries_stderr(self, mock_run):
        mock_run.return_value = subprocess.CompletedProcess(
            ["ffmpeg"], 1, stdout="", stderr="Invalid data found\n")
        with self.assertRaises(JobError) as ctx:
            run_tool(["ffmpeg", "-i", "x.mp4"])
        self.assertEqual(ctx.exception.code, ErrorCode.FFMPEG_FAILED)
        self.assertIn("ffmpeg -i x.mp4", ctx.exception.message)
        self.assertIn("Invalid data found", ctx.exception.message)

    @patch('creeperkeeper.core.commands.subprocess.run')
    def test_warns_on_stderr_with_success(self, mock_run):
        mock_run.return_value = subprocess.CompletedProcess(
            ["ffprobe"], 0, stdout="6.0\n", stderr="deprecated pixel format\n")
        with self.assertLogs('creeperkeeper.core.commands', level='WARNING'):
            self.assertEqual(run_tool(["ffprobe", "x.mp4"]), "6.0\n")

    @patch('creeperkeeper.core.commands.subprocess.run', side_effect=FileNotFoundError)
    def test_missing_tool(self, _):
        with self.assertRaises(JobError) as ctx:
            run_tool(["ffmpeg"])
        self.assertEqual(ctx.exception.code, ErrorCode.TOOL_MISSING)

    @patch('creeperkeeper.core.commands.subprocess.run',
           side_effect=subprocess.TimeoutExpired(["ffprobe"], 60))
    def test_timeout(self, _):
        with self.assertRaises(JobError) as ctx:
            run_tool(["ffprobe"], code=ErrorCode.PROBE_FAILED, timeout=60)
        self.assertEqual(ctx.exception.code, ErrorCode.PROBE_FAILED)

    @patch('creeperkeeper.core.commands.shutil.which', return_value=None)
    def test_require_tool(self, _):
        with self.assertRaises(JobError) as ctx:
            require_tool("ffprobe")
        self.assertEqual(ctx.exception.code, ErrorCode.TOOL_MISSING)


class TestVideo(unittest.TestCase):
    """Test ffprobe output handling and ffmpeg invocations."""

    @patch('creeperkeeper.core.video.run_tool')
    def test_dimensions(self, mock_run):
        mock_run.return_value = (
            'streams.stream.0.index=0\n'
            'streams.stream.0.codec_name="h264"\n'
            'streams.stream.0.width=480\n'
            'streams.stream.0.height=480\n'
        )
        self.assertEqual(video_dimensions("a.mp4"), (480, 480))
        self.assertEqual(mock_run.call_args.args[0][0], "ffprobe")

    @patch('creeperkeeper.core.video.run_tool', return_value='streams.stream.0.width=480\n')
    def test_dimensions_missing_height(self, _):
        with self.assertRaises(JobError) as ctx:
            video_dimensions("a.mp4")
        self.assertEqual(ctx.exception.code, ErrorCode.PROBE_FAILED)

    @patch('creeperkeeper.core.video.run_tool', return_value="6.006000\n")
    def test_duration(self, _):
        self.assertEqual(video_duration("a.mp4"), timedelta(seconds=6.006))

    @patch('creeperkeeper.core.video.run_tool', return_value="N/A\n")
    def test_duration_unparseable(self, _):
        with self.assertRaises(JobError):
            video_duration("a.mp4")

    @unittest.skipIf(sys.platform == "win32", "paths are rewritten on Windows")
    @patch('creeperkeeper.core.video.run_tool')
    def test_burn_subtitles(self, mock_run):
        self.assertEqual(burn_subtitles("dir/v.mp4", "sans", 12), "dir/v.sub.mp4")
        args = mock_run.call_args.args[0]
        self.assertEqual(args[args.index("-i") + 1], "dir/v.mp4")
        self.assertEqual(args[args.index("-vf") + 1],
                         "subtitles=f=dir/v.srt:force_style='FontName=sans,Fontsize=12'")
        self.assertEqual(args[-1], "dir/v.sub.mp4")
        self.assertIsNone(mock_run.call_args.kwargs['env'])


class TestBulk(unittest.TestCase):
    """Test best-effort bulk operations."""

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.dir = self.tmpdir.name

    def tearDown(self):
        self.tmpdir.cleanup()

    def video(self, name):
        return os.path.join(self.dir, name)

    @patch('creeperkeeper.core.bulk.download_post')
    def test_download_skips_existing(self, mock_download):
        Path(self.video("a.mp4")).touch()
        posts = [make_post("a"), make_post("b")]
        download_posts(posts, self.dir, limit=2)
        mock_download.assert_called_once_with(posts[1], self.dir)

    @patch('creeperkeeper.core.bulk.download_post')
    def test_download_force(self, mock_download):
        Path(self.video("a.mp4")).touch()
        download_posts([make_post("a"), make_post("b")], self.dir, force=True, limit=2)
        self.assertEqual(mock_download.call_count, 2)

    @patch('creeperkeeper.core.bulk.download_post')
    def test_download_failures(self, mock_download):
        def fake(post, directory):
            if post.short_id == "b":
                raise JobError(ErrorCode.DOWNLOAD_FAILED, "404")

        mock_download.side_effect = fake
        with self.assertLogs('creeperkeeper.core.pool', level='ERROR'):
            with self.assertRaises(BatchError) as ctx:
                download_posts([make_post("a"), make_post("b"), make_post("c")], self.dir)
        self.assertEqual(ctx.exception.message, "download: 1 / 3 failed")

    def test_write_all_subtitles(self):
        write_post_metadata(make_post("a", title="Idiots Assemble!"), self.dir)
        entries = [PlaylistEntry(self.video("a.mp4"))]
        write_all_subtitles(entries, timedelta(seconds=2), "{title}", limit=2)
        self.assertEqual(Path(self.video("a.srt")).read_text(encoding='utf-8'),
                         "1\n00:00:00,000 --> 00:00:02,000\nIdiots Assemble!\n")

    def test_write_all_subtitles_missing_metadata(self):
        write_post_metadata(make_post("a"), self.dir)
        entries = [PlaylistEntry(self.video("a.mp4")), PlaylistEntry(self.video("b.mp4"))]
        with self.assertLogs('creeperkeeper.core.pool', level='ERROR'):
            with self.assertRaises(BatchError) as ctx:
                write_all_subtitles(entries, timedelta(seconds=2), "{title}")
        self.assertEqual(ctx.exception.message, "write subtitles: 1 / 2 failed")
        self.assertTrue(os.path.exists(self.video("a.srt")))

    @patch('creeperkeeper.core.bulk.burn_subtitles')
    @patch('creeperkeeper.core.bulk.require_tool')
    def test_render_skips_existing_hardsubs(self, _, mock_burn):
        Path(self.video("a.sub.mp4")).touch()
        videos = [self.video("a.mp4"), self.video("b.mp4")]
        render_all_subtitles(videos, "sans", 14)
        mock_burn.assert_called_once_with(self.video("b.mp4"), "sans", 14)

        mock_burn.reset_mock()
        render_all_subtitles(videos, "sans", 14, force=True)
        self.assertEqual(mock_burn.call_count, 2)

    @patch('creeperkeeper.core.bulk.burn_subtitles')
    @patch('creeperkeeper.core.commands.shutil.which', return_value=None)
    def test_render_needs_ffmpeg(self, _, mock_burn):
        with self.assertRaises(JobError) as ctx:
            render_all_subtitles([self.video("a.mp4")])
        self.assertEqual(ctx.exception.code, ErrorCode.TOOL_MISSING)
        mock_burn.assert_not_called()

    @patch('creeperkeeper.core.bulk.scale_video')
    @patch('creeperkeeper.core.bulk.video_dimensions')
    @patch('creeperkeeper.core.bulk.require_tool')
    def test_scale_only_mismatched_once(self, _, mock_dims, mock_scale):
        sizes = {"a.mp4": (480, 480), "b.mp4": (720, 720), "c.mp4": (720, 1280)}
        mock_dims.side_effect = sizes.__getitem__
        scale_all(["a.mp4", "b.mp4", "a.mp4", "c.mp4"], 720, 720, limit=3)
        self.assertEqual(mock_dims.call_count, 3)
        self.assertEqual(sorted(c.args[0] for c in mock_scale.call_args_list),
                         ["a.mp4", "c.mp4"])

    @patch('creeperkeeper.core.bulk.scale_video')
    @patch('creeperkeeper.core.bulk.video_dimensions')
    @patch('creeperkeeper.core.bulk.require_tool')
    def test_scale_probe_failure(self, _, mock_dims, mock_scale):
        def probe(video):
            if video == "b.mp4":
                raise JobError(ErrorCode.PROBE_FAILED, "moov atom not found")
            return (480, 480)

        mock_dims.side_effect = probe
        with self.assertLogs('creeperkeeper.core.pool', level='ERROR'):
            with self.assertRaises(BatchError) as ctx:
                scale_all(["a.mp4", "b.mp4"])
        self.assertEqual(ctx.exception.message, "get dimensions: 1 / 2 failed")
        mock_scale.assert_not_called()


class TestConcat(unittest.TestCase):
    """Test joining videos and their subtitles."""

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.dir = self.tmpdir.name

    def tearDown(self):
        self.tmpdir.cleanup()

    def entry(self, name, subtitles=None, skip=False):
        video = os.path.join(self.dir, f"{name}.mp4")
        if subtitles is not None:
            Path(self.dir, f"{name}.srt").write_text(subtitles, encoding='utf-8')
        return PlaylistEntry(video, skip)

    def test_subtitles_offset_by_preceding_videos(self):
        entries = [
            self.entry("v0"),
            self.entry("v1", "1\n00:00:00,000 --> 00:00:02,000\nv1 line1\nline2\n"),
            self.entry("v2"),
            self.entry("v3", "1\n00:00:00,000 --> 00:00:02,000\nv3 line1\nline2\n"),
        ]
        out = io.StringIO()
        self.assertEqual(concat_subtitles(out, entries, six_seconds), 2)
        self.assertEqual(out.getvalue(), (
            "1\n00:00:06,000 --> 00:00:08,000\nv1 line1\nline2\n\n"
            "2\n00:00:18,000 --> 00:00:20,000\nv3 line1\nline2\n\n"
        ))

    def test_nosubtitles_entry_still_takes_time(self):
        srt = "1\n00:00:00,500 --> 00:00:01,000\nhello\n"
        entries = [self.entry("a", srt, skip=True), self.entry("b", srt)]
        out = io.StringIO()
        concat_subtitles(out, entries, six_seconds)
        self.assertEqual(out.getvalue(), "1\n00:00:06,500 --> 00:00:07,000\nhello\n\n")

    def test_subtitles_renumbered(self):
        srt = ("4\n00:00:00,000 --> 00:00:01,000\nx\n\n"
               "9\n00:00:01,000 --> 00:00:02,000\ny\n")
        entries = [self.entry("a", srt), self.entry("b", srt)]
        out = io.StringIO()
        concat_subtitles(out, entries, six_seconds)
        indexes = [line for line in out.getvalue().split("\n\n") if line]
        self.assertEqual([block.split("\n")[0] for block in indexes], ["1", "2", "3", "4"])

    def test_subtitles_file(self):
        entries = [self.entry("a", "1\n00:00:00,000 --> 00:00:01,000\nx\n")]
        path = os.path.join(self.dir, "out.srt")
        self.assertEqual(concat_subtitles_file(path, entries, six_seconds), 1)
        self.assertEqual(Path(path).read_text(encoding='utf-8'),
                         "1\n00:00:00,000 --> 00:00:01,000\nx\n\n")

    @patch('creeperkeeper.core.concat.concat_transport_streams')
    @patch('creeperkeeper.core.concat.remux_to_transport_stream')
    def test_videos(self, mock_remux, mock_concat):
        seen = {}

        def fake_concat(list_file, out_file):
            seen['dir'] = os.path.dirname(list_file)
            seen['list'] = Path(list_file).read_text(encoding='utf-8')
            seen['out'] = out_file

        mock_concat.side_effect = fake_concat
        concat_videos(["x/a.mp4", "y/a.mp4"], "out.mp4")

        streams = [c.args[1] for c in mock_remux.call_args_list]
        self.assertEqual([c.args[0] for c in mock_remux.call_args_list], ["x/a.mp4", "y/a.mp4"])
        self.assertEqual([os.path.basename(s) for s in streams], ["00000_a.ts", "00001_a.ts"])
        self.assertEqual(seen['list'], "".join(f"file '{s}'\n" for s in streams))
        self.assertEqual(seen['out'], "out.mp4")
        self.assertFalse(os.path.exists(seen['dir']))

    @patch('creeperkeeper.core.concat.concat_transport_streams')
    @patch('creeperkeeper.core.concat.remux_to_transport_stream')
    def test_failed_remux_aborts(self, mock_remux, mock_concat):
        mock_remux.side_effect = [None, JobError(ErrorCode.FFMPEG_FAILED, "boom"), None]
        with self.assertRaises(JobError):
            concat_videos(["a.mp4", "b.mp4", "c.mp4"], "out.mp4")
        self.assertEqual(mock_remux.call_count, 2)
        mock_concat.assert_not_called()


class TestCli(unittest.TestCase):
    """Test argument parsing and the subcommands."""

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.dir = self.tmpdir.name
        self.config = os.path.join(self.dir, "config.json")

    def tearDown(self):
        self.tmpdir.cleanup()

    def parse(self, *argv):
        return build_parser().parse_args(["--config", self.config, *argv])

    def test_parse_get(self):
        args = self.parse("get", "https://vine.co/u/1", "out.m3u", "--noreverse")
        self.assertEqual(args.command, "get")
        self.assertEqual(args.url, "https://vine.co/u/1")
        self.assertEqual(args.playlist, "out.m3u")
        self.assertTrue(args.noreverse)
        self.assertFalse(args.reposts)
        self.assertFalse(args.force)

    def test_parse_subtitles(self):
        args = self.parse("subtitles", "in.m3u", "-t", "3", "--format", "{title}")
        self.assertEqual(args.duration, 3.0)
        self.assertEqual(args.format, "{title}")
        self.assertFalse(args.plainemoji)

    def _fake_extract(self, posts, user_id):
        def extract(url, context):
            context.user_id = user_id
            return list(posts)
        return extract

    def _run_get(self, url):
        playlist = os.path.join(self.dir, "out.m3u")
        cwd = os.getcwd()
        os.chdir(self.dir)
        try:
            status = run(self.parse("get", url, playlist))
        finally:
            os.chdir(cwd)
        return status, Path(playlist).read_text(encoding='utf-8')

    @patch('creeperkeeper.cli.commands.download_posts')
    @patch('creeperkeeper.cli.commands.extract_posts')
    def test_get(self, mock_extract, mock_download):
        posts = [
            make_post("old", created=datetime(2014, 1, 1)),
            make_post("new", created=datetime(2015, 1, 1)),
            make_post("repost", uploader_id="2", created=datetime(2016, 1, 1)),
        ]
        mock_extract.side_effect = self._fake_extract(posts, "1")
        status, text = self._run_get("https://vine.co/u/1")

        self.assertEqual(status, 0)
        self.assertEqual(text.count(".mp4"), 2)
        self.assertLess(text.index("new.mp4"), text.index("old.mp4"))
        self.assertEqual(read_post_metadata(os.path.join(self.dir, "old.json")), posts[0])
        self.assertFalse(os.path.exists(os.path.join(self.dir, "repost.json")))
        downloaded = mock_download.call_args.args[0]
        self.assertEqual([p.short_id for p in downloaded], ["new", "old"])

    @patch('creeperkeeper.cli.commands.download_posts')
    @patch('creeperkeeper.cli.commands.extract_posts')
    def test_get_likes_keeps_other_uploaders(self, mock_extract, mock_download):
        posts = [
            make_post("liked1", uploader_id="555", created=datetime(2014, 1, 1)),
            make_post("liked2", uploader_id="777", created=datetime(2015, 1, 1)),
        ]
        mock_extract.side_effect = self._fake_extract(posts, "123")
        status, text = self._run_get("https://vine.co/u/123/likes")

        self.assertEqual(status, 0)
        self.assertEqual(text.count(".mp4"), 2)
        self.assertEqual(len(mock_download.call_args.args[0]), 2)

    @patch('creeperkeeper.cli.commands.download_posts')
    @patch('creeperkeeper.cli.commands.extract_posts')
    def test_get_single_post(self, mock_extract, _):
        mock_extract.side_effect = self._fake_extract([make_post("one", uploader_id="9")], None)
        status, text = self._run_get("https://vine.co/v/one")
        self.assertEqual(status, 0)
        self.assertIn("one.mp4", text)

    def _hardsub_fixture(self):
        a = os.path.join(self.dir, "a.mp4")
        b = os.path.join(self.dir, "b.mp4")
        for name in ("a.sub.mp4", "b.sub.mp4"):
            Path(self.dir, name).touch()
        m3u_in = os.path.join(self.dir, "in.m3u")
        Path(m3u_in).write_text(f"#EXTM3U\n{a}\n#nosubtitles\n{b}\n", encoding='utf-8')
        return a, b, m3u_in, os.path.join(self.dir, "out.m3u")

    @patch('creeperkeeper.cli.commands.render_all_subtitles')
    @patch('creeperkeeper.cli.commands.scale_all')
    def test_hardsub(self, mock_scale, mock_render):
        a, b, m3u_in, m3u_out = self._hardsub_fixture()
        self.assertEqual(run(self.parse("hardsub", m3u_in, m3u_out, "--fontsize", "20")), 0)
        self.assertEqual(mock_scale.call_args.args[0], [a, b])
        self.assertEqual(mock_render.call_args.args[0], [a])
        self.assertEqual(mock_render.call_args.args[2], 20)
        self.assertEqual(Path(m3u_out).read_text(encoding='utf-8'),
                         f"#EXTM3U\n{a[:-4]}.sub.mp4\n#nosubtitles\n{b}\n")

    @patch('creeperkeeper.cli.commands.render_all_subtitles',
           side_effect=BatchError("render subtitles", 1, 1))
    @patch('creeperkeeper.cli.commands.scale_all')
    def test_hardsub_partial_failure(self, _, __):
        a, b, m3u_in, m3u_out = self._hardsub_fixture()
        with self.assertLogs('creeperkeeper.cli.commands', level='ERROR'):
            self.assertEqual(run(self.parse("hardsub", m3u_in, m3u_out)), 1)
        self.assertTrue(os.path.exists(m3u_out))

    @patch('creeperkeeper.cli.commands.concat_subtitles_file')
    @patch('creeperkeeper.cli.commands.concat_videos')
    @patch('creeperkeeper.cli.commands.scale_all')
    def test_concat(self, _, mock_videos, mock_subtitles):
        m3u = os.path.join(self.dir, "in.m3u")
        Path(m3u).write_text("#EXTM3U\na.mp4\nb.mp4\n", encoding='utf-8')
        self.assertEqual(run(self.parse("concat", m3u, "all.mp4")), 0)
        mock_videos.assert_called_once_with(["a.mp4", "b.mp4"], "all.mp4")
        self.assertEqual(mock_subtitles.call_args.args[0], "all.srt")

        mock_subtitles.reset_mock()
        run(self.parse("concat", m3u, "all.mp4", "--nosubtitles"))
        mock_subtitles.assert_not_called()

    @patch('main.shutil.which', return_value=None)
    def test_prerequisites(self, _):
        self.assertTrue(main.check_prerequisites("get"))
        with self.assertLogs('crkr', level='ERROR'):
            self.assertFalse(main.check_prerequisites("hardsub"))


if __name__ == "__main__":
    unittest.main()
