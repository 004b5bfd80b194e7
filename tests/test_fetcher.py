"""
Tests for the Fetcher and the headless browser renderer.
"""

import socket
import threading
import time
from unittest.mock import Mock, patch

import pytest
import requests

from funnel_finder.errors import RenderingUnavailable
from funnel_finder.fetcher import Fetcher, request_with_deadline
from funnel_finder.renderer import BrowserRenderer


def _response(status=200, url="https://example.com/", content_type="text/html", text=""):
    headers = {"content-type": content_type} if content_type else {}
    return Mock(status_code=status, ok=status < 400, url=url, headers=headers, text=text)


class TestProbeStatus:
    """Test cases for Fetcher.probe_status."""

    def setup_method(self):
        self.fetcher = Fetcher(timeout=15)

    @patch("funnel_finder.fetcher.requests.Session.head")
    def test_head_success(self, mock_head):
        mock_head.return_value = _response(
            url="https://example.com/offer/", content_type="text/html; charset=utf-8"
        )

        probe = self.fetcher.probe_status("https://example.com/offer")

        assert probe.status == 200
        assert probe.final_url == "https://example.com/offer/"
        assert probe.is_success and probe.is_html
        assert mock_head.call_args.kwargs["allow_redirects"] is True
        assert 0 < mock_head.call_args.kwargs["timeout"] <= 15

    @patch("funnel_finder.fetcher.requests.Session.get")
    @patch("funnel_finder.fetcher.requests.Session.head")
    def test_head_rejected_falls_back_to_get(self, mock_head, mock_get):
        mock_head.return_value = _response(status=405)
        mock_get.return_value = _response(status=200, url="https://example.com/lp")

        probe = self.fetcher.probe_status("https://example.com/lp")

        assert probe.status == 200
        mock_get.assert_called_once()
        assert mock_get.call_args.kwargs["stream"] is True

    @patch("funnel_finder.fetcher.requests.Session.head")
    def test_network_failure_is_status_zero(self, mock_head):
        mock_head.side_effect = requests.Timeout("timed out")

        probe = self.fetcher.probe_status("https://example.com/slow")

        assert probe.status == 0
        assert probe.final_url == "https://example.com/slow"
        assert not probe.is_success

    @patch("funnel_finder.fetcher.requests.Session.head")
    def test_non_html_content_type(self, mock_head):
        mock_head.return_value = _response(content_type="application/pdf")

        probe = self.fetcher.probe_status("https://example.com/file")

        assert probe.is_success
        assert not probe.is_html


class TestFetchDocument:
    """Test cases for Fetcher.fetch_document."""

    @patch("funnel_finder.fetcher.requests.Session.get")
    def test_html_response(self, mock_get):
        mock_get.return_value = _response(text="<html><title>Hi</title></html>")
        renderer = Mock()

        html = Fetcher(renderer=renderer).fetch_document("https://example.com/")

        assert html == "<html><title>Hi</title></html>"
        renderer.render.assert_not_called()

    @patch("funnel_finder.fetcher.requests.Session.get")
    def test_non_html_uses_renderer(self, mock_get):
        mock_get.return_value = _response(content_type="application/json", text="{}")
        renderer = Mock(unavailable=False)
        renderer.render.return_value = "<html>rendered</html>"

        fetcher = Fetcher(renderer=renderer)
        html = fetcher.fetch_document("https://example.com/app")

        assert html == "<html>rendered</html>"
        renderer.render.assert_called_once_with("https://example.com/app", fetcher.headers)

    @patch("funnel_finder.fetcher.requests.Session.get")
    def test_failure_without_renderer_is_empty(self, mock_get):
        mock_get.side_effect = requests.ConnectionError("reset")

        assert Fetcher(renderer=None).fetch_document("https://example.com/") == ""

    @patch("funnel_finder.fetcher.requests.Session.get")
    def test_unavailable_renderer_is_empty(self, mock_get):
        mock_get.return_value = _response(status=500)
        renderer = Mock(unavailable=False)
        renderer.render.side_effect = RenderingUnavailable("no chromium")

        assert Fetcher(renderer=renderer).fetch_document("https://example.com/") == ""


class TestFetchPreview:
    """Test cases for Fetcher.fetch_preview."""

    @patch("funnel_finder.fetcher.requests.Session.get")
    def test_title_from_raw_markup(self, mock_get):
        mock_get.return_value = _response(
            url="https://www.example.com/",
            text="<html><head><TITLE data-x=1>  Big Sale  </TITLE></head></html>",
        )

        preview = Fetcher().fetch_preview("https://example.com/")

        assert preview.final_url == "https://www.example.com/"
        assert preview.title == "Big Sale"
        assert preview.screenshot_base64 is None

    @patch("funnel_finder.fetcher.requests.Session.get")
    def test_network_failure(self, mock_get):
        mock_get.side_effect = requests.ConnectionError("dns")

        preview = Fetcher().fetch_preview("https://example.com/")

        assert preview.final_url == "https://example.com/"
        assert preview.title == ""


class DripServer:
    """Local HTTP server that sends its response headers one line at a time."""

    def __init__(self, interval=0.5, lines=8):
        self.interval = interval
        self.lines = lines
        self._stopped = threading.Event()
        self._listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._listener.bind(("127.0.0.1", 0))
        self._listener.listen(8)
        self._listener.settimeout(0.2)
        self.url = f"http://127.0.0.1:{self._listener.getsockname()[1]}/offer"
        threading.Thread(target=self._serve, daemon=True).start()

    def _serve(self):
        while not self._stopped.is_set():
            try:
                conn, _ = self._listener.accept()
            except socket.timeout:
                continue
            except OSError:
                return
            threading.Thread(target=self._drip, args=(conn,), daemon=True).start()

    def _drip(self, conn):
        with conn:
            try:
                conn.recv(65536)
                conn.sendall(b"HTTP/1.1 200 OK\r\nContent-Type: text/html\r\n")
                for i in range(self.lines):
                    if self._stopped.wait(self.interval):
                        return
                    conn.sendall(f"X-Drip: {i}\r\n".encode("ascii"))
                conn.sendall(b"Content-Length: 0\r\n\r\n")
            except OSError:
                return

    def close(self):
        self._stopped.set()
        self._listener.close()


class TestRequestDeadline:
    """Test cases for the wall-clock request deadline."""

    def setup_method(self):
        """Set up test fixtures."""
        self.server = DripServer(interval=0.5, lines=8)

    def teardown_method(self):
        self.server.close()

    def test_probe_gives_up_on_trickling_headers(self):
        fetcher = Fetcher(timeout=1)
        fetcher.session.trust_env = False

        start = time.monotonic()
        probe = fetcher.probe_status(self.server.url)
        elapsed = time.monotonic() - start
        fetcher.close()

        assert elapsed < 2
        assert probe.status == 0
        assert probe.final_url == self.server.url

    def test_fetch_document_gives_up_on_trickling_headers(self):
        fetcher = Fetcher(timeout=1, renderer=None)
        fetcher.session.trust_env = False

        start = time.monotonic()
        html = fetcher.fetch_document(self.server.url)
        elapsed = time.monotonic() - start
        fetcher.close()

        assert elapsed < 2
        assert html == ""

    @patch("funnel_finder.fetcher.requests.Session.get")
    @patch("funnel_finder.fetcher.requests.Session.head")
    def test_head_and_get_retry_share_one_deadline(self, mock_head, mock_get):
        def slow(status):
            def respond(url, **kwargs):
                time.sleep(0.6)
                return _response(status=status)

            return respond

        mock_head.side_effect = slow(405)
        mock_get.side_effect = slow(200)

        start = time.monotonic()
        probe = Fetcher(timeout=1).probe_status("https://example.com/lp")
        elapsed = time.monotonic() - start

        assert probe.status == 0
        assert elapsed < 1.5
        assert mock_get.call_args.kwargs["timeout"] <= 0.5

    def test_expired_deadline_raises_timeout(self):
        method = Mock()

        with pytest.raises(requests.Timeout):
            request_with_deadline(method, "https://example.com/", time.monotonic() - 1)

        method.assert_not_called()

    def test_request_errors_propagate(self):
        method = Mock(side_effect=requests.ConnectionError("reset"))

        with pytest.raises(requests.ConnectionError):
            request_with_deadline(method, "https://example.com/", time.monotonic() + 5)


class TestBrowserRenderer:
    """Test cases for BrowserRenderer launch-once behaviour."""

    @patch("playwright.sync_api.sync_playwright")
    def test_launch_failure_is_cached(self, mock_sync_playwright):
        mock_sync_playwright.side_effect = RuntimeError("Executable doesn't exist")

        with BrowserRenderer() as renderer:
            for _ in range(3):
                with pytest.raises(RenderingUnavailable):
                    renderer.render("https://example.com/", {})

            assert renderer.unavailable is True
            assert mock_sync_playwright.call_count == 1

    @patch("playwright.sync_api.sync_playwright")
    def test_browser_is_shared_and_pages_closed(self, mock_sync_playwright):
        playwright = mock_sync_playwright.return_value.start.return_value
        browser = playwright.chromium.launch.return_value
        page = browser.new_page.return_value
        page.content.return_value = "<html>ok</html>"
        page.screenshot.return_value = b"\x89PNG"
        page.url = "https://example.com/final"
        page.title.return_value = "Final"

        with BrowserRenderer(timeout=20) as renderer:
            assert renderer.render("https://example.com/a", {"User-Agent": "x"}) == "<html>ok</html>"
            snapshot = renderer.snapshot("https://example.com/b", {})

        playwright.chromium.launch.assert_called_once_with(headless=True)
        assert page.close.call_count == 2
        assert page.goto.call_args.kwargs["timeout"] == 20000
        assert snapshot.final_url == "https://example.com/final"
        assert snapshot.title == "Final"
        assert snapshot.screenshot_base64 == "iVBORw=="
        browser.close.assert_called_once()
        playwright.stop.assert_called_once()
