"""
Fetcher Module

HTTP status probes and HTML document retrieval. Documents that do not come
back as HTML from a plain GET are handed to the shared headless browser,
when one is available.
"""

import re
import threading
import time
from typing import Callable, Dict, Optional

import requests

from .errors import RenderingUnavailable
from .models import PreviewResult, StatusProbe
from .renderer import BrowserRenderer


DEFAULT_HEADERS = {
    "User-Agent": "FunnelFinder/1.0 (+https://github.com/funnel-finder/funnel-finder)",
    "Accept": "text/html,application/xhtml+xml",
    "Accept-Language": "en-US,en;q=0.9",
}

# Matches titles in raw, possibly malformed markup
TITLE_RE = re.compile(r"<title[^>]*>([^<]*)</title>", re.IGNORECASE)


def request_with_deadline(
    method: Callable[..., requests.Response],
    url: str,
    deadline: float,
    **kwargs,
) -> requests.Response:
    """
    Run one session request that must complete before a wall-clock deadline.

    The timeout requests applies is per socket operation, so a server that
    trickles bytes can hold a call open indefinitely. The request runs on a
    daemon thread instead; when the deadline passes first the caller gets a
    Timeout and the late response, if any, is closed on arrival.

    Args:
        method: Bound session method such as ``session.get``
        url: Request URL
        deadline: Absolute ``time.monotonic()`` value
        **kwargs: Passed through to the request method

    Returns:
        The response

    Raises:
        requests.Timeout: If the deadline passes before the response is complete
        requests.RequestException: Any error raised by the request itself
    """
    remaining = deadline - time.monotonic()
    if remaining <= 0:
        raise requests.Timeout(f"Deadline exceeded before requesting {url}")

    outcome: Dict[str, object] = {}
    lock = threading.Lock()
    abandoned = threading.Event()

    def worker():
        try:
            response = method(url, timeout=remaining, **kwargs)
        except Exception as e:
            outcome["error"] = e
            return
        with lock:
            if abandoned.is_set():
                response.close()
            else:
                outcome["response"] = response

    thread = threading.Thread(target=worker, name="deadline-request", daemon=True)
    thread.start()
    thread.join(remaining)

    with lock:
        if "response" not in outcome and "error" not in outcome:
            abandoned.set()
            raise requests.Timeout(f"No complete response from {url} before the deadline")

    if "error" in outcome:
        raise outcome["error"]
    return outcome["response"]


class Fetcher:
    """Performs status probes and document fetches against the target site."""

    def __init__(
        self,
        timeout: int = 15,
        renderer: Optional[BrowserRenderer] = None,
        headers: Optional[Dict[str, str]] = None,
        verbose: bool = False,
    ):
        """
        Initialize the fetcher.

        Args:
            timeout: Request timeout in seconds
            renderer: Shared headless browser, or None to disable rendering
            headers: Outbound headers (defaults to DEFAULT_HEADERS)
            verbose: Enable verbose logging
        """
        self.timeout = timeout
        self.renderer = renderer
        self.verbose = verbose
        self.headers = dict(headers or DEFAULT_HEADERS)
        self.session = requests.Session()
        self.session.headers.update(self.headers)

    def probe_status(self, url: str) -> StatusProbe:
        """
        Check a URL's status with HEAD, retrying with GET when HEAD is refused.

        HEAD and the GET retry share one deadline of ``timeout`` seconds.

        Args:
            url: URL to probe

        Returns:
            Status probe; status 0 means the request failed or timed out
        """
        deadline = time.monotonic() + self.timeout
        try:
            response = request_with_deadline(
                self.session.head, url, deadline, allow_redirects=True
            )
            if response.status_code in (405, 501):
                response = request_with_deadline(
                    self.session.get, url, deadline, allow_redirects=True, stream=True
                )
                response.close()
        except requests.RequestException as e:
            if self.verbose:
                print(f"    ❌ Probe failed for {url}: {e}")
            return StatusProbe(status=0, final_url=url)

        return StatusProbe(
            status=response.status_code,
            final_url=response.url or url,
            content_type=response.headers.get("content-type"),
        )

    def _render(self, url: str) -> str:
        if self.renderer is None or self.renderer.unavailable:
            return ""

        try:
            html = self.renderer.render(url, self.headers)
        except RenderingUnavailable:
            return ""
        except Exception as e:
            if self.verbose:
                print(f"    ❌ Rendering failed for {url}: {e}")
            return ""

        if self.verbose:
            print(f"    🖥️  Rendered with browser: {url}")
        return html

    def fetch_document(self, url: str) -> str:
        """
        Fetch a page's HTML.

        A plain GET is tried first; when it fails or does not return HTML the
        page is rendered in the headless browser instead.

        Args:
            url: Page URL

        Returns:
            HTML text, or an empty string if nothing could be retrieved
        """
        try:
            if self.verbose:
                print(f"  📄 Fetching: {url}")

            response = request_with_deadline(
                self.session.get, url, time.monotonic() + self.timeout, allow_redirects=True
            )
            content_type = response.headers.get("content-type", "").lower()

            if response.ok and "text/html" in content_type:
                return response.text

            if self.verbose:
                print(
                    f"    ⚠️  HTTP {response.status_code} ({content_type or 'no content type'}): {url}"
                )
        except requests.RequestException as e:
            if self.verbose:
                print(f"    ❌ Failed to fetch {url}: {e}")

        return self._render(url)

    def fetch_preview(self, url: str) -> PreviewResult:
        """
        Text-only preview: final URL after redirects and the page title.

        Used when no headless browser is available, so no screenshot is taken.
        """
        try:
            response = request_with_deadline(
                self.session.get, url, time.monotonic() + self.timeout, allow_redirects=True
            )
        except requests.RequestException as e:
            if self.verbose:
                print(f"    ❌ Preview fetch failed for {url}: {e}")
            return PreviewResult(final_url=url, title="")

        html = response.text if response.ok else ""
        match = TITLE_RE.search(html)
        return PreviewResult(
            final_url=response.url or url,
            title=match.group(1).strip() if match else "",
        )

    def close(self) -> None:
        self.session.close()
