"""
Headless browser rendering with Playwright.

One BrowserRenderer is shared by a whole run. The browser is launched on
first use; if that fails the renderer marks itself unavailable and never
tries again. Playwright's sync API is bound to the thread that started it,
so every browser call runs on a single worker thread owned by the renderer,
which also means pages are rendered one at a time.
"""

import base64
from concurrent.futures import ThreadPoolExecutor
from typing import Dict

from .errors import RenderingUnavailable
from .models import PreviewResult


class BrowserRenderer:
    """Lazily launched, process-lifetime headless Chromium."""

    def __init__(self, timeout: float = 20.0, verbose: bool = False):
        """
        Initialize the renderer without launching a browser.

        Args:
            timeout: Navigation deadline in seconds
            verbose: Enable verbose logging
        """
        self.timeout = timeout
        self.verbose = verbose
        self.unavailable = False
        self._playwright = None
        self._browser = None
        self._closed = False
        self._executor = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="renderer"
        )

    def _ensure_browser(self):
        # Runs on the renderer thread
        if self._browser is not None:
            return self._browser
        if self.unavailable:
            raise RenderingUnavailable("Browser launch failed earlier in this run")

        try:
            from playwright.sync_api import sync_playwright

            self._playwright = sync_playwright().start()
            self._browser = self._playwright.chromium.launch(headless=True)
        except Exception as e:
            self.unavailable = True
            if self._playwright is not None:
                self._playwright.stop()
                self._playwright = None
            if self.verbose:
                print(f"  🖥️  Headless browser unavailable: {e}")
            raise RenderingUnavailable(str(e)) from e

        if self.verbose:
            print("  🖥️  Headless browser launched")
        return self._browser

    def _with_page(self, url: str, headers: Dict[str, str], action):
        browser = self._ensure_browser()
        page = browser.new_page()
        try:
            page.set_extra_http_headers(headers)
            page.goto(
                url,
                wait_until="domcontentloaded",
                timeout=int(self.timeout * 1000),
            )
            return action(page)
        finally:
            page.close()

    def _submit(self, url: str, headers: Dict[str, str], action):
        return self._executor.submit(self._with_page, url, headers, action).result()

    def render(self, url: str, headers: Dict[str, str]) -> str:
        """
        Navigate to a URL and return the rendered markup.

        Args:
            url: Page URL
            headers: Extra HTTP headers to send

        Returns:
            Serialized DOM after DOMContentLoaded

        Raises:
            RenderingUnavailable: If the browser cannot be launched
        """
        return self._submit(url, headers, lambda page: page.content())

    def snapshot(self, url: str, headers: Dict[str, str]) -> PreviewResult:
        """
        Navigate to a URL and capture its final URL, title and viewport screenshot.

        Raises:
            RenderingUnavailable: If the browser cannot be launched
        """

        def capture(page) -> PreviewResult:
            screenshot = page.screenshot(full_page=False)
            return PreviewResult(
                final_url=page.url,
                title=page.title(),
                screenshot_base64=base64.b64encode(screenshot).decode("ascii"),
            )

        return self._submit(url, headers, capture)

    def _shutdown(self) -> None:
        if self._browser is not None:
            self._browser.close()
            self._browser = None
        if self._playwright is not None:
            self._playwright.stop()
            self._playwright = None

    def close(self) -> None:
        """Close the browser and stop the renderer thread."""
        if self._closed:
            return
        self._closed = True
        try:
            self._executor.submit(self._shutdown).result()
        finally:
            self._executor.shutdown(wait=True)

    def __enter__(self) -> "BrowserRenderer":
        return self

    def __exit__(self, *args) -> None:
        self.close()

