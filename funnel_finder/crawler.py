"""
Web Crawler Module

Breadth-first discovery of same-origin pages starting from the base URL.
Implements polite crawling with a fixed delay between fetches and respects
robots.txt disallow rules.
"""

import time
from collections import deque
from typing import Deque, List, Optional, Set, Tuple

from bs4 import BeautifulSoup

from .fetcher import Fetcher
from .heuristics import DEFAULT_HEURISTICS, Heuristics
from .models import RobotsRules
from .robots import RobotsPolicy
from .urls import normalize, resolve_link, same_origin, strip_tracking_params


class WebCrawler:
    """Web crawler for discovering candidate pages on a website."""

    def __init__(
        self,
        fetcher: Fetcher,
        heuristics: Heuristics = DEFAULT_HEURISTICS,
        delay: float = 0.15,
        max_queue: int = 5000,
        verbose: bool = False,
    ):
        """
        Initialize the web crawler.

        Args:
            fetcher: Fetcher used to retrieve pages for link extraction
            heuristics: Token lists used to exclude non-candidate pages
            delay: Delay before each page fetch in seconds
            max_queue: Pending-queue size at which crawling stops
            verbose: Enable verbose logging
        """
        self.fetcher = fetcher
        self.heuristics = heuristics
        self.delay = delay
        self.max_queue = max_queue
        self.verbose = verbose

    def _extract_links(self, html_content: str, page_url: str) -> List[str]:
        """
        Extract crawlable internal links from HTML content.

        Args:
            html_content: HTML content to parse
            page_url: URL of the page, used to resolve relative links

        Returns:
            Same-origin, tracking-stripped, non-excluded URLs in document order
        """
        links: List[str] = []
        found: Set[str] = set()

        if not html_content:
            return links

        soup = BeautifulSoup(html_content, "html.parser")

        for anchor in soup.find_all("a", href=True):
            absolute_url = resolve_link(page_url, anchor["href"])
            if not absolute_url or not same_origin(page_url, absolute_url):
                continue

            clean_url = strip_tracking_params(absolute_url)
            if clean_url in found or self.heuristics.looks_excluded(clean_url):
                continue

            found.add(clean_url)
            links.append(clean_url)

        return links

    def crawl_site(
        self,
        base_url: str,
        rules: Optional[RobotsRules] = None,
        max_pages: int = 350,
        max_depth: int = 4,
    ) -> List[str]:
        """
        Crawl a website starting from the base URL.

        Pages at max_depth are still returned but their links are not
        followed. Crawling stops when max_pages URLs have been returned, the
        queue runs dry, or the queue grows beyond max_queue.

        Args:
            base_url: Starting URL for crawling
            rules: Robots rules for the site (None allows everything on-origin)
            max_pages: Maximum number of URLs to return
            max_depth: Maximum link depth to expand

        Returns:
            Discovered URLs in breadth-first order, without duplicates
        """
        rules = rules or RobotsRules()
        start_url = strip_tracking_params(normalize(base_url))

        to_visit: Deque[Tuple[str, int]] = deque([(start_url, 0)])
        seen = {start_url}
        discovered: List[str] = []

        if self.verbose:
            print(f"🕷️  Starting crawl from: {start_url}")

        while to_visit and len(discovered) < max_pages and len(to_visit) <= self.max_queue:
            current_url, depth = to_visit.popleft()

            if not RobotsPolicy.is_allowed(start_url, rules, current_url):
                if self.verbose:
                    print(f"    🚫 Disallowed by robots.txt: {current_url}")
                continue

            discovered.append(current_url)

            if depth >= max_depth:
                continue

            # Add delay to be polite
            time.sleep(self.delay)

            try:
                html_content = self.fetcher.fetch_document(current_url)
                links = self._extract_links(html_content, current_url)
            except Exception as e:
                if self.verbose:
                    print(f"    ❌ Failed to expand {current_url}: {e}")
                continue

            new_links = 0
            for link in links:
                if link in seen:
                    continue
                seen.add(link)
                to_visit.append((link, depth + 1))
                new_links += 1

            if self.verbose:
                print(f"    🔗 Found {len(links)} internal links ({new_links} new) on {current_url}")

        if self.verbose:
            print(f"✅ Crawl completed: {len(discovered)} pages discovered")

        return discovered
