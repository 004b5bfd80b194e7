"""
Sitemap Discovery Module

Walks sitemap.xml and any sitemap indexes it references, breadth-first,
collecting page URLs. The number of fetched sitemap documents is capped so
a hostile or self-referencing index cannot keep the run busy.
"""

import time
from collections import deque
from typing import List, Optional, Sequence, Tuple
from xml.etree import ElementTree as ET

import requests

from .fetcher import request_with_deadline
from .models import SitemapResult
from .urls import origin_of


class SitemapDiscovery:
    """Discovers page URLs from sitemap documents."""

    def __init__(
        self,
        session: requests.Session,
        timeout: int = 15,
        max_sitemaps: int = 20,
        verbose: bool = False,
    ):
        """
        Initialize sitemap discovery.

        Args:
            session: Shared HTTP session carrying the outbound headers
            timeout: Request timeout in seconds
            max_sitemaps: Maximum number of sitemap documents to fetch
            verbose: Enable verbose logging
        """
        self.session = session
        self.timeout = timeout
        self.max_sitemaps = max_sitemaps
        self.verbose = verbose

    @staticmethod
    def _local_name(tag: str) -> str:
        return tag.rsplit("}", 1)[-1].lower()

    @classmethod
    def parse(cls, xml_text: str) -> Tuple[List[str], List[str]]:
        """
        Parse a sitemap or sitemap index.

        Namespaces are ignored so that sitemaps with missing or unusual
        namespace declarations are still understood.

        Args:
            xml_text: XML document body

        Returns:
            Tuple of (page URLs, child sitemap URLs); both empty for malformed XML
        """
        try:
            root = ET.fromstring(xml_text.lstrip("\ufeff").strip())
        except ET.ParseError:
            return [], []

        kind = cls._local_name(root.tag)
        if kind == "urlset":
            entry_name = "url"
        elif kind == "sitemapindex":
            entry_name = "sitemap"
        else:
            return [], []

        locations = []
        for entry in root:
            if cls._local_name(entry.tag) != entry_name:
                continue
            for child in entry:
                if cls._local_name(child.tag) == "loc" and child.text and child.text.strip():
                    locations.append(child.text.strip())
                    break

        if kind == "urlset":
            return locations, []
        return [], locations

    def _fetch_text(self, url: str) -> Optional[str]:
        try:
            response = request_with_deadline(
                self.session.get, url, time.monotonic() + self.timeout, allow_redirects=True
            )
        except requests.RequestException as e:
            if self.verbose:
                print(f"    ❌ Failed to fetch sitemap {url}: {e}")
            return None

        if not response.ok:
            if self.verbose:
                print(f"    ⚠️  Sitemap HTTP {response.status_code}: {url}")
            return None

        return response.text

    def discover(
        self, base_url: str, extra_sitemap_urls: Sequence[str] = ()
    ) -> SitemapResult:
        """
        Discover page URLs from the site's sitemaps.

        Args:
            base_url: Normalized base URL of the site
            extra_sitemap_urls: Additional sitemap URLs, usually from robots.txt

        Returns:
            Deduplicated page URLs and the sitemap URLs that were fetched
        """
        queue = deque()
        queued = set()
        for sitemap_url in [f"{origin_of(base_url)}/sitemap.xml", *extra_sitemap_urls]:
            if sitemap_url not in queued:
                queued.add(sitemap_url)
                queue.append(sitemap_url)

        fetched: List[str] = []
        urls: List[str] = []
        seen_urls = set()

        while queue and len(fetched) < self.max_sitemaps:
            sitemap_url = queue.popleft()

            if self.verbose:
                print(f"  🗺️  Fetching sitemap: {sitemap_url}")

            text = self._fetch_text(sitemap_url)
            if text is None:
                continue

            fetched.append(sitemap_url)
            page_urls, child_sitemaps = self.parse(text)

            for url in page_urls:
                if url not in seen_urls:
                    seen_urls.add(url)
                    urls.append(url)

            for child in child_sitemaps:
                if child not in queued:
                    queued.add(child)
                    queue.append(child)

        if self.verbose:
            print(f"  🗺️  {len(urls)} URLs from {len(fetched)} sitemaps")

        return SitemapResult(urls=tuple(urls), fetched_sitemaps=tuple(fetched))
