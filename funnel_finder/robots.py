"""
Robots Policy Module

Fetches robots.txt, extracts declared sitemaps and the disallow prefixes of
the wildcard user agent, and answers allow/deny questions for candidate
URLs. Disallow rules are matched as plain path prefixes; wildcard and
Allow directives are not interpreted.
"""

import time
from typing import List
from urllib.parse import urljoin, urlsplit

import requests

from .fetcher import request_with_deadline
from .models import RobotsRules
from .urls import origin_of, same_origin


class RobotsPolicy:
    """Best-effort robots.txt support for the wildcard user agent."""

    def __init__(
        self, session: requests.Session, timeout: int = 15, verbose: bool = False
    ):
        """
        Initialize the robots policy.

        Args:
            session: Shared HTTP session carrying the outbound headers
            timeout: Request timeout in seconds
            verbose: Enable verbose logging
        """
        self.session = session
        self.timeout = timeout
        self.verbose = verbose

    def fetch(self, base_url: str) -> RobotsRules:
        """
        Fetch and parse robots.txt for the origin of base_url.

        A missing or unreachable robots.txt is not an error: empty rules are
        returned instead.

        Args:
            base_url: Normalized base URL of the site

        Returns:
            Parsed robots rules
        """
        robots_url = f"{origin_of(base_url)}/robots.txt"

        try:
            response = request_with_deadline(
                self.session.get,
                robots_url,
                time.monotonic() + self.timeout,
                allow_redirects=True,
            )
        except requests.RequestException as e:
            if self.verbose:
                print(f"  🤖 robots.txt unavailable ({e})")
            return RobotsRules()

        if not response.ok:
            if self.verbose:
                print(f"  🤖 robots.txt returned HTTP {response.status_code}")
            return RobotsRules()

        rules = self.parse(response.text, robots_url)

        if self.verbose:
            print(
                f"  🤖 robots.txt: {len(rules.disallow)} disallow rules, "
                f"{len(rules.sitemaps)} sitemaps"
            )

        return rules

    @staticmethod
    def parse(text: str, robots_url: str) -> RobotsRules:
        """
        Parse a robots.txt document.

        Consecutive User-agent lines form one group; Disallow lines are kept
        only when that group names "*". Sitemap lines are collected wherever
        they appear.

        Args:
            text: robots.txt body
            robots_url: URL the document was fetched from (for relative sitemaps)

        Returns:
            Parsed robots rules
        """
        sitemaps: List[str] = []
        disallow: List[str] = []

        group_agents: List[str] = []
        in_agent_lines = False

        for raw_line in text.splitlines():
            line = raw_line.split("#", 1)[0].strip()
            if not line or ":" not in line:
                continue

            key, _, value = line.partition(":")
            key = key.strip().lower()
            value = value.strip()

            if key == "user-agent":
                if not in_agent_lines:
                    group_agents = []
                group_agents.append(value)
                in_agent_lines = True
                continue

            in_agent_lines = False

            if key == "sitemap":
                sitemap_url = urljoin(robots_url, value) if value else ""
                if urlsplit(sitemap_url).scheme in ("http", "https") and sitemap_url not in sitemaps:
                    sitemaps.append(sitemap_url)
            elif key == "disallow" and "*" in group_agents and value:
                disallow.append(value)

        return RobotsRules(sitemaps=tuple(sitemaps), disallow=tuple(disallow))

    @staticmethod
    def is_allowed(base_url: str, rules: RobotsRules, candidate_url: str) -> bool:
        """
        Check whether a candidate URL may be fetched.

        Args:
            base_url: Normalized base URL of the site
            rules: Robots rules for the base origin
            candidate_url: URL to check

        Returns:
            False for off-origin URLs and URLs under a disallowed prefix
        """
        if not same_origin(base_url, candidate_url):
            return False

        path = urlsplit(candidate_url).path or "/"
        return not any(path.startswith(prefix) for prefix in rules.disallow if prefix)
