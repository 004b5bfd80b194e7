"""
Orchestrator Module

Runs the full pipeline: robots.txt, sitemap and crawl discovery, candidate
filtering, concurrent status check and scoring, ad-like classification,
funnel reconstruction and report formatting.
"""

import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from .errors import InvalidUrl, RenderingUnavailable
from .fetcher import Fetcher
from .crawler import WebCrawler
from .funnel_builder import FunnelBuilder
from .heuristics import DEFAULT_HEURISTICS, Heuristics
from .models import PageFinding, PreviewResult, RobotsRules, RunResult
from .output_formatter import OutputFormatter
from .page_scorer import PageScorer
from .renderer import BrowserRenderer
from .robots import RobotsPolicy
from .sitemap import SitemapDiscovery
from .urls import normalize, same_origin, strip_tracking_params


class DocumentCache:
    """
    Thread-safe cache of fetched documents keyed by final URL.

    Concurrent requests for the same URL share a single fetch: the first
    caller loads the document, later callers wait for its result.
    """

    def __init__(self, loader: Callable[[str], str]):
        self._loader = loader
        self._lock = threading.Lock()
        self._entries: Dict[str, Future] = {}

    def get(self, url: str) -> str:
        with self._lock:
            future = self._entries.get(url)
            is_owner = future is None
            if is_owner:
                future = Future()
                self._entries[url] = future

        if is_owner:
            try:
                future.set_result(self._loader(url))
            except Exception as e:
                future.set_exception(e)

        return future.result()

    def __len__(self) -> int:
        return len(self._entries)


class FunnelFinder:
    """Discovers ad-like pages on a site and the funnels between them."""

    def __init__(
        self,
        max_pages: int = 350,
        max_depth: int = 4,
        delay: float = 0.15,
        timeout: int = 15,
        render_timeout: float = 20.0,
        concurrency: int = 4,
        threshold: int = 18,
        max_ad_like: int = 250,
        max_steps: int = 5,
        max_sitemaps: int = 20,
        max_excluded_samples: int = 30,
        heuristics: Heuristics = DEFAULT_HEURISTICS,
        use_browser: bool = True,
        renderer: Optional[BrowserRenderer] = None,
        verbose: bool = False,
    ):
        """
        Initialize the pipeline and its components.

        Args:
            max_pages: Crawl page budget
            max_depth: Crawl depth budget
            delay: Politeness delay before each request in seconds
            timeout: HTTP request timeout in seconds
            render_timeout: Headless browser navigation timeout in seconds
            concurrency: Number of pages checked and scored in parallel
            threshold: Minimum score for a page to count as ad-like
            max_ad_like: Maximum number of ad-like pages kept
            max_steps: Maximum funnel length in links
            max_sitemaps: Maximum number of sitemap documents fetched
            max_excluded_samples: Number of excluded URLs kept for diagnostics
            heuristics: Token lists shared by all components
            use_browser: Fall back to a headless browser for non-HTML responses
            renderer: Pre-built renderer to use instead of creating one
            verbose: Enable verbose logging
        """
        self.max_pages = max_pages
        self.max_depth = max_depth
        self.delay = delay
        self.concurrency = concurrency
        self.threshold = threshold
        self.max_ad_like = max_ad_like
        self.max_excluded_samples = max_excluded_samples
        self.heuristics = heuristics
        self.verbose = verbose

        self._owns_renderer = renderer is None and use_browser
        if self._owns_renderer:
            renderer = BrowserRenderer(timeout=render_timeout, verbose=verbose)
        self.renderer = renderer if use_browser else None

        self.fetcher = Fetcher(timeout=timeout, renderer=self.renderer, verbose=verbose)
        self.robots = RobotsPolicy(self.fetcher.session, timeout=timeout, verbose=verbose)
        self.sitemaps = SitemapDiscovery(
            self.fetcher.session,
            timeout=timeout,
            max_sitemaps=max_sitemaps,
            verbose=verbose,
        )
        self.crawler = WebCrawler(
            self.fetcher, heuristics=heuristics, delay=delay, verbose=verbose
        )
        self.scorer = PageScorer(heuristics)
        self.funnel_builder = FunnelBuilder(
            heuristics, threshold=threshold, max_steps=max_steps
        )
        self.formatter = OutputFormatter()

    def _select_candidates(
        self, base_url: str, urls: Iterable[str]
    ) -> Tuple[List[str], List[str], List[str]]:
        """
        Reduce discovered URLs to the candidates worth checking.

        Returns:
            Tuple of (unique same-origin URLs, candidates, excluded samples)
        """
        unique: List[str] = []
        seen = set()
        for url in urls:
            try:
                clean_url = strip_tracking_params(url)
            except InvalidUrl:
                continue
            if clean_url in seen or not same_origin(base_url, clean_url):
                continue
            seen.add(clean_url)
            unique.append(clean_url)

        candidates: List[str] = []
        excluded: List[str] = []
        for url in unique:
            if self.heuristics.looks_excluded(url):
                if len(excluded) < self.max_excluded_samples:
                    excluded.append(url)
                continue
            candidates.append(url)

        return unique, candidates, excluded

    def _keep_link(self, base_url: str, link: str) -> bool:
        return same_origin(base_url, link) and not self.heuristics.looks_excluded(link)

    def _check_page(
        self, base_url: str, rules: RobotsRules, url: str, cache: DocumentCache
    ) -> Optional[PageFinding]:
        """Probe, fetch and score one candidate. Returns None when it is dropped."""
        if not RobotsPolicy.is_allowed(base_url, rules, url):
            return None

        # Add delay to be polite
        time.sleep(self.delay)

        probe = self.fetcher.probe_status(url)
        if not probe.is_success:
            if self.verbose:
                print(f"    ⚠️  Dropped (HTTP {probe.status}): {url}")
            return None
        if not probe.is_html:
            if self.verbose:
                print(f"    ⚠️  Dropped non-HTML content ({probe.content_type}): {url}")
            return None

        try:
            final_url = strip_tracking_params(probe.final_url)
        except InvalidUrl:
            return None

        scored = self.scorer.score_page(final_url, cache.get(final_url))

        return PageFinding(
            url=url,
            final_url=final_url,
            status=probe.status,
            score=scored.score,
            reasons=scored.reasons,
            title=scored.title,
            cta_links=tuple(
                link for link in scored.cta_links if self._keep_link(base_url, link)
            ),
            all_out_links=tuple(
                link for link in scored.all_out_links if self._keep_link(base_url, link)
            ),
        )

    def _check_pages(
        self, base_url: str, rules: RobotsRules, candidates: List[str]
    ) -> List[PageFinding]:
        cache = DocumentCache(self.fetcher.fetch_document)
        findings: List[PageFinding] = []

        with ThreadPoolExecutor(max_workers=self.concurrency) as pool:
            future_to_url = {
                pool.submit(self._check_page, base_url, rules, url, cache): url
                for url in candidates
            }
            for future in as_completed(future_to_url):
                url = future_to_url[future]
                try:
                    finding = future.result()
                except Exception as e:
                    if self.verbose:
                        print(f"    ❌ Check failed for {url}: {e}")
                    continue
                if finding is not None:
                    findings.append(finding)

        return findings

    @staticmethod
    def _rank(findings: List[PageFinding]) -> List[PageFinding]:
        """Sort by score (best first) and keep one finding per final URL."""
        ranked: List[PageFinding] = []
        seen = set()
        for finding in sorted(findings, key=lambda p: (-p.score, p.final_url)):
            if finding.final_url in seen:
                continue
            seen.add(finding.final_url)
            ranked.append(finding)
        return ranked

    def run(self, input_url: str) -> RunResult:
        """
        Run the full analysis for a website.

        Args:
            input_url: Website URL, with or without scheme

        Returns:
            Run result with counts, ad-like pages, funnels and the text report

        Raises:
            InvalidUrl: If input_url cannot be parsed
        """
        base_url = strip_tracking_params(normalize(input_url))

        if self.verbose:
            print(f"🚀 Starting analysis of: {base_url}")

        rules = self.robots.fetch(base_url)
        sitemap_result = self.sitemaps.discover(base_url, rules.sitemaps)
        crawled = self.crawler.crawl_site(
            base_url, rules, max_pages=self.max_pages, max_depth=self.max_depth
        )

        unique, candidates, excluded = self._select_candidates(
            base_url, [*sitemap_result.urls, *crawled]
        )

        if self.verbose:
            print(
                f"🔍 Checking {len(candidates)} candidates "
                f"({len(unique) - len(candidates)} excluded)"
            )

        valid = self._rank(self._check_pages(base_url, rules, candidates))
        ad_like = [p for p in valid if p.score >= self.threshold][: self.max_ad_like]
        funnels = self.funnel_builder.build_funnels(ad_like)

        if self.verbose:
            print(f"🎯 {len(ad_like)} ad-like pages, {len(funnels)} funnels")

        return RunResult(
            input_url=input_url,
            base_url=base_url,
            robots={
                "disallow_count": len(rules.disallow),
                "sitemap_count": len(rules.sitemaps),
            },
            discovered={
                "from_sitemaps": len(sitemap_result.urls),
                "from_crawl": len(crawled),
                "total_unique": len(unique),
            },
            kept={
                "checked": len(candidates),
                "valid": len(valid),
                "ad_like": len(ad_like),
                "funnels": len(funnels),
            },
            ad_like_pages=ad_like,
            funnels=funnels,
            excluded_samples=excluded,
            fetched_sitemaps=list(sitemap_result.fetched_sitemaps),
            output_text=self.formatter.format_report(base_url, ad_like, funnels),
        )

    def preview(self, input_url: str) -> PreviewResult:
        """
        Preview a single page: final URL, title and, with a browser, a screenshot.

        Raises:
            InvalidUrl: If input_url cannot be parsed
        """
        url = normalize(input_url)

        if self.renderer is not None and not self.renderer.unavailable:
            try:
                return self.renderer.snapshot(url, self.fetcher.headers)
            except RenderingUnavailable:
                pass

        return self.fetcher.fetch_preview(url)

    def close(self) -> None:
        """Release the HTTP session and, if created here, the headless browser."""
        self.fetcher.close()
        if self._owns_renderer and self.renderer is not None:
            self.renderer.close()

    def __enter__(self) -> "FunnelFinder":
        return self

    def __exit__(self, *args) -> None:
        self.close()
