"""Data models passed between the stages of a Funnel Finder run."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple


@dataclass(frozen=True)
class RobotsRules:
    """Sitemaps and wildcard-agent disallow prefixes from one robots.txt."""

    sitemaps: Tuple[str, ...] = ()
    disallow: Tuple[str, ...] = ()


@dataclass(frozen=True)
class SitemapResult:
    """Page URLs found in sitemaps and the sitemap documents actually fetched."""

    urls: Tuple[str, ...] = ()
    fetched_sitemaps: Tuple[str, ...] = ()


@dataclass(frozen=True)
class StatusProbe:
    """Outcome of a HEAD/GET status check. ``status`` is 0 on network failure."""

    status: int
    final_url: str
    content_type: Optional[str] = None

    @property
    def is_success(self) -> bool:
        return 200 <= self.status < 300

    @property
    def is_html(self) -> bool:
        # A missing content type is given the benefit of the doubt
        return self.content_type is None or "text/html" in self.content_type.lower()


@dataclass(frozen=True)
class ScoredPage:
    """Heuristic score and extracted links for one HTML document."""

    score: int
    reasons: Tuple[str, ...]
    title: str
    cta_links: Tuple[str, ...]
    all_out_links: Tuple[str, ...]


@dataclass(frozen=True)
class PageFinding:
    """A candidate page that was fetched and scored successfully."""

    url: str
    final_url: str
    status: int
    score: int
    reasons: Tuple[str, ...] = ()
    title: str = ""
    cta_links: Tuple[str, ...] = ()
    all_out_links: Tuple[str, ...] = ()


@dataclass(frozen=True)
class FunnelPath:
    """A landing page, the intermediate steps and the conversion page it reaches."""

    landing: str
    steps: Tuple[str, ...]
    conversion: str
    confidence: int

    @property
    def chain(self) -> List[str]:
        return [self.landing, *self.steps, self.conversion]


@dataclass
class RunResult:
    """Everything produced by one full run."""

    input_url: str
    base_url: str
    robots: Dict[str, int] = field(default_factory=dict)
    discovered: Dict[str, int] = field(default_factory=dict)
    kept: Dict[str, int] = field(default_factory=dict)
    ad_like_pages: List[PageFinding] = field(default_factory=list)
    funnels: List[FunnelPath] = field(default_factory=list)
    excluded_samples: List[str] = field(default_factory=list)
    fetched_sitemaps: List[str] = field(default_factory=list)
    output_text: str = ""


@dataclass(frozen=True)
class PreviewResult:
    """Final URL, title and optional viewport screenshot of a single page."""

    final_url: str
    title: str
    screenshot_base64: Optional[str] = None
