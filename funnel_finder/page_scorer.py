"""
Page Scorer Module

Scores how much a page looks like an advertising landing page and extracts
its call-to-action links and internal outlinks. Scoring is additive: every
rule that fires adds points and a reason tag.
"""

from typing import Dict, List, Tuple

from bs4 import BeautifulSoup
from bs4.element import Tag

from .heuristics import DEFAULT_HEURISTICS, Heuristics
from .models import ScoredPage
from .urls import path_of, resolve_link, strip_tracking_params


URL_HINT_POINTS = 8
TRACKING_POINTS = 6
TRACKING_CAP = 20
FORM_BASE_POINTS = 12
FORM_POINTS = 3
FORM_CAP = 24
NOINDEX_POINTS = 6
CTA_POINTS = 6
CTA_CAP = 18
LOW_LINK_POINTS = 6
LOW_LINK_LIMIT = 35


class PageScorer:
    """Computes the ad-likeness score of a single page."""

    def __init__(self, heuristics: Heuristics = DEFAULT_HEURISTICS):
        self.heuristics = heuristics

    def _is_buttonish(self, element: Tag) -> bool:
        """Anchors count as buttons when styled or marked up as one."""
        role = (element.get("role") or "").strip().lower()
        classes = element.get("class") or []
        if isinstance(classes, str):
            classes = [classes]
        return role == "button" or self.heuristics.is_buttonish_class(" ".join(classes))

    @staticmethod
    def _visible_text(element: Tag) -> str:
        if element.name == "input":
            return element.get("value") or ""
        return element.get_text(" ", strip=True)

    def _score_url(self, url: str, reasons: List[str]) -> int:
        path = path_of(url)
        score = 0
        for hint in dict.fromkeys(self.heuristics.funnel_url_hints):
            if hint in path:
                score += URL_HINT_POINTS
                reasons.append(f"url:{hint}")
        return score

    def _score_tracking(self, html_content: str, reasons: List[str]) -> int:
        html_lower = html_content.lower()
        hits = sum(
            1
            for signature in dict.fromkeys(self.heuristics.tracking_signatures)
            if signature in html_lower
        )
        if not hits:
            return 0
        reasons.append(f"tracking:{hits}")
        return min(TRACKING_CAP, hits * TRACKING_POINTS)

    def _collect_ctas(self, soup: BeautifulSoup, url: str) -> Tuple[int, List[str]]:
        """
        Count call-to-action hits and collect CTA link targets.

        A button or submit input counts when its text matches a CTA phrase.
        An anchor counts when it is button-like and either its text matches
        a CTA phrase or its target looks like a conversion page.
        """
        hits = 0
        links: Dict[str, None] = {}

        for element in soup.select("a[href], button, input[type=submit]"):
            is_cta_text = self.heuristics.matches_cta_phrase(self._visible_text(element))

            if element.name != "a":
                if is_cta_text:
                    hits += 1
                continue

            target = resolve_link(url, element.get("href"))
            if not target or not self._is_buttonish(element):
                continue
            if is_cta_text or self.heuristics.is_probably_conversion(target):
                hits += 1
                links.setdefault(strip_tracking_params(target))

        return hits, list(links)

    def score_page(self, url: str, html_content: str) -> ScoredPage:
        """
        Score a fetched page.

        Args:
            url: Final (post-redirect) URL of the page
            html_content: HTML text of the page

        Returns:
            Score, reason tags, title, CTA links and all resolvable outlinks
        """
        reasons: List[str] = []
        score = self._score_url(url, reasons)

        html_content = html_content or ""
        soup = BeautifulSoup(html_content, "html.parser")

        title_tag = soup.find("title")
        title = title_tag.get_text().strip() if title_tag else ""

        score += self._score_tracking(html_content, reasons)

        # Lead-gen forms
        form_count = len(soup.find_all("form"))
        if form_count:
            score += min(FORM_CAP, FORM_BASE_POINTS + FORM_POINTS * form_count)
            reasons.append(f"forms:{form_count}")

        robots_meta = soup.find(
            "meta", attrs={"name": lambda value: value and value.lower() == "robots"}
        )
        if robots_meta and "noindex" in (robots_meta.get("content") or "").lower():
            score += NOINDEX_POINTS
            reasons.append("meta:noindex")

        cta_hits, cta_links = self._collect_ctas(soup, url)
        if cta_hits:
            score += min(CTA_CAP, cta_hits * CTA_POINTS)
            reasons.append(f"cta:{cta_hits}")

        anchors = soup.find_all("a", href=True)
        if len(anchors) <= LOW_LINK_LIMIT:
            score += LOW_LINK_POINTS
            reasons.append(f"lowLinks:{len(anchors)}")

        targets = (resolve_link(url, anchor["href"]) for anchor in anchors)
        all_out_links = dict.fromkeys(
            strip_tracking_params(target) for target in targets if target
        )

        return ScoredPage(
            score=score,
            reasons=tuple(reasons),
            title=title,
            cta_links=tuple(cta_links),
            all_out_links=tuple(all_out_links),
        )
