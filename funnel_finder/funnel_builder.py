"""
Funnel Builder Module

Builds a directed link graph between ad-like pages and searches it,
breadth-first, for a path from each landing candidate to a conversion page.
"""

import math
from collections import deque
from typing import Dict, List, Optional, Sequence

from .heuristics import DEFAULT_HEURISTICS, Heuristics
from .models import FunnelPath, PageFinding


class FunnelBuilder:
    """Reconstructs landing -> ... -> conversion paths between ad-like pages."""

    def __init__(
        self,
        heuristics: Heuristics = DEFAULT_HEURISTICS,
        threshold: int = 18,
        max_steps: int = 5,
    ):
        """
        Initialize the funnel builder.

        Args:
            heuristics: Token lists used to recognize conversion pages
            threshold: Minimum score of a landing candidate
            max_steps: Maximum number of links between landing and conversion
        """
        self.heuristics = heuristics
        self.threshold = threshold
        self.max_steps = max_steps

    @staticmethod
    def build_graph(pages: Sequence[PageFinding]) -> Dict[str, List[str]]:
        """
        Build the adjacency list between ad-like pages.

        Edges point only to other pages in the set. CTA targets come first so
        that breadth-first search discovers them before plain links.

        Args:
            pages: Ad-like page findings

        Returns:
            Mapping of final URL to ordered list of neighbouring final URLs
        """
        nodes = {page.final_url for page in pages}
        graph: Dict[str, List[str]] = {}

        for page in pages:
            ctas = [link for link in page.cta_links if link in nodes]
            cta_set = set(ctas)
            others = [
                link
                for link in page.all_out_links
                if link in nodes and link not in cta_set
            ]
            graph.setdefault(page.final_url, []).extend(ctas + others)

        return graph

    def _find_conversion(
        self, graph: Dict[str, List[str]], landing: str
    ) -> Optional[List[str]]:
        """Return the path from landing to the nearest conversion page, if any."""
        parents: Dict[str, Optional[str]] = {landing: None}
        queue = deque([(landing, 0)])

        while queue:
            current, depth = queue.popleft()

            if current != landing and self.heuristics.is_probably_conversion(current):
                path = []
                node: Optional[str] = current
                while node is not None:
                    path.append(node)
                    node = parents[node]
                path.reverse()
                return path

            if depth >= self.max_steps:
                continue

            for neighbour in graph.get(current, []):
                if neighbour in parents:
                    continue
                parents[neighbour] = current
                queue.append((neighbour, depth + 1))

        return None

    @staticmethod
    def confidence(landing_score: int, conversion_score: int, step_count: int) -> int:
        """Combine page scores and path length into a 0-100 confidence value."""
        length_bonus = 10 / step_count if step_count > 0 else 10
        # Halves round up
        return min(100, math.floor(2 * landing_score + conversion_score + length_bonus + 0.5))

    def build_funnels(self, pages: Sequence[PageFinding]) -> List[FunnelPath]:
        """
        Find funnels between ad-like pages.

        Pages below the threshold are ignored entirely. Each remaining page
        that is not itself a conversion page is tried as a landing page.

        Args:
            pages: Page findings (normally already filtered to ad-like pages)

        Returns:
            Funnels deduplicated by (landing, conversion), highest confidence first
        """
        ad_like = [page for page in pages if page.score >= self.threshold]
        by_url = {}
        for page in ad_like:
            by_url.setdefault(page.final_url, page)

        graph = self.build_graph(ad_like)
        funnels: List[FunnelPath] = []
        seen = set()

        for landing in ad_like:
            if self.heuristics.is_probably_conversion(landing.final_url):
                continue

            path = self._find_conversion(graph, landing.final_url)
            if not path:
                continue

            conversion = path[-1]
            if (landing.final_url, conversion) in seen:
                continue
            seen.add((landing.final_url, conversion))

            steps = tuple(path[1:-1])
            funnels.append(
                FunnelPath(
                    landing=landing.final_url,
                    steps=steps,
                    conversion=conversion,
                    confidence=self.confidence(
                        landing.score, by_url[conversion].score, len(steps)
                    ),
                )
            )

        funnels.sort(key=lambda funnel: funnel.confidence, reverse=True)
        return funnels
