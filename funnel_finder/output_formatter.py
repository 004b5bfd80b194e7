"""
Output Formatter Module

Formats run results into the plain-text report and a structured JSON
document.
"""

from datetime import datetime, timezone
from typing import Dict, List, Sequence

from .models import FunnelPath, PageFinding, RunResult


class OutputFormatter:
    """Formats analysis results into a text report and structured output."""

    def format_report(
        self,
        base_url: str,
        ad_like_pages: Sequence[PageFinding],
        funnels: Sequence[FunnelPath],
    ) -> str:
        """
        Build the copy/paste text report.

        Args:
            base_url: Normalized base URL of the run
            ad_like_pages: Ad-like pages, best first
            funnels: Funnels, highest confidence first

        Returns:
            Newline-joined report with a funnels section and an ad-like pages section
        """
        lines: List[str] = ["# Funnel Finder Output", f"Base: {base_url}", ""]

        lines.append("## Funnels (landing -> ... -> conversion)")
        if not funnels:
            lines.append("(none found)")
        for funnel in funnels:
            lines.append(f"- [{funnel.confidence}] {' -> '.join(funnel.chain)}")

        lines.append("")
        lines.append("## Ad-like Pages (best candidates for ads)")
        if not ad_like_pages:
            lines.append("(none)")
        for page in ad_like_pages:
            lines.append(f"- ({page.score}) {page.final_url}")

        return "\n".join(lines)

    def _format_page(self, page: PageFinding) -> Dict:
        return {
            "url": page.url,
            "final_url": page.final_url,
            "status_code": page.status,
            "title": page.title,
            "score": page.score,
            "reasons": list(page.reasons),
            "cta_links": list(page.cta_links),
            "internal_link_count": len(page.all_out_links),
        }

    def _format_funnel(self, funnel: FunnelPath) -> Dict:
        return {
            "landing": funnel.landing,
            "steps": list(funnel.steps),
            "conversion": funnel.conversion,
            "confidence": funnel.confidence,
        }

    def format_output(self, result: RunResult, crawl_time: float = 0.0) -> Dict:
        """
        Format a run result into a JSON-serialisable dictionary.

        Args:
            result: Result of a full run
            crawl_time: Duration of the run in seconds

        Returns:
            Dictionary with summary, funnels, pages and the text report
        """
        return {
            "summary": {
                "input_url": result.input_url,
                "base_url": result.base_url,
                "run_timestamp": datetime.now(timezone.utc).isoformat(),
                "run_duration_seconds": round(crawl_time, 2),
                "robots": dict(result.robots),
                "discovered": dict(result.discovered),
                "kept": dict(result.kept),
                "sitemaps_fetched": list(result.fetched_sitemaps),
            },
            "funnels": [self._format_funnel(f) for f in result.funnels],
            "ad_like_pages": [self._format_page(p) for p in result.ad_like_pages],
            "excluded_samples": list(result.excluded_samples),
            "report": result.output_text,
        }
