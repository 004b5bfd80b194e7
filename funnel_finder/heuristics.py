"""
Heuristic token lists used to exclude, score and classify pages.

The lists live here as plain data so they can be reviewed in one place and
replaced in tests.
"""

import re
from dataclasses import dataclass
from typing import Tuple

from .urls import path_of


@dataclass(frozen=True)
class Heuristics:
    """Named token lists injected into the crawler, scorer and funnel builder."""

    # Path keywords for pages that are never ad landing pages
    exclude_keywords: Tuple[str, ...] = (
        "faq", "faqs", "blog", "posts", "article", "news",
        "privacy", "terms", "legal", "policy", "cookies",
        "contact", "about", "team", "careers", "jobs", "support", "help",
        "refund", "returns", "shipping", "track-order",
        "documentation", "docs", "knowledge-base",
    )
    asset_extensions: Tuple[str, ...] = (
        "png", "jpg", "jpeg", "gif", "webp", "svg", "ico",
        "css", "js", "map", "pdf", "zip", "mp4", "mov", "webm",
    )
    funnel_url_hints: Tuple[str, ...] = (
        "lp", "landing", "offer", "vsl", "webinar", "quiz",
        "apply", "book", "call", "schedule",
        "pricing", "checkout", "order", "pay", "cart",
        "thank", "success", "confirm", "complete",
    )
    cta_phrases: Tuple[str, ...] = (
        "book", "apply", "get started", "start", "sign up", "join",
        "buy", "purchase", "continue", "checkout", "pay", "claim", "reserve", "submit",
    )
    conversion_hints: Tuple[str, ...] = (
        "checkout", "order", "pay", "cart", "thank", "success", "confirm", "complete",
    )
    tracking_signatures: Tuple[str, ...] = (
        "googletagmanager.com", "gtm-", "gtag(", "google-analytics.com",
        "fbq(", "connect.facebook.net", "pixel", "tiktok", "snaptr(", "linkedin", "bing",
    )
    button_class_tokens: Tuple[str, ...] = ("btn", "button", "cta")

    def looks_excluded(self, url: str) -> bool:
        """
        Check whether a URL is an asset or a non-landing content page.

        A keyword matches when it follows a "/" or sits next to a hyphen,
        e.g. "/blog", "/summer-faq", "/terms-of-sale".

        Args:
            url: Absolute URL

        Returns:
            True if the URL should not be considered a candidate
        """
        path = path_of(url)

        filename = path.rsplit("/", 1)[-1]
        if "." in filename and filename.rpartition(".")[2] in self.asset_extensions:
            return True

        return any(
            f"/{k}" in path or f"-{k}" in path or f"{k}-" in path
            for k in self.exclude_keywords
        )

    def is_probably_conversion(self, url: str) -> bool:
        """Return True if the URL path contains a conversion token."""
        path = path_of(url)
        return any(hint in path for hint in self.conversion_hints)

    def matches_cta_phrase(self, text: str) -> bool:
        text = text.strip().lower()
        return bool(text) and any(phrase in text for phrase in self.cta_phrases)

    def is_buttonish_class(self, class_value: str) -> bool:
        tokens = re.split(r"\s+", class_value.lower())
        return any(t in token for token in tokens for t in self.button_class_tokens)


DEFAULT_HEURISTICS = Heuristics()
