"""
Error types raised by Funnel Finder.

Only a malformed input URL aborts a run. Every other failure is absorbed
where it happens and shows up as a missing page, sitemap entry or link.
"""


class FunnelFinderError(Exception):
    """Base class for Funnel Finder errors."""


class InvalidUrl(FunnelFinderError, ValueError):
    """Raised when an input URL cannot be parsed into an absolute http(s) URL."""


class RenderingUnavailable(FunnelFinderError):
    """Raised when the headless browser is missing or failed to start."""
