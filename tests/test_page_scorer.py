"""
Tests for the Page Scorer module.
"""

from funnel_finder.heuristics import Heuristics
from funnel_finder.page_scorer import PageScorer


LANDING_HTML = """
<html>
    <head>
        <title>Summer Offer</title>
        <meta name="robots" content="noindex, nofollow">
        <script async src="https://www.googletagmanager.com/gtag/js?id=G-1"></script>
        <script>gtag('config', 'G-1');</script>
    </head>
    <body>
        <h1>Save 50% today</h1>
        <a class="btn btn-primary" href="/checkout/thank-you?utm_source=ads">Get started</a>
        <a href="/">Home</a>
        <form action="/lead">
            <input type="email" name="email">
            <button type="submit">Submit</button>
        </form>
    </body>
</html>
"""


class TestPageScorer:
    """Test cases for PageScorer class."""

    def setup_method(self):
        """Set up test fixtures."""
        self.scorer = PageScorer()

    def test_landing_page_score(self):
        """All signals add up with their reason tags."""
        result = self.scorer.score_page("https://shop.example.com/offer", LANDING_HTML)

        # url 8 + tracking 2*6 + forms 12+3 + noindex 6 + cta 2*6 + low links 6
        assert result.score == 59
        assert result.reasons == (
            "url:offer",
            "tracking:2",
            "forms:1",
            "meta:noindex",
            "cta:2",
            "lowLinks:2",
        )
        assert result.title == "Summer Offer"
        assert result.cta_links == ("https://shop.example.com/checkout/thank-you",)
        assert result.all_out_links == (
            "https://shop.example.com/checkout/thank-you",
            "https://shop.example.com/",
        )

    def test_plain_content_page(self):
        """A link-heavy page without ad signals scores zero."""
        anchors = "".join(f'<a href="/p{i}">Page {i}</a>' for i in range(40))
        html = f"<html><head><title>Home</title></head><body>{anchors}</body></html>"

        result = self.scorer.score_page("https://example.com/", html)

        assert result.score == 0
        assert result.reasons == ()
        assert result.cta_links == ()
        assert len(result.all_out_links) == 40

    def test_cta_text_needs_button_styling(self):
        """Plain anchors with CTA text are outlinks, not CTA links."""
        html = '<a href="/signup">Sign up now</a><a role="button" href="/order-now">Next</a>'

        result = self.scorer.score_page("https://example.com/", html)

        assert result.cta_links == ("https://example.com/order-now",)
        assert "https://example.com/signup" in result.all_out_links
        assert "cta:1" in result.reasons

    def test_caps(self):
        """Forms and CTA contributions are capped."""
        forms = "<form></form>" * 5
        buttons = "<button>Buy now</button>" * 6
        result = self.scorer.score_page("https://example.com/", forms + buttons)

        # forms capped at 24, cta capped at 18, low links 6
        assert result.score == 24 + 18 + 6
        assert "forms:5" in result.reasons
        assert "cta:6" in result.reasons

    def test_tracking_cap(self):
        html = "fbq( gtag( googletagmanager.com connect.facebook.net snaptr("
        result = self.scorer.score_page("https://example.com/", html)

        assert "tracking:5" in result.reasons
        assert result.score == 20 + 6

    def test_distinct_url_hints(self):
        result = self.scorer.score_page("https://example.com/webinar/book-a-call", "")

        assert [r for r in result.reasons if r.startswith("url:")] == [
            "url:webinar",
            "url:book",
            "url:call",
        ]

    def test_injected_heuristics(self):
        scorer = PageScorer(Heuristics(funnel_url_hints=("promo",), cta_phrases=("grab it",)))
        html = '<a class="cta" href="/promo/next">Grab it</a>'

        result = scorer.score_page("https://example.com/promo", html)

        assert result.reasons == ("url:promo", "cta:1", "lowLinks:1")
        assert result.cta_links == ("https://example.com/promo/next",)

    def test_empty_document(self):
        result = self.scorer.score_page("https://example.com/", "")

        assert result.score == 6
        assert result.title == ""
        assert result.all_out_links == ()
