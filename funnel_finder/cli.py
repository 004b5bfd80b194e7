"""
CLI Module - Command Line Interface for Funnel Finder

Handles command-line argument parsing and runs either the full funnel
analysis or a single-page preview.
"""

import argparse
import json
import sys
import time
from pathlib import Path

from .errors import InvalidUrl
from .orchestrator import FunnelFinder
from .output_formatter import OutputFormatter


def parse_arguments() -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Find ad landing pages and conversion funnels on a website",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py example.com
  python main.py https://example.com --output results.json --max-pages 100
  python main.py https://example.com --delay 0.5 --concurrency 2 --verbose
  python main.py https://example.com --no-browser
  python main.py https://example.com/offer --preview
        """,
    )

    parser.add_argument("url", help="Website URL to analyze (scheme optional)")

    parser.add_argument(
        "--output",
        "-o",
        help="Output file path (default: data/funnel_analysis.json)",
        default="data/funnel_analysis.json",
    )

    parser.add_argument(
        "--max-pages",
        type=int,
        default=350,
        help="Maximum number of pages to discover by crawling (default: 350)",
    )

    parser.add_argument(
        "--max-depth",
        type=int,
        default=4,
        help="Maximum link depth to crawl (default: 4)",
    )

    parser.add_argument(
        "--delay",
        type=float,
        default=0.15,
        help="Delay before each request in seconds (default: 0.15)",
    )

    parser.add_argument(
        "--timeout",
        type=int,
        default=15,
        help="Request timeout in seconds (default: 15)",
    )

    parser.add_argument(
        "--concurrency",
        type=int,
        default=4,
        help="Number of pages checked in parallel (default: 4)",
    )

    parser.add_argument(
        "--threshold",
        type=int,
        default=18,
        help="Minimum score for a page to count as ad-like (default: 18)",
    )

    parser.add_argument(
        "--max-steps",
        type=int,
        default=5,
        help="Maximum number of links between landing and conversion (default: 5)",
    )

    parser.add_argument(
        "--no-browser",
        action="store_true",
        help="Never fall back to a headless browser",
    )

    parser.add_argument(
        "--preview",
        action="store_true",
        help="Only preview the URL (final URL, title, screenshot) and exit",
    )

    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable verbose logging"
    )

    return parser.parse_args()


def _save_json(path: str, data: dict) -> None:
    output_path = Path(path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", encoding="utf-8") as f:
        f.write(json.dumps(data, indent=2, ensure_ascii=False))


def main() -> None:
    """Main entry point for the CLI application."""
    args = parse_arguments()

    if args.verbose:
        print(f"🚀 Starting analysis of: {args.url}")
        print(f"📊 Max pages: {args.max_pages}, max depth: {args.max_depth}")
        print(f"⏱️  Request delay: {args.delay}s, concurrency: {args.concurrency}")
        print(f"💾 Output file: {args.output}")
        print("-" * 50)

    start_time = time.time()

    finder = FunnelFinder(
        max_pages=args.max_pages,
        max_depth=args.max_depth,
        delay=args.delay,
        timeout=args.timeout,
        concurrency=args.concurrency,
        threshold=args.threshold,
        max_steps=args.max_steps,
        use_browser=not args.no_browser,
        verbose=args.verbose,
    )

    try:
        if args.preview:
            preview = finder.preview(args.url)
            _save_json(
                args.output,
                {
                    "final_url": preview.final_url,
                    "title": preview.title,
                    "screenshot_base64": preview.screenshot_base64,
                },
            )
            print(f"{preview.final_url}\n{preview.title}")
            print(
                "Screenshot captured."
                if preview.screenshot_base64
                else "No screenshot (headless browser unavailable)."
            )
            return

        result = finder.run(args.url)
        crawl_time = time.time() - start_time

        _save_json(args.output, OutputFormatter().format_output(result, crawl_time))

        print(result.output_text)
        print()
        if args.verbose:
            print(f"🎉 Analysis completed in {crawl_time:.2f} seconds")
            print(
                f"📊 {result.discovered.get('total_unique', 0)} URLs discovered, "
                f"{result.kept.get('valid', 0)} valid, "
                f"{result.kept.get('ad_like', 0)} ad-like, "
                f"{result.kept.get('funnels', 0)} funnels"
            )
        print(f"Results saved to: {args.output}")

    except InvalidUrl as e:
        print(f"❌ Invalid URL: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        print("\n❌ Analysis interrupted by user")
        sys.exit(1)
    except Exception as e:
        print(f"❌ Error during analysis: {str(e)}")
        if args.verbose:
            import traceback

            traceback.print_exc()
        sys.exit(1)
    finally:
        finder.close()


if __name__ == "__main__":
    main()
