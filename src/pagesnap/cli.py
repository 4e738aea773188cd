# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""PageSnap CLI: load one URL in Chromium and print its semantic HTML.

Usage:
    pagesnap URL [--viewport-only] [--format html|text|json]
    pagesnap URL --selector CSS
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys

from . import ElementContent, PageContent

_EPILOG = """\
examples:
  %(prog)s https://example.com                        Semantic HTML of the whole page
  %(prog)s https://example.com --viewport-only        Only what is on screen
  %(prog)s https://example.com --format json          {html, meta, isPdf}
  %(prog)s https://example.com --selector main        Inner HTML of <main>
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pagesnap",
        description="Reconstruct semantic HTML from a page's accessibility tree",
        epilog=_EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("url", metavar="URL", help="Page to load")
    parser.add_argument("--viewport-only", action="store_true", help="Drop content outside the visible viewport")
    parser.add_argument(
        "--format",
        type=str,
        choices=["html", "text", "json"],
        default="html",
        help="Output format (default: html)",
    )
    parser.add_argument("--selector", type=str, metavar="CSS", help="Print the content of one element instead")
    parser.add_argument("--headed", action="store_true", help="Show the browser window")
    parser.add_argument("--timeout", type=int, default=30000, metavar="MS", help="Navigation timeout (default: 30000)")
    parser.add_argument("--json-logs", action="store_true", help="Log JSON lines to stderr")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def render_page(content: PageContent, fmt: str, text: str = "") -> str:
    if fmt == "json":
        return json.dumps(content.to_dict(), ensure_ascii=False, indent=2)
    if fmt == "text":
        return text
    return content.html


def render_element(content: ElementContent, fmt: str) -> str:
    if fmt == "json":
        return json.dumps(content.to_dict(), ensure_ascii=False, indent=2)
    if fmt == "text":
        return content.text
    return content.html


async def _extract(args: argparse.Namespace) -> str:
    from ._progress import print_step, status_spinner
    from .browser_session import BrowserConfig, create_session
    from .config import ExtractionSettings
    from .extractor import ContentExtractor, html_to_text

    settings = ExtractionSettings.from_env()
    config = BrowserConfig(headless=not args.headed, timeout_ms=args.timeout)

    with status_spinner(f"Extracting {args.url}..."):
        async with create_session(config) as session:
            await session.navigate(args.url)
            extractor = await ContentExtractor.for_page(session.page, settings)
            try:
                if args.selector:
                    return render_element(await extractor.get_element_content(args.selector), args.format)
                content = await extractor.get_page_snapshot(viewport_only=args.viewport_only)
            finally:
                await extractor.channel.detach()

    print_step(", ".join(f"{name}: {ms:.0f}ms" for name, ms in extractor.last_timings.items()))
    return render_page(content, args.format, html_to_text(content.html) if args.format == "text" else "")


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    from .logging_config import configure

    configure(json_output=args.json_logs, level="DEBUG" if args.verbose else "INFO")

    try:
        output = asyncio.run(_extract(args))
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(130)
    except SystemExit:
        raise
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        if args.verbose:
            import traceback

            traceback.print_exc(file=sys.stderr)
        sys.exit(1)

    print(output)


if __name__ == "__main__":
    main()
