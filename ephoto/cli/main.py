#!/usr/bin/env python3
"""ephoto CLI - text-effect generation from the command line.

Usage:
    ephoto generate <url> <text> [options]   - Run one generation, print the result JSON
    ephoto serve [--host] [--port]           - Start the HTTP service
"""

import argparse
import asyncio
import json
import sys

from ..core.config import load_config
from ..core.exceptions import ConfigurationException, InvalidRequest


def build_config(args):
    """Apply command-line overrides on top of the loaded configuration."""
    return load_config().replace(
        encoding="multipart" if args.multipart else None,
        redirect_policy="capture" if args.capture_redirects else None,
        submit_mode="api" if args.api else None,
        browser_fallback=True if args.browser_fallback else None,
        poll_attempts=args.attempts,
        poll_interval=args.interval,
    )


async def cmd_generate(args) -> int:
    """Run one generation and print its result document."""
    from ..providers import create_generator

    try:
        generator = create_generator(build_config(args))
        result = await generator.generate(args.url, args.text)
    except (InvalidRequest, ConfigurationException) as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 2

    print(json.dumps(result.to_dict(), indent=2))
    return 0 if result.success else 1


def cmd_serve(args) -> int:
    from ..routes import run

    run(host=args.host, port=args.port)
    return 0


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ephoto",
        description="ephoto CLI - Text-effect images from ephoto360-style form pages",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  ephoto generate https://en.ephoto360.com/naruto-shippuden-logo-style-text-effect-online-808.html Naruto
  ephoto generate <url> "My Text" --multipart --attempts 20
  ephoto generate <url> "My Text" --browser-fallback
  ephoto serve --port 8080
""",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    generate_parser = subparsers.add_parser("generate", help="Generate one text-effect image")
    generate_parser.add_argument("url", help="Effect page URL")
    generate_parser.add_argument("text", help="Text to render")
    generate_parser.add_argument("--multipart", action="store_true", help="Submit as multipart/form-data")
    generate_parser.add_argument(
        "--capture-redirects", action="store_true", help="Read redirects manually instead of following them"
    )
    generate_parser.add_argument("--api", action="store_true", help="Use the create-image/get-image endpoints")
    generate_parser.add_argument("--browser-fallback", action="store_true", help="Retry in Firefox on failure")
    generate_parser.add_argument("--attempts", type=int, help="Max status polls while pending")
    generate_parser.add_argument("--interval", type=float, help="Seconds between status polls")

    serve_parser = subparsers.add_parser("serve", help="Start the HTTP service")
    serve_parser.add_argument("--host", default="0.0.0.0", help="Bind address (default: 0.0.0.0)")
    serve_parser.add_argument("--port", type=int, help="Port (default: $PORT or 3000)")

    return parser


def main(argv=None):
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command == "generate":
        sys.exit(asyncio.run(cmd_generate(args)))
    elif args.command == "serve":
        sys.exit(cmd_serve(args))
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
