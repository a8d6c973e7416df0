from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
import sys
from typing import Sequence

from .dom import Context
from .errors import LocatorSynthError, TargetNotFound
from .settings import CONFIG_DIR, SynthesisSettings, load_settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_NOT_FOUND = 2


def configure_logging(verbose: bool = False) -> logging.Logger:
    logger = logging.getLogger("locatorsynth")
    if logger.handlers:
        return logger

    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    logger.propagate = False
    try:
        log_dir = CONFIG_DIR / "logs"
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_dir / "locatorsynth.log", encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(file_handler)
    except OSError:
        # Fallback to stderr logging if the log folder is not writable.
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(stream_handler)
    return logger


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="locatorsynth", description="Synthesize unique, stable element locators.")
    parser.add_argument("--settings", type=Path, default=None, help="Path to a settings JSON file.")
    parser.add_argument("--verbose", action="store_true", help="Log synthesis passes at debug level.")
    commands = parser.add_subparsers(dest="command", required=True)

    inspect = commands.add_parser("inspect", help="Synthesize locators for an element of a saved HTML file.")
    inspect.add_argument("file", type=Path)
    inspect.add_argument("--target", required=True, help="Expression selecting the target element.")
    inspect.add_argument("--target-kind", choices=("css", "xpath"), default="css")
    inspect.add_argument("--sandbox", default=None, help="CSS expression of a sub-tree used as evaluation root.")
    inspect.add_argument("--fragment", action="store_true", help="Treat the file as a pasted HTML fragment.")

    live = commands.add_parser("live", help="Open a page in Chromium and synthesize locators for one element.")
    live.add_argument("url")
    live.add_argument("--target", required=True, help="CSS selector of the target element on the live page.")
    live.add_argument("--headed", action="store_true")
    return parser


def run_inspect(args: argparse.Namespace, settings: SynthesisSettings) -> dict:
    from .session import InspectionSession
    from .validation import find_matches

    markup = args.file.read_text(encoding="utf-8")
    session = InspectionSession.from_markup(markup, settings, sandbox=args.fragment)
    if args.sandbox:
        roots = find_matches(args.sandbox, session.context, "css")
        if not roots:
            raise TargetNotFound(f"Sandbox expression {args.sandbox!r} matched nothing")
        session.context = Context.for_sandbox(roots[0])
    session.select(args.target, args.target_kind)
    return session.synthesize().to_payload()


def run_live(args: argparse.Namespace, settings: SynthesisSettings) -> dict:
    from playwright.sync_api import sync_playwright

    from .page_capture import inspect_element

    with sync_playwright() as playwright:
        browser = playwright.chromium.launch(headless=not args.headed)
        try:
            page = browser.new_page()
            page.goto(args.url)
            element = page.query_selector(args.target)
            if element is None:
                raise TargetNotFound(f"No element matches {args.target!r} on {args.url}")
            return inspect_element(element, settings).to_payload()
        finally:
            browser.close()


def main(argv: Sequence[str] | None = None) -> int:
    if sys.version_info < (3, 11):
        raise SystemExit(
            "locatorsynth requires Python 3.11+. "
            f"Current interpreter: {sys.executable} (Python {sys.version.split()[0]})"
        )
    args = build_parser().parse_args(argv)
    logger = configure_logging(args.verbose)
    settings = load_settings(args.settings)

    try:
        if args.command == "inspect":
            payload = run_inspect(args, settings)
        else:
            payload = run_live(args, settings)
    except TargetNotFound as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_NOT_FOUND
    except (OSError, UnicodeDecodeError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_NOT_FOUND
    except LocatorSynthError as exc:
        logger.exception("Synthesis failed: %s", exc)
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_FAILURE

    print(json.dumps(payload, ensure_ascii=False, indent=2))
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
