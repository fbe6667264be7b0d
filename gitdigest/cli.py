"""
gitdigest command line

Turns a repository reference into one text digest (summary, tree, file
contents) ready to paste into a language-model prompt.
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Optional

from gitdigest.core.config import settings
from gitdigest.core.logging import setup_logging
from gitdigest.services.ingestion.errors import IngestError
from gitdigest.services.ingestion.models import IngestOptions, IngestResult
from gitdigest.services.ingestion.patterns import parse_patterns
from gitdigest.services.ingestion.runner import STRATEGIES, get_acquirer, ingest
from gitdigest.utils.sizes import SLIDER_MAX_POSITION, format_size, log_slider_to_size


def slider_position(value: str) -> int:
    position = int(value)
    if not 1 <= position <= SLIDER_MAX_POSITION:
        raise argparse.ArgumentTypeError(f"slider position must be between 1 and {SLIDER_MAX_POSITION}, got {position}")
    return position


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="gitdigest",
        description="Flatten a Git repository into an LLM-friendly digest",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  gitdigest octocat/Hello-World
  gitdigest https://github.com/owner/repo/tree/main/src --include "*.py" -o digest.txt
  gitdigest gitlab.com/group/project --token $GITLAB_TOKEN --strategy memory
        """,
    )
    parser.add_argument("reference", help="Repository URL or owner/repo")
    size = parser.add_mutually_exclusive_group()
    size.add_argument("--max-size-kb", type=int, help="Skip files larger than this many KB")
    size.add_argument("--slider", type=slider_position, help="Size slider position (1-500) instead of --max-size-kb")
    parser.add_argument("--include", action="append", default=[], help="Include pattern (repeatable, comma-separated)")
    parser.add_argument("--exclude", action="append", default=[], help="Exclude pattern (repeatable, comma-separated)")
    parser.add_argument("--no-gitignore", dest="respect_gitignore", action="store_false", help="Don't apply the repository's .gitignore")
    parser.add_argument("--branch", help="Branch to ingest (default: repository default)")
    parser.add_argument("--token", help="Access token for private repositories")
    parser.add_argument("--strategy", choices=STRATEGIES, default=None, help="Acquisition strategy")
    parser.add_argument("-o", "--output", help="Write the digest to this file instead of stdout")
    parser.add_argument("-q", "--quiet", action="store_true", help="No progress output")
    return parser.parse_args(argv)


def build_options(args: argparse.Namespace) -> IngestOptions:
    if args.max_size_kb is not None:
        size_kb = args.max_size_kb
    else:
        size_kb = log_slider_to_size(settings.DEFAULT_SLIDER_POSITION if args.slider is None else args.slider)

    return IngestOptions(
        max_file_size=size_kb * 1024,
        include_patterns=[p for raw in args.include for p in parse_patterns(raw)],
        exclude_patterns=[p for raw in args.exclude for p in parse_patterns(raw)],
        auth_token=args.token,
        branch=args.branch,
        respect_gitignore=args.respect_gitignore,
    )


def render_digest(result: IngestResult) -> str:
    summary = result.summary
    if result.token_count:
        summary += f"\nEstimated tokens: {result.token_count}"
    return f"{summary}\n\n{result.tree}\n\n{result.content}"


def _print_progress(current: int, total: int) -> None:
    print(f"\r[{current:3d}/{total}]", end="", file=sys.stderr, flush=True)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(sys.stderr, level="WARNING" if args.quiet else None)

    options = build_options(args)
    if not args.quiet:
        print(f"Max file size: {format_size(options.max_file_size / 1024)}", file=sys.stderr)

    try:
        result = asyncio.run(ingest(
            args.reference,
            options,
            on_progress=None if args.quiet else _print_progress,
            acquirer=get_acquirer(args.strategy),
        ))
    except IngestError as e:
        print(f"\nError: {e.message}", file=sys.stderr)
        return 1
    finally:
        if not args.quiet:
            print(file=sys.stderr)

    digest = render_digest(result)
    if args.output:
        Path(args.output).write_text(digest, encoding="utf-8")
        print(f"Digest written to {args.output}", file=sys.stderr)
    else:
        sys.stdout.write(digest)
    return 0


if __name__ == "__main__":
    sys.exit(main())
