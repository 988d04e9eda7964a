"""CLI entry point for tracez-snapshot."""

from __future__ import annotations

import argparse
import sys

from tracez import __version__
from tracez.generator import RenderOptions, embed_data
from tracez.parser import parse_file
from tracez.snapshot import GOROUTINE_NOT_FOUND, process_snapshot


def main() -> int:
    """CLI entry point. Returns 0 on success, 1 on error."""
    parser = argparse.ArgumentParser(
        prog="tracez-snapshot",
        description="Prepare an active-span registry snapshot for the tracez debug page",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "input",
        help="Snapshot file path (.json or .json.gz), or - for stdin",
    )
    parser.add_argument(
        "-o",
        "--output",
        default="-",
        help="Output JSON file path, or - for stdout (default: -)",
    )
    parser.add_argument(
        "--indent",
        type=int,
        default=None,
        help="Pretty-print JSON with this indent (default: compact)",
    )

    args = parser.parse_args()

    # Pipeline: parse → process → serialize → write
    try:
        raw = parse_file(args.input)
        processed = process_snapshot(raw)
        output = embed_data(processed, RenderOptions(indent=args.indent))

        if args.output == "-":
            sys.stdout.write(output + "\n")
            return 0

        with open(args.output, "w", encoding="utf-8") as f:
            f.write(output)

        missing = sum(1 for stack in processed.stacks.values() if stack == GOROUTINE_NOT_FOUND)
        print(
            f"Snapshot written: {args.output} "
            f"({len(processed.spans)} spans in {len(raw.traces)} traces, "
            f"{len(processed.stacks)} goroutines, {missing} without stack)"
        )
        return 0

    except FileNotFoundError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except PermissionError as exc:
        print(f"Error: Permission denied — {exc}", file=sys.stderr)
        return 1
    except OSError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
