"""
Command-line interface for ExamCraft.

Usage:
    python -m app new [--output PATH]
    python -m app validate PATH
    python -m app preview PATH
    python -m app render PATH --output PDF
"""

import argparse
import os
import sys

from app.config import get_settings
from app.models.paper import Paper
from app.services.paper_model import (
    PaperValidationError,
    new_paper,
    replace_document,
    serialize_paper,
)
from app.services.paper_renderer import render_paper, render_text
from app.services.pdf_renderer import render_pdf


def create_parser() -> argparse.ArgumentParser:
    """Create CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="examcraft",
        description="ExamCraft CLI - create, check and print question papers"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    new_parser = subparsers.add_parser("new", help="Write a blank paper as JSON")
    new_parser.add_argument(
        "--output",
        "-o",
        type=str,
        default=None,
        help="File to write (default: print to stdout)"
    )

    validate_parser = subparsers.add_parser("validate", help="Check a paper JSON file")
    validate_parser.add_argument("path", type=str, help="Paper JSON file")

    preview_parser = subparsers.add_parser("preview", help="Print a paper as plain text")
    preview_parser.add_argument("path", type=str, help="Paper JSON file")

    render_parser = subparsers.add_parser("render", help="Render a paper to an A4 PDF")
    render_parser.add_argument("path", type=str, help="Paper JSON file")
    render_parser.add_argument(
        "--output",
        "-o",
        type=str,
        required=True,
        help="PDF file to write"
    )
    render_parser.add_argument(
        "--font",
        type=str,
        default=None,
        help="TrueType font for non-Latin text (default: PDF_FONT_PATH or Times)"
    )

    return parser


def _load_paper(path: str) -> Paper:
    """Read and validate a paper file. Raises PaperValidationError or OSError."""
    with open(path, "rb") as f:
        return replace_document(f.read())


def new_command(args: argparse.Namespace) -> int:
    content = serialize_paper(new_paper())
    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            f.write(content + "\n")
        print(f"Wrote blank paper to {args.output}")
    else:
        print(content)
    return 0


def validate_command(args: argparse.Namespace) -> int:
    """
    Validate a paper file.

    Returns:
        int: Exit code (0 for a valid paper, 1 otherwise)
    """
    if not os.path.isfile(args.path):
        print(f"Error: File not found: {args.path}")
        return 1

    try:
        paper = _load_paper(args.path)
    except PaperValidationError as e:
        print(f"Invalid paper: {e.reason}")
        return 1

    question_count = sum(len(s.questions) for s in paper.sections)
    print(f"{args.path}: OK")
    print(f"  Sections:    {len(paper.sections)}")
    print(f"  Questions:   {question_count}")
    print(f"  Total marks: {paper.total_marks}")
    return 0


def preview_command(args: argparse.Namespace) -> int:
    if not os.path.isfile(args.path):
        print(f"Error: File not found: {args.path}")
        return 1

    try:
        paper = _load_paper(args.path)
    except PaperValidationError as e:
        print(f"Invalid paper: {e.reason}")
        return 1

    print(render_text(render_paper(paper)))
    return 0


def render_command(args: argparse.Namespace) -> int:
    if not os.path.isfile(args.path):
        print(f"Error: File not found: {args.path}")
        return 1

    try:
        paper = _load_paper(args.path)
    except PaperValidationError as e:
        print(f"Invalid paper: {e.reason}")
        return 1

    font_path = args.font or get_settings().pdf_font_path
    try:
        pdf_bytes = render_pdf(render_paper(paper), font_path=font_path)
    except Exception as e:
        print(f"\nRendering failed: {e}")
        return 1

    with open(args.output, "wb") as f:
        f.write(pdf_bytes)
    print(f"Wrote {len(pdf_bytes)} bytes to {args.output}")
    return 0


COMMANDS = {
    "new": new_command,
    "validate": validate_command,
    "preview": preview_command,
    "render": render_command,
}


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    handler = COMMANDS.get(args.command)
    if handler is None:
        print(f"Unknown command: {args.command}")
        return 1
    return handler(args)


if __name__ == "__main__":
    sys.exit(main())
