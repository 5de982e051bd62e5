from __future__ import annotations

import argparse
import logging
import os

from .io_utils import load_document_text
from .pipeline import NO_READABLE_TEXT_MESSAGE, DocumentSession
from .settings import load_settings


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Ask questions about a local document")
    parser.add_argument("--document", required=True, help="Path to a text, PDF or DOCX file")
    parser.add_argument(
        "--question",
        action="append",
        required=True,
        help="Question to answer (repeat for several questions)",
    )
    parser.add_argument(
        "--log-level",
        default=os.getenv("DOCQA_LOG_LEVEL", "INFO"),
        help="Logging level (default: DOCQA_LOG_LEVEL or INFO)",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """Answer one or more questions about a local document."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        text = load_document_text(args.document)
        _, retrieval_settings = load_settings()
    except (FileNotFoundError, ValueError) as exc:
        parser.error(str(exc))

    session = DocumentSession(text, settings=retrieval_settings)
    if session.is_empty:
        print(NO_READABLE_TEXT_MESSAGE)
        return

    for question in args.question:
        print(f"Q: {question}\n")
        print(session.ask(question))
        print()
