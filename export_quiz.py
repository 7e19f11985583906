"""
Export the multiple-choice questions of a Moodle quiz review into an Anki-ready CSV.

Walks review.php?attempt=..&cmid=..&page=N until the quiz runs out of pages,
cleans each question's HTML (optionally inlining images), drops repeated
questions, and writes front;back rows.

Run: python export_quiz.py "https://moodle.example.edu/mod/quiz/review.php?attempt=1&cmid=2" --cookie <MoodleSession>
"""
import argparse
import json
import logging
import sys
from pathlib import Path

from moodle_export.config import ExportConfig
from moodle_export.csv_export import deduplicate, export_filename, finalize, save_csv
from moodle_export.images import ImageEmbedder
from moodle_export.paginator import QuizPaginator
from moodle_export.quiz_parser import QuizPageParser
from moodle_export.sanitizer import HtmlSanitizer

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
logger = logging.getLogger(__name__)


def build_paginator(config: ExportConfig, **kwargs) -> QuizPaginator:
    embedder = None
    if config.embed_images:
        embedder = ImageEmbedder(
            timeout=config.image_timeout,
            cookies=config.cookies,
            base_url=config.page_url(0),
        )
    parser = QuizPageParser(HtmlSanitizer(embedder=embedder))
    return QuizPaginator(config, parser=parser, **kwargs)


def run_export(config: ExportConfig, out_dir: Path, dry_run: bool = False, json_out: Path | None = None, **kwargs) -> Path | None:
    """Extract, dedupe and write the CSV via finalize(). Returns the written path (None on dry run)."""
    paginator = build_paginator(config, **kwargs)
    records = paginator.extract_all()
    if not records:
        logger.warning("No questions extracted; the export will be empty.")

    if json_out:
        unique = deduplicate(records)
        json_out.parent.mkdir(parents=True, exist_ok=True)
        with json_out.open("w", encoding="utf-8") as f:
            json.dump([r.to_dict() for r in unique], f, indent=2, ensure_ascii=False)
        logger.info("Wrote %s", json_out)

    title = config.page_title or paginator.session.title
    filename = export_filename(title)
    if dry_run:
        unique = deduplicate(records)
        logger.info("Dry run: would write %d rows to %s", len(unique), out_dir / filename)
        if unique:
            logger.info("Sample row: %s", unique[0].to_dict())
        return None
    return save_csv(finalize(records), filename, out_dir)


def main():
    parser = argparse.ArgumentParser(description="Export Moodle quiz review MCQs to a flashcard CSV.")
    parser.add_argument("url", nargs="?", default=None, help="Quiz review URL with attempt and cmid (default: MOODLE_REVIEW_URL)")
    parser.add_argument("--cookie", default=None, help="MoodleSession cookie value (default: MOODLE_SESSION_COOKIE)")
    parser.add_argument("--title", default=None, help="Quiz title for the file name (default: page <title>)")
    parser.add_argument("--out-dir", type=Path, default=Path("."), help="Directory for the CSV")
    parser.add_argument("--no-embed-images", action="store_true", help="Keep image URLs instead of inlining them")
    parser.add_argument("--image-timeout", type=float, default=None, help="Seconds allowed per image fetch")
    parser.add_argument("--dry-run", action="store_true", help="Extract and report only; write no CSV")
    parser.add_argument("--json-out", type=Path, default=None, help="Also write unique questions to this JSON file")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        config = ExportConfig.from_env(
            args.url,
            session_cookie=args.cookie,
            page_title=args.title,
            embed_images=False if args.no_embed_images else None,
            image_timeout=args.image_timeout,
        )
    except ValueError as e:  # includes MissingReviewParameters
        logger.error("Error: %s", e)
        sys.exit(1)

    path = run_export(config, args.out_dir, dry_run=args.dry_run, json_out=args.json_out)
    if path:
        logger.info("Done! File: %s", path)


if __name__ == "__main__":
    main()
