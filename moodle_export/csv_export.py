"""Deduplicate extracted questions and write them as a two-column flashcard CSV."""
import csv
import io
import logging
import re
from pathlib import Path
from typing import Iterable, List, Optional

from moodle_export.quiz_parser import QuestionRecord

logger = logging.getLogger(__name__)

DELIMITER = ";"
ROW_TERMINATOR = "\r\n"
BOM = "\ufeff"
NO_EXPLANATION = "No further explanation provided"
DEFAULT_EXPORT_NAME = "Moodle_Quiz_Export"
MAX_NAME_LENGTH = 50

TITLE_JUNK_RE = re.compile(r"[^\w\s]")


def deduplicate(records: Iterable[QuestionRecord]) -> List[QuestionRecord]:
    """Keep the first record for each fingerprint, preserving order."""
    seen = set()
    unique = []
    for record in records:
        key = record.fingerprint
        if key in seen:
            continue
        seen.add(key)
        unique.append(record)
    return unique


def render_front(record: QuestionRecord) -> str:
    option_list = "<ol>" + "".join(f"<li>{opt}</li>" for opt in record.options) + "</ol>"
    return f"{record.question_text}{option_list}"


def render_back(record: QuestionRecord) -> str:
    explanation = record.explanation or NO_EXPLANATION
    return f"<b>Correct Answer:</b> {record.correct_answer}<br>{explanation}"


def _encode_row(fields: List[str]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, delimiter=DELIMITER, quotechar='"', quoting=csv.QUOTE_MINIMAL, lineterminator=ROW_TERMINATOR)
    writer.writerow(fields)
    return buf.getvalue()[: -len(ROW_TERMINATOR)]


def encode_csv(records: Iterable[QuestionRecord]) -> str:
    """One front;back row per record, CRLF between rows, UTF-8 BOM prefix."""
    rows = [_encode_row([render_front(r), render_back(r)]) for r in records]
    return BOM + ROW_TERMINATOR.join(rows)


def finalize(records: Iterable[QuestionRecord]) -> str:
    unique = deduplicate(records)
    logger.info("Total unique questions saved: %d", len(unique))
    return encode_csv(unique)


def export_filename(title: Optional[str]) -> str:
    name = TITLE_JUNK_RE.sub("", title or "")[:MAX_NAME_LENGTH].strip()
    return f"{name or DEFAULT_EXPORT_NAME}.csv"


def save_csv(text: str, filename: str, out_dir: Path) -> Path:
    """Write the encoded CSV as-is (BOM and CRLF preserved)."""
    out_dir.mkdir(parents=True, exist_ok=True)
    path = out_dir / filename
    with path.open("w", encoding="utf-8", newline="") as f:
        f.write(text)
    logger.info("Export complete! File written: %s", path)
    return path
