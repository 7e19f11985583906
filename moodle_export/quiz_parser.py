"""Parse Moodle quiz review pages into multiple-choice question records."""
import logging
import re
from dataclasses import dataclass, field
from html import escape
from typing import List, Optional, Tuple

from bs4 import BeautifulSoup

from moodle_export.sanitizer import HtmlSanitizer

logger = logging.getLogger(__name__)

# Moodle marks each question with div.que plus its type; other types are ignored.
QUESTION_SELECTOR = "div.que.multichoice"
PROMPT_SELECTOR = ".qtext"
OPTION_SELECTOR = ".answer > div"
RIGHT_ANSWER_SELECTOR = ".rightanswer"
FEEDBACK_SELECTOR = ".generalfeedback"

OPTION_LABEL_RE = re.compile(r"^[a-zA-Z][.)]\s*")
GRADING_MARK_RE = re.compile(r"\b(?:Correct|Incorrect)\b")
RIGHT_ANSWER_LEAD_IN_RE = re.compile(r"The correct answers? (?:is|are):")

FINGERPRINT_PROMPT_CHARS = 50
FINGERPRINT_OPTIONS_CHARS = 50


@dataclass(frozen=True)
class QuestionRecord:
    question_text: str
    options: Tuple[str, ...] = ()
    correct_answer: str = ""
    explanation: str = ""

    @property
    def fingerprint(self) -> str:
        """Truncated prompt + truncated joined options. Heuristic, may collide."""
        return (
            self.question_text[:FINGERPRINT_PROMPT_CHARS]
            + "|".join(self.options)[:FINGERPRINT_OPTIONS_CHARS]
        )

    def to_dict(self) -> dict:
        return {
            "question": self.question_text,
            "options": list(self.options),
            "correct": self.correct_answer,
            "explanation": self.explanation,
            "fingerprint": self.fingerprint,
        }


@dataclass
class PageFetchResult:
    records: List[QuestionRecord] = field(default_factory=list)
    content_signature: int = 0
    title: Optional[str] = None


def _inner_html(block, selector: str) -> str:
    el = block.select_one(selector)
    if el is None:
        return ""
    return el.decode_contents()


def clean_option_text(text: str) -> str:
    """Drop the a./b. label and Moodle's Correct/Incorrect grading marks."""
    text = OPTION_LABEL_RE.sub("", text)
    text = GRADING_MARK_RE.sub("", text)
    return text.strip()


class QuizPageParser:
    def __init__(self, sanitizer: Optional[HtmlSanitizer] = None):
        self.sanitizer = sanitizer or HtmlSanitizer()

    def _parse_options(self, block) -> Tuple[str, ...]:
        options = []
        for div in block.select(OPTION_SELECTOR):
            # Options are taken as rendered text, like innerText in the browser.
            raw = self.sanitizer.clean(escape(div.get_text(" "), quote=False))
            options.append(clean_option_text(raw))
        return tuple(options)

    def parse_block(self, block) -> QuestionRecord:
        question_text = self.sanitizer.clean(_inner_html(block, PROMPT_SELECTOR))
        options = self._parse_options(block)
        correct = self.sanitizer.clean(_inner_html(block, RIGHT_ANSWER_SELECTOR))
        correct = RIGHT_ANSWER_LEAD_IN_RE.sub("", correct, count=1).strip()
        explanation = self.sanitizer.clean(_inner_html(block, FEEDBACK_SELECTOR))
        return QuestionRecord(
            question_text=question_text,
            options=options,
            correct_answer=correct,
            explanation=explanation,
        )

    def parse_page(self, html: str) -> PageFetchResult:
        soup = BeautifulSoup(html or "", "html.parser")
        records = [self.parse_block(block) for block in soup.select(QUESTION_SELECTOR)]
        title = soup.title.get_text(strip=True) if soup.title else None
        logger.debug("Parsed %d multichoice questions (%d chars)", len(records), len(html or ""))
        return PageFetchResult(records=records, content_signature=len(html or ""), title=title)


def parse_page(html: str, sanitizer: Optional[HtmlSanitizer] = None) -> PageFetchResult:
    return QuizPageParser(sanitizer).parse_page(html)
