"""
Walk the review pages of one quiz attempt (page=0, 1, 2, ...) and collect questions.

The run ends on a 404, an empty body or "No questions found" marker, a page with
no multichoice questions, or when the same content length repeats
DUPLICATE_THRESHOLD times in a row (Moodle keeps serving the last page instead of
failing). A transport error or unexpected status aborts the run; what was
collected so far is still returned. Pages are never retried.
"""
import logging
import random
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional

import requests

from moodle_export.config import ExportConfig, USER_AGENT
from moodle_export.quiz_parser import QuestionRecord, QuizPageParser

logger = logging.getLogger(__name__)

NO_QUESTIONS_MARKER = "No questions found"
DUPLICATE_THRESHOLD = 2
PAGE_DELAY = 0.5
PAGE_DELAY_JITTER = 0.3


class PageState(Enum):
    FETCHING = "fetching"
    EVALUATING = "evaluating"
    DONE = "done"
    ABORTED = "aborted"


@dataclass
class ExtractionSession:
    page_index: int = 0
    duplicate_count: int = 0
    previous_signature: Optional[int] = None
    state: PageState = PageState.FETCHING
    title: Optional[str] = None
    records: List[QuestionRecord] = field(default_factory=list)

    @property
    def finished(self) -> bool:
        return self.state in (PageState.DONE, PageState.ABORTED)


def build_http_session(config: ExportConfig) -> requests.Session:
    session = requests.Session()
    session.headers.update({"User-Agent": USER_AGENT, "Cache-Control": "no-store", "Pragma": "no-cache"})
    session.cookies.update(config.cookies)
    return session


class QuizPaginator:
    def __init__(
        self,
        config: ExportConfig,
        parser: Optional[QuizPageParser] = None,
        http: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.config = config
        self.parser = parser or QuizPageParser()
        self.http = http or build_http_session(config)
        self.sleep = sleep
        self.session = ExtractionSession()

    def _fetch(self, session: ExtractionSession) -> Optional[str]:
        """GET the current page. Returns body text, or None once the session has ended."""
        url = self.config.page_url(session.page_index)
        logger.info("Processing page %d...", session.page_index)
        try:
            response = self.http.get(url, timeout=self.config.request_timeout)
            if response.status_code == 404:
                logger.info("No more pages (404). Stopping.")
                session.state = PageState.DONE
                return None
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error("Error on page %d: %s", session.page_index, e)
            session.state = PageState.ABORTED
            return None
        return response.text

    def _evaluate(self, session: ExtractionSession, html: str) -> None:
        if not html.strip() or NO_QUESTIONS_MARKER in html:
            logger.info("No questions found on page %d.", session.page_index)
            session.state = PageState.DONE
            return

        result = self.parser.parse_page(html)
        if session.title is None:
            session.title = result.title

        if session.previous_signature == result.content_signature:
            session.duplicate_count += 1
            logger.warning("Detected duplicate content on page %d (%d)", session.page_index, session.duplicate_count)
            if session.duplicate_count >= DUPLICATE_THRESHOLD:
                logger.info("Reached duplicate threshold. Ending scrape.")
                session.state = PageState.DONE
                return
        else:
            session.duplicate_count = 0
        session.previous_signature = result.content_signature

        if not result.records:
            logger.warning("Page %d had no valid questions.", session.page_index)
            session.state = PageState.DONE
            return

        session.records.extend(result.records)
        logger.info("Saved %d questions from page %d", len(result.records), session.page_index)
        session.page_index += 1
        session.state = PageState.FETCHING

    def extract_all(self) -> List[QuestionRecord]:
        """Run the page loop to completion and return every record in fetch order."""
        session = self.session = ExtractionSession()
        logger.info("Starting quiz extraction from: %s", self.config.base_url)
        while not session.finished:
            html = self._fetch(session)
            if session.finished:
                break
            session.state = PageState.EVALUATING
            try:
                self._evaluate(session, html)
            except Exception:
                logger.exception("Error on page %d while extracting questions", session.page_index)
                session.state = PageState.ABORTED
            if not session.finished:
                self.sleep(PAGE_DELAY + random.random() * PAGE_DELAY_JITTER)
        logger.info(
            "Extraction %s after %d page(s): %d questions",
            session.state.value, session.page_index, len(session.records),
        )
        return list(session.records)


def extract_all(config: ExportConfig, parser: Optional[QuizPageParser] = None, **kwargs) -> List[QuestionRecord]:
    return QuizPaginator(config, parser=parser, **kwargs).extract_all()
