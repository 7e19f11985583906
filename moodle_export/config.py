"""Run configuration: review-page discovery, .env defaults, transport settings."""
import os
from dataclasses import dataclass, replace
from typing import Optional
from urllib.parse import urlparse, parse_qs

from dotenv import load_dotenv

load_dotenv()

DEFAULT_REVIEW_PATH = "/mod/quiz/review.php"
DEFAULT_IMAGE_TIMEOUT = 5.0
DEFAULT_REQUEST_TIMEOUT = 30.0
USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"
SESSION_COOKIE_NAME = "MoodleSession"

FALSE_VALUES = {"0", "false", "no", "off"}


class ExportError(Exception):
    """Base error for the quiz export."""


class MissingReviewParameters(ExportError, ValueError):
    """Review URL lacks the attempt or cmid query parameter."""


def _env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() not in FALSE_VALUES


def _env_float(name: str, default: float) -> float:
    value = os.environ.get(name)
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"{name} must be a number of seconds, got {value!r}")


@dataclass(frozen=True)
class ExportConfig:
    attempt_id: str
    module_id: str
    origin: str
    path: str = DEFAULT_REVIEW_PATH
    page_title: Optional[str] = None
    session_cookie: Optional[str] = None
    embed_images: bool = True
    image_timeout: float = DEFAULT_IMAGE_TIMEOUT
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT

    @classmethod
    def from_review_url(cls, url: str, **overrides) -> "ExportConfig":
        """
        Build a config from a quiz review URL such as
        https://moodle.example.edu/mod/quiz/review.php?attempt=123&cmid=45

        Raises MissingReviewParameters when attempt or cmid is absent.
        """
        parsed = urlparse((url or "").strip())
        qs = parse_qs(parsed.query)
        attempt = (qs.get("attempt") or [""])[0].strip()
        cmid = (qs.get("cmid") or [""])[0].strip()
        if not attempt or not cmid:
            raise MissingReviewParameters(
                "Must be a Moodle quiz review page with attempt and cmid parameters"
            )
        if not parsed.scheme or not parsed.netloc:
            raise MissingReviewParameters(f"Review URL must be absolute: {url!r}")
        return cls(
            attempt_id=attempt,
            module_id=cmid,
            origin=f"{parsed.scheme}://{parsed.netloc}",
            path=parsed.path or DEFAULT_REVIEW_PATH,
            **overrides,
        )

    @classmethod
    def from_env(cls, url: Optional[str] = None, **overrides) -> "ExportConfig":
        """Review URL, cookie and image settings from the environment (.env); overrides win."""
        review_url = url or os.environ.get("MOODLE_REVIEW_URL", "")
        settings = {
            "session_cookie": os.environ.get("MOODLE_SESSION_COOKIE") or None,
            "embed_images": _env_flag("MOODLE_EMBED_IMAGES", True),
            "image_timeout": _env_float("MOODLE_IMAGE_TIMEOUT", DEFAULT_IMAGE_TIMEOUT),
        }
        settings.update({k: v for k, v in overrides.items() if v is not None})
        return cls.from_review_url(review_url, **settings)

    @property
    def base_url(self) -> str:
        return f"{self.origin}{self.path}?attempt={self.attempt_id}&cmid={self.module_id}&page="

    def page_url(self, page: int) -> str:
        return f"{self.base_url}{page}"

    @property
    def cookies(self) -> dict:
        if not self.session_cookie:
            return {}
        return {SESSION_COOKIE_NAME: self.session_cookie}

    def with_title(self, title: Optional[str]) -> "ExportConfig":
        return replace(self, page_title=title)
