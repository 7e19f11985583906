"""
HTML cleanup for flashcard fields.

The fragment is parsed with BeautifulSoup and copied node by node into a fresh
tree: allowed tags are kept (minus style/class/id), every other tag is unwrapped
so its text survives, and comments/doctypes are dropped.
"""
import logging
import re
from typing import Optional

from bs4 import BeautifulSoup, Comment, Declaration, Doctype, NavigableString, ProcessingInstruction, Tag

from moodle_export.images import ImageEmbedder

logger = logging.getLogger(__name__)

ALLOWED_TAGS = frozenset({"a", "br", "p", "ul", "ol", "li", "strong", "em", "img"})
STRIPPED_ATTRIBUTES = frozenset({"style", "class", "id"})
ANCHOR_ATTRIBUTES = frozenset({"href"})

WHITESPACE_RE = re.compile(r"\s+")  # str patterns: \s also matches \u00a0

_SKIPPED_STRINGS = (Comment, Declaration, Doctype, ProcessingInstruction)


def normalise_whitespace(text: str) -> str:
    return WHITESPACE_RE.sub(" ", text or "").strip()


def _kept_attributes(tag: Tag) -> dict:
    if tag.name == "a":
        return {k: v for k, v in tag.attrs.items() if k in ANCHOR_ATTRIBUTES}
    return {k: v for k, v in tag.attrs.items() if k.lower() not in STRIPPED_ATTRIBUTES}


class HtmlSanitizer:
    def __init__(self, embedder: Optional[ImageEmbedder] = None, allow_images: bool = True):
        """
        Args:
            embedder: When given, remote <img> sources are inlined before cleaning
            allow_images: Keep <img> tags; when False they are dropped like other unknown tags
        """
        self.embedder = embedder
        self.allowed_tags = ALLOWED_TAGS if allow_images else ALLOWED_TAGS - {"img"}

    def _copy_children(self, source: Tag, target: Tag, out: BeautifulSoup) -> None:
        for child in list(source.children):
            if isinstance(child, _SKIPPED_STRINGS):
                continue
            if isinstance(child, NavigableString):
                target.append(NavigableString(str(child)))
                continue
            if not isinstance(child, Tag):
                continue
            if child.name in self.allowed_tags:
                kept = out.new_tag(child.name, attrs=_kept_attributes(child))
                target.append(kept)
                self._copy_children(child, kept, out)
            else:
                # Unwrap: the tag's markers go, its content stays in place.
                self._copy_children(child, target, out)

    def clean(self, html: Optional[str]) -> str:
        if not html:
            return ""
        soup = BeautifulSoup(html, "html.parser")
        if self.embedder is not None and "img" in self.allowed_tags:
            embedded = self.embedder.embed_all(soup.find_all("img", src=True))
            if embedded:
                logger.debug("Tried to embed %d image(s)", embedded)
        out = BeautifulSoup("", "html.parser")
        self._copy_children(soup, out, out)
        return normalise_whitespace(out.decode(formatter="minimal"))


_default_sanitizer = HtmlSanitizer()


def sanitize(html: Optional[str]) -> str:
    """Clean a fragment with the default allowlist and no image embedding."""
    return _default_sanitizer.clean(html)
