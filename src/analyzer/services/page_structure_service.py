# src/analyzer/services/page_structure_service.py
import logging
import re
from typing import Iterable, List

from bs4 import BeautifulSoup, Tag

from analyzer.model import HeadingCounts

logger = logging.getLogger(__name__)

HTML5_DOCTYPE = re.compile(r'<!DOCTYPE\s+html>', re.IGNORECASE)
XHTML_DOCTYPE = re.compile(r'<!DOCTYPE\s+html\s+PUBLIC\s+"[^"]*//DTD\s+XHTML', re.IGNORECASE)
HTML4_DOCTYPE = re.compile(r'<!DOCTYPE\s+HTML\s+PUBLIC\s+"[^"]*//DTD\s+HTML\s+4', re.IGNORECASE)

# Checked in order, first match wins.
DOCTYPE_PATTERNS = (
    (HTML5_DOCTYPE, "HTML5"),
    (XHTML_DOCTYPE, "XHTML 1.0"),
    (HTML4_DOCTYPE, "HTML 4.01"),
)
UNKNOWN_VERSION = "Unknown (possibly HTML5 without explicit DOCTYPE)"

HEADING_TAGS = ("h1", "h2", "h3", "h4", "h5", "h6")
AUTH_INPUT_TYPES = ("password", "otp", "code")
LOGIN_KEYWORDS = ("login", "log in", "sign in", "signin")


class PageStructureService:
    """
    Read-only extraction of structural facts from a parsed page.

    Every extractor only reads the shared tree, so all of them may run
    concurrently against the same document. BeautifulSoup walks descendants
    iteratively, so deeply nested markup does not exhaust the call stack.
    """

    def __init__(self, soup: BeautifulSoup, raw_html: str, sniff_chars: int = 1000):
        self.soup = soup
        self.raw_html = raw_html or ""
        self.sniff_chars = sniff_chars

    # -------- Document Type --------

    def detect_html_version(self) -> str:
        """Sniffs the doctype from the head of the raw markup."""
        head = self.raw_html[:self.sniff_chars]
        for pattern, label in DOCTYPE_PATTERNS:
            if pattern.search(head):
                return label
        return UNKNOWN_VERSION

    # -------- Title & Headings --------

    def extract_title(self) -> str:
        """Retrieves the trimmed text of the first <title> tag."""
        el = self.soup.find("title")
        return el.get_text().strip() if el else ""

    def count_headings(self) -> HeadingCounts:
        """Counts h1..h6 elements anywhere in the tree."""
        counts = dict.fromkeys(HEADING_TAGS, 0)
        for tag in self.soup.find_all(HEADING_TAGS):
            counts[tag.name] += 1
        return HeadingCounts(**counts)

    # -------- Login Form Detection --------

    def has_login_form(self) -> bool:
        """True as soon as one <form> carries an auth input or a login button."""
        for index, form in enumerate(self.soup.find_all("form")):
            if self._is_login_form(form):
                logger.debug("Form #%d looks like a login form.", index + 1)
                return True
        return False

    def _is_login_form(self, form: Tag) -> bool:
        for el in form.find_all(("input", "button")):
            if el.name == "input" and self._has_auth_input_type(el):
                return True
            if self._is_button(el) and self._has_login_keyword(el):
                return True
        return False

    @staticmethod
    def _has_auth_input_type(el: Tag) -> bool:
        input_type = _attr_text(el.get("type")).lower()
        return any(auth in input_type for auth in AUTH_INPUT_TYPES)

    @staticmethod
    def _is_button(el: Tag) -> bool:
        if el.name == "button":
            return True
        return _attr_text(el.get("type")).strip().lower() == "submit"

    @staticmethod
    def _has_login_keyword(el: Tag) -> bool:
        parts: List[str] = [el.get_text(" ")]
        parts.extend(_attr_text(v) for v in el.attrs.values())
        text = " ".join(parts).lower()
        return any(keyword in text for keyword in LOGIN_KEYWORDS)


def _attr_text(value) -> str:
    """Flattens multi-valued attributes (e.g. class) into one string."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, Iterable):
        return " ".join(str(v) for v in value)
    return str(value)
