# src/analyzer/model.py (Analysis Layer)
import logging
from typing import Optional, Dict, Any

from bs4 import BeautifulSoup
from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)


class HeadingCounts(BaseModel):
    model_config = ConfigDict(frozen=True)

    h1: int = Field(default=0, ge=0)
    h2: int = Field(default=0, ge=0)
    h3: int = Field(default=0, ge=0)
    h4: int = Field(default=0, ge=0)
    h5: int = Field(default=0, ge=0)
    h6: int = Field(default=0, ge=0)


class LinkCounts(BaseModel):
    internal: int = 0
    external: int = 0
    inaccessible: int = 0

    @property
    def total(self) -> int:
        return self.internal + self.external


class LinkVerdict(BaseModel):
    """Outcome for one harvested link, emitted by a probe worker."""
    model_config = ConfigDict(frozen=True)

    is_internal: bool
    is_accessible: bool


class PageReport(BaseModel):
    """The final, immutable analysis of one web page."""
    model_config = ConfigDict(frozen=True)

    html_version: str = ""
    page_title: str = ""
    heading_counts: HeadingCounts = Field(default_factory=HeadingCounts)
    internal_link_count: int = 0
    external_link_count: int = 0
    inaccessible_link_count: int = 0
    has_login_form: bool = False


class FetchedDocument(BaseModel):
    """
    A fetched page: the parsed tree plus the raw markup it was built from.
    The raw markup is kept for doctype sniffing, the parser drops the declaration.
    """
    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    url: str
    raw_html: str
    soup: BeautifulSoup


class AnalyzerSettings(BaseModel):
    fetch_timeout: float = Field(default=30.0, gt=0)
    probe_timeout: float = Field(default=5.0, gt=0)
    probe_deadline: float = Field(default=30.0, gt=0)
    max_probe_workers: int = Field(default=20, ge=1)
    max_redirects: int = Field(default=3, ge=0)
    version_sniff_chars: int = Field(default=1000, ge=1)
    show_progress: bool = Field(default=False, description="Render a tqdm bar while probing links.")
    user_agent: Optional[str] = None

    @classmethod
    def from_config(cls, section: Optional[Dict[str, Any]]) -> "AnalyzerSettings":
        """Builds settings from the 'analyzer' config section, ignoring unknown keys."""
        section = section or {}
        known = {k: v for k, v in section.items() if k in cls.model_fields}
        unknown = set(section) - set(known)
        if unknown:
            logger.debug("Ignoring unknown analyzer settings: %s", sorted(unknown))
        return cls(**known)
