# src/analyzer/utils/url_utils.py
import logging
from urllib.parse import urlparse, urljoin

logger = logging.getLogger(__name__)

# Only these schemes are fetched; every other scheme counts as reachable.
HTTP_SCHEMES = frozenset(("http", "https"))


class UrlUtils:
    """A collection of static methods for URL parsing and link classification."""

    @staticmethod
    def resolve(base_url: str, link: str) -> str:
        """
        Resolves a (possibly relative) href against the page URL.
        Raises ValueError when the href cannot be parsed as a URI reference.
        """
        resolved = urljoin(base_url, link)
        # urljoin is lenient; urlparse surfaces malformed authorities (e.g. '[::1').
        urlparse(resolved).port
        return resolved

    @staticmethod
    def get_host(url: str) -> str:
        """Returns host[:port] of a URL, lower-cased and without user info."""
        netloc = urlparse(url).netloc
        return netloc.rpartition("@")[2].lower()

    @staticmethod
    def get_scheme(url: str) -> str:
        return urlparse(url).scheme.lower()

    @staticmethod
    def is_internal_link(link: str, base_url: str) -> bool:
        """
        Checks if an href points at the same host as the page it was found on.

        Empty and fragment-only hrefs are same-page anchors and always internal.
        Hrefs that cannot be parsed count as external. Subdomains are external:
        only an exact (case-insensitive) host match is internal.
        """
        if link == "" or link.startswith("#"):
            return True

        try:
            resolved = UrlUtils.resolve(base_url, link)
            return UrlUtils.get_host(resolved) == UrlUtils.get_host(base_url)
        except ValueError:
            logger.debug("Unparsable link %r on %s, counted as external.", link, base_url)
            return False

    @staticmethod
    def is_valid_target_url(url: str) -> bool:
        """Checks that a URL is an absolute http(s) URL with a host."""
        if not isinstance(url, str) or not url.strip():
            return False
        try:
            parsed = urlparse(url.strip())
            parsed.port
        except ValueError:
            return False
        return parsed.scheme.lower() in HTTP_SCHEMES and bool(parsed.hostname)
