# src/analyzer/services/link_harvester_service.py
import logging
from typing import List

from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)


class LinkHarvesterService:
    """
    Collects the literal href of every <a> element, in document order.
    Nothing is resolved, normalised or deduplicated here.
    """

    @staticmethod
    def harvest(soup: BeautifulSoup) -> List[str]:
        links = [a["href"] for a in soup.find_all("a", href=True)]
        logger.debug("Harvested %d links.", len(links))
        return links
