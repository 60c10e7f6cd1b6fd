"""Scrapes the defect statistics off a Coverity Scan project page.

The page lays every statistic out as a value cell next to a label cell, e.g.
``<td>42</td><td>Outstanding</td>``. Most values sit in the cell before their
label; "Last build analyzed" is the exception and reads from the cell after.
"""

import logging
import re
from enum import Enum
from typing import Dict, Optional, Union

import requests
from bs4 import BeautifulSoup, NavigableString, Tag

from entities import DefectReport

logger = logging.getLogger(__name__)

_IGNORED_PARENTS = ("script", "style")
_STOP_TAGS = ("body", "html", "[document]")
_CELL_TAGS = ("td", "th", "dt", "dd")


class Direction(str, Enum):
    BEFORE = "before"
    AFTER = "after"


# label -> (DefectReport field, direction, numeric)
REPORT_FIELDS: Dict[str, tuple] = {
    "Last Analyzed": ("last_analyzed", Direction.BEFORE, False),
    "Lines of Code Analyzed": ("lines_of_code_analyzed", Direction.BEFORE, True),
    "Defect Density": ("defect_density", Direction.BEFORE, False),
    "Outstanding": ("outstanding", Direction.BEFORE, True),
    "Fixed": ("fixed", Direction.BEFORE, True),
    "Newly detected": ("newly_detected", Direction.BEFORE, True),
    "Eliminated": ("eliminated", Direction.BEFORE, True),
    "Last build analyzed": ("last_build_analyzed", Direction.AFTER, False),
}


def fetch_report(url: str, session: Optional[requests.Session] = None) -> str:
    http = session or requests
    try:
        response = http.get(url)
    except requests.RequestException as e:
        logger.warning("Could not fetch the defect report from %s: %s", url, e)
        return ""

    if not response.ok:
        logger.warning("Defect report request to %s returned HTTP %s", url, response.status_code)
        return ""

    return response.text


def _make_soup(html: Union[str, BeautifulSoup]) -> BeautifulSoup:
    if isinstance(html, BeautifulSoup):
        return html
    return BeautifulSoup(html or "", "html.parser")


def _is_visible_text(node) -> bool:
    return isinstance(node, NavigableString) and node.parent is not None and node.parent.name not in _IGNORED_PARENTS


def _find_label(soup: BeautifulSoup, label: str) -> Optional[NavigableString]:
    exact = soup.find(string=lambda s: _is_visible_text(s) and s.strip() == label)
    if exact is not None:
        return exact
    return soup.find(string=lambda s: _is_visible_text(s) and label in s)


def _neighbour_cell(element: Tag, direction: Direction) -> Optional[Tag]:
    while element is not None and element.name not in _STOP_TAGS:
        if direction is Direction.BEFORE:
            sibling = element.find_previous_sibling()
        else:
            sibling = element.find_next_sibling()
        if sibling is not None:
            return sibling
        if element.name in _CELL_TAGS:
            return None
        element = element.parent
    return None


def _cell_text(cell: Tag) -> str:
    text = cell.get_text(" ", strip=True)
    return re.sub(r"\s+", " ", text.replace("\n", " ")).strip()


def extract_field(html: Union[str, BeautifulSoup], label: str, direction: Direction = Direction.BEFORE) -> str:
    """Returns the text of the cell adjacent to ``label``, or "" when absent.

    An empty result means the field is unknown for this page layout; callers
    must not read it as zero.
    """
    soup = _make_soup(html)

    label_node = _find_label(soup, label)
    if label_node is None:
        return ""

    cell = _neighbour_cell(label_node.parent, direction)
    if cell is None:
        return ""

    return _cell_text(cell)


def parse_count(text: str) -> Optional[int]:
    search_result = re.search(r"(?<![-\d])\d[\d,]*", text or "")
    if search_result:
        return int(search_result.group(0).replace(",", ""))
    return None


def parse_defect_report(html: str) -> DefectReport:
    soup = _make_soup(html)

    values = {}
    for label, (field, direction, numeric) in REPORT_FIELDS.items():
        text = extract_field(soup, label, direction)
        values[field] = parse_count(text) if numeric else text
        logger.debug("%s: %s", label, text)

    report = DefectReport(**values)
    logger.info(
        "Defect summary: outstanding=%s fixed=%s newly_detected=%s eliminated=%s",
        report.outstanding,
        report.fixed,
        report.newly_detected,
        report.eliminated,
    )

    return report
