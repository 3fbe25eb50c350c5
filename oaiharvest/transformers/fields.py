"""
Field-parsing helpers shared by the record transformers.
"""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional
from urllib.parse import urlparse


_DATE_PATTERN = re.compile(
    r"^(?P<year>\d{4})"
    r"(?:-(?P<month>\d{2})(?:-(?P<day>\d{2}))?)?"
    r"(?:[T ](?P<hour>\d{2}):(?P<minute>\d{2})(?::(?P<second>\d{2})(?:\.\d+)?)?)?"
    r"(?P<tz>Z|[+-]\d{2}:?\d{2})?$"
)

_URL_SCHEMES = ("http", "https", "ftp", "ftps", "file")

_DOI_PREFIXES = (
    "https://doi.org/",
    "http://doi.org/",
    "https://dx.doi.org/",
    "http://dx.doi.org/",
)


def local_name(tag: str) -> str:
    """Strip the ``{namespace}`` part of an ElementTree tag."""
    return tag.rsplit("}", 1)[-1]


def element_text(elem: Optional[ET.Element]) -> Optional[str]:
    """Whitespace-normalized text of an element and its descendants."""
    if elem is None:
        return None
    text = " ".join("".join(elem.itertext()).split())
    return text or None


def find_text(parent: ET.Element, path: str, namespaces: Dict[str, str]) -> Optional[str]:
    """Text of the first element matching ``path``, or None."""
    return element_text(parent.find(path, namespaces))


def find_all_text(parent: ET.Element, path: str, namespaces: Dict[str, str]) -> List[str]:
    """Non-empty texts of all elements matching ``path``, in document order."""
    results = []
    for elem in parent.findall(path, namespaces):
        text = element_text(elem)
        if text:
            results.append(text)
    return results


def parse_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an XML Schema style date or dateTime.

    Accepts ``YYYY``, ``YYYY-MM``, ``YYYY-MM-DD`` and full timestamps with
    optional seconds, fractions and a ``Z`` or ``+hh:mm`` offset.

    Returns:
        The parsed datetime, or None if the value is not a date
    """
    if not value:
        return None
    match = _DATE_PATTERN.match(value.strip())
    if not match:
        return None

    parts = match.groupdict()
    tzinfo = None
    tz = parts["tz"]
    if tz == "Z":
        tzinfo = timezone.utc
    elif tz:
        sign = -1 if tz[0] == "-" else 1
        digits = tz[1:].replace(":", "")
        offset = timedelta(hours=int(digits[:2]), minutes=int(digits[2:]))
        tzinfo = timezone(sign * offset)

    try:
        return datetime(
            int(parts["year"]),
            int(parts["month"] or 1),
            int(parts["day"] or 1),
            int(parts["hour"] or 0),
            int(parts["minute"] or 0),
            int(parts["second"] or 0),
            tzinfo=tzinfo,
        )
    except ValueError:
        return None


def extract_year(value: Optional[str]) -> Optional[int]:
    """Year component of a date string, or None if it does not parse."""
    parsed = parse_datetime(value)
    return parsed.year if parsed else None


def is_valid_url(value: Optional[str]) -> bool:
    """Whether ``value`` is a well-formed absolute URL."""
    if not value or any(ch.isspace() for ch in value.strip()):
        return False
    try:
        parsed = urlparse(value.strip())
    except ValueError:
        return False
    if parsed.scheme.lower() not in _URL_SCHEMES:
        return False
    return bool(parsed.netloc) or parsed.scheme.lower() == "file"


def normalize_doi(value: Optional[str]) -> Optional[str]:
    """Normalize DOI values to bare DOI strings; None if not a DOI."""
    if not value:
        return None
    doi = str(value).strip()
    lower = doi.lower()
    if lower.startswith("doi:"):
        doi = doi[4:].strip()
        lower = doi.lower()
    for prefix in _DOI_PREFIXES:
        if lower.startswith(prefix):
            doi = doi[len(prefix):].strip()
            break
    if not doi.startswith("10.") or "/" not in doi:
        return None
    return doi


def parse_coordinate(value: Optional[str]) -> float:
    """
    Parse a decimal coordinate.

    Raises:
        ValueError: If the value is missing or not numeric
    """
    if value is None:
        raise ValueError("missing coordinate")
    number = float(value.strip())
    if number != number or number in (float("inf"), float("-inf")):
        raise ValueError(f"not a finite coordinate: {value}")
    return number
