"""
OAI-PMH 2.0 client used by the harvester.

Only the verbs the harvester relies on are implemented: Identify,
ListMetadataFormats and ListRecords (with resumption tokens).
See https://www.openarchives.org/OAI/openarchivesprotocol.html
"""

from __future__ import annotations

import time
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Dict, Generator, List, Optional, Tuple

import requests

from oaiharvest.logging import format_exception_summary, get_logger
from oaiharvest.oai.queries import (
    NO_HOST_URL_ERROR,
    identify_params,
    list_records_params,
    metadata_formats_params,
    resumption_params,
)
from oaiharvest.transformers.fields import element_text

logger = get_logger(__name__)


OAI_NAMESPACE = "http://www.openarchives.org/OAI/2.0/"

DEFAULT_USER_AGENT = "oaiharvest/0.1 (OAI-PMH Harvester)"

NO_RECORDS_MATCH = "noRecordsMatch"

# errors after which a repository answer is treated as missing
RECOVERABLE_ERRORS = (requests.RequestException, ET.ParseError)


def _oai(tag: str) -> str:
    return f"{{{OAI_NAMESPACE}}}{tag}"


class OAIPMHError(Exception):
    """An ``<error>`` element in a repository response."""

    def __init__(self, code: str, message: str):
        self.code = code
        self.message = message
        super().__init__(f"{code}: {message}")


@dataclass(frozen=True)
class RepositoryIdentity:
    """Contents of an Identify response."""

    repository_name: str = ""
    base_url: str = ""
    protocol_version: str = ""
    admin_emails: Tuple[str, ...] = ()
    earliest_datestamp: str = ""
    deleted_record: str = ""
    granularity: str = ""


class OAIPMHClient:
    """
    Talks to one OAI-PMH base URL.

    ``_request`` raises on transport, XML and protocol errors; ``fetch``
    is the forgiving variant used where a missing answer is acceptable.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30,
        user_agent: str = DEFAULT_USER_AGENT,
        min_interval_seconds: float = 0.0,
    ):
        """
        Args:
            base_url: Repository base URL, without query string
            timeout: Default request timeout in seconds
            user_agent: Sent with every request
            min_interval_seconds: Politeness delay between two requests
        """
        if not base_url:
            raise ValueError(NO_HOST_URL_ERROR)
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.user_agent = user_agent
        self.min_interval_seconds = min_interval_seconds
        self._next_slot = 0.0

    def _wait_for_slot(self) -> None:
        if self.min_interval_seconds <= 0:
            return
        delay = self._next_slot - time.monotonic()
        if delay > 0:
            time.sleep(delay)
        self._next_slot = time.monotonic() + self.min_interval_seconds

    def _request(self, params: Dict[str, str], timeout: Optional[float] = None) -> ET.Element:
        """
        Send one query and parse the answer.

        Raises:
            requests.RequestException: Transport failure or HTTP error status
            xml.etree.ElementTree.ParseError: The body is not XML
            OAIPMHError: The repository answered with an ``<error>``
        """
        self._wait_for_slot()
        logger.debug("GET %s %s", self.base_url, params)

        response = requests.get(
            self.base_url,
            params=params,
            headers={"Accept": "application/xml, text/xml", "User-Agent": self.user_agent},
            timeout=timeout or self.timeout,
        )
        response.raise_for_status()

        root = ET.fromstring(response.content)
        raise_for_oai_error(root)
        return root

    def fetch(self, params: Dict[str, str], timeout: Optional[float] = None) -> Optional[ET.Element]:
        """
        Like ``_request``, but failures are logged and yield None.
        """
        try:
            return self._request(params, timeout=timeout)
        except (*RECOVERABLE_ERRORS, OAIPMHError) as exc:
            logger.warning(
                "%s request to %s failed: %s",
                params.get("verb", "OAI-PMH"),
                self.base_url,
                format_exception_summary(exc),
            )
            return None

    def identify(self, timeout: Optional[float] = None) -> Optional[RepositoryIdentity]:
        """Identify the repository; None if the answer lacks an Identify element."""
        return parse_identify(self._request(identify_params(), timeout=timeout))

    def list_metadata_formats(self) -> List[Dict[str, str]]:
        """
        Formats advertised by the repository, as dicts with
        ``metadataPrefix``, ``schema`` and ``metadataNamespace``.
        """
        return parse_metadata_formats(self._request(metadata_formats_params()))

    def list_records(
        self,
        metadata_prefix: Optional[str] = None,
        from_date: Optional[str] = None,
        until_date: Optional[str] = None,
        resumption_token: Optional[str] = None,
    ) -> Tuple[List[ET.Element], Optional[str]]:
        """
        Fetch one ListRecords page.

        With a ``resumption_token`` the other arguments are ignored, as the
        protocol requires.

        Returns:
            The ``<record>`` elements of the page and the token of the next
            page (None on the last page)
        """
        if resumption_token:
            params = resumption_params(resumption_token)
        else:
            params = list_records_params(metadata_prefix, from_date, until_date)

        root = self._request(params)
        records = root.findall(f".//{_oai('record')}")
        next_token = element_text(root.find(f".//{_oai('resumptionToken')}"))
        return records, next_token

    def iter_records(
        self,
        metadata_prefix: str,
        from_date: Optional[str] = None,
        until_date: Optional[str] = None,
    ) -> Generator[ET.Element, None, None]:
        """
        Yield the records of a ListRecords query across all pages.

        An empty result set (``noRecordsMatch``) yields nothing; other
        errors propagate to the caller.
        """
        token: Optional[str] = None
        page = 0

        while True:
            try:
                records, token = self.list_records(
                    metadata_prefix,
                    from_date=from_date,
                    until_date=until_date,
                    resumption_token=token,
                )
            except OAIPMHError as exc:
                if exc.code != NO_RECORDS_MATCH:
                    raise
                logger.info("No records match the query at %s", self.base_url)
                return

            page += 1
            logger.debug("Page %d of %s holds %d records", page, self.base_url, len(records))
            yield from records

            if not token:
                return


def raise_for_oai_error(root: ET.Element) -> None:
    """Raise OAIPMHError for the first ``<error>`` of a response."""
    error = root.find(f".//{_oai('error')}")
    if error is not None:
        raise OAIPMHError(error.get("code", "unknown"), element_text(error) or "unspecified error")


def parse_identify(root: ET.Element) -> Optional[RepositoryIdentity]:
    identify = root.find(f".//{_oai('Identify')}")
    if identify is None:
        return None

    def text(tag: str) -> str:
        return element_text(identify.find(_oai(tag))) or ""

    return RepositoryIdentity(
        repository_name=text("repositoryName"),
        base_url=text("baseURL"),
        protocol_version=text("protocolVersion"),
        admin_emails=tuple(
            email for email in (element_text(e) for e in identify.findall(_oai("adminEmail"))) if email
        ),
        earliest_datestamp=text("earliestDatestamp"),
        deleted_record=text("deletedRecord"),
        granularity=text("granularity"),
    )


def parse_metadata_formats(root: ET.Element) -> List[Dict[str, str]]:
    """The ``metadataFormat`` entries of a ListMetadataFormats response."""
    return [
        {
            "metadataPrefix": element_text(entry.find(_oai("metadataPrefix"))) or "",
            "schema": element_text(entry.find(_oai("schema"))) or "",
            "metadataNamespace": element_text(entry.find(_oai("metadataNamespace"))) or "",
        }
        for entry in root.findall(f".//{_oai('metadataFormat')}")
    ]
