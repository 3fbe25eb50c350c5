"""
Shared pytest fixtures for the harvester tests.

Provides canned OAI-PMH responses and a fake ``requests.get`` that answers
by verb, so that no test touches the network.
"""

import logging
import xml.etree.ElementTree as ET
from types import SimpleNamespace
from typing import Callable, Dict, List, Optional
from unittest.mock import Mock

import pytest


IDENTIFY_RESPONSE = """<?xml version="1.0" encoding="UTF-8"?>
<OAI-PMH xmlns="http://www.openarchives.org/OAI/2.0/">
  <responseDate>2024-01-01T00:00:00Z</responseDate>
  <request verb="Identify">http://example.org/oai</request>
  <Identify>
    <repositoryName>Test Repository</repositoryName>
    <baseURL>http://example.org/oai</baseURL>
    <protocolVersion>2.0</protocolVersion>
    <adminEmail>admin@example.org</adminEmail>
    <earliestDatestamp>2000-01-01</earliestDatestamp>
    <deletedRecord>persistent</deletedRecord>
    <granularity>YYYY-MM-DD</granularity>
  </Identify>
</OAI-PMH>
"""


def metadata_formats_response(formats: Dict[str, str]) -> str:
    """ListMetadataFormats response advertising ``prefix -> namespace`` pairs."""
    entries = "".join(
        f"""
    <metadataFormat>
      <metadataPrefix>{prefix}</metadataPrefix>
      <schema>{namespace}schema.xsd</schema>
      <metadataNamespace>{namespace}</metadataNamespace>
    </metadataFormat>"""
        for prefix, namespace in formats.items()
    )
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<OAI-PMH xmlns="http://www.openarchives.org/OAI/2.0/">
  <responseDate>2024-01-01T00:00:00Z</responseDate>
  <request verb="ListMetadataFormats">http://example.org/oai</request>
  <ListMetadataFormats>{entries}
  </ListMetadataFormats>
</OAI-PMH>
"""


def list_records_response(records: List[str], token: Optional[str] = None) -> str:
    """ListRecords page containing the given ``<record>`` snippets."""
    token_xml = f'<resumptionToken cursor="0">{token}</resumptionToken>' if token else ""
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<OAI-PMH xmlns="http://www.openarchives.org/OAI/2.0/">
  <responseDate>2024-01-01T00:00:00Z</responseDate>
  <ListRecords>
    {''.join(records)}
    {token_xml}
  </ListRecords>
</OAI-PMH>
"""


def dc_record(identifier: str, title: str = "A title", deleted: bool = False) -> str:
    status = ' status="deleted"' if deleted else ""
    metadata = "" if deleted else f"""
      <metadata>
        <oai_dc:dc xmlns:oai_dc="http://www.openarchives.org/OAI/2.0/oai_dc/"
                   xmlns:dc="http://purl.org/dc/elements/1.1/">
          <dc:title>{title}</dc:title>
          <dc:date>2020-05-01</dc:date>
        </oai_dc:dc>
      </metadata>"""
    return f"""
    <record>
      <header{status}>
        <identifier>{identifier}</identifier>
        <datestamp>2021-01-01</datestamp>
      </header>{metadata}
    </record>"""


ERROR_RESPONSE = """<?xml version="1.0" encoding="UTF-8"?>
<OAI-PMH xmlns="http://www.openarchives.org/OAI/2.0/">
  <responseDate>2024-01-01T00:00:00Z</responseDate>
  <error code="{code}">{message}</error>
</OAI-PMH>
"""


def make_response(content: str) -> Mock:
    response = Mock()
    response.content = content.encode("utf-8")
    response.raise_for_status = Mock()
    return response


class FakeRepository:
    """
    Stand-in for ``requests.get`` that answers OAI-PMH verbs.

    ``pages`` maps a resumption token (None for the first page) to the
    ListRecords response body.
    """

    def __init__(
        self,
        formats: Optional[Dict[str, str]] = None,
        pages: Optional[Dict[Optional[str], str]] = None,
        identify: str = IDENTIFY_RESPONSE,
    ):
        self.formats = formats or {}
        self.pages = pages or {}
        self.identify = identify
        self.calls: List[Dict[str, str]] = []

    def __call__(self, url, params=None, headers=None, timeout=None):
        params = dict(params or {})
        self.calls.append(params)
        verb = params.get("verb")
        if verb == "Identify":
            return make_response(self.identify)
        if verb == "ListMetadataFormats":
            return make_response(metadata_formats_response(self.formats))
        if verb == "ListRecords":
            body = self.pages.get(params.get("resumptionToken"))
            if body is None:
                body = ERROR_RESPONSE.format(code="noRecordsMatch", message="No records")
            return make_response(body)
        return make_response(ERROR_RESPONSE.format(code="badVerb", message="Illegal verb"))

    def verbs(self) -> List[str]:
        return [call.get("verb", "") for call in self.calls]


@pytest.fixture
def response_factory() -> Callable[[str], Mock]:
    return make_response


@pytest.fixture
def oai_xml() -> SimpleNamespace:
    """Builders for canned OAI-PMH response bodies."""
    return SimpleNamespace(
        identify=IDENTIFY_RESPONSE,
        formats=metadata_formats_response,
        records=list_records_response,
        dc_record=dc_record,
        error=lambda code, message="": ERROR_RESPONSE.format(code=code, message=message),
    )


@pytest.fixture
def fake_repository() -> Callable[..., FakeRepository]:
    """Build a FakeRepository to use as ``requests.get`` side effect."""
    return FakeRepository


@pytest.fixture
def parse_xml() -> Callable[[str], ET.Element]:
    return lambda text: ET.fromstring(text.strip())


@pytest.fixture(autouse=True)
def _restore_harvester_logging():
    """Undo handlers and levels installed by setup_logging during a test."""
    logger = logging.getLogger("oaiharvest")
    handlers = list(logger.handlers)
    level = logger.level
    propagate = logger.propagate
    yield
    for handler in logger.handlers:
        if handler not in handlers:
            handler.close()
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate
