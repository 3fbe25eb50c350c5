"""
Tests for the OAI-PMH protocol client.
"""

import xml.etree.ElementTree as ET
from unittest.mock import Mock, patch

import pytest
import requests

from oaiharvest.oai.client import OAI_NAMESPACE, OAIPMHClient, OAIPMHError, parse_identify


FORMATS = {
    "oai_dc": "http://www.openarchives.org/OAI/2.0/oai_dc/",
    "marc21": "http://www.loc.gov/MARC21/slim",
}


def _identifiers(records):
    return [
        record.find(f"{{{OAI_NAMESPACE}}}header/{{{OAI_NAMESPACE}}}identifier").text
        for record in records
    ]


class TestOAIPMHClient:
    """Tests for OAIPMHClient class."""

    def test_client_initialization(self):
        client = OAIPMHClient("http://example.org/oai/", timeout=10, min_interval_seconds=0.5)
        assert client.base_url == "http://example.org/oai"
        assert client.timeout == 10
        assert client.min_interval_seconds == 0.5

    def test_client_requires_base_url(self):
        with pytest.raises(ValueError, match="hostUrl"):
            OAIPMHClient("")

    @patch("requests.get")
    def test_identify(self, mock_get, response_factory, oai_xml):
        mock_get.return_value = response_factory(oai_xml.identify)

        info = OAIPMHClient("http://example.org/oai").identify()

        assert info.repository_name == "Test Repository"
        assert info.protocol_version == "2.0"
        assert info.admin_emails == ("admin@example.org",)
        assert info.granularity == "YYYY-MM-DD"

        args, kwargs = mock_get.call_args
        assert args[0] == "http://example.org/oai"
        assert kwargs["params"] == {"verb": "Identify"}
        assert "User-Agent" in kwargs["headers"]

    @patch("requests.get")
    def test_request_timeout_override(self, mock_get, response_factory, oai_xml):
        mock_get.return_value = response_factory(oai_xml.identify)

        OAIPMHClient("http://example.org/oai", timeout=30).identify(timeout=5)

        assert mock_get.call_args.kwargs["timeout"] == 5

    @patch("requests.get")
    def test_list_metadata_formats(self, mock_get, response_factory, oai_xml):
        mock_get.return_value = response_factory(oai_xml.formats(FORMATS))

        formats = OAIPMHClient("http://example.org/oai").list_metadata_formats()

        assert [f["metadataPrefix"] for f in formats] == ["oai_dc", "marc21"]
        assert formats[1]["metadataNamespace"] == "http://www.loc.gov/MARC21/slim"

    @patch("requests.get")
    def test_list_records_returns_token(self, mock_get, response_factory, oai_xml):
        body = oai_xml.records([oai_xml.dc_record("oai:test:1")], token="next-page")
        mock_get.return_value = response_factory(body)

        records, token = OAIPMHClient("http://example.org/oai").list_records("oai_dc")

        assert _identifiers(records) == ["oai:test:1"]
        assert token == "next-page"
        assert mock_get.call_args.kwargs["params"] == {
            "verb": "ListRecords",
            "metadataPrefix": "oai_dc",
        }

    @patch("requests.get")
    def test_error_response_raises(self, mock_get, response_factory, oai_xml):
        mock_get.return_value = response_factory(oai_xml.error("badArgument", "Illegal argument"))

        with pytest.raises(OAIPMHError) as exc_info:
            OAIPMHClient("http://example.org/oai").list_metadata_formats()

        assert exc_info.value.code == "badArgument"
        assert "Illegal argument" in str(exc_info.value)

    @patch("requests.get")
    def test_http_error_propagates(self, mock_get):
        response = Mock()
        response.raise_for_status.side_effect = requests.HTTPError("503 Server Error")
        mock_get.return_value = response

        with pytest.raises(requests.HTTPError):
            OAIPMHClient("http://example.org/oai").identify()


class TestFetch:
    @patch("requests.get")
    def test_fetch_returns_root(self, mock_get, response_factory, oai_xml):
        mock_get.return_value = response_factory(oai_xml.identify)

        root = OAIPMHClient("http://example.org/oai").fetch({"verb": "Identify"})

        assert isinstance(root, ET.Element)

    @patch("requests.get")
    def test_fetch_swallows_connection_errors(self, mock_get):
        mock_get.side_effect = requests.ConnectionError("refused")

        assert OAIPMHClient("http://example.org/oai").fetch({"verb": "Identify"}) is None

    @patch("requests.get")
    def test_fetch_swallows_malformed_xml(self, mock_get, response_factory):
        mock_get.return_value = response_factory("<html><body>Maintenance")

        assert OAIPMHClient("http://example.org/oai").fetch({"verb": "Identify"}) is None

    @patch("requests.get")
    def test_fetch_swallows_protocol_errors(self, mock_get, response_factory, oai_xml):
        mock_get.return_value = response_factory(oai_xml.error("badVerb", "Illegal verb"))

        assert OAIPMHClient("http://example.org/oai").fetch({"verb": "Nope"}) is None


class TestIterRecords:
    def test_follows_resumption_tokens(self, fake_repository, oai_xml):
        repository = fake_repository(pages={
            None: oai_xml.records(
                [oai_xml.dc_record("oai:test:1"), oai_xml.dc_record("oai:test:2")],
                token="page-2",
            ),
            "page-2": oai_xml.records([oai_xml.dc_record("oai:test:3")]),
        })

        with patch("requests.get", side_effect=repository):
            records = list(OAIPMHClient("http://example.org/oai").iter_records("oai_dc"))

        assert _identifiers(records) == ["oai:test:1", "oai:test:2", "oai:test:3"]
        assert repository.calls[1] == {"verb": "ListRecords", "resumptionToken": "page-2"}

    def test_passes_date_range(self, fake_repository, oai_xml):
        repository = fake_repository(pages={None: oai_xml.records([])})

        with patch("requests.get", side_effect=repository):
            list(OAIPMHClient("http://example.org/oai").iter_records(
                "oai_dc", from_date="2020-01-01", until_date="2020-02-01"
            ))

        assert repository.calls[0]["from"] == "2020-01-01"
        assert repository.calls[0]["until"] == "2020-02-01"

    def test_no_records_match_is_empty(self, fake_repository):
        repository = fake_repository()

        with patch("requests.get", side_effect=repository):
            records = list(OAIPMHClient("http://example.org/oai").iter_records("oai_dc"))

        assert records == []

    @patch("requests.get")
    def test_other_errors_propagate(self, mock_get, response_factory, oai_xml):
        mock_get.return_value = response_factory(
            oai_xml.error("cannotDisseminateFormat", "Unknown format")
        )

        with pytest.raises(OAIPMHError):
            list(OAIPMHClient("http://example.org/oai").iter_records("unknown"))


class TestThrottle:
    def test_sleeps_between_requests(self):
        client = OAIPMHClient("http://example.org/oai", min_interval_seconds=1.0)

        with patch("oaiharvest.oai.client.time.monotonic", side_effect=[100.0, 100.0, 100.2, 101.0]), \
                patch("oaiharvest.oai.client.time.sleep") as mock_sleep:
            client._wait_for_slot()
            client._wait_for_slot()

        mock_sleep.assert_called_once()
        assert mock_sleep.call_args.args[0] == pytest.approx(0.8)

    def test_no_throttle_by_default(self):
        client = OAIPMHClient("http://example.org/oai")

        with patch("oaiharvest.oai.client.time.sleep") as mock_sleep:
            client._wait_for_slot()
            client._wait_for_slot()

        mock_sleep.assert_not_called()


def test_parse_identify_without_identify_element(oai_xml, parse_xml):
    root = parse_xml(oai_xml.error("badVerb", "Illegal verb"))
    assert parse_identify(root) is None
