"""
Tests for metadata format resolution.
"""

import logging
from unittest.mock import Mock, patch

import requests

from oaiharvest.oai.formats import RemoteFormatResolver


FORMATS = {
    "oai_dc": "http://www.openarchives.org/OAI/2.0/oai_dc/",
    "iso19139": "http://www.isotc211.org/2005/gmd",
    "marc21": "http://www.loc.gov/MARC21/slim",
}

SCHEMA_ONLY_RESPONSE = """<?xml version="1.0" encoding="UTF-8"?>
<OAI-PMH xmlns="http://www.openarchives.org/OAI/2.0/">
  <ListMetadataFormats>
    <metadataFormat>
      <metadataPrefix>custom</metadataPrefix>
      <schema>http://example.org/custom.xsd</schema>
    </metadataFormat>
    <metadataFormat>
      <metadataPrefix></metadataPrefix>
      <schema>http://example.org/broken.xsd</schema>
    </metadataFormat>
  </ListMetadataFormats>
</OAI-PMH>
"""


class TestRemoteFormatResolver:
    def test_resolves_advertised_formats(self, fake_repository):
        repository = fake_repository(formats=FORMATS)

        with patch("requests.get", side_effect=repository):
            formats = RemoteFormatResolver().resolve("http://example.org/oai")

        assert formats == FORMATS
        assert list(formats) == ["oai_dc", "iso19139", "marc21"]
        assert repository.verbs() == ["ListMetadataFormats"]

    def test_keeps_unsupported_schemas(self, fake_repository):
        repository = fake_repository(formats={"marc21": FORMATS["marc21"]})

        with patch("requests.get", side_effect=repository):
            formats = RemoteFormatResolver().resolve("http://example.org/oai")

        assert formats == {"marc21": "http://www.loc.gov/MARC21/slim"}

    @patch("requests.get")
    def test_falls_back_to_schema_location(self, mock_get, response_factory):
        mock_get.return_value = response_factory(SCHEMA_ONLY_RESPONSE)

        formats = RemoteFormatResolver().resolve("http://example.org/oai")

        assert formats == {"custom": "http://example.org/custom.xsd"}

    def test_resolution_is_repeatable(self, fake_repository):
        repository = fake_repository(formats=FORMATS)
        resolver = RemoteFormatResolver()

        with patch("requests.get", side_effect=repository):
            first = resolver.resolve("http://example.org/oai")
            second = resolver.resolve("http://example.org/oai")

        assert first == second

    def test_unset_address(self, caplog):
        with patch("requests.get") as mock_get, caplog.at_level(logging.ERROR, logger="oaiharvest"):
            assert RemoteFormatResolver().resolve(None) == {}

        mock_get.assert_not_called()
        assert "hostUrl" in caplog.text

    @patch("requests.get")
    def test_unreachable_repository(self, mock_get, caplog):
        mock_get.side_effect = requests.ConnectionError("refused")

        with caplog.at_level(logging.ERROR, logger="oaiharvest"):
            formats = RemoteFormatResolver().resolve("http://down.example.org/oai")

        assert formats == {}
        assert "Could not retrieve the metadata formats of http://down.example.org/oai" in caplog.text

    def test_empty_advertisement(self, fake_repository, caplog):
        with patch("requests.get", side_effect=fake_repository()), \
                caplog.at_level(logging.ERROR, logger="oaiharvest"):
            formats = RemoteFormatResolver().resolve("http://example.org/oai")

        assert formats == {}
        assert "advertises no metadata formats" in caplog.text

    def test_uses_client_factory(self):
        client = Mock()
        client.fetch.return_value = None
        factory = Mock(return_value=client)

        assert RemoteFormatResolver(client_factory=factory).resolve("http://example.org/oai") == {}
        factory.assert_called_once_with("http://example.org/oai")
