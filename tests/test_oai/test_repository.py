"""
Tests for repository name lookup.
"""

from unittest.mock import patch

import pytest
import requests

from oaiharvest.oai.repository import UNKNOWN_PROVIDER, lookup_repository_name, name_from_host_url


@pytest.mark.parametrize(
    "host_url, expected",
    [
        ("https://www.pangaea.de/oai/provider", "Pangaea.de"),
        ("http://ws.pangaea.de/oai/provider", "Ws.pangaea.de"),
        ("api.figshare.com/v2/oai", "Api.figshare.com"),
        ("https://zenodo.org:443/oai2d", "Zenodo.org"),
        ("", None),
        (None, None),
        ("https://_invalid", None),
    ],
)
def test_name_from_host_url(host_url, expected):
    assert name_from_host_url(host_url) == expected


class TestLookupRepositoryName:
    def test_uses_identify(self, fake_repository):
        repository = fake_repository()

        with patch("requests.get", side_effect=repository):
            name = lookup_repository_name("http://example.org/oai")

        assert name == "Test Repository"
        assert repository.verbs() == ["Identify"]

    @patch("requests.get")
    def test_identify_timeout(self, mock_get, response_factory, oai_xml):
        mock_get.return_value = response_factory(oai_xml.identify)

        lookup_repository_name("http://example.org/oai", timeout=2)

        assert mock_get.call_args.kwargs["timeout"] == 2

    @patch("requests.get")
    def test_falls_back_to_host_name(self, mock_get):
        mock_get.side_effect = requests.Timeout("too slow")

        assert lookup_repository_name("https://www.pangaea.de/oai/provider") == "Pangaea.de"

    @patch("requests.get")
    def test_falls_back_when_name_is_empty(self, mock_get, response_factory, oai_xml):
        body = oai_xml.identify.replace("Test Repository", "  ")
        mock_get.return_value = response_factory(body)

        assert lookup_repository_name("http://www.example.org/oai") == "Example.org"

    def test_unset_host(self):
        with patch("requests.get") as mock_get:
            assert lookup_repository_name(None) == UNKNOWN_PROVIDER
        mock_get.assert_not_called()

    @patch("requests.get")
    def test_unknown_provider(self, mock_get):
        mock_get.side_effect = requests.ConnectionError("refused")

        assert lookup_repository_name("http://_/oai") == UNKNOWN_PROVIDER
