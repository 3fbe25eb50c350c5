"""
OAI-PMH harvester.

Owns the harvest parameters, keeps the transformer dispatcher in sync with
them, and turns the records of a repository into normalized documents.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import replace
from typing import Callable, Dict, Generator, List, Optional
from urllib.parse import urlparse

import requests

from oaiharvest.config import HarvestConfig, canonical_key
from oaiharvest.dispatcher import ConfigurationError, TransformerDispatcher
from oaiharvest.documents import DataCiteDocument
from oaiharvest.logging import exception_exc_info, format_exception_summary, get_logger
from oaiharvest.oai import queries
from oaiharvest.oai.client import OAI_NAMESPACE, OAIPMHClient, OAIPMHError
from oaiharvest.oai.formats import RemoteFormatResolver
from oaiharvest.oai.repository import lookup_repository_name
from oaiharvest.transformers.catalog import build_format_catalog
from oaiharvest.transformers.fields import element_text, parse_datetime

logger = get_logger(__name__)


ParameterListener = Callable[[str, Optional[str]], None]

#: Harvest parameters that can be changed at runtime
PARAMETERS = ("from_date", "until_date", "host_url", "metadata_prefix", "logo_url")

_URL_PARAMETERS = ("host_url", "logo_url")
_DATE_PARAMETERS = ("from_date", "until_date")


def _record_identifier(record: ET.Element) -> Optional[str]:
    return element_text(record.find(f"{{{OAI_NAMESPACE}}}header/{{{OAI_NAMESPACE}}}identifier"))


class OaiPmhHarvester:
    """
    Harvests one OAI-PMH repository with the transformer matching its
    configured metadata prefix.

    Typical use::

        harvester = OaiPmhHarvester(config)
        harvester.configure()
        for document in harvester.harvest():
            ...
    """

    def __init__(
        self,
        config: Optional[HarvestConfig] = None,
        dispatcher: Optional[TransformerDispatcher] = None,
        client_factory: Optional[Callable[[str], OAIPMHClient]] = None,
    ):
        """
        Args:
            config: Initial harvest parameters
            dispatcher: Custom dispatcher; built from the config if omitted
            client_factory: Builds the OAI-PMH client for a base URL
        """
        self.config = config or HarvestConfig()
        self._client_factory = client_factory or self._default_client
        self.dispatcher = dispatcher or TransformerDispatcher(
            resolver=RemoteFormatResolver(
                timeout=self.config.timeout,
                user_agent=self.config.user_agent,
                client_factory=self._client_factory,
            ),
            catalog=build_format_catalog(self.config.repository_identifier),
            prefix=self.config.metadata_prefix,
        )
        self._listeners: List[ParameterListener] = []

    def _default_client(self, base_url: str) -> OAIPMHClient:
        return OAIPMHClient(
            base_url,
            timeout=self.config.timeout,
            user_agent=self.config.user_agent,
            min_interval_seconds=self.config.min_interval_seconds,
        )

    # ------------------------------------------------------------------
    # Parameters
    # ------------------------------------------------------------------

    def configure(self) -> bool:
        """
        Negotiate the metadata format with the configured repository.

        Returns:
            True if a transformer is bound afterwards
        """
        if not self.config.host_url:
            logger.warning(queries.NO_HOST_URL_ERROR)
            return False
        return self.dispatcher.set_repository_address(self.config.host_url)

    def add_listener(self, listener: ParameterListener) -> None:
        """Register a callback invoked with (parameter name, new value)."""
        self._listeners.append(listener)

    def remove_listener(self, listener: ParameterListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def get_parameter(self, key: str) -> Optional[str]:
        name = self._parameter_name(key)
        return getattr(self.config, name)

    def parameters(self) -> Dict[str, Optional[str]]:
        return {name: getattr(self.config, name) for name in PARAMETERS}

    def set_parameter(self, key: str, value: Optional[str]) -> None:
        """
        Change a harvest parameter.

        Changing ``hostUrl`` re-negotiates the metadata formats; changing
        ``metadataPrefix`` rebinds the transformer.

        Args:
            key: Parameter name (``hostUrl`` or ``host_url`` style)
            value: New value; empty strings unset the parameter

        Raises:
            ValueError: If the key is unknown or the value is invalid; a
                rejected value is not stored
        """
        name = self._parameter_name(key)
        if isinstance(value, str):
            value = value.strip() or None

        if name in _URL_PARAMETERS and value:
            parsed = urlparse(value)
            if parsed.scheme not in ("http", "https") or not parsed.netloc:
                raise ValueError(f"{key} must be an http(s) URL, got: {value}")

        if name in _DATE_PARAMETERS and value and parse_datetime(value) is None:
            raise ValueError(f"{key} must be an ISO 8601 date, got: {value}")

        if name == "metadata_prefix":
            # raises ConfigurationError and keeps the old binding
            self.dispatcher.set_prefix(value)
            self.config = replace(self.config, metadata_prefix=value)
        elif name == "host_url":
            self.config = replace(self.config, host_url=value)
            self.dispatcher.set_repository_address(value)
        else:
            self.config = replace(self.config, **{name: value})

        for listener in list(self._listeners):
            listener(name, value)

    @staticmethod
    def _parameter_name(key: str) -> str:
        name = canonical_key(key)
        if name not in PARAMETERS:
            raise ValueError(f"Unknown harvest parameter: {key}")
        return name

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_records_url(self) -> str:
        """
        ListRecords URL of the current configuration.

        Raises:
            ValueError: If the host URL or the metadata prefix is not set
        """
        return queries.list_records_url(
            self.config.host_url,
            self.config.metadata_prefix,
            self.config.from_date,
            self.config.until_date,
        )

    def metadata_formats_url(self) -> str:
        return queries.metadata_formats_url(self.config.host_url)

    def identify_url(self) -> str:
        return queries.identify_url(self.config.host_url)

    def resumption_url(self, resumption_token: str) -> str:
        return queries.resumption_url(self.config.host_url, resumption_token)

    def get_repository_name(self) -> str:
        """Human-readable name of the configured repository."""
        return lookup_repository_name(
            self.config.host_url,
            timeout=self.config.identify_timeout,
            user_agent=self.config.user_agent,
            client_factory=self._client_factory,
        )

    def get_logo_url(self) -> Optional[str]:
        return self.config.logo_url

    # ------------------------------------------------------------------
    # Harvesting
    # ------------------------------------------------------------------

    def harvest(self, limit: Optional[int] = None) -> Generator[DataCiteDocument, None, None]:
        """
        Yield the documents of all records matching the configuration.

        Nothing is yielded while no transformer is bound. Records whose
        transformation fails are logged and skipped.

        Args:
            limit: Stop after this many documents; zero or less yields nothing
        """
        try:
            state = self.dispatcher.bound_state()
        except ConfigurationError as exc:
            logger.error("Cannot harvest: %s", exc)
            return

        if limit is not None and limit <= 0:
            logger.info("Nothing to harvest with limit %d", limit)
            return

        transformer = state.transformer
        client = self._client_factory(state.address)
        harvested = skipped = failed = 0

        logger.info("Harvesting %s with metadataPrefix '%s'", state.address, state.prefix)

        try:
            for record in client.iter_records(
                state.prefix,
                from_date=self.config.from_date,
                until_date=self.config.until_date,
            ):
                try:
                    document = transformer.transform(record)
                except Exception as exc:
                    failed += 1
                    record_id = _record_identifier(record) or "<unknown>"
                    logger.warning(
                        "Could not transform record %s: %s",
                        record_id,
                        format_exception_summary(exc),
                    )
                    logger.debug(
                        "Transformation failure of record %s",
                        record_id,
                        exc_info=exception_exc_info(exc),
                    )
                    continue

                if document is None:
                    skipped += 1
                    continue

                harvested += 1
                yield document

                if limit is not None and harvested >= limit:
                    logger.debug("Reached limit of %d documents", limit)
                    break
        except (requests.RequestException, ET.ParseError, OAIPMHError) as exc:
            logger.error("Harvest of %s aborted: %s", state.address, format_exception_summary(exc))

        logger.info(
            "Harvested %d documents from %s (%d skipped, %d failed)",
            harvested,
            state.address,
            skipped,
            failed,
        )
