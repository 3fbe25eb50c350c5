"""
Negotiation of the metadata dialect and binding of a record transformer.

The dispatcher owns the usable format map of the current repository and the
currently selected metadata prefix. From both, plus the format catalog, it
derives the bound transformer.

Binding checks run in a fixed order:

1. the prefix must be set (:class:`EmptyPrefixError`)
2. the repository must advertise formats (:class:`NoRepositoryFormatsError`)
3. the repository must advertise the prefix (:class:`PrefixNotAdvertisedError`)
4. a local transformer must support its schema (:class:`SchemaNotSupportedError`)
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, List, Mapping, Optional

from oaiharvest.logging import get_logger
from oaiharvest.oai.formats import RemoteFormatResolver
from oaiharvest.oai.queries import NO_HOST_URL_ERROR, NO_METADATA_PREFIX_ERROR
from oaiharvest.transformers.base import RecordTransformer
from oaiharvest.transformers.catalog import FORMAT_CATALOG, FormatCatalog

logger = get_logger(__name__)


ALLOWED_VALUES = "Allowed values: "
REPOSITORY_UNSUPPORTED_METADATA_PREFIX_ERROR = (
    "The metadataPrefix '%s' is not supported by the repository!"
)
HARVESTER_UNSUPPORTED_METADATA_PREFIX_ERROR = (
    "The metadataPrefix '%s' is not supported by this harvester!"
)
NO_TRANSFORMER_ERROR = "No record transformer is bound; check hostUrl and metadataPrefix."


class ConfigurationError(ValueError):
    """
    A recoverable configuration problem.

    Attributes:
        allowed_values: Prefixes advertised by the repository that are
            also supported locally
    """

    def __init__(self, reason: str, allowed_values: Optional[List[str]] = None):
        self.reason = reason
        self.allowed_values = list(allowed_values or [])
        message = reason
        if self.allowed_values:
            message = f"{reason} {ALLOWED_VALUES}{', '.join(self.allowed_values)}"
        super().__init__(message)


class EmptyPrefixError(ConfigurationError):
    """The metadata prefix is unset or empty."""


class NoRepositoryFormatsError(ConfigurationError):
    """The repository address was never resolved or advertised nothing."""


class PrefixNotAdvertisedError(ConfigurationError):
    """The repository does not advertise the requested prefix."""


class SchemaNotSupportedError(ConfigurationError):
    """The prefix maps to a schema no local transformer supports."""


class TransformerUnavailableError(ConfigurationError):
    """No transformer is currently bound."""


@dataclass(frozen=True)
class DispatchState:
    """Immutable snapshot of the dispatcher; replaced as a whole."""

    address: Optional[str] = None
    prefix: Optional[str] = None
    formats: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    transformer: Optional[RecordTransformer] = None


class TransformerDispatcher:
    """
    Binds the configured metadata prefix to a local record transformer.

    Writers (``set_repository_address``, ``set_prefix``) are serialized and
    compute the new state off to the side before publishing it with a single
    assignment. Readers never observe a transformer bound against another
    format map than the one they see.
    """

    def __init__(
        self,
        resolver: Optional[RemoteFormatResolver] = None,
        catalog: FormatCatalog = FORMAT_CATALOG,
        prefix: Optional[str] = None,
    ):
        """
        Args:
            resolver: Fetches the formats advertised by a repository
            catalog: Locally supported schemas
            prefix: Initial metadata prefix; it is bound by the first
                ``set_repository_address`` call
        """
        self._resolver = resolver or RemoteFormatResolver()
        self._catalog = catalog
        self._state = DispatchState(prefix=prefix or None)
        self._write_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def state(self) -> DispatchState:
        return self._state

    @property
    def address(self) -> Optional[str]:
        return self._state.address

    @property
    def prefix(self) -> Optional[str]:
        return self._state.prefix

    @property
    def formats(self) -> Mapping[str, str]:
        return self._state.formats

    @property
    def catalog(self) -> FormatCatalog:
        return self._catalog

    def supported_prefixes(self) -> List[str]:
        """Advertised prefixes whose schema is supported locally, in advertised order."""
        return self._allowed_values(self._state.formats)

    def bound_state(self) -> DispatchState:
        """
        A snapshot that is guaranteed to carry a transformer.

        Raises:
            TransformerUnavailableError: If no transformer is bound
        """
        state = self._state
        if state.transformer is None:
            if not state.address:
                raise TransformerUnavailableError(NO_HOST_URL_ERROR)
            raise TransformerUnavailableError(
                NO_TRANSFORMER_ERROR, self._allowed_values(state.formats)
            )
        return state

    def current_transformer(self) -> RecordTransformer:
        """
        The bound transformer.

        Raises:
            TransformerUnavailableError: If no transformer is bound
        """
        return self.bound_state().transformer

    # ------------------------------------------------------------------
    # Reconfiguration
    # ------------------------------------------------------------------

    def set_repository_address(self, address: Optional[str]) -> bool:
        """
        Resolve the formats of a new repository and rebind the current prefix.

        Failures are logged, not raised; the dispatcher is then left without
        a bound transformer until the address or the prefix is corrected.

        Returns:
            True if a transformer is bound afterwards
        """
        with self._write_lock:
            formats = MappingProxyType(dict(self._resolver.resolve(address)))
            prefix = self._state.prefix
            transformer = None
            try:
                transformer = self._bind(prefix, formats)
            except ConfigurationError as exc:
                logger.warning("Cannot create transformer for %s: %s", address or "<unset>", exc)

            self._state = DispatchState(
                address=address,
                prefix=prefix,
                formats=formats,
                transformer=transformer,
            )
            return transformer is not None

    def set_prefix(self, prefix: Optional[str]) -> RecordTransformer:
        """
        Select a metadata prefix and bind its transformer.

        On failure the previous prefix and binding stay in place.

        Returns:
            The newly bound transformer

        Raises:
            ConfigurationError: One of the four binding checks failed
        """
        with self._write_lock:
            state = self._state
            transformer = self._bind(prefix, state.formats)
            self._state = DispatchState(
                address=state.address,
                prefix=prefix,
                formats=state.formats,
                transformer=transformer,
            )
            logger.info("Bound metadataPrefix '%s' to %s", prefix, transformer.name)
            return transformer

    def check_prefix(self, prefix: Optional[str]) -> str:
        """
        Run the binding checks without changing any state.

        Returns:
            The schema identifier the prefix maps to
        """
        return self._check(prefix, self._state.formats)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _allowed_values(self, formats: Mapping[str, str]) -> List[str]:
        return [prefix for prefix, schema_id in formats.items() if schema_id in self._catalog]

    def _check(self, prefix: Optional[str], formats: Mapping[str, str]) -> str:
        allowed = self._allowed_values(formats)

        if not prefix:
            raise EmptyPrefixError(NO_METADATA_PREFIX_ERROR, allowed)

        if not formats:
            raise NoRepositoryFormatsError(NO_HOST_URL_ERROR, allowed)

        schema_id = formats.get(prefix)
        if schema_id is None:
            raise PrefixNotAdvertisedError(
                REPOSITORY_UNSUPPORTED_METADATA_PREFIX_ERROR % prefix, allowed
            )

        if schema_id not in self._catalog:
            raise SchemaNotSupportedError(
                HARVESTER_UNSUPPORTED_METADATA_PREFIX_ERROR % prefix, allowed
            )

        return schema_id

    def _bind(self, prefix: Optional[str], formats: Mapping[str, str]) -> RecordTransformer:
        schema_id = self._check(prefix, formats)
        return self._catalog[schema_id]()

    def describe(self) -> dict[str, Any]:
        """Snapshot of the dispatcher state for diagnostics."""
        state = self._state
        return {
            "address": state.address,
            "prefix": state.prefix,
            "formats": dict(state.formats),
            "supported_prefixes": self._allowed_values(state.formats),
            "transformer": state.transformer.name if state.transformer else None,
        }
