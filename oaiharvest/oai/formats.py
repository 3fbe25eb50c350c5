"""
Resolution of the metadata formats a repository advertises.
"""

from __future__ import annotations

from typing import Callable, Dict, Optional

from oaiharvest.logging import get_logger
from oaiharvest.oai.client import DEFAULT_USER_AGENT, OAIPMHClient, parse_metadata_formats
from oaiharvest.oai.queries import NO_HOST_URL_ERROR, metadata_formats_params

logger = get_logger(__name__)


CANNOT_GET_METADATA_SCHEMAS_ERROR = "Could not retrieve the metadata formats of %s"

ClientFactory = Callable[[str], OAIPMHClient]


class RemoteFormatResolver:
    """
    Builds the usable format map (prefix -> schema identifier) of a repository.

    Every advertised pair is kept, including schemas no local transformer
    supports; filtering happens when a prefix is bound.
    """

    def __init__(
        self,
        timeout: float = 30,
        user_agent: str = DEFAULT_USER_AGENT,
        client_factory: Optional[ClientFactory] = None,
    ):
        self.timeout = timeout
        self.user_agent = user_agent
        self._client_factory = client_factory or self._default_client

    def _default_client(self, address: str) -> OAIPMHClient:
        return OAIPMHClient(address, timeout=self.timeout, user_agent=self.user_agent)

    def resolve(self, repository_address: Optional[str]) -> Dict[str, str]:
        """
        Query ListMetadataFormats of a repository.

        Args:
            repository_address: OAI-PMH base URL

        Returns:
            Mapping of metadata prefix to schema identifier; empty if the
            repository could not be queried or advertised nothing
        """
        if not repository_address:
            logger.error(NO_HOST_URL_ERROR)
            return {}

        client = self._client_factory(repository_address)
        root = client.fetch(metadata_formats_params())
        if root is None:
            logger.error(CANNOT_GET_METADATA_SCHEMAS_ERROR, repository_address)
            return {}

        formats: Dict[str, str] = {}
        for entry in parse_metadata_formats(root):
            prefix = entry["metadataPrefix"]
            schema_id = entry["metadataNamespace"] or entry["schema"]
            if prefix and schema_id:
                formats[prefix] = schema_id

        if not formats:
            logger.error("Repository %s advertises no metadata formats", repository_address)
        else:
            logger.debug("Repository %s advertises %s", repository_address, formats)

        return formats
