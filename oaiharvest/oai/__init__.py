"""
OAI-PMH protocol access: queries, client, format resolution and
repository identification.
"""

from oaiharvest.oai.client import OAI_NAMESPACE, OAIPMHClient, OAIPMHError
from oaiharvest.oai.formats import RemoteFormatResolver
from oaiharvest.oai.repository import UNKNOWN_PROVIDER, lookup_repository_name, name_from_host_url

__all__ = [
    "OAI_NAMESPACE",
    "OAIPMHClient",
    "OAIPMHError",
    "RemoteFormatResolver",
    "UNKNOWN_PROVIDER",
    "lookup_repository_name",
    "name_from_host_url",
]
