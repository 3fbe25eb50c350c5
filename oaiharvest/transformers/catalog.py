"""
Catalog of locally supported metadata standards.

Maps a schema identifier (the metadata namespace a repository advertises
via ListMetadataFormats) to a zero-argument factory that builds a fresh
transformer for that standard.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Callable, Dict, Mapping

from oaiharvest.transformers.base import RecordTransformer
from oaiharvest.transformers.dublin_core import OAI_DC_SCHEMA, DublinCoreTransformer
from oaiharvest.transformers.iso19139 import ISO19139_SCHEMA, Iso19139Transformer


TransformerFactory = Callable[[], RecordTransformer]
FormatCatalog = Mapping[str, TransformerFactory]


def build_format_catalog(repository_identifier: str = "OAI-PMH") -> FormatCatalog:
    """
    Build the read-only schema catalog.

    Args:
        repository_identifier: Fixed identifier written into documents of
            dialects that cannot derive it from the record

    Returns:
        Immutable mapping of schema identifier to transformer factory
    """
    factories: Dict[str, TransformerFactory] = {
        ISO19139_SCHEMA: lambda: Iso19139Transformer(repository_identifier),
        OAI_DC_SCHEMA: DublinCoreTransformer,
    }
    return MappingProxyType(factories)


FORMAT_CATALOG: FormatCatalog = build_format_catalog()
