"""
Record transformers, one per supported metadata standard.
"""

from oaiharvest.transformers.base import RecordTransformer
from oaiharvest.transformers.catalog import (
    FORMAT_CATALOG,
    FormatCatalog,
    TransformerFactory,
    build_format_catalog,
)
from oaiharvest.transformers.dublin_core import OAI_DC_SCHEMA, DublinCoreTransformer
from oaiharvest.transformers.iso19139 import ISO19139_SCHEMA, Iso19139Transformer

__all__ = [
    "FORMAT_CATALOG",
    "FormatCatalog",
    "ISO19139_SCHEMA",
    "OAI_DC_SCHEMA",
    "DublinCoreTransformer",
    "Iso19139Transformer",
    "RecordTransformer",
    "TransformerFactory",
    "build_format_catalog",
]
