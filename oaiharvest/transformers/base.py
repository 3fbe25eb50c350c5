"""
Base interface for record transformers.

A record transformer turns one raw OAI-PMH ``<record>`` element into one
:class:`~oaiharvest.documents.DataCiteDocument`, or returns ``None`` when the
record is to be skipped.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from abc import ABC, abstractmethod
from typing import Callable, Optional, TypeVar

from oaiharvest.documents import DataCiteDocument
from oaiharvest.logging import format_exception_summary, get_logger
from oaiharvest.transformers.fields import element_text, local_name

logger = get_logger(__name__)

T = TypeVar("T")

OAI_NAMESPACE = "http://www.openarchives.org/OAI/2.0/"

DELETED_STATUS = "deleted"


def child_element(parent: Optional[ET.Element], name: str) -> Optional[ET.Element]:
    """First direct child with the given local name, in any namespace."""
    if parent is None:
        return None
    for child in parent:
        if isinstance(child.tag, str) and local_name(child.tag) == name:
            return child
    return None


class RecordTransformer(ABC):
    """
    Abstract base class for metadata dialect transformers.

    Subclasses must be stateless between records: only immutable
    configuration may be stored on the instance.
    """

    #: Short name used in diagnostics
    name: str = "abstract"

    #: Schema identifier (metadata namespace) handled by the transformer
    schema: str = ""

    @abstractmethod
    def transform(self, record: ET.Element) -> Optional[DataCiteDocument]:
        """
        Convert one raw record into a document.

        Args:
            record: The ``<record>`` element with ``<header>`` and ``<metadata>``

        Returns:
            The document, or None if the record is skipped
        """

    # ------------------------------------------------------------------
    # Helpers shared by all dialects
    # ------------------------------------------------------------------

    @staticmethod
    def header(record: ET.Element) -> Optional[ET.Element]:
        return child_element(record, "header")

    @staticmethod
    def metadata(record: ET.Element) -> Optional[ET.Element]:
        return child_element(record, "metadata")

    @classmethod
    def header_text(cls, record: ET.Element, name: str) -> Optional[str]:
        return element_text(child_element(cls.header(record), name))

    @classmethod
    def is_deleted(cls, record: ET.Element) -> bool:
        """Whether the record header carries ``status="deleted"``."""
        header = cls.header(record)
        return header is not None and header.get("status") == DELETED_STATUS

    def extract(
        self,
        field_name: str,
        record_id: Optional[str],
        func: Callable[[], T],
    ) -> Optional[T]:
        """
        Run one field extraction in isolation.

        A failing extraction is logged and yields None so that the other
        fields of the record are still extracted.
        """
        try:
            return func()
        except Exception as exc:
            logger.warning(
                "%s: could not extract %s of record %s: %s",
                self.name,
                field_name,
                record_id or "<unknown>",
                format_exception_summary(exc),
            )
            return None

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"
