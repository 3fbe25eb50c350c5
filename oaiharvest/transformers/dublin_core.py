"""
Record transformer for the Dublin Core (oai_dc) metadata format.

Dublin Core is the minimum format every OAI-PMH repository must serve.
Elements: title, creator, subject, description, publisher, contributor,
date, type, format, identifier, source, language, relation, coverage, rights
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from typing import Dict, List, Optional, Tuple

from oaiharvest.documents import (
    Contributor,
    ContributorType,
    Creator,
    DataCiteDocument,
    DateEntry,
    DateType,
    Description,
    DescriptionType,
    Identifier,
    RelatedIdentifier,
    RelatedIdentifierType,
    RelationType,
    Subject,
    Title,
    WebLink,
    WebLinkType,
)
from oaiharvest.logging import get_logger
from oaiharvest.transformers.base import RecordTransformer, child_element
from oaiharvest.transformers.fields import (
    element_text,
    extract_year,
    find_all_text,
    find_text,
    is_valid_url,
    local_name,
    normalize_doi,
)

logger = get_logger(__name__)


OAI_DC_SCHEMA = "http://www.openarchives.org/OAI/2.0/oai_dc/"
DC_NAMESPACE = "http://purl.org/dc/elements/1.1/"
DCTERMS_NAMESPACE = "http://purl.org/dc/terms/"

NAMESPACES: Dict[str, str] = {
    "oai_dc": OAI_DC_SCHEMA,
    "dc": DC_NAMESPACE,
    "dcterms": DCTERMS_NAMESPACE,
}

# (namespace, element name) -> DataCite date type
DATE_TYPE_MAP: Dict[Tuple[str, str], DateType] = {
    (DC_NAMESPACE, "date"): DateType.AVAILABLE,
    (DCTERMS_NAMESPACE, "created"): DateType.CREATED,
    (DCTERMS_NAMESPACE, "issued"): DateType.ISSUED,
    (DCTERMS_NAMESPACE, "modified"): DateType.UPDATED,
    (DCTERMS_NAMESPACE, "available"): DateType.AVAILABLE,
    (DCTERMS_NAMESPACE, "dateAccepted"): DateType.ACCEPTED,
    (DCTERMS_NAMESPACE, "dateSubmitted"): DateType.SUBMITTED,
}


def _split_tag(tag: str) -> Tuple[str, str]:
    if tag.startswith("{"):
        namespace, _, name = tag[1:].partition("}")
        return namespace, name
    return "", tag


class DublinCoreTransformer(RecordTransformer):
    """
    Transformer for ``oai_dc:dc`` records.

    Unlike ISO 19139, deleted records are kept as tombstones carrying the
    identifier, the Updated date and the deleted marker.
    """

    name = "oai_dc"
    schema = OAI_DC_SCHEMA

    def transform(self, record: ET.Element) -> Optional[DataCiteDocument]:
        document = DataCiteDocument()

        record_id = self.extract("identifier", None, lambda: self.header_text(record, "identifier"))
        if record_id:
            document.identifier = Identifier(record_id)
        else:
            logger.warning("Dublin Core record without header identifier")

        updated = self.extract("dates", record_id, lambda: self.header_text(record, "datestamp"))
        if updated:
            document.dates.append(DateEntry(updated, DateType.UPDATED))

        if self.is_deleted(record):
            document.deleted = True
            return document

        container = self.dc_container(record)
        if container is None:
            logger.warning("Dublin Core record %s has no metadata", record_id or "<unknown>")
            return document

        dates = self.extract("dates", record_id, lambda: self.parse_dates(container, record_id))
        if dates:
            document.dates.extend(dates)
            year = self.extract("publicationYear", record_id, lambda: self.publication_year(dates))
            if year is not None:
                document.publication_year = year

        # dc:type has no free-text DataCite counterpart, it is kept as a format
        formats = self.extract(
            "formats",
            record_id,
            lambda: find_all_text(container, "dc:type", NAMESPACES)
            + find_all_text(container, "dc:format", NAMESPACES),
        )
        if formats:
            document.formats = formats

        creators = self.extract(
            "creators",
            record_id,
            lambda: [Creator(name) for name in find_all_text(container, "dc:creator", NAMESPACES)],
        )
        if creators:
            document.creators = creators

        contributors = self.extract(
            "contributors",
            record_id,
            lambda: [
                Contributor(name, ContributorType.CONTACT_PERSON)
                for name in find_all_text(container, "dc:contributor", NAMESPACES)
            ],
        )
        if contributors:
            document.contributors = contributors

        titles = self.extract(
            "titles",
            record_id,
            lambda: [Title(value) for value in find_all_text(container, "dc:title", NAMESPACES)],
        )
        if titles:
            document.titles = titles

        publisher = self.extract(
            "publisher", record_id, lambda: find_text(container, "dc:publisher", NAMESPACES)
        )
        if publisher:
            document.publisher = publisher

        descriptions = self.extract(
            "descriptions",
            record_id,
            lambda: [
                Description(value, DescriptionType.ABSTRACT)
                for value in find_all_text(container, "dc:description", NAMESPACES)
            ],
        )
        if descriptions:
            document.descriptions = descriptions

        web_links = self.extract(
            "webLinks", record_id, lambda: self.parse_web_links(container, record_id)
        )
        if web_links:
            document.web_links = web_links

        subjects = self.extract(
            "subjects",
            record_id,
            lambda: [Subject(value) for value in find_all_text(container, "dc:subject", NAMESPACES)],
        )
        if subjects:
            document.subjects = subjects

        related = self.extract(
            "relatedIdentifiers", record_id, lambda: self.parse_related_identifiers(record)
        )
        if related:
            document.related_identifiers = related

        return document

    # ------------------------------------------------------------------
    # Field parsers
    # ------------------------------------------------------------------

    def dc_container(self, record: ET.Element) -> Optional[ET.Element]:
        """The ``oai_dc:dc`` element, or the metadata element itself."""
        metadata = self.metadata(record)
        if metadata is None:
            return None
        container = child_element(metadata, "dc")
        return container if container is not None else metadata

    @staticmethod
    def parse_dates(container: ET.Element, record_id: Optional[str]) -> List[DateEntry]:
        """
        Collect typed dates in document order.

        Elements outside the date vocabulary are ignored; values that are
        not dates are dropped with a diagnostic.
        """
        dates: List[DateEntry] = []
        for elem in container:
            if not isinstance(elem.tag, str):
                continue
            date_type = DATE_TYPE_MAP.get(_split_tag(elem.tag))
            if date_type is None:
                continue

            value = element_text(elem)
            if not value:
                continue
            if extract_year(value) is None:
                logger.debug(
                    "Ignoring %s '%s' of record %s, it is not a date",
                    local_name(elem.tag),
                    value,
                    record_id,
                )
                continue
            dates.append(DateEntry(value, date_type))
        return dates

    @staticmethod
    def publication_year(dates: List[DateEntry]) -> Optional[int]:
        for wanted in (DateType.ISSUED, DateType.AVAILABLE):
            for date in dates:
                if date.date_type is wanted:
                    return extract_year(date.value)
        return None

    @staticmethod
    def parse_web_links(container: ET.Element, record_id: Optional[str]) -> List[WebLink]:
        """
        Turn ``dc:identifier`` values into view links.

        Links are named ``Identifier<n>`` with ``n`` counting down from the
        number of identifiers.
        """
        identifiers = find_all_text(container, "dc:identifier", NAMESPACES)
        links: List[WebLink] = []
        remaining = len(identifiers)

        for value in identifiers:
            url = value if is_valid_url(value) else None
            if url is None:
                doi = normalize_doi(value)
                if doi:
                    url = f"https://doi.org/{doi}"
            if url is None:
                logger.debug("Identifier '%s' of record %s is not a URL, skipping", value, record_id)
            else:
                links.append(WebLink(url, f"Identifier{remaining}", WebLinkType.VIEW_URL))
            remaining -= 1

        return links

    @classmethod
    def parse_related_identifiers(cls, record: ET.Element) -> List[RelatedIdentifier]:
        metadata = cls.metadata(record)
        if metadata is None:
            return []

        related: List[RelatedIdentifier] = []
        for elem in metadata.iter():
            if isinstance(elem.tag, str) and local_name(elem.tag) == "DOI":
                value = element_text(elem)
                if value:
                    related.append(RelatedIdentifier(
                        value,
                        RelatedIdentifierType.DOI,
                        RelationType.IS_REFERENCED_BY,
                    ))
        return related
