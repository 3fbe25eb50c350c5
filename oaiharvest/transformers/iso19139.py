"""
Record transformer for the ISO 19139 metadata standard.

ISO 19139 is the XML encoding of ISO 19115 geographic metadata, commonly
served by OAI-PMH endpoints of geodata repositories (e.g. PANGAEA).
Standard: https://www.iso.org/standard/32557.html
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from typing import Dict, List, Optional

from oaiharvest.documents import (
    Creator,
    DataCiteDocument,
    DateEntry,
    DateType,
    Description,
    DescriptionType,
    GeoLocation,
    Identifier,
    ResearchData,
    ResourceType,
    ResourceTypeGeneral,
    Title,
)
from oaiharvest.logging import get_logger
from oaiharvest.transformers.base import RecordTransformer
from oaiharvest.transformers.fields import (
    element_text,
    extract_year,
    find_text,
    is_valid_url,
    parse_coordinate,
)

logger = get_logger(__name__)


ISO19139_SCHEMA = "http://www.isotc211.org/2005/gmd"

NAMESPACES: Dict[str, str] = {
    "gmd": ISO19139_SCHEMA,
    "gco": "http://www.isotc211.org/2005/gco",
}

IDENTIFIER = ".//gmd:fileIdentifier"
PUBLISHER = ".//gmd:contact//gmd:organisationName"
TITLE = ".//gmd:identificationInfo//gmd:citation//gmd:title"
DATESTAMP = ".//gmd:dateStamp"
RESOURCE_TYPE = ".//gmd:hierarchyLevel/gmd:MD_ScopeCode"
RESEARCH_DATA = ".//gmd:distributionInfo//gmd:linkage/gmd:URL"
DATES = ".//gmd:identificationInfo//gmd:citation//gmd:CI_Date"
DATE = "gmd:date"
DATE_TYPE = "gmd:dateType/gmd:CI_DateTypeCode"
DESCRIPTION = ".//gmd:identificationInfo//gmd:abstract"
GEOLOCATIONS = ".//gmd:EX_GeographicBoundingBox"
BOUNDS = {
    "west": "gmd:westBoundLongitude",
    "east": "gmd:eastBoundLongitude",
    "south": "gmd:southBoundLatitude",
    "north": "gmd:northBoundLatitude",
}

# CI_DateTypeCode -> DataCite date type; other codes carry no DataCite meaning
DATE_TYPE_MAP: Dict[str, DateType] = {
    "creation": DateType.CREATED,
    "publication": DateType.ISSUED,
    "revision": DateType.UPDATED,
}


class Iso19139Transformer(RecordTransformer):
    """
    Transformer for ``gmd:MD_Metadata`` records.

    Deleted records are skipped entirely: ISO 19139 repositories publish
    no tombstone content worth indexing.
    """

    name = "iso19139"
    schema = ISO19139_SCHEMA

    def __init__(self, repository_identifier: str = "OAI-PMH"):
        self.repository_identifier = repository_identifier

    def transform(self, record: ET.Element) -> Optional[DataCiteDocument]:
        if self.is_deleted(record):
            logger.debug(
                "Skipping deleted ISO 19139 record %s",
                self.header_text(record, "identifier"),
            )
            return None

        metadata = self.metadata(record)
        if metadata is None:
            logger.warning(
                "ISO 19139 record %s has no metadata, skipping",
                self.header_text(record, "identifier"),
            )
            return None

        document = DataCiteDocument(repository_identifier=self.repository_identifier)

        identifier = self.extract("identifier", None, lambda: self.parse_identifier(metadata))
        if identifier is not None:
            document.identifier = identifier
        else:
            logger.warning(
                "ISO 19139 record %s has no file identifier",
                self.header_text(record, "identifier") or "<unknown>",
            )
        record_id = identifier.value if identifier else self.header_text(record, "identifier")

        # ISO 19139 has no creator element that maps cleanly; the contact
        # organisation doubles as creator and publisher
        organisation = self.extract(
            "creators", record_id, lambda: find_text(metadata, PUBLISHER, NAMESPACES)
        )
        if organisation:
            document.creators = [Creator(organisation)]
            document.publisher = organisation

        title = self.extract("titles", record_id, lambda: find_text(metadata, TITLE, NAMESPACES))
        if title:
            document.titles = [Title(title)]

        # the metadata datestamp approximates the publication year until an
        # Issued date is found below
        year = self.extract(
            "publicationYear", record_id, lambda: self.parse_datestamp_year(record, metadata, record_id)
        )
        if year is not None:
            document.publication_year = year

        resource_type = self.extract(
            "resourceType", record_id, lambda: self.parse_resource_type(metadata)
        )
        if resource_type is not None:
            document.resource_type = resource_type

        research_data = self.extract(
            "researchData", record_id, lambda: self.parse_research_data(metadata, document.titles, record_id)
        )
        if research_data:
            document.research_data = research_data

        dates = self.extract("dates", record_id, lambda: self.parse_dates(metadata))
        if dates:
            document.dates = dates
            issued_year = self.extract(
                "publicationYear", record_id, lambda: self.issued_year(dates)
            )
            if issued_year is not None:
                document.publication_year = issued_year

        description = self.extract(
            "descriptions", record_id, lambda: find_text(metadata, DESCRIPTION, NAMESPACES)
        )
        if description:
            document.descriptions = [Description(description, DescriptionType.ABSTRACT)]

        geo_locations = self.extract(
            "geoLocations", record_id, lambda: self.parse_geo_locations(metadata, record_id)
        )
        if geo_locations:
            document.geo_locations = geo_locations

        return document

    # ------------------------------------------------------------------
    # Field parsers
    # ------------------------------------------------------------------

    @staticmethod
    def parse_identifier(metadata: ET.Element) -> Optional[Identifier]:
        # TODO: ISO 19139 guarantees a unique identifier, not a DOI; detect
        # URNs and UUIDs and set identifier_type accordingly
        value = find_text(metadata, IDENTIFIER, NAMESPACES)
        return Identifier(value) if value else None

    @staticmethod
    def parse_datestamp_year(
        record: ET.Element, metadata: ET.Element, record_id: Optional[str]
    ) -> Optional[int]:
        datestamp = find_text(metadata, DATESTAMP, NAMESPACES)
        if datestamp is None:
            datestamp = RecordTransformer.header_text(record, "datestamp")
        if datestamp is None:
            return None

        year = extract_year(datestamp)
        if year is None:
            logger.warning(
                "Datestamp of record %s does not seem to be a date: %s", record_id, datestamp
            )
        return year

    @staticmethod
    def parse_resource_type(metadata: ET.Element) -> Optional[ResourceType]:
        scope = metadata.find(RESOURCE_TYPE, NAMESPACES)
        if scope is None:
            return None
        value = element_text(scope) or scope.get("codeListValue")
        if not value:
            return None
        return ResourceType(value, ResourceTypeGeneral.DATASET)

    @staticmethod
    def parse_research_data(
        metadata: ET.Element, titles: List[Title], record_id: Optional[str]
    ) -> List[ResearchData]:
        url = find_text(metadata, RESEARCH_DATA, NAMESPACES)
        if url is None:
            return []

        if not is_valid_url(url):
            logger.warning("URL %s of record %s is not valid, skipping", url, record_id)
            return []

        # research data needs a label; without a title the link is dropped
        if not titles:
            logger.debug("Record %s has a data URL but no title, skipping link", record_id)
            return []

        return [ResearchData(url=url, title=titles[0].value)]

    @staticmethod
    def parse_dates(metadata: ET.Element) -> List[DateEntry]:
        """
        Collect the citation dates that map to a DataCite date type.

        Unmapped CI_DateTypeCode values are dropped silently.
        """
        dates: List[DateEntry] = []
        for iso_date in metadata.findall(DATES, NAMESPACES):
            code = iso_date.find(DATE_TYPE, NAMESPACES)
            if code is None:
                continue
            token = element_text(code) or code.get("codeListValue") or ""
            date_type = DATE_TYPE_MAP.get(token.strip())
            if date_type is None:
                continue

            value = find_text(iso_date, DATE, NAMESPACES)
            if value:
                dates.append(DateEntry(value, date_type))
        return dates

    @staticmethod
    def issued_year(dates: List[DateEntry]) -> Optional[int]:
        for date in dates:
            if date.date_type is DateType.ISSUED:
                year = extract_year(date.value)
                if year is None:
                    raise ValueError(f"Issued date is not a date: {date.value}")
                return year
        return None

    @staticmethod
    def parse_geo_locations(metadata: ET.Element, record_id: Optional[str]) -> List[GeoLocation]:
        """
        Parse every geographic bounding box in document order.

        Boxes with a missing or non-numeric edge are skipped on their own.
        """
        geo_locations: List[GeoLocation] = []
        for bbox in metadata.findall(GEOLOCATIONS, NAMESPACES):
            try:
                edges = {
                    edge: parse_coordinate(find_text(bbox, path, NAMESPACES))
                    for edge, path in BOUNDS.items()
                }
            except ValueError:
                logger.info(
                    "Ignoring geolocation '%s' of record %s, it has no valid coordinates",
                    element_text(bbox) or "",
                    record_id,
                )
                continue

            geo_locations.append(GeoLocation.from_edges(**edges))
        return geo_locations
