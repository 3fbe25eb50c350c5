"""
Normalized output documents.

Every record transformer produces a :class:`DataCiteDocument`, a DataCite
flavoured representation of one harvested record. All fields are optional
because partial documents are a normal harvest outcome.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class DateType(str, Enum):
    """Semantic type of a document date."""
    ACCEPTED = "Accepted"
    AVAILABLE = "Available"
    COPYRIGHTED = "Copyrighted"
    COLLECTED = "Collected"
    CREATED = "Created"
    ISSUED = "Issued"
    SUBMITTED = "Submitted"
    UPDATED = "Updated"
    VALID = "Valid"
    WITHDRAWN = "Withdrawn"
    OTHER = "Other"


class DescriptionType(str, Enum):
    ABSTRACT = "Abstract"
    METHODS = "Methods"
    SERIES_INFORMATION = "SeriesInformation"
    TABLE_OF_CONTENTS = "TableOfContents"
    TECHNICAL_INFO = "TechnicalInfo"
    OTHER = "Other"


class ResourceTypeGeneral(str, Enum):
    """Coarse category of a resource."""
    COLLECTION = "Collection"
    DATASET = "Dataset"
    IMAGE = "Image"
    SOFTWARE = "Software"
    TEXT = "Text"
    OTHER = "Other"


class ContributorType(str, Enum):
    CONTACT_PERSON = "ContactPerson"
    DATA_COLLECTOR = "DataCollector"
    EDITOR = "Editor"
    OTHER = "Other"


class WebLinkType(str, Enum):
    VIEW_URL = "ViewURL"
    SOURCE_URL = "SourceURL"
    PROVIDER_LOGO_URL = "ProviderLogoURL"


class RelatedIdentifierType(str, Enum):
    DOI = "DOI"
    URL = "URL"


class RelationType(str, Enum):
    IS_REFERENCED_BY = "IsReferencedBy"
    REFERENCES = "References"


@dataclass(frozen=True)
class Identifier:
    value: str
    identifier_type: str = "DOI"


@dataclass(frozen=True)
class Creator:
    name: str


@dataclass(frozen=True)
class Contributor:
    name: str
    contributor_type: ContributorType = ContributorType.OTHER


@dataclass(frozen=True)
class Title:
    value: str


@dataclass(frozen=True)
class Subject:
    value: str


@dataclass(frozen=True)
class DateEntry:
    """A date string paired with its semantic type."""
    value: str
    date_type: DateType


@dataclass(frozen=True)
class Description:
    value: str
    description_type: DescriptionType = DescriptionType.ABSTRACT


@dataclass(frozen=True)
class ResourceType:
    value: str
    general: ResourceTypeGeneral = ResourceTypeGeneral.OTHER


@dataclass(frozen=True)
class BoundingBox:
    west: float
    east: float
    south: float
    north: float


@dataclass(frozen=True)
class GeoLocation:
    """
    A geographic location, either a point or a bounding box.

    Points are stored as ``(longitude, latitude)``.
    """
    point: Optional[Tuple[float, float]] = None
    box: Optional[BoundingBox] = None

    @classmethod
    def from_edges(cls, west: float, east: float, south: float, north: float) -> "GeoLocation":
        """Collapse degenerate boxes (equal edges) into a point."""
        if west == east and south == north:
            return cls(point=(west, south))
        return cls(box=BoundingBox(west=west, east=east, south=south, north=north))

    def to_dict(self) -> Dict[str, Any]:
        if self.point is not None:
            return {"point": {"type": "Point", "coordinates": list(self.point)}}
        if self.box is not None:
            return {
                "box": {
                    "west": self.box.west,
                    "east": self.box.east,
                    "south": self.box.south,
                    "north": self.box.north,
                }
            }
        return {}


@dataclass(frozen=True)
class ResearchData:
    """Link to the research data described by a record."""
    url: str
    title: str


@dataclass(frozen=True)
class WebLink:
    url: str
    name: Optional[str] = None
    link_type: Optional[WebLinkType] = None


@dataclass(frozen=True)
class RelatedIdentifier:
    value: str
    identifier_type: RelatedIdentifierType
    relation_type: RelationType


@dataclass
class DataCiteDocument:
    """
    Normalized document built from one harvested record.

    A document for a deleted record carries only ``identifier``, one
    Updated date and ``deleted=True``.
    """

    identifier: Optional[Identifier] = None
    """Main identifier of the record; None marks a degraded document."""

    repository_identifier: Optional[str] = None
    creators: List[Creator] = field(default_factory=list)
    titles: List[Title] = field(default_factory=list)
    publisher: Optional[str] = None
    publication_year: Optional[int] = None
    resource_type: Optional[ResourceType] = None
    dates: List[DateEntry] = field(default_factory=list)
    descriptions: List[Description] = field(default_factory=list)
    geo_locations: List[GeoLocation] = field(default_factory=list)
    research_data: List[ResearchData] = field(default_factory=list)
    subjects: List[Subject] = field(default_factory=list)
    contributors: List[Contributor] = field(default_factory=list)
    formats: List[str] = field(default_factory=list)
    web_links: List[WebLink] = field(default_factory=list)
    related_identifiers: List[RelatedIdentifier] = field(default_factory=list)

    deleted: bool = False
    """Whether the repository marked the record as deleted."""

    def populated_fields(self) -> List[str]:
        """Names of the fields that carry a value."""
        return list(self.to_dict().keys())

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready representation; unset and empty fields are omitted."""
        data: Dict[str, Any] = {}

        if self.identifier is not None:
            data["identifier"] = {
                "value": self.identifier.value,
                "identifierType": self.identifier.identifier_type,
            }
        if self.repository_identifier:
            data["repositoryIdentifier"] = self.repository_identifier
        if self.creators:
            data["creators"] = [{"creatorName": c.name} for c in self.creators]
        if self.titles:
            data["titles"] = [{"value": t.value} for t in self.titles]
        if self.publisher:
            data["publisher"] = self.publisher
        if self.publication_year is not None:
            data["publicationYear"] = self.publication_year
        if self.resource_type is not None:
            data["resourceType"] = {
                "value": self.resource_type.value,
                "resourceTypeGeneral": self.resource_type.general.value,
            }
        if self.dates:
            data["dates"] = [
                {"value": d.value, "dateType": d.date_type.value} for d in self.dates
            ]
        if self.descriptions:
            data["descriptions"] = [
                {"value": d.value, "descriptionType": d.description_type.value}
                for d in self.descriptions
            ]
        if self.geo_locations:
            data["geoLocations"] = [g.to_dict() for g in self.geo_locations]
        if self.research_data:
            data["researchDataList"] = [
                {"researchDataURL": r.url, "researchTitle": r.title}
                for r in self.research_data
            ]
        if self.subjects:
            data["subjects"] = [{"value": s.value} for s in self.subjects]
        if self.contributors:
            data["contributors"] = [
                {"contributorName": c.name, "contributorType": c.contributor_type.value}
                for c in self.contributors
            ]
        if self.formats:
            data["formats"] = list(self.formats)
        if self.web_links:
            links = []
            for link in self.web_links:
                entry: Dict[str, Any] = {"url": link.url}
                if link.name:
                    entry["name"] = link.name
                if link.link_type is not None:
                    entry["type"] = link.link_type.value
                links.append(entry)
            data["webLinks"] = links
        if self.related_identifiers:
            data["relatedIdentifiers"] = [
                {
                    "value": r.value,
                    "relatedIdentifierType": r.identifier_type.value,
                    "relationType": r.relation_type.value,
                }
                for r in self.related_identifiers
            ]
        if self.deleted:
            data["deleted"] = True

        return data
