"""
OAI-PMH query construction.

Each query is built as a parameter dict (what ``requests`` sends) and can be
rendered as a full URL for diagnostics and for external tools.
"""

from __future__ import annotations

from typing import Dict, Optional
from urllib.parse import urlencode


NO_HOST_URL_ERROR = "The hostUrl parameter must be set to a valid OAI-PMH repository URL!"
NO_METADATA_PREFIX_ERROR = "The metadataPrefix parameter must be set!"


def list_records_params(
    metadata_prefix: Optional[str],
    from_date: Optional[str] = None,
    until_date: Optional[str] = None,
) -> Dict[str, str]:
    """
    Parameters of a ListRecords query.

    Raises:
        ValueError: If the metadata prefix is missing
    """
    if not metadata_prefix:
        raise ValueError(NO_METADATA_PREFIX_ERROR)

    params = {"verb": "ListRecords"}
    if from_date:
        params["from"] = from_date
    if until_date:
        params["until"] = until_date
    params["metadataPrefix"] = metadata_prefix
    return params


def metadata_formats_params() -> Dict[str, str]:
    return {"verb": "ListMetadataFormats"}


def identify_params() -> Dict[str, str]:
    return {"verb": "Identify"}


def resumption_params(resumption_token: str) -> Dict[str, str]:
    """Parameters to continue a ListRecords query from a previous page."""
    return {"verb": "ListRecords", "resumptionToken": resumption_token}


def build_query_url(host_url: Optional[str], params: Dict[str, str]) -> str:
    """
    Render a query as a URL.

    Raises:
        ValueError: If the host URL is missing
    """
    if not host_url:
        raise ValueError(NO_HOST_URL_ERROR)
    separator = "&" if "?" in host_url else "?"
    return f"{host_url}{separator}{urlencode(params)}"


def list_records_url(
    host_url: Optional[str],
    metadata_prefix: Optional[str],
    from_date: Optional[str] = None,
    until_date: Optional[str] = None,
) -> str:
    """
    e.g. https://ws.pangaea.de/oai/provider?verb=ListRecords&metadataPrefix=datacite3
    """
    if not host_url:
        raise ValueError(NO_HOST_URL_ERROR)
    return build_query_url(host_url, list_records_params(metadata_prefix, from_date, until_date))


def metadata_formats_url(host_url: Optional[str]) -> str:
    """e.g. https://api.figshare.com/v2/oai?verb=ListMetadataFormats"""
    return build_query_url(host_url, metadata_formats_params())


def identify_url(host_url: Optional[str]) -> str:
    return build_query_url(host_url, identify_params())


def resumption_url(host_url: Optional[str], resumption_token: str) -> str:
    return build_query_url(host_url, resumption_params(resumption_token))
