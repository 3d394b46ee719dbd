"""Client for the CSD directory (InfoManager) facility search."""

from __future__ import annotations

import logging

import httpx
from lxml import etree

from chaka.errors import DirectoryParseError, DirectoryTransportError
from chaka.models import LookupOutcome, OutcomeKind

logger = logging.getLogger(__name__)

CSD_NS = "urn:ihe:iti:csd:2013"
RESOURCES = ("facility", "organization", "provider", "service")


def build_request_params(identifier: str) -> bytes:
    """CSD search body asking for entities whose otherID is ``identifier``."""
    params = etree.Element(f"{{{CSD_NS}}}requestParams", nsmap={"csd": CSD_NS})
    other_id = etree.SubElement(params, f"{{{CSD_NS}}}otherID")
    other_id.text = identifier
    return etree.tostring(params)


def entity_ids(csd: bytes, resource: str = "facility") -> list[str]:
    """Return the entityID of every ``resource`` record in a CSD document.

    Raises etree.XMLSyntaxError if ``csd`` is not well-formed.
    """
    root = etree.fromstring(
        csd, parser=etree.XMLParser(resolve_entities=False, no_network=True)
    )
    nodes = root.getroottree().xpath(
        f"//csd:CSD/csd:{resource}Directory/csd:{resource}/@entityID",
        namespaces={"csd": CSD_NS},
    )
    return [str(node) for node in nodes]


class DirectoryClient:
    """Looks up one local identifier per request. No retries."""

    def __init__(
        self, http: httpx.AsyncClient, url: str, resource: str = "facility"
    ) -> None:
        if resource not in RESOURCES:
            raise ValueError(f"Unknown CSD resource {resource!r}")
        self._http = http
        self.url = url
        self.resource = resource

    async def fetch(self, identifier: str) -> bytes:
        """POST the search and return the raw CSD response body."""
        try:
            response = await self._http.post(
                self.url,
                content=build_request_params(identifier),
                headers={"Content-Type": "text/xml"},
            )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise DirectoryTransportError(identifier, exc) from exc
        if response.is_error:
            logger.warning(
                "Directory answered %d for %r", response.status_code, identifier
            )
        return response.content

    async def lookup(self, identifier: str) -> LookupOutcome:
        """Fetch and classify; failures are returned, never raised."""
        try:
            csd = await self.fetch(identifier)
        except DirectoryTransportError as exc:
            logger.error("Directory lookup for %r failed: %s", identifier, exc.cause)
            return LookupOutcome(
                identifier=identifier,
                kind=OutcomeKind.TRANSPORT_FAILURE,
                cause=exc,
            )
        try:
            matches = entity_ids(csd, self.resource)
        except etree.XMLSyntaxError as exc:
            logger.error("Failed to parse returned CSD document for %r: %s", identifier, exc)
            return LookupOutcome(
                identifier=identifier,
                kind=OutcomeKind.PARSE_FAILURE,
                cause=DirectoryParseError(identifier, exc),
            )
        return LookupOutcome.from_matches(identifier, matches)
