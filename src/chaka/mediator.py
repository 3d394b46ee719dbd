"""The per-request pipeline.

Extract orgUnit ids, then either verify them or map and rewrite them,
then forward upstream. Every path through ``handle`` ends in exactly one
MediatorResponse.
"""

from __future__ import annotations

import logging

import httpx

from chaka.adx import extract_org_unit_ids, replace_mapped_ids
from chaka.config import ChakaConfig
from chaka.directory import DirectoryClient
from chaka.errors import ChakaError
from chaka.models import MediatorResponse
from chaka.resolver import fetch_map, verify_ids
from chaka.upstream import UpstreamClient

logger = logging.getLogger(__name__)


class Mediator:
    """Translates ADX orgUnit ids for one configuration.

    A new configuration means a new Mediator; an instance never changes
    the endpoints or mode it was built with.
    """

    def __init__(self, config: ChakaConfig, http: httpx.AsyncClient) -> None:
        self.config = config
        self.directory = DirectoryClient(
            http, config.directory_url, config.directory_resource
        )
        self.upstream = UpstreamClient(http, config.upstream_url)

    def _failed(self, exc: ChakaError) -> MediatorResponse:
        return MediatorResponse.failed(self.config.mediator_urn, exc.status_code, str(exc))

    async def handle(self, method: str, path: str, adx: bytes) -> MediatorResponse:
        logger.info("Processing received ADX message...")
        try:
            org_units = extract_org_unit_ids(adx)
        except ChakaError as exc:
            logger.error("Rejected inbound message: %s", exc)
            return self._failed(exc)
        logger.info("Found the following orgUnits: %s", sorted(org_units))

        if self.config.verify_only:
            try:
                await verify_ids(self.directory, org_units)
            except ChakaError as exc:
                logger.error("Failed to verify IDs: %s", exc)
                return self._failed(exc)
            outbound = adx
        else:
            try:
                mapping = await fetch_map(self.directory, org_units)
            except ChakaError as exc:
                logger.error("Failed to fetch mappings: %s", exc)
                return MediatorResponse.failed(self.config.mediator_urn, 500, str(exc))
            logger.info("Looked up mappings in InfoManager: %s", mapping)
            outbound = replace_mapped_ids(mapping, adx)
            logger.info("Transformed ADX message.")

        return await self._forward(method, path, outbound)

    async def _forward(self, method: str, path: str, adx: bytes) -> MediatorResponse:
        try:
            response = await self.upstream.forward(method, path, adx)
        except ChakaError as exc:
            return self._failed(exc)
        return MediatorResponse.relayed(
            self.config.mediator_urn,
            response.status_code,
            dict(response.headers),
            response.text,
        )
