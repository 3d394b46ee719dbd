"""Shared fixtures: an in-process CSD directory and upstream.

Both services are served through httpx.MockTransport, so no sockets are
opened. The directory knows a handful of otherIDs; the upstream only
accepts messages that carry both canonical ids.
"""

from __future__ import annotations

import asyncio

import httpx
import pytest
from lxml import etree

from chaka.config import ChakaConfig
from chaka.directory import CSD_NS, DirectoryClient

DIRECTORY_URL = "http://directory.test/CSD/csr/datim-small/careServicesRequest"
UPSTREAM_URL = "http://upstream.test"

# otherID -> entityIDs held by the fake directory
FACILITIES = {
    "p.ao.pepfar.44": ["123"],
    "p.ao.pepfar.3": ["456"],
    "A": ["123"],
    "B": ["456"],
    "multi": ["123", "789"],
}

ADX_DOCUMENT = b"""<?xml version="1.0" encoding="UTF-8"?>
<adx xmlns="urn:ihe:qrph:adx:2015" exported="2015-06-08T11:19:45Z">
  <group orgUnit="p.ao.pepfar.44" period="2015-06-01/P1M" completeDate="2015-07-01">
    <dataValue dataElement="MAL_POSITIVE" GENDER="F" HIV_AGE="under_15" value="32">
      <annotation>counted at p.ao.pepfar.44</annotation>
    </dataValue>
    <dataValue dataElement="MAL_POSITIVE" GENDER="M" HIV_AGE="under_15" value="25"/>
  </group>
  <group orgUnit="p.ao.pepfar.3" period="2015-06-01/P1M" completeDate="2015-07-01">
    <dataValue dataElement="MAL_POSITIVE" GENDER="F" HIV_AGE="15_24" value="12"/>
  </group>
  <group orgUnit="p.ao.pepfar.44" period="2015-05-01/P1M" completeDate="2015-06-01">
    <dataValue dataElement="MAL_POSITIVE" GENDER="F" HIV_AGE="under_15" value="30"/>
  </group>
</adx>
"""


def adx_with(*org_units: str) -> bytes:
    """A minimal ADX message with one group per orgUnit."""
    groups = "".join(
        f'<group orgUnit="{ou}" period="2015-06-01/P1M">'
        f'<dataValue dataElement="MAL_POSITIVE" value="1"/></group>'
        for ou in org_units
    )
    return f'<adx xmlns="urn:ihe:qrph:adx:2015">{groups}</adx>'.encode()


def csd_response(entity_ids: list[str], resource: str = "facility") -> bytes:
    records = "".join(f"<{resource} entityID='{e}'/>" for e in entity_ids)
    return (
        f"<CSD xmlns='{CSD_NS}'>"
        f"<serviceDirectory/><organizationDirectory/>"
        f"<{resource}Directory>{records}</{resource}Directory>"
        f"<providerDirectory/></CSD>"
    ).encode()


class FakeNetwork:
    """Routes requests to the fake directory or upstream by host."""

    def __init__(self) -> None:
        self.directory_requests: list[httpx.Request] = []
        self.upstream_requests: list[httpx.Request] = []
        self.directory_down = False
        self.upstream_down = False
        # httpx error class raised instead of answering, e.g. httpx.ReadTimeout
        self.directory_error = None
        self.upstream_error = None
        # fixed upstream status, bypassing the code check
        self.upstream_status = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.url.host == "directory.test":
            return self.directory(request)
        return self.upstream(request)

    def directory(self, request: httpx.Request) -> httpx.Response:
        self.directory_requests.append(request)
        other_id = etree.fromstring(request.content).findtext(f"{{{CSD_NS}}}otherID")
        if self.directory_down or other_id == "unreachable":
            raise httpx.ConnectError("Connection refused", request=request)
        if self.directory_error is not None:
            raise self.directory_error("Timed out", request=request)
        if other_id == "bad-xml":
            return httpx.Response(200, content=b"<CSD><facilityDirectory></CSD>")
        return httpx.Response(200, content=csd_response(FACILITIES.get(other_id, [])))

    def upstream(self, request: httpx.Request) -> httpx.Response:
        self.upstream_requests.append(request)
        if self.upstream_down:
            raise httpx.ConnectError("Connection refused", request=request)
        if self.upstream_error is not None:
            raise self.upstream_error("Timed out", request=request)
        if self.upstream_status is not None:
            return httpx.Response(self.upstream_status, text=f"UPSTREAM {self.upstream_status}")
        body = request.content.decode()
        if 'orgUnit="123"' in body and 'orgUnit="456"' in body:
            return httpx.Response(200, text="CORRECT CODES USED", headers={"X-Upstream": "dhis"})
        if 'orgUnit="p.ao.pepfar.3"' in body and 'orgUnit="p.ao.pepfar.44"' in body:
            return httpx.Response(200, text="ORIGINAL CODES USED")
        return httpx.Response(400, text="INCORRECT CODES USED")

    @property
    def looked_up(self) -> set[str]:
        return {
            etree.fromstring(r.content).findtext(f"{{{CSD_NS}}}otherID")
            for r in self.directory_requests
        }


@pytest.fixture
def network():
    return FakeNetwork()


@pytest.fixture
def config():
    return ChakaConfig(directory_url=DIRECTORY_URL, upstream_url=UPSTREAM_URL)


@pytest.fixture
def with_directory(network):
    """Run ``fn(directory_client)`` to completion against the fake network."""

    def run(fn, handler=None):
        async def main():
            transport = httpx.MockTransport(handler or network)
            async with httpx.AsyncClient(transport=transport) as http:
                return await fn(DirectoryClient(http, DIRECTORY_URL))

        return asyncio.run(main())

    return run
