"""Value types passed between pipeline stages."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# local orgUnit id -> canonical id, None when the directory has no match
Mapping = dict[str, str | None]


class OutcomeKind(str, Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    AMBIGUOUS = "ambiguous"
    TRANSPORT_FAILURE = "transport_failure"
    PARSE_FAILURE = "parse_failure"


class LookupOutcome(BaseModel):
    """Result of a single directory lookup."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    identifier: str
    kind: OutcomeKind
    canonical_id: str | None = None
    count: int = 0
    cause: Exception | None = None

    @classmethod
    def from_matches(cls, identifier: str, matches: list[str]) -> LookupOutcome:
        if not matches:
            return cls(identifier=identifier, kind=OutcomeKind.NOT_FOUND)
        if len(matches) > 1:
            return cls(
                identifier=identifier,
                kind=OutcomeKind.AMBIGUOUS,
                count=len(matches),
            )
        return cls(
            identifier=identifier,
            kind=OutcomeKind.FOUND,
            canonical_id=matches[0],
            count=1,
        )

    @property
    def failed(self) -> bool:
        return self.kind in (OutcomeKind.TRANSPORT_FAILURE, OutcomeKind.PARSE_FAILURE)


class PipelineStatus(str, Enum):
    SUCCESSFUL = "Successful"
    FAILED = "Failed"


class RelayedResponse(BaseModel):
    """What the caller learns about the upstream (or synthesized) response."""

    status: int
    headers: dict[str, str] = Field(default_factory=dict)
    body: str = ""
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class MediatorResponse(BaseModel):
    """The JSON envelope returned to the caller, once per request."""

    model_config = ConfigDict(populate_by_name=True)

    urn: str = Field(alias="x-mediator-urn")
    status: PipelineStatus
    response: RelayedResponse
    orchestrations: list[dict[str, Any]] = Field(default_factory=list)

    @classmethod
    def relayed(
        cls, urn: str, status: int, headers: dict[str, str], body: str
    ) -> MediatorResponse:
        """Envelope for an upstream answer; Successful iff the status is 2xx."""
        outcome = PipelineStatus.SUCCESSFUL if 200 <= status < 300 else PipelineStatus.FAILED
        return cls(
            urn=urn,
            status=outcome,
            response=RelayedResponse(status=status, headers=headers, body=body),
        )

    @classmethod
    def failed(cls, urn: str, status: int, message: str) -> MediatorResponse:
        """Envelope for a request the mediator stopped before or at forwarding."""
        return cls(
            urn=urn,
            status=PipelineStatus.FAILED,
            response=RelayedResponse(status=status, body=message),
        )

    @property
    def http_status(self) -> int:
        return self.response.status

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
