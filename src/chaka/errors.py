"""Errors raised by the translation pipeline.

Every error carries the HTTP status the mediator reports when the
pipeline stops on it. Non-2xx upstream answers are not errors: they are
relayed in the envelope with status Failed.
"""

from __future__ import annotations


class ChakaError(Exception):
    """Base for all pipeline failures."""

    status_code: int = 500


class DocumentParseError(ChakaError):
    """The inbound ADX document could not be parsed."""


class DirectoryTransportError(ChakaError):
    """The directory service could not be reached."""

    def __init__(self, identifier: str, cause: Exception) -> None:
        super().__init__(f"Failed to reach the directory for {identifier!r}: {cause}")
        self.identifier = identifier
        self.cause = cause


class DirectoryParseError(ChakaError):
    """The directory answered with something that is not CSD XML."""

    def __init__(self, identifier: str, cause: Exception) -> None:
        super().__init__(
            f"Failed to parse the directory response for {identifier!r}: {cause}"
        )
        self.identifier = identifier
        self.cause = cause


class AmbiguousResolutionError(ChakaError):
    """More than one directory record matched a single local identifier."""

    def __init__(self, identifier: str, count: int) -> None:
        super().__init__(
            f"Multiple facilities returned when querying by other ID "
            f"{identifier!r} ({count} matches)"
        )
        self.identifier = identifier
        self.count = count


class NotVerifiableError(ChakaError):
    """One or more local identifiers have no directory record."""

    status_code = 400

    def __init__(self, identifiers: list[str]) -> None:
        codes = ", ".join(identifiers)
        super().__init__(
            f"A code that couldn't be verified in the InfoManager was discovered: {codes}"
        )
        self.identifiers = identifiers


class UpstreamTransportError(ChakaError):
    """The upstream service could not be reached."""


class UnauthorizedError(ChakaError):
    """The caller did not present the configured API key."""

    status_code = 401
