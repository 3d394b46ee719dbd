"""Concurrent fan-out of directory lookups over a set of orgUnit ids.

Each lookup runs as its own task and returns its own outcome. Outcomes
are reduced only after every task has finished, so a failing batch never
leaves lookups running and never yields a partial mapping.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable

from chaka.directory import DirectoryClient
from chaka.errors import AmbiguousResolutionError, NotVerifiableError
from chaka.models import LookupOutcome, Mapping, OutcomeKind

logger = logging.getLogger(__name__)


async def lookup_all(
    directory: DirectoryClient, org_units: Iterable[str]
) -> list[LookupOutcome]:
    """Look up every id at once and wait for all of them.

    An exception escaping a lookup is re-raised only after every other
    lookup has finished.
    """
    ids = sorted(org_units)
    results = await asyncio.gather(
        *(directory.lookup(i) for i in ids), return_exceptions=True
    )
    for result in results:
        if isinstance(result, BaseException):
            raise result
    return results


def _raise_first_failure(outcomes: list[LookupOutcome]) -> None:
    for outcome in outcomes:
        if outcome.failed:
            raise outcome.cause


async def fetch_map(directory: DirectoryClient, org_units: Iterable[str]) -> Mapping:
    """Map each local id to its canonical id, or None if the directory has none.

    Raises DirectoryTransportError or DirectoryParseError if any lookup
    failed, and AmbiguousResolutionError if any id matched more than one
    record.
    """
    outcomes = await lookup_all(directory, org_units)
    _raise_first_failure(outcomes)

    mapping: Mapping = {}
    for outcome in outcomes:
        if outcome.kind is OutcomeKind.AMBIGUOUS:
            raise AmbiguousResolutionError(outcome.identifier, outcome.count)
        mapping[outcome.identifier] = outcome.canonical_id
    return mapping


async def verify_ids(directory: DirectoryClient, org_units: Iterable[str]) -> None:
    """Check that every id has at least one directory record.

    Several matches are accepted here even though fetch_map rejects them:
    existence is all that is checked.

    Raises NotVerifiableError naming every unknown id, or the transport
    or parse error of the first failed lookup.
    """
    outcomes = await lookup_all(directory, org_units)
    _raise_first_failure(outcomes)

    unknown = [o.identifier for o in outcomes if o.kind is OutcomeKind.NOT_FOUND]
    if unknown:
        raise NotVerifiableError(unknown)
