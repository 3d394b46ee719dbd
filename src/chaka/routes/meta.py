"""Meta endpoints: health and version."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from chaka.config import ChakaConfig
from chaka.deps import get_config

router = APIRouter(prefix="/_chaka", tags=["meta"])


@router.get("/health")
def health():
    return {"status": "ok", "service": "chaka"}


@router.get("/version")
def version(config: ChakaConfig = Depends(get_config)):
    return {
        "mediator": "0.1.0",
        "urn": config.mediator_urn,
        "mode": "verify-only" if config.verify_only else "map",
    }
