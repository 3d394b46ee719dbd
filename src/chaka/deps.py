"""FastAPI dependencies for Chaka routes."""

from __future__ import annotations

from fastapi import Request

from chaka.config import ChakaConfig
from chaka.mediator import Mediator


def get_config(request: Request) -> ChakaConfig:
    return request.app.state.config


def get_mediator(request: Request) -> Mediator:
    """The mediator built for this app's configuration at startup."""
    return request.app.state.mediator
