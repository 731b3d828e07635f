"""Request-scoped accessors for the components built at startup.

The app factory's lifespan stores the registry, dispatch queue and capture
service on ``app.state``; routes reach them through these dependencies so
tests can build an app around fakes.
"""

from __future__ import annotations

from fastapi import Request

from lensrelay.services.capture_service import CaptureService
from lensrelay.services.dispatch_queue import DispatchQueue
from lensrelay.services.lens_registry import LensRegistry


def get_registry(request: Request) -> LensRegistry:
    return request.app.state.registry


def get_dispatch_queue(request: Request) -> DispatchQueue:
    return request.app.state.dispatch_queue


def get_capture_service(request: Request) -> CaptureService:
    return request.app.state.capture_service
