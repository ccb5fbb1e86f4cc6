from typing import Optional

from fastapi import Header, Request

from app.core.exceptions import MissingDeviceError
from app.queue.broker import JobBroker
from app.services.serp_api import fetch_shopping_urls


def get_device_id(x_device_id: Optional[str] = Header(None, alias="x-device-id")) -> str:
    """Every device-scoped route identifies the caller by the x-device-id header."""
    if not x_device_id or not x_device_id.strip():
        raise MissingDeviceError()
    return x_device_id.strip()


def get_broker(request: Request) -> JobBroker:
    return request.app.state.broker


def get_shopping_lookup():
    return fetch_shopping_urls
