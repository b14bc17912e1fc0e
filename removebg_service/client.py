"""
HTTP client for the remove.bg API.

The client:
 - POSTs the source bytes as multipart field ``image_file``,
 - attaches the API key as ``X-Api-Key``,
 - turns error responses into ``TransferError`` with the first reported title,
 - exposes ``get_removebg_client()`` for a shared, lazily built instance.
"""

from __future__ import annotations

import logging
from threading import Lock
from typing import Optional

import requests

from . import config
from .errors import TransferError

logger = logging.getLogger(__name__)

IMAGE_FIELD = "image_file"
API_KEY_HEADER = "X-Api-Key"
GENERIC_FAILURE_MESSAGE = "Background removal failed. Please try again."

_CLIENT = None
_LOCK = Lock()


def extract_error_title(response: requests.Response) -> Optional[str]:
    """Return the first ``errors[].title`` from a JSON error body, if any."""
    try:
        body = response.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None
    errors = body.get("errors")
    if not isinstance(errors, list) or not errors:
        return None
    first = errors[0]
    if not isinstance(first, dict):
        return None
    title = first.get("title")
    if isinstance(title, str) and title.strip():
        return title
    return None


class RemoveBgClient:
    """Client for removing backgrounds from images via the remove.bg API."""

    def __init__(
        self,
        api_key: str,
        endpoint: str = "https://api.remove.bg/v1.0/removebg",
        timeout_seconds: int = 30,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.endpoint = endpoint
        self.timeout_seconds = timeout_seconds
        self.session = session or requests.Session()

    def remove_background(
        self,
        image_data: bytes,
        filename: str = "image",
        content_type: str = "application/octet-stream",
    ) -> bytes:
        """
        Send one image to remove.bg and return the cutout bytes.

        No retry is performed.

        Raises:
            TransferError: on network failure or any non-success status.
        """
        try:
            response = self.session.post(
                self.endpoint,
                files={IMAGE_FIELD: (filename, image_data, content_type)},
                headers={API_KEY_HEADER: self.api_key},
                timeout=(5, self.timeout_seconds),
            )
        except requests.RequestException as exc:
            logger.exception("remove.bg request failed: %s", exc)
            raise TransferError(GENERIC_FAILURE_MESSAGE) from exc

        if response.ok:
            return response.content

        title = extract_error_title(response)
        logger.warning(
            "remove.bg returned status=%s title=%s", response.status_code, title
        )
        raise TransferError(title or GENERIC_FAILURE_MESSAGE, status_code=response.status_code)


def get_removebg_client() -> RemoveBgClient:
    """
    Return a singleton client built from settings.

    The underlying requests session is reused across transfers.
    """
    global _CLIENT
    if _CLIENT is not None:
        return _CLIENT

    with _LOCK:
        if _CLIENT is None:
            settings = config.get_settings()
            _CLIENT = RemoveBgClient(
                api_key=settings.removebg_api_key,
                endpoint=settings.removebg_endpoint,
                timeout_seconds=settings.request_timeout_seconds,
            )
            logger.info("remove.bg client ready for %s", settings.removebg_endpoint)
    return _CLIENT
