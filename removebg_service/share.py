"""
Share capability for finished cutouts.

A ``ShareTarget`` is whatever the host environment offers for handing a file
to someone else. The bundled ``R2ShareTarget`` uploads the cutout to an
S3-compatible bucket (Cloudflare R2) and returns a link to it.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Optional, Protocol
from urllib.parse import urljoin

import boto3
from botocore.client import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from . import config
from .errors import ShareFailure, ShareUnsupported

logger = logging.getLogger(__name__)

SHARE_UNSUPPORTED_NOTICE = (
    "Sharing is not supported in this environment. You can download the image instead."
)


@dataclass(frozen=True)
class SharePayload:
    title: str
    filename: str
    mime_type: str
    data: bytes


@dataclass(frozen=True)
class ShareOutcome:
    shared: bool
    url: Optional[str] = None
    notice: Optional[str] = None


class ShareTarget(Protocol):
    def share(self, payload: SharePayload) -> Optional[str]:
        """Share the payload, returning a link when the target produces one."""
        ...


class R2ShareTarget:
    """Publish cutouts to an R2 bucket and hand back a public or presigned URL."""

    def __init__(self, settings: config.Settings, client=None):
        if not settings.share_storage_configured:
            raise ShareUnsupported("R2 configuration is incomplete; check env vars.")
        self.settings = settings
        self._client = client

    def _get_s3_client(self):
        if self._client is None:
            session = boto3.session.Session()
            self._client = session.client(
                service_name="s3",
                aws_access_key_id=self.settings.r2_access_key_id,
                aws_secret_access_key=self.settings.r2_secret_access_key,
                endpoint_url=self.settings.r2_endpoint,
                config=BotoConfig(signature_version="s3v4"),
            )
        return self._client

    def _build_public_url(self, key: str) -> str:
        if self.settings.r2_public_base_url:
            return urljoin(self.settings.r2_public_base_url.rstrip("/") + "/", key)
        return self._get_s3_client().generate_presigned_url(
            "get_object",
            Params={"Bucket": self.settings.r2_bucket_name, "Key": key},
            ExpiresIn=3600,
        )

    def share(self, payload: SharePayload) -> Optional[str]:
        key = f"shared/{uuid.uuid4()}/{payload.filename}"
        try:
            self._get_s3_client().put_object(
                Bucket=self.settings.r2_bucket_name,
                Key=key,
                Body=payload.data,
                ContentType=payload.mime_type,
                Metadata={"title": payload.title},
            )
            url = self._build_public_url(key)
        except (BotoCoreError, ClientError) as exc:
            raise ShareFailure(f"Upload to storage failed: {exc}") from exc
        logger.info("Shared cutout as %s", key)
        return url


def default_share_target(settings: config.Settings) -> Optional[ShareTarget]:
    """Return the share target the environment supports, or None."""
    try:
        return R2ShareTarget(settings)
    except ShareUnsupported as exc:
        logger.info("Share target unavailable: %s", exc)
        return None
