"""
High-level image transfer workflow.

``ImageTransferWorkflow`` is the main entry point used by both the HTTP API
and the local CLI. It keeps orchestration simple:
upload -> validate/decode -> remove.bg -> cutout -> download or share.

All operations run on one event loop. Pillow decoding and the blocking
requests call are pushed to worker threads so the loop stays responsive, but
only one transfer may be in flight at a time. Nothing is ever cancelled: a
``reset()`` or a new upload bumps the generation counter and any outcome that
arrives for an older generation is dropped.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from . import config
from .client import GENERIC_FAILURE_MESSAGE, RemoveBgClient
from .errors import (
    ShareFailure,
    ShareUnsupported,
    TransferError,
    TransferInProgressError,
    UploadSupersededError,
    ValidationError,
)
from .images import (
    INVALID_IMAGE_MESSAGE,
    ResultImage,
    SourceImage,
    UploadedFile,
    check_upload,
    decode_result,
    decode_source,
)
from .share import SHARE_UNSUPPORTED_NOTICE, ShareOutcome, SharePayload, ShareTarget
from .state import WorkflowState, WorkflowStatus

logger = logging.getLogger(__name__)

SHARE_MIME_TYPE = "image/png"


@dataclass(frozen=True)
class TransferOutcome:
    """Either a decoded cutout or an error message, never both."""

    image: Optional[ResultImage] = None
    error: Optional[str] = None


class ImageTransferWorkflow:
    def __init__(
        self,
        settings: Optional[config.Settings] = None,
        client: Optional[RemoveBgClient] = None,
        share_target: Optional[ShareTarget] = None,
    ):
        self.settings = settings or config.get_settings()
        self.client = client or RemoveBgClient(
            api_key=self.settings.removebg_api_key,
            endpoint=self.settings.removebg_endpoint,
            timeout_seconds=self.settings.request_timeout_seconds,
        )
        self.share_target = share_target
        self._state = WorkflowState()
        self._generation = 0
        self._upload_seq = 0

    # Accessors

    @property
    def state(self) -> WorkflowState:
        return self._state

    @property
    def status(self) -> WorkflowStatus:
        return self._state.status

    @property
    def source(self) -> Optional[SourceImage]:
        return self._state.source

    @property
    def result(self) -> Optional[ResultImage]:
        return self._state.result

    @property
    def error(self) -> Optional[str]:
        return self._state.error

    def _set(self, state: WorkflowState) -> None:
        if state.status is not self._state.status:
            logger.info("Workflow %s -> %s", self._state.status.value, state.status.value)
        self._state = state

    # Operations

    async def accept_file(self, upload: UploadedFile) -> bool:
        """
        Validate and load a newly selected file as the source image.

        Rejections leave the current images in place, set the error message
        and return False. A successful load discards any previous cutout.
        Only the newest selection is kept.

        Raises:
            UploadSupersededError: when a newer selection or a reset landed
                while this file was decoding.
        """
        try:
            check_upload(upload, self.settings.max_upload_bytes)
        except ValidationError as exc:
            logger.info("Rejected upload %s (%d bytes): %s", upload.filename, upload.size, exc)
            self._set(self._state.rejected(str(exc)))
            return False

        self._upload_seq += 1
        ticket = self._upload_seq
        generation = self._generation
        try:
            source = await asyncio.to_thread(decode_source, upload)
        except ValidationError as exc:
            logger.info("Could not decode upload %s: %s", upload.filename, exc)
            self._ensure_current_upload(ticket, generation, upload)
            self._set(self._state.rejected(str(exc)))
            return False
        except Exception as exc:  # noqa: BLE001
            logger.exception("Unexpected error decoding upload %s: %s", upload.filename, exc)
            self._ensure_current_upload(ticket, generation, upload)
            self._set(self._state.rejected(INVALID_IMAGE_MESSAGE))
            return False

        self._ensure_current_upload(ticket, generation, upload)

        self._generation += 1
        self._set(self._state.loaded(source))
        logger.info("Loaded %s (%s, %dx%d)", upload.filename, source.mime_type, *source.size)
        return True

    def _ensure_current_upload(self, ticket: int, generation: int, upload: UploadedFile) -> None:
        if ticket != self._upload_seq or generation != self._generation:
            logger.info("Discarding upload %s, superseded", upload.filename)
            raise UploadSupersededError(f"{upload.filename} was replaced by a newer selection")

    async def request_background_removal(self) -> WorkflowState:
        """
        Send the source image to remove.bg once and record the outcome.

        Without a source image this is a no-op.

        Raises:
            TransferInProgressError: when a transfer is already in flight.
        """
        state = self._state
        if state.source is None:
            logger.debug("No source image loaded; ignoring removal request")
            return state
        if state.status is WorkflowStatus.PROCESSING:
            raise TransferInProgressError("A background removal is already in progress")

        source = state.source
        generation = self._generation
        self._set(state.processing())

        try:
            outcome = await self._transfer(source)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Background removal failed unexpectedly: %s", exc)
            outcome = TransferOutcome(error=GENERIC_FAILURE_MESSAGE)

        if generation != self._generation:
            logger.info("Discarding stale transfer outcome for %s", source.filename)
            return self._state

        if outcome.image is not None:
            self._set(self._state.completed(outcome.image))
        else:
            self._set(self._state.transfer_failed(outcome.error or GENERIC_FAILURE_MESSAGE))
        return self._state

    async def _transfer(self, source: SourceImage) -> TransferOutcome:
        try:
            payload = await asyncio.to_thread(
                self.client.remove_background,
                source.data,
                source.filename or "image",
                source.mime_type,
            )
            image = await asyncio.to_thread(decode_result, payload, self.settings.output_filename)
        except TransferError as exc:
            logger.error("Error removing background: %s", exc.message)
            return TransferOutcome(error=exc.message)
        except ValidationError as exc:
            logger.error("remove.bg returned a payload that is not an image: %s", exc)
            return TransferOutcome(error=GENERIC_FAILURE_MESSAGE)
        return TransferOutcome(image=image)

    def download_result(self, directory: Optional[Path] = None) -> Optional[Path]:
        """Write the cutout to ``<directory>/background-removed.png``."""
        result = self._state.result
        if result is None:
            return None
        target_dir = Path(directory) if directory is not None else self.settings.download_dir
        target_dir.mkdir(parents=True, exist_ok=True)
        path = target_dir / self.settings.output_filename
        path.write_bytes(result.data)
        logger.info("Saved cutout to %s", path)
        return path

    async def share_result(self) -> Optional[ShareOutcome]:
        """
        Hand the cutout to the configured share target.

        Share failures are logged and never touch the error message.
        """
        result = self._state.result
        if result is None:
            return None
        if self.share_target is None:
            logger.warning(SHARE_UNSUPPORTED_NOTICE)
            return ShareOutcome(shared=False, notice=SHARE_UNSUPPORTED_NOTICE)

        payload = SharePayload(
            title=self.settings.share_title,
            filename=self.settings.output_filename,
            mime_type=SHARE_MIME_TYPE,
            data=result.data,
        )
        try:
            url = await asyncio.to_thread(self.share_target.share, payload)
        except ShareUnsupported as exc:
            logger.warning("Share target unsupported: %s", exc)
            return ShareOutcome(shared=False, notice=SHARE_UNSUPPORTED_NOTICE)
        except ShareFailure as exc:
            logger.error("Error sharing: %s", exc)
            return ShareOutcome(shared=False)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Error sharing: %s", exc)
            return ShareOutcome(shared=False)
        return ShareOutcome(shared=True, url=url)

    def reset(self) -> WorkflowState:
        """Return to IDLE. In-flight work is left to finish and then ignored."""
        self._generation += 1
        self._set(WorkflowState())
        return self._state
