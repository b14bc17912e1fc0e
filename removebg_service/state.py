"""Explicit workflow states and the legal transitions between them."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, Optional

from .images import ResultImage, SourceImage


class WorkflowStatus(str, Enum):
    IDLE = "idle"
    IMAGE_LOADED = "image_loaded"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class WorkflowState:
    status: WorkflowStatus = WorkflowStatus.IDLE
    source: Optional[SourceImage] = None
    result: Optional[ResultImage] = None
    error: Optional[str] = None

    def __post_init__(self) -> None:
        has_source = self.source is not None
        has_result = self.result is not None
        if has_result and not has_source:
            raise ValueError("result image requires a source image")

        status = self.status
        if status is WorkflowStatus.IDLE:
            ok = not has_source and self.error is None
        elif status is WorkflowStatus.FAILED:
            ok = not has_source and self.error is not None
        elif status is WorkflowStatus.IMAGE_LOADED:
            ok = has_source and not has_result
        elif status is WorkflowStatus.PROCESSING:
            ok = has_source and not has_result
        else:
            ok = has_result
        if not ok:
            raise ValueError(f"inconsistent workflow state for status {status.value}")

    # Transitions

    def rejected(self, message: str) -> "WorkflowState":
        """A rejected upload: keep images, record the error."""
        if self.source is None:
            return WorkflowState(status=WorkflowStatus.FAILED, error=message)
        return replace(self, error=message)

    def loaded(self, source: SourceImage) -> "WorkflowState":
        return WorkflowState(status=WorkflowStatus.IMAGE_LOADED, source=source)

    def processing(self) -> "WorkflowState":
        return WorkflowState(status=WorkflowStatus.PROCESSING, source=self.source)

    def completed(self, result: ResultImage) -> "WorkflowState":
        return WorkflowState(status=WorkflowStatus.COMPLETED, source=self.source, result=result)

    def transfer_failed(self, message: str) -> "WorkflowState":
        return WorkflowState(status=WorkflowStatus.IMAGE_LOADED, source=self.source, error=message)

    def to_dict(self) -> Dict[str, Any]:
        def _meta(image):
            if image is None:
                return None
            return {
                "filename": image.filename,
                "mime_type": image.mime_type,
                "width": image.size[0],
                "height": image.size[1],
                "size_bytes": len(image.data),
            }

        return {
            "status": self.status.value,
            "error": self.error,
            "source": _meta(self.source),
            "result": _meta(self.result),
        }
