"""
FastAPI layer exposing the image transfer workflow.

Endpoints:
 - GET /health
 - GET /state
 - POST /upload
 - POST /remove-bg
 - GET /source, GET /result
 - GET /download
 - POST /share
 - POST /reset

One workflow backs the whole process, matching a single-user session.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, FastAPI, File, HTTPException, UploadFile
from fastapi.responses import Response
from pydantic import BaseModel

from . import config
from .client import get_removebg_client
from .errors import TransferInProgressError, UploadSupersededError
from .images import UploadedFile
from .share import default_share_target
from .workflow import ImageTransferWorkflow

logger = logging.getLogger(__name__)

app = FastAPI(title="remove.bg Background Removal Service", version="0.1.0")

_WORKFLOW: Optional[ImageTransferWorkflow] = None


class ImageMeta(BaseModel):
    filename: Optional[str] = None
    mime_type: str
    width: int
    height: int
    size_bytes: int


class StateResponse(BaseModel):
    status: str
    error: Optional[str] = None
    source: Optional[ImageMeta] = None
    result: Optional[ImageMeta] = None


class ShareResponse(BaseModel):
    shared: bool
    url: Optional[str] = None
    notice: Optional[str] = None


def get_workflow() -> ImageTransferWorkflow:
    global _WORKFLOW
    if _WORKFLOW is None:
        settings = config.get_settings()
        logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))
        _WORKFLOW = ImageTransferWorkflow(
            settings=settings,
            client=get_removebg_client(),
            share_target=default_share_target(settings),
        )
        logger.info("Workflow ready, endpoint=%s", settings.removebg_endpoint)
    return _WORKFLOW


def _state_response(workflow: ImageTransferWorkflow) -> StateResponse:
    return StateResponse(**workflow.state.to_dict())


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/state", response_model=StateResponse)
async def get_state(workflow: ImageTransferWorkflow = Depends(get_workflow)):
    return _state_response(workflow)


@app.post("/upload", response_model=StateResponse)
async def upload(
    file: UploadFile = File(...),
    workflow: ImageTransferWorkflow = Depends(get_workflow),
):
    data = await file.read()
    try:
        accepted = await workflow.accept_file(
            UploadedFile(filename=file.filename or "upload", content_type=file.content_type, data=data)
        )
    except UploadSupersededError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    if not accepted:
        raise HTTPException(status_code=400, detail=workflow.error)
    return _state_response(workflow)


@app.post("/remove-bg", response_model=StateResponse)
async def remove_bg(workflow: ImageTransferWorkflow = Depends(get_workflow)):
    try:
        await workflow.request_background_removal()
    except TransferInProgressError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return _state_response(workflow)


@app.get("/source")
async def get_source(workflow: ImageTransferWorkflow = Depends(get_workflow)):
    source = workflow.source
    if source is None:
        raise HTTPException(status_code=404, detail="No image uploaded")
    return Response(content=source.data, media_type=source.mime_type)


@app.get("/result")
async def get_result(workflow: ImageTransferWorkflow = Depends(get_workflow)):
    result = workflow.result
    if result is None:
        raise HTTPException(status_code=404, detail="No processed image")
    return Response(content=result.data, media_type=result.mime_type)


@app.get("/download")
async def download(workflow: ImageTransferWorkflow = Depends(get_workflow)):
    result = workflow.result
    if result is None:
        raise HTTPException(status_code=404, detail="No processed image")
    filename = workflow.settings.output_filename
    return Response(
        content=result.data,
        media_type="image/png",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@app.post("/share", response_model=ShareResponse)
async def share(workflow: ImageTransferWorkflow = Depends(get_workflow)):
    outcome = await workflow.share_result()
    if outcome is None:
        raise HTTPException(status_code=404, detail="No processed image")
    return ShareResponse(shared=outcome.shared, url=outcome.url, notice=outcome.notice)


@app.post("/reset", response_model=StateResponse)
async def reset(workflow: ImageTransferWorkflow = Depends(get_workflow)):
    workflow.reset()
    return _state_response(workflow)
