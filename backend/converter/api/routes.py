"""API routes for upload, conversion and download of converted files."""
import asyncio
import logging
import uuid
from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, HTTPException, Query, Request, UploadFile
from fastapi.responses import Response

from converter.config import (
    DEFAULT_OUTPUT_FORMAT,
    MAX_IMAGE_SIZE_BYTES,
    MAX_IMAGES_PER_UPLOAD,
    SIZE_PRESETS,
)
from converter.conversion.capabilities import Capabilities
from converter.conversion.models import ConversionRecord, InputFile, OutputCodec
from converter.conversion.service import ConversionService, get_conversion_service

logger = logging.getLogger("converter.api")
router = APIRouter(prefix="/api", tags=["converter"])


def get_or_create_session_id(request: Request) -> str:
    """Use X-Session-ID header or generate and attach to request for response header."""
    sid = (request.headers.get("X-Session-ID") or "").strip()
    if sid:
        return sid
    sid = str(uuid.uuid4())
    request.state.session_id = sid
    return sid


def _record_to_dict(r: ConversionRecord) -> dict:
    out = {
        "record_id": r.record_id,
        "filename": r.filename,
        "status": r.status.value,
        "error": r.error,
        "input_type": r.input_type,
        "input_size": r.input_size,
        "target_bytes": r.target_bytes,
        "download_name": None,
        "output_type": None,
        "output_size": None,
        "download_url": None,
    }
    if r.result is not None:
        out["download_name"] = r.result.download_name
        out["output_type"] = r.result.mime_type
        out["output_size"] = r.result.size
        out["download_url"] = f"/api/download/{r.record_id}"
    return out


async def _read_upload(file: UploadFile) -> InputFile:
    max_mb = MAX_IMAGE_SIZE_BYTES // (1024 * 1024)
    chunks = []
    total = 0
    while chunk := await file.read(1024 * 1024):
        total += len(chunk)
        if total > MAX_IMAGE_SIZE_BYTES:
            raise HTTPException(413, f"File too large: {file.filename} (max {max_mb} MB)")
        chunks.append(chunk)
    return InputFile(name=file.filename or "image", content_type=file.content_type or "", data=b"".join(chunks))


def default_output_format(caps: Capabilities) -> str:
    """Configured default output, or JPEG when that codec cannot be encoded here."""
    codec = OutputCodec.parse(DEFAULT_OUTPUT_FORMAT)
    if codec is None or not codec.mime_type or not caps.supports(codec):
        return OutputCodec.JPEG.value
    return codec.value


@router.get("/health")
def health():
    return {"status": "ok"}


@router.get("/limits")
def get_limits():
    """Return upload limits for the client."""
    return {
        "max_images_per_upload": MAX_IMAGES_PER_UPLOAD,
        "max_image_size_mb": MAX_IMAGE_SIZE_BYTES // (1024 * 1024),
        "max_image_size_bytes": MAX_IMAGE_SIZE_BYTES,
    }


@router.get("/formats")
def get_formats(svc: ConversionService = Depends(get_conversion_service)):
    """Output codecs with whether this server can encode them."""
    caps = svc.capabilities
    return {
        "output": [
            {
                "value": codec.value,
                "label": codec.label,
                "mime_type": codec.mime_type or None,
                "extension": codec.extension,
                "quality_adjustable": codec.quality_adjustable,
                "supported": caps.supports(codec),
            }
            for codec in OutputCodec
        ],
        "default_output": default_output_format(caps),
        "support_notes": caps.notes(),
    }


@router.get("/presets")
def get_presets():
    """Size presets (name -> fraction of original size, null for custom KB)."""
    return dict(SIZE_PRESETS)


@router.post("/convert")
async def convert_files(
    files: list[UploadFile] = File(...),
    output_format: str = Query(DEFAULT_OUTPUT_FORMAT, description="jpeg | png | webp | avif | heic"),
    size_preset: str = Query("same", description="same | large | medium | small | custom"),
    custom_kb: Optional[float] = Query(None, description="Target size in KB when size_preset=custom"),
    session_id: str = Depends(get_or_create_session_id),
    svc: ConversionService = Depends(get_conversion_service),
):
    """Convert uploaded images one after another. Per-file failures are reported, not raised."""
    preset = (size_preset or "").strip().lower()
    if preset not in SIZE_PRESETS:
        raise HTTPException(400, f"Unknown size preset: {size_preset}")
    if len(files) > MAX_IMAGES_PER_UPLOAD:
        raise HTTPException(400, f"Max {MAX_IMAGES_PER_UPLOAD} images per upload (max {MAX_IMAGE_SIZE_BYTES // (1024*1024)} MB each)")

    inputs = [await _read_upload(f) for f in files]
    logger.info("Converting %s file(s) to %s (preset=%s, custom_kb=%s)", len(inputs), output_format, preset, custom_kb)
    batch = await asyncio.to_thread(
        svc.convert_many,
        inputs,
        output_format,
        preset,
        custom_kb if preset == "custom" else None,
    )
    svc.store_run(session_id, batch)
    return {
        "records": [_record_to_dict(r) for r in batch.records],
        "status": batch.status_message,
        "is_error": batch.is_error,
        "last_error": batch.last_error,
        "converted": batch.converted_count,
    }


@router.get("/session/outputs")
def session_outputs(
    session_id: str = Depends(get_or_create_session_id),
    svc: ConversionService = Depends(get_conversion_service),
):
    """Records from the current session's latest run."""
    return {"records": [_record_to_dict(r) for r in svc.list_session(session_id)]}


@router.delete("/session/outputs")
def session_clear(
    session_id: str = Depends(get_or_create_session_id),
    svc: ConversionService = Depends(get_conversion_service),
):
    """Discard converted outputs held for the current session."""
    removed = svc.clear_session(session_id)
    return {"ok": True, "removed": removed, "message": "Cleared."}


@router.get("/download/{record_id}")
def download_output(record_id: str, svc: ConversionService = Depends(get_conversion_service)):
    """Download converted bytes for a record."""
    record = svc.get_record(record_id)
    if not record:
        raise HTTPException(404, "Record not found")
    if record.result is None:
        raise HTTPException(404, "No output for this record")
    name = record.result.download_name
    return Response(
        content=record.result.data,
        media_type=record.result.mime_type,
        headers={"Content-Disposition": f"attachment; filename*=UTF-8''{quote(name)}"},
    )
