"""
Two-phase import endpoints: process an upload, then commit or discard it.
"""
import logging

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from fastapi.responses import PlainTextResponse

from prospect_crm.api.dependencies import get_cache, get_client, get_pipeline, get_store
from prospect_crm.api.schemas.imports import (
    DiscardResponse,
    ImportCommitResponse,
    ImportCounts,
    ImportResultResponse,
    ImportStatsResponse,
)
from prospect_crm.core.config import settings
from prospect_crm.domain.imports.errors import NothingStagedError, UnsupportedFileTypeError
from prospect_crm.domain.imports.handlers import ImportCommitHandler, build_import_template
from prospect_crm.domain.imports.orchestrator import ImportPipeline, ImportResult

router = APIRouter(prefix="/imports", tags=["imports"])

logger = logging.getLogger(__name__)

MAX_UPLOAD_BYTES = settings.upload_max_file_size_mb * 1024 * 1024
TEMPLATE_FILENAME = "crm_import_template.csv"


def _ensure_within_size_limit(file_size: int, file_name: str) -> None:
    """Raise an HTTPException if a file exceeds the configured upload limit."""
    if file_size > MAX_UPLOAD_BYTES:
        raise HTTPException(
            status_code=413,
            detail=(
                f"{file_name} is too large. "
                f"Maximum allowed upload size is {settings.upload_max_file_size_mb}MB."
            ),
        )


def _to_response(result: ImportResult) -> ImportResultResponse:
    response = ImportResultResponse(
        success=result.success,
        message=result.message,
        file_name=result.file_name,
    )
    if result.stats is not None:
        response.stats = ImportStatsResponse(**result.stats.to_dict())
    if result.data is not None:
        prospects, prices, outreach = result.data.counts
        response.counts = ImportCounts(prospects=prospects, prices=prices, outreach=outreach)
        response.prospects = [p.to_wire() for p in result.data.prospects]
        response.prices = [p.to_wire() for p in result.data.prices]
        response.outreach = [o.to_wire() for o in result.data.outreach]
    return response


@router.post("/process", response_model=ImportResultResponse)
async def process_import(
    file: UploadFile = File(...),
    pipeline: ImportPipeline = Depends(get_pipeline),
):
    """
    Parse and classify an uploaded CSV or JSON file and stage the result.

    Nothing is saved until ``POST /imports/commit``. A file that cannot be
    decoded still returns 200 with ``success: false`` and the reason.
    """
    content = await file.read()
    _ensure_within_size_limit(len(content), file.filename or "upload")
    logger.info("Received import upload '%s' (%d bytes)", file.filename, len(content))

    try:
        result = pipeline.process(content, file.filename or "", file.content_type)
    except UnsupportedFileTypeError as e:
        raise HTTPException(status_code=400, detail=e.message)

    return _to_response(result)


@router.get("/staged", response_model=ImportResultResponse)
async def get_staged_import(pipeline: ImportPipeline = Depends(get_pipeline)):
    """Return the currently staged result, if any."""
    if pipeline.staged is None:
        raise HTTPException(status_code=404, detail="No import is staged")
    return _to_response(pipeline.staged)


@router.post("/commit", response_model=ImportCommitResponse)
async def commit_import(
    pipeline: ImportPipeline = Depends(get_pipeline),
    store=Depends(get_store),
    cache=Depends(get_cache),
    client=Depends(get_client),
):
    """
    Save the staged import and apply it.

    Prospects replace the working collection, prices are appended to the
    cached price list and outreach records are sent to the visit log.
    """
    handler = ImportCommitHandler(store, cache, client, existing_prices=pipeline.prior_prices())

    try:
        result = await pipeline.commit(handler)
    except NothingStagedError as e:
        raise HTTPException(status_code=409, detail=e.message)
    except Exception as e:
        logger.exception("Import commit callback failed")
        raise HTTPException(
            status_code=502,
            detail=(
                f"Import was saved locally but could not be applied: {e}. "
                "The import is still staged; retry the commit to sync again."
            ),
        )

    return ImportCommitResponse(
        success=result.success,
        message=result.message,
        file_name=result.file_name,
        visits_logged=handler.visits_logged,
        visits_failed=handler.visits_failed,
    )


@router.delete("/staged", response_model=DiscardResponse)
async def discard_import(pipeline: ImportPipeline = Depends(get_pipeline)):
    """Drop the staged import without saving anything."""
    had_staged = pipeline.staged is not None
    pipeline.discard()
    return DiscardResponse(
        success=True,
        message="Staged import discarded" if had_staged else "Nothing was staged",
    )


@router.get("/template", response_class=PlainTextResponse)
async def download_template():
    """CSV template with a sample prospect and sample prices."""
    return PlainTextResponse(
        build_import_template(),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{TEMPLATE_FILENAME}"'},
    )
