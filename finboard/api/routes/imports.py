import uuid
from typing import Any, Dict, List

from fastapi import APIRouter, Body, Depends, File, HTTPException, UploadFile

from finboard.api.dependencies import get_user_data_service, get_user_id
from finboard.clients.spreadsheet_reader import read_grid
from finboard.core.config import settings
from finboard.core.exceptions import LedgerError, NoImportableRowsError, NotFoundError
from finboard.core.logger import logger
from finboard.managers.cache_manager import CacheManager
from finboard.schemas.imports import ImportPreview, ImportPreviewOut, ImportResult
from finboard.services.import_service import (
    commit_import,
    stage_api_records,
    stage_grid,
    summarize_import,
)
from finboard.services.portfolio_service import get_portfolio
from finboard.services.user_data_service import UserDataService

router = APIRouter()
previews = CacheManager(prefix="imports")


def _error_detail(e: LedgerError):
    if isinstance(e, NoImportableRowsError):
        return {
            "message": str(e),
            "skipped_rows": [r.model_dump(mode="json") for r in e.skipped_rows],
        }
    return str(e)


def _store_preview(user_id: str, service: UserDataService, preview: ImportPreview) -> ImportPreviewOut:
    """Keep the staged import server-side until the user commits or discards it."""
    user_data = service.load(user_id)
    portfolio = service.active_portfolio(user_data)

    import_id = uuid.uuid4().hex
    previews.set(
        {"portfolio_id": portfolio.id, "preview": preview.model_dump(mode="json")},
        import_id,
        user_id=user_id,
        ttl=settings.IMPORT_PREVIEW_TTL,
    )
    return ImportPreviewOut(
        import_id=import_id,
        portfolio_id=portfolio.id,
        summary=summarize_import(preview, portfolio),
        transactions=preview.transactions,
    )


@router.post("/spreadsheet", response_model=ImportPreviewOut)
async def preview_spreadsheet(
        file: UploadFile = File(...),
        user_id: str = Depends(get_user_id),
        service: UserDataService = Depends(get_user_data_service),
):
    """Stage a brokerage export (.csv, .xlsx, .xls). Nothing is written until commit."""
    try:
        content = await file.read()
        if len(content) > settings.IMPORT_MAX_UPLOAD_BYTES:
            raise HTTPException(413, detail="File is too large")

        grid = read_grid(file.filename, content)
        preview = stage_grid(grid, settings.activity_types)
        return _store_preview(user_id, service, preview)
    except HTTPException:
        raise
    except LedgerError as e:
        raise HTTPException(e.status_code, detail=_error_detail(e))
    except Exception as e:
        logger.error(f"preview_spreadsheet failed: {e}", exc_info=True)
        raise HTTPException(500, detail="Failed to read spreadsheet")


@router.post("/records", response_model=ImportPreviewOut)
def preview_records(
        records: List[Dict[str, Any]] = Body(...),
        user_id: str = Depends(get_user_id),
        service: UserDataService = Depends(get_user_data_service),
):
    """Stage transactions fetched from a brokerage API."""
    try:
        preview = stage_api_records(records, settings.api_activity_types)
        return _store_preview(user_id, service, preview)
    except LedgerError as e:
        raise HTTPException(e.status_code, detail=_error_detail(e))
    except Exception as e:
        logger.error(f"preview_records failed: {e}", exc_info=True)
        raise HTTPException(500, detail="Failed to stage records")


@router.post("/{import_id}/commit", response_model=ImportResult)
def commit(
        import_id: str,
        user_id: str = Depends(get_user_id),
        service: UserDataService = Depends(get_user_data_service),
):
    """Apply a staged import to the portfolio it was previewed against. Each import id commits once."""
    try:
        stored = previews.pop(import_id, user_id=user_id)
        if stored is None:
            raise NotFoundError(f"Import {import_id} not found or already committed")

        preview = ImportPreview.model_validate(stored["preview"])
        user_data = service.load(user_id)
        # id 0 means the preview was staged while the user had no portfolio
        portfolio_id = stored["portfolio_id"]
        portfolio = get_portfolio(user_data, portfolio_id) if portfolio_id else None

        result = commit_import(portfolio, preview, ids=service.ids)
        service.save(user_id, user_data)
        return result
    except LedgerError as e:
        raise HTTPException(e.status_code, detail=_error_detail(e))
    except Exception as e:
        logger.error(f"commit import failed: {e}", exc_info=True)
        raise HTTPException(500, detail="Failed to commit import")


@router.delete("/{import_id}")
def discard(import_id: str, user_id: str = Depends(get_user_id)):
    try:
        return {"status": "ok", "discarded": previews.delete(import_id, user_id=user_id)}
    except Exception as e:
        logger.error(f"discard import failed: {e}", exc_info=True)
        raise HTTPException(500, detail="Failed to discard import")
