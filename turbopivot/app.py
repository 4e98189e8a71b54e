"""
FastAPI application exposing pivot computation to the UI.

Routes delegate to the ingestion collaborator and the pivot executor.
"""
from __future__ import annotations

import logging
from pathlib import Path

from fastapi import FastAPI, HTTPException, Query
from pydantic import BaseModel

from .config import get_settings
from .ingestion import list_columns, load_dataset
from .pivot import PivotError, PivotExecutor, PivotRequest, PivotResult
from .pivot.errors import DatasetError, DatasetNotFoundError

logger = logging.getLogger(__name__)

app = FastAPI(title="TurboPivot", version="0.1.0", docs_url="/docs", redoc_url="/redoc", openapi_url="/openapi.json")


# ============================================================================
# Pydantic Models
# ============================================================================

class PivotQuery(PivotRequest):
    data_path: str


class ColumnsResponse(BaseModel):
    columns: list[str]


class HealthResponse(BaseModel):
    status: str


# ============================================================================
# Helpers
# ============================================================================

def _resolve_path(raw: str) -> Path:
    path = Path(raw).expanduser()
    if not path.is_absolute():
        path = Path(get_settings().data_root) / path
    return path


def _dataset_error(exc: DatasetError) -> HTTPException:
    status = 404 if isinstance(exc, DatasetNotFoundError) else 400
    return HTTPException(status, exc.to_dict())


# ============================================================================
# Routes
# ============================================================================

@app.on_event("startup")
async def startup() -> None:
    s = get_settings()
    logging.basicConfig(level=s.log_level)
    logger.info("TurboPivot started (data_root=%s, max_workers=%d)", s.data_root, s.max_workers)


@app.get("/api/health", response_model=HealthResponse)
def health() -> HealthResponse:
    return HealthResponse(status="ok")


@app.get("/api/columns", response_model=ColumnsResponse)
def get_columns(path: str = Query(..., min_length=1)) -> ColumnsResponse:
    try:
        return ColumnsResponse(columns=list_columns(_resolve_path(path)))
    except DatasetError as exc:
        raise _dataset_error(exc) from exc


@app.post("/api/pivot", response_model=PivotResult)
def run_pivot(query: PivotQuery) -> PivotResult:
    try:
        dataset = load_dataset(_resolve_path(query.data_path))
    except DatasetError as exc:
        raise _dataset_error(exc) from exc

    request = PivotRequest.model_validate(query.model_dump(exclude={"data_path"}))
    try:
        return PivotExecutor(get_settings()).execute(dataset, request)
    except PivotError as exc:
        logger.warning("Pivot rejected: %s", exc)
        raise HTTPException(400, exc.to_dict()) from exc
