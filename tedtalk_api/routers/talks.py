"""
TED Talk API - Talks Router

Endpoints:
    POST /api/v1/talks/import                - Upload a CSV of talks (ADMIN)
    GET  /api/v1/talks                       - Paginated list (USER)
    GET  /api/v1/talks/stats                 - Total talk count (USER)
    GET  /api/v1/talks/year/{year}           - Talks dated in a year (USER)
    GET  /api/v1/talks/influence/speakers    - Speakers ranked by engagement (USER)
    GET  /api/v1/talks/{talk_id}             - Single talk (USER)
"""

from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, File, Path, Query, UploadFile, status
from pydantic import BaseModel, ConfigDict, Field

from ..api import ApiResponse, api_response
from ..core.config import get_settings
from ..core.errors import DatabaseError, ErrorResponse, NoValidRecordsError, NotFoundError
from ..core.security import ROLE_ADMIN, ROLE_USER, AuthContext, require_role
from ..db import get_pool
from ..ingest.csv_import import CsvImportService
from ..models import ImportFailure, ImportPartialSuccess, ImportSuccess
from ..repository import PostgresTalkRepository, TalkStore
from ..services.influence_service import InfluenceService
from ..services.talk_service import TalkService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/talks", tags=["Talks"])

MIN_YEAR = 1984
MAX_YEAR = 9999
MAX_PAGE_SIZE = 100
MAX_SPEAKER_LIMIT = 100

IMPORT_ACCEPTED_MESSAGE = "CSV import accepted and processed successfully"


# ---------------------------------------------------------------------------
# Request/Response Models
# ---------------------------------------------------------------------------


class TalkResponse(BaseModel):
    """A single talk."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    author: str
    date: datetime = Field(..., description="First day of the talk's month")
    views: int
    likes: int
    link: str


class PagedTalksResponse(BaseModel):
    """One page of talks with pagination metadata."""

    content: list[TalkResponse]
    page: int = Field(..., description="0-indexed page number")
    size: int
    total_elements: int
    total_pages: int


class SpeakerResponse(BaseModel):
    """A speaker's aggregated engagement."""

    model_config = ConfigDict(from_attributes=True)

    author: str
    talk_count: int
    total_views: int
    total_likes: int
    average_engagement: float


class StatsResponse(BaseModel):
    total_talks: int


class CsvImportResponse(BaseModel):
    """Outcome of an accepted CSV import."""

    message: str
    records_imported: int
    records_skipped: int = 0
    warnings: list[str] = Field(default_factory=list)
    total_records: int


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


def get_talk_store() -> TalkStore:
    """Store bound to the shared pool. Overridden in tests."""
    pool = get_pool()
    if pool is None:
        raise DatabaseError("Database is not available")
    return PostgresTalkRepository(pool)


def get_talk_service(store: TalkStore = Depends(get_talk_store)) -> TalkService:
    return TalkService(store)


def get_influence_service(store: TalkStore = Depends(get_talk_store)) -> InfluenceService:
    return InfluenceService(store)


def get_import_service(store: TalkStore = Depends(get_talk_store)) -> CsvImportService:
    return CsvImportService(store, max_bytes=get_settings().MAX_UPLOAD_BYTES)


def import_message(records_skipped: int) -> str:
    if records_skipped > 0:
        return f"{IMPORT_ACCEPTED_MESSAGE} ({records_skipped} records skipped due to errors)"
    return IMPORT_ACCEPTED_MESSAGE


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.post(
    "/import",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=CsvImportResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid file, size or header"},
        401: {"model": ErrorResponse, "description": "Missing or invalid credentials"},
        403: {"model": ErrorResponse, "description": "ADMIN role required"},
        422: {"model": ErrorResponse, "description": "No valid records in the file"},
    },
    summary="Import talks from CSV",
    description="""
Upload a CSV with the columns title, author, date, views, likes, link.

Invalid rows are skipped and reported in `warnings`; valid rows are written in
one batch. Dates use the form `"December 2021"`.
""",
)
async def import_talks(
    auth: Annotated[AuthContext, Depends(require_role(ROLE_ADMIN))],
    file: Annotated[UploadFile, File(description="CSV file to import")],
    service: CsvImportService = Depends(get_import_service),
) -> CsvImportResponse:
    """Import a CSV upload and report imported/skipped counts."""
    logger.info(f"CSV import requested by {auth.subject}: {file.filename}")

    outcome = await service.import_stream(file.filename, file)

    match outcome.as_result():
        case ImportSuccess(records_imported=imported):
            return CsvImportResponse(
                message=import_message(0),
                records_imported=imported,
                total_records=imported,
            )
        case ImportPartialSuccess(records_imported=imported, records_skipped=skipped, warnings=warnings):
            return CsvImportResponse(
                message=import_message(skipped),
                records_imported=imported,
                records_skipped=skipped,
                warnings=warnings,
                total_records=imported + skipped,
            )
        case ImportFailure(warnings=warnings):
            raise NoValidRecordsError(skipped=outcome.records_skipped, warnings=warnings)


@router.get(
    "",
    response_model=ApiResponse[PagedTalksResponse],
    summary="List talks",
    description="Talks in ascending id order. `page` is 0-indexed.",
)
async def list_talks(
    auth: Annotated[AuthContext, Depends(require_role(ROLE_USER))],
    page: int = Query(0, ge=0, description="Page number (0-indexed)"),
    size: int = Query(20, ge=1, le=MAX_PAGE_SIZE, description="Results per page"),
    service: TalkService = Depends(get_talk_service),
) -> ApiResponse[PagedTalksResponse]:
    talks, total = await service.list_page(page, size)
    data = PagedTalksResponse(
        content=[TalkResponse.model_validate(t) for t in talks],
        page=page,
        size=size,
        total_elements=total,
        total_pages=math.ceil(total / size) if total else 0,
    )
    return api_response(data=data)


@router.get(
    "/stats",
    response_model=ApiResponse[StatsResponse],
    summary="Talk statistics",
)
async def talk_stats(
    auth: Annotated[AuthContext, Depends(require_role(ROLE_USER))],
    service: TalkService = Depends(get_talk_service),
) -> ApiResponse[StatsResponse]:
    return api_response(data=StatsResponse(total_talks=await service.count()))


@router.get(
    "/year/{year}",
    response_model=ApiResponse[list[TalkResponse]],
    summary="Talks by year",
    description="All talks dated in the given year. An empty list when there are none.",
)
async def talks_by_year(
    auth: Annotated[AuthContext, Depends(require_role(ROLE_USER))],
    year: int = Path(..., ge=MIN_YEAR, le=MAX_YEAR, description="Calendar year"),
    service: TalkService = Depends(get_talk_service),
) -> ApiResponse[list[TalkResponse]]:
    talks = await service.get_by_year(year)
    return api_response(data=[TalkResponse.model_validate(t) for t in talks])


@router.get(
    "/influence/speakers",
    response_model=ApiResponse[list[SpeakerResponse]],
    summary="Most influential speakers",
    description="Speakers ranked by average (views + likes) per talk, highest first.",
)
async def influential_speakers(
    auth: Annotated[AuthContext, Depends(require_role(ROLE_USER))],
    limit: int = Query(5, ge=1, le=MAX_SPEAKER_LIMIT, description="Number of speakers"),
    service: InfluenceService = Depends(get_influence_service),
) -> ApiResponse[list[SpeakerResponse]]:
    speakers = await service.rank(limit)
    return api_response(data=[SpeakerResponse.model_validate(s) for s in speakers])


@router.get(
    "/{talk_id}",
    response_model=ApiResponse[TalkResponse],
    responses={404: {"model": ErrorResponse, "description": "Talk not found"}},
    summary="Get a talk",
)
async def get_talk(
    auth: Annotated[AuthContext, Depends(require_role(ROLE_USER))],
    talk_id: int = Path(..., description="Talk id"),
    service: TalkService = Depends(get_talk_service),
) -> ApiResponse[TalkResponse]:
    talk = await service.get_by_id(talk_id)
    if talk is None:
        raise NotFoundError(f"Talk not found with id: {talk_id}")
    return api_response(data=TalkResponse.model_validate(talk))
