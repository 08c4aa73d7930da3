"""
HTTP API for SnapLedger

Routes:
- POST   /api/ai/analyze-receipt   screenshot -> line items for review
- POST   /api/transactions/batch   confirmed line items -> transactions
- GET    /api/transactions         list transactions (optional date range)
- DELETE /api/transactions/{id}
- GET    /api/categories           the user's category catalog
- DELETE /api/categories/{id}      user categories only
- GET    /api/statistics           totals for a period

Every error response has the shape {"error": "..."}. Raw model output
and stack traces never leave the server.
"""

import asyncio
from contextlib import asynccontextmanager
from datetime import date
from typing import Optional
from uuid import UUID

import structlog
from fastapi import Depends, FastAPI, File, Query, UploadFile
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from starlette.exceptions import HTTPException as StarletteHTTPException

from snapledger.api.dependencies import get_components, get_current_user_id
from snapledger.audit import create_correlation_id
from snapledger.models.ledger import ConfirmedLineItem, StatisticsPeriod
from snapledger.orchestrator import AppComponents, InvalidImageError
from snapledger.reports import StatisticsError
from snapledger.services.storage import NotFoundError, PermissionDeniedError
from snapledger.services.vision import AnalysisError


logger = structlog.get_logger(__name__)

ANALYSIS_FAILED = "Failed to analyze receipt"


class BatchSaveRequest(BaseModel):
    """Body of POST /api/transactions/batch."""

    items: list[ConfirmedLineItem] = Field(default_factory=list)


def _error(status_code: int, message: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message, **extra})


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        added = await get_components().category_service.seed_defaults()
        logger.info("default_categories_seeded", added=added)
    except Exception as e:
        logger.error("default_category_seed_failed", error=str(e))
    yield


app = FastAPI(title="SnapLedger", lifespan=lifespan)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request, exc: StarletteHTTPException):
    return _error(exc.status_code, str(exc.detail))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request, exc: RequestValidationError):
    return _error(400, "Invalid request", details=jsonable_encoder(exc.errors()))


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.post("/api/ai/analyze-receipt")
async def analyze_receipt(
    image: Optional[UploadFile] = File(default=None),
    user_id: UUID = Depends(get_current_user_id),
    components: AppComponents = Depends(get_components),
):
    if image is None:
        return _error(400, "No image provided")

    flow = components.analysis_flow
    correlation_id = create_correlation_id()

    # Catalog fetch and upload read are independent
    image_bytes, catalog = await asyncio.gather(
        image.read(),
        flow.load_catalog(user_id, correlation_id),
    )

    try:
        result = await flow.analyze(
            owner_id=user_id,
            image_bytes=image_bytes,
            filename=image.filename or "upload",
            mime_type=image.content_type,
            catalog=catalog,
            correlation_id=correlation_id,
        )
    except InvalidImageError as e:
        return _error(400, str(e))
    except AnalysisError as e:
        return _error(500, ANALYSIS_FAILED, code=e.code)
    except Exception as e:
        await components.audit_logger.log_error(
            error_type="receipt_analysis",
            error_message=str(e),
            correlation_id=correlation_id,
        )
        return _error(500, ANALYSIS_FAILED)

    return result.to_response()


@app.post("/api/transactions/batch")
async def save_transactions(
    body: BatchSaveRequest,
    user_id: UUID = Depends(get_current_user_id),
    components: AppComponents = Depends(get_components),
):
    if not body.items:
        return _error(400, "No items to save")

    report = await components.save_flow.save_items(user_id, body.items)
    content = report.model_dump(mode="json")
    content["message"] = report.summary_message

    if report.is_failure:
        return _error(500, report.summary_message, report=content)
    return content


@app.get("/api/transactions")
async def list_transactions(
    date_from: Optional[date] = Query(default=None),
    date_to: Optional[date] = Query(default=None),
    limit: int = Query(default=500, ge=1, le=5000),
    offset: int = Query(default=0, ge=0),
    user_id: UUID = Depends(get_current_user_id),
    components: AppComponents = Depends(get_components),
):
    transactions = await components.save_flow.list_transactions(
        user_id,
        date_from=date_from,
        date_to=date_to,
        limit=limit,
        offset=offset,
    )
    return {
        "transactions": [
            t.model_dump(mode="json", by_alias=True, exclude={"owner_id"})
            for t in transactions
        ],
    }


@app.delete("/api/transactions/{transaction_id}")
async def delete_transaction(
    transaction_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    components: AppComponents = Depends(get_components),
):
    deleted = await components.save_flow.delete_transaction(user_id, transaction_id)
    if not deleted:
        return _error(404, "Transaction not found")
    return {"deleted": True}


@app.get("/api/categories")
async def list_categories(
    user_id: UUID = Depends(get_current_user_id),
    components: AppComponents = Depends(get_components),
):
    catalog = await components.category_service.list_categories(user_id)
    return {
        "categories": [
            c.model_dump(mode="json", exclude={"owner_id"}) for c in catalog
        ],
    }


@app.delete("/api/categories/{category_id}")
async def delete_category(
    category_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    components: AppComponents = Depends(get_components),
):
    try:
        reassigned = await components.category_service.delete_category(user_id, category_id)
    except NotFoundError:
        return _error(404, "Category not found")
    except PermissionDeniedError:
        return _error(403, "Default categories cannot be deleted")
    return {"deleted": True, "reassigned": reassigned}


@app.get("/api/statistics")
async def get_statistics(
    period: StatisticsPeriod = Query(default=StatisticsPeriod.MONTH),
    offset: int = Query(default=0),
    user_id: UUID = Depends(get_current_user_id),
    components: AppComponents = Depends(get_components),
):
    try:
        summary = await components.statistics_service.summarize(user_id, period, offset)
    except StatisticsError as e:
        return _error(400, str(e))
    return summary.model_dump(mode="json")
