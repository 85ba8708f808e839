"""
Medicine Router

HTTP endpoints of the medicine identification pipeline.
"""

import logging

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from .schemas import (
    AnalyzeRequest,
    AnalyzeResponse,
    HealthResponse,
    MedicineSuggestion,
    SearchResponse,
    TokenStatusResponse,
)
from ..application.pipeline.orchestrator import PipelineOrchestrator
from ..application.services.token_ledger import TokenLedger
from ..domain.entities.analysis_request import MIN_USER_ID_LENGTH
from ..domain.entities.pipeline_result import PipelineStatus
from ..domain.ports.registry_store import RegistryStorePort
from ..domain.exceptions import RegistryError


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/medicine", tags=["Medicine"])


HTTP_STATUS = {
    PipelineStatus.SUCCESS: 200,
    PipelineStatus.INSUFFICIENT_TOKENS: 402,
    PipelineStatus.SERVICE_UNAVAILABLE: 503,
    PipelineStatus.ERROR: 500,
}


def get_orchestrator(request: Request) -> PipelineOrchestrator:
    return request.app.state.orchestrator


def get_ledger(request: Request) -> TokenLedger:
    return request.app.state.ledger


def get_registry_store(request: Request) -> RegistryStorePort:
    return request.app.state.registry_store


def _valid_user_id(user_id) -> bool:
    return isinstance(user_id, str) and len(user_id.strip()) >= MIN_USER_ID_LENGTH


def _error(status_code: int, message: str) -> JSONResponse:
    body = AnalyzeResponse(status=PipelineStatus.ERROR.value, message=message)
    return JSONResponse(status_code=status_code, content=body.model_dump())


@router.post("/analyze", response_model=AnalyzeResponse)
async def analyze_medicine(
    body: AnalyzeRequest,
    orchestrator: PipelineOrchestrator = Depends(get_orchestrator)
):
    """
    Identify a medicine from a packaging photo and/or a question.

    Status codes: 200 SUCCESS, 402 INSUFFICIENT_TOKENS,
    503 SERVICE_UNAVAILABLE, 500 ERROR, 400 missing input, 401 bad user id.
    """
    if not _valid_user_id(body.user_id):
        return _error(401, "A valid user id is required.")

    if not body.image_data and not (body.text_query and body.text_query.strip()):
        return _error(400, "Image data or text query is required.")

    result = await orchestrator.run_pipeline(body.image_data, body.text_query, body.user_id)

    return JSONResponse(status_code=HTTP_STATUS[result.status], content=result.to_dict())


@router.get("/search", response_model=SearchResponse)
async def search_medicines(
    q: str = Query(..., min_length=1),
    limit: int = Query(10, ge=1, le=50),
    store: RegistryStorePort = Depends(get_registry_store)
):
    """Registry suggestions for a partial product name."""
    try:
        records = await store.search(q, limit=limit)
    except RegistryError as e:
        logger.error(f"Registry search failed: {e}")
        return JSONResponse(status_code=503, content={"detail": "Medicine registry is unavailable."})

    results = [
        MedicineSuggestion(
            id=r.id,
            registration_number=r.registration_number,
            product_name=r.product_name,
            status=r.status,
        )
        for r in records
    ]
    return SearchResponse(query=q, count=len(results), results=results)


@router.get("/token-status", response_model=TokenStatusResponse)
async def token_status(
    user_id: str = Query(...),
    ledger: TokenLedger = Depends(get_ledger)
):
    """Token availability of a user (provisions first-seen users)."""
    if not _valid_user_id(user_id):
        return JSONResponse(status_code=401, content={"detail": "A valid user id is required."})

    check = await ledger.check_availability(user_id)
    return TokenStatusResponse(user_id=user_id, **check.to_dict())


@router.get("/health", response_model=HealthResponse)
async def medicine_health(
    orchestrator: PipelineOrchestrator = Depends(get_orchestrator),
    store: RegistryStorePort = Depends(get_registry_store)
):
    """Check if the pipeline is ready."""
    try:
        count = await store.count()
    except RegistryError as e:
        return HealthResponse(status="degraded", model=orchestrator.model_name, registry_error=e.message)

    return HealthResponse(
        status="healthy" if count else "degraded",
        model=orchestrator.model_name,
        registry_records=count,
    )
