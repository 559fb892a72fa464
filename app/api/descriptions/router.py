"""Description API routes: Gemini generation proxy and Airtable save.

Each endpoint is also mounted under the path the original frontend calls
(``/api/gemini-generate-description`` and ``/api/airtable-descriptions``).
"""

from typing import Any, Dict, NoReturn

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from app.config.logger import app_logger
from app.api.descriptions.schemas import (
    GenerateRequest,
    SaveDescriptionRequest,
    SavedDescription,
)
from app.services.description_save import DescriptionSaveService
from app.services.gemini_gateway import GeminiGateway
from app.utils.errors import ConfigurationError, ResolutionError, UpstreamError
from app.utils.responses import ErrorResponse, RecordResponse, record_response

router = APIRouter(tags=["descriptions"])

ERROR_RESPONSES: Dict[int | str, Dict[str, Any]] = {
    400: {"model": ErrorResponse, "description": "Missing, empty or malformed fields"},
    405: {"model": ErrorResponse, "description": "Method not allowed"},
    500: {"model": ErrorResponse, "description": "Configuration or resolution failure"},
    502: {"model": ErrorResponse, "description": "Upstream API unreachable"},
}


def get_gemini_gateway(request: Request) -> GeminiGateway:
    return request.app.state.gemini_gateway


def get_description_service(request: Request) -> DescriptionSaveService:
    return request.app.state.description_service


def raise_upstream_error(e: UpstreamError) -> NoReturn:
    """Forward the upstream error status, or 502 when there was none.

    A failure is never reported with a success status, even when the upstream
    answered 2xx with a body that could not be used.
    """
    status_code = e.status_code
    if status_code is None or status_code < 400:
        status_code = status.HTTP_502_BAD_GATEWAY
    raise HTTPException(
        status_code=status_code,
        detail={"error": e.message, "detail": e.detail or None},
    )


@router.options("/generate", include_in_schema=False)
@router.options("/api/gemini-generate-description", include_in_schema=False)
@router.options("/save-description", include_in_schema=False)
@router.options("/api/airtable-descriptions", include_in_schema=False)
async def preflight() -> Response:
    """Answer bare OPTIONS requests; CORS headers come from the middleware."""
    return Response(status_code=status.HTTP_200_OK)


@router.post("/generate", responses=ERROR_RESPONSES)
@router.post("/api/gemini-generate-description", responses=ERROR_RESPONSES, include_in_schema=False)
async def generate(
    payload: GenerateRequest,
    request: Request,
    gateway: GeminiGateway = Depends(get_gemini_gateway),
) -> Dict[str, Any]:
    """Generate text with Gemini.

    Returns Gemini's ``generateContent`` response exactly as received.
    """
    try:
        return await gateway.generate(payload.prompt, user_agent=request.headers.get("user-agent"))

    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except ConfigurationError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
    except UpstreamError as e:
        raise_upstream_error(e)
    except Exception as e:
        app_logger.error(f"Generation proxy caught an error: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Internal Server Error", "detail": str(e)},
        )


@router.post(
    "/save-description",
    response_model=RecordResponse[SavedDescription],
    responses=ERROR_RESPONSES,
)
@router.post(
    "/api/airtable-descriptions",
    response_model=RecordResponse[SavedDescription],
    responses=ERROR_RESPONSES,
    include_in_schema=False,
)
async def save_description(
    payload: SaveDescriptionRequest,
    service: DescriptionSaveService = Depends(get_description_service),
):
    """Save a generated description to Airtable.

    When ``linkedProduct`` names a product, the product is looked up in the
    Products table (and created if missing) and the new row is linked to it.
    If that lookup or creation fails, nothing is saved.
    """
    try:
        saved = await service.save(payload)
        return record_response(saved, message="Record created successfully in Airtable!")

    except HTTPException:
        raise
    except ConfigurationError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
    except ResolutionError as e:
        cause = e.cause
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "error": str(e),
                "detail": cause.detail if isinstance(cause, UpstreamError) and cause.detail else None,
            },
        )
    except UpstreamError as e:
        raise_upstream_error(e)
    except Exception as e:
        app_logger.error(f"Save proxy caught an error: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Internal Server Error", "detail": str(e)},
        )
