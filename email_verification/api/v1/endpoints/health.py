"""Health check endpoints for monitoring and orchestration."""
from fastapi import APIRouter, Response, status
from email_verification.core.database import db_manager
from email_verification.schemas.response import ApiResponse

router = APIRouter()


@router.get("/health", response_model=ApiResponse)
async def health_check(response: Response):
    """Report database connectivity. Returns 503 when the store is unreachable."""
    connected = await db_manager.check_connection()
    if not connected:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return ApiResponse(
        success=connected,
        message="System operational" if connected else "Database unavailable",
        data={"database": "connected" if connected else "disconnected"}
    )
