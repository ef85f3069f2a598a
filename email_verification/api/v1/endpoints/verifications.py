from fastapi import APIRouter, Depends, Query, status
from email_verification.schemas.response import ApiResponse
from email_verification.schemas.verification import (
    VerificationRequest,
    VerificationSummary,
    VerificationTokenResponse,
    VerificationCheckResponse,
)
from email_verification.services.token import decode_token, encode_token
from email_verification.services.verification import VerificationService
from email_verification.core.dependencies import (
    check_begin_rate_limit,
    check_resend_rate_limit,
    get_verification_service,
)

router = APIRouter()


@router.post("/", response_model=ApiResponse, status_code=status.HTTP_201_CREATED)
async def begin_verification(
    request: VerificationRequest,
    _: None = Depends(check_begin_rate_limit),
    service: VerificationService = Depends(get_verification_service)
):
    """Create a pending verification and email its link."""
    token = await service.begin(request)
    return ApiResponse(
        success=True,
        message="Verification email sent",
        data=VerificationTokenResponse(token=encode_token(token))
    )


@router.get("/", response_model=ApiResponse)
async def search_verifications(
    credential: str = Query(..., min_length=1),
    category: str = Query(""),
    service: VerificationService = Depends(get_verification_service)
):
    """List pending verifications of a category for a username or email address."""
    records = await service.search(credential, category)
    return ApiResponse(
        success=True,
        message=f"{len(records)} pending verification(s) found",
        data=[VerificationSummary.model_validate(record) for record in records]
    )


@router.get("/{encoded_token}", response_model=ApiResponse)
async def check_verification(
    encoded_token: str,
    service: VerificationService = Depends(get_verification_service)
):
    """Report whether a verification link is still valid."""
    valid, locals = await service.check(decode_token(encoded_token))
    return ApiResponse(
        success=True,
        message="Verification is valid" if valid else "Verification link is invalid or expired",
        data=VerificationCheckResponse(valid=valid, locals=locals)
    )


@router.post("/{encoded_token}/resend", response_model=ApiResponse)
async def resend_verification(
    encoded_token: str,
    _: None = Depends(check_resend_rate_limit),
    service: VerificationService = Depends(get_verification_service)
):
    """Replace a pending verification with a new token and send it again."""
    token = await service.resend(decode_token(encoded_token))
    return ApiResponse(
        success=True,
        message="Verification email sent again",
        data=VerificationTokenResponse(token=encode_token(token))
    )


@router.delete("/{encoded_token}", response_model=ApiResponse)
async def clear_verification(
    encoded_token: str,
    service: VerificationService = Depends(get_verification_service)
):
    """Drop a verification once it has been redeemed."""
    await service.clear(decode_token(encoded_token))
    return ApiResponse(success=True, message="Verification cleared")
