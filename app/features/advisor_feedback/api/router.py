"""
Advisor feedback routes.

Thin HTTP layer over AdvisorService: request models in, response models out,
AdvisorServiceError subclasses mapped to status codes by error_type.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, status

from app.features.advisor_feedback.domain.errors import AdvisorServiceError, RateLimitExceeded
from app.features.advisor_feedback.services.advisor_service import AdvisorService
from app.infrastructure.observability.logging import get_logger
from app.models.api.advisor_request import (
    CreateInvitationRequest,
    DeclineInvitationRequest,
    RateAdvisorRequest,
    ReminderRequest,
    SendInvitationRequest,
    SubmitResponsesRequest,
)
from app.models.api.advisor_response import (
    AdvisorAnswerListResponse,
    AdvisorAnswerResponse,
    AdvisorRatingResponse,
    ExpireInvitationsResponse,
    InvitationListResponse,
    InvitationResponse,
    ReminderResponse,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/advisors", tags=["advisors"])

ERROR_STATUS_CODES: dict[str, int] = {
    "invitation_not_found": status.HTTP_404_NOT_FOUND,
    "advisor_limit_exceeded": status.HTTP_409_CONFLICT,
    "duplicate_advisor": status.HTTP_409_CONFLICT,
    "invitation_already_completed": status.HTTP_409_CONFLICT,
    "invalid_status_transition": status.HTTP_409_CONFLICT,
    "invitation_declined": status.HTTP_410_GONE,
    "invitation_expired": status.HTTP_410_GONE,
    "validation_failed": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "rate_limit_exceeded": status.HTTP_429_TOO_MANY_REQUESTS,
    "email_service_unavailable": status.HTTP_503_SERVICE_UNAVAILABLE,
    "persistence_error": status.HTTP_503_SERVICE_UNAVAILABLE,
}


def get_advisor_service(request: Request) -> AdvisorService:
    service = getattr(request.app.state, "advisor_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Advisor service not initialized",
        )
    return service


def _client_identifier(request: Request) -> str | None:
    return getattr(request.state, "ip_address", None)


def _to_http_error(request: Request, error: AdvisorServiceError) -> HTTPException:
    status_code = ERROR_STATUS_CODES.get(error.error_type, status.HTTP_500_INTERNAL_SERVER_ERROR)
    detail = {"error_type": error.error_type, "message": error.message}
    headers = None

    if isinstance(error, RateLimitExceeded):
        request.state.rate_limit_info = {
            "allowed": False,
            "limit": error.limit,
            "remaining": 0,
            "retry_after": error.retry_after,
        }
        if error.retry_after is not None:
            headers = {"Retry-After": str(error.retry_after)}
    elif hasattr(error, "errors"):
        detail["errors"] = error.errors

    log = logger.error if status_code >= 500 else logger.info
    log(
        "Advisor request failed",
        path=request.url.path,
        error_type=error.error_type,
        status_code=status_code,
        invitation_id=error.invitation_id,
    )
    return HTTPException(status_code=status_code, detail=detail, headers=headers)


@router.post("/invitations", response_model=InvitationResponse, status_code=status.HTTP_201_CREATED)
async def create_invitation(
    body: CreateInvitationRequest,
    request: Request,
    service: AdvisorService = Depends(get_advisor_service),
):
    """Create a draft invitation for one advisor."""
    try:
        invitation = await service.create_invitation(
            session_id=body.session_id,
            advisor_name=body.advisor_name,
            advisor_email=body.advisor_email,
            relationship_type=body.relationship_type,
            advisor_phone=body.advisor_phone,
            personal_message=body.personal_message,
            include_personal_message=body.include_personal_message,
            custom_questions=body.custom_questions,
            client_identifier=_client_identifier(request),
        )
    except AdvisorServiceError as e:
        raise _to_http_error(request, e) from e
    return InvitationResponse.from_domain(invitation)


@router.get("/invitations/{invitation_id}", response_model=InvitationResponse)
async def get_invitation(
    invitation_id: str,
    request: Request,
    service: AdvisorService = Depends(get_advisor_service),
):
    try:
        invitation = await service.get_invitation_by_id(invitation_id)
    except AdvisorServiceError as e:
        raise _to_http_error(request, e) from e
    if invitation is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invitation not found")
    return InvitationResponse.from_domain(invitation)


@router.get("/sessions/{session_id}/invitations", response_model=InvitationListResponse)
async def list_session_invitations(
    session_id: str,
    request: Request,
    service: AdvisorService = Depends(get_advisor_service),
):
    """Invitations for a session, newest first."""
    try:
        invitations = await service.get_invitations_for_session(session_id)
    except AdvisorServiceError as e:
        raise _to_http_error(request, e) from e
    return InvitationListResponse(
        invitations=[InvitationResponse.from_domain(invitation) for invitation in invitations],
        total_count=len(invitations),
    )


@router.post("/invitations/{invitation_id}/send", response_model=InvitationResponse)
async def send_invitation(
    invitation_id: str,
    body: SendInvitationRequest,
    request: Request,
    service: AdvisorService = Depends(get_advisor_service),
):
    try:
        invitation = await service.send_invitation_email(
            invitation_id,
            user_name=body.user_name,
            user_title=body.user_title,
            company_name=body.company_name,
        )
    except AdvisorServiceError as e:
        raise _to_http_error(request, e) from e
    return InvitationResponse.from_domain(invitation)


@router.post("/invitations/{invitation_id}/remind", response_model=ReminderResponse)
async def send_reminder(
    invitation_id: str,
    body: ReminderRequest,
    request: Request,
    service: AdvisorService = Depends(get_advisor_service),
):
    try:
        sent = await service.send_reminder_email(invitation_id, body.user_name)
    except AdvisorServiceError as e:
        raise _to_http_error(request, e) from e
    return ReminderResponse(sent=sent)


@router.post("/invitations/{invitation_id}/view", response_model=InvitationResponse)
async def mark_viewed(
    invitation_id: str,
    request: Request,
    service: AdvisorService = Depends(get_advisor_service),
):
    """Called when the advisor opens the response form."""
    try:
        invitation = await service.mark_invitation_viewed(invitation_id)
    except AdvisorServiceError as e:
        raise _to_http_error(request, e) from e
    if invitation is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invitation not found")
    return InvitationResponse.from_domain(invitation)


@router.post("/invitations/{invitation_id}/decline", response_model=InvitationResponse)
async def decline_invitation(
    invitation_id: str,
    body: DeclineInvitationRequest,
    request: Request,
    service: AdvisorService = Depends(get_advisor_service),
):
    try:
        invitation = await service.decline_invitation(invitation_id, reason=body.reason)
    except AdvisorServiceError as e:
        raise _to_http_error(request, e) from e
    return InvitationResponse.from_domain(invitation)


@router.get("/questions")
async def list_questions(service: AdvisorService = Depends(get_advisor_service)) -> list[dict]:
    return service.get_advisor_questions()


@router.get("/invitations/{invitation_id}/questions")
async def list_invitation_questions(
    invitation_id: str,
    request: Request,
    service: AdvisorService = Depends(get_advisor_service),
) -> list[dict]:
    """Standard questions plus the invitation's custom ones."""
    try:
        invitation = await service.get_invitation_by_id(invitation_id)
    except AdvisorServiceError as e:
        raise _to_http_error(request, e) from e
    if invitation is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invitation not found")
    return service.get_advisor_questions(invitation)


@router.post(
    "/invitations/{invitation_id}/responses",
    response_model=AdvisorAnswerListResponse,
    status_code=status.HTTP_201_CREATED,
)
async def submit_responses(
    invitation_id: str,
    body: SubmitResponsesRequest,
    request: Request,
    service: AdvisorService = Depends(get_advisor_service),
):
    try:
        responses = await service.submit_advisor_responses(
            invitation_id,
            responses=body.responses,
            confidence_levels=body.confidence_levels,
            observation_period=body.observation_period,
            confidence_context=body.confidence_context,
            specific_examples=body.specific_examples,
            additional_context=body.additional_context,
            is_anonymous=body.is_anonymous,
            client_identifier=_client_identifier(request),
            user_agent=getattr(request.state, "user_agent", None),
        )
    except AdvisorServiceError as e:
        raise _to_http_error(request, e) from e
    return AdvisorAnswerListResponse(
        responses=[AdvisorAnswerResponse.from_domain(response) for response in responses],
        total_count=len(responses),
    )


@router.get("/invitations/{invitation_id}/responses", response_model=AdvisorAnswerListResponse)
async def list_invitation_responses(
    invitation_id: str,
    request: Request,
    service: AdvisorService = Depends(get_advisor_service),
):
    try:
        responses = await service.get_responses_for_invitation(invitation_id)
    except AdvisorServiceError as e:
        raise _to_http_error(request, e) from e
    return AdvisorAnswerListResponse(
        responses=[AdvisorAnswerResponse.from_domain(response) for response in responses],
        total_count=len(responses),
    )


@router.post(
    "/invitations/{invitation_id}/rating",
    response_model=AdvisorRatingResponse,
    status_code=status.HTTP_201_CREATED,
)
async def rate_advisor(
    invitation_id: str,
    body: RateAdvisorRequest,
    request: Request,
    service: AdvisorService = Depends(get_advisor_service),
):
    try:
        rating = await service.rate_advisor(invitation_id, **body.model_dump())
    except AdvisorServiceError as e:
        raise _to_http_error(request, e) from e
    return AdvisorRatingResponse.from_domain(rating)


@router.get("/sessions/{session_id}/analytics")
async def get_session_analytics(
    session_id: str, service: AdvisorService = Depends(get_advisor_service)
) -> dict:
    analytics = await service.get_advisor_analytics(session_id)
    return analytics.to_dict()


@router.get("/sessions/{session_id}/summary")
async def get_session_summary(
    session_id: str, service: AdvisorService = Depends(get_advisor_service)
) -> dict:
    summary = await service.generate_feedback_summary(session_id)
    return summary.to_dict()


@router.post("/maintenance/expire", response_model=ExpireInvitationsResponse)
async def expire_stale_invitations(
    request: Request, service: AdvisorService = Depends(get_advisor_service)
):
    """Expire sent/viewed invitations past the expiry window."""
    try:
        expired = await service.cleanup_expired_invitations()
    except AdvisorServiceError as e:
        raise _to_http_error(request, e) from e
    return ExpireInvitationsResponse(expired=expired)
