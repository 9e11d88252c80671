"""
Quote submission endpoint.

    POST /quotes/send

Emails the quote (fatal on failure), forwards the lead to one intake API
(best effort) and records it against its widget.
"""

import logging

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ..core.database import get_db
from ..schemas.quote import QuoteSubmission, QuoteSubmitResponse
from ..services.quote_email_service import QuoteEmailError, QuoteEmailNotConfiguredError
from ..services.quote_submission import QuoteSubmissionService


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/quotes", tags=["Quotes"])


def get_quote_submission_service() -> QuoteSubmissionService:
    """Dependency returning the submission coordinator (overridden in tests)."""
    return QuoteSubmissionService()


def _client_ip(request: Request):
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()[:45]
    if request.client:
        return request.client.host
    return None


@router.post(
    "/send",
    response_model=QuoteSubmitResponse,
    summary="Send a quote request",
    responses={500: {"description": "Quote email could not be sent"}},
)
def send_quote(
    submission: QuoteSubmission,
    request: Request,
    db: Session = Depends(get_db),
    service: QuoteSubmissionService = Depends(get_quote_submission_service),
):
    """
    Handle a quote request from the widget.

    Returns 200 with per-adapter outcomes once the email is sent, even if
    lead forwarding failed.
    """
    payload = submission.model_dump(exclude_none=True)

    try:
        return service.submit(
            db,
            payload,
            origin=request.headers.get("Origin"),
            referer=request.headers.get("Referer"),
            ip_address=_client_ip(request),
            user_agent=request.headers.get("User-Agent"),
        )
    except QuoteEmailNotConfiguredError:
        logger.error("Quote email not sent: Resend key not configured")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"message": "Resend key not configured"},
        )
    except QuoteEmailError as e:
        logger.error("Quote email failed: %s", e)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"message": "Unable to send email at this time"},
        )
