"""
Newsletter Backend: Newsletter Publishing Route
===============================================

What:  POST /newsletters; delivers an issue to every confirmed subscriber.
How:   HTTP Basic credentials are checked against the users table before
       the body is handed to NewsletterService.

Status codes:
    200  issue delivered ({"delivered": n, "skipped": m})
    400  body missing title or content
    401  missing or wrong credentials (with WWW-Authenticate: Basic realm="publish")
    500  database or email API failure
"""

import base64
import binascii
import logging
from typing import Tuple

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from newsletter.database import get_db_session
from newsletter.dependencies import get_email_client
from newsletter.exceptions import AuthenticationError
from newsletter.schemas.newsletter import ErrorResponse, PublishRequest, PublishResponse
from newsletter.services.auth_service import auth_service
from newsletter.services.email_client import EmailClient
from newsletter.services.newsletter_service import newsletter_service

logger = logging.getLogger(__name__)

PUBLISH_REALM = "publish"

router = APIRouter(tags=["Newsletters"])

BASIC_SCHEME = "basic"


def basic_credentials(request: Request) -> Tuple[str, str]:
    """
    Extract (username, password) from an `Authorization: Basic ...` header.

    The decoded credentials are UTF-8, so non-ASCII passwords work the same
    here as on the login form. Every failure is an AuthenticationError with
    the publish realm, so all 401s share one response shape.
    """
    header = request.headers.get("Authorization")
    if not header:
        raise AuthenticationError("The 'Authorization' header was missing.", realm=PUBLISH_REALM)

    scheme, _, encoded = header.partition(" ")
    if scheme.lower() != BASIC_SCHEME or not encoded.strip():
        raise AuthenticationError(
            "The authorization scheme was not 'Basic'.", realm=PUBLISH_REALM
        )

    try:
        decoded = base64.b64decode(encoded.strip(), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as e:
        raise AuthenticationError(
            "Failed to decode 'Basic' credentials.", realm=PUBLISH_REALM
        ) from e

    username, separator, password = decoded.partition(":")
    if not separator:
        raise AuthenticationError(
            "A password must be provided in 'Basic' auth.", realm=PUBLISH_REALM
        )
    return username, password


@router.post(
    "/newsletters",
    response_model=PublishResponse,
    responses={
        400: {"description": "Invalid issue body", "model": ErrorResponse},
        401: {"description": "Missing or invalid credentials", "model": ErrorResponse},
        500: {"description": "Database or email API failure", "model": ErrorResponse},
    },
    summary="Publish a newsletter issue",
)
async def publish_newsletter(
    issue: PublishRequest,
    credentials: Tuple[str, str] = Depends(basic_credentials),
    db: AsyncSession = Depends(get_db_session),
    email_client: EmailClient = Depends(get_email_client),
) -> PublishResponse:
    username, password = credentials
    try:
        user_id = await auth_service.validate_credentials(db, username, password)
    except AuthenticationError as e:
        raise AuthenticationError(e.message, realm=PUBLISH_REALM) from e

    logger.info("User %s is publishing '%s'", user_id, issue.title)
    return await newsletter_service.publish(db=db, email_client=email_client, issue=issue)
