"""
Newsletter Backend: Health Check Route
======================================

What:  Liveness probe for load balancers and container orchestrators.
How:   Always 200 with an empty body; it does not touch the database.
"""

from fastapi import APIRouter, Response

router = APIRouter(tags=["Health"])


@router.get(
    "/health_check",
    summary="Liveness probe",
    response_class=Response,
    responses={200: {"description": "Service is running (empty body)"}},
)
async def health_check() -> Response:
    return Response(status_code=200)
