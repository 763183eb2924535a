from __future__ import annotations

from fastapi import APIRouter, Request, Response, status

from ..helpers import write_json

VERSION = "1.0.0"

router = APIRouter(tags=["health"])


# PUBLIC_INTERFACE
@router.get("/v1/healthcheck", summary="Health Check")
def healthcheck(request: Request) -> Response:
    """
    Report that the service is up, with its environment and version.
    """
    settings = request.app.state.settings
    return write_json(
        status.HTTP_200_OK,
        {
            "status": "available",
            "system_info": {
                "environment": settings.env,
                "version": VERSION,
            },
        },
    )
