"""Error response bodies shared by the routers."""
from fastapi.responses import JSONResponse

from zoom_relay.core.exceptions import UpstreamError, ValidationError


def validation_failure(error: ValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"success": False, "error": error.message, "details": error.errors}
    )


def configuration_failure(message: str) -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": "Server configuration error", "message": message}
    )


def internal_failure() -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": "Internal Server Error"}
    )


def upstream_failure(error: UpstreamError) -> JSONResponse:
    """Relay the provider's status (502 when it never answered)."""
    return JSONResponse(
        status_code=error.status or 502,
        content={"success": False, "error": "Zoom API error", "details": error.body or error.message}
    )
