"""Turn service result envelopes into HTTP responses"""
from fastapi import status
from fastapi.responses import JSONResponse

from moviehub.schemas.movie import ErrorType, ServiceResponse

STATUS_BY_ERROR = {
    ErrorType.INVALID_INPUT: status.HTTP_400_BAD_REQUEST,
    ErrorType.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorType.STORAGE: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def status_for(result: ServiceResponse) -> int:
    if result.success:
        return status.HTTP_200_OK
    return STATUS_BY_ERROR.get(result.error_type, status.HTTP_500_INTERNAL_SERVER_ERROR)


def envelope_response(result: ServiceResponse) -> JSONResponse:
    """Serialize a result as camelCase JSON with the matching status code."""
    return JSONResponse(
        status_code=status_for(result),
        content=result.model_dump(by_alias=True, mode="json", exclude_none=True),
    )


def error_response(message: str, status_code: int) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})
