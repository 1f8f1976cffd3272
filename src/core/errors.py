from fastapi import Request, status
from fastapi.responses import JSONResponse
from typing import Any

from ..domain.results import ErrorKind, Outcome

ERROR_STATUS = {
    ErrorKind.VALIDATION: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.UNAUTHORIZED: status.HTTP_403_FORBIDDEN,
    ErrorKind.BUSINESS_RULE: status.HTTP_409_CONFLICT,
}

ERROR_TITLES = {
    ErrorKind.VALIDATION: "Validation Error",
    ErrorKind.NOT_FOUND: "Not Found",
    ErrorKind.UNAUTHORIZED: "Not Authorized",
    ErrorKind.BUSINESS_RULE: "Business Rule Violation",
}


def problem_response(
    request: Request,
    status: int,
    code: str,
    title: str,
    detail: Any,
) -> JSONResponse:
    """
    Return RFC 7807 Problem Details response

    https://datatracker.ietf.org/doc/html/rfc7807
    """
    return JSONResponse(
        status_code=status,
        content={
            "type": f"https://bto.example.gov.sg/errors/{code}",
            "title": title,
            "status": status,
            "code": code,
            "detail": detail,
            "correlation_id": getattr(request.state, "correlation_id", "unknown"),
        },
    )


def outcome_problem(request: Request, outcome: Outcome) -> JSONResponse:
    """Problem response for a refused coordinator outcome"""
    return problem_response(
        request=request,
        status=ERROR_STATUS[outcome.error],
        code=outcome.error.value.upper(),
        title=ERROR_TITLES[outcome.error],
        detail=outcome.reason,
    )
