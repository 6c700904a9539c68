"""HTTP mapping for storefront errors.

Protean's handlers cover ``ValidationError`` (400), ``ObjectNotFoundError``
(404) and the rest of the framework errors. On top of those, rule
violations carry their machine-readable code, and stale writes answer 409
whether they were caught by an expected-state guard or by the aggregate
version check once Protean's retries ran out.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.exceptions import ExpectedVersionError
from protean.integrations.fastapi import register_exception_handlers

from storefront.exceptions import ConcurrencyConflict, RuleViolation


async def rule_violation_handler(request: Request, exc: RuleViolation) -> JSONResponse:  # noqa: ARG001
    return JSONResponse(
        status_code=400,
        content={"error": exc.messages, "code": exc.code.value, "message": exc.message},
    )


async def concurrency_conflict_handler(request: Request, exc: ConcurrencyConflict) -> JSONResponse:  # noqa: ARG001
    return JSONResponse(
        status_code=409,
        content={"error": exc.message, "expected": exc.expected, "actual": exc.actual},
    )


async def version_conflict_handler(request: Request, exc: ExpectedVersionError) -> JSONResponse:  # noqa: ARG001
    return JSONResponse(
        status_code=409,
        content={"error": "The record was changed by another request, please retry", "expected": None, "actual": None},
    )


def register_error_handlers(app: FastAPI) -> None:
    register_exception_handlers(app)
    app.add_exception_handler(RuleViolation, rule_violation_handler)
    app.add_exception_handler(ConcurrencyConflict, concurrency_conflict_handler)
    app.add_exception_handler(ExpectedVersionError, version_conflict_handler)
