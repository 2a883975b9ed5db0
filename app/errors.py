from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger

GENERIC_ERROR = "Contact an administrator or retry later."


def internal_error(action: str, exc: Exception) -> HTTPException:
    """
    Log an unexpected failure and build the masked 500 answered to the client.

    Usage:
        except Exception as e:
            raise internal_error("Unable to create booking.", e) from e
    """
    logger.opt(exception=exc).error("{} ({})", action, type(exc).__name__)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"{action} {GENERIC_ERROR}",
    )


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request."
    first = errors[0]
    # loc is ("body", "field", ...) or ("path", "name")
    loc = ".".join(str(part) for part in first.get("loc", ())[1:])
    msg = str(first.get("msg", "Invalid value")).removeprefix("Value error, ")
    return f"{loc}: {msg}" if loc else msg


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": _validation_message(exc)},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Malformed requests are answered with 400 and a readable message."""
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
