from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError

from qa_casegen.utils.exceptions import CaseGenException, ErrorCode
from qa_casegen.utils.logger import get_logger

logger = get_logger(__name__)


def format_validation_errors(exc: RequestValidationError) -> dict:
    """
    Convert Pydantic validation errors to user-friendly format

    Args:
        exc: RequestValidationError from FastAPI/Pydantic

    Returns:
        Dictionary with custom error messages
    """
    errors = []

    for error in exc.errors():
        field = error['loc'][-1] if error['loc'] else 'unknown'
        error_type = error['type']

        # Map error types to user-friendly messages
        message_map = {
            'string_too_short': f"{field} cannot be empty",
            'too_short': f"{field} cannot be empty",
            'value_error': error.get('msg', f"Invalid value for {field}"),
            'missing': f"{field} is required",
            'list_type': f"{field} must be a list",
            'string_type': f"{field} must be a string",
            'int_parsing': f"{field} must be an integer",
            'json_invalid': "Request body is not valid JSON",
        }

        message = message_map.get(error_type, error.get('msg', f"Invalid {field}"))

        errors.append({
            'field': field,
            'message': message,
            'type': error_type
        })

    return {
        'status': 'error',
        'code': 'VALIDATION_ERROR',
        'message': 'Request validation failed',
        'details': errors
    }


def format_case_gen_error(exc: CaseGenException) -> dict:
    """Error body for application exceptions"""
    return {
        'status': 'error',
        'code': exc.error_code or ErrorCode.INTERNAL_SERVER_ERROR,
        'message': exc.message,
        'details': ErrorCode.get_description(exc.error_code)
    }


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Custom handler for FastAPI RequestValidationError

    Converts Pydantic validation errors to HTTP 400 with custom format
    """
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,  # Use 400 instead of 422
        content=format_validation_errors(exc)
    )


async def case_gen_exception_handler(request: Request, exc: CaseGenException):
    """Map application exceptions to the HTTP status of their error code"""
    status_code = ErrorCode.status_code(exc.error_code)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}", extra={'error_code': exc.error_code})
    return JSONResponse(status_code=status_code, content=format_case_gen_error(exc))


def add_exception_handlers(app: FastAPI):
    """
    Add custom error handlers to FastAPI app

    Usage:
        app = FastAPI()
        add_exception_handlers(app)
    """
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(CaseGenException, case_gen_exception_handler)
