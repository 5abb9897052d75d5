"""
Error taxonomy and response envelope for the student endpoints.

Routes raise the exceptions below (or let store errors propagate);
handle_student_errors turns them into {"success": false, "error": ...}
responses with the matching status code.
"""

import functools
from typing import Any, Callable, TypeVar

from fastapi import status
from fastapi.responses import JSONResponse

from student_api.logging_config import get_logger, log_with_context

logger = get_logger("http")

F = TypeVar("F", bound=Callable[..., Any])


class StudentError(Exception):
    """Base class for student API errors."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, student_id: str = None):
        self.message = message
        self.student_id = student_id
        super().__init__(self.message)


class StudentNotFoundError(StudentError):
    """Raised when no student has the requested identifier."""

    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, student_id: str = None):
        super().__init__("Student not found", student_id)


class InvalidStudentIdError(StudentError):
    """Raised when an identifier is not a well-formed UUID."""

    def __init__(self, student_id: str):
        super().__init__("Invalid student id: {}".format(student_id), student_id)


class InvalidStudentDataError(StudentError):
    """Raised when a body violates the student schema."""
    pass


class InvalidQueryError(StudentError):
    """Raised when filter or search parameters cannot be turned into a query."""
    pass


def error_response(status_code: int, message: str, headers: dict = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message},
                        headers=headers)


def handle_student_errors(fallback_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR):
    """
    Decorator mapping exceptions raised by a route to the error envelope.

    StudentError subclasses use their own status code. Anything else is
    reported with fallback_status and the exception's message.
    """
    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return func(*args, **kwargs)

            except StudentError as e:
                log_with_context(logger, "WARNING",
                    "{} failed: {}".format(func.__name__, e.message),
                    context={"student_id": e.student_id} if e.student_id else None,
                    extra_data={"status_code": e.status_code})
                return error_response(e.status_code, e.message)

            except Exception as e:
                level = "ERROR" if fallback_status >= 500 else "WARNING"
                log_with_context(logger, level,
                    "{} failed: {}".format(func.__name__, e),
                    extra_data={"status_code": fallback_status, "error_type": type(e).__name__},
                    exc_info=fallback_status >= 500)
                return error_response(fallback_status, str(e))

        return wrapper  # type: ignore

    return decorator
