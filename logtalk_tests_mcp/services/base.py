"""
Service Layer Base - result and error types shared by all services.

Services never raise into the MCP handlers: every operation returns a
ServiceResult that carries either data or a ServiceError.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


class ErrorCode(str, Enum):
    """Error codes returned by service operations."""
    # Input validation
    VALIDATION_ERROR = "validation_error"
    MISSING_INPUT = "missing_input"

    # Workspace
    OUTSIDE_WORKSPACE = "outside_workspace"
    UNKNOWN_NODE = "unknown_node"

    # Test runs
    EXECUTION_ERROR = "execution_error"
    TIMEOUT_ERROR = "timeout_error"

    # Coverage
    NO_COVERAGE = "no_coverage"

    # General
    INTERNAL_ERROR = "internal_error"


@dataclass(frozen=True)
class ServiceError:
    """
    Structured error information.

    Attributes:
        code: Error code for programmatic handling
        message: Human-readable error message
        details: Optional additional context
    """
    code: ErrorCode
    message: str
    details: dict | None = None

    def to_dict(self) -> dict:
        result = {
            "code": self.code.value,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


@dataclass(frozen=True)
class ServiceResult(Generic[T]):
    """
    Success with data, or failure with an error.

    Usage:
        result = service.get_test_tree()
        if result.success:
            render(result.data)
        else:
            report(result.error)
    """
    success: bool
    data: T | None = None
    error: ServiceError | None = None

    @classmethod
    def ok(cls, data: T) -> ServiceResult[T]:
        return cls(success=True, data=data, error=None)

    @classmethod
    def fail(
        cls,
        code: ErrorCode,
        message: str,
        details: dict | None = None
    ) -> ServiceResult[T]:
        return cls(
            success=False,
            data=None,
            error=ServiceError(code=code, message=message, details=details)
        )

    def unwrap(self) -> T:
        """
        Get the data, raising if the operation failed.

        Raises:
            ValueError: If result is a failure
        """
        if not self.success or self.data is None:
            error_msg = self.error.message if self.error else "Unknown error"
            raise ValueError(f"Cannot unwrap failed result: {error_msg}")
        return self.data
