"""Custom exceptions for Vault Resort.

Provides a structured exception hierarchy with error codes and
machine-readable error information for better error handling.
"""
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(Enum):
    """Error codes for machine-readable error identification."""

    # Vault errors (1xxx)
    VAULT_NOT_FOUND = 1001
    VAULT_READ_FAILED = 1002
    VAULT_WRITE_FAILED = 1003
    VAULT_DELETE_FAILED = 1004
    FOLDER_NOT_FOUND = 1005
    FOLDER_NOT_EMPTY = 1006

    # Move errors (3xxx)
    MOVE_FAILED = 3001
    MOVE_DESTINATION_EXISTS = 3002
    MOVE_SOURCE_MISSING = 3003

    # Configuration errors (6xxx)
    CONFIG_INVALID = 6001

    # Validation errors (7xxx)
    VALIDATION_FAILED = 7001
    INVALID_SELECTION = 7002
    PATH_TRAVERSAL_DETECTED = 7005


class ResortError(Exception):
    """Base exception for all Vault Resort errors.

    Attributes:
        message: Human-readable error message
        code: Machine-readable error code
        details: Additional context about the error
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.VALIDATION_FAILED,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to a dictionary for serialization."""
        return {
            "error": self.__class__.__name__,
            "code": self.code.value,
            "code_name": self.code.name,
            "message": self.message,
            "details": self.details
        }

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"[{self.code.name}] {self.message} ({detail_str})"
        return f"[{self.code.name}] {self.message}"


class VaultError(ResortError):
    """Raised when a vault storage operation fails."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        path: Optional[str] = None,
        code: ErrorCode = ErrorCode.VAULT_READ_FAILED,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if operation:
            details["operation"] = operation
        if path:
            details["path"] = path
        if original_error:
            details["original_error"] = str(original_error)[:200]

        super().__init__(message, code=code, details=details)
        self.operation = operation
        self.path = path
        self.original_error = original_error


class FolderNotFoundError(VaultError):
    """Raised when a folder path does not resolve to an existing folder."""

    def __init__(self, path: str, message: Optional[str] = None):
        super().__init__(
            message or f"Folder '{path}' not found",
            operation="list",
            path=path,
            code=ErrorCode.FOLDER_NOT_FOUND,
        )


class MoveError(VaultError):
    """Raised when a file cannot be moved to its destination."""

    def __init__(
        self,
        message: str,
        source_path: str,
        destination_path: Optional[str] = None,
        code: ErrorCode = ErrorCode.MOVE_FAILED,
        original_error: Optional[Exception] = None
    ):
        super().__init__(
            message,
            operation="move",
            path=source_path,
            code=code,
            original_error=original_error,
        )
        self.source_path = source_path
        self.destination_path = destination_path
        if destination_path:
            self.details["destination"] = destination_path


class ConfigurationError(ResortError):
    """Raised for configuration-related errors."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        code: ErrorCode = ErrorCode.CONFIG_INVALID
    ):
        details = {}
        if config_key:
            details["config_key"] = config_key

        super().__init__(message, code=code, details=details)
        self.config_key = config_key


class ValidationError(ResortError):
    """Raised for general validation errors."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        code: ErrorCode = ErrorCode.VALIDATION_FAILED
    ):
        details = {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)[:100]

        super().__init__(message, code=code, details=details)
        self.field = field
        self.value = value
