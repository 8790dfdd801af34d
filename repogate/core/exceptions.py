"""Errors raised by RepoGate services and stores.

Every error carries a stable ``RGATE-xxx`` code, a message and optional
structured details that callers can log or map onto their own transport.
"""
from typing import Any, Dict, Optional


class RepoGateError(Exception):
    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.details = details
        super().__init__(message)


class InvalidArgumentError(RepoGateError):
    def __init__(self, message: str = "Invalid argument", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            code="RGATE-400",
            message=message,
            details=details
        )


class NotFoundError(RepoGateError):
    def __init__(self, resource: str = "Resource", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            code="RGATE-404",
            message=f"{resource} not found",
            details=details
        )


class AlreadyExistsError(RepoGateError):
    def __init__(self, message: str = "Resource already exists", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            code="RGATE-409",
            message=message,
            details=details
        )


class StorageError(RepoGateError):
    def __init__(self, message: str = "Storage failure", details: Optional[Dict[str, Any]] = None):
        super().__init__(
            code="RGATE-500",
            message=message,
            details=details
        )
