"""
Error definitions for the prefetch pool manager

Codes are grouped by domain:
- PF1xxx: configuration and usage errors (fatal, programming mistakes)
- PF2xxx: fetch errors (transient, always retried, never surfaced to consumers)
- PF3xxx: pool lifecycle errors
"""

from enum import Enum
from typing import Dict, Any, Optional
from datetime import datetime


class ErrorCode(Enum):
    """Error codes for the prefetch pool manager"""

    # Configuration / usage (1000-1999)
    CONFIGURATION_INVALID = "PF1001"
    POOL_NOT_CONFIGURED = "PF1002"
    POOL_ALREADY_CONFIGURED = "PF1003"
    DUPLICATE_POOL_KEY = "PF1004"
    POLICY_VALIDATION_FAILED = "PF1005"
    POLICY_FILE_NOT_FOUND = "PF1006"
    POLICY_FILE_UNSUPPORTED = "PF1007"

    # Fetch (2000-2999)
    FETCH_FAILED = "PF2001"
    FETCH_EMPTY = "PF2002"
    FETCH_TIMEOUT = "PF2003"
    FETCH_HTTP_ERROR = "PF2004"

    # Pool lifecycle (3000-3999)
    CAPACITY_OVERRUN = "PF3001"


class PrefetchError(Exception):
    """Base exception with structured error information"""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.CONFIGURATION_INVALID,
        data: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        self.message = message
        self.code = code
        self.data = data or {}
        self.cause = cause
        self.timestamp = datetime.utcnow()
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for logging or serialization"""
        return {
            "code": self.code.value,
            "name": self.code.name,
            "message": self.message,
            "data": self.data,
            "timestamp": self.timestamp.isoformat(),
            "cause": str(self.cause) if self.cause else None
        }

    def __str__(self) -> str:
        base_msg = f"[{self.code.value}] {self.message}"
        if self.data:
            context_str = ", ".join(f"{k}={v}" for k, v in self.data.items())
            base_msg += f" (context: {context_str})"
        return base_msg


class ConfigurationError(PrefetchError):
    """Registry or manager used incorrectly by the integrator"""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.CONFIGURATION_INVALID,
        data: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        super().__init__(message, code=code, data=data, cause=cause)


class PoolNotConfiguredError(ConfigurationError):
    def __init__(self, operation: str):
        super().__init__(
            f"Pool registry used before configure(): {operation}",
            code=ErrorCode.POOL_NOT_CONFIGURED,
            data={"operation": operation}
        )


class PoolAlreadyConfiguredError(ConfigurationError):
    def __init__(self, existing_keys):
        super().__init__(
            "Pool registry can only be configured once",
            code=ErrorCode.POOL_ALREADY_CONFIGURED,
            data={"existing_keys": sorted(existing_keys)}
        )


class PolicyValidationError(ConfigurationError):
    def __init__(self, message: str, data: Optional[Dict[str, Any]] = None, cause: Optional[Exception] = None):
        super().__init__(message, code=ErrorCode.POLICY_VALIDATION_FAILED, data=data, cause=cause)


class FetchError(PrefetchError):
    """A fetch from the remote provider failed; always treated as transient"""

    def __init__(
        self,
        message: str,
        key: Optional[str] = None,
        code: ErrorCode = ErrorCode.FETCH_FAILED,
        data: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        ctx = dict(data or {})
        if key is not None:
            ctx["key"] = key
        self.key = key
        super().__init__(message, code=code, data=ctx, cause=cause)


class EmptyFetchError(FetchError):
    def __init__(self, key: str):
        super().__init__("Provider returned no item", key=key, code=ErrorCode.FETCH_EMPTY)


class FetchTimeoutError(FetchError):
    def __init__(self, key: str, timeout: float):
        super().__init__(
            f"Fetch timed out after {timeout}s",
            key=key,
            code=ErrorCode.FETCH_TIMEOUT,
            data={"timeout": timeout}
        )
