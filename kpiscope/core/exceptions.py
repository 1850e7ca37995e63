"""
Error taxonomy for KPI queries.

QueryValidationError is raised before any I/O happens and is always the
caller's to fix. ExecutionError covers everything that can go wrong while
talking to the remote KPI API. Neither is retried.
"""
from typing import Optional


class KPIScopeError(Exception):
    """Base class for all KPI query errors."""


class QueryValidationError(KPIScopeError, ValueError):
    """
    A candidate query violated a catalog or structural rule.

    Attributes:
        message: Human-readable reason
        field: Dotted path of the failing field (e.g. "kpi.1", "element")
    """

    def __init__(self, message: str, field: str):
        super().__init__(f"{field}: {message}")
        self.message = message
        self.field = field


class ExecutionError(KPIScopeError):
    """
    The remote KPI API call failed.

    status/body are set for non-2xx responses; transport and parse
    failures carry the underlying exception as __cause__.
    """

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        body: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status = status
        self.body = body


class QueryCancelledError(ExecutionError):
    """The caller's cancellation token fired before a response arrived."""

    def __init__(self, message: str = "KPI query cancelled"):
        super().__init__(message)
