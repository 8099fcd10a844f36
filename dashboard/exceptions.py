from typing import Optional

from fastapi import status


class DashboardError(Exception):
    """Base application exception"""
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, detail: str = "Internal server error"):
        super().__init__(detail)
        self.detail = detail


class NotFoundError(DashboardError):
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, detail: str = "Resource not found"):
        super().__init__(detail)


class WidgetNotInTabError(NotFoundError):
    def __init__(self, tab_id: int, widget_id: int):
        super().__init__(f"Widget {widget_id} not found in tab {tab_id}")
        self.tab_id = tab_id
        self.widget_id = widget_id


class NotAuthorizedError(DashboardError):
    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, detail: str = "Access denied"):
        super().__init__(detail)


class InvalidInputError(DashboardError):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, detail: str = "Bad request"):
        super().__init__(detail)


class StorageError(DashboardError):
    """Failure reported by a storage backend, wrapped with the operation context"""
    pass


class BackendCapabilityError(StorageError):
    """Raised by partial backends for every operation they do not implement"""

    def __init__(self, operation: str, backend: str = "datastore"):
        super().__init__(f"{operation} is not implemented by the {backend} backend")
        self.operation = operation
        self.backend = backend


class LockTimeoutError(StorageError):
    def __init__(self, mode: str, timeout: float):
        super().__init__(f"Timed out after {timeout}s waiting for {mode} lock")
        self.mode = mode
        self.timeout = timeout


class TransactionMisuseError(DashboardError):
    def __init__(self, detail: str = "Nested transactions are prohibited"):
        super().__init__(detail)


class FeedFetchError(DashboardError):
    status_code = status.HTTP_502_BAD_GATEWAY

    def __init__(self, url: str, reason: Optional[str] = None):
        detail = f"Retrieving feed {url} failed"
        if reason:
            detail = f"{detail}: {reason}"
        super().__init__(detail)
        self.url = url


def root_cause(exc: BaseException) -> BaseException:
    """
    Follow explicit causes (``raise ... from``) down to the original error.

    The implicit ``__context__`` is ignored: an error raised while another
    one was being handled is its own failure, not a wrapper. Cycles in the
    chain are tolerated.
    """
    seen = set()
    current = exc
    while id(current) not in seen:
        seen.add(id(current))
        if current.__cause__ is None:
            break
        current = current.__cause__
    return current


def error_chain(exc: BaseException) -> str:
    """Render the chain as 'outer: inner: root' for logging"""
    parts = []
    seen = set()
    current = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        parts.append(str(current) or type(current).__name__)
        current = current.__cause__ or current.__context__
    return ": ".join(parts)
