from typing import Any, Dict, Optional

from talentstack_app.core.error_handlers import ConflictError, TalentStackError


class BackendRequestError(TalentStackError):
    """A call to the learning backend failed (transport error or non-2xx reply)."""

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        request_id: Optional[str] = None,
        code: str = 'BACKEND_ERROR',
        details: Optional[Dict[str, Any]] = None,
    ):
        self.status = status
        self.request_id = request_id
        merged = {'requestId': request_id, 'upstreamStatus': status}
        merged.update(details or {})
        super().__init__(message=message, code=code, status_code=502, details=merged)


class BackendProtocolError(BackendRequestError):
    """The backend answered successfully but the payload is unusable."""

    def __init__(self, message: str, request_id: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            request_id=request_id,
            code='BACKEND_PROTOCOL_ERROR',
            details=details,
        )


class InvalidTransitionError(ConflictError):
    """The requested operation is not valid in the attempt's current state."""

    def __init__(self, operation: str, state: str, message: Optional[str] = None):
        self.operation = operation
        self.state = state
        super().__init__(
            message=message or f"Cannot {operation} while the attempt is {state}.",
            code='INVALID_TRANSITION',
            details={'operation': operation, 'state': state},
        )


class AttemptBusyError(ConflictError):
    """Another mutating request is still in flight for this attempt."""

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(
            message=f"Cannot {operation}: another request for this attempt is still in flight.",
            code='ATTEMPT_BUSY',
            details={'operation': operation},
        )
