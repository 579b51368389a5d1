"""
COR-SAFE — Error Taxonomy

Every error raised by the workflow engine is a ComplianceError subclass and
carries a structured context dict (entity id, current state, attempted
transition, ...) so the API layer can render a precise message without the
engine knowing about presentation. None of these are retried by the engine.
"""
from typing import Any, Dict, Optional


class ComplianceError(Exception):
    """Base class for all engine errors."""

    code: str = "compliance_error"
    http_status: int = 400

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = {k: v for k, v in context.items() if v is not None}

    @property
    def entity_id(self) -> Optional[str]:
        return self.context.get("entity_id")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": False,
            "error": self.code,
            "message": self.message,
            "context": self.context,
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, context={self.context!r})"


class ValidationError(ComplianceError):
    """Malformed or missing required input (empty reason, unknown template, ...)."""
    code = "validation_error"
    http_status = 400


class PreconditionFailed(ComplianceError):
    """A state-machine guard was not met (e.g. completing with pending items)."""
    code = "precondition_failed"
    http_status = 409


class InvalidTransition(ComplianceError):
    """The requested transition is not reachable from the current state."""
    code = "invalid_transition"
    http_status = 409

    def __init__(self, message: str, current_state: Optional[str] = None,
                 attempted: Optional[str] = None, **context: Any):
        super().__init__(message, current_state=current_state, attempted=attempted, **context)


class NotFound(ComplianceError):
    """A referenced entity id does not resolve."""
    code = "not_found"
    http_status = 404


class ConcurrentModification(ComplianceError):
    """Optimistic-lock conflict: the document changed since it was read."""
    code = "concurrent_modification"
    http_status = 409
