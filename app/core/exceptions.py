"""Business error taxonomy for the settlement back office.

Every service raises one of these; the API layer turns them into structured
responses (see the exception handlers in app/main.py). None of them is a
process-level fault.
"""
from typing import Dict, Optional


class SettlementError(Exception):
    """Base class for all business errors."""
    kind = "SettlementError"
    status_code = 400

    def __init__(self, message: str, details: Optional[Dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict:
        return {
            "error": self.message,
            "kind": self.kind,
            "details": self.details,
        }


class NotFoundError(SettlementError):
    """Referenced vendor/category/statement/payout/rule does not exist."""
    kind = "NotFound"
    status_code = 404

    def __init__(self, entity: str, entity_id, details: Optional[Dict] = None):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(
            f"{entity} not found",
            {"entity": entity, "id": str(entity_id), **(details or {})},
        )


class ConflictError(SettlementError):
    kind = "Conflict"
    status_code = 409


class DuplicateIdentifierError(ConflictError):
    """Email, GST, PAN or slug already in use."""

    def __init__(self, field: str, value: str):
        self.field = field
        self.value = value
        super().__init__(
            f"A record with this {field} already exists",
            {"field": field, "value": value},
        )


class DuplicatePayoutError(ConflictError):
    """A non-FAILED payout already exists for the statement."""

    def __init__(self, statement_id, existing_payout_id=None):
        details = {"statement_id": str(statement_id)}
        if existing_payout_id is not None:
            details["payout_id"] = str(existing_payout_id)
        super().__init__("A payout already exists for this statement", details)


class HasChildrenError(ConflictError):
    def __init__(self, category_id, child_count: int):
        super().__init__(
            f"Category has {child_count} subcategories. Delete them first or pass cascade=true.",
            {"category_id": str(category_id), "children": child_count},
        )


class InvalidStateError(SettlementError):
    kind = "InvalidState"
    status_code = 422


class InvalidTransitionError(InvalidStateError):
    """Status change along an edge the state machine does not define."""

    def __init__(self, entity: str, current: str, target: str, allowed: Optional[list] = None):
        self.current = current
        self.target = target
        super().__init__(
            f"Cannot transition {entity} from {current} to {target}",
            {"from": current, "to": target, "allowed": allowed or []},
        )


class StatementNotFinalizedError(InvalidStateError):
    def __init__(self, statement_id, status: str):
        super().__init__(
            "Statement must be FINALIZED before a payout can be created",
            {"statement_id": str(statement_id), "status": status},
        )


class ValidationFailedError(SettlementError):
    kind = "ValidationFailed"
    status_code = 400


class DepthExceededError(SettlementError):
    kind = "DepthExceeded"
    status_code = 422

    def __init__(self, level: int, max_depth: int):
        super().__init__(
            f"Category depth {level} exceeds the maximum of {max_depth}",
            {"level": level, "max_depth": max_depth},
        )


class CircularDependencyError(SettlementError):
    kind = "CircularDependency"
    status_code = 422

    def __init__(self, category_id, parent_id):
        super().__init__(
            "Category cannot be moved under itself or one of its descendants",
            {"category_id": str(category_id), "parent_id": str(parent_id)},
        )
