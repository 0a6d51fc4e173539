"""Custom exception hierarchy for the novel structure tree."""

from typing import Optional


class NovelTreeError(Exception):
    """Base exception for all novel tree errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({detail_str})"
        return self.message


# ---- Structure Errors ----

class StructureError(NovelTreeError):
    """Base exception for tree structure errors."""


class InvariantViolationError(StructureError):
    """A candidate tree broke one or more structural invariants.

    Only raised in strict mode; otherwise the offending edit is rejected.
    """

    def __init__(self, violations: list[str], operation: str = ""):
        message = f"Tree invariants violated by {operation}" if operation else "Tree invariants violated"
        super().__init__(message, {"count": len(violations)})
        self.violations = list(violations)
        self.operation = operation


# ---- Database Errors ----

class DatabaseError(NovelTreeError):
    """Database operation failed."""


class NovelNotFoundError(DatabaseError):
    """Requested novel does not exist in the store."""

    def __init__(self, novel_id: str):
        super().__init__(f"Novel not found: {novel_id}", {"novel_id": novel_id})
        self.novel_id = novel_id


# ---- Validation Errors ----

class ValidationError(NovelTreeError):
    """Input validation failed."""


class InvalidConfigError(ValidationError):
    """Configuration value is invalid."""
