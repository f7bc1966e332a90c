"""Errors raised while applying proposals.

Every error names the result field it is reported under. The application service
converts them into structured failures; callers never see them raised.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, ClassVar

if TYPE_CHECKING:
    from racecatalog.domain.blocks import Block


class ProposalApplicationError(RuntimeError):
    """Unexpected failure while writing a proposal to the catalog."""

    default_field: ClassVar[str] = "application"

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field or self.default_field


class ProposalValidationError(ProposalApplicationError):
    """The proposal cannot be applied as requested (status, missing target ids)."""

    default_field = "proposal"


class EntityNotFoundError(ProposalApplicationError):
    """A referenced catalog row does not exist."""

    default_field = "entity"


class DependencyNotSatisfiedError(ProposalApplicationError):
    """A chunked call targets a block whose parent block was never applied."""

    default_field = "block"

    def __init__(self, missing: Block, *, requested: Block | None = None) -> None:
        if requested is None:
            message = f"Block '{missing}' must be applied first"
        else:
            message = f"Block '{requested}' requires block '{missing}' to be applied first"
        super().__init__(message)
        self.missing = missing
        self.requested = requested


class MergeConflictError(ProposalApplicationError):
    """The kept event already redirects to another live event."""

    default_field = "merge"


def require_id(entity_id: int | None, label: str) -> int:
    """Return the id of a persisted row, failing the application when it has none."""

    if entity_id is None:
        raise ProposalApplicationError(f"{label} has no id after being written")
    return entity_id
