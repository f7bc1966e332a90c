"""Proposals produced by data agents and the audit records of applying them."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .enums import ApplicationStatus, ProposalKind, ProposalStatus

if TYPE_CHECKING:
    from datetime import datetime

type JsonObject = dict[str, object]


@dataclass(eq=False, kw_only=True)
class Proposal:
    """A pending change request against the catalog.

    ``changes`` is the agent-authored diff tree and ``user_modified_changes`` holds
    the reviewer overrides in the same shape. Both are stored as raw JSON and parsed
    into change values when a proposal is applied.
    """

    id: str
    kind: ProposalKind
    status: ProposalStatus = ProposalStatus.PENDING
    agent_name: str | None = None
    changes: JsonObject = field(default_factory=dict)
    user_modified_changes: JsonObject = field(default_factory=dict)
    approved_blocks: dict[str, bool] = field(default_factory=dict)
    event_id: int | None = None
    edition_id: int | None = None
    race_id: int | None = None
    created_at: datetime | None = None


@dataclass(eq=False, kw_only=True)
class ProposalApplication:
    """Audit record of one apply call; ``created_ids`` lets chunked calls resume."""

    id: int | None = None
    proposal_id: str
    block: str | None = None
    status: ApplicationStatus
    applied_changes: JsonObject = field(default_factory=dict)
    created_ids: JsonObject = field(default_factory=dict)
    errors: list[JsonObject] = field(default_factory=list)
    warnings: list[JsonObject] = field(default_factory=list)
    applied_by: str | None = None
    applied_at: datetime | None = None
