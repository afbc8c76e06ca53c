"""Change Contract: the batch of edits an external assistant may propose."""

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from prd_kernel.models.document import (
    ActorPriority,
    ActorRole,
    GoalPriority,
    MetricType,
    RequirementPriority,
    RequirementStatus,
    RequirementType,
)
from prd_kernel.models.knowledge import EdgeType, NodeType


class NodeDraft(BaseModel):
    """A full node as proposed by an `add` operation."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    type: NodeType
    title: str
    description: Optional[str] = None
    source_section: Optional[str] = Field(default=None, alias="sourceSection")
    data: Optional[dict] = None             # Type-specific payload, validated on apply
    tags: Optional[List[str]] = None


class NodePatch(BaseModel):
    """Partial node used by `update` operations. Every field is optional."""

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    type: Optional[NodeType] = None
    title: Optional[str] = None
    description: Optional[str] = None
    source_section: Optional[str] = Field(default=None, alias="sourceSection")
    data: Optional[dict] = None
    tags: Optional[List[str]] = None


class AIChange(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None                # Referenced by citations
    op: Literal["add", "update", "link"]
    node: Optional[NodeDraft] = None                            # add
    node_id: Optional[str] = Field(default=None, alias="nodeId")  # update
    patch: Optional[NodePatch] = None                           # update
    edge_type: Optional[EdgeType] = Field(default=None, alias="edgeType")  # link
    from_id: Optional[str] = Field(default=None, alias="fromId")
    to_id: Optional[str] = Field(default=None, alias="toId")


class Citation(BaseModel):
    """Traceability from a change to the context nodes that justified it. Display only."""

    model_config = ConfigDict(populate_by_name=True)

    change_id: str = Field(alias="changeId")
    source_node_ids: List[str] = Field(alias="sourceNodeIds")
    note: Optional[str] = None


class AIResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    changes: List[AIChange]
    new_nodes: List[NodeDraft] = Field(default=[], alias="newNodes")
    citations: List[Citation] = []
    narrative: str = ""                     # Shown to the user before approval


class ApplyResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    applied: int = 0
    errors: List[str] = []
    applied_change_ids: List[str] = Field(default=[], alias="appliedChangeIds")


# --- Structured `data` payloads, one per node type ---

class _NodeData(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ActorData(_NodeData):
    role: Optional[ActorRole] = None
    priority: Optional[ActorPriority] = None


class TermData(_NodeData):
    banned_synonyms: Optional[List[str]] = Field(default=None, alias="bannedSynonyms")


class GoalData(_NodeData):
    priority: Optional[GoalPriority] = None


class MetricData(_NodeData):
    goal_id: str = Field(alias="goalId")
    target: str
    type: MetricType
    baseline: Optional[str] = None


class RequirementData(_NodeData):
    primary_actor_id: Optional[str] = Field(default=None, alias="primaryActorId")
    secondary_actor_ids: Optional[List[str]] = Field(default=None, alias="secondaryActorIds")
    related_goal_ids: Optional[List[str]] = Field(default=None, alias="relatedGoalIds")
    priority: Optional[RequirementPriority] = None
    status: Optional[RequirementStatus] = None
    type: Optional[RequirementType] = None


class MilestoneData(_NodeData):
    target_date: Optional[str] = Field(default=None, alias="targetDate")
    exit_criteria: Optional[List[str]] = Field(default=None, alias="exitCriteria")
    included_requirement_ids: Optional[List[str]] = Field(
        default=None, alias="includedRequirementIds"
    )


class CompetitorData(_NodeData):
    url: Optional[str] = None
    analysis: Optional[str] = None
    selected: Optional[bool] = None
    strengths: Optional[List[str]] = None
    weaknesses: Optional[List[str]] = None
    feature_gaps: Optional[List[str]] = Field(default=None, alias="featureGaps")
