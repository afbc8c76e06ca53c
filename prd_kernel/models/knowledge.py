"""Knowledge Graph: normalized node/edge projection of the Document Model."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from prd_kernel.models.document import DiscoveryMode, DocumentStatus
from prd_kernel.models.policy import ActorPolicy, TermPolicy


class NodeType(str, Enum):
    ACTOR = "actor"
    COMPETITOR = "competitor"
    GOAL = "goal"
    METRIC = "metric"
    MILESTONE = "milestone"
    NARRATIVE = "narrative"
    REQUIREMENT = "requirement"
    TERM = "term"
    TLDR = "tldr"


class EdgeType(str, Enum):
    INCLUDES_REQUIREMENT = "includesRequirement"   # Milestone -> Requirement
    PRIMARY_ACTOR = "primaryActor"                 # Requirement -> Actor
    RELATED_GOAL = "relatedGoal"                   # Requirement -> Goal
    SECONDARY_ACTOR = "secondaryActor"             # Requirement -> Actor
    SUCCESS_METRIC = "successMetric"               # Goal -> Metric
    TERM_USAGE = "termUsage"                       # Term -> Requirement | Goal (computed)


class FocusSection(str, Enum):
    ACTORS = "actors"
    BACKGROUND = "background"
    COMPETITORS = "competitors"
    GENERAL = "general"             # Catch-all mode with per-section quotas
    GLOSSARY = "glossary"
    GOALS = "goals"
    MILESTONES = "milestones"
    REQUIREMENTS = "requirements"
    TLDR = "tldr"


class KnowledgeNode(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    type: NodeType
    title: str
    description: Optional[str] = None
    source_section: FocusSection = Field(alias="sourceSection")
    tags: Optional[List[str]] = None


class KnowledgeEdge(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_id: str = Field(alias="fromId")
    to_id: str = Field(alias="toId")
    type: EdgeType


class KnowledgeGraph(BaseModel):
    nodes: List[KnowledgeNode] = []
    edges: List[KnowledgeEdge] = []


class FocusContext(BaseModel):
    """What the caller wants the context pack narrowed to."""

    model_config = ConfigDict(populate_by_name=True)

    section: FocusSection = FocusSection.GENERAL
    node_ids: Optional[List[str]] = Field(default=None, alias="nodeIds")


class ContextLimits(BaseModel):
    """Size bounds for context selection."""

    max_focus_nodes: int = Field(ge=1, default=25)
    actors: int = Field(ge=0, default=5)
    competitors: int = Field(ge=0, default=3)
    glossary: int = Field(ge=0, default=5)
    goals: int = Field(ge=0, default=5)
    milestones: int = Field(ge=0, default=5)
    requirements: int = Field(ge=0, default=8)

    def general_quotas(self) -> List[tuple]:
        """Per-section quotas applied in general mode, in selection order."""
        return [
            (FocusSection.ACTORS, self.actors),
            (FocusSection.COMPETITORS, self.competitors),
            (FocusSection.GLOSSARY, self.glossary),
            (FocusSection.GOALS, self.goals),
            (FocusSection.MILESTONES, self.milestones),
            (FocusSection.REQUIREMENTS, self.requirements),
        ]


class ContextPackMeta(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str
    status: DocumentStatus
    version: int
    discovery_mode: DiscoveryMode = Field(alias="discoveryMode")


class ContextPolicies(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    actor_policy: ActorPolicy = Field(alias="actorPolicy")
    term_policy: TermPolicy = Field(alias="termPolicy")


class ContextPack(BaseModel):
    """The only data the external assistant is allowed to see."""

    meta: ContextPackMeta
    focus: FocusContext
    policies: ContextPolicies
    nodes: List[KnowledgeNode] = []
    edges: List[KnowledgeEdge] = []


class FocusKind(str, Enum):
    ACTOR = "actor"
    COMPETITOR = "competitor"
    GOAL = "goal"
    MILESTONE = "milestone"
    REQUIREMENT = "requirement"
    TERM = "term"
    MIXED = "mixed"


class FocusMeta(BaseModel):
    """Short label describing a focused set of entities."""

    count: int
    kind: FocusKind
    label: str
