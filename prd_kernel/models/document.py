"""Document Model: the canonical PRD entity graph owned by one editing session."""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class ActorRole(str, Enum):
    USER = "User"
    ADMIN = "Admin"
    SYSTEM = "System"
    BUYER = "Buyer"
    STAKEHOLDER = "Stakeholder"


class ActorPriority(str, Enum):
    PRIMARY = "Primary"
    SECONDARY = "Secondary"
    TERTIARY = "Tertiary"


class GoalPriority(str, Enum):
    CRITICAL = "Critical"
    HIGH = "High"
    MEDIUM = "Medium"


class MetricType(str, Enum):
    BUSINESS = "Business"
    UX = "UX"
    TECHNICAL = "Technical"
    SECURITY = "Security"


class RequirementPriority(str, Enum):
    P0 = "P0"
    P1 = "P1"
    P2 = "P2"
    P3 = "P3"


class RequirementType(str, Enum):
    USER_STORY = "User Story"
    SYSTEM_BEHAVIOR = "System Behavior"
    CONSTRAINT = "Constraint"
    INTERFACE = "Interface"


class RequirementStatus(str, Enum):
    DRAFT = "Draft"
    PROPOSED = "Proposed"
    APPROVED = "Approved"
    DEPRECATED = "Deprecated"


class DocumentStatus(str, Enum):
    DRAFT = "Draft"
    REVIEW = "Review"
    FINAL = "Final"


class DiscoveryMode(str, Enum):
    """Whether assistant proposals may introduce new entities."""
    OFF = "off"
    DEFAULT = "default"
    ON = "on"


class NarrativeBlockType(str, Enum):
    TEXT = "text"
    DRIVER = "driver"


class Actor(BaseModel):
    id: str
    name: str
    role: ActorRole
    priority: ActorPriority
    description: Optional[str] = None


class Term(BaseModel):
    id: str
    term: str
    definition: str
    banned_synonyms: List[str] = []


class Metric(BaseModel):
    """A success metric. Exists only inside exactly one Goal."""

    id: str                                 # Globally unique, addressed directly
    description: str
    target: str
    baseline: Optional[str] = None
    type: MetricType


class Goal(BaseModel):
    id: str
    title: str
    description: str = ""
    priority: GoalPriority = GoalPriority.MEDIUM
    metrics: List[Metric] = []


class Requirement(BaseModel):
    id: str
    title: str
    description: str = ""
    priority: RequirementPriority = RequirementPriority.P2
    type: RequirementType = RequirementType.USER_STORY
    status: RequirementStatus = RequirementStatus.DRAFT
    primary_actor_id: str = ""              # Empty means unassigned
    secondary_actor_ids: List[str] = []     # Set semantics
    related_goal_ids: List[str] = []        # Set semantics


class Milestone(BaseModel):
    id: str
    title: str
    target_date: Optional[str] = None
    exit_criteria: List[str] = []
    included_requirement_ids: List[str] = []  # Set semantics


class Competitor(BaseModel):
    id: str
    name: str
    url: Optional[str] = None
    strengths: List[str] = []
    weaknesses: List[str] = []
    feature_gaps: List[str] = []            # Things they have that we don't
    analysis: Optional[str] = None
    selected: bool = False                  # Active context for requirement generation


class NarrativeBlock(BaseModel):
    id: str
    type: NarrativeBlockType
    title: str
    content: str = ""


class Tldr(BaseModel):
    problem: str = ""
    solution: str = ""
    value_props: List[str] = []


class Background(BaseModel):
    context: str = ""
    market_drivers: List[str] = []
    blocks: List[NarrativeBlock] = []       # Ordering is significant


class DocumentMeta(BaseModel):
    id: str
    title: str = "Untitled PRD"
    status: DocumentStatus = DocumentStatus.DRAFT
    version: int = Field(ge=1, default=1)
    last_updated: datetime
    discovery_mode: DiscoveryMode = DiscoveryMode.DEFAULT


class DocumentContext(BaseModel):
    actors: List[Actor] = []
    glossary: List[Term] = []
    competitors: List[Competitor] = []


class DocumentSections(BaseModel):
    tldr: Tldr = Tldr()
    background: Background = Background()
    goals: List[Goal] = []
    requirements: List[Requirement] = []
    milestones: List[Milestone] = []


class PRDDocument(BaseModel):
    """The master document. Single source of truth for graph and context views."""

    meta: DocumentMeta
    context: DocumentContext = DocumentContext()
    sections: DocumentSections = DocumentSections()
