"""PRD Kernel data models."""

from prd_kernel.models.contract import (
    ActorData,
    AIChange,
    AIResponse,
    ApplyResult,
    Citation,
    CompetitorData,
    GoalData,
    MetricData,
    MilestoneData,
    NodeDraft,
    NodePatch,
    RequirementData,
    TermData,
)
from prd_kernel.models.document import (
    Actor,
    ActorPriority,
    ActorRole,
    Background,
    Competitor,
    DiscoveryMode,
    DocumentContext,
    DocumentMeta,
    DocumentSections,
    DocumentStatus,
    Goal,
    GoalPriority,
    Metric,
    MetricType,
    Milestone,
    NarrativeBlock,
    NarrativeBlockType,
    PRDDocument,
    Requirement,
    RequirementPriority,
    RequirementStatus,
    RequirementType,
    Term,
    Tldr,
)
from prd_kernel.models.knowledge import (
    ContextLimits,
    ContextPack,
    ContextPackMeta,
    ContextPolicies,
    EdgeType,
    FocusContext,
    FocusKind,
    FocusMeta,
    FocusSection,
    KnowledgeEdge,
    KnowledgeGraph,
    KnowledgeNode,
    NodeType,
)
from prd_kernel.models.policy import ActorPolicy, TermPolicy
from prd_kernel.models.rules import RuleResult, RuleStatus

__all__ = [
    "AIChange",
    "AIResponse",
    "Actor",
    "ActorData",
    "ActorPolicy",
    "ActorPriority",
    "ActorRole",
    "ApplyResult",
    "Background",
    "Citation",
    "Competitor",
    "CompetitorData",
    "ContextLimits",
    "ContextPack",
    "ContextPackMeta",
    "ContextPolicies",
    "DiscoveryMode",
    "DocumentContext",
    "DocumentMeta",
    "DocumentSections",
    "DocumentStatus",
    "EdgeType",
    "FocusContext",
    "FocusKind",
    "FocusMeta",
    "FocusSection",
    "Goal",
    "GoalData",
    "GoalPriority",
    "KnowledgeEdge",
    "KnowledgeGraph",
    "KnowledgeNode",
    "Metric",
    "MetricData",
    "MetricType",
    "Milestone",
    "MilestoneData",
    "NarrativeBlock",
    "NarrativeBlockType",
    "NodeDraft",
    "NodePatch",
    "NodeType",
    "PRDDocument",
    "Requirement",
    "RequirementData",
    "RequirementPriority",
    "RequirementStatus",
    "RequirementType",
    "RuleResult",
    "RuleStatus",
    "Term",
    "TermData",
    "TermPolicy",
    "Tldr",
]
