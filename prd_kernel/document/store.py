"""
Document Store: the single mutation gateway for the in-memory PRD.

Updated by: Direct user edits + the Change Applier
Queried by: Graph Builder + Context Selector + Change Applier

Behavioral Contract:
- Every mutation that changes the document stamps meta.last_updated;
  no-op mutations (unknown ids, updates that change nothing) do not
- Keeps an id index (id -> node type, owning goal for metrics) in step with
  every add/remove, so type resolution never re-scans collections
- Ids are never reused within a session, including ids of deleted entities
- The synthetic TL;DR node ids are reserved and never claimable
- Deletions never cascade; stale references are tolerated
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional, Set
from uuid import uuid4

from pydantic import BaseModel

from prd_kernel.models.document import (
    Actor,
    ActorPriority,
    ActorRole,
    Competitor,
    DiscoveryMode,
    DocumentMeta,
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
)
from prd_kernel.knowledge.graph import tldr_node_ids
from prd_kernel.models.knowledge import NodeType


class DocumentError(Exception):
    """Raised when a document mutation cannot be carried out."""
    pass


class DuplicateNodeIdError(DocumentError):
    """Raised when a new entity would reuse a live or retired id."""

    def __init__(self, node_id: str):
        super().__init__(f"Node id {node_id} is already in use.")
        self.node_id = node_id


class NodeLocation:
    """Where an id lives in the document."""

    def __init__(self, node_type: NodeType, goal_id: Optional[str] = None):
        self.node_type = node_type
        self.goal_id = goal_id              # Owning goal, metrics only

    def __repr__(self) -> str:
        return f"NodeLocation({self.node_type.value!r}, goal_id={self.goal_id!r})"


_REFERENCE_LIST_FIELDS = (
    "secondary_actor_ids",
    "related_goal_ids",
    "included_requirement_ids",
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _unique(items: List[str]) -> List[str]:
    """Order-preserving de-duplication for set-valued reference lists."""
    seen: Set[str] = set()
    result = []
    for item in items:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result


def _find_index(items: List[BaseModel], node_id: str) -> int:
    for i, item in enumerate(items):
        if item.id == node_id:
            return i
    return -1


def _merge(entity: BaseModel, updates: dict) -> BaseModel:
    """Return a validated copy of `entity` with non-None `updates` applied."""
    clean = {k: v for k, v in updates.items() if v is not None and k != "id"}
    for field in _REFERENCE_LIST_FIELDS:
        if field in clean:
            clean[field] = _unique(list(clean[field]))
    merged = {**entity.model_dump(), **clean}
    return type(entity).model_validate(merged)


def new_document(title: str = "Untitled PRD") -> PRDDocument:
    """A fresh, empty document."""
    return PRDDocument(
        meta=DocumentMeta(id=str(uuid4()), title=title, last_updated=_utcnow()),
    )


class DocumentStore:
    """
    In-memory owner of one PRD document.
    One store per editing session; no locking.
    """

    def __init__(self, document: Optional[PRDDocument] = None):
        self._document = document or new_document()
        self._index: Dict[str, NodeLocation] = {}
        self._retired_ids: Set[str] = set()
        self._reserved_ids: Set[str] = set(tldr_node_ids(self._document))
        self._rebuild_index()

    @property
    def document(self) -> PRDDocument:
        """Get the current document."""
        return self._document

    def snapshot(self) -> dict:
        """Get a serializable snapshot of the current document."""
        return self._document.model_dump(mode="json")

    # --- Index ---

    def _rebuild_index(self) -> None:
        doc = self._document
        self._index = {}
        for actor in doc.context.actors:
            self._index[actor.id] = NodeLocation(NodeType.ACTOR)
        for term in doc.context.glossary:
            self._index[term.id] = NodeLocation(NodeType.TERM)
        for goal in doc.sections.goals:
            self._index[goal.id] = NodeLocation(NodeType.GOAL)
            for metric in goal.metrics:
                self._index[metric.id] = NodeLocation(NodeType.METRIC, goal.id)
        for requirement in doc.sections.requirements:
            self._index[requirement.id] = NodeLocation(NodeType.REQUIREMENT)
        for milestone in doc.sections.milestones:
            self._index[milestone.id] = NodeLocation(NodeType.MILESTONE)
        for competitor in doc.context.competitors:
            self._index[competitor.id] = NodeLocation(NodeType.COMPETITOR)
        for block in doc.sections.background.blocks:
            self._index[block.id] = NodeLocation(NodeType.NARRATIVE)

    def _claim_id(self, node_id: Optional[str]) -> str:
        if not node_id:
            return str(uuid4())
        if not self.is_id_available(node_id):
            raise DuplicateNodeIdError(node_id)
        return node_id

    def _retire(self, node_id: str) -> None:
        self._index.pop(node_id, None)
        self._retired_ids.add(node_id)

    def is_id_available(self, node_id: str) -> bool:
        return (
            node_id not in self._index
            and node_id not in self._retired_ids
            and node_id not in self._reserved_ids
        )

    def locate(self, node_id: str) -> Optional[NodeLocation]:
        return self._index.get(node_id)

    def resolve_node_type(self, node_id: str) -> Optional[NodeType]:
        location = self.locate(node_id)
        return location.node_type if location else None

    def has(self, node_id: str, node_type: NodeType) -> bool:
        return self.resolve_node_type(node_id) == node_type

    def _touch(self) -> None:
        self._document.meta.last_updated = _utcnow()

    # --- Lookups ---

    def get_actor(self, actor_id: str) -> Optional[Actor]:
        return self._get(self._document.context.actors, actor_id, NodeType.ACTOR)

    def get_term(self, term_id: str) -> Optional[Term]:
        return self._get(self._document.context.glossary, term_id, NodeType.TERM)

    def get_goal(self, goal_id: str) -> Optional[Goal]:
        return self._get(self._document.sections.goals, goal_id, NodeType.GOAL)

    def get_requirement(self, requirement_id: str) -> Optional[Requirement]:
        return self._get(
            self._document.sections.requirements, requirement_id, NodeType.REQUIREMENT
        )

    def get_milestone(self, milestone_id: str) -> Optional[Milestone]:
        return self._get(self._document.sections.milestones, milestone_id, NodeType.MILESTONE)

    def get_competitor(self, competitor_id: str) -> Optional[Competitor]:
        return self._get(
            self._document.context.competitors, competitor_id, NodeType.COMPETITOR
        )

    def get_metric(self, metric_id: str) -> Optional[Metric]:
        location = self.locate(metric_id)
        if location is None or location.node_type != NodeType.METRIC:
            return None
        goal = self.get_goal(location.goal_id)
        if goal is None:
            return None
        index = _find_index(goal.metrics, metric_id)
        return goal.metrics[index] if index >= 0 else None

    def metric_owner(self, metric_id: str) -> Optional[str]:
        location = self.locate(metric_id)
        if location is None or location.node_type != NodeType.METRIC:
            return None
        return location.goal_id

    def _get(self, items: list, node_id: str, node_type: NodeType):
        if not self.has(node_id, node_type):
            return None
        index = _find_index(items, node_id)
        return items[index] if index >= 0 else None

    def _update_in(self, items: list, node_id: str, node_type: NodeType, updates: dict):
        if not self.has(node_id, node_type):
            return None
        index = _find_index(items, node_id)
        if index < 0:
            return None
        merged = _merge(items[index], updates)
        if merged != items[index]:
            items[index] = merged
            self._touch()
        return items[index]

    def _remove_from(self, items: list, node_id: str, node_type: NodeType) -> bool:
        if not self.has(node_id, node_type):
            return False
        index = _find_index(items, node_id)
        if index < 0:
            return False
        del items[index]
        self._retire(node_id)
        self._touch()
        return True

    @staticmethod
    def _move(items: list, node_id: str, direction: str) -> bool:
        if direction not in ("up", "down"):
            raise ValueError(f"direction must be 'up' or 'down', got {direction!r}")
        index = _find_index(items, node_id)
        if index < 0:
            return False
        new_index = index - 1 if direction == "up" else index + 1
        if new_index < 0 or new_index >= len(items):
            return False
        items[index], items[new_index] = items[new_index], items[index]
        return True

    # --- Meta ---

    def update_title(self, title: str) -> None:
        self._document.meta.title = title
        self._touch()

    def set_status(self, status: DocumentStatus) -> None:
        self._document.meta.status = DocumentStatus(status)
        self._touch()

    def set_discovery_mode(self, mode: DiscoveryMode) -> None:
        self._document.meta.discovery_mode = DiscoveryMode(mode)
        self._touch()

    def bump_version(self) -> int:
        self._document.meta.version += 1
        self._touch()
        return self._document.meta.version

    # --- Actors ---

    def add_actor(
        self,
        name: str,
        role: ActorRole = ActorRole.USER,
        priority: ActorPriority = ActorPriority.SECONDARY,
        description: Optional[str] = None,
        node_id: Optional[str] = None,
    ) -> Actor:
        actor = Actor(
            id=self._claim_id(node_id),
            name=name,
            role=role,
            priority=priority,
            description=description,
        )
        self._document.context.actors.append(actor)
        self._index[actor.id] = NodeLocation(NodeType.ACTOR)
        self._touch()
        return actor

    def update_actor(self, actor_id: str, updates: dict) -> Optional[Actor]:
        return self._update_in(self._document.context.actors, actor_id, NodeType.ACTOR, updates)

    def remove_actor(self, actor_id: str) -> bool:
        """Remove an actor. Requirement references to it are left in place."""
        return self._remove_from(self._document.context.actors, actor_id, NodeType.ACTOR)

    # --- Glossary ---

    def add_term(
        self,
        term: str,
        definition: str = "",
        banned_synonyms: Optional[List[str]] = None,
        node_id: Optional[str] = None,
    ) -> Term:
        entry = Term(
            id=self._claim_id(node_id),
            term=term,
            definition=definition,
            banned_synonyms=banned_synonyms or [],
        )
        self._document.context.glossary.append(entry)
        self._index[entry.id] = NodeLocation(NodeType.TERM)
        self._touch()
        return entry

    def update_term(self, term_id: str, updates: dict) -> Optional[Term]:
        return self._update_in(self._document.context.glossary, term_id, NodeType.TERM, updates)

    def remove_term(self, term_id: str) -> bool:
        return self._remove_from(self._document.context.glossary, term_id, NodeType.TERM)

    # --- Goals & metrics ---

    def add_goal(
        self,
        title: str,
        description: str = "",
        priority: GoalPriority = GoalPriority.MEDIUM,
        node_id: Optional[str] = None,
    ) -> Goal:
        goal = Goal(
            id=self._claim_id(node_id),
            title=title,
            description=description,
            priority=priority,
            metrics=[],
        )
        self._document.sections.goals.append(goal)
        self._index[goal.id] = NodeLocation(NodeType.GOAL)
        self._touch()
        return goal

    def update_goal(self, goal_id: str, updates: dict) -> Optional[Goal]:
        """Patch goal fields. Metrics are managed through the metric methods."""
        updates = {k: v for k, v in updates.items() if k != "metrics"}
        return self._update_in(self._document.sections.goals, goal_id, NodeType.GOAL, updates)

    def remove_goal(self, goal_id: str) -> bool:
        """Remove a goal together with the metrics it owns."""
        goal = self.get_goal(goal_id)
        if goal is None:
            return False
        for metric in goal.metrics:
            self._retire(metric.id)
        return self._remove_from(self._document.sections.goals, goal_id, NodeType.GOAL)

    def add_metric(
        self,
        goal_id: str,
        description: str,
        target: str,
        type: MetricType,
        baseline: Optional[str] = None,
        node_id: Optional[str] = None,
    ) -> Optional[Metric]:
        """Append a metric to a goal. Returns None if the goal does not exist."""
        goal = self.get_goal(goal_id)
        if goal is None:
            return None
        metric = Metric(
            id=self._claim_id(node_id),
            description=description,
            target=target,
            baseline=baseline,
            type=type,
        )
        goal.metrics.append(metric)
        self._index[metric.id] = NodeLocation(NodeType.METRIC, goal.id)
        self._touch()
        return metric

    def update_metric(self, metric_id: str, updates: dict) -> Optional[Metric]:
        """Replace a metric in place within its owning goal."""
        goal_id = self.metric_owner(metric_id)
        goal = self.get_goal(goal_id) if goal_id else None
        if goal is None:
            return None
        index = _find_index(goal.metrics, metric_id)
        if index < 0:
            return None
        merged = _merge(goal.metrics[index], updates)
        if merged != goal.metrics[index]:
            goal.metrics[index] = merged
            self._touch()
        return goal.metrics[index]

    def move_metric(self, metric_id: str, goal_id: str) -> bool:
        """
        Transfer a metric to another goal, preserving exclusive ownership.
        Moving a metric to its current owner is a no-op.
        """
        current_goal_id = self.metric_owner(metric_id)
        target = self.get_goal(goal_id)
        if current_goal_id is None or target is None:
            return False
        if current_goal_id == goal_id:
            return True
        source = self.get_goal(current_goal_id)
        index = _find_index(source.metrics, metric_id)
        metric = source.metrics.pop(index)
        target.metrics.append(metric)
        self._index[metric_id] = NodeLocation(NodeType.METRIC, goal_id)
        self._touch()
        return True

    def remove_metric(self, metric_id: str) -> bool:
        goal_id = self.metric_owner(metric_id)
        goal = self.get_goal(goal_id) if goal_id else None
        if goal is None:
            return False
        index = _find_index(goal.metrics, metric_id)
        del goal.metrics[index]
        self._retire(metric_id)
        self._touch()
        return True

    # --- Requirements ---

    def add_requirement(
        self,
        title: str,
        description: str = "",
        priority: RequirementPriority = RequirementPriority.P2,
        type: RequirementType = RequirementType.USER_STORY,
        status: RequirementStatus = RequirementStatus.DRAFT,
        primary_actor_id: str = "",
        secondary_actor_ids: Optional[List[str]] = None,
        related_goal_ids: Optional[List[str]] = None,
        node_id: Optional[str] = None,
    ) -> Requirement:
        requirement = Requirement(
            id=self._claim_id(node_id),
            title=title,
            description=description,
            priority=priority,
            type=type,
            status=status,
            primary_actor_id=primary_actor_id,
            secondary_actor_ids=_unique(secondary_actor_ids or []),
            related_goal_ids=_unique(related_goal_ids or []),
        )
        self._document.sections.requirements.append(requirement)
        self._index[requirement.id] = NodeLocation(NodeType.REQUIREMENT)
        self._touch()
        return requirement

    def update_requirement(self, requirement_id: str, updates: dict) -> Optional[Requirement]:
        return self._update_in(
            self._document.sections.requirements, requirement_id, NodeType.REQUIREMENT, updates
        )

    def remove_requirement(self, requirement_id: str) -> bool:
        return self._remove_from(
            self._document.sections.requirements, requirement_id, NodeType.REQUIREMENT
        )

    def move_requirement(self, requirement_id: str, direction: str) -> bool:
        moved = self._move(self._document.sections.requirements, requirement_id, direction)
        if moved:
            self._touch()
        return moved

    # --- Milestones ---

    def add_milestone(
        self,
        title: str,
        target_date: Optional[str] = None,
        exit_criteria: Optional[List[str]] = None,
        included_requirement_ids: Optional[List[str]] = None,
        node_id: Optional[str] = None,
    ) -> Milestone:
        milestone = Milestone(
            id=self._claim_id(node_id),
            title=title,
            target_date=target_date,
            exit_criteria=exit_criteria or [],
            included_requirement_ids=_unique(included_requirement_ids or []),
        )
        self._document.sections.milestones.append(milestone)
        self._index[milestone.id] = NodeLocation(NodeType.MILESTONE)
        self._touch()
        return milestone

    def update_milestone(self, milestone_id: str, updates: dict) -> Optional[Milestone]:
        return self._update_in(
            self._document.sections.milestones, milestone_id, NodeType.MILESTONE, updates
        )

    def remove_milestone(self, milestone_id: str) -> bool:
        return self._remove_from(
            self._document.sections.milestones, milestone_id, NodeType.MILESTONE
        )

    # --- Competitors ---

    def add_competitor(
        self,
        name: str,
        url: Optional[str] = None,
        strengths: Optional[List[str]] = None,
        weaknesses: Optional[List[str]] = None,
        feature_gaps: Optional[List[str]] = None,
        analysis: Optional[str] = None,
        selected: bool = False,
        node_id: Optional[str] = None,
    ) -> Competitor:
        competitor = Competitor(
            id=self._claim_id(node_id),
            name=name,
            url=url,
            strengths=strengths or [],
            weaknesses=weaknesses or [],
            feature_gaps=feature_gaps or [],
            analysis=analysis,
            selected=selected,
        )
        self._document.context.competitors.append(competitor)
        self._index[competitor.id] = NodeLocation(NodeType.COMPETITOR)
        self._touch()
        return competitor

    def update_competitor(self, competitor_id: str, updates: dict) -> Optional[Competitor]:
        return self._update_in(
            self._document.context.competitors, competitor_id, NodeType.COMPETITOR, updates
        )

    def set_competitors(self, competitors: List[Competitor]) -> None:
        """
        Replace the whole competitor list (research results).
        Dropped competitors are retired; new ids must be unused.
        """
        current = {c.id for c in self._document.context.competitors}
        incoming = [c.id for c in competitors]
        for competitor_id in incoming:
            if competitor_id not in current and not self.is_id_available(competitor_id):
                raise DuplicateNodeIdError(competitor_id)
        if len(set(incoming)) != len(incoming):
            raise DocumentError("Competitor ids must be unique.")

        for competitor_id in current - set(incoming):
            self._retire(competitor_id)
        for competitor_id in incoming:
            self._index[competitor_id] = NodeLocation(NodeType.COMPETITOR)
        self._document.context.competitors = list(competitors)
        self._touch()

    def toggle_competitor(self, competitor_id: str) -> Optional[Competitor]:
        competitor = self.get_competitor(competitor_id)
        if competitor is None:
            return None
        competitor.selected = not competitor.selected
        self._touch()
        return competitor

    def remove_competitor(self, competitor_id: str) -> bool:
        return self._remove_from(
            self._document.context.competitors, competitor_id, NodeType.COMPETITOR
        )

    # --- TL;DR & background ---

    def update_tldr(self, updates: dict) -> None:
        merged = _merge(self._document.sections.tldr, updates)
        if merged != self._document.sections.tldr:
            self._document.sections.tldr = merged
            self._touch()

    def update_background(self, updates: dict) -> None:
        """Patch background context and market drivers. Blocks have their own methods."""
        updates = {k: v for k, v in updates.items() if k != "blocks"}
        merged = _merge(self._document.sections.background, updates)
        if merged != self._document.sections.background:
            self._document.sections.background = merged
            self._touch()

    def add_narrative_block(
        self,
        type: NarrativeBlockType,
        title: str,
        content: str = "",
        node_id: Optional[str] = None,
    ) -> NarrativeBlock:
        block = NarrativeBlock(
            id=self._claim_id(node_id),
            type=type,
            title=title,
            content=content,
        )
        self._document.sections.background.blocks.append(block)
        self._index[block.id] = NodeLocation(NodeType.NARRATIVE)
        self._touch()
        return block

    def update_narrative_block(self, block_id: str, content: str) -> Optional[NarrativeBlock]:
        return self._update_in(
            self._document.sections.background.blocks,
            block_id,
            NodeType.NARRATIVE,
            {"content": content},
        )

    def remove_narrative_block(self, block_id: str) -> bool:
        return self._remove_from(
            self._document.sections.background.blocks, block_id, NodeType.NARRATIVE
        )

    def move_narrative_block(self, block_id: str, direction: str) -> bool:
        moved = self._move(self._document.sections.background.blocks, block_id, direction)
        if moved:
            self._touch()
        return moved
