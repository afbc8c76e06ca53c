"""
Change Applier: validates and applies assistant-proposed change batches.

The only path by which an external assistant mutates the document.

Behavioral Contract:
- Accepts an untrusted payload; structural validation is a gate: an invalid
  batch is rejected wholesale with zero mutations
- Each change is applied independently and in order, against the document
  as left by the previous changes in the same batch
- A rejected change yields one human-readable error and never aborts the batch
- Referential integrity and policy are re-checked against the current
  document at apply time, never trusted from the context pack
- Discovery mode "off" rejects every add; updates and links still proceed
"""

import logging
from typing import Callable, Dict, List, Optional, Tuple, Type

from pydantic import BaseModel, ValidationError

from prd_kernel.core.logging import get_logger, log_with_context
from prd_kernel.document.store import DocumentError, DocumentStore
from prd_kernel.models.contract import (
    ActorData,
    AIChange,
    AIResponse,
    ApplyResult,
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
    ActorPriority,
    ActorRole,
    DiscoveryMode,
    GoalPriority,
    RequirementPriority,
    RequirementStatus,
    RequirementType,
)
from prd_kernel.models.knowledge import EdgeType, NodeType
from prd_kernel.models.policy import ActorPolicy, TermPolicy
from prd_kernel.policy.tables import ACTOR_POLICY_DEFAULT, TERM_POLICY_DEFAULT, is_blocked

logger = get_logger(__name__)

# Node/edge types with no handler, rejected explicitly at apply time.
UNSUPPORTED_ADD_TYPES = frozenset({NodeType.NARRATIVE, NodeType.TLDR})
UNSUPPORTED_UPDATE_TYPES = frozenset({NodeType.NARRATIVE, NodeType.TLDR})
UNSUPPORTED_LINK_TYPES = frozenset({EdgeType.TERM_USAGE})   # Computed, never stored


class ChangeRejected(Exception):
    """Raised by a handler to reject a single change with a user-facing reason."""
    pass


def _format_validation_errors(error: ValidationError) -> List[str]:
    messages = []
    for issue in error.errors():
        loc = ".".join(str(part) for part in issue.get("loc", ()))
        messages.append(f"{loc}: {issue['msg']}" if loc else issue["msg"])
    return messages


def validate_ai_response(raw: object) -> Tuple[Optional[AIResponse], List[str]]:
    """Structural validation of a Change Contract payload."""
    try:
        return AIResponse.model_validate(raw), []
    except ValidationError as e:
        return None, _format_validation_errors(e)


def _parse_data(model: Type[BaseModel], data: Optional[dict], node_type: NodeType):
    try:
        return model.model_validate(data or {})
    except ValidationError as e:
        detail = "; ".join(_format_validation_errors(e))
        raise ChangeRejected(f"Invalid data for {node_type.value}: {detail}")


def _add_unique(items: List[str], value: str) -> List[str]:
    return items if value in items else [*items, value]


class ChangeApplier:
    """
    Applies Change Contract batches to a DocumentStore.

    Handlers are registered per node type (add/update) and per edge type
    (link). A type without a handler is rejected with an explicit error.
    """

    def __init__(
        self,
        store: DocumentStore,
        actor_policy: ActorPolicy = ACTOR_POLICY_DEFAULT,
        term_policy: TermPolicy = TERM_POLICY_DEFAULT,
    ):
        self.store = store
        self.actor_policy = actor_policy
        self.term_policy = term_policy
        self._add_handlers: Dict[NodeType, Callable[[NodeDraft], None]] = {}
        self._update_handlers: Dict[NodeType, Callable[[str, NodePatch], None]] = {}
        self._link_handlers: Dict[EdgeType, Callable[[str, str], None]] = {}
        self._register_default_handlers()

    def _register_default_handlers(self) -> None:
        self._add_handlers[NodeType.ACTOR] = self._add_actor
        self._add_handlers[NodeType.TERM] = self._add_term
        self._add_handlers[NodeType.GOAL] = self._add_goal
        self._add_handlers[NodeType.METRIC] = self._add_metric
        self._add_handlers[NodeType.REQUIREMENT] = self._add_requirement
        self._add_handlers[NodeType.MILESTONE] = self._add_milestone
        self._add_handlers[NodeType.COMPETITOR] = self._add_competitor

        self._update_handlers[NodeType.ACTOR] = self._update_actor
        self._update_handlers[NodeType.TERM] = self._update_term
        self._update_handlers[NodeType.GOAL] = self._update_goal
        self._update_handlers[NodeType.METRIC] = self._update_metric
        self._update_handlers[NodeType.REQUIREMENT] = self._update_requirement
        self._update_handlers[NodeType.MILESTONE] = self._update_milestone
        self._update_handlers[NodeType.COMPETITOR] = self._update_competitor

        self._link_handlers[EdgeType.RELATED_GOAL] = self._link_related_goal
        self._link_handlers[EdgeType.PRIMARY_ACTOR] = self._link_primary_actor
        self._link_handlers[EdgeType.SECONDARY_ACTOR] = self._link_secondary_actor
        self._link_handlers[EdgeType.INCLUDES_REQUIREMENT] = self._link_includes_requirement
        self._link_handlers[EdgeType.SUCCESS_METRIC] = self._link_success_metric

    @property
    def handled_add_types(self) -> frozenset:
        return frozenset(self._add_handlers)

    @property
    def handled_update_types(self) -> frozenset:
        return frozenset(self._update_handlers)

    @property
    def handled_link_types(self) -> frozenset:
        return frozenset(self._link_handlers)

    # --- Batch ---

    def apply(self, raw: object) -> ApplyResult:
        """Validate `raw` as a Change Contract batch and apply it change by change."""
        response, validation_errors = validate_ai_response(raw)
        if response is None:
            logger.warning(
                "Rejected change batch: %d validation error(s)", len(validation_errors)
            )
            return ApplyResult(applied=0, errors=validation_errors)

        result = ApplyResult()
        for position, change in enumerate(response.changes):
            change_id = change.id or f"#{position}"
            error = self.apply_change(change)
            if error:
                logger.warning("Skipped change %s (%s): %s", change_id, change.op, error)
                result.errors.append(error)
            else:
                result.applied += 1
                result.applied_change_ids.append(change_id)

        log_with_context(
            logger,
            logging.INFO,
            f"Applied {result.applied}/{len(response.changes)} changes",
            document_id=self.store.document.meta.id,
            applied=result.applied,
            rejected=len(result.errors),
        )
        return result

    def apply_change(self, change: AIChange) -> Optional[str]:
        """Apply one change. Returns None on success, else the rejection reason."""
        try:
            if change.op == "add":
                self._apply_add(change)
            elif change.op == "update":
                self._apply_update(change)
            else:
                self._apply_link(change)
        except (ChangeRejected, DocumentError) as e:
            return str(e)
        except ValidationError as e:
            return "; ".join(_format_validation_errors(e))
        return None

    def _apply_add(self, change: AIChange) -> None:
        node = change.node
        if node is None:
            raise ChangeRejected("Missing node payload for add operation.")

        if self.store.document.meta.discovery_mode == DiscoveryMode.OFF:
            raise ChangeRejected("Discovery mode is off; skipping add operation.")

        handler = self._add_handlers.get(node.type)
        if handler is None:
            raise ChangeRejected(f'Unsupported node type "{node.type.value}" for add operation.')
        if not self.store.is_id_available(node.id):
            raise ChangeRejected(f"Node id {node.id} is already in use.")
        handler(node)

    def _apply_update(self, change: AIChange) -> None:
        if not change.node_id or change.patch is None:
            raise ChangeRejected("Missing nodeId or patch for update operation.")

        node_type = self.store.resolve_node_type(change.node_id)
        if node_type is None:
            raise ChangeRejected(f"Could not resolve node type for {change.node_id}.")

        handler = self._update_handlers.get(node_type)
        if handler is None:
            raise ChangeRejected(
                f'Unsupported node type "{node_type.value}" for update operation.'
            )
        handler(change.node_id, change.patch)

    def _apply_link(self, change: AIChange) -> None:
        missing = [
            name for name, value in (
                ("edgeType", change.edge_type),
                ("fromId", change.from_id),
                ("toId", change.to_id),
            )
            if not value
        ]
        if missing:
            raise ChangeRejected(
                f"Missing edge data for link operation: {', '.join(missing)}."
            )

        handler = self._link_handlers.get(change.edge_type)
        if handler is None:
            raise ChangeRejected(
                f'Unsupported edge type "{change.edge_type.value}" for link operation.'
            )
        handler(change.from_id, change.to_id)

    # --- Reference checks ---

    def _require(self, node_id: str, node_type: NodeType, label: str, context: str = "") -> None:
        if not self.store.has(node_id, node_type):
            suffix = f" {context}" if context else ""
            raise ChangeRejected(f"{label} {node_id} not found{suffix}.")

    def _check_requirement_refs(self, data: RequirementData) -> None:
        if data.primary_actor_id:
            self._require(data.primary_actor_id, NodeType.ACTOR, "Actor")
        for actor_id in data.secondary_actor_ids or []:
            self._require(actor_id, NodeType.ACTOR, "Actor")
        for goal_id in data.related_goal_ids or []:
            self._require(goal_id, NodeType.GOAL, "Goal")

    def _check_milestone_refs(self, data: MilestoneData) -> None:
        for requirement_id in data.included_requirement_ids or []:
            self._require(requirement_id, NodeType.REQUIREMENT, "Requirement")

    def _check_actor_name(self, name: str) -> None:
        if is_blocked(name, self.actor_policy.blocklist):
            raise ChangeRejected(f'Actor name "{name}" is blocked by policy.')

    def _check_term(self, term: str) -> None:
        if is_blocked(term, self.term_policy.blocklist):
            raise ChangeRejected(f'Glossary term "{term}" is blocked by policy.')

    # --- Add handlers ---

    def _add_actor(self, node: NodeDraft) -> None:
        self._check_actor_name(node.title)
        data = _parse_data(ActorData, node.data, NodeType.ACTOR)
        self.store.add_actor(
            name=node.title,
            role=data.role or ActorRole.USER,
            priority=data.priority or ActorPriority.SECONDARY,
            description=node.description,
            node_id=node.id,
        )

    def _add_term(self, node: NodeDraft) -> None:
        self._check_term(node.title)
        data = _parse_data(TermData, node.data, NodeType.TERM)
        self.store.add_term(
            term=node.title,
            definition=node.description or "",
            banned_synonyms=data.banned_synonyms or [],
            node_id=node.id,
        )

    def _add_goal(self, node: NodeDraft) -> None:
        data = _parse_data(GoalData, node.data, NodeType.GOAL)
        self.store.add_goal(
            title=node.title,
            description=node.description or "",
            priority=data.priority or GoalPriority.MEDIUM,
            node_id=node.id,
        )

    def _add_metric(self, node: NodeDraft) -> None:
        try:
            data = MetricData.model_validate(node.data or {})
        except ValidationError:
            raise ChangeRejected("Metric data is incomplete; expected goalId, target, and type.")
        self._require(data.goal_id, NodeType.GOAL, "Goal", "for metric")
        self.store.add_metric(
            goal_id=data.goal_id,
            description=node.title,
            target=data.target,
            type=data.type,
            baseline=data.baseline,
            node_id=node.id,
        )

    def _add_requirement(self, node: NodeDraft) -> None:
        data = _parse_data(RequirementData, node.data, NodeType.REQUIREMENT)
        self._check_requirement_refs(data)
        self.store.add_requirement(
            title=node.title,
            description=node.description or "",
            priority=data.priority or RequirementPriority.P2,
            type=data.type or RequirementType.USER_STORY,
            status=data.status or RequirementStatus.DRAFT,
            primary_actor_id=data.primary_actor_id or "",
            secondary_actor_ids=data.secondary_actor_ids or [],
            related_goal_ids=data.related_goal_ids or [],
            node_id=node.id,
        )

    def _add_milestone(self, node: NodeDraft) -> None:
        data = _parse_data(MilestoneData, node.data, NodeType.MILESTONE)
        self._check_milestone_refs(data)
        self.store.add_milestone(
            title=node.title,
            target_date=data.target_date,
            exit_criteria=data.exit_criteria or [],
            included_requirement_ids=data.included_requirement_ids or [],
            node_id=node.id,
        )

    def _add_competitor(self, node: NodeDraft) -> None:
        data = _parse_data(CompetitorData, node.data, NodeType.COMPETITOR)
        self.store.add_competitor(
            name=node.title,
            url=data.url,
            strengths=data.strengths or [],
            weaknesses=data.weaknesses or [],
            feature_gaps=data.feature_gaps or [],
            analysis=data.analysis,
            selected=bool(data.selected),
            node_id=node.id,
        )

    # --- Update handlers ---

    def _update_actor(self, node_id: str, patch: NodePatch) -> None:
        if patch.title is not None:
            self._check_actor_name(patch.title)
        data = _parse_data(ActorData, patch.data, NodeType.ACTOR)
        self.store.update_actor(node_id, {
            "name": patch.title,
            "description": patch.description,
            "role": data.role,
            "priority": data.priority,
        })

    def _update_term(self, node_id: str, patch: NodePatch) -> None:
        if patch.title is not None:
            self._check_term(patch.title)
        data = _parse_data(TermData, patch.data, NodeType.TERM)
        self.store.update_term(node_id, {
            "term": patch.title,
            "definition": patch.description,
            "banned_synonyms": data.banned_synonyms,
        })

    def _update_goal(self, node_id: str, patch: NodePatch) -> None:
        data = _parse_data(GoalData, patch.data, NodeType.GOAL)
        self.store.update_goal(node_id, {
            "title": patch.title,
            "description": patch.description,
            "priority": data.priority,
        })

    def _update_metric(self, node_id: str, patch: NodePatch) -> None:
        try:
            data = MetricData.model_validate(patch.data or {})
        except ValidationError:
            raise ChangeRejected("Metric update missing goalId, target, or type.")
        self._require(data.goal_id, NodeType.GOAL, "Goal", "for metric update")
        if self.store.metric_owner(node_id) != data.goal_id:
            raise ChangeRejected(f"Metric {node_id} does not belong to goal {data.goal_id}.")
        self.store.update_metric(node_id, {
            "description": patch.title,
            "target": data.target,
            "type": data.type,
            "baseline": data.baseline,
        })

    def _update_requirement(self, node_id: str, patch: NodePatch) -> None:
        data = _parse_data(RequirementData, patch.data, NodeType.REQUIREMENT)
        self._check_requirement_refs(data)
        self.store.update_requirement(node_id, {
            "title": patch.title,
            "description": patch.description,
            "primary_actor_id": data.primary_actor_id,
            "priority": data.priority,
            "status": data.status,
            "type": data.type,
            "related_goal_ids": data.related_goal_ids,
            "secondary_actor_ids": data.secondary_actor_ids,
        })

    def _update_milestone(self, node_id: str, patch: NodePatch) -> None:
        data = _parse_data(MilestoneData, patch.data, NodeType.MILESTONE)
        self._check_milestone_refs(data)
        self.store.update_milestone(node_id, {
            "title": patch.title,
            "target_date": data.target_date,
            "exit_criteria": data.exit_criteria,
            "included_requirement_ids": data.included_requirement_ids,
        })

    def _update_competitor(self, node_id: str, patch: NodePatch) -> None:
        data = _parse_data(CompetitorData, patch.data, NodeType.COMPETITOR)
        self.store.update_competitor(node_id, {
            "name": patch.title,
            "analysis": data.analysis if data.analysis is not None else patch.description,
            "url": data.url,
            "selected": data.selected,
            "strengths": data.strengths,
            "weaknesses": data.weaknesses,
            "feature_gaps": data.feature_gaps,
        })

    # --- Link handlers ---

    def _link_related_goal(self, from_id: str, to_id: str) -> None:
        requirement = self.store.get_requirement(from_id)
        if requirement is None:
            raise ChangeRejected(f"Requirement {from_id} not found.")
        self._require(to_id, NodeType.GOAL, "Goal")
        self.store.update_requirement(from_id, {
            "related_goal_ids": _add_unique(requirement.related_goal_ids, to_id),
        })

    def _link_primary_actor(self, from_id: str, to_id: str) -> None:
        if self.store.get_requirement(from_id) is None:
            raise ChangeRejected(f"Requirement {from_id} not found.")
        self._require(to_id, NodeType.ACTOR, "Actor")
        self.store.update_requirement(from_id, {"primary_actor_id": to_id})

    def _link_secondary_actor(self, from_id: str, to_id: str) -> None:
        requirement = self.store.get_requirement(from_id)
        if requirement is None:
            raise ChangeRejected(f"Requirement {from_id} not found.")
        self._require(to_id, NodeType.ACTOR, "Actor")
        self.store.update_requirement(from_id, {
            "secondary_actor_ids": _add_unique(requirement.secondary_actor_ids, to_id),
        })

    def _link_includes_requirement(self, from_id: str, to_id: str) -> None:
        milestone = self.store.get_milestone(from_id)
        if milestone is None:
            raise ChangeRejected(f"Milestone {from_id} not found.")
        self._require(to_id, NodeType.REQUIREMENT, "Requirement")
        self.store.update_milestone(from_id, {
            "included_requirement_ids": _add_unique(milestone.included_requirement_ids, to_id),
        })

    def _link_success_metric(self, from_id: str, to_id: str) -> None:
        """Metrics are exclusively owned: linking to a new goal moves the metric."""
        if self.store.get_goal(from_id) is None:
            raise ChangeRejected(f"Goal {from_id} not found.")
        if self.store.get_metric(to_id) is None:
            raise ChangeRejected(f"Metric {to_id} not found for successMetric link.")
        self.store.move_metric(to_id, from_id)


def apply_ai_response(raw: object, store: DocumentStore) -> ApplyResult:
    """Validate and apply one assistant batch to `store` with default policies."""
    return ChangeApplier(store).apply(raw)
