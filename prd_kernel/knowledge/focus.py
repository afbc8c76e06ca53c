"""Focus metadata: a short human label for the entities a request is focused on."""

from typing import List, Optional, Tuple

from prd_kernel.models.document import PRDDocument
from prd_kernel.models.knowledge import FocusKind, FocusMeta


def _resolve_focus_label(document: PRDDocument, node_id: str) -> Optional[Tuple[FocusKind, str]]:
    for actor in document.context.actors:
        if actor.id == node_id:
            return FocusKind.ACTOR, f"Actor: {actor.name}"

    for term in document.context.glossary:
        if term.id == node_id:
            return FocusKind.TERM, f"Term: {term.term}"

    for competitor in document.context.competitors:
        if competitor.id == node_id:
            return FocusKind.COMPETITOR, f"Competitor: {competitor.name}"

    for goal in document.sections.goals:
        if goal.id == node_id:
            return FocusKind.GOAL, f"Goal: {goal.title}"

    for requirement in document.sections.requirements:
        if requirement.id == node_id:
            return FocusKind.REQUIREMENT, f"Requirement: {requirement.title}"

    for milestone in document.sections.milestones:
        if milestone.id == node_id:
            return FocusKind.MILESTONE, f"Milestone: {milestone.title}"

    return None


def get_focus_meta(document: PRDDocument, node_ids: List[str]) -> Optional[FocusMeta]:
    """Label a focus set, e.g. "Goal: Grow ARR +2". None if nothing resolves."""
    resolved = [
        item for item in (_resolve_focus_label(document, i) for i in node_ids)
        if item is not None
    ]
    if not resolved:
        return None

    kinds = {kind for kind, _ in resolved}
    first_kind, first_label = resolved[0]
    kind = first_kind if len(kinds) == 1 else FocusKind.MIXED
    label = first_label if len(resolved) == 1 else f"{first_label} +{len(resolved) - 1}"

    return FocusMeta(count=len(resolved), kind=kind, label=label)
