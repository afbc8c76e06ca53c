"""
Graph Builder: derives a normalized node/edge graph from the Document Model.

Behavioral Contract:
- Pure: reads the document, never mutates it, keeps no state between calls
- One node per entity (metrics included) plus two synthetic TL;DR nodes
- One edge per relationship field entry
- termUsage edges are recomputed from current text on every call
- Cannot fail; empty sections simply contribute nothing
"""

import logging
import re
from typing import List, Optional, Pattern

from prd_kernel.models.document import PRDDocument
from prd_kernel.models.knowledge import (
    EdgeType,
    FocusSection,
    KnowledgeEdge,
    KnowledgeGraph,
    KnowledgeNode,
    NodeType,
)

logger = logging.getLogger(__name__)

_NON_WORD_CHARS = re.compile(r"[^a-zA-Z0-9\s]")


def tldr_node_ids(document: PRDDocument) -> tuple:
    """Stable ids for the synthetic Problem/Solution nodes."""
    doc_id = document.meta.id
    return f"{doc_id}-problem", f"{doc_id}-solution"


def _build_term_regex(term: str) -> Optional[Pattern]:
    trimmed = term.strip()
    if not trimmed:
        return None
    escaped = r"\s+".join(re.escape(part) for part in trimmed.split())
    return re.compile(rf"\b{escaped}\b", re.IGNORECASE)


def includes_term(text: str, term: str) -> bool:
    """
    Case-insensitive whole-word match of `term` in `text`.
    Terms with punctuation (e.g. "SOC-2", "TL;DR") fall back to substring match.
    """
    matcher = _build_term_regex(term)
    if matcher is None or not text:
        return False
    if _NON_WORD_CHARS.search(term):
        return term.strip().lower() in text.lower()
    return matcher.search(text) is not None


def _add_actors(document: PRDDocument, nodes: List[KnowledgeNode]) -> None:
    for actor in document.context.actors:
        nodes.append(KnowledgeNode(
            id=actor.id,
            type=NodeType.ACTOR,
            title=actor.name,
            description=actor.description,
            source_section=FocusSection.ACTORS,
            tags=[actor.role.value, actor.priority.value],
        ))


def _add_competitors(document: PRDDocument, nodes: List[KnowledgeNode]) -> None:
    for competitor in document.context.competitors:
        nodes.append(KnowledgeNode(
            id=competitor.id,
            type=NodeType.COMPETITOR,
            title=competitor.name,
            description=competitor.analysis,
            source_section=FocusSection.COMPETITORS,
            tags=["selected"] if competitor.selected else None,
        ))


def _add_terms(document: PRDDocument, nodes: List[KnowledgeNode]) -> None:
    for term in document.context.glossary:
        nodes.append(KnowledgeNode(
            id=term.id,
            type=NodeType.TERM,
            title=term.term,
            description=term.definition,
            source_section=FocusSection.GLOSSARY,
        ))


def _add_goals(
    document: PRDDocument,
    nodes: List[KnowledgeNode],
    edges: List[KnowledgeEdge],
) -> None:
    for goal in document.sections.goals:
        nodes.append(KnowledgeNode(
            id=goal.id,
            type=NodeType.GOAL,
            title=goal.title,
            description=goal.description,
            source_section=FocusSection.GOALS,
            tags=[goal.priority.value],
        ))

        for metric in goal.metrics:
            target = f"Target: {metric.target}"
            if metric.baseline:
                target += f" (baseline {metric.baseline})"
            nodes.append(KnowledgeNode(
                id=metric.id,
                type=NodeType.METRIC,
                title=metric.description,
                description=target,
                source_section=FocusSection.GOALS,
                tags=[metric.type.value],
            ))
            edges.append(KnowledgeEdge(
                from_id=goal.id, to_id=metric.id, type=EdgeType.SUCCESS_METRIC
            ))


def _add_requirements(
    document: PRDDocument,
    nodes: List[KnowledgeNode],
    edges: List[KnowledgeEdge],
) -> None:
    for requirement in document.sections.requirements:
        nodes.append(KnowledgeNode(
            id=requirement.id,
            type=NodeType.REQUIREMENT,
            title=requirement.title,
            description=requirement.description,
            source_section=FocusSection.REQUIREMENTS,
            tags=[
                requirement.priority.value,
                requirement.type.value,
                requirement.status.value,
            ],
        ))

        if requirement.primary_actor_id:
            edges.append(KnowledgeEdge(
                from_id=requirement.id,
                to_id=requirement.primary_actor_id,
                type=EdgeType.PRIMARY_ACTOR,
            ))

        for actor_id in requirement.secondary_actor_ids:
            edges.append(KnowledgeEdge(
                from_id=requirement.id, to_id=actor_id, type=EdgeType.SECONDARY_ACTOR
            ))

        for goal_id in requirement.related_goal_ids:
            edges.append(KnowledgeEdge(
                from_id=requirement.id, to_id=goal_id, type=EdgeType.RELATED_GOAL
            ))


def _add_milestones(
    document: PRDDocument,
    nodes: List[KnowledgeNode],
    edges: List[KnowledgeEdge],
) -> None:
    for milestone in document.sections.milestones:
        nodes.append(KnowledgeNode(
            id=milestone.id,
            type=NodeType.MILESTONE,
            title=milestone.title,
            description="\n".join(milestone.exit_criteria),
            source_section=FocusSection.MILESTONES,
        ))

        for requirement_id in milestone.included_requirement_ids:
            edges.append(KnowledgeEdge(
                from_id=milestone.id,
                to_id=requirement_id,
                type=EdgeType.INCLUDES_REQUIREMENT,
            ))


def _add_background(document: PRDDocument, nodes: List[KnowledgeNode]) -> None:
    for block in document.sections.background.blocks:
        nodes.append(KnowledgeNode(
            id=block.id,
            type=NodeType.NARRATIVE,
            title=block.title,
            description=block.content,
            source_section=FocusSection.BACKGROUND,
            tags=[block.type.value],
        ))


def _add_tldr(document: PRDDocument, nodes: List[KnowledgeNode]) -> None:
    problem_id, solution_id = tldr_node_ids(document)
    tldr = document.sections.tldr
    nodes.append(KnowledgeNode(
        id=problem_id,
        type=NodeType.TLDR,
        title="Problem",
        description=tldr.problem,
        source_section=FocusSection.TLDR,
    ))
    nodes.append(KnowledgeNode(
        id=solution_id,
        type=NodeType.TLDR,
        title="Solution",
        description=tldr.solution,
        source_section=FocusSection.TLDR,
    ))


def _add_term_usage_edges(document: PRDDocument, edges: List[KnowledgeEdge]) -> None:
    for term in document.context.glossary:
        for requirement in document.sections.requirements:
            if (includes_term(requirement.title, term.term)
                    or includes_term(requirement.description, term.term)):
                edges.append(KnowledgeEdge(
                    from_id=term.id, to_id=requirement.id, type=EdgeType.TERM_USAGE
                ))
        for goal in document.sections.goals:
            if (includes_term(goal.title, term.term)
                    or includes_term(goal.description, term.term)):
                edges.append(KnowledgeEdge(
                    from_id=term.id, to_id=goal.id, type=EdgeType.TERM_USAGE
                ))


def build_knowledge_graph(document: PRDDocument) -> KnowledgeGraph:
    """Project the document into a fresh knowledge graph."""
    nodes: List[KnowledgeNode] = []
    edges: List[KnowledgeEdge] = []

    _add_actors(document, nodes)
    _add_competitors(document, nodes)
    _add_terms(document, nodes)
    _add_goals(document, nodes, edges)
    _add_requirements(document, nodes, edges)
    _add_milestones(document, nodes, edges)
    _add_background(document, nodes)
    _add_tldr(document, nodes)
    _add_term_usage_edges(document, edges)

    logger.debug(
        "Built knowledge graph for %s: %d nodes, %d edges",
        document.meta.id, len(nodes), len(edges),
    )
    return KnowledgeGraph(nodes=nodes, edges=edges)
