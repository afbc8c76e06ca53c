"""
Context Selector: bounded, edge-closed subgraph for grounding an assistant.

Behavioral Contract:
- Explicit node ids win; unknown ids are dropped silently
- General mode takes the first N nodes of each section (per-section quotas)
- A named section takes its first `max_focus_nodes` nodes
- TL;DR nodes are always included
- One closure pass adds the direct neighbours of every seed node
- Returned edges always have both endpoints in the returned node set
"""

import logging
from typing import Dict, List, Optional, Set

from prd_kernel.models.document import PRDDocument
from prd_kernel.models.knowledge import (
    ContextLimits,
    ContextPack,
    ContextPackMeta,
    ContextPolicies,
    FocusContext,
    FocusSection,
    KnowledgeGraph,
    KnowledgeNode,
    NodeType,
)
from prd_kernel.knowledge.graph import build_knowledge_graph
from prd_kernel.models.policy import ActorPolicy, TermPolicy
from prd_kernel.policy.tables import ACTOR_POLICY_DEFAULT, TERM_POLICY_DEFAULT

logger = logging.getLogger(__name__)


def _seed_ids(
    graph: KnowledgeGraph,
    focus: FocusContext,
    limits: ContextLimits,
) -> Set[str]:
    node_ids = {node.id for node in graph.nodes}
    selected: Set[str] = set()

    if focus.node_ids:
        selected.update(i for i in focus.node_ids if i in node_ids)
    elif focus.section == FocusSection.GENERAL:
        by_section: Dict[FocusSection, List[KnowledgeNode]] = {}
        for node in graph.nodes:
            by_section.setdefault(node.source_section, []).append(node)
        for section, limit in limits.general_quotas():
            for node in by_section.get(section, [])[:limit]:
                selected.add(node.id)
    else:
        section_nodes = [n for n in graph.nodes if n.source_section == focus.section]
        for node in section_nodes[:limits.max_focus_nodes]:
            selected.add(node.id)

    for node in graph.nodes:
        if node.type == NodeType.TLDR:
            selected.add(node.id)

    return selected


def select_context_graph(
    graph: KnowledgeGraph,
    focus: FocusContext,
    limits: Optional[ContextLimits] = None,
) -> KnowledgeGraph:
    """Select the subgraph of `graph` relevant to `focus`."""
    limits = limits or ContextLimits()
    seeds = _seed_ids(graph, focus, limits)

    # Closure is computed from the frozen seed set: exactly one hop.
    selected = set(seeds)
    for edge in graph.edges:
        if edge.from_id in seeds or edge.to_id in seeds:
            selected.add(edge.from_id)
            selected.add(edge.to_id)

    nodes = [n for n in graph.nodes if n.id in selected]
    edges = [
        e for e in graph.edges
        if e.from_id in selected and e.to_id in selected
    ]

    logger.debug(
        "Selected context: %d/%d nodes, %d/%d edges (seeds=%d)",
        len(nodes), len(graph.nodes), len(edges), len(graph.edges), len(seeds),
    )
    return KnowledgeGraph(nodes=nodes, edges=edges)


def build_context_pack(
    document: PRDDocument,
    focus: Optional[FocusContext] = None,
    limits: Optional[ContextLimits] = None,
    actor_policy: ActorPolicy = ACTOR_POLICY_DEFAULT,
    term_policy: TermPolicy = TERM_POLICY_DEFAULT,
) -> ContextPack:
    """
    Build the policy-annotated context pack handed to the assistant.
    Pass the same policy tables the Change Applier enforces.
    """
    resolved_focus = focus or FocusContext(section=FocusSection.GENERAL)
    graph = build_knowledge_graph(document)
    context_graph = select_context_graph(graph, resolved_focus, limits)
    meta = document.meta

    return ContextPack(
        meta=ContextPackMeta(
            title=meta.title,
            status=meta.status,
            version=meta.version,
            discovery_mode=meta.discovery_mode,
        ),
        focus=resolved_focus,
        policies=ContextPolicies(
            actor_policy=actor_policy,
            term_policy=term_policy,
        ),
        nodes=context_graph.nodes,
        edges=context_graph.edges,
    )
