"""Tests for the Context Selector, context packs and focus labels."""

from prd_kernel.document.store import DocumentStore
from prd_kernel.knowledge.context import build_context_pack, select_context_graph
from prd_kernel.knowledge.focus import get_focus_meta
from prd_kernel.knowledge.graph import build_knowledge_graph, tldr_node_ids
from prd_kernel.models.document import DiscoveryMode, NarrativeBlockType
from prd_kernel.models.knowledge import (
    ContextLimits,
    FocusContext,
    FocusKind,
    FocusSection,
    NodeType,
)
from prd_kernel.models.policy import ActorPolicy, TermPolicy
from prd_kernel.policy.tables import ACTOR_POLICY_DEFAULT, TERM_POLICY_DEFAULT


def _make_large_store() -> DocumentStore:
    """Document with more entities per section than the general-mode quotas."""
    store = DocumentStore()
    for i in range(10):
        store.add_actor(f"Actor {i}", node_id=f"a{i}")
    for i in range(6):
        store.add_competitor(f"Competitor {i}", node_id=f"c{i}")
    for i in range(8):
        store.add_term(f"Keyword{i}", "Definition text.", node_id=f"t{i}")
    for i in range(8):
        store.add_goal(f"Goal {i}", node_id=f"g{i}")
    for i in range(12):
        store.add_requirement(f"Requirement {i}", node_id=f"r{i}")
    for i in range(8):
        store.add_milestone(f"Milestone {i}", node_id=f"ms{i}")
    for i in range(3):
        store.add_narrative_block(NarrativeBlockType.TEXT, f"Block {i}", node_id=f"b{i}")
    return store


def _ids(graph) -> set:
    return {n.id for n in graph.nodes}


class TestGeneralMode:
    def setup_method(self):
        self.store = _make_large_store()
        self.limits = ContextLimits()

    def test_quotas_without_edges(self):
        graph = build_knowledge_graph(self.store.document)
        selected = select_context_graph(graph, FocusContext(section=FocusSection.GENERAL))
        quota_total = sum(limit for _, limit in self.limits.general_quotas())
        assert len(selected.nodes) == quota_total + 2

    def test_first_n_in_document_order(self):
        graph = build_knowledge_graph(self.store.document)
        selected = _ids(select_context_graph(graph, FocusContext()))
        assert {f"a{i}" for i in range(5)} <= selected
        assert "a5" not in selected
        assert {f"r{i}" for i in range(8)} <= selected
        assert "r8" not in selected
        assert not any(node_id.startswith("b") for node_id in selected)

    def test_closure_pulls_in_linked_neighbour(self):
        self.store.update_requirement("r0", {"primary_actor_id": "a9"})
        graph = build_knowledge_graph(self.store.document)
        selected = select_context_graph(graph, FocusContext())
        assert "a9" in _ids(selected)
        assert [(e.from_id, e.to_id) for e in selected.edges] == [("r0", "a9")]

    def test_bounded_by_quotas_plus_one_hop(self):
        self.store.update_requirement("r0", {"primary_actor_id": "a9", "related_goal_ids": ["g7"]})
        self.store.update_milestone("ms7", {"included_requirement_ids": ["r0", "r11"]})
        graph = build_knowledge_graph(self.store.document)
        selected = select_context_graph(graph, FocusContext())
        quota_total = sum(limit for _, limit in self.limits.general_quotas())
        # a9, g7 and ms7 are one hop from r0; r11 is two hops away.
        assert len(selected.nodes) == quota_total + 2 + 3
        assert "r11" not in _ids(selected)

    def test_custom_limits(self):
        graph = build_knowledge_graph(self.store.document)
        limits = ContextLimits(actors=1, competitors=0, glossary=0, goals=0, milestones=0, requirements=0)
        selected = select_context_graph(graph, FocusContext(), limits)
        assert _ids(selected) == {"a0", *tldr_node_ids(self.store.document)}


class TestNamedSectionAndNodeIds:
    def setup_method(self):
        self.store = DocumentStore()
        for i in range(30):
            self.store.add_requirement(f"Requirement {i}", node_id=f"r{i}")
        self.store.add_actor("Approver", node_id="a1")
        self.store.add_milestone("Launch", included_requirement_ids=["r0"], node_id="ms1")
        self.store.update_requirement("r0", {"primary_actor_id": "a1"})
        self.graph = build_knowledge_graph(self.store.document)

    def test_named_section_capped(self):
        selected = select_context_graph(self.graph, FocusContext(section=FocusSection.REQUIREMENTS))
        requirements = [n for n in selected.nodes if n.type == NodeType.REQUIREMENT]
        assert len(requirements) == 25
        assert requirements[0].id == "r0"
        assert "r25" not in _ids(selected)

    def test_named_section_includes_neighbours(self):
        selected = select_context_graph(self.graph, FocusContext(section=FocusSection.REQUIREMENTS))
        assert {"a1", "ms1"} <= _ids(selected)

    def test_explicit_node_ids_drop_unknown(self):
        focus = FocusContext(section=FocusSection.GOALS, node_ids=["r5", "does-not-exist"])
        selected = select_context_graph(self.graph, focus)
        assert _ids(selected) == {"r5", *tldr_node_ids(self.store.document)}

    def test_explicit_ids_take_precedence_over_section(self):
        focus = FocusContext(section=FocusSection.REQUIREMENTS, node_ids=["a1"])
        selected = _ids(select_context_graph(self.graph, focus))
        assert "r1" not in selected
        assert {"a1", "r0"} <= selected

    def test_closure_is_single_hop(self):
        selected = select_context_graph(self.graph, FocusContext(node_ids=["ms1"]))
        assert _ids(selected) == {"ms1", "r0", *tldr_node_ids(self.store.document)}
        assert [(e.from_id, e.to_id) for e in selected.edges] == [("ms1", "r0")]

    def test_every_returned_edge_has_both_endpoints(self):
        for focus in (FocusContext(), FocusContext(node_ids=["ms1"]),
                      FocusContext(section=FocusSection.ACTORS)):
            selected = select_context_graph(self.graph, focus)
            ids = _ids(selected)
            assert all(e.from_id in ids and e.to_id in ids for e in selected.edges)

    def test_tldr_always_included(self):
        selected = select_context_graph(self.graph, FocusContext(section=FocusSection.COMPETITORS))
        assert _ids(selected) == set(tldr_node_ids(self.store.document))


class TestContextPack:
    def setup_method(self):
        self.store = DocumentStore()
        self.store.update_title("Checkout PRD")
        self.store.set_discovery_mode(DiscoveryMode.OFF)
        self.store.add_goal("Faster checkout", node_id="g1")

    def test_pack_contents(self):
        pack = build_context_pack(self.store.document)
        assert pack.meta.title == "Checkout PRD"
        assert pack.meta.discovery_mode == DiscoveryMode.OFF
        assert pack.meta.version == 1
        assert pack.focus.section == FocusSection.GENERAL
        assert pack.policies.actor_policy == ACTOR_POLICY_DEFAULT
        assert pack.policies.term_policy == TERM_POLICY_DEFAULT
        assert "g1" in {n.id for n in pack.nodes}

    def test_pack_carries_supplied_policies(self):
        actor_policy = ActorPolicy(blocklist=["Operator"])
        term_policy = TermPolicy(blocklist=["KPI"])
        pack = build_context_pack(
            self.store.document, actor_policy=actor_policy, term_policy=term_policy
        )
        assert pack.policies.actor_policy == actor_policy
        assert pack.policies.term_policy == term_policy

    def test_pack_echoes_focus(self):
        focus = FocusContext(node_ids=["g1"])
        pack = build_context_pack(self.store.document, focus)
        assert pack.focus == focus

    def test_pack_json_shape(self):
        dumped = build_context_pack(self.store.document).model_dump(mode="json", by_alias=True)
        assert set(dumped) == {"meta", "focus", "policies", "nodes", "edges"}
        assert dumped["meta"]["discoveryMode"] == "off"
        assert "actorPolicy" in dumped["policies"]
        assert "User" in dumped["policies"]["actorPolicy"]["blocklist"]
        assert dumped["nodes"][0]["sourceSection"] in {"goals", "tldr"}


class TestFocusMeta:
    def setup_method(self):
        self.store = DocumentStore()
        self.store.add_actor("Approver", node_id="a1")
        self.store.add_goal("Grow ARR", node_id="g1")
        self.store.add_goal("Retain", node_id="g2")

    def test_empty_or_unknown(self):
        assert get_focus_meta(self.store.document, []) is None
        assert get_focus_meta(self.store.document, ["nope"]) is None

    def test_single(self):
        meta = get_focus_meta(self.store.document, ["g1"])
        assert meta.kind == FocusKind.GOAL
        assert meta.label == "Goal: Grow ARR"
        assert meta.count == 1

    def test_same_kind(self):
        meta = get_focus_meta(self.store.document, ["g1", "g2", "nope"])
        assert meta.kind == FocusKind.GOAL
        assert meta.label == "Goal: Grow ARR +1"
        assert meta.count == 2

    def test_mixed(self):
        meta = get_focus_meta(self.store.document, ["a1", "g1"])
        assert meta.kind == FocusKind.MIXED
        assert meta.label == "Actor: Approver +1"
