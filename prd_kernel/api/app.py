"""
PRD Kernel API: FastAPI endpoints.

Exposes the kernel to the editor UI and the chat collaborator for:
- Document inspection and discovery mode
- Knowledge graph and context pack construction
- Applying assistant change batches
- Focus labels and requirement rule checks
"""

from typing import Any, List, Optional

from fastapi import Body, FastAPI, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from prd_kernel.changes.applier import ChangeApplier
from prd_kernel.core.config import Settings, get_settings
from prd_kernel.core.logging import configure_logging
from prd_kernel.document.store import DocumentStore
from prd_kernel.knowledge.context import build_context_pack
from prd_kernel.knowledge.focus import get_focus_meta
from prd_kernel.knowledge.graph import build_knowledge_graph
from prd_kernel.models.document import DiscoveryMode
from prd_kernel.models.knowledge import FocusContext
from prd_kernel.models.policy import ActorPolicy, TermPolicy
from prd_kernel.policy.tables import ACTOR_POLICY_DEFAULT, TERM_POLICY_DEFAULT
from prd_kernel.rules.requirements import validate_requirement_rules


# --- Request/Response Models ---

class DiscoveryModeRequest(BaseModel):
    mode: DiscoveryMode


class FocusMetaRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    node_ids: List[str] = Field(default=[], alias="nodeIds")


# --- Application Factory ---

def create_app(
    store: Optional[DocumentStore] = None,
    settings: Optional[Settings] = None,
    actor_policy: ActorPolicy = ACTOR_POLICY_DEFAULT,
    term_policy: TermPolicy = TERM_POLICY_DEFAULT,
) -> FastAPI:
    """
    Create and configure the FastAPI application for one editing session.

    The policy tables are both shown to the assistant in context packs and
    enforced by the Change Applier.
    """

    settings = settings or get_settings()
    configure_logging(settings.resolved_log_level())

    app = FastAPI(
        title="PRD Kernel API",
        description="Knowledge graph and change application for PRD documents",
        version="0.1.0",
    )

    doc_store = store or DocumentStore()
    applier = ChangeApplier(doc_store, actor_policy=actor_policy, term_policy=term_policy)
    limits = settings.context_limits()

    app.state.store = doc_store
    app.state.applier = applier
    app.state.settings = settings

    # === DOCUMENT ===

    @app.get("/document")
    def get_document():
        """Current document snapshot."""
        return doc_store.snapshot()

    @app.put("/document/discovery-mode")
    def set_discovery_mode(req: DiscoveryModeRequest):
        """Allow or forbid assistant proposals that introduce new entities."""
        doc_store.set_discovery_mode(req.mode)
        return {"discoveryMode": doc_store.document.meta.discovery_mode.value}

    # === KNOWLEDGE ===

    @app.get("/graph")
    def get_graph():
        """Full knowledge graph, rebuilt from the current document."""
        graph = build_knowledge_graph(doc_store.document)
        return graph.model_dump(mode="json", by_alias=True)

    @app.post("/context")
    def get_context_pack(focus: Optional[FocusContext] = Body(default=None)):
        """Bounded context pack for the assistant."""
        pack = build_context_pack(
            doc_store.document,
            focus,
            limits,
            actor_policy=applier.actor_policy,
            term_policy=applier.term_policy,
        )
        return pack.model_dump(mode="json", by_alias=True)

    @app.post("/focus")
    def get_focus(req: FocusMetaRequest):
        """Short label for a focused set of entities, or null."""
        meta = get_focus_meta(doc_store.document, req.node_ids)
        return meta.model_dump(mode="json") if meta else None

    # === CHANGES ===

    @app.post("/changes/apply")
    def apply_changes(payload: Any = Body(...)):
        """
        Apply an assistant change batch. Always 200: structural and
        per-change rejections are reported in `errors`.
        """
        result = applier.apply(payload)
        return result.model_dump(mode="json", by_alias=True)

    # === RULES ===

    @app.get("/requirements/{requirement_id}/rules")
    def check_requirement_rules(requirement_id: str):
        requirement = doc_store.get_requirement(requirement_id)
        if requirement is None:
            raise HTTPException(404, "Requirement not found")
        return validate_requirement_rules(requirement).model_dump(mode="json")

    return app
