"""
FastAPI Application Entry Point.

Investigation Network API: one in-process session holding the live graph,
its undo history and the import pipeline.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncGenerator

from fastapi import Body, Depends, FastAPI, File, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from app.config import Settings, get_settings
from network_engine.ingestion.extraction import (
    ExtractionClient,
    ExtractionClientError,
    extraction_to_imported,
)
from network_engine.ingestion.importer import NetworkImporter
from network_engine.ingestion.schemas import ImportReport, ValidationResult
from network_engine.ingestion.validator import SchemaError
from network_engine.knowledge.graph_store import (
    DuplicateIdError,
    GraphStore,
    GraphStoreError,
    NotFoundError,
)
from network_engine.knowledge.graph_views import entity_neighborhood, network_stats
from network_engine.knowledge.history import HistoryTracker, RestoreError
from network_engine.knowledge.schemas import (
    Entity,
    EntityType,
    ImportMode,
    InvestigationContext,
    Relationship,
    RelationshipStatus,
    SourceType,
)
from network_engine.utils.ids import generate_id
from network_engine.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)
settings = get_settings()

VERSION = "0.1.0"


# ============================================================================
# Session
# ============================================================================


class Session:
    """The live graph plus everything that observes or feeds it."""

    def __init__(self, config: Settings) -> None:
        self.settings = config
        self.store = GraphStore()
        self.history = HistoryTracker(
            self.store,
            limit=config.history_limit,
            track_modifications=config.track_modifications,
        )
        self.importer = NetworkImporter(self.store)
        self.extraction_client = ExtractionClient(
            config.ai_backend_url,
            token=config.ai_backend_token or None,
            model=config.ai_model,
            timeout=config.ai_request_timeout,
            max_retries=config.ai_max_retries,
        )


def get_session(request: Request) -> Session:
    """Dependency returning the session created at startup."""
    return request.app.state.session


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan events."""
    # Startup
    setup_logging(settings.log_level)
    logger.info("Starting Investigation Network API...")
    logger.info(f"History limit: {settings.history_limit}")
    logger.info(f"AI backend: {settings.ai_backend_url}")
    app.state.session = Session(settings)
    yield
    # Shutdown
    app.state.session.history.detach()
    logger.info("Shutting down Investigation Network API...")


app = FastAPI(
    title="Investigation Network Engine",
    description="Entity/relationship graph with JSON import, merge resolution and undo history",
    version=VERSION,
    lifespan=lifespan,
)

# CORS middleware for frontend integration
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# Error Mapping
# ============================================================================


@app.exception_handler(SchemaError)
async def schema_error_handler(request: Request, exc: SchemaError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"detail": str(exc), "errors": exc.errors, "warnings": exc.warnings},
    )


@app.exception_handler(GraphStoreError)
async def graph_store_error_handler(request: Request, exc: GraphStoreError) -> JSONResponse:
    if isinstance(exc, DuplicateIdError):
        status_code = 409
    elif isinstance(exc, NotFoundError):
        status_code = 404
    else:
        status_code = 400
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


@app.exception_handler(RestoreError)
async def restore_error_handler(request: Request, exc: RestoreError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(ExtractionClientError)
async def extraction_error_handler(request: Request, exc: ExtractionClientError) -> JSONResponse:
    logger.error(f"Extraction backend failed: {exc}")
    return JSONResponse(status_code=502, content={"detail": str(exc)})


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={"detail": f"Invalid value: {exc.error_count()} problem(s)"},
    )


# ============================================================================
# Request Models
# ============================================================================


class NetworkPatch(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str | None = None
    description: str | None = None
    investigation_context: InvestigationContext | None = Field(
        default=None,
        alias="investigationContext",
    )


class EntityCreate(BaseModel):
    """New entity; the id is generated when omitted."""

    id: str | None = Field(default=None, min_length=1)
    name: str = Field(..., min_length=1)
    type: EntityType = EntityType.UNKNOWN
    description: str | None = None
    importance: int | float | None = None
    source_type: SourceType = SourceType.MANUAL
    source_snippet: str | None = None
    x: float | None = None
    y: float | None = None


class EntityUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    type: EntityType | None = None
    description: str | None = None
    importance: int | float | None = None
    source_snippet: str | None = None
    x: float | None = None
    y: float | None = None


class RelationshipCreate(BaseModel):
    """New relationship; the id is generated when omitted."""

    model_config = ConfigDict(populate_by_name=True)

    id: str | None = Field(default=None, min_length=1)
    source: str = Field(..., min_length=1)
    target: str = Field(..., min_length=1)
    type: str | None = None
    label: str | None = None
    status: RelationshipStatus | None = None
    strength: int | float | None = None
    start_date: str | None = Field(default=None, alias="startDate")
    end_date: str | None = Field(default=None, alias="endDate")


class RelationshipUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    source: str | None = Field(default=None, min_length=1)
    target: str | None = Field(default=None, min_length=1)
    type: str | None = None
    label: str | None = None
    status: RelationshipStatus | None = None
    strength: int | float | None = None
    start_date: str | None = Field(default=None, alias="startDate")
    end_date: str | None = Field(default=None, alias="endDate")


class ExtractRequest(BaseModel):
    text: str = Field(..., min_length=1)
    model: str | None = None


class DiscoverRequest(BaseModel):
    query: str = Field(..., min_length=1)
    model: str | None = None
    max_sources: int = Field(default=3, ge=1, le=10)


def _history_summary(entry: Any) -> dict[str, Any]:
    return entry.model_dump(mode="json", exclude={"snapshot"})


# ============================================================================
# Service Endpoints
# ============================================================================


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy", "version": VERSION}


@app.get("/config")
async def get_config(session: Session = Depends(get_session)) -> dict[str, Any]:
    """Get current configuration (non-sensitive values only)."""
    config = session.settings
    return {
        "history_limit": config.history_limit,
        "track_modifications": config.track_modifications,
        "default_import_mode": config.default_import_mode.value,
        "max_import_bytes": config.max_import_bytes,
        "ai_backend_url": config.ai_backend_url,
        "ai_model": config.ai_model,
    }


# ============================================================================
# Network
# ============================================================================


@app.get("/network")
async def get_network(session: Session = Depends(get_session)) -> dict[str, Any]:
    """Current network with counts."""
    store = session.store
    return {
        "network": store.export(),
        "entity_count": store.entity_count(),
        "relationship_count": store.relationship_count(),
        "orphaned_relationships": len(store.orphaned_relationships()),
    }


@app.get("/network/export")
async def export_network(session: Session = Depends(get_session)) -> dict[str, Any]:
    """Network in the import/export JSON shape."""
    return session.store.export()


@app.get("/network/stats")
async def get_network_stats(
    top: int = 5,
    session: Session = Depends(get_session),
) -> dict[str, Any]:
    """Derived statistics: type histogram, components, hubs, orphans."""
    return network_stats(session.store.network, top=top).model_dump(mode="json")


@app.get("/network/orphans")
async def get_orphaned_relationships(
    session: Session = Depends(get_session),
) -> list[Relationship]:
    """Relationships whose source or target entity no longer exists."""
    return session.store.orphaned_relationships()


@app.patch("/network")
async def patch_network(
    patch: NetworkPatch,
    session: Session = Depends(get_session),
) -> dict[str, Any]:
    """Set title, description and/or investigation context."""
    store = session.store
    fields = patch.model_fields_set

    if "title" in fields and patch.title is not None:
        store.set_title(patch.title)
    if "description" in fields and patch.description is not None:
        store.set_description(patch.description)
    if "investigation_context" in fields:
        store.set_investigation_context(patch.investigation_context)

    return store.export()


@app.delete("/network")
async def clear_network(session: Session = Depends(get_session)) -> dict[str, str]:
    """Reset to an empty, untitled network."""
    session.store.clear_network()
    return {"status": "cleared"}


# ============================================================================
# Import
# ============================================================================


@app.post("/import/validate")
async def validate_import(
    data: Any = Body(...),
    session: Session = Depends(get_session),
) -> ValidationResult:
    """Validate a payload without importing it."""
    return session.importer.validate(data)


@app.post("/import")
async def import_network(
    data: Any = Body(...),
    mode: ImportMode | None = None,
    session: Session = Depends(get_session),
) -> ImportReport:
    """
    Import a JSON payload in merge or replace mode.

    Rejected payloads return 400 with every validation error.
    """
    mode = mode or session.settings.default_import_mode
    report = session.importer.import_data(data, mode)
    logger.info(f"Import ({mode.value}): {report.summary}")
    return report


@app.post("/import/file")
async def import_file(
    file: UploadFile = File(...),
    mode: ImportMode | None = None,
    session: Session = Depends(get_session),
) -> ImportReport:
    """Import an uploaded .json file."""
    if not file.filename:
        raise HTTPException(status_code=400, detail="No filename provided")

    if not file.filename.lower().endswith(".json"):
        raise HTTPException(status_code=400, detail="Only .json files are supported")

    content = await file.read()
    limit = session.settings.max_import_bytes
    if len(content) > limit:
        raise HTTPException(
            status_code=413,
            detail=f"File too large: {len(content)} bytes (limit {limit})",
        )

    logger.info(f"Received import file: {file.filename} ({len(content)} bytes)")
    mode = mode or session.settings.default_import_mode
    return session.importer.import_text(content, mode)


# ============================================================================
# Entities
# ============================================================================


@app.get("/entities")
async def list_entities(
    name: str | None = None,
    fuzzy: bool = False,
    session: Session = Depends(get_session),
) -> list[Entity]:
    """List entities, optionally filtered by name."""
    if name:
        return session.store.find_entities_by_name(name, fuzzy=fuzzy)
    return session.store.entities


@app.post("/entities", status_code=201)
async def create_entity(
    payload: EntityCreate,
    session: Session = Depends(get_session),
) -> Entity:
    """Add an entity (409 on duplicate id)."""
    data = payload.model_dump()
    data["id"] = payload.id or generate_id()
    data["created_at"] = datetime.now(timezone.utc)
    return session.store.add_entity(Entity.model_validate(data))


@app.get("/entities/{entity_id}")
async def get_entity(entity_id: str, session: Session = Depends(get_session)) -> Entity:
    entity = session.store.get_entity(entity_id)
    if entity is None:
        raise NotFoundError("entity", entity_id)
    return entity


@app.patch("/entities/{entity_id}")
async def update_entity(
    entity_id: str,
    patch: EntityUpdate,
    session: Session = Depends(get_session),
) -> Entity:
    """Apply a partial update to an entity."""
    return session.store.update_entity(entity_id, **patch.model_dump(exclude_unset=True))


@app.delete("/entities/{entity_id}")
async def delete_entity(entity_id: str, session: Session = Depends(get_session)) -> dict[str, Any]:
    """Delete an entity. Its relationships stay and become orphaned."""
    removed = session.store.delete_entity(entity_id)
    orphaned = [
        rel.id
        for rel in session.store.orphaned_relationships()
        if entity_id in (rel.source, rel.target)
    ]
    return {"deleted": removed.id, "orphaned_relationships": orphaned}


@app.get("/entities/{entity_id}/connections")
async def get_connections(
    entity_id: str,
    direction: str = "both",
    session: Session = Depends(get_session),
) -> list[dict[str, Any]]:
    """Relationships touching an entity, with the entity at the other end."""
    if not session.store.has_entity(entity_id):
        raise NotFoundError("entity", entity_id)
    if direction not in ("outgoing", "incoming", "both"):
        raise HTTPException(status_code=400, detail=f"Invalid direction: {direction}")

    return [
        {
            "relationship": conn.relationship.model_dump(mode="json", by_alias=True, exclude_none=True),
            "direction": conn.direction,
            "other_id": conn.other_id,
            "other": conn.other.model_dump(mode="json", exclude_none=True) if conn.other else None,
            "orphaned": conn.is_orphaned,
        }
        for conn in session.store.connections(entity_id, direction)
    ]


@app.get("/entities/{entity_id}/neighborhood")
async def get_neighborhood(
    entity_id: str,
    hops: int = 2,
    max_nodes: int = 50,
    session: Session = Depends(get_session),
) -> dict[str, Any]:
    """Sub-network within ``hops`` of an entity."""
    if not session.store.has_entity(entity_id):
        raise NotFoundError("entity", entity_id)
    sub = entity_neighborhood(session.store.network, entity_id, hops=hops, max_nodes=max_nodes)
    return sub.to_export()


# ============================================================================
# Relationships
# ============================================================================


@app.get("/relationships")
async def list_relationships(session: Session = Depends(get_session)) -> list[Relationship]:
    return session.store.relationships


@app.post("/relationships", status_code=201)
async def create_relationship(
    payload: RelationshipCreate,
    session: Session = Depends(get_session),
) -> Relationship:
    """Add a relationship (409 on duplicate id; unknown endpoints tolerated)."""
    data = payload.model_dump()
    data["id"] = payload.id or generate_id()
    return session.store.add_relationship(Relationship.model_validate(data))


@app.get("/relationships/{relationship_id}")
async def get_relationship(
    relationship_id: str,
    session: Session = Depends(get_session),
) -> Relationship:
    relationship = session.store.get_relationship(relationship_id)
    if relationship is None:
        raise NotFoundError("relationship", relationship_id)
    return relationship


@app.patch("/relationships/{relationship_id}")
async def update_relationship(
    relationship_id: str,
    patch: RelationshipUpdate,
    session: Session = Depends(get_session),
) -> Relationship:
    """Apply a partial update to a relationship."""
    return session.store.update_relationship(
        relationship_id,
        **patch.model_dump(exclude_unset=True),
    )


@app.delete("/relationships/{relationship_id}")
async def delete_relationship(
    relationship_id: str,
    session: Session = Depends(get_session),
) -> dict[str, str]:
    removed = session.store.delete_relationship(relationship_id)
    return {"deleted": removed.id}


# ============================================================================
# History
# ============================================================================


@app.get("/history")
async def get_history(session: Session = Depends(get_session)) -> dict[str, Any]:
    """History entries, newest first (snapshots omitted)."""
    history = session.history
    return {
        "limit": history.limit,
        "count": len(history),
        "entries": [_history_summary(entry) for entry in history.entries],
    }


@app.post("/history/{entry_id}/restore")
async def restore_history(
    entry_id: str,
    session: Session = Depends(get_session),
) -> dict[str, Any]:
    """Restore the entities and relationships recorded in a history entry."""
    entry = session.history.restore(entry_id)
    return {
        "restored": _history_summary(entry),
        "entity_count": session.store.entity_count(),
        "relationship_count": session.store.relationship_count(),
    }


@app.delete("/history")
async def clear_history(session: Session = Depends(get_session)) -> dict[str, str]:
    session.history.clear()
    return {"status": "cleared"}


# ============================================================================
# AI Extraction
# ============================================================================


@app.post("/extract")
async def extract_entities(
    request: ExtractRequest,
    session: Session = Depends(get_session),
) -> ImportReport:
    """
    Extract entities from document text and merge them into the network.

    Backend failures return 502.
    """
    output = await session.extraction_client.extract(request.text, request.model)
    batch = extraction_to_imported(
        output,
        source_type=SourceType.DOCUMENT,
        current=session.store.network,
    )
    report = session.importer.apply(
        batch.imported,
        ImportMode.MERGE,
        dropped_relationships=batch.dropped_relationships,
    )
    logger.info(f"Extraction merged: {report.summary}")
    return report


@app.post("/discover")
async def discover_entities(
    request: DiscoverRequest,
    session: Session = Depends(get_session),
) -> dict[str, Any]:
    """Research a query on the web and merge the findings into the network."""
    output = await session.extraction_client.discover(
        request.query,
        request.model,
        max_sources=request.max_sources,
    )
    batch = extraction_to_imported(
        output,
        source_type=SourceType.WEB,
        current=session.store.network,
    )
    report = session.importer.apply(
        batch.imported,
        ImportMode.MERGE,
        dropped_relationships=batch.dropped_relationships,
    )
    logger.info(f"Discovery merged: {report.summary}")
    return {
        "report": report.model_dump(mode="json"),
        "sources": output.sources,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=True,
    )
