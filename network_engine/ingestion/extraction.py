"""
AI Extraction - Backend Client and Result Adapter.

The extraction/discovery backend turns text or a research query into
proposed entities and relationships. This module calls it over HTTP and
converts its answer into ImportedData, so AI results are reconciled by the
same Merge Resolver as any JSON import.
"""

from datetime import datetime, timezone
from typing import Any

import httpx
from pydantic import BaseModel, Field, ValidationError
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from network_engine.knowledge.schemas import (
    ENTITY_TYPE_VALUES,
    Entity,
    EntityType,
    ImportedData,
    Network,
    Relationship,
    SourceType,
)
from network_engine.utils.ids import generate_id
from network_engine.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_IMPORTANCE = 5


class ExtractionClientError(Exception):
    """Raised when the extraction backend cannot be reached or answers badly."""

    pass


# ============================================================================
# Backend Response Models
# ============================================================================


class ExtractedEntity(BaseModel):
    """Entity proposed by the backend."""

    id: str | None = Field(default=None, description="Backend-local id, if any")
    name: str = Field(..., min_length=1)
    type: str | None = Field(default=None)
    description: str | None = Field(default=None)
    importance: int | float | None = Field(default=None)


class ExtractedRelationship(BaseModel):
    """Relationship proposed by the backend; endpoints are backend ids or names."""

    source: str = Field(...)
    target: str = Field(...)
    type: str | None = Field(default=None)
    label: str | None = Field(default=None)


class ExtractionMetadata(BaseModel):
    """Usage details reported by the backend."""

    model: str | None = None
    tokens_used: int | None = None
    cost_estimate: float | None = None


class ExtractionOutput(BaseModel):
    """Complete extraction (or discovery) response."""

    entities: list[ExtractedEntity] = Field(default_factory=list)
    relationships: list[ExtractedRelationship] = Field(default_factory=list)
    metadata: ExtractionMetadata | None = Field(default=None)
    sources: list[dict[str, Any]] = Field(
        default_factory=list,
        description="Web sources (discovery only)",
    )


class ExtractionBatch(BaseModel):
    """Backend output converted to network records."""

    imported: ImportedData
    dropped_relationships: int = Field(
        default=0,
        ge=0,
        description="Relationships whose endpoints matched nothing",
    )


# ============================================================================
# Adapter
# ============================================================================


def extraction_to_imported(
    output: ExtractionOutput,
    source_type: SourceType = SourceType.DOCUMENT,
    current: Network | None = None,
    now: datetime | None = None,
) -> ExtractionBatch:
    """
    Convert a backend response into ImportedData.

    Every entity gets a fresh local id. Relationship endpoints are resolved
    by backend id, then by case-insensitive name within the batch, then by
    name against ``current``. Relationships that still do not resolve are
    dropped and counted.

    Args:
        output: Backend response
        source_type: Provenance stamped on every entity
        current: Live network used to resolve endpoints by name
        now: Creation timestamp (defaults to now)

    Returns:
        ExtractionBatch with the converted payload
    """
    now = now or datetime.now(timezone.utc)

    by_external_id: dict[str, str] = {}
    by_name: dict[str, str] = {}
    entities: list[Entity] = []

    for extracted in output.entities:
        local_id = generate_id()
        if extracted.id:
            by_external_id.setdefault(extracted.id, local_id)
        by_name.setdefault(extracted.name.lower(), local_id)

        entity_type = (extracted.type or "").lower()
        if entity_type not in ENTITY_TYPE_VALUES:
            entity_type = EntityType.UNKNOWN.value

        entities.append(
            Entity(
                id=local_id,
                name=extracted.name,
                type=EntityType(entity_type),
                description=extracted.description,
                importance=(
                    extracted.importance if extracted.importance is not None else DEFAULT_IMPORTANCE
                ),
                source_type=source_type,
                created_at=now,
            )
        )

    existing_by_name: dict[str, str] = {}
    if current is not None:
        for entity in current.entities:
            existing_by_name.setdefault(entity.name_key, entity.id)

    def resolve(ref: str) -> str | None:
        return (
            by_external_id.get(ref)
            or by_name.get(ref.lower())
            or existing_by_name.get(ref.lower())
        )

    relationships: list[Relationship] = []
    dropped = 0

    for extracted_rel in output.relationships:
        source = resolve(extracted_rel.source)
        target = resolve(extracted_rel.target)

        if source is None or target is None:
            dropped += 1
            logger.debug(
                f"Dropped extracted relationship {extracted_rel.source!r} -> "
                f"{extracted_rel.target!r}: unresolved endpoint"
            )
            continue

        relationships.append(
            Relationship(
                id=generate_id(),
                source=source,
                target=target,
                type=extracted_rel.type,
                label=extracted_rel.label,
            )
        )

    if dropped:
        logger.warning(f"Dropped {dropped} extracted relationship(s) with unresolved endpoints")

    return ExtractionBatch(
        imported=ImportedData(entities=entities, relationships=relationships),
        dropped_relationships=dropped,
    )


# ============================================================================
# Backend Client
# ============================================================================


def _is_retryable(exc: BaseException) -> bool:
    if isinstance(exc, httpx.TransportError):
        return True
    return isinstance(exc, httpx.HTTPStatusError) and exc.response.status_code >= 500


class ExtractionClient:
    """
    Async client for the extraction/discovery backend.

    Transport failures and 5xx answers are retried with exponential backoff.

    Usage:
        client = ExtractionClient("https://backend.example/api", token=token)
        output = await client.extract(text)
    """

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        model: str = "gpt-5",
        timeout: float = 120.0,
        max_retries: int = 3,
        retry_backoff: float = 1.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            base_url: Backend API root
            token: Optional bearer token
            model: Model name sent with each request
            timeout: Request timeout in seconds
            max_retries: Attempts per request, including the first
            retry_backoff: Backoff multiplier in seconds (0 disables waiting)
            transport: Optional httpx transport (tests)
        """
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.model = model
        self.timeout = httpx.Timeout(timeout, connect=10.0)
        self.max_retries = max(1, max_retries)
        self.retry_backoff = retry_backoff
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _post(self, path: str, body: dict[str, Any]) -> dict[str, Any]:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_retries),
            wait=wait_exponential(multiplier=self.retry_backoff, max=30),
            retry=retry_if_exception(_is_retryable),
            reraise=True,
        )

        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            ) as client:
                async for attempt in retrying:
                    with attempt:
                        response = await client.post(path, json=body, headers=self._headers())
                        response.raise_for_status()
                        return response.json()
        except httpx.HTTPStatusError as e:
            raise ExtractionClientError(
                f"Backend returned HTTP {e.response.status_code}: {_error_detail(e.response)}"
            ) from e
        except httpx.HTTPError as e:
            raise ExtractionClientError(f"Backend request failed: {e}") from e
        except ValueError as e:
            raise ExtractionClientError(f"Backend returned invalid JSON: {e}") from e

        raise ExtractionClientError("Backend request was not attempted")

    async def extract(self, text: str, model: str | None = None) -> ExtractionOutput:
        """
        Extract entities and relationships from document text.

        Raises:
            ExtractionClientError: On transport, HTTP or payload errors
        """
        logger.info(f"Requesting extraction for {len(text)} characters")
        data = await self._post("/extract", {"text": text, "model": model or self.model})
        return _parse_output(data)

    async def discover(
        self,
        query: str,
        model: str | None = None,
        max_sources: int = 3,
    ) -> ExtractionOutput:
        """
        Research a query on the web and return proposed entities.

        Raises:
            ExtractionClientError: On transport, HTTP or payload errors
        """
        logger.info(f"Requesting discovery for query: {query!r}")
        data = await self._post(
            "/discover",
            {"query": query, "model": model or self.model, "max_sources": max_sources},
        )
        return _parse_output(data)


def _error_detail(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return "Request failed"
    if isinstance(payload, dict):
        return str(payload.get("error") or payload.get("detail") or "Request failed")
    return "Request failed"


def _parse_output(data: Any) -> ExtractionOutput:
    try:
        return ExtractionOutput.model_validate(data)
    except ValidationError as e:
        raise ExtractionClientError(f"Unexpected backend response: {e.error_count()} problem(s)") from e
