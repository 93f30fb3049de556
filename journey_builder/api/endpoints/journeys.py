"""
Journey conversion endpoints.

Stateless access to trigger normalization, graph/domain mapping, node
summaries and validation status derivation.
"""

import time

from fastapi import APIRouter, Request, status

from journey_builder.core.logging import get_logger
from journey_builder.models.requests import (
    GraphRequest,
    GraphResponse,
    JourneyGraphRequest,
    LegacyMirrorRequest,
    NodeSummary,
    SummariesResponse,
    TriggerNormalizeRequest,
    TriggerNormalizeResponse,
    ValidationStatusRequest,
    ValidationStatusResponse,
)
from journey_builder.services.mapping import (
    catalog_as_dict,
    normalize_journey,
    parse_graph,
    to_domain,
    to_graph,
    to_graph_node,
)
from journey_builder.services.normalization import derive_payload, normalize, to_legacy_mirror
from journey_builder.services.summaries import summarize_trigger
from journey_builder.services.validation import ValidationSummary, can_activate, parse_validation

logger = get_logger(__name__)

router = APIRouter()


@router.get(
    "/journeys/catalog",
    summary="Node Catalog",
    description="Palette of node categories and the subtypes each one offers",
)
async def node_catalog() -> dict:
    return {"categories": catalog_as_dict()}


@router.post(
    "/journeys/triggers/normalize",
    response_model=TriggerNormalizeResponse,
    status_code=status.HTTP_200_OK,
    summary="Normalize Trigger Configuration",
    description="Convert any supported trigger shape into the canonical configuration",
)
async def normalize_trigger(request: TriggerNormalizeRequest) -> TriggerNormalizeResponse:
    """
    Normalize a trigger configuration.

    Never fails on malformed input: unknown or invalid fields are replaced
    by defaults. The response also carries the legacy mirror, the execution
    payload and a one-line summary derived from the canonical result.
    """
    config = normalize(request.config, fallback_subtype=request.fallbackSubtype)
    payload, subtype = derive_payload(config)
    return TriggerNormalizeResponse(
        triggerConfiguration=config.to_dict(),
        legacyMirror=to_legacy_mirror(config),
        payload=payload.model_dump(mode="json", exclude_none=True),
        subtype=subtype,
        summary=summarize_trigger(config),
    )


@router.post(
    "/journeys/triggers/legacy-mirror",
    summary="Project Legacy Trigger Mirror",
    description="Regenerate the flat legacy trigger fields from a configuration",
)
async def legacy_mirror(request: LegacyMirrorRequest) -> dict:
    return to_legacy_mirror(request.config)


@router.post(
    "/journeys/graph",
    response_model=GraphResponse,
    summary="Journey To Graph",
    description="Build the editable canvas graph for a persisted journey",
)
async def journey_to_graph(request: JourneyGraphRequest, http_request: Request) -> GraphResponse:
    start_time = time.time()
    journey = normalize_journey(request.journey)
    graph = to_graph(journey)

    logger.info(
        "Journey converted to graph",
        extra={
            "journey_id": journey.id,
            "node_count": len(graph.nodes),
            "edge_count": len(graph.edges),
            "duration_ms": round((time.time() - start_time) * 1000, 2),
            "request_id": getattr(http_request.state, "request_id", None),
        }
    )
    return GraphResponse(**graph.to_dict())


@router.post(
    "/journeys/domain",
    response_model=GraphResponse,
    summary="Graph To Domain",
    description="Convert an edited canvas graph back into persisted journey nodes and edges",
)
async def graph_to_domain(request: GraphRequest) -> GraphResponse:
    graph = parse_graph(request.model_dump())
    nodes, edges = to_domain(graph.nodes, graph.edges)
    return GraphResponse(
        nodes=[node.to_dict() for node in nodes],
        edges=[edge.to_dict() for edge in edges],
    )


@router.post(
    "/journeys/summaries",
    response_model=SummariesResponse,
    summary="Node Summaries",
    description="Recompute the one-line summary and configured flag of every node",
)
async def node_summaries(request: GraphRequest) -> SummariesResponse:
    graph = parse_graph(request.model_dump())
    nodes, _ = to_domain(graph.nodes, graph.edges)
    summaries = []
    for node in nodes:
        rebuilt = to_graph_node(node)
        summaries.append(NodeSummary(
            nodeId=rebuilt.id,
            variant=rebuilt.variant,
            summary=rebuilt.data.hints.summary,
            isConfigured=rebuilt.data.hints.isConfigured,
        ))
    return SummariesResponse(summaries=summaries)


@router.post(
    "/journeys/validation/status",
    response_model=ValidationStatusResponse,
    summary="Validation Status",
    description="Derive the validation status and activation gate from a validation result",
)
async def validation_status(request: ValidationStatusRequest) -> ValidationStatusResponse:
    response = parse_validation(request.validation)
    summary = ValidationSummary.from_response(response)
    return ValidationStatusResponse(
        **summary.to_dict(),
        canActivate=can_activate(response, request.override),
    )
