"""Catalog routes: capabilities, enablers, templates, validation and cost."""

from typing import Annotated

from fastapi import APIRouter, Depends

from ses_api.models.capability import Capability, Enabler, EnvironmentTemplate
from ses_api.models.environment import CostEstimate, EnvironmentSpec, ValidationResult
from ses_api.services.capabilities import CapabilityGraph, get_capability_graph
from ses_api.services.cost import CostModel, get_cost_model
from ses_api.services.validator import SpecValidator, get_spec_validator

CapabilityGraphDep = Annotated[CapabilityGraph, Depends(get_capability_graph)]
CostModelDep = Annotated[CostModel, Depends(get_cost_model)]
SpecValidatorDep = Annotated[SpecValidator, Depends(get_spec_validator)]

router = APIRouter(prefix="/api/v1", tags=["catalog"])


@router.get("/capabilities", response_model=list[Capability])
async def list_capabilities(graph: CapabilityGraphDep) -> list[Capability]:
    """List all known capabilities with their dependencies."""
    return graph.list_capabilities()


@router.get("/enablers", response_model=list[Enabler])
async def list_enablers(graph: CapabilityGraphDep) -> list[Enabler]:
    """List the enablers that implement capabilities."""
    return graph.list_enablers()


@router.get("/templates", response_model=list[EnvironmentTemplate])
async def list_templates(graph: CapabilityGraphDep) -> list[EnvironmentTemplate]:
    """List predefined environment templates."""
    return graph.list_templates()


@router.post("/validate", response_model=ValidationResult)
async def validate_environment_spec(
    spec: EnvironmentSpec,
    validator: SpecValidatorDep,
) -> ValidationResult:
    """Validate a specification without creating anything.

    Always answers 200; check ``valid`` and ``errors`` in the body.
    """
    return validator.validate(spec)


@router.post("/cost/estimate", response_model=CostEstimate)
async def estimate_cost(spec: EnvironmentSpec, cost_model: CostModelDep) -> CostEstimate:
    """Estimate daily and monthly cost of a specification."""
    return cost_model.estimate(spec)
