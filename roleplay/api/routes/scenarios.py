"""
Scenario catalog endpoints (read-only).
"""

from fastapi import APIRouter
import structlog

from roleplay.api.schemas import ScenarioListResponse, ScenarioSummary
from roleplay.core.scenario_loader import list_scenarios, load_scenario
from roleplay.domain.models.scenario import Scenario

log = structlog.get_logger(__name__)

router = APIRouter(prefix="/scenarios", tags=["scenarios"])


@router.get("", response_model=ScenarioListResponse)
async def get_scenarios():
    """List available scenarios."""
    scenarios = [
        ScenarioSummary(id=scenario_id, title=title)
        for scenario_id, title in list_scenarios().items()
    ]
    return ScenarioListResponse(scenarios=scenarios, total=len(scenarios))


@router.get("/{scenario_id}", response_model=Scenario)
async def get_scenario(scenario_id: str):
    """Get a scenario with its ordered personas (404 if unknown)."""
    return load_scenario(scenario_id)
