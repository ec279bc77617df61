"""Scenario loader for scenario YAML files.

Loads scenario definitions from config/scenarios/{scenario_id}.yaml. Each
scenario carries its ordered persona list, objectives and success criteria.
Scenarios are cached after first load; a session treats the loaded object as
immutable.
"""

import yaml
from pathlib import Path
from typing import Optional, Dict
import structlog

from roleplay.core.exceptions import ScenarioNotFoundError
from roleplay.domain.models.scenario import Scenario

log = structlog.get_logger(__name__)

# Module-level cache (scenarios don't change at runtime)
_cache: Dict[str, Scenario] = {}


def _default_scenarios_dir() -> Path:
    return Path(__file__).parent.parent.parent / "config" / "scenarios"


def list_scenarios(scenarios_dir: Optional[Path] = None) -> Dict[str, str]:
    """List all available scenarios.

    Returns:
        Dict mapping scenario_id to scenario title
    """
    scenarios_dir = scenarios_dir or _default_scenarios_dir()

    if not scenarios_dir.exists():
        return {}

    scenarios = {}
    for scenario_file in sorted(scenarios_dir.glob("*.yaml")):
        try:
            with open(scenario_file) as f:
                data = yaml.safe_load(f) or {}
            scenarios[scenario_file.stem] = data.get("title", scenario_file.stem)
        except yaml.YAMLError as e:
            log.warning("failed_to_read_scenario", file=str(scenario_file), error=str(e))

    return scenarios


def load_scenario(scenario_id: str, scenarios_dir: Optional[Path] = None) -> Scenario:
    """Load scenario configuration from YAML file.

    Args:
        scenario_id: Scenario identifier (file stem)
        scenarios_dir: Override config/scenarios/ path (for testing)

    Returns:
        Validated, immutable Scenario

    Raises:
        ScenarioNotFoundError: Scenario YAML file not found
        pydantic.ValidationError: Invalid scenario structure
    """
    if scenario_id in _cache:
        return _cache[scenario_id]

    scenarios_dir = scenarios_dir or _default_scenarios_dir()
    path = scenarios_dir / f"{scenario_id}.yaml"
    if not path.exists():
        raise ScenarioNotFoundError(f"Scenario not found: {scenario_id}")

    with open(path) as f:
        data = yaml.safe_load(f) or {}

    data.setdefault("id", scenario_id)
    scenario = Scenario(**data)

    _cache[scenario_id] = scenario
    log.info(
        "scenario_loaded",
        scenario_id=scenario_id,
        persona_count=len(scenario.personas),
    )
    return scenario


def load_all_scenarios(scenarios_dir: Optional[Path] = None) -> Dict[str, Scenario]:
    """Load all available scenarios, skipping files that fail validation."""
    scenarios = {}
    for scenario_id in list_scenarios(scenarios_dir).keys():
        try:
            scenarios[scenario_id] = load_scenario(scenario_id, scenarios_dir)
        except (ScenarioNotFoundError, ValueError) as e:
            log.error("scenario_load_failed", scenario_id=scenario_id, error=str(e))

    return scenarios


def clear_cache() -> None:
    """Clear the scenario cache (mainly for testing)."""
    _cache.clear()
