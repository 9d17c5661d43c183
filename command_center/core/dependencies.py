"""
FastAPI dependency injection for the Command Center backend.

Endpoints receive settings, benchmarks, health weights and the generative
responder through these dependencies rather than constructing them, so tests
can swap any of them with app.dependency_overrides.

Dependencies Provided:
- get_settings_dependency / SettingsDep: cached Settings singleton
- get_benchmarks_dependency / BenchmarksDep: Benchmarks built from settings
- get_weights_dependency / WeightsDep: HealthScoreWeights built from settings
- get_responder_dependency / ResponderDep: configured generative responder, or
  None when no API key is set

Usage:
    @router.post("/analysis")
    async def analyze(request: AnalysisRequest, benchmarks: BenchmarksDep):
        ...

    # In tests
    app.dependency_overrides[get_responder_dependency] = lambda: fake_responder
"""

from typing import Annotated, Optional

from fastapi import Depends

from command_center.core.config import (
    Settings,
    get_benchmarks,
    get_health_weights,
    get_settings,
)
from command_center.models.schemas import Benchmarks, HealthScoreWeights
from command_center.services.responder import GenerativeResponder, build_responder


def get_settings_dependency() -> Settings:
    """
    Return the Settings singleton instance.

    Thin wrapper around get_settings() so tests can override it:
        app.dependency_overrides[get_settings_dependency] = lambda: mock_settings
    """
    return get_settings()


SettingsDep = Annotated[Settings, Depends(get_settings_dependency)]


def get_benchmarks_dependency(settings: SettingsDep) -> Benchmarks:
    return get_benchmarks(settings)


def get_weights_dependency(settings: SettingsDep) -> HealthScoreWeights:
    return get_health_weights(settings)


def get_responder_dependency(settings: SettingsDep) -> Optional[GenerativeResponder]:
    """Return the generative responder, or None when it is not configured."""
    return build_responder(settings)


BenchmarksDep = Annotated[Benchmarks, Depends(get_benchmarks_dependency)]
WeightsDep = Annotated[HealthScoreWeights, Depends(get_weights_dependency)]
ResponderDep = Annotated[Optional[GenerativeResponder], Depends(get_responder_dependency)]


__all__ = [
    'get_settings_dependency',
    'get_benchmarks_dependency',
    'get_weights_dependency',
    'get_responder_dependency',
    'SettingsDep',
    'BenchmarksDep',
    'WeightsDep',
    'ResponderDep',
]
