"""
Settings access for the planner app.

The engine modules only take `GridConfig` values; this is the one place
that reads `settings.PLANNER_CALENDAR`.
"""

from dataclasses import fields

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

from .types import GridConfig


def get_grid_config() -> GridConfig:
    """Build a GridConfig from `PLANNER_CALENDAR`, falling back to defaults."""
    overrides = getattr(settings, 'PLANNER_CALENDAR', {}) or {}
    known = {f.name for f in fields(GridConfig)}
    unknown = set(overrides) - known
    if unknown:
        raise ImproperlyConfigured(
            f"Unknown PLANNER_CALENDAR keys: {', '.join(sorted(unknown))}"
        )
    return GridConfig(**overrides)
