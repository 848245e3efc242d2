"""Seed catalog of health-news outlets."""

from __future__ import annotations

from dataclasses import replace
from typing import Any

from ..core.types import Source
from ..errors import ConfigurationError


SEED_SOURCES: tuple[Source, ...] = (
    Source(
        key="healthywomen",
        display_name="HealthyWomen",
        domain="healthywomen.org",
        listing_url="https://www.healthywomen.org",
        default_categories=("Women's Health",),
    ),
    Source(
        key="healthcom",
        display_name="HealthCom",
        domain="health.com",
        listing_url="https://www.health.com",
        default_categories=("General Health", "Wellness"),
    ),
    Source(
        key="guardian",
        display_name="Guardian Nigeria",
        domain="guardian.ng",
        listing_url="https://guardian.ng",
        default_categories=("Public Health", "News"),
    ),
    Source(
        key="bbc",
        display_name="BBC Health",
        domain="bbc.com",
        listing_url="https://www.bbc.com",
        default_categories=("Public Health", "News", "Medical Research"),
    ),
)


def build_catalog(overrides: list[dict[str, Any]] | None = None) -> list[Source]:
    """Merge config overrides into the seed catalog.

    An override whose key matches a seed entry replaces the given fields; any
    other key appends a new source (which must then carry its own
    display_name, domain and listing_url).
    """
    catalog = {source.key: source for source in SEED_SOURCES}
    order = [source.key for source in SEED_SOURCES]

    for raw in overrides or []:
        if not isinstance(raw, dict) or not raw.get("key"):
            raise ConfigurationError(f"Source override must be a mapping with a key: {raw!r}")
        fields = dict(raw)
        key = str(fields.pop("key"))
        if "default_categories" in fields:
            fields["default_categories"] = tuple(fields["default_categories"] or ())
        existing = catalog.get(key)
        try:
            if existing is None:
                catalog[key] = Source(key=key, **fields)
                order.append(key)
            else:
                catalog[key] = replace(existing, **fields)
        except TypeError as exc:
            raise ConfigurationError(f"Invalid source override for '{key}': {exc}") from exc

    return [catalog[key] for key in order]
