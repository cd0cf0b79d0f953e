"""
Offline feed catalog loader.

A catalog is a local JSON file (default: `data/catalogs/feed.json`) shaped like the
PostgREST feed responses:

    {"listings": [...training_listings rows...], "packages": [...training_packages rows...]}

Rows are validated into the same Pydantic models the live client returns, so the CLI
and demos rank exactly what production would.
"""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import TypeAdapter

from fitfeed.core.env import resolve_project_path
from fitfeed.domain.models import TrainingListing, TrainingPackage


_LISTINGS_ADAPTER = TypeAdapter(list[TrainingListing])
_PACKAGES_ADAPTER = TypeAdapter(list[TrainingPackage])


def load_feed_catalog(path: str | Path) -> tuple[list[TrainingListing], list[TrainingPackage]]:
    """Load and validate a feed catalog JSON file."""
    resolved = resolve_project_path(path)
    payload = json.loads(resolved.read_text(encoding="utf-8"))
    if not isinstance(payload, dict):
        raise ValueError(f"Invalid catalog root in {resolved}; expected an object with listings/packages.")
    listings = _LISTINGS_ADAPTER.validate_python(payload.get("listings") or [])
    packages = _PACKAGES_ADAPTER.validate_python(payload.get("packages") or [])
    return listings, packages
