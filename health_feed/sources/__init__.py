"""Outlet catalog and the registry that tracks crawl state per outlet."""

from .catalog import SEED_SOURCES, build_catalog
from .registry import SourceRegistry

__all__ = ["SEED_SOURCES", "SourceRegistry", "build_catalog"]
