"""Core module - hierarchy, classification, mapping, resolution and estimation."""

from device_pricing.core.engine import EngineContext, load_engine
from device_pricing.core.engine_config import EngineConfig, get_config_loader, load_engine_config
from device_pricing.core.errors import (
    EngineError,
    IntegrityViolation,
    InvalidArgument,
    NotFound,
    ValidationFailure,
)
from device_pricing.core.hierarchy import CategoryNode, HierarchyStore

__all__ = [
    "EngineContext",
    "load_engine",
    "EngineConfig",
    "get_config_loader",
    "load_engine_config",
    "EngineError",
    "IntegrityViolation",
    "InvalidArgument",
    "NotFound",
    "ValidationFailure",
    "CategoryNode",
    "HierarchyStore",
]
