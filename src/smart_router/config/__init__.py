"""Configuration module for Smart Router.

Configuration is stored in ~/.smart-router/ (or $SMART_ROUTER_HOME).

Usage:
    from smart_router.config import ConfigRegistry

    registry = ConfigRegistry.from_file()
    weights = registry.current.scoring.weights
"""

from smart_router.config.loader import (
    config_exists,
    create_default_config,
    ensure_config_dir,
    load_config,
    resolve_database_url,
)
from smart_router.config.models import (
    AnalyzerConfig,
    CandidateModel,
    ComplexityBand,
    LearningConfig,
    PersistenceConfig,
    PricingEntry,
    QuotaConfig,
    RouterConfig,
    ScoringConfig,
    ScoringWeights,
    get_config_dir,
    get_default_config,
)
from smart_router.config.registry import ConfigRegistry

__all__ = [
    # Models
    "RouterConfig",
    "ScoringConfig",
    "ScoringWeights",
    "ComplexityBand",
    "CandidateModel",
    "PricingEntry",
    "AnalyzerConfig",
    "QuotaConfig",
    "LearningConfig",
    "PersistenceConfig",
    # Loader functions
    "load_config",
    "create_default_config",
    "ensure_config_dir",
    "config_exists",
    "resolve_database_url",
    # Lifecycle
    "ConfigRegistry",
    # Model helpers
    "get_config_dir",
    "get_default_config",
]
