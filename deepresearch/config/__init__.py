"""Configuration system for providers, sections and the research loop."""

from .loader import (
    load_config,
    load_config_from_yaml,
    load_config_from_env,
    load_config_file,
    ProfileConfig,
    ProviderConfig,
    SectionConfig,
    OrchestratorConfig,
    FollowupConfig,
    DEFAULT_SECTIONS,
)
from .factory import (
    MockSearchProvider,
    create_provider,
    create_providers,
    create_orchestrator,
    create_run_params,
)

__all__ = [
    # Loader
    "load_config",
    "load_config_from_yaml",
    "load_config_from_env",
    "load_config_file",
    "ProfileConfig",
    "ProviderConfig",
    "SectionConfig",
    "OrchestratorConfig",
    "FollowupConfig",
    "DEFAULT_SECTIONS",
    # Factory
    "MockSearchProvider",
    "create_provider",
    "create_providers",
    "create_orchestrator",
    "create_run_params",
]
