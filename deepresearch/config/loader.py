"""Configuration loader with Pydantic validation and env var expansion."""

import logging
import os
import re
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field

from ..settings import (
    DEFAULT_LIMIT,
    HTTP_MAX_BYTES,
    HTTP_TIMEOUT_SECONDS,
    MAX_ITERATIONS,
    RAG_API_KEY,
    RAG_ENDPOINT,
)

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent / "profiles.yaml"


class FollowupConfig(BaseModel):
    """Configuration for follow-up query generation."""

    k: int = 5  # Max queries per section and iteration
    mmr_lambda: float = 0.6  # Relevance vs. diversity trade-off
    domain_alpha: float = 0.2  # Penalty weight for site: on an already seen domain
    near_duplicate_threshold: float = 0.7  # Jaccard at or above this is a near duplicate
    max_negative_hints: int = 3  # -site: exclusions appended per query
    max_entity_speakers: int = 5
    max_entity_meetings: int = 5
    cross_speakers: int = 3  # speaker x meeting combinations
    cross_meetings: int = 2


class OrchestratorConfig(BaseModel):
    """Configuration for the iterative retrieval loop."""

    max_iterations: int = MAX_ITERATIONS
    min_section_limit: int = 3  # Per-call limit floor: max(3, limit // 2)
    queries_per_section: int = 5


class SectionConfig(BaseModel):
    """Allow-listed providers and evidence target for one section."""

    providers: list[str] = Field(default_factory=list)
    target: int = 0


class ProviderConfig(BaseModel):
    """Configuration for one document provider."""

    id: str
    backend: Literal["http_rag", "http_docs", "mock"] = "mock"
    endpoint: str | None = None  # For http_rag
    api_key: str | None = None
    timeout: float = HTTP_TIMEOUT_SECONDS
    max_bytes: int = HTTP_MAX_BYTES  # For http_docs
    documents: list[dict[str, Any]] = Field(default_factory=list)  # For mock


# Sections of the report and which sources may feed them
DEFAULT_SECTIONS: dict[str, SectionConfig] = {
    "purpose_overview": SectionConfig(providers=["openai-web", "seed-docs"], target=2),
    "current_status": SectionConfig(providers=["kokkai-db", "openai-web", "gov-meeting-rag"], target=1),
    "timeline": SectionConfig(providers=["kokkai-db", "openai-web"], target=3),
    "key_points": SectionConfig(providers=["openai-web"], target=3),
    "background": SectionConfig(providers=["openai-web", "kokkai-db", "seed-docs"], target=2),
    "main_issues": SectionConfig(providers=["openai-web", "kokkai-db", "gov-meeting-rag"], target=3),
    "reasons_for_amendment": SectionConfig(providers=[], target=0),  # Built from existing evidence
    "impact_analysis": SectionConfig(providers=["kokkai-db", "openai-web", "gov-meeting-rag"], target=2),
    "past_debates_summary": SectionConfig(providers=["kokkai-db"], target=3),
}


class ProfileConfig(BaseModel):
    """Configuration profile: providers, sections and loop tuning."""

    providers: list[ProviderConfig] = Field(default_factory=list)
    sections: dict[str, SectionConfig] = Field(
        default_factory=lambda: {k: v.model_copy() for k, v in DEFAULT_SECTIONS.items()}
    )
    seed_provider: str | None = None  # Provider id used only for seed URLs
    limit: int = DEFAULT_LIMIT
    orchestrator: OrchestratorConfig = OrchestratorConfig()
    followup: FollowupConfig = FollowupConfig()


class ConfigFile(BaseModel):
    """Root configuration file structure."""

    profiles: dict[str, ProfileConfig]


ENV_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}")


def expand_env_vars(value: str) -> str:
    """Expand ${VAR} references in string with environment variables.

    Args:
        value: String potentially containing env var references

    Returns:
        String with env vars expanded; unknown variables are left as-is
    """
    if not isinstance(value, str):
        return value

    def replacer(match):
        var_name = match.group(1)
        return os.environ.get(var_name, match.group(0))

    return ENV_VAR_PATTERN.sub(replacer, value)


def find_unexpanded_vars(value: str | None) -> list[str]:
    """Names of ${VAR} references still present after expansion."""
    if not value:
        return []
    return ENV_VAR_PATTERN.findall(value)


def expand_env_vars_recursive(data):
    """Recursively expand env vars in nested dict/list structures."""
    if isinstance(data, dict):
        return {k: expand_env_vars_recursive(v) for k, v in data.items()}
    elif isinstance(data, list):
        return [expand_env_vars_recursive(item) for item in data]
    elif isinstance(data, str):
        return expand_env_vars(data)
    else:
        return data


def load_config_file(config_path: Path) -> ConfigFile:
    """Read, expand and validate a YAML config file."""
    with open(config_path, encoding="utf-8") as f:
        raw_data = yaml.safe_load(f) or {}

    expanded_data = expand_env_vars_recursive(raw_data)
    return ConfigFile(**expanded_data)


def load_config_from_yaml(config_path: Path, profile_name: str) -> ProfileConfig:
    """Load configuration from YAML file.

    Args:
        config_path: Path to config YAML file
        profile_name: Name of profile to load

    Returns:
        ProfileConfig for the requested profile

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValidationError: If config is invalid
        KeyError: If profile doesn't exist
    """
    config_file = load_config_file(config_path)

    if profile_name not in config_file.profiles:
        available = ", ".join(config_file.profiles.keys())
        raise KeyError(
            f"Profile '{profile_name}' not found. " f"Available profiles: {available}"
        )

    return config_file.profiles[profile_name]


def load_config_from_env() -> ProfileConfig:
    """Load configuration from environment variables (fallback mode).

    Always provides the seed-docs fetcher; adds an HTTP RAG provider
    when RAG_ENDPOINT is set.

    Returns:
        ProfileConfig constructed from environment variables
    """
    providers = [ProviderConfig(id="seed-docs", backend="http_docs")]

    if RAG_ENDPOINT:
        providers.append(
            ProviderConfig(
                id=os.environ.get("RAG_PROVIDER_ID", "kokkai-db"),
                backend="http_rag",
                endpoint=RAG_ENDPOINT,
                api_key=RAG_API_KEY,
            )
        )

    return ProfileConfig(
        providers=providers,
        seed_provider="seed-docs",
    )


def load_config(
    profile: str | None = None,
    config_path: Path | None = None,
) -> ProfileConfig:
    """Load configuration from YAML file or environment variables.

    This is the main entry point for loading configuration. It tries the
    YAML profiles file first and falls back to environment variables if the
    file is missing or cannot be loaded.

    Args:
        profile: Profile name to load. If None, uses RESEARCH_PROFILE env var
                or "default".
        config_path: Path to config file. If None, uses the packaged
                    deepresearch/config/profiles.yaml.

    Returns:
        ProfileConfig with providers, sections and loop settings
    """
    if profile is None:
        profile = os.environ.get("RESEARCH_PROFILE", "default")

    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    if config_path.exists():
        try:
            return load_config_from_yaml(config_path, profile)
        except Exception as e:
            logger.warning(f"Failed to load config from {config_path}: {e}")
            logger.warning("Falling back to environment variables...")
            return load_config_from_env()
    else:
        logger.warning(f"Config file {config_path} not found, using environment variables")
        return load_config_from_env()
