"""Centralized configuration management for the analysis consensus engine."""

import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field


class PatternWeightsConfig(BaseModel):
    """Weights for pattern scoring criteria.

    The three criterion weights should sum to 1.0. The ranking blend
    combines the raw match score with the user-preference suitability.
    """
    app_type: float = Field(
        0.35,
        description="Weight for application type match"
    )
    framework: float = Field(
        0.25,
        description="Weight for framework match"
    )
    requirements: float = Field(
        0.40,
        description="Weight for infrastructure requirements match"
    )
    score_floor: float = Field(
        0.2,
        description="Patterns scoring below this are dropped before ranking"
    )
    match_weight: float = Field(
        0.7,
        description="Share of the ranking score taken from the pattern match score"
    )
    suitability_weight: float = Field(
        0.3,
        description="Share of the ranking score taken from user-preference suitability"
    )


class CacheConfig(BaseModel):
    """Result cache bounds."""
    max_entries: int = Field(
        100,
        ge=1,
        description="Maximum cached results before the oldest is evicted"
    )
    ttl_seconds: float = Field(
        30 * 60,
        gt=0,
        description="Time-to-live for a cached result (checked on read)"
    )


class ProcessorConfig(BaseModel):
    """Processing pipeline switches."""
    enable_cache: bool = Field(
        True,
        description="Look up and store results in the result cache"
    )
    enable_fallbacks: bool = Field(
        True,
        description="Substitute safer defaults for low-confidence or invalid results"
    )


class ConsensusConfig(BaseModel):
    """Complete configuration for the analysis consensus engine."""
    pattern_weights: PatternWeightsConfig = Field(default_factory=PatternWeightsConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    processor: ProcessorConfig = Field(default_factory=ProcessorConfig)


# Global config instance
_config: Optional[ConsensusConfig] = None


def get_config() -> ConsensusConfig:
    """Get the current configuration.

    Returns the global config, initializing with defaults if not yet loaded.
    """
    global _config
    if _config is None:
        _config = ConsensusConfig()
    return _config


def load_config(path: Path) -> ConsensusConfig:
    """Load configuration from a YAML file.

    Args:
        path: Path to the YAML configuration file.

    Returns:
        The loaded ConsensusConfig.
    """
    global _config

    with open(path, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f)

    _config = ConsensusConfig.model_validate(data or {})
    return _config


def reset_config() -> None:
    """Reset configuration to defaults."""
    global _config
    _config = ConsensusConfig()


def find_config_file() -> Optional[Path]:
    """Find a consensus configuration file.

    Looks in (order of priority):
    1. ANALYSIS_CONSENSUS_CONFIG environment variable
    2. ./consensus-config.yaml
    3. ~/.config/analysis-consensus/config.yaml
    """
    env_path = os.environ.get("ANALYSIS_CONSENSUS_CONFIG")
    if env_path:
        path = Path(env_path)
        if path.exists():
            return path

    local_config = Path("consensus-config.yaml")
    if local_config.exists():
        return local_config

    user_config = Path.home() / ".config" / "analysis-consensus" / "config.yaml"
    if user_config.exists():
        return user_config

    return None


def save_default_config(path: Path) -> None:
    """Save the default configuration to a YAML file.

    Args:
        path: Path where to save the configuration.
    """
    data = ConsensusConfig().model_dump()

    yaml_content = """# Analysis Consensus Configuration
# =================================
#
# This file configures pattern scoring weights, result cache bounds
# and the processing pipeline switches.
#
# Copy this file to one of these locations:
#   - ./consensus-config.yaml (current directory)
#   - ~/.config/analysis-consensus/config.yaml (user config)
#
# Or set the ANALYSIS_CONSENSUS_CONFIG environment variable.

"""
    yaml_content += yaml.dump(data, default_flow_style=False, sort_keys=False, allow_unicode=True)

    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        f.write(yaml_content)
