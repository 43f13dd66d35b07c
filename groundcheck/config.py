"""
GroundCheck Configuration System
=================================

Central configuration using Pydantic Settings. Supports:
- Environment variables (GROUNDCHECK_ prefix, ``__`` for nested fields)
- .env file loading
- YAML config file overrides

The config produces a deterministic hash that is stamped on every
validation report, so audit records can be traced back to the exact
model names and thresholds that produced them.

Usage:
    from groundcheck.config import get_config
    cfg = get_config()                       # loads from env / .env
    cfg = get_config("configs/local.yaml")   # loads with YAML overrides
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# ── Sub-configs ────────────────────────────────────────────────────
class ModelConfig(BaseModel):
    """Chat model endpoints used by the judges."""
    base_url: str = Field(
        default="http://localhost:11434/v1",
        description="OpenAI-compatible endpoint (Ollama serves one under /v1)"
    )
    api_key: str = Field(
        default="ollama",
        description="API key for the endpoint (Ollama ignores it but the client requires one)"
    )
    entailment_model: str = Field(
        default="bespoke-minicheck",
        description="Narrow classifier that answers 'Yes' for supported claims"
    )
    judge_model: str = Field(
        default="qwen2.5-coder",
        description="Instruction-following model for contradiction and omission checks"
    )
    temperature: float = Field(default=0.0, ge=0.0, le=2.0, description="Sampling temperature")
    timeout: Optional[float] = Field(
        default=None,
        description="Transport timeout in seconds (None = wait indefinitely)"
    )


class RetrievalConfig(BaseModel):
    """How grounding passages are fetched from the passage source."""
    where: Optional[str] = Field(
        default="subject_id = 10000032",
        description="Filter expression passed to the passage source"
    )
    limit: int = Field(default=10, gt=0, description="Max passages per grounding query")
    id_field: str = Field(default="id", description="Row field holding the passage identifier")
    text_field: str = Field(
        default="full_text",
        description="Row field holding the passage text used for grounding"
    )
    passages_path: Optional[Path] = Field(
        default=None,
        description="JSON Lines export used by the file-backed passage source"
    )


class ClaimConfig(BaseModel):
    """Configuration for the claim decomposer."""
    use_spacy: bool = Field(default=False, description="Use the spaCy sentencizer instead of regex")
    spacy_model: str = Field(default="en_core_web_sm", description="spaCy pipeline to load")


class VerificationConfig(BaseModel):
    """Configuration for the judges."""
    strict_alignment: bool = Field(
        default=True,
        description="Fail the contradiction stage when verdict count != claim count"
    )


class AuditConfig(BaseModel):
    """Configuration for the append-only audit log."""
    enabled: bool = Field(default=True, description="Write audit records at all")
    log_path: Path = Field(default=Path("validate.log"), description="Audit log file (JSON Lines)")


# ── Main Config ────────────────────────────────────────────────────
class GroundCheckConfig(BaseSettings):
    """
    Root configuration for GroundCheck.

    Loads from environment variables (GROUNDCHECK_ prefix) and .env file.
    Can be extended with YAML overrides via `get_config(yaml_path)`.

    Example:
        export GROUNDCHECK_MODEL__JUDGE_MODEL=llama3.1
        export GROUNDCHECK_RETRIEVAL__LIMIT=20
    """
    model_config = SettingsConfigDict(
        env_prefix="GROUNDCHECK_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="text", description="Log format: 'json' or 'text'")

    model: ModelConfig = Field(default_factory=ModelConfig)
    retrieval: RetrievalConfig = Field(default_factory=RetrievalConfig)
    claim: ClaimConfig = Field(default_factory=ClaimConfig)
    verification: VerificationConfig = Field(default_factory=VerificationConfig)
    audit: AuditConfig = Field(default_factory=AuditConfig)

    def config_hash(self) -> str:
        """
        Produce a deterministic SHA-256 hash of the configuration.

        The API key is excluded so the hash can be logged freely.
        """
        config_dict = self.model_dump(mode="json", exclude={"model": {"api_key"}})
        canonical = json.dumps(config_dict, sort_keys=True, default=str)
        return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:16]


# ── Config Loading ─────────────────────────────────────────────────
def get_config(yaml_path: Optional[str] = None) -> GroundCheckConfig:
    """
    Load GroundCheck configuration.

    Priority (highest to lowest):
        1. Values from the YAML file (if provided)
        2. Environment variables (GROUNDCHECK_ prefix)
        3. .env file
        4. Default values

    Args:
        yaml_path: Optional path to a YAML config file for overrides.

    Returns:
        Fully resolved GroundCheckConfig instance.
    """
    if yaml_path:
        import yaml
        with open(yaml_path) as f:
            overrides = yaml.safe_load(f) or {}
        return GroundCheckConfig(**overrides)
    return GroundCheckConfig()
