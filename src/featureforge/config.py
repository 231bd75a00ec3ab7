"""Configuration loading for featureforge.

Configuration comes from three layers, later layers winning:

    1. Dataclass defaults
    2. An optional JSON file, validated against ``config.schema.json``
    3. Environment variables (ARTIFACTS_DIR, MAX_ITERATIONS, PROJECT_ROOT,
       LLM_MODEL, LLM_BASE_URL, LLM_API_KEY, LLM_TIMEOUT, STAGE_TIMEOUT)
"""

from __future__ import annotations

import json
import os
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import jsonschema

from featureforge.domain.exceptions import ConfigurationError
from featureforge.schemas import validate_config

DEFAULT_OLLAMA_URL = "http://localhost:11434/v1"


@dataclass(frozen=True)
class LLMConfig:
    """Connection settings for the OpenAI-compatible completion endpoint."""

    model: str = "qwen2.5-coder:7b"
    base_url: str = DEFAULT_OLLAMA_URL
    api_key: str = "ollama"  # required by the client, unused by Ollama
    timeout: float = 120.0
    temperature: float = 0.2
    max_tokens: int = 8192
    parse_retries: int = 2
    retry_backoff: float = 1.0


@dataclass(frozen=True)
class CommandsConfig:
    """Shell commands run against the target project, with their timeouts in seconds."""

    unit_tests: str = "npm run test:cov -- --passWithNoTests"
    e2e_tests: str = "npm run test:e2e"
    coverage: str = "npm run test:cov"
    lint: str = "npm run lint -- --format json"
    unit_timeout: float = 120.0
    e2e_timeout: float = 300.0
    lint_timeout: float = 60.0
    default_timeout: float = 60.0


@dataclass(frozen=True)
class PipelineConfig:
    """Top-level pipeline configuration."""

    artifacts_dir: str = "./artifacts"
    project_root: str = "."
    max_iterations: int = 5
    stage_timeout: float | None = None
    execute_task_commands: bool = False
    llm: LLMConfig = field(default_factory=LLMConfig)
    commands: CommandsConfig = field(default_factory=CommandsConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PipelineConfig:
        """Build a config from an already-validated dictionary."""
        top = {k: v for k, v in data.items() if k not in ("llm", "commands")}
        return cls(
            llm=LLMConfig(**data.get("llm", {})),
            commands=CommandsConfig(**data.get("commands", {})),
            **top,
        )


def _parse_env(name: str, raw: str, convert: Callable[[str], Any]) -> Any:
    try:
        return convert(raw)
    except ValueError as e:
        raise ConfigurationError(f"Invalid value for {name}: {raw!r}") from e


def apply_env_overrides(
    config: PipelineConfig, env: Mapping[str, str]
) -> PipelineConfig:
    """
    Apply environment variable overrides to a config.

    Args:
        config: Base configuration
        env: Environment mapping (usually ``os.environ``)

    Returns:
        A new config with overrides applied

    Raises:
        ConfigurationError: If a numeric variable cannot be parsed or is out of range
    """
    top: dict[str, Any] = {}
    llm: dict[str, Any] = {}

    if env.get("ARTIFACTS_DIR"):
        top["artifacts_dir"] = env["ARTIFACTS_DIR"]
    if env.get("PROJECT_ROOT"):
        top["project_root"] = env["PROJECT_ROOT"]
    if env.get("MAX_ITERATIONS"):
        top["max_iterations"] = _parse_env("MAX_ITERATIONS", env["MAX_ITERATIONS"], int)
        if top["max_iterations"] < 1:
            raise ConfigurationError("MAX_ITERATIONS must be at least 1")
    if env.get("STAGE_TIMEOUT"):
        top["stage_timeout"] = _parse_env("STAGE_TIMEOUT", env["STAGE_TIMEOUT"], float)
        if top["stage_timeout"] <= 0:
            raise ConfigurationError("STAGE_TIMEOUT must be positive")

    if env.get("LLM_MODEL"):
        llm["model"] = env["LLM_MODEL"]
    if env.get("LLM_BASE_URL"):
        llm["base_url"] = env["LLM_BASE_URL"]
    if env.get("LLM_API_KEY"):
        llm["api_key"] = env["LLM_API_KEY"]
    if env.get("LLM_TIMEOUT"):
        llm["timeout"] = _parse_env("LLM_TIMEOUT", env["LLM_TIMEOUT"], float)

    if llm:
        top["llm"] = replace(config.llm, **llm)
    return replace(config, **top) if top else config


def load_config(
    path: Path | str | None = None,
    env: Mapping[str, str] | None = None,
) -> PipelineConfig:
    """
    Load pipeline configuration.

    Args:
        path: Optional path to a JSON config file
        env: Environment mapping (defaults to ``os.environ``)

    Returns:
        The resolved PipelineConfig

    Raises:
        ConfigurationError: If the file is missing, not JSON, fails schema
            validation, or an environment override is invalid
    """
    config = PipelineConfig()

    if path is not None:
        path = Path(path)
        if not path.exists():
            raise ConfigurationError(f"Config file not found: {path}")

        try:
            with open(path) as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in {path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Expected object in {path}, got {type(data).__name__}"
            )

        try:
            validate_config(data)
        except jsonschema.ValidationError as e:
            location = "/".join(str(p) for p in e.absolute_path) or "<root>"
            raise ConfigurationError(
                f"Invalid config in {path} at {location}: {e.message}"
            ) from e

        config = PipelineConfig.from_dict(data)

    return apply_env_overrides(config, os.environ if env is None else env)
