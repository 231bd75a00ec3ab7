"""Schemas used by featureforge.

Two kinds live here. ``config.schema.json`` describes the optional pipeline
configuration file and is checked with jsonschema. The ``stages`` and
``responses`` modules hold the pydantic models for stage artifacts and for
the structured completions each stage asks the LLM for.
"""

from __future__ import annotations

import json
from functools import lru_cache
from importlib.resources import files
from typing import Any

import jsonschema

CONFIG_SCHEMA = "config.schema.json"


def get_config_schema() -> dict[str, Any]:
    """Parsed JSON Schema for the configuration file."""
    text = files(__name__).joinpath(CONFIG_SCHEMA).read_text(encoding="utf-8")
    schema: dict[str, Any] = json.loads(text)
    return schema


@lru_cache(maxsize=1)
def _config_validator() -> jsonschema.protocols.Validator:
    schema = get_config_schema()
    validator_cls = jsonschema.validators.validator_for(schema)
    validator_cls.check_schema(schema)
    return validator_cls(schema)


def validate_config(data: dict[str, Any]) -> None:
    """Check a configuration document before it is merged over defaults.

    Raises:
        jsonschema.ValidationError: The most relevant violation, with
            ``absolute_path`` pointing into the document
    """
    error = jsonschema.exceptions.best_match(_config_validator().iter_errors(data))
    if error is not None:
        raise error


__all__ = [
    "get_config_schema",
    "validate_config",
]
