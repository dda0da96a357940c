"""Load cluster and provisioner YAML files.

String values may reference the environment as ``${NAME}`` or
``${NAME:-fallback}``; CI jobs use this to inject the build number into the
run identifier and scratch path.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any, TypeVar

import yaml
from pydantic import BaseModel, ValidationError

from kubeprov.config.models import ClusterConfig, ProvisionerConfig

_M = TypeVar("_M", bound=BaseModel)

_PLACEHOLDER = re.compile(r"\$\{(?P<name>[A-Za-z_][A-Za-z0-9_]*)(?::-(?P<fallback>[^}]*))?\}")


def expand_env(value: Any) -> Any:
    """Substitute ``${NAME}`` placeholders in every string of a parsed document."""
    if isinstance(value, dict):
        return {key: expand_env(item) for key, item in value.items()}
    if isinstance(value, list):
        return [expand_env(item) for item in value]
    if not isinstance(value, str):
        return value

    def _lookup(match: re.Match[str]) -> str:
        name, fallback = match.group("name", "fallback")
        if name in os.environ:
            return os.environ[name]
        if fallback is None:
            msg = f"Environment variable '{name}' is not set and no default provided"
            raise ValueError(msg)
        return fallback

    return _PLACEHOLDER.sub(_lookup, value)


def read_document(path: str | Path) -> dict[str, Any]:
    """Parse *path* as a YAML mapping with placeholders expanded."""
    source = Path(path)
    text = source.read_text()
    try:
        document = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        mark = getattr(exc, "problem_mark", None)
        where = f" (line {mark.line + 1})" if mark is not None else ""
        msg = f"Failed to parse YAML in {source}{where}: {exc}"
        raise ValueError(msg) from exc
    if document is None:
        document = {}
    if not isinstance(document, dict):
        msg = f"{source}: expected a mapping, got {type(document).__name__}"
        raise TypeError(msg)
    return expand_env(document)


def _load(model: type[_M], path: str | Path, what: str) -> _M:
    try:
        return model.model_validate(read_document(path))
    except ValidationError as exc:
        msg = f"Invalid {what} config ({path}):\n{exc}"
        raise ValueError(msg) from exc


def load_cluster_config(path: str | Path) -> ClusterConfig:
    """Load a cluster config; unset machine-controller fields keep model defaults."""
    return _load(ClusterConfig, path, "cluster")


def load_provisioner_config(path: str | Path) -> ProvisionerConfig:
    return _load(ProvisionerConfig, path, "provisioner")
