"""Configuration loading for erdcheck (.erdcheck.yml, environment, CLI overrides)."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

import yaml

CONFIG_FILENAME = ".erdcheck.yml"

DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_OUTPUT_PATH = "docs/erd.mmd"
DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_SCHEMA_GLOBS = (
    "db/schema.rb",
    "db/structure.sql",
    "**/schema.prisma",
    "**/migrations/**/*.sql",
    "**/*.sql",
)

# GitHub Action inputs arrive as INPUT_<NAME>; they win over the generic names.
ENV_API_KEY_KEYS = ("INPUT_OPENAI_API_KEY", "ERDCHECK_API_KEY", "OPENAI_API_KEY")
ENV_MODEL_KEYS = ("INPUT_MODEL", "ERDCHECK_MODEL")
ENV_OUTPUT_PATH_KEYS = ("INPUT_OUTPUT_PATH", "ERDCHECK_OUTPUT_PATH")
ENV_INCLUDE_MODELS_KEYS = ("INPUT_INCLUDE_MODELS", "ERDCHECK_INCLUDE_MODELS")
ENV_SCHEMA_GLOBS_KEYS = ("INPUT_SCHEMA_GLOBS", "ERDCHECK_SCHEMA_GLOBS")
ENV_BASE_URL_KEYS = ("ERDCHECK_BASE_URL", "OPENAI_BASE_URL")
ENV_REQUEST_TIMEOUT_KEYS = ("ERDCHECK_REQUEST_TIMEOUT",)
ENV_REPOSITORY_KEYS = ("GITHUB_REPOSITORY",)


class ConfigurationError(RuntimeError):
    """Raised when erdcheck cannot run with the supplied configuration."""


@dataclass
class ErdCheckConfig:
    """Effective settings for a single erdcheck run."""

    root: Path
    api_key: str
    model: str = DEFAULT_MODEL
    output_path: Path = Path(DEFAULT_OUTPUT_PATH)
    include_models: bool = False
    schema_globs: List[str] = field(default_factory=lambda: list(DEFAULT_SCHEMA_GLOBS))
    base_url: str = DEFAULT_BASE_URL
    request_timeout: Optional[float] = None
    repository: str = ""

    def __repr__(self) -> str:
        return (
            f"ErdCheckConfig(root={self.root!s}, model={self.model!r}, "
            f"output_path={self.output_path!s}, include_models={self.include_models}, "
            f"schema_globs={self.schema_globs!r}, base_url={self.base_url!r})"
        )


def load_config(
    root: Path | str,
    overrides: Mapping[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
) -> ErdCheckConfig:
    """Resolve configuration with precedence overrides > environment > file > defaults."""
    root_path = Path(root).expanduser().resolve()
    env = os.environ if environ is None else environ
    cli = {key: value for key, value in (overrides or {}).items() if value is not None}
    file_data = _read_config(root_path / CONFIG_FILENAME)

    def pick(name: str, env_keys: Sequence[str]) -> Any:
        if name in cli:
            return cli[name]
        env_value = _first_env_value(env, env_keys)
        if env_value is not None:
            return env_value
        return file_data.get(name)

    # Secrets never come from the checked-in config file.
    api_key = _as_str(cli.get("api_key")) or _as_str(_first_env_value(env, ENV_API_KEY_KEYS))
    if not api_key:
        raise ConfigurationError(
            "Missing API key. Set one of: " + ", ".join(ENV_API_KEY_KEYS)
        )

    model = _as_str(pick("model", ENV_MODEL_KEYS)) or DEFAULT_MODEL

    output_str = _as_str(pick("output_path", ENV_OUTPUT_PATH_KEYS)) or DEFAULT_OUTPUT_PATH
    output_path = Path(output_str)
    if not output_path.is_absolute():
        output_path = root_path / output_path

    include_raw = pick("include_models", ENV_INCLUDE_MODELS_KEYS)
    include_models = _as_bool(include_raw)
    if include_models is None:
        if include_raw not in (None, ""):
            raise ConfigurationError(f"include_models must be a boolean, got {include_raw!r}")
        include_models = False

    schema_globs = split_globs(pick("schema_globs", ENV_SCHEMA_GLOBS_KEYS)) or list(
        DEFAULT_SCHEMA_GLOBS
    )

    base_url = _as_str(pick("base_url", ENV_BASE_URL_KEYS)) or DEFAULT_BASE_URL

    timeout_raw = pick("request_timeout", ENV_REQUEST_TIMEOUT_KEYS)
    request_timeout = _as_float(timeout_raw)
    if timeout_raw not in (None, "") and request_timeout is None:
        raise ConfigurationError(f"request_timeout must be a number, got {timeout_raw!r}")

    repository = _as_str(pick("repository", ENV_REPOSITORY_KEYS)) or root_path.name or "repository"

    return ErdCheckConfig(
        root=root_path,
        api_key=api_key,
        model=model,
        output_path=output_path,
        include_models=include_models,
        schema_globs=schema_globs,
        base_url=base_url.rstrip("/"),
        request_timeout=request_timeout,
        repository=repository,
    )


def split_globs(value: Any) -> List[str]:
    """Accept a comma-separated string or a sequence and return clean glob entries."""
    if value is None:
        return []
    if isinstance(value, str):
        parts = value.split(",")
    elif isinstance(value, Sequence):
        parts = [str(item) for item in value if isinstance(item, str)]
    else:
        return []
    return [part.strip() for part in parts if part.strip()]


def _read_config(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Failed to parse {path.name}: {exc}") from exc
    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigurationError(f"{path.name} must contain a mapping at the root")
    return loaded


def _first_env_value(environ: Mapping[str, str], keys: Sequence[str]) -> str | None:
    for key in keys:
        value = environ.get(key)
        if value:
            return value
    return None


def _as_str(value: Any) -> Optional[str]:
    if isinstance(value, str):
        return value.strip() or None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


__all__ = [
    "CONFIG_FILENAME",
    "ConfigurationError",
    "DEFAULT_SCHEMA_GLOBS",
    "ErdCheckConfig",
    "load_config",
    "split_globs",
]
