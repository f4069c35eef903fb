"""Configuration for liveprof profilers.

Settings come from three places, lowest precedence first: dataclass
defaults, ``LIVE_PROFILER_*`` environment variables (:meth:`ProfilerConfig.
from_env`) and YAML files validated against the packaged JSON schema
(:func:`load_config_file`).
"""

from __future__ import annotations

import json
import os
import sys
from dataclasses import dataclass, fields, replace
from importlib import resources
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml

from liveprof.backends.base import BackendVariant
from liveprof.errors import ConfigurationError
from liveprof.storage import DEFAULT_API_URL, MODES

ENV_PREFIX = "LIVE_PROFILER_"

# Environment variable suffix -> config field
_ENV_FIELDS = {
    "APP": "app",
    "LABEL": "label",
    "DIVIDER": "divider",
    "TOTAL_DIVIDER": "total_divider",
    "MODE": "mode",
    "CONNECTION_URL": "connection_string",
    "PATH": "path",
    "API_URL": "api_url",
    "API_KEY": "api_key",
    "BACKEND": "backend",
    "SEED": "seed",
    "SAMPLING_INTERVAL": "sampling_interval",
    "SAMPLING_DEPTH": "sampling_depth",
    "LOG_FILE": "log_file",
}

_INT_FIELDS = {"divider", "total_divider", "seed", "sampling_depth"}
_FLOAT_FIELDS = {"sampling_interval"}


def auto_label() -> str:
    """Default label: the name of the running script."""
    try:
        name = os.path.basename(sys.argv[0])
    except (IndexError, AttributeError):
        name = ""
    return name or "<unknown>"


@dataclass
class ProfilerConfig:
    """Settings for a :class:`~liveprof.controller.LiveProfiler`.

    Attributes:
        app: Application name profiles are grouped under.
        label: Label of this kind of execution (request path, job name).
            None means the running script name.
        divider: Profile one execution in ``divider`` under its own label.
        total_divider: Of the rest, profile one in ``total_divider`` under
            the shared ``"All"`` label.
        mode: Storage mode, one of ``db``, ``files``, ``api``.
        connection_string: SQLite URL or path for ``db`` mode.
        path: Root directory for ``files`` mode.
        api_url: Collector endpoint for ``api`` mode.
        api_key: Collector key for ``api`` mode.
        backend: ``auto`` or a backend variant name.
        seed: Master seed making sampling decisions reproducible.
        sampling_interval: Seconds between samples of the sampling backend.
        sampling_depth: Frames kept per sample.
        log_file: Optional tab-separated diagnostics log.
    """

    app: str = "Default"
    label: Optional[str] = None
    divider: int = 1000
    total_divider: int = 10000
    mode: str = "db"
    connection_string: Optional[str] = None
    path: Optional[str] = None
    api_url: str = DEFAULT_API_URL
    api_key: str = ""
    backend: str = "auto"
    seed: Optional[int] = None
    sampling_interval: float = 0.01
    sampling_depth: int = 200
    log_file: Optional[str] = None

    def __post_init__(self) -> None:
        if self.divider < 1:
            raise ConfigurationError(f"divider must be >= 1, got {self.divider}")
        if self.total_divider < 1:
            raise ConfigurationError(
                f"total_divider must be >= 1, got {self.total_divider}"
            )
        if self.mode not in MODES:
            allowed = ", ".join(MODES)
            raise ConfigurationError(
                f"Unknown storage mode '{self.mode}'. Expected one of: {allowed}"
            )
        if self.backend != "auto":
            try:
                variant = BackendVariant.from_name(self.backend)
            except ValueError as exc:
                raise ConfigurationError(str(exc)) from None
            if variant is BackendVariant.CALLBACK:
                raise ConfigurationError(
                    "The callback backend is selected with use_callbacks()"
                )
        if self.sampling_interval <= 0:
            raise ConfigurationError("sampling_interval must be positive")
        if self.sampling_depth < 1:
            raise ConfigurationError("sampling_depth must be >= 1")

    @property
    def effective_label(self) -> str:
        return self.label if self.label else auto_label()

    def merged(self, overrides: Mapping[str, Any]) -> "ProfilerConfig":
        """Return a copy with non-None ``overrides`` applied."""
        known = {f.name for f in fields(self)}
        unknown = set(overrides) - known
        if unknown:
            raise ConfigurationError(
                f"Unrecognized setting(s): {', '.join(sorted(unknown))}"
            )
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes)

    @classmethod
    def from_env(
        cls, environ: Optional[Mapping[str, str]] = None, **overrides: Any
    ) -> "ProfilerConfig":
        """Build a config from ``LIVE_PROFILER_*`` variables.

        Args:
            environ: Environment mapping (defaults to ``os.environ``).
            **overrides: Explicit settings taking precedence over the
                environment.
        """
        env = os.environ if environ is None else environ
        values: Dict[str, Any] = {}
        for suffix, name in _ENV_FIELDS.items():
            raw = env.get(ENV_PREFIX + suffix)
            if raw is None or raw == "":
                continue
            values[name] = _coerce(name, raw)
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls().merged(values)


def _coerce(name: str, raw: str) -> Any:
    try:
        if name in _INT_FIELDS:
            return int(raw)
        if name in _FLOAT_FIELDS:
            return float(raw)
    except ValueError:
        raise ConfigurationError(
            f"Setting '{name}' expects a number, got '{raw}'"
        ) from None
    return raw


def _load_schema() -> Dict[str, Any]:
    try:
        with (
            resources.files("liveprof.schemas")
            .joinpath("config.json")
            .open("r", encoding="utf-8")
        ) as f:
            return json.load(f)
    except Exception as exc:  # pragma: no cover
        raise RuntimeError(
            "Failed to locate packaged schema 'liveprof/schemas/config.json'."
        ) from exc


def load_config_yaml(
    yaml_str: str, base: Optional[ProfilerConfig] = None
) -> ProfilerConfig:
    """Parse and validate a YAML configuration document.

    Args:
        yaml_str: YAML text with a top-level mapping of settings.
        base: Config the document's settings are applied on top of.

    Raises:
        ConfigurationError: If the document is not a mapping or fails schema
            validation.
    """
    import jsonschema

    try:
        data = yaml.safe_load(yaml_str)
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid YAML: {exc}") from exc
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            "The provided YAML must map to a dictionary at top-level."
        )
    # Accept "total-divider" style keys
    data = {str(k).replace("-", "_"): v for k, v in data.items()}

    try:
        jsonschema.validate(data, _load_schema())
    except jsonschema.ValidationError as exc:
        location = "/".join(str(p) for p in exc.absolute_path) or "<root>"
        raise ConfigurationError(
            f"Invalid setting at {location}: {exc.message}"
        ) from exc

    return (base or ProfilerConfig()).merged(data)


def load_config_file(
    path: Union[str, Path], base: Optional[ProfilerConfig] = None
) -> ProfilerConfig:
    """Read :func:`load_config_yaml` input from a file."""
    return load_config_yaml(Path(path).read_text(encoding="utf-8"), base=base)
