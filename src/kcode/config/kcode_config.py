"""kcode config models and loading helpers."""

from __future__ import annotations

import json
from enum import StrEnum
from importlib import resources
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

_DEFAULT_CONFIG_RESOURCE = "default_config.yaml"


class TransportType(StrEnum):
    """Supported transport backend identifiers."""

    SIMULATOR = "simulator"
    REST = "rest"
    GRPC = "grpc"


class AppSettings(BaseModel):
    """Application identity and session log settings."""

    model_config = ConfigDict(extra="forbid")

    name: str = "kcode"
    version: str = "0.1.0"
    prompt: str = "kcode"
    log_file: str = ".kcode/kcode.log"


class TransportSettings(BaseModel):
    """Backend transport selection and timing."""

    model_config = ConfigDict(extra="forbid")

    type: TransportType = TransportType.SIMULATOR
    timeout_ms: int = Field(default=5000, ge=1)
    status_endpoint: str = "get_status"
    poll_interval_ms: int = Field(default=100, ge=1)


class SystemCommandConfig(BaseModel):
    """Fixed system command bound to a builtin action."""

    model_config = ConfigDict(extra="forbid")

    aliases: list[str] = Field(default_factory=list)
    description: str = ""
    action: str = ""


class ApiCommandConfig(BaseModel):
    """Pattern-matched command forwarded to one transport endpoint."""

    model_config = ConfigDict(extra="forbid")

    pattern: str = ""
    description: str = ""
    endpoint: str = ""
    request_mapping: dict[str, str] = Field(default_factory=dict)
    response_template: str = ""


class MacroStepConfig(BaseModel):
    """One backend invocation inside a macro."""

    model_config = ConfigDict(extra="forbid")

    endpoint: str
    request: dict[str, Any] = Field(default_factory=dict)


class MacroCommandConfig(BaseModel):
    """Named ordered sequence of backend invocations."""

    model_config = ConfigDict(extra="forbid")

    aliases: list[str] = Field(default_factory=list)
    description: str = ""
    steps: list[MacroStepConfig] = Field(default_factory=list)
    response_template: str = ""


class CommandsConfig(BaseModel):
    """Complete command vocabulary."""

    model_config = ConfigDict(extra="forbid")

    system: dict[str, SystemCommandConfig] = Field(default_factory=dict)
    api: dict[str, ApiCommandConfig] = Field(default_factory=dict)
    macros: dict[str, MacroCommandConfig] = Field(default_factory=dict)
    aliases: dict[str, str] = Field(default_factory=dict)


class AxisLimits(BaseModel):
    """Per-axis numeric bounds."""

    model_config = ConfigDict(extra="forbid")

    x: float = 500.0
    y: float = 500.0
    z: float = 100.0


class AxisVelocity(BaseModel):
    """Per-axis maximum velocities in mm/min."""

    model_config = ConfigDict(extra="forbid")

    x: float = 1000.0
    y: float = 1000.0
    z: float = 500.0


class SimulationSettings(BaseModel):
    """Timing of simulated motion."""

    model_config = ConfigDict(extra="forbid")

    step_count: int = Field(default=20, ge=1)
    step_interval_ms: float = Field(default=25.0, ge=0)
    settle_ms: float = Field(default=50.0, ge=0)


class MachineSettings(BaseModel):
    """Machine envelope consumed by the state simulator."""

    model_config = ConfigDict(extra="forbid")

    work_area: AxisLimits = AxisLimits()
    soft_limits: bool = True
    max_velocity: AxisVelocity = AxisVelocity()
    max_spindle: float = Field(default=12000.0, ge=0)
    macros: dict[str, list[str]] = Field(default_factory=dict)
    simulation: SimulationSettings = SimulationSettings()

    @field_validator("macros", mode="before")
    @classmethod
    def _coerce_single_line_macros(cls, value: object) -> object:
        """Accept a bare string as a one-line macro body.

        Args:
            value: Raw macros payload.

        Returns:
            Payload with every macro body as a list of lines.
        """
        if not isinstance(value, dict):
            return value
        return {
            name: [body] if isinstance(body, str) else body
            for name, body in value.items()
        }


class KcodeConfig(BaseModel):
    """Root kcode configuration model."""

    model_config = ConfigDict(extra="forbid")

    app: AppSettings = AppSettings()
    transport: TransportSettings = TransportSettings()
    commands: CommandsConfig = CommandsConfig()
    machine: MachineSettings = MachineSettings()


class ConfigError(RuntimeError):
    """Raised when a config file cannot be decoded or validated."""


def _decode_payload(raw: str, suffix: str) -> dict[str, object]:
    """Decode config payload from JSON or YAML text.

    Args:
        raw: Raw file contents.
        suffix: Lower-cased file suffix used to pick the decoder.

    Returns:
        Parsed mapping payload.

    Raises:
        ConfigError: If decode fails or payload is not an object.
    """
    if suffix == ".json":
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Invalid config JSON: {exc}") from exc
    else:
        try:
            payload = yaml.safe_load(raw)
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid config YAML: {exc}") from exc
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ConfigError("Invalid config payload: root must be an object")
    return payload


def parse_config(payload: dict[str, object]) -> KcodeConfig:
    """Validate an already-decoded config mapping.

    Args:
        payload: Decoded config mapping.

    Returns:
        Typed config model.

    Raises:
        ConfigError: If validation fails.
    """
    try:
        return KcodeConfig.model_validate(payload)
    except ValidationError as exc:
        raise ConfigError(f"Invalid config payload: {exc}") from exc


def default_config_text() -> str:
    """Return the bundled default config YAML."""
    return (
        resources.files("kcode.config")
        .joinpath(_DEFAULT_CONFIG_RESOURCE)
        .read_text(encoding="utf-8")
    )


def default_config() -> KcodeConfig:
    """Load the bundled default config.

    Returns:
        Default config with the stock command vocabulary.
    """
    return parse_config(_decode_payload(default_config_text(), ".yaml"))


def load_config(path: Path) -> KcodeConfig:
    """Load kcode config from disk, defaulting to the bundled config when missing.

    Args:
        path: Config file path.

    Returns:
        Parsed config payload.

    Raises:
        ConfigError: If payload decode or validation fails.
    """
    if not path.exists():
        return default_config()
    raw = path.read_text(encoding="utf-8")
    return parse_config(_decode_payload(raw, path.suffix.lower()))
