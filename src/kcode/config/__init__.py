"""kcode configuration loading."""

from kcode.config.kcode_config import (
    ApiCommandConfig,
    AppSettings,
    AxisLimits,
    AxisVelocity,
    CommandsConfig,
    ConfigError,
    KcodeConfig,
    MachineSettings,
    MacroCommandConfig,
    MacroStepConfig,
    SimulationSettings,
    SystemCommandConfig,
    TransportSettings,
    TransportType,
    default_config,
    default_config_text,
    load_config,
    parse_config,
)

__all__ = [
    "ApiCommandConfig",
    "AppSettings",
    "AxisLimits",
    "AxisVelocity",
    "CommandsConfig",
    "ConfigError",
    "KcodeConfig",
    "MachineSettings",
    "MacroCommandConfig",
    "MacroStepConfig",
    "SimulationSettings",
    "SystemCommandConfig",
    "TransportSettings",
    "TransportType",
    "default_config",
    "default_config_text",
    "load_config",
    "parse_config",
]
