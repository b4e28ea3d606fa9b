"""
Client configuration for py2lirc.

Classes:
    ClientConfig: Immutable connection and logging settings

Functions:
    load_config: Read a ClientConfig from a YAML file

Example YAML:
    lircd:
      socket_path: /var/run/lirc/lircd
      # host: 192.168.1.20
      # port: 8765
      connect_timeout: 2.0
      event_queue_size: 100
    logging:
      level: INFO
"""

import logging
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import yaml

from py2lirc.core.connection import DEFAULT_SOCKET_PATH, DEFAULT_TCP_PORT
from py2lirc.core.errors import ConfigurationError, ErrorCodes

logger = logging.getLogger(__name__)

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class ClientConfig:
    """
    Immutable configuration for a lircd connection.

    Attributes:
        socket_path: Path of lircd's Unix domain socket
        host: lircd host for TCP; when set, TCP is used instead of the socket
        port: lircd TCP port (default: 8765)
        connect_timeout: Connection timeout in seconds (default: 2.0)
        event_queue_size: Events buffered before dropping (0 = unbounded)
        log_level: Logging level name
    """

    socket_path: str = DEFAULT_SOCKET_PATH
    host: Optional[str] = None
    port: int = DEFAULT_TCP_PORT
    connect_timeout: float = 2.0
    event_queue_size: int = 100
    log_level: str = "INFO"

    @property
    def use_tcp(self) -> bool:
        return bool(self.host)

    @property
    def address(self) -> str:
        """``host:port`` for TCP connections."""
        if self.host and ":" in self.host:
            return f"[{self.host}]:{self.port}"
        return f"{self.host}:{self.port}"

    def validate(self) -> Tuple[bool, List[str]]:
        """
        Validate the configuration.

        Returns:
            Tuple of (is_valid, list_of_error_messages)

        Example:
            >>> ClientConfig(port=0, connect_timeout=-1.0).validate()
            (False, ['Port out of range (1-65535): 0', 'Timeout must be positive: -1.0'])
        """
        errors = []

        if not self.use_tcp and not self.socket_path:
            errors.append("Either socket_path or host must be set")

        if not isinstance(self.port, int) or not (1 <= self.port <= 65535):
            errors.append(f"Port out of range (1-65535): {self.port}")

        if not isinstance(self.connect_timeout, (int, float)) or self.connect_timeout <= 0:
            errors.append(f"Timeout must be positive: {self.connect_timeout}")

        if not isinstance(self.event_queue_size, int) or self.event_queue_size < 0:
            errors.append(f"Event queue size must be >= 0: {self.event_queue_size}")

        if str(self.log_level).upper() not in _LOG_LEVELS:
            errors.append(f"Unknown log level: {self.log_level}")

        return (len(errors) == 0, errors)


def config_from_dict(data: Dict[str, Any]) -> ClientConfig:
    """
    Build a ClientConfig from the parsed YAML structure.

    Raises:
        ConfigurationError: On unknown sections or keys, or invalid values
    """
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            "Configuration must be a mapping",
            error_code=ErrorCodes.CONFIG_INVALID
        )

    unknown_sections = set(data) - {"lircd", "logging"}
    if unknown_sections:
        raise ConfigurationError(
            f"Unknown configuration sections: {sorted(unknown_sections)}",
            error_code=ErrorCodes.UNKNOWN_SETTING
        )

    values: Dict[str, Any] = dict(data.get("lircd") or {})
    known = {f.name for f in fields(ClientConfig)} - {"log_level"}
    for key in values:
        if key not in known:
            raise ConfigurationError(
                f"Unknown lircd setting: {key}",
                setting_name=key,
                error_code=ErrorCodes.UNKNOWN_SETTING
            )

    logging_section = data.get("logging") or {}
    if "level" in logging_section:
        values["log_level"] = str(logging_section["level"]).upper()

    config = ClientConfig(**values)
    valid, errors = config.validate()
    if not valid:
        raise ConfigurationError(
            "Invalid configuration: " + "; ".join(errors),
            error_code=ErrorCodes.CONFIG_INVALID
        )
    return config


def load_config(path: Union[str, Path]) -> ClientConfig:
    """
    Load a ClientConfig from a YAML file.

    Args:
        path: Path to the YAML file

    Raises:
        ConfigurationError: If the file is missing, unparseable or invalid
    """
    path = Path(path)
    if not path.exists():
        raise ConfigurationError(
            f"Configuration file not found: {path}",
            error_code=ErrorCodes.CONFIG_NOT_FOUND
        )

    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Cannot parse configuration file {path}",
            error_code=ErrorCodes.CONFIG_INVALID,
            cause=e
        )

    config = config_from_dict(data)
    logger.info(f"Loaded configuration from {path}")
    return config
