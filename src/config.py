# Copyright 2025 Canonical
# See LICENSE file for licensing details.
"""Operator configuration read from the process environment."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Mapping, Optional

from literals import CEPH_COMMAND_TIMEOUT, CONTROLLER_NAME, DEFAULT_CONFIG_DIR

log = logging.getLogger(__name__)

LOG_LEVELS = ("debug", "info", "warning")


class ConfigError(ValueError):
    """Raised when an environment variable holds an unusable value."""


@dataclass(frozen=True)
class OperatorConfig:
    """Settings for a running operator."""

    namespaces: List[str] = field(default_factory=list)
    ceph_config_dir: Path = DEFAULT_CONFIG_DIR
    ceph_timeout: int = CEPH_COMMAND_TIMEOUT
    log_level: str = "info"
    field_manager: str = CONTROLLER_NAME

    @property
    def clusterwide(self) -> bool:
        """True when no namespace restriction is configured."""
        return not self.namespaces

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "OperatorConfig":
        """Build the configuration from OPERATOR_* environment variables.

        Raises:
            ConfigError: if a variable is present but invalid.
        """
        env = os.environ if environ is None else environ

        namespaces = (env.get("OPERATOR_NAMESPACES") or "").replace(",", " ").split()

        config_dir = env.get("OPERATOR_CEPH_CONFIG_DIR")
        ceph_config_dir = Path(config_dir).resolve() if config_dir else DEFAULT_CONFIG_DIR

        raw_timeout = env.get("OPERATOR_CEPH_TIMEOUT") or str(CEPH_COMMAND_TIMEOUT)
        try:
            ceph_timeout = int(raw_timeout)
        except ValueError as e:
            raise ConfigError(f"Invalid OPERATOR_CEPH_TIMEOUT={raw_timeout!r}") from e
        if ceph_timeout <= 0:
            raise ConfigError(f"OPERATOR_CEPH_TIMEOUT must be positive, got {ceph_timeout}")

        log_level = (env.get("OPERATOR_LOG_LEVEL") or "info").lower()
        if log_level not in LOG_LEVELS:
            raise ConfigError(
                f"Invalid OPERATOR_LOG_LEVEL={log_level!r}, must be one of {', '.join(LOG_LEVELS)}"
            )

        config = cls(
            namespaces=namespaces,
            ceph_config_dir=ceph_config_dir,
            ceph_timeout=ceph_timeout,
            log_level=log_level,
            field_manager=env.get("OPERATOR_FIELD_MANAGER") or CONTROLLER_NAME,
        )
        log.debug("Loaded operator configuration %s", config)
        return config
