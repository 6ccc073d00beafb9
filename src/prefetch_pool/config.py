"""
Configuration management for the prefetch pool manager

Provides environment-based manager settings with sensible defaults and a
loader for pool policies stored as YAML or JSON.
"""

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import ValidationError

from prefetch_pool.core.errors import ConfigurationError, ErrorCode, PolicyValidationError
from prefetch_pool.core.models import PoolPolicy

logger = logging.getLogger(__name__)


@dataclass
class ManagerConfig:
    """Settings shared by every pool managed by one PrefetchManager"""

    # Expiry sweep cadence in seconds
    sweep_interval: float = 60.0

    # Per-fetch timeout in seconds; None waits for the provider indefinitely
    fetch_timeout: Optional[float] = None

    # Logging
    log_level: str = "INFO"
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    def __post_init__(self):
        """Load configuration from environment variables"""
        self.sweep_interval = float(os.getenv('PREFETCH_SWEEP_INTERVAL', str(self.sweep_interval)))

        timeout = os.getenv('PREFETCH_FETCH_TIMEOUT')
        if timeout:
            self.fetch_timeout = float(timeout)

        self.log_level = os.getenv('PREFETCH_LOG_LEVEL', self.log_level)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'sweep_interval': self.sweep_interval,
            'fetch_timeout': self.fetch_timeout,
            'log_level': self.log_level
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ManagerConfig':
        known = {k: v for k, v in data.items() if k in ('sweep_interval', 'fetch_timeout', 'log_level', 'log_format')}
        return cls(**known)

    def validate(self) -> bool:
        if self.sweep_interval <= 0:
            raise ConfigurationError(
                "sweep_interval must be positive",
                data={"sweep_interval": self.sweep_interval}
            )

        if self.fetch_timeout is not None and self.fetch_timeout <= 0:
            raise ConfigurationError(
                "fetch_timeout must be positive",
                data={"fetch_timeout": self.fetch_timeout}
            )

        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ConfigurationError(
                f"Unknown log level {self.log_level}",
                data={"log_level": self.log_level}
            )

        return True


def setup_logging(config: ManagerConfig):
    """Setup logging based on configuration"""
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper()),
        format=config.log_format
    )

    logging.getLogger('aiohttp').setLevel(logging.WARNING)

    if config.log_level.upper() == 'DEBUG':
        logging.getLogger('prefetch_pool').setLevel(logging.DEBUG)


def _read_document(file_path: str) -> Dict[str, Any]:
    path = Path(file_path)
    if not path.exists():
        raise ConfigurationError(
            f"Policy file not found: {file_path}",
            code=ErrorCode.POLICY_FILE_NOT_FOUND,
            data={"path": str(path)}
        )

    with open(path, 'r') as f:
        if path.suffix.lower() in ['.yaml', '.yml']:
            data = yaml.safe_load(f)
        elif path.suffix.lower() == '.json':
            data = json.load(f)
        else:
            raise ConfigurationError(
                f"Unsupported policy file format: {path.suffix}",
                code=ErrorCode.POLICY_FILE_UNSUPPORTED,
                data={"path": str(path)}
            )

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise PolicyValidationError(
            "Policy document must be a mapping with a 'pools' list",
            data={"path": str(path)}
        )
    return data


def load_policies_from_dict(data: Dict[str, Any]) -> List[PoolPolicy]:
    """
    Build policies from a parsed document.

    Expects `{"pools": [{"key": ..., "kind": ..., ...}, ...]}`. Keys must be
    unique; duplicates are rejected here rather than at configure() time.
    """
    entries = data.get('pools', [])
    if not isinstance(entries, list):
        raise PolicyValidationError("'pools' must be a list")

    policies = []
    seen = set()
    for index, entry in enumerate(entries):
        if not isinstance(entry, dict):
            raise PolicyValidationError(
                f"Pool entry {index} must be a mapping",
                data={"index": index}
            )
        try:
            policy = PoolPolicy(**entry)
        except ValidationError as e:
            errors = [
                f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
                for err in e.errors()
            ]
            raise PolicyValidationError(
                f"Invalid pool entry {index}: {'; '.join(errors)}",
                data={"index": index, "key": entry.get('key'), "errors": errors},
                cause=e
            )

        if policy.key in seen:
            raise PolicyValidationError(
                f"Duplicate pool key {policy.key}",
                data={"index": index, "key": policy.key}
            )
        seen.add(policy.key)
        policies.append(policy)

    return policies


def load_policies_from_file(file_path: str) -> List[PoolPolicy]:
    """Load pool policies from a YAML or JSON file"""
    return load_policies_from_dict(_read_document(file_path))


def load_manager_config_from_file(file_path: str) -> ManagerConfig:
    """Read top-level manager settings (sweep_interval, fetch_timeout, log_level) from a policy file"""
    return ManagerConfig.from_dict(_read_document(file_path))
