"""Configuration for the chainwatch consensus client."""

import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Union

import yaml

from .types import BLOCK_TYPES

logger = logging.getLogger(__name__)

DEFAULT_BLOCK_VERSIONS = ("bellatrix", "capella", "deneb", "electra", "fulu")

EXECUTION_HASH_POLICIES = ("direct", "backfill")
HEAD_OVERFLOW_POLICIES = ("block", "drop_oldest")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class Config:
    """Client configuration.

    Protocol parameters default to mainnet values and can be overridden to
    run against other networks.
    """

    beacon_url: str = "http://localhost:5052"
    request_timeout: float = 30.0
    cache_size: int = 1024
    slots_per_epoch: int = 32
    gas_elasticity_multiplier: int = 2
    base_fee_change_denominator: int = 8
    block_versions: tuple[str, ...] = field(default_factory=lambda: DEFAULT_BLOCK_VERSIONS)
    execution_hash_policy: str = "direct"
    head_queue_capacity: int = 1
    head_overflow_policy: str = "block"
    metrics_port: int = 0
    log_level: str = "INFO"

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "Config":
        """Load configuration from a yaml mapping."""
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file {path} must contain a mapping")
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict) -> "Config":
        known = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in data.items():
            name = key.lower().replace("-", "_")
            if name not in known:
                logger.warning(f"Ignoring unknown config key: {key}")
                continue
            kwargs[name] = value
        if "block_versions" in kwargs:
            kwargs["block_versions"] = tuple(str(v).lower() for v in kwargs["block_versions"])
        config = cls(**kwargs)
        config.validate()
        return config

    def validate(self) -> None:
        """Raise ValueError on settings the client cannot run with."""
        if self.cache_size <= 0:
            raise ValueError(f"cache_size must be positive, got {self.cache_size}")
        if self.slots_per_epoch <= 0:
            raise ValueError(f"slots_per_epoch must be positive, got {self.slots_per_epoch}")
        if self.gas_elasticity_multiplier <= 0:
            raise ValueError("gas_elasticity_multiplier must be positive")
        if self.base_fee_change_denominator <= 0:
            raise ValueError("base_fee_change_denominator must be positive")
        if self.head_queue_capacity <= 0:
            raise ValueError("head_queue_capacity must be positive")
        if self.request_timeout <= 0:
            raise ValueError("request_timeout must be positive")
        if self.execution_hash_policy not in EXECUTION_HASH_POLICIES:
            raise ValueError(f"Unknown execution_hash_policy: {self.execution_hash_policy}")
        if self.head_overflow_policy not in HEAD_OVERFLOW_POLICIES:
            raise ValueError(f"Unknown head_overflow_policy: {self.head_overflow_policy}")
        if str(self.log_level).upper() not in LOG_LEVELS:
            raise ValueError(f"Unknown log_level: {self.log_level}")
        if not self.block_versions:
            raise ValueError("block_versions must not be empty")
        unsupported = set(self.block_versions) - set(BLOCK_TYPES)
        if unsupported:
            raise ValueError(f"Unsupported block_versions: {sorted(unsupported)}")

    @property
    def backfill_enabled(self) -> bool:
        return self.execution_hash_policy == "backfill"
