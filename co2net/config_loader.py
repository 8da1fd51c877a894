"""Configuration loader for the network query engine.

Tenant settings live in ``tenants/<tenant_id>/config.yaml``: the default schema
set, unit display preferences, a property -> dimension map for properties that
have no schema (global values), custom unit definitions and the log level.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

from .logic.units import define_unit
from .logic.value_formatter import UnitPreferences

load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_TENANT = os.environ.get("CO2NET_TENANT", "default")
DEFAULT_SCHEMA_SET = "v1.0-snapshot"


# =============================================================================
# PYDANTIC MODELS FOR CONFIGURATION VALIDATION
# =============================================================================

class TenantInfo(BaseModel):
    """Descriptive tenant metadata."""
    name: str = ""
    description: str = ""
    version: str = "1.0"


class UnitPreferenceConfig(BaseModel):
    """Preferred display units by block type and by dimension."""
    block_types: dict[str, dict[str, str]] = Field(default_factory=dict)
    dimensions: dict[str, str] = Field(default_factory=dict)


class LoggingConfig(BaseModel):
    level: str = "INFO"


# =============================================================================
# CONFIG CONTAINER
# =============================================================================

@dataclass
class NetworkConfig:
    """Validated tenant configuration."""
    tenant_id: str
    tenant: TenantInfo = field(default_factory=TenantInfo)
    schema_set: str = DEFAULT_SCHEMA_SET
    unit_preferences: UnitPreferenceConfig = field(default_factory=UnitPreferenceConfig)
    property_dimensions: dict[str, str] = field(default_factory=dict)
    custom_units: dict[str, str] = field(default_factory=dict)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    config_path: Optional[str] = None

    def unit_preferences_for(self, overrides: Optional[dict[str, str]] = None) -> UnitPreferences:
        """Unit preferences for one request, with per-call overrides on top."""
        return UnitPreferences(
            query_overrides=dict(overrides or {}),
            block_types={k: dict(v) for k, v in self.unit_preferences.block_types.items()},
            dimensions=dict(self.unit_preferences.dimensions),
            property_dimensions=dict(self.property_dimensions),
        )

    def register_custom_units(self) -> None:
        for name, expression in self.custom_units.items():
            define_unit(name, expression)


_PACKAGE_DIR = Path(__file__).parent
_TENANTS_DIR = _PACKAGE_DIR / "tenants"


def _resolve_config_path(tenant_id: str) -> Path:
    return _TENANTS_DIR / tenant_id / "config.yaml"


def get_available_tenants() -> list[dict]:
    """Tenants discovered under ``tenants/``."""
    tenants = []
    if not _TENANTS_DIR.exists():
        return tenants
    for tenant_dir in sorted(_TENANTS_DIR.iterdir()):
        config_path = tenant_dir / "config.yaml"
        if tenant_dir.is_dir() and config_path.exists():
            with open(config_path, "r", encoding="utf-8") as f:
                raw = yaml.safe_load(f) or {}
            meta = raw.get("tenant", {})
            tenants.append({
                "id": tenant_dir.name,
                "name": meta.get("name", tenant_dir.name),
                "description": meta.get("description", ""),
                "config_file": str(config_path),
            })
    return tenants


def load_network_config(config_path: Optional[str] = None, tenant_id: Optional[str] = None) -> NetworkConfig:
    """Load and validate a tenant configuration from YAML.

    Args:
        config_path: Explicit path. Defaults to ``$CO2NET_CONFIG``, then the tenant directory.
        tenant_id: Tenant identifier. If None, uses DEFAULT_TENANT.

    Raises:
        ValueError: If no config file exists for the tenant.
        pydantic.ValidationError: If a section has the wrong shape.
    """
    if tenant_id is None:
        tenant_id = DEFAULT_TENANT
    if config_path is None:
        config_path = os.environ.get("CO2NET_CONFIG") or str(_resolve_config_path(tenant_id))

    path = Path(config_path)
    if not path.exists():
        available = [t["id"] for t in get_available_tenants()]
        raise ValueError(f"No config for tenant '{tenant_id}' at {path}. Available: {available}")

    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    config = NetworkConfig(
        tenant_id=tenant_id,
        tenant=TenantInfo(**raw.get("tenant", {})),
        schema_set=raw.get("schema_set", DEFAULT_SCHEMA_SET),
        unit_preferences=UnitPreferenceConfig(**(raw.get("unit_preferences") or {})),
        property_dimensions=dict(raw.get("property_dimensions") or {}),
        custom_units=dict(raw.get("custom_units") or {}),
        logging=LoggingConfig(**(raw.get("logging") or {})),
        config_path=str(path),
    )
    logger.info(f"[Config] Loaded tenant '{tenant_id}' from {path}")
    return config


def configure_logging(config: NetworkConfig) -> None:
    """Apply the configured log level to the package logger."""
    level = logging.getLevelName(config.logging.level.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level '{config.logging.level}'")
    logging.getLogger("co2net").setLevel(level)


# =============================================================================
# GLOBAL CONFIG CACHE
# =============================================================================

_configs: dict[str, NetworkConfig] = {}


def get_config(tenant_id: Optional[str] = None) -> NetworkConfig:
    """Cached configuration for a tenant; custom units are registered on first load."""
    global _configs

    if tenant_id is None:
        tenant_id = DEFAULT_TENANT

    if tenant_id not in _configs:
        config = load_network_config(tenant_id=tenant_id)
        config.register_custom_units()
        _configs[tenant_id] = config

    return _configs[tenant_id]


def reload_config(config_path: Optional[str] = None, tenant_id: Optional[str] = None) -> NetworkConfig:
    """Force reload of a tenant configuration."""
    global _configs

    if tenant_id is None:
        tenant_id = DEFAULT_TENANT

    config = load_network_config(config_path, tenant_id)
    config.register_custom_units()
    _configs[tenant_id] = config
    return config
