"""
Configuration Validation Module

Validates executor.yaml against Pydantic schemas and owns the active config
object. Hot reload swaps the whole object at once; a config that fails
validation never replaces the running one.

Usage:
    from tools.config_validator import validate_config_file

    errors = validate_config_file("config/executor.yaml")
    if errors:
        for error in errors:
            print(f"ERROR: {error}")
        sys.exit(1)
"""
import logging
import os
import threading
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from core.exceptions import ConfigLoadError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config/executor.yaml"


class AccountConfig(BaseModel):
    """One DCA account the executor drives"""
    model_config = ConfigDict(frozen=True)

    object_id: str = Field(pattern="^0x", description="DCA account object ID")
    input_type: str = Field(min_length=1, description="Input coin type")
    output_type: str = Field(min_length=1, description="Output coin type")
    adapter: Literal["cetus", "turbos", "flowx"] = Field(description="DEX adapter")
    pool_id: str = Field(pattern="^0x", description="Pool object ID")
    enabled: bool = Field(default=True, description="Process this account")
    description: Optional[str] = Field(default=None, description="Human description")


class DelegateeConfig(BaseModel):
    address: str = Field(default="0x0", pattern="^0x", description="Expected delegatee address")
    signer_factory: Optional[str] = Field(default=None, description="module:callable returning a TransactionSigner")
    private_key_path: Optional[str] = Field(default=None, description="Key file handed to the signer factory")
    private_key_env_var: str = Field(default="SUI_DELEGATEE_PRIVATE_KEY", description="Env var holding the key")


class SchedulerConfig(BaseModel):
    check_interval_ms: int = Field(default=60_000, ge=1000, description="Fixed interval between cycles")
    cron_expression: Optional[str] = Field(default=None, description="Crontab expression; wins over interval")
    timezone: str = Field(default="UTC", description="Timezone for cron expressions")

    @field_validator("cron_expression")
    @classmethod
    def validate_cron_fields(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        if len(v.split()) != 5:
            raise ValueError(f"cron_expression must have 5 fields, got {v!r}")
        return v


class ExecutionConfig(BaseModel):
    max_retries: int = Field(default=3, ge=0, le=10, description="Extra attempts after the first")
    retry_delay_ms: int = Field(default=5_000, ge=100, description="Fixed delay between attempts")
    gas_budget: int = Field(default=25_000_000, gt=0, description="Gas budget per transaction")
    slippage_bps: int = Field(default=100, ge=0, le=10000, description="Slippage tolerance (bps)")
    dry_run: bool = Field(default=False, description="Simulate instead of submitting")
    rpc_timeout_seconds: float = Field(default=30.0, gt=0, description="Timeout for each ledger call")


class HealthCheckConfig(BaseModel):
    enabled: bool = True
    port: int = Field(default=8080, ge=0, le=65535)
    path: str = Field(default="/health", pattern="^/")


class LoggingConfig(BaseModel):
    level: Literal["debug", "info", "warn", "warning", "error"] = "info"
    file: Optional[str] = None
    json_format: bool = Field(default=False, alias="json")

    model_config = ConfigDict(populate_by_name=True)


class AlertsConfig(BaseModel):
    webhook_url: Optional[str] = Field(default=None, description="Webhook receiving execution alerts")
    on_failure: bool = True
    on_success: bool = False
    dry_run: bool = Field(default=False, description="Log alerts instead of posting them")
    timeout_seconds: float = Field(default=5.0, gt=0)

    @field_validator("webhook_url")
    @classmethod
    def expand_and_check_url(cls, v: Optional[str]) -> Optional[str]:
        if v and "${" in v:
            v = os.path.expandvars(v)
            if "${" in v:
                # unset variable: alerts stay disabled
                v = None
        if not v:
            return None
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"webhook_url must be an http(s) URL, got {v!r}")
        return v


class MetricsConfig(BaseModel):
    enabled: bool = False
    port: int = Field(default=9100, ge=0, le=65535)


class ExecutorConfig(BaseModel):
    """Complete executor configuration"""
    version: str = "1.0.0"
    network: Literal["mainnet", "testnet", "devnet"] = "mainnet"
    rpc_url: Optional[str] = None
    delegatee: DelegateeConfig = Field(default_factory=DelegateeConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    execution: ExecutionConfig = Field(default_factory=ExecutionConfig)
    accounts: List[AccountConfig] = Field(default_factory=list)
    health_check: HealthCheckConfig = Field(default_factory=HealthCheckConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    alerts: Optional[AlertsConfig] = None
    metrics: MetricsConfig = Field(default_factory=MetricsConfig)

    @field_validator("accounts")
    @classmethod
    def validate_unique_accounts(cls, v: List[AccountConfig]) -> List[AccountConfig]:
        seen = set()
        for account in v:
            if account.object_id in seen:
                raise ValueError(f"Duplicate account object_id {account.object_id}")
            seen.add(account.object_id)
        return v


def _format_errors(exc: ValidationError) -> List[str]:
    errors = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ())) or "<root>"
        errors.append(f"{location}: {err.get('msg')}")
    return errors


def parse_config(raw: Optional[Dict[str, Any]], source: str = "<memory>") -> ExecutorConfig:
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigLoadError(source, [f"top-level document must be a mapping, got {type(raw).__name__}"])
    try:
        return ExecutorConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigLoadError(source, _format_errors(e)) from e


def load_config(path: str = DEFAULT_CONFIG_PATH) -> ExecutorConfig:
    """Load and validate a config file. A missing file yields the defaults."""
    config_path = Path(path)
    if not config_path.exists():
        logger.warning(f"Config file not found at {config_path}, using defaults")
        return ExecutorConfig()

    try:
        with open(config_path) as f:
            raw = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigLoadError(str(config_path), [f"YAML parse error: {e}"]) from e

    config = parse_config(raw, source=str(config_path))
    logger.info(f"Config loaded from {config_path} (version={config.version}, accounts={len(config.accounts)})")
    return config


def validate_config_file(path: str = DEFAULT_CONFIG_PATH) -> List[str]:
    """Validate a config file and return a list of error strings (empty when valid)."""
    try:
        load_config(path)
    except ConfigLoadError as e:
        return e.errors
    return []


class ConfigStore:
    """Holds the active ExecutorConfig and swaps it atomically on reload."""

    def __init__(self, path: str = DEFAULT_CONFIG_PATH, initial: Optional[ExecutorConfig] = None):
        self.path = path
        self._lock = threading.Lock()
        self._config = initial if initial is not None else load_config(path)

    @property
    def current(self) -> ExecutorConfig:
        return self._config

    def reload(self) -> ExecutorConfig:
        """Re-read the file. On validation failure the old config stays active."""
        new_config = load_config(self.path)
        with self._lock:
            self._config = new_config
        logger.info(f"Config reloaded (version={new_config.version}, accounts={len(new_config.accounts)})")
        return new_config

    def redacted_summary(self) -> Dict[str, Any]:
        config = self._config
        return {
            "version": config.version,
            "network": config.network,
            "accountsCount": len(config.accounts),
            "enabledAccounts": sum(1 for a in config.accounts if a.enabled),
            "dryRun": config.execution.dry_run,
            "schedule": config.scheduler.cron_expression or f"every {config.scheduler.check_interval_ms}ms",
            "alertsEnabled": bool(config.alerts and config.alerts.webhook_url),
        }


__all__ = [
    "AccountConfig",
    "ExecutorConfig",
    "ExecutionConfig",
    "SchedulerConfig",
    "AlertsConfig",
    "ConfigStore",
    "load_config",
    "parse_config",
    "validate_config_file",
]
