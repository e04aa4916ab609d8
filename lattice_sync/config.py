"""
Configuration Management for lattice_sync

Settings are read from the controller's environment with pydantic-settings.
A process-wide instance is available through ``get_config``; tests and
embedding controllers can replace it with ``set_config``.
"""

from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ControllerSettings(BaseSettings):
    """Identity and behaviour of the controller instance running the engine."""

    cluster_vpc_id: str = Field(default="", description="VPC the controller runs in")
    aws_account_id: str = Field(default="", description="Account that owns managed resources")
    region: str = "us-west-2"
    cluster_name: str = Field(default="", description="Cluster name used in ownership tags")
    default_service_network: str = ""
    target_group_name_len_mode: str = Field(
        default="short", description="'long' adds route and VPC to target group names"
    )
    tg_gc_min_age_seconds: int = Field(
        default=300, description="Grace period before an unused target group is collected"
    )
    log_level: str = "INFO"
    log_format: str = "console"

    # Unprefixed: names match the controller deployment manifests.
    model_config = SettingsConfigDict(env_prefix="", case_sensitive=False)

    @field_validator("target_group_name_len_mode")
    @classmethod
    def validate_name_len_mode(cls, v):
        v = v.lower()
        if v not in ("short", "long"):
            raise ValueError("TARGET_GROUP_NAME_LEN_MODE must be 'short' or 'long'")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        v = v.upper()
        if v not in _LOG_LEVELS:
            raise ValueError(f"LOG_LEVEL must be one of {_LOG_LEVELS}")
        return v

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v):
        if v not in ("console", "json"):
            raise ValueError("LOG_FORMAT must be 'console' or 'json'")
        return v

    @field_validator("tg_gc_min_age_seconds")
    @classmethod
    def validate_gc_age(cls, v):
        if v < 0:
            raise ValueError("TG_GC_MIN_AGE_SECONDS must be >= 0")
        return v

    @property
    def managed_by(self) -> str:
        """Ownership tag value identifying this controller instance."""
        return f"{self.aws_account_id}/{self.cluster_name}/{self.cluster_vpc_id}"

    @property
    def long_tg_names(self) -> bool:
        return self.target_group_name_len_mode == "long"

    def validation_errors(self) -> List[str]:
        """Return a list of problems that make this configuration unusable."""
        errors = []

        if not self.cluster_vpc_id:
            errors.append("CLUSTER_VPC_ID is required")
        if not self.aws_account_id:
            errors.append("AWS_ACCOUNT_ID is required")
        elif not self.aws_account_id.isdigit() or len(self.aws_account_id) != 12:
            errors.append("AWS_ACCOUNT_ID must be a 12 digit account id")
        if not self.cluster_name:
            errors.append("CLUSTER_NAME is required")

        return errors

    def __str__(self) -> str:
        return (
            f"ControllerSettings(vpc={self.cluster_vpc_id}, account={self.aws_account_id}, "
            f"cluster={self.cluster_name}, region={self.region})"
        )


# Global configuration instance
_global_config: Optional[ControllerSettings] = None


def get_config() -> ControllerSettings:
    """Get the global configuration instance."""
    global _global_config
    if _global_config is None:
        _global_config = ControllerSettings()
    return _global_config


def set_config(config: ControllerSettings):
    """Set the global configuration instance."""
    global _global_config

    errors = config.validation_errors()
    if errors:
        raise ValueError(f"Configuration validation failed: {errors}")

    _global_config = config


def reset_config():
    """Reset the global configuration to default."""
    global _global_config
    _global_config = None
