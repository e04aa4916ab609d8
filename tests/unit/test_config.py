"""Tests for configuration management."""

import pytest
from pydantic import ValidationError

from lattice_sync.config import ControllerSettings, get_config, reset_config, set_config


class TestControllerSettings:
    def test_defaults(self):
        config = ControllerSettings()
        assert config.region == "us-west-2"
        assert config.target_group_name_len_mode == "short"
        assert config.tg_gc_min_age_seconds == 300
        assert config.log_level == "INFO"

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("CLUSTER_VPC_ID", "vpc-123")
        monkeypatch.setenv("AWS_ACCOUNT_ID", "123456789012")
        monkeypatch.setenv("CLUSTER_NAME", "prod")
        monkeypatch.setenv("TARGET_GROUP_NAME_LEN_MODE", "LONG")
        config = ControllerSettings()
        assert config.cluster_vpc_id == "vpc-123"
        assert config.long_tg_names is True

    def test_managed_by(self):
        config = ControllerSettings(cluster_vpc_id="vpc-1", aws_account_id="123456789012", cluster_name="c")
        assert config.managed_by == "123456789012/c/vpc-1"

    def test_invalid_name_len_mode(self):
        with pytest.raises(ValidationError):
            ControllerSettings(target_group_name_len_mode="medium")

    def test_invalid_log_level(self):
        with pytest.raises(ValidationError):
            ControllerSettings(log_level="LOUD")

    def test_negative_gc_age(self):
        with pytest.raises(ValidationError):
            ControllerSettings(tg_gc_min_age_seconds=-1)

    def test_validation_errors(self):
        errors = ControllerSettings(aws_account_id="12").validation_errors()
        assert "CLUSTER_VPC_ID is required" in errors
        assert "CLUSTER_NAME is required" in errors
        assert any("12 digit" in e for e in errors)

    def test_valid_settings_have_no_errors(self, settings):
        assert settings.validation_errors() == []


class TestGlobalConfig:
    def test_get_config_is_cached(self):
        assert get_config() is get_config()

    def test_set_config(self, settings):
        assert get_config() is settings

    def test_set_invalid_config(self):
        with pytest.raises(ValueError, match="validation failed"):
            set_config(ControllerSettings())

    def test_reset_config(self, settings):
        reset_config()
        assert get_config() is not settings
