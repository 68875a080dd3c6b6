"""Tests for config module"""

import logging
import os

import pytest
from pydantic import ValidationError

from gcs_client.config import Config, get_config, setup_logging
from gcs_client.consts import (
    METADATA_TOKEN_URL,
    OAUTH2_TOKEN_URL,
    STORAGE_READ_WRITE_SCOPE,
)


class TestConfig:
    """Test Config class functionality"""

    def test_config_defaults_and_creation(self, clean_config):
        """Test config creation and default values"""
        assert clean_config.credentials_file is None
        assert clean_config.token_url == OAUTH2_TOKEN_URL
        assert clean_config.metadata_token_url == METADATA_TOKEN_URL
        assert clean_config.scopes == [STORAGE_READ_WRITE_SCOPE]
        assert clean_config.log_level == "INFO"
        assert clean_config.timeout_seconds == 30

    def test_config_env_override(self, clean_env):
        """Test environment variable override"""
        os.environ["GCSCLIENT_CREDENTIALS_FILE"] = "/etc/gcs/key.json"
        os.environ["GCSCLIENT_TIMEOUT_SECONDS"] = "90"
        try:
            config = Config()
            assert config.credentials_file == "/etc/gcs/key.json"
            assert config.timeout_seconds == 90
        finally:
            os.environ.pop("GCSCLIENT_CREDENTIALS_FILE", None)
            os.environ.pop("GCSCLIENT_TIMEOUT_SECONDS", None)

    def test_scopes_from_env_json(self, clean_env):
        """List settings are read from JSON in the environment"""
        os.environ["GCSCLIENT_SCOPES"] = '["scope-a", "scope-b"]'
        try:
            assert Config().scopes == ["scope-a", "scope-b"]
        finally:
            os.environ.pop("GCSCLIENT_SCOPES", None)

    @pytest.mark.parametrize("log_level", ["DEBUG", "INFO", "WARNING", "ERROR"])
    def test_valid_log_levels(self, log_level):
        """Test that all valid log levels are accepted"""
        config = Config(log_level=log_level)
        assert config.log_level == log_level

    @pytest.mark.parametrize(
        "invalid_level", ["TRACE", "debug", "info", "FATAL", "NONE"]
    )
    def test_invalid_log_levels(self, invalid_level):
        """Test that invalid log levels are rejected"""
        with pytest.raises(ValidationError):
            Config(log_level=invalid_level)

    def test_timeout_validation(self):
        """Test timeout seconds validation"""
        config = Config(timeout_seconds=120)
        assert config.timeout_seconds == 120

        with pytest.raises(ValidationError):
            Config(timeout_seconds=0)

        with pytest.raises(ValidationError):
            Config(timeout_seconds=500)

    def test_get_config_is_cached(self):
        assert get_config() is get_config()


class TestSetupLogging:
    """Test logging configuration"""

    def test_setup_logging_sets_level(self):
        logger = setup_logging("DEBUG")

        assert logger.name == "gcs-client"
        assert logging.getLogger().level == logging.DEBUG
        setup_logging("INFO")

    def test_unknown_level_falls_back_to_info(self):
        setup_logging("CHATTY")

        assert logging.getLogger().level == logging.INFO

    def test_default_level_comes_from_config(self, clean_env):
        """Without an argument the configured log level is applied"""
        os.environ["GCSCLIENT_LOG_LEVEL"] = "WARNING"
        get_config.cache_clear()
        try:
            setup_logging()
            assert logging.getLogger().level == logging.WARNING
        finally:
            os.environ.pop("GCSCLIENT_LOG_LEVEL", None)
            get_config.cache_clear()
            setup_logging("INFO")
