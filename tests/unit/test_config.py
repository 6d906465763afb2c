"""
Tests for configuration loading, display helpers and logging setup.
"""

import logging

import pytest

from aloe.core.config import DEFAULT_FEES, ClientConfig, load_config
from aloe.core.errors import ConfigError
from aloe.utils.format import (
    format_block_duration,
    format_credits,
    generate_auction_id,
    parse_credits_to_micro,
    truncate_address,
)
from aloe.utils.logger import AloeLogger, get_logger, setup_logging


ENV_VARS = [
    "ALOE_API_URL",
    "ALOE_NETWORK",
    "ALOE_PROGRAM_ID",
    "ALOE_DATA_DIR",
    "ALOE_LOG_DIR",
    "ALOE_POLL_INTERVAL",
    "ALOE_REQUEST_TIMEOUT",
]


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    for name in ENV_VARS:
        # setenv first so teardown also undoes values load_dotenv writes
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    # Keep load_dotenv from finding a developer's .env
    monkeypatch.chdir(tmp_path)
    return monkeypatch


# =============================================================================
# Config Tests
# =============================================================================


class TestClientConfig:

    def test_defaults(self):
        config = ClientConfig()
        assert config.program_id == "aloe_auction_v2.aleo"
        assert config.network == "testnet"
        assert config.block_time_seconds == 10
        assert config.fee_for("place_bid") == 500_000
        assert config.fee_for("create_auction") == 100_000

    def test_fees_are_per_instance(self):
        config = ClientConfig()
        config.fees["place_bid"] = 1
        assert DEFAULT_FEES["place_bid"] == 500_000
        assert ClientConfig().fee_for("place_bid") == 500_000

    def test_no_directories_until_asked(self, tmp_path):
        config = ClientConfig(data_dir=tmp_path / "data")
        assert not config.data_dir.exists()
        config.ensure_dirs()
        assert config.data_dir.is_dir()
        assert config.db_path == tmp_path / "data" / "aloe.db"


class TestLoadConfig:

    def test_environment_overrides(self, clean_env, tmp_path):
        clean_env.setenv("ALOE_NETWORK", "mainnet")
        clean_env.setenv("ALOE_POLL_INTERVAL", "2.5")
        clean_env.setenv("ALOE_DATA_DIR", str(tmp_path / "d"))

        config = load_config()
        assert config.network == "mainnet"
        assert config.poll_interval == 2.5
        assert config.data_dir == tmp_path / "d"
        assert config.network_url.endswith("/mainnet")

    def test_env_file(self, clean_env, tmp_path):
        env_file = tmp_path / "custom.env"
        env_file.write_text("ALOE_PROGRAM_ID=aloe_auction_v3.aleo\n")
        assert load_config(env_file=str(env_file)).program_id == "aloe_auction_v3.aleo"

    def test_data_dir_argument_wins(self, clean_env, tmp_path):
        clean_env.setenv("ALOE_DATA_DIR", "/nowhere")
        config = load_config(data_dir=str(tmp_path / "cli"))
        assert config.data_dir == tmp_path / "cli"

    def test_missing_env_file(self, clean_env, tmp_path):
        with pytest.raises(ConfigError):
            load_config(env_file=str(tmp_path / "missing.env"))

    def test_invalid_number(self, clean_env):
        clean_env.setenv("ALOE_REQUEST_TIMEOUT", "soon")
        with pytest.raises(ConfigError, match="ALOE_REQUEST_TIMEOUT"):
            load_config()

    def test_non_positive_poll_interval(self, clean_env):
        clean_env.setenv("ALOE_POLL_INTERVAL", "0")
        with pytest.raises(ConfigError):
            load_config()


# =============================================================================
# Display Helpers
# =============================================================================


class TestFormat:

    def test_format_credits(self):
        assert format_credits(1_500_000) == "1.5 credits"
        assert format_credits(1_000_000) == "1 credits"
        assert format_credits(1) == "0.000001 credits"
        assert format_credits(2_500_000_000) == "2,500 credits"

    def test_parse_credits(self):
        assert parse_credits_to_micro("1.5") == 1_500_000
        assert parse_credits_to_micro("0.0000019") == 1
        with pytest.raises(ValueError):
            parse_credits_to_micro("lots")
        with pytest.raises(ValueError):
            parse_credits_to_micro("-1")

    def test_block_duration(self):
        assert format_block_duration(6) == "~1 min"
        assert format_block_duration(360) == "~1 hour"
        assert format_block_duration(720) == "~2 hours"
        assert format_block_duration(360 * 48) == "~2 days"

    def test_truncate_address(self):
        address = "aleo1" + "a" * 58
        assert truncate_address(address) == "aleo1aaaaaa...aaaaaa"
        assert truncate_address("aleo1short") == "aleo1short"

    def test_auction_ids_are_numeric_and_distinct(self):
        ids = {generate_auction_id() for _ in range(20)}
        assert len(ids) == 20
        assert all(i.isdigit() for i in ids)


class TestLogger:

    def test_child_loggers(self):
        logger = get_logger("chain")
        assert logger.name == "aloe.chain"
        assert logging.getLogger("aloe").handlers

    def test_explicit_setup_replaces_handlers(self, tmp_path):
        get_logger("client")
        setup_logging(level=logging.DEBUG, log_dir=tmp_path / "logs", log_to_file=True)
        try:
            root = logging.getLogger("aloe")
            assert len(root.handlers) == 2
            assert AloeLogger.log_file() == tmp_path / "logs" / "aloe.log"

            get_logger("client").debug("traced")
            for handler in root.handlers:
                handler.flush()
            assert "traced" in AloeLogger.log_file().read_text()
        finally:
            setup_logging(level=logging.INFO)

        assert len(logging.getLogger("aloe").handlers) == 1
        assert AloeLogger.log_file() is None
