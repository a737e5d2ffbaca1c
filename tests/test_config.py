"""Test suite for config.py"""

import pytest

from funcapp_inventory.config import load_config
from funcapp_inventory.errors import ConfigError

_ENV_VARS = [
    "AZURE_SUBSCRIPTION_IDS",
    "AZURE_SUBSCRIPTION_ID",
    "FUNCAPP_RESOURCE_GROUPS",
    "FUNCAPP_DISCOVERY_STRATEGY",
    "FUNCAPP_MAX_WORKERS",
    "FUNCAPP_MAX_RETRIES",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for var in _ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)


class TestLoadConfig:
    """Test load_config function"""

    def test_defaults(self, tmp_path):
        cfg = load_config(tmp_path / "missing.env")
        assert cfg.azure.subscription_ids == []
        assert cfg.azure.resource_groups == []
        assert cfg.discovery.strategy == "auto"
        assert cfg.discovery.max_workers == 4
        assert cfg.discovery.max_retries == 3

    def test_environment_values(self, monkeypatch, tmp_path):
        monkeypatch.setenv("AZURE_SUBSCRIPTION_IDS", "sub-1, sub-2,,")
        monkeypatch.setenv("FUNCAPP_RESOURCE_GROUPS", "rg-a,rg-b")
        monkeypatch.setenv("FUNCAPP_DISCOVERY_STRATEGY", "Resource-Group")
        monkeypatch.setenv("FUNCAPP_MAX_WORKERS", "8")

        cfg = load_config(tmp_path / "missing.env")

        assert cfg.azure.subscription_ids == ["sub-1", "sub-2"]
        assert cfg.azure.resource_groups == ["rg-a", "rg-b"]
        assert cfg.discovery.strategy == "resource-group"
        assert cfg.discovery.max_workers == 8

    def test_single_subscription_fallback(self, monkeypatch, tmp_path):
        monkeypatch.setenv("AZURE_SUBSCRIPTION_ID", "sub-only")
        assert load_config(tmp_path / "missing.env").azure.subscription_ids == ["sub-only"]

    def test_dotenv_file(self, monkeypatch, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text(
            "# comment\n"
            "AZURE_SUBSCRIPTION_IDS=sub-from-file\n"
            "FUNCAPP_MAX_RETRIES = 5\n",
            encoding="utf-8",
        )
        # The .env loader writes into os.environ; register the keys so monkeypatch removes them afterwards.
        monkeypatch.setenv("AZURE_SUBSCRIPTION_IDS", "")
        monkeypatch.delenv("AZURE_SUBSCRIPTION_IDS")
        monkeypatch.setenv("FUNCAPP_MAX_RETRIES", "")
        monkeypatch.delenv("FUNCAPP_MAX_RETRIES")

        cfg = load_config(env_file)

        assert cfg.azure.subscription_ids == ["sub-from-file"]
        assert cfg.discovery.max_retries == 5

    def test_environment_wins_over_dotenv(self, monkeypatch, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("AZURE_SUBSCRIPTION_IDS=sub-from-file\n", encoding="utf-8")
        monkeypatch.setenv("AZURE_SUBSCRIPTION_IDS", "sub-from-env")

        assert load_config(env_file).azure.subscription_ids == ["sub-from-env"]

    def test_invalid_strategy(self, monkeypatch, tmp_path):
        monkeypatch.setenv("FUNCAPP_DISCOVERY_STRATEGY", "telepathy")
        with pytest.raises(ConfigError):
            load_config(tmp_path / "missing.env")

    @pytest.mark.parametrize("value", ["many", "0", "-2"])
    def test_invalid_worker_count(self, monkeypatch, tmp_path, value):
        monkeypatch.setenv("FUNCAPP_MAX_WORKERS", value)
        with pytest.raises(ConfigError):
            load_config(tmp_path / "missing.env")
