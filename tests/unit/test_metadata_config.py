"""
Unit tests for configuration loading and registry construction.
"""

import json
import logging

import pytest
import yaml
from pydantic import ValidationError

from metadata_registry.config import (
    ConfigurationManager, RegistryConfig, create_registry, setup_logging
)
from metadata_registry.providers import ClockSequence, CounterSequence, StaticIdentityProvider
from metadata_registry.storage import InMemoryStore, JSONFileStore


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep NFTMETA_* variables from the host out of these tests."""
    import os
    for key in list(os.environ):
        if key.startswith("NFTMETA_"):
            monkeypatch.delenv(key)


class TestConfigurationManager:
    """Test hierarchical configuration loading."""

    def test_defaults(self):
        config = ConfigurationManager(search_paths=[]).load()
        assert config == RegistryConfig()
        assert config.storage.backend == "memory"
        assert config.sequence == "counter"

    def test_yaml_file(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text(yaml.safe_dump({
            "owner": "alice",
            "storage": {"backend": "json", "directory": str(tmp_path / "data")},
        }))

        manager = ConfigurationManager(str(path))
        config = manager.load()
        assert config.owner == "alice"
        assert config.storage.backend == "json"
        assert config.storage.compressed is False
        assert manager.sources == ["defaults", f"file:{path}"]

    def test_json_file_found_on_search_path(self, tmp_path):
        path = tmp_path / ".nftmeta.json"
        path.write_text(json.dumps({"sequence": "clock"}))

        config = ConfigurationManager(search_paths=[tmp_path / "missing.yml", path]).load()
        assert config.sequence == "clock"

    def test_environment_overrides_file(self, tmp_path, monkeypatch):
        path = tmp_path / "config.yml"
        path.write_text(yaml.safe_dump({"owner": "alice", "log_level": "INFO"}))

        monkeypatch.setenv("NFTMETA_OWNER", "bob")
        monkeypatch.setenv("NFTMETA_LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("NFTMETA_STORAGE_COMPRESSED", "true")
        monkeypatch.setenv("NFTMETA_STORAGE_LOCK_TIMEOUT", "5")

        manager = ConfigurationManager(str(path))
        config = manager.load()
        assert config.owner == "bob"
        assert config.log_level == "DEBUG"
        assert config.storage.compressed is True
        assert config.storage.lock_timeout == 5.0
        assert manager.sources[-1] == "environment"

    def test_numeric_owner_from_environment(self, monkeypatch):
        monkeypatch.setenv("NFTMETA_OWNER", "12345")
        config = ConfigurationManager(search_paths=[]).load()
        assert config.owner == "12345"

    def test_missing_explicit_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            ConfigurationManager(str(tmp_path / "nope.yml")).load()

    def test_invalid_backend(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"storage": {"backend": "postgres"}}))
        with pytest.raises(ValidationError):
            ConfigurationManager(str(path)).load()


class TestCreateRegistry:
    """Test registry construction from configuration."""

    def test_memory_registry(self):
        registry = create_registry(RegistryConfig(), StaticIdentityProvider("deployer"))
        assert registry.owner == "deployer"
        assert isinstance(registry.metadata_store.backend, InMemoryStore)
        assert registry.metadata_store.backend is not registry.uri_store.backend
        assert isinstance(registry.sequence, CounterSequence)

    def test_json_registry(self, tmp_path):
        config = RegistryConfig.model_validate({
            "owner": "alice",
            "sequence": "clock",
            "storage": {"backend": "json", "directory": str(tmp_path)},
        })
        registry = create_registry(config, StaticIdentityProvider("alice"))

        assert isinstance(registry.metadata_store.backend, JSONFileStore)
        assert isinstance(registry.sequence, ClockSequence)
        assert registry.register(1, "n", "d", "ipfs://i", []).ok
        assert (tmp_path / "metadata.json").exists()
        assert (tmp_path / "uris.json").exists()

    def test_counter_resumes_after_restart(self, tmp_path):
        config = RegistryConfig.model_validate({
            "owner": "alice",
            "storage": {"backend": "json", "directory": str(tmp_path)},
        })
        identity = StaticIdentityProvider("alice")

        first = create_registry(config, identity)
        for token_id in range(1, 6):
            assert first.register(token_id, "n", "d", "ipfs://i", []).ok
        assert first.read(5).value.updated_at == 5

        restarted = create_registry(config, identity)
        assert restarted.revise(5, "n2", "d", "ipfs://i", []).ok
        assert restarted.register(6, "n", "d", "ipfs://i", []).ok

        revised = restarted.read(5).value
        assert revised.created_at == 5
        assert revised.updated_at == 6
        assert restarted.read(6).value.created_at == 7

    def test_clock_resumes_at_stored_marker(self, tmp_path):
        config = RegistryConfig.model_validate({
            "owner": "alice",
            "sequence": "clock",
            "storage": {"backend": "json", "directory": str(tmp_path)},
        })
        identity = StaticIdentityProvider("alice")
        far_future = 10**15

        first = create_registry(config, identity, sequence=ClockSequence(floor=far_future))
        assert first.register(1, "n", "d", "ipfs://i", []).ok

        restarted = create_registry(config, identity)
        assert restarted.revise(1, "n2", "d", "ipfs://i", []).ok
        assert restarted.read(1).value.updated_at >= far_future

    def test_configured_owner_wins_over_deployer(self):
        registry = create_registry(RegistryConfig(owner="alice"), StaticIdentityProvider("bob"))
        assert registry.owner == "alice"
        assert not registry.set_uri(1, "ipfs://x").ok


def test_setup_logging_does_not_duplicate_handlers():
    first = setup_logging("DEBUG")
    handler_count = len(first.handlers)
    second = setup_logging("WARNING")

    assert first is second
    assert len(second.handlers) == handler_count
    assert second.level == logging.WARNING
