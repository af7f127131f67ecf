"""Tests for YAML + environment configuration."""

import pytest
import yaml

from tessera.config import ConfigError, ConfigManager, ConfigValue, TesseraConfig
from tessera.hardening import ValidationError
from tessera.registry import AssetRegistry


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in (
        "TESSERA_COLLECTION_NAME",
        "TESSERA_COLLECTION_SYMBOL",
        "TESSERA_COLLECTION_CAPACITY",
        "TESSERA_BASE_PREFIX",
        "TESSERA_ADMIN",
        "TESSERA_LOG_LEVEL",
        "TESSERA_LOG_FORMAT",
        "TESSERA_AUDIT",
    ):
        monkeypatch.delenv(var, raising=False)


class TestConfigValue:

    def test_default_and_set(self):
        value = ConfigValue(default=5, validator=lambda x: x > 0)
        assert value.get() == 5
        value.set(10)
        assert value.get() == 10
        value.reset()
        assert value.get() == 5

    def test_rejects_wrong_type_and_invalid(self):
        value = ConfigValue(default=5, validator=lambda x: x > 0)
        with pytest.raises(ConfigError):
            value.set("10")
        with pytest.raises(ConfigError):
            value.set(True)
        with pytest.raises(ConfigError):
            value.set(0)

    def test_env_overrides_set_value(self, monkeypatch):
        value = ConfigValue(default=5, env_var="TESSERA_TEST_CAP")
        value.set(7)
        monkeypatch.setenv("TESSERA_TEST_CAP", "9")
        assert value.get() == 9

    @pytest.mark.parametrize("raw,expected", [("true", True), ("1", True), ("off", False)])
    def test_bool_coercion(self, monkeypatch, raw, expected):
        value = ConfigValue(default=True, env_var="TESSERA_TEST_FLAG")
        monkeypatch.setenv("TESSERA_TEST_FLAG", raw)
        assert value.get() is expected

    def test_bad_int_from_env(self, monkeypatch):
        value = ConfigValue(default=5, env_var="TESSERA_TEST_CAP")
        monkeypatch.setenv("TESSERA_TEST_CAP", "many")
        with pytest.raises(ConfigError):
            value.get()

    def test_change_callback(self):
        value = ConfigValue(default="info")
        changes = []
        value.on_change(lambda old, new: changes.append((old, new)))
        value.set("debug")
        assert changes == [(None, "debug")]

    def test_config_error_is_validation_error(self):
        assert issubclass(ConfigError, ValidationError)
        assert ConfigError("x").code == "CONFIG_ERROR"


class TestConfigManager:

    def test_defaults(self):
        config = ConfigManager().config
        assert config.collection.display_name.get() == "MyNFTCollection"
        assert config.collection.symbol.get() == "MNFT"
        assert config.collection.capacity.get() == 5
        assert config.collection.admin.get() == "admin"

    def test_load_yaml_file(self, tmp_path):
        path = tmp_path / "tessera.yaml"
        path.write_text(yaml.safe_dump({
            "collection": {"display_name": "Gallery", "symbol": "GAL", "capacity": 100},
            "observability": {"log_level": "debug", "audit_enabled": False},
        }))
        manager = ConfigManager()
        manager.load_from_file(path)

        assert manager.get("collection.capacity") == 100
        assert manager.get("observability.log_level") == "debug"
        assert manager.get("observability.audit_enabled") is False
        assert manager.loaded_paths == [path]

    def test_empty_file_is_accepted(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        manager = ConfigManager()
        manager.load_from_file(path)
        assert manager.get("collection.capacity") == 5

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            ConfigManager().load_from_file(tmp_path / "nope.yaml")

    def test_malformed_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("collection: [unclosed")
        with pytest.raises(ConfigError, match="Malformed"):
            ConfigManager().load_from_file(path)

    def test_non_mapping_top_level(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigError):
            ConfigManager().load_from_file(path)

    def test_unknown_key(self, tmp_path):
        path = tmp_path / "typo.yaml"
        path.write_text("collection:\n  capacty: 10\n")
        with pytest.raises(ConfigError, match="Unknown config key"):
            ConfigManager().load_from_file(path)

    def test_invalid_value(self, tmp_path):
        path = tmp_path / "zero.yaml"
        path.write_text("collection:\n  capacity: 0\n")
        with pytest.raises(ConfigError):
            ConfigManager().load_from_file(path)

    def test_set_by_path(self):
        manager = ConfigManager()
        manager.set("collection.symbol", "ART")
        assert manager.get("collection.symbol") == "ART"
        with pytest.raises(ConfigError):
            manager.set("collection", "ART")

    def test_env_override_and_validate(self, monkeypatch):
        manager = ConfigManager()
        monkeypatch.setenv("TESSERA_COLLECTION_CAPACITY", "12")
        monkeypatch.setenv("TESSERA_LOG_LEVEL", "loud")
        assert manager.get("collection.capacity") == 12
        errors = manager.validate()
        assert len(errors) == 1
        assert errors[0].startswith("observability.log_level")

    def test_load_defaults_from_cwd(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        (tmp_path / "tessera.yaml").write_text("collection:\n  symbol: CWD\n")
        manager = ConfigManager()
        loaded = manager.load_defaults()
        assert any(p.name == "tessera.yaml" for p in loaded)
        assert manager.get("collection.symbol") == "CWD"

    def test_export_schema(self):
        schema = ConfigManager().export_schema()
        capacity = schema["properties"]["collection"]["capacity"]
        assert capacity["type"] == "int"
        assert capacity["env_var"] == "TESSERA_COLLECTION_CAPACITY"


class TestTesseraConfig:

    def test_to_dict_and_yaml(self):
        config = TesseraConfig()
        d = config.to_dict()
        assert d["collection"]["capacity"] == 5
        assert yaml.safe_load(config.to_yaml()) == d

    def test_build_registry_from_config(self):
        manager = ConfigManager()
        manager.set("collection.capacity", 3)
        manager.set("collection.admin", "curator")
        registry = AssetRegistry.from_config(manager.config)

        assert registry.capacity == 3
        assert registry.admin == "curator"
        registry.mint("curator", "alice", 3)
        assert registry.resolve_identifier_string(3) == "https://example.com/metadata/3"

    def test_audit_flag_reaches_registry(self):
        manager = ConfigManager()
        manager.set("observability.audit_enabled", False)
        registry = AssetRegistry.from_config(manager.config)
        registry.mint("admin", "alice", 1)
        assert registry.audit.entries() == []
