"""
Config Tests — layered loading, validation and registry wiring.
"""

import json
import os

import pytest

from quarry.config import ConfigLoader, DatabaseConfig
from quarry.db import configure_from, get_database
from quarry.db import engine as engine_module
from quarry.faults import ConfigInvalidFault, ConfigMissingFault


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in list(os.environ):
        if key.startswith("QUARRY_"):
            monkeypatch.delenv(key)


@pytest.fixture
def registry():
    saved = dict(engine_module._database_registry)
    engine_module._database_registry.clear()
    yield
    engine_module._database_registry.clear()
    engine_module._database_registry.update(saved)


class TestLayering:

    def test_yaml_file(self, tmp_path):
        path = tmp_path / "quarry.yaml"
        path.write_text(
            "databases:\n"
            "  default:\n"
            "    url: sqlite:///:memory:\n"
            "    default_timeout: 5\n"
        )
        loader = ConfigLoader.load(paths=[str(path)])
        assert loader.get("databases.default.url") == "sqlite:///:memory:"
        assert loader.get("databases.default.default_timeout") == 5

    def test_json_then_env_then_overrides(self, tmp_path, monkeypatch):
        path = tmp_path / "quarry.json"
        path.write_text(json.dumps({"databases": {"default": {"url": "sqlite:///a.db", "connect_retries": 2}}}))
        monkeypatch.setenv("QUARRY_DATABASES__DEFAULT__CONNECT_RETRIES", "5")
        loader = ConfigLoader.load(
            paths=[str(path)],
            overrides={"databases": {"default": {"url": "sqlite:///b.db"}}},
        )
        assert loader.get("databases.default.connect_retries") == 5
        assert loader.get("databases.default.url") == "sqlite:///b.db"

    def test_env_file(self, tmp_path, monkeypatch):
        env = tmp_path / ".env"
        env.write_text(
            "# comment\n"
            'QUARRY_DATABASE__URL="sqlite:///from-env-file.db"\n'
            "QUARRY_DATABASE__AUTO_PRIMARY_KEY_RETURNING=no\n"
            "OTHER=ignored\n"
        )
        monkeypatch.setenv("QUARRY_DATABASE__DEFAULT_TIMEOUT", "2.5")
        loader = ConfigLoader.load(env_file=str(env))
        assert loader.get("database") == {
            "url": "sqlite:///from-env-file.db",
            "auto_primary_key_returning": False,
            "default_timeout": 2.5,
        }
        assert loader.get("other") is None

    def test_env_overrides_env_file(self, tmp_path, monkeypatch):
        env = tmp_path / ".env"
        env.write_text("QUARRY_DATABASE__URL=sqlite:///file.db\n")
        monkeypatch.setenv("QUARRY_DATABASE__URL", "sqlite:///env.db")
        assert ConfigLoader.load(env_file=str(env)).get("database.url") == "sqlite:///env.db"

    def test_parse_values(self):
        loader = ConfigLoader()
        assert loader._parse_value("yes") is True
        assert loader._parse_value("1") == 1
        assert loader._parse_value("0.5") == 0.5
        assert loader._parse_value('{"a": 1}') == {"a": 1}
        assert loader._parse_value("postgresql://x") == "postgresql://x"

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("databases: [unclosed\n")
        with pytest.raises(ConfigInvalidFault):
            ConfigLoader.load(paths=[str(path)])


class TestDatabaseConfig:

    def test_defaults(self):
        cfg = DatabaseConfig.from_dict("default", {"url": "sqlite:///:memory:"})
        assert cfg.connect_retries == 3
        assert cfg.auto_primary_key_returning is True
        assert cfg.engine_options() == {
            "connect_retries": 3,
            "connect_retry_delay": 0.5,
            "auto_primary_key_returning": True,
        }

    def test_extra_keys_pass_through(self):
        cfg = DatabaseConfig.from_dict("x", {"url": "postgresql://h/db", "ssl": True, "pool_max_size": 4})
        opts = cfg.engine_options()
        assert opts["ssl"] is True
        assert opts["pool_max_size"] == 4

    def test_missing_url(self):
        with pytest.raises(ConfigMissingFault):
            DatabaseConfig.from_dict("default", {"default_timeout": 1})

    @pytest.mark.parametrize(
        "data",
        [
            {"connect_retries": 0},
            {"connect_retry_delay": -1},
            {"default_timeout": 0},
            {"pool_min_size": 5, "pool_max_size": 2},
            {"connect_retries": "many"},
            {"connect_retries": True},
            {"auto_primary_key_returning": "maybe"},
        ],
    )
    def test_invalid_values(self, data):
        with pytest.raises(ConfigInvalidFault):
            DatabaseConfig.from_dict("default", {"url": "sqlite:///:memory:", **data})


class TestDatabaseConfigs:

    def test_default_first_and_single_section(self):
        loader = ConfigLoader.load(overrides={
            "databases": {"reports": {"url": "sqlite:///r.db"}},
            "database": {"url": "sqlite:///main.db"},
        })
        configs = loader.database_configs()
        assert [c.alias for c in configs] == ["default", "reports"]
        assert configs[0].url == "sqlite:///main.db"

    def test_databases_must_be_mapping(self):
        loader = ConfigLoader.load(overrides={"databases": ["nope"]})
        with pytest.raises(ConfigInvalidFault):
            loader.database_configs()

    def test_configure_from(self, registry):
        loader = ConfigLoader.load(overrides={
            "databases": {
                "default": {"url": "sqlite:///:memory:", "default_timeout": 4},
                "reports": {"url": "sqlite:///:memory:", "auto_primary_key_returning": False},
            },
        })
        configured = configure_from(loader)
        assert set(configured) == {"default", "reports"}
        assert get_database().default_timeout == 4.0
        assert get_database("reports").auto_primary_key is False
