"""
Registry settings: validation and layered loading.
"""

import json

import pytest

from keel import ConfigLoader, Registry, RegistryConfig
from keel.faults import ConfigInvalidFault


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for name in ("MAX_DEPENDENCIES", "FAILURE_POLICY", "ROLE", "EMIT_DIAGNOSTICS"):
        monkeypatch.delenv(f"KEEL_{name}", raising=False)


# ============================================================================
# RegistryConfig
# ============================================================================

class TestRegistryConfig:

    def test_defaults(self):
        config = RegistryConfig()
        assert config.max_dependencies == 100
        assert config.failure_policy == "continue"
        assert config.role is None
        assert config.emit_diagnostics is True

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"max_dependencies": 0},
            {"failure_policy": "retry"},
            {"role": "kernel"},
        ],
    )
    def test_invalid_values(self, kwargs):
        with pytest.raises(ConfigInvalidFault) as exc:
            RegistryConfig(**kwargs)
        assert exc.value.metadata["key"] == next(iter(kwargs))

    def test_from_dict(self):
        config = RegistryConfig.from_dict({"max_dependencies": 5, "role": "privileged"})
        assert config.max_dependencies == 5
        assert config.role == "privileged"

    def test_from_dict_unknown_key(self):
        with pytest.raises(ConfigInvalidFault) as exc:
            RegistryConfig.from_dict({"max_deps": 5})
        assert "unknown setting" in exc.value.message

    @pytest.mark.parametrize(
        "data",
        [
            {"max_dependencies": "5"},
            {"max_dependencies": True},
            {"emit_diagnostics": "yes"},
            {"role": 3},
        ],
    )
    def test_from_dict_wrong_type(self, data):
        with pytest.raises(ConfigInvalidFault):
            RegistryConfig.from_dict(data)

    def test_role_may_be_null(self):
        assert RegistryConfig.from_dict({"role": None}).role is None

    def test_to_dict(self):
        assert RegistryConfig(max_dependencies=3).to_dict() == {
            "max_dependencies": 3,
            "failure_policy": "continue",
            "role": None,
            "emit_diagnostics": True,
        }

    def test_frozen(self):
        config = RegistryConfig()
        with pytest.raises(Exception):
            config.max_dependencies = 3


# ============================================================================
# ConfigLoader
# ============================================================================

class TestConfigLoader:

    def test_yaml_file(self, tmp_path):
        path = tmp_path / "keel.yaml"
        path.write_text("max_dependencies: 12\nfailure_policy: abort\n")

        config = ConfigLoader.load(paths=[path]).to_registry_config()

        assert config.max_dependencies == 12
        assert config.failure_policy == "abort"

    def test_json_file(self, tmp_path):
        path = tmp_path / "keel.json"
        path.write_text(json.dumps({"role": "restricted"}))
        assert ConfigLoader.load(paths=[path]).get("role") == "restricted"

    def test_missing_file_skipped(self, tmp_path):
        loader = ConfigLoader.load(paths=[tmp_path / "absent.yaml"])
        assert loader.to_dict() == {}

    def test_unsupported_file(self, tmp_path):
        path = tmp_path / "keel.ini"
        path.write_text("[keel]\n")
        with pytest.raises(ConfigInvalidFault):
            ConfigLoader.load(paths=[path])

    def test_later_files_win(self, tmp_path):
        first = tmp_path / "base.yaml"
        first.write_text("max_dependencies: 10\nrole: privileged\n")
        second = tmp_path / "local.json"
        second.write_text(json.dumps({"max_dependencies": 20}))

        loader = ConfigLoader.load(paths=[first, second])

        assert loader.get("max_dependencies") == 20
        assert loader.get("role") == "privileged"

    def test_environment(self, monkeypatch):
        monkeypatch.setenv("KEEL_MAX_DEPENDENCIES", "7")
        monkeypatch.setenv("KEEL_EMIT_DIAGNOSTICS", "off")

        config = ConfigLoader.load().to_registry_config()

        assert config.max_dependencies == 7
        assert config.emit_diagnostics is False

    def test_environment_overrides_file(self, tmp_path, monkeypatch):
        path = tmp_path / "keel.yaml"
        path.write_text("max_dependencies: 12\n")
        monkeypatch.setenv("KEEL_MAX_DEPENDENCIES", "3")
        assert ConfigLoader.load(paths=[path]).get("max_dependencies") == 3

    def test_overrides_win(self, monkeypatch):
        monkeypatch.setenv("KEEL_MAX_DEPENDENCIES", "3")
        loader = ConfigLoader.load(overrides={"max_dependencies": 4})
        assert loader.get("max_dependencies") == 4

    def test_custom_prefix(self, monkeypatch):
        monkeypatch.setenv("GAME_ROLE", "restricted")
        monkeypatch.setenv("KEEL_ROLE", "privileged")

        loader = ConfigLoader.load(env_prefix="GAME_")

        assert loader.get("role") == "restricted"

    def test_unrelated_prefixed_variables_ignored(self, monkeypatch):
        monkeypatch.setenv("KEEL_HOME", "/opt/keel")
        monkeypatch.setenv("KEEL_LIMITS__DEPTH", "2")
        monkeypatch.setenv("KEEL_MAX_DEPENDENCIES", "9")

        loader = ConfigLoader.load()

        assert loader.to_dict() == {"max_dependencies": 9}
        assert loader.to_registry_config().max_dependencies == 9

    def test_dotted_get(self):
        loader = ConfigLoader.load(overrides={"extra": {"level": "debug"}})
        assert loader.get("extra.level") == "debug"
        assert loader.get("extra.missing", "x") == "x"

    @pytest.mark.parametrize(
        "raw, parsed",
        [
            ("true", True),
            ("No", False),
            ("null", None),
            ("", None),
            ("42", 42),
            ("0.5", 0.5),
            ('["a", "b"]', ["a", "b"]),
            ("{bad", "{bad"),
            ("privileged", "privileged"),
        ],
    )
    def test_parse_value(self, raw, parsed):
        assert ConfigLoader()._parse_value(raw) == parsed

    def test_bad_value_from_env(self, monkeypatch):
        monkeypatch.setenv("KEEL_MAX_DEPENDENCIES", "lots")
        with pytest.raises(ConfigInvalidFault):
            ConfigLoader.load().to_registry_config()


class TestRegistryFromSettings:

    def test_from_settings(self, tmp_path, monkeypatch):
        path = tmp_path / "keel.yaml"
        path.write_text("max_dependencies: 2\nrole: restricted\n")
        monkeypatch.delenv("KEEL_MAX_DEPENDENCIES", raising=False)

        registry = Registry.from_settings([path], overrides={"emit_diagnostics": False})

        assert registry.config.max_dependencies == 2
        assert registry.context.is_restricted()
        assert registry.diagnostics.listeners == []

    def test_from_settings_with_stray_environment(self, monkeypatch):
        monkeypatch.setenv("KEEL_HOME", "/opt/keel")
        monkeypatch.setenv("KEEL_FOO", "1")

        registry = Registry.from_settings(overrides={"emit_diagnostics": False})

        assert registry.config == RegistryConfig(emit_diagnostics=False)
