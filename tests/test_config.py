from weekplan.config import DEFAULTS, apply_cli_overrides, apply_env_overrides, deep_merge, load_config


class TestLoadConfig:
    def test_defaults_when_missing(self, tmp_path):
        config = load_config(tmp_path / "nope.yaml")
        assert config == DEFAULTS
        assert config is not DEFAULTS

    def test_yaml_merged_over_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("calendar:\n  timezone: Europe/London\nplanning:\n  default_servings: 4\n")
        config = load_config(path)
        assert config["calendar"]["timezone"] == "Europe/London"
        assert config["planning"]["default_servings"] == 4
        assert config["planning"]["default_status"] == "draft"

    def test_non_mapping_rejected(self, tmp_path):
        import pytest

        path = tmp_path / "config.yaml"
        path.write_text("- just\n- a list\n")
        with pytest.raises(ValueError, match="mapping"):
            load_config(path)

    def test_deep_merge_does_not_mutate(self):
        base = {"a": {"b": 1, "c": 2}}
        merged = deep_merge(base, {"a": {"b": 3}})
        assert merged == {"a": {"b": 3, "c": 2}}
        assert base == {"a": {"b": 1, "c": 2}}


class TestOverrides:
    def test_env(self, tmp_path):
        config = load_config(tmp_path / "nope.yaml")
        apply_env_overrides(config, {
            "WEEKPLAN_STORE": "/tmp/shared.json",
            "WEEKPLAN_TIMEZONE": "Australia/Sydney",
            "WEEKPLAN_DEMO_DATA": "YES",
        })
        assert config["store"]["path"] == "/tmp/shared.json"
        assert config["calendar"]["timezone"] == "Australia/Sydney"
        assert config["demo"]["enabled"] is True

    def test_env_demo_falsy(self, tmp_path):
        config = load_config(tmp_path / "nope.yaml")
        config["demo"]["enabled"] = True
        apply_env_overrides(config, {"WEEKPLAN_DEMO_DATA": "0"})
        assert config["demo"]["enabled"] is False

    def test_cli_overrides_win(self, tmp_path):
        config = load_config(tmp_path / "nope.yaml")
        apply_env_overrides(config, {"WEEKPLAN_TIMEZONE": "Australia/Sydney"})
        apply_cli_overrides(config, timezone="America/New_York", household="The Smiths", servings="3", store=None)
        assert config["calendar"]["timezone"] == "America/New_York"
        assert config["household"]["name"] == "The Smiths"
        assert config["planning"]["default_servings"] == 3
        assert config["store"]["path"] == DEFAULTS["store"]["path"]
