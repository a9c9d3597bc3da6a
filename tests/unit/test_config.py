"""Unit tests for configuration loading."""

import pytest

from envpurge.core.exceptions import ConfigurationError
from envpurge.core.models import CleanupConfig, RedactionRule
from envpurge.utils.config import config_from_dict, load_config


@pytest.mark.unit
class TestLoadConfig:
    """Test load_config."""

    def test_defaults_without_file(self):
        assert load_config() == CleanupConfig()

    def test_yaml_overrides(self, tmp_path):
        config_file = tmp_path / "envpurge.yaml"
        config_file.write_text("""
main_branch: master
remote: upstream
rules:
  - pattern: "ghp_[A-Za-z0-9]{36}"
    replacement: "[REDACTED-GITHUB-TOKEN]"
residual_markers:
  - ghp_
""")

        config = load_config(config_file)

        assert config.main_branch == "master"
        assert config.remote == "upstream"
        assert config.rules == (RedactionRule("ghp_[A-Za-z0-9]{36}", "[REDACTED-GITHUB-TOKEN]"),)
        assert config.residual_markers == ("ghp_",)
        assert config.secrets_file == ".env"

    def test_overrides_win_over_file(self, tmp_path):
        config_file = tmp_path / "envpurge.yaml"
        config_file.write_text("push: true\nskip_install: false\n")

        config = load_config(config_file, push=False, skip_install=None)

        assert config.push is False
        assert config.skip_install is False

    def test_empty_file(self, tmp_path):
        config_file = tmp_path / "envpurge.yaml"
        config_file.write_text("")

        assert load_config(config_file) == CleanupConfig()

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="Failed to load"):
            load_config(tmp_path / "nope.yaml")

    def test_invalid_yaml(self, tmp_path):
        config_file = tmp_path / "envpurge.yaml"
        config_file.write_text("rules: [unclosed\n")

        with pytest.raises(ConfigurationError, match="Failed to load"):
            load_config(config_file)

    def test_not_a_mapping(self, tmp_path):
        config_file = tmp_path / "envpurge.yaml"
        config_file.write_text("- just\n- a list\n")

        with pytest.raises(ConfigurationError, match="mapping"):
            load_config(config_file)


@pytest.mark.unit
class TestConfigFromDict:
    """Test validation of config values."""

    def test_unknown_key(self):
        with pytest.raises(ConfigurationError, match="secret_file"):
            config_from_dict({"secret_file": ".env"})

    def test_invalid_regex(self):
        with pytest.raises(ConfigurationError, match="invalid regex"):
            config_from_dict({"rules": [{"pattern": "sk-[", "replacement": "x"}]})

    def test_rule_missing_replacement(self):
        with pytest.raises(ConfigurationError, match="Rule 1"):
            config_from_dict({"rules": [{"pattern": "sk-.+"}]})

    def test_empty_rules(self):
        with pytest.raises(ConfigurationError, match="non-empty"):
            config_from_dict({"rules": []})

    def test_bad_markers(self):
        with pytest.raises(ConfigurationError, match="residual_markers"):
            config_from_dict({"residual_markers": ["gsk_", ""]})

    def test_empty_markers(self):
        with pytest.raises(ConfigurationError, match="non-empty list"):
            config_from_dict({"residual_markers": []})
