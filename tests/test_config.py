"""
Tests for configuration loading and property folder resolution.
"""

import pytest
import yaml

from levelshot.config import (
    get_config_value, get_default_config, get_property_images_dir,
    load_config, update_config_value
)


class TestLoadConfig:
    """Test YAML loading over defaults."""

    def test_missing_file_uses_defaults(self, tmp_path):
        """A missing file falls back to defaults."""
        config = load_config(tmp_path / "nope.yaml")
        assert config == get_default_config()

    def test_partial_file_merged_over_defaults(self, tmp_path):
        """File values override defaults key by key."""
        path = tmp_path / "config.yaml"
        path.write_text(yaml.dump({'perspective': {'min_rotation_deg': 0.5}}))

        config = load_config(path)

        assert config['perspective']['min_rotation_deg'] == 0.5
        assert config['perspective']['max_rotation_deg'] == 15.0
        assert config['batch']['max_workers'] == 4

    def test_env_vars_expanded(self, tmp_path, monkeypatch):
        """${VAR} references expand from the environment."""
        monkeypatch.setenv("LEVELSHOT_TEST_ROOT", str(tmp_path))
        path = tmp_path / "config.yaml"
        path.write_text("staging:\n  root: ${LEVELSHOT_TEST_ROOT}/staging\n")

        config = load_config(str(path))

        assert config['staging']['root'] == f"{tmp_path}/staging"

class TestConfigValues:
    """Test dotted-path access."""

    def test_get_nested(self):
        """Dotted paths resolve, with a default for missing keys."""
        config = get_default_config()
        assert get_config_value(config, 'preprocessing.clahe.clip_limit') == 2.0
        assert get_config_value(config, 'preprocessing.missing.key', 'x') == 'x'

    def test_update_creates_sections(self):
        """Setting a dotted path creates missing sections."""
        config = {}
        update_config_value(config, 'perspective.random_seed', 3)
        assert config == {'perspective': {'random_seed': 3}}


class TestPropertyImagesDir:
    """Test status-based folder resolution."""

    def test_resolves_status_folder(self, tmp_path):
        """NEW status resolves to <base>/<folder>/INTERNET."""
        config = get_default_config()
        update_config_value(config, 'folders.new', str(tmp_path))

        path = get_property_images_dir(config, "123 Main St", "new")

        assert path == tmp_path / "123 Main St" / "INTERNET"

    def test_unknown_status(self):
        """Statuses outside the known set are rejected."""
        with pytest.raises(ValueError, match="Unknown status"):
            get_property_images_dir(get_default_config(), "123 Main St", "SOLD")

    def test_unconfigured_status(self):
        """A known status without a base folder is rejected."""
        with pytest.raises(ValueError, match="not configured"):
            get_property_images_dir(get_default_config(), "123 Main St", "ARCHIVE")
