"""
Unit tests for configuration and mapping table loading.
"""
import pytest
import yaml
from pathlib import Path

from booster_sync.config import SyncConfig, MappingTable, load_mapping_table


class TestLoadMappingTable:
    """Test loading the tracked path table from YAML."""

    def test_load_preserves_file_order(self, tmp_path):
        """Should keep entries in file order."""
        mapping_file = tmp_path / "mapping.yml"
        mapping_file.write_text(
            "docs/index.html: rest-http\n"
            "docs/configmap.html: configmap\n"
            "docs/crud.html: crud\n"
        )

        table = load_mapping_table(mapping_file)

        assert list(table) == [
            ('docs/index.html', 'rest-http'),
            ('docs/configmap.html', 'configmap'),
            ('docs/crud.html', 'crud')
        ]
        assert len(table) == 3
        assert 'docs/crud.html' in table
        assert table.get('docs/configmap.html') == 'configmap'

    def test_load_empty_file(self, tmp_path):
        """Should return an empty table for an empty file."""
        mapping_file = tmp_path / "mapping.yml"
        mapping_file.write_text("")

        table = load_mapping_table(mapping_file)

        assert len(table) == 0

    def test_missing_file(self, tmp_path):
        """Should raise FileNotFoundError for a missing file."""
        with pytest.raises(FileNotFoundError, match="Mapping file not found"):
            load_mapping_table(tmp_path / "nope.yml")

    def test_list_format_rejected(self, tmp_path):
        """Should reject a top-level list."""
        mapping_file = tmp_path / "mapping.yml"
        with open(mapping_file, 'w') as f:
            yaml.dump(['docs/index.html'], f)

        with pytest.raises(ValueError, match="expected a mapping"):
            load_mapping_table(mapping_file)

    def test_non_string_value_rejected(self, tmp_path):
        """Should reject mission ids that are not strings."""
        mapping_file = tmp_path / "mapping.yml"
        with open(mapping_file, 'w') as f:
            yaml.dump({'docs/index.html': ['rest-http']}, f)

        with pytest.raises(ValueError, match="both must be strings"):
            load_mapping_table(mapping_file)

    def test_table_is_copied(self):
        """Should not follow later changes to the source dict."""
        entries = {'docs/index.html': 'rest-http'}
        table = MappingTable(entries)

        entries['docs/other.html'] = 'other'

        assert table.paths() == ['docs/index.html']


class TestSyncConfig:
    """Test environment-driven configuration."""

    def test_defaults(self, monkeypatch):
        """Should fall back to defaults when nothing is set."""
        for var in [
            'GITHUB_TOKEN', 'BOOSTER_SYNC_API_URL', 'BOOSTER_SYNC_BRANCH',
            'BOOSTER_SYNC_BASE_BRANCH', 'BOOSTER_SYNC_CONTINUE_ON_ERROR',
            'BOOSTER_SYNC_WORKSPACE_DIR', 'BOOSTER_SYNC_HTTP_TIMEOUT'
        ]:
            monkeypatch.delenv(var, raising=False)

        config = SyncConfig.from_env()

        assert config.token is None
        assert config.api_url == 'https://api.github.com'
        assert config.branch_name == 'documentation-update'
        assert config.base_branch == 'master'
        assert config.continue_on_error is False
        assert config.workspace_dir is None
        assert config.http_timeout == 30.0

    def test_overrides(self, monkeypatch, tmp_path):
        """Should read every override from the environment."""
        monkeypatch.setenv('GITHUB_TOKEN', 'ghp_abc')
        monkeypatch.setenv('BOOSTER_SYNC_API_URL', 'https://ghe.example.com/api/v3/')
        monkeypatch.setenv('BOOSTER_SYNC_BRANCH', 'docs-sync')
        monkeypatch.setenv('BOOSTER_SYNC_BASE_BRANCH', 'main')
        monkeypatch.setenv('BOOSTER_SYNC_CONTINUE_ON_ERROR', 'true')
        monkeypatch.setenv('BOOSTER_SYNC_WORKSPACE_DIR', str(tmp_path))
        monkeypatch.setenv('BOOSTER_SYNC_HTTP_TIMEOUT', '5')

        config = SyncConfig.from_env()

        assert config.token == 'ghp_abc'
        assert config.api_url == 'https://ghe.example.com/api/v3'
        assert config.branch_name == 'docs-sync'
        assert config.base_branch == 'main'
        assert config.continue_on_error is True
        assert config.workspace_dir == Path(tmp_path)
        assert config.http_timeout == 5.0

    def test_invalid_timeout(self, monkeypatch):
        """Should reject a non-numeric timeout."""
        monkeypatch.setenv('BOOSTER_SYNC_HTTP_TIMEOUT', 'soon')

        with pytest.raises(ValueError, match="must be a number"):
            SyncConfig.from_env()

    def test_repr_hides_token(self):
        """Should never render the token."""
        config = SyncConfig(token='ghp_secret')

        assert 'ghp_secret' not in repr(config)
        assert 'token=set' in repr(config)
