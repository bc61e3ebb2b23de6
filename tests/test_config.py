"""
Tests for configuration loading.

Tests cover:
- KEY=VALUE parsing, quoting and comments
- Validation warnings for unknown keys and bad values
- Missing config files and the generated example
- Command-line overrides
"""

from datetime import datetime
from pathlib import Path

import pytest

from gitcloner.config import (
    CONFIG_EXAMPLE,
    Configuration,
    default_log_dir,
    get_config_path,
    get_default_config,
    parse_config_lines,
    resolve_config,
)
from gitcloner.platform_info import OSType


class TestDefaults:
    """Tests for default configuration values."""

    def test_default_values(self, tmp_path):
        config = get_default_config(OSType.LINUX, home=tmp_path)
        assert config.verbosity == 3
        assert config.max_retries == 1
        assert config.retry_delay == 1.0
        assert config.max_log_size_mb == 10
        assert config.max_log_files == 30
        assert config.run_setup_scripts is True
        assert config.clone_dir == tmp_path / "Projects"
        assert config.os_type == OSType.LINUX
        assert config.dry_run is False

    def test_default_log_dir_is_dated(self, tmp_path):
        today = datetime(2024, 3, 5)
        assert default_log_dir(tmp_path, today) == tmp_path / "logs" / "gitcloner" / "logs_20240305"

    def test_configuration_is_frozen(self, tmp_path):
        config = get_default_config(OSType.LINUX, home=tmp_path)
        with pytest.raises(Exception):
            config.verbosity = 4

    def test_with_overrides_ignores_none(self, tmp_path):
        config = get_default_config(OSType.LINUX, home=tmp_path)
        updated = config.with_overrides(verbosity=None, max_retries=3)
        assert updated.verbosity == 3
        assert updated.max_retries == 3
        assert config.max_retries == 1

    def test_with_overrides_nothing_returns_same(self, tmp_path):
        config = get_default_config(OSType.LINUX, home=tmp_path)
        assert config.with_overrides(verbosity=None) is config


class TestParseConfigLines:
    """Tests for parse_config_lines."""

    def test_basic_values(self, tmp_path):
        values, warnings = parse_config_lines([
            "VERBOSITY=4",
            "MAX_RETRIES=3",
            "RETRY_DELAY=2.5",
            "MAX_LOG_SIZE_MB=5",
            "MAX_LOG_FILES=7",
            "RUN_SETUP_SCRIPTS=no",
        ], tmp_path)
        assert warnings == []
        assert values == {
            'verbosity': 4,
            'max_retries': 3,
            'retry_delay': 2.5,
            'max_log_size_mb': 5,
            'max_log_files': 7,
            'run_setup_scripts': False,
        }

    def test_blank_and_comment_lines_skipped(self, tmp_path):
        values, warnings = parse_config_lines(["", "   ", "# VERBOSITY=0"], tmp_path)
        assert values == {}
        assert warnings == []

    def test_export_prefix_and_quotes(self, tmp_path):
        values, warnings = parse_config_lines([
            'export CLONE_DIR="${SCRIPT_DIR}/repos"',
            "LOG_DIR='logs'",
        ], tmp_path)
        assert warnings == []
        assert values['clone_dir'] == tmp_path / "repos"
        assert values['log_dir'] == tmp_path / "logs"

    def test_inline_comment_stripped(self, tmp_path):
        values, _ = parse_config_lines(["MAX_RETRIES=2 # try twice"], tmp_path)
        assert values['max_retries'] == 2

    def test_clone_delay_alias(self, tmp_path):
        values, _ = parse_config_lines(["CLONE_DELAY=0"], tmp_path)
        assert values['retry_delay'] == 0.0

    def test_verbosity_by_name(self, tmp_path):
        values, _ = parse_config_lines(["VERBOSITY=debug"], tmp_path)
        assert values['verbosity'] == 4

    def test_patterns(self, tmp_path):
        values, _ = parse_config_lines(['EXCLUDE_PATTERNS="*test* *demo*"'], tmp_path)
        assert values['exclude_patterns'] == ("*test*", "*demo*")

    def test_unknown_key_warns(self, tmp_path):
        values, warnings = parse_config_lines(["FOO=bar"], tmp_path)
        assert values == {}
        assert warnings == ["Unknown config option on line 1: FOO"]

    def test_line_without_equals_warns(self, tmp_path):
        values, warnings = parse_config_lines(["VERBOSITY", "MAX_RETRIES=2"], tmp_path)
        assert values == {'max_retries': 2}
        assert len(warnings) == 1
        assert "malformed config line 1" in warnings[0]

    @pytest.mark.parametrize("line", [
        "VERBOSITY=9",
        "MAX_RETRIES=0",
        "MAX_RETRIES=abc",
        "RETRY_DELAY=-1",
        "RUN_SETUP_SCRIPTS=maybe",
        "CLONE_DIR=",
    ])
    def test_invalid_values_warn_and_keep_default(self, tmp_path, line):
        values, warnings = parse_config_lines([line], tmp_path)
        assert values == {}
        assert len(warnings) == 1
        assert warnings[0].startswith("Invalid value for")

    def test_shell_syntax_is_not_executed(self, tmp_path):
        """Test command substitutions stay literal text."""
        values, warnings = parse_config_lines(["CLONE_DIR=$(rm -rf /)"], tmp_path)
        assert warnings == []
        assert "$(rm -rf" in str(values['clone_dir'])


class TestResolveConfig:
    """Tests for resolve_config."""

    def test_missing_file_uses_defaults_and_writes_example(self, tmp_path):
        config_path = tmp_path / "config.conf"
        config, warnings = resolve_config(config_path, OSType.LINUX, home=tmp_path)

        assert warnings == []
        assert config.config_path == config_path
        assert config.clone_dir == tmp_path / "Projects"
        example = tmp_path / "config.conf.example"
        assert example.read_text() == CONFIG_EXAMPLE
        assert not config_path.exists()

    def test_missing_file_without_example(self, tmp_path):
        config_path = tmp_path / "config.conf"
        resolve_config(config_path, OSType.LINUX, write_example=False, home=tmp_path)
        assert not (tmp_path / "config.conf.example").exists()

    def test_example_write_failure_is_a_warning(self, tmp_path):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("")
        config, warnings = resolve_config(blocker / "config.conf", OSType.LINUX, home=tmp_path)
        assert len(warnings) == 1
        assert "Could not write sample configuration" in warnings[0]
        assert config.verbosity == 3

    def test_values_loaded_from_file(self, tmp_path):
        config_path = tmp_path / "config.conf"
        config_path.write_text(
            "# settings\n"
            "VERBOSITY=2\n"
            "CLONE_DIR=${SCRIPT_DIR}/clones\n"
            "BOGUS=1\n"
        )
        config, warnings = resolve_config(config_path, OSType.MACOS, home=tmp_path)

        assert config.verbosity == 2
        assert config.clone_dir == tmp_path.resolve() / "clones"
        assert config.os_type == OSType.MACOS
        assert warnings == ["Unknown config option on line 4: BOGUS"]

    def test_example_round_trips_to_defaults(self, tmp_path):
        """Test the generated example, copied verbatim, changes nothing."""
        config_path = tmp_path / "config.conf"
        config_path.write_text(CONFIG_EXAMPLE)
        config, warnings = resolve_config(config_path, OSType.LINUX, home=tmp_path)
        assert warnings == []
        assert config == Configuration(
            clone_dir=tmp_path / "Projects",
            log_dir=config.log_dir,
            os_type=OSType.LINUX,
            config_path=config_path,
        )


class TestGetConfigPath:
    """Tests for get_config_path."""

    def test_environment_variable_wins(self, monkeypatch, tmp_path):
        monkeypatch.setenv("GITCLONER_CONFIG", str(tmp_path / "custom.conf"))
        assert get_config_path(tmp_path / "list" / "repositories.txt") == tmp_path / "custom.conf"

    def test_beside_repo_list(self, monkeypatch, tmp_path):
        monkeypatch.delenv("GITCLONER_CONFIG", raising=False)
        list_file = tmp_path / "repositories.txt"
        assert get_config_path(list_file) == tmp_path.resolve() / "config.conf"

    def test_current_directory_fallback(self, monkeypatch, tmp_path):
        monkeypatch.delenv("GITCLONER_CONFIG", raising=False)
        monkeypatch.chdir(tmp_path)
        assert get_config_path() == Path.cwd() / "config.conf"
