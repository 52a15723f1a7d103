"""
Tests for configuration loading.
"""

import pytest
import json
from pathlib import Path

from ces.utils.config import CesConfig, ConfigLoader, load_config
from ces.utils.errors import ConfigurationError


class TestCesConfig:
    """Test the configuration model."""

    def test_defaults(self, temp_dir):
        config = CesConfig(project_root=temp_dir)

        assert config.mode == "standalone"
        assert config.claude_dir == temp_dir / ".claude"
        assert config.sessions_dir == temp_dir / ".claude" / "sessions"
        assert config.backup_dir == temp_dir / ".claude" / "backup"
        assert config.operation_root == temp_dir
        assert config.session.closing_message == "Session closing"
        assert config.session.git_timeout == 10.0
        assert config.hooks.timeout == 30.0
        assert config.startup_hook_path == temp_dir / ".claude" / "startup-hook.cjs"

    def test_explicit_claude_dir(self, temp_dir):
        config = CesConfig(project_root=temp_dir, claude_dir=temp_dir / "elsewhere")

        assert config.claude_dir == temp_dir / "elsewhere"

    def test_custom_hook(self, temp_dir):
        config = CesConfig(project_root=temp_dir, hooks={"startup_hook": str(temp_dir / "hook.py")})

        assert config.startup_hook_path == temp_dir / "hook.py"

    def test_invalid_mode(self, temp_dir):
        with pytest.raises(ValueError):
            CesConfig(project_root=temp_dir, mode="remote")

    def test_log_level_normalised(self, temp_dir):
        config = CesConfig(project_root=temp_dir, logging={"level": "debug"})

        assert config.logging.level == "DEBUG"


class TestConfigLoader:
    """Test merging configuration sources."""

    def test_priority_order(self, temp_dir):
        loader = ConfigLoader(environ={})
        loader.add_source({"project_root": str(temp_dir), "debug": True}, priority=1)
        loader.add_source({"debug": False, "session": {"git_timeout": 3}}, priority=5)

        config = loader.load()

        assert config.debug is False
        assert config.session.git_timeout == 3
        assert config.session.closing_message == "Session closing"
        assert loader.get_config() is config

    def test_file_sources(self, temp_dir):
        yaml_file = temp_dir / "ces.yaml"
        yaml_file.write_text(f"project_root: {temp_dir}\nlogging:\n  level: warning\n")
        toml_file = temp_dir / "ces.toml"
        toml_file.write_text('[session]\nclosing_message = "bye"\n')
        json_file = temp_dir / "ces.json"
        json_file.write_text(json.dumps({"hooks": {"timeout": 5}}))

        loader = ConfigLoader(environ={})
        loader.add_source(yaml_file, priority=1)
        loader.add_source(toml_file, priority=2)
        loader.add_source(json_file, priority=3)
        config = loader.load()

        assert config.project_root == temp_dir
        assert config.logging.level == "WARNING"
        assert config.session.closing_message == "bye"
        assert config.hooks.timeout == 5

    def test_env_file(self, temp_dir):
        env_file = temp_dir / ".env"
        env_file.write_text(
            "# comment\n"
            f"export CES_PROJECT_ROOT={temp_dir}\n"
            "CES_SESSION__GIT_TIMEOUT='2.5'\n"
            "OTHER=ignored\n"
        )

        loader = ConfigLoader(environ={})
        loader.add_source(env_file)
        config = loader.load()

        assert config.project_root == temp_dir
        assert config.session.git_timeout == 2.5

    def test_environment_variables_win(self, temp_dir):
        loader = ConfigLoader(environ={
            "CES_MODE": "integrated",
            "CES_CLAUDE_DIR": str(temp_dir / "claude"),
            "CES_LOGGING__LEVEL": "ERROR",
        })
        loader.add_source({"project_root": str(temp_dir), "logging": {"level": "INFO"}}, priority=100)

        config = loader.load()

        assert config.mode == "integrated"
        assert config.claude_dir == temp_dir / "claude"
        assert config.logging.level == "ERROR"

    def test_missing_file_ignored(self, temp_dir):
        loader = ConfigLoader(environ={})
        loader.add_source(temp_dir / "absent.yaml")
        loader.add_source({"project_root": str(temp_dir)})

        assert loader.load().project_root == temp_dir

    def test_unknown_file_type(self, temp_dir):
        with pytest.raises(ConfigurationError):
            ConfigLoader(environ={}).add_source(temp_dir / "config.ini")

    def test_invalid_file(self, temp_dir):
        broken = temp_dir / "ces.json"
        broken.write_text("{broken")

        loader = ConfigLoader(environ={})
        loader.add_source(broken)

        with pytest.raises(ConfigurationError):
            loader.load()

    def test_validation_error(self, temp_dir):
        loader = ConfigLoader(environ={})
        loader.add_source({"project_root": str(temp_dir), "session": {"git_timeout": -1}})

        with pytest.raises(ConfigurationError) as exc_info:
            loader.load()

        assert "session.git_timeout" in exc_info.value.message

    def test_get_config_before_load(self):
        with pytest.raises(ConfigurationError):
            ConfigLoader(environ={}).get_config()


class TestLoadConfig:
    """Test the standard configuration entry point."""

    def test_extra_config(self, temp_dir, monkeypatch):
        monkeypatch.chdir(temp_dir)
        monkeypatch.setenv("HOME", str(temp_dir / "home"))

        config = load_config(extra_config={"project_root": str(temp_dir)}, environ={})

        assert config.project_root == temp_dir

    def test_local_config_file(self, temp_dir, monkeypatch):
        monkeypatch.chdir(temp_dir)
        monkeypatch.setenv("HOME", str(temp_dir / "home"))
        (temp_dir / "ces.yaml").write_text("session:\n  closing_message: done\n")

        config = load_config(environ={})

        assert config.session.closing_message == "done"
        assert config.project_root == Path.cwd()
