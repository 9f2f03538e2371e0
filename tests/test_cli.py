"""Tests for the hookwrap CLI."""

from pathlib import Path
from unittest.mock import patch

import pytest
from rich.console import Console

from hookwrap.cli import Run, Show, import_target, load_config, main, run_target, show_hooks
from hookwrap.config import HookwrapConfig, clear_config_instance, get_config

TARGET_MODULE = '''
def greet(name):
    return f"{name}!"


def explode(reason):
    raise ValueError(reason)


def shout(result):
    from hookwrap import OverwriteResult

    return OverwriteResult(result.upper())
'''


@pytest.fixture(autouse=True)
def reset_config():
    """Reset the global configuration around each test."""
    clear_config_instance()
    yield
    clear_config_instance()


@pytest.fixture
def targets(tmp_path: Path, monkeypatch):
    """Write an importable module of targets and hooks."""
    (tmp_path / "cli_targets.py").write_text(TARGET_MODULE)
    monkeypatch.syspath_prepend(str(tmp_path))
    import cli_targets

    return cli_targets


@pytest.fixture
def config() -> HookwrapConfig:
    """Create a configuration with one post hook."""
    return HookwrapConfig(
        hooks={
            "greet": {
                "pre": [{"hook": "cli_targets.greet", "convention": "sync"}],
                "post": ["cli_targets.shout"],
            }
        }
    )


def recording_console() -> Console:
    return Console(record=True, width=200, force_terminal=False)


class TestShowHooks:
    """Test the show command."""

    def test_table(self, config: HookwrapConfig) -> None:
        """Test configured hooks are listed with their phase and convention."""
        console = recording_console()

        show_hooks(config, None, console)

        output = console.export_text()
        assert "hookwrap Hooks" in output
        assert "cli_targets.greet" in output
        assert "cli_targets.shout" in output
        assert "sync" in output
        assert "auto" in output

    def test_unknown_name(self, config: HookwrapConfig) -> None:
        """Test an unknown hook name is reported."""
        console = recording_console()

        show_hooks(config, "missing", console)

        assert "No hooks configured for 'missing'" in console.export_text()

    def test_no_hooks(self) -> None:
        """Test an empty configuration is reported."""
        console = recording_console()

        show_hooks(HookwrapConfig(), None, console)

        assert "No hooks configured" in console.export_text()


class TestRunTarget:
    """Test the run command."""

    def test_success(self, targets, capsys) -> None:
        """Test the wrapped target's final value is printed."""
        config = HookwrapConfig(hooks={"greet": {"post": ["cli_targets.shout"]}})
        cmd = Run(name="greet", target="cli_targets.greet", args=["hello"])

        code = run_target(config, cmd, Console())

        assert code == 0
        assert "HELLO!" in capsys.readouterr().out

    def test_target_error(self, targets, capsys) -> None:
        """Test a failing target exits with 1 and reports the error."""
        cmd = Run(name="explode", target="cli_targets.explode", args=["bad input"])

        code = run_target(HookwrapConfig(), cmd, Console())

        assert code == 1
        captured = capsys.readouterr()
        assert "ValueError: bad input" in captured.err

    def test_error_handlers_flag(self, targets, capsys) -> None:
        """Test -e routes the target error into the post hooks."""
        config = HookwrapConfig(hooks={"explode": {"post": ["cli_targets.greet"]}})
        cmd = Run(name="explode", target="cli_targets.explode", args=["bad"], error_handlers=True)

        code = run_target(config, cmd, Console())

        # The handler completes without an error, so its value is the result
        assert code == 0
        assert "bad!" in capsys.readouterr().out

    def test_import_failure(self, capsys) -> None:
        """Test an unimportable target exits with 1."""
        cmd = Run(name="greet", target="no_such_module_xyz.greet")

        code = run_target(HookwrapConfig(), cmd, Console())

        assert code == 1
        assert "cannot import" in capsys.readouterr().err

    @patch("hookwrap.cli.import_target", side_effect=AttributeError("no attribute 'greet'"))
    def test_missing_attribute(self, mock_import, capsys) -> None:
        """Test a missing attribute is reported as an import failure."""
        cmd = Run(name="greet", target="cli_targets.greet")

        code = run_target(HookwrapConfig(), cmd, Console())

        assert code == 1
        mock_import.assert_called_once_with("cli_targets.greet")
        assert "no attribute" in capsys.readouterr().err

    def test_import_target(self, targets) -> None:
        """Test importing a module.attr target."""
        assert import_target("cli_targets.greet") is targets.greet

        with pytest.raises(ValueError, match="must be module.attr"):
            import_target("greet")


class TestMain:
    """Test the main command dispatcher."""

    def test_show_with_config_file(self, tmp_path: Path, capsys) -> None:
        """Test --config loads and installs the configuration."""
        config_file = tmp_path / "hookwrap.yaml"
        config_file.write_text("hookwrap:\n  hooks:\n    save:\n      pre: [app.validate]\n")

        main(Show(), config=config_file)

        assert "app.validate" in capsys.readouterr().out
        assert get_config().config_path == config_file

    def test_run_exits_with_code(self, targets, tmp_path: Path) -> None:
        """Test run exits with the target's status."""
        config_file = tmp_path / "hookwrap.yaml"
        config_file.write_text("hookwrap: {}\n")

        with pytest.raises(SystemExit) as exc_info:
            main(Run(name="greet", target="cli_targets.greet", args=["hi"]), config=config_file)

        assert exc_info.value.code == 0

    def test_load_config_discovers(self, tmp_path: Path, monkeypatch) -> None:
        """Test load_config falls back to discovery."""
        monkeypatch.setenv("HOOKWRAP_CONFIG_DIR", str(tmp_path))

        assert load_config(None) is get_config()
