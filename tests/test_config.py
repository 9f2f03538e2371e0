"""Tests for configuration loading."""

import logging
from pathlib import Path
from textwrap import dedent

import pytest

from hookwrap import Convention, HookLoadError, Hooks
from hookwrap.config import (
    HookEntry,
    HookwrapConfig,
    clear_config_instance,
    get_config,
    set_config_instance,
)
from hookwrap.pipeline import HookRegistry

HOOK_MODULE = '''
calls = []


def validate(doc):
    if not doc:
        raise ValueError("empty document")
    calls.append(("validate", doc))


def audit(doc, done):
    calls.append(("audit", doc))
    done()


def shout(result):
    from hookwrap import OverwriteResult

    return OverwriteResult(result.upper())


def store(doc):
    return f"stored {doc}"
'''


@pytest.fixture(autouse=True)
def reset_config():
    """Reset the global configuration around each test."""
    clear_config_instance()
    yield
    clear_config_instance()


@pytest.fixture
def hook_module(tmp_path: Path, monkeypatch):
    """Write an importable module of hook functions."""
    (tmp_path / "cfg_hooks.py").write_text(HOOK_MODULE)
    monkeypatch.syspath_prepend(str(tmp_path))
    import cfg_hooks

    cfg_hooks.calls.clear()
    return cfg_hooks


def write_config(directory: Path, body: str) -> Path:
    config_file = directory / "hookwrap.yaml"
    config_file.write_text(dedent(body))
    return config_file


class TestFromYaml:
    """Test HookwrapConfig.from_yaml."""

    def test_full_config(self, tmp_path: Path) -> None:
        """Test loading debug, defaults and hooks."""
        config_file = write_config(
            tmp_path,
            """
            hookwrap:
              debug: true
              defaults:
                use_error_handlers: true
                num_callback_params: 1
              hooks:
                save:
                  pre:
                    - cfg_hooks.validate
                    - hook: cfg_hooks.audit
                      convention: callback
                  post:
                    - cfg_hooks.shout
            """,
        )

        config = HookwrapConfig.from_yaml(config_file)

        assert config.debug is True
        assert config.defaults.use_error_handlers is True
        assert config.defaults.num_callback_params == 1
        assert config.config_path == config_file
        hook_set = config.hooks["save"]
        assert hook_set.pre[0] == "cfg_hooks.validate"
        assert hook_set.pre[1] == HookEntry(hook="cfg_hooks.audit", convention=Convention.CALLBACK)
        assert hook_set.post == ["cfg_hooks.shout"]

    def test_missing_file_uses_defaults(self, tmp_path: Path) -> None:
        """Test a missing file gives the default configuration."""
        config = HookwrapConfig.from_yaml(tmp_path / "hookwrap.yaml")

        assert config.debug is False
        assert config.hooks == {}
        assert config.defaults.use_error_handlers is False

    def test_empty_file(self, tmp_path: Path) -> None:
        """Test an empty file gives the default configuration."""
        config = HookwrapConfig.from_yaml(write_config(tmp_path, ""))

        assert config.hooks == {}

    def test_invalid_section_logged(self, tmp_path: Path, caplog) -> None:
        """Test a non-mapping hookwrap section is ignored with a warning."""
        config_file = write_config(tmp_path, "hookwrap: [1, 2]\n")

        with caplog.at_level(logging.WARNING, logger="hookwrap.config"):
            config = HookwrapConfig.from_yaml(config_file)

        assert config.hooks == {}
        assert "Invalid hookwrap section" in caplog.text


class TestLoadHooks:
    """Test registering configured hooks."""

    def test_registers_in_order(self, hook_module) -> None:
        """Test configured hooks are imported and registered in order."""
        config = HookwrapConfig(
            hooks={
                "save": {
                    "pre": ["cfg_hooks.validate", {"hook": "cfg_hooks.audit", "convention": "callback"}],
                    "post": ["cfg_hooks.shout"],
                }
            }
        )
        registry = HookRegistry()

        assert config.load_hooks(registry) == 3

        pre_hooks = registry.get_pre_hooks("save")
        assert [spec.fn for spec in pre_hooks] == [hook_module.validate, hook_module.audit]
        assert pre_hooks[1].convention is Convention.CALLBACK
        assert registry.get_post_hooks("save")[0].fn is hook_module.shout

    def test_failures_skipped_with_warning(self, hook_module, caplog) -> None:
        """Test hooks that cannot be imported are skipped and logged."""
        config = HookwrapConfig(
            hooks={"save": {"pre": ["cfg_hooks.missing", "no_such_module_xyz.hook", "bare", "cfg_hooks.validate"]}}
        )
        registry = HookRegistry()

        with caplog.at_level(logging.WARNING, logger="hookwrap.config"):
            loaded = config.load_hooks(registry)

        assert loaded == 1
        assert caplog.text.count("Failed to load pre hook") == 3
        assert "cfg_hooks.missing" in caplog.text

    def test_strict_raises(self, hook_module) -> None:
        """Test strict loading raises HookLoadError."""
        config = HookwrapConfig(hooks={"save": {"post": ["cfg_hooks.missing"]}})

        with pytest.raises(HookLoadError, match="cfg_hooks.missing") as exc_info:
            config.load_hooks(HookRegistry(), strict=True)

        assert isinstance(exc_info.value.cause, AttributeError)


class TestGetConfig:
    """Test global configuration discovery."""

    def test_env_config_dir(self, tmp_path: Path, monkeypatch) -> None:
        """Test HOOKWRAP_CONFIG_DIR is used first."""
        write_config(tmp_path, "hookwrap:\n  debug: true\n")
        monkeypatch.setenv("HOOKWRAP_CONFIG_DIR", str(tmp_path))

        config = get_config()

        assert config.debug is True
        assert config.config_path == tmp_path / "hookwrap.yaml"

    def test_env_config_dir_without_file(self, tmp_path: Path, monkeypatch) -> None:
        """Test a config dir without hookwrap.yaml gives defaults."""
        monkeypatch.setenv("HOOKWRAP_CONFIG_DIR", str(tmp_path))

        config = get_config()

        assert config.config_path is None
        assert config.hooks == {}

    def test_home_fallback(self, tmp_path: Path, monkeypatch) -> None:
        """Test ~/.hookwrap/hookwrap.yaml is used without the environment variable."""
        monkeypatch.delenv("HOOKWRAP_CONFIG_DIR", raising=False)
        monkeypatch.setattr(Path, "home", lambda: tmp_path)
        (tmp_path / ".hookwrap").mkdir()
        write_config(tmp_path / ".hookwrap", "hookwrap:\n  hooks:\n    save:\n      pre: [cfg_hooks.validate]\n")

        config = get_config()

        assert list(config.hooks) == ["save"]

    def test_instance_cached(self, tmp_path: Path, monkeypatch) -> None:
        """Test the instance is created once."""
        monkeypatch.setenv("HOOKWRAP_CONFIG_DIR", str(tmp_path))

        assert get_config() is get_config()

    def test_set_instance(self) -> None:
        """Test an explicitly set instance is returned."""
        config = HookwrapConfig(debug=True)
        set_config_instance(config)

        assert get_config() is config


class TestHooksFromConfig:
    """Test building Hooks from configuration."""

    def test_wrapped_call_uses_configured_hooks(self, hook_module) -> None:
        """Test configured hooks run around a wrapped call."""
        config = HookwrapConfig(
            hooks={
                "save": {
                    "pre": ["cfg_hooks.validate", "cfg_hooks.audit"],
                    "post": ["cfg_hooks.shout"],
                }
            }
        )
        hooks = Hooks.from_config(config)
        save = hooks.create_wrapper_sync("save", hook_module.store)

        assert save("doc") == "STORED DOC"
        assert hook_module.calls == [("validate", "doc"), ("audit", "doc")]

    def test_configured_defaults(self, hook_module) -> None:
        """Test configured default options apply to wrapped calls."""
        config = HookwrapConfig(
            defaults={"use_error_handlers": True},
            hooks={"save": {"pre": ["cfg_hooks.validate"]}},
        )
        hooks = Hooks.from_config(config)
        errors = []

        hooks.wrap("save", hook_module.store, args=("",), completion=lambda error, *values: errors.append(error))

        assert hooks.defaults.use_error_handlers is True
        assert isinstance(errors[0], ValueError)

    def test_global_config(self, hook_module) -> None:
        """Test the global configuration is used by default."""
        set_config_instance(HookwrapConfig(hooks={"save": {"post": ["cfg_hooks.shout"]}}))

        hooks = Hooks.from_config()

        assert hooks.has_hooks("save")
