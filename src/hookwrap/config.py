"""Configuration management for hookwrap.

Configuration Discovery Precedence (Highest to Lowest Priority):
===============================================================

1. **HOOKWRAP_CONFIG_DIR Environment Variable** (Highest Priority)
   - Looks for: `${HOOKWRAP_CONFIG_DIR}/hookwrap.yaml`

2. **~/.hookwrap Directory** (Fallback)
   - Looks for: `~/.hookwrap/hookwrap.yaml`

If no `hookwrap.yaml` is found, default configuration is applied.

Example hookwrap.yaml:
--------
hookwrap:
  debug: false
  defaults:
    use_error_handlers: false
    num_callback_params: 1
  hooks:
    save:
      pre:
        - myapp.hooks.validate
        - hook: myapp.hooks.audit
          convention: callback
      post:
        - myapp.hooks.notify
"""

from __future__ import annotations

import importlib
import logging
import os
import threading
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from hookwrap.errors import HookLoadError
from hookwrap.pipeline.convention import Convention
from hookwrap.pipeline.hook import HookFn, HookRegistry
from hookwrap.pipeline.options import WrapOptions

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "hookwrap.yaml"


class HookEntry(BaseModel):
    """A configured hook function with an optional declared convention."""

    hook: str
    """Python import path to the hook function (module.attr)"""

    convention: Convention | None = None
    """Declared calling convention; inferred per call when unset"""

    def load(self) -> HookFn:
        """Import the hook function.

        Raises:
            ImportError: If the module cannot be imported
            AttributeError: If the module has no such attribute
            ValueError: If the path has no module part
        """
        module_path, _, attr = self.hook.rpartition(".")
        if not module_path:
            raise ValueError(f"Hook path '{self.hook}' must be module.attr")
        module = importlib.import_module(module_path)
        return getattr(module, attr)


class HookSet(BaseModel):
    """Pre and post hooks configured for one hook name."""

    pre: list[str | HookEntry] = Field(default_factory=list)
    post: list[str | HookEntry] = Field(default_factory=list)


def _as_entry(entry: str | HookEntry) -> HookEntry:
    if isinstance(entry, str):
        return HookEntry(hook=entry)
    return entry


class HookwrapConfig(BaseSettings):
    """Main configuration for hookwrap that reads from hookwrap.yaml."""

    model_config = SettingsConfigDict(
        env_prefix="HOOKWRAP_",
        case_sensitive=False,
        extra="ignore",
    )

    debug: bool = False

    # Options applied to every wrapped call unless overridden
    defaults: WrapOptions = Field(default_factory=WrapOptions)

    # Hook name -> pre/post import paths
    hooks: dict[str, HookSet] = Field(default_factory=dict)

    # Path to the loaded hookwrap.yaml
    config_path: Path | None = None

    def load_hooks(self, registry: HookRegistry, *, strict: bool = False) -> int:
        """Import configured hook functions and register them.

        Args:
            registry: Registry to add the hooks to
            strict: Raise on the first hook that cannot be imported

        Returns:
            Number of hooks registered

        Raises:
            HookLoadError: If ``strict`` and a hook cannot be imported
        """
        loaded = 0
        for name, hook_set in self.hooks.items():
            for phase, entries in (("pre", hook_set.pre), ("post", hook_set.post)):
                for raw_entry in entries:
                    entry = _as_entry(raw_entry)
                    try:
                        fn = entry.load()
                    except (ImportError, AttributeError, ValueError) as e:
                        if strict:
                            raise HookLoadError(entry.hook, e) from e
                        logger.warning("Failed to load %s hook %s for '%s': %s", phase, entry.hook, name, e)
                        continue

                    if phase == "pre":
                        registry.add_pre(name, fn, convention=entry.convention)
                    else:
                        registry.add_post(name, fn, convention=entry.convention)
                    loaded += 1
                    logger.debug("Loaded %s hook for '%s': %s", phase, name, entry.hook)
        return loaded

    @classmethod
    def from_yaml(cls, yaml_path: Path, **kwargs: Any) -> HookwrapConfig:
        """Load configuration from a hookwrap.yaml file.

        Args:
            yaml_path: Path to the hookwrap.yaml file
            **kwargs: Additional settings, overridden by the file

        Returns:
            HookwrapConfig instance
        """
        data: dict[str, Any] = {}
        if yaml_path.exists():
            with yaml_path.open() as f:
                raw = yaml.safe_load(f) or {}
            section = raw.get("hookwrap", {}) if isinstance(raw, dict) else {}
            if isinstance(section, dict):
                data = section
            else:
                logger.warning("Invalid hookwrap section in %s: %s", yaml_path, type(section).__name__)

        return cls(**{**kwargs, **data, "config_path": yaml_path})


# Global configuration instance
_config_instance: HookwrapConfig | None = None
_config_lock = threading.Lock()


def get_config() -> HookwrapConfig:
    """Get the configuration instance."""
    global _config_instance

    if _config_instance is None:
        with _config_lock:
            # Double-check locking pattern
            if _config_instance is None:
                _config_instance = _discover_config()

    return _config_instance


def _discover_config() -> HookwrapConfig:
    env_config_dir = os.environ.get("HOOKWRAP_CONFIG_DIR")
    if env_config_dir:
        config_path = Path(env_config_dir) / CONFIG_FILENAME
        logger.info("Using config directory from environment: %s", env_config_dir)
        if config_path.exists():
            return HookwrapConfig.from_yaml(config_path)
        logger.info("%s not found at %s, using default config", CONFIG_FILENAME, config_path)
        return HookwrapConfig()

    fallback_path = Path.home() / ".hookwrap" / CONFIG_FILENAME
    if fallback_path.exists():
        logger.info("Using fallback config: %s", fallback_path)
        return HookwrapConfig.from_yaml(fallback_path)

    logger.debug("No %s found in any location, using defaults", CONFIG_FILENAME)
    return HookwrapConfig()


def set_config_instance(config: HookwrapConfig) -> None:
    """Set the global configuration instance (for testing)."""
    global _config_instance
    _config_instance = config


def clear_config_instance() -> None:
    """Clear the global configuration instance (for testing)."""
    global _config_instance
    _config_instance = None
