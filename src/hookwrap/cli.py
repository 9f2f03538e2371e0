"""hookwrap CLI - Tyro implementation."""

import asyncio
import importlib
import logging
import sys
from pathlib import Path
from typing import Annotated, Any

import attrs
import tyro
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from hookwrap.config import HookwrapConfig, get_config, set_config_instance
from hookwrap.hooks import Hooks


# Subcommand definitions using attrs
@attrs.define
class Show:
    """Show the configured pre and post hooks."""

    name: Annotated[str | None, tyro.conf.Positional] = None
    """Only show hooks registered under this name."""


@attrs.define
class Run:
    """Run a callable wrapped with the configured hooks."""

    name: Annotated[str, tyro.conf.Positional]
    """Hook name whose hooks wrap the callable."""

    target: Annotated[str, tyro.conf.Positional]
    """Import path of the callable (module.attr)."""

    args: Annotated[list[str], tyro.conf.Positional] = attrs.Factory(list)
    """String arguments passed to the callable."""

    error_handlers: Annotated[bool, tyro.conf.arg(aliases=["-e"])] = False
    """Route pre hook and callable errors into the post hooks."""


Command = Annotated[Show, tyro.conf.subcommand(name="show")] | Annotated[Run, tyro.conf.subcommand(name="run")]


def setup_logging(debug: bool = False) -> None:
    """Configure logging with 100-character text width."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s - %(name)-20s - %(levelname)-8s - %(message).100s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def load_config(config: Path | None) -> HookwrapConfig:
    """Load the configuration from ``config`` or by discovery."""
    if config is None:
        return get_config()
    instance = HookwrapConfig.from_yaml(config)
    set_config_instance(instance)
    return instance


def import_target(target: str) -> Any:
    """Import a callable from a module.attr path."""
    module_path, _, attr = target.rpartition(".")
    if not module_path:
        raise ValueError(f"Target '{target}' must be module.attr")
    module = importlib.import_module(module_path)
    return getattr(module, attr)


def show_hooks(config: HookwrapConfig, name: str | None, console: Console) -> None:
    """Print a table of configured hooks."""
    names = [name] if name else list(config.hooks)
    if name and name not in config.hooks:
        console.print(f"[yellow]No hooks configured for '{name}'[/yellow]")
        return
    if not names:
        console.print("[yellow]No hooks configured[/yellow]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Name", style="cyan")
    table.add_column("Phase", style="magenta")
    table.add_column("#", justify="right")
    table.add_column("Hook", style="green")
    table.add_column("Convention", style="yellow")

    for hook_name in names:
        hook_set = config.hooks[hook_name]
        for phase, entries in (("pre", hook_set.pre), ("post", hook_set.post)):
            for index, entry in enumerate(entries, start=1):
                if isinstance(entry, str):
                    path, convention = entry, "auto"
                else:
                    path = entry.hook
                    convention = entry.convention.value if entry.convention else "auto"
                table.add_row(hook_name, phase, str(index), path, convention)

    console.print(Panel(table, title="[bold]hookwrap Hooks[/bold]", border_style="blue"))


def run_target(config: HookwrapConfig, cmd: Run, console: Console) -> int:
    """Run ``cmd.target`` wrapped with the hooks for ``cmd.name``.

    Returns:
        Process exit code
    """
    err_console = Console(stderr=True)
    try:
        fn = import_target(cmd.target)
    except (ImportError, AttributeError, ValueError) as e:
        err_console.print(f"[red]Error:[/red] cannot import {cmd.target}: {e}")
        return 1

    hooks = Hooks.from_config(config)
    overrides = {"use_error_handlers": True} if cmd.error_handlers else {}
    wrapper = hooks.create_wrapper(cmd.name, fn, **overrides)

    try:
        result = asyncio.run(wrapper(*cmd.args))
    except Exception as e:
        err_console.print(f"[red]Error:[/red] {type(e).__name__}: {e}")
        return 1

    console.print(result)
    return 0


def main(
    cmd: Annotated[Command, tyro.conf.arg(name="")],
    *,
    config: Annotated[Path | None, tyro.conf.arg(help="Path to hookwrap.yaml")] = None,
) -> None:
    """hookwrap - pre/post hooks around sync, callback and awaitable callables."""
    instance = load_config(config)
    setup_logging(instance.debug)
    console = Console()

    if isinstance(cmd, Show):
        show_hooks(instance, cmd.name, console)

    elif isinstance(cmd, Run):
        sys.exit(run_target(instance, cmd, console))


def entry_point() -> None:
    """Entry point for the hookwrap command."""
    tyro.cli(main)


if __name__ == "__main__":
    entry_point()
