"""Main CLI entry point for GoldSignal.

This module provides the main click group and lazy loading
for heavy imports to improve startup time.
"""

import importlib

import click
from rich.console import Console
from rich.panel import Panel

# Console for rich output
console = Console()


class LazyGroup(click.Group):
    """A click Group that lazily loads commands.

    Command modules are only imported when the command is invoked, so
    ``--help`` does not pull in the agents SDK.
    """

    def __init__(self, *args, lazy_subcommands: dict[str, str] | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self._lazy_subcommands = lazy_subcommands or {}

    def list_commands(self, ctx: click.Context) -> list[str]:
        base = super().list_commands(ctx)
        lazy = list(self._lazy_subcommands.keys())
        return sorted(set(base + lazy))

    def get_command(self, ctx: click.Context, cmd_name: str) -> click.Command | None:
        if cmd_name in self.commands:
            return self.commands[cmd_name]

        if cmd_name in self._lazy_subcommands:
            return self._lazy_load(cmd_name)

        return None

    def _lazy_load(self, cmd_name: str) -> click.Command:
        module_path = self._lazy_subcommands[cmd_name]
        module = importlib.import_module(module_path)

        attr = getattr(module, cmd_name, None)
        if not isinstance(attr, click.Command):
            raise click.ClickException(f"Could not find command '{cmd_name}' in {module_path}")

        self.add_command(attr)
        return attr


LAZY_SUBCOMMANDS = {
    "snapshot": "goldsignal.cli.snapshot",
    "ichimoku": "goldsignal.cli.snapshot",
    "signal": "goldsignal.cli.signal",
    "live": "goldsignal.cli.live",
}


CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}


@click.group(cls=LazyGroup, lazy_subcommands=LAZY_SUBCOMMANDS, context_settings=CONTEXT_SETTINGS)
@click.version_option(package_name="goldsignal")
@click.pass_context
def cli(ctx: click.Context) -> None:
    """GoldSignal - live technical indicators and AI signals for spot gold.

    \b
    Quick Start:
      goldsignal init              # Write a template config
      goldsignal snapshot          # Current indicator snapshot
      goldsignal signal --offline  # Rule-based M1/M5/M15 signals
      goldsignal live              # Streaming dashboard
    """
    ctx.ensure_object(dict)


@cli.command()
@click.option("--force", is_flag=True, help="Overwrite an existing config file")
def init(force: bool) -> None:
    """Create a template config at ~/.config/goldsignal/config.toml."""
    from goldsignal.config import CONFIG_PATH, create_template_config

    if CONFIG_PATH.exists() and not force:
        console.print(Panel(
            f"[yellow]Config already exists:[/yellow] {CONFIG_PATH}\n\n"
            "Use [cyan]--force[/cyan] to overwrite it.",
            border_style="yellow",
        ))
        return

    path = create_template_config()
    console.print(f"[green]Wrote config template to[/green] {path}")


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
