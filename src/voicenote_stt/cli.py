#!/usr/bin/env python3
"""voicenote-stt command line interface."""

import asyncio
import json as json_module
import sys

import rich_click as click
from rich.console import Console
from rich.table import Table

from . import __version__
from .app_hooks import on_download, on_models, on_status, on_transcribe
from .core.config import ConfigLoader
from .core.logging import configure_logging
from .transcription.types import ModelUnavailableError

# Configure rich-click before any command is built
click.rich_click.USE_RICH_MARKUP = True

click.rich_click.STYLE_OPTION = "#ff79c6"
click.rich_click.STYLE_ARGUMENT = "#8be9fd"
click.rich_click.STYLE_COMMAND = "#50fa7b"
click.rich_click.STYLE_USAGE = "#bd93f9"
click.rich_click.STYLE_HELPTEXT = "#b3b8c0"

console = Console()
err_console = Console(stderr=True)


def _emit(result: dict, as_json: bool) -> None:
    if as_json:
        click.echo(json_module.dumps(result))


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__, prog_name="voicenote-stt")
@click.option("--config", "config_path", type=click.Path(dir_okay=False), help="Configuration file path")
@click.option("--debug", is_flag=True, help="Enable detailed debug logging")
@click.pass_context
def main(ctx, config_path, debug):
    """🎙️ [bold cyan]voicenote-stt[/bold cyan] - Transcribe voice notes on-device or in the cloud

    \b
    [bold yellow]Quick Start:[/bold yellow]
      [green]voicenote-stt transcribe note.wav[/green]                  [italic]# On-device (Vosk)[/italic]
      [green]voicenote-stt transcribe note.m4a --provider cloud[/green] [italic]# Cloud (Whisper)[/italic]
      [green]voicenote-stt download[/green]                             [italic]# Fetch the Vosk model[/italic]
    """
    config = ConfigLoader(config_path)
    configure_logging(config, debug=debug)
    ctx.obj = {"config": config, "debug": debug}


@main.command()
@click.argument("audio_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--provider", "-p", help="Provider: vosk (on-device) or whisper (cloud)")
@click.option("--language", "-l", help="Language code for the cloud provider (e.g., 'en', 'de')")
@click.option("--detailed", is_flag=True, help="Segment-level result (cloud only)")
@click.option("--json", "as_json", is_flag=True, help="Output JSON format (default: simple text)")
@click.pass_context
def transcribe(ctx, audio_file, provider, language, detailed, as_json):
    """Transcribe a recorded voice note."""
    result = asyncio.run(
        on_transcribe(audio_file, provider=provider, language=language, detailed=detailed, config=ctx.obj["config"])
    )
    if as_json:
        _emit(result, as_json)
    elif result["status"] == "success":
        click.echo(result["text"])
    else:
        err_console.print(f"[red]Error: {result['message']}[/red]")

    if result["status"] != "success":
        sys.exit(1)


@main.command()
@click.option("--language", "-l", help="Only list models for this language code")
@click.option("--json", "as_json", is_flag=True, help="Output JSON format")
@click.pass_context
def models(ctx, language, as_json):
    """List published Vosk models."""
    try:
        result = asyncio.run(on_models(language=language, config=ctx.obj["config"]))
    except ModelUnavailableError as e:
        err_console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)

    if as_json:
        _emit(result, as_json)
        return

    table = Table(title="Vosk models")
    table.add_column("Name", style="cyan")
    table.add_column("Language")
    table.add_column("Size (MB)", justify="right")
    table.add_column("Cached", justify="center")
    for model in result["models"]:
        marker = "✓" if model["cached"] else ""
        name = f"[bold]{model['name']}[/bold]" if model["name"] == result["configured"] else model["name"]
        table.add_row(name, model["lang"], str(model["size_mb"]), marker)
    console.print(table)


@main.command()
@click.argument("model", required=False)
@click.option("--force", is_flag=True, help="Download again even if cached")
@click.option("--json", "as_json", is_flag=True, help="Print progress as JSON lines")
@click.pass_context
def download(ctx, model, force, as_json):
    """Download a Vosk model into the local cache."""

    def progress(data: dict) -> None:
        if as_json:
            click.echo(json_module.dumps(data))
        elif data["status"] == "downloading":
            console.print(f"  {data['downloaded_mb']} / {data['total_mb']} MB", end="\r")

    try:
        result = asyncio.run(
            on_download(model=model, force=force, progress_callback=progress, config=ctx.obj["config"])
        )
    except ModelUnavailableError as e:
        err_console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)

    if not as_json:
        console.print(f"[green]✓[/green] {result['model']} → {result['path']}")


@main.command()
@click.option("--json", "as_json", is_flag=True, help="Output JSON format")
@click.pass_context
def status(ctx, as_json):
    """Show configured provider and provider availability."""
    result = on_status(config=ctx.obj["config"])
    if as_json:
        _emit(result, as_json)
        return

    console.print(f"[bold]Provider:[/bold] {result['provider']} ({result['language']})")
    for info in result["providers"].values():
        marker = "[green]✓[/green]" if info["available"] else "[red]✗[/red]"
        console.print(f"  {marker} {info['name']}: {info['description']}")
        if not info["available"]:
            console.print(f"      install: {info['install']}")
    cached = "[green]cached[/green]" if result["vosk_model_cached"] else "[yellow]not downloaded[/yellow]"
    console.print(f"[bold]Vosk model:[/bold] {result['vosk_model']} ({cached})")
    key_state = "[green]set[/green]" if result["openai_api_key_set"] else "[yellow]missing[/yellow]"
    console.print(f"[bold]OpenAI API key:[/bold] {key_state}")


if __name__ == "__main__":
    main()
