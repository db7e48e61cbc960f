import typer
import yaml
from pathlib import Path
from typing import Optional

from ccmp.config.loader import load_config
from ccmp.domain.errors import CompressionError, InputNotFound
from ccmp.infrastructure.logging import setup_logging
from ccmp.infrastructure.event_bus import EventBus
from ccmp.pipeline.orchestrator import Orchestrator
from ccmp.ui.state import UIState
from ccmp.ui.manager import UIManager
from ccmp.ui.dashboard import Dashboard

app = typer.Typer(help="ccmp - race gzip, brotli and deflate on a single file")

EXIT_ALL_FAILED = 2
EXIT_INTERRUPTED = 130

@app.command()
def compress(
    input_file: Optional[Path] = typer.Argument(None, help="File to compress with every codec"),
    config_path: Optional[Path] = typer.Option(Path("conf/ccmp.yaml"), "--config", "-c", help="Path to YAML config"),
    output_dir: Optional[Path] = typer.Option(None, "--output-dir", "-o", help="Directory for compressed files (default: current directory)"),
    chunk_size: Optional[int] = typer.Option(None, "--chunk-size", help="Read size in bytes per chunk"),
    delete_partial: Optional[bool] = typer.Option(None, "--delete-partial/--keep-partial", help="Remove output of failed jobs"),
    debug: bool = typer.Option(False, "--debug/--no-debug", help="Enable verbose debug logging")
):
    """Compress INPUT_FILE concurrently with every codec and compare the results."""
    if input_file is None:
        typer.secho("Error: Valid file path is required", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    if not input_file.exists():
        typer.secho(f"Error: File {input_file} does not exist.", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    try:
        config = load_config(config_path)
        # Apply CLI overrides
        if output_dir is not None: config.general.output_dir = output_dir
        if chunk_size is not None: config.general.chunk_size = chunk_size
        if delete_partial is not None: config.general.delete_partial_output = delete_partial
        if debug: config.general.debug = True
        # Re-validate after overrides
        config = config.model_validate(config.model_dump())

        out_dir = config.general.output_dir or Path.cwd()
        logger = setup_logging(out_dir, debug=config.general.debug)
        logger.info(f"ccmp started: input={input_file}, output_dir={out_dir}")
        logger.info(
            f"Config: codecs={config.general.codecs}, chunk_size={config.general.chunk_size}, "
            f"threads={config.general.threads}, delete_partial={config.general.delete_partial_output}"
        )

        bus = EventBus()
        ui_state = UIState()
        UIManager(bus, ui_state)
        orchestrator = Orchestrator(config=config, event_bus=bus)
        dashboard = Dashboard(ui_state)

        with dashboard:
            summary = orchestrator.run(input_file)

    except InputNotFound as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    except KeyboardInterrupt:
        typer.echo("\nInterrupted by user")
        raise typer.Exit(code=EXIT_INTERRUPTED)

    except (CompressionError, ValueError, OSError, yaml.YAMLError) as e:
        typer.secho(f"Fatal Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    for job in summary.failed_jobs:
        logger.error(f"{job.codec} failed at {job.failed_stage}: {job.error_message}")

    if orchestrator.shutdown_requested:
        raise typer.Exit(code=EXIT_INTERRUPTED)
    if summary.all_failed:
        typer.secho("Error: every codec failed", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=EXIT_ALL_FAILED)

if __name__ == "__main__":
    app()
