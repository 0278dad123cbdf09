"""CLI orchestration: wires config and the copy pipeline together."""

import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from copystrings.config import build_config, load_defaults
from copystrings.pipeline import PipelineError, run_pipeline

console = Console(stderr=True)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging with rich handler for colored, readable output."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def run(
    sources: list[str],
    output_dirs: list[str] | None,
    config_path: str | None = None,
    validate: bool | None = None,
    input_encoding: str | None = None,
    output_encoding: str | None = None,
    verbose: bool = False,
) -> None:
    """Main synchronous entry point for the CLI.

    Loads configuration before any source file is touched, then copies
    every source in order. Exits with a non-zero status on the first failure.

    Args:
        sources: Source file paths, in processing order.
        output_dirs: Every value given for --outdir.
        config_path: Optional YAML configuration file.
        validate: Whether to lint each file first; None keeps the default.
        input_encoding: Declared encoding of the sources, if any.
        output_encoding: Target charset, or "binary".
        verbose: Enable debug logging.
    """
    setup_logging(verbose)
    logger = logging.getLogger(__name__)

    try:
        defaults = load_defaults(config_path)
        if config_path:
            logger.debug("Configuration loaded from %s", config_path)

        config = build_config(
            output_dirs,
            defaults,
            validate=validate,
            input_encoding=input_encoding,
            output_encoding=output_encoding,
        )
        logger.debug(
            "Copying %d file(s) to %s (%s -> %s, validate=%s)",
            len(sources),
            config.output_dir,
            config.input_encoding or "as is",
            config.output_encoding,
            config.validate,
        )

        count = run_pipeline([Path(s) for s in sources], config)
        console.print(
            f"[green]Copied {count} file{'' if count == 1 else 's'} "
            f"to {config.output_dir}[/green]"
        )

    except FileNotFoundError as e:
        console.print(f"[red bold]Error:[/red bold] {e}")
        raise SystemExit(1)
    except ValueError as e:
        console.print(f"[red bold]Configuration error:[/red bold] {e}")
        raise SystemExit(1)
    except PipelineError as e:
        console.print(f"[red bold]Error:[/red bold] {e}")
        raise SystemExit(e.exit_code)
    except KeyboardInterrupt:
        console.print("\n[yellow]Copy cancelled by user.[/yellow]")
        raise SystemExit(130)
    except Exception as e:
        logger.exception("Unexpected error: %s", e)
        raise SystemExit(1)
