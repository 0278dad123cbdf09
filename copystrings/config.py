"""Configuration loading and validation for the strings copy pipeline."""

import os
from dataclasses import dataclass, field, replace
from pathlib import Path

import yaml

BINARY_ENCODING = "binary"


@dataclass(frozen=True)
class ToolPaths:
    """Locations of the external tools the pipeline shells out to."""

    plutil: str = "/usr/bin/plutil"
    iconv: str = "/usr/bin/iconv"


@dataclass(frozen=True)
class PipelineConfig:
    """Settings shared by every file job in one run."""

    output_dir: Path
    validate: bool = False
    input_encoding: str | None = None
    output_encoding: str = "UTF-16"
    tools: ToolPaths = field(default_factory=ToolPaths)

    @property
    def binary_output(self) -> bool:
        return self.output_encoding.lower() == BINARY_ENCODING


@dataclass
class FileDefaults:
    """Values read from the YAML file, used when a flag is not given."""

    validate: bool = False
    input_encoding: str | None = None
    output_encoding: str = "UTF-16"
    tools: ToolPaths = field(default_factory=ToolPaths)


def load_defaults(config_path: str | None = None) -> FileDefaults:
    """Load pipeline defaults from an optional YAML file.

    Environment variable ICONV overrides the iconv path from the file.

    Args:
        config_path: Path to the YAML configuration file, or None to use
            built-in defaults only.

    Returns:
        FileDefaults instance.

    Raises:
        FileNotFoundError: If the config file does not exist.
        ValueError: If the file has the wrong shape.
    """
    raw: dict = {}
    if config_path is not None:
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}

        if not isinstance(raw, dict):
            raise ValueError(f"{config_path} must contain a mapping at the top level.")

    tools_raw = raw.get("tools", {}) or {}
    tools = ToolPaths(
        plutil=str(tools_raw.get("plutil", ToolPaths.plutil)),
        iconv=str(tools_raw.get("iconv", ToolPaths.iconv)),
    )

    # Environment variable override for the charset converter
    env_iconv = os.environ.get("ICONV")
    if env_iconv:
        tools = replace(tools, iconv=env_iconv)

    defaults_raw = raw.get("defaults", {}) or {}
    validate = defaults_raw.get("validate", FileDefaults.validate)
    if not isinstance(validate, bool):
        raise ValueError("defaults.validate must be true or false.")

    return FileDefaults(
        validate=validate,
        input_encoding=defaults_raw.get("input_encoding", FileDefaults.input_encoding),
        output_encoding=defaults_raw.get("output_encoding", FileDefaults.output_encoding),
        tools=tools,
    )


def build_config(
    output_dirs: list[str] | None,
    defaults: FileDefaults,
    validate: bool | None = None,
    input_encoding: str | None = None,
    output_encoding: str | None = None,
) -> PipelineConfig:
    """Merge command-line values over file defaults into a PipelineConfig.

    Args:
        output_dirs: Every value given for --outdir, in order.
        defaults: Defaults loaded from the config file and environment.
        validate: --validate / --no-validate, or None if not given.
        input_encoding: --inputencoding, or None if not given.
        output_encoding: --outputencoding, or None if not given.

    Returns:
        Validated PipelineConfig instance.

    Raises:
        ValueError: If validation fails.
    """
    if not output_dirs:
        raise ValueError("No destination directory given. Use --outdir DIR.")
    if len(output_dirs) > 1:
        raise ValueError(
            f"--outdir must be given exactly once (got {len(output_dirs)}: "
            f"{', '.join(output_dirs)})."
        )
    if not output_dirs[0].strip():
        raise ValueError("Destination directory must not be empty.")

    config = PipelineConfig(
        output_dir=Path(output_dirs[0]),
        validate=defaults.validate if validate is None else validate,
        input_encoding=defaults.input_encoding if input_encoding is None else input_encoding,
        output_encoding=defaults.output_encoding if output_encoding is None else output_encoding,
        tools=defaults.tools,
    )
    _validate_config(config)
    return config


def _validate_config(config: PipelineConfig) -> None:
    """Validate that all required configuration values are present.

    Args:
        config: The configuration to validate.

    Raises:
        ValueError: If validation fails.
    """
    if config.input_encoding is not None and not config.input_encoding.strip():
        raise ValueError("Input encoding must not be empty when given.")

    if not config.output_encoding or not config.output_encoding.strip():
        raise ValueError("Output encoding must not be empty.")

    if not config.tools.plutil:
        raise ValueError("tools.plutil must not be empty.")

    if not config.tools.iconv:
        raise ValueError("tools.iconv must not be empty.")

    if config.output_dir.exists() and not config.output_dir.is_dir():
        raise ValueError(f"Destination is not a directory: {config.output_dir}")
