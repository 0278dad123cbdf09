"""Per-file copy pipeline: load, reconcile encoding, strip BOM, validate, convert."""

import contextlib
import logging
import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path

from copystrings import tools
from copystrings.config import PipelineConfig
from copystrings.encoding import (
    fold_encoding,
    reconcile_encoding,
    sniff_encoding,
    strip_utf8_bom,
)
from copystrings.tools import Outcome, ToolResult

logger = logging.getLogger(__name__)


class PipelineError(Exception):
    """A failure that stops the whole run with exit_code."""

    def __init__(self, message: str, exit_code: int = 1) -> None:
        super().__init__(message)
        self.exit_code = exit_code


class SourceReadError(PipelineError):
    pass


class ConversionError(PipelineError):
    pass


@dataclass
class FileJob:
    """State for one source file while it moves through the pipeline.

    Attributes:
        source_path: The file as given on the command line.
        effective_encoding: Encoding trusted for this file; starts as the
            declared encoding and may be replaced after sniffing.
        working_path: Path downstream tools read from.
        temp_path: Private BOM-free copy owned by this job, if one exists.
    """

    source_path: Path
    effective_encoding: str | None = None
    working_path: Path = field(init=False)
    temp_path: Path | None = None

    def __post_init__(self):
        self.working_path = self.source_path

    @property
    def base_name(self) -> str:
        return self.source_path.name


def load(path: Path) -> bytes:
    """Read a source file into memory.

    Raises:
        SourceReadError: If the file cannot be read.
    """
    try:
        return path.read_bytes()
    except OSError as e:
        raise SourceReadError(f"Cannot read {path}: {e.strerror or e}") from e


def validate(job: FileJob, config: PipelineConfig) -> ToolResult:
    """Lint the working file. Problems are reported but never fatal."""
    result = tools.lint(job.working_path, config.tools)
    if not result.ok:
        logger.warning("Validation of %s failed: plutil %s", job.source_path, result.describe())
    return result


def _check(result: ToolResult, tool: str, job: FileJob) -> None:
    """Turn a failed tool run into a ConversionError carrying its exit code."""
    if result.outcome is Outcome.SIGNALED:
        raise ConversionError(
            f"{tool} {result.describe()} while converting {job.source_path}",
            exit_code=128 + result.code,
        )
    if result.outcome is Outcome.EXITED:
        raise ConversionError(
            f"{tool} {result.describe()} while converting {job.source_path}",
            exit_code=result.code,
        )


def _write_output(job: FileJob, config: PipelineConfig, dest: Path) -> None:
    if config.binary_output:
        _check(tools.convert_to_binary(job.working_path, dest, config.tools), "plutil", job)
    elif job.effective_encoding is not None:
        # iconv reads the untouched bytes, so it resolves UTF-16 byte order itself.
        result = tools.reencode(
            job.working_path,
            dest,
            fold_encoding(job.effective_encoding),
            config.output_encoding,
            config.tools,
        )
        _check(result, "iconv", job)
    else:
        shutil.copyfile(job.working_path, dest)


def _is_same_file(a: Path, b: Path) -> bool:
    if a.resolve() == b.resolve():
        return True
    try:
        return os.path.samefile(a, b)
    except OSError:
        return False


def convert(job: FileJob, config: PipelineConfig) -> Path:
    """Write the job's output using exactly one strategy.

    Binary output when output_encoding is "binary", otherwise iconv when the
    effective encoding is known, otherwise a plain copy. A failed conversion
    leaves no partial file behind. A source that already sits at the output
    path is refused before anything touches it.

    Returns:
        The output path.

    Raises:
        ConversionError: If the tool fails or the output cannot be written.
    """
    dest = config.output_dir / job.base_name

    for path in (job.source_path, job.working_path):
        if _is_same_file(path, dest):
            raise ConversionError(f"Refusing to overwrite {job.source_path} with itself")

    before = _stat_or_none(dest)
    try:
        _write_output(job, config, dest)
    except OSError as e:
        _discard_output(dest, before)
        raise ConversionError(
            f"Cannot write {dest} from {job.source_path}: {e.strerror or e}"
        ) from e
    except ConversionError:
        _discard_output(dest, before)
        raise

    return dest


def _stat_or_none(path: Path) -> os.stat_result | None:
    try:
        return path.stat()
    except OSError:
        return None


def _discard_output(dest: Path, before: os.stat_result | None) -> None:
    """Remove dest only if this conversion created or wrote to it."""
    after = _stat_or_none(dest)
    if after is None:
        return
    if before is not None and (before.st_mtime_ns, before.st_size) == (
        after.st_mtime_ns,
        after.st_size,
    ):
        return
    with contextlib.suppress(OSError):
        dest.unlink()


def process_file(source: Path, config: PipelineConfig) -> Path:
    """Run one source file through the full pipeline.

    Args:
        source: Path of the source file.
        config: Run configuration; it is never modified.

    Returns:
        Path of the file written to the output directory.

    Raises:
        PipelineError: On a read failure or a failed conversion.
    """
    job = FileJob(source_path=source, effective_encoding=config.input_encoding)

    data = load(job.source_path)
    job.effective_encoding = reconcile_encoding(
        sniff_encoding(data), job.effective_encoding, job.source_path
    )

    with strip_utf8_bom(job, data):
        if config.validate:
            validate(job, config)
        dest = convert(job, config)

    logger.info("Copied %s -> %s", job.source_path, dest)
    return dest


def run_pipeline(sources: list[Path], config: PipelineConfig) -> int:
    """Process every source in order, stopping at the first failure.

    Returns:
        Number of files written.
    """
    try:
        config.output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise PipelineError(f"Cannot create {config.output_dir}: {e.strerror or e}") from e

    count = 0
    for source in sources:
        process_file(source, config)
        count += 1
    return count
