"""Encoding sniffing, reconciliation and UTF-8 BOM handling for source files."""

import contextlib
import logging
import os
import tempfile
from collections.abc import Iterator
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from copystrings.pipeline import FileJob

logger = logging.getLogger(__name__)

UTF8_BOM = b"\xef\xbb\xbf"

# Leading byte markers, checked in order.
_BOM_MARKERS: tuple[tuple[bytes, str], ...] = (
    (b"\xfe\xff", "UTF-16BE"),
    (b"\xff\xfe", "UTF-16LE"),
    (UTF8_BOM, "UTF-8"),
)


def sniff_encoding(data: bytes) -> str | None:
    """Detect the encoding of data from its byte-order mark, if any.

    Only the marker bytes are inspected; content without a BOM is reported
    as unknown rather than guessed at.

    Args:
        data: Raw file content.

    Returns:
        "UTF-16BE", "UTF-16LE", "UTF-8", or None when no BOM is present.
    """
    for marker, name in _BOM_MARKERS:
        if data.startswith(marker):
            return name
    return None


def fold_encoding(name: str | None) -> str | None:
    """Collapse UTF-16 byte-order variants into the UTF-16 family name."""
    if name is not None and name.upper() in ("UTF-16BE", "UTF-16LE"):
        return "UTF-16"
    return name


def reconcile_encoding(
    sniffed: str | None,
    declared: str | None,
    path: Path | str,
) -> str | None:
    """Decide which encoding to trust for a file.

    Source files are often mislabeled, so the bytes on disk win over the
    declared encoding when the two disagree.

    Args:
        sniffed: Result of sniff_encoding for the file content.
        declared: Encoding the caller declared, or None.
        path: Source path, used in the warning.

    Returns:
        The effective encoding for the file.
    """
    folded_sniffed = fold_encoding(sniffed)
    folded_declared = fold_encoding(declared)

    if (
        folded_sniffed is not None
        and folded_declared is not None
        and folded_sniffed.lower() != folded_declared.lower()
    ):
        logger.warning(
            "%s: declared %s but content is %s; using %s",
            path,
            declared,
            folded_sniffed,
            sniffed,
        )
        return sniffed

    return declared


def has_utf8_bom(data: bytes, encoding: str | None) -> bool:
    """Whether data is UTF-8 content that starts with a UTF-8 BOM."""
    return (
        encoding is not None
        and encoding.lower() == "utf-8"
        and data.startswith(UTF8_BOM)
    )


@contextlib.contextmanager
def strip_utf8_bom(job: "FileJob", data: bytes) -> Iterator[Path]:
    """Point the job at a BOM-free copy of its content for the duration.

    iconv rejects a UTF-8 BOM in UTF-8 input and works on paths, so the
    stripped bytes are written to a private temp file outside the output
    directory. The temp file is removed when the block exits, whether it
    exits normally or through an exception.

    Args:
        job: The file job; its working_path and temp_path are updated.
        data: The job's full file content.

    Yields:
        The path downstream steps should read from.
    """
    if not has_utf8_bom(data, job.effective_encoding):
        yield job.working_path
        return

    fd, temp_name = tempfile.mkstemp(prefix=f"{job.base_name}.", suffix=".nobom")
    job.temp_path = Path(temp_name)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data[len(UTF8_BOM):])
        logger.debug("Stripped UTF-8 BOM from %s into %s", job.source_path, job.temp_path)

        job.working_path = job.temp_path
        yield job.working_path
    finally:
        with contextlib.suppress(FileNotFoundError):
            job.temp_path.unlink()
        logger.debug("Removed %s", job.temp_path)
        job.temp_path = None
