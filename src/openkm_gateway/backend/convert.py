"""Document-to-text conversion through an external utility.

The document is written into a private temporary directory, the
configured command is run against it, and the directory is removed
whatever the outcome. Command templates use ``{input}``, ``{output}``
and ``{format}`` placeholders; a template without ``{output}`` is
expected to print the text on stdout.
"""

from __future__ import annotations

import asyncio
import logging
import tempfile
from pathlib import Path

from ..config import GatewayConfig
from ..errors import ConversionFailed

logger = logging.getLogger(__name__)

# Decoded directly, no external utility involved
PLAIN_TEXT_FORMATS = frozenset({"txt", "text", "csv", "log", "json", "xml"})

# File suffix -> converter format name
FORMAT_ALIASES = {
    "md": "markdown",
    "htm": "html",
    "xhtml": "html",
}


def normalize_format(source_format: str) -> str:
    """``".PDF"`` -> ``"pdf"``, ``"md"`` -> ``"markdown"``."""
    fmt = source_format.strip().lstrip(".").lower()
    return FORMAT_ALIASES.get(fmt, fmt)


class DocumentConverter:
    """Converts document bytes of a given format to plain text."""

    def __init__(self, config: GatewayConfig) -> None:
        self._config = config

    async def convert_to_text(self, data: bytes, source_format: str) -> str:
        """Extract plain text from a document.

        Raises:
            ConversionFailed: If the utility is missing, times out, exits
                non-zero, or produces no text
        """
        fmt = normalize_format(source_format)
        if not fmt:
            raise ConversionFailed("Cannot determine document format")
        if not data:
            raise ConversionFailed("Document has no content")

        if fmt in PLAIN_TEXT_FORMATS:
            text = data.decode("utf-8", errors="replace")
        else:
            with tempfile.TemporaryDirectory(prefix="openkm-convert-") as tmp:
                text = await self._run(Path(tmp), data, fmt)

        if not text.strip():
            raise ConversionFailed(f"Conversion of {fmt} document produced no text")
        return text

    async def _run(self, workdir: Path, data: bytes, fmt: str) -> str:
        source = workdir / f"source.{fmt}"
        output = workdir / "output.txt"
        source.write_bytes(data)

        template = self._config.converter_command(fmt)
        if not template:
            raise ConversionFailed("No conversion command configured")
        writes_file = any("{output}" in arg for arg in template)
        argv = [
            arg.replace("{input}", str(source))
            .replace("{output}", str(output))
            .replace("{format}", fmt)
            for arg in template
        ]

        logger.debug(f"Converting {fmt} document ({len(data)} bytes): {' '.join(argv)}")
        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=workdir,
            )
        except (FileNotFoundError, PermissionError) as e:
            raise ConversionFailed(f"Cannot run converter '{argv[0]}': {e}") from e

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(), timeout=self._config.convert_timeout
            )
        except TimeoutError as e:
            await _terminate(process)
            raise ConversionFailed(
                f"Converter '{argv[0]}' timed out after {self._config.convert_timeout}s"
            ) from e
        except BaseException:
            # Cancelled: the utility must not outlive its temporary directory
            await _terminate(process)
            raise

        if process.returncode != 0:
            detail = stderr.decode("utf-8", errors="replace").strip()[:500]
            raise ConversionFailed(
                f"Converter '{argv[0]}' exited with status {process.returncode}: {detail}"
            )

        if writes_file:
            if not output.exists():
                raise ConversionFailed(f"Converter '{argv[0]}' produced no output file")
            return output.read_text(encoding="utf-8", errors="replace")
        return stdout.decode("utf-8", errors="replace")


async def _terminate(process: asyncio.subprocess.Process) -> None:
    if process.returncode is None:
        process.kill()
    await asyncio.shield(process.wait())
