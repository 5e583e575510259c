"""Gateway configuration.

Values come from the environment so the same app factory works under
uvicorn's ``--factory`` mode, tests, and the CLI.
"""

from __future__ import annotations

import os
import shlex
from dataclasses import dataclass, field

DEFAULT_OPENKM_URL = "http://localhost:8080/OpenKM/services/rest"

# Placeholders: {input} source file, {output} text file, {format} source format
DEFAULT_CONVERTER = "pandoc --from {format} --to plain --output {output} {input}"

# Formats pandoc cannot read get a dedicated utility
DEFAULT_FORMAT_CONVERTERS: dict[str, str] = {
    "pdf": "pdftotext -enc UTF-8 {input} {output}",
}


def _float_env(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got {raw!r}") from e


@dataclass
class GatewayConfig:
    """Gateway configuration.

    Attributes:
        openkm_url: Base URL of the OpenKM REST API (no trailing slash)
        username: OpenKM user for HTTP Basic authentication
        password: OpenKM password
        timeout: Seconds allowed for each backend HTTP call
        converter: Default conversion command template
        format_converters: Per-format overrides of the conversion command
        convert_timeout: Seconds allowed for one conversion run
        heartbeat_interval: Seconds between SSE keepalive comments
        server_name: Name reported in the initialize handshake
        server_version: Version reported in the initialize handshake
    """

    openkm_url: str = DEFAULT_OPENKM_URL
    username: str = "okmAdmin"
    password: str = "admin"
    timeout: float = 30.0

    converter: str = DEFAULT_CONVERTER
    format_converters: dict[str, str] = field(
        default_factory=lambda: dict(DEFAULT_FORMAT_CONVERTERS)
    )
    convert_timeout: float = 60.0

    heartbeat_interval: float = 15.0

    server_name: str = "openkm"
    server_version: str = "1.0.0"

    def __post_init__(self) -> None:
        self.openkm_url = self.openkm_url.rstrip("/")
        if self.timeout <= 0:
            raise ValueError("timeout must be positive")
        if self.convert_timeout <= 0:
            raise ValueError("convert_timeout must be positive")

    @classmethod
    def from_env(cls) -> GatewayConfig:
        """Build configuration from ``OPENKM_*`` environment variables.

        An explicit ``OPENKM_CONVERTER`` is used for every format.
        """
        converter = os.environ.get("OPENKM_CONVERTER")
        return cls(
            openkm_url=os.environ.get("OPENKM_URL", DEFAULT_OPENKM_URL),
            username=os.environ.get("OPENKM_USER", "okmAdmin"),
            password=os.environ.get("OPENKM_PASSWORD", "admin"),
            timeout=_float_env("OPENKM_TIMEOUT", 30.0),
            converter=converter or DEFAULT_CONVERTER,
            format_converters={} if converter else dict(DEFAULT_FORMAT_CONVERTERS),
            convert_timeout=_float_env("OPENKM_CONVERT_TIMEOUT", 60.0),
            heartbeat_interval=_float_env("OPENKM_GATEWAY_HEARTBEAT", 15.0),
        )

    def converter_command(self, source_format: str) -> list[str]:
        """Return the conversion command template for a source format, split into argv."""
        template = self.format_converters.get(source_format.lower(), self.converter)
        return shlex.split(template)
