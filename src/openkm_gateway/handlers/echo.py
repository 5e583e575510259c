"""Diagnostic ``echo`` tool, useful for testing the transport end to end."""

from __future__ import annotations

from pydantic import BaseModel

from ..protocol import ProtocolEngine


class EchoInput(BaseModel):
    message: str


def register(engine: ProtocolEngine) -> None:
    @engine.tool("echo", "Echoes back the input message", EchoInput)
    async def echo(args: EchoInput) -> str:
        return f"Tool echo: {args.message} {args.message}"
