"""Data stream protocol and client-side message accumulation."""

from agentchat.streaming.accumulator import ArtifactState, MessageAccumulator, parse_partial_json
from agentchat.streaming.protocol import (
    DataStreamWriter,
    StreamPart,
    StreamPartType,
    format_stream_part,
    parse_stream_part,
)

__all__ = [
    "ArtifactState",
    "DataStreamWriter",
    "MessageAccumulator",
    "StreamPart",
    "StreamPartType",
    "format_stream_part",
    "parse_partial_json",
    "parse_stream_part",
]
