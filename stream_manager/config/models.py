"""
Configuration models using Pydantic.

This module defines the manager settings and the per-stream configuration
that is validated on launch and mirrored into the durable store.
"""

import json
import re
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from stream_manager.utils import ValidationError

NAME_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+$")

# Stored start positions are integer nanoseconds
NANOSECONDS = 1_000_000_000


class TranscodeConfig(BaseModel):
    """FFmpeg invocation settings."""

    ffmpeg_path: str = Field(default="ffmpeg", description="Path to ffmpeg executable")
    ffprobe_path: str = Field(default="ffprobe", description="Path to ffprobe executable")
    preset: str = Field(
        default="ultrafast",
        description="Encoding preset: ultrafast, superfast, veryfast, faster, fast, medium, slow, slower, veryslow",
    )
    video_codec: str = Field(default="libx264", description="Codec for the selected video stream")
    audio_codec: str = Field(default="aac", description="Codec for the selected audio stream")
    output_format: str = Field(default="rtsp", description="Output muxer")
    rtsp_transport: str = Field(default="tcp", description="RTSP lower transport")
    auth_type: str = Field(default="digest", description="HTTP/RTSP auth type for the target")

    @field_validator("preset")
    @classmethod
    def validate_preset(cls, v: str) -> str:
        """Validate encoding preset."""
        valid_presets = [
            "ultrafast",
            "superfast",
            "veryfast",
            "faster",
            "fast",
            "medium",
            "slow",
            "slower",
            "veryslow",
        ]
        if v.lower() not in valid_presets:
            raise ValueError(f"preset must be one of {valid_presets}")
        return v.lower()


class RunnerConfig(BaseModel):
    """Process supervision settings."""

    capture_limit: int = Field(
        default=4096, ge=128, le=1 << 20, description="Bytes of process output kept per runner"
    )
    error_tail: int = Field(
        default=128, ge=16, le=4096, description="Characters of output reported as error detail"
    )
    stop_timeout: Optional[float] = Field(
        default=10.0, gt=0, description="Seconds to wait after SIGTERM before SIGKILL (null = wait)"
    )


class StoreConfig(BaseModel):
    """Durable store settings."""

    redis_url: Optional[str] = Field(
        default=None, description="Redis URL for persisted streams (null = in-memory only)"
    )
    key_prefix: str = Field(default="", description="Prefix for stream keys in Redis")


class ManagerConfig(BaseModel):
    """Main stream manager configuration."""

    target: str = Field(
        default="rtsp://localhost",
        description="Remote stream server to publish to (rtsp/rtsps/etc)",
    )
    transcode: TranscodeConfig = Field(default_factory=TranscodeConfig)
    runner: RunnerConfig = Field(default_factory=RunnerConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)

    @field_validator("target")
    @classmethod
    def validate_target(cls, v: str) -> str:
        """Validate the publish target."""
        if not v.strip():
            raise ValueError("target must not be empty")
        return v.strip()


class StreamConfig(BaseModel):
    """
    Configuration of one named stream.

    Channel indices select the n-th video, audio or subtitle stream of the
    source; None leaves the selection out of the command entirely. Negative
    indices are accepted as "unset" for compatibility with stored entries.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    source: str
    start_position: float = Field(
        default=0.0, ge=0.0, allow_inf_nan=False, description="Seek offset in seconds"
    )
    video_channel: Optional[int] = 0
    audio_channel: Optional[int] = 0
    subtitle_channel: Optional[int] = None
    read_rate: int = Field(default=100, ge=0, description="Input read rate in percent of real time")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate stream name."""
        if not NAME_PATTERN.fullmatch(v):
            raise ValueError(f"invalid name: {v!r}")
        return v

    @field_validator("source")
    @classmethod
    def validate_source(cls, v: str) -> str:
        """Validate stream source."""
        if not v.strip():
            raise ValueError("no source")
        if "\x00" in v:
            raise ValueError("invalid source: contains NUL character")
        return v

    @field_validator("video_channel", "audio_channel", "subtitle_channel")
    @classmethod
    def normalize_channel(cls, v: Optional[int]) -> Optional[int]:
        """Map negative channel indices to unset."""
        if v is not None and v < 0:
            return None
        return v

    @classmethod
    def parse(cls, data: "StreamConfig | dict[str, Any]") -> "StreamConfig":
        """
        Build a stream configuration, raising the package ValidationError.

        Args:
            data: Existing configuration or mapping of field values

        Returns:
            Validated StreamConfig

        Raises:
            ValidationError: If any field is invalid
        """
        if isinstance(data, cls):
            return data
        try:
            return cls.model_validate(data)
        except PydanticValidationError as e:
            raise ValidationError(_describe(e)) from e

    def dump_entry(self) -> str:
        """
        Serialize for the durable store.

        Returns:
            JSON entry with the stored field names
        """
        entry = {
            "name": self.name,
            "source": self.source,
            "startpos": round(self.start_position * NANOSECONDS),
            "video": _channel_out(self.video_channel),
            "audio": _channel_out(self.audio_channel),
            "subtitle": _channel_out(self.subtitle_channel),
            "readrate": self.read_rate,
        }
        return json.dumps(entry)

    @classmethod
    def load_entry(cls, raw: str | bytes) -> "StreamConfig":
        """
        Deserialize an entry written by dump_entry().

        Args:
            raw: JSON entry

        Returns:
            Validated StreamConfig

        Raises:
            ValidationError: If the entry is not valid JSON or has invalid fields
        """
        try:
            entry = json.loads(raw)
        except (TypeError, ValueError) as e:
            raise ValidationError(f"json error: {e}") from e
        if not isinstance(entry, dict):
            raise ValidationError(f"json error: expected object, got {type(entry).__name__}")

        startpos = entry.get("startpos", 0)
        if not isinstance(startpos, (int, float)) or isinstance(startpos, bool):
            raise ValidationError(f"invalid startpos: {startpos!r}")

        return cls.parse(
            {
                "name": entry.get("name", ""),
                "source": entry.get("source", ""),
                "start_position": startpos / NANOSECONDS,
                "video_channel": entry.get("video", 0),
                "audio_channel": entry.get("audio", 0),
                "subtitle_channel": entry.get("subtitle", 0),
                "read_rate": entry.get("readrate", 100),
            }
        )


def _channel_out(channel: Optional[int]) -> int:
    return -1 if channel is None else channel


def _describe(error: PydanticValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(p) for p in item.get("loc", ())) or "config"
        parts.append(f"{location}: {item.get('msg', 'invalid value')}")
    return "; ".join(parts)
