"""
Media source probing using FFprobe.

The probe result is advisory metadata for choosing channel indices before a
stream is launched; it never touches the registry.
"""

import asyncio
import json
from typing import Any

from ..utils import ProbeError, get_logger

logger = get_logger(__name__)


def build_probe_command(source: str, ffprobe_path: str = "ffprobe") -> list[str]:
    """Build the ffprobe command printing format and streams as JSON."""
    return [
        ffprobe_path,
        "-v",
        "quiet",
        "-print_format",
        "json",
        "-show_format",
        "-show_streams",
        source,
    ]


async def probe(source: str, ffprobe_path: str = "ffprobe") -> bytes:
    """
    Probe a media source.

    Args:
        source: File path or URL
        ffprobe_path: Path to ffprobe executable

    Returns:
        Raw JSON document produced by ffprobe

    Raises:
        ProbeError: If ffprobe cannot be started or fails
    """
    command = build_probe_command(source, ffprobe_path)
    logger.debug(f"Probing source: {source}")

    try:
        process = await asyncio.create_subprocess_exec(
            *command,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except (OSError, ValueError) as e:
        raise ProbeError(f"failed to start {ffprobe_path}: {e}") from e

    stdout, stderr = await process.communicate()

    if process.returncode != 0:
        message = stderr.decode(errors="replace").strip() or f"exit status {process.returncode}"
        raise ProbeError(f"ffprobe failed for {source}: {message}")

    return stdout


def summarize_streams(probe_output: bytes | str) -> list[dict[str, Any]]:
    """
    Index the streams of a probe result per type.

    The per-type index is what the video/audio/subtitle channel settings of a
    stream refer to.

    Args:
        probe_output: JSON document returned by probe()

    Returns:
        One entry per stream with codec_type, channel index, codec, language and title

    Raises:
        ProbeError: If the document is not valid probe output
    """
    try:
        data = json.loads(probe_output)
    except (TypeError, ValueError) as e:
        raise ProbeError(f"invalid probe output: {e}") from e

    counters: dict[str, int] = {}
    streams = []
    for stream in data.get("streams", []):
        codec_type = stream.get("codec_type", "unknown")
        channel = counters.get(codec_type, 0)
        counters[codec_type] = channel + 1
        tags = stream.get("tags", {})
        streams.append(
            {
                "codec_type": codec_type,
                "channel": channel,
                "codec": stream.get("codec_name", "unknown"),
                "language": tags.get("language", "und"),
                "title": tags.get("title"),
            }
        )
    return streams
