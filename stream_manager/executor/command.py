"""
FFmpeg command construction for published streams.

build_args() turns a stream record into the argument vector passed to
ffmpeg. It has no side effects.
"""

from typing import TYPE_CHECKING, Optional

from ..config.models import TranscodeConfig
from ..utils import format_number

if TYPE_CHECKING:
    from ..models.stream import StreamRecord

_DEFAULT_TRANSCODE = TranscodeConfig()


def escape_filter_path(path: str) -> str:
    """
    Quote a path for use as a filter option value.

    Backslashes and colons are escaped for the option parser, and the value
    is wrapped in single quotes for the filtergraph parser. Embedded quotes
    are spliced as '\\\\\\'' so the graph parser leaves \\' for the option
    parser.

    Args:
        path: File path or URL

    Returns:
        Quoted value (e.g., 'rtsp\\://host/a.mkv')
    """
    escaped = path.replace("\\", "\\\\").replace(":", "\\:")
    return "'" + escaped.replace("'", "'\\\\\\''") + "'"


def output_url(target: str, name: str) -> str:
    """Join the target base and the stream name with exactly one slash."""
    return target.rstrip("/") + "/" + name


def build_args(
    record: "StreamRecord",
    transcode: Optional[TranscodeConfig] = None,
) -> list[str]:
    """
    Build the ffmpeg arguments for a stream.

    Args:
        record: Stream to publish
        transcode: Codec and output settings (defaults if None)

    Returns:
        Argument vector, without the executable
    """
    transcode = transcode or _DEFAULT_TRANSCODE

    args = [
        "-hide_banner",
        "-loglevel",
        "error",
        "-copyts",
        "-start_at_zero",
        "-preset",
        transcode.preset,
    ]

    read_rate = max(record.read_rate / 100.0, 1.0)
    args.extend(["-readrate", format_number(read_rate)])

    # Seeking on both sides of -i keeps the position accurate for containers
    # with sparse keyframes.
    if record.start_position > 0:
        start = format_number(record.start_position)
        args.extend(["-ss", start, "-i", record.source, "-ss", start])
    else:
        args.extend(["-i", record.source])

    if record.video_channel is not None:
        args.extend(["-c:v", transcode.video_codec, "-map", f"0:v:{record.video_channel}"])

    if record.audio_channel is not None:
        args.extend(["-c:a", transcode.audio_codec, "-map", f"0:a:{record.audio_channel}"])

    if record.subtitle_channel is not None:
        subtitles = (
            f"subtitles={escape_filter_path(record.source)}"
            f":stream_index={record.subtitle_channel}"
        )
        args.extend(["-vf", subtitles])

    args.extend(
        [
            "-f",
            transcode.output_format,
            "-rtsp_transport",
            transcode.rtsp_transport,
            "-auth_type",
            transcode.auth_type,
            output_url(record.target, record.name),
        ]
    )

    return args
