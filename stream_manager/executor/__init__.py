"""Process execution and management."""

from stream_manager.executor.command import build_args, escape_filter_path, output_url
from stream_manager.executor.probe import build_probe_command, probe, summarize_streams
from stream_manager.executor.runner import OutputTail, ProcessRunner

__all__ = [
    "OutputTail",
    "ProcessRunner",
    "build_args",
    "build_probe_command",
    "escape_filter_path",
    "output_url",
    "probe",
    "summarize_streams",
]
