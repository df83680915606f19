"""RTSP source handling module."""

from .url_resolver import normalize_stream_url, redact_url, resolve_stream_url
from .connectivity_prober import ConnectivityProber, ProbeOutcome, ProbeResult

__all__ = [
    "ConnectivityProber",
    "ProbeOutcome",
    "ProbeResult",
    "normalize_stream_url",
    "redact_url",
    "resolve_stream_url",
]
