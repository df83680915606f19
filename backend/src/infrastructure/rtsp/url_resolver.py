"""Source stream address resolution.

Pure functions: no I/O, no side effects. Resolving an address that already
carries a scheme returns it unchanged, so resolution is idempotent.
"""

import re
from typing import Optional
from urllib.parse import quote

from ...domain.entities import CameraConnection, CameraType

DEFAULT_SCHEME = "rtsp"
DEFAULT_RTSP_PORT = 554
DEFAULT_PATH = "/stream"

RECOGNIZED_SCHEMES = ("rtsp://", "rtsps://", "rtmp://", "http://", "https://")

# Vendor path conventions for the main stream of channel 1
VENDOR_PATHS = {
    CameraType.HIKVISION.value: "/Streaming/Channels/101",
    CameraType.DAHUA.value: "/cam/realmonitor?channel=1&subtype=0",
    CameraType.ONVIF.value: "/onvif/stream1",
    CameraType.IP.value: "/stream1",
    CameraType.RTSP.value: DEFAULT_PATH,
}

_REPEATED_SCHEME = re.compile(r"^(?:rtsp://)+", re.IGNORECASE)
_HOST_WITH_PORT = re.compile(r":\d+$")


def has_scheme(address: Optional[str]) -> bool:
    """True if ``address`` starts with a recognised stream scheme."""
    if not address:
        return False
    return address.strip().lower().startswith(RECOGNIZED_SCHEMES)


def default_path(camera_type: Optional[str]) -> str:
    """Vendor path for ``camera_type``; unknown tags get the generic path."""
    return VENDOR_PATHS.get((camera_type or "").lower(), DEFAULT_PATH)


def _credentials(connection: CameraConnection) -> str:
    if not connection.has_credentials:
        return ""
    return f"{quote(connection.username, safe='')}:{quote(connection.password, safe='')}@"


def _host_and_port(connection: CameraConnection) -> str:
    host = connection.address.strip().rstrip("/")
    if connection.port is not None:
        host = _HOST_WITH_PORT.sub("", host)
        return f"{host}:{connection.port}"
    if _HOST_WITH_PORT.search(host):
        return host
    return f"{host}:{DEFAULT_RTSP_PORT}"


def _path(connection: CameraConnection) -> str:
    path = connection.path or default_path(connection.camera_type)
    if not path.startswith("/"):
        path = f"/{path}"
    return path


def resolve_stream_url(connection: CameraConnection) -> str:
    """
    Build the authenticated source address for a camera.

    Precedence:
        1. ``stream_url`` override that already carries a scheme
        2. ``address`` that already carries a scheme
        3. ``rtsp://[user:pass@]host[:port][path]``

    Args:
        connection: Camera connection attributes

    Returns:
        Source stream address (always a best-effort string)
    """
    if has_scheme(connection.stream_url):
        return connection.stream_url.strip()

    if has_scheme(connection.address):
        return connection.address.strip()

    return (
        f"{DEFAULT_SCHEME}://{_credentials(connection)}"
        f"{_host_and_port(connection)}{_path(connection)}"
    )


def normalize_stream_url(url: str) -> str:
    """
    Clean a user supplied address for a connection test.

    Collapses repeated ``rtsp://`` prefixes and adds the scheme to a bare
    host address.
    """
    cleaned = _REPEATED_SCHEME.sub("rtsp://", url.strip())
    if not has_scheme(cleaned):
        cleaned = f"rtsp://{cleaned}"
    return cleaned


def redact_url(url: str) -> str:
    """Hide the password part of an address for logging."""
    return re.sub(r"(://[^:/@]+):[^@/]*@", r"\1:***@", url)
