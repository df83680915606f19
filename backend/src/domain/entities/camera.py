"""Camera Entity - Network identity of a camera"""
from dataclasses import dataclass
from typing import Any, Dict, Optional
from enum import Enum


class CameraType(str, Enum):
    """Vendor / protocol tag of a camera record"""
    RTSP = "rtsp"
    ONVIF = "onvif"
    HIKVISION = "hikvision"
    DAHUA = "dahua"
    IP = "ip"


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _optional_port(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    port = int(value)
    if not 0 < port < 65536:
        raise ValueError(f"Invalid port: {port}")
    return port


@dataclass(frozen=True)
class CameraConnection:
    """
    CameraConnection Entity - Everything needed to reach a camera stream

    Immutable view of a camera record for the duration of one request.
    ``stream_url`` is an explicit full source address; when present it
    always wins over derived construction.
    """
    camera_id: str
    address: str
    camera_type: str = CameraType.RTSP.value
    username: Optional[str] = None
    password: Optional[str] = None
    stream_url: Optional[str] = None
    port: Optional[int] = None
    path: Optional[str] = None
    name: Optional[str] = None
    location: Optional[str] = None

    def __post_init__(self):
        """Validate camera data"""
        if not self.camera_id or not self.camera_id.strip():
            raise ValueError("Camera id cannot be empty")

    @property
    def has_credentials(self) -> bool:
        return bool(self.username) and bool(self.password)

    @classmethod
    def from_record(cls, camera_id: str, record: Dict[str, Any]) -> "CameraConnection":
        """
        Build a connection from a camera directory record.

        Accepts both the stored document field names (``ip_address``,
        ``camera_type``, ``rtsp_port``, ``rtsp_path``) and the entity's
        own field names.
        """
        camera_type = record.get("camera_type", record.get("type")) or CameraType.RTSP.value
        return cls(
            camera_id=str(camera_id),
            address=str(record.get("ip_address", record.get("address")) or "").strip(),
            camera_type=str(camera_type).strip().lower(),
            username=_optional_str(record.get("username")),
            password=_optional_str(record.get("password")),
            stream_url=_optional_str(record.get("stream_url")),
            port=_optional_port(record.get("rtsp_port", record.get("port"))),
            path=_optional_str(record.get("rtsp_path", record.get("path"))),
            name=_optional_str(record.get("name")),
            location=_optional_str(record.get("location")),
        )

    def to_public_dict(self) -> Dict[str, Any]:
        """Record view with credentials redacted."""
        return {
            "id": self.camera_id,
            "name": self.name,
            "location": self.location,
            "ip_address": self.address,
            "camera_type": self.camera_type,
            "rtsp_port": self.port,
            "rtsp_path": self.path,
            "has_credentials": self.has_credentials,
            "has_stream_url": self.stream_url is not None,
        }
