"""Stream error taxonomy.

Every failure the stream core can surface to a caller is a ``StreamError``
subclass. Each one carries the HTTP status the presentation layer should
answer with and a stable machine-readable code.
"""

from typing import Any, Dict, Optional


class StreamError(Exception):
    """Base class for stream session failures."""

    status_code: int = 500
    code: str = "stream_error"

    def __init__(self, message: str, camera_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.camera_id = camera_id

    def to_dict(self) -> Dict[str, Any]:
        """Serializable error body."""
        return {"error": self.message, "code": self.code}


class CameraNotFoundError(StreamError):
    """Camera id is unknown to the camera directory."""

    status_code = 404
    code = "camera_not_found"

    def __init__(self, camera_id: str):
        super().__init__(f"Camera {camera_id} not found", camera_id=camera_id)


class ResolutionError(StreamError):
    """Connection attributes cannot be turned into a source address.

    The resolver always produces a best-effort address today, so this is
    reserved for malformed records.
    """

    status_code = 400
    code = "resolution_error"


class ToolUnavailableError(StreamError):
    """Encoder binary is missing on the host."""

    status_code = 503
    code = "tool_unavailable"


class SpawnFailureError(StreamError):
    """Encoder process could not be launched."""

    status_code = 500
    code = "spawn_failure"


class SourceUnreachableError(StreamError):
    """Source did not answer a probe read. Advisory only."""

    status_code = 502
    code = "source_unreachable"


class ProcessCrashedError(StreamError):
    """Encoder process exited with a non-zero code."""

    status_code = 502
    code = "process_crashed"

    def __init__(
        self,
        camera_id: str,
        exit_code: Optional[int],
        diagnostics: str = "",
    ):
        super().__init__(
            f"Encoder for camera {camera_id} exited with code {exit_code}",
            camera_id=camera_id,
        )
        self.exit_code = exit_code
        self.diagnostics = diagnostics

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        body["exitCode"] = self.exit_code
        body["diagnostics"] = self.diagnostics
        return body


class CameraDirectoryError(StreamError):
    """Camera directory backend could not be queried."""

    status_code = 503
    code = "camera_directory_unavailable"
