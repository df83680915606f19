"""Application configuration."""

import os
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings from environment variables."""

    # App
    app_name: str = os.getenv("APP_NAME", "Camera Stream Gateway")
    app_env: str = os.getenv("APP_ENV", "development")
    debug: bool = os.getenv("DEBUG", "False").lower() == "true"
    log_to_file: bool = os.getenv("LOG_TO_FILE", "True").lower() == "true"
    log_dir: str = os.getenv("LOG_DIR", "logs")

    # API
    host: str = os.getenv("HOST", "0.0.0.0")
    port: int = int(os.getenv("PORT", "8000"))

    # HLS output layout
    hls_output_dir: str = os.getenv("HLS_OUTPUT_DIR", os.path.join("media", "live"))
    hls_url_prefix: str = os.getenv("HLS_URL_PREFIX", "/api/media/live")
    hls_segment_seconds: int = int(os.getenv("HLS_SEGMENT_SECONDS", "2"))
    hls_list_size: int = int(os.getenv("HLS_LIST_SIZE", "5"))
    hls_cleanup_on_stop: bool = os.getenv("HLS_CLEANUP_ON_STOP", "True").lower() == "true"

    # Encoder (ffmpeg)
    ffmpeg_path: str = os.getenv("FFMPEG_PATH", "ffmpeg")
    ffmpeg_video_codec: str = os.getenv("FFMPEG_VIDEO_CODEC", "libx264")
    ffmpeg_preset: str = os.getenv("FFMPEG_PRESET", "veryfast")
    ffmpeg_audio_codec: str = os.getenv("FFMPEG_AUDIO_CODEC", "aac")
    ffmpeg_gop_size: int = int(os.getenv("FFMPEG_GOP_SIZE", "30"))
    ffmpeg_reconnect_delay_max: int = int(os.getenv("FFMPEG_RECONNECT_DELAY_MAX", "5"))
    ffmpeg_preflight_timeout: float = float(os.getenv("FFMPEG_PREFLIGHT_TIMEOUT", "5"))
    rtsp_transport: str = os.getenv("RTSP_TRANSPORT", "tcp")

    # Session lifecycle
    stream_stop_grace_seconds: float = float(os.getenv("STREAM_STOP_GRACE_SECONDS", "5"))
    stream_settle_seconds: float = float(os.getenv("STREAM_SETTLE_SECONDS", "2"))
    stream_diagnostic_lines: int = int(os.getenv("STREAM_DIAGNOSTIC_LINES", "50"))
    stream_janitor_interval: float = float(os.getenv("STREAM_JANITOR_INTERVAL", "2"))

    # Connectivity probe
    probe_timeout_seconds: float = float(os.getenv("PROBE_TIMEOUT_SECONDS", "5"))

    # Camera directory
    camera_directory_backend: str = os.getenv("CAMERA_DIRECTORY_BACKEND", "memory")
    camera_directory_file: str = os.getenv("CAMERA_DIRECTORY_FILE", "cameras.json")
    firebase_credentials_path: str = os.getenv("FIREBASE_CREDENTIALS_PATH", "firebase-service-account.json")
    firestore_cameras_collection: str = os.getenv("FIRESTORE_CAMERAS_COLLECTION", "cameras")

    class Config:
        """Pydantic config."""
        env_file = ".env"
        case_sensitive = False
        extra = "allow"  # Allow extra fields from .env


# Global settings instance
settings = Settings()
