"""Application settings."""

from enum import StrEnum

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class TransportBackend(StrEnum):
    """Available transport adapters for file uploads."""

    HTTP = "http"
    SIMULATED = "simulated"


class Settings(BaseSettings):
    """Runtime settings loaded from environment variables."""

    app_name: str = "Bulk Uploader"
    api_prefix: str = ""
    uploader_id: str = "uploader-local"
    host: str = "0.0.0.0"
    port: int = 8080
    max_concurrent: int = 3
    max_attempts: int = 3
    retry_delay_seconds: float = 0.0
    retry_backoff_multiplier: float = 2.0
    retry_max_delay_seconds: float = 30.0
    transport_backend: TransportBackend = TransportBackend.SIMULATED
    upload_endpoint: str | None = None
    upload_timeout_seconds: float = 30.0
    simulated_failure_rate: float = 0.1
    simulated_tick_seconds: float = 0.2
    upload_events_mqtt_enabled: bool = False
    upload_events_mqtt_host: str | None = None
    upload_events_mqtt_port: int = 1883
    upload_events_mqtt_username: str | None = None
    upload_events_mqtt_password: str | None = None
    upload_events_mqtt_topic_prefix: str = "bulk-uploader"
    upload_events_mqtt_qos: int = 0

    @model_validator(mode="after")
    def validate_upload_settings(self) -> "Settings":
        """Ensure queue, transport, and event settings are consistent."""

        if self.max_concurrent < 1:
            raise ValueError("BULK_UPLOADER_MAX_CONCURRENT must be >= 1.")
        if self.max_attempts < 1:
            raise ValueError("BULK_UPLOADER_MAX_ATTEMPTS must be >= 1.")
        if self.retry_delay_seconds < 0:
            raise ValueError("BULK_UPLOADER_RETRY_DELAY_SECONDS must be >= 0.")
        if self.retry_backoff_multiplier < 1:
            raise ValueError("BULK_UPLOADER_RETRY_BACKOFF_MULTIPLIER must be >= 1.")
        if self.retry_max_delay_seconds < self.retry_delay_seconds:
            raise ValueError(
                "BULK_UPLOADER_RETRY_MAX_DELAY_SECONDS must be >= "
                "BULK_UPLOADER_RETRY_DELAY_SECONDS."
            )
        if self.transport_backend == TransportBackend.HTTP and not self.upload_endpoint:
            raise ValueError(
                "BULK_UPLOADER_UPLOAD_ENDPOINT is required when "
                "BULK_UPLOADER_TRANSPORT_BACKEND=http."
            )
        if self.upload_timeout_seconds <= 0:
            raise ValueError("BULK_UPLOADER_UPLOAD_TIMEOUT_SECONDS must be > 0.")
        if not 0.0 <= self.simulated_failure_rate <= 1.0:
            raise ValueError("BULK_UPLOADER_SIMULATED_FAILURE_RATE must be between 0 and 1.")
        if self.simulated_tick_seconds < 0:
            raise ValueError("BULK_UPLOADER_SIMULATED_TICK_SECONDS must be >= 0.")
        if self.upload_events_mqtt_enabled and not self.upload_events_mqtt_host:
            raise ValueError(
                "BULK_UPLOADER_UPLOAD_EVENTS_MQTT_HOST is required when "
                "BULK_UPLOADER_UPLOAD_EVENTS_MQTT_ENABLED=true."
            )
        if self.upload_events_mqtt_port < 1:
            raise ValueError("BULK_UPLOADER_UPLOAD_EVENTS_MQTT_PORT must be >= 1.")
        if self.upload_events_mqtt_qos not in {0, 1, 2}:
            raise ValueError("BULK_UPLOADER_UPLOAD_EVENTS_MQTT_QOS must be one of 0, 1, 2.")
        return self

    model_config = SettingsConfigDict(env_prefix="BULK_UPLOADER_", extra="ignore")


__all__ = ["Settings", "TransportBackend"]
