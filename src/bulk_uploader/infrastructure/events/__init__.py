"""Upload event publisher implementations."""

from bulk_uploader.infrastructure.events.mqtt_upload_event_publisher import (
    MqttUploadEventPublisher,
)
from bulk_uploader.infrastructure.events.noop_upload_event_publisher import (
    NoopUploadEventPublisher,
)

__all__ = ["MqttUploadEventPublisher", "NoopUploadEventPublisher"]
