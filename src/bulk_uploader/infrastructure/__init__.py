"""Infrastructure layer public API."""

from bulk_uploader.infrastructure.events import (
    MqttUploadEventPublisher,
    NoopUploadEventPublisher,
)
from bulk_uploader.infrastructure.transfers import (
    HttpTransportAdapter,
    SimulatedTransportAdapter,
)

__all__ = [
    "HttpTransportAdapter",
    "MqttUploadEventPublisher",
    "NoopUploadEventPublisher",
    "SimulatedTransportAdapter",
]
