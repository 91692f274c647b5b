"""Application bootstrap/wiring."""

import logging

from bulk_uploader.application.retry_policy import MaxAttemptsRetryPolicy
from bulk_uploader.application.services import UploadOrchestrator
from bulk_uploader.config import Settings, TransportBackend
from bulk_uploader.domain.ports import TransportAdapter, UploadEventPublisher
from bulk_uploader.infrastructure.events import (
    MqttUploadEventPublisher,
    NoopUploadEventPublisher,
)
from bulk_uploader.infrastructure.transfers import (
    HttpTransportAdapter,
    SimulatedTransportAdapter,
)

logger = logging.getLogger(__name__)


def _build_transport(settings: Settings) -> TransportAdapter:
    if settings.transport_backend == TransportBackend.HTTP:
        if settings.upload_endpoint is None:
            raise ValueError(
                "BULK_UPLOADER_UPLOAD_ENDPOINT is required when "
                "BULK_UPLOADER_TRANSPORT_BACKEND=http."
            )
        return HttpTransportAdapter(
            endpoint=settings.upload_endpoint,
            timeout_seconds=settings.upload_timeout_seconds,
        )
    logger.warning("Using simulated upload transport; files are not sent anywhere.")
    return SimulatedTransportAdapter(
        failure_rate=settings.simulated_failure_rate,
        tick_seconds=settings.simulated_tick_seconds,
    )


def _build_upload_event_publisher(settings: Settings) -> UploadEventPublisher:
    if settings.upload_events_mqtt_enabled:
        if settings.upload_events_mqtt_host is None:
            raise ValueError(
                "BULK_UPLOADER_UPLOAD_EVENTS_MQTT_HOST is required when "
                "BULK_UPLOADER_UPLOAD_EVENTS_MQTT_ENABLED=true."
            )
        return MqttUploadEventPublisher(
            uploader_id=settings.uploader_id,
            broker_host=settings.upload_events_mqtt_host,
            broker_port=settings.upload_events_mqtt_port,
            topic_prefix=settings.upload_events_mqtt_topic_prefix,
            qos=settings.upload_events_mqtt_qos,
            username=settings.upload_events_mqtt_username,
            password=settings.upload_events_mqtt_password,
        )
    return NoopUploadEventPublisher()


def build_retry_policy(settings: Settings) -> MaxAttemptsRetryPolicy:
    return MaxAttemptsRetryPolicy(
        max_attempts=settings.max_attempts,
        retry_delay_seconds=settings.retry_delay_seconds,
        backoff_multiplier=settings.retry_backoff_multiplier,
        max_delay_seconds=settings.retry_max_delay_seconds,
    )


def build_upload_orchestrator(settings: Settings) -> UploadOrchestrator:
    """Compose service graph."""

    orchestrator = UploadOrchestrator(
        transport=_build_transport(settings),
        retry_policy=build_retry_policy(settings),
        max_concurrent=settings.max_concurrent,
        event_publisher=_build_upload_event_publisher(settings),
    )
    logger.info(
        "Upload orchestrator '%s' ready (backend=%s, max_concurrent=%s, max_attempts=%s).",
        settings.uploader_id,
        settings.transport_backend.value,
        settings.max_concurrent,
        settings.max_attempts,
    )
    return orchestrator


__all__ = ["build_retry_policy", "build_upload_orchestrator"]
