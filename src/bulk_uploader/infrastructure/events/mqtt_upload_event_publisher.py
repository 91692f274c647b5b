"""MQTT upload event publisher."""

from __future__ import annotations

import asyncio
import json
import time
from datetime import UTC, datetime
from typing import Any

from bulk_uploader.domain.events import UploadEvent
from bulk_uploader.domain.monitoring_models import BatchAggregate, TransferItemSnapshot
from bulk_uploader.domain.ports import UploadEventPublisher


class MqttUploadEventPublisher(UploadEventPublisher):
    """Publish upload progress/state/completion events to MQTT topics.

    Topics: `<prefix>/<uploader_id>/batches/<batch_id>/<progress|state|completed>`.
    """

    def __init__(
        self,
        uploader_id: str,
        broker_host: str,
        broker_port: int = 1883,
        topic_prefix: str = "bulk-uploader",
        qos: int = 0,
        username: str | None = None,
        password: str | None = None,
        client: Any | None = None,
    ) -> None:
        if not broker_host.strip():
            raise ValueError("broker_host cannot be empty.")
        if qos not in {0, 1, 2}:
            raise ValueError("qos must be one of 0, 1, 2.")

        self._uploader_id = uploader_id
        self._topic_prefix = topic_prefix.strip().strip("/")
        self._qos = qos

        if client is None:
            client = self._build_client(uploader_id)
            if username is not None:
                client.username_pw_set(username=username, password=password)
            self._connect_with_retry(
                client=client,
                broker_host=broker_host,
                broker_port=broker_port,
            )
            client.loop_start()
        self._client = client

    async def publish(self, event: UploadEvent) -> None:
        payload: dict[str, object] = {
            "eventType": event.event_type.value,
            "timestamp": self._timestamp(),
            "uploaderId": self._uploader_id,
            "batchId": event.batch_id,
            "aggregate": self._aggregate_payload(event.snapshot.aggregate),
        }
        if event.item is not None:
            payload["item"] = self._item_payload(event.item)
        if event.snapshot.errors:
            payload["errors"] = [
                {"itemId": error.item_id, "name": error.name, "message": error.message}
                for error in event.snapshot.errors
            ]

        topic = (
            f"{self._topic_prefix}/{self._uploader_id}/"
            f"batches/{event.batch_id}/{event.event_type.value}"
        )
        await self._publish(topic, payload)

    async def aclose(self) -> None:
        """Stop the network loop and disconnect from the broker."""

        await asyncio.to_thread(self._client.loop_stop)
        await asyncio.to_thread(self._client.disconnect)

    async def _publish(self, topic: str, payload: dict[str, object]) -> None:
        message = json.dumps(payload, separators=(",", ":"))
        await asyncio.to_thread(self._client.publish, topic, message, self._qos)

    def _aggregate_payload(self, aggregate: BatchAggregate) -> dict[str, object]:
        return {
            "total": aggregate.total,
            "pending": aggregate.pending,
            "inFlight": aggregate.in_flight,
            "succeeded": aggregate.succeeded,
            "failed": aggregate.failed,
            "cancelled": aggregate.cancelled,
            "overallProgressPercent": aggregate.overall_progress_percent,
            "isComplete": aggregate.is_complete,
        }

    def _item_payload(self, item: TransferItemSnapshot) -> dict[str, object]:
        return {
            "itemId": item.item_id,
            "name": item.name,
            "state": item.state.value,
            "progressPercent": item.progress_percent,
            "attemptCount": item.attempt_count,
            "lastError": item.last_error,
            "resultUrl": item.result_url,
        }

    def _timestamp(self) -> str:
        return datetime.now(tz=UTC).isoformat()

    def _build_client(self, uploader_id: str) -> Any:
        try:
            import paho.mqtt.client as mqtt  # type: ignore[import-untyped]
        except ModuleNotFoundError as exc:
            raise RuntimeError(
                "paho-mqtt is required for MQTT upload events. "
                "Install project dependencies first."
            ) from exc

        try:
            return mqtt.Client(
                callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
                client_id=f"bulk-uploader-{uploader_id}",
            )
        except (AttributeError, TypeError):
            return mqtt.Client(client_id=f"bulk-uploader-{uploader_id}")

    def _connect_with_retry(
        self,
        client: Any,
        broker_host: str,
        broker_port: int,
        max_attempts: int = 20,
    ) -> None:
        """Connect to MQTT broker with bounded retry/backoff."""

        delay_seconds = 0.5
        last_error: Exception | None = None
        for attempt in range(1, max_attempts + 1):
            try:
                client.connect(host=broker_host, port=broker_port, keepalive=60)
                return
            except Exception as exc:  # noqa: BLE001
                last_error = exc
                if attempt == max_attempts:
                    break
                time.sleep(delay_seconds)
                delay_seconds = min(3.0, delay_seconds * 1.5)

        raise RuntimeError(
            f"Failed to connect to MQTT broker {broker_host}:{broker_port} "
            f"after {max_attempts} attempts."
        ) from last_error


__all__ = ["MqttUploadEventPublisher"]
