from __future__ import annotations

import asyncio
import json

import pytest

from bulk_uploader.domain.events import UploadEvent, UploadEventType
from bulk_uploader.domain.monitoring_models import (
    BatchAggregate,
    BatchError,
    TransferItemSnapshot,
    UploadSnapshot,
)
from bulk_uploader.domain.transfer_types import TransferState
from bulk_uploader.infrastructure.events import MqttUploadEventPublisher


class FakeMqttClient:
    def __init__(self) -> None:
        self.published: list[tuple[str, str, int]] = []
        self.loop_stopped = False
        self.disconnected = False

    def publish(self, topic: str, payload: str, qos: int) -> None:
        self.published.append((topic, payload, qos))

    def loop_stop(self) -> None:
        self.loop_stopped = True

    def disconnect(self) -> None:
        self.disconnected = True


def _failed_item() -> TransferItemSnapshot:
    return TransferItemSnapshot(
        item_id="upload_1_abc",
        batch_id="batch_1",
        name="a.txt",
        state=TransferState.FAILED,
        progress_percent=40,
        attempt_count=3,
        last_error="HTTP error: 503",
    )


def test_publishes_state_event_with_item_and_errors() -> None:
    client = FakeMqttClient()
    publisher = MqttUploadEventPublisher(
        uploader_id="uploader-a",
        broker_host="broker.local",
        topic_prefix="/bulk-uploader/",
        qos=1,
        client=client,
    )
    item = _failed_item()
    event = UploadEvent(
        event_type=UploadEventType.STATE_CHANGED,
        batch_id="batch_1",
        snapshot=UploadSnapshot(
            items=(item,),
            aggregate=BatchAggregate(
                total=1,
                failed=1,
                overall_progress_percent=40,
                is_complete=True,
            ),
            errors=(BatchError(item_id=item.item_id, name=item.name, message="HTTP error: 503"),),
            batch_id="batch_1",
        ),
        item=item,
    )

    asyncio.run(publisher.publish(event))

    assert len(client.published) == 1
    topic, message, qos = client.published[0]
    assert topic == "bulk-uploader/uploader-a/batches/batch_1/state"
    assert qos == 1
    payload = json.loads(message)
    assert payload["eventType"] == "state"
    assert payload["uploaderId"] == "uploader-a"
    assert payload["batchId"] == "batch_1"
    assert payload["aggregate"]["failed"] == 1
    assert payload["aggregate"]["isComplete"] is True
    assert payload["item"]["state"] == "FAILED"
    assert payload["item"]["lastError"] == "HTTP error: 503"
    assert payload["errors"] == [
        {"itemId": "upload_1_abc", "name": "a.txt", "message": "HTTP error: 503"}
    ]
    assert "timestamp" in payload


def test_completion_event_has_no_item_and_closes_client() -> None:
    client = FakeMqttClient()
    publisher = MqttUploadEventPublisher(
        uploader_id="uploader-a",
        broker_host="broker.local",
        client=client,
    )
    event = UploadEvent(
        event_type=UploadEventType.BATCH_COMPLETED,
        batch_id="batch_2",
        snapshot=UploadSnapshot(
            items=(),
            aggregate=BatchAggregate(total=2, succeeded=2, overall_progress_percent=100),
            batch_id="batch_2",
        ),
    )

    async def scenario() -> None:
        await publisher.publish(event)
        await publisher.aclose()

    asyncio.run(scenario())

    topic, message, _ = client.published[0]
    assert topic == "bulk-uploader/uploader-a/batches/batch_2/completed"
    payload = json.loads(message)
    assert "item" not in payload
    assert "errors" not in payload
    assert client.loop_stopped is True
    assert client.disconnected is True


@pytest.mark.parametrize(
    "kwargs",
    [{"broker_host": "  "}, {"broker_host": "broker.local", "qos": 3}],
)
def test_rejects_invalid_configuration(kwargs: dict[str, object]) -> None:
    with pytest.raises(ValueError):
        MqttUploadEventPublisher(uploader_id="uploader-a", client=FakeMqttClient(), **kwargs)
