"""Transport adapter implementations."""

from bulk_uploader.infrastructure.transfers.http_transport_adapter import HttpTransportAdapter
from bulk_uploader.infrastructure.transfers.simulated_transport_adapter import (
    SimulatedTransportAdapter,
)

__all__ = ["HttpTransportAdapter", "SimulatedTransportAdapter"]
