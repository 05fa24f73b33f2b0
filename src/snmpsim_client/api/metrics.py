from __future__ import annotations

from typing import Any

from snmpsim_client.api.base import ApiFacade, Filters, decode
from snmpsim_client.api.models import (
    Console,
    MessageMetrics,
    PacketMetrics,
    ProcessEndpoint,
    ProcessMetrics,
)
from snmpsim_client.api.transport import METRICS_ENDPOINT_PATH


class MetricsClient(ApiFacade):
    """Read-only client for the snmpsim metrics api."""

    prefix = METRICS_ENDPOINT_PATH

    # processes

    def get_processes(self, filters: Filters | None = None) -> list[ProcessMetrics]:
        return decode(self._call("GET", "processes", 200, filters=filters), list[ProcessMetrics])

    def get_process(self, id: int) -> ProcessMetrics:
        return decode(self._call("GET", f"processes/{id}", 200), ProcessMetrics)

    def get_process_endpoints(self, id: int) -> list[ProcessEndpoint]:
        return decode(self._call("GET", f"processes/{id}/endpoints", 200), list[ProcessEndpoint])

    def get_process_endpoint(self, process_id: int, endpoint_id: int) -> ProcessEndpoint:
        response = self._call("GET", f"processes/{process_id}/endpoints/{endpoint_id}", 200)
        return decode(response, ProcessEndpoint)

    def get_process_console_pages(self, process_id: int) -> list[Console]:
        return decode(self._call("GET", f"processes/{process_id}/console", 200), list[Console])

    def get_process_console_page(self, process_id: int, page_id: int) -> Console:
        return decode(self._call("GET", f"processes/{process_id}/console/{page_id}", 200), Console)

    # activity

    def get_packets(self, filters: Filters | None = None) -> PacketMetrics:
        return decode(self._call("GET", "activity/packets", 200, filters=filters), PacketMetrics)

    def get_packet_filters(self) -> list[str]:
        """Names of the filters accepted by `get_packets`."""
        return self._filter_names("activity/packets/filters")

    def get_possible_values_for_packet_filter(self, filter: str) -> list[str]:
        return decode(self._call("GET", f"activity/packets/filters/{filter}", 200), list[str])

    def get_messages(self, filters: Filters | None = None) -> MessageMetrics:
        return decode(self._call("GET", "activity/messages", 200, filters=filters), MessageMetrics)

    def get_message_filters(self) -> list[str]:
        """Names of the filters accepted by `get_messages`."""
        return self._filter_names("activity/messages/filters")

    def get_possible_values_for_message_filter(self, filter: str) -> list[str]:
        return decode(self._call("GET", f"activity/messages/filters/{filter}", 200), list[str])

    def _filter_names(self, path: str) -> list[str]:
        # the api answers with {filter name: description}
        filters = decode(self._call("GET", path, 200), dict[str, Any])
        return list(filters)
