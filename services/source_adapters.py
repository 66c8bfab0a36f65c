"""
Booking Source Adapters
Version: 1.0

One adapter per booking source. Each knows its list endpoint, its status
endpoint and its payload shape; nothing outside this module builds those
paths.
DEPENDS ON: api_gateway.py, circuit_breaker.py
"""

import logging
import time
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from schemas import SourceType
from services.api_gateway import APIGateway, APIResponse
from services.booking_contracts import SourcePaths
from services.circuit_breaker import CircuitBreaker, CircuitOpenError
from services.errors import AdapterUnavailable
from services.metrics import record_adapter_call

logger = logging.getLogger(__name__)

# Envelope keys the booking API has used for lists and single records
LIST_KEYS = ("bookings", "orders", "items", "results")
RECORD_KEYS = ("booking", "order")


def _is_server_failure(response: APIResponse) -> bool:
    """Network errors (status 0) and 5xx count against the circuit; 4xx do not."""
    return response.status_code == 0 or response.status_code >= 500


def unwrap_list(payload: Any) -> Optional[List[Any]]:
    """Find the record list in a list response; None when the shape is unknown."""
    if isinstance(payload, list):
        return payload
    if not isinstance(payload, dict):
        return None

    data = payload.get("data")
    if isinstance(data, list):
        return data
    for container in (data, payload):
        if isinstance(container, dict):
            for key in LIST_KEYS:
                if isinstance(container.get(key), list):
                    return container[key]
    return None


def unwrap_record(payload: Any) -> Optional[Dict[str, Any]]:
    """Find the echoed booking in a write response."""
    if not isinstance(payload, dict):
        return None

    data = payload.get("data")
    for container in (data, payload):
        if isinstance(container, dict):
            for key in RECORD_KEYS:
                if isinstance(container.get(key), dict):
                    return container[key]
    if isinstance(data, dict) and ("_id" in data or "id" in data):
        return data
    if "_id" in payload or "id" in payload:
        return payload
    return None


class _ServerFailure(Exception):
    """Internal marker so the circuit breaker only counts server-side failures."""

    def __init__(self, response: APIResponse):
        super().__init__(response.error_message)
        self.response = response


class BookingSourceAdapter:
    """
    Reads and writes one booking source.

    Usage:
        adapter = build_adapters(gateway, breaker)[SourceType.REGULAR]
        records = await adapter.fetch_all()
        echoed = await adapter.update_status("abc123", "confirmed")
    """

    def __init__(
        self,
        source_type: SourceType,
        gateway: APIGateway,
        breaker: CircuitBreaker,
        list_path: str,
        status_path: str,
        accepts_notes: bool = False
    ):
        self.source_type = source_type
        self.gateway = gateway
        self.breaker = breaker
        self.list_path = list_path
        self.status_path = status_path
        self.accepts_notes = accepts_notes

    @property
    def name(self) -> str:
        return self.source_type.value

    async def fetch_all(self) -> List[Any]:
        """
        Fetch every raw record from this source.

        Raises:
            AdapterUnavailable: On network/server errors, open circuit or an unreadable payload
        """
        response = await self._call("fetch", "GET", self.list_path, self.gateway.get, self.list_path)

        records = unwrap_list(response.data)
        if records is None:
            raise AdapterUnavailable(
                self.name, "fetch",
                f"unexpected payload type {type(response.data).__name__}",
                status_code=response.status_code,
                retryable=False
            )

        logger.info(f"Fetched {len(records)} {self.name} record(s)")
        return records

    async def update_status(self, booking_id: str, status: str, notes: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """
        Persist a status change.

        Returns:
            The echoed booking record, or None if the response carried none

        Raises:
            AdapterUnavailable: On any failed write
        """
        path = self.status_path.format(booking_id=quote(booking_id, safe=""))
        body: Dict[str, Any] = {"status": status}
        if notes and self.accepts_notes:
            body["notes"] = notes

        response = await self._call(
            "update_status", "PUT", self.status_path, self.gateway.put, path, body=body
        )

        record = unwrap_record(response.data)
        if record is None:
            logger.warning(f"{self.name} status update for {booking_id} echoed no booking")
        return record

    async def _call(self, operation: str, method: str, endpoint: str, func, *args, **kwargs) -> APIResponse:
        """Run a gateway call through the circuit breaker and map failures to AdapterUnavailable."""
        endpoint_key = f"{method} {endpoint}"
        started = time.perf_counter()

        async def guarded():
            result = await func(*args, **kwargs)
            if not result.success and _is_server_failure(result):
                raise _ServerFailure(result)
            return result

        try:
            response = await self.breaker.call(endpoint_key, guarded)
        except CircuitOpenError as e:
            record_adapter_call(self.name, operation, False, time.perf_counter() - started)
            raise AdapterUnavailable(self.name, operation, str(e), retryable=True) from e
        except _ServerFailure as e:
            record_adapter_call(self.name, operation, False, time.perf_counter() - started)
            raise AdapterUnavailable(
                self.name, operation,
                e.response.error_message or "server error",
                status_code=e.response.status_code,
                retryable=True
            ) from e

        success = response.success
        record_adapter_call(self.name, operation, success, time.perf_counter() - started)

        if not success:
            raise AdapterUnavailable(
                self.name, operation,
                response.error_message or response.error_code or "request rejected",
                status_code=response.status_code,
                retryable=False
            )
        return response


def build_adapters(gateway: APIGateway, breaker: CircuitBreaker) -> Dict[SourceType, BookingSourceAdapter]:
    """Adapter map keyed by source type; the only place that pairs sources with endpoints."""
    return {
        SourceType.REGULAR: BookingSourceAdapter(
            SourceType.REGULAR, gateway, breaker,
            list_path=SourcePaths.ORDERS,
            status_path=SourcePaths.ORDER_STATUS,
            accepts_notes=True
        ),
        SourceType.HOUSEKEEPING: BookingSourceAdapter(
            SourceType.HOUSEKEEPING, gateway, breaker,
            list_path=SourcePaths.HOUSEKEEPING,
            status_path=SourcePaths.HOUSEKEEPING_STATUS
        ),
    }
