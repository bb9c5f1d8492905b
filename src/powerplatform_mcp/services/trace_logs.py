# src/powerplatform_mcp/services/trace_logs.py
"""
TraceLogInterpreter: time-windowed plugin trace log queries.

Exception details are free text, usually ``<Type>: <message>`` on the first
line followed by a stack trace. Parsing is best effort and never raises;
anything that does not match degrades to None fields.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from powerplatform_mcp import odata
from powerplatform_mcp.enums import mode_label, operation_type_label
from powerplatform_mcp.models import (
    ParsedException,
    TraceLog,
    TraceLogListing,
    TraceLogRecord,
    parse_rows,
)

logger = logging.getLogger(__name__)

TRACE_LOG_COLUMNS = [
    "plugintracelogid",
    "createdon",
    "typename",
    "messagename",
    "primaryentity",
    "mode",
    "operationtype",
    "depth",
    "correlationid",
    "requestid",
    "pluginstepid",
    "performanceexecutionduration",
    "messageblock",
    "exceptiondetails",
]


def parse_exception(details: Optional[str]) -> ParsedException:
    if not details:
        return ParsedException(has_exception=False, stack_trace=details)

    first_line = details.split("\n", 1)[0]
    exception_type = exception_message = None
    colon = first_line.find(":")
    if colon > 0:
        exception_type = first_line[:colon].strip() or None
        exception_message = first_line[colon + 1:].strip() or None

    return ParsedException(
        has_exception=True,
        exception_type=exception_type,
        exception_message=exception_message,
        stack_trace=details,
    )


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TraceLogInterpreter:
    def __init__(self, client, clock: Callable[[], datetime] = _utc_now):
        self.client = client
        self._clock = clock

    def query_logs(
        self,
        entity_name: Optional[str] = None,
        message_name: Optional[str] = None,
        correlation_id: Optional[str] = None,
        plugin_step_id: Optional[str] = None,
        exception_only: bool = False,
        hours_back: float = 24,
        limit: int = 50,
    ) -> TraceLogListing:
        """
        Fetch recent trace logs, newest first.

        All supplied filters are ANDed together with the mandatory
        ``createdon`` lower bound.
        """
        hours_back = odata.positive_number("hours_back", hours_back)
        limit = odata.positive("limit", limit)

        since = self._clock() - timedelta(hours=hours_back)
        filters = [f"createdon gt {since.strftime('%Y-%m-%dT%H:%M:%SZ')}"]
        if entity_name:
            filters.append(odata.eq("primaryentity", entity_name))
        if message_name:
            filters.append(odata.eq("messagename", message_name))
        if correlation_id:
            filters.append(f"correlationid eq {odata.guid(correlation_id)}")
        if plugin_step_id:
            filters.append(f"pluginstepid eq {odata.guid(plugin_step_id)}")
        if exception_only:
            filters.append("exceptiondetails ne null")

        rows = self.client.get_collection(
            "plugintracelogs",
            select=TRACE_LOG_COLUMNS,
            filter=odata.all_of(*filters),
            orderby="createdon desc",
            top=limit,
        )
        logs = [self._to_trace_log(r) for r in parse_rows(TraceLogRecord, rows)]

        logger.debug(
            f"Fetched {len(logs)} trace logs "
            f"({sum(1 for log in logs if log.parsed.has_exception)} with exceptions)"
        )
        return TraceLogListing(total_count=len(logs), logs=logs)

    @staticmethod
    def _to_trace_log(record: TraceLogRecord) -> TraceLog:
        return TraceLog(
            trace_log_id=record.id,
            created_on=record.created_on,
            type_name=record.type_name,
            message_name=record.message_name,
            primary_entity=record.primary_entity,
            mode=record.mode,
            mode_name=mode_label(record.mode),
            operation_type=record.operation_type,
            operation_type_name=operation_type_label(record.operation_type),
            depth=record.depth,
            correlation_id=record.correlation_id,
            request_id=record.request_id,
            plugin_step_id=record.plugin_step_id,
            performance_execution_duration=record.performance_execution_duration,
            message_block=record.message_block,
            parsed=parse_exception(record.exception_details),
        )
