from __future__ import annotations

import math
import time
from itertools import cycle
from typing import Any, Callable, Dict, List, Optional

from ..logging import get_logger
from ..util.errors import (
    ColumnMismatchError,
    DataSourceError,
    MissingFieldError,
    QueryStatusError,
    QueryTimeoutError,
)
from .base import NO_DATA, FetchWindow, LogsClient, PromptData, aws_call, require, write_csv
from .model import CloudwatchLogInsight

LOG = get_logger(__name__)

POLL_INTERVAL_SECONDS = 1.0

STATUS_COMPLETE = "Complete"
PENDING_STATUSES = frozenset({"Scheduled", "Running"})

# Row pointer the query engine adds to every result row.
POINTER_FIELD = "@ptr"

Sleep = Callable[[float], None]


def fetch_data(
    client: LogsClient,
    config: CloudwatchLogInsight,
    window: FetchWindow,
    *,
    sleep: Sleep = time.sleep,
    timeout: Optional[float] = None,
) -> PromptData:
    query_id = start_query(client, config, window)
    response = wait_for_query(client, query_id, sleep=sleep, timeout=timeout)
    return PromptData(
        description=build_description(config),
        data=extract_to_csv(response.get("results") or [], config),
    )


def start_query(client: LogsClient, config: CloudwatchLogInsight, window: FetchWindow) -> str:
    # Logs Insights takes epoch seconds.
    response = aws_call(
        f"AWS SDK error while starting query on {config.log_group_name}",
        client.start_query,
    )(
        logGroupName=config.log_group_name,
        queryString=config.query,
        startTime=window.start_time // 1000,
        endTime=window.end_time // 1000,
    )
    query_id = require(response, "queryId", "StartQuery response")
    LOG.debug("Started log insights query", extra={"query_id": query_id, "log_group": config.log_group_name})
    return str(query_id)


def wait_for_query(
    client: LogsClient,
    query_id: str,
    *,
    sleep: Sleep = time.sleep,
    interval: float = POLL_INTERVAL_SECONDS,
    timeout: Optional[float] = None,
) -> Dict[str, Any]:
    """
    Poll get_query_results until the query completes.

    Scheduled/Running wait `interval` seconds and poll again. Any other
    status is fatal. Without a timeout the loop has no upper bound; with one,
    at most ceil(timeout / interval) waits happen before QueryTimeoutError.
    """
    get_results = aws_call(f"AWS SDK error while polling query {query_id}", client.get_query_results)
    max_waits = math.ceil(timeout / interval) if timeout is not None else None
    waits = 0

    while True:
        response = get_results(queryId=query_id) or {}
        status = response.get("status")
        if status is None:
            raise MissingFieldError("status is missing from GetQueryResults response")
        LOG.debug("Polled log insights query", extra={"query_id": query_id, "status": status})

        if status == STATUS_COMPLETE:
            return response
        if status not in PENDING_STATUSES:
            raise QueryStatusError(str(status))
        if max_waits is not None and waits >= max_waits:
            raise QueryTimeoutError(f"Query {query_id} did not complete within {timeout} seconds")

        sleep(interval)
        waits += 1


def build_description(config: CloudwatchLogInsight) -> List[str]:
    return [
        "Information: [Cloudwatch Log Insights]",
        f"Description: [{config.description}]",
        f"Log Group: [`{config.log_group_name}`]",
    ]


def extract_to_csv(results: List[List[Dict[str, Any]]], config: CloudwatchLogInsight) -> str:
    """
    Align result fields with result_columns.

    The expected column advances with every field consumed, wrapping around
    the configured list, so a row that drops or reorders a field fails the
    extraction instead of shifting values into the wrong column. Every row
    must fill all columns; rows holding only @ptr are skipped.
    """
    if not config.result_columns:
        raise ValueError("result_columns must not be empty")

    columns = cycle(config.result_columns)
    column = next(columns)
    rows: List[List[str]] = []

    for result in results:
        values: List[str] = []
        for result_field in result:
            field = require(result_field, "field", "query result field")
            if field == POINTER_FIELD:
                continue
            if field != column:
                raise ColumnMismatchError(column, field)
            values.append(str(require(result_field, "value", f"query result field {field}")))
            column = next(columns)
        if not values:
            continue
        if len(values) != len(config.result_columns):
            raise DataSourceError(
                f"Expected {len(config.result_columns)} columns per row, got {len(values)}: {','.join(values)}"
            )
        rows.append(values)

    if not rows:
        return NO_DATA
    return write_csv(config.result_columns, rows)
