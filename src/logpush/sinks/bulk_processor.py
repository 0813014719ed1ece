"""
Buffered bulk indexing for Elasticsearch.

Actions accumulate until the threshold is reached, then go out in one
round through elasticsearch.helpers.parallel_bulk. Failed requests are
not retried: the first error aborts the flush.
"""

import math
from typing import Any, Callable

from elasticsearch import ApiError, Elasticsearch, TransportError
from elasticsearch.helpers import BulkIndexError, parallel_bulk

from logpush.core.errors import FlushError
from logpush.observability.logger import get_logger

logger = get_logger(__name__)

DEFAULT_BULK_ACTIONS = 1000
DEFAULT_WORKERS = 2

Action = dict[str, Any]


class BulkProcessor:
    """
    Collects index actions and delivers them in bulk.

    Not thread-safe; each file upload owns its processor. The client
    may be shared.

    Attributes:
        committed: Actions acknowledged by the cluster so far
        flushes: Number of non-empty flushes performed
    """

    def __init__(
        self,
        client: Elasticsearch | None,
        bulk_actions: int = DEFAULT_BULK_ACTIONS,
        workers: int = DEFAULT_WORKERS,
        name: str = "logpush-bulk",
        send: Callable[[list[Action]], int] | None = None,
    ):
        """
        Initialize bulk processor.

        Args:
            client: Elasticsearch client (unused when send is given)
            bulk_actions: Pending actions that trigger an automatic flush
            workers: Threads used by parallel_bulk
            name: Processor name used in logs
            send: Delivery function taking the actions and returning the
                number indexed (default: parallel_bulk on client)
        """
        if bulk_actions < 1:
            raise ValueError(f"bulk_actions must be at least 1, got {bulk_actions}")
        if workers < 1:
            raise ValueError(f"workers must be at least 1, got {workers}")
        self.client = client
        self.bulk_actions = bulk_actions
        self.workers = workers
        self.name = name
        self._send = send or self._parallel_bulk
        self._pending: list[Action] = []
        self.committed = 0
        self.flushes = 0

    def add(
        self,
        doc: dict[str, Any],
        index: str,
        doc_type: str | None = None,
        doc_id: str | None = None,
    ) -> None:
        """
        Queue one index action, flushing when the threshold is reached.

        Raises:
            FlushError: If the automatic flush fails
        """
        action: Action = {"_op_type": "index", "_index": index, "_source": doc}
        if doc_type:
            action["_type"] = doc_type
        if doc_id is not None:
            action["_id"] = doc_id
        self._pending.append(action)
        if len(self._pending) >= self.bulk_actions:
            self.flush()

    def flush(self) -> int:
        """
        Deliver every pending action.

        Returns:
            Number of actions indexed

        Raises:
            FlushError: On the first rejected action or transport error;
                pending actions are dropped
        """
        if not self._pending:
            return 0

        actions, self._pending = self._pending, []
        try:
            indexed = self._send(actions)
        except BulkIndexError as e:
            first = e.errors[0] if e.errors else {}
            raise FlushError(f"{self.name}: {len(e.errors)} action(s) rejected, first: {first}") from e
        except (ApiError, TransportError) as e:
            raise FlushError(f"{self.name}: bulk request failed: {e}") from e

        self.committed += indexed
        self.flushes += 1
        logger.debug(f"{self.name}: flushed {indexed} action(s)")
        return indexed

    def pending(self) -> int:
        return len(self._pending)

    def _parallel_bulk(self, actions: list[Action]) -> int:
        chunk_size = max(1, math.ceil(len(actions) / self.workers))
        indexed = 0
        for ok, info in parallel_bulk(
            self.client,
            actions,
            thread_count=self.workers,
            chunk_size=chunk_size,
            raise_on_error=True,
            raise_on_exception=True,
        ):
            if not ok:
                raise FlushError(f"{self.name}: action rejected: {info}")
            indexed += 1
        return indexed
