"""Poll a document until its analysis reaches a terminal state."""

import asyncio
from typing import Any, Awaitable, Callable, Dict, Optional

from app.config import settings
from app.core.logging import get_logger
from app.models.document import DocumentState, NON_TERMINAL_DISPLAY_STATUSES

logger = get_logger("client")

Snapshot = Dict[str, Any]
FetchDocument = Callable[[str], Awaitable[Snapshot]]
OnUpdate = Callable[[Snapshot], Any]

_TERMINAL_STATES = {state.value for state in DocumentState if state.is_terminal}


def is_terminal_snapshot(snapshot: Snapshot) -> bool:
    """
    Whether a fetched document is finished.

    ``processing_status`` decides; the display ``status`` is only used when
    the snapshot has no ``processing_status``.
    """
    processing_status = snapshot.get("processing_status")
    if processing_status:
        return processing_status in _TERMINAL_STATES

    status = snapshot.get("status")
    return bool(status) and status not in NON_TERMINAL_DISPLAY_STATUSES


class DocumentPoller:
    """
    Re-fetch a document at a fixed interval while it is pending or processing.

    There is no backoff and no jitter. ``stop()`` cancels a loop started
    with ``start()`` so no request is left running after the view is gone.
    A background loop that fails is logged and ends; awaiting the task
    returned by ``start()`` re-raises the error.
    """

    def __init__(
        self,
        fetch: FetchDocument,
        interval: Optional[float] = None,
        on_update: Optional[OnUpdate] = None,
    ):
        self.fetch = fetch
        self.interval = settings.POLL_INTERVAL_SECONDS if interval is None else interval
        self.on_update = on_update
        self._task: Optional[asyncio.Task] = None

    async def poll(self, document_id: str) -> Snapshot:
        """Fetch until terminal and return the terminal snapshot."""
        logger.debug(f"Polling document {document_id} every {self.interval}s")
        while True:
            snapshot = await self.fetch(document_id)
            if self.on_update is not None:
                result = self.on_update(snapshot)
                if asyncio.iscoroutine(result):
                    await result

            if is_terminal_snapshot(snapshot):
                logger.debug(
                    f"Document {document_id} reached {snapshot.get('processing_status') or snapshot.get('status')}"
                )
                return snapshot

            await asyncio.sleep(self.interval)

    def start(self, document_id: str) -> asyncio.Task:
        """Run ``poll`` in a background task, replacing any running one."""
        self.stop()
        self._task = asyncio.create_task(self.poll(document_id))
        self._task.add_done_callback(self._log_failure)
        logger.debug(f"Started polling document {document_id}")
        return self._task

    @staticmethod
    def _log_failure(task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Polling failed: {exc}")

    def stop(self) -> None:
        """Cancel the running poll, if any."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
            logger.debug("Polling cancelled")
        self._task = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()
