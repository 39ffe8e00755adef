"""
Feedback dispatch.

A FIFO queue between the analysis pipeline and an external voice / UI sink.
Events are delivered strictly in arrival order; the ``priority`` field is
carried for the sink but does not reorder the queue.
"""

import logging
from collections import deque
from typing import Callable, Optional

from .config import FEEDBACK_QUEUE_LIMIT
from .state import FeedbackEvent

logger = logging.getLogger(__name__)

# Returns False when the sink could not take the event (try-send).
FeedbackSink = Callable[[FeedbackEvent], Optional[bool]]


class FeedbackDispatcher:
    """Bounded FIFO of feedback events with non-blocking hand-off."""

    def __init__(self, sink: Optional[FeedbackSink] = None, limit: int = FEEDBACK_QUEUE_LIMIT):
        self.sink = sink
        self.limit = int(limit)
        self._queue: deque[FeedbackEvent] = deque()
        self.delivered = 0
        self.dropped = 0

    def __len__(self) -> int:
        return len(self._queue)

    def pending(self) -> list[FeedbackEvent]:
        return list(self._queue)

    def push(self, event: FeedbackEvent) -> None:
        """Queue *event* and hand the oldest pending event to the sink."""
        if len(self._queue) >= self.limit:
            discarded = self._queue.popleft()
            self.dropped += 1
            logger.debug("Feedback queue full (%d); discarded '%s'", self.limit, discarded.text)
        self._queue.append(event)
        self.dispatch_next()

    def dispatch_next(self) -> Optional[FeedbackEvent]:
        """Deliver one event to the sink; return it, or None if nothing was sent."""
        if self.sink is None or not self._queue:
            return None
        event = self._queue.popleft()
        try:
            accepted = self.sink(event)
        except Exception:
            logger.exception("Feedback sink failed on %s event", event.kind.value)
            self.dropped += 1
            return None
        if accepted is False:
            self.dropped += 1
            logger.debug("Sink dropped %s event '%s'", event.kind.value, event.text)
            return None
        self.delivered += 1
        return event

    def drain(self) -> list[FeedbackEvent]:
        """Deliver everything pending; without a sink, pop and return it instead."""
        if self.sink is None:
            events = list(self._queue)
            self._queue.clear()
            return events
        sent = []
        while self._queue:
            event = self.dispatch_next()
            if event is not None:
                sent.append(event)
        return sent

    def clear(self) -> None:
        self._queue.clear()
