"""
Classification Dispatcher
==========================

Rate-limited, fire-and-forget bridge between the frame loop and the
remote classifier.

    submit(pose, now)   called every frame with a hand; sends at most one
                        request per cooldown window, skips the rest
    poll()              called every tick on the loop thread; drains
                        finished requests, updates health and publishes
                        labels on the event bus
    close()             teardown; late responses are dropped

Requests run on a small thread pool so the loop never waits on the
network. All state the rest of the system can see (health, cooldown,
bus emission) only changes inside submit()/poll(), i.e. on the loop
thread. Each request carries the generation it was sent under; close()
moves to a new generation so anything still in flight is discarded when
(if ever) it is drained.
"""

import logging
import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from typing import List, Optional, Tuple

from ..core.events import EventBus, Events, SignDetected, StatusChanged, get_bus
from ..core.exceptions import ClassificationError
from ..core.types import ApiStatus, ClassificationResult, Pose
from .classifier_client import ClassificationClient, ClassifierConfig

logger = logging.getLogger(__name__)


class ClassificationDispatcher:
    """Cooldown-gated dispatcher with generation-tagged results."""

    def __init__(
        self,
        client: ClassificationClient,
        config: Optional[ClassifierConfig] = None,
        event_bus: Optional[EventBus] = None,
        executor: Optional[Executor] = None,
    ):
        self.config = config or client.config
        self._client = client
        self._bus = event_bus or get_bus()
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=self.config.max_workers,
            thread_name_prefix="classify",
        )

        self._last_dispatch_ms: Optional[float] = None
        self._status = ApiStatus.IDLE
        self._generation = 0
        self._closed = False
        self._last_result: Optional[ClassificationResult] = None

        # Finished futures handed over from worker threads, drained by poll()
        self._completed: List[Tuple[int, float, Future]] = []
        self._completed_lock = threading.Lock()

        self._sent_count = 0
        self._skipped_count = 0
        self._discarded_count = 0

    # -- loop-side API ---------------------------------------------------

    def submit(self, pose: Pose, now_ms: float) -> bool:
        """Dispatch a classification request if the cooldown allows it.

        Returns:
            True if a request was sent, False if it was skipped
        """
        if self._closed:
            return False

        if (self._last_dispatch_ms is not None
                and now_ms - self._last_dispatch_ms < self.config.dispatch_cooldown_ms):
            self._skipped_count += 1
            return False

        self._last_dispatch_ms = now_ms
        generation = self._generation
        try:
            future = self._executor.submit(self._client.classify, pose)
        except RuntimeError:
            # Executor already shut down
            logger.debug("Dispatch after executor shutdown ignored")
            return False

        self._sent_count += 1
        self._set_status(ApiStatus.SENDING)
        future.add_done_callback(
            lambda f, g=generation, t=now_ms: self._hand_over(g, t, f))
        return True

    def poll(self) -> List[ClassificationResult]:
        """Drain finished requests on the calling (loop) thread.

        Returns:
            Results accepted in this poll, in completion order
        """
        with self._completed_lock:
            finished, self._completed = self._completed, []

        accepted = []
        for generation, request_ms, future in finished:
            if self._closed or generation != self._generation:
                self._discarded_count += 1
                logger.debug("Discarded stale classification (gen %d)", generation)
                continue

            try:
                label = future.result()
            except ClassificationError as e:
                logger.warning("Classification failed: %s", e)
                self._set_status(ApiStatus.OFFLINE)
                continue
            except Exception:
                logger.exception("Unexpected error from classification worker")
                self._set_status(ApiStatus.OFFLINE)
                continue

            result = ClassificationResult(
                label=label, request_timestamp=request_ms, generation=generation)
            self._last_result = result
            self._set_status(ApiStatus.SUCCESS)
            accepted.append(result)

            self._bus.emit(Events.SIGN_DETECTED, SignDetected(alphabet=label))

        return accepted

    def close(self):
        """Stop dispatching; anything still in flight is discarded."""
        if self._closed:
            return
        self._closed = True
        self._generation += 1
        with self._completed_lock:
            self._discarded_count += len(self._completed)
            self._completed = []
        if self._owns_executor:
            self._executor.shutdown(wait=False, cancel_futures=True)
        logger.info("Dispatcher closed (sent=%d, skipped=%d)",
                    self._sent_count, self._skipped_count)

    # -- worker-side -----------------------------------------------------

    def _hand_over(self, generation: int, request_ms: float, future: Future):
        """Done-callback; runs on whichever thread finished the future."""
        if future.cancelled():
            return
        with self._completed_lock:
            if self._closed:
                self._discarded_count += 1
                return
            self._completed.append((generation, request_ms, future))

    # -- status ----------------------------------------------------------

    def _set_status(self, status: ApiStatus):
        if status is self._status:
            return
        logger.debug("API status: %s -> %s", self._status.value, status.value)
        self._status = status
        self._bus.emit(Events.STATUS_CHANGED, StatusChanged(kind="api", status=status.value))

    @property
    def status(self) -> ApiStatus:
        return self._status

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    def last_result(self) -> Optional[ClassificationResult]:
        return self._last_result

    @property
    def sent_count(self) -> int:
        return self._sent_count

    @property
    def skipped_count(self) -> int:
        return self._skipped_count

    @property
    def discarded_count(self) -> int:
        return self._discarded_count
