from __future__ import annotations

import copy
import logging
import threading
from typing import Any, Callable, Dict, Mapping, Optional

from apitest.config_loader import TestSet
from apitest.runner import RunSummary, TestRunner


logger = logging.getLogger(__name__)

DEFAULT_DELAY_SECONDS = 300


class Monitor:
    """Repeats a full sequential run on a background thread.

    Every iteration starts from a fresh copy of the initial variables so
    captures from one iteration never leak into the next.
    """

    def __init__(
        self,
        runner: TestRunner,
        test_set: TestSet,
        variables: Mapping[str, Any],
        *,
        delay_seconds: float = DEFAULT_DELAY_SECONDS,
        only: Optional[str] = None,
        on_summary: Optional[Callable[[RunSummary], None]] = None,
    ) -> None:
        self.runner = runner
        self.test_set = test_set
        self.initial_variables: Dict[str, Any] = dict(variables)
        self.delay_seconds = delay_seconds
        self.only = only
        self.on_summary = on_summary
        self.iterations = 0
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="apitest-monitor", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run_once(self) -> RunSummary:
        variables = copy.deepcopy(self.initial_variables)
        summary = self.runner.run(self.test_set, variables, only=self.only)
        self.iterations += 1

        source = self.test_set.source or "<test set>"
        if summary.failed:
            logger.warning("FAIL  %s (%d requests, %d failed)", source, summary.total, summary.failed)
        else:
            logger.info("PASSED  %s (%d requests)", source, summary.total)

        if self.on_summary is not None:
            self.on_summary(summary)
        return summary

    def run_forever(self) -> None:
        self.start()
        try:
            while self.running:
                self._stop.wait(1.0)
        except KeyboardInterrupt:
            logger.info("Shutting down...")
        finally:
            self.stop()

    def _loop(self) -> None:
        while not self._stop.is_set():
            try:
                self.run_once()
            except Exception:
                logger.exception("Monitor iteration failed")
            self._stop.wait(self.delay_seconds)
