"""
Log forwarder assembly.

``LogForwarder`` wires an input stream, the batcher, the flush scheduler and
the shutdown coordinator around a started sink, prints the status lines and
turns the outcome into a process exit code.
"""

from __future__ import annotations

import sys
from typing import TextIO

from ..metrics.metrics import MetricsCollector
from ..plugins.sinks import BaseSink
from .batcher import Batcher, DrainReport, TransmissionGroup
from .ingest import Ingestor
from .scheduler import FlushScheduler
from .settings import ForwarderSettings
from .shutdown import CancellationToken, ShutdownCoordinator

EXIT_OK = 0
EXIT_FAILURE = 1


class LogForwarder:
    """Forward lines from ``stream`` to ``sink`` until input ends or a signal.

    The sink must already be started: destination errors are configuration
    errors and are raised before any input is read.
    """

    def __init__(
        self,
        sink: BaseSink,
        settings: ForwarderSettings | None = None,
        *,
        stream: TextIO | None = None,
        echo: TextIO | None = None,
        status: TextIO | None = None,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self._settings = settings or ForwarderSettings()
        self._sink = sink
        self._stream = stream if stream is not None else sys.stdin
        self._status = status if status is not None else sys.stdout
        self._metrics = metrics or MetricsCollector(enabled=False)

        cfg = self._settings
        if cfg.silent:
            echo = None
        elif echo is None:
            echo = sys.stdout

        self.token = CancellationToken()
        self.transmissions = TransmissionGroup()
        self.batcher = Batcher(
            sink,
            batch_size=cfg.batch_size,
            metrics=self._metrics,
            transmissions=self.transmissions,
        )
        self.scheduler = FlushScheduler(
            self.batcher.flush_async,
            cfg.flush_interval_seconds,
            token=self.token,
        )
        self.coordinator = ShutdownCoordinator(
            self.batcher,
            self.scheduler,
            self.token,
            await_inflight=cfg.await_inflight_on_drain,
            inflight_timeout=cfg.inflight_timeout_seconds,
        )
        self.ingestor = Ingestor(self._stream, self.batcher, self.token, echo=echo)

    @property
    def metrics(self) -> MetricsCollector:
        return self._metrics

    def _say(self, text: str) -> None:
        self._status.write(text + "\n")
        self._status.flush()

    def start(self) -> None:
        self._say("Starting log forwarder...")
        self._say(f"Destination: {self._sink.destination}")
        self._say("Reading from stdin... (Press Ctrl+C to exit)\n")
        if self._settings.signal_handler_enabled:
            self.coordinator.install_signal_handlers()
        self.scheduler.start()
        self.ingestor.start()

    def stop(self) -> DrainReport:
        """Drain and report; later calls return the first report."""
        try:
            report = self.coordinator.drain()
        finally:
            self.coordinator.restore_signal_handlers()
        if report.ok:
            self._say(f"Flushed {report.lines} remaining logs")
        # Failures are already on stderr via diagnostics
        if self.transmissions.in_flight == 0:
            self._sink.close()
        self._say(f"Exiting. {self._sink.destination}")
        self._say("Log forwarder stopped.")
        return report

    def run(self) -> int:
        """Run until end of input or a termination signal.

        A failed final flush is reported but does not change the exit code;
        an input read error does.
        """
        self.start()
        reason = self.coordinator.wait_for_cancellation()
        if reason is not None and reason.startswith("signal:"):
            self._say("\nReceived interrupt signal, flushing remaining logs...")
        self.stop()
        if self.ingestor.error is not None:
            return EXIT_FAILURE
        return EXIT_OK


__all__ = ["EXIT_FAILURE", "EXIT_OK", "LogForwarder"]
