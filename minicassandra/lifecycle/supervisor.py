import logging
import threading
from typing import Optional
from ..cluster_orchestrator.orchestrator import ClusterOrchestrator
from ..errors import ErrorHandler, ErrorSeverity

logger = logging.getLogger(__name__)


class LifecycleSupervisor(threading.Thread):
    """
    Background thread that owns one cluster from startup to shutdown.

    The thread runs startup(), publishes readiness, then idles until
    request_stop() is called and runs shutdown(). If startup fails the thread
    exits right away and the ready flag is never set, so waiters must also
    watch is_alive().
    """

    def __init__(self, orchestrator: ClusterOrchestrator, idle_interval: float = 1.0,
                 error_handler: Optional[ErrorHandler] = None):
        super().__init__(name="minicassandra-supervisor", daemon=True)
        self.orchestrator = orchestrator
        self.idle_interval = idle_interval
        self.error_handler = error_handler or orchestrator.error_handler
        self.error: Optional[BaseException] = None
        self._ready = threading.Event()
        self._stop_requested = threading.Event()

    def is_ready(self) -> bool:
        return self._ready.is_set()

    def wait_ready(self, timeout: Optional[float] = None) -> bool:
        return self._ready.wait(timeout)

    def request_stop(self) -> None:
        """Ask the thread to shut the cluster down; wakes the idle wait immediately"""
        self._stop_requested.set()

    def run(self) -> None:
        logger.info("Starting up Cassandra cluster...")
        try:
            self.orchestrator.startup()
        except Exception as e:
            self.error = e
            self.error_handler.report(e, ErrorSeverity.HIGH, component="LifecycleSupervisor", phase="startup")
            logger.error("Unable to start a Cassandra cluster")
            return

        logger.info("Cassandra cluster started")
        self._ready.set()

        while not self._stop_requested.wait(self.idle_interval):
            pass

        logger.info("Starting graceful shutdown of the Cassandra cluster...")
        try:
            self.orchestrator.shutdown()
        except Exception as e:
            self.error = e
            self.error_handler.report(e, ErrorSeverity.HIGH, component="LifecycleSupervisor", phase="shutdown")
            return
        logger.info("Cassandra cluster shut down")
