"""
Caller-facing entry point for starting and stopping a local cluster
"""
import logging
from contextlib import contextmanager
from typing import Callable, Iterator, Optional
from ..cluster_orchestrator.orchestrator import ClusterOrchestrator
from ..models import ClusterConfiguration
from ..errors import ClusterStartupError, UsageError
from .supervisor import LifecycleSupervisor

logger = logging.getLogger(__name__)


class ClusterHandle:
    """
    Holds at most one running cluster and blocks callers until it is ready or stopped.

    Create one handle and pass it to whoever needs to start or stop the cluster.
    """

    def __init__(self, poll_interval: float = 1.0, idle_interval: float = 1.0,
                 orchestrator_factory: Callable[[ClusterConfiguration], ClusterOrchestrator] = ClusterOrchestrator):
        self.poll_interval = poll_interval
        self.idle_interval = idle_interval
        self.orchestrator_factory = orchestrator_factory
        self.supervisor: Optional[LifecycleSupervisor] = None

    def is_active(self) -> bool:
        return self.supervisor is not None

    def is_ready(self) -> bool:
        return self.supervisor is not None and self.supervisor.is_ready()

    @property
    def orchestrator(self) -> Optional[ClusterOrchestrator]:
        return self.supervisor.orchestrator if self.supervisor is not None else None

    def start(self, config: ClusterConfiguration) -> None:
        """Start a cluster and block until it is ready; raises ClusterStartupError if it never gets there"""
        if self.supervisor is not None:
            raise UsageError("A cluster is already active on this handle; stop it before starting another")

        if config.skip:
            logger.info("Not starting a Cassandra cluster because skip=true")
            return

        supervisor = LifecycleSupervisor(self.orchestrator_factory(config), idle_interval=self.idle_interval)
        self.supervisor = supervisor

        logger.info("Starting new cluster thread...")
        supervisor.start()

        logger.info("Waiting for cluster to be ready...")
        while not supervisor.wait_ready(self.poll_interval):
            if not supervisor.is_alive():
                # The thread may have set the flag right before exiting
                if supervisor.is_ready():
                    break
                self.supervisor = None
                summary = supervisor.error_handler.get_error_summary()
                by_category = ", ".join(f"{name}={count}" for name, count in summary['by_category'].items())
                raise ClusterStartupError(
                    f"Unable to start Cassandra cluster: {supervisor.error} "
                    f"({summary['total_errors']} error(s) recorded: {by_category})"
                ) from supervisor.error
            logger.debug("Still waiting...")

        logger.info("Finished waiting for Cassandra cluster thread")

    def stop(self) -> None:
        """Stop the active cluster and block until its thread has exited"""
        supervisor = self.supervisor
        if supervisor is None:
            logger.error("Attempted to stop a cluster, but no cluster is active on this handle")
            return

        logger.info("Stopping the Cassandra cluster thread...")
        supervisor.request_stop()
        while supervisor.is_alive():
            supervisor.join(self.poll_interval)
        self.supervisor = None
        logger.info("Cassandra cluster thread stopped")


@contextmanager
def running_cluster(config: ClusterConfiguration, handle: Optional[ClusterHandle] = None) -> Iterator[ClusterHandle]:
    """Start a cluster for the duration of a with-block"""
    handle = handle or ClusterHandle()
    handle.start(config)
    try:
        yield handle
    finally:
        if handle.is_active():
            handle.stop()
