import os
import shutil
import logging
from typing import Callable, List, Optional
from ..interfaces import INodeRunner
from ..models import ClusterConfiguration, ClusterState, NodeIdentity, ReadinessResult
from ..errors import (
    ErrorCategory, ErrorHandler, ErrorSeverity,
    ProvisioningError, ReadinessFailure, StaleEnvironmentError, UsageError
)
from .config_builder import load_baseline
from .node import NodeProcess, create_node_runner
from .prober import ReadinessProber

logger = logging.getLogger(__name__)

ROOT_MARKER = ".minicassandra"


def compute_seeds(config: ClusterConfiguration) -> List[str]:
    """One address per node, counting up from the last octet of the base IP"""
    config.validate()
    first, second, third, start = config.ip_components()
    return [f"{first}.{second}.{third}.{start + node_num}" for node_num in range(config.num_nodes)]


class ClusterOrchestrator:
    """Sets up, starts, waits for and stops every node of one local cluster"""

    def __init__(self, config: ClusterConfiguration, prober: Optional[ReadinessProber] = None,
                 runner_factory: Callable[[ClusterConfiguration], INodeRunner] = create_node_runner,
                 error_handler: Optional[ErrorHandler] = None):
        self.config = config
        self.prober = prober or ReadinessProber(connect_timeout=config.probe_timeout)
        self.runner_factory = runner_factory
        self.error_handler = error_handler or ErrorHandler()
        self.state = ClusterState.NOT_STARTED
        self.seeds: List[str] = []
        self.nodes: List[NodeProcess] = []
        self._phase = None

    def create_nodes(self, seeds: List[str]) -> List[NodeProcess]:
        """Create one NodeProcess per seed address, in index order"""
        baseline = load_baseline(self.config.baseline_template)
        nodes = []
        for node_num, address in enumerate(seeds):
            identity = NodeIdentity.for_node(node_num, address, self.config.cassandra_dir)
            nodes.append(NodeProcess(
                identity,
                seeds,
                self.config,
                baseline,
                runner=self.runner_factory(self.config),
                error_handler=self.error_handler
            ))
        return nodes

    def initialize_directories(self) -> None:
        """Recreate the cluster root, then set up each node in index order"""
        root = os.path.abspath(self.config.cassandra_dir)
        marker = os.path.join(root, ROOT_MARKER)

        try:
            if os.path.lexists(root):
                created_by_us = os.path.isdir(root) and (not os.listdir(root) or os.path.exists(marker))
                if not created_by_us:
                    raise ProvisioningError(
                        f"Refusing to delete {root}: it was not created by a previous mini cluster"
                    )
                logger.info(f"Deleting existing cluster root {root}")
                shutil.rmtree(root)

            os.makedirs(root)
            with open(marker, 'w') as f:
                f.write("Created by minicassandra; deleted on the next cluster startup.\n")
        except OSError as e:
            raise ProvisioningError(f"Could not create root Cassandra dir {root}: {e}") from e

        for node in self.nodes:
            node.setup()

    def all_nodes_alive(self) -> bool:
        for node in self.nodes:
            if not node.is_running():
                logger.error(f"Process for Cassandra node {node.identity.node_id} ({node.identity.address}) died during startup")
                return False
        return True

    def startup(self) -> None:
        """Start the cluster and block until it accepts connections"""
        if self.state != ClusterState.NOT_STARTED:
            error = UsageError(f"Cluster already {self.state.value}, startup() may only be called once")
            self.error_handler.report(error, ErrorSeverity.LOW, component="ClusterOrchestrator", phase="startup")
            raise error

        self.state = ClusterState.STARTING
        port = self.config.native_transport_port

        try:
            self._phase = "seeds"
            self.seeds = compute_seeds(self.config)
            logger.info(f"Starting {self.config.num_nodes} node(s) with seeds {','.join(self.seeds)}")

            self._phase = "provisioning"
            self.nodes = self.create_nodes(self.seeds)
            self.initialize_directories()

            # Nothing should answer on these addresses before we start anything
            self._phase = "preflight"
            if self.prober.probe_once(self.seeds, port):
                raise StaleEnvironmentError(
                    f"A cluster is already reachable on {','.join(self.seeds)} port {port}; "
                    f"stop it before starting a new one"
                )
        except Exception as e:
            self.state = ClusterState.FAILED
            self.error_handler.report(e, ErrorSeverity.FATAL, component="ClusterOrchestrator", phase=self._phase)
            raise

        try:
            self._phase = "launch"
            for node in self.nodes:
                node.start()

            self._phase = "readiness"
            logger.info(f"Waiting for the cluster to accept connections on port {port} "
                        f"({self.config.readiness_max_attempts} attempts, {self.config.readiness_interval:.2f}s apart)")
            result = self.prober.wait_until_ready(
                self.seeds,
                port,
                self.all_nodes_alive,
                self.config.readiness_max_attempts,
                self.config.readiness_interval
            )
        except Exception as e:
            # Some nodes may already be up; none may outlive a failed startup
            self.state = ClusterState.FAILED
            self.error_handler.report(e, ErrorSeverity.FATAL, component="ClusterOrchestrator",
                                      phase=self._phase, category=ErrorCategory.READINESS)
            self._stop_nodes()
            raise

        if result == ReadinessResult.READY:
            self.state = ClusterState.READY
            logger.info("Test connection to Cassandra successful -- cluster is up!")
            return

        self.state = ClusterState.FAILED
        if result == ReadinessResult.DEAD:
            error = ReadinessFailure("At least one of the Cassandra processes died during startup.", result)
        else:
            error = ReadinessFailure(
                f"Cassandra cluster should be up now, but cannot connect after "
                f"{self.config.readiness_max_attempts} attempts!", result
            )
        self.error_handler.report(error, ErrorSeverity.FATAL, component="ClusterOrchestrator", phase=self._phase)
        self._stop_nodes()
        raise error

    def shutdown(self) -> None:
        """Stop every node; individual failures are logged and do not stop teardown"""
        if self.state not in (ClusterState.READY, ClusterState.STARTING):
            logger.error(f"Attempting to shut down a cluster that is {self.state.value}, ignoring")
            return

        self.state = ClusterState.STOPPING
        logger.info(f"Stopping {len(self.nodes)} node(s)")
        self._stop_nodes()
        self.state = ClusterState.STOPPED
        logger.info("Cluster stopped")

    def _stop_nodes(self) -> None:
        for node in self.nodes:
            try:
                node.stop()
            except Exception as e:
                self.error_handler.report(
                    e, ErrorSeverity.MEDIUM, component="ClusterOrchestrator", phase="shutdown",
                    node_id=node.identity.node_id, category=ErrorCategory.SHUTDOWN
                )
