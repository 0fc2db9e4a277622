import os
import shutil
import logging
import subprocess
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional
from ..interfaces import INodeRunner, IEmbeddedService
from ..models import ClusterConfiguration, NodeIdentity, NodeMode, NodeState
from ..errors import ErrorCategory, ErrorHandler, ErrorSeverity, ProvisioningError
from .config_builder import NodeConfigBuilder

logger = logging.getLogger(__name__)

CASSANDRA_DAEMON = "org.apache.cassandra.service.CassandraDaemon"


class ProcessNodeRunner(INodeRunner):
    """Runs a node as a CassandraDaemon in a child JVM"""

    def __init__(self, config: ClusterConfiguration):
        self.config = config
        self.process: Optional[subprocess.Popen] = None
        self._output = None

    def java_executable(self) -> str:
        """Explicit override, then $JAVA_HOME/bin/java, then whatever java is on PATH"""
        if self.config.java_executable:
            return self.config.java_executable

        java_home = os.environ.get("JAVA_HOME")
        if java_home:
            candidate = os.path.join(java_home, "bin", "java")
            if os.path.exists(candidate):
                return candidate

        return shutil.which("java") or "java"

    def build_classpath(self, identity: NodeIdentity) -> str:
        # Directory entries need a trailing separator or the JVM skips them
        entries = [identity.conf_dir + os.sep]
        for artifact in self.config.dependencies:
            logger.debug(f"Adding dependency {artifact} to the classpath")
            entry = os.path.abspath(artifact)
            if os.path.isdir(entry):
                entry += os.sep
            entries.append(entry)
        return os.pathsep.join(entries)

    def build_command(self, identity: NodeIdentity) -> List[str]:
        return [
            self.java_executable(),
            *self.config.jvm_options,
            '-Dcassandra-foreground=yes',
            f'-Dcassandra.config={Path(identity.config_file).as_uri()}',
            f'-Dlogback.configurationFile={identity.logging_file}',
            '-cp', self.build_classpath(identity),
            CASSANDRA_DAEMON
        ]

    def build_environment(self, identity: NodeIdentity) -> Dict[str, str]:
        env = dict(os.environ)
        env['CASSANDRA_CONF'] = identity.conf_dir
        return env

    def start(self, identity: NodeIdentity) -> None:
        cmd = self.build_command(identity)
        output = open(os.path.join(identity.root_dir, "output.log"), 'ab')
        try:
            self.process = subprocess.Popen(
                cmd,
                cwd=identity.root_dir,
                env=self.build_environment(identity),
                stdout=output,
                stderr=subprocess.STDOUT
            )
        except Exception:
            output.close()
            raise
        self._output = output
        logger.info(f"Spawned {identity.node_id} with PID {self.process.pid}")

    def stop(self) -> None:
        """Send SIGTERM and return without waiting for the JVM to exit"""
        if self.process is None:
            return

        if self.process.poll() is None:
            self.process.terminate()

        if self._output is not None:
            self._output.close()
            self._output = None

    def is_alive(self) -> bool:
        return self.process is not None and self.process.poll() is None


class EmbeddedNodeRunner(INodeRunner):
    """Runs a node as a service object inside this interpreter"""

    def __init__(self, service_factory: Callable[[str], IEmbeddedService]):
        self.service_factory = service_factory
        self.service: Optional[IEmbeddedService] = None

    def start(self, identity: NodeIdentity) -> None:
        service = self.service_factory(identity.config_file)
        service.activate()
        self.service = service

    def stop(self) -> None:
        if self.service is None:
            return
        self.service.deactivate()

    def is_alive(self) -> bool:
        return self.service is not None and self.service.is_alive()


def create_node_runner(config: ClusterConfiguration) -> INodeRunner:
    """Pick the runner implementation for the configured node mode"""
    if config.node_mode == NodeMode.EMBEDDED:
        return EmbeddedNodeRunner(config.service_factory)
    return ProcessNodeRunner(config)


class NodeProcess:
    """Owns one node's directories, generated config and execution unit"""

    def __init__(self, identity: NodeIdentity, seeds: List[str], config: ClusterConfiguration,
                 baseline: Mapping[str, Any], runner: Optional[INodeRunner] = None,
                 error_handler: Optional[ErrorHandler] = None):
        self.identity = identity
        self.seeds = list(seeds)
        self.config = config
        self.baseline = baseline
        self.runner = runner or create_node_runner(config)
        self.error_handler = error_handler or ErrorHandler()
        self.state = NodeState.UNCONFIGURED

    def __repr__(self) -> str:
        return f"NodeProcess({self.identity.node_id}, {self.identity.address}, {self.state.value})"

    def setup(self) -> None:
        """Recreate the node's directories and write its config files"""
        identity = self.identity
        parent = os.path.dirname(identity.root_dir)
        if not os.path.isdir(parent):
            raise ProvisioningError(f"Cluster root {parent} does not exist, cannot set up {identity.node_id}")

        try:
            if os.path.exists(identity.root_dir):
                shutil.rmtree(identity.root_dir)
            os.mkdir(identity.root_dir)

            for directory in (identity.conf_dir, identity.data_dir, identity.commitlog_dir, identity.saved_caches_dir):
                os.mkdir(directory)

            logger.info(f"Creating cassandra.yaml for {identity.node_id}")
            document = NodeConfigBuilder.build(self.baseline, identity, self.seeds, self.config)
            with open(identity.config_file, 'w') as f:
                f.write(NodeConfigBuilder.render(document))

            logger.info(f"Creating logback.xml for {identity.node_id}")
            with open(identity.logging_file, 'w') as f:
                f.write(NodeConfigBuilder.build_logback(identity))
        except OSError as e:
            raise ProvisioningError(f"Problem setting up {identity.root_dir} for {identity.node_id}: {e}") from e

        self.state = NodeState.CONFIGURED

    def start(self) -> None:
        """Launch the node; failures are logged and surface later through is_running()"""
        if self.state != NodeState.CONFIGURED:
            logger.warning(f"Not starting {self.identity.node_id}, it is {self.state.value}")
            return

        logger.info(f"Starting {self.identity.node_id} ({self.identity.address})")
        try:
            self.runner.start(self.identity)
        except Exception as e:
            self.error_handler.report(
                e, ErrorSeverity.MEDIUM, component="NodeProcess", phase="start",
                node_id=self.identity.node_id, category=ErrorCategory.LAUNCH
            )
            logger.warning(f"Could not start Cassandra node {self.identity.node_id}")
            return

        self.state = NodeState.RUNNING
        logger.info(f"Successfully started {self.identity.node_id}")

    def stop(self) -> None:
        if self.state != NodeState.RUNNING:
            logger.debug(f"{self.identity.node_id} is {self.state.value}, nothing to stop")
            return

        self.runner.stop()
        self.state = NodeState.STOPPED
        logger.info(f"Stopped {self.identity.node_id}")

    def is_running(self) -> bool:
        return self.state == NodeState.RUNNING and self.runner.is_alive()
