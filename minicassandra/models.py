"""
Core data models for the mini Cassandra cluster
"""
import os
from dataclasses import dataclass, field, fields
from typing import Any, Callable, Dict, Mapping, Optional, Tuple
from enum import Enum
from .errors import ConfigurationError


class NodeMode(Enum):
    """How a node is executed"""
    PROCESS = "process"  # CassandraDaemon in a child JVM
    EMBEDDED = "embedded"  # Service object living in this interpreter


class NodeState(Enum):
    """Lifecycle states of a single node"""
    UNCONFIGURED = "unconfigured"
    CONFIGURED = "configured"
    RUNNING = "running"
    STOPPED = "stopped"


class ClusterState(Enum):
    """Lifecycle states of the whole cluster"""
    NOT_STARTED = "not_started"
    STARTING = "starting"
    READY = "ready"
    FAILED = "failed"
    STOPPING = "stopping"
    STOPPED = "stopped"


class ReadinessResult(Enum):
    """Outcome of waiting for the cluster to answer"""
    READY = "ready"
    DEAD = "dead"
    TIMED_OUT = "timed_out"


_INT = (int,)
_NUMBER = (int, float)
_FIELD_TYPES = {
    'num_nodes': _INT,
    'num_virtual_nodes': _INT,
    'native_transport_port': _INT,
    'storage_port': _INT,
    'ssl_storage_port': _INT,
    'rpc_port': _INT,
    'readiness_max_attempts': _INT,
    'readiness_interval': _NUMBER,
    'probe_timeout': _NUMBER,
}
_TYPE_NAMES = {_INT: "an integer", _NUMBER: "a number"}


@dataclass(frozen=True)
class ClusterConfiguration:
    """User-supplied configuration for a local Cassandra cluster"""
    num_nodes: int = 1
    num_virtual_nodes: int = 256
    base_ip: str = "127.0.0.1"
    native_transport_port: int = 9042
    storage_port: int = 7000
    ssl_storage_port: int = 7001
    rpc_port: int = 9160
    cassandra_dir: str = "/tmp/minicassandra"
    dependencies: Tuple[str, ...] = ()
    node_mode: NodeMode = NodeMode.PROCESS
    service_factory: Optional[Callable[[str], Any]] = field(default=None, compare=False, repr=False)
    java_executable: Optional[str] = None
    jvm_options: Tuple[str, ...] = ()
    baseline_template: Optional[str] = None
    readiness_max_attempts: int = 30
    readiness_interval: float = 10.0
    probe_timeout: float = 2.0
    skip: bool = False

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'ClusterConfiguration':
        """Build a configuration from a plain mapping (e.g. a parsed YAML file)"""
        known = {f.name for f in fields(cls)} - {'service_factory'}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {', '.join(unknown)}")

        values: Dict[str, Any] = dict(data)
        for key, value in values.items():
            expected = _FIELD_TYPES.get(key)
            # bool is an int subclass but never a valid count or port
            if expected is not None and (isinstance(value, bool) or not isinstance(value, expected)):
                raise ConfigurationError(
                    f"{key} must be {_TYPE_NAMES[expected]}, got {value!r} ({type(value).__name__})"
                )
        if 'dependencies' in values:
            values['dependencies'] = tuple(values['dependencies'] or ())
        if 'jvm_options' in values:
            values['jvm_options'] = tuple(values['jvm_options'] or ())
        if 'node_mode' in values and not isinstance(values['node_mode'], NodeMode):
            try:
                values['node_mode'] = NodeMode(values['node_mode'])
            except ValueError:
                raise ConfigurationError(f"Unknown node mode: {values['node_mode']!r}") from None
        return cls(**values)

    def ip_components(self) -> Tuple[str, str, str, int]:
        """Split the base IP into its three leading components and a numeric last octet"""
        components = self.base_ip.split(".")
        if len(components) != 4:
            raise ConfigurationError(f"Looks like {self.base_ip} is not a legal IP address.")
        try:
            last = int(components[3])
        except ValueError:
            raise ConfigurationError(f"Looks like {self.base_ip} is not a legal IP address.") from None
        return components[0], components[1], components[2], last

    def validate(self) -> None:
        """Raise ConfigurationError if the configuration cannot describe a cluster"""
        if self.num_nodes < 1:
            raise ConfigurationError(f"Cluster needs at least one node, got {self.num_nodes}")
        if self.num_virtual_nodes < 1:
            raise ConfigurationError(f"Virtual node count must be positive, got {self.num_virtual_nodes}")

        _, _, _, last = self.ip_components()
        if last < 0 or last + self.num_nodes - 1 > 255:
            raise ConfigurationError(
                f"Base IP {self.base_ip} leaves no room for {self.num_nodes} sequential node addresses"
            )

        for name in ('native_transport_port', 'storage_port', 'ssl_storage_port', 'rpc_port'):
            port = getattr(self, name)
            if not 0 < port < 65536:
                raise ConfigurationError(f"{name} must be between 1 and 65535, got {port}")

        if self.readiness_max_attempts < 1:
            raise ConfigurationError("readiness_max_attempts must be at least 1")
        if self.readiness_interval < 0:
            raise ConfigurationError(f"readiness_interval must not be negative, got {self.readiness_interval}")
        if self.probe_timeout <= 0:
            raise ConfigurationError(f"probe_timeout must be positive, got {self.probe_timeout}")
        if self.node_mode == NodeMode.EMBEDDED and self.service_factory is None:
            raise ConfigurationError("Embedded node mode requires a service_factory")


@dataclass(frozen=True)
class NodeIdentity:
    """Fixed identity and filesystem layout of one node"""
    index: int
    address: str
    root_dir: str
    conf_dir: str
    data_dir: str
    commitlog_dir: str
    saved_caches_dir: str

    @classmethod
    def for_node(cls, index: int, address: str, cassandra_dir: str) -> 'NodeIdentity':
        root_dir = os.path.join(os.path.abspath(cassandra_dir), f"node-{index}")
        return cls(
            index=index,
            address=address,
            root_dir=root_dir,
            conf_dir=os.path.join(root_dir, "conf"),
            data_dir=os.path.join(root_dir, "data"),
            commitlog_dir=os.path.join(root_dir, "commitlog"),
            saved_caches_dir=os.path.join(root_dir, "saved_caches")
        )

    @property
    def node_id(self) -> str:
        return f"node-{self.index}"

    @property
    def config_file(self) -> str:
        return os.path.join(self.conf_dir, "cassandra.yaml")

    @property
    def logging_file(self) -> str:
        return os.path.join(self.conf_dir, "logback.xml")
