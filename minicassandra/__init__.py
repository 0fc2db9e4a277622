"""
Mini Cassandra - disposable local Cassandra clusters for integration tests
"""
from .models import ClusterConfiguration, NodeMode, ClusterState, NodeState, ReadinessResult
from .errors import (
    MiniCassandraError, ConfigurationError, ProvisioningError, ReadinessFailure,
    StaleEnvironmentError, UsageError, ClusterStartupError
)
from .lifecycle import ClusterHandle, LifecycleSupervisor, running_cluster

__version__ = "0.1.0"

__all__ = [
    'ClusterConfiguration',
    'NodeMode',
    'ClusterState',
    'NodeState',
    'ReadinessResult',
    'MiniCassandraError',
    'ConfigurationError',
    'ProvisioningError',
    'ReadinessFailure',
    'StaleEnvironmentError',
    'UsageError',
    'ClusterStartupError',
    'ClusterHandle',
    'LifecycleSupervisor',
    'running_cluster',
]
