"""
Lifecycle - background supervisor thread and the caller-facing cluster handle
"""
from .supervisor import LifecycleSupervisor
from .handle import ClusterHandle, running_cluster

__all__ = [
    'LifecycleSupervisor',
    'ClusterHandle',
    'running_cluster',
]
