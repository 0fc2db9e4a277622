"""
Cluster Orchestrator - node configuration, node processes, readiness probing
"""
from .config_builder import NodeConfigBuilder, load_baseline
from .node import NodeProcess, ProcessNodeRunner, EmbeddedNodeRunner, create_node_runner
from .prober import ReadinessProber
from .orchestrator import ClusterOrchestrator, compute_seeds

__all__ = [
    'NodeConfigBuilder',
    'load_baseline',
    'NodeProcess',
    'ProcessNodeRunner',
    'EmbeddedNodeRunner',
    'create_node_runner',
    'ReadinessProber',
    'ClusterOrchestrator',
    'compute_seeds',
]
