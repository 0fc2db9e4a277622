"""
Base interfaces for the pluggable parts of a node
"""
from abc import ABC, abstractmethod
from .models import NodeIdentity


class INodeRunner(ABC):
    """Interface for the execution unit that runs one node"""

    @abstractmethod
    def start(self, identity: NodeIdentity) -> None:
        """Launch the node; raises if the launch itself fails"""
        pass

    @abstractmethod
    def stop(self) -> None:
        """Stop the node; must be a no-op when nothing was launched"""
        pass

    @abstractmethod
    def is_alive(self) -> bool:
        """Whether the launched process or service is still running"""
        pass


class IEmbeddedService(ABC):
    """Interface for an in-process Cassandra service built from a cassandra.yaml path"""

    @abstractmethod
    def activate(self) -> None:
        """Start serving"""
        pass

    @abstractmethod
    def deactivate(self) -> None:
        """Stop serving and release resources; blocks until done"""
        pass

    @abstractmethod
    def is_alive(self) -> bool:
        """Whether the service is still serving"""
        pass
