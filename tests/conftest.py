"""
Shared fixtures and fakes for the mini cluster tests
"""
import socket
import threading
import socketserver
from unittest.mock import Mock
import pytest
import yaml
from minicassandra.interfaces import INodeRunner, IEmbeddedService


class _ReusableTCPServer(socketserver.TCPServer):
    allow_reuse_address = True


class FakeCassandraService(IEmbeddedService):
    """Stands in for an embedded Cassandra: listens on the node's native port from its cassandra.yaml"""

    instances = []

    def __init__(self, config_path: str):
        with open(config_path) as f:
            document = yaml.safe_load(f)
        self.config_path = config_path
        self.document = document
        self.address = document['listen_address']
        self.port = document['native_transport_port']
        self.server = None
        self.thread = None
        FakeCassandraService.instances.append(self)

    def activate(self) -> None:
        self.server = _ReusableTCPServer((self.address, self.port), socketserver.BaseRequestHandler)
        self.thread = threading.Thread(target=self.server.serve_forever, kwargs={'poll_interval': 0.05}, daemon=True)
        self.thread.start()

    def deactivate(self) -> None:
        self.server.shutdown()
        self.server.server_close()
        self.thread.join(5)

    def is_alive(self) -> bool:
        return self.thread is not None and self.thread.is_alive()


def free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


@pytest.fixture
def fake_service_instances():
    FakeCassandraService.instances = []
    yield FakeCassandraService.instances
    for service in FakeCassandraService.instances:
        if service.is_alive():
            service.deactivate()


@pytest.fixture
def runner_factory():
    """Factory returning mock node runners that report alive once started; created runners are kept on .runners"""
    runners = []

    def factory(config):
        runner = Mock(spec=INodeRunner)
        runner.is_alive.return_value = True
        runners.append(runner)
        return runner

    factory.runners = runners
    return factory
