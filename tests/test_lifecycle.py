"""
Tests for the supervisor thread and the cluster handle
"""
import time
import threading
import pytest
from unittest.mock import Mock
from minicassandra.lifecycle import ClusterHandle, LifecycleSupervisor, running_cluster
from minicassandra.cluster_orchestrator.orchestrator import ClusterOrchestrator
from minicassandra.models import ClusterConfiguration
from minicassandra.errors import ClusterStartupError, ErrorHandler, StaleEnvironmentError, UsageError


def make_orchestrator(startup_side_effect=None):
    orchestrator = Mock(spec=ClusterOrchestrator)
    orchestrator.error_handler = ErrorHandler()
    orchestrator.seeds = ["127.0.0.1"]
    if startup_side_effect is not None:
        orchestrator.startup.side_effect = startup_side_effect
    return orchestrator


class TestLifecycleSupervisor:
    """Test the background supervisor thread"""

    def test_ready_then_stop(self):
        orchestrator = make_orchestrator()
        supervisor = LifecycleSupervisor(orchestrator, idle_interval=0.05)

        supervisor.start()
        assert supervisor.wait_ready(5)
        assert supervisor.is_alive()
        orchestrator.shutdown.assert_not_called()

        supervisor.request_stop()
        supervisor.join(5)

        assert not supervisor.is_alive()
        orchestrator.shutdown.assert_called_once()
        assert supervisor.error is None

    def test_stop_wakes_idle_wait(self):
        """Test a stop request does not wait out a long idle tick"""
        orchestrator = make_orchestrator()
        supervisor = LifecycleSupervisor(orchestrator, idle_interval=60)
        supervisor.start()
        assert supervisor.wait_ready(5)

        started = time.monotonic()
        supervisor.request_stop()
        supervisor.join(5)

        assert not supervisor.is_alive()
        assert time.monotonic() - started < 5

    def test_startup_failure_exits_without_ready(self):
        error = StaleEnvironmentError("already running")
        orchestrator = make_orchestrator(startup_side_effect=error)
        supervisor = LifecycleSupervisor(orchestrator, idle_interval=0.05)

        supervisor.start()
        supervisor.join(5)

        assert not supervisor.is_alive()
        assert not supervisor.is_ready()
        assert supervisor.error is error
        orchestrator.shutdown.assert_not_called()

    def test_stop_requested_during_startup_is_deferred(self):
        """Test shutdown only happens after startup has finished"""
        release = threading.Event()
        calls = []

        def slow_startup():
            release.wait(5)
            calls.append('startup')

        orchestrator = make_orchestrator(startup_side_effect=slow_startup)
        orchestrator.shutdown.side_effect = lambda: calls.append('shutdown')
        supervisor = LifecycleSupervisor(orchestrator, idle_interval=0.05)

        supervisor.start()
        supervisor.request_stop()
        release.set()
        supervisor.join(5)

        assert calls == ['startup', 'shutdown']
        assert supervisor.is_ready()

    def test_shutdown_failure_recorded(self):
        orchestrator = make_orchestrator()
        orchestrator.shutdown.side_effect = RuntimeError("boom")
        supervisor = LifecycleSupervisor(orchestrator, idle_interval=0.05)

        supervisor.start()
        supervisor.wait_ready(5)
        supervisor.request_stop()
        supervisor.join(5)

        assert not supervisor.is_alive()
        assert isinstance(supervisor.error, RuntimeError)


class TestClusterHandle:
    """Test the caller-facing start/stop contract"""

    def make_handle(self, orchestrator):
        return ClusterHandle(poll_interval=0.05, idle_interval=0.05, orchestrator_factory=lambda config: orchestrator)

    def test_stop_before_start_is_noop(self):
        handle = ClusterHandle()

        handle.stop()
        handle.stop()

        assert not handle.is_active()
        assert handle.supervisor is None

    def test_start_and_stop(self):
        orchestrator = make_orchestrator()
        handle = self.make_handle(orchestrator)

        handle.start(ClusterConfiguration())
        supervisor = handle.supervisor

        assert handle.is_ready()
        assert handle.orchestrator is orchestrator
        orchestrator.startup.assert_called_once()

        handle.stop()

        assert not supervisor.is_alive()
        assert not handle.is_active()
        orchestrator.shutdown.assert_called_once()

    def test_start_failure_raises(self):
        """Test the caller is not left waiting for a supervisor that already gave up"""
        error = StaleEnvironmentError("already running")
        handle = self.make_handle(make_orchestrator(startup_side_effect=error))

        with pytest.raises(ClusterStartupError, match="already running") as excinfo:
            handle.start(ClusterConfiguration())

        assert excinfo.value.__cause__ is error
        assert "1 error(s) recorded: stale_environment=1" in str(excinfo.value)
        assert not handle.is_active()

    def test_start_while_active_is_usage_error(self):
        orchestrator = make_orchestrator()
        handle = self.make_handle(orchestrator)
        handle.start(ClusterConfiguration())

        try:
            with pytest.raises(UsageError):
                handle.start(ClusterConfiguration())
            orchestrator.startup.assert_called_once()
        finally:
            handle.stop()

    def test_skip_starts_nothing(self):
        factory = Mock()
        handle = ClusterHandle(orchestrator_factory=factory)

        handle.start(ClusterConfiguration(skip=True))

        factory.assert_not_called()
        assert not handle.is_active()

    def test_can_start_again_after_stop(self):
        handle = ClusterHandle(poll_interval=0.05, idle_interval=0.05,
                               orchestrator_factory=lambda config: make_orchestrator())

        handle.start(ClusterConfiguration())
        handle.stop()
        handle.start(ClusterConfiguration())

        assert handle.is_ready()
        handle.stop()


def test_running_cluster_always_stops():
    orchestrator = make_orchestrator()
    handle = ClusterHandle(poll_interval=0.05, idle_interval=0.05, orchestrator_factory=lambda config: orchestrator)

    with pytest.raises(ValueError):
        with running_cluster(ClusterConfiguration(), handle) as active:
            assert active.is_ready()
            raise ValueError("test failed")

    assert not handle.is_active()
    orchestrator.shutdown.assert_called_once()
