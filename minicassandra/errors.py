"""
Error taxonomy and error handler for the mini cluster

Provides the exception types raised during cluster lifecycle management and a
centralized handler that records failures with their phase and node context.
"""
import logging
from typing import Optional, Any, Dict, List
from enum import Enum
from dataclasses import dataclass

logger = logging.getLogger(__name__)


class ErrorSeverity(Enum):
    """Severity levels for errors"""
    LOW = "low"  # Expected, informational
    MEDIUM = "medium"  # Degraded, cluster can still proceed
    HIGH = "high"  # Startup or teardown step failed
    FATAL = "fatal"  # Unrecoverable, startup aborted


class ErrorCategory(Enum):
    """Categories of errors for targeted handling"""
    CONFIGURATION = "configuration"
    PROVISIONING = "provisioning"
    LAUNCH = "launch"
    READINESS = "readiness"
    STALE_ENVIRONMENT = "stale_environment"
    SHUTDOWN = "shutdown"
    USAGE = "usage"


class MiniCassandraError(Exception):
    """Base class for all mini cluster errors"""
    category = ErrorCategory.USAGE


class ConfigurationError(MiniCassandraError):
    """Malformed cluster configuration (bad IP, node count, ports)"""
    category = ErrorCategory.CONFIGURATION


class ProvisioningError(MiniCassandraError):
    """Directory or config file could not be created, deleted or written"""
    category = ErrorCategory.PROVISIONING


class StaleEnvironmentError(MiniCassandraError):
    """A cluster already answers on the addresses we are about to use"""
    category = ErrorCategory.STALE_ENVIRONMENT


class UsageError(MiniCassandraError):
    """Lifecycle call made in a state that does not allow it"""
    category = ErrorCategory.USAGE


class ReadinessFailure(MiniCassandraError):
    """Cluster never became reachable; `outcome` tells a crash from a timeout"""
    category = ErrorCategory.READINESS

    def __init__(self, message: str, outcome):
        super().__init__(message)
        self.outcome = outcome


class ClusterStartupError(MiniCassandraError):
    """Raised to the caller waiting on a cluster whose supervisor exited without becoming ready"""
    category = ErrorCategory.READINESS


@dataclass
class ErrorContext:
    """Context information for an error"""
    category: ErrorCategory
    severity: ErrorSeverity
    message: str
    exception: Optional[Exception] = None
    component: Optional[str] = None
    phase: Optional[str] = None
    node_id: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None


class ErrorHandler:
    """
    Records and logs lifecycle failures.

    Each orchestrator and supervisor owns one handler. Errors are logged at a
    level derived from their severity and kept in a history so a failed startup
    can be summarized after the fact.
    """

    def __init__(self):
        self.error_history: List[ErrorContext] = []

    def handle_error(self, error_context: ErrorContext) -> None:
        """Log an error and store it in history"""
        self._log_error(error_context)
        self.error_history.append(error_context)

    def report(self, exception: Exception, severity: ErrorSeverity, component: Optional[str] = None,
               phase: Optional[str] = None, node_id: Optional[str] = None,
               category: Optional[ErrorCategory] = None) -> ErrorContext:
        """Build an ErrorContext from an exception and handle it"""
        category = category or getattr(exception, 'category', ErrorCategory.USAGE)
        error_context = ErrorContext(
            category=category,
            severity=severity,
            message=str(exception),
            exception=exception,
            component=component,
            phase=phase,
            node_id=node_id
        )
        self.handle_error(error_context)
        return error_context

    def _log_error(self, error_context: ErrorContext):
        """Log error with appropriate level based on severity"""
        log_message = f"[{error_context.category.value}] {error_context.message}"

        if error_context.component:
            log_message = f"[{error_context.component}] {log_message}"

        if error_context.phase:
            log_message += f" (phase: {error_context.phase})"

        if error_context.node_id:
            log_message += f" (node: {error_context.node_id})"

        if error_context.severity == ErrorSeverity.FATAL:
            logger.critical(log_message)
        elif error_context.severity == ErrorSeverity.HIGH:
            logger.error(log_message)
        elif error_context.severity == ErrorSeverity.MEDIUM:
            logger.warning(log_message)
        else:
            logger.info(log_message)

        # Unexpected exceptions get a traceback; our own typed errors already carry the context
        if (error_context.exception is not None
                and error_context.severity in [ErrorSeverity.HIGH, ErrorSeverity.FATAL]
                and not isinstance(error_context.exception, MiniCassandraError)):
            logger.error("Traceback for unexpected error", exc_info=error_context.exception)

    def get_error_summary(self) -> Dict[str, Any]:
        """Get summary of all errors encountered"""
        errors_by_category = {}
        errors_by_severity = {}

        for error in self.error_history:
            category = error.category.value
            errors_by_category[category] = errors_by_category.get(category, 0) + 1

            severity = error.severity.value
            errors_by_severity[severity] = errors_by_severity.get(severity, 0) + 1

        return {
            'total_errors': len(self.error_history),
            'by_category': errors_by_category,
            'by_severity': errors_by_severity,
            'recent_errors': [
                {
                    'category': e.category.value,
                    'severity': e.severity.value,
                    'message': e.message,
                    'node': e.node_id
                }
                for e in self.error_history[-10:]
            ]
        }
