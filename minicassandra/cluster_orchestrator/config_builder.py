"""
Per-node cassandra.yaml and logback.xml generation
"""
import os
import copy
import logging
from typing import Any, Dict, List, Mapping, Optional
import yaml
from ..models import ClusterConfiguration, NodeIdentity
from ..errors import ProvisioningError

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "resources", "cassandra.yaml")
SEED_PROVIDER_CLASS = "org.apache.cassandra.locator.SimpleSeedProvider"

LOGBACK_TEMPLATE = """<configuration scan="false">
  <appender name="STDOUT" class="ch.qos.logback.core.ConsoleAppender">
    <encoder>
      <pattern>%-5level %date{{HH:mm:ss,SSS}} %msg%n</pattern>
    </encoder>
  </appender>

  <appender name="FILE" class="ch.qos.logback.core.rolling.RollingFileAppender">
    <file>{system_log}</file>
    <rollingPolicy class="ch.qos.logback.core.rolling.FixedWindowRollingPolicy">
      <fileNamePattern>{system_log}.%i.zip</fileNamePattern>
      <minIndex>1</minIndex>
      <maxIndex>50</maxIndex>
    </rollingPolicy>
    <triggeringPolicy class="ch.qos.logback.core.rolling.SizeBasedTriggeringPolicy">
      <maxFileSize>20MB</maxFileSize>
    </triggeringPolicy>
    <encoder>
      <pattern>%-5level [%thread] %date{{ISO8601}} %F:%L - %msg%n</pattern>
    </encoder>
  </appender>

  <root level="INFO">
    <appender-ref ref="FILE" />
    <appender-ref ref="STDOUT" />
  </root>

  <logger name="org.apache.thrift.server.TNonblockingServer" level="ERROR" />
</configuration>
"""


def load_baseline(path: Optional[str] = None) -> Dict[str, Any]:
    """Read a baseline cassandra.yaml, defaulting to the bundled template"""
    path = path or DEFAULT_TEMPLATE
    try:
        with open(path, 'r') as f:
            baseline = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ProvisioningError(f"Could not read baseline template {path}: {e}") from e

    if baseline is None:
        return {}
    if not isinstance(baseline, dict):
        raise ProvisioningError(f"Baseline template {path} is not a key/value document")
    return baseline


class NodeConfigBuilder:
    """Turns a node identity plus cluster settings into a cassandra.yaml document"""

    @staticmethod
    def node_settings(identity: NodeIdentity, seeds: List[str], config: ClusterConfiguration) -> Dict[str, Any]:
        """The keys this builder owns, in the order they are written"""
        settings: Dict[str, Any] = {
            'data_file_directories': [identity.data_dir],
            'commitlog_directory': identity.commitlog_dir,
            'saved_caches_directory': identity.saved_caches_dir,
            'listen_address': identity.address,
            'rpc_address': identity.address,
            'native_transport_port': config.native_transport_port,
            'storage_port': config.storage_port,
            'ssl_storage_port': config.ssl_storage_port,
            'rpc_port': config.rpc_port,
            'num_tokens': config.num_virtual_nodes,
        }

        if seeds:
            settings['seed_provider'] = [{
                'class_name': SEED_PROVIDER_CLASS,
                'parameters': [{'seeds': ",".join(seeds)}]
            }]
        return settings

    @classmethod
    def build(cls, baseline: Mapping[str, Any], identity: NodeIdentity, seeds: List[str],
              config: ClusterConfiguration) -> Dict[str, Any]:
        """
        Merge node settings over the baseline.

        Every key set here overwrites the baseline value, keys missing from the
        baseline are inserted, and all other baseline keys pass through as-is.
        The baseline itself is never modified.
        """
        document = copy.deepcopy(dict(baseline))
        document.update(cls.node_settings(identity, seeds, config))
        return document

    @staticmethod
    def render(document: Mapping[str, Any]) -> str:
        return yaml.safe_dump(dict(document), default_flow_style=False, sort_keys=False)

    @staticmethod
    def build_logback(identity: NodeIdentity) -> str:
        """Logging config routing node output to a rolling system.log under the node root"""
        return LOGBACK_TEMPLATE.format(system_log=os.path.join(identity.root_dir, "system.log"))
