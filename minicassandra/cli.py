#!/usr/bin/env python3
"""
Command-line interface for Mini Cassandra
Provides commands for running a local cluster, validating cluster configuration
files and previewing generated node configuration.
"""
import sys
import time
import json
import argparse
import logging
import traceback
from pathlib import Path
from typing import Any, Dict, List, Optional
import yaml
from . import __version__
from .models import ClusterConfiguration, NodeIdentity
from .errors import MiniCassandraError
from .lifecycle import ClusterHandle
from .cluster_orchestrator import NodeConfigBuilder, compute_seeds, load_baseline


class MiniCassandraCLI:
    """Command-line interface for Mini Cassandra"""

    def __init__(self, handle: Optional[ClusterHandle] = None):
        self.handle = handle or ClusterHandle()

    def load_config_file(self, config_path: str) -> Dict[str, Any]:
        """Load configuration from YAML or JSON file"""
        path = Path(config_path)

        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(path, 'r') as f:
            if path.suffix in ['.yaml', '.yml']:
                data = yaml.safe_load(f)
            elif path.suffix == '.json':
                data = json.load(f)
            else:
                raise ValueError(f"Unsupported config format: {path.suffix}")

        return data or {}

    def build_configuration(self, args) -> ClusterConfiguration:
        """Merge the optional config file with command-line overrides"""
        values: Dict[str, Any] = {}
        if getattr(args, 'config', None):
            values.update(self.load_config_file(args.config))

        overrides = {
            'num_nodes': getattr(args, 'num_nodes', None),
            'base_ip': getattr(args, 'base_ip', None),
            'native_transport_port': getattr(args, 'native_port', None),
            'num_virtual_nodes': getattr(args, 'num_vnodes', None),
            'cassandra_dir': getattr(args, 'cassandra_dir', None),
        }
        values.update({key: value for key, value in overrides.items() if value is not None})

        if getattr(args, 'dependency', None):
            values['dependencies'] = list(values.get('dependencies') or []) + args.dependency
        if getattr(args, 'skip', False):
            values['skip'] = True

        return ClusterConfiguration.from_dict(values)

    def run_cluster(self, args) -> int:
        """Start a cluster, keep it up until interrupted, then stop it"""
        self._print_header("Mini Cassandra Cluster")

        try:
            config = self.build_configuration(args)
        except (OSError, ValueError, yaml.YAMLError, MiniCassandraError) as e:
            print(f"Error: Invalid configuration: {e}")
            return 1

        if config.skip:
            print("Skipping cluster startup (skip=true)")
            return 0

        print(f"Nodes: {config.num_nodes}")
        print(f"Base IP: {config.base_ip}")
        print(f"Native port: {config.native_transport_port}")
        print(f"Directory: {config.cassandra_dir}")
        print()

        try:
            self.handle.start(config)
        except MiniCassandraError as e:
            print(f"Error: {e}")
            if args.verbose:
                traceback.print_exc()
            return 1
        except KeyboardInterrupt:
            print("\n\nInterrupted during startup, cleaning up")
            self.handle.stop()
            return 130

        print(f"\nCluster is up: {','.join(self.handle.orchestrator.seeds)} port {config.native_transport_port}")
        print("Press Ctrl+C to stop the cluster")

        try:
            self._wait_for_interrupt()
        except KeyboardInterrupt:
            print()

        self.handle.stop()
        print("Cluster stopped")
        return 0

    def validate_config(self, args) -> int:
        """Validate a cluster configuration file"""
        self._print_header(f"Validating: {args.file}")

        try:
            config = ClusterConfiguration.from_dict(self.load_config_file(args.file))
            seeds = compute_seeds(config)
        except (OSError, ValueError, yaml.YAMLError, MiniCassandraError) as e:
            print(f"Validation failed: {e}")
            return 1

        print("Configuration is valid\n")
        print(f"Seeds: {','.join(seeds)}")
        for node_num, address in enumerate(seeds):
            identity = NodeIdentity.for_node(node_num, address, config.cassandra_dir)
            print(f"  {identity.node_id}: {address} -> {identity.root_dir}")

        if args.verbose:
            print(f"\nNative port: {config.native_transport_port}, storage: {config.storage_port}, "
                  f"ssl storage: {config.ssl_storage_port}, rpc: {config.rpc_port}")
            print(f"Virtual nodes: {config.num_virtual_nodes}, mode: {config.node_mode.value}")
        return 0

    def render_node_config(self, args) -> int:
        """Print the cassandra.yaml a node would get, without touching disk"""
        try:
            config = ClusterConfiguration.from_dict(self.load_config_file(args.file))
            seeds = compute_seeds(config)
            if not 0 <= args.node < len(seeds):
                print(f"Error: node must be between 0 and {len(seeds) - 1}")
                return 1
            identity = NodeIdentity.for_node(args.node, seeds[args.node], config.cassandra_dir)
            document = NodeConfigBuilder.build(load_baseline(config.baseline_template), identity, seeds, config)
        except (OSError, ValueError, yaml.YAMLError, MiniCassandraError) as e:
            print(f"Error: {e}")
            return 1

        print(NodeConfigBuilder.render(document), end='')
        return 0

    def _wait_for_interrupt(self) -> None:
        while True:
            time.sleep(1)

    def _print_header(self, title: str):
        print("=" * 60)
        print(title)
        print("=" * 60)


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for CLI"""
    parser = argparse.ArgumentParser(
        prog='minicassandra',
        description='Mini Cassandra - run a disposable local Cassandra cluster for integration tests',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Start a single node cluster under /tmp/minicassandra
  minicassandra start

  # Start three nodes on 127.0.0.1-127.0.0.3 using a config file
  minicassandra start --config cluster.yaml --num-nodes 3

  # Validate a config file
  minicassandra validate cluster.yaml

  # Show the cassandra.yaml node 1 would get
  minicassandra render cluster.yaml --node 1
        """
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'Mini Cassandra {__version__}'
    )

    subparsers = parser.add_subparsers(dest='command', help='Command to execute')

    start_parser = subparsers.add_parser(
        'start',
        help='Start a cluster and keep it running until interrupted'
    )
    start_parser.add_argument(
        '--config',
        type=str,
        help='Path to configuration file (YAML or JSON)'
    )
    start_parser.add_argument(
        '--num-nodes',
        type=int,
        help='Number of nodes (default: 1)'
    )
    start_parser.add_argument(
        '--base-ip',
        type=str,
        help='Address of the first node (default: 127.0.0.1)'
    )
    start_parser.add_argument(
        '--native-port',
        type=int,
        help='Native transport port (default: 9042)'
    )
    start_parser.add_argument(
        '--num-vnodes',
        type=int,
        help='Virtual nodes per node (default: 256)'
    )
    start_parser.add_argument(
        '--cassandra-dir',
        type=str,
        help='Root directory for node files (default: /tmp/minicassandra)'
    )
    start_parser.add_argument(
        '--dependency',
        action='append',
        metavar='JAR',
        help='Classpath entry for the Cassandra JVM (repeatable)'
    )
    start_parser.add_argument(
        '--skip',
        action='store_true',
        help='Do nothing (useful to disable the cluster from build scripts)'
    )
    start_parser.add_argument(
        '--verbose',
        action='store_true',
        help='Enable verbose output'
    )

    validate_parser = subparsers.add_parser(
        'validate',
        help='Validate a cluster configuration file'
    )
    validate_parser.add_argument(
        'file',
        help='Path to configuration file (YAML or JSON)'
    )
    validate_parser.add_argument(
        '--verbose',
        action='store_true',
        help='Enable verbose output'
    )

    render_parser = subparsers.add_parser(
        'render',
        help='Print the generated cassandra.yaml for one node'
    )
    render_parser.add_argument(
        'file',
        help='Path to configuration file (YAML or JSON)'
    )
    render_parser.add_argument(
        '--node',
        type=int,
        default=0,
        help='Node index (default: 0)'
    )

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for CLI"""

    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if getattr(args, 'verbose', False) else logging.INFO,
        format='%(levelname)-5s | %(filename)s:%(lineno)-3d | %(message)s',
        handlers=[logging.StreamHandler()],
        force=True
    )

    if not args.command:
        print("Error: No command specified\n")
        parser.print_help()
        print("\nCommon commands:")
        print("  minicassandra start                    # Start a one node cluster")
        print("  minicassandra validate <file.yaml>     # Validate a config file")
        return 1

    cli = MiniCassandraCLI()

    if args.command == 'start':
        return cli.run_cluster(args)
    elif args.command == 'validate':
        return cli.validate_config(args)
    elif args.command == 'render':
        return cli.render_node_config(args)

    return 0


if __name__ == '__main__':
    sys.exit(main())
