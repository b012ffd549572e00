#!/usr/bin/env python3
"""etcd-backup - submit a one-shot etcd backup Job to an OpenShift cluster."""

import argparse
import logging
import sys

from etcd_backup import __version__
from etcd_backup.config import load_config
from etcd_backup.errors import EtcdBackupError

logger = logging.getLogger('etcd_backup')


def positive_int(value: str) -> int:
    """argparse type for integers greater than zero."""
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid int value: '{value}'")
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be greater than 0, got {number}")
    return number


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser with subcommands.

    Global flags go before the subcommand; they override values from the
    config file.
    """
    # allow_abbrev=False keeps -n from matching --node
    parser = argparse.ArgumentParser(
        prog='etcd-backup',
        description='Run an etcd backup Job on a control-plane node',
        allow_abbrev=False
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    parser.add_argument(
        '-c', '--config',
        help='Path to YAML config file (default: $APP_CONFIG, then /config/config.yaml)'
    )
    parser.add_argument('-n', '--namespace', help='Namespace to create the Job in')
    parser.add_argument(
        '-l', '--selector',
        help='Label selector for control-plane nodes (default: <nodeLabel>=)'
    )
    parser.add_argument('-f', '--field-selector', help='Field selector for control-plane nodes')
    parser.add_argument('--image', help='Container image providing the oc binary')
    parser.add_argument('--pvc', help='PVC that receives the backup archive')
    parser.add_argument('--kubeconfig', help='Path to kubeconfig file')
    parser.add_argument('--context', help='Kubeconfig context')
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable debug logging')

    subparsers = parser.add_subparsers(dest='command', required=True)

    run = subparsers.add_parser('run', help='Submit the backup Job')
    run.add_argument('--node', help='Back up via this node instead of looking one up')
    run.add_argument(
        '--wait',
        action='store_true',
        help='Follow the Job and exit non-zero if it fails'
    )
    run.add_argument(
        '--timeout',
        type=positive_int,
        help='Seconds to wait with --wait (default: no limit)'
    )

    manifest = subparsers.add_parser('manifest', help='Print the Job manifest as YAML')
    manifest.add_argument('--node', help='Use this node instead of looking one up')

    return parser


def setup_logging(verbose: bool) -> None:
    """Configure root logging to stderr."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='[%(levelname)s] %(message)s',
        stream=sys.stderr
    )
    # urllib3 is noisy at DEBUG
    logging.getLogger('urllib3').setLevel(logging.WARNING)


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    try:
        cfg = load_config(
            args.config,
            namespace=args.namespace,
            label_selector=args.selector,
            field_selector=args.field_selector,
            image=args.image,
            pvc_name=args.pvc,
            kubeconfig=args.kubeconfig,
            context=args.context,
        )

        if args.command == 'run':
            from etcd_backup.commands.run import handle_run
            handle_run(args, cfg)
        elif args.command == 'manifest':
            from etcd_backup.commands.manifest import handle_manifest
            handle_manifest(args, cfg)
        else:
            parser.print_help()
            sys.exit(2)

    except EtcdBackupError as exc:
        logger.error(str(exc))
        sys.exit(exc.exit_code)
    except KeyboardInterrupt:
        logger.error("Interrupted (a submitted Job keeps running in the cluster)")
        sys.exit(130)


if __name__ == '__main__':
    main()
