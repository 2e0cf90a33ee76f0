import argparse
import logging
import sys

import yaml

from kinda_topo.constants import KUBECONFIG_PATH
from kinda_topo.core.errors import TopologyError
from kinda_topo.core.topo import (TopologyParams, create_topology,
                                  delete_topology, get_topology_services)
from kinda_topo.util.context import Context
from kinda_topo.util.logger import logger


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='kinda-topo', description='Create and delete emulated network topologies on k8s')
    parser.add_argument('-v', '--verbose', action='store_true')
    parser.add_argument('--kubecfg', default=KUBECONFIG_PATH,
                        help='path to the kubeconfig file')

    commands = parser.add_subparsers(dest='command', required=True)

    create = commands.add_parser('create', help='create a topology')
    create.add_argument('topology', help='topology file (.yaml/.json) or Kathara lab directory')
    create.add_argument('--timeout', type=float, default=0,
                        help='seconds to wait for nodes to be running, 0 waits forever')
    create.add_argument('--dryrun', action='store_true',
                        help='only load and validate the topology')

    delete = commands.add_parser('delete', help='delete a topology')
    delete.add_argument('topology')

    show = commands.add_parser('show', help='show services and state of a topology')
    show.add_argument('topology')
    return parser


def main(argv: list[str] = None) -> int:
    args = _build_parser().parse_args(argv)
    logger.setLevel(logging.DEBUG if args.verbose else logging.INFO)

    params = TopologyParams(topo_file=args.topology, kubecfg=args.kubecfg)
    ctx = Context.background()
    try:
        if args.command == 'create':
            params.timeout = args.timeout
            params.dry_run = args.dryrun
            create_topology(ctx, params)
        elif args.command == 'delete':
            delete_topology(ctx, params)
        else:
            response = get_topology_services(ctx, params)
            print(yaml.safe_dump(response.to_dict(), sort_keys=False))
    except TopologyError as e:
        logger.error(e)
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
