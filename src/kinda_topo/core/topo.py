import os
from dataclasses import dataclass, field
from typing import Any, Callable

from kinda_topo.constants import (IXIA_TG_MODEL, KEYSIGHT_GLOBAL_SERVICES,
                                  KUBECONFIG_PATH, SERVICE_NAME_PREFIX)
from kinda_topo.core.errors import (Cancelled, ReconciliationError,
                                    TopologyError, ValidationError)
from kinda_topo.core.services import service_to_proto
from kinda_topo.core.state import NodeStateMap, TopologyState
from kinda_topo.core.TopologyManager import TopologyManager
from kinda_topo.node.Node import PodPhase
from kinda_topo.topology.kathara import topology_from_lab_path
from kinda_topo.topology.loader import load_topology, topology_to_dict
from kinda_topo.topology.Topology import Topology, Vendor
from kinda_topo.util.context import Context
from kinda_topo.util.logger import logger

ManagerFactory = Callable[..., TopologyManager]


@dataclass
class TopologyParams:
    topo_file: str = ""
    kubecfg: str = KUBECONFIG_PATH
    # extra keyword arguments for the manager factory, e.g. client or registry
    manager_options: dict[str, Any] = field(default_factory=dict)
    timeout: float = 0
    dry_run: bool = False


@dataclass
class ShowTopologyResponse:
    state: TopologyState
    topology: Topology

    def to_dict(self) -> dict[str, Any]:
        return {
            'state': self.state.name,
            'topology': topology_to_dict(self.topology),
        }


def create_topology(ctx: Context, params: TopologyParams,
                    manager_factory: ManagerFactory = TopologyManager) -> TopologyManager:
    manager = _load_manager(params, manager_factory)
    if params.dry_run:
        return manager

    manager.push(ctx)
    manager.check_node_status(ctx, params.timeout)
    logger.info(f'Topology "{manager.namespace}" created')

    resources = manager.resources(ctx)
    logger.info('Pods:')
    for name in resources.pods:
        logger.info(name)
    return manager


def delete_topology(ctx: Context, params: TopologyParams,
                    manager_factory: ManagerFactory = TopologyManager) -> list[str]:
    manager = _load_manager(params, manager_factory)
    warnings = manager.delete(ctx)
    logger.info(f'Successfully deleted topology: "{manager.namespace}"')
    return warnings


def get_topology_services(ctx: Context, params: TopologyParams,
                          manager_factory: ManagerFactory = TopologyManager) -> ShowTopologyResponse:
    manager = _load_manager(params, manager_factory)
    resources = manager.resources(ctx)

    for node in manager.topology.nodes:
        if node.vendor == Vendor.KEYSIGHT or node.model.upper() == IXIA_TG_MODEL:
            for name in KEYSIGHT_GLOBAL_SERVICES:
                if name in resources.services:
                    service_to_proto(resources.services[name], node.services)

        name = f'{SERVICE_NAME_PREFIX}{node.name}'
        if name not in resources.services:
            raise ReconciliationError(f'service {name} not found')
        service_to_proto(resources.services[name], node.services)

    states = NodeStateMap()
    for node in manager.nodes():
        try:
            phase = node.status(ctx)
        except Cancelled:
            raise
        except TopologyError as e:
            logger.debug(f'Status of node "{node.name}" unavailable: {e}')
            phase = PodPhase.UNKNOWN
        states.set_node_state(node.name, phase)

    return ShowTopologyResponse(state=states.topo_state(), topology=manager.topology)


def _load_manager(params: TopologyParams, manager_factory: ManagerFactory) -> TopologyManager:
    topology = None
    if params.topo_file:
        try:
            if os.path.isdir(params.topo_file):
                topology = topology_from_lab_path(params.topo_file)
            else:
                topology = load_topology(params.topo_file)
        except OSError as e:
            raise ValidationError(f'failed to load {params.topo_file}: {e}') from e

    manager = manager_factory(topology, kubecfg=params.kubecfg, **params.manager_options)
    manager.load()
    return manager
