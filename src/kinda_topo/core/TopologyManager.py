import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Any

from kinda_topo.constants import (KUBECONFIG_PATH,
                                  NAMESPACE_DELETE_PROPAGATION,
                                  POLL_INTERVAL_SECONDS, TOPOLOGY_CRD_GROUP,
                                  TOPOLOGY_CRD_KIND, TOPOLOGY_CRD_VERSION)
from kinda_topo.core.ClusterClient import ClusterClient, K8sObject
from kinda_topo.core.errors import (Cancelled, CertGenerationError,
                                    ClusterError, DuplicateNode,
                                    InterfaceAlreadyConnected, NodeFailedError,
                                    NodeNotFound, OrchestrationError,
                                    ReconciliationError, TopologyError,
                                    Unimplemented, UnknownNode,
                                    ValidationError)
from kinda_topo.core.services import Resources, object_name
from kinda_topo.node.Node import NodeHandle, PodPhase
from kinda_topo.node.registry import VendorRegistry, default_registry
from kinda_topo.topology.Topology import Interface, Link, Node, Topology
from kinda_topo.util.context import Context
from kinda_topo.util.kubectlutils import KubectlClient
from kinda_topo.util.logger import logger


class TopologyManager:
    '''
    Owns one topology for the whole session: wires its graph, pushes it to the cluster,
    waits for the nodes and reads the live objects back.

    The topology name is the namespace of every object created for it.
    '''
    _POLL_INTERVAL_SECONDS = POLL_INTERVAL_SECONDS

    def __init__(self, topology: Topology, client: ClusterClient = None, registry: VendorRegistry = None,
                 kubecfg: str = KUBECONFIG_PATH, base_path: str = "") -> None:
        if topology is None:
            raise ValidationError('topology cannot be nil')
        if not topology.name:
            raise ValidationError('topology name cannot be empty')

        logger.info(f'Creating manager for: {topology.name}')
        self.topology = topology
        self.kubecfg = kubecfg
        self.base_path = base_path
        self.client = client if client is not None else KubectlClient(kubecfg)
        self.registry = registry if registry is not None else default_registry()
        self._nodes: dict[str, NodeHandle] = {}

    @property
    def namespace(self) -> str:
        return self.topology.name

    def load(self):
        node_map = self._index_nodes()

        uid = 0
        for link in self.topology.links:
            logger.info(f'Adding Link: {link}')
            self._connect(node_map, link, uid)
            uid += 1

        nodes: dict[str, NodeHandle] = {}
        for name, node in node_map.items():
            logger.info(f'Adding Node: {node.name}:{node.vendor.name}:{node.model}')
            nodes[name] = self.registry.new(
                self.namespace, node, self.client, self.base_path, self.kubecfg)
        self._nodes = nodes

    def node(self, name: str) -> NodeHandle:
        try:
            return self._nodes[name]
        except KeyError:
            raise NodeNotFound(name) from None

    def nodes(self) -> list[NodeHandle]:
        return [self._nodes[name] for name in sorted(self._nodes)]

    def push(self, ctx: Context):
        self._ensure_namespace(ctx)

        logger.info(f'Pushing Meshnet Node Topology to k8s: "{self.namespace}"')
        for node in self.nodes():
            try:
                self.client.create_topology(
                    ctx, self.namespace, topology_resource(node.spec))
            except ClusterError as e:
                raise OrchestrationError(
                    f'failed to create topology resource for node "{node.name}": {e}') from e
            logger.info(f'Meshnet Node "{node.name}" created')

        logger.info('Creating Node Pods')
        for node in self.nodes():
            try:
                node.create(ctx)
            except ClusterError as e:
                raise OrchestrationError(
                    f'failed to create node "{node.name}": {e}') from e
            logger.info(f'Node "{node.name}" resource created')

        for node in self.nodes():
            try:
                generate_self_signed(ctx, node)
            except Unimplemented:
                pass
            except Cancelled:
                raise
            except Exception as e:
                raise CertGenerationError(node.name, e) from e

    def check_node_status(self, ctx: Context, timeout: float = 0) -> set[str]:
        '''
        Waits until every node is Running or `timeout` seconds passed (0 waits forever).

        Returns the names of the nodes seen Running. Running out of time is not an error,
        a Failed node or a status read error is.
        '''
        processed: set[str] = set()
        start = time.monotonic()

        while True:
            for name, node in self._nodes.items():
                if name in processed:
                    continue
                try:
                    phase = PodPhase.parse(node.status(ctx))
                except Cancelled:
                    raise
                except Exception as e:
                    raise NodeFailedError(name, PodPhase.UNKNOWN.value, e) from e
                if phase == PodPhase.FAILED:
                    raise NodeFailedError(name, PodPhase.FAILED.value)
                if phase == PodPhase.RUNNING:
                    logger.info(f'Node "{name}": Pod Status {phase.value}')
                    processed.add(name)

            if len(processed) == len(self._nodes):
                return processed

            interval = self._POLL_INTERVAL_SECONDS
            if timeout:
                left = timeout - (time.monotonic() - start)
                if left <= 0:
                    break
                interval = min(interval, left)
            if ctx.wait(interval):
                ctx.check()

        pending = sorted(set(self._nodes) - processed)
        logger.warning(
            f'Failed to determine status of some node resources in {timeout} sec: {", ".join(pending)}')
        return processed

    def delete(self, ctx: Context) -> list[str]:
        '''
        Removes every node and the namespace, per node failures are only collected as warnings.

        Failing to delete the namespace is raised since the topology is still around then.
        '''
        try:
            self.client.get_namespace(ctx, self.namespace)
        except ClusterError as e:
            raise OrchestrationError(
                f'topology "{self.namespace}" does not exist in cluster') from e

        warnings = []
        for node in self.nodes():
            try:
                node.delete(ctx)
            except Cancelled:
                raise
            except TopologyError as e:
                warnings.append(f'Error deleting node "{node.name}": {e}')
                logger.warning(warnings[-1])
            try:
                self.client.delete_topology(ctx, self.namespace, node.name)
            except ClusterError as e:
                warnings.append(f'Error deleting topology "{node.name}": {e}')
                logger.warning(warnings[-1])

        try:
            self.client.delete_namespace(
                ctx, self.namespace, NAMESPACE_DELETE_PROPAGATION)
        except ClusterError as e:
            raise OrchestrationError(
                f'failed to delete namespace "{self.namespace}": {e}') from e
        return warnings

    def topology_resources(self, ctx: Context) -> list[K8sObject]:
        try:
            return self.client.list_topologies(ctx, self.namespace)
        except ClusterError as e:
            raise ReconciliationError(f'failed to get topology CRDs: {e}') from e

    def resources(self, ctx: Context) -> Resources:
        executor = ThreadPoolExecutor(max_workers=3)
        try:
            pods_task = executor.submit(self._pods, ctx)
            topologies_task = executor.submit(self.topology_resources, ctx)
            services_task = executor.submit(
                self.client.list_services, ctx, self.namespace)
            self._await_tasks(ctx, [pods_task, topologies_task, services_task])
        finally:
            # reads left behind on cancellation end on their own ctx check
            executor.shutdown(wait=False, cancel_futures=True)

        res = Resources()
        res.pods = pods_task.result()
        for topology in topologies_task.result():
            res.topologies[object_name(topology)] = topology
        for service in services_task.result():
            res.services[object_name(service)] = service
        return res

    def config_push(self, ctx: Context, name: str, config: bytes) -> bool:
        pusher = self.node(name).config_pusher()
        if pusher is None:
            logger.warning(f'Node "{name}" does not support config push, skipping')
            return False
        pusher.config_push(ctx, config)
        return True

    def _index_nodes(self) -> dict[str, Node]:
        node_map: dict[str, Node] = {}
        for node in self.topology.nodes:
            if node.name in node_map:
                raise DuplicateNode(node.name)
            if node.interfaces is None:
                node.interfaces = {}
            for key, intf in node.interfaces.items():
                if not intf.name:
                    intf.name = key
            node_map[node.name] = node
        return node_map

    def _connect(self, node_map: dict[str, Node], link: Link, uid: int):
        a_node = node_map.get(link.a_node)
        if a_node is None:
            raise UnknownNode(link.a_node)
        z_node = node_map.get(link.z_node)
        if z_node is None:
            raise UnknownNode(link.z_node)
        if (link.a_node, link.a_int) == (link.z_node, link.z_int):
            raise ValidationError(f'link {link} connects an interface to itself')

        a_int = a_node.interfaces.get(link.a_int)
        z_int = z_node.interfaces.get(link.z_int)
        if a_int is not None and a_int.connected:
            raise InterfaceAlreadyConnected(link.a_node, link.a_int)
        if z_int is not None and z_int.connected:
            raise InterfaceAlreadyConnected(link.z_node, link.z_int)

        if a_int is None:
            a_int = a_node.interfaces[link.a_int] = Interface(name=link.a_int)
        if z_int is None:
            z_int = z_node.interfaces[link.z_int] = Interface(name=link.z_int)

        a_int.peer_name, a_int.peer_int_name, a_int.uid = link.z_node, link.z_int, uid
        z_int.peer_name, z_int.peer_int_name, z_int.uid = link.a_node, link.a_int, uid

    def _ensure_namespace(self, ctx: Context):
        try:
            self.client.get_namespace(ctx, self.namespace)
            return
        except ClusterError:
            pass

        logger.info(f'Creating namespace for topology: "{self.namespace}"')
        try:
            self.client.create_namespace(ctx, self.namespace)
        except ClusterError as e:
            raise OrchestrationError(
                f'failed to create namespace "{self.namespace}": {e}') from e

    def _pods(self, ctx: Context) -> dict[str, K8sObject]:
        pods = {}
        for node in self.nodes():
            try:
                pod = node.pod(ctx)
            except ClusterError as e:
                raise ReconciliationError(
                    f'failed to get pod of node "{node.name}": {e}') from e
            pods[object_name(pod)] = pod
        return pods

    def _await_tasks(self, ctx: Context, tasks: list[Future[Any]]):
        not_done = tasks
        while not_done:
            ctx.check()
            _, not_done = wait(not_done, timeout=self._POLL_INTERVAL_SECONDS)

        if failed_tasks := [task for task in tasks if task.exception() is not None]:
            err = failed_tasks[0].exception()
            if isinstance(err, ClusterError):
                raise ReconciliationError(f'failed to read resources: {err}') from err
            raise err


def topology_resource(node: Node) -> K8sObject:
    '''meshnet Topology object describing the wired links of `node`.'''
    links = []
    for key, intf in sorted((node.interfaces or {}).items()):
        if not intf.connected:
            continue
        links.append({
            'local_intf': key,
            'local_ip': '',
            'peer_intf': intf.peer_int_name,
            'peer_ip': '',
            'peer_pod': intf.peer_name,
            'uid': intf.uid,
        })
    return {
        'apiVersion': f'{TOPOLOGY_CRD_GROUP}/{TOPOLOGY_CRD_VERSION}',
        'kind': TOPOLOGY_CRD_KIND,
        'metadata': {'name': node.name},
        'spec': {'links': links},
    }


def generate_self_signed(ctx: Context, node: NodeHandle):
    '''
    Issues self signed certs on `node` when its config requests them.

    Raises Unimplemented when the node can't issue certs.
    '''
    config = node.spec.config
    if config is None or config.cert is None:
        logger.debug(f'No cert info for {node.name}')
        return
    certer = node.certer()
    if certer is None:
        raise Unimplemented(f'node {node.name} does not implement Certer interface')
    certer.generate_self_signed(ctx)

