import copy
import time

import pytest

from kinda_topo.core.ClusterClient import ClusterClient, K8sObject
from kinda_topo.core.errors import ClusterError
from kinda_topo.node.fake import FakeNode
from kinda_topo.node.Node import BaseNode, Certer, ConfigPusher, PodPhase
from kinda_topo.node.registry import VendorRegistry, register_builtin_vendors
from kinda_topo.topology.Topology import Link, Node, Topology, Vendor
from kinda_topo.util.context import Context


class InMemoryClusterClient(ClusterClient):
    def __init__(self) -> None:
        self.namespaces: dict[str, K8sObject] = {}
        self.topologies: dict[tuple[str, str], K8sObject] = {}
        self.pods: dict[tuple[str, str], K8sObject] = {}
        self.services: dict[tuple[str, str], K8sObject] = {}
        self.phases: dict[str, str] = {}
        self.failures: dict[str, set[str] | None] = {}
        self.calls: list[tuple[str, str]] = []

    def fail_on(self, method: str, name: str = None):
        '''Makes `method` raise for `name`, or for every name when None.'''
        if name is None:
            self.failures[method] = None
        else:
            self.failures.setdefault(method, set()).add(name)

    def _call(self, method: str, name: str):
        self.calls.append((method, name))
        if method in self.failures:
            names = self.failures[method]
            if names is None or name in names:
                raise ClusterError(f'{method} {name} failed')

    def get_namespace(self, ctx, name):
        self._call('get_namespace', name)
        if name not in self.namespaces:
            raise ClusterError(f'namespaces "{name}" not found', not_found=True)
        return self.namespaces[name]

    def create_namespace(self, ctx, name):
        self._call('create_namespace', name)
        self.namespaces[name] = {'metadata': {'name': name}}
        return self.namespaces[name]

    def delete_namespace(self, ctx, name, propagation):
        self._call('delete_namespace', name)
        self.namespaces.pop(name)

    def create_topology(self, ctx, namespace, topology):
        name = topology['metadata']['name']
        self._call('create_topology', name)
        self.topologies[(namespace, name)] = copy.deepcopy(topology)
        return topology

    def list_topologies(self, ctx, namespace):
        self._call('list_topologies', namespace)
        return [t for (ns, _), t in self.topologies.items() if ns == namespace]

    def delete_topology(self, ctx, namespace, name):
        self._call('delete_topology', name)
        self._pop(self.topologies, namespace, name)

    def create_pod(self, ctx, namespace, pod):
        name = pod['metadata']['name']
        self._call('create_pod', name)
        self.pods[(namespace, name)] = copy.deepcopy(pod)
        return pod

    def get_pod(self, ctx, namespace, name):
        self._call('get_pod', name)
        pod = self._get(self.pods, namespace, name)
        pod['status'] = {'phase': self.phases.get(name, 'Pending')}
        return pod

    def delete_pod(self, ctx, namespace, name):
        self._call('delete_pod', name)
        self._pop(self.pods, namespace, name)

    def create_service(self, ctx, namespace, service):
        name = service['metadata']['name']
        self._call('create_service', name)
        self.services[(namespace, name)] = copy.deepcopy(service)
        return service

    def delete_service(self, ctx, namespace, name):
        self._call('delete_service', name)
        self._pop(self.services, namespace, name)

    def list_services(self, ctx, namespace):
        self._call('list_services', namespace)
        return [s for (ns, _), s in self.services.items() if ns == namespace]

    def _get(self, objects, namespace, name):
        if (namespace, name) not in objects:
            raise ClusterError(f'"{name}" not found', not_found=True)
        return objects[(namespace, name)]

    def _pop(self, objects, namespace, name):
        self._get(objects, namespace, name)
        del objects[(namespace, name)]


class ScriptedNode(BaseNode):
    '''Reports the phases it was given, one per status call, repeating the last one.'''

    def __init__(self, impl, phases=None) -> None:
        super().__init__(impl)
        self.phases = list(phases or [PodPhase.RUNNING])
        self.status_calls = 0

    def status(self, ctx):
        self.status_calls += 1
        phase = self.phases[min(self.status_calls, len(self.phases)) - 1]
        if isinstance(phase, Exception):
            raise phase
        return phase


class TimedNode(BaseNode):
    '''Turns Running `ready_after` seconds after construction.'''

    def __init__(self, impl, ready_after: float) -> None:
        super().__init__(impl)
        self.ready_at = time.monotonic() + ready_after

    def status(self, ctx):
        return PodPhase.RUNNING if time.monotonic() >= self.ready_at else PodPhase.PENDING


class CapableNode(BaseNode, Certer, ConfigPusher):
    def __init__(self, impl, cert_error: Exception = None) -> None:
        super().__init__(impl)
        self.cert_error = cert_error
        self.certs_generated = 0
        self.pushed: list[bytes] = []

    def certer(self):
        return self

    def config_pusher(self):
        return self

    def generate_self_signed(self, ctx):
        if self.cert_error is not None:
            raise self.cert_error
        self.certs_generated += 1

    def config_push(self, ctx, config):
        self.pushed.append(config)


@pytest.fixture
def client() -> InMemoryClusterClient:
    return InMemoryClusterClient()


@pytest.fixture
def ctx() -> Context:
    return Context.background()


@pytest.fixture
def registry() -> VendorRegistry:
    registry = register_builtin_vendors(VendorRegistry())
    registry.register(Vendor.ARISTA, CapableNode)
    registry.register(Vendor.CISCO, BaseNode)
    return registry


@pytest.fixture(autouse=True)
def reset_fake_node_ports():
    FakeNode.NODE_PORT_COUNTER = 0
    yield
    FakeNode.NODE_PORT_COUNTER = 0


def make_topology(name='test', nodes=('a', 'b'), links=(('a', 'eth1', 'b', 'eth1'),), vendor=Vendor.FAKE) -> Topology:
    return Topology(
        name=name,
        nodes=[Node(name=n, vendor=vendor) for n in nodes],
        links=[Link(*l) for l in links],
    )


def ready_service(name: str, ports: list[dict], ingress_ip: str = '192.168.18.100',
                  cluster_ip: str = '10.96.0.10') -> K8sObject:
    return {
        'metadata': {'name': name},
        'spec': {'clusterIP': cluster_ip, 'ports': ports},
        'status': {'loadBalancer': {'ingress': [{'ip': ingress_ip}] if ingress_ip else []}},
    }
