from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from kinda_topo.constants import MESHNET_INIT_IMAGE, SERVICE_NAME_PREFIX
from kinda_topo.core.ClusterClient import ClusterClient, K8sObject
from kinda_topo.core.errors import ClusterError, ConstructionError
from kinda_topo.topology.Topology import Config, Node
from kinda_topo.util.context import Context
from kinda_topo.util.logger import logger


class PodPhase(str, Enum):
    PENDING = "Pending"
    RUNNING = "Running"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    UNKNOWN = "Unknown"

    @classmethod
    def parse(cls, value: str | None) -> "PodPhase":
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN


class Certer(ABC):
    @abstractmethod
    def generate_self_signed(self, ctx: Context):
        pass


class ConfigPusher(ABC):
    @abstractmethod
    def config_push(self, ctx: Context, config: bytes):
        pass


class NodeHandle(ABC):
    '''
    Live counterpart of a topology node.

    Optional behavior is discovered through the capability queries: `certer()` and
    `config_pusher()` return None unless an implementation overrides them.
    '''

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @property
    @abstractmethod
    def spec(self) -> Node:
        pass

    @spec.setter
    @abstractmethod
    def spec(self, spec: Node):
        pass

    @abstractmethod
    def create(self, ctx: Context):
        pass

    @abstractmethod
    def delete(self, ctx: Context):
        pass

    @abstractmethod
    def status(self, ctx: Context) -> PodPhase:
        pass

    @abstractmethod
    def pod(self, ctx: Context) -> K8sObject:
        pass

    def certer(self) -> Optional[Certer]:
        return None

    def config_pusher(self) -> Optional[ConfigPusher]:
        return None


@dataclass
class Impl:
    namespace: str
    spec: Node
    client: ClusterClient
    base_path: str = ""
    kubecfg: str = ""


def validate_impl(impl: Optional[Impl]):
    if impl is None:
        raise ConstructionError('nodeImpl cannot be nil')
    if impl.spec is None:
        raise ConstructionError('nodeImpl.spec cannot be nil')


class BaseNode(NodeHandle):
    '''Runs a node as a single pod, fronted by a LoadBalancer service when it exposes any ports.'''

    def __init__(self, impl: Impl) -> None:
        validate_impl(impl)
        self.impl = impl
        if impl.spec.config is None:
            impl.spec.config = Config()
        if impl.spec.interfaces is None:
            impl.spec.interfaces = {}

    @property
    def name(self) -> str:
        return self.impl.spec.name

    @property
    def namespace(self) -> str:
        return self.impl.namespace

    @property
    def spec(self) -> Node:
        return self.impl.spec

    @spec.setter
    def spec(self, spec: Node):
        self.impl.spec = spec

    @property
    def service_name(self) -> str:
        return f'{SERVICE_NAME_PREFIX}{self.name}'

    def create(self, ctx: Context):
        self.impl.client.create_pod(ctx, self.namespace, self.pod_manifest())
        logger.info(f'Pod for node "{self.name}" created')
        if self.spec.services:
            self.impl.client.create_service(
                ctx, self.namespace, self.service_manifest())
            logger.info(f'Service "{self.service_name}" created')

    def delete(self, ctx: Context):
        service_err = None
        if self.spec.services:
            try:
                self.impl.client.delete_service(
                    ctx, self.namespace, self.service_name)
            except ClusterError as e:
                if not e.not_found:
                    logger.warning(f'Failed to delete service "{self.service_name}": {e}')
                    service_err = e
        self.impl.client.delete_pod(ctx, self.namespace, self.name)
        if service_err is not None:
            raise service_err

    def status(self, ctx: Context) -> PodPhase:
        pod = self.pod(ctx)
        return PodPhase.parse(pod.get('status', {}).get('phase'))

    def pod(self, ctx: Context) -> K8sObject:
        return self.impl.client.get_pod(ctx, self.namespace, self.name)

    def pod_manifest(self) -> K8sObject:
        cfg = self.spec.config
        container = {
            'name': self.name,
            'image': cfg.image,
            'imagePullPolicy': 'IfNotPresent',
            'securityContext': {'privileged': True},
        }
        if cfg.command:
            container['command'] = list(cfg.command)
        if cfg.args:
            container['args'] = list(cfg.args)
        if cfg.env:
            container['env'] = [{'name': k, 'value': v}
                                for k, v in sorted(cfg.env.items())]

        return {
            'apiVersion': 'v1',
            'kind': 'Pod',
            'metadata': {
                'name': self.name,
                'labels': {'app': self.name, 'topo': self.namespace, **self.spec.labels},
            },
            'spec': {
                # meshnet plugs the links in, the node waits for all of them plus eth0
                'initContainers': [{
                    'name': f'init-{self.name}',
                    'image': MESHNET_INIT_IMAGE,
                    'args': [str(len(self.spec.interfaces) + 1), '0'],
                }],
                'containers': [container],
                'terminationGracePeriodSeconds': 0,
            },
        }

    def service_manifest(self) -> K8sObject:
        ports = []
        for inside, service in sorted(self.spec.services.items()):
            port = {
                'name': service.name,
                'protocol': 'TCP',
                'port': inside,
                'targetPort': inside,
            }
            if service.node_port:
                port['nodePort'] = service.node_port
            ports.append(port)

        return {
            'apiVersion': 'v1',
            'kind': 'Service',
            'metadata': {
                'name': self.service_name,
                'labels': {'pod': self.name},
            },
            'spec': {
                'type': 'LoadBalancer',
                'selector': {'app': self.name},
                'ports': ports,
            },
        }
