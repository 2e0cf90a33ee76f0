from dataclasses import dataclass, field

from kinda_topo.core.ClusterClient import K8sObject
from kinda_topo.core.errors import NoExternalAddress, ReconciliationError
from kinda_topo.topology.Topology import Service


@dataclass
class Resources:
    services: dict[str, K8sObject] = field(default_factory=dict)
    pods: dict[str, K8sObject] = field(default_factory=dict)
    config_maps: dict[str, K8sObject] = field(default_factory=dict)
    topologies: dict[str, K8sObject] = field(default_factory=dict)


def object_name(obj: K8sObject) -> str:
    return obj.get('metadata', {}).get('name', '')


def service_to_proto(service: K8sObject, services: dict[int, Service]):
    '''
    Folds the ports of a live service object into `services`, keyed by inside port.

    Existing entries keep their name and get their addresses and ports refreshed, so applying
    the same service twice leaves `services` unchanged.
    '''
    if service is None or services is None:
        raise ReconciliationError('service and map must not be nil')

    name = object_name(service)
    ingress = service.get('status', {}).get('loadBalancer', {}).get('ingress') or []
    if not ingress:
        raise NoExternalAddress(name)

    spec = service.get('spec', {})
    for port in spec.get('ports') or []:
        inside = int(port['port'])
        entry = services.get(inside)
        if entry is None:
            entry = Service(name=port.get('name', ''), inside=inside)
            services[inside] = entry
        if not entry.name:
            entry.name = port.get('name', '')
        entry.outside = _target_port(port)
        entry.node_port = int(port.get('nodePort', 0))
        entry.inside_ip = spec.get('clusterIP', '')
        entry.outside_ip = ingress[0].get('ip', '')


def _target_port(port: K8sObject) -> int:
    # named target ports carry no number
    target = port.get('targetPort', 0)
    if isinstance(target, int):
        return target
    return int(target) if str(target).isdigit() else 0
