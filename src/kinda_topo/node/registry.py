from typing import Callable

from kinda_topo.core.ClusterClient import ClusterClient
from kinda_topo.core.errors import UnknownVendor
from kinda_topo.node.Node import Impl, NodeHandle
from kinda_topo.topology.Topology import Node, Vendor

Constructor = Callable[[Impl], NodeHandle]


class VendorRegistry:
    def __init__(self) -> None:
        self._constructors: dict[Vendor, Constructor] = {}

    def register(self, vendor: Vendor, constructor: Constructor):
        if vendor in self._constructors:
            raise ValueError(f'vendor {vendor.name} is already registered')
        self._constructors[vendor] = constructor

    def registered(self, vendor: Vendor) -> bool:
        return vendor in self._constructors

    @property
    def vendors(self) -> list[Vendor]:
        return list(self._constructors)

    def new(self, namespace: str, spec: Node, client: ClusterClient,
            base_path: str = "", kubecfg: str = "") -> NodeHandle:
        constructor = self._constructors.get(spec.vendor)
        if constructor is None:
            raise UnknownVendor(spec.vendor.name)
        return constructor(Impl(namespace, spec, client, base_path, kubecfg))


def register_builtin_vendors(registry: VendorRegistry) -> VendorRegistry:
    from kinda_topo.node import fake, host

    registry.register(Vendor.FAKE, fake.new)
    registry.register(Vendor.HOST, host.new)
    return registry


def default_registry() -> VendorRegistry:
    return register_builtin_vendors(VendorRegistry())
