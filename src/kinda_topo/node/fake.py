from kinda_topo.node.Node import BaseNode, Impl, validate_impl
from kinda_topo.topology.Topology import Config, Service


class FakeNode(BaseNode):
    '''gNMI fake server, stands in for a real device in tests and demos.'''

    DEFAULT_IMAGE = "wenovus/fakeserver0"
    GNMI_PORT = 6030
    NODE_PORT_BASE = 30001
    NODE_PORT_COUNTER = 0

    @classmethod
    def next_node_port(cls) -> int:
        port = cls.NODE_PORT_BASE + cls.NODE_PORT_COUNTER
        cls.NODE_PORT_COUNTER += 1
        return port


def new(impl: Impl) -> FakeNode:
    validate_impl(impl)
    spec = impl.spec
    if spec.config is None:
        spec.config = Config()

    cfg = spec.config
    if not cfg.image:
        cfg.image = FakeNode.DEFAULT_IMAGE
    if not cfg.args:
        cfg.args = ['-target', spec.name, '-port', str(FakeNode.GNMI_PORT)]
    if not cfg.entry_command:
        cfg.entry_command = f'kubectl exec -it {spec.name} -- /bin/bash'
    if FakeNode.GNMI_PORT not in spec.services:
        spec.services[FakeNode.GNMI_PORT] = Service(
            name='gnmi', inside=FakeNode.GNMI_PORT, node_port=FakeNode.next_node_port())

    return FakeNode(impl)
