from kinda_topo.node.Node import BaseNode, Impl, validate_impl
from kinda_topo.topology.Topology import Config, Service

DEFAULT_IMAGE = "alpine:latest"
DEFAULT_COMMAND = ['/bin/sh', '-c', 'sleep 2000000000000']
SSH_PORT = 22


def new(impl: Impl) -> BaseNode:
    validate_impl(impl)
    spec = impl.spec
    if spec.config is None:
        spec.config = Config()

    cfg = spec.config
    if not cfg.image:
        cfg.image = DEFAULT_IMAGE
    if not cfg.command:
        cfg.command = list(DEFAULT_COMMAND)
    if not cfg.entry_command:
        cfg.entry_command = f'kubectl exec -it {spec.name} -- sh'
    if SSH_PORT not in spec.services:
        spec.services[SSH_PORT] = Service(name='ssh', inside=SSH_PORT)

    return BaseNode(impl)
