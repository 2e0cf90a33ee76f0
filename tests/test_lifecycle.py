import pytest

from conftest import make_topology
from kinda_topo.core.errors import (CertGenerationError, ClusterError,
                                    NodeNotFound, OrchestrationError,
                                    Unimplemented)
from kinda_topo.core.TopologyManager import (TopologyManager,
                                             generate_self_signed,
                                             topology_resource)
from kinda_topo.topology.Topology import Cert, Config, Node, Topology, Vendor


def _manager(topology, client, registry) -> TopologyManager:
    manager = TopologyManager(topology, client=client, registry=registry)
    manager.load()
    return manager


def _cert_topology(*nodes: tuple[str, Vendor, bool]) -> Topology:
    return Topology(name='certs', nodes=[
        Node(name=name, vendor=vendor, config=Config(image='img', cert=Cert() if with_cert else None))
        for name, vendor, with_cert in nodes
    ])


def test_push_creates_namespace_resources_and_pods(client, registry, ctx):
    manager = _manager(make_topology(), client, registry)

    manager.push(ctx)

    assert 'test' in client.namespaces
    assert set(client.pods) == {('test', 'a'), ('test', 'b')}
    assert set(client.services) == {('test', 'service-a'), ('test', 'service-b')}
    crd = client.topologies[('test', 'a')]
    assert crd['apiVersion'] == 'networkop.co.uk/v1beta1'
    assert crd['kind'] == 'Topology'
    assert crd['spec']['links'] == [{
        'local_intf': 'eth1', 'local_ip': '', 'peer_intf': 'eth1',
        'peer_ip': '', 'peer_pod': 'b', 'uid': 0,
    }]
    # custom resources go in before any pod
    methods = [method for method, _ in client.calls]
    assert methods.index('create_pod') > max(i for i, m in enumerate(methods) if m == 'create_topology')


def test_push_reuses_existing_namespace(client, registry, ctx):
    client.namespaces['test'] = {'metadata': {'name': 'test'}}
    manager = _manager(make_topology(), client, registry)

    manager.push(ctx)

    assert ('create_namespace', 'test') not in client.calls


def test_push_fails_fast_on_namespace(client, registry, ctx):
    client.fail_on('create_namespace')
    manager = _manager(make_topology(), client, registry)

    with pytest.raises(OrchestrationError) as err:
        manager.push(ctx)

    assert isinstance(err.value.__cause__, ClusterError)
    assert client.topologies == {}
    assert client.pods == {}


def test_push_fails_fast_on_topology_resource(client, registry, ctx):
    client.fail_on('create_topology', 'a')
    manager = _manager(make_topology(), client, registry)

    with pytest.raises(OrchestrationError, match='"a"'):
        manager.push(ctx)
    assert client.pods == {}


def test_push_fails_fast_on_pod(client, registry, ctx):
    client.fail_on('create_pod', 'a')
    manager = _manager(make_topology(), client, registry)

    with pytest.raises(OrchestrationError):
        manager.push(ctx)
    assert ('test', 'b') not in client.pods


def test_topology_resource_skips_unwired_interfaces():
    topology = make_topology()
    node = topology.nodes[0]
    node.interfaces = {}
    assert topology_resource(node)['spec']['links'] == []


def test_cert_generated_where_requested_and_supported(client, registry, ctx):
    topology = _cert_topology(
        ('capable', Vendor.ARISTA, True),
        ('capable-no-cert', Vendor.ARISTA, False),
        ('plain', Vendor.CISCO, True),
    )
    manager = _manager(topology, client, registry)

    manager.push(ctx)

    assert manager.node('capable').certs_generated == 1
    assert manager.node('capable-no-cert').certs_generated == 0


def test_cert_failure_names_the_node(client, registry, ctx):
    manager = _manager(_cert_topology(('capable', Vendor.ARISTA, True)), client, registry)
    manager.node('capable').cert_error = RuntimeError('no entropy')

    with pytest.raises(CertGenerationError) as err:
        manager.push(ctx)

    assert err.value.node == 'capable'
    assert 'no entropy' in str(err.value)


def test_generate_self_signed_signals_missing_capability(client, registry, ctx):
    manager = _manager(_cert_topology(('plain', Vendor.CISCO, True)), client, registry)

    with pytest.raises(Unimplemented):
        generate_self_signed(ctx, manager.node('plain'))


def test_delete_removes_everything(client, registry, ctx):
    manager = _manager(make_topology(), client, registry)
    manager.push(ctx)

    warnings = manager.delete(ctx)

    assert warnings == []
    assert client.namespaces == {}
    assert client.pods == {}
    assert client.topologies == {}


def test_delete_continues_past_node_errors(client, registry, ctx):
    manager = _manager(make_topology(), client, registry)
    manager.push(ctx)
    client.fail_on('delete_pod', 'a')
    client.fail_on('delete_topology', 'b')

    warnings = manager.delete(ctx)

    assert len(warnings) == 2
    assert 'Error deleting node "a"' in warnings[0]
    assert 'Error deleting topology "b"' in warnings[1]
    assert ('test', 'b') not in client.pods
    assert client.namespaces == {}


def test_delete_fails_when_namespace_survives(client, registry, ctx):
    manager = _manager(make_topology(), client, registry)
    manager.push(ctx)
    client.fail_on('delete_namespace')

    with pytest.raises(OrchestrationError, match='namespace'):
        manager.delete(ctx)
    assert client.pods == {}


def test_delete_unknown_topology(client, registry, ctx):
    manager = _manager(make_topology(), client, registry)
    with pytest.raises(OrchestrationError, match='does not exist'):
        manager.delete(ctx)


def test_config_push(client, registry, ctx):
    topology = Topology(name='cfg', nodes=[
        Node(name='capable', vendor=Vendor.ARISTA),
        Node(name='plain', vendor=Vendor.CISCO),
    ])
    manager = _manager(topology, client, registry)

    assert manager.config_push(ctx, 'capable', b'hostname r1')
    assert manager.node('capable').pushed == [b'hostname r1']
    assert not manager.config_push(ctx, 'plain', b'hostname r2')
    with pytest.raises(NodeNotFound):
        manager.config_push(ctx, 'missing', b'')
