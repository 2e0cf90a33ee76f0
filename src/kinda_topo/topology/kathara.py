from collections import defaultdict

from Kathara.model.Lab import Lab as KatharaLab
from Kathara.parser.netkit.LabParser import LabParser

from kinda_topo.core.errors import ValidationError
from kinda_topo.topology.Topology import Config, Link, Node, Topology, Vendor


def topology_from_lab(lab: KatharaLab, name: str = None, vendor: Vendor = Vendor.HOST) -> Topology:
    '''
    Builds a topology out of a Kathara lab.

    Machines become nodes of `vendor`, collision domains become links. Kathara numbers
    interfaces from eth0, which is the pod's own interface here, so ethN maps to eth(N+1).
    Only collision domains joining exactly two interfaces can be expressed as links.
    '''
    topology_name = name or lab.name
    if not topology_name:
        raise ValidationError('topology name cannot be empty')

    nodes = []
    endpoints: dict[str, list[tuple[str, str]]] = defaultdict(list)
    for machine_name, machine in sorted(lab.machines.items()):
        image = machine.meta.get('image')
        nodes.append(Node(
            name=machine_name,
            vendor=vendor,
            config=Config(image=image) if image else None,
        ))
        for number, iface in machine.interfaces.items():
            # older Kathara releases keep the link itself, newer ones wrap it in an Interface
            link = getattr(iface, 'link', iface)
            endpoints[link.name].append((machine_name, f'eth{number + 1}'))

    links = []
    for domain, ends in sorted(endpoints.items()):
        if len(ends) != 2:
            raise ValidationError(
                f'collision domain {domain} joins {len(ends)} interfaces, only point to point links are supported')
        (a_node, a_int), (z_node, z_int) = ends
        links.append(Link(a_node, a_int, z_node, z_int))

    return Topology(name=topology_name, nodes=nodes, links=links)


def topology_from_lab_path(path: str, name: str = None, vendor: Vendor = Vendor.HOST) -> Topology:
    lab = LabParser().parse(path)
    return topology_from_lab(lab, name, vendor)
