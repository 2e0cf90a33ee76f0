from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class Vendor(Enum):
    UNKNOWN = "unknown"
    ARISTA = "arista"
    CISCO = "cisco"
    JUNIPER = "juniper"
    NOKIA = "nokia"
    KEYSIGHT = "keysight"
    GOBGP = "gobgp"
    HOST = "host"
    FAKE = "fake"

    @classmethod
    def parse(cls, value: "str | Vendor") -> "Vendor":
        if isinstance(value, Vendor):
            return value
        try:
            return cls[str(value).upper()]
        except KeyError:
            raise ValueError(f'unknown vendor: {value}') from None


@dataclass
class Cert:
    '''Self signed certificate request for a node.'''
    cert_name: str = "grpc-server-cert"
    key_name: str = "N/A"
    key_size: int = 2048
    common_name: str = ""


@dataclass
class Config:
    image: str = ""
    command: list[str] = field(default_factory=list)
    args: list[str] = field(default_factory=list)
    entry_command: str = ""
    env: dict[str, str] = field(default_factory=dict)
    config_path: str = ""
    config_file: str = ""
    cert: Optional[Cert] = None


@dataclass
class Interface:
    name: str = ""
    peer_name: str = ""
    peer_int_name: str = ""
    uid: int = 0

    @property
    def connected(self) -> bool:
        return self.peer_name != ""


@dataclass
class Service:
    name: str = ""
    inside: int = 0
    outside: int = 0
    node_port: int = 0
    inside_ip: str = ""
    outside_ip: str = ""


@dataclass
class Node:
    name: str
    vendor: Vendor = Vendor.UNKNOWN
    model: str = ""
    os: str = ""
    config: Optional[Config] = None
    interfaces: Optional[dict[str, Interface]] = None
    services: dict[int, Service] = field(default_factory=dict)
    labels: dict[str, str] = field(default_factory=dict)


@dataclass
class Link:
    a_node: str
    a_int: str
    z_node: str
    z_int: str

    def __str__(self) -> str:
        return f'{self.a_node}:{self.a_int} {self.z_node}:{self.z_int}'


@dataclass
class Topology:
    name: str
    nodes: list[Node] = field(default_factory=list)
    links: list[Link] = field(default_factory=list)

    def get_node(self, name: str) -> Optional[Node]:
        return next((node for node in self.nodes if node.name == name), None)
