import json
from dataclasses import asdict
from pathlib import Path
from typing import Any

import yaml

from kinda_topo.core.errors import ValidationError
from kinda_topo.topology.Topology import (Cert, Config, Interface, Link, Node,
                                          Topology, Vendor)

_YAML_SUFFIXES = ('.yaml', '.yml')


def load_topology(path: str | Path) -> Topology:
    '''Reads a topology description from a .yaml/.yml or .json file.'''
    path = Path(path)
    text = path.read_text()

    if path.suffix in _YAML_SUFFIXES:
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ValidationError(f'could not parse yaml: {e}') from e
    else:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ValidationError(f'could not parse json: {e}') from e

    return topology_from_dict(data)


def topology_from_dict(data: dict[str, Any]) -> Topology:
    if not isinstance(data, dict):
        raise ValidationError('topology description must be a mapping')
    if not data.get('name'):
        raise ValidationError('topology name cannot be empty')

    return Topology(
        name=data['name'],
        nodes=[_node_from_dict(n) for n in _entries(data, 'nodes')],
        links=[_link_from_dict(l) for l in _entries(data, 'links')],
    )


def topology_to_dict(topology: Topology) -> dict[str, Any]:
    res = asdict(topology)
    for node in res['nodes']:
        node['vendor'] = node['vendor'].name
    return res


def _entries(data: dict[str, Any], key: str) -> list[Any]:
    entries = data.get(key) or []
    if not isinstance(entries, list):
        raise ValidationError(f'{key} must be a list, got {entries!r}')
    return entries


def _mapping(value: Any, what: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise ValidationError(f'{what} must be a mapping, got {value!r}')
    return value


def _node_from_dict(data: dict[str, Any]) -> Node:
    data = _mapping(data, 'node')
    if not data.get('name'):
        raise ValidationError(f'node without a name: {data}')
    name = data['name']

    try:
        vendor = Vendor.parse(data.get('vendor', 'unknown'))
    except ValueError as e:
        raise ValidationError(f'node {name}: {e}') from e

    interfaces = None
    if data.get('interfaces'):
        interfaces = {
            key: Interface(name=_mapping(value or {}, f'node {name} interface {key}').get('name', ''))
            for key, value in _mapping(data['interfaces'], f'node {name} interfaces').items()
        }

    config = None
    if data.get('config'):
        config = _config_from_dict(_mapping(data['config'], f'node {name} config'))

    return Node(
        name=name,
        vendor=vendor,
        model=data.get('model', ''),
        os=data.get('os', ''),
        config=config,
        interfaces=interfaces,
        labels=dict(_mapping(data.get('labels') or {}, f'node {name} labels')),
    )


def _config_from_dict(data: dict[str, Any]) -> Config:
    cert = data.get('cert')
    if cert is not None:
        try:
            cert = Cert(**_mapping(cert, 'cert request'))
        except (TypeError, ValidationError) as e:
            raise ValidationError(f'invalid cert request {cert}: {e}') from e

    return Config(
        image=data.get('image', ''),
        command=list(data.get('command') or []),
        args=list(data.get('args') or []),
        entry_command=data.get('entry_command', ''),
        env=dict(data.get('env') or {}),
        config_path=data.get('config_path', ''),
        config_file=data.get('config_file', ''),
        cert=cert,
    )


def _link_from_dict(data: dict[str, Any]) -> Link:
    data = _mapping(data, 'link')
    try:
        return Link(data['a_node'], data['a_int'], data['z_node'], data['z_int'])
    except KeyError as e:
        raise ValidationError(f'link {data} is missing {e}') from e
