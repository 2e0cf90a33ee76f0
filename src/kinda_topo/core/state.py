from collections import Counter
from enum import Enum
from typing import Mapping, Optional

from kinda_topo.node.Node import PodPhase


class TopologyState(Enum):
    UNKNOWN = "unknown"
    CREATING = "creating"
    RUNNING = "running"
    ERROR = "error"


def aggregate(phases: Optional[Mapping[str, PodPhase]]) -> TopologyState:
    '''Reduces per node pod phases to the state of the whole topology, a failed node dominates.'''
    if not phases:
        return TopologyState.UNKNOWN

    counts = Counter(PodPhase.parse(phase) for phase in phases.values())
    if counts[PodPhase.RUNNING] == len(phases):
        return TopologyState.RUNNING
    if counts[PodPhase.FAILED] > 0:
        return TopologyState.ERROR
    if counts[PodPhase.PENDING] > 0:
        return TopologyState.CREATING
    return TopologyState.UNKNOWN


class NodeStateMap:
    def __init__(self) -> None:
        self.states: dict[str, PodPhase] = {}

    def __len__(self) -> int:
        return len(self.states)

    def set_node_state(self, name: str, phase: PodPhase):
        self.states[name] = phase

    def topo_state(self) -> TopologyState:
        return aggregate(self.states)
