class TopologyError(Exception):
    pass


class ValidationError(TopologyError):
    pass


class UnknownNode(ValidationError):
    def __init__(self, node: str) -> None:
        super().__init__(f'invalid topology: missing node "{node}"')
        self.node = node


class DuplicateNode(ValidationError):
    def __init__(self, node: str) -> None:
        super().__init__(f'invalid topology: duplicate node "{node}"')
        self.node = node


class InterfaceAlreadyConnected(ValidationError):
    def __init__(self, node: str, interface: str) -> None:
        super().__init__(f'interface {node}:{interface} already connected')
        self.node = node
        self.interface = interface


class ConstructionError(TopologyError):
    pass


class UnknownVendor(ConstructionError):
    def __init__(self, vendor) -> None:
        super().__init__(f'no constructor registered for vendor {vendor}')
        self.vendor = vendor


class Unimplemented(TopologyError):
    '''Raised when a node does not offer an optional capability.'''


class ClusterError(TopologyError):
    def __init__(self, message: str, not_found: bool = False) -> None:
        super().__init__(message)
        self.not_found = not_found


class OrchestrationError(TopologyError):
    pass


class CertGenerationError(OrchestrationError):
    def __init__(self, node: str, cause: Exception) -> None:
        super().__init__(f'failed to generate cert for node {node}: {cause}')
        self.node = node
        self.cause = cause


class NodeFailedError(TopologyError):
    def __init__(self, name: str, phase: str, cause: Exception | None = None) -> None:
        super().__init__(f'Node "{name}": Pod Status {phase} Reason {cause}')
        self.name = name
        self.phase = phase
        self.cause = cause


class ReconciliationError(TopologyError):
    pass


class NoExternalAddress(ReconciliationError):
    def __init__(self, service: str) -> None:
        super().__init__(f'service {service} has no external loadbalancer configured')
        self.service = service


class NodeNotFound(TopologyError):
    def __init__(self, name: str) -> None:
        super().__init__(f'node "{name}" not found')
        self.name = name


class Cancelled(TopologyError):
    pass
