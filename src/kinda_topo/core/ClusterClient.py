from abc import ABC, abstractmethod
from typing import Any

from kinda_topo.util.context import Context

# Objects are passed around in their plain JSON form, as returned by the API server.
K8sObject = dict[str, Any]


class ClusterClient(ABC):
    '''
    Namespace scoped CRUD on the cluster objects a topology is made of.

    Every call raises ClusterError on failure, with `not_found` set when the object doesn't exist.
    '''

    @abstractmethod
    def get_namespace(self, ctx: Context, name: str) -> K8sObject:
        pass

    @abstractmethod
    def create_namespace(self, ctx: Context, name: str) -> K8sObject:
        pass

    @abstractmethod
    def delete_namespace(self, ctx: Context, name: str, propagation: str) -> None:
        pass

    @abstractmethod
    def create_topology(self, ctx: Context, namespace: str, topology: K8sObject) -> K8sObject:
        pass

    @abstractmethod
    def list_topologies(self, ctx: Context, namespace: str) -> list[K8sObject]:
        pass

    @abstractmethod
    def delete_topology(self, ctx: Context, namespace: str, name: str) -> None:
        pass

    @abstractmethod
    def create_pod(self, ctx: Context, namespace: str, pod: K8sObject) -> K8sObject:
        pass

    @abstractmethod
    def get_pod(self, ctx: Context, namespace: str, name: str) -> K8sObject:
        pass

    @abstractmethod
    def delete_pod(self, ctx: Context, namespace: str, name: str) -> None:
        pass

    @abstractmethod
    def create_service(self, ctx: Context, namespace: str, service: K8sObject) -> K8sObject:
        pass

    @abstractmethod
    def delete_service(self, ctx: Context, namespace: str, name: str) -> None:
        pass

    @abstractmethod
    def list_services(self, ctx: Context, namespace: str) -> list[K8sObject]:
        pass
