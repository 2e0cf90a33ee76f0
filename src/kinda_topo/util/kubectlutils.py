import json
import subprocess as sp

from kinda_topo.constants import (KUBECTL, TOPOLOGY_CRD_GROUP,
                                  TOPOLOGY_CRD_RESOURCE)
from kinda_topo.core.ClusterClient import ClusterClient, K8sObject
from kinda_topo.core.errors import Cancelled, ClusterError
from kinda_topo.util.context import Context
from kinda_topo.util.logger import logger

_NOT_FOUND_MARKER = '(NotFound)'
_TOPOLOGY_RESOURCE = f'{TOPOLOGY_CRD_RESOURCE}.{TOPOLOGY_CRD_GROUP}'


class KubectlClient(ClusterClient):
    '''ClusterClient talking to the API server through the kubectl binary.'''

    def __init__(self, kubecfg: str | None = None, kubectl: str = KUBECTL) -> None:
        self.kubecfg = kubecfg
        self.kubectl = kubectl

    def get_namespace(self, ctx: Context, name: str) -> K8sObject:
        return self._run_json(ctx, 'get', 'namespace', name, '-o', 'json')

    def create_namespace(self, ctx: Context, name: str) -> K8sObject:
        return self._create(ctx, None, {
            'apiVersion': 'v1',
            'kind': 'Namespace',
            'metadata': {'name': name},
        })

    def delete_namespace(self, ctx: Context, name: str, propagation: str) -> None:
        self._run(ctx, 'delete', 'namespace', name,
                  f'--cascade={propagation.lower()}')

    def create_topology(self, ctx: Context, namespace: str, topology: K8sObject) -> K8sObject:
        return self._create(ctx, namespace, topology)

    def list_topologies(self, ctx: Context, namespace: str) -> list[K8sObject]:
        return self._list(ctx, namespace, _TOPOLOGY_RESOURCE)

    def delete_topology(self, ctx: Context, namespace: str, name: str) -> None:
        self._run(ctx, 'delete', _TOPOLOGY_RESOURCE, name, '-n', namespace)

    def create_pod(self, ctx: Context, namespace: str, pod: K8sObject) -> K8sObject:
        return self._create(ctx, namespace, pod)

    def get_pod(self, ctx: Context, namespace: str, name: str) -> K8sObject:
        return self._run_json(ctx, 'get', 'pod', name, '-n', namespace, '-o', 'json')

    def delete_pod(self, ctx: Context, namespace: str, name: str) -> None:
        self._run(ctx, 'delete', 'pod', name, '-n', namespace)

    def create_service(self, ctx: Context, namespace: str, service: K8sObject) -> K8sObject:
        return self._create(ctx, namespace, service)

    def delete_service(self, ctx: Context, namespace: str, name: str) -> None:
        self._run(ctx, 'delete', 'service', name, '-n', namespace)

    def list_services(self, ctx: Context, namespace: str) -> list[K8sObject]:
        return self._list(ctx, namespace, 'services')

    def _create(self, ctx: Context, namespace: str | None, obj: K8sObject) -> K8sObject:
        args = ['create', '-f', '-', '-o', 'json']
        if namespace is not None:
            args.extend(['-n', namespace])
        return self._run_json(ctx, *args, stdin=json.dumps(obj))

    def _list(self, ctx: Context, namespace: str, resource: str) -> list[K8sObject]:
        res = self._run_json(ctx, 'get', resource, '-n', namespace, '-o', 'json')
        return res.get('items') or []

    def _run_json(self, ctx: Context, *args: str, stdin: str = None) -> K8sObject:
        out = self._run(ctx, *args, stdin=stdin)
        try:
            return json.loads(out)
        except json.JSONDecodeError as e:
            raise ClusterError(f'kubectl {args[0]} returned invalid json: {e}') from e

    def _run(self, ctx: Context, *args: str, stdin: str = None) -> str:
        ctx.check()
        commands = [self.kubectl]
        if self.kubecfg:
            commands.extend(['--kubeconfig', self.kubecfg])
        commands.extend(args)

        logger.debug(f'Running {" ".join(commands)}')
        try:
            res = sp.run(commands, input=stdin, capture_output=True, text=True,
                         timeout=ctx.remaining())
        except sp.TimeoutExpired as e:
            raise Cancelled(f'kubectl {args[0]} did not finish before deadline') from e

        if res.returncode != 0:
            logger.error(
                f'Command {commands}; returned error: {res.returncode}\nstd_err: {res.stderr}')
            raise ClusterError(res.stderr.strip(),
                               not_found=_NOT_FOUND_MARKER in res.stderr)
        return res.stdout
