import os

KUBECONFIG_PATH = os.environ.get(
    'KUBECONFIG', os.path.join(os.path.expanduser('~'), '.kube', 'config'))
KUBECTL = os.environ.get('KINDA_TOPO_KUBECTL', 'kubectl')

POLL_INTERVAL_SECONDS = 0.1

# meshnet custom resource describing the links of a single node
TOPOLOGY_CRD_GROUP = 'networkop.co.uk'
TOPOLOGY_CRD_VERSION = 'v1beta1'
TOPOLOGY_CRD_KIND = 'Topology'
TOPOLOGY_CRD_RESOURCE = 'topologies'

NAMESPACE_DELETE_PROPAGATION = 'Foreground'

SERVICE_NAME_PREFIX = 'service-'
# Keysight exposes these once per namespace instead of per node
KEYSIGHT_GLOBAL_SERVICES = ('gnmi-service', 'grpc-service')
IXIA_TG_MODEL = 'IXIA_TG'

MESHNET_INIT_IMAGE = 'networkop/init-wait:latest'
