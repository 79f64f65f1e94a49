# kubestate

Locate a cluster's kube-state-metrics (KSM) endpoint, build HTTP clients for
it, and derive entity attributes (container status, deployment names) from
grouped KSM metrics.

The package has no dependencies outside the standard library.

## Installation

```
pip install kubestate
```

For running the tests:

```
pip install "kubestate[test]"
pytest
```

## Modules

### `kubestate.kubeapi`

- `Pod`, `Service`, `ServicePort` and `SRVRecord` — dataclasses holding the
  fields discovery looks at (labels, host and pod IPs, cluster IP, ports,
  selectors, SRV target and port).
- `KubernetesClient(pods=..., services=...)` — answers discovery queries from
  the objects it is given: `find_pods_by_label(namespace, selector)`,
  `find_services_by_label(namespace, selector)` and `list_services(namespace)`.
  An empty namespace means every namespace; a selector matches when every
  key/value pair is among the object's labels. Any object with these three
  methods can be passed to the discoverers in its place.
- `DiscoveryError` — raised when an endpoint or node cannot be found;
  `NoKSMPodsFoundError` is its subclass for an empty label search.

### `kubestate.client`

`KSMClient(node_ip, endpoint, timeout=5.0, logger=..., ssl_context=None)`
holds a KSM endpoint (a `urllib.parse.SplitResult`) and the IP of the node
KSM runs on. `get(url_path)` joins `url_path` onto the endpoint's path,
sends a GET with the Prometheus text `Accept` header (`ACCEPT_HEADER`) and
returns the open `http.client.HTTPResponse`.

### `kubestate.discovery`

`new_discoverer(DiscovererConfig(...))` builds a `Discoverer`; it raises
`ValueError` if `k8s_client` or `logger` is missing. `discover(timeout)`:

1. uses `overridden_endpoint` if one is set; otherwise
2. looks up the SRV record `_http-metrics._tcp.kube-state-metrics.kube-system.svc.cluster.local`
   (with the first nameserver from `/etc/resolv.conf`, or a `lookup_srv`
   callable you supply), skipping targets of `None`; and if that fails
3. searches services labelled `app.kubernetes.io/name`, `k8s-app` or `app`
   equal to `kube-state-metrics`, taking the port named `http-metrics`, or
   else the first TCP port.

The scheme is always `http`. The node IP is the lowest host IP of the pods
carrying the same labels. Failures raise `DiscoveryError`.

### `kubestate.pod_label`

- `new_pod_label_discoverer(PodLabelDiscovererConfig(...))` needs a logger,
  a pod label, a non-zero port, a client and a scheme of `http` or `https`
  (otherwise `ValueError`). `discover(timeout)` picks, among pods labelled
  `<label>=true`, the one with the highest host IP, and returns a client for
  `<scheme>://<pod IP>:<port>`. For `https` certificates are not verified.
- `new_distributed_pod_label_discoverer(DistributedPodLabelDiscovererConfig(...))`
  needs a logger, a pod label, a client and this node's IP. `discover(timeout)`
  returns one client, `http://<pod IP>:8080`, for every labelled pod whose
  host IP is this node's.

### `kubestate.cached`

`Cache` and `MultiCache` hold the endpoint(s) and node IP of discovered
clients. `decompose(client)` and `multi_decompose(clients)` extract them
(the latter keeps the first non-empty node IP); `compose(cache, logger, timeout)`
and `multi_compose(cache, logger, timeout)` rebuild `KSMClient`s. The
storage key used for this data is `CACHED_KEY`.

### `kubestate.metric`

Raw groups are mappings of group label → entity id → metric name → value,
where values are usually `Metric(value, labels)`. Each function returns a
fetch function called as `fetch(group_label, entity_id, groups)`:

- `get_status_for_container()` — `"Running"`, `"Waiting"`, `"Terminated"`
  or `"Unknown"`, from whichever `kube_pod_container_status_*` metric is 1.
- `get_deployment_name_for_replica_set()` — the `replicaset` label of
  `kube_replicaset_created` with its last `-` part removed.
- `get_deployment_name_for_pod()` — the same for a pod's `created_by_name`
  when `created_by_kind` is `ReplicaSet`, else `""`.
- `get_deployment_name_for_container()` — the same, read from the
  container's pod (`<namespace>_<pod>` in the `pod` group).

Missing or empty data raises `FetchError`. `PROMETHEUS_METRICS_PATH` is
`/metrics`.

### `kubestate.group`

`KSMGrouper(k8s_client)` and its `add_service_spec_selector_to_group(service_group)`:
for every service known to the client whose `<namespace>_<name>` key is in
`service_group`, it adds an `apiserver_kube_service_spec_selectors` metric
whose labels are the service's selectors prefixed with `selector_`. A failure
to list services raises `RuntimeError`.

## Example

```python
import logging

from kubestate.discovery import DiscovererConfig, new_discoverer
from kubestate.kubeapi import KubernetesClient, Pod, Service, ServicePort

k8s = KubernetesClient(
    pods=[Pod(labels={"app": "kube-state-metrics"}, host_ip="10.0.0.5")],
    services=[
        Service(
            labels={"app": "kube-state-metrics"},
            cluster_ip="10.96.0.20",
            ports=[ServicePort(name="http-metrics", port=8080)],
        )
    ],
)
discoverer = new_discoverer(
    DiscovererConfig(k8s_client=k8s, logger=logging.getLogger("ksm"))
)
ksm = discoverer.discover(timeout=5.0)
print(ksm.node_ip)
response = ksm.get("/metrics")
```

## What it does not do

- It does not talk to a Kubernetes API server: `KubernetesClient` only
  filters the objects it is given, so connecting to a cluster is up to you.
- It does not store cached discovery data or expire it; `kubestate.cached`
  only converts clients to and from their cacheable form.
- It does not parse Prometheus output or group metrics by entity; the
  grouper only adds service selectors to groups you have already built.
- There is no command-line program.