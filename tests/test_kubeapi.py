from kubestate.kubeapi import KubernetesClient, Pod, Service, ServicePort

KSM = {"app.kubernetes.io/name": "kube-state-metrics"}


def _client():
    pods = [
        Pod(name="ksm-a", namespace="kube-system", labels=dict(KSM), host_ip="6.7.8.9"),
        Pod(name="other", namespace="kube-system", labels={"app": "nginx"}),
        Pod(name="ksm-b", namespace="monitoring", labels=dict(KSM), host_ip="4.3.2.1"),
    ]
    services = [
        Service(
            name="kube-state-metrics",
            namespace="kube-system",
            labels=dict(KSM),
            cluster_ip="1.2.3.4",
            ports=[ServicePort(name="http-metrics", port=8888)],
        ),
        Service(name="web", namespace="default", labels={"app": "nginx"}),
    ]
    return KubernetesClient(pods, services)


def test_find_pods_by_label_matches_labels_across_namespaces():
    pods = _client().find_pods_by_label("", KSM)
    assert [pod.name for pod in pods] == ["ksm-a", "ksm-b"]


def test_find_pods_by_label_honours_namespace():
    pods = _client().find_pods_by_label("monitoring", KSM)
    assert [pod.name for pod in pods] == ["ksm-b"]


def test_empty_selector_matches_everything():
    client = _client()
    assert len(client.find_pods_by_label("", {})) == len(client.pods)


def test_selector_with_unknown_value_matches_nothing():
    assert _client().find_pods_by_label("", {"app": "kube-state-metrics"}) == []


def test_find_services_by_label():
    services = _client().find_services_by_label("kube-system", KSM)
    assert [service.cluster_ip for service in services] == ["1.2.3.4"]
    assert services[0].ports[0].protocol == "TCP"


def test_list_services_by_namespace():
    client = _client()
    assert [s.name for s in client.list_services("default")] == ["web"]
    assert len(client.list_services("")) == 2