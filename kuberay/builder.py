"""Building cluster resources and compute-template config maps from client messages."""

from __future__ import annotations

import ipaddress
from dataclasses import dataclass, field
from enum import Enum

from kuberay import model as api
from kuberay import types as crd
from kuberay.constants import (
    RAY_CLUSTER_COMPUTE_TEMPLATE_ANNOTATION_KEY,
    RAY_CLUSTER_DEFAULT_IMAGE_REPOSITORY,
    RAY_CLUSTER_ENVIRONMENT_LABEL_KEY,
    RAY_CLUSTER_IMAGE_ANNOTATION_KEY,
    RAY_CLUSTER_NAME_LABEL_KEY,
    RAY_CLUSTER_USER_LABEL_KEY,
    RAY_CLUSTER_VERSION_LABEL_KEY,
)

_DECIMAL_SUFFIXES = ("", "k", "M", "G", "T", "P", "E")
_BINARY_SUFFIXES = ("Ki", "Mi", "Gi", "Ti", "Pi", "Ei")

_WORKER_INIT_COMMAND = (
    "until nslookup $RAY_IP.$(cat /var/run/secrets/kubernetes.io/serviceaccount/namespace)"
    ".svc.cluster.local; do echo waiting for myservice; sleep 2; done"
)


class NodeAddressType(str, Enum):
    HOSTNAME = "Hostname"
    EXTERNAL_IP = "ExternalIP"
    INTERNAL_IP = "InternalIP"
    EXTERNAL_DNS = "ExternalDNS"
    INTERNAL_DNS = "InternalDNS"


@dataclass
class NodeAddress:
    type: NodeAddressType
    address: str


@dataclass
class Node:
    """A cluster node and the addresses it reports."""

    name: str = ""
    addresses: list[NodeAddress] = field(default_factory=list)


def _canonical_quantity(amount: int, suffixes: tuple[str, ...], base: int) -> str:
    if amount == 0:
        return "0"
    index = 0
    while amount % base == 0 and index + 1 < len(suffixes):
        amount //= base
        index += 1
    return f"{amount}{suffixes[index]}"


def _cpu_quantity(amount: int) -> str:
    return _canonical_quantity(amount, _DECIMAL_SUFFIXES, 1000)


def _memory_quantity(gibibytes: int) -> str:
    return _canonical_quantity(gibibytes, _BINARY_SUFFIXES[2:], 1024)


def construct_ray_image(container_image: str, version: str) -> str:
    return f"{container_image}:{version}"


def _lookup_template(templates: dict[str, api.ComputeTemplate], name: str) -> api.ComputeTemplate:
    try:
        return templates[name]
    except KeyError:
        raise KeyError(f"compute template {name!r} was not supplied") from None


def _build_labels(cluster: api.Cluster) -> dict[str, str]:
    return {
        RAY_CLUSTER_NAME_LABEL_KEY: cluster.name,
        RAY_CLUSTER_USER_LABEL_KEY: cluster.user,
        RAY_CLUSTER_VERSION_LABEL_KEY: cluster.version,
        RAY_CLUSTER_ENVIRONMENT_LABEL_KEY: api.Environment(cluster.environment).name,
    }


def _node_group_annotations(template: api.ComputeTemplate, image: str) -> dict[str, str]:
    return {
        RAY_CLUSTER_COMPUTE_TEMPLATE_ANNOTATION_KEY: template.name,
        RAY_CLUSTER_IMAGE_ANNOTATION_KEY: image,
    }


def _resources(template: api.ComputeTemplate) -> crd.ResourceRequirements:
    cpu = _cpu_quantity(template.cpu)
    memory = _memory_quantity(template.memory)
    resources = crd.ResourceRequirements(
        limits={"cpu": cpu, "memory": memory},
        requests={"cpu": cpu, "memory": memory},
    )
    if template.gpu:
        # An empty accelerator name is used as the resource key as given.
        accelerator = "nvidia.com/gpu"
        if not template.gpu_accelerator:
            accelerator = template.gpu_accelerator
        gpu = _cpu_quantity(template.gpu)
        resources.requests[accelerator] = gpu
        resources.limits[accelerator] = gpu
    return resources


def _field_env(name: str, path: str) -> crd.EnvVar:
    return crd.EnvVar(
        name=name, value_from=crd.EnvVarSource(field_ref=crd.ObjectFieldSelector(field_path=path))
    )


def _resource_env(name: str, resource: str) -> crd.EnvVar:
    return crd.EnvVar(
        name=name,
        value_from=crd.EnvVarSource(
            resource_field_ref=crd.ResourceFieldSelector(
                container_name="ray-worker", resource=resource
            )
        ),
    )


def _head_pod_template(cluster: api.Cluster, template: api.ComputeTemplate) -> crd.PodTemplateSpec:
    spec = cluster.cluster_spec.head_group_spec
    image = spec.image or construct_ray_image(RAY_CLUSTER_DEFAULT_IMAGE_REPOSITORY, cluster.version)
    container = crd.Container(
        name="ray-head",
        image=image,
        env=[_field_env("MY_POD_IP", "status.podIP")],
        ports=[
            crd.ContainerPort(name="redis", container_port=6379),
            crd.ContainerPort(name="head", container_port=10001),
            crd.ContainerPort(name="dashboard", container_port=8265),
        ],
        resources=_resources(template),
    )
    return crd.PodTemplateSpec(
        metadata=crd.ObjectMeta(annotations=_node_group_annotations(template, spec.image)),
        spec=crd.PodSpec(containers=[container]),
    )


def _worker_pod_template(
    cluster: api.Cluster, spec: api.WorkerGroupSpec, template: api.ComputeTemplate
) -> crd.PodTemplateSpec:
    image = spec.image or construct_ray_image(RAY_CLUSTER_DEFAULT_IMAGE_REPOSITORY, cluster.version)
    init = crd.Container(
        name="init-myservice",
        image="busybox:1.28",
        command=["sh", "-c", _WORKER_INIT_COMMAND],
    )
    container = crd.Container(
        name="ray-worker",
        image=image,
        env=[
            crd.EnvVar(name="RAY_DISABLE_DOCKER_CPU_WRARNING", value="1"),
            crd.EnvVar(name="TYPE", value="worker"),
            _resource_env("CPU_REQUEST", "requests.cpu"),
            _resource_env("CPU_LIMITS", "limits.cpu"),
            _resource_env("MEMORY_REQUESTS", "requests.cpu"),
            _resource_env("MEMORY_LIMITS", "limits.cpu"),
            _field_env("MY_POD_NAME", "metadata.name"),
            _field_env("MY_POD_IP", "status.podIP"),
        ],
        ports=[crd.ContainerPort(container_port=80)],
        lifecycle=crd.Lifecycle(pre_stop=crd.ExecAction(command=["/bin/sh", "-c", "ray stop"])),
        resources=_resources(template),
    )
    return crd.PodTemplateSpec(
        metadata=crd.ObjectMeta(annotations=_node_group_annotations(template, spec.image)),
        spec=crd.PodSpec(init_containers=[init], containers=[container]),
    )


def new_ray_cluster(
    api_cluster: api.Cluster, compute_template_map: dict[str, api.ComputeTemplate]
) -> crd.RayCluster:
    """Build the cluster resource for ``api_cluster``; raise KeyError for a missing template."""
    head = api_cluster.cluster_spec.head_group_spec
    head_template = _lookup_template(compute_template_map, head.compute_template)
    cluster = crd.RayCluster(
        metadata=crd.ObjectMeta(
            name=api_cluster.name,
            namespace=api_cluster.namespace,
            labels=_build_labels(api_cluster),
            annotations={},
        ),
        spec=crd.RayClusterSpec(
            ray_version=api_cluster.version,
            head_group_spec=crd.HeadGroupSpec(
                service_type=head.service_type,
                template=_head_pod_template(api_cluster, head_template),
                replicas=1,
                ray_start_params=head.ray_start_params,
            ),
        ),
    )
    for spec in api_cluster.cluster_spec.worker_group_spec:
        template = _lookup_template(compute_template_map, spec.compute_template)
        cluster.spec.worker_group_specs.append(
            crd.WorkerGroupSpec(
                group_name=spec.group_name,
                min_replicas=spec.min_replicas or spec.replicas,
                max_replicas=spec.max_replicas or spec.replicas,
                replicas=spec.replicas,
                ray_start_params=spec.ray_start_params,
                template=_worker_pod_template(api_cluster, spec, template),
            )
        )
    return cluster


def new_compute_template(runtime: api.ComputeTemplate, namespace: str) -> crd.ConfigMap:
    """Store a compute template as a labelled config map."""
    return crd.ConfigMap(
        metadata=crd.ObjectMeta(
            name=runtime.name,
            namespace=namespace,
            labels={
                "ray.io/config-type": "compute-template",
                "ray.io/compute-template": runtime.name,
            },
        ),
        data={
            "name": runtime.name,
            "cpu": str(runtime.cpu),
            "memory": str(runtime.memory),
            "gpu": str(runtime.gpu),
            "gpu_accelerator": runtime.gpu_accelerator,
        },
    )


def get_node_host_ip(node: Node) -> ipaddress.IPv4Address | ipaddress.IPv6Address | None:
    """Return the node's internal IP, else its external IP; None if the address is malformed."""
    by_type: dict[NodeAddressType, list[NodeAddress]] = {}
    for address in node.addresses:
        by_type.setdefault(NodeAddressType(address.type), []).append(address)
    for kind in (NodeAddressType.INTERNAL_IP, NodeAddressType.EXTERNAL_IP):
        if kind in by_type:
            try:
                return ipaddress.ip_address(by_type[kind][0].address)
            except ValueError:
                return None
    raise ValueError(f"host IP unknown; known addresses: {node.addresses}")