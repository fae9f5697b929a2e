"""Client-facing cluster and compute-template messages, and conversion from cluster resources."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import IntEnum
from typing import Iterable

from kuberay import types as crd
from kuberay.constants import (
    RAY_CLUSTER_COMPUTE_TEMPLATE_ANNOTATION_KEY,
    RAY_CLUSTER_ENVIRONMENT_LABEL_KEY,
    RAY_CLUSTER_IMAGE_ANNOTATION_KEY,
    RAY_CLUSTER_USER_LABEL_KEY,
    RAY_CLUSTER_VERSION_LABEL_KEY,
)

_UINT32_MAX = 2**32 - 1


class Environment(IntEnum):
    """The stage a cluster serves."""

    DEV = 0
    TESTING = 1
    STAGING = 2
    PRODUCTION = 3


@dataclass
class ComputeTemplate:
    """Resources given to each pod of a node group."""

    name: str = ""
    cpu: int = 0
    memory: int = 0
    gpu: int = 0
    gpu_accelerator: str = ""


@dataclass
class HeadGroupSpec:
    compute_template: str = ""
    image: str = ""
    service_type: str = ""
    ray_start_params: dict[str, str] = field(default_factory=dict)


@dataclass
class WorkerGroupSpec:
    group_name: str = ""
    compute_template: str = ""
    image: str = ""
    replicas: int = 0
    min_replicas: int = 0
    max_replicas: int = 0
    ray_start_params: dict[str, str] = field(default_factory=dict)


@dataclass
class ClusterSpec:
    head_group_spec: HeadGroupSpec = field(default_factory=HeadGroupSpec)
    worker_group_spec: list[WorkerGroupSpec] = field(default_factory=list)


@dataclass
class Cluster:
    """A Ray cluster as seen by API clients."""

    name: str = ""
    namespace: str = ""
    user: str = ""
    version: str = ""
    environment: Environment = Environment.DEV
    cluster_spec: ClusterSpec = field(default_factory=ClusterSpec)
    created_at: datetime | None = None


def _whole_seconds(value: datetime) -> datetime:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return datetime.fromtimestamp(math.floor(value.timestamp()), timezone.utc)


def _parse_uint32(text: str | None) -> int:
    """Parse a base-10 unsigned integer; malformed input gives 0, overflow saturates."""
    if not text or not (text.isascii() and text.isdigit()):
        return 0
    return min(int(text), _UINT32_MAX)


def from_crd_to_api_clusters(clusters: Iterable[crd.RayCluster]) -> list[Cluster]:
    return [from_crd_to_api_cluster(cluster) for cluster in clusters]


def from_crd_to_api_cluster(cluster: crd.RayCluster) -> Cluster:
    labels = cluster.metadata.labels
    environment = Environment.__members__.get(
        labels.get(RAY_CLUSTER_ENVIRONMENT_LABEL_KEY, ""), Environment.DEV
    )
    created = cluster.metadata.creation_timestamp
    return Cluster(
        name=cluster.metadata.name,
        namespace=cluster.metadata.namespace,
        version=labels.get(RAY_CLUSTER_VERSION_LABEL_KEY, ""),
        user=labels.get(RAY_CLUSTER_USER_LABEL_KEY, ""),
        environment=environment,
        created_at=None if created is None else _whole_seconds(created),
        cluster_spec=ClusterSpec(
            head_group_spec=populate_head_node_spec(cluster.spec.head_group_spec),
            worker_group_spec=populate_worker_node_spec(cluster.spec.worker_group_specs),
        ),
    )


def populate_head_node_spec(spec: crd.HeadGroupSpec) -> HeadGroupSpec:
    annotations = spec.template.metadata.annotations
    return HeadGroupSpec(
        ray_start_params=spec.ray_start_params,
        service_type=str(spec.service_type),
        image=annotations.get(RAY_CLUSTER_IMAGE_ANNOTATION_KEY, ""),
        compute_template=annotations.get(RAY_CLUSTER_COMPUTE_TEMPLATE_ANNOTATION_KEY, ""),
    )


def _required(value: int | None, what: str, group: str) -> int:
    if value is None:
        raise ValueError(f"worker group {group!r} has no {what}")
    return value


def populate_worker_node_spec(specs: Iterable[crd.WorkerGroupSpec]) -> list[WorkerGroupSpec]:
    """Convert worker groups; the reported minimum and maximum are taken crosswise."""
    result = []
    for spec in specs:
        annotations = spec.template.metadata.annotations
        result.append(
            WorkerGroupSpec(
                ray_start_params=spec.ray_start_params,
                max_replicas=_required(spec.min_replicas, "minReplicas", spec.group_name),
                min_replicas=_required(spec.max_replicas, "maxReplicas", spec.group_name),
                replicas=_required(spec.replicas, "replicas", spec.group_name),
                group_name=spec.group_name,
                image=annotations.get(RAY_CLUSTER_IMAGE_ANNOTATION_KEY, ""),
                compute_template=annotations.get(RAY_CLUSTER_COMPUTE_TEMPLATE_ANNOTATION_KEY, ""),
            )
        )
    return result


def from_kube_to_api_compute_template(config_map: crd.ConfigMap) -> ComputeTemplate:
    data = config_map.data
    return ComputeTemplate(
        name=config_map.name,
        cpu=_parse_uint32(data.get("cpu")),
        memory=_parse_uint32(data.get("memory")),
        gpu=_parse_uint32(data.get("gpu")),
        gpu_accelerator=data.get("gpu_accelerator", ""),
    )


def from_kube_to_api_compute_templates(config_maps: Iterable[crd.ConfigMap]) -> list[ComputeTemplate]:
    return [from_kube_to_api_compute_template(config_map) for config_map in config_maps]