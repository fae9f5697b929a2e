"""Building create-requests for clusters and compute templates from command-line options."""

from __future__ import annotations

from dataclasses import dataclass

from kuberay import model as api

DEFAULT_CLUSTER_NAMESPACE = "ray-system"
DEFAULT_ENVIRONMENT = "DEV"
DEFAULT_RAY_VERSION = "1.9.0"
DEFAULT_HEAD_SERVICE_TYPE = "ClusterIP"
REDIS_PASSWORD = "password"

_UINT32_MAX = 2**32 - 1


@dataclass
class ClusterCreateOptions:
    """Options for creating a cluster with one worker group."""

    name: str
    user: str
    head_compute_template: str
    head_image: str
    worker_compute_template: str
    worker_image: str
    namespace: str = DEFAULT_CLUSTER_NAMESPACE
    environment: str = DEFAULT_ENVIRONMENT
    version: str = DEFAULT_RAY_VERSION
    head_service_type: str = DEFAULT_HEAD_SERVICE_TYPE
    worker_group_name: str = ""
    worker_replicas: int = 1


@dataclass
class ComputeTemplateCreateOptions:
    """Options for creating a compute template."""

    name: str
    cpu: int = 1
    memory: int = 1
    gpu: int = 0
    gpu_accelerator: str = ""


def _uint32(value: int, what: str) -> int:
    if not 0 <= value <= _UINT32_MAX:
        raise ValueError(f"{what} must be between 0 and {_UINT32_MAX}, got {value}")
    return value


def _environment(name: str) -> api.Environment:
    try:
        return api.Environment.__members__[name]
    except KeyError:
        raise ValueError(
            "Invalid environment value. Valid values: DEV, TESTING, STAGING, PRODUCTION"
        ) from None


def build_cluster(opts: ClusterCreateOptions) -> api.Cluster:
    """Return the cluster message described by ``opts``; raise ValueError for a bad environment."""
    environment = _environment(opts.environment)
    replicas = _uint32(opts.worker_replicas, "worker replicas")

    head = api.HeadGroupSpec(
        compute_template=opts.head_compute_template,
        image=opts.head_image,
        service_type=opts.head_service_type,
        ray_start_params={
            "port": "6379",
            "dashboard-host": "0.0.0.0",
            "node-ip-address": "$MY_POD_IP",
            "redis-password": REDIS_PASSWORD,
        },
    )
    worker = api.WorkerGroupSpec(
        group_name=opts.worker_group_name,
        compute_template=opts.worker_compute_template,
        image=opts.worker_image,
        replicas=replicas,
        min_replicas=replicas,
        max_replicas=replicas,
        ray_start_params={
            "node-ip-address": "$MY_POD_IP",
            "redis-password": REDIS_PASSWORD,
        },
    )
    return api.Cluster(
        name=opts.name,
        namespace=opts.namespace,
        user=opts.user,
        version=opts.version,
        environment=environment,
        cluster_spec=api.ClusterSpec(head_group_spec=head, worker_group_spec=[worker]),
    )


def build_compute_template(opts: ComputeTemplateCreateOptions) -> api.ComputeTemplate:
    """Return the compute-template message described by ``opts``."""
    return api.ComputeTemplate(
        name=opts.name,
        cpu=_uint32(opts.cpu, "cpu"),
        memory=_uint32(opts.memory, "memory"),
        gpu=_uint32(opts.gpu, "gpu"),
        gpu_accelerator=opts.gpu_accelerator,
    )