"""Resource types for the ``ray.io/v1alpha1`` API group and the core objects they embed."""

from __future__ import annotations

import json
from dataclasses import dataclass, field, fields, is_dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any


def _json(name: str, *, omitempty: bool = False, **kwargs: Any) -> Any:
    return field(metadata={"json": name, "omitempty": omitempty}, **kwargs)


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (str, list, tuple, dict)):
        return not value
    if isinstance(value, (int, float)) and not isinstance(value, Enum):
        return value == 0
    return False


def _format_time(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _encode(value: Any) -> Any:
    hook = getattr(value, "_encode_json", None)
    if hook is not None and is_dataclass(value):
        return hook()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return _format_time(value)
    if is_dataclass(value) and not isinstance(value, type):
        out: dict[str, Any] = {}
        for f in fields(value):
            raw = getattr(value, f.name)
            if f.metadata.get("omitempty") and _is_empty(raw):
                continue
            out[f.metadata.get("json", f.name)] = _encode(raw)
        return out
    if isinstance(value, dict):
        return {key: _encode(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_encode(item) for item in value]
    return value


@dataclass(frozen=True)
class GroupResource:
    """A resource name qualified by its API group."""

    group: str
    resource: str


@dataclass(frozen=True)
class GroupVersion:
    """An API group together with one of its versions."""

    group: str
    version: str

    def with_resource(self, resource: str) -> GroupResource:
        """Qualify ``resource`` with this group."""
        return GroupResource(group=self.group, resource=resource)

    def __str__(self) -> str:
        return f"{self.group}/{self.version}" if self.group else self.version


GROUP_VERSION = GroupVersion(group="ray.io", version="v1alpha1")
SCHEME_GROUP_VERSION = GROUP_VERSION


def resource(resource: str) -> GroupResource:
    """Return the group-qualified form of a resource in the ray.io group."""
    return SCHEME_GROUP_VERSION.with_resource(resource)


@dataclass
class ObjectMeta:
    name: str = _json("name", omitempty=True, default="")
    namespace: str = _json("namespace", omitempty=True, default="")
    labels: dict[str, str] = _json("labels", omitempty=True, default_factory=dict)
    annotations: dict[str, str] = _json("annotations", omitempty=True, default_factory=dict)
    creation_timestamp: datetime | None = _json("creationTimestamp", omitempty=True, default=None)


@dataclass
class ObjectFieldSelector:
    field_path: str = _json("fieldPath", default="")
    api_version: str = _json("apiVersion", omitempty=True, default="")


@dataclass
class ResourceFieldSelector:
    resource: str = _json("resource", default="")
    container_name: str = _json("containerName", omitempty=True, default="")


@dataclass
class EnvVarSource:
    field_ref: ObjectFieldSelector | None = _json("fieldRef", omitempty=True, default=None)
    resource_field_ref: ResourceFieldSelector | None = _json(
        "resourceFieldRef", omitempty=True, default=None
    )


@dataclass
class EnvVar:
    name: str = _json("name", default="")
    value: str = _json("value", omitempty=True, default="")
    value_from: EnvVarSource | None = _json("valueFrom", omitempty=True, default=None)


@dataclass
class ContainerPort:
    container_port: int = _json("containerPort", default=0)
    name: str = _json("name", omitempty=True, default="")


@dataclass
class ExecAction:
    command: list[str] = _json("command", omitempty=True, default_factory=list)


@dataclass
class Lifecycle:
    """Hooks run around a container's life; each hook is an exec action."""

    post_start: ExecAction | None = None
    pre_stop: ExecAction | None = None

    def _encode_json(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.post_start is not None:
            out["postStart"] = {"exec": _encode(self.post_start)}
        if self.pre_stop is not None:
            out["preStop"] = {"exec": _encode(self.pre_stop)}
        return out


@dataclass
class ResourceRequirements:
    limits: dict[str, str] = _json("limits", omitempty=True, default_factory=dict)
    requests: dict[str, str] = _json("requests", omitempty=True, default_factory=dict)


@dataclass
class Container:
    name: str = _json("name", default="")
    image: str = _json("image", omitempty=True, default="")
    command: list[str] = _json("command", omitempty=True, default_factory=list)
    args: list[str] = _json("args", omitempty=True, default_factory=list)
    ports: list[ContainerPort] = _json("ports", omitempty=True, default_factory=list)
    env: list[EnvVar] = _json("env", omitempty=True, default_factory=list)
    resources: ResourceRequirements = _json("resources", default_factory=ResourceRequirements)
    lifecycle: Lifecycle | None = _json("lifecycle", omitempty=True, default=None)


@dataclass
class PodSpec:
    init_containers: list[Container] = _json("initContainers", omitempty=True, default_factory=list)
    containers: list[Container] = _json("containers", default_factory=list)


@dataclass
class PodTemplateSpec:
    metadata: ObjectMeta = _json("metadata", default_factory=ObjectMeta)
    spec: PodSpec = _json("spec", default_factory=PodSpec)


@dataclass
class ConfigMap:
    metadata: ObjectMeta = _json("metadata", default_factory=ObjectMeta)
    data: dict[str, str] = _json("data", omitempty=True, default_factory=dict)

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> str:
        return self.metadata.namespace

    @property
    def labels(self) -> dict[str, str]:
        return self.metadata.labels


@dataclass
class ScaleStrategy:
    workers_to_delete: list[str] = _json("workersToDelete", omitempty=True, default_factory=list)


@dataclass
class HeadGroupSpec:
    service_type: str = _json("serviceType", default="")
    enable_ingress: bool | None = _json("enableIngress", omitempty=True, default=None)
    replicas: int | None = _json("replicas", default=None)
    ray_start_params: dict[str, str] = _json("rayStartParams", default_factory=dict)
    template: PodTemplateSpec = _json("template", default_factory=PodTemplateSpec)


@dataclass
class WorkerGroupSpec:
    group_name: str = _json("groupName", default="")
    replicas: int | None = _json("replicas", default=None)
    min_replicas: int | None = _json("minReplicas", default=None)
    max_replicas: int | None = _json("maxReplicas", default=None)
    ray_start_params: dict[str, str] = _json("rayStartParams", default_factory=dict)
    template: PodTemplateSpec = _json("template", default_factory=PodTemplateSpec)
    scale_strategy: ScaleStrategy = _json("scaleStrategy", default_factory=ScaleStrategy)


class ClusterState(str, Enum):
    """The overall state of a Ray cluster."""

    READY = "ready"
    UNHEALTHY = "unHealthy"
    FAILED = "failed"


class RayNodeType(str, Enum):
    """The role of a Ray node."""

    HEAD = "head"
    WORKER = "worker"


@dataclass
class RayClusterSpec:
    head_group_spec: HeadGroupSpec = _json("headGroupSpec", default_factory=HeadGroupSpec)
    worker_group_specs: list[WorkerGroupSpec] = _json(
        "workerGroupSpecs", omitempty=True, default_factory=list
    )
    ray_version: str = _json("rayVersion", omitempty=True, default="")
    enable_in_tree_autoscaling: bool | None = _json(
        "enableInTreeAutoscaling", omitempty=True, default=None
    )


@dataclass
class RayClusterStatus:
    state: ClusterState | None = _json("state", omitempty=True, default=None)
    available_worker_replicas: int = _json("availableWorkerReplicas", omitempty=True, default=0)
    desired_worker_replicas: int = _json("desiredWorkerReplicas", omitempty=True, default=0)
    min_worker_replicas: int = _json("minWorkerReplicas", omitempty=True, default=0)
    max_worker_replicas: int = _json("maxWorkerReplicas", omitempty=True, default=0)
    last_update_time: datetime | None = _json("lastUpdateTime", omitempty=True, default=None)


@dataclass
class RayCluster:
    """A Ray cluster custom resource."""

    metadata: ObjectMeta = _json("metadata", default_factory=ObjectMeta)
    spec: RayClusterSpec = _json("spec", default_factory=RayClusterSpec)
    status: RayClusterStatus = _json("status", default_factory=RayClusterStatus)
    kind: str = _json("kind", omitempty=True, default="")
    api_version: str = _json("apiVersion", omitempty=True, default="")

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> str:
        return self.metadata.namespace

    @property
    def labels(self) -> dict[str, str]:
        return self.metadata.labels

    @property
    def annotations(self) -> dict[str, str]:
        return self.metadata.annotations

    def to_dict(self) -> dict[str, Any]:
        """Return the object in its wire form."""
        data = _encode(self)
        ordered = {key: data.pop(key) for key in ("kind", "apiVersion") if key in data}
        ordered.update(data)
        return ordered

    def to_json(self) -> str:
        """Serialise the object to compact JSON."""
        return json.dumps(self.to_dict(), separators=(",", ":"))


@dataclass
class RayClusterList:
    """A list of Ray clusters."""

    items: list[RayCluster] = field(default_factory=list)
    kind: str = ""
    api_version: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Return the list in its wire form."""
        out: dict[str, Any] = {}
        if self.kind:
            out["kind"] = self.kind
        if self.api_version:
            out["apiVersion"] = self.api_version
        out["items"] = [item.to_dict() for item in self.items]
        return out