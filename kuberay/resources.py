"""Access to cluster resources and compute templates in the cluster API."""

from __future__ import annotations

import copy
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Callable, Generic, TypeVar

from kuberay import builder
from kuberay import model as api
from kuberay import types as crd
from kuberay.clock import Clock, RealTime
from kuberay.constants import RAY_CLUSTER_NAME_LABEL_KEY
from kuberay.errors import (
    StatusError,
    new_already_exist_error,
    new_internal_server_error,
    new_invalid_input_error,
    wrap,
)

logger = logging.getLogger(__name__)

DEFAULT_NAMESPACE = "ray-system"
COMPUTE_TEMPLATE_SELECTOR = "ray.io/config-type=compute-template"
CREATION_TIMESTAMP_ANNOTATION_KEY = "ray.io/creation-timestamp"

_REASON_ALREADY_EXISTS = "AlreadyExists"
_REASON_INVALID = "Invalid"
_REASON_BAD_REQUEST = "BadRequest"

T = TypeVar("T", crd.RayCluster, crd.ConfigMap)


def _parse_selector(selector: str) -> dict[str, str]:
    """Parse an equality label selector such as ``a=b,c==d``."""
    wanted: dict[str, str] = {}
    for part in selector.split(","):
        part = part.strip()
        if not part:
            continue
        key, sep, value = part.partition("=")
        if not sep or not key.strip():
            raise ValueError(f"unsupported label selector: {part!r}")
        if value.startswith("="):
            value = value[1:]
        wanted[key.strip()] = value.strip()
    return wanted


def _matches(labels: dict[str, str], wanted: dict[str, str]) -> bool:
    return all(labels.get(key) == value for key, value in wanted.items())


def _go_time_string(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    text = value.strftime("%Y-%m-%d %H:%M:%S")
    if value.microsecond:
        text += "." + f"{value.microsecond:06d}".rstrip("0")
    return f"{text} +0000 UTC"


class _ObjectStore(Generic[T]):
    """Objects of one kind in one namespace, keyed by name."""

    def __init__(self, kind: str, namespace: str, clock: Clock):
        self.kind = kind
        self.namespace = namespace
        self.clock = clock
        self.objects: dict[str, T] = {}

    def create(self, obj: T) -> T:
        name = obj.metadata.name
        if not name:
            raise StatusError(f"{self.kind}.metadata.name: Required value", _REASON_INVALID)
        if name in self.objects:
            raise StatusError(f'{self.kind} "{name}" already exists', _REASON_ALREADY_EXISTS)
        stored = copy.deepcopy(obj)
        if not stored.metadata.namespace:
            stored.metadata.namespace = self.namespace
        elif stored.metadata.namespace != self.namespace:
            raise StatusError(
                "the namespace of the provided object does not match the namespace "
                "sent on the request",
                _REASON_BAD_REQUEST,
            )
        if stored.metadata.creation_timestamp is None:
            stored.metadata.creation_timestamp = self.clock.now()
        self.objects[name] = stored
        return copy.deepcopy(stored)

    def get(self, name: str) -> T:
        try:
            return copy.deepcopy(self.objects[name])
        except KeyError:
            raise StatusError.not_found(self.kind, name) from None

    def list(self, label_selector: str) -> list[T]:
        wanted = _parse_selector(label_selector)
        return [
            copy.deepcopy(obj)
            for name, obj in sorted(self.objects.items())
            if _matches(obj.metadata.labels, wanted)
        ]

    def delete(self, name: str) -> None:
        if name not in self.objects:
            raise StatusError.not_found(self.kind, name)
        del self.objects[name]


class RayClusterClient(ABC):
    """Operations on Ray cluster resources in one namespace."""

    @abstractmethod
    def create(self, cluster: crd.RayCluster) -> crd.RayCluster:
        """Store a new cluster and return it as stored."""

    @abstractmethod
    def get(self, name: str) -> crd.RayCluster:
        """Return the named cluster."""

    @abstractmethod
    def list(self, label_selector: str = "") -> list[crd.RayCluster]:
        """Return the clusters whose labels match the selector."""

    @abstractmethod
    def delete(self, name: str) -> None:
        """Remove the named cluster."""


class ConfigMapClient(ABC):
    """Operations on config maps in one namespace."""

    @abstractmethod
    def create(self, config_map: crd.ConfigMap) -> crd.ConfigMap:
        """Store a new config map and return it as stored."""

    @abstractmethod
    def get(self, name: str) -> crd.ConfigMap:
        """Return the named config map."""

    @abstractmethod
    def list(self, label_selector: str = "") -> list[crd.ConfigMap]:
        """Return the config maps whose labels match the selector."""

    @abstractmethod
    def delete(self, name: str) -> None:
        """Remove the named config map."""


class InMemoryRayClusterClient(RayClusterClient):
    """Ray clusters held in memory."""

    def __init__(self, namespace: str = DEFAULT_NAMESPACE, clock: Clock | None = None):
        self._store: _ObjectStore[crd.RayCluster] = _ObjectStore(
            "rayclusters.ray.io", namespace, clock or RealTime()
        )

    @property
    def namespace(self) -> str:
        return self._store.namespace

    def create(self, cluster: crd.RayCluster) -> crd.RayCluster:
        return self._store.create(cluster)

    def get(self, name: str) -> crd.RayCluster:
        return self._store.get(name)

    def list(self, label_selector: str = "") -> list[crd.RayCluster]:
        return self._store.list(label_selector)

    def delete(self, name: str) -> None:
        self._store.delete(name)


class InMemoryConfigMapClient(ConfigMapClient):
    """Config maps held in memory."""

    def __init__(self, namespace: str = DEFAULT_NAMESPACE, clock: Clock | None = None):
        self._store: _ObjectStore[crd.ConfigMap] = _ObjectStore(
            "configmaps", namespace, clock or RealTime()
        )

    @property
    def namespace(self) -> str:
        return self._store.namespace

    def create(self, config_map: crd.ConfigMap) -> crd.ConfigMap:
        return self._store.create(config_map)

    def get(self, name: str) -> crd.ConfigMap:
        return self._store.get(name)

    def list(self, label_selector: str = "") -> list[crd.ConfigMap]:
        return self._store.list(label_selector)

    def delete(self, name: str) -> None:
        self._store.delete(name)


class ClientManager:
    """Holds the per-namespace resource clients and the clock."""

    def __init__(
        self,
        clock: Clock | None = None,
        *,
        ray_cluster_client_factory: Callable[[str], RayClusterClient] | None = None,
        config_map_client_factory: Callable[[str], ConfigMapClient] | None = None,
    ):
        logger.info("Initializing client manager")
        self.clock: Clock = clock or RealTime()
        self._ray_cluster_factory = ray_cluster_client_factory or (
            lambda namespace: InMemoryRayClusterClient(namespace, self.clock)
        )
        self._config_map_factory = config_map_client_factory or (
            lambda namespace: InMemoryConfigMapClient(namespace, self.clock)
        )
        self._ray_cluster_clients: dict[str, RayClusterClient] = {}
        self._config_map_clients: dict[str, ConfigMapClient] = {}
        logger.info("Client manager initialized successfully")

    def ray_cluster_client(self, namespace: str) -> RayClusterClient:
        if namespace not in self._ray_cluster_clients:
            self._ray_cluster_clients[namespace] = self._ray_cluster_factory(namespace)
        return self._ray_cluster_clients[namespace]

    def config_map_client(self, namespace: str) -> ConfigMapClient:
        if namespace not in self._config_map_clients:
            self._config_map_clients[namespace] = self._config_map_factory(namespace)
        return self._config_map_clients[namespace]


def _get_cluster_by_name(client: RayClusterClient, name: str) -> crd.RayCluster:
    try:
        return client.get(name)
    except Exception as err:
        raise wrap(err, "Get Cluster failed")


def _get_compute_template_by_name(client: ConfigMapClient, name: str) -> crd.ConfigMap:
    try:
        return client.get(name)
    except Exception as err:
        raise wrap(err, "Get compute template failed")


def _single(items: list[T], what: str, name: str) -> T:
    if len(items) > 1:
        raise LookupError(f"find {len(items)} duplicates {what}")
    if not items:
        raise LookupError(f"can not find {what} with name {name}")
    return items[0]


def _get_cluster_by_name_from_label(client: RayClusterClient, name: str) -> crd.RayCluster:
    try:
        clusters = client.list(f"{RAY_CLUSTER_NAME_LABEL_KEY}={name}")
    except Exception as err:
        raise wrap(err, "Get Cluster failed")
    return _single(clusters, "clusters", name)


def _get_compute_template_by_label(client: ConfigMapClient, name: str) -> crd.ConfigMap:
    selector = f"ray.io/compute-runtime={name},ray.io/config-type=compute-runtime"
    try:
        runtimes = client.list(selector)
    except Exception as err:
        raise wrap(err, "Get compute runtime failed")
    return _single(runtimes, "compute runtimes", name)


class ResourceManager:
    """Cluster and compute-template operations used by the services."""

    def __init__(self, client_manager: ClientManager):
        self.client_manager = client_manager

    def _clusters(self, namespace: str = DEFAULT_NAMESPACE) -> RayClusterClient:
        return self.client_manager.ray_cluster_client(namespace)

    def _config_maps(self) -> ConfigMapClient:
        return self.client_manager.config_map_client(DEFAULT_NAMESPACE)

    def create_cluster(self, api_cluster: api.Cluster) -> crd.RayCluster:
        namespace = api_cluster.namespace or DEFAULT_NAMESPACE
        try:
            templates = self._populate_compute_templates(api_cluster)
        except Exception as err:
            raise new_internal_server_error(
                err,
                f"Failed to populate compute template for "
                f"({api_cluster.namespace}/{api_cluster.name})",
            )

        cluster = builder.new_ray_cluster(api_cluster, templates)
        cluster.metadata.annotations[CREATION_TIMESTAMP_ANNOTATION_KEY] = _go_time_string(
            self.client_manager.clock.now()
        )
        try:
            return self._clusters(namespace).create(cluster)
        except Exception as err:
            raise new_internal_server_error(
                err, f"Failed to create a cluster for ({cluster.namespace}/{cluster.name})"
            )

    def _populate_compute_templates(self, cluster: api.Cluster) -> dict[str, api.ComputeTemplate]:
        spec = cluster.cluster_spec
        names = [spec.head_group_spec.compute_template]
        names.extend(worker.compute_template for worker in spec.worker_group_spec)
        templates: dict[str, api.ComputeTemplate] = {}
        for name in names:
            if name not in templates:
                config_map = self.get_compute_template(name)
                templates[name] = api.from_kube_to_api_compute_template(config_map)
        return templates

    def get_cluster(self, cluster_name: str) -> crd.RayCluster:
        if not cluster_name:
            raise new_invalid_input_error("clusterName is empty, failed to get the cluster.")
        return _get_cluster_by_name(self._clusters(), cluster_name)

    def list_clusters(self) -> list[crd.RayCluster]:
        try:
            return self._clusters().list("")
        except Exception as err:
            raise wrap(err, "List RayCluster failed")

    def delete_cluster(self, cluster_name: str) -> None:
        if not cluster_name:
            raise new_invalid_input_error("clusterName is empty, failed to delete the cluster.")
        client = self._clusters()
        try:
            cluster = _get_cluster_by_name(client, cluster_name)
        except Exception as err:
            raise wrap(err, "Get cluster failure")
        try:
            client.delete(cluster.name)
        except Exception as err:
            raise new_internal_server_error(err, f"Failed to delete cluster {cluster_name}.")

    def create_compute_template(self, runtime: api.ComputeTemplate) -> crd.ConfigMap:
        try:
            self.get_compute_template(runtime.name)
        except Exception:
            pass
        else:
            raise new_already_exist_error(
                f"Compute template with name {runtime.name} already exists "
                f"in namespace {DEFAULT_NAMESPACE}"
            )

        try:
            config_map = builder.new_compute_template(runtime, DEFAULT_NAMESPACE)
        except Exception as err:
            raise new_internal_server_error(
                err, f"Failed to convert compute runtime ({DEFAULT_NAMESPACE}/{runtime.name})"
            )
        try:
            return self._config_maps().create(config_map)
        except Exception as err:
            raise new_internal_server_error(
                err,
                f"Failed to create a compute runtime for ({DEFAULT_NAMESPACE}/{runtime.name})",
            )

    def get_compute_template(self, name: str) -> crd.ConfigMap:
        return _get_compute_template_by_name(self._config_maps(), name)

    def list_compute_templates(self) -> list[crd.ConfigMap]:
        try:
            return self._config_maps().list(COMPUTE_TEMPLATE_SELECTOR)
        except Exception as err:
            raise wrap(err, "List compute runtimes failed")

    def delete_compute_template(self, name: str) -> None:
        client = self._config_maps()
        try:
            config_map = _get_compute_template_by_name(client, name)
        except Exception as err:
            raise wrap(err, "Get compute template failure")
        try:
            client.delete(config_map.name)
        except Exception as err:
            raise new_internal_server_error(err, f"failed to delete compute template {name}.")