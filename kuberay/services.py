"""Request handlers for the cluster and compute-template services."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable

from kuberay import model as api
from kuberay.errors import new_invalid_input_error, wrap
from kuberay.resources import ResourceManager

logger = logging.getLogger(__name__)


@dataclass
class ClusterServerOptions:
    collect_metrics: bool = True


@dataclass
class ComputeTemplateServerOptions:
    collect_metrics: bool = True


@dataclass
class CreateClusterRequest:
    cluster: api.Cluster = field(default_factory=api.Cluster)


@dataclass
class GetClusterRequest:
    name: str = ""


@dataclass
class ListClustersRequest:
    pass


@dataclass
class ListClustersResponse:
    clusters: list[api.Cluster] = field(default_factory=list)


@dataclass
class DeleteClusterRequest:
    name: str = ""


@dataclass
class CreateComputeTemplateRequest:
    compute_template: api.ComputeTemplate = field(default_factory=api.ComputeTemplate)


@dataclass
class GetComputeTemplateRequest:
    name: str = ""


@dataclass
class ListComputeTemplatesRequest:
    pass


@dataclass
class ListComputeTemplatesResponse:
    compute_templates: list[api.ComputeTemplate] = field(default_factory=list)


@dataclass
class DeleteComputeTemplateRequest:
    name: str = ""


def validate_create_cluster_request(request: CreateClusterRequest) -> None:
    """Raise a user error describing the first problem with the request."""
    cluster = request.cluster
    if not cluster.name:
        raise new_invalid_input_error("Cluster name is empty. Please specify a valid value.")
    if not cluster.user:
        raise new_invalid_input_error(
            "User who create the cluster is empty. Please specify a valid value."
        )
    if not cluster.cluster_spec.head_group_spec.compute_template:
        raise new_invalid_input_error(
            "HeadGroupSpec compute template is empty. Please specify a valid value."
        )
    for index, spec in enumerate(cluster.cluster_spec.worker_group_spec):
        if not spec.group_name:
            raise new_invalid_input_error(
                f"WorkerNodeSpec {index} group name is empty. Please specify a valid value."
            )
        if not spec.compute_template:
            raise new_invalid_input_error(
                f"WorkerNodeSpec {index} compute template is empty. Please specify a valid value."
            )
        if spec.max_replicas == 0:
            raise new_invalid_input_error(
                f"WorkerNodeSpec {index} MaxReplicas can not be 0. Please specify a valid value."
            )
        if spec.min_replicas > spec.max_replicas:
            raise new_invalid_input_error(
                f"WorkerNodeSpec {index} MinReplica > MaxReplicas. Please specify a valid value."
            )


def validate_create_compute_template_request(request: CreateComputeTemplateRequest) -> None:
    """Raise a user error describing the first problem with the request."""
    template = request.compute_template
    if not template.name:
        raise new_invalid_input_error("Cluster name is empty. Please specify a valid value.")
    if template.cpu == 0:
        raise new_invalid_input_error("Cpu amount is zero. Please specify a valid value.")
    if template.memory == 0:
        raise new_invalid_input_error("Memory amount is zero. Please specify a valid value.")


class ClusterServer:
    """Handlers for the cluster service."""

    def __init__(
        self, resource_manager: ResourceManager, options: ClusterServerOptions | None = None
    ):
        self.resource_manager = resource_manager
        self.options = options or ClusterServerOptions()

    def create_cluster(self, request: CreateClusterRequest) -> api.Cluster:
        try:
            validate_create_cluster_request(request)
        except Exception as err:
            raise wrap(err, "Validate cluster request failed.")
        try:
            cluster = self.resource_manager.create_cluster(request.cluster)
        except Exception as err:
            raise wrap(err, "Create Cluster failed.")
        return api.from_crd_to_api_cluster(cluster)

    def get_cluster(self, request: GetClusterRequest) -> api.Cluster:
        try:
            cluster = self.resource_manager.get_cluster(request.name)
        except Exception as err:
            raise wrap(err, "Get cluster failed.")
        return api.from_crd_to_api_cluster(cluster)

    def list_cluster(self, request: ListClustersRequest) -> ListClustersResponse:
        try:
            clusters = self.resource_manager.list_clusters()
        except Exception as err:
            raise wrap(err, "List clusters failed.")
        return ListClustersResponse(clusters=api.from_crd_to_api_clusters(clusters))

    def delete_cluster(self, request: DeleteClusterRequest) -> None:
        self.resource_manager.delete_cluster(request.name)


class ComputeTemplateServer:
    """Handlers for the compute-template service."""

    def __init__(
        self,
        resource_manager: ResourceManager,
        options: ComputeTemplateServerOptions | None = None,
    ):
        self.resource_manager = resource_manager
        self.options = options or ComputeTemplateServerOptions()

    def create_compute_template(self, request: CreateComputeTemplateRequest) -> api.ComputeTemplate:
        try:
            validate_create_compute_template_request(request)
        except Exception as err:
            raise wrap(err, "Validate compute runtime request failed.")
        try:
            runtime = self.resource_manager.create_compute_template(request.compute_template)
        except Exception as err:
            raise wrap(err, "Create Compute Runtime failed.")
        return api.from_kube_to_api_compute_template(runtime)

    def get_compute_template(self, request: GetComputeTemplateRequest) -> api.ComputeTemplate:
        try:
            runtime = self.resource_manager.get_compute_template(request.name)
        except Exception as err:
            raise wrap(err, "Get cluster runtime failed.")
        return api.from_kube_to_api_compute_template(runtime)

    def list_compute_templates(
        self, request: ListComputeTemplatesRequest
    ) -> ListComputeTemplatesResponse:
        try:
            runtimes = self.resource_manager.list_compute_templates()
        except Exception as err:
            raise wrap(err, "List cluster runtime failed.")
        return ListComputeTemplatesResponse(
            compute_templates=api.from_kube_to_api_compute_templates(runtimes)
        )

    def delete_compute_template(self, request: DeleteComputeTemplateRequest) -> None:
        self.resource_manager.delete_compute_template(request.name)


def intercept(full_method: str, request: Any, handler: Callable[[Any], Any]) -> Any:
    """Run ``handler`` on ``request``, logging when it starts and finishes."""
    logger.info("%s handler starting", full_method)
    try:
        return handler(request)
    finally:
        logger.info("%s handler finished", full_method)