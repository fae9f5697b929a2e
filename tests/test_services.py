import logging

import pytest

from kuberay import model as api
from kuberay.clock import new_fake_time_for_epoch
from kuberay.errors import StatusCode, UserError, WrappedError
from kuberay.resources import ClientManager, ResourceManager
from kuberay.services import (
    ClusterServer,
    ClusterServerOptions,
    ComputeTemplateServer,
    CreateClusterRequest,
    CreateComputeTemplateRequest,
    DeleteClusterRequest,
    DeleteComputeTemplateRequest,
    GetClusterRequest,
    GetComputeTemplateRequest,
    ListClustersRequest,
    ListComputeTemplatesRequest,
    intercept,
    validate_create_cluster_request,
    validate_create_compute_template_request,
)


def _worker(**overrides):
    values = dict(
        group_name="workers",
        compute_template="small",
        image="rayproject/ray:1.9.0",
        replicas=2,
        min_replicas=1,
        max_replicas=3,
    )
    values.update(overrides)
    return api.WorkerGroupSpec(**values)


def _cluster(name="demo", user="alice", head_template="small", workers=None):
    return api.Cluster(
        name=name,
        user=user,
        version="1.9.0",
        environment=api.Environment.STAGING,
        cluster_spec=api.ClusterSpec(
            head_group_spec=api.HeadGroupSpec(
                compute_template=head_template,
                image="rayproject/ray:1.9.0",
                service_type="ClusterIP",
            ),
            worker_group_spec=[_worker()] if workers is None else workers,
        ),
    )


@pytest.fixture
def servers():
    manager = ResourceManager(ClientManager(clock=new_fake_time_for_epoch()))
    return ClusterServer(manager, ClusterServerOptions()), ComputeTemplateServer(manager)


@pytest.fixture
def seeded(servers):
    _, templates = servers
    templates.create_compute_template(
        CreateComputeTemplateRequest(api.ComputeTemplate(name="small", cpu=2, memory=4))
    )
    return servers


@pytest.mark.parametrize(
    "cluster, message",
    [
        (_cluster(name=""), "Cluster name is empty. Please specify a valid value."),
        (
            _cluster(user=""),
            "User who create the cluster is empty. Please specify a valid value.",
        ),
        (
            _cluster(head_template=""),
            "HeadGroupSpec compute template is empty. Please specify a valid value.",
        ),
        (
            _cluster(workers=[_worker(group_name="")]),
            "WorkerNodeSpec 0 group name is empty. Please specify a valid value.",
        ),
        (
            _cluster(workers=[_worker(), _worker(compute_template="")]),
            "WorkerNodeSpec 1 compute template is empty. Please specify a valid value.",
        ),
        (
            _cluster(workers=[_worker(max_replicas=0, min_replicas=0)]),
            "WorkerNodeSpec 0 MaxReplicas can not be 0. Please specify a valid value.",
        ),
        (
            _cluster(workers=[_worker(min_replicas=5)]),
            "WorkerNodeSpec 0 MinReplica > MaxReplicas. Please specify a valid value.",
        ),
    ],
)
def test_validate_create_cluster_request(cluster, message):
    with pytest.raises(UserError) as info:
        validate_create_cluster_request(CreateClusterRequest(cluster))
    assert info.value.external_message == message
    assert info.value.external_status_code == StatusCode.INVALID_ARGUMENT


@pytest.mark.parametrize(
    "template, message",
    [
        (api.ComputeTemplate(cpu=1, memory=1), "Cluster name is empty. Please specify a valid value."),
        (api.ComputeTemplate(name="t", memory=1), "Cpu amount is zero. Please specify a valid value."),
        (api.ComputeTemplate(name="t", cpu=1), "Memory amount is zero. Please specify a valid value."),
    ],
)
def test_validate_create_compute_template_request(template, message):
    with pytest.raises(UserError) as info:
        validate_create_compute_template_request(CreateComputeTemplateRequest(template))
    assert info.value.external_message == message


def test_compute_template_service_round_trip(servers):
    _, templates = servers
    template = api.ComputeTemplate(name="gpu", cpu=4, memory=16, gpu=1, gpu_accelerator="t4")
    assert templates.create_compute_template(CreateComputeTemplateRequest(template)) == template
    assert templates.get_compute_template(GetComputeTemplateRequest("gpu")) == template
    listed = templates.list_compute_templates(ListComputeTemplatesRequest())
    assert listed.compute_templates == [template]
    templates.delete_compute_template(DeleteComputeTemplateRequest("gpu"))
    assert templates.list_compute_templates(ListComputeTemplatesRequest()).compute_templates == []


def test_create_invalid_compute_template(servers):
    _, templates = servers
    with pytest.raises(UserError) as info:
        templates.create_compute_template(CreateComputeTemplateRequest(api.ComputeTemplate()))
    assert "Validate compute runtime request failed." in str(info.value)


def test_get_missing_compute_template(servers):
    _, templates = servers
    with pytest.raises(WrappedError) as info:
        templates.get_compute_template(GetComputeTemplateRequest("absent"))
    assert "Get cluster runtime failed." in str(info.value)


def test_create_and_get_cluster(seeded):
    clusters, _ = seeded
    created = clusters.create_cluster(CreateClusterRequest(_cluster()))
    assert created.name == "demo"
    assert created.user == "alice"
    assert created.namespace == "ray-system"
    assert created.environment == api.Environment.STAGING
    assert created.cluster_spec.head_group_spec.compute_template == "small"
    worker = created.cluster_spec.worker_group_spec[0]
    # The reported minimum and maximum are swapped on the way back.
    assert (worker.max_replicas, worker.min_replicas) == (1, 3)
    assert clusters.get_cluster(GetClusterRequest("demo")) == created


def test_create_invalid_cluster(seeded):
    clusters, _ = seeded
    with pytest.raises(UserError) as info:
        clusters.create_cluster(CreateClusterRequest(_cluster(name="")))
    assert "Validate cluster request failed." in str(info.value)
    assert info.value.external_message == "Cluster name is empty. Please specify a valid value."


def test_create_cluster_without_template(servers):
    clusters, _ = servers
    with pytest.raises(UserError) as info:
        clusters.create_cluster(CreateClusterRequest(_cluster()))
    assert "Create Cluster failed." in str(info.value)
    assert info.value.external_status_code == StatusCode.INTERNAL


def test_list_and_delete_clusters(seeded):
    clusters, _ = seeded
    clusters.create_cluster(CreateClusterRequest(_cluster(name="b")))
    clusters.create_cluster(CreateClusterRequest(_cluster(name="a")))
    names = [c.name for c in clusters.list_cluster(ListClustersRequest()).clusters]
    assert names == ["a", "b"]
    clusters.delete_cluster(DeleteClusterRequest("a"))
    names = [c.name for c in clusters.list_cluster(ListClustersRequest()).clusters]
    assert names == ["b"]
    with pytest.raises(WrappedError) as info:
        clusters.get_cluster(GetClusterRequest("a"))
    assert "Get cluster failed." in str(info.value)


def test_delete_missing_cluster(seeded):
    clusters, _ = seeded
    with pytest.raises(WrappedError) as info:
        clusters.delete_cluster(DeleteClusterRequest("absent"))
    assert "Get cluster failure" in str(info.value)


def test_intercept_returns_handler_result(caplog):
    caplog.set_level(logging.INFO, logger="kuberay.services")
    result = intercept("/svc/Echo", "ping", lambda request: request.upper())
    assert result == "PING"
    assert "/svc/Echo handler starting" in caplog.messages
    assert "/svc/Echo handler finished" in caplog.messages


def test_intercept_logs_finish_on_error(caplog):
    caplog.set_level(logging.INFO, logger="kuberay.services")

    def failing(request):
        raise KeyError(request)

    with pytest.raises(KeyError):
        intercept("/svc/Fail", "x", failing)
    assert caplog.messages[-1] == "/svc/Fail handler finished"