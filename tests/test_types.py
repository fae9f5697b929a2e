import json

import pytest

from kuberay.types import (
    GROUP_VERSION,
    ClusterState,
    Container,
    ContainerPort,
    EnvVar,
    EnvVarSource,
    ExecAction,
    GroupResource,
    GroupVersion,
    HeadGroupSpec,
    Lifecycle,
    ObjectFieldSelector,
    ObjectMeta,
    PodSpec,
    PodTemplateSpec,
    RayCluster,
    RayClusterList,
    RayClusterSpec,
    RayNodeType,
    WorkerGroupSpec,
    resource,
)


def _pod_ip_env():
    return EnvVar(
        name="MY_POD_IP",
        value_from=EnvVarSource(field_ref=ObjectFieldSelector(field_path="status.podIP")),
    )


@pytest.fixture
def my_ray_cluster():
    return RayCluster(
        metadata=ObjectMeta(name="raycluster-sample", namespace="default"),
        spec=RayClusterSpec(
            ray_version="1.0",
            head_group_spec=HeadGroupSpec(
                replicas=1,
                ray_start_params={
                    "port": "6379",
                    "object-manager-port": "12345",
                    "node-manager-port": "12346",
                    "object-store-memory": "100000000",
                    "redis-password": "password",
                    "num-cpus": "1",
                },
                template=PodTemplateSpec(
                    metadata=ObjectMeta(
                        namespace="default",
                        labels={"rayCluster": "raycluster-sample", "groupName": "headgroup"},
                    ),
                    spec=PodSpec(
                        containers=[
                            Container(
                                name="ray-head",
                                image="rayproject/autoscaler",
                                command=["python"],
                                args=["/opt/code.py"],
                                env=[_pod_ip_env()],
                            )
                        ]
                    ),
                ),
            ),
            worker_group_specs=[
                WorkerGroupSpec(
                    replicas=3,
                    min_replicas=0,
                    max_replicas=10000,
                    group_name="small-group",
                    ray_start_params={
                        "port": "6379",
                        "redis-password": "password",
                        "num-cpus": "1",
                    },
                    template=PodTemplateSpec(
                        metadata=ObjectMeta(
                            namespace="default",
                            labels={"rayCluster": "raycluster-sample", "groupName": "small-group"},
                        ),
                        spec=PodSpec(
                            containers=[
                                Container(
                                    name="ray-worker",
                                    image="rayproject/autoscaler",
                                    command=["echo"],
                                    args=["Hello Ray"],
                                    env=[_pod_ip_env()],
                                )
                            ]
                        ),
                    ),
                )
            ],
        ),
    )


def test_marshalling(my_ray_cluster):
    text = my_ray_cluster.to_json()
    assert json.loads(text) == my_ray_cluster.to_dict()


def test_marshalled_fields(my_ray_cluster):
    data = my_ray_cluster.to_dict()
    assert data["metadata"] == {"name": "raycluster-sample", "namespace": "default"}
    assert data["spec"]["rayVersion"] == "1.0"
    head = data["spec"]["headGroupSpec"]
    assert head["replicas"] == 1
    assert head["rayStartParams"]["redis-password"] == "password"
    container = head["template"]["spec"]["containers"][0]
    assert container["name"] == "ray-head"
    assert container["command"] == ["python"]
    assert container["args"] == ["/opt/code.py"]
    assert container["env"][0]["valueFrom"]["fieldRef"]["fieldPath"] == "status.podIP"


def test_worker_replicas_keep_explicit_zero(my_ray_cluster):
    worker = my_ray_cluster.to_dict()["spec"]["workerGroupSpecs"][0]
    assert worker["replicas"] == 3
    assert worker["minReplicas"] == 0
    assert worker["maxReplicas"] == 10000
    assert worker["groupName"] == "small-group"


def test_unset_pointer_is_null():
    cluster = RayCluster(metadata=ObjectMeta(name="c"))
    data = cluster.to_dict()
    assert data["spec"]["headGroupSpec"]["replicas"] is None
    assert "workerGroupSpecs" not in data["spec"]
    assert "rayVersion" not in data["spec"]


def test_lifecycle_wraps_exec():
    container = Container(
        name="ray-worker",
        ports=[ContainerPort(container_port=80)],
        lifecycle=Lifecycle(pre_stop=ExecAction(command=["/bin/sh", "-c", "ray stop"])),
    )
    cluster = RayCluster(
        spec=RayClusterSpec(
            head_group_spec=HeadGroupSpec(
                template=PodTemplateSpec(spec=PodSpec(containers=[container]))
            )
        )
    )
    encoded = cluster.to_dict()["spec"]["headGroupSpec"]["template"]["spec"]["containers"][0]
    assert encoded["lifecycle"] == {"preStop": {"exec": {"command": ["/bin/sh", "-c", "ray stop"]}}}
    assert encoded["ports"] == [{"containerPort": 80}]


def test_cluster_properties(my_ray_cluster):
    assert my_ray_cluster.name == "raycluster-sample"
    assert my_ray_cluster.namespace == "default"


def test_list_to_dict(my_ray_cluster):
    data = RayClusterList(items=[my_ray_cluster, RayCluster()]).to_dict()
    assert len(data["items"]) == 2
    assert data["items"][0] == my_ray_cluster.to_dict()


def test_group_version():
    assert GROUP_VERSION == GroupVersion(group="ray.io", version="v1alpha1")
    assert str(GROUP_VERSION) == "ray.io/v1alpha1"
    assert resource("rayclusters") == GroupResource(group="ray.io", resource="rayclusters")


def test_enum_values():
    assert ClusterState.READY.value == "ready"
    assert ClusterState("unHealthy") is ClusterState.UNHEALTHY
    assert RayNodeType("worker") is RayNodeType.WORKER