"""Label and annotation keys, defaults, and client options."""

from dataclasses import dataclass

RAY_CLUSTER_NAME_LABEL_KEY = "ray.io/cluster-name"
RAY_CLUSTER_USER_LABEL_KEY = "ray.io/user"
RAY_CLUSTER_VERSION_LABEL_KEY = "ray.io/version"
RAY_CLUSTER_ENVIRONMENT_LABEL_KEY = "ray.io/environment"

RAY_CLUSTER_COMPUTE_TEMPLATE_ANNOTATION_KEY = "ray.io/compute-template"
RAY_CLUSTER_IMAGE_ANNOTATION_KEY = "ray.io/compute-image"

RAY_CLUSTER_DEFAULT_IMAGE_REPOSITORY = "rayproject/ray"


@dataclass(frozen=True)
class ClientOptions:
    """Rate limits for a cluster API client."""

    qps: float = 5.0
    burst: int = 10