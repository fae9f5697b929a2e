# kuberay

Life cycle management of Ray clusters.

The package models Ray cluster custom resources (`kuberay.types`) and the
client-facing cluster and compute-template messages (`kuberay.model`), builds
cluster resources and compute-template config maps from those messages
(`kuberay.builder`), keeps them behind a resource manager with pluggable
clients (`kuberay.resources`), and offers request handlers for a cluster
service and a compute-template service (`kuberay.services`). A small command
line reads and changes its own settings.

## Installation

```
pip install .
```

## Command line

The `kuberay` command reads its settings from `~/.kuberay.yaml`, or from the
file given with `--config`. When no `--config` is given and the file in the
home directory does not exist yet, it is created with the default settings.
The only supported key is `endpoint`, which defaults to `127.0.0.1:8887`; an
`ENDPOINT` environment variable takes precedence over the file.

```
kuberay version
kuberay info
kuberay config get endpoint
kuberay config set endpoint 10.0.0.5:8887
kuberay config reset
```

`version` prints the version string, `info` prints the version and the
operating system. `config get` and `config set` refuse any key other than
`endpoint` and exit with status 1.

Global options:

- `-l`, `--log-level` – which message kinds are logged: 0 for the fewest, 3 by default, 4 adds debugging
- `-C`, `--color` – `true`, `false` or `fabulous`
- `--config` – path of the settings file
- `-t`, `--toggle` – accepted and ignored

## Library use

```python
from kuberay.model import Cluster, ClusterSpec, ComputeTemplate, HeadGroupSpec, WorkerGroupSpec
from kuberay.resources import ClientManager, ResourceManager
from kuberay.services import (
    ClusterServer,
    ComputeTemplateServer,
    CreateClusterRequest,
    CreateComputeTemplateRequest,
)

manager = ResourceManager(ClientManager())
templates = ComputeTemplateServer(manager)
templates.create_compute_template(
    CreateComputeTemplateRequest(ComputeTemplate(name="small", cpu=2, memory=4))
)

clusters = ClusterServer(manager)
cluster = clusters.create_cluster(
    CreateClusterRequest(
        Cluster(
            name="demo",
            user="alice",
            version="1.9.0",
            cluster_spec=ClusterSpec(
                head_group_spec=HeadGroupSpec(compute_template="small"),
                worker_group_spec=[
                    WorkerGroupSpec(
                        group_name="workers",
                        compute_template="small",
                        replicas=2,
                        min_replicas=1,
                        max_replicas=4,
                    )
                ],
            ),
        )
    )
)
```

Other helpers:

- `kuberay.payloads.build_cluster` and `build_compute_template` turn
  `ClusterCreateOptions` and `ComputeTemplateCreateOptions` into messages.
- `kuberay.tables` turns clusters and compute templates into rows and renders
  bordered text tables with `render_table`.
- `RayCluster.to_dict()` and `RayCluster.to_json()` give the wire form of a
  cluster resource.

Validation and creation failures are raised as `kuberay.errors.UserError`,
which carries an internal message for debugging and an external message with
a `StatusCode` for clients. Looking up an object that does not exist raises a
`WrappedError` around a `StatusError` whose reason is `NotFound`
(`kuberay.errors.is_not_found` recognises the latter).

## What this package does not do

- It does not talk to a real cluster. `ClientManager` uses in-memory clients
  by default; objects live only as long as the process. Other storage can be
  supplied through the `ray_cluster_client_factory` and
  `config_map_client_factory` arguments.
- It runs no network server. The services are plain Python handlers; there is
  no RPC or HTTP endpoint and no metrics endpoint.
- The command line has no commands for creating, listing or deleting clusters
  or compute templates; it only manages its own settings and reports version
  and host information.

## Tests

```
pip install .[test]
pytest
```