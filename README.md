# gcpprovider

A library of pieces for reconciling Google Cloud infrastructure for Kubernetes
shoot clusters. It does not talk to Google Cloud itself. You pass in the
compute client, and the library supplies the logic around it.

## Modules

- **`gcpprovider.whiteboard`**: `Whiteboard`, a thread-safe, hierarchical
  key/value store.
  - It counts changes with a generation counter (`current_generation`).
  - It keeps an object cache (`set_object`, `get_object`, `has_object`,
    `delete_object`).
  - It can import from and export to flat maps with path-like keys
    (`"child/sub/key"`). `is_valid_value` tells whether an exported value is
    neither empty nor the deleted marker.
- **`gcpprovider.tfstate`**: parses Terraform state.
  - `unmarshal_terraform_state`, `unmarshal_terraform_state_from_terraformer`
    (for a `RawState` with encoding `"none"` or `"base64"`) and
    `load_terraform_state_from_config_map_data` read the state. Errors are
    raised as `TerraformStateError`.
  - Lookup helpers on `TerraformState` include
    `find_managed_resources_by_type`, `get_managed_resource_instance_id`,
    `get_managed_resource_instance_attribute` and
    `get_managed_resource_instances`.
- **`gcpprovider.flow`**: a small dependency graph of tasks.
  - `Graph.add` adds a `Task` and returns its id.
  - `Graph.compile` returns a `Flow`, and `Flow.run` executes it.
  - A failed task keeps its dependents from running. All failures are raised
    together as a `FlowError`.
- **`gcpprovider.flow_context`**: `BasicFlowContext`.
  - Its `add_task` wraps tasks with the options `dependencies(...)`,
    `timeout(...)` and `do_if(...)`.
  - After each task it calls `persist_state(False)`. That passes the exported
    whiteboard to a persistor callback if the state changed and
    `persist_interval` seconds have passed.
  - Inside a task, `log_from_context()` returns a logger tagged with the flow
    and task names.
- **`gcpprovider.flowstate`**: `FlowState` is the JSON marker that says state
  is managed by the flow reconciler. Helpers: `new_flow_state`,
  `is_json_flow_state` and `flow_state_from_json`. The module also holds the
  `OBJECT_KEY_*` names used for cached objects.
- **`gcpprovider.features`**: `FeatureGate`, `FeatureSpec`,
  `EXTENSION_FEATURE_GATE` and `register_extension_feature_gate`, which
  registers the `DisableGardenerServiceAccountCreation` gate (default on).
- **`gcpprovider.config`**: the infrastructure configuration model.
  `infrastructure_config_from_dict` builds an `InfrastructureConfig` from its
  JSON document form.
- **`gcpprovider.targets`**: builders for the desired state of GCP resources.
  - `target_network`, `target_subnet_state`, `target_router_state` and
    `target_nat_state`.
  - The firewall rule builders `firewall_rule_allow_internal`,
    `firewall_rule_allow_external` and `firewall_rule_allow_health_checks`.
  - Naming helpers such as `vpc_name`, `subnet_name`, `cloud_router_name` and
    `cloud_nat_name`.
  - `is_user_vpc` and `is_user_router`.
- **`gcpprovider.configvalidator`**: `ConfigValidator` checks that Cloud NAT
  IP names exist and are free or used only by the cluster's router. Problems
  come back as a list of `FieldError`s. `validate_networks` does the same
  check for a `NetworkConfig` directly.
- **`gcpprovider.machines`**: helpers for worker machine classes.
  - Label sanitising: `sanitize_gcp_label`, `sanitize_gcp_label_value`,
    `get_gce_pool_labels`.
  - Disks: `disk_size`, `create_disk_spec`, `add_disk_encryption_details`.
  - Capacity and scheduling: `initialize_capacity`, `set_scheduling_policy`.
  - Machine images: `find_machine_image` (raises
    `MachineImageNotFoundError`) and `append_machine_image`.

## What it does not do

The package has no Google Cloud API client, no controllers that watch
resources, and no command to run. It does not generate complete machine
classes or deployments for worker pools. It provides the pieces such code is
built from.

## Installation

```
pip install .
```

Install the test extra and run the tests:

```
pip install ".[test]"
pytest
```

## Examples

Sanitising GCE labels:

```python
from gcpprovider.machines import sanitize_gcp_label, sanitize_gcp_label_value

sanitize_gcp_label("////Abcd-efg")        # "abcd-efg"
sanitize_gcp_label_value("////Abcd-efg")  # "____abcd-efg"
```

Working with the whiteboard:

```python
from gcpprovider.whiteboard import Whiteboard

wb = Whiteboard()
wb.import_from_flat_map({"key1": "id1", "child/key2": "id2"})
wb.get_child("child").get("key2")   # "id2"
wb.set_as_deleted("key1")
wb.export_as_flat_map()             # {"key1": "<deleted>", "child/key2": "id2"}
```

Reading Terraform state:

```python
from gcpprovider.tfstate import RawState, unmarshal_terraform_state_from_terraformer

json_text = '{"version": 4, "resources": []}'
state = unmarshal_terraform_state_from_terraformer(RawState(data=json_text, encoding="none"))
state.get_managed_resource_instances("google_compute_network")   # {}
```