"""Building blocks for reconciling GCP shoot infrastructure: state store, task flows, Terraform state, config validation and machine class helpers."""

__version__ = "0.1.0"