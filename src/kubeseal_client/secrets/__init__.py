"""Secrets subpackage.

This package contains the hybrid sealing engine together with manifest
assembly, parsing, and user interaction prompts.
"""

from kubeseal_client.secrets.creation import build_sealed_secret, create_sealed_secret, merge_sealed_secret
from kubeseal_client.secrets.parsing import parse_secret_file, secret_from_manifest, write_manifest
from kubeseal_client.secrets.prompts import collect_secret_entries, collect_secret_parameters
from kubeseal_client.secrets.sealing import derive_label, hybrid_encrypt, load_public_key, seal_data, seal_value

__all__ = [
    # sealing
    "derive_label",
    "load_public_key",
    "hybrid_encrypt",
    "seal_value",
    "seal_data",
    # creation
    "build_sealed_secret",
    "create_sealed_secret",
    "merge_sealed_secret",
    # parsing
    "parse_secret_file",
    "secret_from_manifest",
    "write_manifest",
    # prompts
    "collect_secret_parameters",
    "collect_secret_entries",
]
