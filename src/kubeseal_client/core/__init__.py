"""Core infrastructure subpackage.

This package contains the main Kubeseal facade class along with
cluster access utilities.
"""

from kubeseal_client.core.cluster import Cluster
from kubeseal_client.core.kubeseal import Kubeseal

__all__ = [
    "Cluster",
    "Kubeseal",
]
