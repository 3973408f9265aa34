"""Repository provisioning exports."""

from .models import ProvisionFailure, ProvisionResult, ProvisionStatus
from .provisioner import RemoteUrlSupplier, RepositoryProvisioner

__all__ = [
    "ProvisionFailure",
    "ProvisionResult",
    "ProvisionStatus",
    "RemoteUrlSupplier",
    "RepositoryProvisioner",
]
