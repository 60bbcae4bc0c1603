"""ORM models.  Importing this package registers every table on Base.metadata."""

from inventory_kernel.models.acquisition_request import AcquisitionRequestModel
from inventory_kernel.models.asset import AssetModel
from inventory_kernel.models.claim import ClaimModel

__all__ = [
    "AcquisitionRequestModel",
    "AssetModel",
    "ClaimModel",
]
