"""API Schemas and validation models."""
from api.schemas.requests import ActionPostRequest, DeadAssetsRequest, VerifyAssetRequest

__all__ = [
    "ActionPostRequest",
    "DeadAssetsRequest",
    "VerifyAssetRequest",
]
