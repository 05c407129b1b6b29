"""
Storage module for S3-compatible object storage.

Clients upload directly to the bucket using presigned URLs; the backend
never receives file bytes.
"""
from app.storage.signer import (
    StorageConfig,
    StorageSigner,
    PresignedRequest,
    build_storage_key,
    get_storage_signer,
)
from app.storage.upload_session import UploadSessionService, UploadFinalization, UploadSlot

__all__ = [
    "StorageConfig",
    "StorageSigner",
    "PresignedRequest",
    "build_storage_key",
    "get_storage_signer",
    "UploadSessionService",
    "UploadFinalization",
    "UploadSlot",
]
