"""Error taxonomy for the asset pipeline."""
from __future__ import annotations


class AssetError(Exception):
    """Base class for asset generation errors."""


class SourceFetchError(AssetError):
    """Logo URL could not be retrieved. Callers fall back to solid-colour rendering."""


class SynthesisError(AssetError):
    """An image transform failed for one artifact (corrupt or unsupported logo)."""


class InvalidColorError(AssetError, ValueError):
    pass


class StorageError(AssetError):
    def __init__(self, key: str, message: str):
        super().__init__(f"{key}: {message}")
        self.key = key


class UploadError(StorageError):
    pass


class DeleteError(StorageError):
    pass
