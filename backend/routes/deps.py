"""Shared FastAPI dependencies for the asset routes."""
from __future__ import annotations

from fastapi import Depends

from assets.synchronizer import AssetSynchronizer
from s3_client import ObjectStore, get_store


def get_synchronizer(store: ObjectStore = Depends(get_store)) -> AssetSynchronizer:
    return AssetSynchronizer(store)
