"""
Stripe Catalog Sync

Keeps a tabular product catalog (CODE / NAME / DESCRIPTION / PRICE / IMAGE)
and the Stripe product catalog in sync in both directions.

Usage:
    from stripe_catalog_sync import ExportPipeline, ImageStore, StripeClient, SyncConfig, PathConfig

    config = SyncConfig.from_env()
    client = StripeClient(config)
    images = ImageStore(client, PathConfig().image_dir)
    report = ExportPipeline(client, images, PathConfig()).run(limit=100)
"""

from .assets import ImageStore
from .client import StripeClient
from .config import PathConfig, SyncConfig
from .errors import ErrorKind, SyncError
from .pipeline import ExportPipeline, ImportPipeline, RunReport

__version__ = "1.0.0"
__all__ = [
    "ErrorKind",
    "ExportPipeline",
    "ImageStore",
    "ImportPipeline",
    "PathConfig",
    "RunReport",
    "StripeClient",
    "SyncConfig",
    "SyncError",
]
