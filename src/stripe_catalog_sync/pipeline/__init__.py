"""
Catalog synchronization pipelines

- ExportPipeline: Stripe -> catalog table (with image download)
- ImportPipeline: catalog table -> Stripe (with image publication and id write-back)
"""

from .export_pipeline import ExportPipeline, ExportState
from .import_pipeline import ImportPipeline, ImportState
from .report import Decision, Outcome, RunReport

__all__ = [
    "Decision",
    "ExportPipeline",
    "ExportState",
    "ImportPipeline",
    "ImportState",
    "Outcome",
    "RunReport",
]
