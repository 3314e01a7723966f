"""Export: asset readiness, project statistics and downloads."""

from .assets import ASSET_TYPES, COST_TABLE, ExportAsset, ExportStats, ExportSummary, classify, collect_assets
from .download import DownloadResult, download_asset

__all__ = [
    "ASSET_TYPES",
    "COST_TABLE",
    "DownloadResult",
    "ExportAsset",
    "ExportStats",
    "ExportSummary",
    "classify",
    "collect_assets",
    "download_asset",
]
