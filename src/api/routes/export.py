from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse, RedirectResponse

from src.api.deps import get_context
from src.context import PipelineContext
from src.export import DownloadResult, ExportSummary, collect_assets, download_asset

router = APIRouter(prefix="/api/export", tags=["export"])


@router.get("/assets/{video_id}", response_model=ExportSummary)
def assets(video_id: str, ctx: PipelineContext = Depends(get_context)):
    return collect_assets(ctx, video_id)


@router.get("/download/{video_id}/{asset_type}", response_model=DownloadResult)
def download(video_id: str, asset_type: str, ctx: PipelineContext = Depends(get_context)):
    return download_asset(ctx, video_id, asset_type)


@router.get("/file/{video_id}/{asset_type}")
def file(video_id: str, asset_type: str, ctx: PipelineContext = Depends(get_context)):
    """Same as ``download`` but answers with the text itself or a redirect."""
    result = download_asset(ctx, video_id, asset_type)
    if result.kind == "text":
        return PlainTextResponse(
            result.content or "",
            headers={"Content-Disposition": f'attachment; filename="{result.filename}"'},
        )
    return RedirectResponse(result.download_url, status_code=307)
