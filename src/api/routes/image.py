from __future__ import annotations

from dataclasses import asdict
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from pydantic import BaseModel, Field

from src.api.deps import current_user, get_context
from src.context import PipelineContext
from src.models import Visual, VisualVariant
from src.visuals import (
    apply_filter,
    choose_variant,
    estimate_visuals,
    generate_image,
    proceed_ready,
    save_image,
    save_visual_markers,
    search_wikimedia,
    tag_visuals,
    upload_image,
)
from src.visuals.markers import VisualMarker
from src.visuals.sourcing import visuals_with_variants

router = APIRouter(prefix="/api/image", tags=["image"])


class AutoTagRequest(BaseModel):
    script: str
    seconds_per_visual: float = 8
    video_id: Optional[str] = None


class MarkerModel(BaseModel):
    number: int
    description: str
    keywords: List[str] = Field(default_factory=list)


class AutoTagResponse(BaseModel):
    tagged_script: str
    target_count: int
    markers: List[MarkerModel]
    visuals: List[Visual] = Field(default_factory=list)


class SaveMarkersRequest(BaseModel):
    video_id: str
    markers: List[MarkerModel]


class SearchRequest(BaseModel):
    keywords: str
    limit: int = 3
    media_filter: str = "all"
    quality_filter: str = "all"


class GenerateRequest(BaseModel):
    video_id: str
    visual_number: int
    description: str
    style: str = "18th_century_painting"
    aspect_ratio: str = "16:9"


class FilterRequest(BaseModel):
    video_id: str
    visual_number: int
    image_url: str = ""
    filter_type: str = "photorealistic"
    instructions: str = ""


class SaveRequest(BaseModel):
    video_id: str
    visual_number: int
    original_url: str
    processed_url: Optional[str] = None
    is_ai_generated: bool = False


class SelectRequest(BaseModel):
    video_id: str
    visual_number: int
    variant_id: str


class VisualWithVariants(BaseModel):
    visual: Visual
    variants: List[VisualVariant]


def _markers(items: List[MarkerModel]) -> List[VisualMarker]:
    return [VisualMarker(number=m.number, description=m.description, keywords=m.keywords) for m in items]


@router.post("/estimate")
def estimate(body: AutoTagRequest, _user: str = Depends(current_user)):
    return {"count": estimate_visuals(body.script, body.seconds_per_visual)}


@router.post("/auto-tag", response_model=AutoTagResponse)
def auto_tag(body: AutoTagRequest, ctx: PipelineContext = Depends(get_context)):
    if body.video_id:
        ctx.owned_script(body.video_id)
    tagged = tag_visuals(ctx, body.script, body.seconds_per_visual)
    markers = [MarkerModel(**asdict(m)) for m in tagged.markers]
    visuals = save_visual_markers(ctx, body.video_id, tagged.markers) if body.video_id else []
    return AutoTagResponse(
        tagged_script=tagged.text, target_count=tagged.target_count, markers=markers, visuals=visuals
    )


@router.post("/visuals", response_model=List[Visual])
def save_markers(body: SaveMarkersRequest, ctx: PipelineContext = Depends(get_context)):
    return save_visual_markers(ctx, body.video_id, _markers(body.markers))


@router.get("/visuals/{video_id}", response_model=List[VisualWithVariants])
def visuals(video_id: str, ctx: PipelineContext = Depends(get_context)):
    return [VisualWithVariants(visual=v, variants=variants) for v, variants in visuals_with_variants(ctx, video_id)]


@router.get("/ready/{video_id}")
def ready(video_id: str, ctx: PipelineContext = Depends(get_context)):
    return {"ready": proceed_ready(ctx, video_id)}


@router.post("/search-wikimedia")
def search(body: SearchRequest, _user: str = Depends(current_user)):
    results = search_wikimedia(body.keywords, body.limit, body.media_filter, body.quality_filter)
    return {"images": [asdict(r) for r in results]}


@router.post("/generate", response_model=VisualVariant)
def generate(body: GenerateRequest, ctx: PipelineContext = Depends(get_context)):
    return generate_image(ctx, body.video_id, body.visual_number, body.description, body.style, body.aspect_ratio)


@router.post("/filter", response_model=VisualVariant)
def filter_image(body: FilterRequest, ctx: PipelineContext = Depends(get_context)):
    return apply_filter(
        ctx, body.video_id, body.visual_number, body.image_url, body.filter_type, body.instructions
    )


@router.post("/save", response_model=VisualVariant)
def save(body: SaveRequest, ctx: PipelineContext = Depends(get_context)):
    return save_image(
        ctx,
        body.video_id,
        body.visual_number,
        body.original_url,
        processed_url=body.processed_url,
        is_ai_generated=body.is_ai_generated,
    )


@router.post("/select", response_model=VisualVariant)
def select(body: SelectRequest, ctx: PipelineContext = Depends(get_context)):
    return choose_variant(ctx, body.video_id, body.visual_number, body.variant_id)


@router.post("/upload", response_model=VisualVariant)
def upload(
    file: UploadFile = File(...),
    video_id: str = Form(...),
    visual_number: int = Form(...),
    ctx: PipelineContext = Depends(get_context),
):
    return upload_image(ctx, video_id, visual_number, file.file.read())
