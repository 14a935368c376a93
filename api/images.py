"""
Image Generation API

Endpoints:
- POST /api/images/generate - One endpoint, dispatched on "action":
    suggestions, generate, variations, generate-gemini, edit-gemini, variations-gemini
- GET /api/images - The user's last 50 images
- DELETE /api/images/{image_id} - Remove an image
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from aeo.auth import get_current_user, rate_limit
from aeo.database import User, get_db
from aeo.database.repository import delete_image, image_to_dict, list_images, save_generated_image
from aeo.errors import ProviderError, ValidationError
from aeo.integrations import ExternalAPIClients, GeneratedImageData, ImageClient

from api.dependencies import get_clients

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/images",
    tags=["Images"],
    dependencies=[Depends(get_current_user)],
)

IMAGE_HISTORY_LIMIT = 50


class ImageActionRequest(BaseModel):
    """Fields used depend on the action; camelCase keys are accepted."""
    model_config = ConfigDict(populate_by_name=True)

    action: str
    # suggestions
    title: Optional[str] = None
    content: Optional[str] = None
    target_keyword: Optional[str] = Field(None, alias="targetKeyword")
    count: int = Field(3, ge=1, le=10)
    # generate / variations / generate-gemini
    prompt: Optional[str] = None
    style: str = "realistic"
    size: Optional[str] = None
    quality: str = "standard"
    article_context: Optional[str] = Field(None, alias="articleContext")
    alt_text: Optional[str] = Field(None, alias="altText")
    n: int = Field(1, ge=1, le=4)
    # edit-gemini
    image_url: Optional[str] = Field(None, alias="imageUrl")
    edit_prompt: Optional[str] = Field(None, alias="editPrompt")
    # variations-gemini
    base_prompt: Optional[str] = Field(None, alias="basePrompt")
    styles: Optional[List[str]] = None


def _required(value: Optional[str], name: str) -> str:
    if not value:
        raise ValidationError(f"{name} is required")
    return value


def _store_images(db: Session, user_id: str, images: List[GeneratedImageData]) -> None:
    """A storage failure is logged and the generated images are still returned."""
    try:
        for image in images:
            save_generated_image(db, user_id, image.url, image.alt_text, image.caption, image.metadata)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to store images in database: {e}")


async def run_action(request: ImageActionRequest, images: ImageClient) -> Dict[str, Any]:
    """
    Dispatch one image action.

    Returns:
        {"data": JSON-ready payload, "images": GeneratedImageData to store}
    """
    action = request.action

    if action == "suggestions":
        result = await images.suggest_prompts(
            _required(request.title, "title"),
            count=request.count,
            content=request.content or "",
            target_keyword=request.target_keyword,
        )
        return {"data": result.unwrap(images.llm.default_provider), "images": []}

    if action == "generate":
        result = await images.generate_openai(
            _required(request.prompt, "prompt"),
            style=request.style,
            size=request.size or "1024x1024",
            quality=request.quality,
            article_context=request.article_context,
            alt_text=request.alt_text,
            n=request.n,
        )
        generated = result.unwrap("openai")
        return {"data": [image.to_dict() for image in generated], "images": generated}

    if action == "variations":
        result = await images.generate_variations(
            _required(request.prompt, "prompt"),
            article_context=request.article_context,
            styles=request.styles,
        )
        generated = result.unwrap("openai")
        return {"data": [image.to_dict() for image in generated], "images": generated}

    if action == "generate-gemini":
        result = await images.generate_gemini(
            _required(request.prompt, "prompt"),
            style=request.style,
            size=request.size or "medium",
        )
        image = result.unwrap("gemini")
        return {"data": image.to_dict(), "images": [image]}

    if action == "edit-gemini":
        result = await images.edit_gemini(
            _required(request.edit_prompt, "editPrompt"),
            _required(request.image_url, "imageUrl"),
        )
        image = result.unwrap("gemini")
        return {"data": image.to_dict(), "images": [image]}

    if action == "variations-gemini":
        result = await images.variations_gemini(_required(request.base_prompt, "basePrompt"), styles=request.styles)
        data = result.unwrap("gemini")
        return {
            "data": {"images": [image.to_dict() for image in data["images"]], "failed": data["failed"]},
            "images": data["images"],
        }

    raise ValidationError("Invalid action")


@router.post("/generate")
async def generate_images(
    request: ImageActionRequest,
    current_user: User = Depends(rate_limit("image_generation")),
    clients: ExternalAPIClients = Depends(get_clients),
    db: Session = Depends(get_db),
):
    try:
        outcome = await run_action(request, clients.images)
    except ValueError as e:
        # Raised by ImageClient when the provider has no credentials
        raise ProviderError(str(e), provider="images", status_code=503, retryable=False)

    if outcome["images"]:
        _store_images(db, current_user.id, outcome["images"])

    return {"success": True, "data": outcome["data"]}


@router.get("")
async def get_images(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    rows = list_images(db, current_user.id, limit=IMAGE_HISTORY_LIMIT)
    return {"success": True, "data": [image_to_dict(row) for row in rows]}


@router.delete("/{image_id}")
async def remove_image(
    image_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if not delete_image(db, current_user.id, image_id):
        raise HTTPException(status_code=404, detail="Image not found")
    return {"success": True}
