"""
Image Generation

- OpenAI Images (DALL-E 3) for article illustrations
- Gemini image models over the generateContent REST API
- LLM-written image suggestions for an article
"""

import asyncio
import base64
import logging
import os
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

import httpx
import openai

from .base import VendorClient
from .llm import LLMClient
from .result import ApiResult

logger = logging.getLogger(__name__)

STYLE_INSTRUCTIONS = {
    "realistic": "photorealistic, high-quality, professional photography",
    "illustration": "digital illustration, clean lines, modern flat design",
    "diagram": "clear diagram, labeled components, educational",
    "infographic": "infographic style, data visualization, clean design",
    "abstract": "abstract representation, modern art style, professional",
}

GEMINI_STYLE_MODIFIERS = {
    "realistic": "photorealistic, high quality, detailed, professional photography",
    "artistic": "artistic, creative, painterly, expressive",
    "illustrated": "illustrated, clean design, vector-style, minimal, flat design",
    "photographic": "photographic style, natural lighting, high resolution, DSLR quality",
}

GEMINI_SIZE_SPECS = {
    "small": "512x512",
    "medium": "1024x1024",
    "large": "1536x1536",
}


@dataclass
class GeneratedImageData:
    url: str
    alt_text: str
    caption: str
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def build_prompt(prompt: str, style: str = "realistic", article_context: Optional[str] = None) -> str:
    """Decorate a prompt with style instructions and optional article context."""
    parts = [prompt.strip()]
    if article_context:
        parts.append(f"Context: {article_context[:300]}")
    parts.append(f"Style: {STYLE_INSTRUCTIONS.get(style, STYLE_INSTRUCTIONS['realistic'])}")
    parts.append("No text or watermarks in the image.")
    return ". ".join(parts)


def image_caption(style: Optional[str]) -> str:
    captions = {
        "realistic": "Professional photograph illustrating the topic",
        "illustration": "Illustration highlighting the key concept",
        "diagram": "Diagram explaining the process",
        "infographic": "Infographic summarizing the key data",
        "abstract": "Abstract visual representing the idea",
    }
    return captions.get(style or "", "AI-generated visual content")


class GeminiClient(VendorClient):
    """Gemini generateContent REST client for image generation and editing."""

    BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
    ERROR_PREFIX = "GEMINI"
    IMAGE_MODEL = "gemini-2.5-flash-image"

    def __init__(
        self,
        api_key: str,
        timeout: float = 120.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not api_key:
            raise ValueError("GOOGLE_API_KEY not provided")

        super().__init__(
            headers={"x-goog-api-key": api_key, "Content-Type": "application/json"},
            timeout=timeout,
            transport=transport,
        )
        self._transport = transport

    async def generate_content(self, parts: List[Dict[str, Any]], model: Optional[str] = None) -> ApiResult[List[Dict[str, Any]]]:
        """Call generateContent and return the first candidate's parts."""
        result = await self._request(
            "POST",
            f"/models/{model or self.IMAGE_MODEL}:generateContent",
            json={"contents": [{"parts": parts}]},
        )
        if not result.success:
            return result

        candidates = (result.data or {}).get("candidates") or []
        if not candidates:
            return ApiResult.fail("GEMINI_EMPTY_RESPONSE", "Gemini returned no candidates", 502)
        return ApiResult.ok((candidates[0].get("content") or {}).get("parts") or [])

    async def generate_image(self, prompt: str, image: Optional[Dict[str, str]] = None) -> ApiResult[str]:
        """
        Generate (or edit, when `image` is given) an image.

        Args:
            prompt: Text prompt
            image: Optional {"mime_type", "data" (base64)} source image

        Returns:
            ApiResult with a data: URL of the first returned image
        """
        parts: List[Dict[str, Any]] = [{"text": prompt}]
        if image:
            parts.append({"inline_data": {"mime_type": image["mime_type"], "data": image["data"]}})

        result = await self.generate_content(parts)
        if not result.success:
            return result

        for part in result.data:
            inline = part.get("inlineData") or part.get("inline_data")
            if inline and inline.get("data"):
                mime = inline.get("mimeType") or inline.get("mime_type") or "image/png"
                return ApiResult.ok(f"data:{mime};base64,{inline['data']}")

        return ApiResult.fail("GEMINI_NO_IMAGE", "Gemini response contained no image", 502)

    async def fetch_image(self, url: str) -> ApiResult[Dict[str, str]]:
        """Download an image and return it base64-encoded for inline use."""
        try:
            async with httpx.AsyncClient(timeout=30.0, transport=self._transport) as client:
                response = await client.get(url, follow_redirects=True)
        except httpx.HTTPError as e:
            return ApiResult.fail("GEMINI_NETWORK_ERROR", str(e), 0)
        if not response.is_success:
            return ApiResult.fail("GEMINI_HTTP_ERROR", f"Could not fetch source image: HTTP {response.status_code}", response.status_code)

        mime = response.headers.get("content-type", "image/png").split(";")[0]
        return ApiResult.ok({"mime_type": mime, "data": base64.b64encode(response.content).decode()})


class ImageClient:
    """
    Facade over OpenAI Images, Gemini, and the LLM for image workflows.

    Usage:
        images = ImageClient(llm=llm)
        result = await images.generate_openai("A team reviewing SEO charts", style="illustration")
    """

    def __init__(
        self,
        llm: Optional[LLMClient] = None,
        openai_client: Optional[openai.AsyncOpenAI] = None,
        gemini: Optional[GeminiClient] = None,
    ):
        self.llm = llm
        api_key = os.getenv("OPENAI_API_KEY")
        self._openai = openai_client or (openai.AsyncOpenAI(api_key=api_key) if api_key else None)
        google_key = os.getenv("GOOGLE_API_KEY")
        self.gemini = gemini or (GeminiClient(google_key) if google_key else None)

    async def suggest_prompts(
        self,
        topic: str,
        count: int = 3,
        content: str = "",
        target_keyword: Optional[str] = None,
    ) -> ApiResult[List[Dict[str, Any]]]:
        """Ask the LLM where images belong in an article and what they should show."""
        if self.llm is None:
            raise ValueError("LLM client required for image suggestions")

        prompt = (
            f"Suggest {count} images for this article.\n"
            f"Title: {topic}\n"
            f"Target keyword: {target_keyword or 'n/a'}\n"
            f"Content excerpt:\n{content[:2000] or 'n/a'}\n\n"
            'Return JSON: {"suggestions": [{"prompt": str, "placement": str, '
            '"style": "realistic|illustration|diagram|infographic|abstract", "alt_text": str}]}'
        )
        result = await self.llm.complete_json(prompt, system="You are a visual content strategist.")
        if not result.success:
            return result

        suggestions = result.data.get("suggestions", []) if isinstance(result.data, dict) else []
        return ApiResult.ok(suggestions[:count])

    async def generate_openai(
        self,
        prompt: str,
        style: str = "realistic",
        size: str = "1024x1024",
        quality: str = "standard",
        article_context: Optional[str] = None,
        alt_text: Optional[str] = None,
        n: int = 1,
    ) -> ApiResult[List[GeneratedImageData]]:
        """Generate DALL-E 3 images (the API only accepts n=1 for this model, so larger n loops)."""
        if self._openai is None:
            raise ValueError("OPENAI_API_KEY not provided")

        final_prompt = build_prompt(prompt, style, article_context)
        items = []
        for _ in range(max(1, n)):
            try:
                response = await self._openai.images.generate(
                    model="dall-e-3",
                    prompt=final_prompt,
                    n=1,
                    size=size,
                    quality=quality,
                    style="natural" if style == "realistic" else "vivid",
                )
            except openai.APIStatusError as e:
                logger.error(f"OpenAI image error: {e}")
                return ApiResult.fail("OPENAI_ERROR", str(e), e.status_code)
            except openai.APIError as e:
                logger.error(f"OpenAI image error: {e}")
                return ApiResult.fail("OPENAI_ERROR", str(e), 0)
            items.extend(response.data or [])

        images = [
            GeneratedImageData(
                url=item.url or f"data:image/png;base64,{item.b64_json}",
                alt_text=alt_text or prompt[:125],
                caption=image_caption(style),
                metadata={
                    "provider": "openai",
                    "model": "dall-e-3",
                    "style": style,
                    "size": size,
                    "quality": quality,
                    "revised_prompt": getattr(item, "revised_prompt", None),
                },
            )
            for item in items
        ]
        return ApiResult.ok(images)

    async def generate_variations(
        self,
        prompt: str,
        article_context: Optional[str] = None,
        styles: Optional[List[str]] = None,
    ) -> ApiResult[List[GeneratedImageData]]:
        """One OpenAI image per style. Fails only if every style fails."""
        styles = styles or ["realistic", "illustration", "infographic"]
        results = await asyncio.gather(
            *(self.generate_openai(prompt, style=style, article_context=article_context) for style in styles)
        )

        images = [image for result in results if result.success for image in result.data]
        if not images:
            first_error = next(r.error for r in results if not r.success)
            return ApiResult.fail(first_error.code, first_error.message, first_error.status_code)
        return ApiResult.ok(images)

    async def generate_gemini(
        self,
        prompt: str,
        style: str = "realistic",
        size: str = "medium",
    ) -> ApiResult[GeneratedImageData]:
        if self.gemini is None:
            raise ValueError("GOOGLE_API_KEY not provided")

        enhanced = (
            f"{prompt}. Style: {GEMINI_STYLE_MODIFIERS.get(style, GEMINI_STYLE_MODIFIERS['realistic'])}. "
            f"Dimensions: {GEMINI_SIZE_SPECS.get(size, GEMINI_SIZE_SPECS['medium'])}. High quality, professional."
        )
        result = await self.gemini.generate_image(enhanced)
        if not result.success:
            return result

        return ApiResult.ok(
            GeneratedImageData(
                url=result.data,
                alt_text=prompt[:125],
                caption=image_caption(style),
                metadata={"provider": "gemini", "model": GeminiClient.IMAGE_MODEL, "style": style, "size": size},
            )
        )

    async def edit_gemini(self, edit_prompt: str, image: str) -> ApiResult[GeneratedImageData]:
        """
        Edit an existing image with a text instruction.

        Args:
            edit_prompt: What to change
            image: http(s) URL, data: URL, or raw base64 PNG
        """
        if self.gemini is None:
            raise ValueError("GOOGLE_API_KEY not provided")

        if image.startswith("data:"):
            header, _, data = image.partition(",")
            source = {"mime_type": header[5:].split(";")[0] or "image/png", "data": data}
        elif image.startswith(("http://", "https://")):
            fetched = await self.gemini.fetch_image(image)
            if not fetched.success:
                return fetched
            source = fetched.data
        else:
            source = {"mime_type": "image/png", "data": image}

        result = await self.gemini.generate_image(
            f"{edit_prompt}. Maintain the original composition and quality.",
            image=source,
        )
        if not result.success:
            return result

        return ApiResult.ok(
            GeneratedImageData(
                url=result.data,
                alt_text=edit_prompt[:125],
                caption="Edited image",
                metadata={"provider": "gemini", "model": GeminiClient.IMAGE_MODEL, "edited_from": image[:200] if image.startswith("http") else "inline"},
            )
        )

    async def variations_gemini(
        self,
        base_prompt: str,
        styles: Optional[List[str]] = None,
    ) -> ApiResult[Dict[str, Any]]:
        """Generate one Gemini image per style, reporting failures alongside successes."""
        styles = styles or ["realistic", "artistic", "illustrated"]
        results = await asyncio.gather(*(self.generate_gemini(base_prompt, style=style) for style in styles))

        images, failed = [], []
        for style, result in zip(styles, results):
            if result.success:
                images.append(result.data)
            else:
                failed.append({"style": style, "error": result.error.message})

        if not images:
            return ApiResult.fail("GEMINI_ERROR", "All image variations failed", 502)
        return ApiResult.ok({"images": images, "failed": failed})

    async def close(self):
        if self.gemini is not None:
            await self.gemini.close()
