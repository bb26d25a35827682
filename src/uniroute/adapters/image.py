"""Image adapters: generation, edit and variation.

Rules:
- Generation needs a prompt (<= 4000 chars); size and n are checked per model.
- Edit needs a source PNG and a prompt; an optional mask must also be PNG.
- Variation needs a source PNG and no prompt.
- Uploaded images must be under 4 MB.
"""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Type

from ..endpoints import IMAGE_MAX_BYTES, IMAGE_UPLOAD_FORMATS
from ..errors import ImageEditError, ImageGenerationError, ImageVariationError, ValidationError
from ..multipart import inspect_file
from ..types import UniformResponse
from .base import EndpointAdapter, is_blank, sub

DEFAULT_IMAGE_MODEL = "dall-e-2"
MAX_PROMPT_CHARS = 4000
QUALITIES = ("standard", "hd")
STYLES = ("vivid", "natural")

def valid_sizes(model: str) -> List[str]:
    if model == "dall-e-3":
        return ["1024x1024", "1792x1024", "1024x1792"]
    return ["256x256", "512x512", "1024x1024"]

def _count(image: Dict[str, Any]) -> Any:
    n = image.get("n")
    return 1 if n is None else n

def _check_common(image: Dict[str, Any], model: str, error_cls: Type[ValidationError]) -> None:
    size = image.get("size") or "1024x1024"
    if size not in valid_sizes(model):
        raise error_cls("image.size", f"size must be one of {', '.join(valid_sizes(model))} for {model}")

    n = _count(image)
    max_n = 1 if model == "dall-e-3" else 10
    if isinstance(n, bool) or not isinstance(n, int) or not 1 <= n <= max_n:
        raise error_cls("image.n", f"n must be an integer between 1 and {max_n} for {model}")

def _check_upload(path: Any, param: str, error_cls: Type[ValidationError]) -> None:
    if not isinstance(path, (str, Path)):
        raise error_cls(param, "file path must be a string")
    inspect_file(path, param, IMAGE_MAX_BYTES, IMAGE_UPLOAD_FORMATS, "image")

class _ImageAdapter(EndpointAdapter):
    def transform_response(self, raw: Dict[str, Any]) -> UniformResponse:
        images = raw.get("data")
        images = list(images) if isinstance(images, list) else []
        return UniformResponse(
            id=self.make_id(raw),
            status="completed",
            type=self.type_name,
            images=images,
            metadata={
                "created": raw.get("created"),
                "count": len(images),
            },
            raw=raw,
        )

class ImageGenerationAdapter(_ImageAdapter):
    type_name = "image_generation"
    id_prefix = "image_generation_"

    def transform_request(self, request: Dict[str, Any]) -> Dict[str, Any]:
        image = sub(request, "image")
        prompt = image.get("prompt")
        if prompt is None:
            raise ImageGenerationError("image.prompt", "a prompt is required for generation")
        prompt = str(prompt)
        if is_blank(prompt):
            raise ImageGenerationError("image.prompt", "prompt cannot be empty")
        if len(prompt) > MAX_PROMPT_CHARS:
            raise ImageGenerationError("image.prompt", f"prompt length must be <= {MAX_PROMPT_CHARS} characters")

        model = image.get("model") or DEFAULT_IMAGE_MODEL
        _check_common(image, model, ImageGenerationError)

        quality = image.get("quality")
        if quality is not None and quality not in QUALITIES:
            raise ImageGenerationError("image.quality", f"quality must be one of {', '.join(QUALITIES)}")
        style = image.get("style")
        if style is not None and style not in STYLES:
            raise ImageGenerationError("image.style", f"style must be one of {', '.join(STYLES)}")

        return {
            "prompt": prompt,
            "model": model,
            "n": _count(image),
            "size": image.get("size") or "1024x1024",
            "quality": quality,
            "style": style,
            "response_format": image.get("response_format") or "url",
        }

class ImageEditAdapter(_ImageAdapter):
    type_name = "image_edit"
    id_prefix = "image_edit_"

    def transform_request(self, request: Dict[str, Any]) -> Dict[str, Any]:
        image = sub(request, "image")
        source = image.get("image")
        mask = image.get("mask")
        prompt = image.get("prompt")

        if source is None:
            raise ImageEditError("image.image", "a source image is required for editing")
        if is_blank(prompt):
            raise ImageEditError("image.prompt", "a prompt is required for editing")

        _check_upload(source, "image.image", ImageEditError)
        if mask is not None:
            _check_upload(mask, "image.mask", ImageEditError)

        model = image.get("model") or DEFAULT_IMAGE_MODEL
        _check_common(image, model, ImageEditError)

        return {
            "image": source,
            "prompt": str(prompt),
            "mask": mask,
            "model": model,
            "n": _count(image),
            "size": image.get("size") or "1024x1024",
            "response_format": image.get("response_format") or "url",
        }

class ImageVariationAdapter(_ImageAdapter):
    type_name = "image_variation"
    id_prefix = "image_variation_"

    def transform_request(self, request: Dict[str, Any]) -> Dict[str, Any]:
        image = sub(request, "image")
        source = image.get("image")
        if source is None:
            raise ImageVariationError("image.image", "a source image is required for variations")
        _check_upload(source, "image.image", ImageVariationError)

        model = image.get("model") or DEFAULT_IMAGE_MODEL
        _check_common(image, model, ImageVariationError)

        return {
            "image": source,
            "model": model,
            "n": _count(image),
            "size": image.get("size") or "1024x1024",
            "response_format": image.get("response_format") or "url",
        }
