import pytest

from uniroute.adapters import ImageEditAdapter, ImageGenerationAdapter, ImageVariationAdapter
from uniroute.adapters.image import valid_sizes
from uniroute.endpoints import IMAGE_MAX_BYTES
from uniroute.errors import (
    FileTooLargeError,
    ImageEditError,
    ImageGenerationError,
    ImageVariationError,
    UnsupportedFormatError,
)

def test_generation_defaults():
    out = ImageGenerationAdapter().transform_request({"image": {"prompt": "a cat"}})
    assert out == {
        "prompt": "a cat",
        "model": "dall-e-2",
        "n": 1,
        "size": "1024x1024",
        "quality": None,
        "style": None,
        "response_format": "url",
    }

def test_generation_dalle3_options():
    out = ImageGenerationAdapter().transform_request(
        {"image": {"prompt": "a cat", "model": "dall-e-3", "size": "1792x1024", "quality": "hd", "style": "natural"}}
    )
    assert out["size"] == "1792x1024"
    assert out["quality"] == "hd"

@pytest.mark.parametrize(
    "image, param",
    [
        ({}, "image.prompt"),
        ({"prompt": " "}, "image.prompt"),
        ({"prompt": "x" * 4001}, "image.prompt"),
        ({"prompt": "a", "size": "1792x1024"}, "image.size"),
        ({"prompt": "a", "model": "dall-e-3", "size": "256x256"}, "image.size"),
        ({"prompt": "a", "model": "dall-e-3", "n": 2}, "image.n"),
        ({"prompt": "a", "n": 11}, "image.n"),
        ({"prompt": "a", "n": 0}, "image.n"),
        ({"prompt": "a", "quality": "ultra"}, "image.quality"),
        ({"prompt": "a", "style": "pastel"}, "image.style"),
    ],
)
def test_generation_validation(image, param):
    with pytest.raises(ImageGenerationError) as ei:
        ImageGenerationAdapter().transform_request({"image": image})
    assert ei.value.param == param

def test_valid_sizes_per_model():
    assert "256x256" in valid_sizes("dall-e-2")
    assert "1024x1792" in valid_sizes("dall-e-3")
    assert "512x512" not in valid_sizes("dall-e-3")

def test_edit_request(write_file):
    src = write_file("x.png")
    mask = write_file("m.png")
    out = ImageEditAdapter().transform_request({"image": {"image": str(src), "mask": str(mask), "prompt": "add sky", "n": 2}})
    assert out["image"] == str(src)
    assert out["mask"] == str(mask)
    assert out["prompt"] == "add sky"
    assert out["n"] == 2
    assert out["response_format"] == "url"

def test_edit_requires_prompt(write_file):
    src = write_file("x.png")
    with pytest.raises(ImageEditError) as ei:
        ImageEditAdapter().transform_request({"image": {"image": str(src), "prompt": ""}})
    assert ei.value.param == "image.prompt"

def test_edit_requires_source():
    with pytest.raises(ImageEditError) as ei:
        ImageEditAdapter().transform_request({"image": {"prompt": "add sky"}})
    assert ei.value.param == "image.image"

def test_edit_mask_must_be_png(write_file):
    src = write_file("x.png")
    mask = write_file("m.jpg")
    with pytest.raises(UnsupportedFormatError) as ei:
        ImageEditAdapter().transform_request({"image": {"image": str(src), "mask": str(mask), "prompt": "p"}})
    assert ei.value.param == "image.mask"

def test_variation_request(write_file):
    src = write_file("x.png")
    out = ImageVariationAdapter().transform_request({"image": {"image": str(src), "size": "512x512"}})
    assert out == {"image": str(src), "model": "dall-e-2", "n": 1, "size": "512x512", "response_format": "url"}

def test_variation_rejects_large_upload(write_file):
    src = write_file("big.png", b"\x00" * (IMAGE_MAX_BYTES + 1))
    with pytest.raises(FileTooLargeError):
        ImageVariationAdapter().transform_request({"image": {"image": str(src)}})

def test_variation_requires_source():
    with pytest.raises(ImageVariationError):
        ImageVariationAdapter().transform_request({"image": {}})

def test_image_response():
    raw = {"created": 1700000000, "data": [{"url": "https://x/1.png"}, {"url": "https://x/2.png"}]}
    r = ImageGenerationAdapter().transform_response(raw)
    assert r.is_image()
    assert r.images == raw["data"]
    assert r.metadata == {"created": 1700000000, "count": 2}
    assert r.id.startswith("image_generation_")

def test_image_response_without_data():
    r = ImageVariationAdapter().transform_response({})
    assert r.images == []
    assert r.metadata["count"] == 0

def test_explicit_null_options_use_defaults(write_file):
    out = ImageGenerationAdapter().transform_request({"image": {"prompt": "a cat", "n": None, "size": None}})
    assert out["n"] == 1
    assert out["size"] == "1024x1024"

    src = write_file("x.png")
    out = ImageVariationAdapter().transform_request({"image": {"image": str(src), "n": None}})
    assert out["n"] == 1
