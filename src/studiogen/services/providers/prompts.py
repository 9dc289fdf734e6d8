"""Prompt enhancement and aspect-ratio tables for the generation providers."""

from studiogen.models.generation import CameraMovement

IMAGE_EDIT_TEMPLATE = (
    "keep the {product} exactly the same. turn it into a studio quality photo, "
    "with excellent lighting, contrasting background and realistic placement"
)

CAMERA_MOVEMENT_PHRASES: dict[CameraMovement, str] = {
    CameraMovement.STATIC: ". Keep the camera completely still and static throughout the video.",
    CameraMovement.ZOOM_IN: (
        ". Use a gradual zoom-in effect that brings the viewer closer to the product details."
    ),
    CameraMovement.ZOOM_OUT: (
        ". Use a gradual zoom-out effect that shows the product in its environment."
    ),
    CameraMovement.PAN_LEFT: ". Use a smooth leftward panning motion across the product.",
    CameraMovement.PAN_RIGHT: ". Use a smooth rightward panning motion across the product.",
    CameraMovement.ROTATE_AROUND: (
        ". Create a 360-degree rotation around the product, showing it from all angles."
    ),
    CameraMovement.DYNAMIC: (
        ". Use dynamic, intelligent camera movements that highlight the product effectively."
    ),
}

# Replicate flux-kontext-pro accepts named ratios only
REPLICATE_DEFAULT_RATIO = "match_input_image"
REPLICATE_ASPECT_RATIOS = frozenset(
    {
        "match_input_image",
        "1:1",
        "16:9",
        "9:16",
        "4:3",
        "3:4",
        "3:2",
        "2:3",
        "4:5",
        "5:4",
        "21:9",
        "9:21",
        "2:1",
        "1:2",
    }
)
REPLICATE_RATIO_MAP = {
    "1280:720": "16:9",
    "720:1280": "9:16",
    "1024:1024": "1:1",
    "1920:1080": "16:9",
    "1080:1920": "9:16",
}

# Runway takes pixel ratios
RUNWAY_DEFAULT_RATIO = "1280:720"
RUNWAY_RATIO_MAP = {
    "16:9": "1280:720",
    "9:16": "720:1280",
    "1:1": "960:960",
    "4:5": "832:1104",
}


def enhance_image_prompt(product: str) -> str:
    """Wrap a product name in the studio-photo instruction."""
    return IMAGE_EDIT_TEMPLATE.format(product=product.strip())


def enhance_video_prompt(prompt: str, camera_movement: CameraMovement) -> str:
    """Append the camera-movement instruction to the user's prompt.

    An empty prompt yields the instruction alone, without the leading separator.
    """
    base = prompt.strip()
    phrase = CAMERA_MOVEMENT_PHRASES.get(camera_movement, "")
    if not base:
        return phrase.removeprefix(". ")
    return base + phrase


def to_replicate_ratio(ratio: str | None) -> str:
    if not ratio:
        return REPLICATE_DEFAULT_RATIO
    if ratio in REPLICATE_ASPECT_RATIOS:
        return ratio
    return REPLICATE_RATIO_MAP.get(ratio, REPLICATE_DEFAULT_RATIO)


def to_runway_ratio(ratio: str | None) -> str:
    if not ratio:
        return RUNWAY_DEFAULT_RATIO
    if ratio in RUNWAY_RATIO_MAP.values():
        return ratio
    return RUNWAY_RATIO_MAP.get(ratio, RUNWAY_DEFAULT_RATIO)
