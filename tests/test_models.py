"""Request parsing tests for UI input."""

import pytest

from studiogen.models import parse_generation_request
from studiogen.models.generation import CameraMovement, ImageEditRequest, ImageToVideoRequest
from studiogen.services.exceptions import ErrorKind, InvalidRequestError


def test_missing_source_is_a_validation_error():
    with pytest.raises(InvalidRequestError) as exc_info:
        parse_generation_request(
            {"kind": "image-edit", "user_id": "user-1", "project_id": "proj-1", "prompt": "boots"}
        )

    assert exc_info.value.kind == ErrorKind.VALIDATION
    assert "source" in exc_info.value.message


def test_unknown_kind_is_rejected():
    with pytest.raises(InvalidRequestError) as exc_info:
        parse_generation_request(
            {
                "kind": "text-to-video",
                "user_id": "user-1",
                "project_id": "proj-1",
                "source": {"url": "https://cdn.test/a.png"},
            }
        )

    assert exc_info.value.kind == ErrorKind.VALIDATION
    assert "text-to-video" in exc_info.value.message


def test_source_without_location_is_rejected():
    with pytest.raises(InvalidRequestError):
        parse_generation_request(
            {
                "kind": "image-edit",
                "user_id": "user-1",
                "project_id": "proj-1",
                "prompt": "boots",
                "source": {"source_type": "media_asset"},
            }
        )


def test_image_to_video_defaults():
    request = parse_generation_request(
        {
            "kind": "image-to-video",
            "user_id": "user-1",
            "project_id": "proj-1",
            "source": {"storage_path": "user-1/proj-1/a.png"},
        }
    )

    assert isinstance(request, ImageToVideoRequest)
    assert request.aspect_ratio == "16:9"
    assert request.camera_movement == CameraMovement.DYNAMIC
    assert request.display_name == "Untitled Video"


def test_image_edit_request():
    request = parse_generation_request(
        {
            "kind": "image-edit",
            "user_id": "user-1",
            "project_id": "proj-1",
            "prompt": "red sneakers",
            "source": {"url": "https://cdn.test/a.png"},
        }
    )

    assert isinstance(request, ImageEditRequest)
    assert request.aspect_ratio is None
