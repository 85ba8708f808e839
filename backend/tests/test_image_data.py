import base64
import io

import pytest
from PIL import Image

from medscan.cross_cutting.validation import validate_image
from medscan.domain.entities.analysis_request import AnalysisRequest, DEFAULT_QUERY
from medscan.domain.exceptions import InvalidInputError
from medscan.domain.value_objects.image_data import ImageData


def test_data_url_prefix_is_stripped(png_b64):
    image = ImageData.from_base64(f"data:image/png;base64,{png_b64}")

    assert image.format == "png"
    assert image.base64_string == png_b64
    assert image.data_url == f"data:image/png;base64,{png_b64}"


def test_unknown_format_defaults_to_jpeg_mime():
    assert ImageData.from_bytes(b"abc").mime_type == "image/jpeg"


def test_image_needs_a_payload():
    with pytest.raises(ValueError):
        ImageData()


def test_validate_png(png_b64):
    is_valid, error, detected = validate_image(ImageData.from_base64(png_b64))

    assert is_valid
    assert error is None
    assert detected == "png"


def test_validate_jpeg_bytes():
    buffer = io.BytesIO()
    Image.new("RGB", (16, 16)).save(buffer, format="JPEG")

    is_valid, _, detected = validate_image(ImageData.from_bytes(buffer.getvalue()))

    assert is_valid
    assert detected == "jpeg"


@pytest.mark.parametrize("payload", [
    base64.b64encode(b"not an image").decode("utf-8"),
    "",
])
def test_validate_rejects_garbage(payload):
    is_valid, error, _ = validate_image(ImageData.from_base64(payload))

    assert not is_valid
    assert error


def test_request_from_wire_values(png_b64):
    request = AnalysisRequest.create(png_b64, None, " user-12345 ")

    assert request.user_id == "user-12345"
    assert request.has_image
    assert request.query == DEFAULT_QUERY


def test_request_text_only():
    request = AnalysisRequest.create("", "  What is Zyrtec?  ", "user-12345")

    assert not request.has_image
    assert request.query == "What is Zyrtec?"


@pytest.mark.parametrize("image, query, user_id, field", [
    (None, None, "user-12345", "image_data"),
    (None, "What is this?", "abc", "user_id"),
    (123, "What is this?", "user-12345", "image_data"),
])
def test_request_rejects_bad_input(image, query, user_id, field):
    with pytest.raises(InvalidInputError) as exc_info:
        AnalysisRequest.create(image, query, user_id)

    assert exc_info.value.details["field"] == field
