import io

import httpx
import pytest
from PIL import Image

from pneumo_backend.imaging import image_to_data_url, load_image_bytes, prepare_image
from pneumo_backend.utils.helpers import (decode_data_url, guess_image_mime_type, make_thumbnail,
                                          resize_image_to_square, to_data_url, validate_image_file)

from conftest import make_png

MB = 1024 * 1024


@pytest.mark.parametrize("filename, content_type, size, ok", [
    ("chest.png", "image/png", 1000, True),
    ("chest.jpg", "image/jpeg", 1000, True),
    ("chest.gif", "image/gif", 1000, False),
    ("chest.png", "image/png", 11 * MB, False),
    ("chest.png", "image/png", 0, False),
    ("", "image/png", 1000, False),
])
def test_validate_image_file(filename, content_type, size, ok):
    valid, message = validate_image_file(filename, content_type, 10 * MB, size)
    assert valid is ok
    assert (message == "") is ok


def test_data_url_round_trip(png_bytes):
    url = to_data_url(png_bytes)
    assert url.startswith("data:image/png;base64,")
    assert decode_data_url(url) == ("image/png", png_bytes)


def test_decode_data_url_rejects_plain_strings():
    with pytest.raises(ValueError):
        decode_data_url("tmp/abc.png")


def test_guess_mime_type_falls_back_for_unknown_bytes():
    assert guess_image_mime_type(b"not an image") == "image/png"
    out = io.BytesIO()
    Image.new("RGB", (4, 4)).save(out, format="JPEG")
    assert guess_image_mime_type(out.getvalue()) == "image/jpeg"


def test_resize_image_to_square(png_bytes):
    resized = resize_image_to_square(png_bytes, 256)
    with Image.open(io.BytesIO(resized)) as img:
        assert img.size == (256, 256)
        assert img.format == "PNG"


@pytest.mark.anyio
async def test_load_image_bytes_from_file_uri(tmp_path, png_bytes):
    path = tmp_path / "scan.png"
    path.write_bytes(png_bytes)

    _, from_path = await load_image_bytes(str(path))
    _, from_uri = await load_image_bytes(path.as_uri())

    assert from_path == from_uri == png_bytes


@pytest.mark.anyio
async def test_load_image_bytes_from_remote_url(png_bytes):
    transport = httpx.MockTransport(
        lambda request: httpx.Response(200, content=png_bytes, headers={"content-type": "image/png"})
    )
    async with httpx.AsyncClient(transport=transport) as client:
        mime_type, data = await load_image_bytes("https://images.test/scan.png", client)

    assert mime_type == "image/png"
    assert data == png_bytes


@pytest.mark.anyio
async def test_image_to_data_url_keeps_data_urls():
    assert await image_to_data_url("data:image/png;base64,AAAA") == "data:image/png;base64,AAAA"


@pytest.mark.anyio
async def test_prepare_image(png_data_url):
    prepared = await prepare_image(png_data_url, 128)
    _, data = decode_data_url(prepared)
    with Image.open(io.BytesIO(data)) as img:
        assert img.size == (128, 128)


def test_make_thumbnail_keeps_aspect_ratio():
    thumbnail = make_thumbnail(make_png(size=(400, 200)), 128)
    with Image.open(io.BytesIO(thumbnail)) as img:
        assert img.size == (128, 64)
        assert img.format == "PNG"
