"""테스트 공용 fixture. 메모리 안에서 이미지를 만든다."""

from io import BytesIO

import pytest
from PIL import Image

from content.upload import UploadedFile


def make_image_bytes(width: int, height: int, color=(0, 160, 0), fmt: str = "PNG") -> bytes:
    buf = BytesIO()
    Image.new("RGB", (width, height), color).save(buf, format=fmt)
    return buf.getvalue()


def make_striped_bytes(width: int = 1000, height: int = 600) -> bytes:
    """왼쪽 200px 빨강, 오른쪽 200px 파랑, 가운데 초록인 이미지."""
    img = Image.new("RGB", (width, height), (0, 200, 0))
    img.paste((255, 0, 0), (0, 0, 200, height))
    img.paste((0, 0, 255), (width - 200, 0, width, height))
    buf = BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


async def failing_logo_loader():
    raise FileNotFoundError("assets/logo.png")


async def red_logo_loader():
    return Image.new("RGBA", (120, 120), (255, 0, 0, 255))


@pytest.fixture
def striped_upload() -> UploadedFile:
    return UploadedFile("photo.png", "image/png", make_striped_bytes())


@pytest.fixture
def square_upload() -> UploadedFile:
    return UploadedFile("square.png", "image/png", make_image_bytes(300, 300))
