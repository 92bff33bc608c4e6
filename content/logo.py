"""배지 로고 로딩 모듈 — 기본 로고 파일과 사용자 교체 로고를 디코딩한다."""

import asyncio
import logging
from io import BytesIO
from pathlib import Path

from PIL import Image

logger = logging.getLogger(__name__)

DEFAULT_LOGO_PATH = Path("assets/logo.png")


def decode_image(source: bytes | str | Path) -> Image.Image:
    """바이트 또는 파일 경로의 이미지를 RGBA로 디코딩한다. 파일 핸들은 즉시 닫는다."""
    if isinstance(source, (bytes, bytearray)):
        source = BytesIO(source)
    with Image.open(source) as img:
        img.load()
        return img.convert("RGBA")


class FileLogoLoader:
    """고정 경로의 기본 로고를 비동기로 로드한다."""

    def __init__(self, path: str | Path = DEFAULT_LOGO_PATH):
        self._path = Path(path)

    async def __call__(self) -> Image.Image:
        logger.info("기본 로고 로드: %s", self._path)
        return await asyncio.to_thread(decode_image, self._path)


async def load_logo_bytes(data: bytes) -> Image.Image:
    """사용자가 올린 로고 바이트를 워커 스레드에서 디코딩한다."""
    return await asyncio.to_thread(decode_image, data)
