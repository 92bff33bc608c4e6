"""결과 PNG 저장과 다운로드 기록 전송."""

import base64
import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_FILENAME = "eyv-profile-picture.png"


def _safe_filename(base_name: str, output_dir: Path) -> Path:
    """이미 파일이 있으면 _1, _2 ... 를 붙인 경로를 반환한다."""
    name, ext = os.path.splitext(base_name)
    target = output_dir / base_name
    i = 1
    while target.exists():
        target = output_dir / f"{name}_{i}{ext}"
        i += 1
    return target


def save_download(blob: bytes, output_dir: str | Path,
                  filename: str = DEFAULT_FILENAME) -> Path:
    """PNG 바이트를 output_dir에 저장하고 실제 저장 경로를 반환한다."""
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    target = _safe_filename(filename, output_dir)
    target.write_bytes(blob)
    logger.info("저장 완료: %s (%d bytes)", target, len(blob))
    return target


def to_data_url(blob: bytes) -> str:
    """PNG 바이트를 data URL 문자열로 바꾼다."""
    return "data:image/png;base64," + base64.b64encode(blob).decode("ascii")


class DownloadReporter:
    """POST /api/downloads 로 다운로드와 선택 문구를 기록한다.

    기록 실패는 다운로드를 막지 않는다.
    """

    def __init__(self, base_url: str = ""):
        self._base_url = base_url.rstrip("/")

    @property
    def enabled(self) -> bool:
        return bool(self._base_url)

    async def report(self, blob: bytes, message_key: str | None) -> dict | None:
        """기록 결과(JSON)를 반환한다. 비활성이거나 실패하면 None."""
        if not self.enabled:
            return None
        payload = {"profileImage": to_data_url(blob), "eyvMessage": message_key}
        try:
            result = await self._post(payload)
            logger.info("다운로드 기록 완료: %s", result.get("id"))
            return result
        except Exception as e:
            logger.error("다운로드 기록 실패: %s", e)
            return None

    async def _post(self, payload: dict) -> dict:
        import aiohttp

        async with aiohttp.ClientSession() as session:
            async with session.post(f"{self._base_url}/api/downloads", json=payload,
                                    timeout=aiohttp.ClientTimeout(total=10)) as resp:
                resp.raise_for_status()
                return await resp.json()
