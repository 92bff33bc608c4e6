"""프로필 사진 합성 모듈 — 원형 크롭 + 테두리 + 배지 + 원호 텍스트.

사용 순서:
    compositor = Compositor(logo_loader=FileLogoLoader(path))
    await compositor.initialize()
    result = await compositor.process_image(upload, Transform(), TextStyling("HELLO"))
    result = await compositor.reprocess_with_transform(Transform(scale=1.5))

렌더 호출은 같은 캔버스에 그리므로 호출자가 순차적으로 await해야 한다.
동시에 렌더해야 하면 target으로 별도 Canvas를 넘긴다.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable

from PIL import Image, ImageOps

from content.logo import FileLogoLoader, decode_image, load_logo_bytes
from .canvas import Canvas, circle_mask
from .text import ARC_FONT_SIZE, draw_centered_text, draw_curved_text, get_font

logger = logging.getLogger(__name__)

BRAND_PURPLE = "#502185"

# 텍스트 색상 팔레트 (8색)
PALETTE = (
    "#FFFFFF",  # white
    "#000000",  # black
    "#502185",  # brand purple
    "#FFD700",  # gold
    "#E91E63",  # pink
    "#2196F3",  # blue
    "#4CAF50",  # green
    "#FF9800",  # orange
)

# 캔버스 좌표 (400x400 기준)
CENTER = (200, 200)
PHOTO_RADIUS = 182
PHOTO_INSET = 18
PHOTO_SIZE = 364
BORDER_WIDTH = 27

BADGE_CENTER = (306, 306)
BADGE_RADIUS = 53
BADGE_INNER_RADIUS = 49
BADGE_OUTLINE_WIDTH = 4
FALLBACK_GLYPH = "EYV"
FALLBACK_FONT_SIZE = 27

TEXT_RADIUS = 144

# 오프셋 ±1 이 샘플링 창 크기의 몇 배만큼 이동하는지
PAN_RANGE = 0.5

# 기본 로고 로드 대기 한도 (초)
LOGO_TIMEOUT = 10.0


class CompositorError(Exception):
    """컴포지터 오류의 기본 클래스."""


class DecodeError(CompositorError):
    """원본 사진 디코딩 실패."""


class NoSourceError(CompositorError):
    """process_image 전에 재렌더를 요청한 경우."""


class EncodeError(CompositorError):
    """PNG 인코딩 실패."""


class LogoLoadError(CompositorError):
    """교체 로고 디코딩 실패."""


@dataclass(frozen=True)
class Transform:
    """사용자 줌/이동 파라미터. offset은 [-1, 1] 정규화 값."""
    scale: float = 1.0
    offset_x: float = 0.0
    offset_y: float = 0.0


@dataclass(frozen=True)
class TextStyling:
    """원호 텍스트 옵션. text가 None이면 텍스트를 그리지 않는다."""
    text: str | None = None
    color: str = PALETTE[0]
    position: float = 90.0

    def __post_init__(self):
        if self.color.upper() not in PALETTE:
            raise ValueError(f"팔레트에 없는 색상: {self.color}")


NO_TEXT = TextStyling()


@dataclass(frozen=True)
class SourceRect:
    """원본 이미지에서 샘플링할 정사각 영역 (원본 픽셀 좌표)."""
    x: float
    y: float
    size: float

    def extent(self) -> tuple[float, float, float, float]:
        """Image.transform(EXTENT)용 실수 박스. 항상 정사각이다."""
        return (self.x, self.y, self.x + self.size, self.y + self.size)


@dataclass
class RenderResult:
    """렌더 결과: 미리보기용 캔버스와 다운로드용 PNG 바이트."""
    surface: Canvas
    blob: bytes


def _clamp(value: float, low: float = -1.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def compute_source_rect(width: int, height: int, transform: Transform) -> SourceRect:
    """변환을 적용한 샘플링 영역을 계산한다.

    기본(scale=1, offset=0)은 짧은 변 기준 중앙 정사각 크롭이다.
    scale이 커질수록 창이 작아져 확대된다.
    """
    if transform.scale <= 0:
        raise ValueError(f"scale은 0보다 커야 한다: {transform.scale}")
    size = min(width, height)
    source_size = size / transform.scale
    # 오프셋이 양수면 사진이 오른쪽/아래로 움직이므로 창은 반대로 이동
    cx = width / 2 - _clamp(transform.offset_x) * source_size * PAN_RANGE
    cy = height / 2 - _clamp(transform.offset_y) * source_size * PAN_RANGE
    return SourceRect(x=cx - source_size / 2, y=cy - source_size / 2, size=source_size)


def _encode(canvas: Canvas) -> bytes:
    try:
        blob = canvas.to_png()
    except (OSError, ValueError) as e:
        raise EncodeError("failed to create output blob") from e
    if not blob:
        raise EncodeError("failed to create output blob")
    return blob


LogoLoader = Callable[[], Awaitable[Image.Image]]


class Compositor:
    """원형 프로필 사진을 합성한다."""

    def __init__(self, logo_loader: LogoLoader | None = None, font_path: str | None = None,
                 logo_timeout: float = LOGO_TIMEOUT):
        self._logo_loader = logo_loader or FileLogoLoader()
        self._logo_timeout = logo_timeout
        self._font_path = font_path
        self._canvas = Canvas()
        self._source: Image.Image | None = None
        self._logo: Image.Image | None = None
        self._ready: asyncio.Task | None = None

    @property
    def canvas(self) -> Canvas:
        return self._canvas

    @property
    def has_source(self) -> bool:
        return self._source is not None

    @property
    def logo(self) -> Image.Image | None:
        return self._logo

    async def initialize(self) -> None:
        """기본 로고를 로드한다. 실패해도 예외 없이 대체 글자 배지를 쓴다.

        여러 번 호출해도 실제 로드는 한 번만 일어난다.
        """
        if self._ready is None:
            self._ready = asyncio.ensure_future(self._load_default_logo())
        await self._ready

    async def _load_default_logo(self) -> None:
        try:
            logo = await asyncio.wait_for(self._logo_loader(), self._logo_timeout)
        except asyncio.TimeoutError:
            logger.warning("기본 로고 로드 시간 초과(%.1fs), 대체 배지 사용", self._logo_timeout)
            return
        except Exception as e:
            logger.warning("기본 로고 로드 실패, 대체 배지 사용: %s", e)
            return
        # set_logo가 먼저 끝났으면 교체 로고를 유지
        if self._logo is None:
            self._logo = logo
            logger.info("기본 로고 준비 완료 (%dx%d)", logo.width, logo.height)

    async def set_logo(self, data: bytes) -> None:
        """배지 로고를 교체한다. 디코딩이 끝난 뒤에만 교체된다.

        Raises:
            LogoLoadError: 디코딩 실패 (기존 로고 유지)
        """
        try:
            logo = await load_logo_bytes(data)
        except Exception as e:
            logger.error("로고 교체 실패: %s", e)
            raise LogoLoadError("failed to load logo") from e
        self._logo = logo
        logger.info("로고 교체 (%dx%d)", logo.width, logo.height)

    async def process_image(self, upload, transform: Transform | None = None,
                            text: TextStyling | None = None,
                            target: Canvas | None = None) -> RenderResult:
        """업로드 파일을 디코딩해 보관하고 첫 렌더를 수행한다.

        upload는 data 속성(bytes)을 가진 객체 또는 bytes.
        형식/크기 검증은 호출자가 먼저 끝냈다고 가정한다.

        Raises:
            DecodeError: 이미지가 아니거나 손상된 파일
            EncodeError: PNG 인코딩 실패
        """
        await self.initialize()
        surface = target or self._canvas
        surface.clear()

        data = upload if isinstance(upload, (bytes, bytearray)) else upload.data
        try:
            source = await asyncio.to_thread(decode_image, bytes(data))
        except Exception as e:
            logger.error("이미지 디코딩 실패: %s", e)
            raise DecodeError("failed to load image") from e

        self._source = source
        logger.info("원본 이미지 로드: %dx%d", source.width, source.height)
        return await self._render(source, transform or Transform(), text or NO_TEXT, surface)

    async def reprocess_with_transform(self, transform: Transform,
                                       text: TextStyling | None = None,
                                       target: Canvas | None = None) -> RenderResult:
        """보관된 원본으로 다시 렌더한다 (디코딩 없음).

        Raises:
            NoSourceError: process_image가 성공한 적 없음
        """
        if self._source is None:
            raise NoSourceError("no source image available")
        await self.initialize()
        return await self._render(self._source, transform, text or NO_TEXT,
                                  target or self._canvas)

    def start_over(self) -> None:
        """보관된 원본을 버린다. 로고는 유지된다."""
        self._source = None
        self._canvas.clear()

    async def _render(self, source: Image.Image, transform: Transform,
                      text: TextStyling, surface: Canvas) -> RenderResult:
        self._draw(source, transform, text, surface)
        blob = await asyncio.to_thread(_encode, surface)
        return RenderResult(surface=surface, blob=blob)

    def _draw(self, source: Image.Image, transform: Transform,
              text: TextStyling, surface: Canvas) -> None:
        """한 번의 렌더에 필요한 그리기를 동기적으로 수행한다."""
        surface.clear()
        self._draw_photo(source, transform, surface)
        self._draw_border(surface)
        self._draw_badge(surface)
        if text.text is not None:
            draw_curved_text(surface, text.text, CENTER, TEXT_RADIUS, text.color,
                             text.position, font_size=ARC_FONT_SIZE,
                             font_path=self._font_path)

    def _draw_photo(self, source: Image.Image, transform: Transform, surface: Canvas) -> None:
        rect = compute_source_rect(source.width, source.height, transform)
        # 큰 원본은 먼저 정수 배율로 줄여 축소 시 계단 현상을 막는다
        factor = int(rect.size // PHOTO_SIZE)
        extent = rect.extent()
        if factor >= 2:
            source = source.reduce(factor)
            extent = tuple(v / factor for v in extent)
        # 실수 좌표 창을 그대로 샘플링, 원본 밖 영역은 투명
        photo = source.transform((PHOTO_SIZE, PHOTO_SIZE), Image.Transform.EXTENT, extent,
                                 Image.Resampling.BICUBIC)
        surface.paste(photo, (PHOTO_INSET, PHOTO_INSET),
                      clip=circle_mask(CENTER, PHOTO_RADIUS))

    def _draw_border(self, surface: Canvas) -> None:
        # ImageDraw 외곽선은 bbox 안쪽으로 그려지므로 반지름 + 선폭/2 로 잡는다
        outer = PHOTO_RADIUS + BORDER_WIDTH // 2
        cx, cy = CENTER
        surface.draw().ellipse(
            (cx - outer, cy - outer, cx + outer, cy + outer),
            outline=BRAND_PURPLE, width=BORDER_WIDTH,
        )

    def _draw_badge(self, surface: Canvas) -> None:
        cx, cy = BADGE_CENTER
        r = BADGE_RADIUS
        surface.draw().ellipse(
            (cx - r, cy - r, cx + r, cy + r),
            fill="white", outline=BRAND_PURPLE, width=BADGE_OUTLINE_WIDTH,
        )

        inner = BADGE_INNER_RADIUS
        if self._logo is not None:
            side = inner * 2
            fitted = ImageOps.fit(self._logo, (side, side), Image.Resampling.LANCZOS)
            surface.paste(fitted, (cx - inner, cy - inner),
                          clip=circle_mask(BADGE_CENTER, inner))
        else:
            font = get_font(FALLBACK_FONT_SIZE, bold=True, path=self._font_path)
            draw_centered_text(surface.draw(), BADGE_CENTER, FALLBACK_GLYPH, font,
                               BRAND_PURPLE)
