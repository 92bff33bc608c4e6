"""텍스트 렌더링 모듈 — 글자 단위 렌더링과 원호(arc) 텍스트 배치.

원호 텍스트는 측정 폭 기반이 아니라 고정 각도 간격으로 배치한다.
폰트와 크기가 고정이므로 이 휴리스틱으로 충분하다.
"""

import math
import os
import sys as _sys
from dataclasses import dataclass
from pathlib import Path

from PIL import Image, ImageDraw, ImageFont

# 번들 폰트 경로
_FONT_DIR = Path(__file__).parent.parent / "assets" / "fonts"
_FONTS = {
    "regular": _FONT_DIR / "Inter-Regular.ttf",
    "bold": _FONT_DIR / "Inter-Bold.ttf",
}

# 원호 텍스트 상수
ARC_SPAN_DEG = 144.0
LONG_TEXT_THRESHOLD = 15
LONG_TEXT_SPAN_FACTOR = 1.5
ARC_FONT_SIZE = 28


def _find_fallback(bold: bool = False) -> str:
    """OS에 맞는 폴백 폰트 경로를 반환한다."""
    candidates = []
    if _sys.platform == "win32":
        candidates = ["C:/Windows/Fonts/arialbd.ttf" if bold else "C:/Windows/Fonts/arial.ttf"]
    elif _sys.platform == "darwin":
        candidates = ["/System/Library/Fonts/Helvetica.ttc"]
    else:
        candidates = [
            "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf" if bold else "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
            "/usr/share/fonts/truetype/liberation/LiberationSans-Bold.ttf" if bold else "/usr/share/fonts/truetype/liberation/LiberationSans-Regular.ttf",
            "/usr/share/fonts/truetype/noto/NotoSans-Bold.ttf" if bold else "/usr/share/fonts/truetype/noto/NotoSans-Regular.ttf",
        ]
    for path in candidates:
        if os.path.exists(path):
            return path
    return ""


_FALLBACK_FONT = _find_fallback(bold=False)
_FALLBACK_BOLD = _find_fallback(bold=True)

# 폰트 캐시
_font_cache: dict[tuple[str, int], ImageFont.FreeTypeFont] = {}


def get_font(size: int, bold: bool = False, path: str | None = None) -> ImageFont.FreeTypeFont:
    """폰트를 로드한다 (캐싱).

    path가 주어지면 그 파일을 우선 사용하고, 없으면 번들 폰트 → 시스템 폰트 → Pillow 기본 폰트 순.
    """
    if path and os.path.exists(path):
        font_path = path
    elif bold:
        font_path = str(_FONTS["bold"]) if _FONTS["bold"].exists() else _FALLBACK_BOLD
    else:
        font_path = str(_FONTS["regular"]) if _FONTS["regular"].exists() else _FALLBACK_FONT

    key = (font_path, size)
    if key not in _font_cache:
        if font_path and os.path.exists(font_path):
            _font_cache[key] = ImageFont.truetype(font_path, size)
        else:
            _font_cache[key] = ImageFont.load_default(size)
    return _font_cache[key]


def draw_centered_text(draw: ImageDraw.ImageDraw, center: tuple[float, float],
                       text: str, font, fill) -> None:
    """bbox 기준으로 텍스트 중심을 center에 맞춰 그린다."""
    left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
    x = center[0] - (left + right) / 2
    y = center[1] - (top + bottom) / 2
    draw.text((x, y), text, font=font, fill=fill)


def render_glyph(ch: str, font, color) -> Image.Image:
    """한 글자를 투명 배경의 정사각 RGBA 이미지 중앙에 렌더링한다."""
    side = max(font.size * 2, 8) if hasattr(font, "size") else 32
    img = Image.new("RGBA", (side, side), (0, 0, 0, 0))
    draw_centered_text(ImageDraw.Draw(img), (side / 2, side / 2), ch, font, color)
    return img


@dataclass(frozen=True)
class GlyphPlacement:
    """원호 위 한 글자의 배치 정보."""
    char: str
    index: int
    x: float
    y: float
    angle: float          # 캔버스 좌표계 각도 (라디안, y축 아래 방향)

    @property
    def rotation(self) -> float:
        """원의 접선 방향으로 세우기 위한 회전각 (라디안)."""
        return self.angle + math.pi / 2


def arc_span(count: int) -> float:
    """글자 수에 따른 전체 원호 각도(도)를 반환한다."""
    if count > LONG_TEXT_THRESHOLD:
        return ARC_SPAN_DEG * LONG_TEXT_SPAN_FACTOR
    return ARC_SPAN_DEG


def layout_arc_text(text: str, center: tuple[float, float], radius: float,
                    position: float) -> list[GlyphPlacement]:
    """문자열을 원호 위에 배치한 결과를 반환한다.

    position은 도 단위로 0°=오른쪽, 90°=위쪽이며 원호의 중심 각도가 된다.
    공백은 그리지 않지만 자리는 차지한다.
    """
    chars = list(text)
    count = len(chars)
    if count == 0:
        return []

    span = math.radians(arc_span(count))
    if count > 1:
        step = span / (count - 1)
        start = math.radians(-position) - span / 2
    else:
        step = 0.0
        start = math.radians(-position)

    cx, cy = center
    placements = []
    for i, ch in enumerate(chars):
        if ch.isspace():
            continue
        angle = start + i * step
        placements.append(GlyphPlacement(
            char=ch,
            index=i,
            x=cx + radius * math.cos(angle),
            y=cy + radius * math.sin(angle),
            angle=angle,
        ))
    return placements


def draw_curved_text(canvas, text: str, center: tuple[float, float], radius: float,
                     color, position: float, font_size: int = ARC_FONT_SIZE,
                     font_path: str | None = None) -> int:
    """캔버스에 원호 텍스트를 그리고 그린 글자 수를 반환한다.

    글자마다 별도 레이어에서 회전하므로 회전이 누적되지 않는다.
    """
    placements = layout_arc_text(text, center, radius, position)
    if not placements:
        return 0

    font = get_font(font_size, bold=True, path=font_path)
    for p in placements:
        glyph = render_glyph(p.char, font, color)
        rotated = glyph.rotate(-math.degrees(p.rotation), resample=Image.Resampling.BICUBIC,
                               expand=True)
        paste_x = round(p.x - rotated.width / 2)
        paste_y = round(p.y - rotated.height / 2)
        canvas.paste(rotated, (paste_x, paste_y))
    return len(placements)
