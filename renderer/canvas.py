"""400x400 Pillow 캔버스 관리 모듈."""

from io import BytesIO

from PIL import Image, ImageDraw

# 출력 크기
WIDTH = 400
HEIGHT = 400


class Canvas:
    """400x400 RGBA 캔버스."""

    def __init__(self, color: tuple = (0, 0, 0, 0)):
        self._image = Image.new("RGBA", (WIDTH, HEIGHT), color)

    @property
    def image(self) -> Image.Image:
        return self._image

    def clear(self, color: tuple = (0, 0, 0, 0)) -> None:
        """캔버스를 지정 색상으로 초기화한다 (기본: 완전 투명)."""
        self._image = Image.new("RGBA", (WIDTH, HEIGHT), color)

    def paste(self, layer: Image.Image, position: tuple = (0, 0),
              clip: Image.Image | None = None) -> None:
        """레이어를 캔버스 위에 합성한다 (알파 블렌딩).

        clip이 주어지면 캔버스 크기의 L 마스크 바깥 픽셀은 버린다.
        """
        if layer.mode != "RGBA":
            layer = layer.convert("RGBA")
        placed = _place(layer, position)
        if clip is not None:
            clipped = Image.new("RGBA", (WIDTH, HEIGHT), (0, 0, 0, 0))
            clipped.paste(placed, (0, 0), clip)
            placed = clipped
        self._image = Image.alpha_composite(self._image, placed)

    def draw(self) -> ImageDraw.ImageDraw:
        """캔버스에 직접 그리는 ImageDraw 객체를 반환한다."""
        return ImageDraw.Draw(self._image)

    def to_png(self) -> bytes:
        """PNG 바이트로 인코딩한다."""
        buf = BytesIO()
        self._image.save(buf, format="PNG")
        return buf.getvalue()


def circle_mask(center: tuple[int, int], radius: int,
                size: tuple[int, int] = (WIDTH, HEIGHT)) -> Image.Image:
    """중심과 반지름으로 지정된 원 내부가 255인 L 마스크를 만든다."""
    mask = Image.new("L", size, 0)
    cx, cy = center
    ImageDraw.Draw(mask).ellipse(
        (cx - radius, cy - radius, cx + radius, cy + radius), fill=255,
    )
    return mask


def _place(layer: Image.Image, position: tuple) -> Image.Image:
    """레이어를 캔버스 크기에 맞춰 지정 위치에 배치한다."""
    if layer.size == (WIDTH, HEIGHT) and position == (0, 0):
        return layer
    result = Image.new("RGBA", (WIDTH, HEIGHT), (0, 0, 0, 0))
    result.paste(layer, position)
    return result
