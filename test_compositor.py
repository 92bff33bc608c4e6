"""컴포지터 테스트: 크롭 계산, 렌더 순서, 오류 처리."""

import asyncio
from io import BytesIO

import pytest
from PIL import Image

from conftest import failing_logo_loader, make_image_bytes, red_logo_loader
from content.upload import UploadedFile
from renderer.canvas import Canvas
from renderer.compositor import (
    BADGE_CENTER,
    Compositor,
    DecodeError,
    EncodeError,
    LogoLoadError,
    NoSourceError,
    TextStyling,
    Transform,
    compute_source_rect,
)


def _decode(blob: bytes) -> Image.Image:
    return Image.open(BytesIO(blob)).convert("RGBA")


def _is_green(px) -> bool:
    r, g, b, a = px
    return a == 255 and g > 150 and r < 60 and b < 60


def _is_red(px) -> bool:
    r, g, b, a = px
    return a == 255 and r > 200 and g < 60 and b < 60


def test_centered_square_crop_landscape():
    rect = compute_source_rect(1000, 600, Transform())
    assert (rect.x, rect.y, rect.size) == (200, 0, 600)
    assert rect.extent() == (200, 0, 800, 600)


def test_centered_square_crop_portrait():
    rect = compute_source_rect(600, 1000, Transform())
    assert (rect.x, rect.y, rect.size) == (0, 200, 600)


def test_odd_sized_crop_stays_square():
    rect = compute_source_rect(601, 1000, Transform())
    left, top, right, bottom = rect.extent()
    assert right - left == bottom - top == 601
    assert (left, top) == (0, 199.5)


def test_scale_shrinks_sampling_window():
    sizes = [compute_source_rect(1000, 600, Transform(scale=s)).size
             for s in (0.25, 0.5, 1.0, 1.5, 2.0, 3.0, 10.0)]
    assert all(a > b for a, b in zip(sizes, sizes[1:]))
    assert compute_source_rect(1000, 600, Transform(scale=2.0)).size == 300


def test_scaled_window_stays_centered():
    rect = compute_source_rect(1000, 600, Transform(scale=2.0))
    assert rect.x + rect.size / 2 == 500
    assert rect.y + rect.size / 2 == 300


def test_offset_moves_window_opposite_and_is_clamped():
    base = compute_source_rect(1000, 600, Transform())
    right = compute_source_rect(1000, 600, Transform(offset_x=1.0))
    assert right.x == base.x - 300
    assert right.y == base.y
    assert compute_source_rect(1000, 600, Transform(offset_x=5.0)) == right
    down = compute_source_rect(1000, 600, Transform(offset_y=-0.5))
    assert down.y == base.y + 150


def test_non_positive_scale_rejected():
    with pytest.raises(ValueError):
        compute_source_rect(100, 100, Transform(scale=0))


def test_text_styling_rejects_color_outside_palette():
    with pytest.raises(ValueError):
        TextStyling(text="HI", color="#123456")
    assert TextStyling(text="HI", color="#ffd700").color == "#ffd700"


def test_reprocess_before_process_raises():
    compositor = Compositor(logo_loader=failing_logo_loader)
    with pytest.raises(NoSourceError):
        asyncio.run(compositor.reprocess_with_transform(Transform()))


def test_end_to_end_landscape(striped_upload):
    async def run():
        compositor = Compositor(logo_loader=failing_logo_loader)
        await compositor.initialize()
        return await compositor.process_image(striped_upload, Transform(), None)

    result = asyncio.run(run())
    out = _decode(result.blob)
    assert out.size == (400, 400)
    # 중앙 정사각 크롭이면 보이는 사진 영역은 모두 초록
    for xy in [(60, 200), (340, 200), (200, 60), (200, 200)]:
        assert _is_green(out.getpixel(xy)), xy
    # 원 바깥 모서리는 투명
    assert out.getpixel((2, 2))[3] == 0
    # 배지 흰 원
    cx, cy = BADGE_CENTER
    assert out.getpixel((cx, cy - 30))[:3] == (255, 255, 255)
    assert result.surface is not None


def test_offset_reveals_left_side(striped_upload):
    async def run():
        compositor = Compositor(logo_loader=failing_logo_loader)
        return await compositor.process_image(striped_upload, Transform(offset_x=0.5))

    out = _decode(asyncio.run(run()).blob)
    assert _is_red(out.getpixel((60, 200)))


def test_reprocess_is_idempotent(striped_upload):
    async def run():
        compositor = Compositor(logo_loader=failing_logo_loader)
        await compositor.process_image(striped_upload)
        t = Transform(scale=1.7, offset_x=0.2, offset_y=-0.3)
        text = TextStyling(text="I SUPPORT EYV", color="#FFD700", position=90)
        a = await compositor.reprocess_with_transform(t, text)
        b = await compositor.reprocess_with_transform(t, text)
        return a.blob, b.blob

    a, b = asyncio.run(run())
    assert a == b


def test_no_text_variants_match_and_text_differs(square_upload):
    async def run():
        compositor = Compositor(logo_loader=failing_logo_loader)
        await compositor.process_image(square_upload)
        t = Transform()
        omitted = await compositor.reprocess_with_transform(t)
        cleared = await compositor.reprocess_with_transform(t, TextStyling(text=None))
        with_text = await compositor.reprocess_with_transform(t, TextStyling(text="HELLO"))
        return omitted.blob, cleared.blob, with_text.blob

    omitted, cleared, with_text = asyncio.run(run())
    assert omitted == cleared
    assert omitted != with_text


def test_literal_none_message_is_drawn(square_upload):
    async def run():
        compositor = Compositor(logo_loader=failing_logo_loader)
        plain = await compositor.process_image(square_upload)
        plain_blob = plain.blob
        literal = await compositor.reprocess_with_transform(Transform(), TextStyling(text="none"))
        return plain_blob, literal.blob

    plain, literal = asyncio.run(run())
    assert plain != literal


def test_single_character_text_renders(square_upload):
    async def run():
        compositor = Compositor(logo_loader=failing_logo_loader)
        await compositor.process_image(square_upload)
        return await compositor.reprocess_with_transform(Transform(), TextStyling(text="A"))

    assert _decode(asyncio.run(run()).blob).size == (400, 400)


def test_fallback_badge_when_logo_load_fails(square_upload):
    async def run():
        compositor = Compositor(logo_loader=failing_logo_loader)
        result = await compositor.process_image(square_upload)
        return compositor, result

    compositor, result = asyncio.run(run())
    assert compositor.logo is None
    out = _decode(result.blob)
    cx, cy = BADGE_CENTER
    glyph_box = out.crop((cx - 40, cy - 15, cx + 40, cy + 15))
    purple = [px for px in glyph_box.getdata()
              if px[0] < 150 and px[1] < 100 and px[2] > 90]
    assert purple


def test_logo_drawn_in_badge(square_upload):
    async def run():
        compositor = Compositor(logo_loader=red_logo_loader)
        return await compositor.process_image(square_upload)

    out = _decode(asyncio.run(run()).blob)
    assert _is_red(out.getpixel(BADGE_CENTER))


def test_default_logo_loaded_once(square_upload):
    calls = []

    async def counting_loader():
        calls.append(1)
        return await red_logo_loader()

    async def run():
        compositor = Compositor(logo_loader=counting_loader)
        await asyncio.gather(compositor.initialize(), compositor.initialize())
        await compositor.process_image(square_upload)
        await compositor.reprocess_with_transform(Transform(scale=2))

    asyncio.run(run())
    assert len(calls) == 1


def test_set_logo_replaces_and_failure_keeps_previous(square_upload):
    blue = make_image_bytes(80, 80, color=(0, 0, 255))

    async def run():
        compositor = Compositor(logo_loader=red_logo_loader)
        await compositor.initialize()
        await compositor.set_logo(blue)
        replaced = compositor.logo
        with pytest.raises(LogoLoadError):
            await compositor.set_logo(b"not an image")
        result = await compositor.process_image(square_upload)
        return replaced, compositor.logo, result

    replaced, current, result = asyncio.run(run())
    assert current is replaced
    assert replaced.size == (80, 80)
    r, g, b, a = _decode(result.blob).getpixel(BADGE_CENTER)
    assert b > 200 and r < 60


def test_decode_failure_leaves_clean_canvas_and_keeps_source(square_upload):
    bad = UploadedFile("broken.png", "image/png", b"\x89PNG garbage")

    async def run():
        compositor = Compositor(logo_loader=failing_logo_loader)
        await compositor.process_image(square_upload)
        with pytest.raises(DecodeError):
            await compositor.process_image(bad)
        cleared = compositor.canvas.image.getbbox()
        again = await compositor.reprocess_with_transform(Transform())
        return cleared, again

    cleared, again = asyncio.run(run())
    assert cleared is None
    assert _decode(again.blob).size == (400, 400)


def test_encode_failure_raises(square_upload, monkeypatch):
    def broken(self):
        raise OSError("encoder unavailable")

    monkeypatch.setattr(Canvas, "to_png", broken)
    compositor = Compositor(logo_loader=failing_logo_loader)
    with pytest.raises(EncodeError, match="failed to create output blob"):
        asyncio.run(compositor.process_image(square_upload))
    assert compositor.has_source


def test_empty_encode_output_raises(square_upload, monkeypatch):
    monkeypatch.setattr(Canvas, "to_png", lambda self: b"")
    compositor = Compositor(logo_loader=failing_logo_loader)
    with pytest.raises(EncodeError):
        asyncio.run(compositor.process_image(square_upload))


def test_render_into_provided_target(square_upload):
    async def run():
        compositor = Compositor(logo_loader=failing_logo_loader)
        target = Canvas()
        result = await compositor.process_image(square_upload, target=target)
        return compositor, target, result

    compositor, target, result = asyncio.run(run())
    assert result.surface is target
    assert target.image.getbbox() is not None
    assert compositor.canvas.image.getbbox() is None


def test_start_over_drops_source(square_upload):
    async def run():
        compositor = Compositor(logo_loader=failing_logo_loader)
        await compositor.process_image(square_upload)
        compositor.start_over()
        assert not compositor.has_source
        await compositor.reprocess_with_transform(Transform())

    with pytest.raises(NoSourceError):
        asyncio.run(run())


@pytest.mark.parametrize("width, height, scale", [(1, 500, 1.0), (2, 2, 2.5), (601, 1000, 1.0)])
def test_thin_or_tiny_photo_fills_circle(width, height, scale):
    upload = UploadedFile("thin.png", "image/png", make_image_bytes(width, height))

    async def run():
        compositor = Compositor(logo_loader=failing_logo_loader)
        return await compositor.process_image(upload, Transform(scale=scale))

    out = _decode(asyncio.run(run()).blob)
    for xy in [(200, 200), (60, 200), (200, 60)]:
        assert out.getpixel(xy)[3] == 255, xy


def test_large_photo_is_reduced_before_sampling():
    upload = UploadedFile("big.png", "image/png", make_image_bytes(2000, 1600))

    async def run():
        compositor = Compositor(logo_loader=failing_logo_loader)
        return await compositor.process_image(upload)

    out = _decode(asyncio.run(run()).blob)
    assert out.getpixel((200, 200)) == (0, 160, 0, 255)


def test_hanging_logo_loader_falls_back(square_upload):
    async def hanging_loader():
        await asyncio.Event().wait()

    async def run():
        compositor = Compositor(logo_loader=hanging_loader, logo_timeout=0.05)
        result = await compositor.process_image(square_upload)
        return compositor, result

    compositor, result = asyncio.run(run())
    assert compositor.logo is None
    assert _decode(result.blob).size == (400, 400)
