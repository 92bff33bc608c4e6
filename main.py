"""메인 — 사진 한 장으로 EYV 프로필 사진을 만든다."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from config import load_config
from content.downloads import DownloadReporter, save_download
from content.logo import FileLogoLoader
from content.messages import NO_TEXT_KEY, create_message_provider, find_message, text_styling_for
from content.upload import InvalidUploadError, UploadedFile, validate_image_file
from renderer.compositor import Compositor, CompositorError, Transform

logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(name)s] %(message)s")
logging.getLogger("aiohttp").setLevel(logging.WARNING)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="EYV 프로필 사진 생성")
    parser.add_argument("input", help="원본 사진 (JPG/PNG/WEBP)")
    parser.add_argument("-o", "--output-dir", help="저장 디렉토리")
    parser.add_argument("-m", "--message", default=NO_TEXT_KEY, help="문구 키 (기본: none)")
    parser.add_argument("--color", help="텍스트 색상 (#RRGGBB, 팔레트 중 하나)")
    parser.add_argument("--position", type=float, help="텍스트 위치 각도 (0=오른쪽, 90=위)")
    parser.add_argument("--scale", type=float, default=1.0, help="확대 배율 (0.5~3.0)")
    parser.add_argument("--offset-x", type=float, default=0.0, help="가로 이동 (-1~1)")
    parser.add_argument("--offset-y", type=float, default=0.0, help="세로 이동 (-1~1)")
    parser.add_argument("--logo", help="배지 로고 교체 이미지")
    parser.add_argument("--config", type=Path, help="config.json 경로")
    return parser.parse_args(argv)


async def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    config = load_config(args.config)

    upload_cfg = config["upload"]
    try:
        upload = UploadedFile.from_path(args.input)
        validate_image_file(
            upload,
            allowed_types=upload_cfg.get("allowed_types"),
            max_size=int(upload_cfg.get("max_size_mb", 10) * 1024 * 1024),
        )
    except (OSError, InvalidUploadError) as e:
        logging.error("입력 파일 오류: %s", e)
        return 1

    # 문구 선택
    provider = create_message_provider(config)
    catalog = await provider.get_messages()
    message = find_message(catalog, args.message)
    if message is None:
        logging.error("알 수 없는 문구 키: %s (사용 가능: %s)",
                      args.message, ", ".join(m.key for m in catalog))
        return 1
    text_cfg = config["text"]
    try:
        styling = text_styling_for(
            message,
            color=args.color or text_cfg.get("default_color"),
            position=args.position if args.position is not None
            else text_cfg.get("default_position"),
        )
    except ValueError as e:
        logging.error("텍스트 옵션 오류: %s", e)
        return 1

    comp_cfg = config["compositor"]
    compositor = Compositor(
        logo_loader=FileLogoLoader(comp_cfg.get("logo_path", "assets/logo.png")),
        font_path=comp_cfg.get("font_path") or None,
    )
    await compositor.initialize()

    try:
        if args.logo:
            await compositor.set_logo(Path(args.logo).read_bytes())
        transform = Transform(scale=args.scale, offset_x=args.offset_x, offset_y=args.offset_y)
        result = await compositor.process_image(upload, transform, styling)
    except (OSError, ValueError, CompositorError) as e:
        logging.error("렌더 실패: %s", e)
        return 1

    out_cfg = config["output"]
    target = save_download(
        result.blob,
        args.output_dir or out_cfg.get("directory", "output/"),
        out_cfg.get("filename", "eyv-profile-picture.png"),
    )
    reporter = DownloadReporter(config["api"].get("base_url", ""))
    await reporter.report(result.blob, None if message.is_no_text else message.key)
    logging.info("완료: %s", target)
    return 0


def run() -> None:
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        logging.info("종료")


if __name__ == "__main__":
    run()
