"""업로드 파일과 업로드 검증."""

import mimetypes
from dataclasses import dataclass
from pathlib import Path

ALLOWED_TYPES = ("image/jpeg", "image/jpg", "image/png", "image/webp")
MAX_SIZE_BYTES = 10 * 1024 * 1024


class InvalidUploadError(ValueError):
    """허용되지 않는 형식이거나 너무 큰 파일."""


@dataclass(frozen=True)
class UploadedFile:
    """업로드되거나 촬영된 원본 사진 파일."""
    filename: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)

    @classmethod
    def from_path(cls, path: str | Path) -> "UploadedFile":
        """디스크의 파일을 읽어 UploadedFile로 만든다. MIME은 확장자로 추정한다."""
        path = Path(path)
        content_type, _ = mimetypes.guess_type(path.name)
        return cls(
            filename=path.name,
            content_type=content_type or "application/octet-stream",
            data=path.read_bytes(),
        )


def validate_image_file(upload: UploadedFile,
                        allowed_types: tuple | list = ALLOWED_TYPES,
                        max_size: int = MAX_SIZE_BYTES) -> None:
    """컴포지터에 넘기기 전에 형식과 크기를 확인한다.

    Raises:
        InvalidUploadError: JPG/PNG/WEBP가 아니거나 max_size를 넘는 경우
    """
    if upload.content_type not in allowed_types:
        raise InvalidUploadError("Please upload a valid image file (JPG, PNG, or WEBP)")
    if upload.size > max_size:
        raise InvalidUploadError(
            f"File size must be less than {max_size // (1024 * 1024)}MB"
        )
