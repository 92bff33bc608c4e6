"""설정 파일 로더 모듈."""

import copy
import json
from pathlib import Path

# 기본 설정 경로
_CONFIG_PATH = Path(__file__).parent / "config.json"

# 기본값: config.json에 누락된 키가 있을 때 사용
_DEFAULTS = {
    "compositor": {
        "logo_path": "assets/logo.png",
        "font_path": "",
    },
    "text": {
        "default_color": "#FFFFFF",
        "default_position": 90,
    },
    "upload": {
        "max_size_mb": 10,
        "allowed_types": ["image/jpeg", "image/jpg", "image/png", "image/webp"],
    },
    "messages": [
        {"key": "none", "display_text": "No message", "message_text": "",
         "is_active": True, "sort_order": 0},
        {"key": "supporter", "display_text": "Supporter",
         "message_text": "I SUPPORT EARLY YEARS VOICE",
         "is_active": True, "sort_order": 1},
        {"key": "proud", "display_text": "Proud",
         "message_text": "PROUD EARLY YEARS EDUCATOR",
         "is_active": True, "sort_order": 2},
    ],
    "api": {
        "base_url": "",
        "cache_min": 10,
    },
    "output": {
        "directory": "output/",
        "filename": "eyv-profile-picture.png",
    },
}


def _deep_merge(base: dict, override: dict) -> dict:
    """base 딕셔너리에 override 값을 병합한다 (깊은 병합)."""
    result = copy.deepcopy(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def load_config(path: Path | None = None) -> dict:
    """설정 파일을 읽어 딕셔너리로 반환한다.

    파일이 없으면 기본값을 사용한다. 리스트 값(messages 등)은 병합하지 않고 통째로 교체한다.
    """
    config_path = path or _CONFIG_PATH
    if config_path.exists():
        with open(config_path, encoding="utf-8") as f:
            user_config = json.load(f)
        return _deep_merge(_DEFAULTS, user_config)
    return copy.deepcopy(_DEFAULTS)
