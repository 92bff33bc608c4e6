"""메시지 카탈로그 모듈 — 원호 텍스트로 고를 수 있는 문구 목록.

백엔드 GET /api/messages 를 우선 사용하고, 실패하면 config의 목록으로 대체한다.
"none" 키는 예약어로 "텍스트 없음"을 뜻한다.
"""

import logging
import time
from dataclasses import dataclass

from renderer.compositor import TextStyling

logger = logging.getLogger(__name__)

NO_TEXT_KEY = "none"


@dataclass(frozen=True)
class Message:
    """선택 가능한 문구."""
    key: str
    display_text: str
    message_text: str
    is_active: bool = True
    sort_order: int = 0

    @property
    def is_no_text(self) -> bool:
        return self.key == NO_TEXT_KEY

    @classmethod
    def from_dict(cls, data: dict) -> "Message":
        """config(snake_case) 또는 API(camelCase) 딕셔너리에서 만든다."""
        return cls(
            key=data["key"],
            display_text=data.get("display_text", data.get("displayText", data["key"])),
            message_text=data.get("message_text", data.get("messageText", "")),
            is_active=data.get("is_active", data.get("isActive", True)),
            sort_order=data.get("sort_order", data.get("sortOrder", 0)),
        )


NO_TEXT_MESSAGE = Message(key=NO_TEXT_KEY, display_text="No message", message_text="")


def build_catalog(entries: list[dict]) -> list[Message]:
    """활성 문구만 sort_order 순으로 정렬한다. "none" 항목은 항상 맨 앞에 둔다."""
    messages = []
    for entry in entries:
        try:
            messages.append(Message.from_dict(entry))
        except KeyError as e:
            logger.warning("잘못된 문구 항목 무시: %s (%s 없음)", entry, e)
    active = [m for m in messages if m.is_active and not m.is_no_text]
    active.sort(key=lambda m: (m.sort_order, m.key))
    no_text = next((m for m in messages if m.is_no_text), NO_TEXT_MESSAGE)
    return [no_text] + active


def find_message(catalog: list[Message], key: str) -> Message | None:
    """키로 문구를 찾는다."""
    return next((m for m in catalog if m.key == key), None)


def text_styling_for(message: Message | None, color: str | None = None,
                     position: float | None = None) -> TextStyling:
    """문구를 렌더 옵션으로 바꾼다. "none" 또는 빈 문구는 텍스트 없음."""
    kwargs = {}
    if color is not None:
        kwargs["color"] = color
    if position is not None:
        kwargs["position"] = position
    if message is None or message.is_no_text or not message.message_text:
        return TextStyling(text=None, **kwargs)
    return TextStyling(text=message.message_text, **kwargs)


class MessageProvider:
    """백엔드에서 문구 목록을 가져온다 (캐시 적용)."""

    def __init__(self, base_url: str = "", fallback: list[dict] | None = None,
                 cache_min: int = 10):
        self._base_url = base_url.rstrip("/")
        self._fallback = build_catalog(fallback or [])
        self._cache_min = cache_min
        self._cached: list[Message] | None = None
        self._last_fetch: float = 0

    async def get_messages(self) -> list[Message]:
        """문구 목록을 반환한다. API 실패 시 캐시 → config 목록 순으로 대체."""
        if not self._base_url:
            return self._fallback

        now = time.time()
        if self._cached and (now - self._last_fetch) < self._cache_min * 60:
            return self._cached

        try:
            messages = await self._fetch()
            self._cached = messages
            self._last_fetch = now
            logger.info("문구 목록 갱신: %d개", len(messages))
            return messages
        except Exception as e:
            logger.error("문구 API 호출 실패: %s", e)
            if self._cached:
                return self._cached
            return self._fallback

    async def _fetch(self) -> list[Message]:
        """GET /api/messages 를 호출한다."""
        import aiohttp

        async with aiohttp.ClientSession() as session:
            async with session.get(f"{self._base_url}/api/messages",
                                   timeout=aiohttp.ClientTimeout(total=10)) as resp:
                resp.raise_for_status()
                result = await resp.json()

        return build_catalog(result)


def create_message_provider(config: dict) -> MessageProvider:
    """config에서 MessageProvider를 만든다."""
    api = config.get("api", {})
    return MessageProvider(
        base_url=api.get("base_url", ""),
        fallback=config.get("messages", []),
        cache_min=api.get("cache_min", 10),
    )
