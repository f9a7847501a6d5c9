"""数据模型定义。"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from pathlib import Path
from typing import Any, Dict, Optional, Union


DEFAULT_AVATAR = "https://abs.twimg.com/sticky/default_profile_images/default_profile_normal.png"

KIND_TWEET = "tweet"
KIND_REPLY = "reply"
KIND_RETWEET = "retweet"


def parse_created_at(value: Any) -> Optional[datetime]:
    """
    解析推文创建时间，统一为 UTC。

    支持 ISO-8601（含 Z 后缀）、推特经典格式
    （Wed Oct 10 20:19:24 +0000 2018）以及毫秒时间戳。
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None

    text = str(value).strip()
    if not text:
        return None
    if text.isdigit():
        return parse_created_at(int(text))

    dt: Optional[datetime] = None
    try:
        dt = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        try:
            dt = parsedate_to_datetime(text)
        except (TypeError, ValueError):
            return None

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


@dataclass(frozen=True)
class Post:
    """推文数据结构（来自 Feed 接口，获取后不可变）。"""

    id: str                                      # 推文 ID
    handle: str                                  # 用户名（不含 @）
    name: str                                    # 显示名
    avatar_url: str                              # 头像
    text: str = ""                               # 正文内容
    created_at: Optional[datetime] = None        # 发布时间（UTC）
    kind: str = KIND_TWEET                       # tweet / reply / retweet
    has_author: bool = True                      # 原始数据是否带 user
    extended_entities: Dict[str, Any] = field(default_factory=dict)
    entities: Dict[str, Any] = field(default_factory=dict)
    attachments: Dict[str, Any] = field(default_factory=dict)

    @property
    def url(self) -> str:
        return f"https://twitter.com/{self.handle}/status/{self.id}"

    @property
    def profile_url(self) -> str:
        return f"https://twitter.com/{self.handle}"

    @property
    def is_reply(self) -> bool:
        return self.kind == KIND_REPLY

    @property
    def media_keys(self) -> list:
        return list(self.attachments.get("media_keys") or [])

    @classmethod
    def from_api(cls, raw: Dict[str, Any]) -> "Post":
        """从接口返回的单条 JSON 构建 Post。"""
        user = raw.get("user") or {}
        handle = user.get("username") or user.get("screen_name") or "unknown"

        referenced = raw.get("referenced_tweets") or []
        if any(isinstance(r, dict) and r.get("type") == "retweeted" for r in referenced):
            kind = KIND_RETWEET
        elif raw.get("in_reply_to_user_id"):
            kind = KIND_REPLY
        else:
            kind = KIND_TWEET

        return cls(
            id=str(raw["id"]),
            handle=handle,
            name=user.get("name") or handle,
            avatar_url=(
                user.get("profile_image_url_https")
                or user.get("profile_image_url")
                or DEFAULT_AVATAR
            ),
            text=raw.get("text") or "",
            created_at=parse_created_at(raw.get("created_at")),
            kind=kind,
            has_author=bool(user),
            extended_entities=raw.get("extended_entities") or {},
            entities=raw.get("entities") or {},
            attachments=raw.get("attachments") or {},
        )


# ============================================================
# 媒体解析结果
# ============================================================

@dataclass(frozen=True)
class Image:
    url: str
    count: int = 1


@dataclass(frozen=True)
class Video:
    path: Path
    filename: str
    from_parent: bool = False
    count: int = 1


@dataclass(frozen=True)
class MediaMarker:
    """推文带有媒体，但没有可用的 URL。"""


ResolvedMedia = Optional[Union[Image, Video, MediaMarker]]


@dataclass
class BotState:
    """已处理 ID 与最后一次获取时间（毫秒）。"""

    seen: Dict[str, bool] = field(default_factory=dict)
    last_fetch_timestamp: Optional[int] = None

    @property
    def is_first_run(self) -> bool:
        return self.last_fetch_timestamp is None
