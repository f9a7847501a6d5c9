"""消息组装模块。"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Tuple
from zoneinfo import ZoneInfo

from .models import KIND_RETWEET, Image, MediaMarker, Post, ResolvedMedia, Video


FOOTER_SOURCE = "via Twitter Feed"
FOOTER_SEP = " • "

TEXT_LIMIT = 4096
CAPTION_LIMIT = 1024


@dataclass
class ChatMessage:
    """发送到频道的一条推文消息。"""

    author_name: str
    author_handle: str
    author_url: str
    avatar_url: str
    url: str
    description: str
    timestamp: datetime
    footer: str
    fields: List[Tuple[str, str]] = field(default_factory=list)
    image_url: Optional[str] = None


def _placeholder(post: Post, media: ResolvedMedia) -> str:
    if post.kind == KIND_RETWEET:
        return "Retweeted"
    if post.media_keys or media is not None:
        return "Shared media"
    return "Posted a tweet"


def media_annotation(media: ResolvedMedia) -> Optional[str]:
    """页脚中的媒体说明。"""
    if isinstance(media, Video):
        note = (
            "Video from referenced tweet will follow"
            if media.from_parent
            else "Video will follow"
        )
        if media.count > 1:
            note += f" (1 of {media.count})"
        return note
    if isinstance(media, Image) and media.count > 1:
        return f"{media.count} images"
    if isinstance(media, MediaMarker):
        return "Contains media"
    return None


def compose_message(post: Post, media: ResolvedMedia) -> ChatMessage:
    """根据推文和解析出的媒体组装消息。"""
    footer = [post.kind.capitalize(), FOOTER_SOURCE]
    note = media_annotation(media)
    if note:
        footer.append(note)

    fields = [("Tweet Link", "View original tweet")]
    if post.is_reply:
        fields.append(("Replying to a tweet", "This is a reply to another user's tweet."))

    text = post.text if post.text.strip() else _placeholder(post, media)

    return ChatMessage(
        author_name=post.name,
        author_handle=post.handle,
        author_url=post.profile_url,
        avatar_url=post.avatar_url,
        url=post.url,
        description=text,
        timestamp=post.created_at or datetime.now(timezone.utc),
        footer=FOOTER_SEP.join(footer),
        fields=fields,
        image_url=media.url if isinstance(media, Image) else None,
    )


# ============================================================
# 消息格式化
# ============================================================

def _escape_html(text: str) -> str:
    """转义 HTML 特殊字符。"""
    return (
        text.replace("&", "&amp;")
            .replace("<", "&lt;")
            .replace(">", "&gt;")
    )


def _escape_attr(text: str) -> str:
    return _escape_html(text).replace('"', "&quot;")


def format_jst(dt: datetime) -> str:
    """格式化为 JST 时间字符串。"""
    return dt.astimezone(ZoneInfo("Asia/Tokyo")).strftime("%Y/%m/%d %H:%M:%S JST")


def _render(message: ChatMessage, body: str) -> str:
    lines = [
        f'🐦 <b>{_escape_html(message.author_name)}</b> '
        f'(<a href="{_escape_attr(message.author_url)}">@{_escape_html(message.author_handle)}</a>)',
        "",
        _escape_html(body),
        "",
    ]

    for name, value in message.fields:
        if name == "Tweet Link":
            lines.append(f'🔗 <a href="{_escape_attr(message.url)}">{_escape_html(value)}</a>')
        else:
            lines.append(f"↩️ <b>{_escape_html(name)}</b>")
            lines.append(_escape_html(value))

    lines.append(f"⏰ {format_jst(message.timestamp)}")
    lines.append(f"<i>{_escape_html(message.footer)}</i>")
    return "\n".join(lines)


def render_html(message: ChatMessage, limit: int = TEXT_LIMIT) -> str:
    """
    渲染为 Telegram HTML。

    正文过长时截断（末尾加 …），保证总长度不超过 limit。
    """
    body = message.description
    html_text = _render(message, body)
    while len(html_text) > limit and body:
        overflow = len(html_text) - limit
        body = body[: max(0, len(body) - overflow - 1)].rstrip()
        html_text = _render(message, body + "…" if body else "…")
        if not body:
            break
    return html_text
