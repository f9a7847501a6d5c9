"""推文转发模块。

轮询推文接口获取最新推文，附带媒体转发到 Telegram 频道。
"""

from .models import Post, Image, Video, MediaMarker, BotState
from .config import Config
from .retry import with_retry
from .feed import FeedClient
from .media import resolve_media, pick_mp4_variant
from .dedup import select_posts
from .message import compose_message, render_html
from .telegram import TelegramBot, notify_post
from .state import StateStore
from .main import run_cycle, main, cli_main

__all__ = [
    "Post",
    "Image",
    "Video",
    "MediaMarker",
    "BotState",
    "Config",
    "with_retry",
    "FeedClient",
    "resolve_media",
    "pick_mp4_variant",
    "select_posts",
    "compose_message",
    "render_html",
    "TelegramBot",
    "notify_post",
    "StateStore",
    "run_cycle",
    "main",
    "cli_main",
]
