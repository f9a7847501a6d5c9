"""Telegram 消息发送模块。"""

from __future__ import annotations

import logging
import pathlib
from typing import Any, Dict, Optional

import requests

from .message import CAPTION_LIMIT, TEXT_LIMIT, ChatMessage, render_html
from .models import Image, ResolvedMedia, Video


logger = logging.getLogger(__name__)


class TelegramBot:
    """Telegram Bot 封装。"""

    def __init__(
        self,
        token: str,
        chat_id: str,
        session: Optional[requests.Session] = None,
    ):
        self.token = token
        self.chat_id = chat_id
        self.base_url = f"https://api.telegram.org/bot{token}"
        self.session = session or requests.Session()
        self._chat: Optional[Dict[str, Any]] = None

    def _call(
        self,
        method: str,
        payload: Dict[str, Any],
        timeout: int = 15,
        files: Optional[Dict[str, Any]] = None,
    ) -> Optional[Any]:
        """调用 Bot API，成功返回 result，失败返回 None。"""
        if not self.token:
            logger.error("未配置 Telegram Token")
            return None

        url = f"{self.base_url}/{method}"
        try:
            if files:
                r = self.session.post(url, data=payload, files=files, timeout=timeout)
            else:
                r = self.session.post(url, json=payload, timeout=timeout)
            result = r.json()
        except (requests.RequestException, ValueError) as e:
            logger.error(f"{method} 请求异常: {e}")
            return None

        if not isinstance(result, dict) or not result.get("ok"):
            logger.error(f"{method} 失败: {r.text[:300]}")
            return None
        return result.get("result")

    # ------------------------------------------------------------

    def get_me(self) -> Optional[Dict[str, Any]]:
        """验证 Token，返回 Bot 信息。"""
        return self._call("getMe", {})

    def get_chat(self) -> Optional[Dict[str, Any]]:
        """获取目标频道信息（成功后缓存）。"""
        if self._chat is None:
            if not self.chat_id:
                logger.error("未配置 Telegram Chat ID")
                return None
            self._chat = self._call("getChat", {"chat_id": self.chat_id})
        return self._chat

    def send_text(self, text: str, preview_url: Optional[str] = None) -> bool:
        """发送 HTML 文本消息；preview_url 作为链接预览（小图）。"""
        payload: Dict[str, Any] = {
            "chat_id": self.chat_id,
            "text": text,
            "parse_mode": "HTML",
        }
        if preview_url:
            payload["link_preview_options"] = {
                "url": preview_url,
                "prefer_small_media": True,
            }
        else:
            payload["link_preview_options"] = {"is_disabled": True}
        return self._call("sendMessage", payload) is not None

    def send_photo(self, photo_url: str, caption: str = "") -> bool:
        """发送单张图片。"""
        payload = {
            "chat_id": self.chat_id,
            "photo": photo_url,
            "caption": caption[:CAPTION_LIMIT],
            "parse_mode": "HTML",
        }
        return self._call("sendPhoto", payload, timeout=30) is not None

    def send_video(self, path: pathlib.Path, filename: str) -> bool:
        """上传本地视频文件。"""
        with open(path, "rb") as fh:
            files = {"video": (filename, fh, "video/mp4")}
            return self._call(
                "sendVideo",
                {"chat_id": self.chat_id, "supports_streaming": "true"},
                timeout=120,
                files=files,
            ) is not None


def notify_post(bot: TelegramBot, message: ChatMessage, media: ResolvedMedia) -> bool:
    """
    发送推文消息。

    图片随消息内嵌发送；视频在主消息成功之后单独上传。

    Returns:
        主消息是否发送成功
    """
    if isinstance(media, Image):
        ok = bot.send_photo(media.url, render_html(message, CAPTION_LIMIT))
        if not ok:
            # 部分链接（如 pic.twitter.com）不是图片本身，退回纯文本
            logger.warning(f"图片发送失败，改为发送文本: {media.url}")
            ok = bot.send_text(render_html(message, TEXT_LIMIT), preview_url=media.url)
    else:
        ok = bot.send_text(render_html(message, TEXT_LIMIT), preview_url=message.avatar_url)

    if ok and isinstance(media, Video):
        try:
            if bot.send_video(media.path, media.filename):
                logger.info(f"视频已单独发送: {media.filename}")
            else:
                logger.error(f"视频发送失败: {media.filename}")
        except OSError as e:
            logger.error(f"读取视频文件失败 {media.path}: {e}")

    return ok
