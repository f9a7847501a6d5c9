"""Feed 接口获取模块。

列表接口返回结构示例：
{
    "data": [
        {
            "id": "1879000000000000000",
            "text": "推文正文",
            "created_at": "2025-01-14T03:21:05.000Z",
            "user": {
                "username": "用户名",
                "name": "显示名",
                "profile_image_url_https": "头像 URL"
            },
            "in_reply_to_user_id": null,
            "referenced_tweets": [{"type": "retweeted", "id": "..."}],
            "extended_entities": {"media": [...]},
            "entities": {"media": [...], "urls": [...]},
            "attachments": {"media_keys": [...]}
        }
    ]
}

单条详情接口 ({DETAIL_API_BASE}{推文ID}) 返回 {"data": {...}}，
其中可能包含 video / parent.video / mediaDetails / photos。
"""

from __future__ import annotations

import logging
import pathlib
import time
from typing import Any, Callable, Dict, List, Optional

import requests

from .models import Post
from .retry import MAX_RETRIES, RETRY_DELAY, with_retry


DETAIL_API_BASE = "https://api-neo.bullx.io/v2/tweet/"

# 上游接口要求固定的请求头
API_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Referer": "https://api-neo.bullx.io/",
    "Origin": "https://api-neo.bullx.io",
    "Content-Type": "application/json",
}

FEED_TIMEOUT = 10
DOWNLOAD_TIMEOUT = 15

logger = logging.getLogger(__name__)


class FeedClient:
    """推文列表、单条详情与媒体下载。"""

    def __init__(
        self,
        feed_url: str,
        cache_dir: pathlib.Path,
        detail_base: str = DETAIL_API_BASE,
        session: Optional[requests.Session] = None,
        retry_delay: float = RETRY_DELAY,
        sleep_fn: Optional[Callable[[float], None]] = None,
    ):
        self.feed_url = feed_url
        self.cache_dir = cache_dir
        self.detail_base = detail_base
        self.session = session or requests.Session()
        self.retry_delay = retry_delay
        self.sleep_fn = sleep_fn or time.sleep

    def _retry(self, fn: Callable[[], Any], operation: str) -> Any:
        return with_retry(
            fn,
            max_attempts=MAX_RETRIES,
            delay=self.retry_delay,
            operation=operation,
            sleep_fn=self.sleep_fn,
        )

    def _get_json(self, url: str) -> Optional[Any]:
        """GET 请求；非 200 抛出异常，响应不是 JSON 时返回 None。"""
        resp = self.session.get(url, headers=API_HEADERS, timeout=FEED_TIMEOUT)
        if resp.status_code != 200:
            raise RuntimeError(f"HTTP {resp.status_code}")
        try:
            return resp.json()
        except ValueError as e:
            logger.warning(f"JSON 解析失败: {e}")
            return None

    # ------------------------------------------------------------

    def fetch_batch(self) -> List[Post]:
        """
        获取当前一批推文。

        Returns:
            Post 列表（保持接口顺序）；响应结构不符时为空列表

        Raises:
            重试耗尽后的最后一个异常
        """
        def attempt() -> List[Post]:
            logger.debug(f"获取推文列表: {self.feed_url[:80]}")
            payload = self._get_json(self.feed_url)
            items = payload.get("data") if isinstance(payload, dict) else None
            if not isinstance(items, list):
                preview = repr(payload)[:200]
                logger.warning(f"响应格式异常，按空列表处理: {preview}")
                return []
            return parse_posts(items)

        return self._retry(attempt, "获取推文列表")

    def fetch_detail(self, post_id: str) -> Optional[Dict[str, Any]]:
        """获取单条推文详情，返回 data 字段（没有则为 None）。"""
        url = f"{self.detail_base}{post_id}"

        def attempt() -> Optional[Dict[str, Any]]:
            logger.info(f"获取推文详情: {post_id}")
            payload = self._get_json(url)
            data = payload.get("data") if isinstance(payload, dict) else None
            return data if isinstance(data, dict) else None

        return self._retry(attempt, f"获取推文详情 {post_id}")

    def download_media(self, url: str, filename: str) -> pathlib.Path:
        """下载媒体文件到缓存目录，返回本地路径。"""
        target = self.cache_dir / filename

        def attempt() -> pathlib.Path:
            logger.info(f"下载媒体: {url}")
            resp = self.session.get(url, timeout=DOWNLOAD_TIMEOUT)
            resp.raise_for_status()
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            target.write_bytes(resp.content)
            logger.info(f"媒体已保存: {target}")
            return target

        return self._retry(attempt, f"下载媒体 {filename}")


def parse_posts(items: List[Any]) -> List[Post]:
    """将接口 data 数组转换为 Post 列表，跳过无效条目。"""
    posts: List[Post] = []
    for item in items:
        if not isinstance(item, dict) or item.get("id") in (None, ""):
            logger.debug(f"跳过无效条目: {repr(item)[:80]}")
            continue
        posts.append(Post.from_api(item))
    return posts
