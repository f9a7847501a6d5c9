"""配置加载模块。"""

from __future__ import annotations

import os
import pathlib
from dataclasses import dataclass
from typing import List, Optional
from urllib.parse import urlparse

from dotenv import load_dotenv


EXPECTED_FEED_HOST = "api-neo.bullx.io"
DEFAULT_POLL_INTERVAL_MS = 300


def _int_env(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


@dataclass
class Config:
    """应用配置。"""

    # 推文列表接口
    feed_url: str
    # Telegram Bot Token
    tg_token: str
    # Telegram Chat ID（目标频道）
    tg_chat_id: str
    # 数据目录
    data_dir: pathlib.Path
    # 视频缓存目录
    cache_dir: pathlib.Path
    # 已处理 ID 文件
    seen_file: pathlib.Path
    # 状态文件
    state_file: pathlib.Path
    # 轮询间隔（毫秒）
    poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS

    @property
    def bot_token(self) -> str:
        return self.tg_token

    @property
    def chat_id(self) -> str:
        return self.tg_chat_id

    @classmethod
    def paths(cls, root: pathlib.Path) -> dict:
        data_dir = root / "messages" / "x_relay"
        return {
            "data_dir": data_dir,
            "cache_dir": data_dir / "cache",
            "seen_file": data_dir / "processed_ids.json",
            "state_file": data_dir / "bot_state.json",
        }

    @classmethod
    def from_env(cls, root: Optional[pathlib.Path] = None) -> "Config":
        """从环境变量加载配置。"""
        if root is None:
            root = pathlib.Path(__file__).resolve().parents[2]

        # 加载 .env 文件
        env_file = root / ".env"
        if env_file.exists():
            load_dotenv(env_file)

        return cls(
            feed_url=os.getenv("FEED_API_URL", ""),
            tg_token=os.getenv("TG_TOKEN", ""),
            tg_chat_id=os.getenv("TG_CHAT_ID", ""),
            poll_interval_ms=_int_env("POLL_INTERVAL", DEFAULT_POLL_INTERVAL_MS),
            **cls.paths(root),
        )

    def ensure_dirs(self) -> None:
        """确保目录存在。"""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.cache_dir.mkdir(parents=True, exist_ok=True)

    def validate(self) -> List[str]:
        """验证配置，返回错误列表。"""
        errors = []
        if not self.feed_url:
            errors.append("未配置 FEED_API_URL")
        if not self.tg_token:
            errors.append("未配置 TG_TOKEN")
        if not self.tg_chat_id:
            errors.append("未配置 TG_CHAT_ID")
        if self.poll_interval_ms <= 0:
            errors.append(f"POLL_INTERVAL 必须为正数: {self.poll_interval_ms}")
        return errors

    def warnings(self) -> List[str]:
        """非致命的配置问题。"""
        host = urlparse(self.feed_url).hostname or ""
        if self.feed_url and host != EXPECTED_FEED_HOST:
            return [f"FEED_API_URL 的主机不是 {EXPECTED_FEED_HOST}，请确认地址是否正确"]
        return []
