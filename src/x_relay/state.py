"""状态管理模块。"""

from __future__ import annotations

import json
import logging
import pathlib
from typing import Any, Dict, List, Optional

from .models import BotState


logger = logging.getLogger(__name__)


class StateStore:
    """
    已处理推文 ID 与最后获取时间的持久化。

    processed_ids.json: {"推文ID": true, ...}
    bot_state.json:     {"lastFetchTimestamp": 毫秒时间戳或 null}
    """

    def __init__(self, seen_file: pathlib.Path, state_file: pathlib.Path):
        self.seen_file = seen_file
        self.state_file = state_file

    @staticmethod
    def _read_json(path: pathlib.Path) -> Optional[Any]:
        if not path.exists():
            return None
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.error(f"加载状态文件失败 {path}: {e}")
            return None

    def load(self) -> BotState:
        """加载状态；文件缺失或损坏时从空状态开始。"""
        state = BotState()

        seen = self._read_json(self.seen_file)
        if isinstance(seen, dict):
            state.seen = {str(k): True for k, v in seen.items() if v}
            logger.info(f"已加载 {len(state.seen)} 个已处理推文 ID")
        elif seen is not None:
            logger.error(f"{self.seen_file} 格式异常，忽略")

        saved = self._read_json(self.state_file)
        if isinstance(saved, dict):
            ts = saved.get("lastFetchTimestamp")
            if isinstance(ts, (int, float)) and not isinstance(ts, bool):
                state.last_fetch_timestamp = int(ts)
                logger.info(f"已加载最后获取时间: {state.last_fetch_timestamp}")
        elif saved is not None:
            logger.error(f"{self.state_file} 格式异常，忽略")

        return state

    def save(self, state: BotState) -> bool:
        """覆盖写入两个状态文件，失败时记录日志并返回 False。"""
        seen: Dict[str, bool] = {k: True for k in state.seen}
        try:
            self.seen_file.parent.mkdir(parents=True, exist_ok=True)
            self.seen_file.write_text(json.dumps(seen, indent=2), encoding="utf-8")
            self.state_file.parent.mkdir(parents=True, exist_ok=True)
            self.state_file.write_text(
                json.dumps({"lastFetchTimestamp": state.last_fetch_timestamp}, indent=2),
                encoding="utf-8",
            )
        except OSError as e:
            logger.error(f"保存状态失败: {e}")
            return False
        return True

    def reset(self) -> List[pathlib.Path]:
        """删除两个状态文件，返回实际删除的路径。"""
        deleted: List[pathlib.Path] = []
        for path in (self.seen_file, self.state_file):
            if not path.exists():
                logger.info(f"{path} 不存在，无需删除")
                continue
            try:
                path.unlink()
            except OSError as e:
                logger.error(f"删除 {path} 失败: {e}")
                continue
            logger.info(f"已删除 {path}")
            deleted.append(path)
        return deleted
