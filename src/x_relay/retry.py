"""固定间隔重试。"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional, TypeVar

T = TypeVar("T")

MAX_RETRIES = 3
RETRY_DELAY = 1.0

logger = logging.getLogger(__name__)


def with_retry(
    fn: Callable[[], T],
    max_attempts: int = MAX_RETRIES,
    delay: float = RETRY_DELAY,
    operation: str = "",
    sleep_fn: Optional[Callable[[float], None]] = None,
) -> T:
    """
    调用 fn()，失败时按固定间隔重试。

    Args:
        fn: 要执行的操作
        max_attempts: 最多尝试次数（含首次）
        delay: 两次尝试之间的等待（秒），不做指数退避
        operation: 日志中显示的操作名
        sleep_fn: 等待函数，默认 time.sleep

    Returns:
        fn() 的返回值

    Raises:
        最后一次尝试抛出的异常
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")

    sleeper = sleep_fn or time.sleep
    op = operation or getattr(fn, "__name__", "operation")

    for attempt in range(1, max_attempts + 1):
        try:
            return fn()
        except Exception as e:
            logger.warning(f"{op}: 第 {attempt}/{max_attempts} 次尝试失败: {e}")
            if attempt >= max_attempts:
                raise
            logger.info(f"{op}: {delay:g} 秒后重试")
            sleeper(delay)

    raise RuntimeError(f"重试循环意外结束: {op}")
