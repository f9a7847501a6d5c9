"""推文转发机器人主入口。"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from dataclasses import dataclass
from typing import Callable, List, Optional

from .config import Config
from .dedup import select_posts
from .feed import FeedClient
from .media import CLEANUP_DELAY, held_media, resolve_media
from .message import compose_message
from .models import BotState, Post
from .state import StateStore
from .telegram import TelegramBot, notify_post


logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class CycleResult:
    """单次轮询的结果。"""

    fetched: int = 0
    baseline: bool = False
    recent: int = 0
    published: int = 0
    saved: bool = False


def process_post(
    post: Post,
    client: FeedClient,
    bot: TelegramBot,
    cleanup_delay: float = CLEANUP_DELAY,
) -> bool:
    """解析媒体、组装并发送一条推文。"""
    if not post.has_author:
        logger.info(f"缺少用户信息，跳过: {post.id}")
        return False

    logger.info(f"检测到新推文: {post.id} (@{post.handle})")

    try:
        detail = client.fetch_detail(post.id)
    except Exception as e:
        logger.error(f"获取推文详情失败 {post.id}: {e}")
        detail = None

    media = resolve_media(post, detail, client.download_media)
    with held_media(media, cleanup_delay):
        message = compose_message(post, media)
        ok = notify_post(bot, message, media)

    if ok:
        logger.info(f"已发送推文 {post.id}")
    return ok


def run_cycle(
    state: BotState,
    store: StateStore,
    client: FeedClient,
    bot: TelegramBot,
    clock: Callable[[], int] = now_ms,
    cleanup_delay: float = CLEANUP_DELAY,
) -> CycleResult:
    """
    执行一次轮询：获取 → 过滤 → 标记并保存 → 逐条发送。

    state 只在这里修改；保存在发送之前完成，
    中途崩溃不会导致重启后重复发送。
    """
    result = CycleResult()

    try:
        posts = client.fetch_batch()
    except Exception as e:
        logger.error(f"获取推文失败: {e}")
        return result

    fetch_time = clock()
    result.fetched = len(posts)
    decision = select_posts(posts, state, fetch_time)

    if decision.baseline:
        logger.info("首次运行：将现有推文全部标记为已处理，不发送")
        for post_id in decision.mark_seen:
            state.seen[post_id] = True
        state.last_fetch_timestamp = fetch_time
        result.baseline = True
        result.saved = store.save(state)
        return result

    result.recent = len(decision.recent)
    if not decision.recent:
        # 没有新近推文时只更新内存中的标记和时间，不写文件
        for post_id in decision.mark_seen:
            state.seen[post_id] = True
        state.last_fetch_timestamp = fetch_time
        return result

    logger.info(f"发现 {len(decision.recent)} 条新近推文，其中 {len(decision.publish)} 条待发送")

    if decision.publish and bot.get_chat() is None:
        logger.error(f"找不到 Telegram 频道: {bot.chat_id}")
        return result

    for post_id in decision.mark_seen:
        state.seen[post_id] = True
    state.last_fetch_timestamp = fetch_time
    result.saved = store.save(state)

    for post in decision.publish:
        try:
            if process_post(post, client, bot, cleanup_delay):
                result.published += 1
        except Exception:
            logger.exception(f"处理推文 {post.id} 出错")

    return result


def poll_forever(
    state: BotState,
    store: StateStore,
    client: FeedClient,
    bot: TelegramBot,
    interval_ms: int,
    sleep_fn: Callable[[float], None] = time.sleep,
    max_cycles: Optional[int] = None,
) -> None:
    """
    按固定间隔（从每轮开始计时）轮询。

    上一轮超时时下一轮立即开始，两轮不会重叠。
    """
    logger.info(f"开始监控推文，轮询间隔 {interval_ms}ms")
    interval = interval_ms / 1000
    cycles = 0

    while max_cycles is None or cycles < max_cycles:
        started = time.monotonic()
        try:
            run_cycle(state, store, client, bot)
        except Exception:
            logger.exception("轮询出错")
        cycles += 1

        remaining = interval - (time.monotonic() - started)
        if remaining > 0 and (max_cycles is None or cycles < max_cycles):
            sleep_fn(remaining)


def main(argv: Optional[List[str]] = None) -> int:
    """主函数，返回退出码。"""
    parser = argparse.ArgumentParser(description="轮询推文接口并转发到 Telegram 频道")
    parser.add_argument("--once", action="store_true", help="只执行一次轮询")
    args = parser.parse_args(argv)

    # 加载配置
    config = Config.from_env()
    errors = config.validate()
    if errors:
        for err in errors:
            logger.error(err)
        logger.error("配置无效，退出")
        return 1
    for warning in config.warnings():
        logger.warning(warning)
    config.ensure_dirs()

    # 初始化 Telegram Bot
    bot = TelegramBot(config.bot_token, config.chat_id)
    me = bot.get_me()
    if me is None:
        logger.error("Telegram 登录失败，退出")
        return 1
    logger.info(f"已登录: @{me.get('username')}")

    # 初始化状态
    store = StateStore(config.seen_file, config.state_file)
    state = store.load()

    client = FeedClient(config.feed_url, config.cache_dir)

    if args.once:
        run_cycle(state, store, client, bot)
        return 0

    poll_forever(state, store, client, bot, config.poll_interval_ms)
    return 0


def cli_main() -> None:
    """CLI 入口点。"""
    sys.exit(main())


if __name__ == "__main__":
    cli_main()
