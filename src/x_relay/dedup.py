"""去重与时效过滤。"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from .models import BotState, Post


# 只处理一分钟内发布的推文，接口会反复返回较旧的推文
FRESHNESS_WINDOW_MS = 60 * 1000

_EPOCH = datetime.fromtimestamp(0, tz=timezone.utc)


@dataclass
class CycleDecision:
    """单次轮询的处理决定。"""

    baseline: bool = False
    recent: List[Post] = field(default_factory=list)
    publish: List[Post] = field(default_factory=list)
    mark_seen: List[str] = field(default_factory=list)


def to_ms(dt: datetime) -> int:
    return int(dt.timestamp() * 1000)


def post_age_ms(post: Post, now_ms: int) -> Optional[int]:
    if post.created_at is None:
        return None
    return now_ms - to_ms(post.created_at)


def select_posts(
    posts: Sequence[Post],
    state: BotState,
    now_ms: int,
    window_ms: int = FRESHNESS_WINDOW_MS,
) -> CycleDecision:
    """
    决定本轮要标记和发送的推文，不修改 state。

    - 首次运行：全部标记为已处理，不发送。
    - 之后：按发布时间倒序，只保留 window_ms 内的推文；
      其中未出现在 state.seen 的才发送。所有获取到的推文都会被标记。
    """
    all_ids = list(dict.fromkeys(p.id for p in posts))

    if state.is_first_run:
        return CycleDecision(baseline=True, mark_seen=all_ids)

    ordered = sorted(posts, key=lambda p: p.created_at or _EPOCH, reverse=True)

    recent: List[Post] = []
    for post in ordered:
        age = post_age_ms(post, now_ms)
        # 没有发布时间的推文无法判断时效，直接跳过
        if age is not None and age <= window_ms:
            recent.append(post)

    publish: List[Post] = []
    queued = set()
    for post in recent:
        if state.seen.get(post.id) or post.id in queued:
            continue
        queued.add(post.id)
        publish.append(post)

    return CycleDecision(recent=recent, publish=publish, mark_seen=all_ids)
