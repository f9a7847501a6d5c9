"""推文媒体解析模块。

按顺序尝试一组解析策略，第一个得到结果的策略生效。
每一层中视频优先于图片：

1. 详情 video
2. 详情 parent.video（回复视频推文）
3. 详情 mediaDetails 中的视频 / GIF
4. 详情 photos
5. 详情 mediaDetails 中的图片（仅当没有 photos）
6. 原始 extended_entities 视频
7. 原始 extended_entities 图片
8. 原始 entities.media
9. 原始 entities.urls 中附带的 images
10. 原始 entities.urls 中的 pic.twitter.com / pic.x.com / /photo/ 链接
11. 原始 attachments.media_keys（只能标注"含有媒体"）
"""

from __future__ import annotations

import logging
import pathlib
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence
from urllib.parse import urlparse

from .models import Image, MediaMarker, Post, ResolvedMedia, Video


MP4 = "video/mp4"
VIDEO_TYPES = ("video", "animated_gif")
PHOTO_LINK_HOSTS = ("pic.twitter.com", "pic.x.com")

# 视频发送后删除本地文件的延迟（秒）
CLEANUP_DELAY = 5.0

Downloader = Callable[[str, str], pathlib.Path]

logger = logging.getLogger(__name__)


@dataclass
class MediaContext:
    post: Post
    detail: Optional[Dict[str, Any]]
    download: Downloader


# ============================================================
# 通用工具
# ============================================================

def _as_list(value: Any) -> List[Any]:
    return [v for v in value if isinstance(v, dict)] if isinstance(value, list) else []


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _bitrate(variant: Dict[str, Any]) -> float:
    try:
        return float(variant.get("bitrate") or 0)
    except (TypeError, ValueError):
        return 0.0


def _variant_url(variant: Dict[str, Any]) -> Optional[str]:
    return variant.get("url") or variant.get("src")


def _is_mp4(variant: Dict[str, Any]) -> bool:
    kind = variant.get("content_type") or variant.get("type")
    if kind == MP4:
        return True
    url = _variant_url(variant)
    return bool(url) and urlparse(url).path.lower().endswith(".mp4")


def pick_mp4_variant(variants: Sequence[Dict[str, Any]]) -> Optional[str]:
    """
    从视频 variants 中选出码率最高的 MP4，返回其 URL。

    没有码率的按 0 处理；码率相同时取先出现的。
    """
    best: Optional[Dict[str, Any]] = None
    for variant in variants:
        if not isinstance(variant, dict) or not _is_mp4(variant) or not _variant_url(variant):
            continue
        if best is None or _bitrate(variant) > _bitrate(best):
            best = variant
    return _variant_url(best) if best else None


def _download_video(
    ctx: MediaContext,
    url: str,
    filename: str,
    source: str,
    from_parent: bool = False,
    count: int = 1,
) -> Optional[Video]:
    logger.info(f"在{source}中找到视频: {url}")
    try:
        path = ctx.download(url, filename)
    except Exception as e:
        # 下载失败视为没有视频，继续尝试后续策略
        logger.error(f"视频下载失败 ({ctx.post.id}): {e}")
        return None
    return Video(path=path, filename=filename, from_parent=from_parent, count=count)


# ============================================================
# 详情数据策略
# ============================================================

def detail_video(ctx: MediaContext) -> ResolvedMedia:
    video = _as_dict(_as_dict(ctx.detail).get("video"))
    url = pick_mp4_variant(_as_list(video.get("variants")))
    if not url:
        return None
    return _download_video(ctx, url, f"video_{ctx.post.id}.mp4", "推文详情")


def detail_parent_video(ctx: MediaContext) -> ResolvedMedia:
    parent = _as_dict(_as_dict(ctx.detail).get("parent"))
    video = _as_dict(parent.get("video"))
    url = pick_mp4_variant(_as_list(video.get("variants")))
    if not url:
        return None
    return _download_video(
        ctx, url, f"video_parent_{ctx.post.id}.mp4", "被回复推文", from_parent=True
    )


def _video_entries(media: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [
        m for m in media
        if m.get("type") in VIDEO_TYPES and _as_list(_as_dict(m.get("video_info")).get("variants"))
    ]


def _first_video_download(ctx: MediaContext, media: List[Dict[str, Any]], source: str) -> ResolvedMedia:
    entries = _video_entries(media)
    for entry in entries:
        url = pick_mp4_variant(_as_list(entry["video_info"]["variants"]))
        if url:
            return _download_video(
                ctx, url, f"video_{ctx.post.id}.mp4", source, count=len(entries)
            )
    return None


def detail_media_details_video(ctx: MediaContext) -> ResolvedMedia:
    media = _as_list(_as_dict(ctx.detail).get("mediaDetails"))
    return _first_video_download(ctx, media, "mediaDetails")


def detail_photos(ctx: MediaContext) -> ResolvedMedia:
    photos = _as_list(_as_dict(ctx.detail).get("photos"))
    for photo in photos:
        url = photo.get("url")
        if url and "media/" in url:
            logger.info(f"在详情 photos 中找到图片: {url}")
            return Image(url=url, count=len(photos))
    return None


def detail_media_details_photo(ctx: MediaContext) -> ResolvedMedia:
    detail = _as_dict(ctx.detail)
    if _as_list(detail.get("photos")):
        return None
    media = _as_list(detail.get("mediaDetails"))
    for entry in media:
        url = entry.get("media_url_https")
        if url and entry.get("type") == "photo":
            logger.info(f"在 mediaDetails 中找到图片: {url}")
            return Image(url=url, count=len(media))
    return None


# ============================================================
# 原始推文字段策略
# ============================================================

def extended_video(ctx: MediaContext) -> ResolvedMedia:
    media = _as_list(ctx.post.extended_entities.get("media"))
    return _first_video_download(ctx, media, "extended_entities")


def extended_image(ctx: MediaContext) -> ResolvedMedia:
    media = _as_list(ctx.post.extended_entities.get("media"))
    if not media:
        return None
    url = media[0].get("media_url_https") or media[0].get("media_url")
    if not url:
        return None
    logger.info(f"在 extended_entities 中找到图片: {url}")
    return Image(url=url, count=len(media))


def entity_media(ctx: MediaContext) -> ResolvedMedia:
    media = _as_list(ctx.post.entities.get("media"))
    if not media:
        return None
    url = media[0].get("media_url_https") or media[0].get("media_url")
    if not url:
        return None
    logger.info(f"在 entities.media 中找到图片: {url}")
    return Image(url=url)


def entity_url_images(ctx: MediaContext) -> ResolvedMedia:
    urls = _as_list(ctx.post.entities.get("urls"))
    with_images = [u for u in urls if _as_list(u.get("images"))]
    if not with_images:
        return None
    url = _as_list(with_images[0]["images"])[0].get("url")
    if not url:
        return None
    logger.info(f"在 entities.urls 的 images 中找到图片: {url}")
    return Image(url=url, count=len(with_images))


def _is_photo_link(entry: Dict[str, Any]) -> bool:
    display = entry.get("display_url") or ""
    expanded = entry.get("expanded_url") or ""
    return any(host in display for host in PHOTO_LINK_HOSTS) or "/photo/" in expanded


def entity_photo_links(ctx: MediaContext) -> ResolvedMedia:
    urls = _as_list(ctx.post.entities.get("urls"))
    links = [u["expanded_url"] for u in urls if _is_photo_link(u) and u.get("expanded_url")]
    if not links:
        return None
    logger.info(f"在 entities.urls 中找到 {len(links)} 个图片链接: {links[0]}")
    return Image(url=links[0], count=len(links))


def media_keys_marker(ctx: MediaContext) -> ResolvedMedia:
    keys = ctx.post.media_keys
    if not keys:
        return None
    logger.info(f"attachments 中有 media_keys: {keys[0]}")
    return MediaMarker()


DETAIL_TIERS = (
    detail_video,
    detail_parent_video,
    detail_media_details_video,
    detail_photos,
    detail_media_details_photo,
)

POST_TIERS = (
    extended_video,
    extended_image,
    entity_media,
    entity_url_images,
    entity_photo_links,
    media_keys_marker,
)


def resolve_media(
    post: Post,
    detail: Optional[Dict[str, Any]],
    download: Downloader,
) -> ResolvedMedia:
    """
    解析推文要附带的媒体。

    Args:
        post: 推文
        detail: 单条详情（获取失败或没有时为 None）
        download: 下载函数 (url, filename) -> 本地路径

    Returns:
        Image / Video / MediaMarker，均未找到时为 None
    """
    ctx = MediaContext(post=post, detail=detail, download=download)
    tiers = (DETAIL_TIERS if detail else ()) + POST_TIERS
    for tier in tiers:
        media = tier(ctx)
        if media is not None:
            return media
    return None


# ============================================================
# 临时文件清理
# ============================================================

def remove_file(path: pathlib.Path) -> None:
    """删除临时文件，文件已不存在时忽略。"""
    try:
        path.unlink()
        logger.info(f"已清理临时文件: {path}")
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.error(f"清理临时文件失败 {path}: {e}")


def schedule_removal(path: pathlib.Path, delay: float = CLEANUP_DELAY) -> Optional[threading.Timer]:
    """延迟删除文件。计时器不是守护线程，进程退出前会等待删除完成。"""
    if delay <= 0:
        remove_file(path)
        return None
    timer = threading.Timer(delay, remove_file, args=(path,))
    timer.start()
    return timer


@contextmanager
def held_media(media: ResolvedMedia, cleanup_delay: float = CLEANUP_DELAY) -> Iterator[ResolvedMedia]:
    """在发送期间持有媒体；退出时（包括发送失败）安排删除下载的视频。"""
    try:
        yield media
    finally:
        if isinstance(media, Video):
            schedule_removal(media.path, cleanup_delay)
