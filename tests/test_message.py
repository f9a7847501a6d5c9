import pathlib
from datetime import datetime, timezone

from x_relay.message import CAPTION_LIMIT, compose_message, format_jst, render_html
from x_relay.models import Image, MediaMarker, Post, Video


def _post(**raw):
    raw.setdefault("id", "100")
    raw.setdefault("user", {"username": "alice", "name": "Alice <A>"})
    raw.setdefault("created_at", "2025-01-14T03:21:05Z")
    return Post.from_api(raw)


def test_basic_message():
    msg = compose_message(_post(text="hello"), None)
    assert msg.description == "hello"
    assert msg.author_name == "Alice <A>"
    assert msg.author_handle == "alice"
    assert msg.url == "https://twitter.com/alice/status/100"
    assert msg.footer == "Tweet • via Twitter Feed"
    assert msg.fields == [("Tweet Link", "View original tweet")]
    assert msg.image_url is None
    assert msg.timestamp == datetime(2025, 1, 14, 3, 21, 5, tzinfo=timezone.utc)


def test_placeholders():
    retweet = _post(referenced_tweets=[{"type": "retweeted"}])
    with_keys = _post(attachments={"media_keys": ["3_1"]})
    assert compose_message(retweet, None).description == "Retweeted"
    assert compose_message(with_keys, MediaMarker()).description == "Shared media"
    assert compose_message(_post(text="  "), Image(url="https://pbs/a.jpg")).description == "Shared media"
    assert compose_message(_post(), None).description == "Posted a tweet"


def test_reply_note_and_footer():
    msg = compose_message(_post(text="hi", in_reply_to_user_id="9"), None)
    assert ("Replying to a tweet", "This is a reply to another user's tweet.") in msg.fields
    assert msg.footer.startswith("Reply • ")


def test_media_annotations():
    video = Video(path=pathlib.Path("/c/v.mp4"), filename="v.mp4")
    parent = Video(path=pathlib.Path("/c/v.mp4"), filename="v.mp4", from_parent=True)
    assert compose_message(_post(text="x"), video).footer.endswith("• Video will follow")
    assert compose_message(_post(text="x"), parent).footer.endswith("• Video from referenced tweet will follow")
    assert compose_message(_post(text="x"), Image(url="u", count=3)).footer.endswith("• 3 images")
    assert compose_message(_post(text="x"), Image(url="u")).footer == "Tweet • via Twitter Feed"
    assert compose_message(_post(text="x"), MediaMarker()).footer.endswith("• Contains media")


def test_image_is_embedded_only_for_images():
    assert compose_message(_post(text="x"), Image(url="https://pbs/a.jpg")).image_url == "https://pbs/a.jpg"
    video = Video(path=pathlib.Path("/c/v.mp4"), filename="v.mp4")
    assert compose_message(_post(text="x"), video).image_url is None


def test_render_escapes_html():
    html_text = render_html(compose_message(_post(text="a < b & c"), None))
    assert "a &lt; b &amp; c" in html_text
    assert "<b>Alice &lt;A&gt;</b>" in html_text
    assert 'href="https://twitter.com/alice/status/100"' in html_text
    assert format_jst(datetime(2025, 1, 14, 3, 21, 5, tzinfo=timezone.utc)) in html_text


def test_render_truncates_long_body():
    msg = compose_message(_post(text="word " * 1000), None)
    caption = render_html(msg, CAPTION_LIMIT)
    assert len(caption) <= CAPTION_LIMIT
    assert "…" in caption
    assert "via Twitter Feed" in caption


def test_format_jst():
    assert format_jst(datetime(2025, 1, 14, 3, 21, 5, tzinfo=timezone.utc)) == "2025/01/14 12:21:05 JST"
