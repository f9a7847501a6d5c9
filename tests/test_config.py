from x_relay.config import DEFAULT_POLL_INTERVAL_MS, Config

ENV_NAMES = ("FEED_API_URL", "TG_TOKEN", "TG_CHAT_ID", "POLL_INTERVAL")


def _clear(monkeypatch):
    # setenv first so values loaded from .env are undone after the test
    for name in ENV_NAMES:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)


def test_from_env_reads_dotenv(monkeypatch, tmp_path):
    _clear(monkeypatch)
    (tmp_path / ".env").write_text(
        "FEED_API_URL=https://api-neo.bullx.io/v2/feed\n"
        "TG_TOKEN=abc\n"
        "TG_CHAT_ID=-100123\n"
        "POLL_INTERVAL=1000\n"
    )

    config = Config.from_env(tmp_path)

    assert config.feed_url == "https://api-neo.bullx.io/v2/feed"
    assert config.bot_token == "abc"
    assert config.chat_id == "-100123"
    assert config.poll_interval_ms == 1000
    assert config.seen_file == tmp_path / "messages" / "x_relay" / "processed_ids.json"
    assert config.state_file == tmp_path / "messages" / "x_relay" / "bot_state.json"
    assert config.validate() == []
    assert config.warnings() == []


def test_defaults_and_validation(monkeypatch, tmp_path):
    _clear(monkeypatch)
    monkeypatch.setenv("POLL_INTERVAL", "fast")

    config = Config.from_env(tmp_path)

    assert config.poll_interval_ms == DEFAULT_POLL_INTERVAL_MS
    errors = config.validate()
    assert len(errors) == 3
    assert any("FEED_API_URL" in e for e in errors)


def test_unexpected_host_is_only_a_warning(monkeypatch, tmp_path):
    _clear(monkeypatch)
    monkeypatch.setenv("FEED_API_URL", "https://example.com/feed")
    monkeypatch.setenv("TG_TOKEN", "abc")
    monkeypatch.setenv("TG_CHAT_ID", "1")

    config = Config.from_env(tmp_path)

    assert config.validate() == []
    assert len(config.warnings()) == 1


def test_non_positive_interval_is_invalid(monkeypatch, tmp_path):
    _clear(monkeypatch)
    monkeypatch.setenv("POLL_INTERVAL", "0")
    assert any("POLL_INTERVAL" in e for e in Config.from_env(tmp_path).validate())


def test_ensure_dirs(tmp_path):
    config = Config(feed_url="", tg_token="", tg_chat_id="", **Config.paths(tmp_path))
    config.ensure_dirs()
    assert config.cache_dir.is_dir()
