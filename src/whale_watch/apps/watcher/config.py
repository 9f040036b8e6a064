"""Configuration dataclass for the whale watcher service.

Hold all tuneable parameters for the service: exchange feed URL, reconnect
policy, broadcast cadence, and the HTTP bind address. Immutable after
construction to prevent accidental mutation during long-running sessions.
"""

from dataclasses import dataclass

from whale_watch.core.config import ConfigError, ConfigLoader, get_config

DEFAULT_FEED_URL = "wss://stream.binance.com:9443/ws/btcusdt@trade"
_DEFAULT_MAX_RECONNECT_ATTEMPTS = 5
_DEFAULT_RECONNECT_DELAY = 5.0
_DEFAULT_BROADCAST_EVERY = 5
_DEFAULT_SNAPSHOT_INTERVAL = 10
_DEFAULT_STATUS_INTERVAL = 30
_DEFAULT_PORT = 3000


@dataclass(frozen=True)
class WatcherConfig:
    """Immutable configuration for a whale watcher session.

    Attributes:
        feed_url: Binance trade stream WebSocket URL.
        base_asset: Ticker of the traded base asset, used in alert messages.
        max_reconnect_attempts: Consecutive failed connections tolerated
            before the feed gives up.
        reconnect_delay: Seconds to wait between reconnect attempts.
        broadcast_every: Broadcast chart data and metrics after this many
            processed trades.
        snapshot_interval_seconds: Broadcast chart data and metrics on this
            timer even when trades are sparse.
        status_interval_seconds: How often to log a status line.
        reset_interval_seconds: How often to reset the detector; ``0``
            disables automatic resets.
        host: HTTP bind address.
        port: HTTP bind port.

    """

    feed_url: str = DEFAULT_FEED_URL
    base_asset: str = "BTC"
    max_reconnect_attempts: int = _DEFAULT_MAX_RECONNECT_ATTEMPTS
    reconnect_delay: float = _DEFAULT_RECONNECT_DELAY
    broadcast_every: int = _DEFAULT_BROADCAST_EVERY
    snapshot_interval_seconds: int = _DEFAULT_SNAPSHOT_INTERVAL
    status_interval_seconds: int = _DEFAULT_STATUS_INTERVAL
    reset_interval_seconds: int = 0
    host: str = "0.0.0.0"  # noqa: S104
    port: int = _DEFAULT_PORT


def load_watcher_config(loader: ConfigLoader | None = None) -> WatcherConfig:
    """Build a ``WatcherConfig`` from the ``watcher`` section of the YAML settings.

    Args:
        loader: Config loader to read from; defaults to the global one.

    Raises:
        ConfigError: If a value cannot be converted or is out of range.

    """
    loader = loader or get_config()
    defaults = WatcherConfig()
    config = WatcherConfig(
        feed_url=str(loader.get("watcher.feed_url", defaults.feed_url)),
        base_asset=str(loader.get("watcher.base_asset", defaults.base_asset)),
        max_reconnect_attempts=loader.get_int(
            "watcher.max_reconnect_attempts", defaults.max_reconnect_attempts
        ),
        reconnect_delay=loader.get_float("watcher.reconnect_delay", defaults.reconnect_delay),
        broadcast_every=loader.get_int("watcher.broadcast_every", defaults.broadcast_every),
        snapshot_interval_seconds=loader.get_int(
            "watcher.snapshot_interval", defaults.snapshot_interval_seconds
        ),
        status_interval_seconds=loader.get_int(
            "watcher.status_interval", defaults.status_interval_seconds
        ),
        reset_interval_seconds=loader.get_int(
            "watcher.reset_interval", defaults.reset_interval_seconds
        ),
        host=str(loader.get("watcher.host", defaults.host)),
        port=loader.get_int("watcher.port", defaults.port),
    )
    if config.broadcast_every < 1:
        msg = f"watcher.broadcast_every must be positive, got {config.broadcast_every}"
        raise ConfigError(msg)
    if config.max_reconnect_attempts < 0:
        msg = (
            "watcher.max_reconnect_attempts must not be negative, "
            f"got {config.max_reconnect_attempts}"
        )
        raise ConfigError(msg)
    return config
