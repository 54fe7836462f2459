"""Configuration system using pydantic-settings with environment variable loading."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class ExchangeSettings(BaseSettings):
    """Binance USDT-M futures connection settings (public endpoints only)."""

    model_config = SettingsConfigDict(env_prefix="EXCHANGE_")

    enable_rate_limit: bool = True
    timeout_ms: int = 10000
    quote_currency: str = "USDT"


class ScannerSettings(BaseSettings):
    """Polling and batching parameters for the signal scanner.

    All fields configurable via SCANNER_ environment variable prefix.
    """

    model_config = SettingsConfigDict(env_prefix="SCANNER_")

    timeframe: str = "1d"
    max_symbols: int = 500
    batch_size: int = 10
    candle_limit: int = 500
    batch_delay: float = 0.5  # seconds between batches
    poll_interval_fast: float = 60.0  # seconds, used for the 15m timeframe
    poll_interval_slow: float = 300.0  # seconds, used for 4h and 1d
    min_candles: int = 14


class IndicatorSettings(BaseSettings):
    """Indicator periods and detector tolerances.

    Periods are always passed explicitly to the indicator functions; these
    values are the single place the defaults live.
    """

    model_config = SettingsConfigDict(env_prefix="INDICATOR_")

    ema_short_period: int = 14
    ema_mid_period: int = 70
    ema_long_period: int = 200
    rsi_period: int = 14
    zone_lookback: int = 14

    trend_tolerance_percent: float = 0.5
    doji_tolerance_ratio: float = 0.1

    volume_spike_lookback: int = 20
    volume_spike_multiplier: float = 2.0
    ema_touch_margin: float = 0.0015  # 0.15% band around an EMA counts as a touch
    inside_range_lookback: int = 5

    # Daily session: exchange-local cutover translated to UTC by a fixed offset
    session_utc_offset_hours: int = 8
    session_cutover_hour: int = 8
    session_end_hour: int = 7
    session_end_minute: int = 45
    session_history: int = 4  # daily sessions used for top/bottom patterns


class DashboardSettings(BaseSettings):
    """Dashboard server configuration."""

    model_config = SettingsConfigDict(env_prefix="DASHBOARD_")

    host: str = "0.0.0.0"
    port: int = 8080
    enabled: bool = True
    update_interval: int = 5  # seconds between WebSocket pushes


class AppSettings(BaseSettings):
    """Root application settings, composing all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    log_level: str = "INFO"
    log_format: str = "console"  # "console" or "json"
    exchange: ExchangeSettings = ExchangeSettings()
    scanner: ScannerSettings = ScannerSettings()
    indicators: IndicatorSettings = IndicatorSettings()
    dashboard: DashboardSettings = DashboardSettings()
