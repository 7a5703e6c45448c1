"""
Configuration Management for Threadsmith

Loads configuration from ~/.threadsmith/config.json and environment variables.
"""

import os
import json
import logging
from pathlib import Path
from dataclasses import dataclass, field

logger = logging.getLogger("threadsmith.common.config")

# Default config paths
CONFIG_DIR = Path.home() / ".threadsmith"
CONFIG_PATH = CONFIG_DIR / "config.json"


@dataclass
class EngineConfig:
    """Context engine limits and heuristic thresholds"""
    thread_idle_minutes: int = 30
    focus_stack_size: int = 10
    attention_cache_size: int = 100
    confidence_trail_size: int = 1000
    stale_after_hours: int = 24
    trending_limit: int = 5
    recent_decisions_limit: int = 5
    high_attention_threshold: int = 60


@dataclass
class ServerConfig:
    """HTTP server configuration"""
    host: str = "0.0.0.0"
    port: int = 8090


@dataclass
class ThreadsmithConfig:
    """Main Threadsmith configuration"""
    engine: EngineConfig = field(default_factory=EngineConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    log_level: str = "INFO"


def _parse_engine_config(data: dict) -> EngineConfig:
    """Parse engine section from config dict"""
    engine_data = data.get("engine", {})
    defaults = EngineConfig()
    return EngineConfig(
        thread_idle_minutes=engine_data.get("thread_idle_minutes", defaults.thread_idle_minutes),
        focus_stack_size=engine_data.get("focus_stack_size", defaults.focus_stack_size),
        attention_cache_size=engine_data.get("attention_cache_size", defaults.attention_cache_size),
        confidence_trail_size=engine_data.get("confidence_trail_size", defaults.confidence_trail_size),
        stale_after_hours=engine_data.get("stale_after_hours", defaults.stale_after_hours),
        trending_limit=engine_data.get("trending_limit", defaults.trending_limit),
        recent_decisions_limit=engine_data.get("recent_decisions_limit", defaults.recent_decisions_limit),
        high_attention_threshold=engine_data.get("high_attention_threshold", defaults.high_attention_threshold),
    )


def _parse_server_config(data: dict) -> ServerConfig:
    """Parse server section from config dict"""
    server_data = data.get("server", {})
    return ServerConfig(
        host=server_data.get("host", "0.0.0.0"),
        port=server_data.get("port", 8090),
    )


# Environment variable -> (section, attribute)
_ENV_INT_OVERRIDES = {
    "THREADSMITH_THREAD_IDLE_MINUTES": ("engine", "thread_idle_minutes"),
    "THREADSMITH_FOCUS_STACK_SIZE": ("engine", "focus_stack_size"),
    "THREADSMITH_ATTENTION_CACHE_SIZE": ("engine", "attention_cache_size"),
    "THREADSMITH_CONFIDENCE_TRAIL_SIZE": ("engine", "confidence_trail_size"),
    "THREADSMITH_STALE_AFTER_HOURS": ("engine", "stale_after_hours"),
    "THREADSMITH_TRENDING_LIMIT": ("engine", "trending_limit"),
    "THREADSMITH_PORT": ("server", "port"),
}


def load_config() -> ThreadsmithConfig:
    """
    Load configuration from file and environment variables.

    Priority (highest to lowest):
    1. Environment variables
    2. Config file (~/.threadsmith/config.json)
    3. Default values
    """
    config = ThreadsmithConfig()

    # Load from config file if exists
    if CONFIG_PATH.exists():
        try:
            with open(CONFIG_PATH) as f:
                data = json.load(f)

            config.engine = _parse_engine_config(data)
            config.server = _parse_server_config(data)
            config.log_level = data.get("log_level", "INFO")
        except (json.JSONDecodeError, IOError) as e:
            logger.warning("Failed to load config file %s: %s", CONFIG_PATH, e)

    # Environment variable overrides
    for env_var, (section, attr) in _ENV_INT_OVERRIDES.items():
        raw = os.getenv(env_var)
        if not raw:
            continue
        try:
            value = int(raw)
        except ValueError:
            logger.warning("Ignoring %s=%r: expected an integer", env_var, raw)
            continue
        setattr(getattr(config, section), attr, value)

    if os.getenv("THREADSMITH_HOST"):
        config.server.host = os.getenv("THREADSMITH_HOST")
    if os.getenv("THREADSMITH_LOG_LEVEL"):
        config.log_level = os.getenv("THREADSMITH_LOG_LEVEL")

    return config


def save_config(config: ThreadsmithConfig) -> None:
    """Save configuration to file."""
    CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)

    data = {
        "engine": {
            "thread_idle_minutes": config.engine.thread_idle_minutes,
            "focus_stack_size": config.engine.focus_stack_size,
            "attention_cache_size": config.engine.attention_cache_size,
            "confidence_trail_size": config.engine.confidence_trail_size,
            "stale_after_hours": config.engine.stale_after_hours,
            "trending_limit": config.engine.trending_limit,
            "recent_decisions_limit": config.engine.recent_decisions_limit,
            "high_attention_threshold": config.engine.high_attention_threshold,
        },
        "server": {
            "host": config.server.host,
            "port": config.server.port,
        },
        "log_level": config.log_level,
    }

    with open(CONFIG_PATH, "w") as f:
        json.dump(data, f, indent=2)

    # Set secure permissions
    CONFIG_PATH.chmod(0o600)
