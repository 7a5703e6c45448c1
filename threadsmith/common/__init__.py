"""
Threadsmith Common Module

Shared infrastructure for the context engine: configuration, ordered
pattern rules and time helpers.
"""

from .config import EngineConfig, ServerConfig, ThreadsmithConfig, load_config, save_config
from .patterns import PatternMatcher, PatternRule

__all__ = [
    "EngineConfig",
    "ServerConfig",
    "ThreadsmithConfig",
    "load_config",
    "save_config",
    "PatternMatcher",
    "PatternRule",
]
