"""Configuration module for mfcrawler.

Centralized configuration management using pydantic-settings.
"""

from config.settings import CrawlerConfig, get_config

__all__ = ["CrawlerConfig", "get_config"]
