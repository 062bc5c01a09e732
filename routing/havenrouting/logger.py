"""
Logging configuration for the Haven routing engine
"""

import logging
import os
import sys
from typing import Optional

from .config import config


class HavenLogger:
    """Centralized logging for the Haven routing engine"""

    def __init__(self, name: str = "havenrouting", level: str = "INFO", log_file: Optional[str] = None):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))

        # Prevent duplicate handlers
        if not any(not isinstance(h, logging.NullHandler) for h in self.logger.handlers):
            self._setup_handlers(log_file)

    def _setup_handlers(self, log_file: Optional[str]):
        """Setup console and (optional) file handlers"""
        # Console handler
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.INFO)
        console_format = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )
        console_handler.setFormatter(console_format)
        self.logger.addHandler(console_handler)

        # File handler
        if log_file:
            log_dir = os.path.dirname(log_file)
            if log_dir:
                os.makedirs(log_dir, exist_ok=True)
            file_handler = logging.FileHandler(log_file)
            file_handler.setLevel(logging.DEBUG)
            file_format = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
            )
            file_handler.setFormatter(file_format)
            self.logger.addHandler(file_handler)

    def info(self, message: str):
        """Log info message"""
        self.logger.info(message)

    def log_route_request(self, origin: tuple, destination: tuple, profile: str,
                          duration_ms: float, source: str):
        """Log route request metrics"""
        self.info(f"Route request: {origin} -> {destination}, profile={profile}, "
                  f"duration={duration_ms:.2f}ms, source={source}")

    def log_api_call(self, endpoint: str, duration_ms: float, success: bool):
        """Log routing service call metrics"""
        self.info(f"API call: {endpoint}, duration={duration_ms:.2f}ms, success={success}")

    def log_fallback_used(self, tier: str, reason: str):
        """Log a step down the fallback chain"""
        self.logger.warning(f"Fallback used: {tier} ({reason})")

    def log_validation_failed(self, reason: str, point_count: int):
        """Log a rejected candidate route"""
        self.logger.warning(f"Route validation failed ({point_count} points): {reason}")


# Global logger instance
logger = HavenLogger(level=config.log_level, log_file=config.log_file)
