"""Configuration management for ptybridge.

Loads and validates YAML-based configuration with Pydantic models.
Supports environment variable overrides via the PTYBRIDGE_ prefix.
"""

from ptybridge.config.settings import Settings, load_settings

__all__ = ["Settings", "load_settings"]
