"""Configuration module for citysim."""

from citysim.config.schema import Config
from citysim.config.validator import ConfigValidator

__all__ = ["Config", "ConfigValidator"]
