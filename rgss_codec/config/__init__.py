#!/usr/bin/env python3
"""
Config module for dialect selection and conversion options.
"""

from .version_policy import Dialect, FieldOrdering, VersionPolicy
from .conversion_config import ConversionConfig

__all__ = ['Dialect', 'FieldOrdering', 'VersionPolicy', 'ConversionConfig']
