#!/usr/bin/env python3
"""
Conversion Configuration

Parser for the optional rgss.ini configuration file.
Holds the per-run knobs handed to the codecs: engine version, round-trip
mode and document layout widths.

INI Format:
    [conversion]
    version = ace
    round_trip = false
    table_width = 20
    line_width = -1
"""

import configparser
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from rgss_codec.constants import DEFAULT_TABLE_WIDTH
from rgss_codec.utils import log
from .version_policy import Dialect, VersionPolicy


SECTION = 'conversion'


@dataclass
class ConversionConfig:
    """Options for a conversion run"""
    dialect: str = Dialect.XP.value
    round_trip: bool = False
    table_width: int = DEFAULT_TABLE_WIDTH  # -1 or 0 = unbounded
    line_width: int = -1  # -1 = unbounded

    def __post_init__(self):
        """Validate configuration"""
        # Raises ValueError for unknown dialects
        self.dialect = VersionPolicy.resolve(self.dialect).dialect.value

        if self.table_width < -1:
            raise ValueError(f"table_width must be -1 (unbounded) or positive, got {self.table_width}")

        if self.line_width < -1:
            raise ValueError(f"line_width must be -1 (unbounded) or positive, got {self.line_width}")

    @property
    def max_row_width(self) -> Optional[int]:
        """Table row width limit, None when unbounded."""
        return self.table_width if self.table_width > 0 else None

    def policy(self) -> VersionPolicy:
        """Resolve the version policy for this run."""
        return VersionPolicy.resolve(self.dialect, round_trip=self.round_trip)

    @classmethod
    def from_ini(cls, config_path: Union[str, Path], **overrides) -> 'ConversionConfig':
        """
        Load configuration from an INI file.

        Args:
            config_path: Path to the INI file
            **overrides: Values that take precedence over the file (None is ignored)

        Returns:
            ConversionConfig instance
        """
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        parser = configparser.ConfigParser()
        parser.read(config_path, encoding='utf-8')

        values = {}
        if parser.has_section(SECTION):
            section = parser[SECTION]
            if 'version' in section:
                values['dialect'] = section.get('version').strip()
            if 'round_trip' in section:
                values['round_trip'] = section.getboolean('round_trip')
            if 'table_width' in section:
                values['table_width'] = section.getint('table_width')
            if 'line_width' in section:
                values['line_width'] = section.getint('line_width')

        values.update({k: v for k, v in overrides.items() if v is not None})

        config = cls(**values)
        log(f"Config: {config_path} (version={config.dialect}, round_trip={config.round_trip})")
        return config
