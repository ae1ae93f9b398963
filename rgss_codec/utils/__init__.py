# Converter utilities
from .logging import log, logWarning, logError, logDebug, init_logging, close_logging, print_summary, get_counts
from .binary import write_long, write_bytes, format_float, float_mantissa
