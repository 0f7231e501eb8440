"""Run external Go formatters over editor buffers."""

__version__ = "0.3.0"
