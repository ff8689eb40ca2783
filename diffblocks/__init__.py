"""diffblocks — SEARCH/REPLACE change blocks from model output, applied to
code buffers."""

__version__ = "0.1.0"
