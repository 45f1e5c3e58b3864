"""Concatenate files matched by ant-style include/exclude patterns into one output file."""

__version__ = "0.3.0"
