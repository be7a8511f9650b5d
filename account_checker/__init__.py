"""Batch-validate API accounts by driving an external CLI tool per model."""

__version__ = "1.0.0"
