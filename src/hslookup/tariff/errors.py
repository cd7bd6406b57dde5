"""Caller-facing error types for the tariff lookup domain."""

from __future__ import annotations


class InvalidInputError(ValueError):
    """The request carried no usable input (empty text, missing fields)."""
