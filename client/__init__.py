"""Patchbay client: HTTP API, NDJSON decoding, file collection and the review CLI."""

from .api import ApiError, PatchbayClient
from .ndjson import NdjsonDecoder

__all__ = ["ApiError", "NdjsonDecoder", "PatchbayClient"]
