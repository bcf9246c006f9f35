"""Flask server exposing attestation verification over HTTP."""
from __future__ import annotations

from .app import app, main

__all__ = ["app", "main"]
