"""Configuration and application setup for the attestation verification server."""
from __future__ import annotations

import os
from threading import Lock

from flask import Flask

from ..ca import CaRegistry
from ..config import load_settings

app = Flask(__name__)

_settings = load_settings()

app.config.setdefault("PIVATTEST_CA_DIRECTORY", str(_settings.ca_directory))
app.config.setdefault(
    "PIVATTEST_STRICT_FIRMWARE_VERSION", _settings.strict_firmware_version
)
app.config.setdefault("PIVATTEST_LOG_LEVEL", _settings.log_level)
app.config.setdefault("PIVATTEST_HOST", os.environ.get("PIVATTEST_HOST", "localhost"))
app.config.setdefault("PIVATTEST_PORT", int(os.environ.get("PIVATTEST_PORT", "5000")))

_registry_lock = Lock()


def get_registry() -> CaRegistry:
    """Return the registry shared by all requests, building it on first use."""

    registry = app.config.get("PIVATTEST_REGISTRY")
    if registry is not None:
        return registry

    with _registry_lock:
        registry = app.config.get("PIVATTEST_REGISTRY")
        if registry is None:
            registry = CaRegistry.from_directory(app.config["PIVATTEST_CA_DIRECTORY"])
            app.config["PIVATTEST_REGISTRY"] = registry
            app.logger.info(
                "Loaded %d trust anchors from %s",
                len(registry),
                app.config["PIVATTEST_CA_DIRECTORY"],
            )
    return registry
