"""Runtime configuration for PIV attestation verification."""
from __future__ import annotations

import logging
import os
import pathlib
from dataclasses import dataclass
from typing import Mapping, Optional

basepath = pathlib.Path(__file__).resolve().parent

DEFAULT_CA_DIRECTORY = basepath / "certs"

CA_DIRECTORY_ENV = "PIVATTEST_CA_DIRECTORY"
STRICT_FIRMWARE_VERSION_ENV = "PIVATTEST_STRICT_FIRMWARE_VERSION"
LOG_LEVEL_ENV = "PIVATTEST_LOG_LEVEL"


def _env_flag(environ: Mapping[str, str], name: str) -> Optional[bool]:
    """Return ``True`` or ``False`` when the named env var is explicitly set."""

    raw_value = environ.get(name)
    if raw_value is None:
        return None

    normalised = raw_value.strip().lower()
    if normalised in {"", "0", "false", "off", "no"}:
        return False
    return True


@dataclass(frozen=True)
class Settings:
    ca_directory: pathlib.Path = DEFAULT_CA_DIRECTORY
    strict_firmware_version: bool = False
    log_level: str = "INFO"


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Read settings from *environ*, defaulting to ``os.environ``."""

    if environ is None:
        environ = os.environ

    ca_directory = environ.get(CA_DIRECTORY_ENV, "").strip()
    strict = _env_flag(environ, STRICT_FIRMWARE_VERSION_ENV)
    log_level = environ.get(LOG_LEVEL_ENV, "").strip().upper()

    return Settings(
        ca_directory=pathlib.Path(ca_directory) if ca_directory else DEFAULT_CA_DIRECTORY,
        strict_firmware_version=bool(strict),
        log_level=log_level or "INFO",
    )


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Configure root logging for scripts and the HTTP server."""

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(message)s",
    )
    return logging.getLogger("pivattest")
