"""Application entry point for the attestation verification server."""
from __future__ import annotations

from ..config import configure_logging
from .config import app

# Import the route module so its decorators register endpoints with Flask.
from . import routes  # noqa: F401,E402


def main() -> None:
    configure_logging(app.config["PIVATTEST_LOG_LEVEL"])
    app.run(host=app.config["PIVATTEST_HOST"], port=app.config["PIVATTEST_PORT"])


__all__ = ["app", "main"]


if __name__ == "__main__":  # pragma: no cover - convenience script entry point.
    main()
