"""Logging set-up shared by the API and the maintenance scripts."""
from __future__ import annotations

import logging.config
from pathlib import Path

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[2] / "configs" / "logging.yaml"


def configure_logging(config_path: Path | None = None, *, level: str = "INFO") -> None:
    """Apply the YAML dictConfig at ``config_path``; fall back to ``basicConfig``.

    ``level`` only applies to the fallback and to the ``blogsub`` logger, so an
    operator can raise verbosity without editing the YAML file.
    """
    path = config_path or DEFAULT_CONFIG_PATH
    if path.exists():
        import yaml  # type: ignore[import-untyped]

        with path.open("r", encoding="utf-8") as config_file:
            logging.config.dictConfig(yaml.safe_load(config_file))
    else:
        logging.basicConfig(level=level.upper())
    logging.getLogger("blogsub").setLevel(level.upper())
