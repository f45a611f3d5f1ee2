"""Configuration loading (config.yaml + environment overrides) and logging setup."""

import logging
import os

import yaml

from domain.models import PricingContext

CONFIG_PATH = os.path.join(os.path.dirname(__file__), "config.yaml")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def load_config(path: str | None = None) -> dict:
    """Load the YAML config; DATABASE_URL, REDIS_URL and CHIFFRAGE_LOG_LEVEL override it."""
    with open(path or CONFIG_PATH) as f:
        config = yaml.safe_load(f) or {}

    config.setdefault("database", {})
    config.setdefault("cache", {})
    config.setdefault("logging", {})
    config.setdefault("mapping", {})
    config.setdefault("pricing", {})
    config.setdefault("quality", {})

    if os.environ.get("DATABASE_URL"):
        config["database"]["url"] = os.environ["DATABASE_URL"]
    if os.environ.get("REDIS_URL"):
        config["cache"]["redis_url"] = os.environ["REDIS_URL"]
    if os.environ.get("CHIFFRAGE_LOG_LEVEL"):
        config["logging"]["level"] = os.environ["CHIFFRAGE_LOG_LEVEL"]
    return config


def configure_logging(config: dict) -> None:
    level = config.get("logging", {}).get("level", "INFO")
    logging.basicConfig(level=getattr(logging, str(level).upper(), logging.INFO), format=LOG_FORMAT)


def pricing_context_from_config(config: dict, lot: str | None = None) -> PricingContext:
    """Build the default PricingContext of the tenant from the ``pricing`` section."""
    pricing = config.get("pricing", {})
    return PricingContext(
        taux_horaire_eur=float(pricing.get("taux_horaire_eur", 55.0)),
        marge_pct=float(pricing.get("marge_pct", 20.0)),
        lot=lot,
        cout_reference=float(pricing.get("cout_reference", 100.0)),
    )
