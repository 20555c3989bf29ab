from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

DEFAULT_STEPS: tuple[str, ...] = ("add_gift", "update_attributes")
ENVIRONMENT_ENV_VAR = "CART_CHAIN_ENV"
LOG_LEVELS: tuple[str, ...] = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def parse_bool(value: Any, path: str) -> bool:
    """
    Strict boolean parsing to avoid bool('false') footguns.

    Accepts True/False, 0/1 and the strings true/false/1/0/yes/no
    (case-insensitive, surrounding whitespace ignored).
    """

    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        if value in (0, 1):
            return bool(value)
        raise ValueError(f"Invalid boolean for {path}: {value!r}")
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in {"true", "1", "yes"}:
            return True
        if normalized in {"false", "0", "no"}:
            return False
    raise ValueError(f"Invalid boolean for {path}: {value!r}")


def parse_int(value: Any, path: str) -> int:
    if value is None:
        raise ValueError(f"Invalid config value for {path}: None")
    if isinstance(value, bool):
        raise ValueError(f"Invalid config type for {path}: expected int, got bool")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        if not value.strip():
            raise ValueError(f"Invalid config value for {path}: must be an int")
        try:
            return int(value.strip())
        except ValueError as exc:
            raise ValueError(f"Invalid config value for {path}: must be an int") from exc
    raise ValueError(f"Invalid config type for {path}: expected int")


def parse_str(value: Any, path: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Invalid config value for {path}: must be a non-empty string")
    return value.strip()


def _optional_str(value: Any, path: str) -> str | None:
    if value is None:
        return None
    if isinstance(value, str) and not value.strip():
        return None
    return parse_str(value, path)


def _section(cfg: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = cfg.get(key)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ValueError(f"Invalid config type for {key}: expected mapping")
    return value


@dataclass(frozen=True)
class AppSettings:
    name: str = "Cart Chain Event Manager"
    environment: str = "development"


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"
    log_dir: str | None = None


@dataclass(frozen=True)
class ChainConfig:
    name: str = "cart"
    serialize_runs: bool = False
    steps: tuple[str, ...] = DEFAULT_STEPS


@dataclass(frozen=True)
class GiftConfig:
    variant_id: int = 9999
    product_id: int = 999
    minimum_total: int = 10000
    title: str = "Free Gift"
    attribute_key: str = "gift_variant_id"


_SCHEMA: Mapping[str, tuple[str, ...]] = {
    "app": ("name", "environment"),
    "logging": ("level", "log_dir"),
    "chain": ("name", "serialize_runs", "steps"),
    "gift": ("variant_id", "product_id", "minimum_total", "title", "attribute_key"),
}


@dataclass(frozen=True)
class AppConfig:
    app: AppSettings
    logging: LoggingConfig
    chain: ChainConfig
    gift: GiftConfig

    @staticmethod
    def from_dict(
        cfg: Mapping[str, Any], *, environ: Mapping[str, str] | None = None
    ) -> tuple["AppConfig", list[str]]:
        """
        Parse and validate configuration, returning (AppConfig, warnings).

        Unknown keys are reported as warnings. Invalid values raise ValueError
        naming the offending key path.
        """

        if not isinstance(cfg, Mapping):
            raise ValueError("Config must be a mapping")
        env = os.environ if environ is None else environ

        warnings: list[str] = []
        for key, value in cfg.items():
            if key not in _SCHEMA:
                warnings.append(f"Unknown config key: {key}")
                continue
            if isinstance(value, Mapping):
                for sub_key in value:
                    if sub_key not in _SCHEMA[key]:
                        warnings.append(f"Unknown config key: {key}.{sub_key}")

        app_cfg = _section(cfg, "app")
        environment = env.get(ENVIRONMENT_ENV_VAR, "").strip() or app_cfg.get(
            "environment", AppSettings.environment
        )
        app = AppSettings(
            name=parse_str(app_cfg.get("name", AppSettings.name), "app.name"),
            environment=parse_str(environment, "app.environment"),
        )

        logging_cfg = _section(cfg, "logging")
        level = parse_str(logging_cfg.get("level", LoggingConfig.level), "logging.level").upper()
        if level not in LOG_LEVELS:
            raise ValueError(
                f"Invalid config value for logging.level: {level!r} (expected one of: {', '.join(LOG_LEVELS)})"
            )
        log_dir = _optional_str(logging_cfg.get("log_dir"), "logging.log_dir")
        if log_dir:
            log_dir = os.path.abspath(os.path.expandvars(os.path.expanduser(log_dir)))

        chain_cfg = _section(cfg, "chain")
        raw_steps = chain_cfg.get("steps", list(DEFAULT_STEPS))
        if not isinstance(raw_steps, (list, tuple)):
            raise ValueError("Invalid config type for chain.steps: expected list")
        steps = tuple(parse_str(step, f"chain.steps[{i}]") for i, step in enumerate(raw_steps))
        duplicates = sorted({step for step in steps if steps.count(step) > 1})
        if duplicates:
            raise ValueError(f"Duplicate step name(s) in chain.steps: {', '.join(duplicates)}")
        chain = ChainConfig(
            name=parse_str(chain_cfg.get("name", ChainConfig.name), "chain.name"),
            serialize_runs=parse_bool(
                chain_cfg.get("serialize_runs", ChainConfig.serialize_runs), "chain.serialize_runs"
            ),
            steps=steps,
        )

        gift_cfg = _section(cfg, "gift")
        gift = GiftConfig(
            variant_id=parse_int(gift_cfg.get("variant_id", GiftConfig.variant_id), "gift.variant_id"),
            product_id=parse_int(gift_cfg.get("product_id", GiftConfig.product_id), "gift.product_id"),
            minimum_total=parse_int(
                gift_cfg.get("minimum_total", GiftConfig.minimum_total), "gift.minimum_total"
            ),
            title=parse_str(gift_cfg.get("title", GiftConfig.title), "gift.title"),
            attribute_key=parse_str(
                gift_cfg.get("attribute_key", GiftConfig.attribute_key), "gift.attribute_key"
            ),
        )
        if gift.minimum_total < 0:
            raise ValueError("Invalid config value for gift.minimum_total: must be >= 0")

        config = AppConfig(
            app=app,
            logging=LoggingConfig(level=level, log_dir=log_dir),
            chain=chain,
            gift=gift,
        )
        return config, warnings

    @classmethod
    def default(cls) -> "AppConfig":
        config, _warnings = cls.from_dict({}, environ={})
        return config


def log_config_warnings(logger: logging.Logger, warnings: list[str]) -> None:
    for warning in warnings:
        logger.warning("Config: %s", warning)
