from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal

import yaml

DEFAULT_ENV_VAR = "CART_CHAIN_CONFIG"
BASE_CONFIG = Path("config") / "config.yaml"
LOCAL_OVERLAY = Path("config") / "config.local.yaml"

ConfigMode = Literal["explicit", "env", "base", "base+local"]


@dataclass(frozen=True)
class ConfigSource:
    """Where a loaded config came from, in load order."""

    mode: ConfigMode
    paths: tuple[str, ...]

    def describe(self) -> str:
        return f"{self.mode} ({', '.join(self.paths)})"


def find_repo_root(start: str | os.PathLike[str] | None = None) -> Path:
    here = Path(start or os.getcwd()).resolve()
    if here.is_file():
        here = here.parent
    for candidate in (here, *here.parents):
        if (candidate / "pyproject.toml").is_file() or (candidate / ".git").exists():
            return candidate
    raise FileNotFoundError(f"No pyproject.toml or .git found above {here}")


def read_yaml(path: Path) -> dict[str, Any]:
    try:
        payload = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in {path}: {exc}") from exc
    if payload is None:
        return {}
    if not isinstance(payload, Mapping):
        raise ValueError(f"Config file must contain a YAML mapping: {path}")
    return dict(payload)


def overlay_config(base: Mapping[str, Any], overlay: Mapping[str, Any], *, path: str = "") -> dict[str, Any]:
    """Merge `overlay` into `base`; nested mappings merge, anything else is replaced."""

    merged = dict(base)
    for key, value in overlay.items():
        key_path = f"{path}.{key}" if path else str(key)
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = overlay_config(current, value, path=key_path)
        elif isinstance(current, Mapping) != isinstance(value, Mapping) and current is not None:
            raise ValueError(
                f"Invalid config overlay at {key_path}: cannot replace "
                f"{type(current).__name__} with {type(value).__name__}"
            )
        else:
            merged[key] = value
    return merged


def load_config(
    *,
    config_path: str | os.PathLike[str] | None = None,
    env_var: str | None = DEFAULT_ENV_VAR,
    start_dir: str | os.PathLike[str] | None = None,
) -> tuple[dict[str, Any], ConfigSource]:
    """
    Load the YAML config and report where it came from.

    `config_path`, or else the env var, names a single file. Without either the repo's
    `config/config.yaml` is read and `config/config.local.yaml` is overlaid on it.
    """

    explicit = str(config_path).strip() if config_path is not None else ""
    mode: ConfigMode = "explicit"
    if not explicit and env_var:
        explicit = os.environ.get(env_var, "").strip()
        mode = "env"
    if explicit:
        path = Path(os.path.expandvars(explicit)).expanduser().resolve()
        return read_yaml(path), ConfigSource(mode=mode, paths=(str(path),))

    root = find_repo_root(start_dir)
    base_path = root / BASE_CONFIG
    if not base_path.is_file():
        raise FileNotFoundError(f"Missing base config file: {base_path}")
    cfg = read_yaml(base_path)

    local_path = root / LOCAL_OVERLAY
    if not local_path.is_file():
        return cfg, ConfigSource(mode="base", paths=(str(base_path),))
    cfg = overlay_config(cfg, read_yaml(local_path))
    return cfg, ConfigSource(mode="base+local", paths=(str(base_path), str(local_path)))
