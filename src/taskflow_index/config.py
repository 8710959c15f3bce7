"""Load optional index configuration from a YAML file."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from loguru import logger

from .constants import (
    CONFIG_FILE,
    CONFIG_SECTION,
    DEFAULT_LOG_LEVEL,
    DEFAULT_REINDEX_ON_OVERWRITE,
    DEFAULT_STRICT_DEPENDENCY_ORDER,
    VALID_LOG_LEVELS,
)
from .model import SortKey


@dataclass(frozen=True)
class IndexConfig:
    """Behaviour switches for :class:`~taskflow_index.engine.TaskIndex`.

    Attributes:
        reindex_on_overwrite: Retract the previous record's trie entries and
            dependency edges when ``add_task`` overwrites an existing id.
        strict_dependency_order: Re-raise cycle failures from
            ``get_tasks_in_dependency_order`` instead of falling back to the
            unordered listing.
        default_sort_key: Ordering used by ``TaskIndex.query`` when the caller
            does not pass one.
        log_level: Level handed to ``configure_logging`` by
            ``TaskIndex.from_config_file``.
    """

    reindex_on_overwrite: bool = DEFAULT_REINDEX_ON_OVERWRITE
    strict_dependency_order: bool = DEFAULT_STRICT_DEPENDENCY_ORDER
    default_sort_key: SortKey = SortKey.PRIORITY
    log_level: str = DEFAULT_LOG_LEVEL

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "IndexConfig":
        """Build a config from a mapping, keeping defaults for bad values."""
        defaults = cls()
        if not isinstance(data, dict):
            return defaults

        def _bool(key: str, default: bool) -> bool:
            raw = data.get(key)
            return raw if isinstance(raw, bool) else default

        sort_key = defaults.default_sort_key
        raw_sort = data.get("default_sort_key")
        if raw_sort is not None:
            try:
                sort_key = SortKey.coerce(raw_sort)
            except ValueError:
                logger.warning("Ignoring unknown default_sort_key {!r}", raw_sort)

        log_level = defaults.log_level
        raw_level = data.get("log_level")
        if isinstance(raw_level, str) and raw_level.upper() in VALID_LOG_LEVELS:
            log_level = raw_level.upper()

        return cls(
            reindex_on_overwrite=_bool("reindex_on_overwrite", defaults.reindex_on_overwrite),
            strict_dependency_order=_bool("strict_dependency_order", defaults.strict_dependency_order),
            default_sort_key=sort_key,
            log_level=log_level,
        )


def _load_yaml_with_error(path: Path) -> tuple[dict[str, Any], str | None]:
    """Load a YAML mapping and return ``(data, error_message)``.

    Parse and IO failures are reported rather than raised so a broken config
    file never prevents the index from starting.
    """
    if not path.exists():
        return {}, None
    try:
        with open(path, "r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle)
    except OSError as exc:
        return {}, f"{path.name}: {exc.__class__.__name__}: {exc}"
    except yaml.YAMLError as exc:
        return {}, f"{path.name}: YAMLError: {exc}"
    if data is None:
        return {}, None
    if not isinstance(data, dict):
        return {}, f"{path.name}: expected object, got {type(data).__name__}"
    return data, None


def load_index_config(path: Path) -> tuple[IndexConfig, str | None]:
    """Load the index config file.

    Args:
        path: A YAML file, or a directory containing ``taskflow.yaml``.

    Returns:
        A tuple of ``(config, error_message)``. A missing file yields
        ``(IndexConfig(), None)``.
    """
    if path.is_dir():
        path = path / CONFIG_FILE
    data, err = _load_yaml_with_error(path)
    if err:
        return IndexConfig(), err
    section = data.get(CONFIG_SECTION, data)
    if not isinstance(section, dict):
        return IndexConfig(), f"{path.name}: '{CONFIG_SECTION}' must be a mapping"
    return IndexConfig.from_dict(section), None
