"""
pluridesk_config -- single public entrypoint for engine configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  Services receive the returned
    ``EngineConfig`` by injection and never read files or environment
    variables themselves.

Architecture position:
    Configuration -- sits above ``pluridesk_kernel`` and below
    ``pluridesk_modules``.  The kernel MUST NEVER import from here.

Failure modes:
    - ``FileNotFoundError`` -- the requested configuration file is missing.
    - ``yaml.YAMLError`` -- malformed YAML.
    - ``ValueError`` -- unknown keys or values rejected by the schema.

Every successful ``get_active_config()`` call emits a ``CONFIG_TRACE``
log entry carrying the config id, version and checksum.
"""

from __future__ import annotations

from pathlib import Path

from pluridesk_config.loader import compute_checksum, load_yaml_file, parse_engine_config
from pluridesk_config.schema import DEFAULT_EXPENSE_CATEGORIES, EngineConfig, NumberingConfig
from pluridesk_kernel.logging_config import get_logger

_logger = get_logger("config")

_DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"


def get_active_config(config_path: Path | str | None = None) -> EngineConfig:
    """The ONLY public configuration entrypoint.

    Args:
        config_path: Path to a YAML configuration file.  Defaults to the
            packaged ``pluridesk_config/sets/default.yaml``.

    Returns:
        A frozen, validated ``EngineConfig``.
    """
    path = Path(config_path) if config_path is not None else _DEFAULT_CONFIG_PATH
    data = load_yaml_file(path)
    config = parse_engine_config(data)

    _logger.info(
        "CONFIG_TRACE",
        extra={
            "trace_type": "CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": compute_checksum(data),
            "source": str(path),
        },
    )
    return config


__all__ = [
    "DEFAULT_EXPENSE_CATEGORIES",
    "EngineConfig",
    "NumberingConfig",
    "get_active_config",
]
