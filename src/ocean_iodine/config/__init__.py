from ocean_iodine.config.loader import (
    compose_config,
    load_config,
    merge_config,
    to_container,
)
from ocean_iodine.config.schema import (
    DEFAULT_EXTENSION_NAME,
    AppConfig,
    ExtensionConfig,
    RuntimeConfig,
    register_configs,
)

__all__ = [
    "DEFAULT_EXTENSION_NAME",
    "AppConfig",
    "ExtensionConfig",
    "RuntimeConfig",
    "compose_config",
    "load_config",
    "merge_config",
    "register_configs",
    "to_container",
]
