# spendly/storage/__init__.py
from importlib import import_module

from spendly.config import ConfigError


def get_storage(config):
    path = config['storage']
    try:
        module_name, cls_name = path.rsplit('.', 1)
        mod = import_module(module_name)
        cls = getattr(mod, cls_name)
    except (ValueError, ImportError, AttributeError) as exc:
        raise ConfigError(f"Unknown storage backend: {path}") from exc
    return cls(config)
