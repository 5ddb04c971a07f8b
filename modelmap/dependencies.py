"""
Dependency guard.

Hard dependencies are imported at module load and fail there. The guard is for
capabilities loaded lazily by a third party (pandas imports ``tabulate`` only
when ``to_markdown`` is first called): ``require`` checks them before use and
turns an ImportError into a MissingDependencyError with the pip command that
fixes it.
"""

import importlib
import logging
from types import ModuleType

from .errors import MissingDependencyError

logger = logging.getLogger(__name__)

# import name -> distribution name on the package index
DECLARED_CAPABILITIES: dict[str, str] = {
    "numpy": "numpy",
    "pandas": "pandas",
    "patsy": "patsy",
    "statsmodels": "statsmodels",
    "tabulate": "tabulate",
}

_loaded: dict[str, ModuleType] = {}


def ensure_available(capability_name: str) -> ModuleType:
    """
    Import ``capability_name`` and return the module.

    Raises:
        MissingDependencyError: if the import fails. The message names the
            package and the install command.
    """
    module = _loaded.get(capability_name)
    if module is not None:
        return module

    try:
        module = importlib.import_module(capability_name)
    except ImportError as exc:
        logger.debug("Import of %s failed: %s", capability_name, exc)
        raise MissingDependencyError(
            capability_name, DECLARED_CAPABILITIES.get(capability_name)
        ) from exc

    _loaded[capability_name] = module
    return module


def require(*capability_names: str) -> None:
    """Ensure every named capability is importable."""
    for name in capability_names:
        ensure_available(name)
