"""Migrates MLP2 module activation states to the MLP3 modules option.

MLP2 keeps a network option mapping module class file names (for example
``class-Mlp_Trasher_Module``) to ``on``/``off``. MLP3 keeps one network
option mapping plain module keys (``trasher``) to booleans.
"""

from dataclasses import dataclass
from typing import List

from mlp2to3.core.exceptions import InvalidStatusError, InvalidValueError, PersistError
from mlp2to3.database.network import Network
from mlp2to3.utils.i18n import Translator
from mlp2to3.utils.logging import get_logger

LEGACY_OPTION = "state_modules"
MODULES_OPTION = "multilingualpress_modules"

NAME_PREFIX = "class-mlp_"
NAME_SUFFIX = "_module"

# Modules that no longer exist in MLP3
OBSOLETE_MODULES = frozenset({
    "cpt_translator",
    "advanced_translator",
    "quicklink",
})


@dataclass(frozen=True)
class LegacyModule:
    """A module entry of the MLP2 modules option."""
    name: str
    status: str


def remove_prefix(value: str, prefix: str) -> str:
    if value.startswith(prefix):
        return value[len(prefix):]
    return value


def remove_suffix(value: str, suffix: str) -> str:
    if suffix and value.endswith(suffix):
        return value[:-len(suffix)]
    return value


def normalize_module_name(name: str) -> str:
    """Transform an MLP2 module name to an MLP3 module key.

    Args:
        name: Legacy module name, e.g. ``class-Mlp_Redirect_Module``

    Returns:
        Lower-case key without the class prefix and suffix, e.g. ``redirect``
    """
    name = name.lower()
    name = remove_prefix(name, NAME_PREFIX)
    return remove_suffix(name, NAME_SUFFIX)


def normalize_module_status(status: str, translator: Translator) -> bool:
    """Transform an MLP2 module status to an MLP3 enabled flag.

    Raises:
        InvalidStatusError: If the status is neither on nor off
    """
    normalized = str(status).strip().lower()

    if normalized == "on":
        return True
    if normalized == "off":
        return False

    raise InvalidStatusError(
        status,
        translator('Invalid module status "{0}"', status),
    )


class ModulesMigrator:
    """Migrates single MLP2 modules into the MLP3 modules option.

    Args:
        network: Network option access
        translator: Message translator
    """

    entity = "modules"

    def __init__(self, network: Network, translator: Translator):
        self.network = network
        self.translator = translator

    def has_legacy_source(self) -> bool:
        return self.network.has_network_option(LEGACY_OPTION)

    def legacy_records(self) -> List[LegacyModule]:
        """Read the MLP2 modules from the legacy network option.

        Raises:
            InvalidValueError: If the option is not a name to status map
        """
        modules = self.network.get_network_option(LEGACY_OPTION, {})
        if not isinstance(modules, dict):
            raise InvalidValueError(
                LEGACY_OPTION,
                modules,
                self.translator('Network option "{0}" is not a map of modules', LEGACY_OPTION),
            )

        return [LegacyModule(name=str(name), status=str(status)) for name, status in modules.items()]

    def migrate(self, record: LegacyModule) -> bool:
        """Migrate one MLP2 module to MLP3.

        Args:
            record: The legacy module

        Returns:
            True if the MLP3 option was changed, False if there was nothing to do

        Raises:
            InvalidStatusError: If the module status is invalid
            PersistError: If the option could not be updated
        """
        logger = get_logger()
        name = normalize_module_name(record.name)
        status = normalize_module_status(record.status, self.translator)

        if name in OBSOLETE_MODULES:
            logger.debug(f"Skipping obsolete module {record.name}")
            return False

        modules = self.network.get_network_option(MODULES_OPTION, {})
        if not isinstance(modules, dict):
            modules = {}

        if modules.get(name) is status:
            return False

        modules[name] = status

        if not self.network.update_network_option(MODULES_OPTION, modules):
            raise PersistError(
                MODULES_OPTION,
                self.translator('Network option "{0}" could not be updated', MODULES_OPTION),
            )

        logger.debug(f"Module {name} set to {status}")
        return True
