"""Capability-based permission checks for mutating operations"""

from enum import Enum
from typing import Iterable, Protocol
from cuotificador.domain.exceptions import Unauthorized


class Capability(str, Enum):
    CONFIGURE_RATES = "cuotificador.configurar_tasas"
    SYNC_EXTERNAL_RATES = "cuotificador.actualizar_tasas_api"
    IMPORT_RATES = "cuotificador.importar_tasas"
    MANAGE_BANKS = "cuotificador.gestionar_bancos"
    MANAGE_CARDS = "cuotificador.gestionar_tarjetas"


class PermissionPolicy(Protocol):
    def allows(self, capability: Capability) -> bool: ...


class StaticPermissionPolicy:
    """Grants a fixed set of capabilities; anything else is denied"""

    def __init__(self, granted: Iterable[str | Capability] = ()):
        # Unknown capability strings grant nothing
        known = {c.value for c in Capability}
        self.granted = {Capability(item) for item in granted if item in known}

    def allows(self, capability: Capability) -> bool:
        return capability in self.granted


def authorize(policy: PermissionPolicy, capability: Capability) -> None:
    """
    Raises:
        Unauthorized: the policy does not grant the capability
    """
    if not policy.allows(capability):
        raise Unauthorized(capability.value)
