"""
Interfaz del repositorio de contactos locales.
Define el contrato que debe cumplir cualquier implementación.
"""
from abc import ABC, abstractmethod
from typing import Iterable, Optional

from crm_sync.domain.entities.contact import LocalContact


class IContactRepository(ABC):
    """
    Acceso minimo a la tabla `contacts` de la aplicacion host.

    El motor solo puede leer y actualizar `source`.
    """

    @abstractmethod
    def find_by_phones(self, candidates: Iterable[str]) -> Optional[LocalContact]:
        """
        Busca un contacto cuyo telefono coincida exactamente con algun candidato.

        Args:
            candidates: Variantes del telefono (normalizada y cruda)

        Returns:
            Optional[LocalContact]: Primer contacto encontrado o None
        """

    @abstractmethod
    def find_by_email(self, email: str) -> Optional[LocalContact]:
        """Busca un contacto por e-mail exacto."""

    @abstractmethod
    def update_source_if_unowned(self, contact_id: str, new_source: str, own_tag: str) -> bool:
        """
        Update condicional de una sola fila: solo si `source` es null,
        vacio o igual al tag propio del motor.

        Returns:
            bool: True si la fila fue actualizada
        """
