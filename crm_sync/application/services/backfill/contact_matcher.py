"""
Matching de contactos externos contra la tabla local `contacts`.

Politica de sobrescritura conservadora: `source` solo se actualiza si
esta vacio o si ya contiene el tag del propio motor. Un valor escrito
por otro sistema o a mano nunca se pisa.
"""
from __future__ import annotations

from enum import Enum
from typing import Optional

from loguru import logger

from crm_sync.domain.entities.contact import ExternalContact, LocalContact
from crm_sync.domain.repositories.contact_repository import IContactRepository
from crm_sync.shared.utils.phone import phone_candidates


class MatchOutcome(str, Enum):
    UPDATED = "updated"
    NO_MATCH = "no_match"
    PROTECTED = "protected"


def is_source_overwritable(current: Optional[str], own_tag: str) -> bool:
    if current is None or not current.strip():
        return True
    return current == own_tag


class ContactMatcher:
    """Ubica el contacto local de un contacto externo y actualiza su `source`."""

    def __init__(self, contacts: IContactRepository, own_tag: str) -> None:
        self._contacts = contacts
        self._own_tag = own_tag

    def _find_by_phone(self, contact: ExternalContact) -> Optional[LocalContact]:
        # El primer telefono con resultado decide; los siguientes no se consultan
        for phone in contact.phones:
            candidates = phone_candidates(phone)
            if not candidates:
                continue
            found = self._contacts.find_by_phones(candidates)
            if found is not None:
                return found
        return None

    def _find_by_email(self, contact: ExternalContact) -> Optional[LocalContact]:
        for email in contact.emails:
            found = self._contacts.find_by_email(email)
            if found is not None:
                return found
        return None

    def apply(self, contact: ExternalContact, source_label: str) -> MatchOutcome:
        """
        Telefono primero (normalizado, solo digitos o crudo). Si no hay
        coincidencia por telefono, o el contacto encontrado tiene una
        fuente protegida, se intenta por e-mail exacto.
        """
        protected: Optional[LocalContact] = None
        target = self._find_by_phone(contact)
        if target is not None and not is_source_overwritable(target.source, self._own_tag):
            protected, target = target, None

        if target is None:
            target = self._find_by_email(contact)
            if target is not None and not is_source_overwritable(target.source, self._own_tag):
                protected, target = target, None

        if target is None:
            if protected is None:
                return MatchOutcome.NO_MATCH
            logger.debug(
                f"Contacto {protected.id} conserva source '{protected.source}' (no se sobrescribe)"
            )
            return MatchOutcome.PROTECTED

        if self._contacts.update_source_if_unowned(target.id, source_label, self._own_tag):
            return MatchOutcome.UPDATED
        # Otro proceso asigno una fuente entre la lectura y el update
        return MatchOutcome.PROTECTED
