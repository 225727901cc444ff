"""
Implementación del repositorio de contactos locales (sync, para el worker).
"""
from typing import Iterable, Optional

from sqlalchemy import or_, select, update
from sqlalchemy.orm import sessionmaker

from crm_sync.domain.entities.contact import LocalContact
from crm_sync.domain.repositories.contact_repository import IContactRepository
from crm_sync.infrastructure.database.models import ContactModel


def _to_entity(model: ContactModel) -> LocalContact:
    return LocalContact(
        id=model.id,
        phone=model.phone,
        email=model.email,
        source=model.source,
    )


class ContactRepositoryImpl(IContactRepository):
    """Repositorio para consultar y actualizar `contacts.source`."""

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def find_by_phones(self, candidates: Iterable[str]) -> Optional[LocalContact]:
        values = [c for c in dict.fromkeys(candidates) if c]
        if not values:
            return None
        with self._session_factory() as session:
            found = session.execute(
                select(ContactModel)
                .where(ContactModel.phone.in_(values))
                .order_by(ContactModel.id)
                .limit(1)
            ).scalar_one_or_none()
            return _to_entity(found) if found else None

    def find_by_email(self, email: str) -> Optional[LocalContact]:
        if not email:
            return None
        with self._session_factory() as session:
            found = session.execute(
                select(ContactModel)
                .where(ContactModel.email == email)
                .order_by(ContactModel.id)
                .limit(1)
            ).scalar_one_or_none()
            return _to_entity(found) if found else None

    def update_source_if_unowned(self, contact_id: str, new_source: str, own_tag: str) -> bool:
        # El filtro por source se repite en el UPDATE: si otro proceso asigno
        # una fuente entre la lectura y la escritura, la fila no se toca.
        with self._session_factory.begin() as session:
            result = session.execute(
                update(ContactModel)
                .where(
                    ContactModel.id == contact_id,
                    or_(
                        ContactModel.source.is_(None),
                        ContactModel.source == "",
                        ContactModel.source == own_tag,
                    ),
                )
                .values(source=new_source)
            )
            return result.rowcount == 1
