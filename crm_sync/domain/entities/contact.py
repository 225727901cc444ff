"""
Contactos: locales (propiedad de la aplicacion host) y externos (CRM).

Los registros externos son efimeros: solo se usan para ubicar
un contacto local y actualizar su `source`.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class LocalContact:
    """Proyeccion minima de la tabla `contacts` que usa el motor."""

    id: str
    phone: Optional[str]
    email: Optional[str]
    source: Optional[str]


@dataclass(frozen=True)
class ExternalDeal:
    """Negociacion del CRM externo (solo lo necesario para el backfill)."""

    external_id: str
    source_label: Optional[str]

    @classmethod
    def from_payload(cls, payload: Dict[str, Any], fallback_id: str = "") -> "ExternalDeal":
        deal_source = payload.get("deal_source") or {}
        label = deal_source.get("name") if isinstance(deal_source, dict) else None
        label = label.strip() if isinstance(label, str) else None
        return cls(
            external_id=str(payload.get("_id") or payload.get("id") or fallback_id),
            source_label=label or None,
        )


@dataclass(frozen=True)
class ExternalContact:
    """Contacto vinculado a una negociacion en el CRM externo."""

    external_id: str
    name: str
    phones: List[str] = field(default_factory=list)
    emails: List[str] = field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "ExternalContact":
        if not isinstance(payload, dict):
            raise ValueError(f"Contacto con formato inesperado: {type(payload).__name__}")
        phones = [
            str(p.get("phone")).strip()
            for p in (payload.get("phones") or [])
            if isinstance(p, dict) and p.get("phone")
        ]
        emails = [
            str(e.get("email")).strip()
            for e in (payload.get("emails") or [])
            if isinstance(e, dict) and e.get("email")
        ]
        return cls(
            external_id=str(payload.get("_id") or payload.get("id") or ""),
            name=str(payload.get("name") or "").strip(),
            phones=phones,
            emails=emails,
        )

    @property
    def display_name(self) -> str:
        return self.name or self.external_id
