"""
Checkpoint del motor de backfill como union etiquetada por fase.

Cada fase tiene su propia forma de reanudacion:
- fetching_deals: pagina siguiente + IDs acumulados
- processing_deals: lista completa de IDs, indice del siguiente deal,
  contadores y lista acotada de errores

El checkpoint por si solo determina la posicion de reanudacion.
"""
from __future__ import annotations

from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

DISCOVERY_PHASE = "fetching_deals"
PROCESSING_PHASE = "processing_deals"


class CheckpointError(ValueError):
    """El checkpoint persistido no corresponde a ninguna fase conocida."""


class ErrorDetail(BaseModel):
    """Error de un registro puntual (nombre identificable + mensaje)."""

    name: str
    error: str


class DiscoveryCheckpoint(BaseModel):
    """Reanudacion de la fase de descubrimiento de IDs."""

    phase: Literal["fetching_deals"] = DISCOVERY_PHASE
    page: int = Field(default=1, ge=1)
    deal_ids: List[str] = Field(default_factory=list)
    account_scope: Optional[str] = None


class ProcessingCheckpoint(BaseModel):
    """Reanudacion de la fase de procesamiento deal por deal."""

    phase: Literal["processing_deals"] = PROCESSING_PHASE
    deal_ids: List[str] = Field(default_factory=list)
    deal_index: int = Field(default=0, ge=0)
    updated: int = Field(default=0, ge=0)
    skipped: int = Field(default=0, ge=0)
    errors: int = Field(default=0, ge=0)
    error_details: List[ErrorDetail] = Field(default_factory=list)
    account_scope: Optional[str] = None

    @classmethod
    def start(cls, deal_ids: List[str], account_scope: Optional[str]) -> "ProcessingCheckpoint":
        """Forma inicial al terminar el descubrimiento."""
        return cls(deal_ids=list(deal_ids), account_scope=account_scope)


Checkpoint = Annotated[
    Union[DiscoveryCheckpoint, ProcessingCheckpoint],
    Field(discriminator="phase"),
]

_checkpoint_adapter: TypeAdapter[Checkpoint] = TypeAdapter(Checkpoint)


def parse_checkpoint(raw: Optional[Dict[str, Any]]) -> Checkpoint:
    """
    Convierte el JSON persistido en la variante tipada.

    Sin checkpoint se arranca un descubrimiento nuevo desde la pagina 1.

    Raises:
        CheckpointError: Si la fase es desconocida o la forma no es valida
    """
    if not raw:
        return DiscoveryCheckpoint()
    try:
        return _checkpoint_adapter.validate_python(raw)
    except ValidationError as exc:
        raise CheckpointError(f"Checkpoint invalido: {exc.error_count()} error(es)") from exc


def dump_checkpoint(checkpoint: Checkpoint) -> Dict[str, Any]:
    return checkpoint.model_dump(mode="json")
