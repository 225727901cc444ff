"""
Interfaz para continuar un job en una nueva invocacion del worker.

Este contrato existe para:
- Mantener la logica de fases independiente del transporte (HTTP, thread, cola).
- Facilitar tests unitarios sin red.
"""

from __future__ import annotations

from typing import Optional, Protocol


class ContinuationScheduler(Protocol):
    """
    Dispara (fire-and-forget) la siguiente invocacion de un job.

    Implementaciones:
    - HTTP: POST al endpoint interno del worker.
    - Thread: ejecuta la invocacion en un thread daemon del mismo proceso.
    """

    def schedule_continuation(
        self,
        job_id: str,
        *,
        generation: int,
        account_scope: Optional[str] = None,
    ) -> None:
        """
        Pide una nueva invocacion del job.

        Un fallo de entrega se registra en el log y no se reintenta;
        un job detenido se detecta por su `updated_at` viejo.
        """
        ...
