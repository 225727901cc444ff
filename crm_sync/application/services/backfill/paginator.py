"""
Recorrido paginado de una coleccion del CRM.

Convencion del CRM: parametros `page`/`limit`; una pagina con menos
registros que `limit` indica el fin de los datos.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List

from loguru import logger

PageFetcher = Callable[[int, int], List[Dict[str, Any]]]


@dataclass(frozen=True)
class Page:
    """Una pagina ya descargada."""

    number: int
    items: List[Dict[str, Any]]
    is_last: bool


class Paginator:
    """
    Itera paginas desde `start_page` hasta una pagina corta o el tope.

    Cada pagina se pide recien al avanzar el generator, asi quien
    consume puede consultar el TimeoutGuard antes de cada request.
    """

    def __init__(self, fetch_page: PageFetcher, page_size: int, max_pages: int) -> None:
        if page_size < 1:
            raise ValueError("page_size debe ser >= 1")
        self._fetch_page = fetch_page
        self._page_size = page_size
        self._max_pages = max_pages

    @property
    def page_size(self) -> int:
        return self._page_size

    def iter_pages(self, start_page: int = 1) -> Iterator[Page]:
        page = start_page
        while page <= self._max_pages:
            items = self._fetch_page(page, self._page_size)
            short_page = len(items) < self._page_size
            capped = page >= self._max_pages
            if capped and not short_page:
                logger.warning(
                    f"Tope de {self._max_pages} paginas alcanzado; se detiene el recorrido"
                )
            yield Page(number=page, items=items, is_last=short_page or capped)
            if short_page:
                return
            page += 1
