import re
from typing import List, Optional

MIN_PHONE_DIGITS = 8
COUNTRY_CODE_BR = "55"

_NON_DIGITS = re.compile(r"\D+")


def normalize_phone(raw: Optional[str]) -> str:
    """
    Deja solo digitos y quita el codigo de pais de Brasil.

    "+55 (11) 91234-5678" y "11912345678" normalizan al mismo valor.
    Un numero local (10/11 digitos) nunca empieza con 55 + DDD completo,
    por eso solo se recorta en largos 12/13.
    """
    if not raw:
        return ""
    digits = _NON_DIGITS.sub("", str(raw))
    if len(digits) in (12, 13) and digits.startswith(COUNTRY_CODE_BR):
        digits = digits[len(COUNTRY_CODE_BR):]
    return digits


def phone_candidates(raw: Optional[str]) -> List[str]:
    """
    Variantes de busqueda para un telefono externo: normalizada, solo
    digitos (con codigo de pais) y cruda, sin repetidos.

    Si la forma normalizada tiene menos de 8 digitos no se devuelve
    ningun candidato.
    """
    normalized = normalize_phone(raw)
    if len(normalized) < MIN_PHONE_DIGITS:
        return []
    candidates = [normalized]
    for variant in (_NON_DIGITS.sub("", str(raw)), str(raw).strip()):
        if variant and variant not in candidates:
            candidates.append(variant)
    return candidates
