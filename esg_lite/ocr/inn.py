"""Taxpayer number (ИНН) extraction from recognised document text."""

import re

_LABELED = re.compile(r"(?:^|\D)ИНН[\s:]*(\d{10}(?:\d{2})?)(?=\D|$)", re.IGNORECASE)
_PARTY_LABELED = re.compile(
    r"(?:получател[ья]|отправител[ья]|продавец|покупател[ья]|"
    r"грузоотправител[ья]|грузополучател[ья])\s*ИНН[\s:]*(\d{10}(?:\d{2})?)(?=\D|$)",
    re.IGNORECASE,
)
_BARE = re.compile(r"(?:^|\D)(\d{10}(?:\d{2})?)(?=\D|$)")


def _normalize(value: str) -> str:
    return re.sub(r"\s", "", value).upper()


def is_valid_inn(value: str) -> bool:
    """10 digits for legal entities, 12 for individuals; never starts with 00."""
    clean = re.sub(r"\s", "", value)
    return bool(re.fullmatch(r"\d{10}|\d{12}", clean)) and not clean.startswith("00")


def extract_inn(text: str) -> str | None:
    """Return the most likely INN in ``text``.

    An explicitly labelled number wins over bare 10/12 digit sequences.
    """
    if not text:
        return None

    candidates: list[str] = []
    for pattern in (_LABELED, _PARTY_LABELED, _BARE):
        for match in pattern.finditer(text):
            value = match.group(1)
            if is_valid_inn(value) and value not in candidates:
                candidates.append(value)

    if not candidates:
        return None
    if len(candidates) == 1:
        return candidates[0]

    explicit = _LABELED.search(text)
    if explicit and is_valid_inn(explicit.group(1)):
        return explicit.group(1)
    return candidates[0]


def inn_matches(extracted: str | None, organization_inn: str | None) -> bool | None:
    """Tri-state comparison; None when either side is unknown."""
    if not extracted or not organization_inn:
        return None
    return _normalize(extracted) == _normalize(organization_inn)
