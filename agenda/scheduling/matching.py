"""Identidade por nome em texto livre.

Agendamentos não têm chave estrangeira para o cadastro de clientes: o
calendário só guarda "<serviço> - <nome>". Tudo aqui compara nomes
normalizados com heurísticas de prefixo e primeiro nome, e por isso devolve
um MatchResult em vez de uma referência simples: o chamador enxerga quando o
resultado é ambíguo.
"""
import re
import unicodedata
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from agenda.models.client import Client

_WHITESPACE = re.compile(r"\s+")

CONFIDENCE = {
    "exact": 1.0,
    "prefix": 0.8,
    "first_name": 0.6,
    "contains": 0.4,
}


def normalize_name(value: Optional[str]) -> str:
    """Sem acentos, minúsculo, espaços colapsados."""
    if not value:
        return ""
    decomposed = unicodedata.normalize("NFD", value)
    stripped = "".join(ch for ch in decomposed if unicodedata.category(ch) != "Mn")
    return _WHITESPACE.sub(" ", stripped.strip().lower())


def first_token(normalized: str) -> str:
    return normalized.split(" ")[0] if normalized else ""


def is_prefix_either_way(a: str, b: str) -> bool:
    return a.startswith(b) or b.startswith(a)


@dataclass
class MatchResult:
    client: Optional[Client] = None
    # exact | prefix | first_name | contains | None
    strategy: Optional[str] = None
    ambiguous: bool = False
    candidates: List[Client] = field(default_factory=list)

    @property
    def confidence(self) -> float:
        if self.client is None:
            return 0.0
        return CONFIDENCE.get(self.strategy, 0.0)

    @property
    def phone(self) -> Optional[str]:
        return self.client.phone if self.client else None


class NormalizedNameMatcher:
    """Resolve o nome de um agendamento para um cliente do cadastro."""

    def __init__(self, clients: Iterable[Client]):
        self._entries = [(normalize_name(c.name), c) for c in clients]

    def match(self, name: str) -> MatchResult:
        query = normalize_name(name)
        if not query:
            return MatchResult()

        for normalized, client in self._entries:
            if normalized == query:
                return MatchResult(client=client, strategy="exact", candidates=[client])

        first = first_token(query)
        same_first = [c for n, c in self._entries if first_token(n) == first]
        if len(same_first) == 1:
            return MatchResult(client=same_first[0], strategy="first_name", candidates=same_first)

        if len(same_first) > 1:
            prefixed = [c for n, c in self._entries if first_token(n) == first and n.startswith(query)]
            if len(prefixed) == 1:
                return MatchResult(client=prefixed[0], strategy="prefix", candidates=same_first)
            if len(prefixed) > 1:
                # "Gabriel" com dois Gabriel no cadastro: não escolhe nenhum
                return MatchResult(ambiguous=True, candidates=prefixed)

        containing = [c for n, c in self._entries if n and (query in n or n in query)]
        if len(containing) == 1:
            return MatchResult(client=containing[0], strategy="contains", candidates=containing)

        ambiguous = same_first or containing
        return MatchResult(ambiguous=len(ambiguous) > 1, candidates=list(ambiguous))
