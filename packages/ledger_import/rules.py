"""Deterministic keyword classifier.

The rule table is ordered: the first rule whose direction matches and whose
keyword set hits the lower-cased description wins. Supplier and vendor
keywords come before generic payment-rail keywords (``pix recebido``,
``pagamento boleto``) so that ``PIX RECEBIDO IFOOD.COM`` lands on ``iFood``
rather than on the generic sales bucket.

Whatever the table yields is always passed through :func:`resolve_category`
because the caller's catalogue may have renamed or removed a rule target.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from .logging_setup import get_logger, log_event
from .models import CategoryCatalogue, Direction

DEFAULT_CATEGORY = "Outros"
FALLBACK_LITERAL = "Outros"

_logger = get_logger("ledger_import.rules")


@dataclass(frozen=True, slots=True)
class ClassificationRule:
    keywords: frozenset[str]
    direction: Direction
    category: str

    @classmethod
    def of(cls, direction: Direction, category: str, *keywords: str) -> ClassificationRule:
        return cls(
            keywords=frozenset(k.lower() for k in keywords),
            direction=direction,
            category=category,
        )

    def matches(self, description: str, direction: Direction) -> bool:
        """``description`` must already be lower-cased."""

        if direction != self.direction:
            return False
        return any(k in description for k in self.keywords)


_IN = Direction.INFLOW
_OUT = Direction.OUTFLOW

DEFAULT_RULES: tuple[ClassificationRule, ...] = (
    # Delivery platforms and order channels
    ClassificationRule.of(_IN, "iFood", "ifood"),
    ClassificationRule.of(_IN, "99Food", "99food", "99 food", "99 tecnologia"),
    ClassificationRule.of(_IN, "Rappi", "rappi"),
    ClassificationRule.of(_IN, "Encomendas", "encomenda"),
    ClassificationRule.of(_IN, "Eventos", "evento", "buffet", "festa"),
    # Suppliers
    ClassificationRule.of(_OUT, "Nutella", "nutella", "ferrero"),
    ClassificationRule.of(_OUT, "Kinder Bueno", "kinder"),
    ClassificationRule.of(_OUT, "Frete", "frete", "loggi", "lalamove", "correios", "uber flash"),
    ClassificationRule.of(
        _OUT, "Insumos Gerais", "atacadao", "atacadão", "assai", "assaí", "makro", "embalagens"
    ),
    ClassificationRule.of(
        _OUT, "Compras de Equipamentos", "kalunga", "magazine luiza", "magalu", "equipamento"
    ),
    # Utilities and fixed costs
    ClassificationRule.of(_OUT, "Energia", "enel", "eletropaulo", "cpfl", "energia"),
    ClassificationRule.of(_OUT, "Água", "sabesp", "saneamento", "agua", "água"),
    ClassificationRule.of(_OUT, "Internet", "vivo", "claro", "net servicos", "internet", "telecom"),
    ClassificationRule.of(_OUT, "Aluguel", "aluguel", "imobiliaria", "imobiliária", "condominio"),
    ClassificationRule.of(_OUT, "Salários", "salario", "salário", "folha pgto", "pro labore"),
    ClassificationRule.of(
        _OUT, "Impostos", "simples nacional", "darf", "receita federal", "iptu", "icms", "gps inss"
    ),
    ClassificationRule.of(
        _OUT, "Marketing", "facebk", "meta ads", "google ads", "instagram", "panfleto"
    ),
    ClassificationRule.of(_OUT, "Manutenção", "manutencao", "manutenção", "conserto", "reparo"),
    # Generic payment rails (lowest priority)
    ClassificationRule.of(
        _IN,
        "Vendas Loja",
        "pix recebido",
        "ted recebida",
        "cielo",
        "stone",
        "getnet",
        "pagseguro",
        "sumup",
        "mercado pago",
        "rede ",
    ),
    ClassificationRule.of(
        _OUT, "Outros", "pix enviado", "ted enviada", "pagamento boleto", "tarifa"
    ),
)


def match_rule(
    description: str,
    direction: Direction,
    rules: Iterable[ClassificationRule] = DEFAULT_RULES,
) -> ClassificationRule | None:
    """Return the first rule in table order matching ``description``."""

    lowered = description.lower()
    for rule in rules:
        if rule.matches(lowered, direction):
            return rule
    return None


def match_category_name(name: str, names: Sequence[str]) -> str | None:
    """Return the entry of ``names`` equal to ``name``, ignoring case; else None."""

    if name in names:
        return name
    folded = name.casefold()
    for candidate in names:
        if candidate.casefold() == folded:
            return candidate
    return None


def resolve_category(name: str, direction: Direction, catalogue: CategoryCatalogue) -> str:
    """Map ``name`` onto a member of the catalogue's list for ``direction``.

    Fallback chain: exact match, case-insensitive match, the catalogue's
    designated default (when listed), the first list entry, then
    :data:`FALLBACK_LITERAL` for an empty list.
    """

    names: Sequence[str] = catalogue.for_direction(direction)
    match = match_category_name(name, names)
    if match is not None:
        return match
    if catalogue.default is not None and catalogue.default in names:
        return catalogue.default
    if names:
        return names[0]
    return FALLBACK_LITERAL


def classify(
    description: str,
    direction: Direction,
    catalogue: CategoryCatalogue,
    rules: Iterable[ClassificationRule] = DEFAULT_RULES,
) -> str:
    rule = match_rule(description, direction, rules)
    nominal = rule.category if rule is not None else DEFAULT_CATEGORY
    category = resolve_category(nominal, direction, catalogue)
    if category != nominal:
        log_event(
            _logger,
            "classify:catalogue_fallback",
            level=logging.DEBUG,
            nominal=nominal,
            resolved=category,
            direction=direction,
        )
    return category


__all__ = [
    "DEFAULT_CATEGORY",
    "DEFAULT_RULES",
    "FALLBACK_LITERAL",
    "ClassificationRule",
    "classify",
    "match_category_name",
    "match_rule",
    "resolve_category",
]
