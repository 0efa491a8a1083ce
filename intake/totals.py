# intake/totals.py
from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from intake import log_service
from intake.formatters import format_cents, parse_currency
from intake.validators import PERSONALIZADO

COUPON_TIERS = {
    "5% OFF": 5,
    "10% OFF": 10,
    "15% OFF": 15,
}

# Juros padrão: 3% por parcela acima de 3x
DEFAULT_INTEREST_PER_INSTALLMENT = Decimal("0.03")
INTEREST_FREE_INSTALLMENTS = 3

FALLBACK_SHIPPING_CENTS = 1500

_FIRST_NUMBER = re.compile(r"(\d+)")
_LEADING_INT = re.compile(r"^\s*(\d+)")


@dataclass
class PricingInputs:
    valor: str = ""
    frete: str = ""
    cupom: str = ""
    cupomPersonalizado: str = ""
    parcelamento: str = ""
    jurosAplicado: str = ""
    jurosPersonalizado: str = ""


def _first_number(text: str) -> Optional[int]:
    m = _FIRST_NUMBER.search(text or "")
    return int(m.group(1)) if m else None


def coupon_percent(cupom: str, custom: str = "") -> int:
    if cupom in COUPON_TIERS:
        return COUPON_TIERS[cupom]
    if cupom == PERSONALIZADO and custom:
        return _first_number(custom) or 0
    return 0


def installment_count(parcelamento: str) -> int:
    """'5x com juros' -> 5. Plano vazio (à vista) -> 0."""
    m = _LEADING_INT.match(parcelamento or "")
    if not m:
        return 0
    return int(m.group(1))


def interest_rate(parcelamento: str, juros: str = "", custom: str = "") -> Decimal:
    """
    Taxa aplicada sobre o valor com desconto.
    Só há juros quando o plano é "com juros": usa o percentual informado
    (personalizado ou pré-definido, ex. "5%") ou a política padrão.
    """
    if not parcelamento or "com juros" not in parcelamento:
        return Decimal("0")

    if juros == PERSONALIZADO:
        pct = _first_number(custom)
        if pct is not None:
            return Decimal(pct) / 100
    elif juros:
        pct = _first_number(juros)
        if pct is not None:
            return Decimal(pct) / 100

    count = installment_count(parcelamento)
    if count > INTEREST_FREE_INSTALLMENTS:
        return DEFAULT_INTEREST_PER_INSTALLMENT * (count - INTEREST_FREE_INSTALLMENTS)
    return Decimal("0")


def total_cents(inputs: PricingInputs) -> int:
    valor = parse_currency(inputs.valor)
    frete = parse_currency(inputs.frete)

    desconto = valor * coupon_percent(inputs.cupom, inputs.cupomPersonalizado) / 100
    valor_com_desconto = valor - desconto

    taxa = interest_rate(inputs.parcelamento, inputs.jurosAplicado, inputs.jurosPersonalizado)
    valor_final = valor_com_desconto * (1 + taxa)

    total = (valor_final + frete).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return int(total * 100)


def compute_total(inputs: PricingInputs) -> str:
    """Valor total formatado (R$). Em caso de erro, o total passa a ser só o frete."""
    try:
        cents = total_cents(inputs)
        log_service.debug(
            "Valores atualizados",
            {
                "valor": inputs.valor,
                "frete": inputs.frete,
                "cupom": inputs.cupom,
                "parcelamento": inputs.parcelamento,
                "jurosAplicado": inputs.jurosAplicado,
                "totalEmCentavos": cents,
            },
        )
        return format_cents(cents)
    except Exception as e:
        log_service.error("Erro ao calcular valor total", {"error": str(e)})
        try:
            frete_cents = int(parse_currency(inputs.frete) * 100)
        except Exception:
            frete_cents = 0
        return format_cents(frete_cents or FALLBACK_SHIPPING_CENTS)
