# intake/formatters.py
# Máscaras dos campos do formulário (CPF, telefone, moeda, data).
from __future__ import annotations

import re
from datetime import date
from decimal import Decimal, InvalidOperation

_NON_DIGITS = re.compile(r"\D")
_LEADING_NUMBER = re.compile(r"^\d+(?:\.\d+)?")


def _digits_only(value: str) -> str:
    return _NON_DIGITS.sub("", value or "")


def format_cpf(value: str) -> str:
    """CPF: XXX.XXX.XXX-XX (progressivo enquanto digita)."""
    n = _digits_only(value)
    if len(n) <= 3:
        return n
    if len(n) <= 6:
        return f"{n[:3]}.{n[3:]}"
    if len(n) <= 9:
        return f"{n[:3]}.{n[3:6]}.{n[6:]}"
    return f"{n[:3]}.{n[3:6]}.{n[6:9]}-{n[9:11]}"


def format_phone(value: str) -> str:
    """Telefone: (XX) XXXXX-XXXX."""
    n = _digits_only(value)
    if len(n) <= 2:
        return f"({n}" if n else ""
    if len(n) <= 7:
        return f"({n[:2]}) {n[2:]}"
    return f"({n[:2]}) {n[2:7]}-{n[7:11]}"


def format_cents(cents: int) -> str:
    reais, centavos = divmod(int(cents), 100)
    return f"R$ {reais:,}".replace(",", ".") + f",{centavos:02d}"


def format_currency(value: str) -> str:
    """
    Moeda: os dígitos digitados são lidos como centavos.
    "11500" -> "R$ 115,00"; "R$ 115,00" -> "R$ 115,00" (idempotente).
    """
    n = _digits_only(value)
    if n == "":
        return ""
    return format_cents(int(n))


def format_date(value: str) -> str:
    """Data: DD/MM/YY."""
    n = _digits_only(value)
    if len(n) <= 2:
        return n
    if len(n) <= 4:
        return f"{n[:2]}/{n[2:]}"
    return f"{n[:2]}/{n[2:4]}/{n[4:6]}"


def format_display_date(value: date) -> str:
    return value.strftime("%d/%m/%y")


def parse_currency(value: str) -> Decimal:
    """
    "R$ 1.234,56" -> Decimal("1234.56"); "15,00" -> Decimal("15.00").
    Vazio ou inválido -> Decimal("0").
    """
    clean = re.sub(r"[^\d,]", "", value or "").replace(",", ".", 1)
    m = _LEADING_NUMBER.match(clean)
    if not m:
        return Decimal("0")
    try:
        return Decimal(m.group(0))
    except InvalidOperation:
        return Decimal("0")
