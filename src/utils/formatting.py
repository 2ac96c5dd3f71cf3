from __future__ import annotations

from decimal import Decimal

from domain.base_types import LAMPORTS_PER_SOL

SOL_DECIMALS = 9


def format_decimal(value: Decimal) -> str:
    quantized = value.normalize()
    if quantized == 0:
        return "0"
    # Avoid scientific notation for integers.
    if quantized == quantized.to_integral():
        return f"{quantized:.0f}"
    return format(quantized, "f")


def format_currency(value: Decimal) -> str:
    cents = value.quantize(Decimal("0.01"))
    if cents == 0:
        cents = abs(cents)
    return f"{cents:.2f}"


def normalize_currency(value: Decimal) -> Decimal:
    """Treat sub-cent residue as zero."""
    if abs(value) < Decimal("0.005"):
        return Decimal(0)
    return value


def lamports_to_sol(lamports: int) -> Decimal:
    return Decimal(lamports) / LAMPORTS_PER_SOL


def format_sol(lamports: int, decimals: int = SOL_DECIMALS) -> str:
    sol = lamports_to_sol(lamports).quantize(Decimal(1).scaleb(-decimals))
    if sol == 0:
        sol = abs(sol)
    return f"{sol:.{decimals}f}"


def format_signed_sol(lamports: int, decimals: int = SOL_DECIMALS) -> str:
    if lamports == 0:
        return format_sol(0, decimals)
    sign = "+" if lamports > 0 else "-"
    return f"{sign}{format_sol(abs(lamports), decimals)}"
