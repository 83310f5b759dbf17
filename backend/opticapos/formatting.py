from __future__ import annotations


def format_brl(cents: int) -> str:
    """
    Format integer centavos as Brazilian reais, e.g. 123456 -> "R$ 1.234,56".
    """
    sign = "-" if cents < 0 else ""
    reais, centavos = divmod(abs(int(cents)), 100)
    grouped = f"{reais:,}".replace(",", ".")
    return f"{sign}R$ {grouped},{centavos:02d}"
