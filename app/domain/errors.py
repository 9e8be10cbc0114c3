# app/domain/errors.py
"""
Bledy domenowe sklepu.

Dziedzicza po wbudowanych wyjatkach, zeby istniejace `except ValueError`
w routerach dalej lapaly walidacje.
"""


class ShopError(Exception):
    """Bazowy blad domeny."""


class NotFoundError(ShopError, LookupError):
    """Brak koszyka / produktu / pozycji w koszyku / zamowienia, albo koszyk wygasl."""


class ValidationError(ShopError, ValueError):
    """Zle dane wejsciowe albo stan, ktory nie pozwala na operacje."""


class InsufficientStockError(ValidationError):
    """Za malo towaru na stanie."""


class ConflictError(ShopError, RuntimeError):
    """Rownolegly zapis wygral wyscig, operacje mozna powtorzyc."""
