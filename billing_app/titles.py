"""Titel-Liste, die mit der Menge eines Entwurfs synchron bleibt."""

from __future__ import annotations

from typing import Sequence


def resize(titles: Sequence[str], new_quantity: int) -> list[str]:
    """Bringt die Titel-Liste auf genau ``new_quantity`` Einträge.

    Neue Einträge werden als leere Strings angehängt, überzählige am Ende
    abgeschnitten. Bereits erfasste Titel bleiben unverändert erhalten.
    """

    if new_quantity < 1:
        raise ValueError("quantity must be at least 1")

    resized = list(titles)
    if new_quantity > len(resized):
        resized.extend([""] * (new_quantity - len(resized)))
    elif new_quantity < len(resized):
        del resized[new_quantity:]
    return resized


def set_title_at(titles: Sequence[str], index: int, value: str) -> list[str]:
    """Ersetzt den Titel an ``index``; ungültige Indizes ändern nichts."""

    updated = list(titles)
    if 0 <= index < len(updated):
        updated[index] = value
    return updated


def blank_indices(titles: Sequence[str]) -> list[int]:
    """Indizes aller leeren oder nur aus Leerzeichen bestehenden Titel."""

    return [idx for idx, title in enumerate(titles) if not title.strip()]


def format_description(titles: Sequence[str]) -> str:
    """Baut die Rechnungsbeschreibung: eine nummerierte Zeile pro Titel."""

    return "\n".join(f"{idx}. {title}" for idx, title in enumerate(titles, start=1))
