from __future__ import annotations

import dataclasses
from typing import Iterable

from .roadmap_models import Delivery

NO_PHASE_COLOR = "#6b7280"

PHASE_COLORS: dict[str, str] = {
    "Onda 1": "#3b82f6",
    "Onda 2": "#10b981",
    "Onda 3": "#f59e0b",
    "Onda 4": "#8b5cf6",
    "Melhoria MVP": "#ef4444",
    "Reforma Tributária": "#06b6d4",
    "Quebra Monolito": "#f97316",
    "Descoberta": "#84cc16",
    "Desenvolvimento": "#ec4899",
    "Testes": "#6366f1",
    "Produção": "#14b8a6",
    "Manutenção": "#a855f7",
}

FALLBACK_PALETTE: tuple[str, ...] = (
    "#3b82f6",
    "#10b981",
    "#f59e0b",
    "#ef4444",
    "#8b5cf6",
    "#06b6d4",
    "#f97316",
    "#84cc16",
    "#ec4899",
    "#6366f1",
)


def color_for_phase(phase: str | None) -> str:
    """
    Return the display colour for a phase label.

    Known phases use the fixed table, blank phases are gray, anything else is
    hashed onto the fallback palette. Never raises.
    """

    if phase and phase in PHASE_COLORS:
        return PHASE_COLORS[phase]
    if not phase or not phase.strip():
        return NO_PHASE_COLOR
    return color_for_string(phase)


def color_for_string(value: str) -> str:
    """Hash an arbitrary string onto the fallback palette."""
    return FALLBACK_PALETTE[abs(_rolling_hash(value)) % len(FALLBACK_PALETTE)]


def effective_color(delivery: Delivery) -> str:
    """Explicit delivery colour if set, otherwise the colour of its phase."""
    return delivery.delivery_color or color_for_phase(delivery.delivery_phase)


def apply_phase_colors(deliveries: Iterable[Delivery]) -> list[Delivery]:
    """Return copies of the deliveries recoloured from their phase, discarding overrides."""
    return [dataclasses.replace(d, delivery_color=color_for_phase(d.delivery_phase)) for d in deliveries]


def phase_legend() -> list[tuple[str, str]]:
    return list(PHASE_COLORS.items())


def _to_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value >= 0x80000000 else value


def _rolling_hash(value: str) -> int:
    # Shift runs on 32-bit signed ints; the subtraction and addition do not wrap.
    encoded = value.encode("utf-16-le", "surrogatepass")
    h = 0
    for idx in range(0, len(encoded), 2):
        code = encoded[idx] | (encoded[idx + 1] << 8)
        h = code + (_to_int32(_to_int32(h) << 5) - h)
    return h
