"""Offline helpers for finding template field-name divergences.

Used by ``incident-pdf suggest-overrides``; never consulted while filling.
Fuzzy matching at fill time would silently write values into the wrong
field, so suggestions are only ever a draft for ``overrides.py``.
"""

from __future__ import annotations

import difflib
from collections.abc import Iterable
from dataclasses import dataclass


@dataclass(frozen=True)
class OverrideSuggestion:
    """Close template names for one unresolved intended name."""

    intended_name: str
    candidates: tuple[tuple[str, float], ...]

    @property
    def best(self) -> str | None:
        return self.candidates[0][0] if self.candidates else None


def _normalize(name: str) -> str:
    return name.lower().replace("-", "_").replace(" ", "_")


def suggest_overrides(
    missing_names: Iterable[str],
    template_names: Iterable[str],
    *,
    limit: int = 3,
    cutoff: float = 0.75,
) -> list[OverrideSuggestion]:
    """Rank template field names by similarity to each missing name."""
    pool = sorted(set(template_names))
    normalized = {name: _normalize(name) for name in pool}
    suggestions: list[OverrideSuggestion] = []
    for intended in sorted(set(missing_names)):
        target = _normalize(intended)
        scored = []
        for name, norm in normalized.items():
            ratio = difflib.SequenceMatcher(None, target, norm).ratio()
            if ratio >= cutoff:
                scored.append((name, round(ratio, 3)))
        scored.sort(key=lambda pair: (-pair[1], pair[0]))
        suggestions.append(OverrideSuggestion(intended, tuple(scored[:limit])))
    return suggestions


def render_override_snippet(suggestions: Iterable[OverrideSuggestion]) -> str:
    """Format the best candidates as entries for ``FIELD_NAME_OVERRIDES``."""
    lines = []
    for suggestion in suggestions:
        if suggestion.best is None:
            lines.append(f"    # {suggestion.intended_name!r}: no close match")
        else:
            score = suggestion.candidates[0][1]
            lines.append(f"    {suggestion.intended_name!r}: {suggestion.best!r},  # {score:.2f}")
    return "\n".join(lines)
