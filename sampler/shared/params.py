"""Declarative parameter schema for the sampler effects.

Each effect's parameter contract is a list of ParamDef objects. ParamSchema
wraps the list and derives default dicts and clamping, so the router, the live
chain and any UI read the same contract.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class ParamType(Enum):
    FLOAT = "float"
    INT = "int"


@dataclass
class ParamDef:
    key: str
    type: ParamType
    default: Any
    section: str
    label: str = ""
    range: tuple | None = None  # (min, max), advisory only


class ParamSchema:
    """Derives defaults and clamping from a declarative param list."""

    def __init__(self, params: list[ParamDef]):
        self._params = params
        self._by_key: dict[str, ParamDef] = {p.key: p for p in params}

    def default_params(self, section: str | None = None) -> dict:
        return {p.key: p.default for p in self._params
                if section is None or p.section == section}

    def param_sections(self) -> dict[str, list[str]]:
        """Section name -> list of param keys."""
        sections: dict[str, list[str]] = {}
        for p in self._params:
            sections.setdefault(p.section, []).append(p.key)
        return sections

    def validate_and_clamp(self, raw: dict) -> dict:
        """Type-cast and clamp a raw params dict (e.g. from UI widgets).

        Unknown keys are dropped, as are values that cannot be cast. The
        engine itself never calls this; range enforcement is up to callers.
        """
        result = {}
        for key, value in raw.items():
            p = self._by_key.get(key)
            if p is None:
                continue
            try:
                v = int(round(value)) if p.type == ParamType.INT else float(value)
            except (TypeError, ValueError):
                continue
            if p.range:
                lo, hi = p.range
                v = max(lo, min(hi, v))
            result[key] = v
        return result

    def get(self, key: str) -> ParamDef | None:
        return self._by_key.get(key)

    def __iter__(self):
        return iter(self._params)

    def __len__(self):
        return len(self._params)
