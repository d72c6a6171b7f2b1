"""
SI decimal prefixes and the naming rules for prefixed unit aliases.

Prefixing modes:
  • none            : the unit is registered as declared
  • metric          : every prefix from Yotta (10^24) down to Yocto (10^-24)
  • partial_metric  : only the magnitude-reducing prefixes (Deci .. Yocto);
                      milliseconds are common, kiloseconds are not
"""

from __future__ import annotations
from enum import Enum
from typing import List, Tuple

import sympy as sp

from unitlogic.errors import MalformedStatementError


class PrefixMode(str, Enum):
	NONE = "none"
	METRIC = "metric"
	PARTIAL_METRIC = "partial_metric"

	@classmethod
	def parse(cls, value: "PrefixMode | str | None") -> "PrefixMode":
		if value is None:
			return cls.NONE
		if isinstance(value, PrefixMode):
			return value
		key = str(value).strip().lower().replace("-", "_")
		if key in ("", "none", "plain"):
			return cls.NONE
		if key in ("metric", "full_metric"):
			return cls.METRIC
		if key == "partial_metric":
			return cls.PARTIAL_METRIC
		raise MalformedStatementError("unknown prefixing mode", str(value))


# (name, symbol, power of ten)
METRIC_PREFIXES: Tuple[Tuple[str, str, int], ...] = (
	("Yotta", "Y", 24),
	("Zetta", "Z", 21),
	("Exa", "E", 18),
	("Peta", "P", 15),
	("Tera", "T", 12),
	("Giga", "G", 9),
	("Mega", "M", 6),
	("Kilo", "k", 3),
	("Hecto", "h", 2),
	("Deka", "da", 1),
	("Deci", "d", -1),
	("Centi", "c", -2),
	("Milli", "m", -3),
	("Micro", "μ", -6),
	("Nano", "n", -9),
	("Pico", "p", -12),
	("Femto", "f", -15),
	("Atto", "a", -18),
	("Zepto", "z", -21),
	("Yocto", "y", -24),
)
SMALL_PREFIXES_START = 10


def prefixes_for(mode: PrefixMode) -> Tuple[Tuple[str, str, int], ...]:
	"""Return the prefix rows generated for a prefixing mode."""
	if mode is PrefixMode.METRIC:
		return METRIC_PREFIXES
	if mode is PrefixMode.PARTIAL_METRIC:
		return METRIC_PREFIXES[SMALL_PREFIXES_START:]
	return ()


def prefixed_name(prefix: str, name: str) -> str:
	"""Kilo + Meters → Kilometers: the unit's first letter is lower-cased behind the prefix."""
	if not name:
		return prefix
	return f"{prefix}{name[0].lower()}{name[1:]}"


def prefix_scale(power: int) -> sp.Rational:
	"""Exact 10^power."""
	return sp.Rational(10) ** power


def expand(names: Tuple[str, ...], symbol: str, mode: PrefixMode) -> List[Tuple[Tuple[str, ...], str, sp.Rational]]:
	"""
	Return (names, symbol, scale) for every prefixed variant of a unit, in table order.
	The symbol is empty when the unit has none.
	"""
	out: List[Tuple[Tuple[str, ...], str, sp.Rational]] = []
	for pfx_name, pfx_symbol, power in prefixes_for(mode):
		variant_names = tuple(prefixed_name(pfx_name, n) for n in names)
		if symbol:
			variant_symbol = f"{pfx_symbol}{symbol}"
		else:
			variant_symbol = ""
		out.append((variant_names, variant_symbol, prefix_scale(power)))
	return out


__all__ = ["PrefixMode", "METRIC_PREFIXES", "SMALL_PREFIXES_START", "prefixes_for", "prefixed_name", "prefix_scale", "expand"]
