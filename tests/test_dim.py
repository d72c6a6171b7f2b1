from fractions import Fraction

import pytest

from unitlogic.errors import DimensionMismatchError
from unitlogic.units.dim import DIMLESS, DimVector


def test_zero_exponents_are_dropped() -> None:
	d = DimVector.from_mapping({"Length": 1, "Time": 0})
	assert d.axes() == ("Length",)
	assert d == DimVector.axis("Length")


def test_product_quotient_and_power() -> None:
	length = DimVector.axis("Length")
	time = DimVector.axis("Time")
	accel = length / time ** 2
	assert accel.exponent("Length") == 1
	assert accel.exponent("Time") == -2
	assert (accel * time ** 2).same(length)
	assert (length / length).is_dimensionless()
	assert (length ** Fraction(1, 2)).exponent("Length") == Fraction(1, 2)


def test_addition_requires_equal_vectors() -> None:
	length = DimVector.axis("Length")
	assert (length + length).same(length)
	with pytest.raises(DimensionMismatchError, match="E_DIMENSION_MISMATCH"):
		length + DimVector.axis("Time")
	with pytest.raises(DimensionMismatchError):
		length - DIMLESS


def test_pretty_and_payload() -> None:
	d = DimVector.from_mapping({"Time": -2, "Length": 1})
	assert d.pretty() == "Length Time^-2"
	assert DIMLESS.pretty() == "1"
	assert d.to_payload() == {"Length": "1", "Time": "-2"}


def test_scale_by_rejects_floats() -> None:
	with pytest.raises(TypeError):
		DimVector.axis("Length").scale_by(0.5)
