"""ccbmtk: A coupled carbon-cycle box model toolkit.

Copyright (C), 2020 Ulrich G. Wortmann

This program is free software: you can redistribute it and/or modify
it under the terms of the GNU General Public License as published by
the Free Software Foundation, either version 3 of the License, or
(at your option) any later version.

This program is distributed in the hope that it will be useful,
but WITHOUT ANY WARRANTY; without even the implied warranty of
MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
GNU General Public License for more details.

You should have received a copy of the GNU General Public License
along with this program.  If not, see <https://www.gnu.org/licenses/>.
"""

from __future__ import annotations

import numpy as np
from pint.errors import DimensionalityError, UndefinedUnitError

from .ccbmtk_base import InputError


def phc(c: float) -> float:
    """Calculate concentration as pH.

    c can be a number or numpy array

    Parameters
    ----------
    c : float
        H+ concentration

    Returns
    -------
    float
        pH value

    """
    pH: float = -np.log10(c)
    return pH


def check_for_quantity(quantity, unit):
    r"""Check if keyword is quantity or string an convert as necessary.

    - If input is a string, convert string into a quantity
    - If input is a quantity, do nothing
    - if input is a number, convert to default quantity

    The result is always expressed in `unit`.

    Parameters
    ----------
    quantity : str | quantity | float | int
        e.g., "7.2e7 m**3/s", or 12,
    unit : str
        desired unit for keyword, e.g., "m**3/s"

    Returns
    -------
    Q\_
        Returns a Quantity in the requested unit

    Raises
    ------
    InputError
        if the value is neither number, str or quantity, or if it
        cannot be expressed in `unit`

    """
    from ccbmtk import Q_

    try:
        if isinstance(quantity, str):
            quantity = Q_(quantity)
            # a bare number in a string parses as dimensionless
            if quantity.dimensionless and not Q_(1, unit).dimensionless:
                quantity = Q_(quantity.magnitude, unit)
        elif isinstance(quantity, bool):
            raise InputError(f"{quantity} is not a number")
        elif isinstance(quantity, float | int | np.floating | np.integer):
            quantity = Q_(float(quantity), unit)
        elif not isinstance(quantity, Q_):
            raise InputError(
                f"{quantity} must be string, number or Quantity, "
                f"not {type(quantity).__name__}"
            )
        return quantity.to(unit)
    except (DimensionalityError, UndefinedUnitError, ValueError, TypeError) as err:
        raise InputError(f"Cannot express {quantity} in {unit}: {err}") from err


def map_units(v, unit: str) -> float:
    """Convert v to `unit` and return the bare magnitude.

    :param v: input string/number/quantity
    :param unit: model unit, e.g., "Pg"
    :returns: float

    :raises InputError: if v cannot be mapped to the model unit
    """
    return float(check_for_quantity(v, unit).magnitude)


def parse_bool(v) -> bool:
    """Interpret configuration style truth values.

    Accepts bool, numbers, and the strings true/false/yes/no/on/off/1/0.

    :raises InputError: for anything else
    """
    if isinstance(v, bool):
        return v
    if isinstance(v, int | float):
        return v != 0
    if isinstance(v, str):
        s = v.strip().lower()
        if s in ("1", "true", "yes", "on"):
            return True
        if s in ("0", "false", "no", "off"):
            return False
    raise InputError(f"Cannot interpret '{v}' as a boolean")
