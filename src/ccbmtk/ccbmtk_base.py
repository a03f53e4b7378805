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

import typing as tp

import numpy as np
import numpy.typing as npt

# declare numpy types
NDArrayFloat = npt.NDArray[np.float64]


class KeywordError(Exception):
    """Exception raised for unknown keyword arguments.

    Parameters
    ----------
    message : str
        Explanation of the error

    Examples
    --------
    >>> raise KeywordError("'xyz' is not a valid keyword")
    """

    def __init__(self, message):
        message = f"\n\n{message}\n"
        super().__init__(message)


class MissingKeywordError(Exception):
    """Exception raised when a required keyword argument is missing."""

    def __init__(self, message):
        message = f"\n\n{message}\n"
        super().__init__(message)


class InputError(Exception):
    """Exception raised for malformed input values or units.

    Examples
    --------
    >>> raise InputError("salinity must be positive")
    """

    def __init__(self, message):
        message = f"\n\n{message}\n"
        super().__init__(message)


class ComponentError(Exception):
    """Custom Error Class for errors raised inside a model component."""

    def __init__(self, message):
        message = f"\n\n{message}\n"
        super().__init__(message)


class CoreError(Exception):
    """Custom Error Class for registry, routing and run-control faults."""

    def __init__(self, message):
        message = f"\n\n{message}\n"
        super().__init__(message)


class SolverError(Exception):
    """Custom Error Class for integration faults.

    Raised when the integrator fails, or when the model keeps asking
    for a smaller step after the retry budget is used up.
    """

    def __init__(self, message):
        message = f"\n\n{message}\n"
        super().__init__(message)


class ChemistryError(Exception):
    """Custom Error Class for carbonate chemistry faults."""

    def __init__(self, message):
        message = f"\n\n{message}\n"
        super().__init__(message)


class TimeSeriesError(Exception):
    """Custom Error Class for time series lookups."""

    def __init__(self, message):
        message = f"\n\n{message}\n"
        super().__init__(message)


class InputParsing:
    """Provides various routines to parse and process keyword arguments.

    All derived classes need to declare the allowed keyword arguments,
    their default values and the type in the following format:

    defaults = {"key": [value, (allowed instances)]}

    and the list of mandatory keywords as

    lrk = ["key", ...]

    Calling __initialize_keyword_variables__(kwargs) will then check
    the mandatory keywords, register every default as an instance
    variable, and overwrite it with the value provided in kwargs.

    Notes
    -----
    This class is not meant to be instantiated directly.
    """

    # numeric keywords which must be larger than zero
    positive_keywords: tuple = (
        "volume",
        "area",
        "salinity",
        "wind_speed",
        "eps_abs",
        "eps_rel",
        "eps_spinup",
        "dt",
        "max_spinup",
    )

    def __init__(self):
        raise NotImplementedError("InputParsing has no instance!")

    def __initialize_keyword_variables__(self, kwargs) -> None:
        """Check, register and update keyword variables.

        Parameters
        ----------
        kwargs : dict
            Dictionary of keyword arguments to process
        """
        self.update = False
        self.__check_mandatory_keywords__(self.lrk, kwargs)
        self.__register_variable_names__(self.defaults, kwargs)
        self.__update_dict_entries__(self.defaults, kwargs)
        self.update = True

    def __check_mandatory_keywords__(self, lrk: list, kwargs: dict) -> None:
        """Verify that all required keywords are present in kwargs.

        Raises
        ------
        MissingKeywordError
            If a required keyword is missing or None
        """
        for key in lrk:
            if key not in kwargs:
                raise MissingKeywordError(f"'{key}' is a mandatory keyword")
            if kwargs[key] is None:
                raise MissingKeywordError(
                    f"'{key}' is a mandatory keyword and cannot be None"
                )

    def __register_variable_names__(
        self,
        defaults: dict[str, list[tp.Any]],
        kwargs: dict,
    ) -> None:
        """Register the default values as instance variables.

        The defaults dictionary is copied first, so that instances of
        the same class do not share (and overwrite) each other's
        settings.
        """
        self.defaults = {k: [v[0], v[1]] for k, v in defaults.items()}
        for key, value in self.defaults.items():
            setattr(self, key, value[0])

        # save kwargs dict
        self.kwargs: dict = kwargs

    def __update_dict_entries__(
        self,
        defaults: dict[str, list[tp.Any]],
        kwargs: dict[str, tp.Any],
    ) -> None:
        """Validate and update instance attributes with the provided keywords.

        Raises
        ------
        KeywordError
            If a key in kwargs is not in defaults
        InputError
            If a value is not of the expected type or fails validation
        """
        for key, value in kwargs.items():
            self.__process_keyword__(self.defaults, key, value)

    def __process_keyword__(self, defaults, key, value):
        """Validate a single keyword and store its value."""
        if key not in defaults:
            raise KeywordError(f"'{key}' is not a valid keyword")

        if value is None:
            return

        expected_types = defaults[key][1]
        if not isinstance(value, expected_types):
            if isinstance(expected_types, tuple):
                names = ", ".join(t.__name__ for t in expected_types)
            else:
                names = expected_types.__name__
            raise InputError(
                f"'{value}' for '{key}' must be of type {names}, "
                f"not {type(value).__name__}"
            )

        try:
            self._validate_value(key, value)
        except ValueError as err:
            raise InputError(f"Validation failed for '{key}': {err}") from err

        defaults[key][0] = value
        setattr(self, key, value)

    def _validate_value(self, key, value):
        """Perform additional validation on values based on their types.

        Raises
        ------
        ValueError
            If the value fails validation
        """
        if isinstance(value, str):
            if key == "name" and (not value or value.isspace()):
                raise ValueError("Name cannot be empty or just whitespace")

        elif isinstance(value, bool):
            pass

        elif isinstance(value, int | float):
            if key in self.positive_keywords and value <= 0:
                raise ValueError(f"'{key}' must be positive, got {value}")


class ccbmtkBase(InputParsing):
    """The ccbmtk base class template.

    This class handles keyword arguments and the string
    representation of an object.

    Examples
    --------
    .. code-block:: python

            # Define required keywords in lrk list
            self.lrk: list = ["name"]

            # Define allowed type per keyword in defaults dict
            self.defaults: dict[str, list[any, tuple]] = {
                "name": ["None", (str)],
                "salinity": [34.5, (int, float)],  # int or float
            }

            # Parse and register all keywords with the instance
            self.__initialize_keyword_variables__(kwargs)
    """

    def __init__(self) -> None:
        raise NotImplementedError

    def __repr__(self) -> str:
        """Return the constructor call that recreates this object."""
        m = f"{self.__class__.__name__}(\n"
        for k, v in self.kwargs.items():
            if isinstance(v, str):
                m = f"{m}    {k} = '{v}',\n"
            elif isinstance(v, list | np.ndarray):
                m = f"{m}    {k} = '{v[:3]}',\n"
            else:
                m = f"{m}    {k} = {v},\n"

        return f"{m})"
