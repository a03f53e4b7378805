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
import pandas as pd

from .ccbmtk_base import TimeSeriesError


class TimeSeries:
    """A date indexed series of floats.

    Values are stored per date. Lookups between two stored dates are
    linearly interpolated if `allow_interp` is True, lookups outside
    the stored range are an error.

    Example::

        ts = TimeSeries("ffi_emissions", allow_interp=True)
        ts.set(1850, 0.0)
        ts.set(1900, 0.5)
        ts.get(1875)  # 0.25
    """

    def __init__(self, name: str, allow_interp: bool = False) -> None:
        self.name = name
        self.allow_interp = allow_interp
        self.data: dict[float, float] = {}
        self._dates: np.ndarray | None = None
        self._values: np.ndarray | None = None

    def set(self, date: float, value: float) -> None:
        self.data[float(date)] = float(value)
        self._dates = None

    def exists(self, date: float) -> bool:
        return float(date) in self.data

    def size(self) -> int:
        return len(self.data)

    def first_date(self) -> float:
        if not self.data:
            raise TimeSeriesError(f"{self.name} is empty")
        return min(self.data)

    def last_date(self) -> float:
        if not self.data:
            raise TimeSeriesError(f"{self.name} is empty")
        return max(self.data)

    def _sorted(self) -> tuple[np.ndarray, np.ndarray]:
        if self._dates is None:
            dates = np.array(sorted(self.data), dtype=float)
            self._dates = dates
            self._values = np.array([self.data[d] for d in dates], dtype=float)
        return self._dates, self._values

    def get(self, date: float) -> float:
        """Return the value at `date`.

        Raises
        ------
        TimeSeriesError
            if the date is not stored and cannot be interpolated
        """
        date = float(date)
        if date in self.data:
            return self.data[date]

        if not self.data:
            raise TimeSeriesError(f"{self.name} is empty, cannot look up {date}")

        if not self.allow_interp:
            raise TimeSeriesError(
                f"{self.name} has no value for {date} and interpolation is off"
            )

        dates, values = self._sorted()
        if date < dates[0] or date > dates[-1]:
            raise TimeSeriesError(
                f"{date} is outside the range of {self.name} "
                f"({dates[0]} to {dates[-1]})"
            )

        return float(np.interp(date, dates, values))

    def truncate(self, date: float) -> None:
        """Remove all entries after `date`."""
        self.data = {d: v for d, v in self.data.items() if d <= date}
        self._dates = None

    def clear(self) -> None:
        self.data = {}
        self._dates = None

    def to_series(self) -> pd.Series:
        """Return the data as a pandas Series indexed by date."""
        dates, values = self._sorted() if self.data else (np.array([]), np.array([]))
        return pd.Series(values, index=pd.Index(dates, name="date"), name=self.name)
