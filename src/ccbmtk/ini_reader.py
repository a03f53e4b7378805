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

import configparser
import pathlib as pl
import re
import typing as tp

import pandas as pd

from .ccbmtk_base import InputError
from .names import MessageData

if tp.TYPE_CHECKING:
    from .core import Core

DATED_KEY = re.compile(r"^(?P<var>[^\[\]]+)\[(?P<date>[^\[\]]+)\]$")
CSV_PREFIX = "csv:"


class INIReader:
    """Read model settings from an ini file.

    Sections name components, keys name variables::

        [core]
        startDate = 1745
        do_spinup = true

        [ocean]
        tt = 7.2e7 m**3/s          ; a value with unit
        ffi_emissions = csv:emissions.csv
        ffi_emissions[2100] = 0.0  ; a single dated value

        [temperature]
        SST[1900] = 0.2

    A ``csv:`` value reads the column named like the variable from a
    CSV file with a ``Date`` column. The path is relative to the ini
    file.
    """

    def __init__(self, path: str | pl.Path) -> None:
        self.path = pl.Path(path)
        if not self.path.exists():
            raise InputError(f"{self.path} does not exist")

        self.parser = configparser.ConfigParser(
            delimiters=("=",),
            inline_comment_prefixes=(";", "#"),
            interpolation=None,
        )
        self.parser.optionxform = str  # variable names are case sensitive
        try:
            self.parser.read(self.path)
        except configparser.Error as err:
            raise InputError(f"cannot parse {self.path}: {err}") from err

        self.entries: list[tuple[str, str, float | None, tp.Any, str | None]] = []
        for section in self.parser.sections():
            for key, value in self.parser.items(section):
                self.entries.extend(self._parse(section, key, value))

    def _parse(self, section: str, key: str, value: str) -> list[tuple]:
        value = value.strip()
        if not value:
            raise InputError(f"[{section}] {key}: missing value")

        date = None
        var = key.strip()
        m = DATED_KEY.match(var)
        if m:
            var = m.group("var").strip()
            try:
                date = float(m.group("date"))
            except ValueError as err:
                raise InputError(f"[{section}] {key}: '{m.group('date')}' is not a date") from err
        elif "[" in var or "]" in var:
            raise InputError(f"[{section}] {key}: malformed variable name")

        if value.startswith(CSV_PREFIX):
            if date is not None:
                raise InputError(f"[{section}] {key}: a csv file cannot have a date")
            return self._read_csv(section, var, value[len(CSV_PREFIX) :].strip())

        return [(section, var, date, value, None)]

    def _read_csv(self, section: str, var: str, fn: str) -> list[tuple]:
        path = pl.Path(fn)
        if not path.is_absolute():
            path = self.path.parent / path
        if not path.exists():
            raise InputError(f"[{section}] {var}: {path} does not exist")

        df = pd.read_csv(path, comment=";", skipinitialspace=True)
        df.columns = [c.strip() for c in df.columns]
        if "Date" not in df.columns:
            raise InputError(f"[{section}] {var}: {path} has no Date column")
        if var not in df.columns:
            raise InputError(f"[{section}] {var}: {path} has no column '{var}'")

        df = df.set_index("Date")
        return [(section, var, float(d), float(v), None) for d, v in df[var].items()]

    def __iter__(self):
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def apply(self, core: Core) -> None:
        """Send every setting to the core. Call before prepare_to_run()."""
        for component, var, date, value, unit in self.entries:
            core.set_data(component, var, MessageData(date=date, value=value, unit=unit))
