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

from .component import ModelComponent
from .names import CLIMATE_COMPONENT_NAME, D_GLOBAL_TAS, D_SST, MessageData
from .tseries import TimeSeries

if tp.TYPE_CHECKING:
    from .core import Core


class PrescribedClimateComponent(ModelComponent):
    """Temperature anomalies read from configured time series.

    Stands in for a temperature model. SST and global_tas are set per
    date, e.g., ``SST[1900] = 0.2``, or as a constant without a date.
    Values before the first date are 0, values after the last date
    keep the last value.
    """

    def __init__(self) -> None:
        super().__init__()
        self.name = CLIMATE_COMPONENT_NAME
        self.series = {
            D_SST: TimeSeries(D_SST, allow_interp=True),
            D_GLOBAL_TAS: TimeSeries(D_GLOBAL_TAS, allow_interp=True),
        }
        self.constants: dict[str, float | None] = {D_SST: None, D_GLOBAL_TAS: None}
        self.current = {D_SST: 0.0, D_GLOBAL_TAS: 0.0}

        from ccbmtk import Q_

        def getter(var):
            return lambda date: Q_(
                self.current[var] if date is None else self.value_at(var, date),
                "delta_degC",
            )

        def setter(var):
            return lambda d: self._set(var, d)

        self.getters = {v: getter(v) for v in self.series}
        self.setters = {v: setter(v) for v in self.series}

    def _set(self, var: str, data: MessageData) -> None:
        value = self._to_float(data, "delta_degC")
        if data.has_date():
            self.series[var].set(data.date, value)
        else:
            self.constants[var] = value

    def value_at(self, var: str, date: float) -> float:
        ts = self.series[var]
        if ts.size() == 0:
            const = self.constants[var]
            return 0.0 if const is None else const
        if date < ts.first_date():
            return 0.0
        if date > ts.last_date():
            return ts.get(ts.last_date())
        return ts.get(date)

    def init(self, core: Core) -> None:
        super().init(core)
        for var in self.series:
            core.register_input(var, self.name)

    def prepare_to_run(self) -> None:
        self.current = {v: 0.0 for v in self.series}
        self.logger.debug(
            ", ".join(f"{v}: {ts.size()} dates" for v, ts in self.series.items())
        )

    def run(self, run_to_date: float) -> None:
        self.current = {v: self.value_at(v, run_to_date) for v in self.series}

    def run_spinup(self, step: int) -> bool:
        self.current = {v: 0.0 for v in self.series}
        return True

    def reset(self, time: float) -> None:
        start = self.core.get_start_date()
        if time < start:
            self.current = {v: 0.0 for v in self.series}
        else:
            self.current = {v: self.value_at(v, time) for v in self.series}
