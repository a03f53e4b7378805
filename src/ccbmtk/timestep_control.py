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

OCEAN_MAX_TIMESTEP = 1.0  # yr
OCEAN_MIN_TIMESTEP = 0.3  # yr
OCEAN_TSR_FACTOR = 0.5
OCEAN_TSR_TIMEOUT = 20  # trigger free years before the step grows again
OCEAN_TSR_TRIGGER = 0.1  # PgC/yr


class TimestepController:
    """Limit the ocean time step when the air-sea flux changes quickly.

    After every stash, update() compares the annualized flux of the
    finished (sub)step with the one before. A change larger than
    `trigger` shrinks the max step by `factor` (but not below
    `min_step`) and arms a timeout. Each whole year without a trigger
    counts the timeout down. When it reaches zero the max step grows
    by 1/factor, and the timeout is armed again unless the step is
    back at `max_step`.
    """

    def __init__(
        self,
        max_step: float = OCEAN_MAX_TIMESTEP,
        min_step: float = OCEAN_MIN_TIMESTEP,
        factor: float = OCEAN_TSR_FACTOR,
        timeout: int = OCEAN_TSR_TIMEOUT,
        trigger: float = OCEAN_TSR_TRIGGER,
    ) -> None:
        self.max_step = max_step
        self.min_step = min_step
        self.factor = factor
        self.timeout_years = timeout
        self.trigger = trigger

        self.max_timestep = max_step
        self.timeout = 0
        self.timesteps = 0
        self.lastflux_annualized = 0.0

    def new_year(self) -> None:
        self.timesteps = 0

    def update(self, t: float, yf: float, flux: float) -> bool:
        """Register a finished (sub)step.

        :param t: time at the end of the step
        :param yf: length of the step in years
        :param flux: carbon taken up by the ocean during the step (PgC)

        :returns: True if the step size was reduced
        """
        self.timesteps += 1
        annualized = flux / yf if yf > 0 else self.lastflux_annualized
        change = abs(annualized - self.lastflux_annualized)
        self.lastflux_annualized = annualized
        in_partial_year = not float(t).is_integer()

        if change > self.trigger:
            self.max_timestep = max(self.min_step, self.max_timestep * self.factor)
            self.timeout = self.timeout_years
            return True

        if not in_partial_year and self.timeout:
            self.timeout = max(0, self.timeout - 1)
            if not self.timeout:
                self.max_timestep = min(self.max_step, self.max_timestep / self.factor)
                if self.max_timestep < self.max_step:
                    self.timeout = self.timeout_years

        return False

    def snapshot(self) -> tuple:
        return (self.max_timestep, self.timeout, self.lastflux_annualized)

    def restore(self, state: tuple) -> None:
        self.max_timestep, self.timeout, self.lastflux_annualized = state
        self.timesteps = 0
