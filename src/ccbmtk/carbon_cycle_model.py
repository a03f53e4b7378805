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

import enum

import numpy as np
import numpy.typing as npt

from .component import ModelComponent

# declare numpy types
NDArrayFloat = npt.NDArray[np.float64]


class Outcome(enum.Enum):
    """Result of a derivative evaluation.

    RETRY is not an error. It tells the solver that the attempted step
    is too long for the model and should be bisected.
    """

    SUCCESS = 0
    RETRY = 1


class CarbonCycleModel(ModelComponent):
    """Contract between a box model and the CarbonCycleSolver.

    The model owns its pools. During one call to solver.run() the
    solver works on a copy of the pool vector and calls back into the
    model:

    - export_pools(t) at the start of every (sub)interval
    - update_slow_parameters(t, pools) once per year
    - derivatives(t, pools) as often as the integrator needs
    - stash(t, pools) when a (sub)interval has been integrated

    The pool vector has length ncpool() and a fixed order, given by
    pool_names().
    """

    def ncpool(self) -> int:
        return len(self.pool_names())

    def pool_names(self) -> list[str]:
        raise NotImplementedError

    def export_pools(self, t: float) -> NDArrayFloat:
        """Return a copy of the pool vector at time t.

        The solver calls this at the start of every (sub)interval, so
        t also marks the start of the interval the model is asked to
        integrate next.
        """
        raise NotImplementedError

    def derivatives(self, t: float, pools: NDArrayFloat) -> tuple[NDArrayFloat, Outcome]:
        raise NotImplementedError

    def update_slow_parameters(self, t: float, pools: NDArrayFloat) -> None:
        pass

    def stash(self, t: float, pools: NDArrayFloat) -> None:
        """Accept the converged pool vector at time t."""
        raise NotImplementedError

    def record_state(self, t: float) -> None:
        pass
