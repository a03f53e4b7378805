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
from scipy.integrate import RK45

from .carbon_cycle_model import CarbonCycleModel, NDArrayFloat, Outcome
from .ccbmtk_base import InputError, SolverError
from .component import ModelComponent
from .names import (
    D_ATMOSPHERIC_C,
    D_DT,
    D_EPS_ABS,
    D_EPS_REL,
    D_EPS_SPINUP,
    SOLVER_COMPONENT_NAME,
    MessageData,
)

if tp.TYPE_CHECKING:
    from .core import Core

DEFAULT_EPS_ABS = 1.0e-6
DEFAULT_EPS_REL = 1.0e-6
DEFAULT_DT = 0.3  # yr
DEFAULT_EPS_SPINUP = 0.001  # PgC
MAX_RETRIES = 8


class CarbonCycleSolver(ModelComponent):
    """Advance a CarbonCycleModel one or more years at a time.

    The solver integrates the pool vector exported by the model with
    an explicit Runge-Kutta 5(4) pair (scipy's RK45). The model may
    answer a derivative request with Outcome.RETRY, which tells the
    solver that the attempted step is too long. The solver then
    bisects the remaining interval, and restarts the integrator from
    the pools the model holds at the start of the interval. After
    every converged (sub)interval, the model receives the result via
    stash().

    During spinup, run_spinup(step) integrates one synthetic year per
    call, and reports convergence once the largest pool change falls
    below eps_spinup.

    Example::

        solver = CarbonCycleSolver()
        core.add_component(solver)
        core.set_data(solver.name, "eps_spinup", MessageData(value=0.01))
    """

    def __init__(self) -> None:
        super().__init__()
        self.name = SOLVER_COMPONENT_NAME

        self.eps_abs = DEFAULT_EPS_ABS
        self.eps_rel = DEFAULT_EPS_REL
        self.dt = DEFAULT_DT
        self.eps_spinup = DEFAULT_EPS_SPINUP
        self.max_retries = MAX_RETRIES

        self.model: CarbonCycleModel | None = None
        self.t = 0.0
        self.retries = 0
        self.total_retries = 0
        self._retry_requested = False
        self._spinup_active = False
        self.c_original: NDArrayFloat | None = None
        self.spinup_residuals: list[float] = []

        from ccbmtk import Q_

        self.getters = {
            D_EPS_ABS: lambda date: Q_(self.eps_abs, "PgC"),
            D_EPS_REL: lambda date: Q_(self.eps_rel, "dimensionless"),
            D_DT: lambda date: Q_(self.dt, "yr"),
            D_EPS_SPINUP: lambda date: Q_(self.eps_spinup, "PgC"),
        }
        self.setters = {
            D_EPS_ABS: lambda d: setattr(self, "eps_abs", self._positive(d, "PgC")),
            D_EPS_REL: lambda d: setattr(self, "eps_rel", self._positive(d, "dimensionless")),
            D_DT: lambda d: setattr(self, "dt", self._positive(d, "yr")),
            D_EPS_SPINUP: lambda d: setattr(self, "eps_spinup", self._positive(d, "PgC")),
        }

    def _positive(self, data: MessageData, unit: str) -> float:
        v = self._to_float(data, unit)
        if v <= 0:
            raise InputError(f"{self.name}: value must be positive, got {v}")
        return v

    def init(self, core: Core) -> None:
        super().init(core)
        core.register_dependency(D_ATMOSPHERIC_C, self.name)
        for name in self.setters:
            core.register_input(name, self.name)

    def prepare_to_run(self) -> None:
        model = self.core.get_component_by_capability(D_ATMOSPHERIC_C)
        if not isinstance(model, CarbonCycleModel):
            raise SolverError(
                f"{self.name}: {model.name} provides {D_ATMOSPHERIC_C} "
                f"but is not a carbon cycle model"
            )
        self.model = model
        self.t = self.core.get_start_date()
        self.retries = 0
        self.total_retries = 0
        self._spinup_active = False
        self.c_original = None
        self.spinup_residuals = []
        self.logger.debug(
            f"model={model.name}, pools={model.pool_names()}, "
            f"eps_abs={self.eps_abs}, eps_rel={self.eps_rel}, dt={self.dt}"
        )

    def _rhs(self, t: float, y: NDArrayFloat) -> NDArrayFloat:
        dydt, outcome = self.model.derivatives(t, y)
        if outcome is Outcome.RETRY:
            self._retry_requested = True
        return np.asarray(dydt, dtype=float)

    def _integrate(
        self, t_start: float, t_end: float, y: NDArrayFloat
    ) -> tuple[Outcome, NDArrayFloat | None]:
        """Integrate y from t_start to t_end with a fresh integrator.

        Returns (Outcome.RETRY, None) as soon as the model requests a
        retry during a step.
        """
        self._retry_requested = False
        integrator = RK45(
            self._rhs,
            t_start,
            y,
            t_bound=t_end,
            first_step=min(self.dt, t_end - t_start),
            rtol=self.eps_rel,
            atol=self.eps_abs,
        )
        if self._retry_requested:
            return Outcome.RETRY, None

        while integrator.status == "running":
            msg = integrator.step()
            if self._retry_requested:
                return Outcome.RETRY, None
            if integrator.status == "failed":
                raise SolverError(f"{self.name}: integration failed at t={integrator.t}: {msg}")

        return Outcome.SUCCESS, np.array(integrator.y)

    def run(self, run_to_date: float) -> None:
        """Advance the model from the current time to run_to_date.

        :param run_to_date: must lie an integral number of years ahead

        :raises SolverError: if run_to_date does not advance the model,
            or if the retry limit is exceeded
        """
        if self._spinup_active and not self.core.in_spinup():
            # spinup ended without convergence
            self.t = self.core.get_start_date()
            self._spinup_active = False

        span = run_to_date - self.t
        if span <= 0 or not float(span).is_integer():
            raise SolverError(
                f"{self.name}: cannot run from {self.t} to {run_to_date}, "
                f"the step must be a positive number of whole years"
            )

        y = self.model.export_pools(self.t)
        self.model.update_slow_parameters(self.t, y)

        t_target = float(run_to_date)
        self.retries = 0
        while self.t < run_to_date:
            t_start = self.t
            outcome, y_new = self._integrate(t_start, t_target, y)

            if outcome is Outcome.RETRY:
                self.retries += 1
                self.total_retries += 1
                if self.retries > self.max_retries:
                    raise SolverError(
                        f"{self.name}: too many retries ({self.retries}) "
                        f"at t={t_start}, target={t_target}"
                    )
                t_target = t_start + (t_target - t_start) / 2.0
                self.logger.debug(f"retry {self.retries}: new target {t_target}")
                y = self.model.export_pools(t_start)
                continue

            self.t = t_target
            self.model.stash(self.t, y_new)
            y = self.model.export_pools(self.t)
            t_target = float(run_to_date)
            self.retries = 0

    def run_spinup(self, step: int) -> bool:
        """Integrate one spinup year and test for steady state."""
        if not self._spinup_active:
            self._spinup_active = True
            self.t = float(step - 1)
            self.c_original = self.model.export_pools(self.t)
            self.spinup_residuals = []

        c_old = self.model.export_pools(self.t)
        self.run(step)
        c_new = self.model.export_pools(self.t)

        residual = float(np.max(np.abs(c_new - c_old)))
        self.spinup_residuals.append(residual)
        if residual >= self.eps_spinup:
            return False

        self.logger.info(f"spinup converged after {step} steps, max residual {residual:.3e}")
        for name, before, after in zip(self.model.pool_names(), self.c_original, c_new):
            self.logger.info(f"{name}: {before:.3f} -> {after:.3f} ({after - before:+.3f})")

        self.t = self.core.get_start_date()
        self._spinup_active = False
        return True

    def reset(self, time: float) -> None:
        self.t = float(time)
        self.retries = 0
        self._spinup_active = False
        self.logger.info(f"{self.name} reset to time={time}")
