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

The ocean carbon cycle: two surface boxes (high and low latitude),
an intermediate and a deep box. The surface boxes exchange CO2 with
the atmosphere, with fluxes computed from their carbonate chemistry.
Ocean circulation moves carbon between all four boxes.

The component also owns the atmosphere and geologic (earth) carbon
pools, so that the solver integrates a closed system:

    d atmos_c / dt = E - F_HL - F_LL
    d HL / dt      = F_HL
    d LL / dt      = F_LL
    d earth_c / dt = -E

where E are the fossil fuel and industry emissions, and F the air-sea
fluxes. Circulation is applied once per (sub)step, when the solver
stashes its result.
"""

from __future__ import annotations

import typing as tp

import numpy as np

from .carbon_cycle_model import CarbonCycleModel, NDArrayFloat, Outcome
from .carbonate_chemistry import CarbonateChemistry
from .ccbmtk_base import ComponentError, InputError
from .names import (
    D_ATMOSPHERIC_C,
    D_ATMOSPHERIC_CO2,
    D_CARBON_DO,
    D_CARBON_HL,
    D_CARBON_IO,
    D_CARBON_LL,
    D_CARBON_ML,
    D_CO3_HL,
    D_CO3_LL,
    D_DIC,
    D_DIC_HL,
    D_DIC_LL,
    D_EARTHC,
    D_FFI_EMISSIONS,
    D_HL_DO,
    D_OCEAN_C,
    D_OCEAN_CFLUX,
    D_OCEAN_CFLUX_HL,
    D_OCEAN_CFLUX_LL,
    D_OCEAN_MAX_TIMESTEP,
    D_OCEAN_TIMESTEPS,
    D_OMEGAAR_HL,
    D_OMEGAAR_LL,
    D_OMEGACA_HL,
    D_OMEGACA_LL,
    D_PCO2,
    D_PCO2_HL,
    D_PCO2_LL,
    D_PH,
    D_PH_HL,
    D_PH_LL,
    D_PREIND_C_ID,
    D_PREIND_C_SURFACE,
    D_PREINDUSTRIAL_CO2,
    D_REVELLE_HL,
    D_REVELLE_LL,
    D_SPINUP_CHEM,
    D_SST,
    D_TEMP_HL,
    D_TEMP_LL,
    D_TID,
    D_TT,
    D_TU,
    D_TWI,
    M_DUMP_TO_DEEP_OCEAN,
    M_GETDATA,
    OCEAN_COMPONENT_NAME,
    MessageData,
)
from .ocean_box import BoxArena, OceanBox
from .timestep_control import TimestepController
from .tseries import TimeSeries
from .utility_functions import map_units

if tp.TYPE_CHECKING:
    from .core import Core

SPY = 60 * 60 * 24 * 365.25  # seconds per year
PGC_TO_PPMVCO2 = 1.0 / 2.13

# geometry after Knox and McElroy (1984)
OCEAN_AREA = 3.6e14  # m**2
PART_HIGH = 0.15  # area fraction of the high latitude box
PART_LOW = 1.0 - PART_HIGH
THICK_SURFACE = 100.0  # m
THICK_INTER = 1000.0 - THICK_SURFACE
THICK_DEEP = 3777.0 - THICK_INTER - THICK_SURFACE

# box and pool indices
HL, LL, IO, DO = 0, 1, 2, 3
P_ATMOS, P_HL, P_LL, P_IO, P_DO, P_EARTH = range(6)
POOL_NAMES = ["atmos_c", "HL", "LL", "IO", "DO", "earth_c"]


class OceanComponent(CarbonCycleModel):
    """Four box ocean carbon cycle with surface carbonate chemistry.

    Settable variables (all optional):

    - tt, tu, twi, tid: transports in m**3/s (or any volume flux unit)
    - spinup_chem: run the chemistry during spinup (default False)
    - preind_C_surface, preind_C_intermediate: preindustrial
      carbon of the surface and intermediate plus deep ocean in PgC
    - C0: preindustrial atmospheric CO2 in ppmv
    - earth_c: initial geologic carbon in PgC
    - ffi_emissions[date]: fossil emissions in PgC/yr

    The SST anomaly is requested from whichever component provides
    the SST capability.
    """

    def __init__(self) -> None:
        super().__init__()
        self.name = OCEAN_COMPONENT_NAME

        # parameters
        self.tt = 7.2e7  # m**3/s, thermohaline overturning
        self.tu = 4.9e7  # m**3/s, high latitude overturning
        self.twi = 1.25e7  # m**3/s, warm-intermediate exchange
        self.tid = 2.0e8  # m**3/s, intermediate-deep exchange
        self.spinup_chem = False
        self.preind_c_surface = 900.0  # PgC
        self.preind_c_id = 37100.0  # PgC
        self.c0 = 277.15  # ppmv
        self.earth_c0 = 5500.0  # PgC
        self.ffi_emissions = TimeSeries(D_FFI_EMISSIONS, allow_interp=True)

        # state
        self.arena = BoxArena()
        self.atmos_c = self.c0 / PGC_TO_PPMVCO2
        self.earth_c = self.earth_c0
        self.controller = TimestepController()
        self.ode_start = 0.0
        self.in_spinup = False
        self.sst = 0.0
        self.ffi_current = 0.0
        self.annualflux_sum = 0.0
        self.annualflux_sum_hl = 0.0
        self.annualflux_sum_ll = 0.0
        self.history: dict[float, dict] = {}

        self.__init_dispatch_tables__()

    def __init_dispatch_tables__(self) -> None:
        from ccbmtk import Q_

        def box(i):
            return lambda s: s["boxes"][i]

        def chem(i, attr):
            return lambda s: getattr(s["boxes"][i].chemistry, attr)

        def weighted(attr, scale=1.0):
            return lambda s: scale * (
                PART_HIGH * getattr(s["boxes"][HL].chemistry, attr)
                + PART_LOW * getattr(s["boxes"][LL].chemistry, attr)
            )

        # name: (function of a state dict, unit)
        table: dict[str, tuple[tp.Callable, str]] = {
            D_ATMOSPHERIC_C: (lambda s: s["atmos_c"], "PgC"),
            D_ATMOSPHERIC_CO2: (lambda s: s["atmos_c"] * PGC_TO_PPMVCO2, "ppmv"),
            D_EARTHC: (lambda s: s["earth_c"], "PgC"),
            D_CARBON_HL: (lambda s: box(HL)(s).carbon, "PgC"),
            D_CARBON_LL: (lambda s: box(LL)(s).carbon, "PgC"),
            D_CARBON_IO: (lambda s: box(IO)(s).carbon, "PgC"),
            D_CARBON_DO: (lambda s: box(DO)(s).carbon, "PgC"),
            D_CARBON_ML: (lambda s: box(HL)(s).carbon + box(LL)(s).carbon, "PgC"),
            D_OCEAN_C: (lambda s: sum(b.carbon for b in s["boxes"]), "PgC"),
            D_OCEAN_CFLUX: (lambda s: s["annualflux_sum"], "PgC/yr"),
            D_OCEAN_CFLUX_HL: (lambda s: s["annualflux_sum_hl"], "PgC/yr"),
            D_OCEAN_CFLUX_LL: (lambda s: s["annualflux_sum_ll"], "PgC/yr"),
            D_HL_DO: (lambda s: box(HL)(s).annual_box_fluxes.get(DO, 0.0), "PgC"),
            D_PCO2: (weighted("pco2"), "uatm"),
            D_PH: (weighted("ph"), "dimensionless"),
            D_PH_HL: (chem(HL, "ph"), "dimensionless"),
            D_PH_LL: (chem(LL, "ph"), "dimensionless"),
            D_PCO2_HL: (chem(HL, "pco2"), "uatm"),
            D_PCO2_LL: (chem(LL, "pco2"), "uatm"),
            D_DIC: (weighted("dic", 1e6), "umol/kg"),
            D_DIC_HL: (lambda s: chem(HL, "dic")(s) * 1e6, "umol/kg"),
            D_DIC_LL: (lambda s: chem(LL, "dic")(s) * 1e6, "umol/kg"),
            D_CO3_HL: (lambda s: chem(HL, "co3")(s) * 1e6, "umol/kg"),
            D_CO3_LL: (lambda s: chem(LL, "co3")(s) * 1e6, "umol/kg"),
            D_OMEGACA_HL: (chem(HL, "omega_ca"), "dimensionless"),
            D_OMEGACA_LL: (chem(LL, "omega_ca"), "dimensionless"),
            D_OMEGAAR_HL: (chem(HL, "omega_ar"), "dimensionless"),
            D_OMEGAAR_LL: (chem(LL, "omega_ar"), "dimensionless"),
            D_REVELLE_HL: (lambda s: box(HL)(s).chemistry.revelle_factor(), "dimensionless"),
            D_REVELLE_LL: (lambda s: box(LL)(s).chemistry.revelle_factor(), "dimensionless"),
            D_TEMP_HL: (lambda s: box(HL)(s).tbox, "degC"),
            D_TEMP_LL: (lambda s: box(LL)(s).tbox, "degC"),
            D_OCEAN_TIMESTEPS: (lambda s: s["timesteps"], "dimensionless"),
            D_OCEAN_MAX_TIMESTEP: (lambda s: s["controller"][0], "yr"),
        }

        def getter(fn, unit):
            return lambda date: Q_(float(fn(self._state(date))), unit)

        self.getters = {k: getter(fn, unit) for k, (fn, unit) in table.items()}

        # parameters can be read back as well
        self.getters.update(
            {
                D_TT: lambda date: Q_(self.tt, "m**3/s"),
                D_TU: lambda date: Q_(self.tu, "m**3/s"),
                D_TWI: lambda date: Q_(self.twi, "m**3/s"),
                D_TID: lambda date: Q_(self.tid, "m**3/s"),
                D_PREINDUSTRIAL_CO2: lambda date: Q_(self.c0, "ppmv"),
                D_FFI_EMISSIONS: lambda date: Q_(self._emissions(date), "PgC/yr"),
            }
        )

        self.setters = {
            D_TT: lambda d: setattr(self, "tt", self._transport(d)),
            D_TU: lambda d: setattr(self, "tu", self._transport(d)),
            D_TWI: lambda d: setattr(self, "twi", self._transport(d)),
            D_TID: lambda d: setattr(self, "tid", self._transport(d)),
            D_SPINUP_CHEM: lambda d: setattr(self, "spinup_chem", self._to_bool(d)),
            D_PREIND_C_SURFACE: lambda d: setattr(
                self, "preind_c_surface", self._to_float(d, "PgC")
            ),
            D_PREIND_C_ID: lambda d: setattr(self, "preind_c_id", self._to_float(d, "PgC")),
            D_PREINDUSTRIAL_CO2: lambda d: setattr(self, "c0", self._to_float(d, "ppmv")),
            D_EARTHC: lambda d: setattr(self, "earth_c0", self._to_float(d, "PgC")),
            D_FFI_EMISSIONS: lambda d: self.ffi_emissions.set(
                self._data_date(d), self._to_float(d, "PgC/yr")
            ),
        }

    def _transport(self, data: MessageData) -> float:
        v = self._to_float(data, "m**3/s")
        if v < 0:
            raise InputError(f"transport must not be negative, got {v}")
        return v

    def pool_names(self) -> list[str]:
        return list(POOL_NAMES)

    def get_output_variables(self) -> list[str]:
        return [
            D_ATMOSPHERIC_C,
            D_ATMOSPHERIC_CO2,
            D_CARBON_HL,
            D_CARBON_LL,
            D_CARBON_IO,
            D_CARBON_DO,
            D_OCEAN_C,
            D_OCEAN_CFLUX,
            D_PH_HL,
            D_PH_LL,
            D_PCO2_HL,
            D_PCO2_LL,
            D_OMEGAAR_HL,
            D_OMEGAAR_LL,
        ]

    def init(self, core: Core) -> None:
        super().init(core)
        for name in self.getters:
            if name not in self.setters:
                core.register_capability(name, self.name)
        for name in self.setters:
            core.register_input(name, self.name)
        core.register_dependency(D_SST, self.name)

    def prepare_to_run(self) -> None:
        """Build the boxes, connections and the initial pools."""
        self.logger.debug("prepare_to_run")
        self.arena = self._build_arena()
        self.atmos_c = self.c0 / PGC_TO_PPMVCO2
        self.earth_c = self.earth_c0
        self.controller = TimestepController()
        self.history = {}
        self.in_spinup = False
        self.sst = 0.0
        self.ffi_current = 0.0
        self.annualflux_sum = 0.0
        self.annualflux_sum_hl = 0.0
        self.annualflux_sum_ll = 0.0
        self.ode_start = self.core.get_start_date()
        self._log_state()

    def _build_arena(self) -> BoxArena:
        hl_volume = OCEAN_AREA * PART_HIGH * THICK_SURFACE
        ll_volume = OCEAN_AREA * PART_LOW * THICK_SURFACE
        io_volume = OCEAN_AREA * THICK_INTER
        do_volume = OCEAN_AREA * THICK_DEEP

        # partition the preindustrial carbon by volume
        ll_frac = ll_volume / (ll_volume + hl_volume)
        io_frac = io_volume / (io_volume + do_volume)

        arena = BoxArena()
        arena.add(
            OceanBox(
                "HL",
                (1 - ll_frac) * self.preind_c_surface,
                volume=hl_volume,
                delta_t=-16.4,
                chemistry=CarbonateChemistry(
                    name="HL", volume=hl_volume, area=OCEAN_AREA * PART_HIGH
                ),
                preindustrial_flux=1.0,
            )
        )
        arena.add(
            OceanBox(
                "LL",
                ll_frac * self.preind_c_surface,
                volume=ll_volume,
                delta_t=2.9,
                chemistry=CarbonateChemistry(
                    name="LL", volume=ll_volume, area=OCEAN_AREA * PART_LOW
                ),
                preindustrial_flux=-1.0,
            )
        )
        arena.add(OceanBox("intermediate", io_frac * self.preind_c_id, volume=io_volume))
        arena.add(OceanBox("deep", (1 - io_frac) * self.preind_c_id, volume=do_volume))

        for i in (HL, LL):
            arena[i].active_chemistry = self.spinup_chem

        # rate coefficients (1/yr) = transport * seconds / volume of source
        arena.connect(LL, HL, self.tt * SPY / ll_volume, 1)
        arena.connect(LL, IO, self.twi * SPY / ll_volume, 1)
        arena.connect(HL, DO, (self.tt + self.tu) * SPY / hl_volume, 1)
        arena.connect(IO, LL, (self.tt + self.twi) * SPY / io_volume, 1)
        arena.connect(IO, HL, self.tu * SPY / io_volume, 1)
        arena.connect(IO, DO, self.tid * SPY / io_volume, 1)
        arena.connect(DO, IO, (self.tt + self.tu + self.tid) * SPY / do_volume, 1)

        return arena

    def _surface_boxes(self) -> tuple[OceanBox, OceanBox]:
        return self.arena[HL], self.arena[LL]

    def _emissions(self, date: float | None) -> float:
        """Emissions in PgC/yr, zero before the first and constant
        after the last date of the series.
        """
        ts = self.ffi_emissions
        if ts.size() == 0:
            return 0.0
        if date is None:
            return self.ffi_current
        if date < ts.first_date():
            return 0.0
        if date > ts.last_date():
            return ts.get(ts.last_date())
        return ts.get(date)

    def run(self, run_to_date: float) -> None:
        """Set up the boxes for the year ending at run_to_date.

        The solver does the actual integration afterwards.
        """
        self.in_spinup = self.core.in_spinup()
        if not self.in_spinup and (run_to_date - 1) not in self.history:
            self.record_state(run_to_date - 1)

        sst = self.core.send_message(M_GETDATA, D_SST)
        self.sst = map_units(sst, "delta_degC")
        self.ffi_current = 0.0 if self.in_spinup else self._emissions(run_to_date)

        self.controller.new_year()
        self.annualflux_sum = 0.0
        self.annualflux_sum_hl = 0.0
        self.annualflux_sum_ll = 0.0

        ca = self.atmos_c * PGC_TO_PPMVCO2
        for b in self.arena.boxes:
            b.new_year(self.sst, ca)

        hl, ll = self._surface_boxes()
        if not self.spinup_chem and not self.in_spinup and not hl.active_chemistry:
            self.logger.info(f"{run_to_date}: turning on ocean chemistry")
            for b in (hl, ll):
                b.active_chemistry = True
                alk = b.chemistry.equilibrate_alkalinity(
                    b.tbox, b.carbon, ca, b.preindustrial_flux
                )
                self.logger.info(f"{b.name}: alkalinity equilibrated to {alk:.6e} mol/kg")

        for b in (hl, ll):
            b.run_chemistry()

        self.logger.debug(
            f"run to {run_to_date}: SST={self.sst:.3f}, Ca={ca:.3f}, "
            f"spinup={self.in_spinup}"
        )

    def run_spinup(self, step: int) -> bool:
        self.run(step)
        return True

    def export_pools(self, t: float) -> NDArrayFloat:
        self.ode_start = t
        c = np.empty(len(POOL_NAMES))
        c[P_ATMOS] = self.atmos_c
        c[P_HL] = self.arena[HL].carbon
        c[P_LL] = self.arena[LL].carbon
        c[P_IO] = self.arena[IO].carbon
        c[P_DO] = self.arena[DO].carbon
        c[P_EARTH] = self.earth_c
        return c

    def update_slow_parameters(self, t: float, pools: NDArrayFloat) -> None:
        self.in_spinup = self.core.in_spinup()

    def derivatives(self, t: float, pools: NDArrayFloat) -> tuple[NDArrayFloat, Outcome]:
        """Air-sea fluxes for the pool state proposed by the solver.

        The surface pCO2 from the last chemistry solve is scaled by
        the ratio of the proposed to the current box carbon.
        """
        yearfraction = t - self.ode_start
        ca = pools[P_ATMOS] * PGC_TO_PPMVCO2

        dcdt = np.zeros(len(POOL_NAMES))
        total = 0.0
        for p, b in ((P_HL, self.arena[HL]), (P_LL, self.arena[LL])):
            cpoolscale = pools[p] / b.carbon if b.carbon > 0 else 1.0
            flux = b.annual_atmosphere_flux(ca, cpoolscale)
            dcdt[p] = flux
            total += flux

        dcdt[P_ATMOS] = self.ffi_current - total
        dcdt[P_EARTH] = -self.ffi_current

        if yearfraction > self.controller.max_timestep:
            return dcdt, Outcome.RETRY
        return dcdt, Outcome.SUCCESS

    def stash(self, t: float, pools: NDArrayFloat) -> None:
        """Finalize a (sub)step: circulate, reconcile fluxes, update boxes."""
        yearfraction = t - self.ode_start
        if not 0 <= yearfraction <= 1 + 1e-9:
            raise ComponentError(
                f"{self.name}: year fraction {yearfraction} out of bounds at t={t}"
            )

        ca = pools[P_ATMOS] * PGC_TO_PPMVCO2
        self.arena.compute_fluxes(ca, yearfraction, do_circ=True)

        # the chemistry fluxes are end of step estimates, the solver
        # flux is what actually left the atmosphere. Split the
        # difference evenly between the two surface boxes.
        hl, ll = self._surface_boxes()
        currentflux = hl.atmosphere_flux + ll.atmosphere_flux
        solver_flux = (pools[P_HL] - hl.carbon) + (pools[P_LL] - ll.carbon)
        adjustment = (solver_flux - currentflux) / 2.0
        hl.atmosphere_flux += adjustment
        ll.atmosphere_flux += adjustment

        if self.controller.update(t, yearfraction, solver_flux):
            self.logger.debug(
                f"t={t}: reducing max timestep to {self.controller.max_timestep}"
            )

        self.annualflux_sum_hl += hl.atmosphere_flux
        self.annualflux_sum_ll += ll.atmosphere_flux
        self.annualflux_sum += hl.atmosphere_flux + ll.atmosphere_flux

        self.arena.update_state()
        self.atmos_c = float(pools[P_ATMOS])
        self.earth_c = float(pools[P_EARTH])

        # keep the chemistry in step with the new carbon content
        hl.run_chemistry()
        ll.run_chemistry()

        self.ode_start = t
        if float(t).is_integer() and not self.in_spinup:
            self.record_state(t)

    def send_message(self, message: str, datum: str, info: MessageData | None = None):
        if message == M_DUMP_TO_DEEP_OCEAN:
            from ccbmtk import Q_

            info = MessageData() if info is None else info
            amount = self._to_float(info, "PgC")
            self.arena[DO].carbon += amount
            self.atmos_c -= amount
            self.logger.debug(f"{amount} PgC moved from the atmosphere to the deep ocean")
            return Q_(self.arena[DO].carbon, "PgC")

        return super().send_message(message, datum, info)

    def _current_state(self) -> dict:
        return {
            "boxes": self.arena.boxes,
            "atmos_c": self.atmos_c,
            "earth_c": self.earth_c,
            "annualflux_sum": self.annualflux_sum,
            "annualflux_sum_hl": self.annualflux_sum_hl,
            "annualflux_sum_ll": self.annualflux_sum_ll,
            "controller": self.controller.snapshot(),
            "timesteps": self.controller.timesteps,
            "sst": self.sst,
            "ffi_current": self.ffi_current,
        }

    def _state(self, date: float | None) -> dict:
        if date is None:
            return self._current_state()
        if date not in self.history:
            raise ComponentError(f"{self.name}: no recorded state for {date}")
        return self.history[date]

    def record_state(self, t: float) -> None:
        state = self._current_state()
        state["boxes"] = self.arena.snapshot()
        self.history[float(t)] = state
        self.logger.debug(f"state recorded at t={t}")

    def reset(self, time: float) -> None:
        """Restore the state recorded at `time` and drop later records.

        A date before the start date discards the whole history, the
        core then rebuilds the boxes with prepare_to_run().
        """
        if time < self.core.get_start_date():
            self.history = {}
            self.logger.info(f"reset to {time}, history cleared")
            return

        if time not in self.history:
            raise ComponentError(f"{self.name}: cannot reset to {time}, no recorded state")

        state = self.history[time]
        self.arena.restore(state["boxes"])
        self.atmos_c = state["atmos_c"]
        self.earth_c = state["earth_c"]
        self.annualflux_sum = state["annualflux_sum"]
        self.annualflux_sum_hl = state["annualflux_sum_hl"]
        self.annualflux_sum_ll = state["annualflux_sum_ll"]
        self.controller.restore(state["controller"])
        self.sst = state["sst"]
        self.ffi_current = state["ffi_current"]
        self.history = {d: s for d, s in self.history.items() if d <= time}
        self.ode_start = time
        self.logger.info(f"{self.name} reset to time={time}")

    def _log_state(self) -> None:
        for b in self.arena.boxes:
            self.logger.debug(
                f"{b.name}: C={b.carbon:.3f} PgC, T={b.tbox:.2f} C, "
                f"chemistry={'on' if b.active_chemistry else 'off'}"
            )
