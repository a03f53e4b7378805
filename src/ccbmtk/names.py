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

Message kinds, capability names and the message payload.

Components exchange data exclusively through Core.send_message(), and
the names below are the only strings that cross that boundary.
"""

from __future__ import annotations

import typing as tp

# message kinds
M_GETDATA = "getData"
M_SETDATA = "setData"
M_DUMP_TO_DEEP_OCEAN = "dumpToDeepOcean"
MESSAGE_KINDS = (M_GETDATA, M_SETDATA, M_DUMP_TO_DEEP_OCEAN)

# component names
CORE_COMPONENT_NAME = "core"
OCEAN_COMPONENT_NAME = "ocean"
SOLVER_COMPONENT_NAME = "carbon-cycle-solver"
CLIMATE_COMPONENT_NAME = "temperature"

# reserved variable names, handled by the core for every component
D_ENABLED = "enabled"
D_OUTPUT_ENABLED = "output"

# core
D_START_DATE = "startDate"
D_END_DATE = "endDate"
D_DO_SPINUP = "do_spinup"
D_MAX_SPINUP = "max_spinup"
D_RUN_NAME = "run_name"

# carbon pools owned by the ocean engine
D_ATMOSPHERIC_C = "atmos_c"
D_ATMOSPHERIC_CO2 = "Ca"
D_PREINDUSTRIAL_CO2 = "C0"
D_EARTHC = "earth_c"
D_FFI_EMISSIONS = "ffi_emissions"

# ocean
D_CARBON_HL = "carbon_HL"
D_CARBON_LL = "carbon_LL"
D_CARBON_IO = "carbon_IO"
D_CARBON_DO = "carbon_DO"
D_CARBON_ML = "carbon_ML"
D_OCEAN_C = "ocean_c"
D_OCEAN_CFLUX = "atm_ocean_flux"
D_OCEAN_CFLUX_HL = "atm_ocean_flux_HL"
D_OCEAN_CFLUX_LL = "atm_ocean_flux_LL"
D_HL_DO = "HL_DO"
D_PH = "pH"
D_PH_HL = "pH_HL"
D_PH_LL = "pH_LL"
D_PCO2 = "pCO2"
D_PCO2_HL = "pCO2_HL"
D_PCO2_LL = "pCO2_LL"
D_DIC = "DIC"
D_DIC_HL = "DIC_HL"
D_DIC_LL = "DIC_LL"
D_CO3_HL = "CO3_HL"
D_CO3_LL = "CO3_LL"
D_OMEGACA_HL = "Omega_Ca_HL"
D_OMEGACA_LL = "Omega_Ca_LL"
D_OMEGAAR_HL = "Omega_Ar_HL"
D_OMEGAAR_LL = "Omega_Ar_LL"
D_REVELLE_HL = "Revelle_HL"
D_REVELLE_LL = "Revelle_LL"
D_TEMP_HL = "temp_HL"
D_TEMP_LL = "temp_LL"
D_OCEAN_TIMESTEPS = "ocean_timesteps"
D_OCEAN_MAX_TIMESTEP = "ocean_max_timestep"
D_TT = "tt"
D_TU = "tu"
D_TWI = "twi"
D_TID = "tid"
D_SPINUP_CHEM = "spinup_chem"
D_PREIND_C_SURFACE = "preind_C_surface"
D_PREIND_C_ID = "preind_C_intermediate"

# climate
D_SST = "SST"
D_GLOBAL_TAS = "global_tas"

# solver
D_EPS_ABS = "eps_abs"
D_EPS_REL = "eps_rel"
D_DT = "dt"
D_EPS_SPINUP = "eps_spinup"


class MessageData:
    """Payload of a message.

    Parameters
    ----------
    date : float, optional
        The date the message refers to, None means "current"
    value : float | str | bool | Quantity, optional
        The value of a SET or DUMP message
    unit : str, optional
        The unit of `value` if `value` is a bare number

    Examples
    --------
    >>> MessageData(date=1850, value=0.2, unit="delta_degC")
    """

    def __init__(
        self,
        date: float | None = None,
        value: tp.Any = None,
        unit: str | None = None,
    ) -> None:
        self.date = None if date is None else float(date)
        self.value = value
        self.unit = unit

    def has_date(self) -> bool:
        return self.date is not None

    def __repr__(self) -> str:
        return f"MessageData(date={self.date}, value={self.value!r}, unit={self.unit})"
