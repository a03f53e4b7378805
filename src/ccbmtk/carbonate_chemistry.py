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

from math import exp, log, log10, sqrt

import numpy as np
from numba import njit
from scipy.optimize import brentq

from .ccbmtk_base import ChemistryError, ccbmtkBase
from .utility_functions import phc

MOLAR_MASS_C = 12.01  # g/mol
SEAWATER_DENSITY = 1027.0  # kg/m**3

# valid input ranges in mol/kg
DIC_MIN, DIC_MAX = 1000e-6, 3700e-6
ALK_MIN, ALK_MAX = 2000e-6, 2750e-6

# search window for the alkalinity that reproduces a given flux
ALK_EQ_MIN, ALK_EQ_MAX = 2100e-6, 2750e-6
ALK_EQ_POINTS = 21

# pH bracket for the H+ root
PH_LOW, PH_HIGH = 2.0, 13.0


@njit
def equilibrium_constants(tc: float, s: float) -> tuple:
    """Calculate the dissociation constants of the carbonate system.

    All constants are on the total scale and in mol/kg unless noted.

    - K0: CO2 solubility, Weiss 1974 (mol/l/atm)
    - Sc: Schmidt number, Wanninkhof 1992
    - Kw: water, Millero 1995
    - Kh: Henry constant, Weiss 1974 (mol/kg/atm)
    - K1, K2: carbonic acid, Mehrbach et al. 1973 as refit by
      Dickson and Millero 1987
    - Kb: boric acid, Dickson 1990
    - Kspc, Kspa: calcite and aragonite solubility, Mucci 1983

    Parameters
    ----------
    tc : float
        temperature in C
    s : float
        salinity in psu

    Returns
    -------
    tuple
        K0, Sc, Kw, Kh, K1, K2, Kb, Kspc, Kspa, total boron, calcium
    """
    tk = tc + 273.15
    t100 = tk / 100.0
    ss = sqrt(s)

    lnk0 = (
        -58.0931
        + 90.5069 * (100.0 / tk)
        + 22.2940 * log(t100)
        + s * (0.027766 - 0.025888 * t100 + 0.0050578 * t100 * t100)
    )
    k0 = exp(lnk0)

    sc = 2073.1 - 125.62 * tc + 3.6276 * tc * tc - 0.043219 * tc * tc * tc

    lnkw = (
        -13847.26 / tk
        + 148.96502
        - 23.6521 * log(tk)
        + (118.67 / tk - 5.977 + 1.0495 * log(tk)) * ss
        - 0.01615 * s
    )
    kw = exp(lnkw)

    lnkh = (
        9345.17 / tk
        - 60.2409
        + 23.3585 * log(t100)
        + s * (0.023517 - 0.00023656 * tk + 0.0047036e-4 * tk * tk)
    )
    kh = exp(lnkh)

    pk1 = 3633.86 / tk - 61.2172 + 9.6777 * log(tk) - 0.011555 * s + 0.0001152 * s * s
    k1 = 10.0 ** (-pk1)

    pk2 = 471.78 / tk + 25.9290 - 3.16967 * log(tk) - 0.01781 * s + 0.0001122 * s * s
    k2 = 10.0 ** (-pk2)

    lnkb = (
        (-8966.90 - 2890.53 * ss - 77.942 * s + 1.728 * s * ss - 0.0996 * s * s) / tk
        + 148.0248
        + 137.1942 * ss
        + 1.62142 * s
        + (-24.4344 - 25.085 * ss - 0.2474 * s) * log(tk)
        + 0.053105 * ss * tk
    )
    kb = exp(lnkb)

    log10kspc = (
        -171.9065
        - 0.077993 * tk
        + 2839.319 / tk
        + 71.595 * log10(tk)
        + (-0.77712 + 0.0028426 * tk + 178.34 / tk) * ss
        - 0.07711 * s
        + 0.0041249 * s * ss
    )
    kspc = 10.0**log10kspc

    log10kspa = (
        -171.945
        - 0.077993 * tk
        + 2903.293 / tk
        + 71.595 * log10(tk)
        + (-0.068393 + 0.0017276 * tk + 88.135 / tk) * ss
        - 0.10018 * s
        + 0.0059415 * s * ss
    )
    kspa = 10.0**log10kspa

    boron = 416.0e-6 * s / 35.0
    calcium = 0.02128 / 40.087 * (s / 1.80655)

    return k0, sc, kw, kh, k1, k2, kb, kspc, kspa, boron, calcium


@njit
def alkalinity_at_ph(ph, dic, k1, k2, kb, kw, boron) -> float:
    """Return the carbonate, borate and water alkalinity at a given pH.

    TA = [HCO3-] + 2[CO3--] + [B(OH)4-] + [OH-] - [H+]

    after Zeebe and Wolf-Gladrow 2001, Appendix B
    """
    h = 10.0 ** (-ph)
    denom = h * h + k1 * h + k1 * k2
    hco3 = dic * k1 * h / denom
    co3 = dic * k1 * k2 / denom
    boh4 = boron * kb / (kb + h)
    oh = kw / h
    return hco3 + 2.0 * co3 + boh4 + oh - h


def get_hplus(dic, alk, k1, k2, kb, kw, boron) -> float:
    """Solve the charge balance for H+ given DIC and TA.

    The alkalinity residual increases monotonically with pH, so
    there is exactly one root between PH_LOW and PH_HIGH.

    :param dic: DIC in mol/kg
    :param alk: TA in mol/kg
    :param k1: K1
    :param k2: K2
    :param kb: K boron
    :param kw: K water
    :param boron: total boron in mol/kg

    :returns H: H+ concentration in mol/kg

    :raises ChemistryError: if the root cannot be bracketed or
        brentq does not converge
    """

    def residual(ph):
        return alkalinity_at_ph(ph, dic, k1, k2, kb, kw, boron) - alk

    try:
        ph, r = brentq(residual, PH_LOW, PH_HIGH, xtol=1e-12, full_output=True)
    except ValueError as err:
        raise ChemistryError(
            f"No pH root between {PH_LOW} and {PH_HIGH} for "
            f"DIC={dic:.4e}, TA={alk:.4e}"
        ) from err

    if not r.converged:
        raise ChemistryError(f"pH solver did not converge: {r.flag}")

    return 10.0 ** (-ph)


class CarbonateChemistry(ccbmtkBase):
    """Equilibrium carbonate chemistry of one surface box.

    Given the box carbon content, temperature, salinity, wind speed,
    and the box area and volume, run() solves the carbonate system and
    stores the results as attributes. Alkalinity stays fixed once it
    has been set, or tuned with equilibrate_alkalinity().

    Example::

        CarbonateChemistry(name="HL",
                           volume=5.4e15,      # m**3
                           area=5.4e13,        # m**2
                           salinity=34.5,      # optional, psu
                           wind_speed=6.7,     # optional, m/s
                           alkalinity=2.3e-3,  # optional, mol/kg
                           )

    After run(tc, carbon), the following values are available:
    dic, h, ph, co2st, hco3, co3 (mol/kg), pco2 (uatm), k0 ... kspa,
    tr (gC/m**2/month/uatm), omega_ca, omega_ar
    """

    def __init__(self, **kwargs) -> None:
        self.defaults: dict[str, list] = {
            "name": ["None", (str)],
            "volume": [1.0, (int, float)],
            "area": [1.0, (int, float)],
            "salinity": [34.5, (int, float)],
            "wind_speed": [6.7, (int, float)],
            "alkalinity": [2.3e-3, (int, float)],
        }
        self.lrk: list = ["name", "volume", "area"]
        self.__initialize_keyword_variables__(kwargs)

        self.has_run = False
        self.tc = np.nan
        self.dic = np.nan
        self.h = np.nan
        self.ph = np.nan
        self.co2st = np.nan
        self.hco3 = np.nan
        self.co3 = np.nan
        self.pco2 = np.nan
        self.tr = np.nan
        self.omega_ca = np.nan
        self.omega_ar = np.nan

    def carbon_to_dic(self, carbon: float) -> float:
        """Convert a carbon pool (PgC) to DIC (mol/kg)."""
        return carbon * 1e15 / MOLAR_MASS_C / SEAWATER_DENSITY / self.volume

    def dic_to_carbon(self, dic: float) -> float:
        """Convert DIC (mol/kg) to a carbon pool (PgC)."""
        return dic * MOLAR_MASS_C * SEAWATER_DENSITY * self.volume / 1e15

    def run(self, tc: float, carbon: float) -> None:
        """Solve the carbonate system for a box at tc with carbon PgC.

        Raises
        ------
        ChemistryError
            if DIC or alkalinity are outside their valid range, or if
            no pH can be found
        """
        dic = self.carbon_to_dic(carbon)
        if not DIC_MIN < dic < DIC_MAX:
            raise ChemistryError(
                f"{self.name}: DIC = {dic:.4e} mol/kg is outside "
                f"({DIC_MIN:.1e}, {DIC_MAX:.1e})"
            )
        if not ALK_MIN <= self.alkalinity <= ALK_MAX:
            raise ChemistryError(
                f"{self.name}: TA = {self.alkalinity:.4e} mol/kg is outside "
                f"[{ALK_MIN:.1e}, {ALK_MAX:.1e}]"
            )

        (
            self.k0,
            self.sc,
            self.kw,
            self.kh,
            self.k1,
            self.k2,
            self.kb,
            self.kspc,
            self.kspa,
            self.boron,
            self.calcium,
        ) = equilibrium_constants(tc, self.salinity)

        h = get_hplus(dic, self.alkalinity, self.k1, self.k2, self.kb, self.kw, self.boron)

        k1, k2 = self.k1, self.k2
        self.tc = tc
        self.dic = dic
        self.h = h
        self.ph = phc(h)
        self.co2st = dic / (1.0 + k1 / h + k1 * k2 / (h * h))
        self.hco3 = dic / (1.0 + h / k1 + k2 / h)
        self.co3 = dic / (1.0 + h / k2 + h * h / (k1 * k2))
        self.pco2 = self.co2st * 1e6 / self.kh  # uatm

        # gas transfer velocity after Takahashi et al. 2009, eq. 8
        self.tr = 0.585 * self.k0 * self.sc**-0.5 * self.wind_speed**2

        self.omega_ca = self.co3 * self.calcium / self.kspc
        self.omega_ar = self.co3 * self.calcium / self.kspa
        self.has_run = True

    def monthly_surface_flux(self, ca: float, cpoolscale: float = 1.0) -> float:
        """Air-sea flux in gC/m**2/month, positive into the ocean.

        :param ca: atmospheric CO2 in ppmv
        :param cpoolscale: scale the ocean pCO2 by this factor
        """
        return (ca - self.pco2 * cpoolscale) * self.tr

    def annual_surface_flux(self, ca: float, cpoolscale: float = 1.0) -> float:
        """Air-sea flux of the whole box in PgC/yr, positive into the ocean."""
        return self.monthly_surface_flux(ca, cpoolscale) * self.area * 12.0 / 1e15

    def revelle_factor(self) -> float:
        """Approximate the Revelle factor as DIC/CO3."""
        return self.dic / self.co3 if self.has_run else np.nan

    def equilibrate_alkalinity(
        self, tc: float, carbon: float, ca: float, target_flux: float
    ) -> float:
        """Find the alkalinity at which the box takes up `target_flux`.

        A coarse scan over [ALK_EQ_MIN, ALK_EQ_MAX] locates the first
        sign change of (flux - target), which is then refined with
        brentq. The box chemistry is left at the solution.

        :param tc: box temperature in C
        :param carbon: box carbon in PgC
        :param ca: atmospheric CO2 in ppmv
        :param target_flux: desired flux in PgC/yr

        :returns: alkalinity in mol/kg

        :raises ChemistryError: if no alkalinity in the window
            reproduces the target flux
        """

        def mismatch(alk: float) -> float:
            self.alkalinity = alk
            self.run(tc, carbon)
            return self.annual_surface_flux(ca) - target_flux

        grid = np.linspace(ALK_EQ_MIN, ALK_EQ_MAX, ALK_EQ_POINTS)
        diffs = [mismatch(a) for a in grid]

        bracket = None
        for i in range(len(grid) - 1):
            if diffs[i] == 0.0:
                bracket = (grid[i], grid[i])
                break
            if diffs[i] * diffs[i + 1] < 0:
                bracket = (grid[i], grid[i + 1])
                break
        else:
            if diffs[-1] == 0.0:
                bracket = (grid[-1], grid[-1])

        if bracket is None:
            raise ChemistryError(
                f"{self.name}: no alkalinity in [{ALK_EQ_MIN:.1e}, {ALK_EQ_MAX:.1e}] "
                f"gives a flux of {target_flux} PgC/yr "
                f"(range {min(diffs) + target_flux:.3f} to "
                f"{max(diffs) + target_flux:.3f})"
            )

        if bracket[0] == bracket[1]:
            alk = bracket[0]
        else:
            alk, r = brentq(mismatch, bracket[0], bracket[1], xtol=1e-15, full_output=True)
            if not r.converged:
                raise ChemistryError(f"{self.name}: alkalinity search failed: {r.flag}")

        self.alkalinity = float(alk)
        self.run(tc, carbon)
        return self.alkalinity
