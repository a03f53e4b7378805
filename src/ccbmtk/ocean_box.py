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

import copy
import typing as tp

from .ccbmtk_base import InputError

if tp.TYPE_CHECKING:
    from .carbonate_chemistry import CarbonateChemistry

MEAN_GLOBAL_TEMP = 15.0  # C


class OceanBox:
    """A well mixed ocean reservoir.

    Parameters
    ----------
    name : str
        box name, e.g., "HL"
    carbon : float
        initial carbon in PgC
    volume : float
        box volume in m**3
    delta_t : float
        temperature offset of this box relative to the mean
        global ocean temperature plus the SST anomaly, in C
    chemistry : CarbonateChemistry, optional
        surface boxes carry a chemistry object, deep boxes do not
    preindustrial_flux : float
        atmosphere flux (PgC/yr) used while the chemistry is off

    Outgoing connections are stored on the box as a list of
    (target index, rate coefficient 1/yr, window) tuples. The index
    refers to the position of the target box in the BoxArena that owns
    both boxes.
    """

    def __init__(
        self,
        name: str,
        carbon: float,
        volume: float = 1.0,
        delta_t: float = 0.0,
        chemistry: CarbonateChemistry | None = None,
        preindustrial_flux: float = 0.0,
    ) -> None:
        self.name = name
        self.carbon = float(carbon)
        self.volume = volume
        self.delta_t = delta_t
        self.chemistry = chemistry
        self.surface = chemistry is not None
        self.preindustrial_flux = preindustrial_flux
        self.active_chemistry = False

        self.connections: list[tuple[int, float, int]] = []
        self.additions = 0.0
        self.subtractions = 0.0
        self.atmosphere_flux = 0.0  # PgC over the current (sub)step
        self.annual_box_fluxes: dict[int, float] = {}
        self.tbox = MEAN_GLOBAL_TEMP + delta_t
        self.ca = 0.0

    def new_year(self, sst: float, ca: float = 0.0) -> None:
        """Set the box temperature from the SST anomaly and clear the
        annual flux bookkeeping.
        """
        self.tbox = sst + MEAN_GLOBAL_TEMP + self.delta_t
        self.ca = ca
        self.atmosphere_flux = 0.0
        self.annual_box_fluxes = {j: 0.0 for j, _, _ in self.connections}

    def run_chemistry(self) -> None:
        if self.active_chemistry:
            self.chemistry.run(self.tbox, self.carbon)

    def annual_atmosphere_flux(self, ca: float, cpoolscale: float = 1.0) -> float:
        """Atmosphere to box flux in PgC/yr at the last chemistry state.

        Without active chemistry, surface boxes use their
        preindustrial flux and deep boxes do not exchange with the
        atmosphere.
        """
        if self.active_chemistry:
            return self.chemistry.annual_surface_flux(ca, cpoolscale)
        if self.surface:
            return self.preindustrial_flux
        return 0.0

    def update_state(self) -> None:
        self.carbon = self.carbon + self.additions + self.atmosphere_flux - self.subtractions
        self.additions = 0.0
        self.subtractions = 0.0

    def __repr__(self) -> str:
        return f"OceanBox(name='{self.name}', carbon={self.carbon:.4f})"


class BoxArena:
    """Owns a fixed list of boxes and the connections between them.

    Example::

        arena = BoxArena()
        b1 = arena.add(OceanBox("Box1", 100))
        b2 = arena.add(OceanBox("Box2", 50))
        arena.connect(b2, b1, 0.1, 1)
        arena.compute_fluxes(ca=0, yf=1.0)
        arena.update_state()  # Box1 = 105, Box2 = 45
    """

    def __init__(self) -> None:
        self.boxes: list[OceanBox] = []

    def add(self, box: OceanBox) -> int:
        self.boxes.append(box)
        return len(self.boxes) - 1

    def __getitem__(self, i: int) -> OceanBox:
        return self.boxes[i]

    def __len__(self) -> int:
        return len(self.boxes)

    def index(self, name: str) -> int:
        for i, b in enumerate(self.boxes):
            if b.name == name:
                return i
        raise InputError(f"No box named {name}")

    def connect(self, src: int, dst: int, k: float, window: int = 1) -> None:
        """Add a connection from box src to box dst.

        :param k: rate coefficient in 1/yr, zero means no exchange
        :param window: number of past states to average over

        :raises InputError: if k or window are negative, or an index
            is out of range
        """
        if not (0 <= src < len(self.boxes) and 0 <= dst < len(self.boxes)):
            raise InputError(f"Box index out of range: {src} -> {dst}")
        if k < 0:
            raise InputError(
                f"Rate from {self.boxes[src].name} to {self.boxes[dst].name} "
                f"must not be negative, got {k}"
            )
        if window < 0:
            raise InputError(f"Window must not be negative, got {window}")
        if src == dst:
            raise InputError(f"{self.boxes[src].name} cannot connect to itself")

        self.boxes[src].connections.append((dst, k, window))
        self.boxes[src].annual_box_fluxes[dst] = 0.0

    def compute_fluxes(self, ca: float, yf: float, do_circ: bool = True) -> None:
        """Compute atmosphere and box-to-box fluxes for a year fraction.

        Surface boxes run their chemistry first, then every outgoing
        connection moves carbon * k * yf from the source to the target
        box. Nothing is applied until update_state().

        :param ca: atmospheric CO2 in ppmv
        :param yf: elapsed fraction of a year
        :param do_circ: if False only the atmosphere fluxes are computed
        """
        for box in self.boxes:
            box.ca = ca
            box.run_chemistry()
            box.atmosphere_flux = box.annual_atmosphere_flux(ca) * yf

        if not do_circ:
            return

        for box in self.boxes:
            for j, k, _window in box.connections:
                closs = box.carbon * k * yf
                self.boxes[j].additions += closs
                box.subtractions += closs
                box.annual_box_fluxes[j] = box.annual_box_fluxes.get(j, 0.0) + closs

    def update_state(self) -> None:
        for box in self.boxes:
            box.update_state()

    def total_carbon(self) -> float:
        return sum(b.carbon for b in self.boxes)

    def snapshot(self) -> list[OceanBox]:
        return copy.deepcopy(self.boxes)

    def restore(self, snapshot: list[OceanBox]) -> None:
        self.boxes = copy.deepcopy(snapshot)
