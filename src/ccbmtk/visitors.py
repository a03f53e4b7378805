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

import pandas as pd

from .ccbmtk_base import InputError

if tp.TYPE_CHECKING:
    from .component import ModelComponent
    from .core import Core

COLUMNS = ["year", "component", "variable", "value", "units", "spinup"]


class AVisitor:
    """Observer of the core and its components.

    The core calls should_visit() once per year (or spinup step),
    after all components have run. If it returns True, the core calls
    visit_core() and then visit_component() for every component in
    execution order.
    """

    def should_visit(self, in_spinup: bool, date: float) -> bool:
        return False

    def visit_core(self, core: Core) -> None:
        pass

    def visit_component(self, component: ModelComponent) -> None:
        pass


class OutputVisitor(AVisitor):
    """Collect model output into a long format table.

    Parameters
    ----------
    variables : list[str], optional
        entries like "ocean.atmos_c". If None, every component
        reports its get_output_variables()
    include_spinup : bool
        record the spinup steps as well, defaults to False

    Example::

        out = OutputVisitor(["ocean.Ca", "ocean.pH_HL"])
        core.add_visitor(out)
        core.run(1900)
        df = out.to_dataframe()

    Visiting the same year again, e.g., after a reset, replaces the
    earlier values.
    """

    def __init__(self, variables: list[str] | None = None, include_spinup: bool = False):
        self.include_spinup = include_spinup
        self.variables: dict[str, list[str]] | None = None
        if variables is not None:
            self.variables = {}
            for v in variables:
                if "." not in v:
                    raise InputError(f"'{v}' must be given as component.variable")
                component, var = v.split(".", 1)
                self.variables.setdefault(component, []).append(var)

        self.records: dict[tuple, dict] = {}
        self.core: Core | None = None
        self.year = 0.0
        self.spinup = False

    def should_visit(self, in_spinup: bool, date: float) -> bool:
        return self.include_spinup or not in_spinup

    def visit_core(self, core: Core) -> None:
        self.core = core
        self.year = core.get_current_date()
        self.spinup = core.in_spinup()

    def visit_component(self, component: ModelComponent) -> None:
        if not self.core.is_output_enabled(component.name):
            return

        if self.variables is None:
            names = component.get_output_variables()
        else:
            names = self.variables.get(component.name, [])

        for var in names:
            q = component.get_data(var)
            self.records[(self.spinup, self.year, component.name, var)] = {
                "year": self.year,
                "component": component.name,
                "variable": var,
                "value": float(q.magnitude),
                "units": str(q.units),
                "spinup": self.spinup,
            }

    def to_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame(list(self.records.values()), columns=COLUMNS)

    def to_csv(self, path) -> None:
        self.to_dataframe().to_csv(path, index=False)

    def plot(self, variables: list[str] | None = None, fn: str | None = None):
        """Plot one or more variables against time.

        :param variables: variable names, defaults to all recorded ones
        :param fn: optional file name to save the figure to

        :returns: the matplotlib figure
        """
        import matplotlib.pyplot as plt

        df = self.to_dataframe()
        df = df[~df["spinup"]]
        if variables is None:
            variables = list(dict.fromkeys(df["variable"]))
        if not variables:
            raise InputError("nothing to plot")

        fig, axs = plt.subplots(len(variables), 1, sharex=True, squeeze=False)
        for ax, var in zip(axs[:, 0], variables):
            d = df[df["variable"] == var]
            if d.empty:
                raise InputError(f"'{var}' has not been recorded")
            ax.plot(d["year"], d["value"])
            ax.set_ylabel(f"{var} [{d['units'].iloc[0]}]")
        axs[-1, 0].set_xlabel("Year")
        fig.tight_layout()

        if fn is not None:
            fig.savefig(fn)
        return fig
