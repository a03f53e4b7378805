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

from .ccbmtk_base import ComponentError, InputError
from .logger import Logger
from .names import M_GETDATA, M_SETDATA, MessageData
from .utility_functions import check_for_quantity, map_units, parse_bool

if tp.TYPE_CHECKING:
    from .core import Core
    from .visitors import AVisitor


class ModelComponent:
    """Base class of all model components.

    A component is owned by a Core. The core calls the methods below
    in this order:

    1. init(core): register capabilities, dependencies and inputs
    2. set_data(): zero or more times, from the configuration
    3. prepare_to_run(): once all data is known, may be called again
       after a reset
    4. run_spinup(step) while the core is spinning up, then
       run(date) once per year
    5. reset(date): roll back to an earlier date
    6. shut_down()

    Components never hold references to each other. Values are
    requested from, and sent to, other components with
    core.send_message().

    Subclasses declare the variables they understand in
    `self.getters` and `self.setters`, two dicts that map a variable
    name to a bound method. send_message() and set_data() dispatch
    through these tables.
    """

    name: str = "None"

    def __init__(self) -> None:
        self.core: Core | None = None
        self.logger = Logger()
        self.getters: dict[str, tp.Callable] = {}
        self.setters: dict[str, tp.Callable] = {}

    def get_component_name(self) -> str:
        return self.name

    def init(self, core: Core) -> None:
        """Open the logger and remember the core.

        Subclasses extend this to register their capabilities.
        """
        self.core = core
        self.logger.open(self.name, **core.log_settings())
        self.logger.debug(f"{self.name} initialized")

    def send_message(
        self, message: str, datum: str, info: MessageData | None = None
    ):
        """Handle a message routed to this component by the core.

        The default implementation knows GET and SET. Everything else
        is an error.
        """
        info = MessageData() if info is None else info
        if message == M_GETDATA:
            return self.get_data(datum, info.date)
        if message == M_SETDATA:
            self.set_data(datum, info)
            return None
        raise ComponentError(f"{self.name} cannot handle message '{message}'")

    def get_data(self, var_name: str, date: float | None = None):
        """Return the current (or historical) value of `var_name` as a Quantity."""
        if var_name not in self.getters:
            raise ComponentError(f"{self.name}: unknown variable '{var_name}'")
        return self.getters[var_name](date)

    def set_data(self, var_name: str, data: MessageData) -> None:
        """Set `var_name` from a message payload.

        Errors raised by the setter are re-raised with the component
        and variable name attached.
        """
        if var_name not in self.setters:
            raise ComponentError(f"{self.name}: unknown variable '{var_name}'")
        try:
            self.setters[var_name](data)
        except (InputError, ValueError) as err:
            raise ComponentError(
                f"{self.name}: could not set '{var_name}' to {data.value!r}"
            ) from err

    def get_output_variables(self) -> list[str]:
        """Variables an output visitor records by default."""
        return []

    def prepare_to_run(self) -> None:
        raise NotImplementedError

    def run(self, run_to_date: float) -> None:
        raise NotImplementedError

    def run_spinup(self, step: int) -> bool:
        return True

    def reset(self, time: float) -> None:
        raise NotImplementedError

    def shut_down(self) -> None:
        self.logger.debug(f"{self.name} shut down")
        self.logger.close()

    def accept(self, visitor: AVisitor) -> None:
        visitor.visit_component(self)

    # helpers for setters
    @staticmethod
    def _to_float(data: MessageData, unit: str) -> float:
        """Convert the payload value to a float in `unit`."""
        value = data.value
        if data.unit is not None and isinstance(value, int | float):
            value = check_for_quantity(value, data.unit)
        return map_units(value, unit)

    @staticmethod
    def _to_bool(data: MessageData) -> bool:
        return parse_bool(data.value)

    def _data_date(self, data: MessageData) -> float:
        """Return the payload date, which must be given."""
        if not data.has_date():
            raise InputError(f"{self.name}: a date is required")
        return data.date

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name='{self.name}')"
