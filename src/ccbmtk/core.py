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

import logging
import typing as tp
import warnings

from .ccbmtk_base import CoreError, InputError, ccbmtkBase
from .dependency_finder import DependencyFinder
from .logger import Logger
from .names import (
    CORE_COMPONENT_NAME,
    D_DO_SPINUP,
    D_ENABLED,
    D_END_DATE,
    D_MAX_SPINUP,
    D_OUTPUT_ENABLED,
    D_RUN_NAME,
    D_START_DATE,
    M_DUMP_TO_DEEP_OCEAN,
    M_GETDATA,
    M_SETDATA,
    MESSAGE_KINDS,
    MessageData,
)
from .utility_functions import parse_bool

if tp.TYPE_CHECKING:
    from .component import ModelComponent
    from .visitors import AVisitor

# core states
UNINITIALIZED = "uninitialized"
INITIALIZED = "initialized"
PREPARED = "prepared"
RUNNING = "running"
SHUTDOWN = "shutdown"


class Core(ccbmtkBase):
    """Owns the model components and drives the model run.

    Components are added, then initialized with init(). During
    init() they register what they provide (capabilities), what they
    need (dependencies) and what they accept from the configuration
    (inputs). After init() the registries are frozen.
    prepare_to_run() derives the execution order from the
    dependencies, prepares every component, and runs the spinup if
    requested. run() then advances all components one year at a time.

    Example::

        core = Core(name="hist", start_date=1745, end_date=2100)
        core.add_default_components()
        core.init()
        core.set_data("ocean", "ffi_emissions", MessageData(date=1900, value=1.0))
        core.prepare_to_run()
        core.run(2000)
        co2 = core.send_message(M_GETDATA, "Ca")
        core.shut_down()

    Keywords
    --------
    name : str, run name, defaults to "default"
    start_date, end_date : int | float, defaults 1745 and 2300
    do_spinup : bool, defaults to True
    max_spinup : int, spinup iteration cap, defaults to 2000
    log_level : str | int, e.g., "DEBUG", defaults to "WARNING"
    log_to_file : bool, write one log file per component
    log_dir : str, directory of the log files
    """

    def __init__(self, **kwargs) -> None:
        self.defaults: dict[str, list[tp.Any]] = {
            "name": ["default", (str)],
            "start_date": [1745, (int, float)],
            "end_date": [2300, (int, float)],
            "do_spinup": [True, (bool)],
            "max_spinup": [2000, (int)],
            "log_level": ["WARNING", (str, int)],
            "log_to_file": [False, (bool)],
            "log_dir": [".", (str)],
        }
        self.lrk: list[str] = []
        self.__initialize_keyword_variables__(kwargs)
        self.start_date = float(self.start_date)
        self.end_date = float(self.end_date)
        self._level = self._parse_level(self.log_level)

        self.components: dict[str, ModelComponent] = {}
        self.capabilities: dict[str, list[str]] = {}
        self.dependencies: list[tuple[str, str]] = []  # (component, capability)
        self.inputs: dict[str, list[str]] = {}
        self.disabled: set[str] = set()
        self.output_disabled: set[str] = set()
        self.order: list[str] = []
        self.visitors: list[AVisitor] = []

        self.state = UNINITIALIZED
        self.setup_complete = False
        self.spinup_active = False
        self.run_started = False
        self.last_date = self.start_date
        self.current_date = self.start_date

        self.logger = Logger()
        self.logger.open(CORE_COMPONENT_NAME, **self.log_settings())

    @staticmethod
    def _parse_level(level: str | int) -> int:
        if isinstance(level, int):
            return level
        value = logging.getLevelName(level.upper())
        if not isinstance(value, int):
            raise InputError(f"'{level}' is not a valid log level")
        return value

    def log_settings(self) -> dict:
        """Keyword arguments for Logger.open()."""
        return {
            "echo_to_screen": True,
            "level": self._level,
            "to_file": self.log_to_file,
            "log_dir": self.log_dir,
        }

    def _warn(self, msg: str) -> None:
        self.logger.warning(msg)
        warnings.warn(msg, stacklevel=3)

    # ------------------------------------------------------------------
    # setup
    # ------------------------------------------------------------------
    def add_component(self, component: ModelComponent) -> ModelComponent:
        if self.state != UNINITIALIZED:
            raise CoreError(f"cannot add {component.name} after init()")
        if component.name in self.components or component.name == CORE_COMPONENT_NAME:
            raise CoreError(f"a component named '{component.name}' already exists")
        self.components[component.name] = component
        self.logger.debug(f"added component {component.name}")
        return component

    def add_default_components(self) -> None:
        """Add the ocean, the solver and the prescribed climate."""
        from .ocean_component import OceanComponent
        from .prescribed_climate import PrescribedClimateComponent
        from .solver import CarbonCycleSolver

        for c in (PrescribedClimateComponent(), OceanComponent(), CarbonCycleSolver()):
            self.add_component(c)

    def init(self) -> None:
        """Initialize all components and freeze the registries."""
        if self.state != UNINITIALIZED:
            raise CoreError("core is already initialized")

        for name in (D_START_DATE, D_END_DATE):
            self.register_capability(name, CORE_COMPONENT_NAME)

        for c in self.components.values():
            c.init(self)

        self.state = INITIALIZED
        self.logger.info(f"core initialized with {list(self.components)}")

    def _check_registry_open(self, what: str, name: str) -> None:
        if self.state != UNINITIALIZED:
            raise CoreError(f"{what}('{name}') called after init()")

    def register_capability(
        self, name: str, component: str, warn_dupe: bool = True
    ) -> None:
        self._check_registry_open("register_capability", name)
        owners = self.capabilities.setdefault(name, [])
        if component in owners:
            return
        if owners and warn_dupe:
            self._warn(
                f"capability '{name}' of {component} is already provided by {owners[0]}"
            )
        owners.append(component)

    def register_dependency(self, name: str, component: str) -> None:
        self._check_registry_open("register_dependency", name)
        self.dependencies.append((component, name))

    def register_input(self, name: str, component: str) -> None:
        self._check_registry_open("register_input", name)
        targets = self.inputs.setdefault(name, [])
        if component not in targets:
            targets.append(component)
        self.register_capability(name, component, warn_dupe=False)

    # ------------------------------------------------------------------
    # lookups
    # ------------------------------------------------------------------
    def _check_initialized(self, what: str) -> None:
        if self.state == UNINITIALIZED:
            raise CoreError(f"{what} is not available before init() completes")

    def check_capability(self, name: str) -> str:
        """Return the name of the component providing `name`."""
        self._check_initialized("check_capability")
        owners = self.capabilities.get(name)
        if not owners:
            raise CoreError(f"no component provides '{name}'")
        return owners[0]

    def get_component_by_capability(self, name: str) -> ModelComponent:
        owner = self.check_capability(name)
        if owner == CORE_COMPONENT_NAME:
            raise CoreError(f"'{name}' is provided by the core itself")
        return self.components[owner]

    def get_component_by_name(self, name: str) -> ModelComponent:
        self._check_initialized("get_component_by_name")
        if name not in self.components:
            raise CoreError(f"unknown component '{name}'")
        return self.components[name]

    def get_start_date(self) -> float:
        return self.start_date

    def get_end_date(self) -> float:
        return self.end_date

    def get_current_date(self) -> float:
        return self.current_date

    def in_spinup(self) -> bool:
        return self.spinup_active

    def is_output_enabled(self, name: str) -> bool:
        return name not in self.output_disabled

    # ------------------------------------------------------------------
    # data
    # ------------------------------------------------------------------
    def set_data(self, component: str, var: str, data: MessageData) -> None:
        """Set a variable of a component, or of the core itself.

        The reserved names "enabled" and "output" switch a component,
        or its output, on or off.
        """
        if component == CORE_COMPONENT_NAME:
            self._set_core_data(var, data)
            return

        if component not in self.components:
            raise CoreError(f"unknown component '{component}'")

        if var == D_ENABLED:
            if self.setup_complete:
                self._warn(f"'{component}.{var}' has no effect after prepare_to_run()")
            if parse_bool(data.value):
                self.disabled.discard(component)
            else:
                self.disabled.add(component)
            return

        if var == D_OUTPUT_ENABLED:
            if parse_bool(data.value):
                self.output_disabled.discard(component)
            else:
                self.output_disabled.add(component)
            return

        self.components[component].set_data(var, data)

    def _set_core_data(self, var: str, data: MessageData) -> None:
        try:
            if var == D_START_DATE:
                self.start_date = float(data.value)
                self.last_date = self.current_date = self.start_date
            elif var == D_END_DATE:
                self.end_date = float(data.value)
            elif var == D_DO_SPINUP:
                self.do_spinup = parse_bool(data.value)
            elif var == D_MAX_SPINUP:
                self.max_spinup = int(float(data.value))
            elif var == D_RUN_NAME:
                self.name = str(data.value)
            else:
                raise CoreError(f"unknown core variable '{var}'")
        except (TypeError, ValueError) as err:
            raise CoreError(f"could not set core '{var}' to {data.value!r}") from err

    def _core_data(self, datum: str):
        from ccbmtk import Q_

        if datum == D_START_DATE:
            return Q_(self.start_date, "yr")
        if datum == D_END_DATE:
            return Q_(self.end_date, "yr")
        raise CoreError(f"unknown core variable '{datum}'")

    def send_message(self, message: str, datum: str, info: MessageData | None = None):
        """Route a message to the component(s) handling `datum`.

        `datum` is a capability name, or "component.variable" to
        address a component directly. GET and DUMP go to the provider
        of the capability. SET goes to every component that registered
        `datum` as an input.

        :raises CoreError: for unknown messages or capabilities
        """
        if message not in MESSAGE_KINDS:
            raise CoreError(f"unknown message '{message}'")
        self._check_initialized("send_message")
        info = MessageData() if info is None else info

        target = None
        if "." in datum:
            target, datum = datum.split(".", 1)

        if message == M_SETDATA:
            if target is not None:
                self.set_data(target, datum, info)
                return None
            receivers = self.inputs.get(datum)
            if not receivers:
                raise CoreError(f"no component accepts '{datum}'")
            for name in receivers:
                self.components[name].send_message(message, datum, info)
            return None

        if target == CORE_COMPONENT_NAME:
            return self._core_data(datum)
        if target is not None:
            return self.get_component_by_name(target).send_message(message, datum, info)

        owner = self.check_capability(datum)
        if owner == CORE_COMPONENT_NAME:
            if message == M_DUMP_TO_DEEP_OCEAN:
                raise CoreError(f"the core cannot handle '{message}'")
            return self._core_data(datum)
        return self.components[owner].send_message(message, datum, info)

    # ------------------------------------------------------------------
    # run control
    # ------------------------------------------------------------------
    def _remove_disabled(self) -> None:
        for name in sorted(self.disabled):
            self.logger.warning(f"{name} is disabled and will not run")
            component = self.components.pop(name)
            component.shut_down()
            for owners in self.capabilities.values():
                if name in owners:
                    owners.remove(name)
            for receivers in self.inputs.values():
                if name in receivers:
                    receivers.remove(name)
            self.dependencies = [d for d in self.dependencies if d[0] != name]
        self.capabilities = {k: v for k, v in self.capabilities.items() if v}
        self.inputs = {k: v for k, v in self.inputs.items() if v}

    def _build_ordering(self) -> None:
        finder = DependencyFinder()
        for name in self.components:
            finder.add_node(name)

        for component, capability in self.dependencies:
            owners = self.capabilities.get(capability)
            if not owners:
                msg = f"{component} depends on '{capability}', which nobody provides"
                self.logger.severe(msg)
                warnings.warn(msg, stacklevel=3)
                continue
            owner = owners[0]
            if owner in (component, CORE_COMPONENT_NAME):
                continue
            finder.add_dependency(component, owner)

        self.order = finder.create_ordering()
        self.logger.info(f"execution order: {self.order}")

    def prepare_to_run(self) -> None:
        """Order and prepare the components, then spin up if requested.

        Removing disabled components and sorting happens only on the
        first call. Later calls prepare (and spin up) again.
        """
        if self.state == SHUTDOWN:
            raise CoreError("core has been shut down")
        if self.state == UNINITIALIZED:
            raise CoreError("call init() before prepare_to_run()")
        if self.end_date <= self.start_date:
            raise CoreError(
                f"end date {self.end_date} must be after start date {self.start_date}"
            )

        if not self.setup_complete:
            self._remove_disabled()
            self._build_ordering()
            self.setup_complete = True

        self.last_date = self.current_date = self.start_date
        self.run_started = False
        for name in self.order:
            self.components[name].prepare_to_run()
        self.state = PREPARED

        if self.do_spinup:
            self.run_spinup()

    def run_spinup(self) -> bool:
        """Iterate all components until every one reports convergence."""
        self.spinup_active = True
        self.logger.info("starting spinup")
        step = 0
        spunup = False
        try:
            while not spunup and step < self.max_spinup:
                step += 1
                self.current_date = step
                results = [self.components[n].run_spinup(step) for n in self.order]
                spunup = all(results)
                self._visit_all(True, step)
        finally:
            self.spinup_active = False

        self.current_date = self.start_date
        if spunup:
            self.logger.info(f"spinup complete after {step} steps")
        else:
            self._warn(f"spinup did not converge after {step} steps")
        return spunup

    def _visit_all(self, in_spinup: bool, date: float) -> None:
        for v in self.visitors:
            if v.should_visit(in_spinup, date):
                self.accept(v)

    def run(self, run_to_date: float = -1) -> None:
        """Advance all components, one year at a time, to run_to_date.

        A negative date means the end date.
        """
        if self.state == SHUTDOWN:
            raise CoreError("core has been shut down")
        if self.state == UNINITIALIZED:
            raise CoreError("call init() before run()")
        if self.state == INITIALIZED:
            self.prepare_to_run()

        if run_to_date < 0:
            run_to_date = self.end_date
        if run_to_date > self.end_date:
            self._warn(f"run date {run_to_date} is after the end date {self.end_date}")
            run_to_date = self.end_date
        if run_to_date < self.last_date + 1:
            self._warn(
                f"run to {run_to_date} does not advance the model (last date "
                f"{self.last_date})"
            )
            return

        if not self.run_started:
            self.run_started = True
            self.current_date = self.last_date
            self._visit_all(False, self.last_date)

        self.state = RUNNING
        self.logger.info(f"running from {self.last_date} to {run_to_date}")
        while self.last_date + 1 <= run_to_date:
            date = self.last_date + 1
            self.current_date = date
            for name in self.order:
                self.components[name].run(date)
            self.last_date = date
            self._visit_all(False, date)

    def reset(self, date: float) -> None:
        """Roll all components back to `date`.

        A date before the start date resets to the start, and runs the
        spinup again if it is enabled.
        """
        if self.state in (UNINITIALIZED, INITIALIZED, SHUTDOWN):
            raise CoreError(f"cannot reset a core in state '{self.state}'")
        if date > self.last_date:
            raise CoreError(f"cannot reset to {date}, last completed date is {self.last_date}")

        self.logger.info(f"resetting to {date}")
        if date < self.start_date and self.do_spinup:
            for name in self.order:
                self.components[name].reset(0)
            self.prepare_to_run()
            return

        date = max(date, self.start_date)
        if self.run_started:
            for name in self.order:
                self.components[name].reset(date)
        self.last_date = self.current_date = date
        self.state = PREPARED

    def add_visitor(self, visitor: AVisitor) -> None:
        self.visitors.append(visitor)

    def accept(self, visitor: AVisitor) -> None:
        visitor.visit_core(self)
        for name in self.order:
            self.components[name].accept(visitor)

    def shut_down(self) -> None:
        for c in self.components.values():
            c.shut_down()
        self.logger.info("core shut down")
        self.logger.close()
        self.state = SHUTDOWN
