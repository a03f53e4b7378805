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

from pint import UnitRegistry

ureg = UnitRegistry(on_redefinition="ignore")
Q_ = ureg.Quantity

ureg.define("Sverdrup = 1e6 * meter **3 / second = Sv = Sverdrups")
ureg.define("ppmv = ppm")
ureg.define("PgC = Pg")

from .version import get_version as get_version  # noqa: E402
from .ccbmtk_base import (  # noqa: E402
    ChemistryError as ChemistryError,
    ComponentError as ComponentError,
    CoreError as CoreError,
    InputError as InputError,
    KeywordError as KeywordError,
    MissingKeywordError as MissingKeywordError,
    SolverError as SolverError,
    TimeSeriesError as TimeSeriesError,
    ccbmtkBase as ccbmtkBase,
)
from .utility_functions import check_for_quantity as check_for_quantity  # noqa: E402
from .names import MessageData as MessageData  # noqa: E402
from .tseries import TimeSeries as TimeSeries  # noqa: E402
from .logger import Logger as Logger  # noqa: E402
from .component import ModelComponent as ModelComponent  # noqa: E402
from .carbon_cycle_model import (  # noqa: E402
    CarbonCycleModel as CarbonCycleModel,
    Outcome as Outcome,
)
from .carbonate_chemistry import (  # noqa: E402
    CarbonateChemistry as CarbonateChemistry,
    equilibrium_constants as equilibrium_constants,
    get_hplus as get_hplus,
)
from .ocean_box import BoxArena as BoxArena, OceanBox as OceanBox  # noqa: E402
from .timestep_control import TimestepController as TimestepController  # noqa: E402
from .ocean_component import OceanComponent as OceanComponent  # noqa: E402
from .solver import CarbonCycleSolver as CarbonCycleSolver  # noqa: E402
from .prescribed_climate import (  # noqa: E402
    PrescribedClimateComponent as PrescribedClimateComponent,
)
from .dependency_finder import DependencyFinder as DependencyFinder  # noqa: E402
from .core import Core as Core  # noqa: E402
from .visitors import AVisitor as AVisitor, OutputVisitor as OutputVisitor  # noqa: E402
from .ini_reader import INIReader as INIReader  # noqa: E402
