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
import pathlib as pl

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(name)s: %(message)s"

# module defaults, the core overrides these from its keywords
default_level = logging.WARNING
default_to_file = False
default_log_dir = "."


class Logger:
    """A logging context handed to each component.

    The component opens it in init() and closes it in shut_down().
    Messages go to ``<log_dir>/<name>.log`` if file logging is on, and
    to the screen if `echo_to_screen` is True.

    Example::

        self.logger = Logger()
        self.logger.open("ocean", echo_to_screen=True)
        self.logger.debug("prepareToRun")
        self.logger.close()
    """

    def __init__(self) -> None:
        self.logger: logging.Logger | None = None
        self.handlers: list[logging.Handler] = []

    def open(
        self,
        name: str,
        echo_to_screen: bool = True,
        level: int | None = None,
        to_file: bool | None = None,
        log_dir: str | None = None,
    ) -> None:
        if self.is_open():
            self.close()

        level = default_level if level is None else level
        to_file = default_to_file if to_file is None else to_file
        log_dir = default_log_dir if log_dir is None else log_dir

        self.logger = logging.getLogger(f"ccbmtk.{name}")
        self.logger.setLevel(level)
        self.logger.propagate = False
        formatter = logging.Formatter(LOG_FORMAT)

        if to_file:
            path = pl.Path(log_dir)
            path.mkdir(parents=True, exist_ok=True)
            fh = logging.FileHandler(path / f"{name}.log", mode="w")
            fh.setFormatter(formatter)
            self.handlers.append(fh)

        if echo_to_screen:
            sh = logging.StreamHandler()
            sh.setFormatter(formatter)
            sh.setLevel(max(level, logging.WARNING))
            self.handlers.append(sh)

        for h in self.handlers:
            self.logger.addHandler(h)

    def is_open(self) -> bool:
        return self.logger is not None

    def close(self) -> None:
        if self.logger is None:
            return
        for h in self.handlers:
            h.flush()
            self.logger.removeHandler(h)
            h.close()
        self.handlers = []
        self.logger = None

    def _log(self, level: int, msg: str) -> None:
        # a closed logger drops messages, see shut_down()
        if self.logger is not None:
            self.logger.log(level, msg)

    def debug(self, msg: str) -> None:
        self._log(logging.DEBUG, msg)

    def info(self, msg: str) -> None:
        self._log(logging.INFO, msg)

    def warning(self, msg: str) -> None:
        self._log(logging.WARNING, msg)

    def error(self, msg: str) -> None:
        self._log(logging.ERROR, msg)

    def severe(self, msg: str) -> None:
        self._log(logging.ERROR, f"SEVERE: {msg}")
