#     The Certora Prover
#     Copyright (C) 2025  Certora Ltd.
#
#     This program is free software: you can redistribute it and/or modify
#     it under the terms of the GNU General Public License as published by
#     the Free Software Foundation, version 3 of the License.
#
#     This program is distributed in the hope that it will be useful,
#     but WITHOUT ANY WARRANTY; without even the implied warranty of
#     MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
#     GNU General Public License for more details.
#
#     You should have received a copy of the GNU General Public License
#     along with this program.  If not, see <https://www.gnu.org/licenses/>.

import json
import logging
import re
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from rich.console import Console

CONSOLE = Console()

io_logger = logging.getLogger("file")

# bash colors
BASH_ORANGE_COLOR = "\033[33m"
BASH_END_COLOR = "\033[0m"
BASH_GREEN_COLOR = "\033[32m"
BASH_RED_COLOR = "\033[31m"
BASH_BOLD = "\033[1m"

NEW_LINE = '\n'  # for new lines in f strings
CONF_EXT = '.conf'
JSON_EXT = '.json'
SUPPRESS_HELP_MSG = "==SUPPRESS=="
MAX_FLAG_LENGTH = 31


class LayoutGuardUserInputError(Exception):
    def __init__(self, message: str, orig: Optional[Exception] = None, more_info: str = '') -> None:
        super().__init__(message)
        self.orig = orig
        self.more_info = more_info


# Internal exceptions that are due to bugs in our implementation
class ImplementationError(Exception):
    pass


class UpgradesError(Exception):
    """
    An error about the upgrade itself, not about how the tool was invoked.
    The details are rendered lazily, since building them may be expensive (e.g. explaining a whole report).
    """

    def __init__(self, message: str, details: Optional[Callable[[], str]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def format_details(self) -> str:
        if self.details is None:
            return ''
        return self.details()

    def __str__(self) -> str:
        details = self.format_details()
        if details:
            return self.message + '\n\n' + details
        return self.message


def __colored_text(txt: str, color: str) -> str:
    return color + txt + BASH_END_COLOR


def orange_text(txt: str) -> str:
    return __colored_text(txt, BASH_ORANGE_COLOR)


def red_text(txt: str) -> str:
    return __colored_text(txt, BASH_RED_COLOR)


def green_text(txt: str) -> str:
    return __colored_text(txt, BASH_GREEN_COLOR)


def bold_text(txt: str) -> str:
    return __colored_text(txt, BASH_BOLD)


def console_supports_color() -> bool:
    return CONSOLE.color_system is not None


def print_completion_message(txt: str, flush: bool = False) -> None:
    print(green_text(txt), flush=flush)


def indent(text: str, amount: int, amount_first_line: Optional[int] = None) -> str:
    """
    Indents every line of text (empty ones included) by amount spaces.
    @param amount_first_line: if given, the first line is indented by this amount instead
    """
    if amount_first_line is None:
        amount_first_line = amount
    lines = text.split(NEW_LINE)
    indented = [' ' * (amount_first_line if i == 0 else amount) + line for i, line in enumerate(lines)]
    return NEW_LINE.join(indented)


def itemize_with(bullet: str, *items: str) -> str:
    """
    Renders each item on its own bulleted line. Continuation lines of an item are aligned with its first line.
    The result starts with a new line, so it can be appended directly to a title.
    """
    return ''.join(f"{NEW_LINE}{bullet} " + indent(item, 2, 0) for item in items)


def itemize(*items: str) -> str:
    return itemize_with('-', *items)


def strip_ansi(txt: str) -> str:
    return re.sub(r"\033\[[0-9;]*m", "", txt)


def read_json_file(file_name: Path) -> Dict[str, Any]:
    io_logger.debug(f"Reading {file_name}")
    with file_name.open() as json_file:
        json_obj = json.load(json_file)
        return json_obj


def write_json_file(data: Union[Dict[str, Any], List[Dict[str, Any]]], file_name: Path) -> None:
    with file_name.open("w+") as json_file:
        json.dump(data, json_file, indent=4)


class NoValEnum(Enum):
    """
    A class for an enum where the numerical value has no meaning.
    """

    def __repr__(self) -> str:
        """
        Do not print the value of this enum, it is meaningless
        """
        return f'<{self.__class__.__name__}.{self.name}>'

    def __str__(self) -> str:
        return self.name.lower()
