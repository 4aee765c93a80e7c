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

import os
from pathlib import Path
from typing import Any, Union

from Shared import layoutUtils as Util
from Shared.layoutLogging import LOGGED_TOPICS


def validate_readable_file(filename: str, extensions: Union[str, tuple] = '') -> str:
    file_path = Path(filename)
    if not file_path.exists():
        raise Util.LayoutGuardUserInputError(f"file {filename} not found")
    if file_path.is_dir():
        raise Util.LayoutGuardUserInputError(f"'{filename}' is a directory and not a file")
    if not os.access(filename, os.R_OK):
        raise Util.LayoutGuardUserInputError(f"no read permissions for {filename}")
    if extensions and not filename.lower().endswith(extensions):
        raise Util.LayoutGuardUserInputError(f"{filename} does not end with {extensions}")

    return filename


def validate_input_file(file: str) -> str:
    # LAYOUT_FILE.json or CONF_FILE.conf
    return validate_readable_file(file, (Util.JSON_EXT, Util.CONF_EXT))


def validate_bool(value: Any) -> Any:
    if not isinstance(value, bool):
        raise Util.LayoutGuardUserInputError(f"expected true or false, instead given {value}")
    return value


def validate_debug_topic(topic: str) -> str:
    if topic.strip() not in LOGGED_TOPICS:
        raise Util.LayoutGuardUserInputError(f"unknown debug topic {topic}, expected one of "
                                             f"{', '.join(LOGGED_TOPICS)}")
    return topic
