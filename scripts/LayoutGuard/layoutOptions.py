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

from dataclasses import dataclass, fields
from typing import Any, Dict, Optional

from Shared.layoutUtils import LayoutGuardUserInputError


@dataclass
class ValidationOptions:
    """
    Options of the storage layout check. None means the option was not given.
    unsafe_allow_custom_types: structs and enums whose members are unknown are assumed compatible
    unsafe_allow_renames: renamed variables are not reported
    unsafe_skip_storage_check: the layouts are not compared at all
    """
    unsafe_allow_custom_types: Optional[bool] = None
    unsafe_allow_renames: Optional[bool] = None
    unsafe_skip_storage_check: Optional[bool] = None

    # the names of the options in layouts and manifests written by other tools
    CAMEL_CASE_NAMES = {
        'unsafeAllowCustomTypes': 'unsafe_allow_custom_types',
        'unsafeAllowRenames': 'unsafe_allow_renames',
        'unsafeSkipStorageCheck': 'unsafe_skip_storage_check',
    }

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> 'ValidationOptions':
        """
        Accepts both the snake case names of the fields and their camel case names
        """
        opts = ValidationOptions()
        option_names = {f.name for f in fields(opts)}
        for key, value in d.items():
            name = ValidationOptions.CAMEL_CASE_NAMES.get(key, key)
            if name not in option_names:
                raise LayoutGuardUserInputError(f"{key} is not a known validation option")
            if value is not None and not isinstance(value, bool):
                raise LayoutGuardUserInputError(f"validation option {key} must be a boolean, got {value}")
            setattr(opts, name, value)
        return opts


def with_validation_defaults(opts: Optional[ValidationOptions] = None) -> ValidationOptions:
    """
    @return a copy of opts where every option that was not given is off
    """
    if opts is None:
        opts = ValidationOptions()
    return ValidationOptions(
        unsafe_allow_custom_types=bool(opts.unsafe_allow_custom_types),
        unsafe_allow_renames=bool(opts.unsafe_allow_renames),
        unsafe_skip_storage_check=bool(opts.unsafe_skip_storage_check),
    )
