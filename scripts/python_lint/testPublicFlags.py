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

import sys
from dataclasses import fields
from pathlib import Path
from typing import List, Type

scripts_dir_path = Path(__file__).parent.parent
scripts_dir_path = scripts_dir_path.resolve()
sys.path.insert(0, str(scripts_dir_path))
import LayoutGuard.layoutAttributes as Attrs
import Shared.layoutUtils as Util
from LayoutGuard.layoutOptions import ValidationOptions

"""
This script checks the public flags of layoutGuard:
1. A visible flag is short enough not to be truncated by the help message table, and has a default description.
   An empty default description is fine, the goal is to make whoever adds a flag think about it.
2. Boolean flags are switches, they take no value on the command line.
3. The unsafe_* flags are exactly the fields of ValidationOptions, so that every one of them reaches the comparator.
"""

UNSAFE_PREFIX = 'unsafe_'


def get_flag_errors(attributes: Type[Attrs.Attributes] = Attrs.LayoutGuardAttributes) -> List[str]:
    errors = []
    unsafe_keys = set()
    for attr in attributes.attribute_list():
        flag = attr.get_flag()
        if attr.help_msg != Util.SUPPRESS_HELP_MSG:
            if len(flag) > Util.MAX_FLAG_LENGTH:
                errors.append(f"user-facing flag {flag} is above the maximum length of {Util.MAX_FLAG_LENGTH}")
            if attr.default_desc is None:
                errors.append(f"flag {flag} has a help message but no default description (can be an empty string)")
        if attr.arg_type == Attrs.AttrArgType.BOOLEAN and attr.argparse_args.get('action') != Attrs.STORE_TRUE:
            errors.append(f"boolean flag {flag} must use the {Attrs.STORE_TRUE} action")
        if attr.get_conf_key().startswith(UNSAFE_PREFIX):
            unsafe_keys.add(attr.get_conf_key())
            if attr.arg_type != Attrs.AttrArgType.BOOLEAN:
                errors.append(f"flag {flag} must be a boolean flag")

    option_names = {f.name for f in fields(ValidationOptions)}
    for key in sorted(unsafe_keys - option_names):
        errors.append(f"flag --{key} is not a validation option")
    for name in sorted(option_names - unsafe_keys):
        errors.append(f"validation option {name} has no flag")
    return errors


if __name__ == '__main__':
    all_errors = get_flag_errors()
    if all_errors:
        for error in all_errors:
            print(error)
        raise RuntimeError("Visible flags have errors")
