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
import unittest
from pathlib import Path

scripts_dir_path = Path(__file__).parent.parent.resolve()  # containing directory
sys.path.insert(0, str(scripts_dir_path))
from LayoutGuard.layoutAttributes import STORE_TRUE, AttrArgType, AttributeDefinition, Attributes
from python_lint.testPublicFlags import get_flag_errors


class BadAttributes(Attributes):
    UNSAFE_ALLOW_UNCHECKED_LAYOUT_CHANGES = AttributeDefinition(
        arg_type=AttrArgType.BOOLEAN,
        help_msg="Do not report layout changes",
        argparse_args={
            'action': STORE_TRUE
        }
    )

    UNSAFE_ALLOW_RENAMES = AttributeDefinition(
        arg_type=AttrArgType.STRING,
        help_msg="Do not report renamed variables",
        default_desc="",
    )

    VERBOSE = AttributeDefinition(
        arg_type=AttrArgType.BOOLEAN,
    )


class TestPublicFlags(unittest.TestCase):

    def test_layout_guard_flags(self) -> None:
        self.assertEqual(get_flag_errors(), [])

    def test_bad_flags(self) -> None:
        errors = get_flag_errors(BadAttributes)
        self.assertIn("user-facing flag --unsafe_allow_unchecked_layout_changes is above the maximum length of 31",
                      errors)
        self.assertIn("flag --unsafe_allow_unchecked_layout_changes has a help message but no default description "
                      "(can be an empty string)", errors)
        self.assertIn("flag --unsafe_allow_renames must be a boolean flag", errors)
        self.assertIn("boolean flag --verbose must use the store_true action", errors)
        self.assertIn("flag --unsafe_allow_unchecked_layout_changes is not a validation option", errors)
        self.assertIn("validation option unsafe_allow_custom_types has no flag", errors)
        self.assertIn("validation option unsafe_skip_storage_check has no flag", errors)
        self.assertNotIn("validation option unsafe_allow_renames has no flag", errors)


if __name__ == '__main__':
    unittest.main()
