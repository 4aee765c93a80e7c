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
from LayoutGuard.layoutGap import array_length, end_matches_gap, expected_gap_size, get_start_end_pos, \
    is_end_aligned, is_gap
from LayoutGuard.layoutType import get_detailed_layout
from layoutFixtures import gap_type, make_layout, make_var

GAP_49 = 't_array(t_uint256)49_storage'
GAP_48 = 't_array(t_uint256)48_storage'


class TestGap(unittest.TestCase):

    def setUp(self) -> None:
        types = {**gap_type(49), **gap_type(48)}
        self.original = get_detailed_layout(make_layout([make_var('a', 't_uint256', 0),
                                                         make_var('__gap', GAP_49, 1)], types))
        self.updated = get_detailed_layout(make_layout([make_var('a', 't_uint256', 0),
                                                        make_var('b', 't_uint128', 1),
                                                        make_var('c', 't_uint128', 1, 16),
                                                        make_var('__gap', GAP_48, 2),
                                                        make_var('d', 't_uint256')], types))

    def test_is_gap(self) -> None:
        self.assertTrue(is_gap(self.original[1]))
        self.assertFalse(is_gap(self.original[0]))

    def test_positions(self) -> None:
        self.assertEqual(get_start_end_pos(self.original[1]), (32, 32 + 49 * 32))
        self.assertEqual(get_start_end_pos(self.updated[2]), (48, 64))
        self.assertEqual(get_start_end_pos(self.updated[4]), (None, None))

    def test_end_alignment(self) -> None:
        gap = self.original[1]
        self.assertTrue(is_end_aligned(self.updated[3], gap))
        self.assertFalse(is_end_aligned(self.updated[1], gap))
        self.assertFalse(is_end_aligned(self.updated[4], gap))
        self.assertTrue(end_matches_gap(gap, self.updated[3]))
        self.assertFalse(end_matches_gap(self.original[0], self.updated[0]))

    def test_gap_size(self) -> None:
        self.assertEqual(array_length(self.original[1]), 49)
        self.assertEqual(expected_gap_size(self.original[1], self.updated[3]), 48)
        self.assertIsNone(expected_gap_size(self.original[1], self.updated[4]))


if __name__ == '__main__':
    unittest.main()
