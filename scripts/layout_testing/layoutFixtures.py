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
from pathlib import Path
from typing import Any, Dict, List, Optional

scripts_dir_path = Path(__file__).parent.parent.resolve()  # containing directory
sys.path.insert(0, str(scripts_dir_path))
from LayoutGuard.layoutCompare import StorageLayoutComparator
from LayoutGuard.layoutReport import LayoutCompatibilityReport
from LayoutGuard.layoutType import StorageLayout, get_detailed_layout

"""
Layouts written by hand in the format of StorageLayout.as_dict, shared by the tests
"""

BASIC_TYPES: Dict[str, Dict[str, Any]] = {
    't_uint256': {'label': 'uint256', 'numberOfBytes': '32'},
    't_uint128': {'label': 'uint128', 'numberOfBytes': '16'},
    't_uint8': {'label': 'uint8', 'numberOfBytes': '1'},
    't_bool': {'label': 'bool', 'numberOfBytes': '1'},
    't_address': {'label': 'address', 'numberOfBytes': '20'},
    't_bytes32': {'label': 'bytes32', 'numberOfBytes': '32'},
}

EXAMPLE_MAIN_NAMESPACE = 'erc7201:example.main'
# ERC-7201 location of the example.main namespace
EXAMPLE_MAIN_SLOT = 0x183a6125c38840424c4a85fa12bab2ab606c4b6d0e7cc73c0c06ba5300eab500


def make_var(label: str, type_id: str, slot: Optional[int] = None, offset: int = 0, **kwargs: Any) -> Dict[str, Any]:
    """
    @param kwargs: extra keys of the variable, e.g. renamedFrom
    """
    var: Dict[str, Any] = {'contract': 'Box', 'label': label, 'type': type_id, 'src': f'contracts/Box.sol:{label}'}
    if slot is not None:
        var['slot'] = str(slot)
        var['offset'] = offset
    var.update(kwargs)
    return var


def make_member(label: str, type_id: str, slot: int, offset: int = 0) -> Dict[str, Any]:
    return {'label': label, 'type': type_id, 'slot': str(slot), 'offset': offset}


def make_layout(storage: List[Dict[str, Any]], types: Optional[Dict[str, Dict[str, Any]]] = None,
                namespaces: Optional[Dict[str, List[Dict[str, Any]]]] = None) -> StorageLayout:
    all_types = dict(BASIC_TYPES)
    all_types.update(types or {})
    layout: Dict[str, Any] = {'storage': storage, 'types': all_types, 'layoutVersion': '1.2', 'flat': False}
    if namespaces is not None:
        layout['namespaces'] = namespaces
    return StorageLayout.from_dict(layout)


def gap_type(length: int) -> Dict[str, Dict[str, Any]]:
    return {f't_array(t_uint256){length}_storage': {'label': f'uint256[{length}]',
                                                      'numberOfBytes': str(32 * length)}}


def compare(original: StorageLayout, updated: StorageLayout, **opts: Any) -> LayoutCompatibilityReport:
    comparator = StorageLayoutComparator(**opts)
    return comparator.compare_layouts(get_detailed_layout(original), get_detailed_layout(updated))


def op_kinds(report: LayoutCompatibilityReport) -> List[str]:
    return [op.kind for op in report.ops]
