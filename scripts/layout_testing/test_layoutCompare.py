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
from typing import Optional

scripts_dir_path = Path(__file__).parent.parent.resolve()  # containing directory
sys.path.insert(0, str(scripts_dir_path))
from LayoutGuard.layoutCompare import StorageLayoutComparator, enum_size
from LayoutGuard.layoutType import get_detailed_layout
from Shared.layoutUtils import UpgradesError
from layoutFixtures import compare, gap_type, make_layout, make_member, make_var, op_kinds

STRUCT = 't_struct(Data)4_storage'
ENUM = 't_enum(Color)5'
NODE_STRUCT = 't_struct(Node)1_storage'
NODE_MAPPING = f't_mapping(t_uint256,{NODE_STRUCT})'
PRICE = 't_userDefinedValueType(Price)7'
PRICE_MAPPING = f't_mapping({PRICE},t_uint256)'
INT_TYPES = {
    't_int8': {'label': 'int8', 'numberOfBytes': '1'},
    't_int256': {'label': 'int256', 'numberOfBytes': '32'},
}


def mapping_types(key: str, value: str) -> dict:
    return {f't_mapping(t_{key},t_{value})': {'label': f'mapping({key} => {value})', 'numberOfBytes': '32'}}


def price_types(underlying: Optional[str], number_of_bytes: str) -> dict:
    price = {'label': 'Price', 'numberOfBytes': number_of_bytes}
    if underlying is not None:
        price['underlying'] = underlying
    return {PRICE: price, PRICE_MAPPING: {'label': 'mapping(Price => uint256)', 'numberOfBytes': '32'}}


def struct_types(*members: str, type_id: str = STRUCT) -> dict:
    return {type_id: {'label': 'struct Box.Data', 'numberOfBytes': str(32 * len(members)),
                      'members': [make_member(m, 't_uint256', i) for i, m in enumerate(members)]}}


def enum_types(*members: str) -> dict:
    return {ENUM: {'label': 'enum Box.Color', 'numberOfBytes': str(enum_size(len(members))),
                   'members': list(members)}}


class TestVariables(unittest.TestCase):

    def test_same_layout(self) -> None:
        layout = make_layout([make_var('a', 't_uint256', 0), make_var('b', 't_address', 1)])
        self.assertTrue(compare(layout, layout).pass_)

    def test_append(self) -> None:
        original = make_layout([make_var('a', 't_uint256', 0)])
        updated = make_layout([make_var('a', 't_uint256', 0), make_var('b', 't_uint256', 1)])
        self.assertTrue(compare(original, updated).pass_)

    def test_insert(self) -> None:
        original = make_layout([make_var('a', 't_uint256'), make_var('b', 't_uint256')])
        updated = make_layout([make_var('x', 't_uint256'), make_var('a', 't_uint256'), make_var('b', 't_uint256')])
        report = compare(original, updated)
        self.assertEqual(op_kinds(report), ['insert'])
        self.assertEqual(report.ops[0].updated.label, 'x')

    def test_insert_with_positions(self) -> None:
        original = make_layout([make_var('a', 't_uint256', 0), make_var('b', 't_uint256', 1)])
        updated = make_layout([make_var('x', 't_uint256', 0), make_var('a', 't_uint256', 1),
                               make_var('b', 't_uint256', 2)])
        self.assertFalse(compare(original, updated).pass_)

    def test_delete(self) -> None:
        original = make_layout([make_var('a', 't_uint256'), make_var('b', 't_uint256')])
        updated = make_layout([make_var('a', 't_uint256')])
        report = compare(original, updated)
        self.assertEqual(op_kinds(report), ['delete'])
        self.assertEqual(report.ops[0].original.label, 'b')

    def test_rename(self) -> None:
        original = make_layout([make_var('a', 't_uint256', 0)])
        updated = make_layout([make_var('b', 't_uint256', 0)])
        self.assertEqual(op_kinds(compare(original, updated)), ['rename'])
        self.assertTrue(compare(original, updated, unsafe_allow_renames=True).pass_)

    def test_renamed_from(self) -> None:
        original = make_layout([make_var('a', 't_uint256', 0)])
        self.assertTrue(compare(original, make_layout([make_var('b', 't_uint256', 0, renamedFrom='a')])).pass_)
        self.assertEqual(op_kinds(compare(original, make_layout([make_var('b', 't_uint256', 0,
                                                                          renamedFrom='x')]))), ['rename'])

    def test_type_change(self) -> None:
        original = make_layout([make_var('a', 't_uint256', 0)])
        updated = make_layout([make_var('a', 't_address', 0)])
        report = compare(original, updated)
        self.assertEqual(op_kinds(report), ['typechange'])
        self.assertEqual(report.ops[0].change.kind, 'obvious mismatch')

    def test_replace(self) -> None:
        original = make_layout([make_var('a', 't_uint256', 0)])
        updated = make_layout([make_var('b', 't_address', 0)])
        self.assertEqual(op_kinds(compare(original, updated)), ['replace'])

    def test_retyped_same_size(self) -> None:
        original = make_layout([make_var('a', 't_uint256', 0)])
        updated = make_layout([make_var('a', 't_bytes32', 0, retypedFrom=' uint256 ')])
        self.assertTrue(compare(original, updated).pass_)

    def test_retyped_different_size(self) -> None:
        original = make_layout([make_var('a', 't_uint256', 0)])
        updated = make_layout([make_var('a', 't_address', 0, retypedFrom='uint256')])
        report = compare(original, updated)
        self.assertEqual(op_kinds(report), ['layoutchange'])
        self.assertEqual(report.ops[0].change.bytes, ('32', '20'))
        self.assertFalse(report.ops[0].change.uncertain)

    def test_retyped_without_positions(self) -> None:
        original = make_layout([make_var('a', 't_uint256')])
        updated = make_layout([make_var('a', 't_bytes32', retypedFrom='uint256')])
        report = compare(original, updated)
        self.assertEqual(op_kinds(report), ['layoutchange'])
        self.assertTrue(report.ops[0].change.uncertain)

    def test_retyped_from_other_type(self) -> None:
        original = make_layout([make_var('a', 't_uint256', 0)])
        updated = make_layout([make_var('a', 't_bytes32', 0, retypedFrom='uint128')])
        self.assertEqual(op_kinds(compare(original, updated)), ['typechange'])

    def test_uint8_bool(self) -> None:
        original = make_layout([make_var('flag', 't_uint8', 0), make_var('b', 't_address', 0, 1)])
        updated = make_layout([make_var('flag', 't_bool', 0), make_var('b', 't_address', 0, 1)])
        self.assertTrue(compare(original, updated).pass_)
        self.assertTrue(compare(updated, original).pass_)

    def test_uint_variable_may_not_widen(self) -> None:
        original = make_layout([make_var('a', 't_uint8', 0)])
        updated = make_layout([make_var('a', 't_uint256', 0)])
        report = compare(original, updated)
        self.assertEqual(op_kinds(report), ['typechange'])
        self.assertEqual(report.ops[0].change.kind, 'obvious mismatch')

    def test_moved_variable(self) -> None:
        original = make_layout([make_var('a', 't_uint128', 0), make_var('b', 't_uint128', 0, 16)])
        updated = make_layout([make_var('a', 't_uint128', 0), make_var('b', 't_uint128', 1)])
        report = compare(original, updated)
        self.assertEqual(op_kinds(report), ['layoutchange'])
        self.assertEqual(report.ops[0].change.slot, ('0', '1'))
        self.assertEqual(report.ops[0].change.offset, (16, 0))

    def test_contracts_are_addresses(self) -> None:
        original = make_layout([make_var('token', 't_contract(IERC20)10', 0)],
                               {'t_contract(IERC20)10': {'label': 'contract IERC20', 'numberOfBytes': '20'}})
        updated = make_layout([make_var('token', 't_contract(Token)20', 0)],
                              {'t_contract(Token)20': {'label': 'contract Token', 'numberOfBytes': '20'}})
        self.assertTrue(compare(original, updated).pass_)

    def test_function_visibility(self) -> None:
        internal = 't_function_internal_nonpayable(t_uint256)returns(t_uint256)'
        external = 't_function_external_nonpayable(t_uint256)returns(t_uint256)'
        types = {internal: {'label': 'function (uint256) returns (uint256)', 'numberOfBytes': '8'},
                 external: {'label': 'function (uint256) external returns (uint256)', 'numberOfBytes': '24'}}
        original = make_layout([make_var('f', internal, 0)], types)
        report = compare(original, make_layout([make_var('f', external, 0)], types))
        self.assertEqual(op_kinds(report), ['typechange'])
        self.assertEqual(report.ops[0].change.kind, 'visibility change')
        self.assertTrue(compare(original, original).pass_)

    def test_unknown_type(self) -> None:
        original = make_layout([make_var('a', 't_userDefined(Thing)')])
        report = compare(original, original)
        self.assertEqual(op_kinds(report), ['typechange'])
        self.assertEqual(report.ops[0].change.kind, 'unknown')


class TestUserDefinedValueTypes(unittest.TestCase):

    def test_same_value_type(self) -> None:
        layout = make_layout([make_var('price', PRICE, 0), make_var('prices', PRICE_MAPPING, 1)],
                             price_types('t_uint128', '16'))
        self.assertTrue(compare(layout, layout).pass_)

    def test_underlying_type_changed(self) -> None:
        original = make_layout([make_var('price', PRICE, 0)], price_types('t_uint128', '16'))
        updated = make_layout([make_var('price', PRICE, 0)], price_types('t_uint256', '32'))
        report = compare(original, updated)
        self.assertEqual(op_kinds(report), ['typechange'])
        self.assertEqual(report.ops[0].change.kind, 'underlying type')

    def test_underlying_type_changed_in_mapping_key(self) -> None:
        original = make_layout([make_var('prices', PRICE_MAPPING, 0)], price_types('t_uint128', '16'))
        updated = make_layout([make_var('prices', PRICE_MAPPING, 0)], price_types('t_int128', '16'))
        change = compare(original, updated).ops[0].change
        self.assertEqual(change.kind, 'mapping key')
        self.assertEqual(change.inner.kind, 'underlying type')

    def test_without_underlying_type(self) -> None:
        original = make_layout([make_var('price', PRICE, 0)], price_types(None, '16'))
        self.assertTrue(compare(original, make_layout([make_var('price', PRICE, 0)],
                                                      price_types('t_uint128', '16'))).pass_)
        report = compare(original, make_layout([make_var('price', PRICE, 0)], price_types(None, '32')))
        self.assertEqual(report.ops[0].change.kind, 'underlying type')


class TestStructsAndEnums(unittest.TestCase):

    def test_struct_member_appended(self) -> None:
        original = make_layout([make_var('s', STRUCT, 0)], struct_types('x'))
        updated = make_layout([make_var('s', STRUCT, 0)], struct_types('x', 'y'))
        report = compare(original, updated)
        self.assertEqual(op_kinds(report), ['typechange'])
        change = report.ops[0].change
        self.assertEqual(change.kind, 'struct members')
        self.assertEqual([op.kind for op in change.ops], ['append'])

    def test_struct_member_renamed(self) -> None:
        original = make_layout([make_var('s', STRUCT, 0)], struct_types('x', 'y'))
        updated = make_layout([make_var('s', STRUCT, 0)], struct_types('x', 'z'))
        change = compare(original, updated).ops[0].change
        self.assertEqual([op.kind for op in change.ops], ['rename'])

    def test_missing_members(self) -> None:
        types = {STRUCT: {'label': 'struct Box.Data', 'numberOfBytes': '32'}}
        layout = make_layout([make_var('s', STRUCT, 0)], types)
        report = compare(layout, layout)
        self.assertEqual(report.ops[0].change.kind, 'missing members')

        comparator = StorageLayoutComparator(unsafe_allow_custom_types=True)
        report = comparator.compare_layouts(get_detailed_layout(layout), get_detailed_layout(layout))
        self.assertTrue(report.pass_)
        self.assertTrue(comparator.has_allowed_unchecked_custom_types)

    def test_enum_size(self) -> None:
        self.assertEqual(enum_size(2), 1)
        self.assertEqual(enum_size(256), 1)
        self.assertEqual(enum_size(257), 2)

    def test_enum_grows_within_a_byte(self) -> None:
        original = make_layout([make_var('c', ENUM)], enum_types('Red', 'Green'))
        updated = make_layout([make_var('c', ENUM)], enum_types('Red', 'Green', *[f'V{i}' for i in range(198)]))
        self.assertTrue(compare(original, updated).pass_)

    def test_enum_resize(self) -> None:
        original = make_layout([make_var('c', ENUM)], enum_types('Red', 'Green'))
        updated = make_layout([make_var('c', ENUM)], enum_types('Red', 'Green', *[f'V{i}' for i in range(255)]))
        report = compare(original, updated)
        self.assertEqual(report.ops[0].change.kind, 'enum resize')

    def test_enum_member_replaced(self) -> None:
        original = make_layout([make_var('c', ENUM)], enum_types('Red', 'Green'))
        updated = make_layout([make_var('c', ENUM)], enum_types('Red', 'Blue'))
        change = compare(original, updated).ops[0].change
        self.assertEqual(change.kind, 'enum members')
        self.assertEqual([(op.kind, op.original, op.updated) for op in change.ops], [('replace', 'Green', 'Blue')])


class TestMappingsAndArrays(unittest.TestCase):

    def test_mapping_value_may_grow(self) -> None:
        mapping = f't_mapping(t_uint256,{STRUCT})'
        mapping_type = {mapping: {'label': 'mapping(uint256 => struct Box.Data)', 'numberOfBytes': '32'}}
        original = make_layout([make_var('m', mapping, 0)], {**mapping_type, **struct_types('x')})
        updated = make_layout([make_var('m', mapping, 0)], {**mapping_type, **struct_types('x', 'y')})
        self.assertTrue(compare(original, updated).pass_)
        self.assertFalse(compare(updated, original).pass_)

    def test_mapping_key(self) -> None:
        original = make_layout([make_var('m', 't_mapping(t_uint256,t_uint256)', 0)],
                               {'t_mapping(t_uint256,t_uint256)': {'label': 'mapping(uint256 => uint256)',
                                                                   'numberOfBytes': '32'}})
        updated = make_layout([make_var('m', 't_mapping(t_address,t_uint256)', 0)],
                              {'t_mapping(t_address,t_uint256)': {'label': 'mapping(address => uint256)',
                                                                  'numberOfBytes': '32'}})
        change = compare(original, updated).ops[0].change
        self.assertEqual(change.kind, 'mapping key')
        self.assertEqual(change.inner.kind, 'obvious mismatch')

    def test_mapping_uint_value_may_widen(self) -> None:
        narrow = make_layout([make_var('m', 't_mapping(t_address,t_uint8)', 0)], mapping_types('address', 'uint8'))
        wide = make_layout([make_var('m', 't_mapping(t_address,t_uint256)', 0)], mapping_types('address', 'uint256'))
        self.assertTrue(compare(narrow, wide).pass_)
        report = compare(wide, narrow)
        self.assertEqual(op_kinds(report), ['typechange'])
        self.assertEqual(report.ops[0].change.kind, 'mapping value')
        self.assertEqual(report.ops[0].change.inner.kind, 'obvious mismatch')

    def test_mapping_int_value_may_not_widen(self) -> None:
        narrow = make_layout([make_var('m', 't_mapping(t_address,t_int8)', 0)],
                             {**INT_TYPES, **mapping_types('address', 'int8')})
        wide = make_layout([make_var('m', 't_mapping(t_address,t_int256)', 0)],
                           {**INT_TYPES, **mapping_types('address', 'int256')})
        change = compare(narrow, wide).ops[0].change
        self.assertEqual(change.kind, 'mapping value')
        self.assertEqual(change.inner.kind, 'obvious mismatch')

    def test_mapping_key_may_not_widen(self) -> None:
        narrow = make_layout([make_var('m', 't_mapping(t_uint8,t_address)', 0)], mapping_types('uint8', 'address'))
        wide = make_layout([make_var('m', 't_mapping(t_uint256,t_address)', 0)], mapping_types('uint256', 'address'))
        self.assertEqual(compare(narrow, wide).ops[0].change.kind, 'mapping key')

    def test_legacy_unknown_mapping_key(self) -> None:
        original = make_layout([make_var('m', 't_mapping(unknown,t_uint256)', 0)],
                               {'t_mapping(unknown,t_uint256)': {'label': 'mapping(unknown => uint256)',
                                                                 'numberOfBytes': '32'}})
        updated = make_layout([make_var('m', 't_mapping(t_address,t_uint256)', 0)],
                              {'t_mapping(t_address,t_uint256)': {'label': 'mapping(address => uint256)',
                                                                  'numberOfBytes': '32'}})
        self.assertTrue(compare(original, updated).pass_)

    def test_array_resize(self) -> None:
        types = {**gap_type(3), **gap_type(2), **gap_type(4)}
        original = make_layout([make_var('xs', 't_array(t_uint256)3_storage', 0)], types)
        shrunk = make_layout([make_var('xs', 't_array(t_uint256)2_storage', 0)], types)
        grown = make_layout([make_var('xs', 't_array(t_uint256)4_storage', 0)], types)
        self.assertEqual(compare(original, shrunk).ops[0].change.kind, 'array shrink')
        self.assertEqual(compare(original, grown).ops[0].change.kind, 'array grow')

    def test_array_dynamic(self) -> None:
        dynamic = 't_array(t_uint256)dyn_storage'
        types = {**gap_type(3), dynamic: {'label': 'uint256[]', 'numberOfBytes': '32'}}
        original = make_layout([make_var('xs', dynamic, 0)], types)
        updated = make_layout([make_var('xs', 't_array(t_uint256)3_storage', 0)], types)
        self.assertEqual(compare(original, updated).ops[0].change.kind, 'array dynamic')

    def test_array_value(self) -> None:
        original = make_layout([make_var('xs', 't_array(t_uint256)dyn_storage', 0)],
                               {'t_array(t_uint256)dyn_storage': {'label': 'uint256[]', 'numberOfBytes': '32'}})
        updated = make_layout([make_var('xs', 't_array(t_address)dyn_storage', 0)],
                              {'t_array(t_address)dyn_storage': {'label': 'address[]', 'numberOfBytes': '32'}})
        change = compare(original, updated).ops[0].change
        self.assertEqual(change.kind, 'array value')
        self.assertEqual(change.inner.kind, 'obvious mismatch')

    def test_recursive_struct(self) -> None:
        layout = make_layout([make_var('root', NODE_STRUCT, 0)], {
            NODE_STRUCT: {'label': 'struct Box.Node', 'numberOfBytes': '64',
                          'members': [make_member('value', 't_uint256', 0),
                                      make_member('children', NODE_MAPPING, 1)]},
            NODE_MAPPING: {'label': 'mapping(uint256 => struct Box.Node)', 'numberOfBytes': '32'},
        })
        with self.assertRaises(UpgradesError) as cm:
            compare(layout, layout)
        self.assertEqual(cm.exception.message, "Recursive types are not supported")


class TestGaps(unittest.TestCase):
    GAP_TYPES = {**gap_type(49), **gap_type(48), **gap_type(47), **gap_type(2)}

    def original(self, gap_length: int = 49) -> list:
        return [make_var('a', 't_uint256', 0), make_var('__gap', f't_array(t_uint256){gap_length}_storage', 1)]

    def test_gap_shrunk_for_new_variable(self) -> None:
        original = make_layout(self.original(), self.GAP_TYPES)
        updated = make_layout([make_var('a', 't_uint256', 0), make_var('b', 't_uint256', 1),
                               make_var('__gap', 't_array(t_uint256)48_storage', 2)], self.GAP_TYPES)
        self.assertTrue(compare(original, updated).pass_)

    def test_gap_shrunk_for_packed_variables(self) -> None:
        original = make_layout(self.original(), self.GAP_TYPES)
        updated = make_layout([make_var('a', 't_uint256', 0), make_var('b', 't_uint128', 1),
                               make_var('c', 't_uint128', 1, 16),
                               make_var('__gap', 't_array(t_uint256)48_storage', 2)], self.GAP_TYPES)
        self.assertTrue(compare(original, updated).pass_)

    def test_gap_shrunk_too_much(self) -> None:
        original = make_layout(self.original(), self.GAP_TYPES)
        updated = make_layout([make_var('a', 't_uint256', 0), make_var('b', 't_uint256', 1),
                               make_var('__gap', 't_array(t_uint256)47_storage', 2)], self.GAP_TYPES)
        self.assertFalse(compare(original, updated).pass_)

    def test_gap_shrunk_without_new_variable(self) -> None:
        original = make_layout(self.original(), self.GAP_TYPES)
        updated = make_layout([make_var('a', 't_uint256', 0),
                               make_var('__gap', 't_array(t_uint256)48_storage', 1)], self.GAP_TYPES)
        report = compare(original, updated)
        self.assertEqual(op_kinds(report), ['shrinkgap'])

    def test_gap_not_shrunk(self) -> None:
        original = make_layout(self.original(), self.GAP_TYPES)
        updated = make_layout([make_var('a', 't_uint256', 0), make_var('b', 't_uint256', 1),
                               make_var('__gap', 't_array(t_uint256)49_storage', 2)], self.GAP_TYPES)
        self.assertFalse(compare(original, updated).pass_)

    def test_gap_finished(self) -> None:
        original = make_layout(self.original(2), self.GAP_TYPES)
        updated = make_layout([make_var('a', 't_uint256', 0), make_var('b', 't_uint256', 1),
                               make_var('c', 't_uint256', 2)], self.GAP_TYPES)
        self.assertTrue(compare(original, updated).pass_)

    def test_variable_past_gap_end(self) -> None:
        original = make_layout(self.original(2), self.GAP_TYPES)
        updated = make_layout([make_var('a', 't_uint256', 0), make_var('b', 't_uint256', 1),
                               make_var('c', 't_uint256', 2), make_var('d', 't_uint256', 3)], self.GAP_TYPES)
        self.assertTrue(compare(original, updated).pass_)


if __name__ == '__main__':
    unittest.main()
