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

import logging
import math
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

from LayoutGuard.layoutGap import end_matches_gap, get_start_end_pos, is_end_aligned, is_gap
from LayoutGuard.layoutLevenshtein import levenshtein
from LayoutGuard.layoutReport import LayoutCompatibilityReport
from LayoutGuard.layoutType import ParsedTypeDetailed, StorageField, TypeItem, has_layout, is_enum_members, \
    is_struct_members, is_value_type, normalize_type_identifier
from Shared.layoutUtils import ImplementationError, UpgradesError

storage_logger = logging.getLogger("storage")

# These two are one byte wide and encode their values compatibly
COMPATIBLE_TYPE_LABELS = ('uint8', 'bool')

FUNCTION_VISIBILITY_RE = re.compile(r"^t_function_(internal|external)")
ARRAY_LENGTH_RE = re.compile(r"^(\d+|dyn)")
UINT_RE = re.compile(r"^t_uint(\d+)$")

# A key of the type comparison cache: (original type id, updated type id, allow append)
TypeChangeKey = Tuple[str, str, bool]


@dataclass
class LayoutChange:
    """
    The differences in position and size of a field. Each of slot, offset and bytes is a (from, to) pair, or None
    if it did not change. uncertain means the position of one of the fields is unknown, so it may have changed.
    """
    uncertain: bool = False
    slot: Optional[Tuple[str, str]] = None
    offset: Optional[Tuple[int, int]] = None
    bytes: Optional[Tuple[str, str]] = None


@dataclass
class TypeChange:
    """
    kind is one of 'obvious mismatch', 'unknown', 'array grow', 'visibility change', 'array shrink',
    'array dynamic', 'enum resize', 'missing members' and 'underlying type', which are terminal, or
    'mapping key', 'mapping value' and 'array value', which have an inner change, or
    'enum members' and 'struct members', which have the ops of the members comparison
    """
    kind: str
    original: ParsedTypeDetailed
    updated: ParsedTypeDetailed
    inner: Optional['TypeChange'] = None
    ops: Optional[List[Any]] = None
    allow_append: bool = False


@dataclass
class StorageFieldChange:
    """
    kind is one of 'replace', 'rename', 'typechange', 'layoutchange', 'shrinkgap' and 'finishgap'.
    change is a TypeChange for typechange and shrinkgap, and a LayoutChange for layoutchange.
    cost overrides the cost of this change when aligning the fields, see layoutLevenshtein.
    """
    kind: str
    original: StorageField
    updated: StorageField
    change: Any = None
    cost: Optional[int] = None


@dataclass
class EnumReplace:
    original: str
    updated: str
    kind = 'replace'


@dataclass
class ComparisonContext:
    """
    The state of the type comparisons: results computed so far, and the comparisons in progress, which tell us
    when we are comparing a type with itself recursively
    """
    cache: Dict[TypeChangeKey, Optional[TypeChange]] = field(default_factory=dict)
    stack: Set[TypeChangeKey] = field(default_factory=set)


def enum_size(member_count: int) -> int:
    """
    @return the number of bytes needed to represent an enum with member_count members
    """
    return math.ceil(math.log2(max(2, member_count)) / 8)


def is_uint_growth(original: ParsedTypeDetailed, updated: ParsedTypeDetailed) -> bool:
    """
    An unsigned integer alone in its slot keeps its value when it is widened. Signed integers are excluded: a narrow
    negative value is stored without sign extension.
    """
    original_bits = UINT_RE.match(original.id)
    updated_bits = UINT_RE.match(updated.id)
    return original_bits is not None and updated_bits is not None and \
        int(updated_bits.group(1)) >= int(original_bits.group(1))


def underlying_type_changed(original: TypeItem, updated: TypeItem) -> bool:
    """
    Compares user defined value types by what is known of their underlying types, which is missing from layouts
    that were not extracted from an AST
    """
    if original.underlying is not None and updated.underlying is not None and \
            normalize_type_identifier(original.underlying) != normalize_type_identifier(updated.underlying):
        return True
    return original.number_of_bytes is not None and updated.number_of_bytes is not None and \
        original.number_of_bytes != updated.number_of_bytes


def is_consumed_gap(op: Any) -> bool:
    return op.kind == 'finishgap' or (op.kind == 'shrinkgap' and is_end_aligned(op.updated, op.original))


def filter_gap_operations(ops: List[Any]) -> List[Any]:
    """
    Removes the operations that are safe because of storage gaps: a gap that was shrunk so that it still ends
    where it used to, a gap whose end was replaced by a variable ending at the same position, and inserted fields
    that lie within the original span of such a gap.
    """
    gap_spans = [get_start_end_pos(op.original) for op in ops if op.kind in ('shrinkgap', 'finishgap')]

    def is_within_gap(op: Any) -> bool:
        start, end = get_start_end_pos(op.updated)
        if start is None or end is None:
            return False
        return any(gap_start is not None and gap_end is not None and gap_start <= start and end <= gap_end
                   for gap_start, gap_end in gap_spans)

    reported = []
    for op in ops:
        if is_consumed_gap(op):
            storage_logger.debug(f"Gap {op.original.label} was consumed by {op.updated.label}")
        elif op.kind == 'insert' and is_within_gap(op):
            storage_logger.debug(f"Inserted {op.updated.label} lies within a gap")
        else:
            reported.append(op)
    return reported


class StorageLayoutComparator:
    def __init__(self, unsafe_allow_custom_types: bool = False, unsafe_allow_renames: bool = False,
                 context: Optional[ComparisonContext] = None) -> None:
        self.unsafe_allow_custom_types = unsafe_allow_custom_types
        self.unsafe_allow_renames = unsafe_allow_renames
        self.context = ComparisonContext() if context is None else context
        self.has_allowed_unchecked_custom_types = False

    def compare_layouts(self, original: Sequence[StorageField],
                        updated: Sequence[StorageField]) -> LayoutCompatibilityReport:
        return LayoutCompatibilityReport(self.get_storage_operations(original, updated))

    def get_storage_operations(self, original: Sequence[StorageField], updated: Sequence[StorageField]) -> List[Any]:
        # variables can always be added at the end of the layout
        return self.layout_levenshtein(original, updated, allow_append=True)

    def layout_levenshtein(self, original: Sequence[StorageField], updated: Sequence[StorageField],
                           allow_append: bool) -> List[Any]:
        ops = levenshtein(original, updated, self.get_field_change)
        storage_logger.debug(f"Aligned {len(original)} fields with {len(updated)} fields: "
                             f"{[op.kind for op in ops]}")
        if allow_append:
            ops = [op for op in ops if op.kind != 'append']
        return filter_gap_operations(ops)

    def get_field_change(self, original: StorageField, updated: StorageField) -> Optional[StorageFieldChange]:
        name_change = not self.unsafe_allow_renames and original.label != updated.renamed_from and \
            (updated.label != original.label or
             (updated.renamed_from is not None and updated.renamed_from != original.renamed_from))
        retyped_from_original = updated.retyped_from is not None and \
            original.type.item.label == updated.retyped_from.strip()
        type_change = None if retyped_from_original else \
            self.get_type_change(original.type, updated.type, allow_append=False)
        layout_change = self.get_layout_change(original, updated)

        if updated.retyped_from and layout_change:
            return StorageFieldChange('layoutchange', original, updated, change=layout_change)
        elif type_change and name_change:
            if end_matches_gap(original, updated):
                return StorageFieldChange('finishgap', original, updated, cost=0)
            return StorageFieldChange('replace', original, updated)
        elif name_change:
            return StorageFieldChange('rename', original, updated)
        elif type_change:
            if type_change.kind == 'array shrink' and is_gap(updated):
                cost = 0 if is_end_aligned(updated, original) else None
                return StorageFieldChange('shrinkgap', original, updated, change=type_change, cost=cost)
            return StorageFieldChange('typechange', original, updated, change=type_change)
        elif layout_change and not layout_change.uncertain:
            # a layout change should have been caught as a type change, this is a fallback
            return StorageFieldChange('layoutchange', original, updated, change=layout_change)
        return None

    @staticmethod
    def get_layout_change(original: StorageField, updated: StorageField) -> Optional[LayoutChange]:
        if original.type.item.label in COMPATIBLE_TYPE_LABELS and updated.type.item.label in COMPATIBLE_TYPE_LABELS:
            return None
        if not has_layout(original) or not has_layout(updated):
            return LayoutChange(uncertain=True)

        def transition(from_value: Any, to_value: Any) -> Optional[Tuple[Any, Any]]:
            return None if from_value == to_value else (from_value, to_value)

        slot = transition(original.slot, updated.slot)
        offset = transition(original.offset, updated.offset)
        number_of_bytes = transition(original.type.item.number_of_bytes, updated.type.item.number_of_bytes)
        if slot or offset or number_of_bytes:
            return LayoutChange(slot=slot, offset=offset, bytes=number_of_bytes)
        return None

    @staticmethod
    def get_visibility_change(original: ParsedTypeDetailed, updated: ParsedTypeDetailed) -> Optional[TypeChange]:
        original_visibility = FUNCTION_VISIBILITY_RE.match(original.head)
        updated_visibility = FUNCTION_VISIBILITY_RE.match(updated.head)
        if original_visibility is None or updated_visibility is None:
            raise ImplementationError(f"Unexpected function types {original.id} and {updated.id}")
        if original_visibility.group(0) != updated_visibility.group(0):
            return TypeChange('visibility change', original, updated)
        return None

    def get_type_change(self, original: ParsedTypeDetailed, updated: ParsedTypeDetailed,
                        allow_append: bool) -> Optional[TypeChange]:
        key = (original.id, updated.id, allow_append)
        if key in self.context.cache:
            return self.context.cache[key]

        if key in self.context.stack:
            raise UpgradesError("Recursive types are not supported",
                                lambda: f"Recursion found in {updated.item.label}\n")

        try:
            self.context.stack.add(key)
            result = self.__uncached_get_type_change(original, updated, allow_append)
            self.context.cache[key] = result
            return result
        finally:
            self.context.stack.discard(key)

    def __missing_members_change(self, original: ParsedTypeDetailed,
                                 updated: ParsedTypeDetailed) -> Optional[TypeChange]:
        if self.unsafe_allow_custom_types:
            storage_logger.debug(f"Allowing {updated.item.label} without comparing its members")
            self.has_allowed_unchecked_custom_types = True
            return None
        return TypeChange('missing members', original, updated)

    def __uncached_get_type_change(self, original: ParsedTypeDetailed, updated: ParsedTypeDetailed,
                                   allow_append: bool) -> Optional[TypeChange]:
        if original.head.startswith('t_function') and updated.head.startswith('t_function'):
            return self.get_visibility_change(original, updated)

        if original.item.label in COMPATIBLE_TYPE_LABELS and updated.item.label in COMPATIBLE_TYPE_LABELS:
            return None

        if allow_append and is_uint_growth(original, updated):
            return None

        if original.head != updated.head:
            return TypeChange('obvious mismatch', original, updated)

        if original.args is None or updated.args is None:
            if original.args is not updated.args:
                raise ImplementationError(f"Type {original.id} and {updated.id} have the same head "
                                          f"but only one of them has arguments")
            return None

        if original.head == 't_contract':
            # a contract is stored as an address
            return None

        elif original.head == 't_userDefinedValueType':
            if underlying_type_changed(original.item, updated.item):
                return TypeChange('underlying type', original, updated)
            return None

        elif original.head == 't_struct':
            original_members = original.item.members
            updated_members = updated.item.members
            if original_members is None or updated_members is None:
                return self.__missing_members_change(original, updated)
            if not is_struct_members(original_members) or not is_struct_members(updated_members):
                raise ImplementationError(f"Members of {original.item.label} are not struct members")
            ops = self.layout_levenshtein(original_members, updated_members, allow_append)
            if ops:
                return TypeChange('struct members', original, updated, ops=ops, allow_append=allow_append)
            return None

        elif original.head == 't_enum':
            original_members = original.item.members
            updated_members = updated.item.members
            if original_members is None or updated_members is None:
                return self.__missing_members_change(original, updated)
            if not is_enum_members(original_members) or not is_enum_members(updated_members):
                raise ImplementationError(f"Members of {original.item.label} are not enum members")
            if enum_size(len(original_members)) != enum_size(len(updated_members)):
                return TypeChange('enum resize', original, updated)
            ops = [op for op in levenshtein(original_members, updated_members,
                                            lambda a, b: None if a == b else EnumReplace(a, b))
                   if op.kind != 'append']
            if ops:
                return TypeChange('enum members', original, updated, ops=ops)
            return None

        elif original.head == 't_mapping':
            original_key, original_value = original.args
            updated_key, updated_value = updated.args
            if not is_value_type(original_key) or not is_value_type(updated_key):
                raise ImplementationError(f"Mapping keys of {original.id} and {updated.id} must be value types")

            # layouts migrated from legacy manifests have an unknown key type, which matches any key type
            key_change = None if original_key.head == 'unknown' else \
                self.get_type_change(original_key, updated_key, allow_append=False)
            if key_change:
                return TypeChange('mapping key', original, updated, inner=key_change)

            # mapping values are allowed to grow
            inner = self.get_type_change(original_value, updated_value, allow_append=True)
            if inner:
                return TypeChange('mapping value', original, updated, inner=inner)
            return None

        elif original.head == 't_array':
            original_length = ARRAY_LENGTH_RE.match(original.tail or '')
            updated_length = ARRAY_LENGTH_RE.match(updated.tail or '')
            if original_length is None or updated_length is None:
                raise ImplementationError(f"Missing array length in {original.id} or {updated.id}")
            original_size = original_length.group(0)
            updated_size = updated_length.group(0)

            if original_size == 'dyn' or updated_size == 'dyn':
                if original_size != updated_size:
                    return TypeChange('array dynamic', original, updated)
            elif int(updated_size) < int(original_size):
                return TypeChange('array shrink', original, updated)
            elif not allow_append and int(updated_size) > int(original_size):
                return TypeChange('array grow', original, updated)

            inner = self.get_type_change(original.args[0], updated.args[0], allow_append=False)
            if inner:
                return TypeChange('array value', original, updated, inner=inner)
            return None

        return TypeChange('unknown', original, updated)
