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

import re
from typing import Optional, Tuple

from LayoutGuard.layoutType import StorageField

GAP_LABEL = '__gap'
SLOT_SIZE = 32


def is_gap(f: StorageField) -> bool:
    return f.label == GAP_LABEL and f.type.head == 't_array'


def storage_field_begin(f: StorageField) -> Optional[int]:
    """
    @return the absolute byte position where the field starts, or None if its slot or offset is unknown
    """
    if f.slot is None or f.offset is None:
        return None
    return int(f.slot) * SLOT_SIZE + f.offset


def storage_field_end(f: StorageField) -> Optional[int]:
    """
    @return the absolute byte position right after the field, or None if its position or size is unknown
    """
    begin = storage_field_begin(f)
    number_of_bytes = f.type.item.number_of_bytes
    if begin is None or number_of_bytes is None:
        return None
    return begin + int(number_of_bytes)


def get_start_end_pos(f: StorageField) -> Tuple[Optional[int], Optional[int]]:
    return storage_field_begin(f), storage_field_end(f)


def is_end_aligned(updated: StorageField, original: StorageField) -> bool:
    end = storage_field_end(updated)
    return end is not None and end == storage_field_end(original)


def end_matches_gap(original: StorageField, updated: StorageField) -> bool:
    """
    Whether original is a gap and updated ends exactly where the gap ended
    """
    return is_gap(original) and is_end_aligned(updated, original)


def array_length(f: StorageField) -> Optional[int]:
    match = re.match(r"^\d+", f.type.tail or '')
    return None if match is None else int(match.group(0))


def expected_gap_size(original: StorageField, updated: StorageField) -> Optional[int]:
    """
    @return the length updated (a resized gap) should have in order to end where the original gap ended, or None
            when it cannot be computed
    """
    original_end = storage_field_end(original)
    updated_start = storage_field_begin(updated)
    original_length = array_length(original)
    number_of_bytes = original.type.item.number_of_bytes
    if original_end is None or updated_start is None or not original_length or number_of_bytes is None:
        return None
    bytes_per_item = int(number_of_bytes) // original_length
    if bytes_per_item == 0:
        return None
    return (original_end - updated_start) // bytes_per_item
