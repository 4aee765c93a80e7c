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

from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Sequence

"""
A sequence alignment that knows nothing about storage. Given the two sequences and a function telling what changed
between two elements (None if nothing did), we compute a cheapest list of operations turning the first sequence into
the second one. Matched elements without a change do not appear in the result.
"""

INSERTION_COST = 2
DELETION_COST = 2
SUBSTITUTION_COST = 3


@dataclass
class Insert:
    updated: Any
    kind = 'insert'


@dataclass
class Append:
    updated: Any
    kind = 'append'


@dataclass
class Delete:
    original: Any
    kind = 'delete'


class MatrixEntry:
    def __init__(self, kind: str, total_cost: int, predecessor: Optional['MatrixEntry'] = None,
                 change: Any = None) -> None:
        self.kind = kind
        self.total_cost = total_cost
        self.predecessor = predecessor
        self.change = change


def substitution_cost(change: Any) -> int:
    if change is None:
        return 0
    cost = getattr(change, "cost", None)
    return SUBSTITUTION_COST if cost is None else cost


def build_matrix(a: Sequence[Any], b: Sequence[Any],
                 get_change_op: Callable[[Any, Any], Any]) -> List[List[MatrixEntry]]:
    matrix: List[List[MatrixEntry]] = [[MatrixEntry('nop', 0)]]
    for j in range(1, len(b) + 1):
        matrix[0].append(MatrixEntry('append' if len(a) == 0 else 'insert', j * INSERTION_COST, matrix[0][j - 1]))

    for i in range(1, len(a) + 1):
        row = [MatrixEntry('delete', i * DELETION_COST, matrix[i - 1][0])]
        matrix.append(row)
        for j in range(1, len(b) + 1):
            change = get_change_op(a[i - 1], b[j - 1])
            insertion = MatrixEntry('append' if i == len(a) else 'insert',
                                    row[j - 1].total_cost + INSERTION_COST, row[j - 1])
            substitution = MatrixEntry('substitution' if change is not None else 'nop',
                                       matrix[i - 1][j - 1].total_cost + substitution_cost(change),
                                       matrix[i - 1][j - 1], change)
            deletion = MatrixEntry('delete', matrix[i - 1][j].total_cost + DELETION_COST, matrix[i - 1][j])
            # on equal costs, the first option wins
            best = insertion
            for option in (substitution, deletion):
                if option.total_cost < best.total_cost:
                    best = option
            row.append(best)
    return matrix


def walk_matrix(matrix: List[List[MatrixEntry]], a: Sequence[Any], b: Sequence[Any]) -> List[Any]:
    ops: List[Any] = []
    i = len(a)
    j = len(b)
    entry: Optional[MatrixEntry] = matrix[i][j]
    while entry is not None and entry.predecessor is not None:
        if entry.kind == 'insert':
            ops.append(Insert(b[j - 1]))
            j -= 1
        elif entry.kind == 'append':
            ops.append(Append(b[j - 1]))
            j -= 1
        elif entry.kind == 'delete':
            ops.append(Delete(a[i - 1]))
            i -= 1
        else:
            if entry.kind == 'substitution':
                ops.append(entry.change)
            i -= 1
            j -= 1
        entry = entry.predecessor
    ops.reverse()
    return ops


def levenshtein(a: Sequence[Any], b: Sequence[Any], get_change_op: Callable[[Any, Any], Any]) -> List[Any]:
    """
    @param get_change_op: returns the change between an element of a and an element of b, or None if they are
           the same. A change may define its own cost attribute, otherwise substituting costs SUBSTITUTION_COST.
    @return the operations, in sequence order: Insert, Append and Delete objects, and the changes returned by
            get_change_op for the matched pairs that differ
    """
    matrix = build_matrix(a, b, get_change_op)
    return walk_matrix(matrix, a, b)
