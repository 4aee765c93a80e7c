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
from typing import Any, Callable, List, Optional

from LayoutGuard.layoutGap import expected_gap_size, is_gap
from Shared.layoutUtils import ImplementationError, bold_text, console_supports_color, indent, itemize, itemize_with

"""
Renders the operations found by the layout comparison. Operations are dispatched on their kind, so this module does
not depend on the comparator: field changes, type changes and the insert/append/delete operations of the alignment
all carry a kind attribute.
"""

LAYOUT_CONTEXT = 'layout'
STRUCT_CONTEXT = 'struct'


class LayoutCompatibilityReport:
    def __init__(self, ops: List[Any]) -> None:
        self.ops = ops

    @property
    def ok(self) -> bool:
        return self.pass_

    @property
    def pass_(self) -> bool:
        return len(self.ops) == 0

    def explain(self, color: bool = True) -> str:
        use_color = color and console_supports_color()
        res = []
        for i, op in enumerate(self.ops):
            # a layout change after the first op is assumed to be explained by the ops before it
            if op.kind == 'layoutchange' and i != 0:
                continue
            src = op.updated.src if hasattr(op, "updated") else op.original.contract
            if src is None:
                src = '<unknown>'
            res.append((bold_text(src) if use_color else src) + ':' +
                       indent(explain_storage_operation(op, LAYOUT_CONTEXT, allow_append=True), 2, 1))
        return '\n\n'.join(res)


def label(variable: Any) -> str:
    return f"`{variable.label}`"


def explain_storage_operation(op: Any, context: str, allow_append: bool) -> str:
    if op.kind in ('shrinkgap', 'typechange'):
        basic = explain_type_change(op.change, op.original, op.updated)
        details: List[str] = []
        # details are only explained for the top level layout
        if context == LAYOUT_CONTEXT:
            all_details = [explain_type_change_details(ch) for ch in get_all_type_changes(op.change)]
            details = list(dict.fromkeys(d for d in all_details if d is not None))
        return f"Upgraded {label(op.updated)} to an incompatible type" + itemize(basic, *details)

    elif op.kind == 'finishgap':
        return f"Converted end of storage gap {label(op.original)} to {label(op.updated)}"

    elif op.kind == 'rename':
        return f"Renamed {label(op.original)} to {label(op.updated)}"

    elif op.kind == 'replace':
        return f"Replaced {label(op.original)} with {label(op.updated)} of incompatible type"

    elif op.kind == 'layoutchange':
        could_have = 'could have changed' if op.change.uncertain else 'changed'
        return (f"Layout {could_have} for {label(op.updated)} "
                f"({op.original.type.item.label} -> {op.updated.type.item.label})" +
                describe_layout_transition(op.change)).rstrip()

    title = explain_basic_operation(op, lambda f: f.label)
    hints = []
    if op.kind == 'insert':
        if context == STRUCT_CONTEXT:
            if allow_append:
                hints.append("New struct members should be placed after existing ones")
            else:
                hints.append("New struct members are not allowed here. Define a new struct")
        else:
            hints.append("New variables should be placed after all existing inherited variables")
    elif op.kind == 'delete':
        hints.append("Keep the variable even if unused")
    return title + itemize_with('>', *hints)


def explain_type_change(ch: Any, original: Any, updated: Any) -> str:
    """
    @param original: the field whose type changed, in the original layout
    @param updated: the field whose type changed, in the updated layout
    """
    if ch.kind == 'visibility change':
        return f"Bad upgrade {describe_transition(ch.original, ch.updated)}\nDifferent visibility"

    elif ch.kind in ('obvious mismatch', 'struct members', 'enum members'):
        return f"Bad upgrade {describe_transition(ch.original, ch.updated)}"

    elif ch.kind == 'enum resize':
        return f"Bad upgrade {describe_transition(ch.original, ch.updated)}\nDifferent representation sizes"

    elif ch.kind == 'underlying type':
        return f"Bad upgrade {describe_transition(ch.original, ch.updated)}\n" \
               f"{describe_underlying_transition(ch.original.item, ch.updated.item)}"

    elif ch.kind == 'mapping key':
        return f"In key of {ch.updated.item.label}" + itemize(explain_type_change(ch.inner, original, updated))

    elif ch.kind in ('mapping value', 'array value'):
        return f"In {ch.updated.item.label}" + itemize(explain_type_change(ch.inner, original, updated))

    elif ch.kind in ('array shrink', 'array grow'):
        original_size = array_size(ch.original)
        updated_size = array_size(ch.updated)
        if is_gap(original):
            expected_size = expected_gap_size(original, updated)
            if ch.kind == 'array grow':
                note = "Size cannot increase here"
            elif expected_size is None:
                note = "Size cannot decrease"
            else:
                note = f"Expected gap resize to {expected_size}"
            return f"Bad storage gap resize from {original_size} to {updated_size}\n{note}"
        note = "Size cannot decrease" if ch.kind == 'array shrink' else "Size cannot increase here"
        return f"Bad array resize from {original_size} to {updated_size}\n{note}"

    elif ch.kind == 'array dynamic':
        if (ch.original.tail or '').startswith('dyn'):
            original_size, updated_size = 'dynamic', 'fixed'
        else:
            original_size, updated_size = 'fixed', 'dynamic'
        return f"Bad upgrade from {original_size} to {updated_size} size array"

    elif ch.kind == 'missing members':
        type_kind = re.sub(r"^t_", "", ch.updated.head)
        return f"Insufficient data to compare {type_kind}s\n" \
               f"Manually assess compatibility, then use option `unsafeAllowCustomTypes: true`"

    elif ch.kind == 'unknown':
        return f"Unknown type {ch.updated.item.label}"

    raise ImplementationError(f"Unexpected type change {ch.kind}")


def array_size(parsed: Any) -> str:
    match = re.match(r"^\d+", parsed.tail or '')
    if match is None:
        raise ImplementationError(f"Expected a fixed size array, got {parsed.id}")
    return match.group(0)


def get_all_type_changes(root: Any) -> List[Any]:
    """
    @return root and the type changes nested in it, through array and mapping values and struct members
    """
    changes = [root]
    for ch in changes:
        if ch.kind in ('mapping value', 'array value'):
            changes.append(ch.inner)
        elif ch.kind == 'struct members':
            changes.extend(op.change for op in ch.ops if op.kind == 'typechange')
    return changes


def explain_type_change_details(ch: Any) -> Optional[str]:
    if ch.kind == 'struct members':
        member_ops = [explain_storage_operation(op, STRUCT_CONTEXT, ch.allow_append)
                      for i, op in enumerate(ch.ops) if op.kind != 'layoutchange' or i == 0]
        return f"In {ch.updated.item.label}" + itemize(*member_ops)
    elif ch.kind == 'enum members':
        return f"In {ch.updated.item.label}" + itemize(*[explain_enum_operation(op) for op in ch.ops])
    return None


def explain_enum_operation(op: Any) -> str:
    if op.kind == 'replace':
        return f"Replaced `{op.original}` with `{op.updated}`"
    return explain_basic_operation(op, lambda member: member)


def explain_basic_operation(op: Any, get_name: Callable[[Any], str]) -> str:
    if op.kind == 'delete':
        return f"Deleted `{get_name(op.original)}`"
    elif op.kind == 'insert':
        return f"Inserted `{get_name(op.updated)}`"
    elif op.kind == 'append':
        return f"Added `{get_name(op.updated)}`"
    raise ImplementationError(f"Unexpected operation {op.kind}")


def describe_transition(original: Any, updated: Any) -> str:
    if original.item.label == updated.item.label:
        return f"to {updated.item.label}"
    return f"from {original.item.label} to {updated.item.label}"


def describe_underlying_transition(original: Any, updated: Any) -> str:
    if original.underlying is not None and updated.underlying is not None and \
            original.underlying != updated.underlying:
        return f"Underlying type changed from {re.sub(r'^t_', '', original.underlying)} to " \
               f"{re.sub(r'^t_', '', updated.underlying)}"
    return f"Number of bytes changed from {original.number_of_bytes} to {updated.number_of_bytes}"


def describe_layout_transition(change: Any) -> str:
    res = []
    for name, transition in (("Slot", change.slot), ("Offset", change.offset), ("Number of bytes", change.bytes)):
        if transition is not None:
            res.append(f"{name} changed from {transition[0]} to {transition[1]}")
    return itemize(*res)
