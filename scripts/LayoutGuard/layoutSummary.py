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

from typing import Any, List

import tabulate

from LayoutGuard.layoutNamespace import get_namespace_slot
from LayoutGuard.layoutReport import LayoutCompatibilityReport
from LayoutGuard.layoutUpgrade import NamespacedReport

MAIN_LAYOUT = "main"
NO_SLOT = "-"


class LayoutSummary:
    """
    A table of the operations reported for the main layout and for each namespace, one row per operation
    """

    _TABLE_HEADERS = ["Layout", "Base slot", "Operation", "Variable", "Location"]

    def __init__(self, report: NamespacedReport) -> None:
        self._rows: List[List[Any]] = []
        self._add_report(MAIN_LAYOUT, "0x0", report.main)
        for namespace_id, namespace_report in report.namespaces.items():
            slot = get_namespace_slot(namespace_id)
            self._add_report(namespace_id, NO_SLOT if slot is None else hex(slot), namespace_report)

    def _add_report(self, layout_name: str, base_slot: str, report: LayoutCompatibilityReport) -> None:
        if report.pass_:
            self._rows.append([layout_name, base_slot, "compatible", NO_SLOT, NO_SLOT])
        for op in report.ops:
            field = op.updated if hasattr(op, "updated") else op.original
            self._rows.append([layout_name, base_slot, op.kind, field.label, field.src or NO_SLOT])

    @property
    def rows(self) -> List[List[Any]]:
        return self._rows

    def tabulate(self) -> str:
        return tabulate.tabulate(self._rows, headers=LayoutSummary._TABLE_HEADERS, tablefmt='psql')
