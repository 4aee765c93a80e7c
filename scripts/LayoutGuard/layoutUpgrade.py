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
from typing import Any, Dict, List, Optional

from LayoutGuard.layoutCompare import StorageLayoutComparator
from LayoutGuard.layoutOptions import ValidationOptions, with_validation_defaults
from LayoutGuard.layoutReport import LayoutCompatibilityReport
from LayoutGuard.layoutType import StorageLayout, get_detailed_layout
from Shared.layoutUtils import UpgradesError

storage_logger = logging.getLogger("storage")


class StorageUpgradeErrors(UpgradesError):
    def __init__(self, report: LayoutCompatibilityReport) -> None:
        super().__init__("New storage layout is incompatible", lambda: report.explain())
        self.report = report


class NamespacedReport:
    """
    The comparison of the main layout, followed by the comparison of each namespace of the original layout
    """
    def __init__(self, main: LayoutCompatibilityReport, namespaces: Dict[str, LayoutCompatibilityReport]) -> None:
        self.main = main
        self.namespaces = namespaces

    def all_reports(self) -> List[LayoutCompatibilityReport]:
        return [self.main] + list(self.namespaces.values())

    def as_report(self) -> LayoutCompatibilityReport:
        """
        @return a single report with the ops of all the comparisons, in order
        """
        return LayoutCompatibilityReport([op for report in self.all_reports() for op in report.ops])


def get_namespaced_report(original: StorageLayout, updated: StorageLayout,
                          opts: Optional[ValidationOptions] = None,
                          comparator: Optional[StorageLayoutComparator] = None) -> NamespacedReport:
    """
    Compares the main layouts, and then each namespace of the original layout to the namespace with the same id in
    the updated layout.
    @raise UpgradesError if a namespace of the original layout is missing from the updated layout
    """
    opts = with_validation_defaults(opts)
    if comparator is None:
        comparator = StorageLayoutComparator(bool(opts.unsafe_allow_custom_types), bool(opts.unsafe_allow_renames))

    main = comparator.compare_layouts(get_detailed_layout(original), get_detailed_layout(updated))
    namespaces = {}
    for namespace_id, original_items in (original.namespaces or {}).items():
        updated_items = (updated.namespaces or {}).get(namespace_id)
        if updated_items is None:
            raise UpgradesError(f"Namespace {namespace_id} not found in updated layout",
                                lambda: f"Keep the namespace {namespace_id} in the updated contract, and keep "
                                        f"its existing variables")
        storage_logger.debug(f"Comparing namespace {namespace_id}")
        namespaces[namespace_id] = comparator.compare_layouts(get_detailed_layout(original, original_items),
                                                              get_detailed_layout(updated, updated_items))
    return NamespacedReport(main, namespaces)


def get_storage_upgrade_report(original: StorageLayout, updated: StorageLayout,
                               opts: Optional[ValidationOptions] = None) -> LayoutCompatibilityReport:
    opts = with_validation_defaults(opts)
    comparator = StorageLayoutComparator(bool(opts.unsafe_allow_custom_types), bool(opts.unsafe_allow_renames))
    report = get_namespaced_report(original, updated, opts, comparator).as_report()

    if comparator.has_allowed_unchecked_custom_types:
        storage_logger.warning("Potentially unsafe deployment: you are using `unsafeAllowCustomTypes` to force "
                               "approve structs or enums with missing data. Make sure you have manually checked "
                               "the storage layout for incompatibilities.")
    elif opts.unsafe_allow_custom_types:
        storage_logger.info("`unsafeAllowCustomTypes` is no longer necessary. Structs and enums are automatically "
                            "checked.")
    return report


def assert_storage_upgrade_safe(original: StorageLayout, updated: StorageLayout,
                                opts: Optional[ValidationOptions] = None) -> None:
    """
    @raise StorageUpgradeErrors if the updated layout is not compatible with the original one
    """
    opts = with_validation_defaults(opts)
    if opts.unsafe_skip_storage_check:
        storage_logger.warning("Skipping the storage layout check, as requested")
        return
    report = get_storage_upgrade_report(original, updated, opts)
    if not report.pass_:
        raise StorageUpgradeErrors(report)


def get_storage_upgrade_errors(original: StorageLayout, updated: StorageLayout,
                               opts: Optional[ValidationOptions] = None) -> List[Any]:
    """
    @return the incompatibilities found between the layouts, an empty list when the upgrade is safe
    """
    try:
        assert_storage_upgrade_safe(original, updated, opts)
    except StorageUpgradeErrors as e:
        return e.report.ops
    return []
