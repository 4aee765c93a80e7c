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
import logging
from typing import List
from pathlib import Path
from rich.console import Console

scripts_dir_path = Path(__file__).parent.resolve()  # containing directory
sys.path.insert(0, str(scripts_dir_path))
from Shared import layoutUtils as Util
from Shared.layoutLogging import LoggingManager

from LayoutGuard.layoutAttributes import get_args
from LayoutGuard.layoutConfigIO import get_validation_options, is_conf_file, read_from_conf_file, read_layout_file
from LayoutGuard.layoutOptions import with_validation_defaults
from LayoutGuard.layoutSummary import LayoutSummary
from LayoutGuard.layoutUpgrade import StorageUpgradeErrors, assert_storage_upgrade_safe, get_namespaced_report

# logger for issues regarding the general run flow.
run_logger = logging.getLogger("run")

EXIT_COMPATIBLE = 0
EXIT_INCOMPATIBLE = 1
EXIT_USER_ERROR = 2


def run_layout_guard(args: List[str]) -> int:
    """
    The main function that is responsible for the general flow of the script.
    The general flow is:
    1. Parse program arguments, and the conf file if one was given
    2. Read the original and the updated storage layouts
    3. Compare them, and print the report if they are incompatible
    @return the exit code
    """
    # If we are not in debug mode, we do not want to print the traceback in case of exceptions.
    if '--debug' not in args:  # We check manually, because we want no traceback in argument parsing exceptions
        sys.tracebacklimit = 0

    logging_manager = LoggingManager()
    try:
        context = get_args(args)
        logging_manager.set_log_level_and_format(debug=context.debug,
                                                 debug_topics=context.debug_topics,
                                                 show_debug_topics=context.show_debug_topics)

        files = context.files or []
        if files and is_conf_file(files[0]):
            if len(files) > 1:
                raise Util.LayoutGuardUserInputError("a conf file must be the only file given in the command line")
            read_from_conf_file(context)
            files = context.files

        if not isinstance(files, list) or len(files) != 2 or any(is_conf_file(f) for f in files):
            raise Util.LayoutGuardUserInputError("expected two storage layout files: the original layout and the "
                                                 "updated layout")

        run_logger.debug(f"Comparing {files[0]} to {files[1]}")
        original = read_layout_file(files[0])
        updated = read_layout_file(files[1])
        opts = with_validation_defaults(get_validation_options(context))

        if context.summary and not opts.unsafe_skip_storage_check:
            print(LayoutSummary(get_namespaced_report(original, updated, opts)).tabulate())

        try:
            assert_storage_upgrade_safe(original, updated, opts)
        except StorageUpgradeErrors as e:
            Console().print(f"[bold red]{e.message}\n")
            print(e.report.explain(color=not context.no_color))
            return EXIT_INCOMPATIBLE

        Util.print_completion_message(f"{files[1]} is compatible with {files[0]}")
        return EXIT_COMPATIBLE
    finally:
        logging_manager.tear_down()


def entry_point() -> None:
    """
    This function is the entry point of the layoutGuard console script, as well as this script.
    It is important this function gets no arguments!
    """
    try:
        sys.exit(run_layout_guard(sys.argv[1:]))
    except KeyboardInterrupt:
        Console().print("[bold red]\nInterrupted by user")
        sys.exit(EXIT_INCOMPATIBLE)
    except Util.LayoutGuardUserInputError as e:
        if e.orig:
            print(f"\n{str(e.orig).strip()}")
        if e.more_info:
            print(f"\n{e.more_info.strip()}")
        Console().print(f"[bold red]\n{e}\n")
        sys.exit(EXIT_USER_ERROR)
    except Util.UpgradesError as e:
        Console().print(f"[bold red]{e.message}")
        print(e.format_details())
        sys.exit(EXIT_INCOMPATIBLE)


if __name__ == '__main__':
    entry_point()
