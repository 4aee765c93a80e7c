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
import sys
from typing import Callable, Dict, Iterable, List, Optional
from Shared.layoutUtils import red_text, orange_text

# Topics of the loggers of this tool, which can be selected with --debug_topics
LOGGED_TOPICS = ["ast", "config", "file", "namespace", "run", "storage"]

LEVEL_COLORS: Dict[int, Callable[[str], str]] = {
    logging.WARNING: orange_text,
    logging.ERROR: red_text,
    logging.CRITICAL: red_text,
}


class LevelFormatter(logging.Formatter):
    """
    Prefixes each message with its level name. Warnings and errors are colored when writing to a terminal.
    """
    def __init__(self, msg_fmt: str, colored: bool) -> None:
        super().__init__(msg_fmt)
        self.colored = colored

    def format(self, record: logging.LogRecord) -> str:
        level = record.levelname
        if self.colored and record.levelno in LEVEL_COLORS:
            level = LEVEL_COLORS[record.levelno](level)
        return f"{level}: {super().format(record)}"


class TopicFilter(logging.Filter):
    """
    Passes the records of the selected topics, and the warnings and errors of every topic
    """
    def __init__(self, topics: Iterable[str]) -> None:
        super().__init__()
        self.topics = {topic.strip() for topic in topics}

    def filter(self, record: logging.LogRecord) -> bool:
        return record.name in self.topics or record.levelno >= logging.WARNING


class LoggingManager:
    """
    Owns the stdout handler of the root logger for the duration of a single run.
    """

    def __init__(self) -> None:
        self.stdout_handler = logging.StreamHandler(stream=sys.stdout)

        self.orig_root_log_level = logging.root.level  # restored by tear_down()
        logging.root.setLevel(logging.NOTSET)
        logging.root.addHandler(self.stdout_handler)

        self.set_log_level_and_format()

    def set_log_level_and_format(self, debug: bool = False, debug_topics: Optional[List[str]] = None,
                                 show_debug_topics: bool = False) -> None:
        """
        @param debug: if true, debug messages are shown
        @param debug_topics: Ignored unless debugging. Only debug messages of the loggers of those topics are shown.
                             If it is None or an empty list, we show ALL topics.
        @param show_debug_topics: if true, each message is prefixed with the topic of the logger that sent it
        """
        base_message = "%(name)s - %(message)s" if show_debug_topics else "%(message)s"
        self.stdout_handler.setFormatter(LevelFormatter(base_message, colored=sys.stdout.isatty()))

        self.stdout_handler.setLevel(logging.DEBUG if debug else logging.INFO)

        for _filter in list(self.stdout_handler.filters):
            self.stdout_handler.removeFilter(_filter)
        if debug and debug_topics:
            self.stdout_handler.addFilter(TopicFilter(debug_topics))

    def tear_down(self) -> None:
        """
        Removes the stdout handler and restores the root logger to the level it had before this class was constructed
        """
        logging.root.setLevel(self.orig_root_log_level)
        logging.root.removeHandler(self.stdout_handler)
        self.stdout_handler.close()
