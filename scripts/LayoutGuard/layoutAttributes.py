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

import argparse
import sys
from dataclasses import dataclass, field
from enum import auto
from typing import Any, Callable, Dict, List, NoReturn, Optional

from rich.console import Console

from Shared import layoutUtils as Util
from Shared import layoutValidateFuncs as Vf

STORE_TRUE = 'store_true'
MULTIPLE_OCCURRENCES = '*'
ONE_OR_MORE_OCCURRENCES = '+'


def default_validation(x: Any) -> Any:
    return x


class LayoutGuardArgParser(argparse.ArgumentParser):
    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)

    def error(self, message: str) -> NoReturn:
        prefix = 'unrecognized arguments: '
        is_single_dash_flag = False

        if message.startswith(prefix):
            flag = message[len(prefix):].split()[0]
            if len(flag) > 1 and flag[0] == '-' and flag[1] != '-':
                is_single_dash_flag = True
        self.print_help(sys.stderr)
        if is_single_dash_flag:
            Console().print(f"{Util.NEW_LINE}[bold red]Please remember, CLI flags should be preceded with "
                            f"double dashes!{Util.NEW_LINE}")
        raise Util.LayoutGuardUserInputError(message)


class AttrArgType(Util.NoValEnum):
    STRING = auto()
    BOOLEAN = auto()
    LIST = auto()


@dataclass
class AttributeDefinition:
    attr_validation_func: Callable = default_validation
    help_msg: str = Util.SUPPRESS_HELP_MSG
    # args for argparse's add_attribute passed as is
    argparse_args: Dict[str, Any] = field(default_factory=dict)
    arg_type: AttrArgType = AttrArgType.STRING
    default_desc: Optional[str] = None  # A description of the default behavior
    name: str = ''  # the name of the CONST will be set during set_attribute_list()

    def get_conf_key(self) -> str:
        return self.name.lower()

    def get_flag(self) -> str:
        dashes = '' if self.name == 'FILES' else '--'
        return dashes + str(self.name.lower())

    def validate_value(self, value: Any, cli_flag: bool = True) -> None:
        values = value if self.arg_type == AttrArgType.LIST and isinstance(value, list) else [value]
        for v in values:
            try:
                self.attr_validation_func(v)
            except Util.LayoutGuardUserInputError as e:
                msg = f"attribute/flag '{self.name.lower()}': {e}"
                if cli_flag and isinstance(v, str) and v and v.strip()[0] == '-':
                    flag_error = f'{v}: Please remember, CLI flags should be preceded with double dashes. ' \
                                 f'{Util.NEW_LINE}For more help run the tool with the option --help'
                    msg = flag_error + msg
                raise Util.LayoutGuardUserInputError(msg) from None


class Attributes:

    _attribute_list: List[AttributeDefinition] = []
    _all_conf_names: List[str] = []

    @classmethod
    def attribute_list(cls) -> List[AttributeDefinition]:
        if not cls._attribute_list:
            cls.set_attribute_list()
        return cls._attribute_list

    @classmethod
    def all_conf_names(cls) -> List[str]:
        if not cls._attribute_list:
            cls.set_attribute_list()
        return cls._all_conf_names

    @classmethod
    def set_attribute_list(cls) -> None:
        def set_name(name: str) -> AttributeDefinition:
            v = getattr(cls, name)
            v.name = name
            return v

        if not cls._attribute_list:
            cls._attribute_list = [set_name(name) for name in dir(cls) if name.isupper()]
            cls._all_conf_names = [attr.name.lower() for attr in cls.attribute_list()]


class LayoutGuardAttributes(Attributes):
    FILES = AttributeDefinition(
        attr_validation_func=Vf.validate_input_file,
        arg_type=AttrArgType.LIST,
        help_msg="The original and the updated storage layout files, or a conf file",
        default_desc="",
        argparse_args={
            'nargs': MULTIPLE_OCCURRENCES
        }
    )

    UNSAFE_ALLOW_CUSTOM_TYPES = AttributeDefinition(
        attr_validation_func=Vf.validate_bool,
        arg_type=AttrArgType.BOOLEAN,
        help_msg="Assume structs and enums whose members are unknown are compatible",
        default_desc="Report structs and enums whose members are unknown",
        argparse_args={
            'action': STORE_TRUE
        }
    )

    UNSAFE_ALLOW_RENAMES = AttributeDefinition(
        attr_validation_func=Vf.validate_bool,
        arg_type=AttrArgType.BOOLEAN,
        help_msg="Do not report renamed variables",
        default_desc="Report renamed variables",
        argparse_args={
            'action': STORE_TRUE
        }
    )

    UNSAFE_SKIP_STORAGE_CHECK = AttributeDefinition(
        attr_validation_func=Vf.validate_bool,
        arg_type=AttrArgType.BOOLEAN,
        help_msg="Skip the storage layout check",
        default_desc="Compare the storage layouts",
        argparse_args={
            'action': STORE_TRUE
        }
    )

    SUMMARY = AttributeDefinition(
        attr_validation_func=Vf.validate_bool,
        arg_type=AttrArgType.BOOLEAN,
        help_msg="Print a table of the reported operations of each compared layout",
        default_desc="Only the incompatibilities are printed",
        argparse_args={
            'action': STORE_TRUE
        }
    )

    NO_COLOR = AttributeDefinition(
        attr_validation_func=Vf.validate_bool,
        arg_type=AttrArgType.BOOLEAN,
        help_msg="Do not use colors in the report",
        default_desc="Source locations are printed in bold when the terminal supports it",
        argparse_args={
            'action': STORE_TRUE
        }
    )

    DEBUG = AttributeDefinition(
        arg_type=AttrArgType.BOOLEAN,
        argparse_args={
            'action': STORE_TRUE
        }
    )

    SHOW_DEBUG_TOPICS = AttributeDefinition(
        arg_type=AttrArgType.BOOLEAN,
        argparse_args={
            'action': STORE_TRUE
        }
    )

    DEBUG_TOPICS = AttributeDefinition(
        attr_validation_func=Vf.validate_debug_topic,
        arg_type=AttrArgType.LIST,
        argparse_args={
            'nargs': ONE_OR_MORE_OCCURRENCES
        }
    )


def get_argparser() -> argparse.ArgumentParser:
    def formatter(prog: Any) -> argparse.HelpFormatter:
        return argparse.HelpFormatter(prog, max_help_position=100, width=200)

    parser = LayoutGuardArgParser(prog="layoutGuard", allow_abbrev=False, formatter_class=formatter,
                                  description="Checks that an updated storage layout can safely replace the "
                                              "original one")
    for arg in LayoutGuardAttributes.attribute_list():
        help_msg = arg.help_msg
        if help_msg != Util.SUPPRESS_HELP_MSG and arg.default_desc:
            help_msg += f". Default: {arg.default_desc}"
        parser.add_argument(arg.get_flag(), help=help_msg, **arg.argparse_args)
    return parser


def check_attribute_values(context: argparse.Namespace, cli_flag: bool = True) -> None:
    for attr in LayoutGuardAttributes.attribute_list():
        value = getattr(context, attr.get_conf_key(), None)
        if value is not None and value is not False:
            attr.validate_value(value, cli_flag)


def get_args(args_list: List[str]) -> argparse.Namespace:
    """
    Compiles an argparse.Namespace from the given list of command line arguments
    """
    parser = get_argparser()
    context = parser.parse_args(args_list)
    check_attribute_values(context)
    return context
