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
import logging
from pathlib import Path
from typing import Any, Dict

import json5

from LayoutGuard.layoutAttributes import LayoutGuardAttributes, check_attribute_values
from LayoutGuard.layoutOptions import ValidationOptions
from LayoutGuard.layoutType import StorageLayout
from Shared import layoutUtils as Util

"""
This file is responsible for reading configuration files and the storage layout files the tool compares.
"""

config_logger = logging.getLogger("config")


def is_conf_file(file: str) -> bool:
    return Path(file).suffix == Util.CONF_EXT


def read_from_conf_file(context: argparse.Namespace) -> None:
    """
    If the file in the command line is a conf file, read data from the configuration file and add each key to the
    context namespace if the key was not set in the command line (command line shadows conf data).
    @param context: A namespace containing options from the command line
    """
    conf_file_path = Path(context.files[0])
    if conf_file_path.suffix != Util.CONF_EXT:
        raise Util.ImplementationError(f"conf file must be of type .conf, instead got {conf_file_path}")

    with conf_file_path.open() as conf_file:
        try:
            configuration = json5.load(conf_file, allow_duplicate_keys=False)
        except ValueError as e:
            raise Util.LayoutGuardUserInputError(f"Error when reading {conf_file_path}: {str(e)}", e) from None
        try:
            check_conf_content(configuration, context)
        except Util.LayoutGuardUserInputError as e:
            raise Util.LayoutGuardUserInputError(f"Error when reading {conf_file_path}: {str(e)}", e) from None
        context.conf_file = str(conf_file_path)
        config_logger.debug(f"Read configuration from {conf_file_path}")


def check_conf_content(conf: Dict[str, Any], context: argparse.Namespace) -> None:
    """
    validating content read from the conf file
    Note: a command line definition trumps the definition in the file.
    @param conf: A json object in the conf file format
    @param context: A namespace containing options from the command line, if any
    """
    if not isinstance(conf, dict):
        raise Util.LayoutGuardUserInputError("the configuration must be a json object")

    for option in conf:
        if option not in LayoutGuardAttributes.all_conf_names():
            raise Util.LayoutGuardUserInputError(f"{option} appears in the conf file but is not a known attribute. ")
        if option == LayoutGuardAttributes.FILES.get_conf_key():
            continue
        val = getattr(context, option, None)
        if val is None or val is False:
            setattr(context, option, conf[option])
        elif val != conf[option]:
            cli_val = ' '.join(val) if isinstance(val, list) else str(val)
            conf_val = ' '.join(conf[option]) if isinstance(conf[option], list) else str(conf[option])
            config_logger.warning(f"Note: attribute {option} value in CLI ({cli_val}) overrides value stored in conf"
                                  f" file ({conf_val})")

    if 'files' not in conf:
        raise Util.LayoutGuardUserInputError("Mandatory 'files' attribute is missing from the configuration")

    context.files = conf['files']
    check_attribute_values(context, cli_flag=False)


def get_validation_options(context: argparse.Namespace) -> ValidationOptions:
    return ValidationOptions(
        unsafe_allow_custom_types=context.unsafe_allow_custom_types,
        unsafe_allow_renames=context.unsafe_allow_renames,
        unsafe_skip_storage_check=context.unsafe_skip_storage_check,
    )


def read_layout_file(file_name: str) -> StorageLayout:
    """
    Reads a storage layout, written in the format of StorageLayout.as_dict
    """
    try:
        return StorageLayout.from_dict(Util.read_json_file(Path(file_name)))
    except (ValueError, KeyError, TypeError) as e:
        raise Util.LayoutGuardUserInputError(f"{file_name} is not a valid storage layout file", e) from None
