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
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from LayoutGuard.layoutAstDereferencer import AstDereferencer, find_all
from LayoutGuard.layoutNodeFilters import NodeFilters
from LayoutGuard.layoutType import Members, StorageField, StorageLayout, TypeItem, normalize_type_identifier
from Shared.layoutUtils import ImplementationError

ast_logger = logging.getLogger("ast")

TYPE_NAME_NODE_TYPES = [t.value for t in NodeFilters.TypeNameNode]
REFERENCED_TYPE_DEF_NODE_TYPES = [NodeFilters.UserDefinedTypeDefNode.STRUCT.value,
                                  NodeFilters.UserDefinedTypeDefNode.ENUM.value,
                                  NodeFilters.UserDefinedTypeDefNode.VALUE_TYPE.value]


@dataclass
class CompilationContext:
    """
    A contract definition together with the means to resolve the AST nodes of its compilation, and the storage
    layout the compiler computed for it, if it did
    """
    deref: AstDereferencer
    contract_def: Dict[str, Any]
    storage_layout: Optional[Dict[str, Any]] = None


def type_descriptions(node: Dict[str, Any]) -> Tuple[str, str]:
    """
    @return the type identifier and the type string of a typed AST node
    """
    descriptions = node.get("typeDescriptions", {})
    type_identifier = descriptions.get("typeIdentifier")
    type_string = descriptions.get("typeString")
    if not isinstance(type_identifier, str) or not isinstance(type_string, str):
        raise ImplementationError(f"Missing type descriptions in node {node.get('id')}")
    return type_identifier, type_string


def get_type_members(type_def: Dict[str, Any]) -> Members:
    """
    @return the members of a struct as storage fields, without position, or the member names of an enum
    """
    if NodeFilters.is_struct_definition(type_def):
        return [StorageField(label=m["name"], type=normalize_type_identifier(type_descriptions(m)[0]), src=m["src"])
                for m in type_def["members"]]
    return [m["name"] for m in type_def["members"]]


def load_layout_type(type_name: Optional[Dict[str, Any]], layout: StorageLayout, deref: AstDereferencer) -> None:
    """
    Registers in the layout the type of type_name, and every type it refers to, recursively.
    Each type identifier is visited once, so recursive types are fine.
    A UserDefinedTypeName can also refer to a contract, we don't look into those.
    """
    if type_name is None:
        raise ImplementationError("Expected a type name")
    deref_user_defined_type = deref.with_types(REFERENCED_TYPE_DEF_NODE_TYPES)

    visited: Dict[str, Dict[str, Any]] = {}
    queue: List[Dict[str, Any]] = []

    def enqueue_type_names(root: Dict[str, Any]) -> None:
        for node in find_all(TYPE_NAME_NODE_TYPES, root):
            type_identifier, _ = type_descriptions(node)
            if type_identifier not in visited:
                visited[type_identifier] = node
                queue.append(node)

    enqueue_type_names(type_name)
    while queue:
        node = queue.pop(0)
        type_identifier, label = type_descriptions(node)
        type_id = normalize_type_identifier(type_identifier)
        if type_id not in layout.types:
            layout.types[type_id] = TypeItem(label=label)
        type_item = layout.types[type_id]

        if "referencedDeclaration" in node and not re.match(r"^t_contract\b", type_id):
            type_def = deref_user_defined_type(node["referencedDeclaration"])
            if NodeFilters.is_user_defined_value_type_definition(type_def):
                type_item.underlying = type_def["underlyingType"].get("typeDescriptions", {}).get("typeIdentifier")
            elif type_item.members is None:
                # the compiler's layout has no members for enums, so these come from the AST
                type_item.members = get_type_members(type_def)
            ast_logger.debug(f"Loaded definition of {type_id}")
            enqueue_type_names(type_def)
