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
from typing import Any, Dict, Optional, Tuple

from LayoutGuard.layoutAnnotations import get_retyped_renamed
from LayoutGuard.layoutAstDereferencer import AstDereferencer
from LayoutGuard.layoutAstTypes import CompilationContext, load_layout_type, type_descriptions
from LayoutGuard.layoutNamespace import load_namespaces
from LayoutGuard.layoutNodeFilters import NodeFilters
from LayoutGuard.layoutSrcDecoder import SrcDecoder
from LayoutGuard.layoutType import StorageField, StorageItem, StorageLayout, TypeItem, normalize_type_identifier
from Shared.layoutUtils import ImplementationError

ast_logger = logging.getLogger("ast")


def get_origin_contract(contract_def: Dict[str, Any], ast_id: Optional[int],
                        deref: AstDereferencer) -> Optional[Tuple[Dict[str, Any], str]]:
    """
    @return the declaration of the state variable with the given id, and the name of the contract declaring it,
            looking in the contract and all its base contracts
    """
    for contract_id in contract_def.get("linearizedBaseContracts", [contract_def["id"]]):
        parent_contract = deref(NodeFilters.UserDefinedTypeDefNode.CONTRACT.value, contract_id)
        var_decl = next((n for n in parent_contract.get("nodes", []) if n.get("id") == ast_id), None)
        if var_decl is not None and NodeFilters.is_variable_declaration(var_decl):
            return var_decl, parent_contract["name"]
    return None


def solc_types_to_type_items(solc_types: Optional[Dict[str, Any]]) -> Dict[str, TypeItem]:
    """
    Keeps from the types of a compiler storage layout what we need: labels, sizes, and positions of struct members
    """
    type_items = {}
    for type_id, solc_type in (solc_types or {}).items():
        members = solc_type.get("members")
        type_items[type_id] = TypeItem(
            label=solc_type["label"],
            members=None if members is None else [
                m if isinstance(m, str) else StorageField(label=m["label"], type=m["type"], slot=str(m["slot"]),
                                                          offset=int(m["offset"]))
                for m in members
            ],
            number_of_bytes=None if solc_type.get("numberOfBytes") is None else str(solc_type["numberOfBytes"]),
        )
    return type_items


def extract_storage_layout(contract_def: Dict[str, Any], decode_src: SrcDecoder, deref: AstDereferencer,
                           storage_layout: Optional[Dict[str, Any]] = None,
                           namespaced_context: Optional[CompilationContext] = None) -> StorageLayout:
    """
    Builds the storage layout of a contract.
    @param storage_layout: the storageLayout output of the compiler for this contract. When given, the layout
           covers the variables of the contract and of its base contracts, with their positions. Otherwise, it only
           has the variables declared in the contract itself, without positions.
    @param namespaced_context: the compilation of a version of the sources where namespace structs are used as
           state variables, so that the compiler computes the positions of their members
    """
    layout = StorageLayout()

    if storage_layout is not None:
        # positions of namespace struct members are only found in the types of the namespaced compilation
        namespaced_types = {} if namespaced_context is None or namespaced_context.storage_layout is None else \
            namespaced_context.storage_layout.get("types")
        layout.types = solc_types_to_type_items(namespaced_types)
        layout.types.update(solc_types_to_type_items(storage_layout.get("types")))

        for storage in storage_layout.get("storage", []):
            origin = get_origin_contract(contract_def, storage.get("astId"), deref)
            if origin is None:
                raise ImplementationError(f"Did not find variable declaration node for '{storage['label']}'")
            var_decl, contract = origin
            retyped_from, renamed_from = get_retyped_renamed(var_decl)
            load_layout_type(var_decl.get("typeName"), layout, deref)
            layout.storage.append(StorageItem(
                contract=contract,
                label=storage["label"],
                type=storage["type"],
                src=decode_src(var_decl),
                slot=str(storage["slot"]),
                offset=int(storage["offset"]),
                retyped_from=retyped_from,
                renamed_from=renamed_from,
            ))
        layout.flat = True
    else:
        for var_decl in filter(NodeFilters.is_state_variable, contract_def.get("nodes", [])):
            retyped_from, renamed_from = get_retyped_renamed(var_decl)
            layout.storage.append(StorageItem(
                contract=contract_def["name"],
                label=var_decl["name"],
                type=normalize_type_identifier(type_descriptions(var_decl)[0]),
                src=decode_src(var_decl),
                retyped_from=retyped_from,
                renamed_from=renamed_from,
            ))
            load_layout_type(var_decl.get("typeName"), layout, deref)

    ast_logger.debug(f"Extracted {len(layout.storage)} variables and {len(layout.types)} types "
                     f"from {contract_def['name']}")

    load_namespaces(decode_src, layout, CompilationContext(deref, contract_def, storage_layout), namespaced_context)
    return layout
