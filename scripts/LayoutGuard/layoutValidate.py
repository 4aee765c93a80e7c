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
from dataclasses import dataclass, field
from typing import Any, Dict, List

from LayoutGuard.layoutAstDereferencer import AstDereferencer, find_all
from LayoutGuard.layoutAstTypes import type_descriptions
from LayoutGuard.layoutExtract import extract_storage_layout
from LayoutGuard.layoutNodeFilters import NodeFilters
from LayoutGuard.layoutSrcDecoder import SrcDecoder
from LayoutGuard.layoutType import StorageLayout
from Shared.layoutUtils import LayoutGuardUserInputError

ast_logger = logging.getLogger("ast")

EXTERNALLY_VISIBLE = ["external", "public"]
SERIALIZED_TYPE_DEF_NODE_TYPES = [t.value for t in NodeFilters.UserDefinedTypeDefNode]


@dataclass
class ContractValidation:
    """
    What we know about a compiled contract
    src: where the contract is defined
    inherit: fully qualified names of the base contracts, in linearization order (most derived first)
    methods: signatures of the external and public functions
    layout: the storage layout of the contract. Unless it is flat, it only has the variables declared in the contract
    """
    src: str
    inherit: List[str] = field(default_factory=list)
    methods: List[str] = field(default_factory=list)
    layout: StorageLayout = field(default_factory=StorageLayout)


# Keyed by fully qualified contract name, source:ContractName
ValidationRunData = Dict[str, ContractValidation]


def get_fully_qualified_name(source: str, contract_name: str) -> str:
    return f"{source}:{contract_name}"


def serialize_type_name(type_name: Dict[str, Any], deref: AstDereferencer) -> str:
    """
    @return the canonical ABI name of a parameter type: structs are tuples, enums are uint8 and contracts are
            addresses
    """
    if NodeFilters.TypeNameNode.USER_DEFINED.is_this_node_type(type_name):
        type_def = deref(SERIALIZED_TYPE_DEF_NODE_TYPES, type_name["referencedDeclaration"])
        if NodeFilters.is_struct_definition(type_def):
            return "(" + ",".join(serialize_type_name(m["typeName"], deref) for m in type_def["members"]) + ")"
        elif NodeFilters.is_enum_definition(type_def):
            return "uint8"
        elif NodeFilters.is_contract_definition(type_def):
            return "address"
        return serialize_type_name(type_def["underlyingType"], deref)

    if NodeFilters.TypeNameNode.ARRAY.is_this_node_type(type_name):
        base = serialize_type_name(type_name["baseType"], deref)
        length = type_name.get("length")
        if length is None:
            return f"{base}[]"
        size = length.get("value")
        if size is None:
            # the length is a constant expression, the compiler has computed it for us
            size = re.findall(r"\[(\d+)\]", type_descriptions(type_name)[1])[-1]
        return f"{base}[{size}]"

    if NodeFilters.TypeNameNode.FUNCTION.is_this_node_type(type_name):
        return "function"

    _, type_string = type_descriptions(type_name)
    return re.sub(r" (payable|storage|memory|calldata|pointer|ref)\b", "", type_string)


def get_function_signature(fn_def: Dict[str, Any], deref: AstDereferencer) -> str:
    params = ",".join(serialize_type_name(p["typeName"], deref) for p in fn_def["parameters"]["parameters"])
    return f"{fn_def['name']}({params})"


def validate(solc_output: Dict[str, Any], decode_src: SrcDecoder) -> ValidationRunData:
    """
    Extracts the storage layout and the interface of every contract in the compiler output
    """
    validation: ValidationRunData = {}
    from_id: Dict[int, str] = {}
    inherit_ids: Dict[str, List[int]] = {}
    deref = AstDereferencer(solc_output)

    for source, source_data in solc_output.get("sources", {}).items():
        for contract_def in find_all(NodeFilters.UserDefinedTypeDefNode.CONTRACT.value, source_data.get("ast", {})):
            from_id[contract_def["id"]] = get_fully_qualified_name(source, contract_def["name"])

    for source, contracts in solc_output.get("contracts", {}).items():
        for contract_name in contracts:
            validation[get_fully_qualified_name(source, contract_name)] = ContractValidation(src=contract_name)

        source_data = solc_output.get("sources", {}).get(source)
        if source_data is None or "ast" not in source_data:
            raise LayoutGuardUserInputError(f"The compiler output has no AST for {source}")

        for contract_def in find_all(NodeFilters.UserDefinedTypeDefNode.CONTRACT.value, source_data["ast"]):
            key = get_fully_qualified_name(source, contract_def["name"])
            if key not in validation:
                continue

            ast_logger.debug(f"Validating {key}")
            inherit_ids[key] = contract_def.get("linearizedBaseContracts", [])[1:]
            contract_validation = validation[key]
            contract_validation.src = decode_src(contract_def)
            contract_validation.layout = extract_storage_layout(contract_def, decode_src, deref,
                                                                contracts[contract_def["name"]].get("storageLayout"))
            contract_validation.methods = [
                get_function_signature(fn_def, deref)
                for fn_def in find_all("FunctionDefinition", contract_def)
                if fn_def.get("visibility") in EXTERNALLY_VISIBLE
            ]

    for key, ids in inherit_ids.items():
        validation[key].inherit = [from_id[contract_id] for contract_id in ids]

    return validation


def get_storage_layout(data: ValidationRunData, fully_qualified_name: str) -> StorageLayout:
    """
    @return the layout of the contract, including the variables of its base contracts, most base first
    """
    if fully_qualified_name not in data:
        raise LayoutGuardUserInputError(f"Contract {fully_qualified_name} not found")
    contract = data[fully_qualified_name]
    if contract.layout.flat:
        return contract.layout

    layout = StorageLayout(
        storage=list(contract.layout.storage),
        types=dict(contract.layout.types),
        layout_version=contract.layout.layout_version,
        namespaces=contract.layout.namespaces,
    )
    for name in contract.inherit:
        if name not in data:
            continue
        base_layout = data[name].layout
        layout.storage[:0] = base_layout.storage
        for type_id, type_item in base_layout.types.items():
            layout.types.setdefault(type_id, type_item)
    return layout
