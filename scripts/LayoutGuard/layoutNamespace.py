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

from Crypto.Hash import keccak

from LayoutGuard.layoutAnnotations import STORAGE_LOCATION_TAG, get_annotation_args, get_documentation, \
    has_annotation_tag
from LayoutGuard.layoutAstTypes import CompilationContext, load_layout_type, type_descriptions
from LayoutGuard.layoutNodeFilters import NodeFilters
from LayoutGuard.layoutSrcDecoder import SrcDecoder
from LayoutGuard.layoutType import StorageItem, StorageLayout, normalize_type_identifier
from Shared.layoutUtils import ImplementationError, UpgradesError

namespace_logger = logging.getLogger("namespace")

ERC7201_PREFIX = "erc7201:"

"""
A struct annotated with @custom:storage-location defines a namespace: a storage region at a location derived from
the namespace id, whose layout is the layout of the struct members.
Members and their positions are taken from the namespaced compilation when there is one, since only there the
compiler lays out the namespace structs. Source locations always come from the original compilation, so that they
point to the sources the user wrote.
"""


class DuplicateNamespaceError(UpgradesError):
    def __init__(self, namespace_id: str, contract_name: str, srcs: List[str]) -> None:
        super().__init__(
            f"Namespace {namespace_id} is defined multiple times for contract {contract_name}",
            lambda: f"The namespace {namespace_id} was found in structs at the following locations:\n"
                    f"- " + "\n- ".join(srcs) + "\n\n"
                    f"Use a unique namespace id for each struct annotated with "
                    f"'@custom:storage-location erc7201:<NAMESPACE_ID>' in your contract and its inherited contracts."
        )
        self.namespace_id = namespace_id
        self.srcs = srcs


class NamespaceWithSrcs:
    """
    The items of a namespace, and the locations of all the structs that define it
    """
    def __init__(self, namespace: List[StorageItem], src: str) -> None:
        self.namespace = namespace
        self.srcs = [src]


def keccak256(data: bytes) -> bytes:
    f_hash = keccak.new(digest_bits=256)
    f_hash.update(data)
    return f_hash.digest()


def erc7201_location(namespace_id: str) -> int:
    """
    @return the base slot of the namespace, keccak256(abi.encode(uint256(keccak256(id)) - 1)) & ~bytes32(uint256(0xff))
    """
    inner = (int.from_bytes(keccak256(namespace_id.encode("utf-8")), "big") - 1) % (1 << 256)
    return int.from_bytes(keccak256(inner.to_bytes(32, "big")), "big") & ~0xff


def get_namespace_slot(storage_location: str) -> Optional[int]:
    """
    @return the base slot of a storage location of the erc7201 formula, None for other formulas
    """
    if storage_location.startswith(ERC7201_PREFIX):
        return erc7201_location(storage_location[len(ERC7201_PREFIX):])
    return None


def get_storage_location_annotation(node: Dict[str, Any]) -> Optional[str]:
    """
    @return the argument of the @custom:storage-location annotation of the node, e.g. erc7201:my.namespace, or None
            if it has none
    """
    doc = get_documentation(node)
    if not has_annotation_tag(doc, STORAGE_LOCATION_TAG):
        return None
    args = get_annotation_args(doc, STORAGE_LOCATION_TAG)
    if len(args) != 1:
        raise UpgradesError(f"@custom:{STORAGE_LOCATION_TAG} annotation must have exactly one argument")
    return args[0]


def get_referenced_contract(context: CompilationContext, referenced_id: int) -> Dict[str, Any]:
    if context.contract_def["id"] == referenced_id:
        return context.contract_def
    return context.deref(NodeFilters.UserDefinedTypeDefNode.CONTRACT.value, referenced_id)


def get_linearized_contracts(context: CompilationContext) -> List[Dict[str, Any]]:
    base_ids = context.contract_def.get("linearizedBaseContracts", [context.contract_def["id"]])
    return [get_referenced_contract(context, contract_id) for contract_id in base_ids]


def get_original_struct(struct_canonical_name: str, orig_contract_def: Dict[str, Any]) -> Dict[str, Any]:
    for node in filter(NodeFilters.is_struct_definition, orig_contract_def.get("nodes", [])):
        if node.get("canonicalName") == struct_canonical_name:
            return node
    raise UpgradesError(f"Could not find original source location for namespace struct with name "
                        f"{struct_canonical_name} from contract {orig_contract_def['name']}")


def get_original_member_src(struct_canonical_name: str, member_label: str, orig_contract_def: Dict[str, Any]) -> str:
    struct = get_original_struct(struct_canonical_name, orig_contract_def)
    for member in struct.get("members", []):
        if member.get("name") == member_label:
            return member["src"]
    raise UpgradesError(f"Could not find original source location for namespace struct with name "
                        f"{struct_canonical_name} and member {member_label}")


def find_layout_struct_member(solc_types: Dict[str, Any], struct_canonical_name: str,
                              member_label: str) -> Optional[Dict[str, Any]]:
    """
    @return the member of the struct with the given name in the types of a compiler storage layout
    """
    struct_type = next((t for t in solc_types.values() if t.get("label") == f"struct {struct_canonical_name}"), None)
    if struct_type is None or struct_type.get("members") is None:
        return None
    for member in struct_type["members"]:
        if isinstance(member, str):
            raise ImplementationError(f"Unexpected enum member in struct {struct_canonical_name}")
        if member.get("label") == member_label:
            return member
    return None


def get_namespaced_storage_items(node: Dict[str, Any], decode_src: SrcDecoder, layout: StorageLayout,
                                 context: CompilationContext, orig_contract_def: Dict[str, Any]) -> List[StorageItem]:
    solc_types = (context.storage_layout or {}).get("types") or {}
    storage_items = []
    for member in node.get("members", []):
        item = StorageItem(
            contract=context.contract_def["name"],
            label=member["name"],
            type=normalize_type_identifier(type_descriptions(member)[0]),
            src=decode_src({"src": get_original_member_src(node["canonicalName"], member["name"],
                                                           orig_contract_def)}),
        )
        layout_member = find_layout_struct_member(solc_types, node["canonicalName"], member["name"])
        if layout_member is not None and layout_member.get("slot") is not None and \
                layout_member.get("offset") is not None:
            item.slot = str(layout_member["slot"])
            item.offset = int(layout_member["offset"])
        storage_items.append(item)
        load_layout_type(member.get("typeName"), layout, context.deref)
    return storage_items


def add_contract_namespaces_with_srcs(namespaces: Dict[str, NamespaceWithSrcs], decode_src: SrcDecoder,
                                      layout: StorageLayout, context: CompilationContext,
                                      orig_contract_def: Dict[str, Any]) -> None:
    """
    Adds the namespaces defined in the contract of the context, not including inherited contracts
    """
    for node in filter(NodeFilters.is_struct_definition, context.contract_def.get("nodes", [])):
        storage_location = get_storage_location_annotation(node)
        if storage_location is None:
            continue
        orig_src = decode_src(get_original_struct(node["canonicalName"], orig_contract_def))
        if storage_location in namespaces:
            namespaces[storage_location].srcs.append(orig_src)
        else:
            namespace_logger.debug(f"Found namespace {storage_location} in {context.contract_def['name']}")
            namespaces[storage_location] = NamespaceWithSrcs(
                get_namespaced_storage_items(node, decode_src, layout, context, orig_contract_def), orig_src)


def load_namespaces(decode_src: SrcDecoder, layout: StorageLayout, orig_context: CompilationContext,
                    namespaced_context: Optional[CompilationContext] = None) -> None:
    """
    Loads the namespaces of a contract and its base contracts into the layout, together with the types they use.
    @param orig_context: the original compilation, where source locations are looked up
    @param namespaced_context: the namespaced compilation, if there is one. Namespace members and positions are
           looked up there.
    @raise DuplicateNamespaceError if a namespace is defined more than once for the contract
    """
    orig_linearized = get_linearized_contracts(orig_context)
    if namespaced_context is not None:
        linearized = get_linearized_contracts(namespaced_context)
        if len(linearized) != len(orig_linearized):
            raise ImplementationError(f"Namespaced compilation of {orig_context.contract_def['name']} has a "
                                      f"different inheritance")
        context = namespaced_context
    else:
        linearized = orig_linearized
        context = orig_context

    namespaces_with_srcs: Dict[str, NamespaceWithSrcs] = {}
    for contract_def, orig_contract_def in zip(linearized, orig_linearized):
        contract_context = CompilationContext(context.deref, contract_def, context.storage_layout)
        add_contract_namespaces_with_srcs(namespaces_with_srcs, decode_src, layout, contract_context,
                                          orig_contract_def)

    namespaces = {}
    for namespace_id, namespace_with_srcs in namespaces_with_srcs.items():
        if len(namespace_with_srcs.srcs) > 1:
            contract_name = orig_context.contract_def.get("canonicalName") or orig_context.contract_def["name"]
            raise DuplicateNamespaceError(namespace_id, contract_name, namespace_with_srcs.srcs)
        namespaces[namespace_id] = namespace_with_srcs.namespace
    layout.namespaces = namespaces
