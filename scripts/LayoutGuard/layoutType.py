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

import dataclasses
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Union

from Shared.layoutUtils import ImplementationError

CURRENT_LAYOUT_VERSION = '1.2'

# Type heads of types that are always stored as a single value, even though their type id has arguments
VALUE_TYPE_HEADS = ('t_contract', 't_enum', 't_userDefinedValueType')


@dataclass
class StorageField:
    """
    A variable or a struct member, as it is laid out in storage.
    In a layout read from a compilation or from a file, type is a type id. After get_detailed_layout, it is a
    ParsedTypeDetailed.
    slot and offset are only known when the compiler computed the layout.
    """
    label: str
    type: Any
    src: Optional[str] = None
    slot: Optional[str] = None
    offset: Optional[int] = None
    retyped_from: Optional[str] = None
    renamed_from: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        as_dict: Dict[str, Any] = {"label": self.label, "type": self.type_id}
        if self.src is not None:
            as_dict["src"] = self.src
        if self.slot is not None:
            as_dict["slot"] = self.slot
        if self.offset is not None:
            as_dict["offset"] = self.offset
        if self.retyped_from is not None:
            as_dict["retypedFrom"] = self.retyped_from
        if self.renamed_from is not None:
            as_dict["renamedFrom"] = self.renamed_from
        return as_dict

    @property
    def type_id(self) -> str:
        return self.type.id if isinstance(self.type, ParsedTypeId) else self.type

    @staticmethod
    def field_args_from_dict(d: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "label": d["label"],
            "type": d["type"],
            "src": d.get("src"),
            "slot": None if d.get("slot") is None else str(d["slot"]),
            "offset": None if d.get("offset") is None else int(d["offset"]),
            "retyped_from": d.get("retypedFrom"),
            "renamed_from": d.get("renamedFrom"),
        }

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> 'StorageField':
        return StorageField(**StorageField.field_args_from_dict(d))


@dataclass
class StorageItem(StorageField):
    """
    A state variable, together with the name of the contract that declares it
    """
    contract: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        as_dict: Dict[str, Any] = {}
        if self.contract is not None:
            as_dict["contract"] = self.contract
        as_dict.update(StorageField.as_dict(self))
        return as_dict

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> 'StorageItem':
        return StorageItem(contract=d.get("contract"), **StorageField.field_args_from_dict(d))


Members = List[Union[StorageField, str]]


@dataclass
class TypeItem:
    """
    Information about a type referenced by the layout. members are struct members, or enum member names, and are
    None when the definition of the type could not be resolved.
    """
    label: str
    members: Optional[Members] = None
    number_of_bytes: Optional[str] = None
    underlying: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        as_dict: Dict[str, Any] = {"label": self.label}
        if self.members is not None:
            as_dict["members"] = [m if isinstance(m, str) else m.as_dict() for m in self.members]
        if self.number_of_bytes is not None:
            as_dict["numberOfBytes"] = self.number_of_bytes
        if self.underlying is not None:
            as_dict["underlying"] = self.underlying
        return as_dict

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> 'TypeItem':
        members = d.get("members")
        return TypeItem(
            label=d["label"],
            members=None if members is None else [m if isinstance(m, str) else StorageField.from_dict(m)
                                                  for m in members],
            number_of_bytes=None if d.get("numberOfBytes") is None else str(d["numberOfBytes"]),
            underlying=d.get("underlying"),
        )


@dataclass
class StorageLayout:
    storage: List[StorageItem] = field(default_factory=list)
    types: Dict[str, TypeItem] = field(default_factory=dict)
    layout_version: Optional[str] = CURRENT_LAYOUT_VERSION
    flat: bool = False
    namespaces: Optional[Dict[str, List[StorageItem]]] = None

    def as_dict(self) -> Dict[str, Any]:
        as_dict: Dict[str, Any] = {
            "storage": [item.as_dict() for item in self.storage],
            "types": {type_id: item.as_dict() for type_id, item in self.types.items()},
        }
        if self.layout_version is not None:
            as_dict["layoutVersion"] = self.layout_version
        as_dict["flat"] = self.flat
        if self.namespaces is not None:
            as_dict["namespaces"] = {ns: [item.as_dict() for item in items] for ns, items in self.namespaces.items()}
        return as_dict

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> 'StorageLayout':
        namespaces = d.get("namespaces")
        return StorageLayout(
            storage=[StorageItem.from_dict(item) for item in d.get("storage", [])],
            types={type_id: TypeItem.from_dict(item) for type_id, item in d.get("types", {}).items()},
            layout_version=d.get("layoutVersion"),
            flat=d.get("flat", False),
            namespaces=None if namespaces is None else {
                ns: [StorageItem.from_dict(item) for item in items] for ns, items in namespaces.items()
            },
        )


def is_current_layout_version(layout: Optional[StorageLayout]) -> bool:
    return layout is not None and layout.layout_version == CURRENT_LAYOUT_VERSION


@dataclass(eq=False)
class ParsedTypeId:
    """
    A type id split into its parts. For example t_array(t_uint256)10_storage has head t_array, args [t_uint256] and
    tail 10_storage. Function types keep their return types in rets.
    """
    id: str
    head: str
    args: Optional[List['ParsedTypeId']] = None
    tail: Optional[str] = None
    rets: Optional[List['ParsedTypeId']] = None


@dataclass(eq=False)
class ParsedTypeDetailed(ParsedTypeId):
    """
    A parsed type id together with the type information of the layout. Type graphs may be cyclic, so these objects
    are compared by identity.
    """
    item: TypeItem = field(default_factory=lambda: TypeItem(label=''))


def __split_list(type_id: str, start: int) -> Any:
    """
    Splits the comma separated list that starts right after the opening parenthesis at index start.
    @return the list of elements and the index right after the closing parenthesis
    """
    elements = []
    depth = 0
    element_start = start
    i = start
    while i < len(type_id):
        c = type_id[i]
        if c == '(':
            depth += 1
        elif c == ')' and depth > 0:
            depth -= 1
        elif c in ',)' and depth == 0:
            element = type_id[element_start:i]
            if element:
                elements.append(element)
            element_start = i + 1
            if c == ')':
                return elements, i + 1
        i += 1
    raise ImplementationError(f"Malformed type id {type_id}")


def parse_type_id(type_id: str) -> ParsedTypeId:
    open_args = type_id.find('(')
    if open_args == -1:
        return ParsedTypeId(id=type_id, head=type_id)

    head = type_id[:open_args]
    args, end = __split_list(type_id, open_args + 1)
    tail = type_id[end:] or None
    rets = None
    if tail is not None and tail.startswith('returns('):
        ret_ids, _ = __split_list(tail, len('returns('))
        rets = [parse_type_id(r) for r in ret_ids]
    return ParsedTypeId(id=type_id, head=head, args=[parse_type_id(a) for a in args], tail=tail, rets=rets)


# Type Identifiers in the AST are encoded so that they don't contain parentheses or commas, which have been
# substituted as follows:
#    (  ->  $_
#    )  ->  _$
#    ,  ->  _$_
# This is not a prefix-free code, so the regex looks ahead to make sure it gets the substitution right.
TYPE_ID_ENCODING_RE = re.compile(r"(\$_|_\$_|_\$)(?=(\$_|_\$_|_\$)*([^_$]|$))")
TYPE_ID_DECODING = {'$_': '(', '_$': ')', '_$_': ','}


def decode_type_identifier(type_identifier: str) -> str:
    return TYPE_ID_ENCODING_RE.sub(lambda m: TYPE_ID_DECODING[m.group(1)], type_identifier)


def normalize_type_identifier(type_identifier: str) -> str:
    """
    Some type identifiers contain a _storage_ptr suffix, but the _ptr part appears in some places and not others.
    We remove it to get consistent type ids from the different places where type information is available.
    """
    return re.sub(r"_storage_ptr\b", "_storage", decode_type_identifier(type_identifier))


def is_struct_members(members: Members) -> bool:
    return all(isinstance(m, StorageField) for m in members)


def is_enum_members(members: Members) -> bool:
    return all(isinstance(m, str) for m in members)


def is_value_type(parsed: ParsedTypeId) -> bool:
    return parsed.args is None or parsed.head in VALUE_TYPE_HEADS


def has_layout(f: StorageField) -> bool:
    item = f.type.item if isinstance(f.type, ParsedTypeDetailed) else None
    return f.slot is not None and f.offset is not None and item is not None and item.number_of_bytes is not None


def get_detailed_layout(layout: StorageLayout, storage: Optional[Sequence[StorageItem]] = None) -> List[StorageItem]:
    """
    Parses the type of every item of the layout (or of the given storage items, using the types of the layout) and
    attaches to each parsed type its type information, recursively.
    Every type id is parsed once, and the same ParsedTypeDetailed object is shared by all of its uses.
    """
    cache: Dict[str, ParsedTypeDetailed] = {}

    def add_details(parsed: ParsedTypeId) -> ParsedTypeDetailed:
        if parsed.id in cache:
            return cache[parsed.id]

        item = layout.types.get(parsed.id)
        if item is None:
            item = TypeItem(label=parsed.id)
        detailed = ParsedTypeDetailed(
            id=parsed.id,
            head=parsed.head,
            tail=parsed.tail,
            item=TypeItem(label=item.label, number_of_bytes=item.number_of_bytes, underlying=item.underlying),
        )
        # cached before recursing, since a type may refer to itself
        cache[parsed.id] = detailed

        if parsed.args is not None:
            detailed.args = [add_details(a) for a in parsed.args]
        if parsed.rets is not None:
            detailed.rets = [add_details(r) for r in parsed.rets]
        if item.members is not None:
            detailed.item.members = [m if isinstance(m, str) else with_details(m) for m in item.members]
        return detailed

    def with_details(f: Any) -> Any:
        return dataclasses.replace(f, type=add_details(parse_type_id(f.type)))

    items = layout.storage if storage is None else storage
    return [with_details(item) for item in items]
