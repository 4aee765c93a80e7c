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

from typing import Any, Dict

from Shared.layoutUtils import NoValEnum


class NodeFilters:

    class NodeType(NoValEnum):

        def is_this_node_type(self, node: Dict[str, Any]) -> bool:
            return node.get("nodeType") == self.value

    class TypeNameNode(NodeType):
        ELEMENTARY = "ElementaryTypeName"
        FUNCTION = "FunctionTypeName"
        USER_DEFINED = "UserDefinedTypeName"
        MAPPING = "Mapping"
        ARRAY = "ArrayTypeName"

    class UserDefinedTypeDefNode(NodeType):
        ENUM = "EnumDefinition"
        STRUCT = "StructDefinition"
        VALUE_TYPE = "UserDefinedValueTypeDefinition"
        CONTRACT = "ContractDefinition"

    @staticmethod
    def is_enum_definition(node: Dict[str, Any]) -> bool:
        return node["nodeType"] == "EnumDefinition"

    @staticmethod
    def is_struct_definition(node: Dict[str, Any]) -> bool:
        return node["nodeType"] == "StructDefinition"

    @staticmethod
    def is_user_defined_value_type_definition(node: Dict[str, Any]) -> bool:
        return node["nodeType"] == "UserDefinedValueTypeDefinition"

    @staticmethod
    def is_contract_definition(node: Dict[str, Any]) -> bool:
        return node["nodeType"] == "ContractDefinition"

    @staticmethod
    def is_variable_declaration(node: Dict[str, Any]) -> bool:
        return node["nodeType"] == "VariableDeclaration"

    @staticmethod
    def is_state_variable(node: Dict[str, Any]) -> bool:
        """
        A variable declared directly in a contract that occupies storage, i.e. neither constant nor immutable
        """
        return NodeFilters.is_variable_declaration(node) and not node.get("constant", False) and \
            node.get("mutability") != "immutable"
