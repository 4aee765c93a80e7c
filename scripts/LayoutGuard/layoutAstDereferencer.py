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
from typing import Any, Callable, Dict, Iterator, Optional, Sequence, Union

from Shared.layoutUtils import ImplementationError

# logger for building the abstract syntax tree
ast_logger = logging.getLogger("ast")

NodeTypes = Union[str, Sequence[str]]


def find_all(node_types: NodeTypes, root: Any,
             prune: Optional[Callable[[Dict[str, Any]], bool]] = None) -> Iterator[Dict[str, Any]]:
    """
    Yields every AST node under root (root included) whose nodeType is one of node_types, in breadth first order.
    @param prune: if given and it returns true for a node, the subtree under that node is not visited
    """
    wanted = {node_types} if isinstance(node_types, str) else set(node_types)
    queue = [root]
    while queue:
        pop = queue.pop(0)
        if isinstance(pop, dict):
            if "nodeType" in pop:
                if prune is not None and prune(pop):
                    continue
                if pop["nodeType"] in wanted:
                    yield pop
            queue.extend(pop.values())
        elif isinstance(pop, list):
            queue.extend(pop)


class AstDereferencer:
    """
    Resolves AST node ids to their nodes, for all the sources of a single solc output.
    The ASTs are flattened lazily, so that each node id is mapped to the dict object representing the node.
    """

    def __init__(self, solc_output: Dict[str, Any]) -> None:
        self.solc_output = solc_output
        self.__nodes: Optional[Dict[int, Dict[str, Any]]] = None

    def __collect_nodes(self) -> Dict[int, Dict[str, Any]]:
        container: Dict[int, Dict[str, Any]] = {}
        for source, source_data in self.solc_output.get("sources", {}).items():
            if "ast" not in source_data:
                ast_logger.warning(f"Source {source} does not contain an AST")
                continue
            queue = [source_data["ast"]]
            while queue:
                pop = queue.pop(0)
                if isinstance(pop, dict):
                    id_attr = pop.get("id")
                    if "nodeType" in pop and isinstance(id_attr, int):
                        container[id_attr] = pop
                    queue.extend(pop.values())
                elif isinstance(pop, list):
                    queue.extend(pop)
        ast_logger.debug(f"Collected {len(container)} AST nodes")
        return container

    @property
    def nodes(self) -> Dict[int, Dict[str, Any]]:
        if self.__nodes is None:
            self.__nodes = self.__collect_nodes()
        return self.__nodes

    def __call__(self, node_types: NodeTypes, node_id: int) -> Dict[str, Any]:
        """
        @return the node with the given id
        @raise ImplementationError if there is no such node, or it is not of one of node_types
        """
        wanted = {node_types} if isinstance(node_types, str) else set(node_types)
        node = self.nodes.get(node_id)
        if node is None:
            raise ImplementationError(f"No node with id {node_id} in the AST")
        if node["nodeType"] not in wanted:
            raise ImplementationError(f"Expected id {node_id} to be a node of type {', '.join(sorted(wanted))}, "
                                      f"got {node['nodeType']}")
        return node

    def with_types(self, node_types: NodeTypes) -> Callable[[int], Dict[str, Any]]:
        return lambda node_id: self(node_types, node_id)
