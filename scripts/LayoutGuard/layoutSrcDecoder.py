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

import os
from dataclasses import dataclass
from typing import Any, Callable, Dict

from Shared.layoutUtils import LayoutGuardUserInputError

# Maps an AST node (anything with a "src" entry) to a human readable location, e.g. contracts/Foo.sol:12
SrcDecoder = Callable[[Dict[str, Any]], str]


@dataclass
class Source:
    name: str
    content: str


class SourceBytes:
    """
    the start byte, the size in bytes and the source id of an element, as given by the "src" entry of an AST node
    """
    def __init__(self, begin: int, size: int, source_id: int):
        self.begin = begin
        self.size = size
        self.source_id = source_id

    @staticmethod
    def from_src(src: str) -> 'SourceBytes':
        begin, size, source_id = src.split(":")[:3]
        return SourceBytes(int(begin), int(size), int(source_id))


class SolcInputOutputDecoder:
    def __init__(self, solc_input: Dict[str, Any], solc_output: Dict[str, Any], base_path: str = '.'):
        self.solc_input = solc_input
        self.solc_output = solc_output
        self.base_path = base_path
        self.sources: Dict[int, Source] = {}

    def get_source(self, source_id: int) -> Source:
        if source_id in self.sources:
            return self.sources[source_id]

        source_path = next((path for path, data in self.solc_output.get("sources", {}).items()
                            if data.get("id") == source_id), None)
        if source_path is None:
            raise LayoutGuardUserInputError(f"Source file with id {source_id} not available")
        name = os.path.relpath(source_path, self.base_path)
        content = self.solc_input.get("sources", {}).get(source_path, {}).get("content")
        if content is None:
            raise LayoutGuardUserInputError(f"Content for {name} not available")
        self.sources[source_id] = Source(name, content)
        return self.sources[source_id]

    def decode(self, node: Dict[str, Any]) -> str:
        source_bytes = SourceBytes.from_src(node["src"])
        source = self.get_source(source_bytes.source_id)
        line = source.content.encode('utf-8')[:source_bytes.begin].count(b'\n') + 1
        return f"{source.name}:{line}"

    def __call__(self, node: Dict[str, Any]) -> str:
        return self.decode(node)


def solc_input_output_decoder(solc_input: Dict[str, Any], solc_output: Dict[str, Any],
                              base_path: str = '.') -> SrcDecoder:
    return SolcInputOutputDecoder(solc_input, solc_output, base_path)
