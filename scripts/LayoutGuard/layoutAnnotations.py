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

import re
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Tuple

"""
NatSpec annotations are free text. A documentation string is split into blocks, each one optionally starting with
a "@title" or "@custom:tag" marker, followed by the arguments that run until the next line starting with a marker.
The custom tag vocabulary is open ended, so we do not validate tags here.
"""

ANNOTATION_RE = re.compile(
    r"^\s*(?:@(?P<title>\w+)(?::(?P<tag>[a-z][a-z-]*))?(?:[ \t]+|$))?(?P<args>(?:(?!^\s*@\w+)[\s\S])*)",
    re.MULTILINE
)

RETYPED_FROM_TAG = "oz-retyped-from"
RENAMED_FROM_TAG = "oz-renamed-from"
STORAGE_LOCATION_TAG = "storage-location"


@dataclass
class Annotation:
    title: Optional[str]
    tag: Optional[str]
    args: str


def parse_annotations(doc: str) -> Iterator[Annotation]:
    pos = 0
    while pos < len(doc):
        match = ANNOTATION_RE.match(doc, pos)
        if match is None or match.end() == pos:
            break
        yield Annotation(match.group("title"), match.group("tag"), match.group("args"))
        pos = match.end()


def get_custom_annotations(doc: str) -> List[Tuple[str, str]]:
    """
    @return (tag, args) for every @custom:<tag> annotation in doc, in order of appearance
    """
    return [(a.tag, a.args.strip()) for a in parse_annotations(doc) if a.title == "custom" and a.tag is not None]


def get_documentation(node: Dict[str, Any]) -> str:
    documentation = node.get("documentation")
    if documentation is None:
        return ''
    if isinstance(documentation, str):
        return documentation
    return documentation.get("text") or ''


def has_annotation_tag(doc: str, tag: str) -> bool:
    return any(t == tag for t, _ in get_custom_annotations(doc))


def get_annotation_args(doc: str, tag: str) -> List[str]:
    result: List[str] = []
    for t, args in get_custom_annotations(doc):
        if t == tag:
            result.extend(a for a in args.split() if a)
    return result


def get_retyped_renamed(var_decl: Dict[str, Any]) -> Tuple[Optional[str], Optional[str]]:
    """
    @return the (retyped from, renamed from) annotations of a variable declaration, None where absent
    """
    retyped_from = None
    renamed_from = None
    for tag, args in get_custom_annotations(get_documentation(var_decl)):
        if tag == RETYPED_FROM_TAG:
            retyped_from = args
        elif tag == RENAMED_FROM_TAG:
            renamed_from = args
    return retyped_from, renamed_from
