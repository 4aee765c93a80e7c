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

import sys
import unittest
from pathlib import Path

scripts_dir_path = Path(__file__).parent.parent.resolve()  # containing directory
sys.path.insert(0, str(scripts_dir_path))
from LayoutGuard.layoutAnnotations import get_annotation_args, get_custom_annotations, get_documentation, \
    get_retyped_renamed, has_annotation_tag


class TestAnnotations(unittest.TestCase):

    def test_custom_annotations_in_order(self) -> None:
        doc = "@custom:oz-renamed-from old\n@custom:oz-retyped-from uint128"
        self.assertEqual(get_custom_annotations(doc), [('oz-renamed-from', 'old'), ('oz-retyped-from', 'uint128')])

    def test_free_text_and_other_tags_are_skipped(self) -> None:
        doc = "Main storage of the contract\n@notice not custom\n@custom:storage-location erc7201:example.main"
        self.assertEqual(get_custom_annotations(doc), [('storage-location', 'erc7201:example.main')])
        self.assertTrue(has_annotation_tag(doc, 'storage-location'))
        self.assertFalse(has_annotation_tag(doc, 'oz-renamed-from'))

    def test_multiline_arguments(self) -> None:
        doc = "@custom:storage-location erc7201:a\n   erc7201:b"
        self.assertEqual(get_annotation_args(doc, 'storage-location'), ['erc7201:a', 'erc7201:b'])

    def test_documentation_node(self) -> None:
        self.assertEqual(get_documentation({'documentation': {'nodeType': 'StructuredDocumentation',
                                                              'text': '@custom:x y'}}), '@custom:x y')
        self.assertEqual(get_documentation({'documentation': '@custom:x y'}), '@custom:x y')
        self.assertEqual(get_documentation({}), '')

    def test_retyped_renamed(self) -> None:
        var_decl = {'documentation': {'text': '@custom:oz-retyped-from uint128 \n@custom:oz-renamed-from total'}}
        self.assertEqual(get_retyped_renamed(var_decl), ('uint128', 'total'))
        self.assertEqual(get_retyped_renamed({'name': 'x'}), (None, None))


if __name__ == '__main__':
    unittest.main()
