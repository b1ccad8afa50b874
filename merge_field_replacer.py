#!/usr/bin/env python3
"""
MERGEFIELD Placeholder Replacement
Blanks out the rendered result of every MERGEFIELD while keeping the field path

The «field» result text between the separate and end markers becomes a fixed
run of dots. The dotted path survives as a data-merge-field attribute on the
text node and as a MERGEFIELD:<path> comment, so downstream tooling can find
it without re-parsing instruction text.
"""

from typing import List, Optional

from field_instructions import is_merge_field, parse_merge_field
from field_locator import FieldBoundary, locate_field
from ooxml_tree import OoxmlTree, is_element

PLACEHOLDER_DOTS = '.' * 10
MERGE_FIELD_ATTRIBUTE = 'data-merge-field'
COMMENT_PREFIX = 'MERGEFIELD:'


class MergeFieldReplacer:
    """
    Replaces MERGEFIELD results in place:
    1. Locates the begin/separate/end triad of each field
    2. Reads the dotted path from the instruction
    3. Swaps the first result text for PLACEHOLDER_DOTS and records the path
    Fields with an incomplete triad are left untouched and reported in warnings.
    """

    def __init__(self, tree: OoxmlTree, verbose: bool = True):
        self.tree = tree
        self.verbose = verbose
        self.replacements_made = []
        self.warnings = []

    def find_merge_field_instructions(self) -> List:
        """Snapshot every instrText holding a MERGEFIELD instruction"""
        return [
            instr for instr in self.tree.iter('instrText')
            if is_merge_field(instr.text)
        ]

    def replace_fields(self) -> List[str]:
        """
        Replace all MERGEFIELD placeholders in the tree

        Returns:
            Field paths that were substituted, in document order
        """
        for instr in self.find_merge_field_instructions():
            self.replace_field(instr)

        if self.verbose and self.replacements_made:
            print(f"✓ Replaced {len(self.replacements_made)} MERGEFIELD placeholders")

        return self.replacements_made

    def replace_field(self, instr) -> Optional[str]:
        """Process one MERGEFIELD instruction node, returning its path when substituted"""
        field_name = parse_merge_field(instr.text)
        if not field_name:
            # Not a usable MERGEFIELD instruction
            return None

        boundary = locate_field(instr)
        if boundary is None:
            self._warn(f"Incomplete MERGEFIELD structure: {field_name}")
            return None

        placeholder = self._find_placeholder_text(boundary)
        if placeholder is None:
            self._warn(f"No result text for MERGEFIELD: {field_name}")
            return None

        self._replace_placeholder(placeholder, field_name)
        self.replacements_made.append(field_name)
        return field_name

    def _find_placeholder_text(self, boundary: FieldBoundary):
        """First w:t between the separate run and the end run"""
        end_run = boundary.end_run
        current = OoxmlTree.next_sibling(boundary.separate_run)

        while current is not None and current is not end_run:
            text_element = OoxmlTree.find_first(current, 't')
            if text_element is not None:
                return text_element
            current = OoxmlTree.next_sibling(current)

        return None

    def _replace_placeholder(self, text_element, field_name: str):
        """Write the dots and attach the field path to the text node"""
        text_element.text = PLACEHOLDER_DOTS
        OoxmlTree.set_attribute(text_element, MERGE_FIELD_ATTRIBUTE, field_name)

        comment_text = f"{COMMENT_PREFIX}{field_name}"
        previous = text_element.getprevious()
        if previous is not None and not is_element(previous) and previous.text == comment_text:
            # Already recorded by an earlier pass
            return

        OoxmlTree.insert_before(text_element, OoxmlTree.create_comment(comment_text))

    def _warn(self, message: str):
        self.warnings.append(message)
        if self.verbose:
            print(f"⚠️  {message}")


def substituted_fields(tree: OoxmlTree) -> List[str]:
    """Paths recorded on already-substituted text nodes, in document order"""
    return [
        text_element.get(MERGE_FIELD_ATTRIBUTE)
        for text_element in tree.iter('t')
        if text_element.get(MERGE_FIELD_ATTRIBUTE)
    ]
