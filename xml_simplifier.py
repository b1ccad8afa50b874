#!/usr/bin/env python3
"""
XML Simplifier
Strips presentation-only markup from document.xml so the remaining structure
(paragraphs, runs, fields, text) is small enough to read or hand to an editor

Steps, in order:
1. Remove presentation elements (run/paragraph/table properties, fonts, tabs,
   drawings, table grid)
2. Remove empty runs, then empty paragraphs, until nothing changes
3. Remove paragraphs that hold nothing but a text-wrapping line break
4. Serialize and drop blank lines
Running it on its own output changes nothing.
"""

from typing import Dict, Union

from ooxml_tree import OoxmlTree, is_w, iter_text_lines

PRESENTATION_TAGS = ['tabs', 'rFonts', 'drawing', 'pStyle', 'rPr', 'pPr', 'tcPr', 'tblPr', 'tblGrid']
LINE_BREAK_TYPE = 'textWrapping'


class XmlSimplifier:
    """Removes presentation markup from a parsed tree"""

    def __init__(self, tree: OoxmlTree, verbose: bool = True):
        self.tree = tree
        self.verbose = verbose
        self.stats = {
            'presentation_removed': 0,
            'empty_runs_removed': 0,
            'empty_paragraphs_removed': 0,
            'break_paragraphs_removed': 0,
        }

    def simplify(self) -> str:
        self.remove_presentation_elements()
        self.stats['empty_runs_removed'] += self.remove_all_empty('r')
        self.stats['empty_paragraphs_removed'] += self.remove_all_empty('p')
        self.remove_line_break_paragraphs()

        if self.verbose:
            removed = sum(self.stats.values())
            print(f"✓ Simplified document: removed {removed} elements")

        return '\n'.join(iter_text_lines(self.tree.to_string()))

    def remove_presentation_elements(self) -> int:
        removed = 0
        for tag in PRESENTATION_TAGS:
            for element in self.tree.iter(tag):
                if OoxmlTree.remove(element):
                    removed += 1
        self.stats['presentation_removed'] += removed
        return removed

    def remove_all_empty(self, tag: str) -> int:
        """Remove empty w:<tag> elements repeatedly until a pass removes none"""
        total = 0
        while True:
            removed = 0
            for element in self.tree.iter(tag):
                if self._is_empty(element) and OoxmlTree.remove(element):
                    removed += 1
            if removed == 0:
                return total
            total += removed

    def remove_line_break_paragraphs(self) -> int:
        removed = 0
        for paragraph in self.tree.iter('p'):
            if self._is_line_break_only(paragraph) and OoxmlTree.remove(paragraph):
                removed += 1
        self.stats['break_paragraphs_removed'] += removed
        return removed

    @staticmethod
    def _is_empty(element) -> bool:
        """No child nodes at all and no non-whitespace text"""
        return len(element) == 0 and not (element.text or '').strip()

    @staticmethod
    def _is_line_break_only(paragraph) -> bool:
        children = OoxmlTree.element_children(paragraph)
        if len(children) != 1 or not is_w(children[0], 'r'):
            return False
        if (paragraph.text or '').strip():
            return False

        run_children = OoxmlTree.element_children(children[0])
        if len(run_children) != 1 or not is_w(run_children[0], 'br'):
            return False

        return OoxmlTree.get_attribute(run_children[0], 'w:type') == LINE_BREAK_TYPE


def simplify_xml(xml: Union[str, bytes], verbose: bool = False) -> str:
    """Parse, simplify and serialize in one call"""
    return XmlSimplifier(OoxmlTree.from_string(xml), verbose=verbose).simplify()


def count_content(tree: OoxmlTree) -> Dict[str, int]:
    """Count document elements to verify content preservation"""
    return {
        'paragraphs': len(tree.iter('p')),
        'text_runs': len(tree.iter('t')),
        'tables': len(tree.iter('tbl')),
        'total_text_length': sum(len(t.text or '') for t in tree.iter('t')),
    }
