#!/usr/bin/env python3
"""
OOXML Processor
Entry point for templating a WordprocessingML document

Every public call parses its own tree from the original markup, applies one
pass (or the merge + IF pair) and serializes, so no call ever sees another
call's half-finished edits.
"""

from typing import Dict, List, Optional, Union

from data_context import DataContextError, load_context
from field_extractor import FieldExtractor
from if_field_processor import IfField, IfFieldProcessor
from merge_field_replacer import MergeFieldReplacer
from ooxml_tree import OoxmlParseError, OoxmlTree
from xml_simplifier import XmlSimplifier

__all__ = [
    'DataContextError',
    'OoxmlParseError',
    'OoxmlProcessor',
    'process_ooxml_document',
]


class OoxmlProcessor:
    """
    Templating operations over one document.xml string

    Diagnostics from the last mutating call are kept in self.warnings.
    """

    def __init__(self, xml: Union[str, bytes], verbose: bool = True):
        self.xml = xml
        self.verbose = verbose
        self.warnings = []
        self.merge_fields_replaced = []
        self.if_fields_resolved = []

        # Fail fast on malformed markup
        OoxmlTree.from_string(xml)

    def _parse(self) -> OoxmlTree:
        return OoxmlTree.from_string(self.xml)

    # Read-only

    def get_text_content(self) -> List[str]:
        return FieldExtractor(self._parse()).get_text_content()

    def get_merge_fields(self) -> List[str]:
        return FieldExtractor(self._parse()).get_merge_fields()

    def get_if_fields(self) -> List[IfField]:
        return FieldExtractor(self._parse()).get_if_fields()

    def extract_fields_as_json(self) -> Dict:
        return FieldExtractor(self._parse()).extract_fields_as_json()

    # Mutating

    def process_merge_fields(self) -> str:
        """Replace MERGEFIELD results with the dot placeholder"""
        tree = self._parse()
        self.warnings = []
        self._replace_merge_fields(tree)
        return tree.to_string()

    def process_if_fields(self, data: Optional[Union[Dict, str]] = None) -> str:
        """Resolve IF fields against data"""
        context = load_context(data)
        tree = self._parse()
        self.warnings = []
        self._resolve_if_fields(tree, context)
        return tree.to_string()

    def process(self, data: Optional[Union[Dict, str]] = None) -> str:
        """Merge field substitution followed by IF resolution on a single tree"""
        context = load_context(data)
        tree = self._parse()
        self.warnings = []
        self._replace_merge_fields(tree)
        self._resolve_if_fields(tree, context)
        return tree.to_string()

    def simplify_xml(self) -> str:
        return XmlSimplifier(self._parse(), verbose=self.verbose).simplify()

    def _replace_merge_fields(self, tree: OoxmlTree):
        replacer = MergeFieldReplacer(tree, verbose=self.verbose)
        self.merge_fields_replaced = replacer.replace_fields()
        self.warnings.extend(replacer.warnings)

    def _resolve_if_fields(self, tree: OoxmlTree, context: Dict):
        processor = IfFieldProcessor(tree, verbose=self.verbose)
        self.if_fields_resolved = processor.process_fields(context)
        self.warnings.extend(processor.warnings)


def process_ooxml_document(xml: Union[str, bytes], data: Optional[Union[Dict, str]] = None,
                           verbose: bool = False) -> str:
    """Convenience wrapper: substitute MERGEFIELDs and resolve IF fields"""
    return OoxmlProcessor(xml, verbose=verbose).process(data)
