#!/usr/bin/env python3
"""
Field Extractor
Read-only description of the MERGEFIELD and IF fields in a document

Produces the JSON structure consumed by editors and prompt builders:

    {
        "mergeFields": ["step_info.q_companyname.q_companyname", ...],
        "ifFields": [{"left": ..., "operator": ..., "right": ...,
                      "ifTrue": ..., "ifFalse": ...}, ...]
    }

Nothing here mutates the tree, so extraction can be repeated and
interleaved freely with the mutating passes.
"""

from typing import Dict, List, Union

from field_instructions import parse_merge_field
from if_field_processor import IfField, IfFieldProcessor
from ooxml_tree import OoxmlTree


class FieldExtractor:
    """Extracts merge and IF fields from WordprocessingML markup"""

    def __init__(self, xml: Union[str, bytes, OoxmlTree], verbose: bool = False):
        if isinstance(xml, OoxmlTree):
            self.tree = xml
        else:
            self.tree = OoxmlTree.from_string(xml)
        self.verbose = verbose
        self.warnings = []

    def get_text_content(self) -> List[str]:
        """Non-empty text of every w:t, in document order"""
        return [t.text for t in self.tree.iter('t') if t.text]

    def get_merge_fields(self) -> List[str]:
        """Field paths of every MERGEFIELD instruction, in document order"""
        fields = []
        for instr in self.tree.iter('instrText'):
            name = parse_merge_field(instr.text)
            if name:
                fields.append(name)
        return fields

    def get_if_fields(self) -> List[IfField]:
        """Top-level IF fields with their nested fields attached"""
        processor = IfFieldProcessor(self.tree, verbose=self.verbose)
        fields = processor.extract_fields()
        self.warnings = list(processor.warnings)
        return fields

    def extract_fields_as_json(self) -> Dict:
        return {
            'mergeFields': self.get_merge_fields(),
            'ifFields': [if_field.to_dict() for if_field in self.get_if_fields()],
        }

    def get_field_structure(self) -> Dict:
        """
        Summarize the fields for reports

        Returns:
            {
                'merge_fields': unique paths, sorted,
                'merge_field_count': total MERGEFIELD instructions,
                'if_field_count': top-level IF fields,
                'nested_if_count': IF fields below another IF,
                'max_if_depth': deepest nesting level (0 when no IF fields),
                'warnings': structural problems found while parsing
            }
        """
        merge_fields = self.get_merge_fields()
        if_fields = self.get_if_fields()

        nested_count = 0
        max_depth = 0
        pending = [(if_field, 1) for if_field in if_fields]
        while pending:
            if_field, depth = pending.pop()
            max_depth = max(max_depth, depth)
            for nested in if_field.nested_fields():
                nested_count += 1
                pending.append((nested, depth + 1))

        return {
            'merge_fields': sorted(set(merge_fields)),
            'merge_field_count': len(merge_fields),
            'if_field_count': len(if_fields),
            'nested_if_count': nested_count,
            'max_if_depth': max_depth,
            'warnings': list(self.warnings),
        }
