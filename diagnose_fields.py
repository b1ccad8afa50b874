#!/usr/bin/env python3
"""
Field Diagnostic Tool
Analyzes a Word document to show how its MERGEFIELD and IF fields are structured
"""

import sys
from collections import Counter
from pathlib import Path
from typing import Dict

from field_extractor import FieldExtractor
from field_instructions import is_if_field, parse_merge_field
from field_locator import locate_field
from if_field_processor import ELSE_MARKER, END_MARKER
from ooxml_tree import OoxmlParseError, OoxmlTree
from template_processor import read_document_xml


def diagnose_xml(xml_content: str) -> Dict:
    """
    Collect structural facts about the fields in document.xml

    Returns:
        {
            'merge_fields': Counter of field path -> occurrences,
            'incomplete_merge_fields': paths whose begin/separate/end triad is broken,
            'if_instructions': number of IF instructions found,
            'if_fields_parsed': IF fields the parser accepted (nested included),
            'else_markers': runs containing %else%,
            'end_markers': runs containing %end%,
            'warnings': parser diagnostics
        }
    """
    tree = OoxmlTree.from_string(xml_content)

    merge_fields = Counter()
    incomplete = []
    if_instructions = 0
    for instr in tree.iter('instrText'):
        name = parse_merge_field(instr.text)
        if name:
            merge_fields[name] += 1
            if locate_field(instr) is None:
                incomplete.append(name)
        elif is_if_field(instr.text):
            if_instructions += 1

    extractor = FieldExtractor(tree)
    structure = extractor.get_field_structure()

    runs = [OoxmlTree.text_of(run) for run in tree.iter('r')]

    return {
        'merge_fields': merge_fields,
        'incomplete_merge_fields': incomplete,
        'if_instructions': if_instructions,
        'if_fields_parsed': structure['if_field_count'] + structure['nested_if_count'],
        'max_if_depth': structure['max_if_depth'],
        'else_markers': sum(1 for text in runs if ELSE_MARKER in text),
        'end_markers': sum(1 for text in runs if END_MARKER in text),
        'warnings': structure['warnings'],
    }


def diagnose_fields(docx_path: str):
    """
    Analyze a Word document and print a field structure report

    This helps understand why fields might not be substituted or resolved
    """
    print(f"\n{'='*70}")
    print(f"Field Diagnostic Report: {Path(docx_path).name}")
    print(f"{'='*70}\n")

    try:
        xml_content = read_document_xml(docx_path)
        summary = diagnose_xml(xml_content)
    except (OoxmlParseError, KeyError, OSError) as e:
        print(f"❌ Error reading document: {e}")
        return None

    # Analysis 1: MERGEFIELD references
    print("📋 MERGEFIELD References Found:")
    print("-" * 70)

    merge_fields = summary['merge_fields']
    if merge_fields:
        total = sum(merge_fields.values())
        print(f"Found {total} MERGEFIELD references ({len(merge_fields)} unique)")
        print("\nUnique field names:")
        for i, (field, count) in enumerate(sorted(merge_fields.items()), 1):
            print(f"  {i}. {field} (appears {count} time{'s' if count > 1 else ''})")
    else:
        print("⚠️  No MERGEFIELD references found!")

    # Analysis 2: IF fields
    print(f"\n📐 IF Field Analysis:")
    print("-" * 70)
    print(f"IF instructions: {summary['if_instructions']}")
    print(f"IF fields parsed (nested included): {summary['if_fields_parsed']}")
    print(f"Deepest nesting: {summary['max_if_depth']}")
    print(f"{ELSE_MARKER} markers: {summary['else_markers']}")
    print(f"{END_MARKER} markers: {summary['end_markers']}")

    # Analysis 3: Problems
    print(f"\n⚠️  Potential Issues:")
    print("-" * 70)

    issues_found = False

    if summary['incomplete_merge_fields']:
        print(f"• {len(summary['incomplete_merge_fields'])} MERGEFIELDs without begin/separate/end markers")
        for name in summary['incomplete_merge_fields']:
            print(f"    {name}")
        print("  → These fields will be left unchanged")
        issues_found = True

    if summary['if_fields_parsed'] < summary['if_instructions']:
        skipped = summary['if_instructions'] - summary['if_fields_parsed']
        print(f"• {skipped} IF fields could not be parsed")
        issues_found = True

    if summary['end_markers'] != summary['if_fields_parsed']:
        print(f"• {END_MARKER} count ({summary['end_markers']}) does not match IF fields ({summary['if_fields_parsed']})")
        issues_found = True

    for warning in summary['warnings']:
        print(f"• {warning}")
        issues_found = True

    if not issues_found:
        print("✓ No obvious issues detected")

    print("\n" + "="*70)
    print("End of diagnostic report")
    print("="*70 + "\n")

    return summary


def main():
    if len(sys.argv) < 2:
        print("Field Diagnostic Tool")
        print("\nUsage:")
        print("  python diagnose_fields.py <template.docx>")
        print("\nExample:")
        print("  python diagnose_fields.py template.docx")
        sys.exit(1)

    docx_path = sys.argv[1]

    if not Path(docx_path).exists():
        print(f"❌ Error: File not found: {docx_path}")
        sys.exit(1)

    diagnose_fields(docx_path)


if __name__ == '__main__':
    main()
