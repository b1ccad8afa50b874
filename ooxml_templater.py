#!/usr/bin/env python3
"""
OOXML Templater - Command Line Interface
Extract, process and simplify MERGEFIELD / IF templates in .docx or raw document.xml files
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Optional

from data_context import DataContextError, load_context
from field_extractor import FieldExtractor
from ooxml_processor import OoxmlProcessor
from ooxml_tree import OoxmlParseError
from template_processor import DOCX_EXTENSION, DocxTemplateProcessor, read_document_xml
from xml_simplifier import simplify_xml


def _is_docx(path: str) -> bool:
    return Path(path).suffix.lower() == DOCX_EXTENSION


def _read_markup(path: str) -> str:
    if _is_docx(path):
        return read_document_xml(path)
    return Path(path).read_text(encoding='utf-8')


def _read_data(data_path: Optional[str]) -> dict:
    if not data_path:
        return {}
    return load_context(Path(data_path).read_text(encoding='utf-8'))


def analyze_template(template_path: str):
    """Show the field structure of a template"""
    print(f"\nAnalyzing template: {template_path}")
    print("=" * 80)

    extractor = FieldExtractor(_read_markup(template_path))
    structure = extractor.get_field_structure()

    print(f"\n📊 Template Statistics:")
    print(f"  MERGEFIELD instructions: {structure['merge_field_count']}")
    print(f"  Unique merge fields: {len(structure['merge_fields'])}")
    print(f"  IF fields: {structure['if_field_count']}")
    print(f"  Nested IF fields: {structure['nested_if_count']}")
    print(f"  Deepest IF nesting: {structure['max_if_depth']}")

    print(f"\n📝 Merge Fields:")
    for field in structure['merge_fields'][:20]:
        print(f"    {field}")
    if len(structure['merge_fields']) > 20:
        print(f"    ... and {len(structure['merge_fields']) - 20} more")

    if structure['warnings']:
        print(f"\n⚠️  Structural problems:")
        for warning in structure['warnings']:
            print(f"    {warning}")

    return structure


def extract_template(template_path: str, output_path: Optional[str] = None):
    """Write (or print) the JSON field description"""
    fields = FieldExtractor(_read_markup(template_path)).extract_fields_as_json()
    payload = json.dumps(fields, indent=2, ensure_ascii=False)

    if output_path:
        Path(output_path).write_text(payload, encoding='utf-8')
        print(f"✓ Field description written to {output_path}")
    else:
        print(payload)

    return fields


def process_template(template_path: str, output_path: Optional[str] = None,
                     data_path: Optional[str] = None, simplify: bool = False) -> bool:
    """Substitute merge fields and resolve IF fields"""
    data = _read_data(data_path)

    if _is_docx(template_path):
        processor = DocxTemplateProcessor(template_path, output_path)
        return processor.process(data, simplify=simplify)

    processor = OoxmlProcessor(_read_markup(template_path), verbose=bool(output_path))
    result = processor.process(data)
    if simplify:
        result = simplify_xml(result)

    if output_path:
        Path(output_path).write_text(result, encoding='utf-8')
        print(f"✓ Processed markup written to {output_path}")
    else:
        print(result)
    return True


def simplify_template(template_path: str, output_path: Optional[str] = None):
    result = simplify_xml(_read_markup(template_path), verbose=bool(output_path))
    if output_path:
        Path(output_path).write_text(result, encoding='utf-8')
        print(f"✓ Simplified markup written to {output_path}")
    else:
        print(result)
    return result


def main(argv=None):
    """Main CLI entry point"""
    parser = argparse.ArgumentParser(
        description='OOXML MERGEFIELD / IF field templater',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Show the fields of a template
  python ooxml_templater.py analyze template.docx

  # Dump the field description as JSON
  python ooxml_templater.py extract template.docx -o fields.json

  # Substitute merge fields and resolve IF fields
  python ooxml_templater.py process template.docx -o output.docx --data context.json

  # Strip presentation markup from document.xml
  python ooxml_templater.py simplify document.xml -o simple.xml
        """
    )

    parser.add_argument(
        'command',
        choices=['analyze', 'extract', 'process', 'simplify'],
        help='Command to run'
    )

    parser.add_argument(
        'template',
        help='Path to a .docx file or a raw document.xml'
    )

    parser.add_argument(
        '-o', '--output',
        help='Output file path (printed to stdout when omitted, except for .docx processing)'
    )

    parser.add_argument(
        '--data',
        help='JSON file with the merge data context'
    )

    parser.add_argument(
        '--simplify',
        action='store_true',
        help='Also simplify the processed markup'
    )

    args = parser.parse_args(argv)

    if not Path(args.template).exists():
        print(f"❌ Error: File not found: {args.template}")
        sys.exit(1)

    try:
        if args.command == 'analyze':
            analyze_template(args.template)
        elif args.command == 'extract':
            extract_template(args.template, args.output)
        elif args.command == 'simplify':
            simplify_template(args.template, args.output)
        elif args.command == 'process':
            if not process_template(args.template, args.output, args.data, args.simplify):
                sys.exit(1)
    except (OoxmlParseError, DataContextError) as e:
        print(f"❌ Error: {e}")
        sys.exit(1)


if __name__ == '__main__':
    main()
