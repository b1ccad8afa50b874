#!/usr/bin/env python3
"""
Docx Template Processor
Applies the OOXML templating passes to the document part of a .docx package
"""

import os
import zipfile
from typing import Dict, List, Optional, Union

from docx import Document

from data_context import DataContextError, load_context
from field_extractor import FieldExtractor
from ooxml_processor import OoxmlProcessor
from ooxml_tree import OoxmlParseError, OoxmlTree
from xml_simplifier import count_content, simplify_xml

DOCUMENT_PART = 'word/document.xml'
DOCX_EXTENSION = '.docx'

PROCESSING_ERRORS = (OoxmlParseError, DataContextError, KeyError, zipfile.BadZipFile, OSError)


def read_document_xml(docx_path: str) -> str:
    """Read word/document.xml out of a .docx package"""
    with zipfile.ZipFile(docx_path, 'r') as zip_ref:
        return zip_ref.read(DOCUMENT_PART).decode('utf-8')


def default_output_path(input_docx: str) -> str:
    base_name = os.path.splitext(input_docx)[0]
    return f"{base_name}_processed{DOCX_EXTENSION}"


class DocxTemplateProcessor:
    """Runs merge field substitution, IF resolution and optional simplification on a .docx"""

    def __init__(self, input_docx: str, output_docx: Optional[str] = None, verbose: bool = True):
        self.input_docx = input_docx
        self.output_docx = output_docx or default_output_path(input_docx)
        self.verbose = verbose
        self.warnings = []
        self.errors = []

    def read_document_xml(self) -> str:
        return read_document_xml(self.input_docx)

    def extract_fields(self) -> Dict:
        """JSON description of the template's fields (read-only)"""
        return FieldExtractor(self.read_document_xml()).extract_fields_as_json()

    def process(self, data: Optional[Union[Dict, str]] = None, simplify: bool = False) -> bool:
        """
        Process the template and write the output package

        Args:
            data: merge data (dict or JSON string); None resolves every IF
                  field against an empty context
            simplify: also strip presentation markup from the result

        Returns:
            True on success. On failure nothing is written and the reason is
            kept in self.errors.
        """
        self.warnings = []
        self.errors = []
        self._log(f"Processing: {self.input_docx} -> {self.output_docx}")

        try:
            context = load_context(data)
            xml_content = self.read_document_xml()

            before_stats = count_content(OoxmlTree.from_string(xml_content))
            self._log_stats("Content before processing", before_stats)

            processor = OoxmlProcessor(xml_content, verbose=self.verbose)
            xml_content = processor.process(context)
            self.warnings.extend(processor.warnings)

            if simplify:
                xml_content = simplify_xml(xml_content, verbose=self.verbose)

            after_stats = count_content(OoxmlTree.from_string(xml_content))
            self._log_stats("Content after processing", after_stats)

            self.write_package(xml_content)

        except PROCESSING_ERRORS as e:
            self.errors.append(str(e))
            self._log(f"✗ Error during processing: {e}")
            return False

        self._log(f"✓ Processing complete: {self.output_docx}")

        if self.warnings:
            self._log("\n⚠ Warnings:")
            for warning in self.warnings:
                self._log(f"  - {warning}")

        return True

    def write_package(self, xml_content: str):
        """Copy every part of the input package, replacing document.xml"""
        with zipfile.ZipFile(self.input_docx, 'r') as zip_ref:
            with zipfile.ZipFile(self.output_docx, 'w', zipfile.ZIP_DEFLATED) as output_zip:
                for item in zip_ref.namelist():
                    if item != DOCUMENT_PART:
                        output_zip.writestr(item, zip_ref.read(item))
                output_zip.writestr(DOCUMENT_PART, xml_content.encode('utf-8'))

    def preview_paragraphs(self) -> List[str]:
        """Paragraph text of the processed document, as Word would show it"""
        document = Document(self.output_docx)
        return [paragraph.text for paragraph in document.paragraphs if paragraph.text.strip()]

    def _log_stats(self, title: str, stats: Dict):
        self._log(f"\n📊 {title}:")
        self._log(f"   Paragraphs: {stats['paragraphs']}")
        self._log(f"   Text runs: {stats['text_runs']}")
        self._log(f"   Total text length: {stats['total_text_length']} chars")

    def _log(self, message: str):
        if self.verbose:
            print(message)
