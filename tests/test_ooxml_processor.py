"""
Unit tests for ooxml_processor.py

Tests the processor facade: independent calls, combined processing and
error propagation.
"""

import pytest

from merge_field_replacer import PLACEHOLDER_DOTS
from ooxml_processor import (
    DataContextError,
    OoxmlParseError,
    OoxmlProcessor,
    process_ooxml_document,
)
from ooxml_tree import OoxmlTree


@pytest.fixture
def combined_xml(make_document, make_if_field):
    """An IF field whose true branch holds a MERGEFIELD."""
    return make_document(f'''
    <w:p>{make_if_field('"client.type" = "company"')}</w:p>
    <w:p>
      <w:r><w:t xml:space="preserve">Société : </w:t></w:r>
      <w:r><w:fldChar w:fldCharType="begin"/></w:r>
      <w:r><w:instrText xml:space="preserve"> MERGEFIELD client.company </w:instrText></w:r>
      <w:r><w:fldChar w:fldCharType="separate"/></w:r>
      <w:r><w:t>«client.company»</w:t></w:r>
      <w:r><w:fldChar w:fldCharType="end"/></w:r>
    </w:p>
    <w:p><w:r><w:t>%else%</w:t></w:r></w:p>
    <w:p><w:r><w:t>Particulier</w:t></w:r></w:p>
    <w:p><w:r><w:t>%end%</w:t></w:r></w:p>''')


class TestOoxmlProcessor:
    """Test OoxmlProcessor."""

    def test_malformed_markup_fails_fast(self):
        with pytest.raises(OoxmlParseError):
            OoxmlProcessor('<w:document>')

    def test_read_only_calls(self, combined_xml):
        processor = OoxmlProcessor(combined_xml, verbose=False)

        assert processor.get_merge_fields() == ['client.company']
        assert len(processor.get_if_fields()) == 1
        assert 'Particulier' in processor.get_text_content()

    def test_calls_do_not_share_state(self, combined_xml):
        processor = OoxmlProcessor(combined_xml, verbose=False)
        processor.process_if_fields({'client': {'type': 'company'}})

        # Still read from the original markup
        assert len(processor.get_if_fields()) == 1
        assert processor.xml == combined_xml

    def test_process_merge_fields(self, combined_xml):
        processor = OoxmlProcessor(combined_xml, verbose=False)
        result = processor.process_merge_fields()

        assert PLACEHOLDER_DOTS in result
        assert '%else%' in result
        assert processor.merge_fields_replaced == ['client.company']

    def test_process_if_fields_keeps_merge_results(self, combined_xml):
        result = OoxmlProcessor(combined_xml, verbose=False).process_if_fields({'client': {'type': 'company'}})

        assert '«client.company»' in result
        assert 'Particulier' not in result

    def test_process_runs_both_passes(self, combined_xml):
        processor = OoxmlProcessor(combined_xml, verbose=False)
        result = processor.process({'client': {'type': 'company'}})
        tree = OoxmlTree.from_string(result)

        assert [OoxmlTree.text_of(p) for p in tree.iter('p')] == [f'Société : {PLACEHOLDER_DOTS}']
        assert len(processor.if_fields_resolved) == 1

    def test_process_false_branch(self, combined_xml):
        result = OoxmlProcessor(combined_xml, verbose=False).process({'client': {'type': 'person'}})
        tree = OoxmlTree.from_string(result)

        assert [OoxmlTree.text_of(p) for p in tree.iter('p')] == ['Particulier']
        assert 'client.company' not in result

    def test_invalid_json_context(self, combined_xml):
        with pytest.raises(DataContextError):
            OoxmlProcessor(combined_xml, verbose=False).process('{broken')

    def test_warnings_collected(self, sample_xml_with_incomplete_merge_field, sample_xml_with_missing_end):
        processor = OoxmlProcessor(sample_xml_with_incomplete_merge_field, verbose=False)
        processor.process()
        assert processor.warnings == ['Incomplete MERGEFIELD structure: orphan.field']

        processor = OoxmlProcessor(sample_xml_with_missing_end, verbose=False)
        processor.process({'a': 'b'})
        assert processor.warnings == ['Missing %end% for IF a = b']

    def test_simplify_xml(self, sample_xml_for_simplify):
        result = OoxmlProcessor(sample_xml_for_simplify, verbose=False).simplify_xml()
        assert 'rPr' not in result

    def test_extract_fields_as_json(self, combined_xml):
        fields = OoxmlProcessor(combined_xml, verbose=False).extract_fields_as_json()
        assert fields['mergeFields'] == ['client.company']
        assert fields['ifFields'][0]['ifFalse'] == 'Particulier'


def test_process_ooxml_document(sample_xml_with_if_field, single_owner_data):
    result = process_ooxml_document(sample_xml_with_if_field, single_owner_data)
    assert 'Le bailleur est une personne unique.' in result
    assert 'Les bailleurs sont plusieurs.' not in result


def test_process_ooxml_document_accepts_json(sample_xml_with_merge_fields):
    result = process_ooxml_document(sample_xml_with_merge_fields, '{}')
    assert result.count(PLACEHOLDER_DOTS) == 2
