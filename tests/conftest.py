"""
Pytest fixtures for OOXML Templater tests.
"""

import pytest
import zipfile

W_NAMESPACE = 'http://schemas.openxmlformats.org/wordprocessingml/2006/main'


def build_document(body):
    """Wrap body markup in a minimal w:document."""
    return f'''<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<w:document xmlns:w="{W_NAMESPACE}">
  <w:body>
{body}
  </w:body>
</w:document>'''


def if_field_runs(condition):
    """The five runs of an IF field code rendering as {IF}."""
    return f'''
      <w:r><w:fldChar w:fldCharType="begin"/></w:r>
      <w:r><w:instrText xml:space="preserve"> IF {condition} "%iftrue%" "%iffalse%" </w:instrText></w:r>
      <w:r><w:fldChar w:fldCharType="separate"/></w:r>
      <w:r><w:t>{{IF}}</w:t></w:r>
      <w:r><w:fldChar w:fldCharType="end"/></w:r>'''


def text_paragraph(text):
    return f'    <w:p><w:r><w:t xml:space="preserve">{text}</w:t></w:r></w:p>'


@pytest.fixture
def make_document():
    """Builder for ad-hoc documents."""
    return build_document


@pytest.fixture
def make_if_field():
    """Builder for IF field code runs."""
    return if_field_runs


@pytest.fixture
def sample_xml_with_merge_fields():
    """Sample document.xml with two complete MERGEFIELDs."""
    # Note: Word adds trailing switches after field names
    return build_document('''
    <w:p>
      <w:r><w:t xml:space="preserve">Société : </w:t></w:r>
      <w:r><w:fldChar w:fldCharType="begin"/></w:r>
      <w:r><w:instrText xml:space="preserve"> MERGEFIELD step_info.q_companyname.q_companyname </w:instrText></w:r>
      <w:r><w:fldChar w:fldCharType="separate"/></w:r>
      <w:r><w:rPr><w:noProof/></w:rPr><w:t>«step_info.q_companyname.q_companyname»</w:t></w:r>
      <w:r><w:fldChar w:fldCharType="end"/></w:r>
    </w:p>
    <w:p>
      <w:r><w:t xml:space="preserve">Client : </w:t></w:r>
      <w:r><w:fldChar w:fldCharType="begin"/></w:r>
      <w:r><w:instrText xml:space="preserve"> MERGEFIELD client.name \\* MERGEFORMAT </w:instrText></w:r>
      <w:r><w:fldChar w:fldCharType="separate"/></w:r>
      <w:r><w:t>«client.name»</w:t></w:r>
      <w:r><w:fldChar w:fldCharType="end"/></w:r>
    </w:p>''')


@pytest.fixture
def sample_xml_with_incomplete_merge_field():
    """A MERGEFIELD instruction with no begin/separate/end markers."""
    return build_document('''
    <w:p>
      <w:r><w:instrText xml:space="preserve"> MERGEFIELD orphan.field </w:instrText></w:r>
      <w:r><w:t>«orphan.field»</w:t></w:r>
    </w:p>''')


@pytest.fixture
def sample_xml_with_if_field():
    """One IF field with a true and a false paragraph."""
    return build_document(f'''
    <w:p>{if_field_runs('"steplessornumber.questionlessornumber" = "Non, une seule personne est bailleur du bien"')}
    </w:p>
{text_paragraph('Le bailleur est une personne unique.')}
{text_paragraph('%else%')}
{text_paragraph('Les bailleurs sont plusieurs.')}
{text_paragraph('%end%')}
{text_paragraph('Fin du document.')}''')


@pytest.fixture
def single_owner_data():
    return {
        'steplessornumber': {
            'questionlessornumber': 'Non, une seule personne est bailleur du bien'
        }
    }


@pytest.fixture
def sample_xml_with_nested_if_fields():
    """An IF field whose true branch holds text followed by a nested IF field."""
    return build_document(f'''
    <w:p>{if_field_runs('"a.kind" = "x"')}
    </w:p>
{text_paragraph('Outer true')}
    <w:p>{if_field_runs('"a.level" > "2"')}
    </w:p>
{text_paragraph('Level high')}
{text_paragraph('%else%')}
{text_paragraph('Level low')}
{text_paragraph('%end%')}
{text_paragraph('%else%')}
{text_paragraph('Outer false')}
{text_paragraph('%end%')}''')


@pytest.fixture
def sample_xml_with_repeated_else():
    return build_document(f'''
    <w:p>{if_field_runs('"a" = "b"')}
    </w:p>
{text_paragraph('one')}
{text_paragraph('%else%')}
{text_paragraph('two')}
{text_paragraph('%else%')}
{text_paragraph('three')}
{text_paragraph('%end%')}''')


@pytest.fixture
def sample_xml_with_missing_end():
    return build_document(f'''
    <w:p>{if_field_runs('"a" = "b"')}
    </w:p>
{text_paragraph('one')}
{text_paragraph('%else%')}
{text_paragraph('two')}''')


@pytest.fixture
def sample_xml_for_simplify():
    """Document carrying the presentation markup the simplifier removes."""
    return build_document('''
    <w:p><w:pPr><w:pStyle w:val="Title"/></w:pPr><w:r><w:rPr><w:rFonts w:ascii="Arial"/><w:b/></w:rPr><w:t>Titre</w:t></w:r></w:p>
    <w:p><w:pPr><w:tabs><w:tab w:val="left" w:pos="720"/></w:tabs></w:pPr></w:p>
    <w:p><w:r><w:br w:type="textWrapping"/></w:r></w:p>
    <w:p><w:r><w:br/></w:r></w:p>
    <w:p><w:r><w:t>Texte</w:t></w:r><w:r><w:drawing/></w:r></w:p>
    <w:tbl><w:tblPr/><w:tblGrid><w:gridCol/></w:tblGrid><w:tr><w:tc><w:tcPr/><w:p><w:r><w:t>Cellule</w:t></w:r></w:p></w:tc></w:tr></w:tbl>
    <w:sectPr/>''')


@pytest.fixture
def temp_docx(tmp_path):
    """Create a temporary .docx file with test content."""
    def _create_docx(document_xml_content):
        docx_path = tmp_path / "test_template.docx"

        # Create minimal docx structure
        with zipfile.ZipFile(docx_path, 'w', zipfile.ZIP_DEFLATED) as zf:
            # [Content_Types].xml
            content_types = '''<?xml version="1.0" encoding="UTF-8"?>
<Types xmlns="http://schemas.openxmlformats.org/package/2006/content-types">
  <Default Extension="rels" ContentType="application/vnd.openxmlformats-package.relationships+xml"/>
  <Default Extension="xml" ContentType="application/xml"/>
  <Override PartName="/word/document.xml" ContentType="application/vnd.openxmlformats-officedocument.wordprocessingml.document.main+xml"/>
</Types>'''
            zf.writestr('[Content_Types].xml', content_types)

            # _rels/.rels
            rels = '''<?xml version="1.0" encoding="UTF-8"?>
<Relationships xmlns="http://schemas.openxmlformats.org/package/2006/relationships">
  <Relationship Id="rId1" Type="http://schemas.openxmlformats.org/officeDocument/2006/relationships/officeDocument" Target="word/document.xml"/>
</Relationships>'''
            zf.writestr('_rels/.rels', rels)

            # word/_rels/document.xml.rels
            doc_rels = '''<?xml version="1.0" encoding="UTF-8"?>
<Relationships xmlns="http://schemas.openxmlformats.org/package/2006/relationships">
</Relationships>'''
            zf.writestr('word/_rels/document.xml.rels', doc_rels)

            # word/document.xml
            zf.writestr('word/document.xml', document_xml_content)

        return str(docx_path)

    return _create_docx


@pytest.fixture
def temp_output_path(tmp_path):
    """Provide a temporary output path for processed documents."""
    return str(tmp_path / "output.docx")
