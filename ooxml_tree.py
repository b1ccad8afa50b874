#!/usr/bin/env python3
"""
OOXML Tree Adapter
Wraps a WordprocessingML string as a live, mutable lxml tree.

Every other component reaches the markup through this module: parsing,
serialization, namespace-qualified lookup, parent/sibling navigation and
in-place removal. One OoxmlTree is owned by exactly one processing call.
"""

from typing import Dict, Iterator, List, Optional, Union

from lxml import etree

# Fixed WordprocessingML namespace
W_NAMESPACE = 'http://schemas.openxmlformats.org/wordprocessingml/2006/main'
NAMESPACES = {'w': W_NAMESPACE}

XML_DECLARATION_PREFIX = '<?xml'


class OoxmlParseError(ValueError):
    """Raised when the input markup is not well-formed XML"""


def qn(tag: str) -> str:
    """
    Expand a prefixed tag name into Clark notation

    Examples:
        'w:t' -> '{http://schemas.openxmlformats.org/wordprocessingml/2006/main}t'
        'p'   -> same as 'w:p' (the w: prefix is assumed)
    """
    if tag.startswith('{'):
        return tag
    prefix, _, local = tag.rpartition(':')
    namespace = NAMESPACES[prefix] if prefix else W_NAMESPACE
    return f'{{{namespace}}}{local}'


def is_element(node) -> bool:
    """True for real elements, False for comments and processing instructions"""
    return isinstance(node.tag, str)


def local_name(node) -> str:
    """Local (unprefixed) name of an element, '' for comments"""
    if not is_element(node):
        return ''
    return etree.QName(node).localname


def is_w(node, name: str) -> bool:
    """Check that node is the WordprocessingML element w:<name>"""
    return is_element(node) and node.tag == qn(name)


class OoxmlTree:
    """Namespace-aware markup tree for one processing call"""

    def __init__(self, root, xml_declaration: bool = False):
        self.root = root
        self.xml_declaration = xml_declaration

    @classmethod
    def from_string(cls, xml: Union[str, bytes]) -> 'OoxmlTree':
        """
        Parse markup into a tree

        Raises:
            OoxmlParseError: if the markup is not well-formed
        """
        if isinstance(xml, str):
            has_declaration = xml.lstrip().startswith(XML_DECLARATION_PREFIX)
            data = xml.encode('utf-8')
        else:
            has_declaration = xml.lstrip().startswith(XML_DECLARATION_PREFIX.encode('ascii'))
            data = xml

        if not data.strip():
            raise OoxmlParseError('Empty document')

        parser = etree.XMLParser(resolve_entities=False, no_network=True, huge_tree=True)
        try:
            root = etree.fromstring(data, parser)
        except etree.XMLSyntaxError as e:
            raise OoxmlParseError(f'Invalid XML: {e}') from e

        return cls(root, xml_declaration=has_declaration)

    def to_string(self) -> str:
        """Serialize the tree back to markup"""
        tree = self.root.getroottree()
        if self.xml_declaration:
            return etree.tostring(
                tree,
                xml_declaration=True,
                encoding='UTF-8',
                standalone=True
            ).decode('utf-8')
        return etree.tostring(tree, encoding='unicode')

    # Lookup

    def iter(self, name: str) -> List:
        """All w:<name> elements in document order, snapshotted into a list"""
        return list(self.root.iter(qn(name)))

    @staticmethod
    def find_all(element, name: str) -> List:
        """All w:<name> descendants of element (element itself included)"""
        return list(element.iter(qn(name)))

    @staticmethod
    def find_first(element, name: str):
        """First w:<name> descendant of element (element itself included), or None"""
        return next(element.iter(qn(name)), None)

    @staticmethod
    def get_attribute(element, name: str) -> Optional[str]:
        """Read a w:-qualified attribute"""
        return element.get(qn(name))

    @staticmethod
    def text_of(element) -> str:
        """Concatenated text of every w:t below element"""
        return ''.join(t.text or '' for t in element.iter(qn('t')))

    @staticmethod
    def instruction_of(element) -> str:
        """Concatenated text of every w:instrText below element"""
        return ''.join(t.text or '' for t in element.iter(qn('instrText')))

    # Navigation

    @staticmethod
    def parent(element):
        return element.getparent()

    @staticmethod
    def ancestor(element, name: str):
        """Nearest ancestor (or self) that is w:<name>, or None"""
        target = qn(name)
        current = element
        while current is not None:
            if current.tag == target:
                return current
            current = current.getparent()
        return None

    @staticmethod
    def previous_sibling(element):
        """Previous sibling element, skipping comments"""
        sibling = element.getprevious()
        while sibling is not None and not is_element(sibling):
            sibling = sibling.getprevious()
        return sibling

    @staticmethod
    def next_sibling(element):
        """Next sibling element, skipping comments"""
        sibling = element.getnext()
        while sibling is not None and not is_element(sibling):
            sibling = sibling.getnext()
        return sibling

    @staticmethod
    def element_children(element) -> List:
        return [child for child in element if is_element(child)]

    # Mutation

    @staticmethod
    def remove(element) -> bool:
        """Detach element (and its tail whitespace) from the tree"""
        parent = element.getparent()
        if parent is None:
            return False
        parent.remove(element)
        return True

    @staticmethod
    def create_element(name: str, attrib: Optional[Dict[str, str]] = None, text: Optional[str] = None):
        element = etree.Element(qn(name), nsmap=NAMESPACES)
        for key, value in (attrib or {}).items():
            element.set(qn(key) if ':' in key else key, value)
        if text is not None:
            element.text = text
        return element

    @staticmethod
    def create_comment(text: str):
        return etree.Comment(text)

    @staticmethod
    def set_attribute(element, name: str, value: str):
        """Set a plain (unqualified) or w:-qualified attribute"""
        element.set(qn(name) if name.startswith('w:') else name, value)

    @staticmethod
    def insert_before(reference, node):
        reference.addprevious(node)


def iter_text_lines(xml: str) -> Iterator[str]:
    """Lines of serialized markup that carry anything besides whitespace"""
    for line in xml.split('\n'):
        if line.strip():
            yield line
