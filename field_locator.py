#!/usr/bin/env python3
"""
Field Boundary Locator
Finds the fldChar markers (begin / separate / end) that delimit a Word field

A complex field in document.xml is spread over sibling runs:

    <w:r><w:fldChar w:fldCharType="begin"/></w:r>
    <w:r><w:instrText>MERGEFIELD client_name</w:instrText></w:r>
    <w:r><w:fldChar w:fldCharType="separate"/></w:r>
    <w:r><w:t>«client_name»</w:t></w:r>
    <w:r><w:fldChar w:fldCharType="end"/></w:r>

Lookups are pure reads against the live tree; a missing marker is reported
as None, never raised.
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from ooxml_tree import OoxmlTree, qn

BEGIN = 'begin'
SEPARATE = 'separate'
END = 'end'


@dataclass
class FieldBoundary:
    """The begin / separate / end triad of one field"""
    begin: object
    separate: object
    end: object

    @property
    def begin_run(self):
        return OoxmlTree.ancestor(self.begin, 'r')

    @property
    def separate_run(self):
        return OoxmlTree.ancestor(self.separate, 'r')

    @property
    def end_run(self):
        return OoxmlTree.ancestor(self.end, 'r')


def marker_type(fld_char) -> Optional[str]:
    return OoxmlTree.get_attribute(fld_char, 'w:fldCharType')


def _markers(element, reverse: bool = False) -> List:
    markers = OoxmlTree.find_all(element, 'fldChar')
    return markers[::-1] if reverse else markers


def _container(node):
    """The run holding node, falling back to its parent for bare markers"""
    run = OoxmlTree.ancestor(node, 'r')
    if run is not None:
        return run
    return node.getparent() if node.getparent() is not None else node


def _scan(element, wanted: str, stop_at: Iterable[str], reverse: bool) -> Tuple[Optional[object], bool]:
    """
    Look through the markers inside one sibling

    Returns:
        (marker, stopped) - marker when found, stopped=True when a stop_at
        marker was hit first
    """
    for fld_char in _markers(element, reverse=reverse):
        kind = marker_type(fld_char)
        if kind == wanted:
            return fld_char, False
        if kind in stop_at:
            return None, True
    return None, False


def locate_previous(node, wanted: str, stop_at: Iterable[str] = ()):
    """
    Find the closest fldChar of type `wanted` at or before node

    Starts with the run enclosing node and walks backward through its
    preceding siblings. Gives up when a marker listed in stop_at is met.
    """
    if node is None:
        return None

    stop_at = tuple(stop_at)
    current = _container(node)

    # The enclosing run itself may carry the marker
    found, _ = _scan(current, wanted, (), reverse=True)
    if found is not None:
        return found

    current = OoxmlTree.previous_sibling(current)
    while current is not None:
        found, stopped = _scan(current, wanted, stop_at, reverse=True)
        if found is not None:
            return found
        if stopped:
            return None
        current = OoxmlTree.previous_sibling(current)

    return None


def locate_next(node, wanted: str, stop_at: Iterable[str] = ()):
    """
    Find the closest fldChar of type `wanted` after node

    Starts with the sibling following the run enclosing node and walks
    forward. Gives up when a marker listed in stop_at is met.
    """
    if node is None:
        return None

    stop_at = tuple(stop_at)
    current = OoxmlTree.next_sibling(_container(node))
    while current is not None:
        found, stopped = _scan(current, wanted, stop_at, reverse=False)
        if found is not None:
            return found
        if stopped:
            return None
        current = OoxmlTree.next_sibling(current)

    return None


def locate_field(instr_node) -> Optional[FieldBoundary]:
    """
    Resolve the full begin / separate / end triad around an instrText node

    Returns None when any of the three markers is missing.
    """
    begin = locate_previous(instr_node, BEGIN, stop_at=(END, SEPARATE))
    if begin is None:
        return None

    separate = locate_next(instr_node, SEPARATE, stop_at=(BEGIN, END))
    if separate is None:
        return None

    end = locate_next(separate, END, stop_at=(BEGIN,))
    if end is None:
        return None

    return FieldBoundary(begin=begin, separate=separate, end=end)


def runs_between(start_run, end_run) -> List:
    """Sibling elements strictly between two runs"""
    between = []
    current = OoxmlTree.next_sibling(start_run)
    while current is not None and current is not end_run:
        between.append(current)
        current = OoxmlTree.next_sibling(current)
    return between


def is_marker_run(run, kind: str) -> bool:
    """True when run contains a fldChar of the given type"""
    return any(marker_type(fc) == kind for fc in run.iter(qn('fldChar')))
