#!/usr/bin/env python3
"""
IF Field Processor
Parses, evaluates and resolves Word IF fields, including nested ones

An IF field is a regular complex field whose visible branches follow it in
the document, closed by text markers:

    {IF "a.b" = "x" "%iftrue%" "%iffalse%"}   <- field code, renders as {IF}
    ...true branch content...
    %else%
    ...false branch content...
    %end%

The parser walks the flat run sequence of the document with an index
cursor. A nested IF begin recurses, so every %end% closes the field that
opened most recently. Text sharing a run with a marker is split at the
marker: before %else% is true-branch text, after it false-branch text, and
anything after the field's own %end% lies outside the field.
"""

import math
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from data_context import describe_value, load_context, resolve_path, to_host_number, to_host_string
from field_instructions import IfCondition, parse_if_instruction
from field_locator import BEGIN, is_marker_run, locate_field
from ooxml_tree import OoxmlTree, local_name, qn

ELSE_MARKER = '%else%'
END_MARKER = '%end%'
IF_RESULT_PLACEHOLDER = '{IF}'

_MARKER_PATTERN = re.compile(f'({re.escape(ELSE_MARKER)}|{re.escape(END_MARKER)})')

EQUALITY_OPERATORS = ('=', '==')
INEQUALITY_OPERATORS = ('<>', '!=')
ORDERING_OPERATORS = {
    '<': lambda a, b: a < b,
    '>': lambda a, b: a > b,
    '<=': lambda a, b: a <= b,
    '>=': lambda a, b: a >= b,
}

# Run children that may remain in a marker run without it carrying content
BLANK_RUN_CHILDREN = ('rPr', 't')


class IfFieldStructureError(ValueError):
    """An IF field whose markers do not line up (skipped, never fatal)"""


@dataclass
class IfField:
    """
    One parsed IF field

    if_true / if_false hold the branch content in document order: plain
    strings for text runs and IfField objects for nested conditionals.
    The *_runs lists point back into the tree and are only used when the
    field is resolved in place. marker_runs pairs each run holding one of
    this field's markers with the branch its first text belongs to.
    """
    left: str
    operator: str
    right: str
    if_true: List[Union[str, 'IfField']] = field(default_factory=list)
    if_false: List[Union[str, 'IfField']] = field(default_factory=list)
    code_runs: List = field(default_factory=list, repr=False, compare=False)
    marker_runs: List = field(default_factory=list, repr=False, compare=False)
    true_runs: List = field(default_factory=list, repr=False, compare=False)
    false_runs: List = field(default_factory=list, repr=False, compare=False)

    @classmethod
    def from_condition(cls, condition: IfCondition, code_runs: Optional[List] = None) -> 'IfField':
        return cls(
            left=condition.left,
            operator=condition.operator,
            right=condition.right,
            code_runs=list(code_runs or [])
        )

    def branch(self, is_true: bool) -> List:
        return self.if_true if is_true else self.if_false

    def branch_runs(self, is_true: bool) -> List:
        return self.true_runs if is_true else self.false_runs

    def nested_fields(self) -> List['IfField']:
        return [item for item in self.if_true + self.if_false if isinstance(item, IfField)]

    def all_runs(self) -> List:
        """Every run this field owns, nested fields included"""
        runs = self.code_runs + [run for run, _ in self.marker_runs] + self.true_runs + self.false_runs
        for nested in self.nested_fields():
            runs.extend(nested.all_runs())
        return runs

    def evaluate(self, data: Optional[Dict]) -> bool:
        return evaluate_condition(self.left, self.operator, self.right, data)

    def to_dict(self) -> Dict:
        """JSON view: {left, operator, right, ifTrue, ifFalse}"""
        return {
            'left': self.left,
            'operator': self.operator,
            'right': self.right,
            'ifTrue': normalize_branch(self.if_true),
            'ifFalse': normalize_branch(self.if_false),
        }


def normalize_branch(items: List) -> Union[str, List]:
    """
    Collapse branch content for the JSON view

    - exactly one string      -> that string
    - anything else           -> list in document order, nested fields as dicts

    Text and nested fields in the same branch keep their relative order.
    """
    if len(items) == 1 and isinstance(items[0], str):
        return items[0]
    return [item.to_dict() if isinstance(item, IfField) else item for item in items]


def evaluate_condition(left: str, operator: str, right: str, data: Optional[Dict]) -> bool:
    """
    Evaluate `left operator right` against the data context

    left is a dotted path into data; right is a literal. Equality operators
    compare string forms, ordering operators compare numeric forms. Unknown
    or empty operators are False.
    """
    actual = resolve_path(data or {}, left)

    if operator in EQUALITY_OPERATORS:
        return to_host_string(actual) == right
    if operator in INEQUALITY_OPERATORS:
        return to_host_string(actual) != right
    if operator in ORDERING_OPERATORS:
        actual_number = to_host_number(actual)
        expected_number = to_host_number(right)
        if math.isnan(actual_number) or math.isnan(expected_number):
            return False
        return ORDERING_OPERATORS[operator](actual_number, expected_number)

    return False


class IfFieldProcessor:
    """
    Finds IF fields in a tree and either describes or resolves them

    Both modes scan the same snapshotted run sequence in document order.
    Malformed fields (incomplete begin/separate/end, repeated %else%, missing
    %end%) are skipped and reported in warnings.
    """

    def __init__(self, tree: OoxmlTree, verbose: bool = True):
        self.tree = tree
        self.verbose = verbose
        self.runs = tree.iter('r')
        self.run_index = {run: index for index, run in enumerate(self.runs)}
        self.warnings = []
        self.resolved = []
        # Run indexes of IF fields already reported as malformed
        self.malformed = set()

    # Public API

    def extract_fields(self) -> List[IfField]:
        """Parse every top-level IF field without touching the tree"""
        return self._scan(lambda if_field: None)

    def process_fields(self, data: Optional[Dict] = None) -> List[IfField]:
        """
        Resolve every IF field against data, pruning the losing branches

        Returns:
            The top-level fields that were resolved
        """
        data = load_context(data)
        fields = self._scan(lambda if_field: self.resolve_field(if_field, data))

        if self.verbose and fields:
            print(f"✓ Resolved {len(fields)} IF fields")

        return fields

    # Parsing

    def _scan(self, on_field: Callable[[IfField], Any]) -> List[IfField]:
        fields = []
        index = 0

        while index < len(self.runs):
            header = self._read_header(index)
            if header is None:
                index += 1
                continue

            parsed = self._try_parse_field(index, header)
            if parsed is None:
                index += 1
                continue

            if_field, next_index = parsed
            on_field(if_field)
            fields.append(if_field)
            index = next_index

        return fields

    def _read_header(self, index: int) -> Optional[Tuple[IfCondition, Any]]:
        """
        Read the IF instruction of a field starting at runs[index]

        Returns:
            (condition, first instrText node) when runs[index] opens an IF
            field, otherwise None. A field already reported as malformed
            reads as plain content.
        """
        run = self.runs[index]
        if index in self.malformed or not is_marker_run(run, BEGIN):
            return None

        instruction_parts = []
        first_instr = None
        position = index
        while position < len(self.runs):
            current = self.runs[position]
            instructions = OoxmlTree.find_all(current, 'instrText')
            if position > index and (not instructions or OoxmlTree.find_first(current, 'fldChar') is not None):
                break
            for instr in instructions:
                if first_instr is None:
                    first_instr = instr
                instruction_parts.append(instr.text or '')
            position += 1

        if first_instr is None:
            return None

        condition = parse_if_instruction(''.join(instruction_parts))
        if condition is None:
            return None

        return condition, first_instr

    def _try_parse_field(self, index: int, header: Tuple[IfCondition, Any]) -> Optional[Tuple[IfField, int]]:
        """Parse the field at runs[index], reporting it once and returning None if malformed"""
        try:
            return self._parse_field(index, *header)
        except IfFieldStructureError as e:
            self.malformed.add(index)
            self._warn(str(e))
            return None

    def _parse_field(self, index: int, condition: IfCondition, instr_node) -> Tuple[IfField, int]:
        """
        Parse the IF field opened at runs[index] and its branch content

        Returns:
            (field, index of the first run after the field's %end%)

        Raises:
            IfFieldStructureError: when the field's markers do not line up
        """
        description = f"IF {condition.left} {condition.operator} {condition.right}".strip()

        boundary = locate_field(instr_node)
        if boundary is None:
            raise IfFieldStructureError(f"Incomplete IF field structure: {description}")

        end_index = self.run_index.get(boundary.end_run)
        if end_index is None or end_index < index:
            raise IfFieldStructureError(f"IF field end marker out of order: {description}")

        if_field = IfField.from_condition(condition, code_runs=self.runs[index:end_index + 1])

        in_true_branch = True
        seen_else = False
        cursor = end_index + 1

        while cursor < len(self.runs):
            run = self.runs[cursor]

            nested_header = self._read_header(cursor)
            if nested_header is not None:
                parsed = self._try_parse_field(cursor, nested_header)
                if parsed is not None:
                    nested, cursor = parsed
                    if_field.branch(in_true_branch).append(nested)
                    continue
                # A malformed nested field stays as ordinary branch content

            text = OoxmlTree.text_of(run)

            if ELSE_MARKER in text or END_MARKER in text:
                if_field.marker_runs.append((run, in_true_branch))
                for segment in _MARKER_PATTERN.split(text):
                    if segment == ELSE_MARKER:
                        if seen_else:
                            raise IfFieldStructureError(f"Repeated {ELSE_MARKER} in {description}")
                        seen_else = True
                        in_true_branch = False
                    elif segment == END_MARKER:
                        return if_field, cursor + 1
                    elif segment.strip():
                        if_field.branch(in_true_branch).append(segment)
            else:
                if_field.branch_runs(in_true_branch).append(run)
                if text and text.strip() != IF_RESULT_PLACEHOLDER:
                    if_field.branch(in_true_branch).append(text)

            cursor += 1

        raise IfFieldStructureError(f"Missing {END_MARKER} for {description}")

    # Resolution

    def resolve_field(self, if_field: IfField, data: Dict) -> bool:
        """
        Keep the winning branch of one field and remove everything else

        Removes the field code, the losing branch (nested fields included) and
        the %else%/%end% markers along with any losing text sharing their runs.
        Nested fields in the winning branch are resolved recursively and
        paragraphs emptied by the pruning go too.
        """
        outcome = if_field.evaluate(data)

        if self.verbose:
            actual = resolve_path(data, if_field.left)
            print(f"   IF {if_field.left} ({describe_value(actual)}) {if_field.operator} "
                  f"{if_field.right!r} -> {'true' if outcome else 'false'} branch")

        losing_runs = list(if_field.branch_runs(not outcome))
        for nested in if_field.branch(not outcome):
            if isinstance(nested, IfField):
                losing_runs.extend(nested.all_runs())

        paragraphs = []
        for run in if_field.code_runs + losing_runs:
            self._remove_run(run, paragraphs)

        for nested in if_field.branch(outcome):
            if isinstance(nested, IfField):
                self.resolve_field(nested, data)

        for run, starts_in_true in if_field.marker_runs:
            self._prune_marker_run(run, starts_in_true, outcome)
            if self._is_blank_run(run):
                self._remove_run(run, paragraphs)

        for paragraph in paragraphs:
            self._drop_if_emptied(paragraph)

        self.resolved.append(if_field)
        return outcome

    def _remove_run(self, run, paragraphs: List):
        paragraph = OoxmlTree.ancestor(run, 'p')
        if OoxmlTree.remove(run) and paragraph is not None and paragraph not in paragraphs:
            paragraphs.append(paragraph)

    @staticmethod
    def _prune_marker_run(run, starts_in_true: bool, outcome: bool):
        """
        Drop this field's markers and the losing branch's text from a marker run

        branch is True/False inside the field and None once the field's own
        %end% has passed; text after that is left alone.
        """
        branch = starts_in_true
        for text_element in OoxmlTree.find_all(run, 't'):
            if not text_element.text:
                continue
            kept = []
            for segment in _MARKER_PATTERN.split(text_element.text):
                if branch is not None and segment == ELSE_MARKER:
                    branch = False
                elif branch is not None and segment == END_MARKER:
                    branch = None
                elif branch is None or branch == outcome:
                    kept.append(segment)
            text_element.text = ''.join(kept)

    @staticmethod
    def _is_blank_run(run) -> bool:
        if OoxmlTree.text_of(run).strip():
            return False
        return all(local_name(child) in BLANK_RUN_CHILDREN for child in OoxmlTree.element_children(run))

    @staticmethod
    def _drop_if_emptied(paragraph):
        if paragraph.getparent() is None:
            return
        if next(paragraph.iter(qn('r')), None) is not None:
            return
        if OoxmlTree.text_of(paragraph).strip():
            return
        OoxmlTree.remove(paragraph)

    def _warn(self, message: str):
        self.warnings.append(message)
        if self.verbose:
            print(f"⚠️  {message}")
