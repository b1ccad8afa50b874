#!/usr/bin/env python3
"""
Field Instruction Grammar
Tokenizer and parser for the two instruction kinds the engine understands:

    MERGEFIELD <dotted-path> [switches]
    IF <left> <op> <right> "%iftrue%" "%iffalse%"

where <op> is one of =, <>, <=, >=, <, > and <left>/<right> may be quoted.
Anything that does not match is reported as None (not a field of that kind)
rather than raised.
"""

import re
from dataclasses import dataclass
from typing import List, Optional

MERGEFIELD_KEYWORD = 'MERGEFIELD'
IF_KEYWORD = 'IF'

IF_TRUE_PLACEHOLDER = '%iftrue%'
IF_FALSE_PLACEHOLDER = '%iffalse%'

CONDITION_OPERATORS = ('=', '<>', '<=', '>=', '<', '>')

# Token kinds
WORD = 'word'
QUOTED = 'quoted'
OPERATOR = 'operator'
SWITCH = 'switch'

_TOKEN_PATTERN = re.compile(
    r'''
    (?P<quoted>"(?:\\.|[^"\\])*")
    # longest operators first so "<=" is never read as "<" then "="
    |(?P<operator><>|<=|>=|==|!=|=|<|>)
    |(?P<switch>\\\S+)
    |(?P<word>(?:[^\s"<>=!\\]|!(?!=))+)
    |(?P<space>\s+)
    |(?P<error>.)
    ''',
    re.VERBOSE | re.DOTALL
)


class InstructionSyntaxError(ValueError):
    """Raised by the tokenizer on an unterminated quote or stray character"""


@dataclass
class Token:
    kind: str
    value: str
    start: int
    end: int


@dataclass
class IfCondition:
    """Parsed condition of an IF instruction"""
    left: str
    operator: str
    right: str

    @property
    def is_degenerate(self) -> bool:
        return not self.operator


def tokenize(instruction: str) -> List[Token]:
    """
    Split an instruction string into tokens

    Quoted literals lose their surrounding quotes and have \\" unescaped.

    Raises:
        InstructionSyntaxError: on an unterminated quote or a stray character
    """
    tokens = []
    for match in _TOKEN_PATTERN.finditer(instruction):
        kind = match.lastgroup
        raw = match.group()

        if kind == 'space':
            continue
        if kind == 'error':
            if raw == '"':
                raise InstructionSyntaxError(f'Unterminated quote at position {match.start()}')
            raise InstructionSyntaxError(f'Unexpected character {raw!r} at position {match.start()}')

        if kind == 'quoted':
            value = re.sub(r'\\(.)', r'\1', raw[1:-1])
        else:
            value = raw

        tokens.append(Token(kind=kind, value=value, start=match.start(), end=match.end()))

    return tokens


def instruction_keyword(instruction: Optional[str]) -> str:
    """First word of an instruction, upper-cased ('' when empty)"""
    if not instruction:
        return ''
    parts = instruction.strip().split(None, 1)
    return parts[0].upper() if parts else ''


def is_merge_field(instruction: Optional[str]) -> bool:
    return instruction_keyword(instruction) == MERGEFIELD_KEYWORD


def is_if_field(instruction: Optional[str]) -> bool:
    return instruction_keyword(instruction) == IF_KEYWORD


def parse_merge_field(instruction: Optional[str]) -> Optional[str]:
    """
    Extract the dotted field path from a MERGEFIELD instruction

    Examples:
        'MERGEFIELD step_info.q_companyname.q_companyname' -> 'step_info.q_companyname.q_companyname'
        ' MERGEFIELD =client_name \\* MERGEFORMAT ' -> '=client_name'
        'MERGEFIELD "quoted name"' -> 'quoted name'
        'MERGEFIELD' -> None
    """
    if not is_merge_field(instruction):
        return None

    try:
        tokens = tokenize(instruction)
    except InstructionSyntaxError:
        return None

    if len(tokens) < 2:
        return None

    name_token = tokens[1]
    if name_token.kind not in (WORD, QUOTED) or not name_token.value.strip():
        return None

    return name_token.value.strip()


def _find_branch_placeholders(tokens: List[Token]) -> int:
    """Index of the "%iftrue%" token directly followed by "%iffalse%", or -1"""
    for index in range(1, len(tokens) - 1):
        current, following = tokens[index], tokens[index + 1]
        if (current.kind == QUOTED and current.value == IF_TRUE_PLACEHOLDER
                and following.kind == QUOTED and following.value == IF_FALSE_PLACEHOLDER):
            return index
    return -1


def parse_if_instruction(instruction: Optional[str]) -> Optional[IfCondition]:
    """
    Parse an IF instruction into its condition

    Returns:
        IfCondition, or None when the instruction is not an IF field with
        the "%iftrue%" "%iffalse%" placeholders. A condition that cannot be
        split into left/operator/right comes back degenerate: the whole
        condition text as left, empty operator and right.
    """
    if not is_if_field(instruction):
        return None

    instruction = instruction.strip()
    try:
        tokens = tokenize(instruction)
    except InstructionSyntaxError:
        return None

    placeholder_index = _find_branch_placeholders(tokens)
    if placeholder_index < 2:
        # No placeholders, or nothing between IF and the placeholders
        return None

    condition_tokens = tokens[1:placeholder_index]
    raw_condition = instruction[condition_tokens[0].start:condition_tokens[-1].end]

    if len(condition_tokens) == 3:
        left, operator, right = condition_tokens
        if (operator.kind == OPERATOR and operator.value in CONDITION_OPERATORS
                and left.kind in (WORD, QUOTED) and right.kind in (WORD, QUOTED)):
            return IfCondition(left=left.value, operator=operator.value, right=right.value)

    return IfCondition(left=raw_condition, operator='', right='')
