"""Template parser: turns raw template text into a typed `ParseResult`.

Parsing happens in two passes. A regex finds every `{{...}}` tag, then a small
Lark grammar parses the inside of each tag. Block definitions
(`{{name}}...{{/name}}`) are paired by looking ahead for the matching closing
tag; a closing tag belongs to the nearest opener of the same name before it.

Tag forms:

    {{name = 5}}                        number definition
    {{name = "text"}}                   string (template) definition
    {{name = func("a", 2)}}             function definition
    {{name(p1, p2="x")}}...{{/name}}    block definition with parameters
    {{name}}  {{name("a", 2)}}          slot, optionally with call arguments
    {{@name}}                           raw slot (no recursive rendering)
    {{name + 2}}                        slot with arithmetic (+ - * /)
"""

import logging
import re
from typing import List, Optional

from lark import Lark, Transformer
from lark.exceptions import UnexpectedInput, VisitError

from .errors import TemplateSyntaxError
from .models import (OPERATOR_SYMBOLS, Content, Operation, Param, ParseResult,
                     SlotSection, Span, TextSection, ValueType,
                     VariableDefinitionSection)

logger = logging.getLogger(__name__)

# {{ ... }} where quoted strings inside the tag may themselves contain braces
TAG_PATTERN = re.compile(
    r"""\{\{((?:"(?:\\.|[^"\\])*"|'(?:\\.|[^'\\])*'|[^"'}]|\}(?!\}))*)\}\}""",
    re.DOTALL,
)
CLOSING_TAG_BODY = re.compile(r"^\s*/\s*([A-Za-z_]\w*)\s*$")

# `//` comments, either on their own line or after whitespace (keeps URLs intact)
COMMENT_PATTERN = re.compile(r"(?:^|(?<=\s))//[^\n]*", re.MULTILINE)

# whole tags are matched first so `//` inside a tag string is never a comment
_TAG_OR_COMMENT = re.compile(
    f"{TAG_PATTERN.pattern}|{COMMENT_PATTERN.pattern}", re.DOTALL | re.MULTILINE
)

_tag_body_grammar = r"""
start: tag

?tag: NAME _EQUALS definition_value           -> inline_definition
    | RAW? NAME arguments? operation?         -> slot

?definition_value: literal
                 | NAME arguments             -> call

arguments: _LPAR [argument (_COMMA argument)*] _RPAR

argument: NAME _EQUALS literal                -> default_param
        | literal                             -> literal_arg
        | NAME                                -> name_arg

operation: OPERATOR SIGNED_NUMBER

literal: STRING                               -> literal_string
       | SIGNED_NUMBER                        -> literal_number

RAW: "@"
OPERATOR: "+" | "-" | "*" | "/"
NAME: /[A-Za-z_][A-Za-z0-9_]*/
STRING: /"(?:\\.|[^"\\])*"/s | /'(?:\\.|[^'\\])*'/s
_EQUALS: "="
_LPAR: "("
_RPAR: ")"
_COMMA: ","

%import common.SIGNED_NUMBER
%import common.WS
%ignore WS
"""

_cached_tag_parser = None


def _get_tag_body_parser():
    """Get cached parser for tag body content."""
    global _cached_tag_parser
    if _cached_tag_parser is None:
        _cached_tag_parser = Lark(_tag_body_grammar, parser="lalr")
    return _cached_tag_parser


_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "\\": "\\", '"': '"', "'": "'"}


def _unquote(token: str) -> str:
    body = token[1:-1]
    return re.sub(r"\\(.)", lambda m: _ESCAPES.get(m.group(1), m.group(0)), body, flags=re.DOTALL)


def _to_number(token: str):
    if any(c in token for c in ".eE"):
        return float(token)
    return int(token)


class TagBodyTransformer(Transformer):
    """Converts a tag body parse tree into a plain dict.

    Arguments are returned as tuples so the caller can decide whether they
    are declared parameters (block definitions) or call-site values (slots).
    """

    def start(self, items):
        return items[0]

    def inline_definition(self, items):
        name, value = items
        return {"tag": "definition", "name": str(name), "content": value}

    def call(self, items):
        name = str(items[0])
        arguments = items[1] if len(items) > 1 else []
        return Content(
            type=ValueType.function,
            value=name,
            params=[_argument_to_call_param(a) for a in arguments],
        )

    def slot(self, items):
        raw = False
        if items and getattr(items[0], "type", None) == "RAW":
            raw = True
            items = items[1:]
        name = str(items[0])
        arguments = None
        operation = None
        for item in items[1:]:
            if isinstance(item, Operation):
                operation = item
            else:
                arguments = item
        return {
            "tag": "slot",
            "name": name,
            "raw": raw,
            "arguments": arguments,
            "operation": operation,
        }

    def arguments(self, items):
        # `[...]` in the grammar yields None for an empty argument list
        return [a for a in items if a is not None]

    def default_param(self, items):
        name, content = items
        return ("default", str(name), content.value, content.type)

    def literal_arg(self, items):
        content = items[0]
        return ("literal", None, content.value, content.type)

    def name_arg(self, items):
        return ("name", str(items[0]), None, None)

    def operation(self, items):
        symbol, number = items
        return Operation(operator=OPERATOR_SYMBOLS[str(symbol)], value=float(number))

    def literal_string(self, items):
        return Content(type=ValueType.string, value=_unquote(str(items[0])))

    def literal_number(self, items):
        return Content(type=ValueType.number, value=_to_number(str(items[0])))


def _argument_to_call_param(argument) -> Param:
    kind, name, value, value_type = argument
    if kind == "name":
        # bare identifiers in call position are literal strings
        return Param(value=name, type=ValueType.string)
    if kind == "default":
        raise ValueError(f"Keyword argument '{name}' is only valid in a definition")
    return Param(value=value, type=value_type)


def _argument_to_declared_param(argument) -> Param:
    kind, name, value, value_type = argument
    if kind == "name":
        return Param(variable_name=name, required=True, type=ValueType.unknown)
    return Param(variable_name=name, value=value, required=False, type=value_type)


def _position(text: str, offset: int):
    line = text.count("\n", 0, offset) + 1
    column = offset - (text.rfind("\n", 0, offset) + 1) + 1
    return line, column


def _syntax_error(message: str, text: str, offset: int, original=None) -> TemplateSyntaxError:
    line, column = _position(text, offset)
    return TemplateSyntaxError(message, line=line, column=column, original_error=original)


def parse_tag_body(body: str) -> dict:
    """Parse the content between `{{` and `}}`.

    Returns:
        Dict with a 'tag' key of either 'definition' or 'slot'.
    """
    parser = _get_tag_body_parser()
    tree = parser.parse(body)
    return TagBodyTransformer().transform(tree)


def strip_comments(template: str) -> str:
    """Remove `// ...` comments, keeping the line breaks and anything inside tags."""
    return _TAG_OR_COMMENT.sub(
        lambda m: m.group(0) if m.group(0).startswith("{{") else "", template
    )


def _find_closing_tag(text: str, name: str, start: int) -> Optional[re.Match]:
    pattern = re.compile(r"\{\{\s*/\s*" + re.escape(name) + r"\s*\}\}")
    return pattern.search(text, start)


def _is_block_candidate(tag: dict) -> bool:
    if tag["tag"] != "slot" or tag["raw"] or tag["operation"] is not None:
        return False
    return all(kind in ("name", "default") for kind, *_ in (tag["arguments"] or []))


def _has_later_opener(text: str, name: str, start: int, end: int) -> bool:
    """True if another `{{name...}}` that could open a block sits in text[start:end].

    A closing tag belongs to the nearest opener before it, so an earlier
    `{{name}}` is then a plain slot (a use before the definition).
    """
    for match in TAG_PATTERN.finditer(text, start, end):
        body = match.group(1)
        if CLOSING_TAG_BODY.match(body):
            continue
        try:
            tag = parse_tag_body(body)
        except (UnexpectedInput, VisitError):
            # reported when the scan reaches this tag
            continue
        if tag["name"] == name and _is_block_candidate(tag):
            return True
    return False


class _SectionBuilder:
    """Accumulates sections and the definition-free output text."""

    def __init__(self):
        self.sections = []
        self.pieces: List[str] = []
        self.length = 0

    def add_text(self, chunk: str):
        if not chunk:
            return
        self.sections.append(
            TextSection(span=Span(start=self.length, end=self.length + len(chunk)))
        )
        self._emit(chunk)

    def add_slot(self, source: str, tag: dict, params: List[Param]):
        self.sections.append(
            SlotSection(
                span=Span(start=self.length, end=self.length + len(source)),
                variable_name=tag["name"],
                params=params,
                operation=tag["operation"],
                raw=tag["raw"],
            )
        )
        self._emit(source)

    def add_definition(self, name: str, content: Content, source_span: Span, params=None):
        self.sections.append(
            VariableDefinitionSection(
                span=Span(start=self.length, end=self.length),
                source_span=source_span,
                variable_name=name,
                content=content,
                params=params or [],
            )
        )

    def _emit(self, chunk: str):
        self.pieces.append(chunk)
        self.length += len(chunk)

    def result(self) -> ParseResult:
        return ParseResult(sections=self.sections, text="".join(self.pieces))


def parse_template(text: str) -> ParseResult:
    """Parse template text into typed sections.

    Comments are not removed here; call `strip_comments` first.

    Args:
        text: Template text

    Returns:
        ParseResult whose `text` has every variable definition erased and
        whose section spans index into that text.

    Raises:
        TemplateSyntaxError: If a tag cannot be parsed.
    """
    builder = _SectionBuilder()
    pos = 0

    while True:
        match = TAG_PATTERN.search(text, pos)
        if match is None:
            break

        builder.add_text(text[pos : match.start()])
        body = match.group(1)
        body_offset = match.start(1)

        closing = CLOSING_TAG_BODY.match(body)
        if closing:
            raise _syntax_error(
                f"Closing tag without opening tag: {closing.group(1)}", text, match.start()
            )

        try:
            tag = parse_tag_body(body)
        except UnexpectedInput as e:
            offset = getattr(e, "pos_in_stream", None)
            if offset is None or offset < 0:
                offset = len(body)
            raise _syntax_error(
                f"Invalid tag {{{{{body.strip()}}}}}", text, body_offset + offset, e
            ) from e
        except VisitError as e:
            # raised by the transformer, e.g. a keyword argument in a function call
            raise _syntax_error(str(e.orig_exc), text, match.start(), e.orig_exc) from e

        if tag["tag"] == "definition":
            logger.debug(f"Found definition: {tag['name']}")
            builder.add_definition(
                tag["name"], tag["content"], Span(start=match.start(), end=match.end())
            )
            pos = match.end()
            continue

        close = _find_closing_tag(text, tag["name"], match.end()) if _is_block_candidate(tag) else None
        if close is not None and _has_later_opener(text, tag["name"], match.end(), close.start()):
            close = None
        if close is not None:
            logger.debug(f"Found block definition: {tag['name']}")
            params = [_argument_to_declared_param(a) for a in tag["arguments"] or []]
            builder.add_definition(
                tag["name"],
                Content(type=ValueType.string, value=text[match.end() : close.start()].strip("\r\n")),
                Span(start=match.start(), end=close.end()),
                params=params,
            )
            pos = close.end()
            continue

        try:
            params = [_argument_to_call_param(a) for a in tag["arguments"] or []]
        except ValueError as e:
            raise _syntax_error(
                f"{e} (missing closing tag {{{{/{tag['name']}}}}}?)", text, match.start()
            ) from e
        builder.add_slot(match.group(0), tag, params)
        pos = match.end()

    builder.add_text(text[pos:])
    result = builder.result()
    logger.debug(f"Parsed {len(result.sections)} sections")
    return result
