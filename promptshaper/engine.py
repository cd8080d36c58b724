"""Template evaluation: variable binding, slot resolution and recursion.

`render_template` is the single recursive entry point. A template is parsed,
its variable definitions are collected into an environment, and its slots are
replaced bottom-up with their resolved values. String variables are rendered
as templates themselves, one level deeper, until `max_depth` is exceeded, at
which point the text is returned unevaluated.
"""

import logging
import math
import re
from typing import Any, Callable, List, Mapping, Optional, Sequence

from decouple import config as env_config

from .errors import (DivisionByZero, FunctionCallError, InvariantViolation,
                     MissingRequiredParameter, NameConflict,
                     NameConflictWithFunction, PromptShaperError,
                     UnknownFunction, UnknownSectionKind)
from .functions import Functions
from .models import (Environment, Operation, Operator, ParseResult,
                     SlotSection, Span, TextSection, ValueType, Variable,
                     VariableDefinitionSection)
from .parsing import parse_template, strip_comments

logger = logging.getLogger(__name__)

MAX_RECURSION_DEPTH = env_config("PROMPTSHAPER_MAX_DEPTH", default=5, cast=int)

EXCESS_NEWLINES = re.compile(r"\n{3,}")

FunctionMapping = Mapping[str, Callable[..., Any]]


def render_template(
    template,
    variables: Optional[Environment] = None,
    *,
    functions: Optional[FunctionMapping] = None,
    max_depth: Optional[int] = None,
    return_sections: bool = False,
    depth: int = 0,
):
    """Render a template to plain text.

    Args:
        template: Template text. Anything that is not a non-blank string is
            returned unchanged.
        variables: Initial environment. It is copied, never mutated.
        functions: Mapping of function name to callable (default: the
            registered built-ins).
        max_depth: Maximum nesting of template-valued variables (default:
            PROMPTSHAPER_MAX_DEPTH, or 5).
        return_sections: Return the parsed sections instead of rendering.
        depth: Current nesting level; set by recursive calls.

    Returns:
        The rendered text, or the list of parsed sections if `return_sections`.

    Raises:
        PromptShaperError: Any evaluation failure; no partial output is produced.
    """
    if max_depth is None:
        max_depth = MAX_RECURSION_DEPTH
    if not isinstance(template, str) or template.strip() == "":
        return template
    if depth > max_depth:
        logger.debug(f"Maximum recursion depth {max_depth} exceeded, returning template unevaluated")
        return template
    if functions is None:
        functions = Functions.as_mapping()

    if depth == 0:
        # comments belong to the source text, not to values rendered from it
        template = strip_comments(template)
    logger.debug(f"Parsing template (depth {depth}):\n{template}")
    parsed = parse_template(template)
    if return_sections:
        return parsed.sections

    return evaluate(parsed, variables, functions=functions, max_depth=max_depth, depth=depth)


def evaluate(
    parsed: ParseResult,
    variables: Optional[Environment] = None,
    *,
    functions: FunctionMapping,
    max_depth: Optional[int] = None,
    depth: int = 0,
) -> str:
    """Evaluate an already-parsed template."""
    if max_depth is None:
        max_depth = MAX_RECURSION_DEPTH
    environment = build_environment(parsed.sections, variables, functions)
    logger.debug(f"Found variables: {list(environment.keys())}")
    text = resolve_slots(parsed, environment, functions, max_depth=max_depth, depth=depth)
    return normalize_output(text)


def build_environment(
    sections: Sequence, variables: Optional[Environment], functions: FunctionMapping
) -> Environment:
    """Collect variable definitions into a copy of `variables`.

    Raises:
        NameConflictWithFunction: A definition uses a function's name.
        NameConflict: A definition uses a name that is already defined.
        UnknownSectionKind: A section is not text, slot or variable definition.
    """
    environment: Environment = dict(variables or {})
    for section in sections:
        if isinstance(section, VariableDefinitionSection):
            name = section.variable_name
            if name in functions:
                raise NameConflictWithFunction(name)
            if name in environment:
                raise NameConflict(name)
            content = section.content
            params = content.params if content.type == ValueType.function else section.params
            environment[name] = Variable(
                name=name, type=content.type, value=content.value, params=list(params)
            )
        elif isinstance(section, (SlotSection, TextSection)):
            continue
        else:
            raise UnknownSectionKind(section)
    return environment


def resolve_slots(
    parsed: ParseResult,
    environment: Environment,
    functions: FunctionMapping,
    *,
    max_depth: int,
    depth: int = 0,
) -> str:
    """Replace every resolvable slot in `parsed.text`.

    Slots are visited from the end of the text backwards, so a replacement of
    any length never moves the spans of the slots still to be visited.
    """
    text = parsed.text
    slots: List[SlotSection] = sorted(parsed.slots, key=lambda s: s.span.start, reverse=True)
    for slot in slots:
        logger.debug(f"Rendering slot: {slot.variable_name}")
        value = resolve_slot(slot, environment, functions, max_depth=max_depth, depth=depth)
        if value is None:
            logger.debug(f"No variable for slot '{slot.variable_name}', leaving it in place")
            continue
        text = replace_span(text, slot.span, format_value(value))
    return text


def resolve_slot(
    slot: SlotSection,
    environment: Environment,
    functions: FunctionMapping,
    *,
    max_depth: int,
    depth: int = 0,
):
    """Resolve one slot to a string or number, or None if nothing matches its name."""
    name = slot.variable_name
    variable = environment.get(name)
    if variable is None and name in functions:
        # inline function call, e.g. {{upper("x")}}
        variable = Variable(name=name, type=ValueType.function, value=name, params=slot.params)
    if variable is None:
        return None

    if variable.type == ValueType.number:
        value = variable.value
    elif variable.type == ValueType.string:
        if slot.raw:
            value = variable.value
        else:
            call_environment = bind_parameters(variable, slot, environment)
            logger.debug(f"Recursively rendering {name} at depth {depth + 1}")
            value = render_template(
                variable.value,
                call_environment,
                functions=functions,
                max_depth=max_depth,
                depth=depth + 1,
            )
    elif variable.type == ValueType.function:
        value = call_function(variable, functions)
    elif variable.type == ValueType.unknown:
        raise InvariantViolation(
            f"Variable '{name}' has unknown type (only params may be unknown)"
        )
    else:
        raise InvariantViolation(f"Unknown variable type for '{name}': {variable.type!r}")

    if slot.operation is not None and is_number(value):
        value = apply_operation(value, slot.operation, name)
    return value


def bind_parameters(variable: Variable, slot: SlotSection, environment: Environment) -> Environment:
    """Build the environment a template variable is rendered in.

    Declared parameters are matched to call-site arguments by position. A
    missing optional parameter takes its declared default.
    """
    bound: Environment = {}
    for index, declared in enumerate(variable.params):
        supplied = slot.params[index] if index < len(slot.params) else None
        if supplied is None:
            if declared.required:
                raise MissingRequiredParameter(slot.variable_name, declared.variable_name)
            value, value_type = declared.value, declared.type
        else:
            value, value_type = supplied.value, supplied.type

        bound[declared.variable_name] = Variable(
            name=declared.variable_name,
            type=ValueType.number if value_type == ValueType.number else ValueType.string,
            value="" if value is None else value,
        )
    if bound:
        logger.debug(f"Slot variables for {slot.variable_name}: {list(bound.keys())}")
    return {**environment, **bound}


def call_function(variable: Variable, functions: FunctionMapping):
    func = functions.get(variable.value)
    if func is None:
        raise UnknownFunction(variable.value)
    try:
        result = func(*[param.value for param in variable.params])
    except PromptShaperError:
        raise
    except Exception as e:
        raise FunctionCallError(variable.value, e) from e
    return "" if result is None else result


def apply_operation(value, operation: Operation, name: str):
    operand = operation.value
    if operation.operator == Operator.add:
        return value + operand
    if operation.operator == Operator.subtract:
        return value - operand
    if operation.operator == Operator.multiply:
        return value * operand
    if operation.operator == Operator.divide:
        if operand == 0:
            raise DivisionByZero(name)
        return value / operand
    raise InvariantViolation(f"Unknown operator: {operation.operator!r}")


def is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def format_value(value) -> str:
    """Text for a resolved value; whole floats print without a decimal point."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and math.isnan(value):
        return "NaN"
    if isinstance(value, float) and math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if isinstance(value, float) and value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    return str(value)


def replace_span(text: str, span: Span, replacement: str) -> str:
    return text[: span.start] + replacement + text[span.end :]


def normalize_output(text: str) -> str:
    """Collapse runs of 3+ newlines to 2 and trim surrounding whitespace."""
    return EXCESS_NEWLINES.sub("\n\n", text).strip()
