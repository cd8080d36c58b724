"""Data model shared by the parser and the evaluation engine.

The parser emits a `ParseResult`: an ordered list of typed sections plus the
template text with every variable definition erased. All section spans index
into that text.
"""

from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field


class ValueType(str, Enum):
    number = "number"
    string = "string"
    function = "function"
    # only ever valid on an unresolved parameter
    unknown = "unknown"


class Operator(str, Enum):
    add = "add"
    subtract = "subtract"
    multiply = "multiply"
    divide = "divide"


OPERATOR_SYMBOLS = {
    "+": Operator.add,
    "-": Operator.subtract,
    "*": Operator.multiply,
    "/": Operator.divide,
}


class Span(BaseModel):
    """Half-open `[start, end)` offset range."""

    start: int
    end: int


class Operation(BaseModel):
    operator: Operator
    value: float


class Param(BaseModel):
    """A declared parameter (named, maybe with a default) or a call-site argument.

    Call-site arguments are positional, so `variable_name` is None for them.
    `type` is the literal type the parser saw, which decides the type of the
    variable the argument is bound to.
    """

    variable_name: Optional[str] = None
    value: Any = None
    required: bool = False
    type: ValueType = ValueType.string


class Content(BaseModel):
    """Typed payload of a variable definition."""

    type: ValueType
    value: Any
    params: List[Param] = Field(default_factory=list)


class TextSection(BaseModel):
    kind: Literal["text"] = "text"
    span: Span


class VariableDefinitionSection(BaseModel):
    kind: Literal["variable"] = "variable"
    # empty span at the point the definition was erased
    span: Span
    source_span: Optional[Span] = None
    variable_name: str
    content: Content
    params: List[Param] = Field(default_factory=list)


class SlotSection(BaseModel):
    kind: Literal["slot"] = "slot"
    span: Span
    variable_name: str
    params: List[Param] = Field(default_factory=list)
    operation: Optional[Operation] = None
    raw: bool = False


Section = Annotated[
    Union[TextSection, VariableDefinitionSection, SlotSection],
    Field(discriminator="kind"),
]


class ParseResult(BaseModel):
    sections: List[Section] = Field(default_factory=list)
    text: str = ""

    @property
    def slots(self) -> List[SlotSection]:
        return [s for s in self.sections if s.kind == "slot"]

    @property
    def has_tags(self) -> bool:
        return any(s.kind != "text" for s in self.sections)


class Variable(BaseModel):
    name: str
    type: ValueType
    value: Any
    params: List[Param] = Field(default_factory=list)


Environment = Dict[str, Variable]


def number_variable(name: str, value: Union[int, float]) -> Variable:
    return Variable(name=name, type=ValueType.number, value=value)


def string_variable(name: str, value: str, params: Optional[List[Param]] = None) -> Variable:
    return Variable(name=name, type=ValueType.string, value=value, params=params or [])


def variables_from_json(data: Dict[str, Any]) -> Environment:
    """Convert a decoded JSON object into an environment.

    Numbers become `number` variables and strings become `string` variables.
    Any other JSON type is rejected.

    Example:
        >>> variables_from_json({"count": 3, "name": "World"})["count"].type
        <ValueType.number: 'number'>
    """
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object, got {type(data).__name__}")

    variables: Environment = {}
    for name, value in data.items():
        if isinstance(value, bool):
            raise ValueError(f"Unsupported value for variable '{name}': {value!r}")
        if isinstance(value, (int, float)):
            variables[name] = number_variable(name, value)
        elif isinstance(value, str):
            variables[name] = string_variable(name, value)
        else:
            raise ValueError(
                f"Unsupported value for variable '{name}': {type(value).__name__}"
            )
    return variables
