"""PromptShaper -- a template language for composing prompts from variables,
reusable snippets and function calls."""

import logging

# Version - reads from package metadata (set in pyproject.toml)
try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("promptshaper")
except PackageNotFoundError:
    __version__ = "0.0.0+dev"

logger = logging.getLogger(__name__)

from .engine import (MAX_RECURSION_DEPTH, build_environment, evaluate,
                     normalize_output, render_template)
from .errors import (DivisionByZero, FunctionCallError, InvariantViolation,
                     MissingRequiredParameter, NameConflict,
                     NameConflictWithFunction, PromptShaperError,
                     TemplateSyntaxError, UnknownFunction, UnknownSectionKind)
from .functions import Functions
from .models import (Content, Environment, Operation, Operator, Param,
                     ParseResult, SlotSection, Span, TextSection, ValueType,
                     Variable, VariableDefinitionSection, number_variable,
                     string_variable, variables_from_json)
from .parsing import parse_template, strip_comments
