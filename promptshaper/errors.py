"""Exception classes for promptshaper."""

from typing import Optional


class PromptShaperError(Exception):
    """Base class for all template evaluation failures."""


class NameConflict(PromptShaperError):
    """A variable definition reuses a name that is already defined."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Variable name conflict: {name}")


class NameConflictWithFunction(NameConflict):
    """A variable definition reuses the name of a built-in function."""

    def __init__(self, name: str):
        self.name = name
        PromptShaperError.__init__(
            self, f"Variable name conflicts with function: {name}"
        )


class UnknownSectionKind(PromptShaperError):
    """The parser produced a section the evaluator does not recognise."""

    def __init__(self, section):
        self.section = section
        kind = getattr(section, "kind", type(section).__name__)
        super().__init__(f"Unknown section kind: {kind!r}")


class MissingRequiredParameter(PromptShaperError):
    """A template variable was used without one of its required parameters."""

    def __init__(self, variable_name: str, param_name: str):
        self.variable_name = variable_name
        self.param_name = param_name
        super().__init__(
            f"Required param for {variable_name} not found: {param_name}"
        )


class UnknownFunction(PromptShaperError):
    """A slot or function variable names a function that is not registered."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown function: {name}")


class FunctionCallError(PromptShaperError):
    """A template function raised while being called (bad arguments, missing file, ...)."""

    def __init__(self, name: str, error: Exception):
        self.name = name
        self.error = error
        super().__init__(f"Error calling function {name}: {error}")


class DivisionByZero(PromptShaperError, ZeroDivisionError):
    """Arithmetic on a slot divided by zero."""

    def __init__(self, variable_name: str):
        self.variable_name = variable_name
        super().__init__(f"Division by zero in slot: {variable_name}")


class InvariantViolation(PromptShaperError):
    """Internal state that should be impossible, e.g. a variable of unknown type."""


class TemplateSyntaxError(PromptShaperError):
    """User-friendly wrapper for template parse errors."""

    def __init__(
        self,
        message: str,
        line: Optional[int] = None,
        column: Optional[int] = None,
        original_error: Optional[Exception] = None,
    ):
        self.line = line
        self.column = column
        self.original_error = original_error
        super().__init__(message)

    def __str__(self):
        if self.line is None:
            return f"Parse error: {self.args[0]}"
        return f"Parse error at line {self.line}, column {self.column}: {self.args[0]}"
