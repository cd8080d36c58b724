"""Built-in upper() and lower() functions."""

from . import Functions


@Functions.register("upper")
def upper_function(text="") -> str:
    return str(text).upper()


@Functions.register("lower")
def lower_function(text="") -> str:
    return str(text).lower()
