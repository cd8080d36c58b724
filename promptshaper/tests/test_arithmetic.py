"""Arithmetic on numeric slots: {{name + 2}}, {{name - 2}}, {{name * 2}}, {{name / 2}}"""

import pytest

from promptshaper import (DivisionByZero, number_variable, render_template,
                          string_variable)
from promptshaper.engine import format_value

VARIABLES = {
    name: number_variable(name, value)
    for name, value in [
        ("num1", 5),
        ("num2", 6),
        ("num3", 7),
        ("num4", 8),
        ("num5", 9),
        ("num6", 10),
        ("half", 0.5),
        ("two_thirds", 0.6666666666666666),
        ("minus_one", -1),
    ]
}


def render(template):
    return render_template(template, VARIABLES)


def test_add():
    template = "\n".join(
        [
            "The sum of {{num1}} and 7 is {{num1 + 7}}",
            "The sum of {{num1}} and 6 is {{num1 + 6}}",
            "The sum of {{num3}} and 8 is {{num3 + 8}}",
            "The sum of {{num6}} and 7 is {{num6 + 7}}",
        ]
    )
    assert render(template) == (
        "The sum of 5 and 7 is 12\n"
        "The sum of 5 and 6 is 11\n"
        "The sum of 7 and 8 is 15\n"
        "The sum of 10 and 7 is 17"
    )


def test_subtract():
    template = "\n".join(
        [
            "The difference between {{num1}} and 7 is {{num1 - 7}}",
            "The difference between {{num3}} and 8 is {{num3 - 8}}",
            "The difference between {{minus_one}} and 3 is {{minus_one - 3}}",
            "The difference between {{num4}} and 4 is {{num4 - 4}}",
            "The difference between {{minus_one}} and -1 is {{minus_one - -1}}",
            "The difference between {{num6}} and -1 is {{num6 - -1}}",
        ]
    )
    assert render(template) == (
        "The difference between 5 and 7 is -2\n"
        "The difference between 7 and 8 is -1\n"
        "The difference between -1 and 3 is -4\n"
        "The difference between 8 and 4 is 4\n"
        "The difference between -1 and -1 is 0\n"
        "The difference between 10 and -1 is 11"
    )


def test_multiply():
    template = "\n".join(
        [
            "The product of {{num1}} and 7 is {{num1 * 7}}",
            "The product of {{num3}} and 8 is {{num3 * 8}}",
            "The product of {{num6}} and 12 is {{num6 * 12}}",
            "The product of {{half}} and 3 is {{half * 3}}",
            "The product of {{num2}} and -2 is {{num2 * -2}}",
        ]
    )
    assert render(template) == (
        "The product of 5 and 7 is 35\n"
        "The product of 7 and 8 is 56\n"
        "The product of 10 and 12 is 120\n"
        "The product of 0.5 and 3 is 1.5\n"
        "The product of 6 and -2 is -12"
    )


def test_divide():
    template = "\n".join(
        [
            "The quotient of {{num1}} and 7 is {{num1 / 7}}",
            "The quotient of {{num1}} and 6 is {{num1 / 6}}",
            "The quotient of {{num3}} and 8 is {{num3 / 8}}",
            "The quotient of {{half}} and 3 is {{half / 3}}",
            "The quotient of {{num4}} and 0.6666666666666666 is {{num4 / 0.6666666666666666}}",
            "The quotient of {{half}} and 0.75 is {{half / 0.75}}",
            "The quotient of {{half}} and 9 is {{half / 9}}",
            "The quotient of {{num6}} and 0.75 is {{num6 / 0.75}}",
        ]
    )
    assert render(template) == (
        "The quotient of 5 and 7 is 0.7142857142857143\n"
        "The quotient of 5 and 6 is 0.8333333333333334\n"
        "The quotient of 7 and 8 is 0.875\n"
        "The quotient of 0.5 and 3 is 0.16666666666666666\n"
        "The quotient of 8 and 0.6666666666666666 is 12\n"
        "The quotient of 0.5 and 0.75 is 0.6666666666666666\n"
        "The quotient of 0.5 and 9 is 0.05555555555555555\n"
        "The quotient of 10 and 0.75 is 13.333333333333334"
    )


def test_divide_computed_fraction():
    # a divisor that is itself the result of an earlier division
    assert render("{{two_thirds}}") == "0.6666666666666666"
    assert render_template(
        "{{x = 4}}{{x / 0.6666666666666666}}"
    ) == "6"


@pytest.mark.parametrize("divisor", ["0", "0.0", "-0"])
def test_divide_by_zero(divisor):
    with pytest.raises(DivisionByZero):
        render("{{num1 / " + divisor + "}}")


def test_operation_ignored_for_text():
    variables = {"word": string_variable("word", "five")}
    assert render_template("{{word + 1}}", variables) == "five"


def test_defined_numbers():
    template = "{{price = 2.5}}{{qty = 3}}Total: {{price * 3}} for {{qty}}"
    assert render_template(template) == "Total: 7.5 for 3"


def test_non_finite_results():
    template = "{{big = 1e308}}{{big * 10}} {{big * -10}}"
    assert render_template(template) == "Infinity -Infinity"
    assert format_value(float("nan")) == "NaN"
