import json
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from . import __version__
from .engine import render_template
from .errors import PromptShaperError
from .models import variables_from_json

app = typer.Typer(help="promptshaper: render prompt templates")

logger = logging.getLogger(__name__)

err_console = Console(stderr=True)


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    )
):
    """promptshaper: render prompt templates"""
    pass


def _fail(message: str):
    err_console.print(f"Error: {message}", style="red", markup=False, highlight=False)
    raise typer.Exit(code=1)


def load_variables(json_string: Optional[str], json_file: Optional[Path]):
    """Build the initial environment from a JSON string or file."""
    if json_string:
        try:
            data = json.loads(json_string)
        except json.JSONDecodeError as e:
            _fail(f"Invalid JSON string provided: {e}")
    elif json_file:
        try:
            data = json.loads(json_file.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            _fail(f"Could not read JSON file: {e}")
    else:
        return {}

    try:
        return variables_from_json(data)
    except ValueError as e:
        _fail(str(e))


@app.command()
def render(
    input: str = typer.Argument(
        ..., help="Template file path (or the template itself with --is-string)"
    ),
    is_string: bool = typer.Option(
        False, "--is-string", "-s", help="Treat INPUT as the template text, not a file path"
    ),
    json_string: Optional[str] = typer.Option(
        None, "--json", "-j", help="Variables as a JSON object string"
    ),
    json_file: Optional[Path] = typer.Option(
        None, "--json-file", "-f", help="Variables from a JSON file"
    ),
    save: Optional[Path] = typer.Option(
        None, "--save", "-o", help="Also write the rendered text to this file"
    ),
    sections: bool = typer.Option(
        False, "--sections", help="Print the parsed sections as JSON instead of rendering"
    ),
    max_depth: Optional[int] = typer.Option(
        None, "--max-depth", help="Maximum template nesting depth (overrides PROMPTSHAPER_MAX_DEPTH)"
    ),
    debug: bool = typer.Option(False, "--debug", "-d", help="Show debug messages"),
):
    """Render a template with optional JSON variables."""
    if debug:
        logging.basicConfig(level=logging.DEBUG)
        logging.getLogger("promptshaper").setLevel(logging.DEBUG)

    if is_string:
        template = input
    else:
        try:
            template = Path(input).read_text(encoding="utf-8")
        except OSError as e:
            _fail(f"Could not read template: {e}")

    variables = load_variables(json_string, json_file)

    try:
        result = render_template(
            template, variables, max_depth=max_depth, return_sections=sections
        )
    except (PromptShaperError, OSError) as e:
        _fail(str(e))

    if sections:
        # blank templates come back unparsed
        parsed = result if isinstance(result, list) else []
        typer.echo(json.dumps([s.model_dump(mode="json") for s in parsed], indent=2))
        return

    typer.echo(result)
    if save:
        save.write_text(result, encoding="utf-8")
        logger.debug(f"Saved output to {save}")


if __name__ == "__main__":
    app()
