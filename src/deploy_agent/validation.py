"""Pydantic validation decorator for CLI commands."""

from collections.abc import Callable
from typing import Any, TypeVar

from makefun import wraps
from pydantic import BaseModel, ValidationError
import typer

F = TypeVar("F", bound=Callable[..., Any])


def validate(model_class: type[BaseModel]) -> Callable[[F], F]:
    """Decorator validating CLI command arguments against a Pydantic model.

    Uses makefun.wraps so Typer still sees the original signature when it
    parses options and renders help.

    Keyword arguments named like model fields are validated together; the
    command is then called with the validated (normalized) values plus the
    remaining arguments untouched. Validation errors are printed one per line
    and the command exits with code 1.

    Example:
        @app.command()
        @validate(AddProjectRequest)
        def add(name: str, max_args: int = 0, json_output: bool = False):
            ...
    """

    def decorator(func: F) -> F:
        @wraps(func)
        def wrapper(**kwargs: Any) -> Any:
            model_fields = model_class.model_fields.keys()
            model_data = {k: v for k, v in kwargs.items() if k in model_fields}

            try:
                validated = model_class(**model_data)
            except ValidationError as e:
                for err in e.errors():
                    loc = ".".join(str(x) for x in err["loc"])
                    typer.echo(f"✗ {loc}: {err['msg']}", err=True)
                raise typer.Exit(1) from e

            all_kwargs = {k: getattr(validated, k) for k in model_data}
            remaining_kwargs = {k: v for k, v in kwargs.items() if k not in model_fields}
            all_kwargs.update(remaining_kwargs)

            return func(**all_kwargs)

        return wrapper  # type: ignore

    return decorator
