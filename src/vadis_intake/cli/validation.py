"""Pydantic validation decorator for CLI commands."""

from collections.abc import Callable
from typing import Any, TypeVar

from makefun import wraps
from pydantic import BaseModel, ValidationError
import typer

F = TypeVar("F", bound=Callable[..., Any])


def validate(model_class: type[BaseModel]) -> Callable[[F], F]:
    """Decorator for Pydantic validation of optional CLI command arguments.

    Uses makefun.wraps to preserve the function signature for Typer/Click.

    Only the model fields that were actually given (not None, not an empty
    list) are validated, which suits partial-update models. The command is
    called with the validated values in place of the raw ones.

    Args:
        model_class: Pydantic model class to validate against

    Example:
        @app.command()
        @validate(ProjectUpdate)
        def update(project_id: str, title: str | None = None):
            ...
    """

    def decorator(func: F) -> F:
        @wraps(func)
        def wrapper(**kwargs: Any) -> Any:
            model_fields = model_class.model_fields.keys()
            model_data = {
                k: v for k, v in kwargs.items() if k in model_fields and v not in (None, [], ())
            }
            try:
                validated = model_class(**model_data)
            except ValidationError as e:
                for err in e.errors():
                    loc = ".".join(str(x) for x in err["loc"])
                    typer.echo(f"✗ {loc}: {err['msg']}", err=True)
                raise typer.Exit(1) from e

            all_kwargs = dict(kwargs)
            all_kwargs.update(validated.model_dump(exclude_unset=True))
            return func(**all_kwargs)

        return wrapper  # type: ignore

    return decorator
