"""
CLI entry point for accessctl.

This module provides the Typer-based command-line interface for accessctl.

Commands:
    check       Decide whether actions on a resource are allowed
    validate    Load a policy and optionally check it against a registry

Exit codes:
    0   allowed / valid
    1   denied
    2   policy, registry, or context could not be loaded

Architecture Note:
    The CLI is a thin collaborator around the engine: it loads files,
    parses contexts, and prints. All decisions come from AccessControl.
"""

import json
import logging
import traceback
from pathlib import Path
from typing import Annotated, Any, NoReturn, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from accessctl import __version__
from accessctl.errors import AccessControlError, ContextParseError
from accessctl.policy import get_access_control
from accessctl.schema import AccessDecision, Policy, load_config, load_policy

EXIT_ALLOWED = 0
EXIT_DENIED = 1
EXIT_ERROR = 2

app = typer.Typer(
    name="accessctl",
    help="Evaluate attribute-based access control policies.",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold]accessctl[/bold] version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """
    accessctl - Attribute-based access control decisions.

    Load a YAML policy and ask whether a resource/action pair is allowed
    for the given attribute contexts.
    """
    pass


def _configure_logging(debug: bool) -> None:
    if debug:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
            force=True,
        )


def parse_context_pairs(pairs: list[str]) -> dict[str, str]:
    """
    Build one attribute map from key=value strings.

    Values stay strings. Later keys override earlier ones.

    Raises:
        ContextParseError: If a pair has no '=' or an empty key
    """
    context: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        key = key.strip()
        if not sep or not key:
            raise ContextParseError(raw=pair, detail="expected key=value")
        context[key] = value
    return context


def parse_contexts_json(raw: str) -> list[dict[str, Any]]:
    """
    Parse a JSON object or array of objects into attribute maps.

    Raises:
        ContextParseError: If the text is not JSON or not object(s)
    """
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ContextParseError(raw=raw, detail=f"not valid JSON ({e.msg})") from e

    if isinstance(data, dict):
        return [data]
    if isinstance(data, list) and all(isinstance(item, dict) for item in data):
        return data
    raise ContextParseError(raw=raw, detail="expected a JSON object or an array of objects")


def _build_contexts(pairs: list[str], contexts_json: str | None) -> list[dict[str, Any]] | None:
    if pairs and contexts_json is not None:
        raise ContextParseError(
            raw=contexts_json,
            detail="use either --context or --contexts-json, not both",
        )
    if contexts_json is not None:
        return parse_contexts_json(contexts_json)
    if pairs:
        return [parse_context_pairs(pairs)]
    return None


def _output_json_error(error: AccessControlError, include_traceback: bool = False) -> None:
    """Output an error in JSON format."""
    output = {"error": True, **error.to_dict()}
    if include_traceback:
        output["traceback"] = traceback.format_exc()
    print(json.dumps(output, indent=2, default=str))


def _fail(error: AccessControlError, json_output: bool, debug: bool) -> NoReturn:
    if json_output:
        _output_json_error(error, debug)
    else:
        console.print(f"[red]{escape(str(error))}[/red]")
        if debug:
            console.print(f"[dim]{traceback.format_exc()}[/dim]")
    raise typer.Exit(code=EXIT_ERROR)


@app.command()
def check(
    policy_path: Annotated[
        Path,
        typer.Argument(
            help="Path to the policy YAML file.",
            resolve_path=True,
        ),
    ],
    resource: Annotated[str, typer.Argument(help="Resource to check.")],
    actions: Annotated[
        list[str],
        typer.Argument(help="One or more actions to check."),
    ],
    context: Annotated[
        Optional[list[str]],
        typer.Option(
            "--context",
            "-c",
            help="Attribute as key=value (repeatable, builds one context).",
        ),
    ] = None,
    contexts_json: Annotated[
        Optional[str],
        typer.Option(
            "--contexts-json",
            help="JSON object or array of objects used as input contexts.",
        ),
    ] = None,
    any_action: Annotated[
        bool,
        typer.Option(
            "--any",
            help="With several actions, allow if any is allowed (default: all).",
        ),
    ] = False,
    explain: Annotated[
        bool,
        typer.Option(
            "--explain",
            help="Show how each action was decided.",
        ),
    ] = False,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output results in JSON format.",
        ),
    ] = False,
    debug: Annotated[
        bool,
        typer.Option(
            "--debug",
            help="Enable debug logging and full error tracebacks.",
        ),
    ] = False,
) -> None:
    """
    Decide whether actions on a resource are allowed.

    Exits 0 when allowed and 1 when denied, so it can gate shell scripts.

    Example:
        $ accessctl check policy.yaml POST update -c authorId=auth-123
    """
    _configure_logging(debug)

    try:
        policy = load_policy(policy_path)
        input_contexts = _build_contexts(context or [], contexts_json)
    except AccessControlError as e:
        _fail(e, json_output, debug)

    access = get_access_control(policy)
    if any_action:
        allowed = access.can_any(resource, actions, input_contexts)
    else:
        allowed = access.can_all(resource, actions, input_contexts)

    decisions = {}
    if explain or json_output:
        decisions = {
            action: access.explain(resource, action, input_contexts) for action in actions
        }

    if json_output:
        _output_json_result(resource, allowed, any_action, decisions)
    else:
        _display_check_result(resource, actions, allowed, decisions)

    raise typer.Exit(code=EXIT_ALLOWED if allowed else EXIT_DENIED)


def _display_check_result(
    resource: str,
    actions: list[str],
    allowed: bool,
    decisions: dict[str, AccessDecision],
) -> None:
    """Display a check result in a formatted way."""
    label = escape(", ".join(actions))
    resource = escape(resource)
    if allowed:
        console.print(f"[green]✓[/green] [bold]{resource}[/bold] {label}: [green]allowed[/green]")
    else:
        console.print(f"[red]✗[/red] [bold]{resource}[/bold] {label}: [red]denied[/red]")

    if not decisions:
        return

    console.print()
    table = Table(show_header=True, header_style="bold")
    table.add_column("Action", style="cyan")
    table.add_column("Decision", width=8)
    table.add_column("Specificity", justify="right")
    table.add_column("Reason")

    for action, decision in decisions.items():
        status = "[green]allow[/green]" if decision.allowed else "[yellow]deny[/yellow]"
        specificity = "-" if decision.specificity is None else str(decision.specificity)
        table.add_row(escape(action), status, specificity, decision.reason)

    console.print(table)


def _output_json_result(
    resource: str,
    allowed: bool,
    any_action: bool,
    decisions: dict[str, AccessDecision],
) -> None:
    """Output check results in JSON format."""
    output = {
        "resource": resource,
        "mode": "any" if any_action else "all",
        "allowed": allowed,
        "actions": {
            action: decision.model_dump(mode="json") for action, decision in decisions.items()
        },
    }
    print(json.dumps(output, indent=2))


@app.command()
def validate(
    policy_path: Annotated[
        Path,
        typer.Argument(
            help="Path to the policy YAML file.",
            resolve_path=True,
        ),
    ],
    config_path: Annotated[
        Optional[Path],
        typer.Option(
            "--config",
            "-r",
            help="Resource registry YAML to check resource and action names against.",
            resolve_path=True,
        ),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output results in JSON format.",
        ),
    ] = False,
    debug: Annotated[
        bool,
        typer.Option(
            "--debug",
            help="Enable debug logging and full error tracebacks.",
        ),
    ] = False,
) -> None:
    """
    Load a policy and check it against a resource registry.

    Example:
        $ accessctl validate policy.yaml --config resources.yaml
    """
    _configure_logging(debug)

    try:
        policy = load_policy(policy_path)
        if config_path is not None:
            load_config(config_path).check_policy(policy)
    except AccessControlError as e:
        _fail(e, json_output, debug)

    if json_output:
        output = {
            "valid": True,
            "version": policy.version,
            "statements": len(policy.statements),
            "resources": policy.resources,
        }
        print(json.dumps(output, indent=2))
    else:
        _display_policy_summary(policy, policy_path)


def _display_policy_summary(policy: Policy, policy_path: Path) -> None:
    console.print(f"[green]✓[/green] Policy is valid: {policy_path.name}")
    console.print()

    table = Table(show_header=True, header_style="bold")
    table.add_column("#", style="dim", width=3)
    table.add_column("Resource", style="cyan")
    table.add_column("Actions")
    table.add_column("Effect", width=6)
    table.add_column("Contexts")

    for index, stmt in enumerate(policy.statements, start=1):
        effect = stmt.effect.value
        effect = f"[green]{effect}[/green]" if effect == "allow" else f"[yellow]{effect}[/yellow]"
        contexts = "; ".join(
            ", ".join(escape(f"{k}={v}") for k, v in ctx.items()) or "{}" for ctx in stmt.contexts
        )
        table.add_row(
            str(index),
            escape(stmt.resource),
            escape(", ".join(sorted(stmt.actions))),
            effect,
            contexts or "[dim]any[/dim]",
        )

    console.print(table)
    console.print(f"[dim]Statements: {len(policy.statements)} | Resources: {len(policy.resources)}[/dim]")


if __name__ == "__main__":
    app()
