"""yamlcmd runner - one command invocation from arguments to output."""

import json

import click

from yamlcmd import executor
from yamlcmd.core import (
    DEFAULT_TIMEOUT,
    CommandDefinition,
    build_scope,
    resolve_placeholders,
)
from yamlcmd.filters import extract_set_value, render_response


class RequestError(Exception):
    """Transport failure or non-2xx response."""

    def __init__(self, message: str, body=None):
        super().__init__(message)
        self.body = body

    def report(self) -> str:
        if self.body is None or self.body == "":
            return str(self)
        if isinstance(self.body, dict | list):
            return json.dumps(self.body, indent=2)
        return str(self.body)


class ExecutionError(Exception):
    """Shell command exited with a non-zero status."""


def run_command(
    definition: CommandDefinition,
    arguments: dict[str, str],
    config: dict,
    store,
    verbose: bool = False,
) -> int:
    """Run one configured command and return the process exit status.

    Request and execution failures are reported on stderr and turn the
    status into 1; they never propagate out of here.
    """
    scope = build_scope(config.get("variables", {}), store.load(), arguments)
    status = 0

    if definition.endpoint:
        try:
            result = _issue_request(definition, scope, config, verbose)
        except RequestError as e:
            click.echo(f"ERROR: {e.report()}", err=True)
            status = 1
        else:
            if definition.response:
                text = render_response(definition.response, result.body)
                click.echo(resolve_placeholders(text, scope))
            if definition.set:
                _apply_set(definition.set, result.body, scope, store)
    elif definition.response:
        click.echo(resolve_placeholders(definition.response, scope))

    if definition.execute:
        try:
            output = _run_execute(definition.execute, scope, verbose)
        except ExecutionError as e:
            click.echo(f"ERROR: {e}", err=True)
            status = 1
        else:
            click.echo(output)

    return status


def _issue_request(definition, scope, config, verbose):
    endpoint = resolve_placeholders(definition.endpoint, scope)
    method, _, url = endpoint.partition(" ")
    url = url.strip()

    payload = None
    if definition.body is not None:
        text = resolve_placeholders(json.dumps(definition.body), scope)
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as e:
            raise RequestError(f"Request body is not valid JSON after substitution: {e}") from e

    headers = {**config.get("headers", {}), **definition.headers}
    headers = {k: resolve_placeholders(v, scope) for k, v in headers.items()}

    if verbose:
        click.echo(f"{method.upper()} {url}", err=True)

    result = executor.execute_request(
        method=method,
        url=url,
        headers=headers,
        payload=payload,
        timeout=config.get("timeout") or DEFAULT_TIMEOUT,
    )
    if result.error:
        raise RequestError(result.error)

    if verbose:
        click.echo(f"STATUS: {result.status_code} ({int(result.elapsed_ms)}ms)", err=True)

    if not result.ok:
        raise RequestError(f"Request failed with status {result.status_code}", result.body)
    return result


def _apply_set(set_templates, body, scope, store):
    """Write extracted values into scope, then persist the whole scope."""
    for name, template in set_templates.items():
        value = extract_set_value(template, body)
        scope[name] = resolve_placeholders(value, scope)
    store.save(scope)


def _run_execute(template, scope, verbose):
    command = resolve_placeholders(template, scope)
    if verbose:
        click.echo(f"EXEC: {command}", err=True)
    result = executor.run_shell(command)
    if result.error:
        raise ExecutionError(result.error)
    if not result.ok:
        raise ExecutionError(
            result.stderr.strip() or f"Command exited with status {result.returncode}",
        )
    return result.stdout.strip()
