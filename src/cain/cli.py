"""Command line interface for Cain."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import click
import yaml
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from cain.categories import ROOT_CATEGORY_ID, CategoryStore
from cain.config import CainConfig, ConfigError, ConfigManager, resolve_root_dir
from cain.errors import CainError
from cain.log import configure_logging
from cain.records import (
    directory_category_tree,
    list_all,
    list_items,
    make_record,
    read_record,
)

console = Console()


def _handle_cli_error(
    message: str,
    *,
    code: str,
    json_output: bool,
    original: Exception | None = None,
) -> None:
    """Emit a standardized error and terminate the command.

    Args:
        message: Human-readable error message.
        code: Machine-readable error identifier.
        json_output: Indicates whether JSON mode is active.
        original: Original exception for chaining when not using JSON.

    Raises:
        SystemExit: When emitting JSON output to terminate the command.
        click.ClickException: For non-JSON flows to surface the error.
    """
    if json_output:
        console.print_json(data={"error": {"code": code, "message": message}})
        raise SystemExit(1)
    raise click.ClickException(message) from original


def _error_code(exc: CainError) -> str:
    """Return a snake_case identifier for an exception class."""
    name = type(exc).__name__.removesuffix("Error")
    return "".join(f"_{ch.lower()}" if ch.isupper() else ch for ch in name).lstrip("_")


def _cli_overrides(ctx: click.Context) -> dict[str, Any]:
    """Collect configuration values given as global command line options."""
    overrides: dict[str, Any] = {}
    root_dir = ctx.ensure_object(dict).get("root_dir")
    if root_dir is not None:
        overrides["storage.root_dir"] = str(root_dir)
    return overrides


def _load_config(ctx: click.Context) -> CainConfig:
    """Load configuration once per invocation and configure logging from it."""
    ctx.ensure_object(dict)
    if "config" not in ctx.obj:
        try:
            config = ConfigManager().load(cli_overrides=_cli_overrides(ctx))
        except ConfigError as exc:
            raise click.ClickException(str(exc)) from exc
        configure_logging(config.logging, verbose=ctx.obj.get("verbose", False))
        ctx.obj["config"] = config
    return ctx.obj["config"]


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="cain")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.option(
    "--root-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Archive root for this invocation, overriding config and environment.",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, root_dir: Path | None) -> None:
    """Cain archives web pages and tweets into a categorized directory tree."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["root_dir"] = root_dir


@cli.command()
@click.argument("title")
@click.argument("url")
@click.option(
    "-c",
    "--category",
    default="",
    help="Category path of the record. Default: place the record at the root.",
)
@click.pass_context
def record(ctx: click.Context, title: str, url: str, category: str) -> None:
    """Archive URL as a record named TITLE."""
    config = _load_config(ctx)
    try:
        path = make_record(url, title, category, config)
    except CainError as exc:
        _handle_cli_error(str(exc), code=_error_code(exc), json_output=False, original=exc)
        return
    console.print(f"[green]Recorded {url} in {path}.[/green]")


@cli.command("list")
@click.argument("category", default="")
@click.option("--json", "json_output", is_flag=True, help="Emit the listing as JSON.")
@click.pass_context
def list_command(ctx: click.Context, category: str, json_output: bool) -> None:
    """List all categories and records under CATEGORY, recursively."""
    config = _load_config(ctx)
    try:
        items = list_all(Path(category), resolve_root_dir(config))
    except CainError as exc:
        _handle_cli_error(str(exc), code=_error_code(exc), json_output=json_output, original=exc)
        return

    if json_output:
        click.echo(json.dumps({"items": [item.to_dict() for item in items]}, indent=2))
        return
    for item in items:
        marker = "R" if item.kind == "record" else "C"
        click.echo(f"{marker} {item.path.as_posix()}")


@cli.command()
@click.argument("category", default="")
@click.pass_context
def ls(ctx: click.Context, category: str) -> None:
    """List the direct children of CATEGORY."""
    config = _load_config(ctx)
    try:
        items = list_items(Path(category), resolve_root_dir(config))
    except CainError as exc:
        _handle_cli_error(str(exc), code=_error_code(exc), json_output=False, original=exc)
        return
    for item in items:
        marker = "R" if item.kind == "record" else "C"
        click.echo(f"{marker} {item.path.as_posix()}")


@cli.command()
@click.argument("path")
@click.option("--json", "json_output", is_flag=True, help="Emit the metadata as JSON.")
@click.pass_context
def show(ctx: click.Context, path: str, json_output: bool) -> None:
    """Show the metadata of the record at PATH."""
    config = _load_config(ctx)
    try:
        metadata = read_record(Path(path), resolve_root_dir(config))
    except CainError as exc:
        _handle_cli_error(str(exc), code=_error_code(exc), json_output=json_output, original=exc)
        return

    if json_output:
        click.echo(json.dumps(metadata.model_dump(mode="json"), indent=2, ensure_ascii=False))
        return

    console.print(f"[bold]{metadata.title}[/bold]")
    console.print(f"URL: {metadata.url}")
    console.print(f"Captured: {metadata.time.isoformat()}")
    table = Table(title="Resources")
    table.add_column("File")
    table.add_column("Source URL")
    for resource in metadata.resources:
        table.add_row(resource.filename, resource.url or "")
    console.print(table)


def _category_store(config: CainConfig) -> CategoryStore:
    store = CategoryStore(Path(config.storage.db_path))
    store.connect()
    store.init()
    return store


@cli.command()
@click.pass_context
def categories(ctx: click.Context) -> None:
    """Print the category hierarchy as JSON."""
    config = _load_config(ctx)
    try:
        if config.storage.category_backend == "sql":
            store = _category_store(config)
            try:
                tree = store.load_categories()
            finally:
                store.close()
        else:
            tree = directory_category_tree(resolve_root_dir(config))
    except CainError as exc:
        _handle_cli_error(str(exc), code=_error_code(exc), json_output=False, original=exc)
        return
    click.echo(json.dumps(tree.serialize(), indent=2, ensure_ascii=False))


@cli.group()
def category() -> None:
    """Manage categories in the SQL category store."""


@category.command("add")
@click.argument("name")
@click.option(
    "--parent",
    type=int,
    default=ROOT_CATEGORY_ID,
    show_default=True,
    help="Id of the parent category.",
)
@click.pass_context
def category_add(ctx: click.Context, name: str, parent: int) -> None:
    """Add category NAME under the category with id PARENT."""
    config = _load_config(ctx)
    if config.storage.category_backend != "sql":
        raise click.ClickException(
            "Categories can only be added with storage.category_backend set to 'sql'."
        )
    try:
        store = _category_store(config)
        try:
            new_id = store.add_category(name, parent)
        finally:
            store.close()
    except CainError as exc:
        _handle_cli_error(str(exc), code=_error_code(exc), json_output=False, original=exc)
        return
    console.print(f"[green]Added category {name} with id {new_id}.[/green]")


@cli.group()
def config() -> None:
    """Manage Cain configuration files and overrides."""


@config.command("view")
@click.option("--no-env", is_flag=True, help="Ignore environment overrides when displaying output.")
@click.pass_context
def config_view(ctx: click.Context, no_env: bool) -> None:
    """Display the effective configuration after applying precedence rules."""
    try:
        effective = ConfigManager().load(
            cli_overrides=_cli_overrides(ctx), include_env=not no_env
        )
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    yaml_text = yaml.safe_dump(effective.model_dump(mode="python"), sort_keys=False)
    console.print(Syntax(yaml_text, "yaml", word_wrap=True))


@config.command("set")
@click.argument("key")
@click.option("--value", required=True, help="Value to assign to KEY.")
def config_set(key: str, value: str) -> None:
    """Persist a configuration value expressed as a dotted KEY."""
    try:
        parsed: Any = yaml.safe_load(value)
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Unable to parse value: {exc}") from exc

    try:
        ConfigManager().set_value(key, parsed)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc
    console.print(f"[green]Updated {key} = {parsed!r}.[/green]")


def main() -> None:
    """Invoke the Click CLI as the console script entry point."""
    cli()


if __name__ == "__main__":
    main()
