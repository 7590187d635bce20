from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.tree import Tree

from apinav.config import load_config
from apinav.errors import ApiNavError
from apinav.extractors.aspnet.endpoint_detector import detect_api_endpoint_in_file
from apinav.logging import setup_logging
from apinav.orchestrator.pipeline import scan_workspace
from apinav.project.config_cache import ProjectBaseUrlResolver
from apinav.store.aliases import AliasStore
from apinav.store.variables import VariableStore
from apinav.view.catalog import RouteCatalog

app = typer.Typer(no_args_is_help=True, add_completion=False)

routes_app = typer.Typer(no_args_is_help=True)
app.add_typer(routes_app, name="routes")

alias_app = typer.Typer(no_args_is_help=True)
app.add_typer(alias_app, name="alias")

vars_app = typer.Typer(no_args_is_help=True)
app.add_typer(vars_app, name="vars")

console = Console()

_VERB_STYLES = {"GET": "blue", "POST": "green", "PUT": "dark_orange", "DELETE": "red", "ANY": "magenta"}


def _workspace(path: str) -> Path:
    ws = Path(path).expanduser().resolve()
    if not ws.exists():
        raise typer.BadParameter(f"Workspace does not exist: {ws}")
    if not ws.is_dir():
        raise typer.BadParameter(f"Workspace is not a directory: {ws}")
    return ws


def _fail(err: ApiNavError) -> None:
    console.print(f"[bold red]error[/bold red]: {err}")
    raise typer.Exit(code=1)


def _verb(verb: str) -> str:
    return f"[{_VERB_STYLES.get(verb, 'white')}]{verb}[/]"


def _load_catalog(ws: Path, search: Optional[str], sort_by: Optional[str]) -> RouteCatalog:
    config = load_config(ws)
    variables = VariableStore(ws)
    variables.load()
    catalog = RouteCatalog(
        variables=variables,
        sort_by=sort_by or config.sort_by,  # type: ignore[arg-type]
        controller_suffix=config.controller_suffix,
    )
    try:
        catalog.refresh(lambda: scan_workspace(ws, config=config, aliases=AliasStore(ws)))
    except ApiNavError as e:
        _fail(e)
    if search:
        catalog.set_search_text(search)
    return catalog


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging on stderr"),
) -> None:
    if verbose:
        setup_logging("DEBUG", force=True)


@routes_app.command("list")
def routes_list(
    workspace: str = typer.Argument(".", help="Workspace root"),
    search: Optional[str] = typer.Option(None, help="Case-insensitive filter on route/controller/action/alias/verb"),
    sort_by: Optional[str] = typer.Option(None, help="Sort: route|controller|httpVerb"),
    format: str = typer.Option("tree", help="Output format: tree|table|json"),
) -> None:
    ws = _workspace(workspace)
    fmt = format.lower().strip()
    if fmt not in ("tree", "table", "json"):
        raise typer.BadParameter("format must be one of: tree, table, json")
    if sort_by is not None and sort_by not in ("route", "controller", "httpVerb"):
        raise typer.BadParameter("sort-by must be one of: route, controller, httpVerb")

    catalog = _load_catalog(ws, search, sort_by)
    routes = catalog.filtered()

    if fmt == "json":
        console.print_json(json.dumps([r.model_dump() for r in routes]))
        return

    if fmt == "table":
        table = Table(show_header=True, header_style="bold")
        table.add_column("VERB", no_wrap=True)
        table.add_column("ROUTE")
        table.add_column("ALIAS")
        table.add_column("ACTION")
        table.add_column("FILE:LINE", no_wrap=True)
        for r in routes:
            rel = Path(r.source_file)
            try:
                rel = rel.relative_to(ws)
            except ValueError:
                pass
            table.add_row(
                _verb(r.http_verb),
                escape(r.route_path),
                escape(r.alias or ""),
                f"{r.controller_name}.{r.action_name}",
                f"{rel}:{r.declaration_line}",
            )
        console.print(table)
        console.print(f"{len(routes)} routes")
        return

    if not routes:
        console.print("No routes found.")
        return

    title = f'Routes matching "{escape(catalog.search_text)}"' if catalog.is_searching() else "Routes"
    root = Tree(f"[bold]{title}[/bold] ({len(routes)})")
    for project in catalog.groups():
        pnode = root.add(f"[bold]{escape(project.label)}[/bold] [dim]{project.route_count} routes[/dim]")
        for controller in project.controllers:
            cnode = pnode.add(f"{escape(controller.label)} [dim]{len(controller.items)}[/dim]")
            for item in controller.items:
                desc = f" [dim]{escape(item.description)}[/dim]" if item.description else ""
                cnode.add(f"{_verb(item.route.http_verb)} {escape(item.label)}{desc}")
    console.print(root)


@routes_app.command("detect")
def routes_detect(
    file: str = typer.Argument(..., help="Controller source file"),
    line: int = typer.Argument(..., help="1-based line of the action's declaration"),
    format: str = typer.Option("text", help="Output format: text|json"),
    workspace: str = typer.Option(".", help="Workspace root (settings are read from its .apinav directory)"),
) -> None:
    path = Path(file).expanduser().resolve()
    if not path.is_file():
        raise typer.BadParameter(f"File does not exist: {path}")

    config = load_config(_workspace(workspace))
    endpoint = detect_api_endpoint_in_file(
        path, line, resolver=ProjectBaseUrlResolver(config=config), config=config
    )
    if endpoint is None:
        console.print(f"No API endpoint declared at {path}:{line}")
        raise typer.Exit(code=1)

    if format.lower() == "json":
        console.print_json(endpoint.model_dump_json())
        return

    console.print(f"{_verb(endpoint.http_verb)} [bold]{escape(endpoint.request_url)}[/bold]")
    console.print(f"  {endpoint.controller_name}.{endpoint.action_name}  ({endpoint.location})")
    if endpoint.project_descriptor_path:
        console.print(f"  project: {endpoint.project_descriptor_path}")
    if not endpoint.parameters:
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("NAME")
    table.add_column("TYPE")
    table.add_column("SOURCE", no_wrap=True)
    table.add_column("REQUIRED", no_wrap=True)
    for p in endpoint.parameters:
        table.add_row(p.name, escape(p.declared_type), p.source.value, "yes" if p.required else "no")
    console.print(table)


@app.command()
def goto(
    query: str = typer.Argument(..., help="Alias, route, or search text"),
    workspace: str = typer.Option(".", help="Workspace root"),
) -> None:
    """Print file:line for the matching routes (for editor navigation)."""
    ws = _workspace(workspace)
    catalog = _load_catalog(ws, None, None)
    matches = catalog.find(query)
    if not matches:
        console.print(f"No route matches {query!r}")
        raise typer.Exit(code=1)
    for r in matches:
        console.print(r.location, highlight=False, soft_wrap=True)


@app.command()
def baseurl(
    file: str = typer.Argument(..., help="Any source file inside a project"),
    workspace: str = typer.Option(".", help="Workspace root (settings are read from its .apinav directory)"),
) -> None:
    path = Path(file).expanduser().resolve()
    resolver = ProjectBaseUrlResolver(config=load_config(_workspace(workspace)))
    project = resolver.get_project_descriptor(str(path))
    if project is None:
        console.print(f"No project found for {path}")
        raise typer.Exit(code=1)
    base = resolver.get_base_url(project.parent)
    console.print(f"project: {project}")
    console.print(f"base url: {base or '-'}")


@alias_app.command("list")
def alias_list(workspace: str = typer.Argument(".", help="Workspace root")) -> None:
    store = AliasStore(_workspace(workspace))
    store.load()
    table = Table(show_header=True, header_style="bold")
    table.add_column("VERB", no_wrap=True)
    table.add_column("ROUTE")
    table.add_column("ALIAS")
    for e in store.entries():
        table.add_row(e.http_verb.upper(), escape(e.route), escape(e.alias))
    console.print(table)


@alias_app.command("set")
def alias_set(
    verb: str = typer.Argument(..., help="HTTP verb of the route"),
    route: str = typer.Argument(..., help="Route path, e.g. /api/orders/{id}"),
    alias: str = typer.Argument(..., help="Display name"),
    workspace: str = typer.Option(".", help="Workspace root"),
) -> None:
    store = AliasStore(_workspace(workspace))
    store.load()
    try:
        store.set_alias(route, verb, alias)
    except ApiNavError as e:
        _fail(e)
    console.print(f"[bold green]Alias set[/bold green] {verb.upper()} {escape(route)} -> {escape(alias)}")


@alias_app.command("clear")
def alias_clear(
    verb: str = typer.Argument(..., help="HTTP verb of the route"),
    route: str = typer.Argument(..., help="Route path"),
    workspace: str = typer.Option(".", help="Workspace root"),
) -> None:
    store = AliasStore(_workspace(workspace))
    store.load()
    try:
        removed = store.clear_alias(route, verb)
    except ApiNavError as e:
        _fail(e)
    console.print("Alias cleared" if removed else "No alias for that route")


@vars_app.command("list")
def vars_list(workspace: str = typer.Argument(".", help="Workspace root")) -> None:
    store = VariableStore(_workspace(workspace))
    store.load()
    for key, value in store.get_all().items():
        console.print(f"{{{escape(key)}}} = {escape(value)}", highlight=False)


@vars_app.command("set")
def vars_set(
    key: str = typer.Argument(..., help="Placeholder text without braces, e.g. version:apiversion"),
    value: str = typer.Argument(..., help="Replacement value"),
    workspace: str = typer.Option(".", help="Workspace root"),
) -> None:
    store = VariableStore(_workspace(workspace))
    store.load()
    try:
        store.set(key, value)
    except ApiNavError as e:
        _fail(e)
    console.print(f"{{{escape(key)}}} = {escape(value)}", highlight=False)


@vars_app.command("remove")
def vars_remove(
    key: str = typer.Argument(..., help="Placeholder text without braces"),
    workspace: str = typer.Option(".", help="Workspace root"),
) -> None:
    store = VariableStore(_workspace(workspace))
    store.load()
    try:
        removed = store.remove(key)
    except ApiNavError as e:
        _fail(e)
    console.print("Removed" if removed else f"No variable {escape(key)!r}")


@vars_app.command("init")
def vars_init(workspace: str = typer.Argument(".", help="Workspace root")) -> None:
    store = VariableStore(_workspace(workspace))
    try:
        created = store.ensure_template()
    except ApiNavError as e:
        _fail(e)
    console.print(f"{'Created' if created else 'Exists'}: {store.path}")


@app.command()
def ping() -> None:
    console.print("pong")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
