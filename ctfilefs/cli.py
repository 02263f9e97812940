"""
ctfile CLI：登录一次保存 session / app id，之后所有命令复用。
"""

from __future__ import annotations

import getpass
import json
import logging
from pathlib import Path
from typing import Annotated, Optional

import typer

from ctfilefs import paths
from ctfilefs.adapter import CtFileAdapter
from ctfilefs.client import CtFileClient
from ctfilefs.config import DEFAULT_API_BASE_URL, CtFileConfig, clear_config, load_config, save_config
from ctfilefs.errors import ConfigError, CtFileError
from ctfilefs.fileinfo import format_file_size
from ctfilefs.models import FileAttributes

app = typer.Typer(
    name="ctfile",
    help="ctFile filesystem CLI. Save the session once; all commands reuse it.",
)


@app.callback()
def main_callback(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging")] = False,
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _require_adapter() -> tuple[CtFileClient, CtFileAdapter]:
    cfg = load_config()
    if cfg is None:
        typer.echo("error: no saved credentials. run 'ctfile login'", err=True)
        raise typer.Exit(1)
    client = CtFileClient(cfg)
    return client, CtFileAdapter(client, cache_missing=cfg.cache_missing)


def _fail(e: Exception) -> typer.Exit:
    typer.echo(f"error: {e}", err=True)
    return typer.Exit(1)


# ------------------------- login / logout / auth -------------------------


@app.command("login", help="Save session token and app id to local config")
def login(
    session: Annotated[Optional[str], typer.Option("--session", "-s", help="Session token (unsafe in shell)")] = None,
    app_id: Annotated[Optional[str], typer.Option("--app-id", "-a", help="Application id")] = None,
    api_base_url: Annotated[str, typer.Option("--api-base-url", "-b", help="API base URL")] = DEFAULT_API_BASE_URL,
) -> None:
    app_id = app_id or input("App id: ").strip()
    if session is None:
        session = getpass.getpass("Session token: ")
    cfg = CtFileConfig(session=session, app_id=app_id, api_base_url=api_base_url)
    try:
        cfg.validate()
    except ConfigError as e:
        raise _fail(e)
    save_config(cfg)
    typer.echo("Saved.")


@app.command("logout", help="Clear saved credentials")
def logout() -> None:
    if clear_config():
        typer.echo("Cleared.")
    else:
        typer.echo("No saved credentials.")


auth_app = typer.Typer(help="Auth subcommands")
app.add_typer(auth_app, name="auth")


@auth_app.command("status", help="Show whether credentials are saved")
def auth_status() -> None:
    cfg = load_config()
    if not cfg:
        typer.echo("Not logged in.")
        return
    typer.echo(f"api_base_url: {cfg.api_base_url}")
    typer.echo(f"app_id: {cfg.app_id}")


@app.command("info", help="Show saved config (session masked)")
def info_cmd() -> None:
    cfg = load_config()
    if not cfg:
        typer.echo("Not logged in. Run 'ctfile login'.")
        return
    typer.echo(json.dumps(cfg.to_dict(redact=True), ensure_ascii=False, indent=2))


# ------------------------- ls / stat -------------------------


def _cmd_list_impl(path: str, deep: bool) -> None:
    client, adapter = _require_adapter()
    try:
        for attrs in adapter.list_contents(path, deep=deep):
            if isinstance(attrs, FileAttributes):
                size = format_file_size(attrs.file_size) if attrs.file_size is not None else "-"
                typer.echo(f"  {attrs.path}  {size}  {attrs.mime_type or '-'}")
            else:
                typer.echo(f"  {attrs.path}/")
    except CtFileError as e:
        raise _fail(e)
    finally:
        client.close()


@app.command("list", help="List directory")
def list_cmd(
    path: Annotated[str, typer.Argument(help="Directory path (default: /)")] = "/",
    deep: Annotated[bool, typer.Option("--deep", "-r", help="Recurse into subdirectories")] = False,
) -> None:
    _cmd_list_impl(path, deep)


@app.command("ls", help="Alias for list")
def ls_cmd(
    path: Annotated[str, typer.Argument(help="Directory path (default: /)")] = "/",
    deep: Annotated[bool, typer.Option("--deep", "-r", help="Recurse into subdirectories")] = False,
) -> None:
    _cmd_list_impl(path, deep)


@app.command("stat", help="Show file or directory attributes (JSON)")
def stat_cmd(path: Annotated[str, typer.Argument(help="Remote path")]) -> None:
    client, adapter = _require_adapter()
    try:
        if adapter.directory_exists(path):
            attrs = adapter.directory_attributes(path)
        else:
            attrs = adapter.file_attributes(path)
    except CtFileError as e:
        raise _fail(e)
    finally:
        client.close()
    typer.echo(json.dumps(attrs.to_dict(), ensure_ascii=False, indent=2))


# ------------------------- download -------------------------


@app.command("download", help="Download a file")
def download_cmd(
    remote_path: Annotated[str, typer.Argument(help="Remote path, e.g. /docs/a.txt")],
    output: Annotated[Optional[Path], typer.Option("--output", "-o", help="Local path (default: same name)")] = None,
) -> None:
    client, adapter = _require_adapter()
    out = output if output is not None else Path(paths.basename(remote_path) or "download.bin")
    try:
        content = adapter.read(remote_path)
    except CtFileError as e:
        raise _fail(e)
    finally:
        client.close()
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_bytes(content)
    typer.echo(f"Saved to {out}.")


# ------------------------- mkdir / delete -------------------------


@app.command("mkdir", help="Create a folder (missing parents are created)")
def mkdir_cmd(path: Annotated[str, typer.Argument(help="Folder path, e.g. /docs/new")]) -> None:
    client, adapter = _require_adapter()
    try:
        adapter.create_directory(path)
    except CtFileError as e:
        raise _fail(e)
    finally:
        client.close()
    typer.echo("Created.")


@app.command("delete", help="Delete a file, or a folder with --dir")
def delete_cmd(
    path: Annotated[str, typer.Argument(help="Remote path")],
    directory: Annotated[bool, typer.Option("--dir", "-d", help="Delete a folder and its contents")] = False,
) -> None:
    client, adapter = _require_adapter()
    try:
        if directory:
            adapter.delete_directory(path)
        else:
            adapter.delete(path)
    except CtFileError as e:
        raise _fail(e)
    finally:
        client.close()
    typer.echo("Deleted.")


# ------------------------- path -------------------------


path_app = typer.Typer(help="Local path utilities (no network)")
app.add_typer(path_app, name="path")


@path_app.command("normalize", help="Print the normalized form of a path")
def path_normalize(path: Annotated[str, typer.Argument(help="Path")]) -> None:
    typer.echo(paths.normalize(path))


@path_app.command("check", help="Validate a path; exit 1 with the reason when invalid")
def path_check(path: Annotated[str, typer.Argument(help="Path")]) -> None:
    reason = paths.validation_error(path)
    if reason is not None:
        typer.echo(f"invalid: {reason}", err=True)
        raise typer.Exit(1)
    typer.echo(f"ok: {paths.normalize(path)}")


# ------------------------- main -------------------------


def main() -> None:
    app()


if __name__ == "__main__":
    main()
