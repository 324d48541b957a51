"""Main CLI app."""

from __future__ import annotations

import json
import os
import sys

import typer
from typing_extensions import Annotated, Optional

import storagewire
from storagewire import config, operations
from storagewire.cli.config import config_app
from storagewire.cli.core import parse_key_values, raise_error, warn
from storagewire.errors import StorageError
from storagewire.location import Location
from storagewire.metadata import get_mappings
from storagewire.payload import Payload
from storagewire.service import StorageService
from storagewire.transport import Transport, list_all, upload

app = typer.Typer(
    invoke_without_command=True,
    no_args_is_help=True,
    context_settings=dict(help_option_names=["-h", "--help"]),
    pretty_exceptions_show_locals=False,
)
app.add_typer(config_app, name="config", help="Configure storagewire.")


def get_service() -> StorageService:
    return StorageService.from_config(config.read())


def get_transport() -> Transport:
    return Transport.from_config(config.read())


def _location(service: StorageService, target: str | None) -> Location:
    try:
        if target is None:
            if service.bucket is None:
                raise_error("No target given and no bucket configured")
            return Location.from_bucket_spec(service.bucket)
        return service.make_location(target)
    except StorageError as e:
        raise_error(e.message)


def _send(transport: Transport, descriptor):
    try:
        return transport.send(descriptor)
    except StorageError as e:
        raise_error(e.message)


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option("--version", help="Show version and exit."),
    ] = False,
):
    if version:
        typer.echo(f"storagewire {storagewire.__version__}")
        raise typer.Exit()


@app.command(name="stat")
def stat(
    target: Annotated[str, typer.Argument(help="Object path or gs:// URL.")],
):
    """Print an object's metadata as JSON."""
    service = get_service()
    location = _location(service, target)
    md = _send(
        get_transport(),
        operations.get_metadata(service, location, get_mappings()),
    )
    typer.echo(json.dumps(md, indent=2))


@app.command(name="ls")
def list_objects(
    target: Annotated[
        Optional[str],
        typer.Argument(help="Prefix path or gs:// URL (default: bucket)."),
    ] = None,
    all_pages: Annotated[
        bool, typer.Option("--all", help="Follow every result page.")
    ] = False,
    max_results: Annotated[
        Optional[int],
        typer.Option("--max-results", help="Maximum results per page."),
    ] = None,
    page_token: Annotated[
        Optional[str],
        typer.Option("--page-token", help="Page token to continue from."),
    ] = None,
):
    """List the prefixes and objects under a path."""
    service = get_service()
    location = _location(service, target)
    transport = get_transport()
    if all_pages:
        try:
            result = list_all(
                transport, service, location, max_results=max_results
            )
        except StorageError as e:
            raise_error(e.message)
    else:
        result = _send(
            transport,
            operations.list_objects(
                service,
                location,
                page_token=page_token,
                max_results=max_results,
            ),
        )
    for prefix in result.prefixes:
        typer.echo(prefix.path + "/")
    for item in result.items:
        typer.echo(item.path)
    if result.next_page_token:
        typer.echo(f"Next page token: {result.next_page_token}", err=True)


@app.command(name="url")
def get_download_url(
    target: Annotated[str, typer.Argument(help="Object path or gs:// URL.")],
):
    """Print a download URL for an object."""
    service = get_service()
    location = _location(service, target)
    url = _send(
        get_transport(),
        operations.get_download_url(service, location, get_mappings()),
    )
    typer.echo(url)


@app.command(name="cat")
def cat(
    target: Annotated[str, typer.Argument(help="Object path or gs:// URL.")],
    max_bytes: Annotated[
        Optional[int],
        typer.Option(
            "--max-bytes",
            help="Fetch only bytes 0 through N, inclusive (N + 1 bytes).",
        ),
    ] = None,
):
    """Write an object's contents to stdout."""
    service = get_service()
    location = _location(service, target)
    try:
        descriptor = operations.get_bytes(
            service, location, max_download_size_bytes=max_bytes
        )
    except StorageError as e:
        raise_error(e.message)
    data = _send(get_transport(), descriptor)
    sys.stdout.buffer.write(data)
    sys.stdout.flush()


@app.command(name="download")
def download(
    target: Annotated[str, typer.Argument(help="Object path or gs:// URL.")],
    dest: Annotated[
        Optional[str],
        typer.Argument(help="Local file path (default: object name)."),
    ] = None,
):
    """Download an object to a local file."""
    service = get_service()
    location = _location(service, target)
    if dest is None:
        dest = location.name
    data = _send(get_transport(), operations.get_bytes(service, location))
    dest_dir = os.path.dirname(dest)
    if dest_dir:
        os.makedirs(dest_dir, exist_ok=True)
    with open(dest, "wb") as f:
        f.write(data)
    typer.echo(f"Downloaded {len(data)} bytes to {dest}")


@app.command(name="upload")
def upload_file(
    src: Annotated[str, typer.Argument(help="Local file path.")],
    target: Annotated[
        Optional[str],
        typer.Argument(help="Object path or gs:// URL (default: file name)."),
    ] = None,
    content_type: Annotated[
        Optional[str],
        typer.Option("--content-type", help="Content type of the object."),
    ] = None,
    resumable: Annotated[
        Optional[bool],
        typer.Option(
            "--resumable/--multipart",
            help=(
                "Force the resumable or multipart protocol "
                "(default: by file size)."
            ),
            show_default=False,
        ),
    ] = None,
    chunk_size: Annotated[
        Optional[int],
        typer.Option("--chunk-size", help="Resumable upload chunk size."),
    ] = None,
    meta: Annotated[
        Optional[list[str]],
        typer.Option("--meta", help="Custom metadata as key=value."),
    ] = None,
):
    """Upload a local file."""
    if not os.path.isfile(src):
        raise_error(f"{src} is not a file")
    cfg = config.read()
    service = get_service()
    location = _location(service, target or os.path.basename(src))
    payload = Payload.from_file(src, content_type=content_type)
    if payload.content_type is None:
        warn("Could not detect content type; using the default")
    md = {}
    custom_metadata = parse_key_values(meta)
    if custom_metadata:
        md["custom_metadata"] = custom_metadata
    try:
        result = upload(
            get_transport(),
            service,
            location,
            payload,
            md=md,
            resumable=resumable,
            chunk_size=chunk_size or cfg.chunk_size,
        )
    except StorageError as e:
        raise_error(e.message)
    typer.echo(
        f"Uploaded {payload.size()} bytes to "
        f"gs://{result.get('bucket', location.bucket)}/"
        f"{result.get('full_path', location.path)}"
    )


@app.command(name="update")
def update_metadata(
    target: Annotated[str, typer.Argument(help="Object path or gs:// URL.")],
    content_type: Annotated[
        Optional[str],
        typer.Option("--content-type", help="New content type."),
    ] = None,
    cache_control: Annotated[
        Optional[str],
        typer.Option("--cache-control", help="New Cache-Control value."),
    ] = None,
    meta: Annotated[
        Optional[list[str]],
        typer.Option("--meta", help="Custom metadata as key=value."),
    ] = None,
):
    """Update an object's metadata."""
    md = {}
    if content_type is not None:
        md["content_type"] = content_type
    if cache_control is not None:
        md["cache_control"] = cache_control
    custom_metadata = parse_key_values(meta)
    if custom_metadata:
        md["custom_metadata"] = custom_metadata
    if not md:
        raise_error("Nothing to update")
    service = get_service()
    location = _location(service, target)
    result = _send(
        get_transport(),
        operations.update_metadata(service, location, md, get_mappings()),
    )
    typer.echo(json.dumps(result, indent=2))


@app.command(name="rm")
def delete_object(
    target: Annotated[str, typer.Argument(help="Object path or gs:// URL.")],
):
    """Delete an object."""
    service = get_service()
    location = _location(service, target)
    _send(get_transport(), operations.delete_object(service, location))
    typer.echo(f"Deleted {location}")


def run() -> None:
    app()
