"""
oss-transport CLI

Thin commands over the HTTP transport, configured from OSS_* environment
variables:
- get: Download an object (streamed to a file or stdout)
- put: Upload a file, in one request or as a chunked stream
- head: Show object metadata headers
- delete: Delete an object
- sign: Print the canonical string and signature for a request
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer

from .canonical import canonical_string
from .http import HTTP
from .mappers import run_and_exit
from .request import RequestBuilder, RequestSpec, guess_content_type
from .retry import execute_with_retries
from .settings import Settings, create_settings_from_env
from .signer import sign

app = typer.Typer(name="oss-transport", help="OSS transport CLI")

UPLOAD_CHUNK_SIZE = 1024 * 1024  # 1 MiB


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Log requests and responses")):
    """Talk to an OSS endpoint configured by OSS_ENDPOINT and credentials."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(asctime)s %(name)s %(levelname)s %(message)s")


def _make_http(settings: Settings) -> HTTP:
    return HTTP(settings)


def _execute(spec: RequestSpec, on_chunk=None):
    settings = create_settings_from_env()
    with _make_http(settings) as http:
        return execute_with_retries(http, spec, on_chunk, attempts=settings.http_retry + 1)


@app.command()
def get(
    bucket: str = typer.Argument(..., help="Bucket name"),
    key: str = typer.Argument(..., help="Object key"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write to file instead of stdout"),
):
    """Download an object, streaming it chunk by chunk."""
    def _run():
        spec = RequestSpec(verb="GET", bucket=bucket, key=key)
        if output is not None:
            with open(output, "wb") as f:
                _execute(spec, f.write)
            typer.echo(f"Downloaded {bucket}/{key} to {output}", err=True)
        else:
            out = typer.get_binary_stream("stdout")
            _execute(spec, out.write)
            out.flush()

    run_and_exit(_run)


@app.command()
def put(
    bucket: str = typer.Argument(..., help="Bucket name"),
    key: str = typer.Argument(..., help="Object key"),
    path: Path = typer.Argument(..., help="File to upload"),
    stream: bool = typer.Option(False, "--stream", help="Send with chunked transfer encoding"),
    content_type: Optional[str] = typer.Option(None, "--content-type", help="Override the guessed content type"),
):
    """Upload a file to an object."""
    def _run():
        if not path.is_file():
            raise ValueError(f"Not a file: {path}")

        headers = {"Content-Type": content_type or guess_content_type(key)}
        if stream:
            def produce(writer):
                with open(path, "rb") as f:
                    while True:
                        chunk = f.read(UPLOAD_CHUNK_SIZE)
                        if not chunk:
                            break
                        writer.write(chunk)

            body = HTTP.streaming_body(produce)
        else:
            body = path.read_bytes()

        envelope = _execute(RequestSpec(verb="PUT", bucket=bucket, key=key, headers=headers, body=body))
        typer.echo(f"Uploaded {path} to {bucket}/{key}")
        if envelope.headers.get("ETag"):
            typer.echo(f"ETag: {envelope.headers['ETag']}")

    run_and_exit(_run)


@app.command()
def head(
    bucket: str = typer.Argument(..., help="Bucket name"),
    key: str = typer.Argument(..., help="Object key"),
):
    """Show the response headers for an object."""
    def _run():
        envelope = _execute(RequestSpec(verb="HEAD", bucket=bucket, key=key))
        for name, value in envelope.headers.items():
            typer.echo(f"{name}: {value}")

    run_and_exit(_run)


@app.command()
def delete(
    bucket: str = typer.Argument(..., help="Bucket name"),
    key: str = typer.Argument(..., help="Object key"),
):
    """Delete an object."""
    def _run():
        _execute(RequestSpec(verb="DELETE", bucket=bucket, key=key))
        typer.echo(f"Deleted {bucket}/{key}")

    run_and_exit(_run)


@app.command("sign")
def sign_command(
    verb: str = typer.Argument(..., help="HTTP verb"),
    bucket: Optional[str] = typer.Option(None, "--bucket", help="Bucket name"),
    key: Optional[str] = typer.Option(None, "--key", help="Object key"),
    sub_res: list[str] = typer.Option([], "--sub-res", help="Sub-resource, as name or name=value"),
    date: Optional[str] = typer.Option(None, "--date", help="Date header to sign instead of now"),
):
    """Print the string to sign and the resulting signature."""
    def _run():
        resources = {}
        for item in sub_res:
            name, _, value = item.partition("=")
            resources[name] = value or None

        settings = create_settings_from_env()
        prepared = RequestBuilder(settings).build(
            RequestSpec(verb=verb, bucket=bucket, key=key, sub_res=resources)
        )
        if date:
            prepared.headers["Date"] = date

        canonical = canonical_string(prepared.method, prepared.headers, prepared.resource, prepared.sub_res)
        typer.echo(canonical)
        typer.echo("---")
        if settings.has_credentials:
            typer.echo(f"Authorization: OSS {settings.access_key_id}:{sign(settings.access_key_secret, canonical)}")
        else:
            typer.echo("Signing skipped: no credentials configured")

    run_and_exit(_run)


if __name__ == "__main__":
    app()
