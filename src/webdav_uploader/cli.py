"""Command-line interface for webdav_uploader."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click

from webdav_uploader import (
    DirectoryState,
    UploaderError,
    UploaderSettings,
    UploadTarget,
    WebDAVUploader,
)
from webdav_uploader.config import resolve_credentials
from webdav_uploader.progress import NullProgress


class ClickProgress(NullProgress):
    """Shows the aggregate byte count of an upload as a click progress bar."""

    def __init__(self) -> None:
        self._bar = None
        self._last = 0

    def set_count(self, count: int, total: int) -> None:
        if self._bar is None:
            self._bar = click.progressbar(length=max(total, 1), label="Uploading", file=sys.stderr)
        self._bar.update(count - self._last)
        self._last = count

    def done(self) -> None:
        if self._bar is not None:
            self._bar.render_finish()
            self._bar = None


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def get_uploader(settings: UploaderSettings) -> WebDAVUploader:
    """Log in with ``settings``, prompting for whatever credentials are missing."""
    try:
        settings.validate()
    except ValueError as e:
        raise click.UsageError(str(e)) from e

    url, username, password = resolve_credentials(
        settings.url, settings.username, settings.password  # type: ignore[arg-type]
    )
    if not username:
        username = click.prompt(f"Login for {url}")
    if not password:
        password = click.prompt(f"Password for {username}@{url}", hide_input=True)

    uploader = WebDAVUploader(
        auto_login=False,
        auth_scheme=settings.auth_scheme,
        timeout=settings.timeout,
    )
    uploader.login(url, username, password)
    return uploader


def _fail(message: str) -> None:
    click.echo(click.style(message, fg="red"), err=True)
    sys.exit(1)


@click.group()
@click.version_option(package_name="webdav-uploader")
@click.option("--url", "-u", help="URL of the update site (default: $WEBDAV_URL)")
@click.option("--username", help="WebDAV account name (default: $WEBDAV_USERNAME)")
@click.option("--password", help="WebDAV account password (default: $WEBDAV_PASSWORD)")
@click.option(
    "--auth",
    type=click.Choice(["basic", "digest"]),
    default=None,
    help="HTTP authentication scheme (default: $WEBDAV_AUTH or basic)",
)
@click.option("--verbose", "-v", is_flag=True, help="Log every request")
@click.pass_context
def main(
    ctx: click.Context,
    url: str | None,
    username: str | None,
    password: str | None,
    auth: str | None,
    verbose: bool,
) -> None:
    """Publish files to a WebDAV update site."""
    _configure_logging(verbose)
    try:
        settings = UploaderSettings.from_env()
    except ValueError as e:
        raise click.UsageError(str(e)) from e
    settings.url = url or settings.url
    settings.username = username or settings.username
    settings.password = password or settings.password
    settings.auth_scheme = auth or settings.auth_scheme
    ctx.obj = settings


@main.command()
@click.pass_obj
def check(settings: UploaderSettings) -> None:
    """Verify the credentials, LOCK permission and that the site exists."""
    try:
        uploader = get_uploader(settings)
    except UploaderError as e:
        _fail(f"Check failed: {e}")
        return
    click.echo(click.style(f"Ready to upload to {uploader.base_url}", fg="green"))
    uploader.logout()


@main.command()
@click.argument("files", nargs=-1, required=True, type=click.Path(exists=True, path_type=Path))
@click.option("--to", "-t", "folder", default="", help="Remote folder (default: the site root)")
@click.option(
    "--lock/--no-lock",
    default=True,
    help="Publish each file atomically through a .lock placeholder (default: on)",
)
@click.pass_obj
def upload(settings: UploaderSettings, files: tuple[Path, ...], folder: str, lock: bool) -> None:
    """Upload files to the update site.

    FILES: One or more local files to upload.

    Examples:

        webdav-upload upload db.xml.gz

        webdav-upload upload Foo.jar Bar.jar --to plugins
    """
    folder = folder.strip("/")
    targets = [
        UploadTarget(f"{folder}/{path.name}" if folder else path.name, path) for path in files
    ]
    locks = [target.remote_path for target in targets] if lock else []

    try:
        uploader = get_uploader(settings)
        progress = ClickProgress()
        try:
            result = uploader.upload(targets, locks, progress=progress)
        finally:
            progress.done()
            uploader.logout()
    except UploaderError as e:
        _fail(f"Upload failed: {e}")
        return

    for name in result.uploaded:
        click.echo(click.style("✓ ", fg="green") + name)
    click.echo(
        click.style(
            f"\nAll {len(result.uploaded)} file(s) uploaded ({_format_size(result.bytes_sent)}).",
            fg="green",
        )
    )


@main.command()
@click.argument("path")
@click.pass_obj
def mkdir(settings: UploaderSettings, path: str) -> None:
    """Create a remote folder and its parents.

    Examples:

        webdav-upload mkdir plugins/extra
    """
    try:
        uploader = get_uploader(settings)
        try:
            created = uploader.ensure_directory_exists(path.strip("/"))
        finally:
            uploader.logout()
    except UploaderError as e:
        _fail(f"Error: {e}")
        return
    if not created:
        _fail(f"Error: could not create folder {path}")
        return
    click.echo(click.style(f"Folder ready: {path}", fg="green"))


@main.command("rm")
@click.argument("path")
@click.option("--dir", "-d", "is_directory", is_flag=True, help="PATH is a folder")
@click.pass_obj
def remove(settings: UploaderSettings, path: str, is_directory: bool) -> None:
    """Delete a remote file or folder."""
    try:
        uploader = get_uploader(settings)
        try:
            deleted = uploader.delete(path.strip("/"), is_directory)
        finally:
            uploader.logout()
    except UploaderError as e:
        _fail(f"Error: {e}")
        return
    if not deleted:
        _fail(f"Error: could not delete {path}")
        return
    click.echo(click.style(f"Deleted: {path}", fg="green"))


@main.command()
@click.argument("path", default="")
@click.pass_obj
def exists(settings: UploaderSettings, path: str) -> None:
    """Report whether a remote folder exists."""
    try:
        uploader = get_uploader(settings)
        try:
            state = uploader.directory_exists(path.strip("/"))
        finally:
            uploader.logout()
    except UploaderError as e:
        _fail(f"Error: {e}")
        return
    color = "green" if state is DirectoryState.PRESENT else "yellow"
    click.echo(click.style(f"{path or '/'}: {state.value}", fg=color))
    if state is not DirectoryState.PRESENT:
        sys.exit(1)


def _format_size(size_bytes: int) -> str:
    """Format file size in human-readable form."""
    for unit in ["B", "KB", "MB", "GB"]:
        if size_bytes < 1024:
            return f"{size_bytes:.1f} {unit}" if unit != "B" else f"{size_bytes} {unit}"
        size_bytes /= 1024  # type: ignore[assignment]
    return f"{size_bytes:.1f} TB"


if __name__ == "__main__":
    main()
