"""Command line interface for pygdrive."""

import dataclasses
import logging
import posixpath
from itertools import islice
from pathlib import Path
from typing import Any, Optional

import click

from .api import DriveClient
from .config import config
from .exceptions import DriveAPIError, PathNotFoundError
from .models import AccountType, File, Role, UploadOptions
from .output import OutputFormatter, file_to_dict
from .remote import Remote
from .utils import escape_path_sep

logger = logging.getLogger(__name__)


def _get_remote(ctx: Any) -> Remote:
    """Build a Remote from the token stored in the click context."""
    client = DriveClient(access_token=ctx.obj.get("token"))
    ctx.call_on_close(client.close)
    return Remote(client)


def _require_token(ctx: Any) -> None:
    out: OutputFormatter = ctx.obj["out"]
    if not config.is_configured() and not ctx.obj.get("token"):
        out.error("Access token not configured.")
        out.info("Run 'pygdrive init' to configure your access token")
        ctx.exit(1)


@click.group()
@click.option(
    "--token", "-t", envvar="PYGDRIVE_ACCESS_TOKEN", help="OAuth access token"
)
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Output in JSON format")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.version_option(package_name="pygdrive")
@click.pass_context
def main(
    ctx: Any, token: Optional[str], quiet: bool, json: bool, verbose: bool
) -> None:
    """pygdrive - Address a Drive account by path."""
    ctx.ensure_object(dict)
    ctx.obj["token"] = token
    ctx.obj["out"] = OutputFormatter(json_output=json, quiet=quiet)

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("pygdrive").setLevel(logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)


@main.command()
@click.option(
    "--token",
    "-t",
    prompt="Enter your access token",
    hide_input=True,
    help="OAuth access token",
)
@click.pass_context
def init(ctx: Any, token: str) -> None:
    """Store an access token in the config file."""
    out: OutputFormatter = ctx.obj["out"]
    try:
        config.save_access_token(token)
    except DriveAPIError as e:
        out.error(str(e))
        ctx.exit(1)
    out.success(f"Access token saved to {config.get_config_path()}")


@main.command()
@click.argument("path", default="/")
@click.option("--trashed", is_flag=True, help="Look the path up in the trash")
@click.pass_context
def stat(ctx: Any, path: str, trashed: bool) -> None:
    """Show the object at PATH."""
    _require_token(ctx)
    out: OutputFormatter = ctx.obj["out"]
    try:
        remote = _get_remote(ctx)
        f = remote.find_by_path_trashed(path) if trashed else remote.find_by_path(path)
    except DriveAPIError as e:
        out.error(str(e))
        ctx.exit(1)

    if out.json_output:
        out.output_json(file_to_dict(f))
        return
    for key, value in file_to_dict(f).items():
        out.print(f"{key:<14}{value}")


@main.command()
@click.argument("path", default="/")
@click.option("--trashed", is_flag=True, help="List trashed children")
@click.option("--shared", is_flag=True, help="List objects shared with you")
@click.option("--all", "-a", "include_hidden", is_flag=True, help="Include hidden")
@click.pass_context
def ls(ctx: Any, path: str, trashed: bool, shared: bool, include_hidden: bool) -> None:
    """List the children of the directory at PATH."""
    _require_token(ctx)
    out: OutputFormatter = ctx.obj["out"]
    try:
        remote = _get_remote(ctx)
        if shared:
            stream = remote.find_by_path_shared(path, include_hidden)
        else:
            parent = remote.find_by_path(path)
            if not parent.is_dir:
                out.print_files([parent])
                return
            if trashed:
                stream = remote.find_by_parent_id_trashed(parent.id, include_hidden)
            else:
                stream = remote.find_by_parent_id(parent.id, include_hidden)
        with stream:
            files = list(stream)
        if stream.error is not None:
            out.warning(f"Listing is incomplete: {stream.error}")
    except DriveAPIError as e:
        out.error(str(e))
        ctx.exit(1)

    out.print_files(files)


@main.command()
@click.argument("path")
@click.pass_context
def mkdir(ctx: Any, path: str) -> None:
    """Create the directory at PATH and any missing parents."""
    _require_token(ctx)
    out: OutputFormatter = ctx.obj["out"]
    try:
        remote = _get_remote(ctx)
        directory = remote.mkdir_all(path)
    except DriveAPIError as e:
        out.error(str(e))
        ctx.exit(1)

    if out.json_output:
        out.output_json(file_to_dict(directory))
    else:
        out.success(f"Directory ready: {path} ({directory.id})")


@main.command()
@click.argument("local_path", type=click.Path(exists=True, path_type=Path))
@click.argument("remote_dir", default="/")
@click.option(
    "--option",
    "-o",
    "option_names",
    multiple=True,
    help="Upload option (convert, ocr, pinned, content_as_indexable_text, "
    "new_revision, update_viewed_date)",
)
@click.option(
    "--ignore-checksum", is_flag=True, help="Compare sizes only, not checksums"
)
@click.pass_context
def push(
    ctx: Any,
    local_path: Path,
    remote_dir: str,
    option_names: tuple[str, ...],
    ignore_checksum: bool,
) -> None:
    """Create or update LOCAL_PATH inside REMOTE_DIR."""
    _require_token(ctx)
    out: OutputFormatter = ctx.obj["out"]
    try:
        options = UploadOptions.from_names(option_names)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--option") from e

    try:
        remote = _get_remote(ctx)
        src = File.from_local_path(local_path.resolve())
        dest: Optional[File] = None
        try:
            dest = remote.find_by_path(posixpath.join(remote_dir, src.name))
            src = dataclasses.replace(src, id=dest.id)
        except PathNotFoundError:
            pass

        result = remote.upserter.upsert_into(
            remote_dir,
            src,
            dest=dest,
            options=options,
            ignore_checksum=ignore_checksum,
        )
    except DriveAPIError as e:
        out.error(str(e))
        ctx.exit(1)

    if out.json_output:
        out.output_json(file_to_dict(result))
    else:
        verb = "Updated" if dest is not None else "Created"
        out.success(f"{verb} {posixpath.join(remote_dir, result.name)} ({result.id})")


@main.command()
@click.argument("path")
@click.argument("output", type=click.Path(path_type=Path), required=False)
@click.option("--export", "export_type", help="Export a native document as TYPE")
@click.pass_context
def pull(
    ctx: Any, path: str, output: Optional[Path], export_type: Optional[str]
) -> None:
    """Download the file at PATH."""
    _require_token(ctx)
    out: OutputFormatter = ctx.obj["out"]
    try:
        remote = _get_remote(ctx)
        f = remote.find_by_path(path)
        saved = remote.download(
            f, output or Path(escape_path_sep(f.name)), export_type=export_type or ""
        )
    except DriveAPIError as e:
        out.error(str(e))
        ctx.exit(1)

    out.success(f"Saved {saved}")


@main.command()
@click.option(
    "--start", "start_change_id", type=int, default=-1, help="First change id"
)
@click.option("--limit", type=int, default=None, help="Stop after N changes")
@click.pass_context
def changes(ctx: Any, start_change_id: int, limit: Optional[int]) -> None:
    """List changes since a change id."""
    _require_token(ctx)
    out: OutputFormatter = ctx.obj["out"]
    try:
        remote = _get_remote(ctx)
        with remote.changes(start_change_id) as stream:
            items = list(islice(stream, limit))
        if stream.error is not None:
            out.warning(f"Change feed ended early: {stream.error}")
    except DriveAPIError as e:
        out.error(str(e))
        ctx.exit(1)

    out.print_changes(items)
    if items:
        out.info(f"Resume with --start {items[-1].id + 1}")


@main.command()
@click.argument("path")
@click.pass_context
def trash(ctx: Any, path: str) -> None:
    """Move the object at PATH to the trash."""
    _require_token(ctx)
    out: OutputFormatter = ctx.obj["out"]
    try:
        remote = _get_remote(ctx)
        remote.trash(remote.find_by_path(path).id)
    except DriveAPIError as e:
        out.error(str(e))
        ctx.exit(1)
    out.success(f"Trashed {path}")


@main.command()
@click.argument("path")
@click.pass_context
def untrash(ctx: Any, path: str) -> None:
    """Restore the trashed object at PATH."""
    _require_token(ctx)
    out: OutputFormatter = ctx.obj["out"]
    try:
        remote = _get_remote(ctx)
        remote.untrash(remote.find_by_path_trashed(path).id)
    except DriveAPIError as e:
        out.error(str(e))
        ctx.exit(1)
    out.success(f"Restored {path}")


@main.command()
@click.confirmation_option(prompt="Permanently delete everything in the trash?")
@click.pass_context
def emptytrash(ctx: Any) -> None:
    """Permanently delete every trashed object."""
    _require_token(ctx)
    out: OutputFormatter = ctx.obj["out"]
    try:
        _get_remote(ctx).empty_trash()
    except DriveAPIError as e:
        out.error(str(e))
        ctx.exit(1)
    out.success("Trash emptied")


@main.command()
@click.argument("path")
@click.pass_context
def touch(ctx: Any, path: str) -> None:
    """Set the modification time of the object at PATH to now."""
    _require_token(ctx)
    out: OutputFormatter = ctx.obj["out"]
    try:
        remote = _get_remote(ctx)
        f = remote.touch(remote.find_by_path(path).id)
    except DriveAPIError as e:
        out.error(str(e))
        ctx.exit(1)
    out.success(f"Touched {path} ({f.mod_time.isoformat() if f.mod_time else ''})")


@main.command()
@click.argument("path")
@click.pass_context
def pub(ctx: Any, path: str) -> None:
    """Publish the object at PATH and print its public URL."""
    _require_token(ctx)
    out: OutputFormatter = ctx.obj["out"]
    try:
        remote = _get_remote(ctx)
        url = remote.publish(remote.find_by_path(path).id)
    except DriveAPIError as e:
        out.error(str(e))
        ctx.exit(1)

    if out.json_output:
        out.output_json({"path": path, "url": url})
    else:
        out.print(url)


@main.command()
@click.argument("path")
@click.pass_context
def unpub(ctx: Any, path: str) -> None:
    """Revoke public access to the object at PATH."""
    _require_token(ctx)
    out: OutputFormatter = ctx.obj["out"]
    try:
        remote = _get_remote(ctx)
        remote.unpublish(remote.find_by_path(path).id)
    except DriveAPIError as e:
        out.error(str(e))
        ctx.exit(1)
    out.success(f"Unpublished {path}")


@main.command()
@click.argument("path")
@click.option("--email", "-e", "emails", multiple=True, required=True)
@click.option(
    "--role",
    "-r",
    type=click.Choice([r.value for r in Role]),
    default=Role.READER.value,
    show_default=True,
)
@click.option("--message", "-m", default="", help="Notification message")
@click.pass_context
def share(
    ctx: Any, path: str, emails: tuple[str, ...], role: str, message: str
) -> None:
    """Share the object at PATH with one or more email addresses."""
    _require_token(ctx)
    out: OutputFormatter = ctx.obj["out"]
    try:
        remote = _get_remote(ctx)
        f = remote.find_by_path(path)
        for email in emails:
            remote.permissions.insert(
                f.id, Role(role), AccountType.USER, value=email, email_message=message
            )
            out.success(f"Shared {path} with {email} as {role}")
    except DriveAPIError as e:
        out.error(str(e))
        ctx.exit(1)


if __name__ == "__main__":
    main()
