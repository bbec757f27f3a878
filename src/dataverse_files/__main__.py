"""Sample program: upload, download and delete a file column value.

Run ``python -m dataverse_files --file Files/25mb.pdf``. The program creates
a file column on the account table (unless it already exists) and an account
row, moves the file up and back down in 4 MiB blocks, then deletes the file,
the row and the column it created.
"""

from __future__ import annotations

import contextlib
import logging
import os
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import click

from ._blocks import DEFAULT_BLOCK_SIZE
from ._logging import setup_logging
from .client import DataverseClient
from .errors import DataverseError
from .settings import load_settings

logger = logging.getLogger("dataverse_files.sample")

SAMPLE_ACCOUNT_NAME = "Test account for file data sample"
SAMPLE_COLUMN_SCHEMA_NAME = "sample_FileColumn"
SAMPLE_COLUMN_DISPLAY_NAME = "Sample File Column"


@dataclass
class SampleOptions:
    file_path: str
    mime_type: str | None = None
    entity_logical_name: str = "account"
    entity_set_name: str | None = None
    column_schema_name: str = SAMPLE_COLUMN_SCHEMA_NAME
    block_size: int = DEFAULT_BLOCK_SIZE
    output_dir: str = "."
    keep_column: bool = False

    @property
    def column_logical_name(self) -> str:
        return self.column_schema_name.lower()

    @property
    def resolved_entity_set_name(self) -> str:
        return self.entity_set_name or f"{self.entity_logical_name}s"


@dataclass
class SampleReport:
    record_id: uuid.UUID
    file_id: uuid.UUID
    uploaded_bytes: int
    block_count: int
    downloaded_path: str


def run_sample(
    client: DataverseClient,
    options: SampleOptions,
    echo: Callable[[str], None] = click.echo,
) -> SampleReport:
    entity = options.entity_logical_name
    column = options.column_logical_name
    file_name = os.path.basename(options.file_path)

    with contextlib.ExitStack() as cleanup:
        if client.columns.column_exists(entity, column):
            echo(f"Using existing file column {column} on {entity}")
        else:
            client.columns.create_file_column(
                entity, options.column_schema_name, display_name=SAMPLE_COLUMN_DISPLAY_NAME
            )
            echo(f"Created file column {options.column_schema_name} on {entity}")
            if not options.keep_column:
                cleanup.push(_cleanup_step(_delete_column, client, entity, column, echo))

        entity_set = options.resolved_entity_set_name
        record_id = client.records.create(entity_set, {"name": SAMPLE_ACCOUNT_NAME})
        echo(f"Created {entity} record with {entity}id:{record_id}")
        cleanup.push(_cleanup_step(_delete_record, client, entity_set, entity, record_id, echo))
        target = client.records.reference(entity, record_id)

        echo(f"Uploading file {options.file_path} ...")
        uploaded = client.files.upload_file(
            target,
            column,
            options.file_path,
            mime_type=options.mime_type,
            block_size=options.block_size,
        )
        echo(f"Uploaded file {options.file_path} in {uploaded.block_count} block(s)")

        echo("Downloading file...")
        destination = os.path.join(options.output_dir, f"downloaded-{file_name}")
        downloaded_path = client.files.download_to_path(
            target, column, destination, overwrite=True, block_size=options.block_size
        )
        echo(f"Downloaded the file to {os.path.abspath(downloaded_path)}.")

        client.files.delete_file(uploaded.file_id)
        echo("Deleted file using FileId.")

    echo("\nSample complete.")
    return SampleReport(
        record_id=record_id,
        file_id=uploaded.file_id,
        uploaded_bytes=uploaded.file_size_in_bytes,
        block_count=uploaded.block_count,
        downloaded_path=downloaded_path,
    )


def _cleanup_step(action: Callable[..., None], *args: Any) -> Callable[..., bool]:
    """Wrap ``action`` as an ``ExitStack`` exit callback.

    While another exception is propagating, a failing cleanup is logged and
    the original exception is left to surface.
    """

    def _exit(exc_type: type[BaseException] | None, exc: BaseException | None, tb: Any) -> bool:
        try:
            action(*args)
        except DataverseError as cleanup_error:
            if exc is None:
                raise
            logger.warning("Cleanup failed: %s", cleanup_error)
        return False

    return _exit


def _delete_record(
    client: DataverseClient,
    entity_set: str,
    entity: str,
    record_id: uuid.UUID,
    echo: Callable[[str], None],
) -> None:
    client.records.delete(entity_set, record_id)
    echo(f"Deleted the {entity} record.")


def _delete_column(
    client: DataverseClient, entity: str, column: str, echo: Callable[[str], None]
) -> None:
    client.columns.delete_column(entity, column)
    echo(f"Deleted file column {column}.")


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "--file",
    "file_path",
    required=True,
    type=click.Path(exists=True, dir_okay=False),
    help="File to upload.",
)
@click.option("--mime-type", default=None, help="MIME type, guessed when omitted.")
@click.option("--entity", default="account", show_default=True, help="Table logical name.")
@click.option("--entity-set", default=None, help="Entity set name. Defaults to <entity>s.")
@click.option(
    "--column", default=SAMPLE_COLUMN_SCHEMA_NAME, show_default=True, help="Column schema name."
)
@click.option(
    "--block-size",
    type=click.IntRange(1, DEFAULT_BLOCK_SIZE),
    default=DEFAULT_BLOCK_SIZE,
    show_default=True,
    help="Block size in bytes.",
)
@click.option(
    "--output-dir",
    type=click.Path(file_okay=False),
    default=".",
    show_default=True,
    help="Where the downloaded copy is written.",
)
@click.option("--keep-column", is_flag=True, help="Leave the created column in place.")
@click.option(
    "--settings",
    "settings_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Path to appsettings.json (default: $DATAVERSE_APPSETTINGS or ./appsettings.json).",
)
@click.option("-v", "--verbose", is_flag=True, help="Log every block transfer.")
def main(
    file_path: str,
    mime_type: str | None,
    entity: str,
    entity_set: str | None,
    column: str,
    block_size: int,
    output_dir: str,
    keep_column: bool,
    settings_path: str | None,
    verbose: bool,
) -> None:
    """Upload, download and delete a file stored in a Dataverse file column."""
    setup_logging(verbose)
    options = SampleOptions(
        file_path=file_path,
        mime_type=mime_type,
        entity_logical_name=entity,
        entity_set_name=entity_set,
        column_schema_name=column,
        block_size=block_size,
        output_dir=output_dir,
        keep_column=keep_column,
    )
    try:
        settings = load_settings(settings_path)
        with DataverseClient.from_settings(settings) as client:
            run_sample(client, options)
    except DataverseError as exc:
        raise click.ClickException(str(exc)) from exc


if __name__ == "__main__":
    main()
