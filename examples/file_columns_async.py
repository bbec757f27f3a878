import asyncio
import os
import sys

from dotenv import load_dotenv

from dataverse_files import AsyncDataverseClient, load_settings

load_dotenv()

COLUMN = "sample_filecolumn"


def on_progress(done: int, total: int) -> None:
    pct = int(done / total * 100) if total else 100
    print(f"progress: {done}/{total} bytes ({pct}%)")


async def main(path: str) -> None:
    settings = load_settings()

    async with AsyncDataverseClient.from_settings(settings) as client:
        # 1) Make sure the account table has a file column
        if not await client.columns.column_exists("account", COLUMN):
            await client.columns.create_file_column(
                "account", "sample_FileColumn", display_name="Sample File Column"
            )
            print("created column:", COLUMN)

        # 2) A row to hold the file
        account_id = await client.records.create("accounts", {"name": "Async file sample"})
        target = client.records.reference("account", account_id)
        print("account:", account_id)

        try:
            # 3) Upload in 1 MiB blocks
            uploaded = await client.files.upload_file(
                target, COLUMN, path, block_size=1024 * 1024, on_progress=on_progress
            )
            print("uploaded:", uploaded.file_id, uploaded.file_size_in_bytes, "bytes")

            # 4) Download to memory and to disk
            content = await client.files.download_file(target, COLUMN)
            print("downloaded:", len(content), "bytes")
            saved = await client.files.download_to_path(
                target, COLUMN, f"downloaded-{os.path.basename(path)}", overwrite=True
            )
            print("saved:", saved)

            # 5) Remove the file
            await client.files.delete_file(uploaded.file_id)
            print("deleted file")
        finally:
            await client.records.delete("accounts", account_id)
            print("deleted account")


if __name__ == "__main__":
    if len(sys.argv) != 2:
        sys.exit("usage: python examples/file_columns_async.py <file>")
    asyncio.run(main(sys.argv[1]))
