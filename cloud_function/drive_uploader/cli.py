"""
Upload a local file to the Drive folder the same way the function does.
- Uses the same credentials, folder and naming rule as the HTTP function.
- `--check-folder` only confirms the service account can see the folder.
- Supports `--dry-run` to show the generated name without calling APIs.

Credentials:
- Service account JSON via env var `GOOGLE_SERVICE_ACCOUNT_JSON` (contents),
  folder via `DRIVE_FOLDER_ID` or `--folder-id`.

Usage examples:
  drive-upload ./receipt.jpg --qr-id TABLE12
  drive-upload ./scan.png --mime-type image/png --folder-id FOLDER_ID
  drive-upload ./receipt.jpg --dry-run
  drive-upload --check-folder
  python -m cloud_function.drive_uploader.cli ./receipt.jpg --dry-run
"""
from __future__ import annotations
import argparse
import mimetypes
import os
import sys
from dataclasses import replace
from typing import List, Optional

from .config import Settings
from .drive_client import get_drive_storage
from .errors import ConfigError, UpstreamFailure
from .handler import build_object_name
from .multipart_parser import DEFAULT_MIME_TYPE


def parse_args(argv: Optional[List[str]] = None):
    p = argparse.ArgumentParser(prog="drive-upload")
    p.add_argument("file", nargs="?", help="Local file to upload")
    p.add_argument("--qr-id", help="QR id used as the name prefix (default: qr)")
    p.add_argument("--folder-id", help="Drive folder ID (default: DRIVE_FOLDER_ID)")
    p.add_argument("--mime-type", help="MIME type (default: guessed from the file name)")
    p.add_argument("--check-folder", action="store_true", help="Only check access to the folder")
    p.add_argument("--dry-run", action="store_true", help="Don't call APIs; just print the target name")
    return p.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    settings = Settings.from_env()
    if args.folder_id:
        settings = replace(settings, drive_folder_id=args.folder_id)

    if not args.check_folder and not args.file:
        print("Nothing to do. Provide a file or --check-folder")
        return 2

    if args.file and not os.path.isfile(args.file):
        print(f"No such file: {args.file}")
        return 2

    file_name = os.path.basename(args.file) if args.file else ""
    mime_type = args.mime_type or mimetypes.guess_type(file_name)[0] or DEFAULT_MIME_TYPE

    if args.dry_run:
        print("Dry run mode. No API calls will be made.")
        if args.check_folder:
            print(f"Would check folder: {settings.drive_folder_id}")
        else:
            print(f"Would upload {args.file} as {build_object_name(args.qr_id, file_name)} ({mime_type})")
        return 0

    try:
        storage = get_drive_storage(settings)
        if args.check_folder:
            folder = storage.get_folder()
            print(f"Folder OK: {folder.get('name')} ({folder.get('id')}, {folder.get('mimeType')})")
            return 0

        with open(args.file, "rb") as fh:
            data = fh.read()
        name = build_object_name(args.qr_id, file_name)
        print(f"Uploading {args.file} as {name}...")
        file_id = storage.create_file(name, mime_type, data)
        print(f"Uploaded: {file_id}")
        return 0
    except ConfigError as e:
        print(f"Configuration error: {e}")
        return 2
    except UpstreamFailure as e:
        print(f"Upload failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
